from __future__ import annotations

import pytest

from bytecarve.core.planner import Window, iter_primary_windows, plan_windows, primary_window_count


def test_primary_windows_tile_source() -> None:
    primary, _ = plan_windows(10_000, 4096, 3)
    assert [(w.start_offset, w.byte_length) for w in primary] == [
        (0, 4096),
        (4096, 4096),
        (8192, 1808),
    ]
    assert not any(w.is_boundary_window for w in primary)
    assert primary_window_count(10_000, 4096) == 3


def test_exact_multiple_has_no_short_tail() -> None:
    primary, boundary = plan_windows(8192, 4096, 3)
    assert [w.byte_length for w in primary] == [4096, 4096]
    assert boundary == [Window(4096 - 60, 120, True)]


def test_boundary_windows_straddle_each_seam() -> None:
    _, boundary = plan_windows(5 * 4096, 4096, 4)
    assert [w.start_offset for w in boundary] == [k * 4096 - 80 for k in range(1, 5)]
    assert all(w.byte_length == 160 for w in boundary)
    assert all(w.is_boundary_window for w in boundary)


def test_boundary_window_past_end_is_skipped() -> None:
    # Seam at 4096 but only 10 bytes after it
    _, boundary = plan_windows(4106, 4096, 3)
    assert boundary == []


def test_single_window_has_no_boundaries() -> None:
    primary, boundary = plan_windows(1000, 4096, 3)
    assert primary == [Window(0, 1000)]
    assert boundary == []


def test_empty_source() -> None:
    assert plan_windows(0, 4096, 3) == ([], [])
    assert primary_window_count(0, 4096) == 0


def test_margin_larger_than_chunk_clamps_at_zero() -> None:
    _, boundary = plan_windows(10_000, 100, 10)
    first = boundary[0]
    assert first.start_offset == 0
    assert first.end_offset == 300


def test_invalid_chunk_size() -> None:
    with pytest.raises(ValueError):
        list(iter_primary_windows(100, 0))
