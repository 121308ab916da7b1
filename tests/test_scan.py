from __future__ import annotations

import pytest

from bytecarve.core.config import ScanConfig
from bytecarve.core.errors import ConfigError, DiagnosticKind, SourceError
from bytecarve.core.hits import Hit
from bytecarve.core.io import MemorySource
from bytecarve.core.scan import ScanProgress, scan


def forensics_image() -> bytes:
    data = bytearray(1_000_000)
    data[500_000:500_009] = b"forensics"
    return bytes(data)


def test_single_window_finds_string_with_offset() -> None:
    config = ScanConfig(min_length=3, with_offsets=True)
    result = scan(MemorySource(forensics_image()), config)
    assert Hit("forensics", "A", 500_000) in result.hits
    assert not result.boundary_hits_found
    assert result.source_length == 1_000_000


def test_string_split_by_seam_is_recovered() -> None:
    config = ScanConfig(min_length=3, chunk_size_bytes=500_003, with_offsets=True)
    result = scan(MemorySource(forensics_image()), config)
    assert Hit("forensics", "A", 500_000, boundary=True) in result.hits
    assert result.boundary_hits_found
    assert all(h.boundary or h.text != "forensics" for h in result.hits)


def test_no_loss_at_seam() -> None:
    chunk = 4096
    data = bytearray(3 * chunk)
    data[chunk - 2 : chunk + 2] = b"abcd"
    config = ScanConfig(min_length=4, chunk_size_bytes=chunk, wide=False)
    hits, diagnostics = scan(MemorySource(bytes(data)), config)
    assert [h.text for h in hits] == ["abcd"]
    assert all(h.boundary for h in hits)
    assert diagnostics == []


def test_wide_offsets_point_at_bytes() -> None:
    data = b"\x00" * 100 + "wide string".encode("utf-16-le") + b"\x00" * 100
    config = ScanConfig(narrow=False, with_offsets=True)
    hits, _ = scan(MemorySource(data), config)
    (hit,) = list(hits)
    assert (hit.text, hit.encoding_tag, hit.byte_offset) == ("wide string", "U", 100)
    assert data[hit.byte_offset : hit.byte_offset + 22].decode("utf-16-le") == hit.text


def test_narrow_offsets_round_trip() -> None:
    words = [b"first", b"second", b"third"]
    data = b"\x01\x02".join(words) + b"\xff" * 10
    config = ScanConfig(wide=False, with_offsets=True)
    for hit in scan(MemorySource(data), config).hits:
        assert not hit.approximate
        assert data[hit.byte_offset :].startswith(hit.text.encode("cp1252"))


def test_progress_reported_per_primary_window() -> None:
    seen: list[ScanProgress] = []
    data = b"text" * 4096
    scan(MemorySource(data), ScanConfig(chunk_size_bytes=4096), on_progress=seen.append)
    assert [p.window_index for p in seen] == [1, 2, 3, 4]
    assert all(p.window_count == 4 for p in seen)


def test_bad_character_class_is_diagnostic() -> None:
    config = ScanConfig(narrow_class="[z-a]")
    result = scan(MemorySource("world".encode("utf-16-le") + b"hello"), config)
    assert [h.text for h in result.hits] == ["world"]
    assert [d.kind for d in result.diagnostics] == [DiagnosticKind.PATTERN]


def test_unknown_code_page_fails_before_reading() -> None:
    class Untouchable(MemorySource):
        def read(self, offset: int, length: int) -> bytes:
            raise AssertionError("read should not be called")

    with pytest.raises(ConfigError):
        scan(Untouchable(b"data"), ScanConfig(code_page=99999))


def test_failing_source_raises_source_error() -> None:
    class Broken(MemorySource):
        def read(self, offset: int, length: int) -> bytes:
            raise OSError("device went away")

    with pytest.raises(SourceError):
        scan(Broken(b"\x00" * 10), ScanConfig())


def test_empty_source() -> None:
    hits, diagnostics = scan(MemorySource(b""), ScanConfig())
    assert len(hits) == 0
    assert diagnostics == []


@pytest.mark.parametrize("chunk", [500_002, 500_003])
def test_wide_hits_do_not_depend_on_chunk_parity(chunk: int) -> None:
    data = bytearray(1_000_000)
    marker = "wide marker".encode("utf-16-le")
    data[600_000 : 600_000 + len(marker)] = marker
    config = ScanConfig(narrow=False, chunk_size_bytes=chunk, with_offsets=True)
    hits, _ = scan(MemorySource(bytes(data)), config)
    assert list(hits) == [Hit("wide marker", "U", 600_000)]


@pytest.mark.parametrize("min_length", [1, 3])
@pytest.mark.parametrize("chunk", [4096, 4097])
def test_wide_string_across_seam(min_length: int, chunk: int) -> None:
    text = "seamtext"
    start = 4088
    data = bytearray(3 * chunk)
    data[start : start + 2 * len(text)] = text.encode("utf-16-le")
    config = ScanConfig(
        min_length=min_length, chunk_size_bytes=chunk, narrow=False, with_offsets=True
    )
    result = scan(MemorySource(bytes(data)), config)
    assert Hit(text, "U", start, boundary=True) in result.hits
    assert result.boundary_hits_found
    for hit in result.hits:
        o = hit.byte_offset
        assert bytes(data[o : o + 2 * len(hit.text)]).decode("utf-16-le") == hit.text
