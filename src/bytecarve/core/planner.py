"""Window planning over a source of known length.

Primary windows tile the source without overlap. Boundary windows straddle
each seam between two primary windows, ``20 * min_length`` bytes on either
side, so a string cut in two by the primary tiling is seen whole at least
once.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

BOUNDARY_MARGIN_FACTOR = 20


@dataclass(frozen=True)
class Window:
    """A contiguous byte range scheduled for one carving pass."""

    start_offset: int
    byte_length: int
    is_boundary_window: bool = False

    @property
    def end_offset(self) -> int:
        return self.start_offset + self.byte_length


def iter_primary_windows(source_length: int, chunk_size_bytes: int) -> Iterator[Window]:
    """Yield ceil(source_length / chunk_size_bytes) windows in offset order."""
    if chunk_size_bytes <= 0:
        raise ValueError("chunk_size_bytes must be positive")
    offset = 0
    while offset < source_length:
        length = min(chunk_size_bytes, source_length - offset)
        yield Window(offset, length)
        offset += length


def iter_boundary_windows(
    source_length: int, chunk_size_bytes: int, min_length: int
) -> Iterator[Window]:
    """Yield one seam-centred window per primary seam that fits inside the source."""
    if chunk_size_bytes <= 0:
        raise ValueError("chunk_size_bytes must be positive")
    margin = BOUNDARY_MARGIN_FACTOR * max(1, min_length)
    seam = chunk_size_bytes
    while seam < source_length:
        start = max(0, seam - margin)
        end = seam + margin
        if end > source_length:
            # Seams only move forward, so every later window overruns as well.
            break
        yield Window(start, end - start, is_boundary_window=True)
        seam += chunk_size_bytes


def primary_window_count(source_length: int, chunk_size_bytes: int) -> int:
    return -(-source_length // chunk_size_bytes) if source_length > 0 else 0


def plan_windows(
    source_length: int, chunk_size_bytes: int, min_length: int
) -> tuple[list[Window], list[Window]]:
    """Plan all windows for a source.

    Args:
        source_length: Total bytes in the source
        chunk_size_bytes: Primary window size
        min_length: Minimum string length; sets the boundary window margin

    Returns:
        Tuple of (primary_windows, boundary_windows)
    """
    primary = list(iter_primary_windows(source_length, chunk_size_bytes))
    boundary = list(iter_boundary_windows(source_length, chunk_size_bytes, min_length))
    return primary, boundary
