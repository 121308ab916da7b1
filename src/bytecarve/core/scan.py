"""Top-level scan: primary pass over the chunk tiling, then the boundary pass.

Everything runs on the calling thread. Windows are read, carved and
discarded one at a time, so memory stays bounded by the chunk size no matter
how large the source is. The only state that outlives a window is the
growing :class:`HitSet`.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field

from bytecarve.core.carve import Encoding, Match, carve_window
from bytecarve.core.config import ScanConfig
from bytecarve.core.errors import Diagnostic, SourceError
from bytecarve.core.hits import Hit, HitSet
from bytecarve.core.io import ByteSource
from bytecarve.core.offsets import resolve_offset
from bytecarve.core.planner import (
    Window,
    iter_boundary_windows,
    iter_primary_windows,
    primary_window_count,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanProgress:
    """Emitted after each primary window."""

    window_index: int  # 1-based
    window_count: int
    hits_so_far: int
    elapsed: float  # seconds since the scan started

    @property
    def strings_per_second(self) -> float:
        return self.hits_so_far / self.elapsed if self.elapsed > 0 else 0.0


ProgressCallback = Callable[[ScanProgress], None]


@dataclass
class ScanResult:
    """Hits and non-fatal diagnostics from one scan.

    Unpacks as ``hits, diagnostics = scan(...)``.
    """

    hits: HitSet
    diagnostics: list[Diagnostic] = field(default_factory=list)
    boundary_hits_found: bool = False
    elapsed: float = 0.0
    source_length: int = 0

    def __iter__(self) -> Iterator:
        yield self.hits
        yield self.diagnostics


def _read_window(source: ByteSource, window: Window) -> bytes:
    try:
        return source.read(window.start_offset, window.byte_length)
    except OSError as exc:
        raise SourceError(
            f"read of {window.byte_length} bytes at 0x{window.start_offset:X} failed: {exc}"
        ) from exc


def make_hit(match: Match, encoding: Encoding, config: ScanConfig, raw: bytes) -> Hit:
    """Build the reported hit for a match, resolving its offset when requested."""
    boundary = match.window.is_boundary_window
    if not config.with_offsets:
        return Hit(match.text, boundary=boundary)
    offset, approximate = resolve_offset(match, encoding, match.window, raw)
    return Hit(match.text, encoding.tag, offset, boundary, approximate)


def carve_into(
    hits: HitSet,
    raw: bytes,
    window: Window,
    encodings: list[Encoding],
    config: ScanConfig,
    diagnostics: list[Diagnostic],
) -> int:
    """Carve `raw` under every encoding and collect the hits. Returns the match count."""
    found = 0
    for encoding in encodings:
        matches, problems = carve_window(raw, encoding, config, window)
        diagnostics.extend(problems)
        for match in matches:
            hits.add(make_hit(match, encoding, config, raw))
        found += len(matches)
    return found


class BoundaryReconciler:
    """Second sweep over seam-centred windows.

    Hits found here are marked as boundary hits, which keeps them distinct
    from identical text found by the primary pass.
    """

    def __init__(
        self,
        source: ByteSource,
        config: ScanConfig,
        encodings: list[Encoding],
        hits: HitSet,
        diagnostics: list[Diagnostic],
    ) -> None:
        self.source = source
        self.config = config
        self.encodings = encodings
        self.hits = hits
        self.diagnostics = diagnostics
        self.found_any = False
        self.windows_scanned = 0

    def windows(self) -> Iterator[Window]:
        return iter_boundary_windows(
            self.source.size, self.config.chunk_size_bytes, self.config.min_length
        )

    def run(self) -> bool:
        """Scan every boundary window; returns True if any produced a match."""
        for window in self.windows():
            raw = _read_window(self.source, window)
            found = carve_into(self.hits, raw, window, self.encodings, self.config, self.diagnostics)
            if found:
                self.found_any = True
            self.windows_scanned += 1
        logger.debug(
            "Boundary pass: %d windows, matches found: %s", self.windows_scanned, self.found_any
        )
        return self.found_any


def scan(
    source: ByteSource,
    config: ScanConfig,
    *,
    on_progress: ProgressCallback | None = None,
) -> ScanResult:
    """Carve every enabled encoding out of `source`.

    Args:
        source: Byte source to scan
        config: Scan configuration
        on_progress: Called after each primary window

    Returns:
        ScanResult with the collected hits and any per-window diagnostics

    Raises:
        ConfigError: The configured code page is unknown (before any read)
        SourceError: The source failed to deliver bytes
    """
    encodings = Encoding.from_config(config)
    started = time.perf_counter()
    size = source.size
    hits = HitSet()
    diagnostics: list[Diagnostic] = []

    window_count = primary_window_count(size, config.chunk_size_bytes)
    for index, window in enumerate(iter_primary_windows(size, config.chunk_size_bytes), start=1):
        raw = _read_window(source, window)
        carve_into(hits, raw, window, encodings, config, diagnostics)

        progress = ScanProgress(index, window_count, len(hits), time.perf_counter() - started)
        logger.info(
            "Chunk %s of %s finished. Total strings so far: %s Elapsed time: %.3f seconds. "
            "Average strings/sec: %s",
            f"{index:,}",
            f"{window_count:,}",
            f"{progress.hits_so_far:,}",
            progress.elapsed,
            f"{progress.strings_per_second:,.0f}",
        )
        if on_progress is not None:
            on_progress(progress)

    if window_count > 1:
        logger.info("Primary search complete. Looking for strings across chunk boundaries...")
    reconciler = BoundaryReconciler(source, config, encodings, hits, diagnostics)
    boundary_found = reconciler.run()

    return ScanResult(
        hits=hits,
        diagnostics=diagnostics,
        boundary_hits_found=boundary_found,
        elapsed=time.perf_counter() - started,
        source_length=size,
    )
