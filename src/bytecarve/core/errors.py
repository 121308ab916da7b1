"""Error taxonomy and non-fatal diagnostics for carving runs.

Fatal errors are raised as exceptions (``ConfigError`` before scanning,
``SourceError`` for one file). Anything that costs only one window or one
pattern is reported as a :class:`Diagnostic` value instead.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class CarveError(Exception):
    """Base class for bytecarve errors."""


class ConfigError(CarveError):
    """Invalid or conflicting configuration, detected before any window is read."""


class SourceError(CarveError):
    """The byte source could not be opened or read. Fatal for that source only."""


class PatternError(CarveError):
    """A character class or filter regex failed to compile."""

    def __init__(self, pattern: str, message: str) -> None:
        super().__init__(f"invalid pattern {pattern!r}: {message}")
        self.pattern = pattern


class DecodeError(CarveError):
    """A window could not be decoded under an encoding."""


class DiagnosticKind(Enum):
    DECODE = "decode"
    PATTERN = "pattern"


@dataclass(frozen=True)
class Diagnostic:
    """A non-fatal problem encountered while carving or filtering.

    Attributes:
        kind: Which part of the pipeline produced it
        message: Human-readable description
        offset: Start offset of the affected window (None for filter patterns)
        encoding: Encoding tag ("A"/"U") when the problem is encoding-specific
    """
    kind: DiagnosticKind
    message: str
    offset: int | None = None
    encoding: str | None = None

    def __str__(self) -> str:
        where = ""
        if self.offset is not None:
            where = f" @0x{self.offset:X}"
        if self.encoding:
            where += f" ({self.encoding})"
        return f"{self.kind.value}{where}: {self.message}"
