"""Carver: decode one window and pull out length-bounded character runs."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache

from bytecarve.core.codecs import WIDE, Codec, resolve_code_page
from bytecarve.core.config import DEFAULT_NARROW_CLASS, DEFAULT_WIDE_CLASS, ScanConfig
from bytecarve.core.errors import DecodeError, Diagnostic, DiagnosticKind, PatternError
from bytecarve.core.planner import Window

logger = logging.getLogger(__name__)

PATTERN_FLAGS = re.IGNORECASE | re.VERBOSE


class EncodingKind(Enum):
    NARROW = "narrow"
    WIDE = "wide"


@dataclass(frozen=True)
class Encoding:
    """One way of reading a window as text, with the character class to carve."""

    kind: EncodingKind
    codec: Codec
    char_class: str

    @property
    def tag(self) -> str:
        """Single-letter tag shown after offsets: A (code page) or U (UTF-16LE)."""
        return "U" if self.kind is EncodingKind.WIDE else "A"

    @property
    def width(self) -> int | None:
        return self.codec.width

    @classmethod
    def narrow(cls, code_page: int, char_class: str = DEFAULT_NARROW_CLASS) -> Encoding:
        return cls(EncodingKind.NARROW, resolve_code_page(code_page), char_class)

    @classmethod
    def wide(cls, char_class: str = DEFAULT_WIDE_CLASS) -> Encoding:
        return cls(EncodingKind.WIDE, WIDE, char_class)

    @classmethod
    def from_config(cls, config: ScanConfig) -> list[Encoding]:
        """Enabled encodings, wide first. Raises ConfigError for an unknown code page."""
        encodings: list[Encoding] = []
        if config.wide:
            encodings.append(cls.wide(config.wide_class))
        if config.narrow:
            encodings.append(cls.narrow(config.code_page, config.narrow_class))
        return encodings


@dataclass(frozen=True)
class Match:
    """A trimmed run found in one window.

    `text_index` is in decoded-text space, counted from `lead_bytes` into
    the window: fixed-width text is decoded from the first byte aligned to
    its width in the source, not from the window start.
    """

    text: str
    text_index: int
    window: Window
    lead_bytes: int = 0


def quantifier(min_length: int, max_length: int | None) -> str:
    if max_length is None:
        return f"{{{min_length},}}"
    return f"{{{min_length},{max_length}}}"


@lru_cache(maxsize=64)
def build_pattern(char_class: str, min_length: int, max_length: int | None) -> re.Pattern[str]:
    """Compile `char_class` with a bounded repetition. Raises PatternError."""
    source = f"{char_class}{quantifier(min_length, max_length)}"
    try:
        return re.compile(source, PATTERN_FLAGS)
    except re.error as exc:
        raise PatternError(source, str(exc)) from exc


def carve(
    data: bytes, encoding: Encoding, config: ScanConfig, window: Window | None = None
) -> list[Match]:
    """Decode `data` under `encoding` and return every qualifying run, in text order.

    Matches are trimmed of surrounding whitespace; runs left shorter than
    `config.min_length` after trimming are dropped. Raises PatternError or
    DecodeError; use :func:`carve_window` for the non-raising form.
    """
    if window is None:
        window = Window(0, len(data))
    lead = 0
    if encoding.width:
        lead = -window.start_offset % encoding.width
        data = data[lead:]
    pattern = build_pattern(encoding.char_class, config.min_length, config.max_length)
    try:
        text = encoding.codec.decode(data)
    except (UnicodeError, LookupError) as exc:
        raise DecodeError(f"{encoding.codec.name}: {exc}") from exc

    matches: list[Match] = []
    for m in pattern.finditer(text):
        value = m.group()
        trimmed = value.strip()
        if len(trimmed) < config.min_length:
            continue
        indent = len(value) - len(value.lstrip())
        matches.append(Match(trimmed, m.start() + indent, window, lead))
    return matches


def carve_window(
    data: bytes, encoding: Encoding, config: ScanConfig, window: Window
) -> tuple[list[Match], list[Diagnostic]]:
    """Carve one window, turning decode and pattern failures into diagnostics."""
    try:
        return carve(data, encoding, config, window), []
    except PatternError as exc:
        kind = DiagnosticKind.PATTERN
        message = str(exc)
    except DecodeError as exc:
        kind = DiagnosticKind.DECODE
        message = str(exc)
    logger.warning(
        "Skipping %s strings in window at 0x%X: %s", encoding.kind.value, window.start_offset, message
    )
    return [], [Diagnostic(kind, message, window.start_offset, encoding.tag)]
