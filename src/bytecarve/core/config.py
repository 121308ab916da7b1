"""Scan configuration and user defaults."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from bytecarve.core.errors import ConfigError

logger = logging.getLogger(__name__)

MB = 1024 * 1024
MIN_CHUNK_SIZE = 4 * 1024
MAX_CHUNK_SIZE = 1024 * MB
DEFAULT_CHUNK_SIZE = 512 * MB
DEFAULT_CHUNK_SIZE_MB = DEFAULT_CHUNK_SIZE // MB

DEFAULT_MIN_LENGTH = 3
DEFAULT_CODE_PAGE = 1252
DEFAULT_NARROW_CLASS = r"[\x20-\x7E]"
DEFAULT_WIDE_CLASS = r"[\u0020-\u007E]"


class SortOrder(Enum):
    NONE = "none"
    LEXICAL = "lexical"
    LENGTH = "length"

    @classmethod
    def from_flags(cls, lexical: bool, by_length: bool) -> SortOrder:
        """Map the two CLI sort switches to one order; asking for both is an error."""
        if lexical and by_length:
            raise ConfigError("Sort alphabetically and sort by length are mutually exclusive")
        if lexical:
            return cls.LEXICAL
        if by_length:
            return cls.LENGTH
        return cls.NONE


def normalize_chunk_size(chunk_size_bytes: int) -> int:
    """Return `chunk_size_bytes`, or the default when it is out of range."""
    if MIN_CHUNK_SIZE <= chunk_size_bytes <= MAX_CHUNK_SIZE:
        return chunk_size_bytes
    logger.debug(
        "Chunk size %d outside %d..%d, using default %d",
        chunk_size_bytes,
        MIN_CHUNK_SIZE,
        MAX_CHUNK_SIZE,
        DEFAULT_CHUNK_SIZE,
    )
    return DEFAULT_CHUNK_SIZE


def chunk_size_from_megabytes(mb: int) -> int:
    """Chunk size in bytes for a size in MB; valid range is 1 to 1024, default 512."""
    if mb < 1 or mb > 1024:
        mb = DEFAULT_CHUNK_SIZE_MB
    return mb * MB


@dataclass(frozen=True)
class ScanConfig:
    """Immutable configuration for one scan.

    Attributes:
        min_length: Minimum characters in a reported string (>= 1)
        max_length: Maximum characters, or None for unbounded
        chunk_size_bytes: Primary window size; out-of-range values fall back to the default
        narrow: Look for code-page strings
        wide: Look for UTF-16LE strings
        narrow_class: Regex character class for code-page strings
        wide_class: Regex character class for UTF-16LE strings
        code_page: Windows code-page identifier for narrow decoding
        with_offsets: Compute byte offsets for every hit
        sort_order: Ordering applied to the collected hits
    """
    min_length: int = DEFAULT_MIN_LENGTH
    max_length: int | None = None
    chunk_size_bytes: int = DEFAULT_CHUNK_SIZE
    narrow: bool = True
    wide: bool = True
    narrow_class: str = DEFAULT_NARROW_CLASS
    wide_class: str = DEFAULT_WIDE_CLASS
    code_page: int = DEFAULT_CODE_PAGE
    with_offsets: bool = False
    sort_order: SortOrder = SortOrder.NONE

    def __post_init__(self) -> None:
        if self.min_length < 1:
            raise ConfigError(f"min_length must be >= 1 (got {self.min_length})")
        if self.max_length is not None and self.max_length < 0:
            # Negative maximum is the "unbounded" sentinel used on the command line.
            object.__setattr__(self, "max_length", None)
        if self.max_length is not None and self.max_length < self.min_length:
            raise ConfigError(
                f"max_length ({self.max_length}) must not be below min_length ({self.min_length})"
            )
        object.__setattr__(self, "chunk_size_bytes", normalize_chunk_size(int(self.chunk_size_bytes)))


# ============================================================================
# USER DEFAULTS FILE
# ============================================================================

CONFIG_KEYS = frozenset({
    "min_length",
    "max_length",
    "chunk_size_mb",
    "code_page",
    "narrow",
    "wide",
    "narrow_class",
    "wide_class",
    "with_offsets",
})


def get_user_config_dir() -> Path:
    """Platform-appropriate user configuration directory."""
    if os.name == "nt":
        base = os.environ.get("APPDATA", os.path.expanduser("~"))
        return Path(base) / "bytecarve"
    return Path.home() / ".config" / "bytecarve"


def default_config_path() -> Path:
    return get_user_config_dir() / "config.yaml"


def load_config_file(path: Path | str) -> dict[str, Any]:
    """Load option defaults from a YAML mapping.

    Unknown keys are logged and dropped. A file that is not a mapping, or
    is not valid YAML, raises ConfigError.
    """
    path = Path(path)
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid config file '{path}': {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Cannot read config file '{path}': {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Config file '{path}' must contain a mapping")

    result: dict[str, Any] = {}
    for key, value in data.items():
        if key not in CONFIG_KEYS:
            logger.warning("Ignoring unknown config key '%s' in %s", key, path)
            continue
        result[key] = value
    return result
