from __future__ import annotations

import os
from contextlib import suppress
from typing import Protocol, runtime_checkable

from bytecarve.core.errors import SourceError

try:
    import mmap as _mmap_mod  # type: ignore
except Exception:  # pragma: no cover - platform-specific
    _mmap_mod = None  # type: ignore


class InvalidOffset(ValueError):
    """Raised when an invalid (e.g., negative) offset or length is provided."""


@runtime_checkable
class ByteSource(Protocol):
    """Seekable, length-known provider of raw bytes.

    The carving engine only borrows read access: it never writes, and it
    never asks for bytes past ``size``.
    """

    @property
    def size(self) -> int: ...

    def read(self, offset: int, length: int) -> bytes: ...


def _check_range(offset: int, length: int) -> None:
    if offset < 0:
        raise InvalidOffset("offset must be >= 0")
    if length < 0:
        raise InvalidOffset("length must be >= 0")


class FileSource:
    """Window reader for large files such as disk images.

    Each call returns one whole window. With `mmap` the window is sliced out
    of the mapping; otherwise it is fetched with a single seek and read.
    Nothing is cached between windows, so memory use is one window.
    """

    def __init__(self, path: str, *, use_mmap: bool = True) -> None:
        self._path = path
        try:
            st = os.stat(path)
        except FileNotFoundError:
            raise FileNotFoundError(f"File not found: {path}") from None

        self._size = int(st.st_size)
        self._fh = open(path, "rb")  # noqa: SIM115

        self._mmap = None
        if use_mmap and _mmap_mod is not None and self._size > 0:
            try:
                self._mmap = _mmap_mod.mmap(self._fh.fileno(), length=0, access=_mmap_mod.ACCESS_READ)
            except (OSError, ValueError):
                # Device files and some network mounts refuse mmap.
                self._mmap = None

    def close(self) -> None:
        if getattr(self, "_mmap", None) is not None:
            with suppress(Exception):
                self._mmap.close()  # type: ignore[union-attr]
            self._mmap = None
        with suppress(Exception):
            self._fh.close()

    def __enter__(self) -> FileSource:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def size(self) -> int:
        """File size in bytes."""
        return self._size

    @property
    def path(self) -> str:
        return self._path

    @property
    def is_mapped(self) -> bool:
        return self._mmap is not None

    def read(self, offset: int, length: int) -> bytes:
        """Read the window `offset`..`offset + length`, truncated at end of file.

        Negative `offset` or `length` raises `InvalidOffset`.
        """
        _check_range(offset, length)
        if length == 0 or offset >= self._size:
            return b""

        end = min(self._size, offset + length)
        if self._mmap is not None:
            return bytes(self._mmap[offset:end])  # type: ignore[index]

        self._fh.seek(offset)
        return self._fh.read(end - offset)


class MemorySource:
    """ByteSource over bytes already held in memory."""

    def __init__(self, data: bytes | bytearray | memoryview) -> None:
        self._data = bytes(data)

    @property
    def size(self) -> int:
        return len(self._data)

    def read(self, offset: int, length: int) -> bytes:
        _check_range(offset, length)
        return self._data[offset : offset + length]


def open_source(path: str, *, use_mmap: bool = True) -> FileSource:
    """Open `path` for carving. Any OS-level failure becomes a SourceError."""
    try:
        return FileSource(path, use_mmap=use_mmap)
    except OSError as exc:
        raise SourceError(f"cannot open '{path}': {exc}") from exc
