"""Code-page registry and the decode/encode capabilities the carver uses.

Narrow encodings are looked up by their numeric Windows code-page identifier
and delegated to Python's codec registry. The wide encoding is UTF-16LE read
strictly one code unit per character, so text positions convert to byte
positions by doubling.
"""

from __future__ import annotations

import codecs
from dataclasses import dataclass

from bytecarve.core.errors import ConfigError

REPLACEMENT_CHAR = "\ufffd"

# Identifiers whose Python codec name is not simply "cp<N>".
_CODE_PAGE_NAMES: dict[int, str] = {
    1200: "utf-16-le",
    1201: "utf-16-be",
    10000: "mac-roman",
    10006: "mac-greek",
    10007: "mac-cyrillic",
    10029: "mac-latin2",
    10079: "mac-iceland",
    10081: "mac-turkish",
    12000: "utf-32-le",
    12001: "utf-32-be",
    20127: "ascii",
    20866: "koi8-r",
    20932: "euc-jp",
    21866: "koi8-u",
    28591: "latin-1",
    28592: "iso8859-2",
    28593: "iso8859-3",
    28594: "iso8859-4",
    28595: "iso8859-5",
    28596: "iso8859-6",
    28597: "iso8859-7",
    28598: "iso8859-8",
    28599: "iso8859-9",
    28603: "iso8859-13",
    28605: "iso8859-15",
    50220: "iso2022-jp",
    51932: "euc-jp",
    51949: "euc-kr",
    54936: "gb18030",
    65000: "utf-7",
    65001: "utf-8",
    936: "gbk",
    949: "cp949",
    950: "cp950",
    932: "cp932",
}


@dataclass(frozen=True)
class Codec:
    """Byte <-> text conversion for one encoding.

    ``width`` is the fixed number of bytes per character, or None when the
    encoding does not guarantee one (offsets must then be re-located).
    """

    name: str
    width: int | None = None
    errors: str = "replace"

    def decode(self, data: bytes) -> str:
        return data.decode(self.name, errors=self.errors)

    def encode(self, text: str) -> bytes:
        # Strict on the way back: a character that cannot be re-encoded means
        # the offset cannot be located exactly.
        return text.encode(self.name)


@dataclass(frozen=True)
class WideCodec(Codec):
    """UTF-16LE, exactly one character per 2-byte code unit.

    Surrogate pairs are not combined: lone and paired surrogates both come
    through as surrogate code points. A dangling odd byte becomes a single
    replacement character.
    """

    name: str = "utf-16-le"
    width: int | None = 2
    errors: str = "surrogatepass"

    def decode(self, data: bytes) -> str:
        usable = len(data) - (len(data) % 2)
        # Widen every code unit to a UTF-32LE code point.
        widened = bytearray(usable * 2)
        widened[0::4] = data[0:usable:2]
        widened[1::4] = data[1:usable:2]
        text = bytes(widened).decode("utf-32-le", errors=self.errors)
        if usable != len(data):
            text += REPLACEMENT_CHAR
        return text

    def encode(self, text: str) -> bytes:
        return text.encode(self.name, errors=self.errors)


WIDE = WideCodec()


def code_page_name(identifier: int) -> str:
    """Python codec name for a Windows code-page identifier."""
    name = _CODE_PAGE_NAMES.get(identifier, f"cp{identifier}")
    try:
        return codecs.lookup(name).name
    except LookupError:
        raise ConfigError(
            f"Invalid code page: '{identifier}'. Use a Windows code page identifier such as 1252"
        ) from None


def resolve_code_page(identifier: int) -> Codec:
    """Resolve `identifier` to a narrow Codec, raising ConfigError if unknown."""
    return Codec(name=code_page_name(int(identifier)))
