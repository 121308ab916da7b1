from __future__ import annotations

from bytecarve.core.carve import Encoding, Match
from bytecarve.core.planner import Window


def find_bytes(haystack: bytes, needle: bytes, start: int = 0) -> int:
    """Find `needle` at or after `start` in `haystack`. Returns the position or -1.

    An empty needle, or one that cannot fit after `start`, is never found.
    """
    if start < 0:
        start = 0
    if not haystack or not needle or start > len(haystack) - len(needle):
        return -1
    return haystack.find(needle, start)


def resolve_offset(
    match: Match, encoding: Encoding, window: Window, raw: bytes
) -> tuple[int, bool]:
    """Map a match's text index to an absolute byte offset in the source.

    Returns (offset, is_approximate). Fixed-width encodings convert directly,
    counting from the aligned start of the decoded text. Otherwise the text
    is re-encoded and located in the window's bytes, starting the search at
    the text index (a character never takes less than one byte). When the
    bytes cannot be found, the text index itself is returned as an
    approximate offset.
    """
    width = encoding.width
    if width is not None:
        return window.start_offset + match.lead_bytes + match.text_index * width, False

    try:
        needle = encoding.codec.encode(match.text)
    except UnicodeError:
        return window.start_offset + match.text_index, True

    pos = find_bytes(raw, needle, match.text_index)
    if pos < 0:
        return window.start_offset + match.text_index, True
    return window.start_offset + pos, False
