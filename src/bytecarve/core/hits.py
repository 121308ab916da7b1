"""Hits, the deduplicating hit collection, and hit ordering."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from bytecarve.core.config import SortOrder

BOUNDARY_PREFIX = "  "


@dataclass(frozen=True)
class Hit:
    """A reported string.

    Equality is the hit's identity: the trimmed text, whether it came from a
    boundary window, and, when offsets were requested, its tag and offset.
    A boundary discovery of a string also found by the primary pass is
    therefore a separate hit.
    """

    text: str
    encoding_tag: str | None = None
    byte_offset: int | None = None
    boundary: bool = False
    approximate: bool = False

    @property
    def offset_label(self) -> str:
        if self.byte_offset is None:
            return ""
        approx = "~" if self.approximate else ""
        return f"{approx}0x{self.byte_offset:X} ({self.encoding_tag})"

    def __str__(self) -> str:
        prefix = BOUNDARY_PREFIX if self.boundary else ""
        if self.byte_offset is None:
            return f"{prefix}{self.text}"
        return f"{prefix}{self.text}\t{self.offset_label}"


class HitSet:
    """Insertion-idempotent collection of hits.

    Iteration follows first insertion, so a scan's output is deterministic
    even though callers must not rely on any particular order before sorting.
    """

    def __init__(self, hits: Iterable[Hit] = ()) -> None:
        self._hits: dict[Hit, None] = {}
        self.update(hits)

    def add(self, hit: Hit) -> bool:
        """Insert `hit`. Returns False when an identical hit was already present."""
        if hit in self._hits:
            return False
        self._hits[hit] = None
        return True

    def update(self, hits: Iterable[Hit]) -> int:
        """Insert many hits; returns how many were new."""
        return sum(1 for h in hits if self.add(h))

    def __len__(self) -> int:
        return len(self._hits)

    def __iter__(self) -> Iterator[Hit]:
        return iter(self._hits)

    def __contains__(self, hit: object) -> bool:
        return hit in self._hits


def sort_hits(hits: Iterable[Hit], order: SortOrder) -> list[Hit]:
    """Order hits by text (ordinal) or by text length; NONE keeps collection order.

    Length ordering makes no promise about ties.
    """
    items = list(hits)
    if order is SortOrder.LEXICAL:
        items.sort(key=lambda h: h.text)
    elif order is SortOrder.LENGTH:
        items.sort(key=lambda h: len(h.text))
    return items
