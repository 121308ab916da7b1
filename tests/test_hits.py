from __future__ import annotations

from bytecarve.core.config import SortOrder
from bytecarve.core.hits import Hit, HitSet, sort_hits


def test_hitset_deduplicates() -> None:
    hits = HitSet()
    assert hits.add(Hit("alpha"))
    assert not hits.add(Hit("alpha"))
    assert hits.update([Hit("beta"), Hit("alpha"), Hit("beta")]) == 1
    assert len(hits) == 2
    assert [h.text for h in hits] == ["alpha", "beta"]


def test_boundary_hit_is_distinct() -> None:
    hits = HitSet([Hit("seam"), Hit("seam", boundary=True)])
    assert len(hits) == 2
    assert [h.boundary for h in hits] == [False, True]
    assert Hit("seam", boundary=True) in hits


def test_offsets_are_part_of_identity() -> None:
    hits = HitSet([Hit("dup", "A", 0x10), Hit("dup", "A", 0x40), Hit("dup", "U", 0x10)])
    assert len(hits) == 3


def test_str_formats() -> None:
    assert str(Hit("plain")) == "plain"
    assert str(Hit("plain", boundary=True)) == "  plain"
    assert str(Hit("found", "A", 0x1F40)) == "found\t0x1F40 (A)"
    assert str(Hit("found", "U", 255, boundary=True)) == "  found\t0xFF (U)"
    assert str(Hit("near", "A", 16, approximate=True)) == "near\t~0x10 (A)"


def test_sort_lexical_is_ordinal() -> None:
    hits = [Hit("beta"), Hit("Alpha"), Hit("alpha", boundary=True)]
    assert [h.text for h in sort_hits(hits, SortOrder.LEXICAL)] == ["Alpha", "alpha", "beta"]


def test_sort_by_length() -> None:
    hits = [Hit("ccc"), Hit("a" * 10), Hit("bbbbb")]
    assert [len(h.text) for h in sort_hits(hits, SortOrder.LENGTH)] == [3, 5, 10]


def test_sort_none_keeps_order_and_count() -> None:
    hits = [Hit("z"), Hit("y"), Hit("x")]
    for order in SortOrder:
        assert sorted(sort_hits(hits, order), key=lambda h: h.text) == sorted(hits, key=lambda h: h.text)
    assert sort_hits(hits, SortOrder.NONE) == hits
