from __future__ import annotations

from bytecarve.core.errors import DiagnosticKind
from bytecarve.core.filter import filter_hits
from bytecarve.core.hits import Hit


def test_literal_is_case_insensitive() -> None:
    hits = [Hit("forensics"), Hit("unrelated")]
    result = filter_hits(hits, literals=["FOREN"])
    assert result.match_count == 1
    assert [r.text for r in result.reported] == ["forensics"]


def test_no_criteria_reports_everything() -> None:
    hits = [Hit("one"), Hit("two"), Hit("")]
    result = filter_hits(hits)
    assert result.match_count == 2
    assert [str(r) for r in result.reported] == ["one", "two"]


def test_union_counts_each_criterion() -> None:
    hits = [Hit("admin@example.com"), Hit("plain text")]
    result = filter_hits(hits, literals=["admin", "example"], patterns=[r"@\w+\.com"])
    assert result.match_count == 3
    assert [r.criterion for r in result.reported] == ["admin", "example", r"@\w+\.com"]
    assert all(r.text == "admin@example.com" for r in result.reported)


def test_duplicate_criteria_count_once() -> None:
    result = filter_hits([Hit("needle")], literals=["needle", "needle"], patterns=["ee", "ee"])
    assert result.match_count == 2


def test_regex_only_reports_matches() -> None:
    hit = Hit("id=123 and id=456", "A", 0x20)
    result = filter_hits([hit], patterns=[r"\d+"], regex_only=True)
    assert result.match_count == 1
    assert [r.text for r in result.reported] == ["123", "456"]
    assert all(r.approximate and r.offset == 0x20 for r in result.reported)
    assert str(result.reported[0]) == "123\t~0x20 (A)"


def test_regex_only_without_offsets() -> None:
    result = filter_hits([Hit("key: value")], patterns=["value"], regex_only=True)
    assert [str(r) for r in result.reported] == ["value"]


def test_malformed_pattern_is_diagnostic() -> None:
    hits = [Hit("abc"), Hit("xyz")]
    result = filter_hits(hits, patterns=["(unclosed", "xy"])
    assert [r.text for r in result.reported] == ["xyz"]
    assert len(result.diagnostics) == 1
    assert result.diagnostics[0].kind is DiagnosticKind.PATTERN


def test_only_malformed_patterns_report_nothing() -> None:
    result = filter_hits([Hit("abc")], patterns=["[bad"])
    assert result.match_count == 0
    assert result.reported == []


def test_boundary_hit_keeps_prefix() -> None:
    result = filter_hits([Hit("seam text", boundary=True)], literals=["seam"])
    assert str(result.reported[0]) == "  seam text"
