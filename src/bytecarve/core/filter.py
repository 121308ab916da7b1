"""Literal and regex filtering of collected hits."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from bytecarve.core.errors import Diagnostic, DiagnosticKind
from bytecarve.core.hits import Hit

logger = logging.getLogger(__name__)

FILTER_FLAGS = re.IGNORECASE | re.VERBOSE


@dataclass(frozen=True)
class ReportedHit:
    """One line of filter output.

    `text` is the hit's text, or only the regex match when reporting
    regex matches alone; in that case `approximate` is True, since the
    offset shown is that of the containing hit.
    """

    text: str
    hit: Hit
    criterion: str | None = None
    approximate: bool = False

    @property
    def offset(self) -> int | None:
        return self.hit.byte_offset

    def __str__(self) -> str:
        if not self.approximate:
            return str(self.hit)
        label = self.hit.offset_label
        if not label:
            return self.text
        return f"{self.text}\t~{label.lstrip('~')}"


@dataclass
class FilterResult:
    reported: list[ReportedHit] = field(default_factory=list)
    match_count: int = 0
    diagnostics: list[Diagnostic] = field(default_factory=list)


def compile_criteria(patterns: Iterable[str]) -> tuple[list[re.Pattern[str]], list[Diagnostic]]:
    """Compile filter regexes, skipping blank or malformed ones."""
    compiled: list[re.Pattern[str]] = []
    diagnostics: list[Diagnostic] = []
    for source in patterns:
        if not source.strip():
            continue
        try:
            compiled.append(re.compile(source, FILTER_FLAGS))
        except re.error as exc:
            message = f"Error setting up regular expression '{source}': {exc}"
            logger.error(message)
            diagnostics.append(Diagnostic(DiagnosticKind.PATTERN, message))
    return compiled, diagnostics


def filter_hits(
    hits: Iterable[Hit],
    literals: Iterable[str] = (),
    patterns: Iterable[str] = (),
    regex_only: bool = False,
) -> FilterResult:
    """Select the hits to report.

    A hit is reported once for every literal it contains (case-insensitive)
    and once for every regex it matches, and `match_count` counts each of
    those. With no usable criteria every non-empty hit is reported once.

    Args:
        hits: Hits in reporting order
        literals: Substrings to look for
        patterns: Regular expressions to look for
        regex_only: Report each regex match instead of the containing hit

    Returns:
        FilterResult with the reported lines, the match count, and a
        diagnostic for every pattern that failed to compile
    """
    needles = [(s, s.casefold()) for s in dict.fromkeys(literals) if s.strip()]
    raw_patterns = list(dict.fromkeys(patterns))
    compiled, diagnostics = compile_criteria(raw_patterns)
    result = FilterResult(diagnostics=diagnostics)
    has_criteria = bool(needles) or any(p.strip() for p in raw_patterns)

    for hit in hits:
        if not hit.text:
            continue

        if not has_criteria:
            result.match_count += 1
            result.reported.append(ReportedHit(hit.text, hit))
            continue

        folded = hit.text.casefold()
        for literal, needle in needles:
            if needle in folded:
                result.match_count += 1
                result.reported.append(ReportedHit(hit.text, hit, literal))

        for regex in compiled:
            if regex.search(hit.text) is None:
                continue
            result.match_count += 1
            if regex_only:
                for m in regex.finditer(hit.text):
                    if not m.group():
                        continue
                    result.reported.append(ReportedHit(m.group(), hit, regex.pattern, approximate=True))
            else:
                result.reported.append(ReportedHit(hit.text, hit, regex.pattern))

    return result
