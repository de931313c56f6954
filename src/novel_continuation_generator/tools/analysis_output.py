"""Split an analysis response into its detail and executive-summary regions."""

from __future__ import annotations

import re

from ..models import AnalysisOutputSections

DETAIL_TAG = "analysis_detail"
SUMMARY_TAG = "executive_summary"


def _tag_re(tag: str) -> re.Pattern[str]:
    return re.compile(rf"<{tag}>(.*?)</{tag}>", re.IGNORECASE | re.DOTALL)


_DETAIL_RE = _tag_re(DETAIL_TAG)
_SUMMARY_RE = _tag_re(SUMMARY_TAG)


def _extract_tagged(raw: str, pattern: re.Pattern[str]) -> str:
    m = pattern.search(raw)
    return m.group(1).strip() if m else ""


def parse_analysis_output(raw: str) -> AnalysisOutputSections:
    """Parse ``<analysis_detail>`` / ``<executive_summary>`` regions.

    Models that ignore the tagging instruction still produce a usable result:
    the whole trimmed response becomes ``detail`` with ``tagged=False``.
    """
    source = (raw or "").strip()
    if not source:
        return AnalysisOutputSections()

    detail = _extract_tagged(source, _DETAIL_RE)
    summary = _extract_tagged(source, _SUMMARY_RE)
    if not detail and not summary:
        return AnalysisOutputSections(detail=source, executive_summary="", tagged=False)

    return AnalysisOutputSections(detail=detail or source, executive_summary=summary, tagged=True)
