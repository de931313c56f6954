"""Chapter breakdown: chunk planning plus the three-heading document format.

A breakdown document always has three headings in this order::

    【Chapter Framework Overview】
    【Chapter-by-Chapter Table】
    【Escalation and De-duplication Rules】

The overview and rules come from one "meta" model call; the table is generated
in chunks of a few chapters each and concatenated.
"""

from __future__ import annotations

import math
from typing import Iterable

from ..models import BreakdownMetaSections, BreakdownRange, SectionRequirement
from .section_validator import find_heading, wrap_heading

BREAKDOWN_OVERVIEW_LABEL = "Chapter Framework Overview"
BREAKDOWN_TABLE_LABEL = "Chapter-by-Chapter Table"
BREAKDOWN_RULES_LABEL = "Escalation and De-duplication Rules"

OVERVIEW_HEADING = wrap_heading(BREAKDOWN_OVERVIEW_LABEL)
TABLE_HEADING = wrap_heading(BREAKDOWN_TABLE_LABEL)
RULES_HEADING = wrap_heading(BREAKDOWN_RULES_LABEL)

# Headings match by name or by the Chinese label.
OVERVIEW_REQUIREMENT = SectionRequirement(name=BREAKDOWN_OVERVIEW_LABEL, aliases=["章節框架總覽"])
TABLE_REQUIREMENT = SectionRequirement(name=BREAKDOWN_TABLE_LABEL, aliases=["逐章章節表"])
RULES_REQUIREMENT = SectionRequirement(name=BREAKDOWN_RULES_LABEL, aliases=["張力升級與去重守則"])

OVERVIEW_PLACEHOLDER = "(no chapter overview provided)"
TABLE_PLACEHOLDER = "(no chapter-by-chapter content provided)"
RULES_PLACEHOLDER = "(no escalation or de-duplication rules provided)"

DEFAULT_CHUNK_SIZE = 5


def _extract_section(
    content: str, heading: SectionRequirement, next_headings: list[SectionRequirement],
) -> str:
    """Text after the first *heading*, up to the earliest of *next_headings*."""
    start = find_heading(content, heading)
    if start is None:
        return ""
    ends = [m.start() for m in (find_heading(content, h, start.end()) for h in next_headings) if m is not None]
    body_end = min(ends) if ends else len(content)
    return content[start.end():body_end].strip()


def build_breakdown_ranges(chapter_count: float, chunk_size: float = DEFAULT_CHUNK_SIZE) -> list[BreakdownRange]:
    """Partition chapters ``1..chapter_count`` into windows of *chunk_size*.

    >>> [(r.start, r.end) for r in build_breakdown_ranges(12, 5)]
    [(1, 5), (6, 10), (11, 12)]
    """
    safe_count = max(1, math.floor(chapter_count))
    safe_size = max(1, math.floor(chunk_size))
    return [
        BreakdownRange(start=start, end=min(start + safe_size - 1, safe_count))
        for start in range(1, safe_count + 1, safe_size)
    ]


def extract_breakdown_meta_sections(content: str) -> BreakdownMetaSections:
    """Pull the overview and rules bodies out of a meta-call response."""
    content = content or ""
    return BreakdownMetaSections(
        overview=_extract_section(content, OVERVIEW_REQUIREMENT, [TABLE_REQUIREMENT, RULES_REQUIREMENT]),
        rules=_extract_section(content, RULES_REQUIREMENT, [TABLE_REQUIREMENT]),
    )


def normalize_breakdown_chunk_content(content: str) -> str:
    """Drop a table heading the model echoed at the start of a chunk."""
    trimmed = (content or "").strip()
    leading = find_heading(trimmed, TABLE_REQUIREMENT)
    if leading is not None and leading.start() == 0:
        return trimmed[leading.end():].strip()
    return trimmed


def merge_chunk_outputs(chunks: Iterable[str]) -> str:
    return "\n\n".join(c for c in chunks if c.strip())


def compose_breakdown_content(overview: str, chapter_table: str, rules: str) -> str:
    """Assemble the canonical document; empty fields get a placeholder."""
    return "\n".join([
        OVERVIEW_HEADING,
        overview.strip() or OVERVIEW_PLACEHOLDER,
        "",
        TABLE_HEADING,
        chapter_table.strip() or TABLE_PLACEHOLDER,
        "",
        RULES_HEADING,
        rules.strip() or RULES_PLACEHOLDER,
    ])
