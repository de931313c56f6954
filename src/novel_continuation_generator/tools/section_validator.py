"""Bracket-heading extraction and required-section validation."""

from __future__ import annotations

import re
from typing import Iterable

from ..models import SectionRequirement, SectionValidationResult

HEADING_OPEN = "【"
HEADING_CLOSE = "】"

# Only used through finditer/sub, which keep no match position between calls.
_HEADING_RE = re.compile(r"【\s*([^【】\n]+?)\s*】")
_WHITESPACE_RE = re.compile(r"\s+")


def wrap_heading(label: str) -> str:
    """Return *label* enclosed in heading brackets."""
    return f"{HEADING_OPEN}{label}{HEADING_CLOSE}"


def normalize_heading(value: str) -> str:
    """Identity key for a heading: whitespace removed, lowercased."""
    return _WHITESPACE_RE.sub("", value).strip().lower()


def _to_requirement(item: str | SectionRequirement) -> SectionRequirement:
    if isinstance(item, str):
        return SectionRequirement(name=item)
    return item


def find_heading(content: str, requirement: str | SectionRequirement, start: int = 0) -> re.Match[str] | None:
    """First heading at or after *start* matching the requirement's name or an alias."""
    req = _to_requirement(requirement)
    accepted = {normalize_heading(c) for c in [req.name, *req.aliases]}
    for m in _HEADING_RE.finditer(content or "", start):
        if normalize_heading(m.group(1)) in accepted:
            return m
    return None


def extract_headings(content: str) -> list[str]:
    """Return every heading in *content*, first spelling wins on duplicates."""
    headings: list[str] = []
    seen: set[str] = set()
    for m in _HEADING_RE.finditer(content or ""):
        heading = m.group(1).strip()
        if not heading:
            continue
        key = normalize_heading(heading)
        if key in seen:
            continue
        seen.add(key)
        headings.append(heading)
    return headings


def validate_required_sections(
    content: str,
    requirements: Iterable[str | SectionRequirement],
) -> SectionValidationResult:
    """Check that every requirement appears (by name or alias) as a heading.

    Heading order is irrelevant; ``missing`` follows requirement order.
    """
    resolved = [_to_requirement(r) for r in requirements]
    found = extract_headings(content)
    if not resolved:
        return SectionValidationResult(ok=True, missing=[], found=found)

    normalized_found = {normalize_heading(h) for h in found}
    missing = [
        req.name
        for req in resolved
        if not any(
            normalize_heading(candidate) in normalized_found
            for candidate in [req.name, *req.aliases]
        )
    ]
    return SectionValidationResult(ok=not missing, missing=missing, found=found)
