"""Outline phase 2: task directives and the combined 2A/2B document.

Phase 2 is generated as two tasks: 2A (goal and plot blueprint) and 2B
(tension mechanics and foreshadowing). Both parts, and the headings each one
was still missing, are stored in a single marker-delimited document so a later
run can regenerate or resume only one part.
"""

from __future__ import annotations

import re

from ..models import OutlinePhase2Content, OutlineTarget, OutlineTaskDirective
from .resume_directive import has_resume_directive, strip_resume_directive
from .section_validator import wrap_heading

_TASK_RE = re.compile(r"\[\[OUTLINE_TASK:(2A|2B)\]\]", re.IGNORECASE)
_LABEL_RE = re.compile(r"【([^【】\n]+)】")

PART_2A_MARKER = wrap_heading("Phase 2A")
MISSING_2A_MARKER = wrap_heading("Phase 2A Missing Sections")
PART_2B_MARKER = wrap_heading("Phase 2B")
MISSING_2B_MARKER = wrap_heading("Phase 2B Missing Sections")
STATUS_MARKER = wrap_heading("Phase 2 Status")

NOT_GENERATED = "(not generated yet)"


def _strip_tokens(notes: str) -> str:
    without_task = _TASK_RE.sub("", notes).strip()
    return strip_resume_directive(without_task) or ""


def _extract_section(content: str, marker: str, next_marker: str) -> str:
    start = content.find(marker)
    if start < 0:
        return ""
    body_start = start + len(marker)
    end = content.find(next_marker, body_start)
    return content[body_start:end if end >= 0 else len(content)].strip()


def _extract_labels(text: str) -> list[str]:
    return [label for label in (m.group(1).strip() for m in _LABEL_RE.finditer(text)) if label]


def _render_missing(missing: list[str]) -> str:
    if not missing:
        return "- none"
    return "\n".join(f"- {wrap_heading(label)}" for label in missing)


def build_outline_task_directive(user_notes: str | None, task: OutlineTarget | str) -> str:
    """Append an ``[[OUTLINE_TASK:<task>]]`` token to *user_notes*."""
    task_name = task.value if isinstance(task, OutlineTarget) else str(task).upper()
    token = f"[[OUTLINE_TASK:{task_name}]]"
    notes = (user_notes or "").strip()
    return f"{notes}\n{token}" if notes else token


def parse_outline_task_directive(user_notes: str | None) -> OutlineTaskDirective:
    """Read the target task and resume flag from *user_notes*; last task token wins."""
    if not user_notes or not user_notes.strip():
        return OutlineTaskDirective()

    matches = [m.group(1).upper() for m in _TASK_RE.finditer(user_notes)]
    target = OutlineTarget(matches[-1]) if matches else OutlineTarget.BOTH
    return OutlineTaskDirective(
        target=target,
        user_notes=_strip_tokens(user_notes) or None,
        resume_from_last_output=has_resume_directive(user_notes),
    )


def serialize_outline_phase2_content(
    part_2a: str,
    part_2b: str,
    missing_2a: list[str],
    missing_2b: list[str],
) -> str:
    status = " | ".join([
        "2A: generated" if part_2a.strip() else "2A: not generated",
        "2B: generated" if part_2b.strip() else "2B: not generated",
        "integrity: partial" if (missing_2a or missing_2b) else "integrity: complete",
    ])
    return "\n".join([
        PART_2A_MARKER,
        part_2a.strip() or NOT_GENERATED,
        "",
        MISSING_2A_MARKER,
        _render_missing(missing_2a),
        "",
        PART_2B_MARKER,
        part_2b.strip() or NOT_GENERATED,
        "",
        MISSING_2B_MARKER,
        _render_missing(missing_2b),
        "",
        STATUS_MARKER,
        f"- {status}",
    ])


def parse_outline_phase2_content(content: str) -> OutlinePhase2Content:
    """Inverse of :func:`serialize_outline_phase2_content`.

    Text without both part markers is treated as a legacy single-shot outline.
    """
    trimmed = (content or "").strip()
    if not trimmed:
        return OutlinePhase2Content()
    if PART_2A_MARKER not in trimmed or PART_2B_MARKER not in trimmed:
        return OutlinePhase2Content(structured=False, raw_legacy_content=trimmed)

    part_2a = _extract_section(trimmed, PART_2A_MARKER, MISSING_2A_MARKER)
    part_2b = _extract_section(trimmed, PART_2B_MARKER, MISSING_2B_MARKER)
    return OutlinePhase2Content(
        part_2a="" if part_2a == NOT_GENERATED else part_2a,
        part_2b="" if part_2b == NOT_GENERATED else part_2b,
        missing_2a=_extract_labels(_extract_section(trimmed, MISSING_2A_MARKER, PART_2B_MARKER)),
        missing_2b=_extract_labels(_extract_section(trimmed, MISSING_2B_MARKER, STATUS_MARKER)),
        structured=True,
    )
