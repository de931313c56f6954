"""Resume directive: marks stored output as truncated so the next run continues it."""

from __future__ import annotations

import re

from .section_validator import wrap_heading

RESUME_DIRECTIVE = "[[RESUME_LAST_OUTPUT]]"

_RESUME_RE = re.compile(re.escape(RESUME_DIRECTIVE), re.IGNORECASE)

ORIGINAL_TASK_LABEL = wrap_heading("Original Task")
EXISTING_OUTPUT_LABEL = wrap_heading("Already Output (Do Not Repeat)")


def has_resume_directive(value: str | None) -> bool:
    if not value:
        return False
    return _RESUME_RE.search(value) is not None


def strip_resume_directive(value: str | None) -> str | None:
    """Remove every directive token; ``None`` if nothing else is left."""
    if not value:
        return None
    stripped = _RESUME_RE.sub("", value).strip()
    return stripped or None


def append_resume_directive(value: str | None) -> str:
    """Append the directive on its own line, keeping exactly one occurrence."""
    normalized = strip_resume_directive(value)
    if normalized:
        return f"{normalized}\n{RESUME_DIRECTIVE}"
    return RESUME_DIRECTIVE


def build_resume_prompt(original_task: str, existing_output: str) -> str:
    """Prompt asking the model to continue a cut-off reply without repeating it."""
    return "\n".join([
        "Your previous reply was cut off by the output length limit or an interrupted run.",
        "Follow these rules strictly:",
        "1. Output only content that has not been output yet.",
        "2. Do not repeat, rewrite, summarize or reorder any existing content.",
        "3. Continue naturally from the current ending, keeping the same format and paragraph structure.",
        "4. Do not add a preamble, explanation or closing remark.",
        "",
        ORIGINAL_TASK_LABEL,
        original_task,
        "",
        EXISTING_OUTPUT_LABEL,
        existing_output,
        "",
        "Output the continuation directly.",
    ])
