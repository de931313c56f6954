"""Placeholder substitution for prompt templates."""

from __future__ import annotations

from ..models import PromptContext
from .section_validator import wrap_heading

NO_CHAPTERS_YET = "No chapters have been generated yet."
USER_DIRECTION_LABEL = wrap_heading("Additional User Direction")


def inject_prompt(template: str, context: PromptContext) -> str:
    """Replace ``{{PLACEHOLDER}}`` tokens in *template* with *context* values.

    Placeholders whose value is missing are left in place, except the
    chapter list and user-direction slots, which always resolve. User notes
    given to a template without direction slots are inserted before the last
    ``---`` separator, or appended when there is none.
    """
    result = template
    replacements = {
        "{{NOVEL_TEXT}}": context.original_novel,
        "{{ANALYSIS_RESULT}}": context.analysis,
        "{{OUTLINE_RESULT}}": context.outline,
        "{{CHAPTER_BREAKDOWN}}": context.breakdown,
    }
    for token, value in replacements.items():
        if value:
            result = result.replace(token, value)

    numbers = {
        "{{NEXT_CHAPTER_NUMBER}}": context.next_chapter_number,
        "{{TARGET_CHAPTER_COUNT}}": context.target_chapter_count,
        "{{CHAPTER_RANGE_START}}": context.chapter_range_start,
        "{{CHAPTER_RANGE_END}}": context.chapter_range_end,
    }
    for token, number in numbers.items():
        if number is not None:
            result = result.replace(token, str(number))

    if context.previous_chapters:
        result = result.replace("{{GENERATED_CHAPTERS}}", "\n\n---\n\n".join(context.previous_chapters))
    else:
        result = result.replace("{{GENERATED_CHAPTERS}}", NO_CHAPTERS_YET)

    notes = context.user_notes
    if not notes:
        result = result.replace("{{USER_DIRECTION_SECTION}}", "")
        return result.replace("{{USER_DIRECTION_REQUIREMENT}}", "")

    has_slots = "{{USER_DIRECTION_SECTION}}" in template or "{{USER_DIRECTION_REQUIREMENT}}" in template
    if has_slots:
        result = result.replace("{{USER_DIRECTION_SECTION}}", f"**User story direction:**\n{notes}")
        return result.replace(
            "{{USER_DIRECTION_REQUIREMENT}}",
            "- Pay close attention to the user's direction and weave it naturally into the plot",
        )

    injection = f"\n\n{USER_DIRECTION_LABEL}\n{notes}\n\n"
    split_index = result.rfind("---")
    if split_index != -1:
        return result[:split_index] + injection + result[split_index:]
    return result + injection.rstrip()
