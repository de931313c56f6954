"""Default prompt templates, one per phase key.

``Raw`` variants receive the full novel text, ``Compressed`` variants receive
the compressed context built in the compression phase. Both are substituted
into ``{{NOVEL_TEXT}}`` by :func:`tools.prompt_engine.inject_prompt`.
"""

from __future__ import annotations

from .tools.section_contracts import PromptPhaseKey

_RAW_SOURCE = "Full text of the novel so far:\n{{NOVEL_TEXT}}"
_COMPRESSED_SOURCE = "Compressed context of the novel so far (character cards, style guide, outline, evidence):\n{{NOVEL_TEXT}}"


def _variants(body: str) -> tuple[str, str]:
    return (
        f"{body}\n\n---\n\n{_RAW_SOURCE}",
        f"{body}\n\n---\n\n{_COMPRESSED_SOURCE}",
    )


_COMPRESSION_INTRO = (
    "You are a long-form fiction compression editor. From the novel fragments below, "
    "build a high-fidelity artifact that a writer can continue the story from.\n"
)

COMPRESSION_ROLE_CARDS = (
    _COMPRESSION_INTRO
    + "Task: write character cards for every character who matters to the plot.\n\n"
    "---\n\n{{NOVEL_TEXT}}"
)
COMPRESSION_STYLE_GUIDE = (
    _COMPRESSION_INTRO
    + "Task: write a style guide a continuation must follow to sound like the same author.\n\n"
    "---\n\n{{NOVEL_TEXT}}"
)
COMPRESSION_PLOT_LEDGER = (
    _COMPRESSION_INTRO
    + "Task: write a compressed plot outline with the state of every foreshadowing thread.\n\n"
    "---\n\n{{NOVEL_TEXT}}"
)
COMPRESSION_EVIDENCE_PACK = (
    _COMPRESSION_INTRO
    + "Task: collect short verbatim excerpts of key scenes and note what each one establishes.\n\n"
    "---\n\n{{NOVEL_TEXT}}"
)

ANALYSIS_RAW, ANALYSIS_COMPRESSED = _variants(
    "You are a senior fiction editor preparing a continuation. Analyze the story in depth: "
    "character motivations, the mechanics of power and tension, the author's style, "
    "open and resolved plot threads, and risks a continuation must avoid.\n"
    "Wrap the detailed analysis in <analysis_detail></analysis_detail> and follow it with an "
    "<executive_summary></executive_summary> of 8-12 actionable bullets.\n"
    "{{USER_DIRECTION_SECTION}}"
)

OUTLINE_RAW, OUTLINE_COMPRESSED = _variants(
    "Using the analysis below, plan the continuation of this novel.\n\n"
    "Analysis:\n{{ANALYSIS_RESULT}}\n"
    "{{USER_DIRECTION_SECTION}}"
)

OUTLINE_PHASE2A_RAW, OUTLINE_PHASE2A_COMPRESSED = _variants(
    "Using the analysis below, write part A of the continuation plan: the overall goal with its "
    "length allocation, and a plot blueprint in three to four parts.\n\n"
    "Analysis:\n{{ANALYSIS_RESULT}}\n"
    "{{USER_DIRECTION_SECTION}}"
)

OUTLINE_PHASE2B_RAW, OUTLINE_PHASE2B_COMPRESSED = _variants(
    "Using the analysis and the plan below, write part B of the continuation plan: how power and "
    "tension escalate part by part, and which foreshadowing threads pay off or get planted.\n\n"
    "Analysis:\n{{ANALYSIS_RESULT}}\n\n"
    "Plan so far:\n{{OUTLINE_RESULT}}\n"
    "{{USER_DIRECTION_SECTION}}"
)

BREAKDOWN_META = (
    "Break the continuation outline below into {{TARGET_CHAPTER_COUNT}} chapters. "
    "In this step do NOT list the chapters; write only the chapter framework overview and the "
    "escalation and de-duplication rules that apply across all chapters.\n\n"
    "Outline:\n{{OUTLINE_RESULT}}\n"
    "{{USER_DIRECTION_SECTION}}"
)

BREAKDOWN_CHUNK = (
    "Break the continuation outline below into {{TARGET_CHAPTER_COUNT}} chapters. "
    "In this step write the chapter-by-chapter table for chapters {{CHAPTER_RANGE_START}} to "
    "{{CHAPTER_RANGE_END}} only. For each chapter give its target length, goal, key beats and "
    "the hook into the next chapter.\n\n"
    "Outline:\n{{OUTLINE_RESULT}}\n"
    "{{USER_DIRECTION_SECTION}}"
)

CHAPTER1_RAW, CHAPTER1_COMPRESSED = _variants(
    "Write chapter {{NEXT_CHAPTER_NUMBER}} of the continuation, following the chapter breakdown "
    "and keeping the original author's voice.\n\n"
    "Chapter breakdown:\n{{CHAPTER_BREAKDOWN}}\n\n"
    "{{USER_DIRECTION_SECTION}}\n{{USER_DIRECTION_REQUIREMENT}}\n"
    "Output only the chapter text."
)

CONTINUATION_RAW, CONTINUATION_COMPRESSED = _variants(
    "Write chapter {{NEXT_CHAPTER_NUMBER}} of the continuation. Follow the chapter breakdown, "
    "pick up exactly where the previous chapter ended and never repeat earlier scenes.\n\n"
    "Chapter breakdown:\n{{CHAPTER_BREAKDOWN}}\n\n"
    "Chapters written so far:\n{{GENERATED_CHAPTERS}}\n\n"
    "{{USER_DIRECTION_SECTION}}\n{{USER_DIRECTION_REQUIREMENT}}\n"
    "Output only the chapter text."
)


DEFAULT_PROMPTS: dict[PromptPhaseKey, str] = {
    PromptPhaseKey.COMPRESSION_ROLE_CARDS: COMPRESSION_ROLE_CARDS,
    PromptPhaseKey.COMPRESSION_STYLE_GUIDE: COMPRESSION_STYLE_GUIDE,
    PromptPhaseKey.COMPRESSION_PLOT_LEDGER: COMPRESSION_PLOT_LEDGER,
    PromptPhaseKey.COMPRESSION_EVIDENCE_PACK: COMPRESSION_EVIDENCE_PACK,
    PromptPhaseKey.ANALYSIS_RAW: ANALYSIS_RAW,
    PromptPhaseKey.ANALYSIS_COMPRESSED: ANALYSIS_COMPRESSED,
    PromptPhaseKey.OUTLINE_RAW: OUTLINE_RAW,
    PromptPhaseKey.OUTLINE_COMPRESSED: OUTLINE_COMPRESSED,
    PromptPhaseKey.OUTLINE_PHASE2A_RAW: OUTLINE_PHASE2A_RAW,
    PromptPhaseKey.OUTLINE_PHASE2A_COMPRESSED: OUTLINE_PHASE2A_COMPRESSED,
    PromptPhaseKey.OUTLINE_PHASE2B_RAW: OUTLINE_PHASE2B_RAW,
    PromptPhaseKey.OUTLINE_PHASE2B_COMPRESSED: OUTLINE_PHASE2B_COMPRESSED,
    PromptPhaseKey.BREAKDOWN_META: BREAKDOWN_META,
    PromptPhaseKey.BREAKDOWN_CHUNK: BREAKDOWN_CHUNK,
    PromptPhaseKey.CHAPTER1_RAW: CHAPTER1_RAW,
    PromptPhaseKey.CHAPTER1_COMPRESSED: CHAPTER1_COMPRESSED,
    PromptPhaseKey.CONTINUATION_RAW: CONTINUATION_RAW,
    PromptPhaseKey.CONTINUATION_COMPRESSED: CONTINUATION_COMPRESSED,
}
