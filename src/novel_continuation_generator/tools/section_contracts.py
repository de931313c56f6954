"""Static catalog of required output sections per prompt phase.

Phases listed in ``PROMPT_SECTION_CONTRACTS`` are contract-enforced: their
prompts get an explicit section contract appended, their outputs are validated,
and a failed validation triggers a corrective retry. Every other phase key
(chapter writing, continuation, synthesis) is exempt.

Canonical headings are English; the labels used by the Chinese prompt
set are accepted as aliases so either prompt language validates.
"""

from __future__ import annotations

from enum import Enum

from ..models import PromptSectionContract, SectionRequirement, SectionValidationResult
from .breakdown import OVERVIEW_REQUIREMENT, RULES_REQUIREMENT, TABLE_REQUIREMENT
from .section_validator import validate_required_sections, wrap_heading


class PromptPhaseKey(str, Enum):
    COMPRESSION = "compression"
    COMPRESSION_ROLE_CARDS = "compressionRoleCards"
    COMPRESSION_STYLE_GUIDE = "compressionStyleGuide"
    COMPRESSION_PLOT_LEDGER = "compressionPlotLedger"
    COMPRESSION_EVIDENCE_PACK = "compressionEvidencePack"
    COMPRESSION_SYNTHESIS = "compressionSynthesis"
    ANALYSIS_RAW = "analysisRaw"
    ANALYSIS_COMPRESSED = "analysisCompressed"
    OUTLINE_RAW = "outlineRaw"
    OUTLINE_COMPRESSED = "outlineCompressed"
    OUTLINE_PHASE2A_RAW = "outlinePhase2ARaw"
    OUTLINE_PHASE2A_COMPRESSED = "outlinePhase2ACompressed"
    OUTLINE_PHASE2B_RAW = "outlinePhase2BRaw"
    OUTLINE_PHASE2B_COMPRESSED = "outlinePhase2BCompressed"
    BREAKDOWN_META = "breakdownMeta"
    BREAKDOWN_CHUNK = "breakdownChunk"
    CHAPTER1_RAW = "chapter1Raw"
    CHAPTER1_COMPRESSED = "chapter1Compressed"
    CONTINUATION_RAW = "continuationRaw"
    CONTINUATION_COMPRESSED = "continuationCompressed"


CONTRACT_MARKER = wrap_heading("Output Section Contract")
RETRY_MARKER = wrap_heading("Format Correction Retry")
HEADING_SEPARATOR = "、"


def _req(name: str, *aliases: str) -> SectionRequirement:
    return SectionRequirement(name=name, aliases=list(aliases))


# ---------------------------------------------------------------------------
# Requirements
# ---------------------------------------------------------------------------

POWER_AND_TENSION = _req("Power and Tension Mechanics", "權力與張力機制")
OUTLINE_GOAL = _req("Continuation Goal and Length Allocation", "續寫總目標與篇幅配置")
OUTLINE_BLUEPRINT = _req("Plot Blueprint in Three to Four Parts", "三至四段情節藍圖")
OUTLINE_FORESHADOWING = _req("Foreshadowing Payoff and New Setups", "伏筆回收與新埋規劃")

ANALYSIS_REQUIREMENTS = [
    _req("Character Motivation Map", "角色動機地圖"),
    POWER_AND_TENSION,
    _req("Style Anchors (Actionable Rules)", "文風錨點（可執行規則）"),
    _req("Event and Foreshadowing Ledger", "事件與伏筆 ledger"),
    _req("Continuation Escalation Ideas (Safe + Bold)", "續寫升級建議（穩定 + 大膽）"),
    _req("Forbidden List (Avoid Repetition and Drift)", "禁止清單（避免重複與失真）"),
]

OUTLINE_REQUIREMENTS = [OUTLINE_GOAL, OUTLINE_BLUEPRINT, POWER_AND_TENSION, OUTLINE_FORESHADOWING]
OUTLINE_2A_REQUIREMENTS = [OUTLINE_GOAL, OUTLINE_BLUEPRINT]
OUTLINE_2B_REQUIREMENTS = [POWER_AND_TENSION, OUTLINE_FORESHADOWING]

CHARACTER_CARDS = _req("Character Cards", "角色卡")
STYLE_GUIDE = _req("Style Guide", "風格指南")
COMPRESSION_OUTLINE = _req("Compression Outline", "壓縮大綱")
EVIDENCE_PACK = _req("Evidence Pack", "證據包")


# ---------------------------------------------------------------------------
# Example skeletons
# ---------------------------------------------------------------------------

def _skeleton(pairs: list[tuple[SectionRequirement, str]]) -> str:
    blocks = [f"{wrap_heading(req.name)}\n- {hint}" for req, hint in pairs]
    return "\n\n".join(blocks)


_ANALYSIS_EXAMPLE = "\n".join([
    "<analysis_detail>",
    _skeleton([
        (ANALYSIS_REQUIREMENTS[0], "Each core character: desire / limits / triggers / boundaries"),
        (ANALYSIS_REQUIREMENTS[1], "How control and counter-control, delay and release drive the story"),
        (ANALYSIS_REQUIREMENTS[2], "Voice and syntax rules that can be applied directly"),
        (ANALYSIS_REQUIREMENTS[3], "Resolved / unresolved / can be deepened"),
        (ANALYSIS_REQUIREMENTS[4], "Top three things the next chapter should advance"),
        (ANALYSIS_REQUIREMENTS[5], "Character drift and repeated beats to avoid"),
    ]),
    "</analysis_detail>",
    "",
    "<executive_summary>",
    "- 8-12 actionable bullets that drive the outline phase",
    "</executive_summary>",
])

_OUTLINE_EXAMPLE = _skeleton([
    (OUTLINE_GOAL, "Total length target, core theme, pacing principles"),
    (OUTLINE_BLUEPRINT, "Per part: title / goal / shift in character motivation"),
    (POWER_AND_TENSION, "Per part: escalation point, release point, relationship shift"),
    (OUTLINE_FORESHADOWING, "Threads that must pay off and new threads to plant"),
])

_OUTLINE_2A_EXAMPLE = _skeleton([
    (OUTLINE_GOAL, "Total length target, core theme, overall pacing"),
    (OUTLINE_BLUEPRINT, "Per part: title / goal / shift in character motivation"),
])

_OUTLINE_2B_EXAMPLE = _skeleton([
    (POWER_AND_TENSION, "Escalation points / release points / relationship shifts"),
    (OUTLINE_FORESHADOWING, "Payoffs required, new setups allowed, risk notes"),
])


PROMPT_SECTION_CONTRACTS: dict[PromptPhaseKey, PromptSectionContract] = {
    PromptPhaseKey.ANALYSIS_RAW: PromptSectionContract(
        requirements=ANALYSIS_REQUIREMENTS, example=_ANALYSIS_EXAMPLE,
    ),
    PromptPhaseKey.ANALYSIS_COMPRESSED: PromptSectionContract(
        requirements=ANALYSIS_REQUIREMENTS, example=_ANALYSIS_EXAMPLE,
    ),
    PromptPhaseKey.OUTLINE_RAW: PromptSectionContract(
        requirements=OUTLINE_REQUIREMENTS, example=_OUTLINE_EXAMPLE,
    ),
    PromptPhaseKey.OUTLINE_COMPRESSED: PromptSectionContract(
        requirements=OUTLINE_REQUIREMENTS, example=_OUTLINE_EXAMPLE,
    ),
    PromptPhaseKey.OUTLINE_PHASE2A_RAW: PromptSectionContract(
        requirements=OUTLINE_2A_REQUIREMENTS, example=_OUTLINE_2A_EXAMPLE,
    ),
    PromptPhaseKey.OUTLINE_PHASE2A_COMPRESSED: PromptSectionContract(
        requirements=OUTLINE_2A_REQUIREMENTS, example=_OUTLINE_2A_EXAMPLE,
    ),
    PromptPhaseKey.OUTLINE_PHASE2B_RAW: PromptSectionContract(
        requirements=OUTLINE_2B_REQUIREMENTS, example=_OUTLINE_2B_EXAMPLE,
    ),
    PromptPhaseKey.OUTLINE_PHASE2B_COMPRESSED: PromptSectionContract(
        requirements=OUTLINE_2B_REQUIREMENTS, example=_OUTLINE_2B_EXAMPLE,
    ),
    PromptPhaseKey.BREAKDOWN_META: PromptSectionContract(
        requirements=[OVERVIEW_REQUIREMENT, RULES_REQUIREMENT],
        example=(
            f"{wrap_heading(OVERVIEW_REQUIREMENT.name)}\n"
            "- Chapter count, target length range per chapter, overall rhythm\n\n"
            f"{wrap_heading(RULES_REQUIREMENT.name)}\n"
            "- Cross-chapter escalation points and rules against repetition"
        ),
    ),
    PromptPhaseKey.BREAKDOWN_CHUNK: PromptSectionContract(
        requirements=[TABLE_REQUIREMENT],
        example=f"{wrap_heading(TABLE_REQUIREMENT.name)}\n- Only the chapters of this batch",
    ),
    PromptPhaseKey.COMPRESSION_ROLE_CARDS: PromptSectionContract(
        requirements=[CHARACTER_CARDS],
        example=_skeleton([(
            CHARACTER_CARDS,
            "Per character: name/alias, identity, core desire, weakness, relationships, arc, fixed traits",
        )]),
    ),
    PromptPhaseKey.COMPRESSION_STYLE_GUIDE: PromptSectionContract(
        requirements=[STYLE_GUIDE],
        example=_skeleton([(
            STYLE_GUIDE,
            "Point of view, tense, sentence length, dialogue ratio, tension rhythm, styles to avoid",
        )]),
    ),
    PromptPhaseKey.COMPRESSION_PLOT_LEDGER: PromptSectionContract(
        requirements=[COMPRESSION_OUTLINE],
        example=_skeleton([(
            COMPRESSION_OUTLINE,
            "Main and side plot beats, foreshadowing status, what can be cut or merged",
        )]),
    ),
    PromptPhaseKey.COMPRESSION_EVIDENCE_PACK: PromptSectionContract(
        requirements=[EVIDENCE_PACK],
        example=_skeleton([(
            EVIDENCE_PACK,
            "Key scene excerpts + their function + reusable elements",
        )]),
    ),
}


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

def phase_key_name(key: PromptPhaseKey | str) -> str:
    return key.value if isinstance(key, PromptPhaseKey) else str(key)


def get_prompt_section_contract(key: PromptPhaseKey | str) -> PromptSectionContract | None:
    """Return the contract for *key*, or ``None`` if the phase is exempt."""
    return PROMPT_SECTION_CONTRACTS.get(key)  # type: ignore[call-overload]


def should_enforce_prompt_sections(key: PromptPhaseKey | str) -> bool:
    return get_prompt_section_contract(key) is not None


def format_heading_list(names: list[str]) -> str:
    return HEADING_SEPARATOR.join(wrap_heading(n) for n in names)


def _format_requirements(requirements: list[SectionRequirement]) -> str:
    return format_heading_list([r.name for r in requirements])


def validate_prompt_sections(key: PromptPhaseKey | str, content: str) -> SectionValidationResult:
    """Validate *content* against the phase contract; exempt phases always pass."""
    contract = get_prompt_section_contract(key)
    if contract is None:
        return SectionValidationResult(ok=True, missing=[], found=[])
    return validate_required_sections(content, contract.requirements)


# ---------------------------------------------------------------------------
# Prompt decoration
# ---------------------------------------------------------------------------

def apply_prompt_section_contract(template: str, key: PromptPhaseKey | str) -> str:
    """Append the output section contract block to *template*.

    Returns *template* unchanged for exempt phases or when the block is
    already present.
    """
    contract = get_prompt_section_contract(key)
    if contract is None or CONTRACT_MARKER in template:
        return template

    return "\n".join([
        template.rstrip(),
        "",
        CONTRACT_MARKER,
        f"You must output these section headings and only these: {_format_requirements(contract.requirements)}.",
        "Rules:",
        "- Heading names must match exactly; do not rename or omit any of them.",
        "- Every section needs substantive content, never just blank lines.",
        "- Do not output JSON, code fences, a preamble or a closing remark.",
        "Example skeleton:",
        contract.example,
    ])


def append_missing_sections_retry_instruction(
    prompt: str,
    key: PromptPhaseKey | str,
    missing_sections: list[str],
) -> str:
    """Append a corrective instruction naming the headings the last attempt dropped."""
    contract = get_prompt_section_contract(key)
    if contract is None or not missing_sections:
        return prompt

    return "\n".join([
        prompt.rstrip(),
        "",
        RETRY_MARKER,
        f"The previous attempt was missing these sections: {format_heading_list(missing_sections)}.",
        f"Rewrite the complete output and make sure it contains: {_format_requirements(contract.requirements)}.",
        "Output the final content directly, without explanation.",
    ])
