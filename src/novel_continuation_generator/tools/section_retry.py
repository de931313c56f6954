"""Bounded retry-with-feedback for contract-enforced generation phases."""

from __future__ import annotations

import logging
import math
from typing import Awaitable, Callable

from ..models import SectionRetryResult
from .section_contracts import (
    PromptPhaseKey,
    append_missing_sections_retry_instruction,
    format_heading_list,
    phase_key_name,
    should_enforce_prompt_sections,
    validate_prompt_sections,
)

logger = logging.getLogger(__name__)

# (prompt, attempt index starting at 1, headings missing from the previous attempt)
GenerateFn = Callable[[str, int, list[str]], Awaitable[str]]


class MissingSectionsError(RuntimeError):
    """Raised when every allowed attempt still lacks required headings."""

    def __init__(self, phase_key: PromptPhaseKey | str, missing: list[str], content: str = "") -> None:
        self.phase_key = phase_key_name(phase_key)
        self.missing = list(missing)
        self.content = content
        super().__init__(
            f"Missing required sections for {self.phase_key}: {format_heading_list(self.missing)}"
        )


async def generate_with_section_retry(
    prompt: str,
    phase_key: PromptPhaseKey | str,
    generate: GenerateFn,
    max_attempts: int = 2,
) -> SectionRetryResult:
    """Call *generate* until its output satisfies the phase section contract.

    Exempt phases are generated once without validation. Enforced phases get at
    most ``max(1, floor(max_attempts))`` sequential attempts; every retry is
    built from the original *prompt* plus an instruction naming the headings
    the previous attempt dropped.

    Raises
    ------
    MissingSectionsError
        If the final allowed attempt still misses required headings.
    """
    if not should_enforce_prompt_sections(phase_key):
        content = await generate(prompt, 1, [])
        return SectionRetryResult(content=content, attempts=1)

    total_attempts = max(1, math.floor(max_attempts))
    current_prompt = prompt
    previous_missing: list[str] = []

    for attempt in range(1, total_attempts + 1):
        content = await generate(current_prompt, attempt, previous_missing)
        validation = validate_prompt_sections(phase_key, content)
        if validation.ok:
            return SectionRetryResult(content=content, attempts=attempt)

        previous_missing = validation.missing
        if attempt >= total_attempts:
            logger.error(
                "[section-retry] %s: attempt %d/%d still missing %s",
                phase_key_name(phase_key), attempt, total_attempts, previous_missing,
            )
            raise MissingSectionsError(phase_key, previous_missing, content)

        logger.warning(
            "[section-retry] %s: attempt %d/%d missing %s, retrying",
            phase_key_name(phase_key), attempt, total_attempts, previous_missing,
        )
        current_prompt = append_missing_sections_retry_instruction(prompt, phase_key, previous_missing)

    # Unreachable: the loop either returns or raises on its last iteration.
    raise MissingSectionsError(phase_key, previous_missing)
