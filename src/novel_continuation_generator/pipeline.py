"""Pipeline — multi-phase orchestration for novel continuation.

Phase 1: COMPRESSION — condense long novels into character cards, style guide,
                       plot outline and evidence pack (skipped for short input)
Phase 2: ANALYSIS    — detailed analysis plus executive summary
Phase 3: OUTLINE     — two-part plan (2A goal + blueprint, 2B tension + foreshadowing)
Phase 4: BREAKDOWN   — overview/rules meta call, then the chapter table in chunks
Phase 5: CHAPTER     — chapter generation, one call per chapter

Every model call streams through a throttled updater to ``callbacks.on_progress``.
Contract-enforced phases go through :func:`generate_with_section_retry`. When the
user notes carry the resume directive, phases with stored output continue that
output instead of regenerating it.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Callable

from .agents.writer import StreamFn, make_agent_stream
from .logging_config import PipelineCallbacks, RichCallbacks
from .models import (
    AnalysisOutputSections,
    CompressionArtifacts,
    OutlinePhase2Content,
    OutlineTarget,
    PipelinePhase,
    PipelineResult,
    ProjectConfig,
    PromptContext,
)
from .prompts import DEFAULT_PROMPTS
from .tools.analysis_output import parse_analysis_output
from .tools.breakdown import (
    build_breakdown_ranges,
    compose_breakdown_content,
    extract_breakdown_meta_sections,
    merge_chunk_outputs,
    normalize_breakdown_chunk_content,
)
from .tools.compression import build_compression_source, parse_compression_artifacts, should_run_compression
from .tools.outline_phase2 import (
    NOT_GENERATED,
    parse_outline_phase2_content,
    parse_outline_task_directive,
    serialize_outline_phase2_content,
)
from .tools.prompt_engine import inject_prompt
from .tools.resume_directive import build_resume_prompt
from .tools.section_contracts import (
    PromptPhaseKey,
    apply_prompt_section_contract,
    phase_key_name,
    validate_prompt_sections,
)
from .tools.section_retry import MissingSectionsError, generate_with_section_retry
from .tools.streaming_throttle import Scheduler, ThrottledUpdater

logger = logging.getLogger(__name__)

_CHAPTER_FILE_RE = re.compile(r"chapter_(\d+)\.md$")

_COMPRESSION_TASKS = [
    PromptPhaseKey.COMPRESSION_ROLE_CARDS,
    PromptPhaseKey.COMPRESSION_STYLE_GUIDE,
    PromptPhaseKey.COMPRESSION_PLOT_LEDGER,
    PromptPhaseKey.COMPRESSION_EVIDENCE_PACK,
]

OUTPUT_FILES = {
    PipelinePhase.COMPRESSION: "compressed_context.md",
    PipelinePhase.ANALYSIS: "analysis.md",
    PipelinePhase.OUTLINE: "outline.md",
    PipelinePhase.BREAKDOWN: "breakdown.md",
}


def _chapter_file(number: int) -> str:
    return f"chapter_{number:02d}.md"


class Pipeline:
    """Workflow controller that drives every phase against one model stream.

    Parameters
    ----------
    config : ProjectConfig
        Loaded project configuration.
    novel_text : str
        The novel to continue.
    stream : StreamFn, optional
        ``(role, prompt) -> async iterator of text deltas``. Defaults to the
        AG2-backed stream built from *config*.
    callbacks : PipelineCallbacks, optional
        Progress reporting; defaults to :class:`RichCallbacks`.
    scheduler, clock
        Passed to the :class:`ThrottledUpdater` of each stream.
    """

    def __init__(
        self,
        config: ProjectConfig,
        novel_text: str = "",
        *,
        stream: StreamFn | None = None,
        callbacks: PipelineCallbacks | None = None,
        scheduler: Scheduler | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.config = config
        self.novel_text = novel_text
        self.callbacks = callbacks or RichCallbacks()
        self._stream = stream
        self._scheduler = scheduler
        self._clock = clock

        directive = parse_outline_task_directive(config.user_notes)
        self.outline_target = directive.target
        self.resume_requested = directive.resume_from_last_output
        self.user_notes = directive.user_notes

        # State
        self.compression: CompressionArtifacts | None = None
        self.compressed_context: str = ""
        self.analysis_raw: str = ""
        self.analysis: AnalysisOutputSections | None = None
        self.outline: str = ""
        self.breakdown: str = ""
        self.chapters: list[str] = []
        self.warnings: list[str] = []

    # -----------------------------------------------------------------------
    # Stream + prompt helpers
    # -----------------------------------------------------------------------

    def _warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)
        self.callbacks.on_warning(message)

    def _get_stream(self) -> StreamFn:
        if self._stream is None:
            self._stream = make_agent_stream(self.config)
        return self._stream

    async def _stream_prompt(self, phase: PipelinePhase, role: str, prompt: str) -> str:
        """Run one model call, pushing accumulated text through the throttle."""
        stream = self._get_stream()
        content = ""
        updater = ThrottledUpdater(
            self.config.stream_update_interval_ms,
            lambda text: self.callbacks.on_progress(phase.value, text),
            scheduler=self._scheduler,
            clock=self._clock,
        )
        with updater:
            async for delta in stream(role, prompt):
                content += delta
                updater.push(content)
        return content

    async def _generate(self, phase: PipelinePhase, role: str, key: PromptPhaseKey, prompt: str) -> str:
        """Generate with section-contract retry for enforced keys."""

        async def attempt(current_prompt: str, attempt_no: int, missing: list[str]) -> str:
            if attempt_no > 1:
                self.callbacks.on_section_retry(phase_key_name(key), attempt_no, missing)
            return await self._stream_prompt(phase, role, current_prompt)

        result = await generate_with_section_retry(
            prompt, key, attempt, max_attempts=self.config.section_retry_max_attempts,
        )
        return result.content

    async def _continue_output(self, phase: PipelinePhase, role: str, prompt: str, existing: str) -> str:
        """Continue a truncated *existing* output without repeating it."""
        logger.info("[%s] resuming from %d stored chars", phase.value, len(existing))
        addition = await self._stream_prompt(phase, role, build_resume_prompt(prompt, existing))
        return existing + addition

    @property
    def uses_compressed_context(self) -> bool:
        return bool(self.compressed_context.strip())

    def _pick(self, raw: PromptPhaseKey, compressed: PromptPhaseKey) -> PromptPhaseKey:
        return compressed if self.uses_compressed_context else raw

    def _analysis_for_prompt(self) -> str:
        if self.analysis is None:
            return ""
        return self.analysis.executive_summary or self.analysis.detail

    def _build_prompt(self, key: PromptPhaseKey, **overrides: Any) -> str:
        context = PromptContext(
            original_novel=self.compressed_context if self.uses_compressed_context else self.novel_text,
            analysis=self._analysis_for_prompt() or None,
            outline=self.outline or None,
            breakdown=self.breakdown or None,
            previous_chapters=list(self.chapters),
            user_notes=self.user_notes,
            next_chapter_number=len(self.chapters) + 1,
            target_chapter_count=self.config.target_chapter_count,
        ).model_copy(update=overrides)
        template = apply_prompt_section_contract(DEFAULT_PROMPTS[key], key)
        return inject_prompt(template, context)

    # -----------------------------------------------------------------------
    # Phase 1: Compression
    # -----------------------------------------------------------------------

    async def run_compression(self) -> str:
        """Phase 1: compress long input; returns the compressed context ("" if skipped)."""
        cfg = self.config
        if self.resume_requested and self.compressed_context.strip():
            logger.info("Reusing stored compressed context")
            return self.compressed_context
        if not should_run_compression(cfg.compression_mode, len(self.novel_text), cfg.compression_auto_threshold):
            logger.info("Compression skipped (%d chars, mode=%s)", len(self.novel_text), cfg.compression_mode.value)
            # Later prompts must read the novel, not a context restored from disk.
            self.compression = None
            self.compressed_context = ""
            return ""

        self.callbacks.on_phase_start("COMPRESSION", "Condensing the source novel")
        source = build_compression_source(
            self.novel_text,
            chunk_size=cfg.compression_chunk_size,
            overlap=cfg.compression_chunk_overlap,
            max_segments=cfg.compression_max_segments,
        )
        logger.info("Compression source: %d/%d chunks sampled", source.sampled_chunk_count, source.chunk_count)

        outputs: list[str] = []
        for key in _COMPRESSION_TASKS:
            prompt = self._build_prompt(key, original_novel=source.source_text, user_notes=None)
            outputs.append(await self._generate(PipelinePhase.COMPRESSION, "compressor", key, prompt))

        self.compression = parse_compression_artifacts("\n\n".join(outputs))
        self.compressed_context = self.compression.compressed_context
        self.callbacks.on_phase_end("COMPRESSION", bool(self.compressed_context))
        return self.compressed_context

    # -----------------------------------------------------------------------
    # Phase 2: Analysis
    # -----------------------------------------------------------------------

    async def run_analysis(self) -> AnalysisOutputSections:
        """Phase 2: analysis with one corrective retry for missing sections."""
        self.callbacks.on_phase_start("ANALYSIS", "Analyzing characters, tension and style")
        key = self._pick(PromptPhaseKey.ANALYSIS_RAW, PromptPhaseKey.ANALYSIS_COMPRESSED)
        prompt = self._build_prompt(key)

        if self.resume_requested and self.analysis_raw.strip():
            self.analysis_raw = await self._continue_output(PipelinePhase.ANALYSIS, "analyst", prompt, self.analysis_raw)
        else:
            self.analysis_raw = await self._generate(PipelinePhase.ANALYSIS, "analyst", key, prompt)

        self.analysis = parse_analysis_output(self.analysis_raw)
        if not self.analysis.tagged:
            self._warn("Analysis output had no detail/summary tags; using it whole")
        self.callbacks.on_phase_end("ANALYSIS", True)
        return self.analysis

    # -----------------------------------------------------------------------
    # Phase 3: Outline (2A + 2B)
    # -----------------------------------------------------------------------

    def _outline_resume_task(self, state: OutlinePhase2Content, tasks: list[OutlineTarget]) -> OutlineTarget | None:
        """The one stored outline part to continue: the first with missing sections, else the last stored."""
        if not self.resume_requested:
            return None
        stored = {
            OutlineTarget.PART_2A: (state.part_2a, state.missing_2a),
            OutlineTarget.PART_2B: (state.part_2b, state.missing_2b),
        }
        candidates = [task for task in tasks if stored[task][0].strip()]
        incomplete = [task for task in candidates if stored[task][1]]
        if incomplete:
            return incomplete[0]
        return candidates[-1] if candidates else None

    async def run_outline(self) -> OutlinePhase2Content:
        """Phase 3: generate the targeted outline parts and store the combined document.

        On resume only one stored part is continued; other stored parts are kept
        as they are and empty ones are generated.
        """
        if self.analysis is None:
            raise RuntimeError("Must run analysis phase first")

        self.callbacks.on_phase_start("OUTLINE", "Planning the continuation")
        state = parse_outline_phase2_content(self.outline)
        if not state.structured and state.raw_legacy_content:
            state = OutlinePhase2Content(part_2a=state.raw_legacy_content)

        tasks = [OutlineTarget.PART_2A, OutlineTarget.PART_2B]
        if self.outline_target is not OutlineTarget.BOTH:
            tasks = [self.outline_target]
        resume_task = self._outline_resume_task(state, tasks)

        for task in tasks:
            if task is OutlineTarget.PART_2A:
                key = self._pick(PromptPhaseKey.OUTLINE_PHASE2A_RAW, PromptPhaseKey.OUTLINE_PHASE2A_COMPRESSED)
                existing = state.part_2a
            else:
                key = self._pick(PromptPhaseKey.OUTLINE_PHASE2B_RAW, PromptPhaseKey.OUTLINE_PHASE2B_COMPRESSED)
                existing = state.part_2b
            prompt = self._build_prompt(key, outline=state.part_2a or NOT_GENERATED)

            if task is resume_task:
                output = await self._continue_output(PipelinePhase.OUTLINE, "outliner", prompt, existing)
            elif resume_task is not None and existing.strip():
                logger.info("Keeping stored outline %s", task.value)
                continue
            else:
                output = await self._stream_prompt(PipelinePhase.OUTLINE, "outliner", prompt)

            missing = validate_prompt_sections(key, output).missing
            if missing:
                self._warn(f"Outline {task.value} missing sections: {', '.join(missing)}")
            if task is OutlineTarget.PART_2A:
                state.part_2a, state.missing_2a = output.strip(), missing
            else:
                state.part_2b, state.missing_2b = output.strip(), missing

        self.outline = serialize_outline_phase2_content(
            state.part_2a, state.part_2b, state.missing_2a, state.missing_2b,
        )
        self.callbacks.on_phase_end("OUTLINE", not (state.missing_2a or state.missing_2b))
        return state

    # -----------------------------------------------------------------------
    # Phase 4: Breakdown
    # -----------------------------------------------------------------------

    async def _generate_lenient(self, phase: PipelinePhase, role: str, key: PromptPhaseKey, prompt: str) -> str:
        """Like :meth:`_generate`, but keeps the last attempt when sections stay missing."""
        try:
            return await self._generate(phase, role, key, prompt)
        except MissingSectionsError as e:
            self._warn(str(e))
            return e.content

    async def run_breakdown(self) -> str:
        """Phase 4: meta call, then one call per chapter chunk; returns the composed document."""
        if not self.outline:
            raise RuntimeError("Must run outline phase first")

        ranges = build_breakdown_ranges(self.config.target_chapter_count, self.config.breakdown_chunk_size)
        self.callbacks.on_phase_start(
            "BREAKDOWN", f"{self.config.target_chapter_count} chapters in {len(ranges)} chunks",
        )

        meta_prompt = self._build_prompt(PromptPhaseKey.BREAKDOWN_META)
        meta_raw = await self._generate_lenient(
            PipelinePhase.BREAKDOWN, "breakdown", PromptPhaseKey.BREAKDOWN_META, meta_prompt,
        )
        meta = extract_breakdown_meta_sections(meta_raw)

        chunk_outputs: list[str] = []
        for index, chapter_range in enumerate(ranges, 1):
            self.callbacks.on_chunk_start(index, len(ranges), chapter_range.start, chapter_range.end)
            chunk_prompt = self._build_prompt(
                PromptPhaseKey.BREAKDOWN_CHUNK,
                chapter_range_start=chapter_range.start,
                chapter_range_end=chapter_range.end,
            )
            chunk_raw = await self._generate_lenient(
                PipelinePhase.BREAKDOWN, "breakdown", PromptPhaseKey.BREAKDOWN_CHUNK, chunk_prompt,
            )
            chunk_outputs.append(normalize_breakdown_chunk_content(chunk_raw))

        self.breakdown = compose_breakdown_content(
            overview=meta.overview or meta_raw.strip(),
            chapter_table=merge_chunk_outputs(chunk_outputs),
            rules=meta.rules,
        )
        self.callbacks.on_phase_end("BREAKDOWN", True)
        return self.breakdown

    # -----------------------------------------------------------------------
    # Phase 5: Chapters
    # -----------------------------------------------------------------------

    def _chapter_key(self) -> PromptPhaseKey:
        if not self.chapters:
            return self._pick(PromptPhaseKey.CHAPTER1_RAW, PromptPhaseKey.CHAPTER1_COMPRESSED)
        return self._pick(PromptPhaseKey.CONTINUATION_RAW, PromptPhaseKey.CONTINUATION_COMPRESSED)

    async def resume_last_chapter(self) -> str:
        """Continue the most recent chapter, which is known to be truncated."""
        if not self.chapters:
            raise RuntimeError("No chapter to resume")
        partial = self.chapters.pop()
        prompt = self._build_prompt(self._chapter_key())
        completed = await self._continue_output(PipelinePhase.CHAPTER, "writer", prompt, partial)
        self.chapters.append(completed)
        return completed

    async def run_chapters(self, count: int | None = None) -> list[str]:
        """Phase 5: write *count* new chapters (default ``config.chapters_to_generate``)."""
        if not self.breakdown:
            raise RuntimeError("Must run breakdown phase first")

        count = self.config.chapters_to_generate if count is None else count
        self.callbacks.on_phase_start("CHAPTER", f"Writing {count} chapter(s)")

        if self.resume_requested and self.chapters:
            await self.resume_last_chapter()
            count = max(0, count - 1)

        for _ in range(count):
            key = self._chapter_key()
            prompt = self._build_prompt(key)
            chapter = await self._generate(PipelinePhase.CHAPTER, "writer", key, prompt)
            self.chapters.append(chapter.strip())
            logger.info("Chapter %d: %d chars", len(self.chapters), len(chapter))

        self.callbacks.on_phase_end("CHAPTER", True)
        return self.chapters

    # -----------------------------------------------------------------------
    # Persistence of phase outputs
    # -----------------------------------------------------------------------

    def save_outputs(self, output_dir: str | Path) -> list[Path]:
        """Write every non-empty phase output to *output_dir*."""
        out = Path(output_dir)
        out.mkdir(parents=True, exist_ok=True)
        contents = {
            OUTPUT_FILES[PipelinePhase.COMPRESSION]: self.compressed_context,
            OUTPUT_FILES[PipelinePhase.ANALYSIS]: self.analysis_raw,
            OUTPUT_FILES[PipelinePhase.OUTLINE]: self.outline,
            OUTPUT_FILES[PipelinePhase.BREAKDOWN]: self.breakdown,
        }
        contents.update({_chapter_file(i): text for i, text in enumerate(self.chapters, 1)})

        written: list[Path] = []
        for name, text in contents.items():
            if text.strip():
                path = out / name
                path.write_text(text, encoding="utf-8")
                written.append(path)
        return written

    def load_outputs(self, output_dir: str | Path) -> None:
        """Restore phase outputs written by :meth:`save_outputs`."""
        out = Path(output_dir)
        if not out.exists():
            return

        def _read(phase: PipelinePhase) -> str:
            path = out / OUTPUT_FILES[phase]
            return path.read_text(encoding="utf-8") if path.exists() else ""

        self.compressed_context = _read(PipelinePhase.COMPRESSION)
        self.analysis_raw = _read(PipelinePhase.ANALYSIS)
        self.analysis = parse_analysis_output(self.analysis_raw) if self.analysis_raw else None
        self.outline = _read(PipelinePhase.OUTLINE)
        self.breakdown = _read(PipelinePhase.BREAKDOWN)
        numbered: list[tuple[int, Path]] = []
        for path in out.glob("chapter_*.md"):
            m = _CHAPTER_FILE_RE.match(path.name)
            if m:
                numbered.append((int(m.group(1)), path))
        self.chapters = [p.read_text(encoding="utf-8") for _, p in sorted(numbered)]

    # -----------------------------------------------------------------------
    # Full run
    # -----------------------------------------------------------------------

    def last_stored_phase(self) -> PipelinePhase | None:
        """Latest phase that already holds output (e.g. restored by :meth:`load_outputs`)."""
        stored = {
            PipelinePhase.COMPRESSION: self.compressed_context,
            PipelinePhase.ANALYSIS: self.analysis_raw,
            PipelinePhase.OUTLINE: self.outline,
            PipelinePhase.BREAKDOWN: self.breakdown,
            PipelinePhase.CHAPTER: "".join(self.chapters),
        }
        last = None
        for phase, text in stored.items():
            if text.strip():
                last = phase
        return last

    async def run(self) -> PipelineResult:
        """Run every phase in order; failures are recorded, not raised.

        On resume, phases before the latest stored one keep their output and
        the latest stored phase continues where it stopped.
        """
        errors: list[str] = []
        phases: list[PipelinePhase] = []
        steps = [
            (PipelinePhase.COMPRESSION, self.run_compression),
            (PipelinePhase.ANALYSIS, self.run_analysis),
            (PipelinePhase.OUTLINE, self.run_outline),
            (PipelinePhase.BREAKDOWN, self.run_breakdown),
            (PipelinePhase.CHAPTER, self.run_chapters),
        ]
        order = [phase for phase, _ in steps]
        resume_phase = self.last_stored_phase() if self.resume_requested else None

        try:
            for phase, step in steps:
                if resume_phase is not None and order.index(phase) < order.index(resume_phase):
                    logger.info("Keeping stored %s output", phase.value)
                else:
                    await step()
                phases.append(phase)

        except Exception as e:
            logger.exception("Pipeline failed")
            self.callbacks.on_error(str(e))
            errors.append(str(e))

        return PipelineResult(
            success=PipelinePhase.CHAPTER in phases,
            compressed_context=self.compressed_context,
            analysis=self.analysis,
            outline=self.outline,
            breakdown=self.breakdown,
            chapters=list(self.chapters),
            errors=errors,
            warnings=list(self.warnings),
            phases_completed=phases,
        )
