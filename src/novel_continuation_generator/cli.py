"""CLI entry point using Hydra.

Usage examples:
  ncg novel_file=novel.txt target_chapter_count=20 chapters_to_generate=2
  ncg --config-dir my_novel --config-name config mode=run resume=true
  ncg mode=breakdown_plan target_chapter_count=12 breakdown_chunk_size=5
  ncg mode=validate phase_key=analysisRaw content_file=output/analysis.md
  ncg mode=resume_prompt prompt_file=task.txt content_file=output/chapter_03.md
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Any

import hydra
from omegaconf import DictConfig, OmegaConf

from ._hydra_conf import CLI_ONLY_KEYS, register_configs
from .config import apply_azure_fallbacks
from .logging_config import RichCallbacks, console, setup_logging
from .models import ProjectConfig
from .tools.resume_directive import append_resume_directive, build_resume_prompt

register_configs()

# ---------------------------------------------------------------------------
# Hydra DictConfig → Pydantic ProjectConfig bridge
# ---------------------------------------------------------------------------


def _to_project_config(cfg: DictConfig) -> ProjectConfig:
    """Convert a Hydra *DictConfig* to a Pydantic ``ProjectConfig``.

    CLI-only keys (``mode``, ``verbose``, etc.) are stripped before validation.
    ``resume=true`` is folded into ``user_notes`` as the resume directive.
    Azure credential env-var fallbacks are applied afterwards.
    """
    container: dict[str, Any] = OmegaConf.to_container(cfg, resolve=True)  # type: ignore[assignment]
    resume = bool(container.get("resume", False))
    for key in CLI_ONLY_KEYS:
        container.pop(key, None)
    config = ProjectConfig.model_validate(container)
    if resume:
        config.user_notes = append_resume_directive(config.user_notes)
    return apply_azure_fallbacks(config)


def _read_required(cfg: DictConfig, key: str, mode: str) -> str:
    value = cfg.get(key)
    if not value:
        console.print(f"[red]{key} is required for {mode} mode[/]")
        sys.exit(1)
    path = Path(value)
    if not path.exists():
        console.print(f"[red]File not found: {path}[/]")
        sys.exit(1)
    return path.read_text(encoding="utf-8")


# ---------------------------------------------------------------------------
# Mode handlers
# ---------------------------------------------------------------------------


def _run_mode(cfg: DictConfig) -> None:
    config = _to_project_config(cfg)
    novel_text = _read_required(cfg, "novel_file", "run")

    from .pipeline import Pipeline

    pipeline = Pipeline(config, novel_text, callbacks=RichCallbacks())
    pipeline.load_outputs(config.output_dir)

    console.print("[bold]Starting full pipeline...[/]")
    result = asyncio.run(pipeline.run())
    written = pipeline.save_outputs(config.output_dir)

    if result.success:
        console.print("\n[bold green]Pipeline completed successfully![/]")
        console.print(f"  Output: {config.output_dir}")
        console.print(f"  Chapters: {len(result.chapters)}")
        for warning in result.warnings:
            console.print(f"  [yellow]{warning}[/]")
    else:
        console.print("\n[bold red]Pipeline failed.[/]")
        for err in result.errors:
            console.print(f"  [red]{err}[/]")
        if written:
            console.print(f"  Partial output kept in {config.output_dir}; rerun with resume=true")
        sys.exit(1)


def _breakdown_plan_mode(cfg: DictConfig) -> None:
    from .tools.breakdown import build_breakdown_ranges

    config = _to_project_config(cfg)
    ranges = build_breakdown_ranges(config.target_chapter_count, config.breakdown_chunk_size)
    console.print(f"[bold]Breakdown plan:[/] {config.target_chapter_count} chapters in {len(ranges)} chunks")
    for i, r in enumerate(ranges, 1):
        console.print(f"  Chunk {i}: chapters {r.start}-{r.end} ({r.size})")


def _validate_mode(cfg: DictConfig) -> None:
    from .tools.section_contracts import get_prompt_section_contract, validate_prompt_sections

    phase_key = cfg.get("phase_key")
    if not phase_key:
        console.print("[red]phase_key is required for validate mode[/]")
        sys.exit(1)
    content = _read_required(cfg, "content_file", "validate")

    if get_prompt_section_contract(phase_key) is None:
        console.print(f"[yellow]{phase_key} has no section contract; nothing to check[/]")
        return

    result = validate_prompt_sections(phase_key, content)
    if result.ok:
        console.print(f"[bold green]{phase_key}: all required sections present[/]")
    else:
        console.print(f"[bold red]{phase_key}: missing {len(result.missing)} section(s)[/]")
        for name in result.missing:
            console.print(f"    - {name}")
    if result.found:
        console.print(f"  Found: {', '.join(result.found)}")

    if not result.ok:
        sys.exit(1)


def _resume_prompt_mode(cfg: DictConfig) -> None:
    prompt = _read_required(cfg, "prompt_file", "resume_prompt")
    content = _read_required(cfg, "content_file", "resume_prompt")
    console.print(build_resume_prompt(prompt, content), markup=False, highlight=False)


_MODE_DISPATCH: dict[str, Any] = {
    "run": _run_mode,
    "breakdown_plan": _breakdown_plan_mode,
    "validate": _validate_mode,
    "resume_prompt": _resume_prompt_mode,
}


# ---------------------------------------------------------------------------
# Hydra entry point
# ---------------------------------------------------------------------------


@hydra.main(config_path="conf", config_name="config", version_base=None)
def hydra_entry(cfg: DictConfig) -> None:
    """Hydra-managed CLI entry point."""
    setup_logging(verbose=cfg.get("verbose", False), quiet=cfg.get("quiet", False))

    mode = cfg.get("mode", "run")
    handler = _MODE_DISPATCH.get(mode)
    if handler is None:
        console.print(f"[red]Unknown mode: {mode!r}. Choose from: {', '.join(_MODE_DISPATCH)}[/]")
        sys.exit(1)

    handler(cfg)


def main() -> None:
    """Package entry point (``[project.scripts]`` target)."""
    hydra_entry()  # pylint: disable=no-value-for-parameter
