"""Rich console setup and pipeline progress helpers."""

from __future__ import annotations

import logging
from typing import Protocol

from rich.console import Console
from rich.logging import RichHandler

console = Console()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


def setup_logging(*, verbose: bool = False, quiet: bool = False) -> None:
    """Configure root logger with Rich handler."""
    level = logging.DEBUG if verbose else (logging.ERROR if quiet else logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=verbose)],
        force=True,
    )


# ---------------------------------------------------------------------------
# Pipeline callbacks protocol
# ---------------------------------------------------------------------------


class PipelineCallbacks(Protocol):
    """Protocol for pipeline progress reporting."""

    def on_phase_start(self, phase: str, description: str) -> None: ...
    def on_phase_end(self, phase: str, success: bool) -> None: ...
    def on_chunk_start(self, index: int, total: int, start: int, end: int) -> None: ...
    def on_section_retry(self, phase_key: str, attempt: int, missing: list[str]) -> None: ...
    def on_progress(self, phase: str, text: str) -> None: ...
    def on_warning(self, message: str) -> None: ...
    def on_error(self, message: str) -> None: ...


class RichCallbacks:
    """Rich-based implementation of PipelineCallbacks."""

    def __init__(self, *, preview_chars: int = 80) -> None:
        self.preview_chars = preview_chars

    def on_phase_start(self, phase: str, description: str) -> None:
        console.rule(f"[bold blue]{phase}[/] — {description}")

    def on_phase_end(self, phase: str, success: bool) -> None:
        status = "[green]OK[/]" if success else "[red]FAILED[/]"
        console.print(f"  Phase {phase}: {status}")

    def on_chunk_start(self, index: int, total: int, start: int, end: int) -> None:
        console.print(f"  [dim]Breakdown chunk {index}/{total}:[/] chapters {start}-{end}")

    def on_section_retry(self, phase_key: str, attempt: int, missing: list[str]) -> None:
        console.print(f"  [yellow]{phase_key} attempt {attempt}: missing {', '.join(missing)}[/]")

    def on_progress(self, phase: str, text: str) -> None:
        tail = text[-self.preview_chars:].replace("\n", " ")
        console.print(f"  [dim]{phase} ({len(text)} chars):[/] …{tail}", highlight=False)

    def on_warning(self, message: str) -> None:
        console.print(f"  [yellow]WARNING:[/] {message}")

    def on_error(self, message: str) -> None:
        console.print(f"  [red]ERROR:[/] {message}")
