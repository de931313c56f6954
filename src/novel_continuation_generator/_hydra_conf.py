"""Hydra structured config dataclasses.

These mirror the Pydantic ``ProjectConfig`` for Hydra schema validation.
At runtime the Hydra DictConfig is converted to ``ProjectConfig`` via
``cli._to_project_config()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from hydra.core.config_store import ConfigStore


@dataclass
class AzureConf:
    api_key: str = "${oc.env:AZURE_OPENAI_API_KEY,''}"
    api_version: str = "${oc.env:AZURE_OPENAI_API_VERSION,''}"
    endpoint: str = "${oc.env:AZURE_OPENAI_ENDPOINT,''}"


@dataclass
class ModelConf:
    default: str = "gpt-4o"
    compressor: str | None = None
    analyst: str | None = None
    outliner: str | None = None
    writer: str | None = None


@dataclass
class NcgConf:
    # --- Dispatch + CLI-only fields ---
    mode: str = "run"
    verbose: bool = False
    quiet: bool = False
    resume: bool = False
    content_file: str | None = None
    phase_key: str | None = None
    prompt_file: str | None = None

    # --- ProjectConfig fields (1:1 mapping) ---
    project_name: str = "novel-continuation"
    novel_file: str | None = None
    output_dir: str = "output/"
    user_notes: str = ""

    target_chapter_count: int = 10
    chapters_to_generate: int = 1

    compression_mode: str = "auto"
    compression_auto_threshold: int = 20000
    compression_chunk_size: int = 6000
    compression_chunk_overlap: int = 400
    compression_max_segments: int = 10

    breakdown_chunk_size: int = 5
    section_retry_max_attempts: int = 2
    stream_update_interval_ms: int = 180
    network_enabled: bool = True

    azure: AzureConf = field(default_factory=AzureConf)
    models: ModelConf = field(default_factory=ModelConf)

    timeout: int = 120
    seed: int = 42


# Keys present in NcgConf that are NOT part of ProjectConfig.
CLI_ONLY_KEYS = frozenset({
    "mode", "verbose", "quiet", "resume",
    "content_file", "phase_key", "prompt_file",
})


def register_configs() -> None:
    """Register the structured config schema with Hydra's ConfigStore."""
    cs = ConfigStore.instance()
    cs.store(name="ncg_schema", node=NcgConf)
