"""Pydantic models for the novel continuation generator."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class PipelinePhase(str, Enum):
    COMPRESSION = "compression"
    ANALYSIS = "analysis"
    OUTLINE = "outline"
    BREAKDOWN = "breakdown"
    CHAPTER = "chapter"


class CompressionMode(str, Enum):
    AUTO = "auto"
    ON = "on"
    OFF = "off"


class OutlineTarget(str, Enum):
    PART_2A = "2A"
    PART_2B = "2B"
    BOTH = "both"


# ---------------------------------------------------------------------------
# Section contracts
# ---------------------------------------------------------------------------

class SectionRequirement(BaseModel):
    """A required heading; satisfied by its name or any alias."""
    name: str = Field(..., description="Canonical heading label, without brackets")
    aliases: list[str] = Field(default_factory=list, description="Accepted alternative labels")


class SectionValidationResult(BaseModel):
    ok: bool
    missing: list[str] = Field(default_factory=list, description="Unsatisfied requirement names, catalog order")
    found: list[str] = Field(default_factory=list, description="Extracted headings, first-appearance order")


class PromptSectionContract(BaseModel):
    """Headings a phase must produce plus an example skeleton shown to the model."""
    requirements: list[SectionRequirement]
    example: str = ""


class SectionRetryResult(BaseModel):
    content: str
    attempts: int = Field(..., ge=1)


# ---------------------------------------------------------------------------
# Breakdown / analysis / outline documents
# ---------------------------------------------------------------------------

class BreakdownRange(BaseModel):
    """Inclusive chapter-index window generated as one model call."""
    start: int = Field(..., ge=1)
    end: int = Field(..., ge=1)

    @property
    def size(self) -> int:
        return self.end - self.start + 1


class BreakdownMetaSections(BaseModel):
    overview: str = ""
    rules: str = ""


class AnalysisOutputSections(BaseModel):
    detail: str = ""
    executive_summary: str = ""
    tagged: bool = False


class OutlineTaskDirective(BaseModel):
    target: OutlineTarget = OutlineTarget.BOTH
    user_notes: str | None = None
    resume_from_last_output: bool = False


class OutlinePhase2Content(BaseModel):
    part_2a: str = ""
    part_2b: str = ""
    missing_2a: list[str] = Field(default_factory=list)
    missing_2b: list[str] = Field(default_factory=list)
    structured: bool = True
    raw_legacy_content: str = ""


class CompressionArtifacts(BaseModel):
    character_cards: str = ""
    style_guide: str = ""
    compression_outline: str = ""
    evidence_pack: str = ""
    compressed_context: str = ""


class CompressionSource(BaseModel):
    source_text: str
    chunk_count: int
    sampled_chunk_count: int


class PromptContext(BaseModel):
    """Values substituted into prompt templates."""
    original_novel: str | None = None
    analysis: str | None = None
    outline: str | None = None
    breakdown: str | None = None
    previous_chapters: list[str] = Field(default_factory=list)
    user_notes: str | None = None
    next_chapter_number: int | None = None
    target_chapter_count: int | None = None
    chapter_range_start: int | None = None
    chapter_range_end: int | None = None


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class ModelConfig(BaseModel):
    """LLM model configuration per role."""
    default: str = Field(default="gpt-4o", description="Default model")
    compressor: str | None = Field(default=None)
    analyst: str | None = Field(default=None)
    outliner: str | None = Field(default=None)
    writer: str | None = Field(default=None)


class AzureConfig(BaseModel):
    """Azure OpenAI connection settings."""
    api_key: str = Field(default="", description="Azure OpenAI API key (or ${ENV_VAR})")
    api_version: str = Field(default="", description="API version")
    endpoint: str = Field(default="", description="Azure endpoint URL")


class ProjectConfig(BaseModel):
    """Full project configuration loaded from config.yaml."""
    project_name: str = Field(default="novel-continuation")
    novel_file: str | None = Field(default=None, description="Path to the source novel text")
    output_dir: str = Field(default="output/", description="Output directory")
    user_notes: str = Field(default="", description="Story direction notes, may carry directives")

    # Story shape
    target_chapter_count: int = Field(default=10, ge=1, description="Chapters to plan in the breakdown")
    chapters_to_generate: int = Field(default=1, ge=0, description="Chapters written in a full run")

    # Compression
    compression_mode: CompressionMode = Field(default=CompressionMode.AUTO)
    compression_auto_threshold: int = Field(default=20000, description="Source chars above which auto mode compresses")
    compression_chunk_size: int = Field(default=6000)
    compression_chunk_overlap: int = Field(default=400)
    compression_max_segments: int = Field(default=10)

    # Workflow core
    breakdown_chunk_size: int = Field(default=5, ge=1, description="Chapters per breakdown generation call")
    section_retry_max_attempts: int = Field(default=2, ge=1, description="Attempts per contract-enforced phase")
    stream_update_interval_ms: int = Field(default=180, ge=0, description="Minimum gap between progress updates")
    network_enabled: bool = Field(default=True, description="Allow model calls over the network")

    # Azure OpenAI
    azure: AzureConfig = Field(default_factory=AzureConfig)

    # Models
    models: ModelConfig = Field(default_factory=ModelConfig)

    timeout: int = Field(default=120, description="LLM call timeout in seconds")
    seed: int = Field(default=42, description="LLM seed for reproducibility")


# ---------------------------------------------------------------------------
# Pipeline output
# ---------------------------------------------------------------------------

class PipelineResult(BaseModel):
    """Final result of a pipeline run."""
    success: bool
    compressed_context: str = ""
    analysis: AnalysisOutputSections | None = None
    outline: str = ""
    breakdown: str = ""
    chapters: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    phases_completed: list[PipelinePhase] = Field(default_factory=list)
