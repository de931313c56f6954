"""Deterministic tools for contract validation, retries, breakdown and streaming."""

from .analysis_output import parse_analysis_output
from .breakdown import (
    build_breakdown_ranges,
    compose_breakdown_content,
    extract_breakdown_meta_sections,
    normalize_breakdown_chunk_content,
)
from .resume_directive import (
    append_resume_directive,
    build_resume_prompt,
    has_resume_directive,
    strip_resume_directive,
)
from .section_retry import MissingSectionsError, generate_with_section_retry
from .section_validator import extract_headings, validate_required_sections
from .streaming_throttle import ThrottledUpdater, create_throttled_updater

__all__ = [
    "MissingSectionsError",
    "ThrottledUpdater",
    "append_resume_directive",
    "build_breakdown_ranges",
    "build_resume_prompt",
    "compose_breakdown_content",
    "create_throttled_updater",
    "extract_breakdown_meta_sections",
    "extract_headings",
    "generate_with_section_retry",
    "has_resume_directive",
    "normalize_breakdown_chunk_content",
    "parse_analysis_output",
    "strip_resume_directive",
    "validate_required_sections",
]
