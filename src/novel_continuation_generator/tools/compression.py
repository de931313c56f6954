"""Context compression helpers: source sampling and artifact parsing.

Long novels are compressed before analysis. The source is split into
overlapping chunks, an evenly spaced sample is labeled and sent to the
compression tasks, and each task's output is parsed by its bracket heading.
"""

from __future__ import annotations

import math
import re

from ..models import CompressionArtifacts, CompressionMode, CompressionSource
from .section_validator import wrap_heading

DEFAULT_AUTO_THRESHOLD = 20000
DEFAULT_CHUNK_SIZE = 6000
DEFAULT_CHUNK_OVERLAP = 400
DEFAULT_EVIDENCE_SEGMENTS = 10
MIN_SEGMENTS = 4
MAX_SEGMENTS = 16

CHARACTER_CARD_LABELS = ["Character Cards", "角色卡"]
STYLE_GUIDE_LABELS = ["Style Guide", "風格指南"]
OUTLINE_LABELS = ["Compression Outline", "壓縮大綱"]
EVIDENCE_LABELS = ["Evidence Pack", "證據包"]
CONTEXT_LABELS = ["Compressed Context", "最終壓縮上下文", "壓縮上下文"]

_SECTION_MARKER_RE = re.compile(r"【[^】]+】")


def _clamp_positive(value: float, fallback: int) -> int:
    if not isinstance(value, (int, float)) or not math.isfinite(value) or value <= 0:
        return fallback
    return math.floor(value)


def _clamp_segments(value: float) -> int:
    return max(MIN_SEGMENTS, min(MAX_SEGMENTS, _clamp_positive(value, DEFAULT_EVIDENCE_SEGMENTS)))


def extract_compression_section(output: str, labels: list[str]) -> str:
    """Body after the first ``【label】`` found, up to the next heading."""
    for label in labels:
        marker = wrap_heading(label)
        start = output.find(marker)
        if start == -1:
            continue
        tail = output[start + len(marker):]
        m = _SECTION_MARKER_RE.search(tail)
        return (tail[:m.start()] if m else tail).strip()
    return ""


def should_run_compression(mode: CompressionMode | str, source_chars: int, auto_threshold: int) -> bool:
    mode = CompressionMode(mode)
    if mode is CompressionMode.ON:
        return True
    if mode is CompressionMode.OFF:
        return False
    return source_chars > _clamp_positive(auto_threshold, DEFAULT_AUTO_THRESHOLD)


def split_into_chunks(text: str, chunk_size: int, overlap: int) -> list[str]:
    """Split *text* into overlapping windows; blank windows are dropped."""
    size = _clamp_positive(chunk_size, DEFAULT_CHUNK_SIZE)
    safe_overlap = max(0, min(_clamp_positive(overlap, DEFAULT_CHUNK_OVERLAP), size - 1))
    step = max(1, size - safe_overlap)

    chunks: list[str] = []
    index = 0
    while index < len(text):
        end = min(len(text), index + size)
        chunk = text[index:end].strip()
        if chunk:
            chunks.append(chunk)
        if end >= len(text):
            break
        index += step
    return chunks


def select_representative_chunks(chunks: list[str], max_segments: int) -> list[str]:
    """Evenly spaced sample that always keeps the first and last chunk."""
    if len(chunks) <= max_segments:
        return chunks
    count = _clamp_segments(max_segments)
    if len(chunks) <= count:
        return chunks
    step = (len(chunks) - 1) / (count - 1)
    return [chunks[round(i * step)] for i in range(count)]


def build_compression_source(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_CHUNK_OVERLAP,
    max_segments: int = DEFAULT_EVIDENCE_SEGMENTS,
) -> CompressionSource:
    chunks = split_into_chunks(text, chunk_size, overlap)
    sampled = select_representative_chunks(chunks, max_segments)
    source_text = "\n\n---\n\n".join(
        f"{wrap_heading(f'Fragment {i}/{len(sampled)}')}\n{chunk}"
        for i, chunk in enumerate(sampled, 1)
    )
    return CompressionSource(
        source_text=source_text,
        chunk_count=len(chunks),
        sampled_chunk_count=len(sampled),
    )


def build_compressed_context(
    character_cards: str = "",
    style_guide: str = "",
    compression_outline: str = "",
    evidence_pack: str = "",
) -> str:
    """Join the non-empty artifacts under their canonical headings."""
    parts = [
        (CHARACTER_CARD_LABELS[0], character_cards),
        (STYLE_GUIDE_LABELS[0], style_guide),
        (OUTLINE_LABELS[0], compression_outline),
        (EVIDENCE_LABELS[0], evidence_pack),
    ]
    return "\n\n".join(f"{wrap_heading(label)}\n{body.strip()}" for label, body in parts if body.strip())


def parse_compression_artifacts(output: str) -> CompressionArtifacts:
    character_cards = extract_compression_section(output, CHARACTER_CARD_LABELS)
    style_guide = extract_compression_section(output, STYLE_GUIDE_LABELS)
    compression_outline = extract_compression_section(output, OUTLINE_LABELS)
    evidence_pack = extract_compression_section(output, EVIDENCE_LABELS)
    direct = extract_compression_section(output, CONTEXT_LABELS)

    synthesized = build_compressed_context(character_cards, style_guide, compression_outline, evidence_pack)
    return CompressionArtifacts(
        character_cards=character_cards,
        style_guide=style_guide,
        compression_outline=compression_outline,
        evidence_pack=evidence_pack,
        compressed_context=direct or synthesized or output.strip(),
    )
