"""Tests for tools/breakdown.py — chunk ranges and the breakdown document."""

from __future__ import annotations

import pytest

from novel_continuation_generator.tools.breakdown import (
    OVERVIEW_HEADING,
    OVERVIEW_PLACEHOLDER,
    RULES_HEADING,
    RULES_PLACEHOLDER,
    TABLE_HEADING,
    TABLE_PLACEHOLDER,
    build_breakdown_ranges,
    compose_breakdown_content,
    extract_breakdown_meta_sections,
    merge_chunk_outputs,
    normalize_breakdown_chunk_content,
)
from novel_continuation_generator.tools.section_contracts import PromptPhaseKey, validate_prompt_sections


def _pairs(ranges):
    return [(r.start, r.end) for r in ranges]


class TestBuildBreakdownRanges:
    def test_uneven_split(self):
        assert _pairs(build_breakdown_ranges(12, 5)) == [(1, 5), (6, 10), (11, 12)]

    def test_exact_split(self):
        assert _pairs(build_breakdown_ranges(10, 5)) == [(1, 5), (6, 10)]

    def test_default_chunk_size(self):
        assert _pairs(build_breakdown_ranges(7)) == [(1, 5), (6, 7)]

    def test_chunk_larger_than_count(self):
        assert _pairs(build_breakdown_ranges(3, 10)) == [(1, 3)]

    @pytest.mark.parametrize("count", [0, -4, 0.5])
    def test_count_clamped_to_one(self, count):
        assert _pairs(build_breakdown_ranges(count, 5)) == [(1, 1)]

    def test_chunk_size_clamped_to_one(self):
        assert _pairs(build_breakdown_ranges(3, 0)) == [(1, 1), (2, 2), (3, 3)]

    def test_fractional_inputs_floored(self):
        assert _pairs(build_breakdown_ranges(7.9, 2.5)) == [(1, 2), (3, 4), (5, 6), (7, 7)]

    def test_ranges_cover_every_chapter_once(self):
        ranges = build_breakdown_ranges(23, 4)
        chapters = [c for r in ranges for c in range(r.start, r.end + 1)]
        assert chapters == list(range(1, 24))
        assert all(r.size <= 4 for r in ranges)


class TestExtractBreakdownMetaSections:
    def test_overview_and_rules(self):
        content = f"{OVERVIEW_HEADING}\n12 chapters, slow build\n\n{RULES_HEADING}\nNo repeated storms"
        meta = extract_breakdown_meta_sections(content)
        assert meta.overview == "12 chapters, slow build"
        assert meta.rules == "No repeated storms"

    def test_table_between_sections_is_excluded(self):
        content = (
            f"{OVERVIEW_HEADING}\noverview\n{TABLE_HEADING}\n| 1 | arrival |\n"
            f"{RULES_HEADING}\nrules\n{TABLE_HEADING}\nstray"
        )
        meta = extract_breakdown_meta_sections(content)
        assert meta.overview == "overview"
        assert meta.rules == "rules"

    def test_missing_headings_give_empty_strings(self):
        meta = extract_breakdown_meta_sections("just some prose")
        assert meta.overview == ""
        assert meta.rules == ""

    def test_chinese_headings_accepted_by_contract_are_extracted(self):
        content = "【章節框架總覽】\n10 chapters\n\n【逐章章節表】\n| 1 |\n\n【張力升級與去重守則】\nno repeats"
        assert validate_prompt_sections(PromptPhaseKey.BREAKDOWN_META, content).ok
        meta = extract_breakdown_meta_sections(content)
        assert meta.overview == "10 chapters"
        assert meta.rules == "no repeats"

    def test_heading_spacing_and_case_ignored(self):
        meta = extract_breakdown_meta_sections("【 chapter framework  overview 】\nslow build")
        assert meta.overview == "slow build"


class TestChunkContent:
    def test_strips_echoed_table_heading(self):
        assert normalize_breakdown_chunk_content(f"  {TABLE_HEADING}\n| 6 | storm |\n") == "| 6 | storm |"

    def test_strips_echoed_chinese_table_heading(self):
        assert normalize_breakdown_chunk_content("【逐章章節表】\nch1 arrival") == "ch1 arrival"

    def test_table_heading_later_in_chunk_is_kept(self):
        chunk = f"| 6 | storm |\n{TABLE_HEADING}\n| 7 | calm |"
        assert normalize_breakdown_chunk_content(chunk) == chunk

    def test_leaves_other_content(self):
        assert normalize_breakdown_chunk_content("  | 6 | storm |  ") == "| 6 | storm |"

    def test_merge_skips_blank_chunks(self):
        assert merge_chunk_outputs(["| 1 |", "  ", "| 2 |"]) == "| 1 |\n\n| 2 |"


class TestComposeBreakdownContent:
    def test_heading_order(self):
        doc = compose_breakdown_content("o", "t", "r")
        assert doc.index(OVERVIEW_HEADING) < doc.index(TABLE_HEADING) < doc.index(RULES_HEADING)
        assert doc == f"{OVERVIEW_HEADING}\no\n\n{TABLE_HEADING}\nt\n\n{RULES_HEADING}\nr"

    def test_placeholders_for_empty_fields(self):
        doc = compose_breakdown_content("", "  ", "")
        assert OVERVIEW_PLACEHOLDER in doc
        assert TABLE_PLACEHOLDER in doc
        assert RULES_PLACEHOLDER in doc

    def test_chinese_chunk_composes_with_three_headings(self):
        table = normalize_breakdown_chunk_content("【逐章章節表】\n| 1 | arrival |")
        doc = compose_breakdown_content("o", table, "r")
        assert doc.count("【") == 3

    def test_round_trip_through_meta_extraction(self):
        doc = compose_breakdown_content("overview", "| 1 |", "rules")
        meta = extract_breakdown_meta_sections(doc)
        assert meta.overview == "overview"
        assert meta.rules == "rules"
