"""Tests for tools/analysis_output.py."""

from __future__ import annotations

from novel_continuation_generator.tools.analysis_output import parse_analysis_output


class TestParseAnalysisOutput:
    def test_both_tags(self):
        raw = (
            "<analysis_detail>\n【Character Motivation Map】\n- Mara wants out\n</analysis_detail>\n"
            "<executive_summary>\n- raise the storm stakes\n</executive_summary>"
        )
        result = parse_analysis_output(raw)
        assert result.tagged is True
        assert result.detail.startswith("【Character Motivation Map】")
        assert result.executive_summary == "- raise the storm stakes"

    def test_tags_are_case_insensitive(self):
        result = parse_analysis_output("<ANALYSIS_DETAIL>d</Analysis_Detail><Executive_Summary>s</EXECUTIVE_SUMMARY>")
        assert (result.detail, result.executive_summary, result.tagged) == ("d", "s", True)

    def test_summary_only_keeps_whole_text_as_detail(self):
        raw = "Preamble\n<executive_summary>s</executive_summary>"
        result = parse_analysis_output(raw)
        assert result.tagged is True
        assert result.detail == raw
        assert result.executive_summary == "s"

    def test_detail_only(self):
        result = parse_analysis_output("<analysis_detail>d</analysis_detail>")
        assert result.detail == "d"
        assert result.executive_summary == ""
        assert result.tagged is True

    def test_untagged_falls_back_to_whole_text(self):
        result = parse_analysis_output("  plain analysis  ")
        assert result.detail == "plain analysis"
        assert result.executive_summary == ""
        assert result.tagged is False

    def test_first_region_wins(self):
        raw = "<executive_summary>one</executive_summary><executive_summary>two</executive_summary>"
        assert parse_analysis_output(raw).executive_summary == "one"

    def test_empty_input(self):
        result = parse_analysis_output("")
        assert result.detail == ""
        assert result.tagged is False
