"""
Chart Timing Engine - Section Splitter & Line Grammar Tests

Covers:
- Splitting text into sections, excluding braces and blank lines
- Dropping sections that are too short to hold content
- Duplicate section titles
- The KEY = VALUE and TICK = REST grammars and their recovery behaviour
- Stable sorting of tick lines
"""

from chart_timing.services.sections import (
    ChartLine,
    parse_and_sort_tick_lines,
    parse_common_line,
    parse_tick_line,
    split_sections,
)
from tests.conftest import SAMPLE_CHART_VALID, chart_lines


class TestSplitSections:
    """Test split_sections()."""

    def test_sample_chart_sections(self, diagnostics):
        sections = split_sections(SAMPLE_CHART_VALID, diagnostics)
        assert list(sections) == [
            "Song",
            "SyncTrack",
            "Events",
            "ExpertSingle",
            "HardSingle",
            "ExpertDrums",
        ]
        assert len(diagnostics) == 0

    def test_body_excludes_braces_and_is_trimmed(self, diagnostics):
        sections = split_sections(SAMPLE_CHART_VALID, diagnostics)
        texts = [line.text for line in sections["SyncTrack"]]
        assert texts == ["0 = TS 4", "0 = B 120000", "768 = B 240000", "1536 = TS 3 3"]

    def test_line_numbers_are_source_lines(self, diagnostics):
        text = "[Song]\n{\n\n  Resolution = 192\n}\n"
        sections = split_sections(text, diagnostics)
        assert sections["Song"] == [ChartLine(4, "Resolution = 192")]

    def test_empty_section_is_dropped(self, diagnostics):
        text = "[Song]\n{\nResolution = 192\n}\n[Empty]\n{\n}\n"
        sections = split_sections(text, diagnostics)
        assert "Empty" not in sections
        assert "Song" in sections
        assert diagnostics.codes() == ["EMPTY_SECTION"]

    def test_trailing_header_is_dropped(self, diagnostics):
        sections = split_sections("[Song]\n{\nResolution = 192\n}\n[Dangling]", diagnostics)
        assert list(sections) == ["Song"]

    def test_duplicate_section_last_wins(self, diagnostics):
        text = "[Song]\n{\nName = a\n}\n[Song]\n{\nName = b\n}\n"
        sections = split_sections(text, diagnostics)
        assert [line.text for line in sections["Song"]] == ["Name = b"]
        assert diagnostics.codes() == ["DUPLICATE_SECTION"]

    def test_crlf_line_endings(self, diagnostics):
        text = "[Song]\r\n{\r\n  Resolution = 192\r\n}\r\n"
        sections = split_sections(text, diagnostics)
        assert [line.text for line in sections["Song"]] == ["Resolution = 192"]

    def test_lines_before_first_header_ignored(self, diagnostics):
        text = "garbage\n[Song]\n{\nResolution = 192\n}\n"
        sections = split_sections(text, diagnostics)
        assert list(sections) == ["Song"]

    def test_no_sections(self, diagnostics):
        assert split_sections("just some text\n", diagnostics) == {}


class TestCommonLine:
    """Test parse_common_line()."""

    def test_key_value(self, diagnostics):
        assert parse_common_line("Resolution = 192", "Song", diagnostics) == (
            "Resolution",
            "192",
        )

    def test_value_may_contain_equals(self, diagnostics):
        assert parse_common_line('Name = "A = B"', "Song", diagnostics) == (
            "Name",
            '"A = B"',
        )

    def test_equals_without_spaces_is_rejected(self, diagnostics):
        assert parse_common_line("Name=foo", "Song", diagnostics, line=7) is None
        (diagnostic,) = list(diagnostics)
        assert diagnostic.code == "BAD_LINE"
        assert diagnostic.line == 7
        assert diagnostic.section == "Song"

    def test_missing_value_is_rejected(self, diagnostics):
        assert parse_common_line("Name = ", "Song", diagnostics) is None
        assert diagnostics.codes() == ["BAD_LINE"]


class TestTickLine:
    """Test parse_tick_line()."""

    def test_tick_and_rest(self, diagnostics):
        assert parse_tick_line("768 = N 0 0", "ExpertSingle", diagnostics) == (
            768,
            "N 0 0",
        )
        assert len(diagnostics) == 0

    def test_negative_tick_is_rejected(self, diagnostics):
        assert parse_tick_line("-5 = N 0 0", "ExpertSingle", diagnostics) is None
        assert diagnostics.codes() == ["BAD_TICK"]

    def test_non_integer_tick_is_rejected(self, diagnostics):
        assert parse_tick_line("12a = N 0 0", "ExpertSingle", diagnostics) is None
        assert parse_tick_line("1.5 = N 0 0", "ExpertSingle", diagnostics) is None
        assert diagnostics.codes() == ["BAD_TICK", "BAD_TICK"]

    def test_unparseable_line_reports_once(self, diagnostics):
        assert parse_tick_line("nonsense", "ExpertSingle", diagnostics) is None
        assert diagnostics.codes() == ["BAD_LINE"]


class TestParseAndSortTickLines:
    """Test parse_and_sort_tick_lines()."""

    def test_sorted_by_tick(self, diagnostics):
        lines = chart_lines("384 = N 2 0", "0 = N 0 0", "192 = N 1 0")
        result = parse_and_sort_tick_lines(lines, "ExpertSingle", diagnostics)
        assert [t.tick for t in result] == [0, 192, 384]

    def test_ties_keep_encounter_order(self, diagnostics):
        lines = chart_lines("192 = N 3 0", "0 = N 0 0", "192 = N 1 0", "192 = N 5 0")
        result = parse_and_sort_tick_lines(lines, "ExpertSingle", diagnostics)
        assert [t.rest for t in result] == ["N 0 0", "N 3 0", "N 1 0", "N 5 0"]

    def test_bad_lines_are_skipped(self, diagnostics):
        lines = chart_lines("0 = N 0 0", "oops", "x = N 1 0", "192 = N 1 0")
        result = parse_and_sort_tick_lines(lines, "ExpertSingle", diagnostics)
        assert [t.tick for t in result] == [0, 192]
        assert diagnostics.codes() == ["BAD_LINE", "BAD_TICK"]

    def test_keeps_source_line_number_and_text(self, diagnostics):
        lines = [ChartLine(42, "96 = E solo")]
        (tick_line,) = parse_and_sort_tick_lines(lines, "ExpertSingle", diagnostics)
        assert tick_line.number == 42
        assert tick_line.text == "96 = E solo"
