"""Tests for section parsing, classification and derived metrics."""

from datetime import datetime

import pytest

from quotadash import status_model
from quotadash.models import AppStatus, Provider, QuerySuccess, Section, SectionStatus
from quotadash.status_model import (
    app_status_label,
    average_remaining,
    build_provider_summaries,
    classify_section,
    extract_remaining_percents,
    format_clock,
    get_provider_section,
    health_score,
    parse_sections,
    round_half_up,
    sparkline,
    status_label,
)


def section(status: SectionStatus, name: str = "x") -> Section:
    return Section(name=name, lines=(), status=status)


async def _noop():
    return QuerySuccess(output="")


class TestMarkers:
    """Marker strings are a compatibility contract with provider output."""

    def test_marker_constants(self):
        assert status_model.SECTION_MARKER == "## "
        assert status_model.ERROR_PREFIX == "ERROR:"
        assert status_model.UNAVAILABLE_MARKER == "unavailable"
        assert status_model.SKIPPED_MARKER == "skipped"
        assert status_model.IMPLICIT_SECTION == "General"


class TestParseSections:
    """Tests for parse_sections."""

    def test_empty_content_yields_no_sections(self):
        assert parse_sections("") == []
        assert parse_sections("  \n\n ") == []

    def test_splits_on_markers(self):
        sections = parse_sections("## Amp\nline 1\n\n## Kimi\nline 2")

        assert [s.name for s in sections] == ["Amp", "Kimi"]
        assert sections[0].lines == ("line 1", "")
        assert sections[1].lines == ("line 2",)

    def test_lines_before_marker_go_to_general(self):
        sections = parse_sections("preamble\n## Amp\nbody")

        assert [s.name for s in sections] == ["General", "Amp"]
        assert sections[0].lines == ("preamble",)

    def test_blank_lines_preserved(self):
        sections = parse_sections("## Amp\n\na\n\n\nb\n")

        assert sections[0].lines == ("", "a", "", "", "b", "")

    def test_section_name_is_stripped(self):
        assert parse_sections("##   Padded  \nx")[0].name == "Padded"
        assert parse_sections("## Padded  \nx")[0].name == "Padded"

    def test_marker_needs_trailing_space(self):
        sections = parse_sections("## Amp\n##nospace\n### sub")

        assert len(sections) == 1
        assert sections[0].lines == ("##nospace", "### sub")

    def test_idempotent(self):
        content = "intro\n## Amp\nERROR: x\n## Kimi\n50% remaining\n\n## Gem\nskipped"

        assert parse_sections(content) == parse_sections(content)

    def test_marker_without_body(self):
        sections = parse_sections("## Empty")

        assert sections == [Section(name="Empty", lines=(), status=SectionStatus.OK)]


class TestClassifySection:
    """Tests for status classification."""

    def test_error_prefix(self):
        assert classify_section(["fine", "ERROR: timeout"]) is SectionStatus.ERROR

    def test_error_prefix_must_start_line(self):
        assert classify_section(["  ERROR: indented"]) is SectionStatus.OK

    def test_unavailable_anywhere(self):
        assert classify_section(["Quota        unavailable (expired)"]) is SectionStatus.ERROR

    def test_error_beats_warning(self):
        assert classify_section(["skipped", "ERROR: x"]) is SectionStatus.ERROR

    def test_skipped_is_warning(self):
        assert classify_section(["Quota        skipped (no token)"]) is SectionStatus.WARNING

    def test_defaults_to_ok(self):
        assert classify_section(["Weekly 80% remaining"]) is SectionStatus.OK
        assert classify_section([]) is SectionStatus.OK

    def test_parsed_sections_are_classified(self):
        sections = parse_sections("## A\nQuota        skipped (no token)\n## B\nERROR: timeout\n## C\nok")

        assert [s.status for s in sections] == [
            SectionStatus.WARNING,
            SectionStatus.ERROR,
            SectionStatus.OK,
        ]


class TestHealthScore:
    """Tests for health_score."""

    def test_no_sections(self):
        assert health_score([]) == 0

    def test_all_ok(self):
        assert health_score([section(SectionStatus.OK)] * 3) == 100

    def test_mixed(self):
        sections = [section(SectionStatus.OK), section(SectionStatus.WARNING), section(SectionStatus.ERROR)]

        assert health_score(sections) == 50

    def test_half_rounds_up(self):
        # 3.5 of 4 points is 87.5
        sections = [section(SectionStatus.OK)] * 3 + [section(SectionStatus.WARNING)]

        assert health_score(sections) == 88

    def test_monotonic_when_status_improves(self):
        others = [section(SectionStatus.OK), section(SectionStatus.ERROR)]
        scores = [
            health_score(others + [section(status)])
            for status in (SectionStatus.ERROR, SectionStatus.WARNING, SectionStatus.OK)
        ]

        assert scores == sorted(scores)
        assert all(0 <= score <= 100 for score in scores)


class TestRemaining:
    """Tests for remaining-percentage extraction."""

    def test_average_of_three(self):
        parsed = parse_sections("## A\nWeekly 80% remaining\nDaily 60% remaining\nRate 40% remaining")[0]

        assert average_remaining(parsed) == 60

    def test_none_without_matches(self):
        parsed = parse_sections("## A\nno numbers here")[0]

        assert average_remaining(parsed) is None
        assert average_remaining(None) is None

    def test_case_insensitive_and_first_match_per_line(self):
        parsed = parse_sections("## A\n50% REMAINING and 10% remaining")[0]

        assert extract_remaining_percents(parsed) == [50]

    def test_clamped_to_100(self):
        parsed = parse_sections("## A\n250% remaining")[0]

        assert extract_remaining_percents(parsed) == [100]

    def test_requires_word_boundary(self):
        parsed = parse_sections("## A\nx1234% remaining\n5%remaining")[0]

        assert extract_remaining_percents(parsed) == []

    def test_average_rounds_half_up(self):
        parsed = parse_sections("## A\n1% remaining\n2% remaining")[0]

        assert average_remaining(parsed) == 2


class TestSummaries:
    """Tests for provider summaries."""

    def test_match_is_case_insensitive(self):
        sections = parse_sections("## COPILOT\n70% remaining")

        assert get_provider_section(sections, "Copilot") is sections[0]

    def test_first_match_wins(self):
        sections = parse_sections("## Amp\nfirst\n## amp\nsecond")

        assert get_provider_section(sections, "AMP").lines == ("first",)

    def test_registry_order_and_missing_sections(self):
        providers = [
            Provider(id="b", label="Beta", query=_noop),
            Provider(id="a", label="Alpha", query=_noop),
            Provider(id="z", label="Zeta", query=_noop),
        ]
        sections = parse_sections("## Alpha\n30% remaining\n## Beta\nnothing")

        summaries = build_provider_summaries(providers, sections)

        assert [s.provider.id for s in summaries] == ["b", "a", "z"]
        assert summaries[0].avg_remaining is None
        assert summaries[1].avg_remaining == 30
        assert summaries[2].section is None
        assert summaries[2].avg_remaining is None


class TestFormatting:
    """Tests for labels and small renderers."""

    def test_format_clock(self):
        assert format_clock(None) == "never"
        assert format_clock(datetime(2026, 1, 1, 9, 5, 3)) == "09:05:03"

    def test_status_labels(self):
        assert status_label(SectionStatus.OK) == "LIVE"
        assert status_label(SectionStatus.WARNING) == "PARTIAL"
        assert status_label(SectionStatus.ERROR) == "ISSUE"
        assert status_label(None) == "IDLE"
        assert app_status_label(AppStatus.LOADING) == "SYNCING"

    def test_sparkline_empty(self):
        assert sparkline([], 5) == "·····"

    def test_sparkline_pads_and_scales(self):
        assert sparkline([100], 3) == "▁▁█"
        assert sparkline([0, 50, 100], 3) == "▁▅█"

    def test_sparkline_keeps_tail(self):
        assert sparkline([0, 0, 100, 100], 2) == "██"

    @pytest.mark.parametrize("value,expected", [(0.5, 1), (1.5, 2), (2.5, 3), (2.4, 2)])
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected
