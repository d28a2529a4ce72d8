"""Parsing, classification and derived metrics over snapshot content."""

import math
import re
from collections.abc import Iterable, Sequence
from datetime import datetime

from quotadash.models import AppStatus, Provider, ProviderSummary, Section, SectionStatus

# Marker strings shared with provider output. Changing any of them breaks
# classification of every provider that emits it.
SECTION_MARKER = "## "
ERROR_PREFIX = "ERROR:"
UNAVAILABLE_MARKER = "unavailable"
SKIPPED_MARKER = "skipped"
IMPLICIT_SECTION = "General"

REMAINING_PATTERN = re.compile(r"\b(\d{1,3})%\s+remaining\b", re.IGNORECASE)

SPARK_CHARS = "▁▂▃▄▅▆▇█"


def round_half_up(value: float) -> int:
    """Round with .5 going up, unlike the built-in banker's rounding."""
    return math.floor(value + 0.5)


def format_clock(value: datetime | None) -> str:
    """Format a timestamp as HH:MM:SS, or 'never'."""
    if value is None:
        return "never"
    return value.strftime("%H:%M:%S")


def classify_section(lines: Iterable[str]) -> SectionStatus:
    """
    Classify a section by its marker lines.

    Priority: any line starting with ERROR: or containing 'unavailable' is an
    error; otherwise any line containing 'skipped' is a warning; otherwise ok.
    Line position does not matter.
    """
    lines = list(lines)
    if any(line.startswith(ERROR_PREFIX) or UNAVAILABLE_MARKER in line for line in lines):
        return SectionStatus.ERROR
    if any(SKIPPED_MARKER in line for line in lines):
        return SectionStatus.WARNING
    return SectionStatus.OK


def parse_sections(content: str) -> list[Section]:
    """Split snapshot content into named, classified sections."""
    if not content.strip():
        return []

    groups: list[tuple[str, list[str]]] = []
    active: list[str] | None = None

    for line in content.split("\n"):
        if line.startswith(SECTION_MARKER):
            active = []
            groups.append((line[len(SECTION_MARKER):].strip(), active))
            continue

        if active is None:
            active = []
            groups.append((IMPLICIT_SECTION, active))

        # Blank lines are kept; the detail pane scrolls by line count.
        active.append(line)

    return [
        Section(name=name, lines=tuple(lines), status=classify_section(lines))
        for name, lines in groups
    ]


def health_score(sections: Sequence[Section]) -> int:
    """Reduce sections to a 0-100 score: ok counts 1, warning 0.5, error 0."""
    if not sections:
        return 0
    points = 0.0
    for section in sections:
        if section.status is SectionStatus.OK:
            points += 1
        elif section.status is SectionStatus.WARNING:
            points += 0.5
    return round_half_up(points / len(sections) * 100)


def get_provider_section(sections: Sequence[Section], label: str) -> Section | None:
    """Find the first section named after a provider label, ignoring case."""
    needle = label.lower()
    for section in sections:
        if section.name.lower() == needle:
            return section
    return None


def extract_remaining_percents(section: Section | None) -> list[int]:
    """Collect the first '<n>% remaining' value of every line, clamped to 0-100."""
    if section is None:
        return []

    values: list[int] = []
    for line in section.lines:
        match = REMAINING_PATTERN.search(line)
        if match:
            values.append(max(0, min(100, int(match.group(1)))))
    return values


def average_remaining(section: Section | None) -> int | None:
    """Rounded mean of the remaining percentages, or None when there are none."""
    points = extract_remaining_percents(section)
    if not points:
        return None
    return round_half_up(sum(points) / len(points))


def build_provider_summaries(
    providers: Sequence[Provider], sections: Sequence[Section]
) -> list[ProviderSummary]:
    """Join the provider registry with parsed sections, in registry order."""
    summaries = []
    for provider in providers:
        section = get_provider_section(sections, provider.label)
        summaries.append(
            ProviderSummary(
                provider=provider,
                section=section,
                avg_remaining=average_remaining(section),
            )
        )
    return summaries


def sparkline(points: Sequence[int], width: int = 28) -> str:
    """Render the trailing health samples as a block-character sparkline."""
    if width <= 0:
        return ""
    if not points:
        return "·" * width

    tail = list(points[-width:])
    padded = [0] * (width - len(tail)) + tail
    top = len(SPARK_CHARS) - 1
    return "".join(
        SPARK_CHARS[max(0, min(top, round_half_up(value / 100 * top)))] for value in padded
    )


def health_style(score: int) -> str:
    """Rich style name for a health score."""
    if score >= 80:
        return "green"
    if score >= 55:
        return "yellow"
    return "red"


def status_style(status: SectionStatus | None) -> str:
    """Rich style name for a section status."""
    if status is SectionStatus.OK:
        return "green"
    if status is SectionStatus.WARNING:
        return "yellow"
    if status is SectionStatus.ERROR:
        return "red"
    return "dim"


def status_dot(status: SectionStatus | None) -> str:
    if status is SectionStatus.WARNING:
        return "◐"
    if status is None:
        return "○"
    return "●"


def status_label(status: SectionStatus | None) -> str:
    if status is SectionStatus.OK:
        return "LIVE"
    if status is SectionStatus.WARNING:
        return "PARTIAL"
    if status is SectionStatus.ERROR:
        return "ISSUE"
    return "IDLE"


def app_status_label(status: AppStatus) -> str:
    labels = {
        AppStatus.IDLE: "IDLE",
        AppStatus.LOADING: "SYNCING",
        AppStatus.OK: "LIVE",
        AppStatus.ERROR: "ISSUE",
    }
    return labels[status]


def app_status_style(status: AppStatus) -> str:
    styles = {
        AppStatus.IDLE: "dim",
        AppStatus.LOADING: "yellow",
        AppStatus.OK: "green",
        AppStatus.ERROR: "red",
    }
    return styles[status]
