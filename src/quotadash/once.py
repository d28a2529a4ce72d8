"""Plain-text rendering for the run-once mode."""

from quotadash.models import Snapshot
from quotadash.status_model import format_clock, health_score, parse_sections, status_label


def render_once(snapshot: Snapshot) -> str:
    """Render a snapshot as a deterministic text report."""
    sections = parse_sections(snapshot.content)
    score = health_score(sections)

    header = " | ".join(
        [
            "Quota Status",
            f"state={snapshot.status.value.upper()}",
            f"updated={format_clock(snapshot.last_updated)}",
            f"health={score}%",
        ]
    )
    summary = "\n".join(f"{section.name}: {status_label(section.status)}" for section in sections)
    body = snapshot.content or snapshot.message

    return "\n".join(part for part in (header, summary, body) if part)
