"""Formatting helpers shared by the bundled providers."""

from datetime import datetime, timezone

# Marker line prefix used when a provider opts out softly or hard-fails.
QUOTA_LABEL = "Quota        "


def bar(percent: float, width: int = 22) -> str:
    """Render a bracketed usage bar for a 0-100 percentage."""
    clamped = max(0.0, min(100.0, percent))
    full = int(clamped / 100 * width + 0.5)
    return "[" + "█" * full + "·" * (width - full) + "]"


def skipped(reason: str) -> str:
    return f"{QUOTA_LABEL}skipped ({reason})"


def unavailable(reason: str) -> str:
    return f"{QUOTA_LABEL}unavailable ({reason})"


def format_duration(seconds: float) -> str:
    """Format a span as '2d 3h', '4h 5m' or '6m'."""
    minutes = max(0, int(seconds // 60))
    days, rest = divmod(minutes, 1440)
    hours, mins = divmod(rest, 60)
    if days > 0:
        return f"{days}d {hours}h"
    if hours > 0:
        return f"{hours}h {mins}m"
    return f"{mins}m"


def format_reset(iso_time: str, now: datetime | None = None) -> str:
    """Time left until an ISO-8601 reset instant."""
    try:
        reset = datetime.fromisoformat(iso_time.replace("Z", "+00:00"))
    except ValueError:
        return "unknown"
    if reset.tzinfo is None:
        reset = reset.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    remaining = (reset - now).total_seconds()
    if remaining <= 0:
        return "now"
    return format_duration(remaining)
