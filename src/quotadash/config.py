"""Environment-derived settings for quotadash."""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass

logger = logging.getLogger(__name__)

REFRESH_ENV = "AGENT_STATUS_REFRESH_MS"
LOG_LEVEL_ENV = "QUOTADASH_LOG_LEVEL"

DEFAULT_REFRESH_MS = 60_000
MIN_REFRESH_MS = 5_000  # Floor so providers are not polled too hard
DEFAULT_LOG_LEVEL = "WARNING"


def clamp_refresh_ms(value: int) -> int:
    """Apply the polling floor to a refresh interval in milliseconds."""
    return max(MIN_REFRESH_MS, value)


def parse_refresh_ms(raw: str | None) -> int:
    """Parse a refresh interval, falling back to the default on bad input."""
    if raw is None or not raw.strip():
        return DEFAULT_REFRESH_MS
    try:
        value = int(float(raw.strip()))
    except (ValueError, OverflowError):
        logger.warning("ignoring %s=%r, not a number", REFRESH_ENV, raw)
        return DEFAULT_REFRESH_MS
    return clamp_refresh_ms(value)


@dataclass(slots=True, frozen=True)
class Settings:
    """Runtime settings, read once at startup."""

    refresh_ms: int = DEFAULT_REFRESH_MS
    log_level: str = DEFAULT_LOG_LEVEL

    @property
    def refresh_seconds(self) -> float:
        """Refresh interval in seconds, as textual timers expect."""
        return self.refresh_ms / 1000

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from environment variables."""
        env = os.environ if environ is None else environ
        level = (env.get(LOG_LEVEL_ENV) or DEFAULT_LOG_LEVEL).strip().upper()
        return cls(
            refresh_ms=parse_refresh_ms(env.get(REFRESH_ENV)),
            log_level=level,
        )
