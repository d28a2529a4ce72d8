"""Data models for quotadash."""

from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum


@dataclass(slots=True, frozen=True)
class QuerySuccess:
    """Text payload returned by a provider that answered."""

    output: str

    @property
    def success(self) -> bool:
        return True


@dataclass(slots=True, frozen=True)
class QueryFailure:
    """Error message returned by a provider that could not answer."""

    error: str

    @property
    def success(self) -> bool:
        return False


QueryResult = QuerySuccess | QueryFailure


@dataclass(slots=True, frozen=True)
class Provider:
    """Immutable descriptor of one telemetry source."""

    id: str
    label: str
    query: Callable[[], Awaitable[QueryResult]]


class AppStatus(Enum):
    """Overall state of the dashboard."""

    IDLE = "idle"
    LOADING = "loading"
    OK = "ok"
    ERROR = "error"


class SectionStatus(Enum):
    """Health of one parsed provider section."""

    OK = "ok"
    WARNING = "warning"
    ERROR = "error"


@dataclass(slots=True, frozen=True)
class Snapshot:
    """Result of one fan-out cycle across all providers."""

    last_updated: datetime | None
    status: AppStatus
    content: str  # '## <label>' blocks in registry order
    message: str

    @classmethod
    def initial(cls) -> "Snapshot":
        """Snapshot shown before the first refresh completes."""
        return cls(
            last_updated=None,
            status=AppStatus.IDLE,
            content="",
            message="Press r to refresh.",
        )

    def loading(self, labels: Iterable[str]) -> "Snapshot":
        """Copy of this snapshot marked as loading, keeping its content."""
        return replace(
            self,
            status=AppStatus.LOADING,
            message=f"Querying {', '.join(labels)}...",
        )


@dataclass(slots=True, frozen=True)
class Section:
    """Portion of a snapshot attributable to one provider."""

    name: str
    lines: tuple[str, ...]
    status: SectionStatus


@dataclass(slots=True, frozen=True)
class ProviderSummary:
    """A provider joined with its parsed section and remaining-quota metric."""

    provider: Provider
    section: Section | None
    avg_remaining: int | None
