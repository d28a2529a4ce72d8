"""Dashboard state owner: current snapshot, view state and health history."""

from collections import deque
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from quotadash.layout import PANEL_DETAIL, PANEL_PROVIDERS, LayoutStyle
from quotadash.models import AppStatus, Provider, ProviderSummary, Section, Snapshot
from quotadash.status_model import build_provider_summaries, health_score, parse_sections

DEFAULT_HISTORY_CAPACITY = 200


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


class HealthHistory:
    """
    Bounded trend of health scores.

    A sample is only appended when the (status, timestamp, score) key changes,
    so re-renders that do not follow a new query do not add duplicates.
    """

    def __init__(self, capacity: int = DEFAULT_HISTORY_CAPACITY) -> None:
        self._samples: deque[int] = deque(maxlen=max(1, capacity))
        self._last_key: tuple[AppStatus, datetime | None, int] | None = None

    @property
    def capacity(self) -> int:
        return self._samples.maxlen or 0

    def __len__(self) -> int:
        return len(self._samples)

    def record(self, status: AppStatus, last_updated: datetime | None, score: int) -> bool:
        """Append a sample if the key changed. Returns True when appended."""
        key = (status, last_updated, score)
        if key == self._last_key:
            return False
        self._last_key = key
        self._samples.append(score)
        return True

    def values(self) -> list[int]:
        """Get the samples, oldest first."""
        return list(self._samples)


@dataclass(slots=True)
class ViewState:
    """Selection, scroll and layout choices driven by the keyboard."""

    selected_index: int = 0
    scroll_offset: int = 0
    style: LayoutStyle = LayoutStyle.SINGLE
    focus: str = PANEL_DETAIL


class DashboardState:
    """
    Single owner of everything the render loop mutates.

    Sections, summaries and the health score are derived from the current
    snapshot on every access; only the snapshot itself is ever replaced.
    """

    def __init__(
        self,
        providers: Sequence[Provider],
        history_capacity: int = DEFAULT_HISTORY_CAPACITY,
    ) -> None:
        self._providers = tuple(providers)
        self._snapshot = Snapshot.initial()
        self.view = ViewState()
        self.history = HealthHistory(history_capacity)

    @property
    def providers(self) -> tuple[Provider, ...]:
        return self._providers

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def sections(self) -> list[Section]:
        return parse_sections(self._snapshot.content)

    @property
    def summaries(self) -> list[ProviderSummary]:
        return build_provider_summaries(self._providers, self.sections)

    @property
    def health(self) -> int:
        return health_score(self.sections)

    @property
    def selected_summary(self) -> ProviderSummary | None:
        summaries = self.summaries
        if not summaries:
            return None
        if 0 <= self.view.selected_index < len(summaries):
            return summaries[self.view.selected_index]
        return summaries[0]

    def mark_loading(self) -> None:
        """Switch to the loading state, keeping the previous content on screen."""
        self._snapshot = self._snapshot.loading(p.label for p in self._providers)

    def apply_snapshot(self, snapshot: Snapshot) -> None:
        """Replace the snapshot wholesale."""
        self._snapshot = snapshot

    def record_health(self) -> bool:
        """Append the current score to the trend history if anything changed."""
        return self.history.record(self._snapshot.status, self._snapshot.last_updated, self.health)

    def detail_lines(self) -> tuple[str, ...]:
        """Lines of the selected provider's section."""
        summary = self.selected_summary
        if summary is None or summary.section is None:
            return ()
        return summary.section.lines

    def max_offset(self, visible_height: int) -> int:
        return max(0, len(self.detail_lines()) - max(1, visible_height))

    def visible_detail_lines(self, visible_height: int) -> tuple[str, ...]:
        start = self.view.scroll_offset
        return self.detail_lines()[start : start + max(1, visible_height)]

    def clamp(self, visible_height: int) -> None:
        """Pull selection and scroll back into range after any size change."""
        count = len(self._providers)
        if count == 0 or not 0 <= self.view.selected_index < count:
            self.view.selected_index = 0
        self.view.scroll_offset = clamp(self.view.scroll_offset, 0, self.max_offset(visible_height))

    def _select(self, index: int) -> None:
        count = len(self._providers)
        self.view.selected_index = index % count if count else 0
        self.view.scroll_offset = 0

    def select_next(self) -> None:
        self._select(self.view.selected_index + 1)

    def select_previous(self) -> None:
        self._select(self.view.selected_index - 1)

    def scroll(self, delta: int, visible_height: int) -> None:
        """Move the detail scroll offset, clamped to the content."""
        self.view.scroll_offset = clamp(
            self.view.scroll_offset + delta, 0, self.max_offset(visible_height)
        )

    def page(self, direction: int, visible_height: int) -> None:
        """Scroll by half the visible detail height (at least 3 lines)."""
        step = max(3, visible_height // 2)
        self.scroll(step if direction > 0 else -step, visible_height)

    def toggle_style(self) -> LayoutStyle:
        if self.view.style is LayoutStyle.SINGLE:
            self.view.style = LayoutStyle.MULTI
        else:
            self.view.style = LayoutStyle.SINGLE
        return self.view.style

    def switch_focus(self) -> str:
        """Move focus to the other primary panel."""
        self.view.focus = PANEL_PROVIDERS if self.view.focus == PANEL_DETAIL else PANEL_DETAIL
        return self.view.focus
