"""quotadash - Main Textual application."""

import argparse
import asyncio
import logging
from collections.abc import Sequence

from rich.markup import escape
from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.geometry import Size
from textual.widgets import Static

from quotadash.config import Settings
from quotadash.layout import (
    ALL_PANELS,
    DEFAULT_BREAKPOINTS,
    PANEL_DETAIL,
    PANEL_PROVIDERS,
    Breakpoints,
    Density,
    LayoutPlan,
    LayoutStyle,
    plan_layout,
)
from quotadash.logging_setup import configure_logging
from quotadash.models import AppStatus, Provider, ProviderSummary, Snapshot
from quotadash.once import render_once
from quotadash.providers import default_providers
from quotadash.query import RefreshCoordinator, query_providers
from quotadash.state import DashboardState
from quotadash.status_model import (
    app_status_label,
    app_status_style,
    format_clock,
    health_style,
    sparkline,
    status_dot,
    status_label,
    status_style,
)

logger = logging.getLogger(__name__)

SMALL_DENSITIES = (Density.TINY, Density.MICRO)


def line_style(line: str) -> str:
    """Style for one detail line, keyed on the provider text markers."""
    if line.startswith("ERROR:") or "unavailable" in line:
        return "red"
    if "skipped" in line:
        return "yellow"
    if line.endswith("window"):
        return "cyan"
    if line.startswith("used"):
        return "yellow"
    if "remaining" in line:
        return "green"
    return ""


def styled(text: str, style: str) -> str:
    """Wrap escaped text in rich markup for the given style."""
    text = escape(text)
    return f"[{style}]{text}[/{style}]" if style else text


def trend_width(density: Density) -> int:
    if density in SMALL_DENSITIES:
        return 10
    if density is Density.COMPACT:
        return 16
    return 22


class TitleBanner(Static):
    """Title bar; drops its border and spacing in micro density."""

    DEFAULT_CSS = """
    TitleBanner {
        height: 3;
        border: round $primary;
        content-align: center middle;
        text-style: bold;
        color: $accent;
    }

    TitleBanner.micro {
        height: 1;
        border: none;
    }
    """

    def show(self, density: Density) -> None:
        """Update the banner for the current density."""
        micro = density is Density.MICRO
        self.set_class(micro, "micro")
        self.update("QUOTA STATUS" if micro else "Q U O T A   S T A T U S")


class ProviderListPanel(Static):
    """Provider table: selection bullet, name, status, usage bar, remaining."""

    DEFAULT_CSS = """
    ProviderListPanel {
        border: round $primary-darken-2;
        padding: 0 1;
    }

    ProviderListPanel.focused {
        border: round $accent;
    }
    """

    def show(
        self,
        summaries: Sequence[ProviderSummary],
        selected_index: int,
        density: Density,
        terminal_width: int,
        message: str,
    ) -> None:
        """Render the provider rows for the given density."""
        small = density in SMALL_DENSITIES
        longest = max([8, *(len(s.provider.label) for s in summaries)])
        name_width = 8 if small else min(16, max(10, longest))
        status_width = 4 if small else 7 if density is Density.COMPACT else 8
        bar_width = 6 if small else 10 if density is Density.COMPACT else 14
        show_status = not small
        show_bar = not small or terminal_width >= 66
        show_score = not small

        header = "  " + "Provider".ljust(name_width)[:name_width]
        if show_status:
            header += " " + "Status".ljust(status_width)
        if show_bar:
            header += " " + "Usage".ljust(bar_width)
        if show_score:
            header += " " + "Rem".rjust(5)
        rows = [f"[bold]{escape(header)}[/bold]"]

        for index, summary in enumerate(summaries):
            status = summary.section.status if summary.section else None
            color = status_style(status)
            selected = index == selected_index
            bullet = "[bold cyan]●[/bold cyan]" if selected else "[dim]○[/dim]"
            row = f"{bullet} {escape(summary.provider.label.ljust(name_width)[:name_width])}"
            if show_status:
                text = (status.value.upper() if status else "IDLE").ljust(status_width)[:status_width]
                row += " " + styled(text, color)
            if show_bar:
                filled = 0
                if summary.avg_remaining is not None:
                    filled = int(summary.avg_remaining / 100 * bar_width + 0.5)
                row += " " + styled("█" * filled + "·" * (bar_width - filled), color)
            if show_score:
                pct = "n/a" if summary.avg_remaining is None else f"{summary.avg_remaining}%"
                row += " " + styled(pct.rjust(5), "dim")
            rows.append(row)

        if not summaries:
            rows.append("[dim]No providers configured.[/dim]")
        if message:
            rows.append("")
            rows.append(styled(message, "yellow"))
        self.update("\n".join(rows))


class DetailPanel(Static):
    """Scrollable detail lines of the selected provider."""

    DEFAULT_CSS = """
    DetailPanel {
        border: round $primary-darken-2;
        padding: 0 1;
    }

    DetailPanel.focused {
        border: round $accent;
    }
    """

    def show(self, provider: Provider | None, lines: Sequence[str], density: Density) -> None:
        """Render the visible slice of the selected section."""
        if provider is None:
            self.border_title = "Details"
        elif density in SMALL_DENSITIES:
            self.border_title = escape(provider.label)
        else:
            self.border_title = f"{escape(provider.label)} Details"

        if not lines:
            self.update("[dim]Waiting for provider data...[/dim]")
            return

        rendered = []
        for line in lines:
            colon = line.find(":")
            if colon > 0:
                key, value = line[: colon + 1], line[colon + 1 :].lstrip()
                rendered.append(f"{styled(key, 'dim')} {styled(value, line_style(line)) or ' '}")
            else:
                rendered.append(styled(line, line_style(line)) or " ")
        self.update("\n".join(rendered))


class InsightsRail(Static):
    """Side rail with the health score, trend and per-status counts."""

    DEFAULT_CSS = """
    InsightsRail {
        border: round $primary-darken-2;
        padding: 0 1;
    }
    """

    def show(self, state: DashboardState, width: int) -> None:
        """Render insights derived from the current state."""
        self.border_title = "Insights"
        sections = state.sections
        health = state.health
        counts = {label: 0 for label in ("LIVE", "PARTIAL", "ISSUE")}
        for section in sections:
            counts[status_label(section.status)] += 1

        lines = [
            f"Health   {styled(f'{health}%', health_style(health))}",
            f"Trend    {styled(sparkline(state.history.values(), max(4, width - 13)), health_style(health))}",
            "",
        ]
        for section in sections:
            dot = styled(status_dot(section.status), status_style(section.status))
            lines.append(f"{dot} {escape(section.name)}  {status_label(section.status)}")
        lines.append("")
        lines.append(" | ".join(f"{label.lower()} {count}" for label, count in counts.items()))
        if state.snapshot.message:
            lines.append("")
            lines.append(styled(state.snapshot.message, "yellow"))
        self.update("\n".join(lines))


class StatusFooter(Static):
    """Footer with app status, last update, refresh interval, trend and controls."""

    DEFAULT_CSS = """
    StatusFooter {
        dock: bottom;
        height: 3;
        border: round $primary;
        padding: 0 1;
        color: $text-muted;
    }
    """

    def show(self, snapshot: Snapshot, refresh_ms: int, trend: str, health: int, density: Density) -> None:
        """Render the footer line."""
        if density in SMALL_DENSITIES:
            controls = "R refresh | Q quit"
        elif density is Density.COMPACT:
            controls = "←/→ provider | ↑/↓ scroll | R refresh | Q quit"
        else:
            controls = "←/→ provider | ↑/↓ scroll | PgUp/PgDn jump | M layout | R refresh | Q quit"

        status = styled(app_status_label(snapshot.status), app_status_style(snapshot.status))
        self.update(
            f"status {status}  |  updated {escape(format_clock(snapshot.last_updated))}"
            f"  |  auto {round(refresh_ms / 1000)}s"
            f"  |  trend {styled(trend, health_style(health))}"
            f"  |  {styled(controls, 'cyan')}"
        )


class QuotaDashApp(App):
    """Main quotadash application."""

    TITLE = "quotadash"
    SUB_TITLE = "Provider Quota Monitor"

    CSS = """
    Screen {
        layout: vertical;
    }

    #body {
        height: 1fr;
        layout: vertical;
        overflow: hidden hidden;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        Binding("ctrl+c", "quit", "Quit", show=False, priority=True),
        ("r", "refresh", "Refresh"),
        ("left", "previous_provider", "Previous"),
        ("right", "next_provider", "Next"),
        Binding("tab", "switch_panel", "Panel", priority=True),
        ("up", "scroll_detail(-1)", "Up"),
        ("down", "scroll_detail(1)", "Down"),
        ("pageup", "page_detail(-1)", "Page up"),
        ("pagedown", "page_detail(1)", "Page down"),
        ("m", "toggle_layout", "Layout"),
    ]

    def __init__(
        self,
        providers: Sequence[Provider] | None = None,
        settings: Settings | None = None,
        breakpoints: Breakpoints = DEFAULT_BREAKPOINTS,
    ) -> None:
        """
        Initialize the QuotaDashApp.

        Args:
            providers: Provider registry; the bundled providers when omitted.
            settings: Runtime settings; read from the environment when omitted.
            breakpoints: Layout thresholds.
        """
        super().__init__()
        self._settings = settings or Settings.from_env()
        self.state = DashboardState(default_providers() if providers is None else providers)
        self._coordinator = RefreshCoordinator(self.state.providers)
        self._breakpoints = breakpoints
        self._plan: LayoutPlan | None = None

    @property
    def plan(self) -> LayoutPlan | None:
        """Layout plan used for the last render."""
        return self._plan

    @property
    def refreshing(self) -> bool:
        return self._coordinator.in_flight

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield TitleBanner(id="title")
        with Container(id="body"):
            yield ProviderListPanel(id=PANEL_PROVIDERS)
            yield DetailPanel(id=PANEL_DETAIL)
            yield InsightsRail(id="insights")
        yield StatusFooter(id="footer")

    def on_mount(self) -> None:
        """Render the idle state, start the first refresh and the refresh timer."""
        self._render_dashboard()
        self.action_refresh()
        self.set_interval(self._settings.refresh_seconds, self.action_refresh)

    def on_resize(self, event: events.Resize) -> None:
        """Recompute the layout only; a resize never triggers a query."""
        # self.size still holds the previous dimensions while this event is handled
        self._render_dashboard(event.size)

    def action_refresh(self) -> None:
        """Start a fan-out unless one is already in flight."""
        if not self._coordinator.begin():
            return
        self.state.mark_loading()
        self._render_dashboard()
        self.run_worker(self._complete_refresh(), name="fan-out", group="refresh", exit_on_error=False)

    async def _complete_refresh(self) -> None:
        snapshot = await self._coordinator.run()
        self.state.apply_snapshot(snapshot)
        self._render_dashboard()

    def action_next_provider(self) -> None:
        self.state.select_next()
        self._render_dashboard()

    def action_previous_provider(self) -> None:
        self.state.select_previous()
        self._render_dashboard()

    def action_switch_panel(self) -> None:
        """Switch the focused panel in multi-pane style, else select the next provider."""
        if self.state.view.style is LayoutStyle.MULTI:
            self.state.switch_focus()
        else:
            self.state.select_next()
        self._render_dashboard()

    def action_scroll_detail(self, delta: int) -> None:
        self.state.scroll(delta, self._visible_height())
        self._render_dashboard()

    def action_page_detail(self, direction: int) -> None:
        self.state.page(direction, self._visible_height())
        self._render_dashboard()

    def action_toggle_layout(self) -> None:
        style = self.state.toggle_style()
        self.notify(f"Layout: {style.value}")
        self._render_dashboard()

    def _visible_height(self) -> int:
        if self._plan is None:
            return self._breakpoints.min_detail_height
        return self._plan.detail_visible_height

    def _compute_plan(self, size: Size) -> LayoutPlan:
        view = self.state.view
        line_counts = {
            PANEL_PROVIDERS: len(self.state.providers) + 1,
            PANEL_DETAIL: len(self.state.detail_lines()),
        }
        return plan_layout(
            view.style,
            size.width,
            size.height,
            line_counts,
            view.focus,
            self._breakpoints,
        )

    def _apply_geometry(self, plan: LayoutPlan) -> None:
        """Size and place the body panels; panels flow vertically, offsets move them into place."""
        self.query_one("#title", TitleBanner).show(plan.density)
        natural_y = 0
        for name in ALL_PANELS:
            widget = self.query_one(f"#{name}")
            geometry = plan.panel(name)
            widget.display = geometry.visible
            widget.set_class(
                plan.style is LayoutStyle.MULTI and name == self.state.view.focus, "focused"
            )
            if not geometry.visible:
                continue
            widget.styles.width = geometry.width
            widget.styles.height = geometry.height
            widget.styles.offset = (geometry.x, geometry.y - natural_y)
            natural_y += geometry.height

    def _render_dashboard(self, size: Size | None = None) -> None:
        """Re-derive everything from the current snapshot and redraw."""
        size = size or self.size
        state = self.state
        state.clamp(self._visible_height())
        plan = self._compute_plan(size)
        state.clamp(plan.detail_visible_height)
        state.record_health()
        self._plan = plan

        try:
            self._apply_geometry(plan)
            self._update_panels(plan)
        except Exception:
            # A failed redraw must never take the render loop down
            logger.exception("render failed")

    def _update_panels(self, plan: LayoutPlan) -> None:
        state = self.state
        snapshot = state.snapshot
        visible = plan.detail_visible_height
        total = len(state.detail_lines())
        offset = state.view.scroll_offset

        side_message = snapshot.message
        if not side_message and total > visible:
            side_message = f"lines {offset + 1}-{min(offset + visible, total)} of {total}"

        selected = state.selected_summary
        self.query_one(f"#{PANEL_PROVIDERS}", ProviderListPanel).show(
            state.summaries, state.view.selected_index, plan.density, plan.body_width, side_message
        )
        self.query_one(f"#{PANEL_DETAIL}", DetailPanel).show(
            selected.provider if selected else None,
            state.visible_detail_lines(visible),
            plan.density,
        )
        if plan.panel("insights").visible:
            self.query_one("#insights", InsightsRail).show(state, plan.panel("insights").width)

        health = state.health
        trend = sparkline(state.history.values(), trend_width(plan.density))
        self.query_one("#footer", StatusFooter).show(
            snapshot, self._settings.refresh_ms, trend, health, plan.density
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quotadash",
        description="Terminal dashboard for provider usage and quota telemetry.",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="query every provider once, print a text summary and exit (status 1 on error)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="logging level (defaults to $QUOTADASH_LOG_LEVEL or WARNING)",
    )
    return parser


def run_once(providers: Sequence[Provider]) -> int:
    """Perform one fan-out, print the report and return the exit status."""
    snapshot = asyncio.run(query_providers(providers))
    print(render_once(snapshot))
    return 1 if snapshot.status is AppStatus.ERROR else 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for quotadash application."""
    args = build_parser().parse_args(argv)
    settings = Settings.from_env()
    level = args.log_level or settings.log_level

    if args.once:
        configure_logging(level, interactive=False)
        return run_once(default_providers())

    configure_logging(level, interactive=True)
    app = QuotaDashApp(settings=settings)
    try:
        app.run()
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
