"""Tests for quotadash application."""

import asyncio

import pytest

from quotadash.app import (
    DetailPanel,
    ProviderListPanel,
    QuotaDashApp,
    line_style,
    trend_width,
)
from quotadash.layout import PANEL_DETAIL, PANEL_PROVIDERS, Density, LayoutStyle
from quotadash.models import AppStatus, Provider, QuerySuccess


def test_line_style():
    """Test detail lines are colored by their markers."""
    assert line_style("ERROR: timeout") == "red"
    assert line_style("Quota        unavailable (expired)") == "red"
    assert line_style("Quota        skipped (no token)") == "yellow"
    assert line_style("5h window") == "cyan"
    assert line_style("Weekly 50% remaining") == "green"
    assert line_style("plain") == ""


def test_trend_width():
    assert trend_width(Density.MICRO) == 10
    assert trend_width(Density.COMPACT) == 16
    assert trend_width(Density.WIDE) == 22


async def settle(pilot) -> None:
    await pilot.app.workers.wait_for_complete()
    await pilot.pause()


@pytest.mark.asyncio
async def test_app_creation(three_providers, fast_settings):
    """Test QuotaDashApp can be instantiated."""
    app = QuotaDashApp(providers=three_providers, settings=fast_settings)
    assert app.title == "quotadash"
    assert app.sub_title == "Provider Quota Monitor"
    assert app.state.snapshot.status is AppStatus.IDLE


@pytest.mark.asyncio
async def test_app_compose(three_providers, fast_settings):
    """Test QuotaDashApp composes correctly."""
    app = QuotaDashApp(providers=three_providers, settings=fast_settings)
    async with app.run_test(size=(120, 40)) as pilot:
        assert pilot.app.query_one("#title") is not None
        assert pilot.app.query_one(f"#{PANEL_PROVIDERS}", ProviderListPanel) is not None
        assert pilot.app.query_one(f"#{PANEL_DETAIL}", DetailPanel) is not None
        assert pilot.app.query_one("#footer") is not None


@pytest.mark.asyncio
async def test_first_refresh_on_mount(three_providers, fast_settings):
    """Test the app queries providers on start and derives state from the snapshot."""
    app = QuotaDashApp(providers=three_providers, settings=fast_settings)
    async with app.run_test(size=(120, 40)) as pilot:
        await settle(pilot)

        state = pilot.app.state
        assert state.snapshot.status is AppStatus.ERROR
        assert state.snapshot.message == "1 provider(s) failed."
        assert [s.name for s in state.sections] == ["Alpha", "Beta", "Gamma"]
        assert state.summaries[0].avg_remaining == 60
        assert state.health == 50
        assert not pilot.app.refreshing
        assert len(state.history) >= 1


@pytest.mark.asyncio
async def test_loading_state_during_fan_out(fast_settings):
    """Test the dashboard shows loading while a fan-out is in flight."""
    gate = asyncio.Event()

    async def slow():
        await gate.wait()
        return QuerySuccess(output="done")

    app = QuotaDashApp(providers=[Provider(id="slow", label="Slow", query=slow)], settings=fast_settings)
    async with app.run_test(size=(120, 40)) as pilot:
        await pilot.pause()
        assert pilot.app.refreshing
        assert pilot.app.state.snapshot.status is AppStatus.LOADING
        assert pilot.app.state.snapshot.message == "Querying Slow..."

        # A second refresh while in flight is a no-op
        await pilot.press("r")
        assert pilot.app.state.snapshot.status is AppStatus.LOADING

        gate.set()
        await settle(pilot)
        assert pilot.app.state.snapshot.status is AppStatus.OK


@pytest.mark.asyncio
async def test_quit_binding(three_providers, fast_settings):
    """Test that 'q' binding triggers quit."""
    app = QuotaDashApp(providers=three_providers, settings=fast_settings)
    async with app.run_test(size=(120, 40)) as pilot:
        await pilot.press("q")
        assert pilot.app._exit


@pytest.mark.asyncio
async def test_provider_selection_wraps(three_providers, fast_settings):
    """Test left/right cycle through providers."""
    app = QuotaDashApp(providers=three_providers, settings=fast_settings)
    async with app.run_test(size=(120, 40)) as pilot:
        await settle(pilot)
        view = pilot.app.state.view

        await pilot.press("left")
        assert view.selected_index == 2

        await pilot.press("right")
        assert view.selected_index == 0

        await pilot.press("tab")
        assert view.selected_index == 1


@pytest.mark.asyncio
async def test_scroll_keys(provider_factory, fast_settings):
    """Test up/down and page keys move the detail scroll within bounds."""
    long_output = "\n".join(f"line {i}" for i in range(80))
    app = QuotaDashApp(providers=[provider_factory("long", long_output)], settings=fast_settings)
    async with app.run_test(size=(120, 40)) as pilot:
        await settle(pilot)
        view = pilot.app.state.view
        visible = pilot.app.plan.detail_visible_height

        await pilot.press("down", "down")
        assert view.scroll_offset == 2

        await pilot.press("up", "up", "up")
        assert view.scroll_offset == 0

        await pilot.press("pagedown")
        assert view.scroll_offset == max(3, visible // 2)

        for _ in range(10):
            await pilot.press("pagedown")
        assert view.scroll_offset == 80 - visible

        # A manual refresh keeps the scroll position
        await pilot.press("r")
        await settle(pilot)
        assert view.scroll_offset == 80 - visible


@pytest.mark.asyncio
async def test_layout_follows_terminal_width(three_providers, fast_settings):
    """Test the layout mode is picked from the terminal size."""
    app = QuotaDashApp(providers=three_providers, settings=fast_settings)
    async with app.run_test(size=(120, 40)) as pilot:
        await settle(pilot)
        assert pilot.app.plan.mode == "wide"

    app = QuotaDashApp(providers=three_providers, settings=fast_settings)
    async with app.run_test(size=(70, 30)) as pilot:
        await settle(pilot)
        assert pilot.app.plan.mode == "tiny"
        assert pilot.app.query_one("#detail").display


@pytest.mark.asyncio
async def test_toggle_multi_pane(three_providers, fast_settings):
    """Test 'm' switches to the multi-pane style and tab switches panel focus there."""
    app = QuotaDashApp(providers=three_providers, settings=fast_settings)
    async with app.run_test(size=(200, 50)) as pilot:
        await settle(pilot)

        await pilot.press("m")
        assert pilot.app.state.view.style is LayoutStyle.MULTI
        assert pilot.app.plan.mode == "studio"
        assert pilot.app.query_one("#insights").display

        await pilot.press("tab")
        assert pilot.app.state.view.focus == PANEL_PROVIDERS
        assert pilot.app.state.view.selected_index == 0
        assert pilot.app.query_one(f"#{PANEL_PROVIDERS}").has_class("focused")


@pytest.mark.asyncio
async def test_fan_out_failure_is_displayed(monkeypatch, three_providers, fast_settings):
    """Test a fan-out that throws is folded into an error snapshot, not a crash."""

    def corrupted(provider, result):
        raise RuntimeError("registry corrupted")

    monkeypatch.setattr("quotadash.query._format_block", corrupted)

    app = QuotaDashApp(providers=three_providers, settings=fast_settings)
    async with app.run_test(size=(120, 40)) as pilot:
        await settle(pilot)
        snapshot = pilot.app.state.snapshot
        assert snapshot.status is AppStatus.ERROR
        assert snapshot.message == "registry corrupted"
        assert snapshot.content == ""
        assert snapshot.last_updated is None
        assert not pilot.app.refreshing


@pytest.mark.asyncio
async def test_resize_relayouts_without_querying(fast_settings):
    """Test a terminal resize recomputes the layout at once and never starts a fan-out."""
    calls = 0

    async def counted():
        nonlocal calls
        calls += 1
        return QuerySuccess(output="Weekly       70% remaining")

    app = QuotaDashApp(providers=[Provider(id="one", label="One", query=counted)], settings=fast_settings)
    async with app.run_test(size=(120, 40)) as pilot:
        await settle(pilot)
        assert pilot.app.plan.mode == "wide"
        assert calls == 1

        await pilot.resize_terminal(70, 30)
        await pilot.pause()
        assert pilot.app.plan.mode == "tiny"
        assert pilot.app.plan.body_width == 70

        await pilot.resize_terminal(50, 20)
        await pilot.pause()
        assert pilot.app.plan.mode == "micro"

        await pilot.resize_terminal(120, 40)
        await pilot.pause()
        assert pilot.app.plan.mode == "wide"

        assert calls == 1
        assert not pilot.app.refreshing
        assert pilot.app.state.snapshot.status is AppStatus.OK


@pytest.mark.asyncio
async def test_detail_keeps_empty_values_visible(monkeypatch, three_providers, fast_settings):
    """Test a 'key:' line with no value still renders a placeholder cell."""
    app = QuotaDashApp(providers=three_providers, settings=fast_settings)
    async with app.run_test(size=(120, 40)) as pilot:
        await settle(pilot)
        panel = pilot.app.query_one(f"#{PANEL_DETAIL}", DetailPanel)
        rendered = []
        monkeypatch.setattr(panel, "update", rendered.append)

        panel.show(three_providers[0], ["Reset:", "Plan: pro"], Density.WIDE)

        first, second = rendered[-1].split("\n")
        assert first == "[dim]Reset:[/dim]  "
        assert second == "[dim]Plan:[/dim] pro"
