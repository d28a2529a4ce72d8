"""
Layout engine for the dashboard.

Every function here is a pure function of the terminal size, the panel content
sizes and the focused panel. Breakpoints are collected in one frozen dataclass
so they can be overridden in tests.

Two styles are supported:

* single: provider list plus one selection-driven detail pane. Width alone
  picks a density (wide, compact, tiny, micro).
* multi: all panels visible with proportional area division. Width and
  height together pick a mode (studio, dual, stack, focus).
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum


class LayoutStyle(Enum):
    """Display style chosen by the user."""

    SINGLE = "single"
    MULTI = "multi"


class Density(Enum):
    """Display density of the single-detail style, picked by width."""

    WIDE = "wide"
    COMPACT = "compact"
    TINY = "tiny"
    MICRO = "micro"


class MultiPaneMode(Enum):
    """Panel arrangement of the multi-pane style."""

    STUDIO = "studio"
    DUAL = "dual"
    STACK = "stack"
    FOCUS = "focus"


PANEL_PROVIDERS = "providers"
PANEL_DETAIL = "detail"
PANEL_INSIGHTS = "insights"
PRIMARY_PANELS = (PANEL_PROVIDERS, PANEL_DETAIL)
ALL_PANELS = (PANEL_PROVIDERS, PANEL_DETAIL, PANEL_INSIGHTS)

FOOTER_HEIGHT = 3
PANEL_BORDER = 2
# Column header, border and message line around the provider rows
PROVIDER_LIST_CHROME = 4


@dataclass(slots=True, frozen=True)
class Breakpoints:
    """Thresholds used to select layout modes. A value is the first size NOT in the smaller mode."""

    micro_width: int = 58
    tiny_width: int = 78
    compact_width: int = 112
    list_width_ratio: float = 0.36
    reserve_wide: int = 12
    reserve_compact: int = 22
    reserve_tiny: int = 19
    min_detail_height: int = 5
    studio_width: int = 160
    studio_height: int = 40
    dual_width: int = 120
    dual_height: int = 24
    focus_width: int = 80
    rail_ratio: float = 0.30
    min_stack_height: int = 6


DEFAULT_BREAKPOINTS = Breakpoints()


@dataclass(slots=True, frozen=True)
class PanelGeometry:
    """Rectangle of one panel, relative to the body area."""

    x: int
    y: int
    width: int
    height: int
    visible: bool = True


HIDDEN = PanelGeometry(0, 0, 0, 0, visible=False)


@dataclass(slots=True, frozen=True)
class LayoutPlan:
    """Selected mode and panel geometry for one terminal size."""

    style: LayoutStyle
    mode: str
    density: Density
    title_height: int
    footer_height: int
    body_width: int
    body_height: int
    detail_visible_height: int
    panels: dict[str, PanelGeometry] = field(default_factory=dict)

    def panel(self, name: str) -> PanelGeometry:
        """Get a panel's geometry; panels not placed are hidden."""
        return self.panels.get(name, HIDDEN)


def density_for_width(width: int, bp: Breakpoints = DEFAULT_BREAKPOINTS) -> Density:
    """Pick the display density from the terminal width."""
    if width < bp.micro_width:
        return Density.MICRO
    if width < bp.tiny_width:
        return Density.TINY
    if width < bp.compact_width:
        return Density.COMPACT
    return Density.WIDE


def header_reserve(density: Density, bp: Breakpoints = DEFAULT_BREAKPOINTS) -> int:
    """Rows kept free of the detail pane in the single-detail style."""
    if density is Density.WIDE:
        return bp.reserve_wide
    if density is Density.COMPACT:
        return bp.reserve_compact
    return bp.reserve_tiny


def title_height(density: Density) -> int:
    # Micro drops the bordered banner for a single plain line
    return 1 if density is Density.MICRO else 3


def multi_pane_mode(width: int, height: int, bp: Breakpoints = DEFAULT_BREAKPOINTS) -> MultiPaneMode:
    """Pick the multi-pane mode from the terminal size."""
    if width >= bp.studio_width and height >= bp.studio_height:
        return MultiPaneMode.STUDIO
    if width >= bp.dual_width and height >= bp.dual_height:
        return MultiPaneMode.DUAL
    if width < bp.focus_width:
        return MultiPaneMode.FOCUS
    return MultiPaneMode.STACK


def split_proportional(total: int, first_weight: int, second_weight: int, floor: int) -> tuple[int, int]:
    """
    Split total rows between two panels in proportion to their weights.

    Each side gets at least floor rows when total allows it; otherwise the
    rows are halved.
    """
    if total <= 0:
        return 0, 0
    if total < 2 * floor:
        first = total // 2
        return first, total - first

    first_weight = max(1, first_weight)
    second_weight = max(1, second_weight)
    weight_sum = first_weight + second_weight
    # Integer round-half-up of total * first / sum
    first = (2 * total * first_weight + weight_sum) // (2 * weight_sum)
    first = max(floor, min(total - floor, first))
    return first, total - first


def plan_single(
    width: int,
    height: int,
    provider_rows: int,
    bp: Breakpoints = DEFAULT_BREAKPOINTS,
) -> LayoutPlan:
    """Plan the single-detail style: provider list and one detail pane."""
    width = max(0, width)
    height = max(0, height)
    density = density_for_width(width, bp)
    top = title_height(density)
    body_height = max(0, height - top - FOOTER_HEIGHT)
    visible = max(bp.min_detail_height, height - header_reserve(density, bp))

    if density is Density.WIDE:
        list_width = int(width * bp.list_width_ratio)
        panels = {
            PANEL_PROVIDERS: PanelGeometry(0, 0, list_width, body_height),
            PANEL_DETAIL: PanelGeometry(list_width, 0, width - list_width, body_height),
        }
    else:
        wanted = max(0, provider_rows) + PROVIDER_LIST_CHROME
        available = max(PANEL_BORDER + 1, body_height - bp.min_detail_height - PANEL_BORDER)
        list_height = min(wanted, available, body_height)
        panels = {
            PANEL_PROVIDERS: PanelGeometry(0, 0, width, list_height),
            PANEL_DETAIL: PanelGeometry(0, list_height, width, body_height - list_height),
        }

    return LayoutPlan(
        style=LayoutStyle.SINGLE,
        mode=density.value,
        density=density,
        title_height=top,
        footer_height=FOOTER_HEIGHT,
        body_width=width,
        body_height=body_height,
        detail_visible_height=visible,
        panels=panels,
    )


def plan_multi(
    width: int,
    height: int,
    line_counts: Mapping[str, int],
    focus: str = PANEL_DETAIL,
    bp: Breakpoints = DEFAULT_BREAKPOINTS,
) -> LayoutPlan:
    """Plan the multi-pane style, dividing the body area between panels."""
    width = max(0, width)
    height = max(0, height)
    density = density_for_width(width, bp)
    mode = multi_pane_mode(width, height, bp)
    top = title_height(density)
    body_height = max(0, height - top - FOOTER_HEIGHT)
    if focus not in PRIMARY_PANELS:
        focus = PANEL_DETAIL

    provider_lines = line_counts.get(PANEL_PROVIDERS, 0)
    detail_lines = line_counts.get(PANEL_DETAIL, 0)

    if mode is MultiPaneMode.STUDIO:
        rail_width = int(width * bp.rail_ratio + 0.5)
        column_width = width - rail_width
        upper, lower = split_proportional(body_height, provider_lines, detail_lines, bp.min_stack_height)
        panels = {
            PANEL_PROVIDERS: PanelGeometry(0, 0, column_width, upper),
            PANEL_DETAIL: PanelGeometry(0, upper, column_width, lower),
            PANEL_INSIGHTS: PanelGeometry(column_width, 0, rail_width, body_height),
        }
    elif mode is MultiPaneMode.DUAL:
        half = width // 2
        panels = {
            PANEL_PROVIDERS: PanelGeometry(0, 0, half, body_height),
            PANEL_DETAIL: PanelGeometry(half, 0, width - half, body_height),
        }
    elif mode is MultiPaneMode.FOCUS:
        panels = {focus: PanelGeometry(0, 0, width, body_height)}
    else:
        upper, lower = split_proportional(body_height, provider_lines, detail_lines, bp.min_stack_height)
        panels = {
            PANEL_PROVIDERS: PanelGeometry(0, 0, width, upper),
            PANEL_DETAIL: PanelGeometry(0, upper, width, lower),
        }

    detail = panels.get(PANEL_DETAIL, HIDDEN)
    inner = detail.height if detail.visible else body_height
    return LayoutPlan(
        style=LayoutStyle.MULTI,
        mode=mode.value,
        density=density,
        title_height=top,
        footer_height=FOOTER_HEIGHT,
        body_width=width,
        body_height=body_height,
        detail_visible_height=max(1, inner - PANEL_BORDER),
        panels=panels,
    )


def plan_layout(
    style: LayoutStyle,
    width: int,
    height: int,
    line_counts: Mapping[str, int],
    focus: str = PANEL_DETAIL,
    bp: Breakpoints = DEFAULT_BREAKPOINTS,
) -> LayoutPlan:
    """Plan the layout for the given style."""
    if style is LayoutStyle.MULTI:
        return plan_multi(width, height, line_counts, focus, bp)
    return plan_single(width, height, line_counts.get(PANEL_PROVIDERS, 0), bp)
