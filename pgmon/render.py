"""Frame layout and the curses rendering surface.

``draw`` builds one frame (title banner on top, data table below) and hands
the widgets to a ``Surface``. ``CursesSurface`` is the real surface; tests use
a recording one.
"""

from __future__ import annotations

import curses
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, NamedTuple, Protocol

from pgmon.errors import TerminalError
from pgmon.views import ViewSpec

# ── Constants ──────────────────────────────────────────────────────────────

BANNER_PERCENT = 10
TABLE_PERCENT = 90
MIN_HEIGHT = 10
MIN_WIDTH = 40
BOX_MIN_HEIGHT = 3  # two borders and one line of content

# Curses colour-pair IDs
C_NORMAL = 1
C_TITLE = 2
C_ACCENT = 3
C_DIM = 4

_STYLES: dict[str, tuple[int, int]] = {
    "normal": (C_NORMAL, 0),
    "title": (C_TITLE, curses.A_BOLD),
    "accent": (C_ACCENT, curses.A_BOLD),
    "dim": (C_DIM, 0),
}


def init_colors() -> None:
    curses.start_color()
    curses.use_default_colors()
    curses.init_pair(C_NORMAL, curses.COLOR_WHITE, -1)
    curses.init_pair(C_TITLE, curses.COLOR_YELLOW, -1)
    curses.init_pair(C_ACCENT, curses.COLOR_CYAN, -1)
    curses.init_pair(C_DIM, curses.COLOR_BLUE, -1)


def style_attr(style: str) -> int:
    pair, extra = _STYLES.get(style, _STYLES["normal"])
    return curses.color_pair(pair) | extra


# ── Geometry ───────────────────────────────────────────────────────────────


class Rect(NamedTuple):
    y: int
    x: int
    height: int
    width: int


def split_percent(
    area: Rect, percents: Sequence[int], vertical: bool = True
) -> list[Rect]:
    """Split *area* into consecutive slices sized by percentage.

    Each slice gets the floor of its share; whatever is left over goes to
    the last slice so the slices always cover the whole area.
    """
    total = area.height if vertical else area.width
    sizes = [total * p // 100 for p in percents]
    if sizes:
        sizes[-1] += total - sum(sizes)
    regions: list[Rect] = []
    offset = 0
    for size in sizes:
        if vertical:
            regions.append(Rect(area.y + offset, area.x, size, area.width))
        else:
            regions.append(Rect(area.y, area.x + offset, area.height, size))
        offset += size
    return regions


# ── Widgets ────────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class Banner:
    """Bordered single-line title block."""

    text: str
    title: str = ""
    title_style: str = "title"
    status: str = ""


@dataclass(frozen=True, slots=True)
class Table:
    """Bordered table with fixed proportional column widths."""

    rows: tuple[tuple[str, ...], ...]
    weights: tuple[int, ...]
    title: str = ""
    header: tuple[str, ...] | None = None
    header_style: str = "accent"


class Surface(Protocol):
    def begin_frame(self) -> Rect: ...

    def compute_layout(self, area: Rect, constraints: Sequence[int]) -> list[Rect]: ...

    def submit(self, widget: Banner | Table, region: Rect) -> None: ...

    def end_frame(self) -> None: ...


# ── Frame ──────────────────────────────────────────────────────────────────


def draw(
    surface: Surface,
    title: str,
    view: ViewSpec,
    rows: Sequence[tuple[str, ...]],
    status: str = "",
) -> None:
    """Render one complete frame: banner (10%) over table (90%)."""
    area = surface.begin_frame()
    banner_area, table_area = surface.compute_layout(
        area, (BANNER_PERCENT, TABLE_PERCENT)
    )
    surface.submit(Banner(text=title, title="Dashboard", status=status), banner_area)
    surface.submit(
        Table(
            rows=tuple(rows),
            weights=view.weights,
            title=view.caption,
            header=view.headers if view.show_header else None,
        ),
        table_area,
    )
    surface.end_frame()


# ── Curses surface ─────────────────────────────────────────────────────────


def _safe(win: Any, *args: Any) -> None:
    """addstr wrapper that swallows out-of-bounds errors."""
    try:
        win.addstr(*args)
    except curses.error:
        pass


def _clip(text: str, width: int) -> str:
    if width <= 0:
        return ""
    return text if len(text) <= width else text[: width - 1] + "…"


class CursesSurface:
    """Surface that draws widgets onto a curses screen."""

    def __init__(self, stdscr: Any) -> None:
        self._scr = stdscr
        self._too_small = False

    def begin_frame(self) -> Rect:
        try:
            self._scr.erase()
            max_y, max_x = self._scr.getmaxyx()
        except curses.error as e:
            raise TerminalError(f"cannot start frame: {e}") from e
        self._too_small = max_y < MIN_HEIGHT or max_x < MIN_WIDTH
        return Rect(0, 0, max_y, max_x)

    def compute_layout(self, area: Rect, constraints: Sequence[int]) -> list[Rect]:
        """Split vertically, growing the first region to a drawable box.

        The extra rows come out of the second region, and only when that
        region can spare them.
        """
        regions = split_percent(area, constraints, vertical=True)
        if len(regions) < 2:
            return regions
        first, second = regions[0], regions[1]
        grow = BOX_MIN_HEIGHT - first.height
        if grow > 0 and second.height - grow >= BOX_MIN_HEIGHT:
            regions[0] = first._replace(height=BOX_MIN_HEIGHT)
            regions[1] = second._replace(
                y=second.y + grow, height=second.height - grow
            )
        return regions

    def submit(self, widget: Banner | Table, region: Rect) -> None:
        if self._too_small:
            return
        if isinstance(widget, Banner):
            self._draw_banner(widget, region)
        else:
            self._draw_table(widget, region)

    def end_frame(self) -> None:
        if self._too_small:
            notice = f"Terminal too small (need {MIN_WIDTH}x{MIN_HEIGHT}+)"
            _safe(self._scr, 0, 0, notice)
        try:
            self._scr.refresh()
        except curses.error as e:
            raise TerminalError(f"cannot draw frame: {e}") from e

    def _box(self, region: Rect, title: str, title_style: str) -> Any | None:
        """Draw a bordered box and return its sub-window."""
        if region.height < BOX_MIN_HEIGHT or region.width < 4:
            return None
        try:
            sub = self._scr.subwin(region.height, region.width, region.y, region.x)
            sub.box()
        except curses.error:
            return None
        if title and len(title) + 4 < region.width:
            _safe(sub, 0, 2, f" {title} ", style_attr(title_style))
        return sub

    def _draw_banner(self, banner: Banner, region: Rect) -> None:
        box = self._box(region, banner.title, banner.title_style)
        if box is None:
            return
        inner = region.width - 2
        _safe(box, 1, 1, _clip(banner.text, inner), style_attr("normal"))
        if banner.status and len(banner.text) + len(banner.status) + 2 < inner:
            x = region.width - len(banner.status) - 2
            _safe(box, 1, x, banner.status, style_attr("dim"))

    def _draw_table(self, table: Table, region: Rect) -> None:
        box = self._box(region, table.title, "normal")
        if box is None:
            return
        inner = Rect(1, 1, region.height - 2, region.width - 2)
        cols = split_percent(inner, table.weights, vertical=False)
        line = 1
        last = region.height - 2
        if table.header is not None and line <= last:
            attr = style_attr(table.header_style)
            self._draw_cells(box, line, cols, table.header, attr)
            line += 1
        for row in table.rows:
            if line > last:
                break
            self._draw_cells(box, line, cols, row, style_attr("normal"))
            line += 1

    @staticmethod
    def _draw_cells(
        box: Any, y: int, cols: list[Rect], cells: Sequence[str], attr: int
    ) -> None:
        for col, cell in zip(cols, cells):
            # one blank column between cells
            _safe(box, y, col.x, _clip(cell, col.width - 1), attr)
