"""Interactive terminal dashboard — live view of PostgreSQL statistics.

Queries one of the server's statistics views every couple of seconds and
shows the result as a table until ``q`` is pressed. The connection string
comes from ``$DATABASE_URL`` (or the config file).

Usage:
    pgmon
    pgmon --view table_stats --config path/to/config.toml
"""

from __future__ import annotations

import argparse
import curses
import logging
import sys
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, NamedTuple, Protocol

from pgmon.config import DEFAULT_CONFIG, dump_default_config, load_config, resolve_dsn
from pgmon.errors import DashboardError, TerminalError
from pgmon.keys import InputWatcher
from pgmon.render import CursesSurface, Surface, draw, init_colors
from pgmon.source import DataSource
from pgmon.views import VIEWS, ViewSpec, get_view

logger = logging.getLogger(__name__)

# ── Constants ──────────────────────────────────────────────────────────────

REFRESH_INTERVAL = 2.0  # seconds per tick
POLL_WINDOW = 0.2  # seconds of each tick spent waiting for a key

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


# ── Terminal ───────────────────────────────────────────────────────────────


class Session(NamedTuple):
    surface: Surface
    watcher: InputWatcher


class Terminal(Protocol):
    def enter(self) -> Session: ...

    def restore(self) -> None: ...


class CursesTerminal:
    """Raw-mode, alternate-screen terminal driven through curses."""

    def __init__(self) -> None:
        self._scr: curses.window | None = None

    def enter(self) -> Session:
        try:
            self._scr = curses.initscr()
            curses.noecho()
            curses.raw()
            self._scr.keypad(True)
            if curses.has_colors():
                init_colors()
            try:
                curses.curs_set(0)
            except curses.error:
                pass  # terminal cannot hide the cursor
        except curses.error as e:
            self._restore_after_failed_enter()
            raise TerminalError(f"cannot initialise terminal: {e}") from e
        except KeyboardInterrupt:
            self._restore_after_failed_enter()
            raise
        return Session(CursesSurface(self._scr), InputWatcher(self._scr))

    def restore(self) -> None:
        if self._scr is None:
            return
        scr, self._scr = self._scr, None
        try:
            scr.keypad(False)
            curses.noraw()
            curses.echo()
            curses.endwin()
        except curses.error as e:
            raise TerminalError(f"cannot restore terminal: {e}") from e

    def _restore_after_failed_enter(self) -> None:
        try:
            self.restore()
        except TerminalError as e:
            logger.error("%s", e)


@contextmanager
def terminal_session(terminal: Terminal) -> Iterator[Session]:
    """Hold the terminal for the duration of the block.

    ``restore()`` runs on every exit path once ``enter()`` succeeded. A
    failing restore only raises when nothing else is already propagating.
    """
    session = terminal.enter()
    logger.info("terminal entered")
    try:
        yield session
    except BaseException:
        try:
            terminal.restore()
        except TerminalError as e:
            logger.error("%s", e)
        raise
    terminal.restore()
    logger.info("terminal restored")


# ── Refresh loop ───────────────────────────────────────────────────────────


class Phase(Enum):
    RUNNING = "running"
    DRAINING = "draining"
    TERMINATED = "terminated"


@dataclass
class LoopState:
    """Orchestrator state; lives only as long as one ``run()``."""

    ticks: int = 0
    quit: bool = False
    phase: Phase = Phase.RUNNING
    error: DashboardError | None = None

    @property
    def exit_code(self) -> int:
        return 1 if self.error is not None else 0


class RefreshLoop:
    """Fetch, draw, wait, check for ``q``; repeat until quit or a fatal error.

    Ticks are strictly sequential. The only suspension point is the wait at
    the end of each tick, the last ``poll_window`` seconds of which are spent
    waiting on the keyboard.
    """

    def __init__(
        self,
        source: DataSource,
        view: ViewSpec,
        terminal: Terminal,
        *,
        title: str = DEFAULT_CONFIG["title"],
        interval: float = REFRESH_INTERVAL,
        poll_window: float = POLL_WINDOW,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._source = source
        self._view = view
        self._terminal = terminal
        self._title = title
        self._interval = interval
        self._poll_window = poll_window
        self._sleep = sleep
        self._clock = clock
        self.state = LoopState()

    def run(self) -> LoopState:
        try:
            with terminal_session(self._terminal) as session:
                self.state.phase = Phase.RUNNING
                try:
                    while self.state.phase is Phase.RUNNING:
                        self._tick(session)
                except KeyboardInterrupt:
                    logger.info("interrupted")
                    self.state.quit = True
                    self.state.phase = Phase.DRAINING
        except DashboardError as e:
            # Tick failures are already recorded; this covers enter/restore.
            if self.state.error is None:
                logger.error("terminal failure: %s", e)
                self.state.error = e
        finally:
            self.state.phase = Phase.TERMINATED
        return self.state

    def _tick(self, session: Session) -> None:
        started = self._clock()
        try:
            rows = self._source.fetch(self._view)
            draw(session.surface, self._title, self._view, rows, status=self._status())
        except DashboardError as e:
            logger.error("tick %d failed: %s", self.state.ticks + 1, e)
            self.state.error = e
            self.state.phase = Phase.DRAINING
            raise
        self.state.ticks += 1

        self._wait(started)
        if session.watcher.quit_requested(self._poll_window):
            logger.info("quit requested after %d ticks", self.state.ticks)
            self.state.quit = True
            self.state.phase = Phase.DRAINING

    def _wait(self, started: float) -> None:
        """Sleep out the interval, leaving the poll window for the key check."""
        remaining = self._interval - (self._clock() - started) - self._poll_window
        if remaining > 0:
            self._sleep(remaining)

    @staticmethod
    def _status() -> str:
        return f"{time.strftime('%H:%M:%S')}  q: quit"


# ── CLI entry point ────────────────────────────────────────────────────────


def _setup_logging(path: str | None) -> None:
    """Log to *path* if given; otherwise stay silent so the screen is untouched."""
    pkg_logger = logging.getLogger("pgmon")
    if not path:
        pkg_logger.addHandler(logging.NullHandler())
        return
    try:
        handler = logging.FileHandler(path, encoding="utf-8")
    except OSError as e:
        print(f"pgmon: cannot open log file {path}: {e}", file=sys.stderr)
        raise SystemExit(1) from e
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    pkg_logger.addHandler(handler)
    pkg_logger.setLevel(logging.INFO)


def _run(args: argparse.Namespace, config: dict[str, Any]) -> LoopState:
    try:
        view = get_view(args.view or str(config.get("view") or DEFAULT_CONFIG["view"]))
        dsn = resolve_dsn(config)
        source = DataSource.open(dsn)
    except DashboardError as e:
        logger.error("startup failed: %s", e)
        print(f"pgmon: {e}", file=sys.stderr)
        raise SystemExit(1) from e

    with source:
        loop = RefreshLoop(
            source,
            view,
            CursesTerminal(),
            title=str(config.get("title") or DEFAULT_CONFIG["title"]),
        )
        return loop.run()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Live terminal dashboard for PostgreSQL statistics views.",
    )
    parser.add_argument(
        "--view",
        choices=sorted(VIEWS),
        default=None,
        help="Statistics view to display (default: from config, else activity)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        metavar="PATH",
        help="Path to TOML config file",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        metavar="PATH",
        help="Append log records to this file",
    )
    parser.add_argument(
        "--dump-config",
        action="store_true",
        help="Print the default configuration as TOML and exit",
    )
    args = parser.parse_args(argv)

    if args.dump_config:
        print(dump_default_config(), end="")
        return

    config = load_config(args.config)
    _setup_logging(args.log_file or config.get("log_file"))

    try:
        state = _run(args, config)
    except KeyboardInterrupt:
        logger.info("interrupted")
        return

    if state.error is not None:
        print(f"pgmon: {state.error}", file=sys.stderr)
        raise SystemExit(state.exit_code)


if __name__ == "__main__":
    main()
