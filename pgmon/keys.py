"""Non-blocking keyboard input."""

from __future__ import annotations

import curses
from typing import Any

QUIT_KEYS = frozenset((ord("q"), ord("Q")))


class InputWatcher:
    """Reads pending keypresses from a curses window without blocking."""

    def __init__(self, stdscr: Any) -> None:
        self._scr = stdscr

    def poll(self, timeout: float) -> int | None:
        """Wait at most *timeout* seconds for a key; None if nothing arrived."""
        self._scr.timeout(max(0, int(timeout * 1000)))
        key = self._scr.getch()
        return None if key == curses.ERR else key

    def quit_requested(self, timeout: float) -> bool:
        """Poll once with *timeout*, then drain keys already buffered.

        Returns True if any of them was a quit key; every other key is dropped.
        """
        quit_seen = False
        key = self.poll(timeout)
        while key is not None:
            if key in QUIT_KEYS:
                quit_seen = True
            key = self.poll(0)
        return quit_seen
