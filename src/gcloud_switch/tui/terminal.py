"""Terminal ownership for the interactive UI (curses).

:func:`open_terminal` puts the terminal into the UI's mode and guarantees it
is restored when the block exits, whether normally, through an exception or
through ``SystemExit``. :class:`CursesTerminal` decodes key presses and hands
the terminal over to a child process and back again
(:meth:`~CursesTerminal.release` / :meth:`~CursesTerminal.reacquire`).
"""

from __future__ import annotations

import contextlib
import curses
import logging
from typing import Iterator, Optional

from gcloud_switch.tui.state import Key, KeyCode

logger = logging.getLogger(__name__)

# Milliseconds to wait for a key before the loop redraws with fresh results.
POLL_INTERVAL_MS = 200

_ESC = "\x1b"
_ESCAPE_DELAY_MS = 25

_SPECIAL_KEYS = {
    curses.KEY_UP: KeyCode.UP,
    curses.KEY_DOWN: KeyCode.DOWN,
    curses.KEY_LEFT: KeyCode.LEFT,
    curses.KEY_RIGHT: KeyCode.RIGHT,
    curses.KEY_ENTER: KeyCode.ENTER,
    curses.KEY_BACKSPACE: KeyCode.BACKSPACE,
}

_CONTROL_CHARS = {
    "\n": KeyCode.ENTER,
    "\r": KeyCode.ENTER,
    "\t": KeyCode.TAB,
    "\x7f": KeyCode.BACKSPACE,
    "\b": KeyCode.BACKSPACE,
}


def decode_key(ch: object, follow: Optional[object] = None) -> Optional[Key]:
    """Translate a ``get_wch`` result into a :class:`Key`.

    Args:
        ch: The value read, a ``str`` for characters or an ``int`` for
            special keys.
        follow: For an escape character, whatever arrived right after it.
            Escape followed by Enter is Alt+Enter; a lone escape is Esc.

    Returns:
        The decoded key, or ``None`` for keys the UI does not use.
    """
    if isinstance(ch, int):
        code = _SPECIAL_KEYS.get(ch)
        return Key(code) if code is not None else None
    if ch == _ESC:
        if follow is None:
            return Key(KeyCode.ESC)
        inner = decode_key(follow)
        if inner is None:
            return None
        return Key(inner.code, inner.char, alt=True)
    if ch in _CONTROL_CHARS:
        return Key(_CONTROL_CHARS[ch])
    if isinstance(ch, str) and ch.isprintable():
        return Key.of(ch)
    return None


class CursesTerminal:
    """The curses screen as seen by the event loop.

    Args:
        screen: The ``stdscr`` window returned by ``curses.initscr``.
        poll_ms: Key wait timeout in milliseconds.
    """

    def __init__(self, screen: "curses.window", poll_ms: int = POLL_INTERVAL_MS) -> None:
        self.screen = screen
        self.poll_ms = poll_ms
        self.palette: dict[str, int] = {}

    def setup(self) -> None:
        """Configure input handling and colours on a freshly initialised screen."""
        self.screen.keypad(True)
        self.screen.timeout(self.poll_ms)
        with contextlib.suppress(curses.error):
            curses.curs_set(0)
        if hasattr(curses, "set_escdelay"):
            curses.set_escdelay(_ESCAPE_DELAY_MS)
        self.palette = _init_colors()

    def read_key(self) -> Optional[Key]:
        """Wait up to ``poll_ms`` for a key press.

        Returns:
            The decoded key, or ``None`` on timeout or for an unused key.
        """
        try:
            ch = self.screen.get_wch()
        except curses.error:
            return None
        if ch == curses.KEY_RESIZE:
            return None
        follow = None
        if ch == _ESC:
            self.screen.nodelay(True)
            try:
                follow = self.screen.get_wch()
            except curses.error:
                follow = None
            finally:
                self.screen.nodelay(False)
                self.screen.timeout(self.poll_ms)
        return decode_key(ch, follow)

    def release(self) -> None:
        """Hand the terminal back to normal (cooked) mode for a child process."""
        curses.def_prog_mode()
        curses.endwin()
        logger.debug("terminal released")

    def reacquire(self) -> None:
        """Take the terminal back after :meth:`release` and clear the screen."""
        curses.reset_prog_mode()
        with contextlib.suppress(curses.error):
            curses.curs_set(0)
        self.screen.keypad(True)
        self.screen.timeout(self.poll_ms)
        self.screen.clear()
        self.screen.refresh()
        logger.debug("terminal reacquired")


def _init_colors() -> dict[str, int]:
    palette = {"valid": 0, "invalid": 0, "unknown": 0, "header": 0, "active": 0}
    if not curses.has_colors():
        return palette
    try:
        curses.start_color()
        curses.use_default_colors()
        curses.init_pair(1, curses.COLOR_GREEN, -1)
        curses.init_pair(2, curses.COLOR_RED, -1)
        curses.init_pair(3, curses.COLOR_YELLOW, -1)
        curses.init_pair(4, curses.COLOR_CYAN, -1)
    except curses.error:
        return palette
    palette["valid"] = curses.color_pair(1)
    palette["invalid"] = curses.color_pair(2)
    palette["unknown"] = curses.color_pair(3)
    palette["header"] = curses.color_pair(4)
    palette["active"] = curses.color_pair(1)
    return palette


@contextlib.contextmanager
def open_terminal(poll_ms: int = POLL_INTERVAL_MS) -> Iterator[CursesTerminal]:
    """Own the terminal for the duration of the block.

    Restoration is unconditional and skipped only when the terminal was
    already released and never reacquired.
    """
    screen = curses.initscr()
    try:
        curses.noecho()
        curses.cbreak()
        terminal = CursesTerminal(screen, poll_ms)
        terminal.setup()
        yield terminal
    finally:
        if not curses.isendwin():
            screen.keypad(False)
            curses.nocbreak()
            curses.echo()
            curses.endwin()
