"""The interactive profile switcher.

:func:`run_interactive` prepares the store and the background workers,
takes over the terminal and runs :func:`event_loop` until the user quits or
an activation asks to exit. One thread owns all UI state; background results
arrive only through the workers' queues and are drained once per frame.
"""

from __future__ import annotations

import logging
import signal
from typing import Any, Optional, Protocol

from gcloud_switch.backend import CredentialBackend, create_default_backend
from gcloud_switch.discovery import reconcile_on_startup
from gcloud_switch.store import ProfileStore
from gcloud_switch.tui.controller import Controller
from gcloud_switch.tui.render import render
from gcloud_switch.tui.runner import EffectRunner
from gcloud_switch.tui.state import Key
from gcloud_switch.tui.suspension import run_pending_action
from gcloud_switch.tui.terminal import CursesTerminal, open_terminal
from gcloud_switch.verification import ProjectFetcher, VerificationScheduler

logger = logging.getLogger(__name__)


class LoopTerminal(Protocol):
    def draw(self, controller: Controller) -> None: ...

    def read_key(self) -> Optional[Key]: ...

    def release(self) -> None: ...

    def reacquire(self) -> None: ...


class _ScreenTerminal:
    """Adapts :class:`CursesTerminal` to the loop by adding drawing."""

    def __init__(self, terminal: CursesTerminal) -> None:
        self._terminal = terminal

    def draw(self, controller: Controller) -> None:
        render(self._terminal.screen, controller, self._terminal.palette)

    def read_key(self) -> Optional[Key]:
        return self._terminal.read_key()

    def release(self) -> None:
        self._terminal.release()

    def reacquire(self) -> None:
        self._terminal.reacquire()


def event_loop(controller: Controller, runner: EffectRunner, terminal: LoopTerminal) -> None:
    """Drain results, draw, handle one key, then run any pending action.

    Returns when the controller's quit flag is set or when a pending action
    ends the session with the terminal already released.
    """
    while True:
        for result in runner.scheduler.drain():
            controller.apply_verification(result)
        for projects in runner.fetcher.drain():
            controller.apply_projects(projects)
        terminal.draw(controller)

        key = terminal.read_key()
        if key is not None:
            runner.run(controller.handle(key))
        if controller.state.quit:
            return
        if run_pending_action(controller, runner, terminal):
            return


_EXIT_SIGNALS = (signal.SIGTERM, signal.SIGHUP)


def _signal_exit(signum: int, frame: Any) -> None:  # noqa: ANN401
    """Turn SIGTERM/SIGHUP into ``SystemExit`` so the terminal gets restored."""
    raise SystemExit(128 + signum)


def run_interactive(
    store: Optional[ProfileStore] = None,
    backend: Optional[CredentialBackend] = None,
) -> Optional[str]:
    """Run the interactive UI until the user leaves it.

    Startup failures (unusable store, unreadable profile document) propagate
    before the terminal is touched.

    Returns:
        The last status message, for printing once the terminal is restored.
    """
    store = store or ProfileStore()
    backend = backend or create_default_backend(store)
    if reconcile_on_startup(store, backend):
        logger.info("profile set reconciled with gcloud configurations")

    controller = Controller()
    scheduler = VerificationScheduler(backend.is_valid)
    fetcher = ProjectFetcher(backend.list_projects_for)
    runner = EffectRunner(controller, store, backend, scheduler, fetcher)

    previous = {signum: signal.signal(signum, _signal_exit) for signum in _EXIT_SIGNALS}
    try:
        runner.reload()
        with open_terminal() as terminal:
            event_loop(controller, runner, _ScreenTerminal(terminal))
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)
        scheduler.shutdown()
        fetcher.shutdown()
    return controller.state.status
