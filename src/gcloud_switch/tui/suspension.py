"""Handing the terminal to an interactive login and taking it back.

A re-authentication runs ``gcloud`` attached to the user's terminal, so it
cannot happen while curses owns the screen. The controller only records a
:class:`~gcloud_switch.tui.state.PendingAction`; the event loop calls
:func:`run_pending_action` after handling keys, which:

1. takes (and so clears) the pending action,
2. releases the terminal,
3. runs the interactive login for each requested role,
4. activates the profile if the action asked for it and the login worked,
5. stops there if the activation asked to exit afterwards, leaving the
   terminal released so the final status line lands in the shell,
6. otherwise reacquires the terminal for a full redraw.

No key is read while this runs, so a second pending action cannot appear.
"""

from __future__ import annotations

import logging
from typing import Protocol

from gcloud_switch.exceptions import GcloudSwitchError
from gcloud_switch.models import Role
from gcloud_switch.tui.controller import Controller
from gcloud_switch.tui.effects import Activate, Reload
from gcloud_switch.tui.runner import EffectRunner

logger = logging.getLogger(__name__)


class Terminal(Protocol):
    def release(self) -> None: ...

    def reacquire(self) -> None: ...


_ROLE_LABELS = {Role.PRIMARY: "User", Role.SECONDARY: "ADC"}


def run_pending_action(controller: Controller, runner: EffectRunner, terminal: Terminal) -> bool:
    """Execute the pending action, if any.

    Args:
        controller: Holds the pending action and receives status updates.
        runner: Executes the follow-up reload and activation.
        terminal: The terminal to release and reacquire.

    Returns:
        ``True`` if the UI must exit without being redrawn. The terminal is
        released in that case.
    """
    pending = controller.take_pending()
    if pending is None:
        return False

    terminal.release()
    authenticated = _reauthenticate(controller, runner, pending.name, pending.roles)

    if authenticated and pending.activates:
        runner.run([Activate(pending.name, pending.column, pending.exit_after)])
        if controller.state.quit:
            return True

    terminal.reacquire()
    return False


def _reauthenticate(
    controller: Controller, runner: EffectRunner, name: str, roles: tuple[Role, ...]
) -> bool:
    profile = controller.profile_set.profiles.get(name)
    if profile is None:
        controller.set_status(f"Profile '{name}' no longer exists.")
        return False
    try:
        for role in roles:
            logger.info("re-authenticating %s credentials of %r", role.value, name)
            runner.backend.interactive_reauthenticate(name, profile, role)
    except GcloudSwitchError as exc:
        logger.warning("re-authentication of %r failed: %s", name, exc)
        controller.set_status(f"Re-auth failed: {exc}")
        return False

    labels = " and ".join(_ROLE_LABELS[role] for role in roles) or "Credentials"
    controller.set_status(f"{labels} re-authenticated for '{name}'.")
    # New credentials invalidate every verdict computed so far.
    return runner.run([Reload()])
