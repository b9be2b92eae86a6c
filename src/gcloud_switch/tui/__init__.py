"""Interactive terminal UI: state machine, effect runner and curses front end."""

from gcloud_switch.tui.app import run_interactive
from gcloud_switch.tui.controller import Controller

__all__ = ["Controller", "run_interactive"]
