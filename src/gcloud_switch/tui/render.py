"""Drawing the profile table with curses.

Rendering only reads the controller. The text of each row is built by
:func:`row_cells`, which is plain string formatting and can be tested
without a screen.
"""

from __future__ import annotations

import curses
from typing import Optional

from gcloud_switch.models import Column, Role
from gcloud_switch.tui.controller import Controller
from gcloud_switch.tui.state import (
    AddName,
    AddPrimaryAccount,
    AddPrimaryProject,
    AddSecondaryAccount,
    AddSecondaryProject,
    Editing,
    EditField,
)

HELP = "↑↓ row  ←→ column  Enter activate+exit  Alt+Enter activate  r re-auth  a add  e edit  d delete  s sync  q quit"

_NAME_WIDTH = 20
_MARKS = {None: "?", True: "✓", False: "✗"}
_PALETTE_KEYS = {None: "unknown", True: "valid", False: "invalid"}

_WIZARD_PROMPTS = {
    AddName: "Name",
    AddPrimaryAccount: "User account",
    AddPrimaryProject: "User project",
    AddSecondaryAccount: "ADC account",
    AddSecondaryProject: "ADC quota project",
}


def status_mark(valid: Optional[bool]) -> str:
    return _MARKS[valid]


def row_cells(controller: Controller, index: int) -> tuple[str, str, str]:
    """Text for the name cell and the two credential cells of one row."""
    name = controller.names[index]
    profile = controller.profile_set.profiles[name]
    status = controller.auth[index]
    active = "*" if controller.profile_set.active_profile == name else " "
    cells = [f"{active} {name}"]
    for role in Role:
        account = profile.account_for(role) or "-"
        project = profile.project_for(role) or "-"
        cells.append(f"{status_mark(status.get(role))} {account} / {project}")
    return cells[0], cells[1], cells[2]


def input_line(controller: Controller) -> Optional[str]:
    """The prompt line for the current mode, or ``None`` in modes without input."""
    mode = controller.state.mode
    prompt = _WIZARD_PROMPTS.get(type(mode))
    if prompt is not None:
        return f"{prompt}: {mode.buffer}"
    if isinstance(mode, Editing):
        which = "User" if mode.role is Role.PRIMARY else "ADC"
        marker_account = ">" if mode.field is EditField.ACCOUNT else " "
        marker_project = ">" if mode.field is EditField.PROJECT else " "
        return (
            f"{which} {marker_account}account: {mode.account}   "
            f"{marker_project}project: {mode.project}"
        )
    return None


def suggestion_window(count: int, cursor: int, limit: int) -> range:
    """Indices of the suggestions to draw, at most *limit*, keeping *cursor* in view."""
    limit = max(min(limit, count), 0)
    start = min(max(cursor - limit + 1, 0), count - limit)
    return range(start, start + limit)


def _put(screen: "curses.window", y: int, x: int, text: str, attr: int = 0) -> None:
    height, width = screen.getmaxyx()
    if y < 0 or y >= height or x >= width:
        return
    try:
        screen.addnstr(y, x, text, max(0, width - x - 1), attr)
    except curses.error:
        pass


def render(screen: "curses.window", controller: Controller, palette: dict[str, int]) -> None:
    """Redraw the whole screen from *controller*'s current state."""
    state = controller.state
    screen.erase()
    height, width = screen.getmaxyx()
    cell_width = max((width - _NAME_WIDTH - 2) // 2, 10)
    header_attr = curses.A_BOLD | palette.get("header", 0)

    sync_mode = controller.profile_set.sync_mode.value
    _put(screen, 0, 0, f"gcloud-switch   sync: {sync_mode}", header_attr)
    _put(screen, 2, 0, "  Profile".ljust(_NAME_WIDTH), header_attr)
    _put(screen, 2, _NAME_WIDTH, "User account / project", header_attr)
    _put(screen, 2, _NAME_WIDTH + cell_width, "ADC account / quota project", header_attr)

    if not controller.names:
        _put(screen, 4, 2, "No profiles. Press 'a' to add one.", curses.A_DIM)

    top = 3
    # Keep the selected row in view when the table is taller than the screen.
    visible = max(height - top - 4, 1)
    first = max(0, state.selected_row - visible + 1)
    for offset, index in enumerate(range(first, min(len(controller.names), first + visible))):
        y = top + offset
        name_cell, primary_cell, secondary_cell = row_cells(controller, index)
        selected = index == state.selected_row
        column = state.selected_column
        status = controller.auth[index]

        name_attr = curses.A_BOLD if name_cell.startswith("*") else 0
        if selected and column is Column.BOTH:
            name_attr |= curses.A_REVERSE
        _put(screen, y, 0, name_cell[:_NAME_WIDTH - 1].ljust(_NAME_WIDTH), name_attr)

        for role, cell, x in (
            (Role.PRIMARY, primary_cell, _NAME_WIDTH),
            (Role.SECONDARY, secondary_cell, _NAME_WIDTH + cell_width),
        ):
            attr = palette.get(_PALETTE_KEYS[status.get(role)], 0)
            if selected and role in column.roles:
                attr |= curses.A_REVERSE
            _put(screen, y, x, cell[:cell_width - 1], attr)

    prompt = input_line(controller)
    mode = state.mode
    if isinstance(mode, Editing) and mode.cursor is not None:
        suggestions = mode.suggestions or ()
        window = suggestion_window(
            len(suggestions), mode.cursor, max(height - top - len(controller.names) - 5, 1)
        )
        base = height - 3 - len(window)
        for offset, index in enumerate(window):
            attr = curses.A_REVERSE if index == mode.cursor else curses.A_DIM
            _put(screen, base + offset, 2, f" {suggestions[index]} ", attr)
    if prompt is not None:
        _put(screen, height - 3, 0, prompt, curses.A_BOLD)
    if state.status:
        _put(screen, height - 2, 0, state.status)
    _put(screen, height - 1, 0, HELP, curses.A_DIM)
    screen.refresh()
