"""Value types for the interactive UI.

The UI mode is a tagged union: each mode is its own frozen dataclass that
carries only the buffers that mode needs. Transitions build the next mode
explicitly (usually with :func:`dataclasses.replace`), so a handler can never
read a buffer that belongs to another mode.

Wizard modes, in order::

    AddName -> AddPrimaryAccount -> AddPrimaryProject
            -> AddSecondaryAccount -> AddSecondaryProject

Editing modes are :class:`EditPrimary` and :class:`EditSecondary`; both move
between an account sub-field and a project sub-field.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional, Union

from gcloud_switch.models import Column, Role


# --- Keys ---


class KeyCode(str, enum.Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    ENTER = "enter"
    ESC = "esc"
    TAB = "tab"
    BACKSPACE = "backspace"
    CHAR = "char"


@dataclass(frozen=True)
class Key:
    """A decoded key press. ``char`` is set only for :attr:`KeyCode.CHAR`."""

    code: KeyCode
    char: str = ""
    alt: bool = False

    @classmethod
    def of(cls, char: str) -> "Key":
        return cls(KeyCode.CHAR, char)

    def is_char(self, *chars: str) -> bool:
        return self.code is KeyCode.CHAR and self.char in chars


# --- Modes ---


@dataclass(frozen=True)
class Normal:
    pass


@dataclass(frozen=True)
class AddName:
    buffer: str = ""


@dataclass(frozen=True)
class AddPrimaryAccount:
    name: str
    buffer: str = ""


@dataclass(frozen=True)
class AddPrimaryProject:
    name: str
    account: str
    buffer: str = ""


@dataclass(frozen=True)
class AddSecondaryAccount:
    name: str
    account: str
    project: str
    buffer: str = ""


@dataclass(frozen=True)
class AddSecondaryProject:
    name: str
    account: str
    project: str
    secondary_account: str
    buffer: str = ""


WizardMode = Union[
    AddName, AddPrimaryAccount, AddPrimaryProject, AddSecondaryAccount, AddSecondaryProject
]


@dataclass(frozen=True)
class ConfirmDelete:
    name: str


class EditField(str, enum.Enum):
    ACCOUNT = "account"
    PROJECT = "project"


@dataclass(frozen=True)
class Editing:
    """Shared shape of the two editing modes.

    ``account_suggestions`` and ``project_suggestions`` are ``None`` until
    suggestions are first requested for that sub-field. ``cursor`` is the
    highlighted suggestion, or ``None`` while the list is closed.
    """

    name: str
    field: EditField
    account: str
    project: str
    account_suggestions: Optional[tuple[str, ...]] = None
    project_suggestions: Optional[tuple[str, ...]] = None
    cursor: Optional[int] = None

    role = Role.PRIMARY

    @property
    def buffer(self) -> str:
        return self.account if self.field is EditField.ACCOUNT else self.project

    @property
    def suggestions(self) -> Optional[tuple[str, ...]]:
        if self.field is EditField.ACCOUNT:
            return self.account_suggestions
        return self.project_suggestions


@dataclass(frozen=True)
class EditPrimary(Editing):
    role = Role.PRIMARY


@dataclass(frozen=True)
class EditSecondary(Editing):
    role = Role.SECONDARY


Mode = Union[Normal, WizardMode, ConfirmDelete, EditPrimary, EditSecondary]


# --- Verification status ---


@dataclass(frozen=True)
class AuthStatus:
    """Per-profile validity of both roles: ``None`` unknown, else the verdict."""

    primary: Optional[bool] = None
    secondary: Optional[bool] = None

    def get(self, role: Role) -> Optional[bool]:
        return self.primary if role is Role.PRIMARY else self.secondary

    def with_role(self, role: Role, valid: bool) -> "AuthStatus":
        if role is Role.PRIMARY:
            return AuthStatus(valid, self.secondary)
        return AuthStatus(self.primary, valid)


# --- Deferred work ---


class PendingKind(str, enum.Enum):
    REAUTH = "reauth"
    REAUTH_AND_ACTIVATE = "reauth_and_activate"


@dataclass(frozen=True)
class PendingAction:
    """Work that needs the terminal handed over to the credential backend.

    ``roles`` are the credentials to re-authenticate, in order.
    """

    kind: PendingKind
    name: str
    column: Column
    roles: tuple[Role, ...]
    exit_after: bool = False

    @property
    def activates(self) -> bool:
        return self.kind is PendingKind.REAUTH_AND_ACTIVATE


# --- Whole UI state ---


@dataclass
class InteractionState:
    """Everything the UI shows besides the profile data itself."""

    selected_row: int = 0
    selected_column: Column = Column.BOTH
    mode: Mode = field(default_factory=Normal)
    status: Optional[str] = None
    pending_action: Optional[PendingAction] = None
    quit: bool = False
