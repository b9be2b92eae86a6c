"""Side effects requested by the :class:`~gcloud_switch.tui.controller.Controller`.

The controller never performs I/O. Each key press yields a list of these
values, and :class:`~gcloud_switch.tui.runner.EffectRunner` executes them in
order against the profile store, the credential backend and the background
workers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from gcloud_switch.models import Column, Profile, Role, SyncMode


@dataclass(frozen=True)
class PersistProfile:
    """Write *profile* under *name*. ``created`` marks a wizard-added profile."""

    name: str
    profile: Profile
    created: bool = False


@dataclass(frozen=True)
class DeleteProfile:
    name: str


@dataclass(frozen=True)
class SetSyncMode:
    mode: SyncMode


@dataclass(frozen=True)
class Reload:
    """Replace the in-memory profile set from the store and restart verification."""


@dataclass(frozen=True)
class Activate:
    """Activate immediately; the credentials are known to be valid."""

    name: str
    column: Column
    exit_after: bool


@dataclass(frozen=True)
class VerifyThenActivate:
    """Check the credentials synchronously first; some verdicts are still unknown.

    ``checks`` pairs each role whose verdict is unknown with its account.
    """

    name: str
    column: Column
    exit_after: bool
    checks: tuple[tuple[Role, str], ...]


@dataclass(frozen=True)
class LoadAccountSuggestions:
    """Ask the backend for known accounts to open the account suggestion list."""


@dataclass(frozen=True)
class FetchProjects:
    """Start a background project list fetch for *account*."""

    account: str


Effect = Union[
    PersistProfile,
    DeleteProfile,
    SetSyncMode,
    Reload,
    Activate,
    VerifyThenActivate,
    LoadAccountSuggestions,
    FetchProjects,
]
