"""Canonical Pydantic models shared across all gcloud-switch modules.

This is the single source of truth for data shapes in the project:

**Persisted models** -- serialised as JSON in the user's config directory:
    :class:`Profile`, :class:`ProfileSet` (``profiles.json``) and
    :class:`SyncConfig` (``sync-config.json``).

**Enumerations** shared by the store, the credential backend and the UI:
    :class:`SyncMode`, :class:`Role` and :class:`Column`.

Missing optional fields default rather than error, so documents written by
older versions (without ``updated_at`` or ``sync_mode``) still load.
"""

from __future__ import annotations

import enum
import time
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class SyncMode(str, enum.Enum):
    """How startup discovery mirrors gcloud's own configurations.

    ``STRICT`` adds new configurations and removes profiles whose
    configuration disappeared, ``ADD`` only adds, ``OFF`` leaves the
    profile set alone.
    """

    STRICT = "strict"
    ADD = "add"
    OFF = "off"

    def next(self) -> "SyncMode":
        """Return the mode that follows this one in the UI's cycle order."""
        order = list(SyncMode)
        return order[(order.index(self) + 1) % len(order)]


class Role(str, enum.Enum):
    """The two credential roles a profile carries."""

    PRIMARY = "primary"  # gcloud CLI user account + project
    SECONDARY = "secondary"  # application-default credentials + quota project


class Column(str, enum.Enum):
    """Which credential(s) of a profile the UI cursor points at."""

    BOTH = "both"
    PRIMARY = "primary"
    SECONDARY = "secondary"

    @property
    def roles(self) -> tuple[Role, ...]:
        """The credential roles implied by this column."""
        if self is Column.PRIMARY:
            return (Role.PRIMARY,)
        if self is Column.SECONDARY:
            return (Role.SECONDARY,)
        return (Role.PRIMARY, Role.SECONDARY)

    def left(self) -> "Column":
        order = list(Column)
        return order[max(order.index(self) - 1, 0)]

    def right(self) -> "Column":
        order = list(Column)
        return order[min(order.index(self) + 1, len(order) - 1)]


class Profile(BaseModel):
    """A named pair of credential references plus their projects.

    ``updated_at`` is a logical clock (seconds since the epoch) used only to
    order concurrent edits during a sync pull. ``None`` or ``0`` means "no
    known modification time" and loses against any timestamp.
    """

    user_account: str = ""
    user_project: str = ""
    adc_account: str = ""
    adc_quota_project: str = ""
    updated_at: Optional[int] = None

    def touch(self) -> None:
        """Stamp the profile with the current time."""
        self.updated_at = int(time.time())

    def account_for(self, role: Role) -> str:
        return self.user_account if role is Role.PRIMARY else self.adc_account

    def project_for(self, role: Role) -> str:
        return self.user_project if role is Role.PRIMARY else self.adc_quota_project

    def with_role(self, role: Role, account: str, project: str) -> "Profile":
        """Return a copy with *role*'s account and project replaced."""
        if role is Role.PRIMARY:
            update = {"user_account": account, "user_project": project}
        else:
            update = {"adc_account": account, "adc_quota_project": project}
        return self.model_copy(update=update)

    def same_values(self, other: "Profile") -> bool:
        """Compare the four credential fields, ignoring the timestamp."""
        return (
            self.user_account == other.user_account
            and self.user_project == other.user_project
            and self.adc_account == other.adc_account
            and self.adc_quota_project == other.adc_quota_project
        )


class ProfileSet(BaseModel):
    """The whole persisted profile document.

    ``profiles`` preserves the document's key order. The store writes keys
    sorted by name so that the file diffs cleanly under version control.

    A dangling ``active_profile`` (naming a profile that no longer exists)
    is cleared on validation.
    """

    active_profile: Optional[str] = None
    sync_mode: SyncMode = SyncMode.STRICT
    profiles: dict[str, Profile] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _drop_dangling_active(self) -> "ProfileSet":
        if self.active_profile is not None and self.active_profile not in self.profiles:
            self.active_profile = None
        return self

    @property
    def names(self) -> list[str]:
        return list(self.profiles)

    def remove(self, name: str) -> bool:
        """Remove *name*, clearing ``active_profile`` if it pointed there.

        Returns:
            ``True`` if a profile was removed.
        """
        if name not in self.profiles:
            return False
        del self.profiles[name]
        if self.active_profile == name:
            self.active_profile = None
        return True

    def ordered_by_name(self) -> "ProfileSet":
        """Return a copy whose profiles are ordered by name."""
        ordered = {name: self.profiles[name] for name in sorted(self.profiles)}
        return self.model_copy(update={"profiles": ordered})


class SyncConfig(BaseModel):
    """Where profile metadata is synchronised to (``sync-config.json``)."""

    remote_url: str = Field(
        default="",
        description="Git remote URL, e.g. git@github.com:user/profiles.git",
    )
    branch: str = Field(default="main", description="Branch to push and pull")

    @property
    def is_configured(self) -> bool:
        return bool(self.remote_url.strip())
