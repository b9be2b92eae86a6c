"""Abstract credential backend.

The interactive UI and the sub-commands never talk to gcloud directly; they
go through a :class:`CredentialBackend`. The capability surface is small:

- :meth:`~CredentialBackend.is_valid` -- best-effort validity check, safe to
  call from a worker thread, ``False`` on any failure.
- :meth:`~CredentialBackend.interactive_reauthenticate` -- blocking login
  that owns the terminal until it returns.
- :meth:`~CredentialBackend.activate_primary` /
  :meth:`~CredentialBackend.activate_secondary` -- make a profile's
  credentials the current ones.
- :meth:`~CredentialBackend.list_known_accounts` /
  :meth:`~CredentialBackend.list_projects_for` -- suggestion sources.

To support another credential system, subclass :class:`CredentialBackend`
and implement the abstract methods. Discovery hooks
(:meth:`~CredentialBackend.discover_configurations`,
:meth:`~CredentialBackend.read_active_config`) default to "nothing found".

See Also:
    :class:`~gcloud_switch.backend.gcloud.GcloudBackend` -- the gcloud
    implementation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import NamedTuple, Optional

from gcloud_switch.models import Column, Profile, Role


class DiscoveredConfig(NamedTuple):
    """A configuration found in the backend's own settings."""

    name: str
    account: str
    project: str


class CredentialBackend(ABC):
    """Abstract base class for credential backends.

    Methods that change state raise
    :class:`~gcloud_switch.exceptions.BackendError` on failure. Query methods
    never raise; they degrade to ``False`` or an empty list.
    """

    @abstractmethod
    def is_valid(self, account: str) -> bool:
        """Return whether *account*'s stored credential is still usable.

        Called from background workers. Must not touch the terminal and must
        return ``False`` instead of raising.
        """
        ...

    @abstractmethod
    def interactive_reauthenticate(self, name: str, profile: Profile, role: Role) -> None:
        """Run an interactive login for one credential role of a profile.

        The call inherits stdin/stdout/stderr and may drive a browser flow.
        The caller must have released the terminal beforehand.

        Raises:
            BackendError: If the login fails or is cancelled.
        """
        ...

    @abstractmethod
    def activate_primary(self, name: str, account: str, project: str) -> None:
        """Make *account*/*project* the current CLI credentials for profile *name*."""
        ...

    @abstractmethod
    def activate_secondary(self, name: str) -> None:
        """Make profile *name*'s stored application-default credentials current."""
        ...

    @abstractmethod
    def has_secondary_credentials(self, name: str) -> bool:
        """Return whether profile *name* has stored application-default credentials."""
        ...

    @abstractmethod
    def list_known_accounts(self) -> list[str]:
        """Return every account the backend holds credentials for."""
        ...

    @abstractmethod
    def list_projects_for(self, account: str) -> list[str]:
        """Return project ids visible to *account*, or ``[]`` on any failure."""
        ...

    def activate(self, name: str, profile: Profile, column: Column) -> str:
        """Activate the credential(s) selected by *column*.

        Activating both roles activates the primary credentials and then the
        secondary ones only if they have been stored for this profile.

        Returns:
            A one-line status message describing what was activated.

        Raises:
            BackendError: If an activation step fails.
        """
        if column is Column.PRIMARY:
            self.activate_primary(name, profile.user_account, profile.user_project)
            return f"Activated user config for '{name}'."
        if column is Column.SECONDARY:
            self.activate_secondary(name)
            return f"Activated ADC for '{name}'."
        self.activate_primary(name, profile.user_account, profile.user_project)
        if self.has_secondary_credentials(name):
            self.activate_secondary(name)
        return f"Activated profile '{name}'."

    # ------------------------------------------------------------------ #
    # Optional discovery hooks
    # ------------------------------------------------------------------ #

    def discover_configurations(self) -> list[DiscoveredConfig]:
        """Return configurations defined outside gcloud-switch."""
        return []

    def read_active_config(self) -> Optional[str]:
        """Return the name of the backend's currently active configuration."""
        return None

    def create_configuration(self, name: str, account: str, project: str) -> None:
        """Create a backend-side configuration for a new profile (best effort)."""

    def delete_configuration(self, name: str) -> None:
        """Remove the backend-side configuration of a deleted profile (best effort)."""
