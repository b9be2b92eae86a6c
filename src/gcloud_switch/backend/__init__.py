"""Credential backends.

The main entry points are:

- :class:`CredentialBackend` -- abstract capability surface consumed by the
  UI, the verification scheduler and the sub-commands.
- :class:`GcloudBackend` -- the gcloud CLI implementation.
- :func:`create_default_backend` -- factory wiring a :class:`GcloudBackend`
  to a profile store.
"""

from __future__ import annotations

from gcloud_switch.backend.base import CredentialBackend, DiscoveredConfig
from gcloud_switch.backend.gcloud import GcloudBackend
from gcloud_switch.store import ProfileStore


def create_default_backend(store: ProfileStore) -> CredentialBackend:
    """Return the backend used by the CLI and the interactive UI."""
    return GcloudBackend(store)


__all__ = [
    "CredentialBackend",
    "DiscoveredConfig",
    "GcloudBackend",
    "create_default_backend",
]
