"""Adopt configurations that already exist in the credential backend.

Two entry points:

* :func:`import_profiles` -- one-shot import used by ``gcloud-switch import``
  and by the first start of the interactive UI.
* :func:`reconcile_on_startup` -- run before the UI starts; mirrors the
  backend's configurations according to the profile set's
  :class:`~gcloud_switch.models.SyncMode`.
"""

from __future__ import annotations

import logging

from gcloud_switch.backend import CredentialBackend, DiscoveredConfig
from gcloud_switch.models import Profile, ProfileSet, SyncMode
from gcloud_switch.store import ProfileStore

logger = logging.getLogger(__name__)


def _profile_from(config: DiscoveredConfig) -> Profile:
    profile = Profile(
        user_account=config.account,
        user_project=config.project,
        adc_account=config.account,
        adc_quota_project=config.project,
    )
    profile.touch()
    return profile


def _adopt_active(profile_set: ProfileSet, backend: CredentialBackend) -> bool:
    active = backend.read_active_config()
    if active and active in profile_set.profiles and profile_set.active_profile != active:
        profile_set.active_profile = active
        return True
    return False


def import_profiles(store: ProfileStore, backend: CredentialBackend) -> tuple[list[str], list[str]]:
    """Create a profile for every backend configuration not yet known.

    When anything was imported, the backend's active configuration becomes
    the active profile.

    Returns:
        A ``(imported, skipped)`` pair of profile names.
    """
    configs = backend.discover_configurations()
    imported: list[str] = []
    skipped: list[str] = []
    if not configs:
        return imported, skipped

    with store.edit() as profile_set:
        for config in configs:
            if config.name in profile_set.profiles:
                skipped.append(config.name)
                continue
            profile_set.profiles[config.name] = _profile_from(config)
            imported.append(config.name)
        if imported:
            _adopt_active(profile_set, backend)

    logger.info("imported %d configurations, skipped %d", len(imported), len(skipped))
    return imported, skipped


def reconcile_on_startup(store: ProfileStore, backend: CredentialBackend) -> bool:
    """Bring the stored profile set in line with the backend before the UI starts.

    * Empty profile set: run :func:`import_profiles`.
    * ``SyncMode.ADD``: add configurations that have no profile yet.
    * ``SyncMode.STRICT``: additionally remove profiles whose configuration
      disappeared (and their stored ADC credentials).
    * ``SyncMode.OFF``: leave the profiles alone.

    In every mode the backend's active configuration is adopted as the
    active profile when it names an existing profile.

    Returns:
        ``True`` if the stored document changed.
    """
    current = store.load()
    if not current.profiles:
        imported, _ = import_profiles(store, backend)
        return bool(imported)

    removed: list[str] = []
    changed = False
    with store.edit() as profile_set:
        if profile_set.sync_mode is not SyncMode.OFF:
            configs = backend.discover_configurations()
            known = {config.name for config in configs}
            for config in configs:
                if config.name not in profile_set.profiles:
                    profile_set.profiles[config.name] = _profile_from(config)
                    changed = True
            # An unreadable gcloud directory must not wipe every profile.
            if profile_set.sync_mode is SyncMode.STRICT and configs:
                for name in [n for n in profile_set.profiles if n not in known]:
                    profile_set.remove(name)
                    removed.append(name)
                    changed = True
        changed = _adopt_active(profile_set, backend) or changed

    for name in removed:
        store.remove_artifact(name)
    if changed:
        logger.info("startup reconciliation updated profiles (removed: %s)", removed)
    return changed
