"""Merging a remote copy of the profile set into the local one.

Per profile name found in the remote set:

* missing locally -- the remote copy is inserted;
* remote ``updated_at`` newer -- the remote copy replaces the local one;
* equal non-zero timestamps but different values -- a conflict, settled by
  the caller's resolver (keep local unless it answers "remote");
* anything else -- the local copy stays.

Profiles that exist only locally are never removed. A missing or zero
timestamp counts as older than any real one.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Callable

from gcloud_switch.models import Profile, ProfileSet

logger = logging.getLogger(__name__)


class MergeChoice(str, enum.Enum):
    LOCAL = "local"
    REMOTE = "remote"


ConflictResolver = Callable[[str, Profile, Profile], MergeChoice]
"""Called as ``resolve(name, local, remote)`` for every conflicting profile."""


def keep_local(name: str, local: Profile, remote: Profile) -> MergeChoice:
    """Resolver that never takes the remote side."""
    return MergeChoice.LOCAL


def parse_choice(answer: str) -> MergeChoice:
    """Interpret a typed answer to the conflict prompt.

    Anything that does not start with ``r`` keeps the local copy.
    """
    if answer.strip().lower().startswith("r"):
        return MergeChoice.REMOTE
    return MergeChoice.LOCAL


@dataclass
class MergeReport:
    """Which profiles a merge touched."""

    added: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    conflicts: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.added or self.updated)


def merge_profiles(
    local: ProfileSet,
    remote: ProfileSet,
    resolve: ConflictResolver = keep_local,
) -> tuple[ProfileSet, MergeReport]:
    """Merge *remote* into a copy of *local*.

    The local ``active_profile`` and ``sync_mode`` are kept. Neither input
    is modified.

    Args:
        local: This machine's profile set.
        remote: The profile set read from the synchronisation target.
        resolve: Decides conflicts between equally recent, different copies.

    Returns:
        The merged set and a :class:`MergeReport`.
    """
    merged = local.model_copy(deep=True)
    report = MergeReport()
    for name, remote_profile in remote.profiles.items():
        local_profile = merged.profiles.get(name)
        if local_profile is None:
            merged.profiles[name] = remote_profile.model_copy()
            report.added.append(name)
            continue

        local_ts = local_profile.updated_at or 0
        remote_ts = remote_profile.updated_at or 0
        if remote_ts > local_ts:
            merged.profiles[name] = remote_profile.model_copy()
            report.updated.append(name)
        elif remote_ts == local_ts and remote_ts != 0 and local_profile != remote_profile:
            report.conflicts.append(name)
            choice = resolve(name, local_profile, remote_profile)
            logger.info("conflict on %r resolved as %s", name, choice.value)
            if choice is MergeChoice.REMOTE:
                merged.profiles[name] = remote_profile.model_copy()
                report.updated.append(name)
    return merged, report
