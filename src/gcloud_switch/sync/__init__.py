"""Profile synchronisation: the merge engine and the git transport."""

from gcloud_switch.sync.git import GitSyncTarget
from gcloud_switch.sync.merge import (
    ConflictResolver,
    MergeChoice,
    MergeReport,
    keep_local,
    merge_profiles,
    parse_choice,
)

__all__ = [
    "ConflictResolver",
    "GitSyncTarget",
    "MergeChoice",
    "MergeReport",
    "keep_local",
    "merge_profiles",
    "parse_choice",
]
