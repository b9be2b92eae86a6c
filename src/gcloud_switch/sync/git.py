"""Git-backed synchronisation target.

Only the profile document travels; stored credentials never leave the
machine. All git calls go through the ``git`` executable so that the user's
own SSH keys or credential helpers apply.

Example::

    target = GitSyncTarget(load_sync_config())
    target.push_local(store.load())
    report = target.pull(store, resolve=ask_user)
"""

from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path
from typing import Optional

from gcloud_switch.config import atomic_write, sync_repo_dir
from gcloud_switch.exceptions import SyncError
from gcloud_switch.models import Profile, ProfileSet, SyncConfig
from gcloud_switch.store import ProfileStore
from gcloud_switch.sync.merge import (
    ConflictResolver,
    MergeChoice,
    MergeReport,
    keep_local,
    merge_profiles,
)

logger = logging.getLogger(__name__)

SYNC_FILE = "profiles.json"
_GIT_TIMEOUT = 120


def _dump(profile_set: ProfileSet) -> str:
    data = profile_set.ordered_by_name().model_dump(mode="json")
    return json.dumps(data, indent=2) + "\n"


class GitSyncTarget:
    """A clone of the user's sync remote under the config directory.

    Args:
        config: Remote URL and branch.
        repo_dir: Location of the local clone. Defaults to
            :func:`~gcloud_switch.config.sync_repo_dir`.
        git: Name or path of the git executable.

    Raises:
        SyncError: If *config* has no remote URL.
    """

    def __init__(
        self,
        config: SyncConfig,
        repo_dir: Optional[Path] = None,
        git: str = "git",
    ) -> None:
        if not config.is_configured:
            raise SyncError("Sync is not configured. Run 'gcloud-switch sync init <url>' first.")
        self.config = config
        self.repo_dir = repo_dir or sync_repo_dir()
        self._git = git

    @property
    def remote_ref(self) -> str:
        return f"origin/{self.config.branch}"

    # ------------------------------------------------------------------ #
    # Public operations
    # ------------------------------------------------------------------ #

    def ensure_cloned(self) -> None:
        """Clone the remote unless a clone already exists.

        Tries the configured branch first, then the remote's default branch,
        and for an empty remote falls back to ``git init`` plus ``remote add``;
        the first push then creates the branch.
        """
        if (self.repo_dir / ".git").exists():
            return
        parent = self.repo_dir.parent
        parent.mkdir(parents=True, exist_ok=True)
        url, target = self.config.remote_url, str(self.repo_dir)

        if self._try(["clone", "--branch", self.config.branch, url, target], cwd=parent):
            return
        if self._try(["clone", url, target], cwd=parent):
            return
        logger.info("remote %s looks empty; initialising a fresh repository", url)
        self.repo_dir.mkdir(parents=True, exist_ok=True)
        self._git_run(["init"])
        self._git_run(["remote", "add", "origin", url])

    def fetch_remote(self) -> ProfileSet:
        """Return the profile set on the remote branch.

        An unreachable remote, a missing branch or an unreadable document all
        yield an empty :class:`ProfileSet`.
        """
        self.ensure_cloned()
        if not self._try(["fetch", "origin", self.config.branch]):
            logger.warning("cannot fetch %s from %s", self.config.branch, self.config.remote_url)
            return ProfileSet()
        try:
            content = self._git_run(["show", f"{self.remote_ref}:{SYNC_FILE}"])
        except SyncError as exc:
            logger.info("no profile document on %s: %s", self.remote_ref, exc)
            return ProfileSet()
        try:
            return ProfileSet.model_validate_json(content)
        except ValueError as exc:
            logger.warning("ignoring unreadable remote profile document: %s", exc)
            return ProfileSet()

    def push_local(self, profile_set: ProfileSet) -> None:
        """Commit *profile_set* as the branch's document and push it.

        Raises:
            SyncError: If git fails, except for an empty commit.
        """
        self.ensure_cloned()
        self._write_document(profile_set)
        self._commit("gcloud-switch sync")
        self._git_run(["push", "-u", "origin", f"HEAD:refs/heads/{self.config.branch}"])
        logger.info("pushed %d profiles to %s", len(profile_set.profiles), self.config.remote_url)

    def pull(self, store: ProfileStore, resolve: ConflictResolver = keep_local) -> MergeReport:
        """Merge the remote profile set into the local store.

        Conflicts are resolved first, without holding the store lock, since
        *resolve* may prompt the user. The answers are then replayed in a
        second merge against a fresh read taken under the lock, so writes
        made by other processes in the meantime are kept. A conflict that
        only appears in that second read keeps the local copy.

        The merged set is also committed on top of the remote branch in the
        clone, so that the next push carries it back.

        Returns:
            What the merge changed.
        """
        remote = self.fetch_remote()
        choices: dict[str, MergeChoice] = {}

        def ask(name: str, local: Profile, theirs: Profile) -> MergeChoice:
            choices[name] = resolve(name, local, theirs)
            return choices[name]

        def replay(name: str, local: Profile, theirs: Profile) -> MergeChoice:
            return choices.get(name, MergeChoice.LOCAL)

        merge_profiles(store.load(), remote, ask)
        with store.edit() as current:
            merged, report = merge_profiles(current, remote, replay)
            current.profiles = merged.profiles

        if self._try(["rev-parse", "--verify", "--quiet", self.remote_ref]):
            self._git_run(["checkout", "-B", self.config.branch, self.remote_ref])
        self._write_document(merged)
        self._commit("gcloud-switch sync merge")
        return report

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _write_document(self, profile_set: ProfileSet) -> None:
        try:
            atomic_write(self.repo_dir / SYNC_FILE, _dump(profile_set))
        except OSError as exc:
            raise SyncError(f"Cannot write {self.repo_dir / SYNC_FILE}: {exc}") from exc

    def _commit(self, message: str) -> None:
        self._git_run(["add", SYNC_FILE])
        if not self._try(["commit", "-m", message]):
            logger.debug("nothing to commit in %s", self.repo_dir)

    def _try(self, args: list[str], cwd: Optional[Path] = None) -> bool:
        try:
            self._git_run(args, cwd=cwd)
        except SyncError as exc:
            logger.debug("%s", exc)
            return False
        return True

    def _git_run(self, args: list[str], cwd: Optional[Path] = None) -> str:
        command = [self._git, *args]
        try:
            result = subprocess.run(
                command,
                cwd=cwd or self.repo_dir,
                capture_output=True,
                text=True,
                timeout=_GIT_TIMEOUT,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise SyncError(f"Failed to run git {args[0]}: {exc}") from exc
        if result.returncode != 0:
            detail = result.stderr.strip() or f"exit status {result.returncode}"
            raise SyncError(f"git {args[0]} failed: {detail}")
        return result.stdout
