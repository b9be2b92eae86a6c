"""Profile store -- the durable copy of the :class:`~gcloud_switch.models.ProfileSet`.

The whole profile set lives in one JSON document (``profiles.json``). Every
mutation is a read-modify-write of that document performed while holding an
advisory file lock (``profiles.json.lock``), so the interactive UI and a
concurrently running sub-command cannot lose each other's writes. Writes go
through :func:`~gcloud_switch.config.atomic_write`.

Next to the document the store keeps one stored application-default
credential per profile (``adc/<name>.json``). These artifacts are derived
data: deleting a profile deletes its artifact.

Example::

    store = ProfileStore()
    store.add_or_replace("work", Profile(user_account="me@example.com"))
    profile_set = store.load()
"""

from __future__ import annotations

import contextlib
import json
import logging
from pathlib import Path
from typing import Iterator, Optional

from filelock import FileLock, Timeout

from gcloud_switch.config import adc_dir, atomic_write, profiles_path
from gcloud_switch.exceptions import NotFoundError, StoreError
from gcloud_switch.models import Profile, ProfileSet, SyncMode

logger = logging.getLogger(__name__)

_LOCK_TIMEOUT = 10.0


class ProfileStore:
    """Load, save and edit the persisted profile document.

    Args:
        path: Location of the profile document. Defaults to
            :func:`~gcloud_switch.config.profiles_path`.
        artifact_dir: Directory for stored ADC credentials. Defaults to
            :func:`~gcloud_switch.config.adc_dir`.
        lock_timeout: Seconds to wait for the advisory lock before giving
            up with :class:`~gcloud_switch.exceptions.StoreError`.

    Raises:
        ConfigError: If the default locations cannot be created. This is a
            fatal startup failure.
    """

    def __init__(
        self,
        path: Optional[Path] = None,
        artifact_dir: Optional[Path] = None,
        lock_timeout: float = _LOCK_TIMEOUT,
    ) -> None:
        self._path = path or profiles_path()
        self._artifact_dir = artifact_dir or adc_dir()
        self._lock = FileLock(f"{self._path}.lock", timeout=lock_timeout)

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------ #
    # Document access
    # ------------------------------------------------------------------ #

    def load(self) -> ProfileSet:
        """Read the profile document.

        Returns:
            The stored :class:`ProfileSet`, or an empty one if the document
            does not exist yet.

        Raises:
            StoreError: If the document cannot be read or is invalid.
        """
        if not self._path.is_file():
            return ProfileSet()
        try:
            text = self._path.read_text(encoding="utf-8")
            data = json.loads(text) if text.strip() else {}
            return ProfileSet.model_validate(data)
        except OSError as exc:
            raise StoreError(f"Cannot read {self._path}: {exc}") from exc
        except (json.JSONDecodeError, ValueError) as exc:
            raise StoreError(f"Invalid profile document at {self._path}: {exc}") from exc

    def save(self, profile_set: ProfileSet) -> None:
        """Replace the stored document with *profile_set*.

        Raises:
            StoreError: If the lock cannot be taken or the write fails.
        """
        data = profile_set.ordered_by_name().model_dump(mode="json")
        text = json.dumps(data, indent=2) + "\n"
        with self._locked():
            try:
                atomic_write(self._path, text)
            except OSError as exc:
                raise StoreError(f"Cannot write {self._path}: {exc}") from exc
        logger.debug("saved %d profiles to %s", len(profile_set.profiles), self._path)

    @contextlib.contextmanager
    def edit(self) -> Iterator[ProfileSet]:
        """Read-modify-write the document under the advisory lock.

        The yielded :class:`ProfileSet` is saved when the block exits
        normally and the set actually changed; an exception inside the
        block discards the changes.

        Example::

            with store.edit() as profile_set:
                profile_set.active_profile = "work"
        """
        with self._locked():
            profile_set = self.load()
            original = profile_set.model_copy(deep=True)
            yield profile_set
            if profile_set != original:
                self.save(profile_set)

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #

    def add_or_replace(self, name: str, profile: Profile) -> Profile:
        """Insert or overwrite *name*, stamping ``updated_at``.

        Returns:
            The stamped profile as stored.
        """
        stored = profile.model_copy()
        stored.touch()
        with self.edit() as profile_set:
            profile_set.profiles[name] = stored
        logger.info("stored profile %r", name)
        return stored

    def delete(self, name: str) -> None:
        """Remove *name*, its active-profile reference, and its ADC artifact.

        Raises:
            NotFoundError: If no profile called *name* exists.
        """
        with self.edit() as profile_set:
            if not profile_set.remove(name):
                raise NotFoundError(f"Profile '{name}' not found")
        self.remove_artifact(name)
        logger.info("deleted profile %r", name)

    def get(self, name: str) -> Profile:
        profile = self.load().profiles.get(name)
        if profile is None:
            raise NotFoundError(f"Profile '{name}' not found")
        return profile

    def set_active(self, name: Optional[str]) -> None:
        with self.edit() as profile_set:
            if name is not None and name not in profile_set.profiles:
                raise NotFoundError(f"Profile '{name}' not found")
            profile_set.active_profile = name

    def set_sync_mode(self, mode: SyncMode) -> None:
        with self.edit() as profile_set:
            profile_set.sync_mode = mode

    # ------------------------------------------------------------------ #
    # Stored ADC credentials
    # ------------------------------------------------------------------ #

    def artifact_path(self, name: str) -> Path:
        return self._artifact_dir / f"{name}.json"

    def has_artifact(self, name: str) -> bool:
        return self.artifact_path(name).is_file()

    def save_artifact(self, name: str, content: str) -> None:
        """Store an ADC credential for *name* with ``0o600`` permissions."""
        try:
            atomic_write(self.artifact_path(name), content, mode=0o600)
        except OSError as exc:
            raise StoreError(f"Cannot store credentials for '{name}': {exc}") from exc

    def remove_artifact(self, name: str) -> None:
        path = self.artifact_path(name)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise StoreError(f"Cannot remove {path}: {exc}") from exc

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    @contextlib.contextmanager
    def _locked(self) -> Iterator[None]:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._lock.acquire()
        except Timeout as exc:
            raise StoreError(
                f"Profile store is locked by another process ({self._lock.lock_file})"
            ) from exc
        except OSError as exc:
            raise StoreError(f"Cannot lock {self._path}: {exc}") from exc
        try:
            yield
        finally:
            self._lock.release()
