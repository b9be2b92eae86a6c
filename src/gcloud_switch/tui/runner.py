"""Executes controller effects against the outside world."""

from __future__ import annotations

import logging
from typing import Iterable

from gcloud_switch.backend.base import CredentialBackend
from gcloud_switch.exceptions import GcloudSwitchError, NotFoundError
from gcloud_switch.models import SyncMode
from gcloud_switch.store import ProfileStore
from gcloud_switch.tui.controller import Controller
from gcloud_switch.tui.effects import (
    Activate,
    DeleteProfile,
    Effect,
    FetchProjects,
    LoadAccountSuggestions,
    PersistProfile,
    Reload,
    SetSyncMode,
    VerifyThenActivate,
)
from gcloud_switch.verification import ProjectFetcher, VerificationScheduler

logger = logging.getLogger(__name__)


class EffectRunner:
    """Run effects in order on the UI thread.

    The first effect that raises a
    :class:`~gcloud_switch.exceptions.GcloudSwitchError` stops the batch and
    is reported through :meth:`Controller.abort`. Nothing is retried.

    Args:
        controller: The state machine that requested the effects.
        store: Durable profile storage.
        backend: Credential backend used for activation and suggestions.
        scheduler: Background verification, restarted on every reload.
        fetcher: Background project list lookups.
    """

    def __init__(
        self,
        controller: Controller,
        store: ProfileStore,
        backend: CredentialBackend,
        scheduler: VerificationScheduler,
        fetcher: ProjectFetcher,
    ) -> None:
        self.controller = controller
        self.store = store
        self.backend = backend
        self.scheduler = scheduler
        self.fetcher = fetcher
        self.reloads = 0

    def run(self, effects: Iterable[Effect]) -> bool:
        """Execute *effects*, including any follow-ups they produce.

        Returns:
            ``True`` if every effect succeeded.
        """
        pending = list(effects)
        while pending:
            effect = pending.pop(0)
            try:
                pending[:0] = self._execute(effect)
            except GcloudSwitchError as exc:
                logger.warning("%s failed: %s", type(effect).__name__, exc)
                self.controller.abort(str(exc))
                return False
        return True

    def reload(self) -> None:
        """Replace the controller's profile data and start a new verification generation."""
        self.controller.load(self.store.load())
        self.scheduler.schedule(self.controller.profiles)
        self.reloads += 1

    def _execute(self, effect: Effect) -> list[Effect]:
        controller = self.controller
        if isinstance(effect, PersistProfile):
            if effect.created and controller.profile_set.sync_mode is not SyncMode.OFF:
                self.backend.create_configuration(
                    effect.name, effect.profile.user_account, effect.profile.user_project
                )
            self.store.add_or_replace(effect.name, effect.profile)
        elif isinstance(effect, DeleteProfile):
            self.store.delete(effect.name)
            if controller.profile_set.sync_mode is not SyncMode.OFF:
                self.backend.delete_configuration(effect.name)
        elif isinstance(effect, SetSyncMode):
            self.store.set_sync_mode(effect.mode)
        elif isinstance(effect, Reload):
            self.reload()
        elif isinstance(effect, Activate):
            profile = controller.profile_set.profiles.get(effect.name)
            if profile is None:
                raise NotFoundError(f"Profile '{effect.name}' not found")
            message = self.backend.activate(effect.name, profile, effect.column)
            self.store.set_active(effect.name)
            controller.activated(effect.name, message, effect.exit_after)
        elif isinstance(effect, VerifyThenActivate):
            verdicts = {role: self.scheduler.check_now(account) for role, account in effect.checks}
            return controller.activation_checked(
                effect.name, effect.column, effect.exit_after, verdicts
            )
        elif isinstance(effect, LoadAccountSuggestions):
            controller.show_account_suggestions(self.backend.list_known_accounts())
        elif isinstance(effect, FetchProjects):
            self.fetcher.request(effect.account)
        return []
