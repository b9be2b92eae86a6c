"""Tests for gcloud_switch.tui.runner.EffectRunner."""

from __future__ import annotations

from gcloud_switch.models import Column, Profile, Role, SyncMode
from gcloud_switch.tui.effects import (
    Activate,
    DeleteProfile,
    FetchProjects,
    LoadAccountSuggestions,
    PersistProfile,
    Reload,
    SetSyncMode,
    VerifyThenActivate,
)
from gcloud_switch.tui.state import ConfirmDelete, EditField, EditPrimary, Key, KeyCode, Normal, PendingKind


def _type(controller, text: str) -> None:
    for char in text:
        controller.handle(Key.of(char))


class TestWizardScenario:
    def test_add_profile_persists_once_and_reloads_once(self, runner, store, fake_backend) -> None:
        runner.reload()
        controller = runner.controller
        generation = runner.scheduler.generation
        reloads = runner.reloads

        controller.handle(Key.of("a"))
        for text in ("work", "me@x.com", "proj", "", ""):
            _type(controller, text)
            effects = controller.handle(Key(KeyCode.ENTER))
            assert runner.run(effects) is True

        assert runner.reloads == reloads + 1
        assert runner.scheduler.generation == generation + 1
        stored = store.get("work")
        assert stored.adc_account == "me@x.com"
        assert stored.adc_quota_project == "proj"
        assert stored.updated_at is not None
        assert controller.names == ["work"]
        assert ("create_configuration", "work", "me@x.com", "proj") in fake_backend.calls

    def test_sync_off_skips_backend_configuration(self, runner, store, fake_backend) -> None:
        store.set_sync_mode(SyncMode.OFF)
        runner.reload()
        runner.run([PersistProfile("work", Profile(user_account="u"), created=True), Reload()])
        assert not [c for c in fake_backend.calls if c[0] == "create_configuration"]


class TestDeleteScenario:
    def test_delete_active_profile(self, runner, store, fake_backend) -> None:
        store.add_or_replace("work", Profile(user_account="u"))
        store.add_or_replace("home", Profile(user_account="h"))
        store.set_active("work")
        runner.reload()
        controller = runner.controller
        assert controller.selected_name == "work"

        controller.handle(Key.of("d"))
        assert runner.run(controller.handle(Key.of("y"))) is True

        ps = store.load()
        assert ps.names == ["home"]
        assert ps.active_profile is None
        assert controller.names == ["home"]
        assert ("delete_configuration", "work") in fake_backend.calls

    def test_failure_aborts_and_restores_mode(self, runner, store) -> None:
        store.add_or_replace("work", Profile())
        runner.reload()
        store.delete("work")
        controller = runner.controller
        controller.handle(Key.of("d"))
        reloads = runner.reloads

        assert runner.run(controller.handle(Key.of("y"))) is False
        assert controller.state.mode == ConfirmDelete("work")
        assert controller.state.status == "Profile 'work' not found"
        assert runner.reloads == reloads


class TestActivation:
    def test_activate_sets_active_and_status(self, runner, store, fake_backend) -> None:
        store.add_or_replace("work", Profile(user_account="u@x.com", user_project="p"))
        runner.reload()
        assert runner.run([Activate("work", Column.PRIMARY, exit_after=True)]) is True
        assert fake_backend.calls[-1] == ("activate_primary", "work", "u@x.com", "p")
        assert store.load().active_profile == "work"
        assert runner.controller.state.status == "Activated user config for 'work'."
        assert runner.controller.state.quit is True

    def test_backend_failure_reported_on_status(self, runner, store, fake_backend) -> None:
        store.add_or_replace("work", Profile(user_account="u@x.com"))
        runner.reload()
        fake_backend.fail_activation = "gcloud config set failed"
        assert runner.run([Activate("work", Column.PRIMARY, exit_after=True)]) is False
        assert runner.controller.state.status == "gcloud config set failed"
        assert runner.controller.state.quit is False
        assert store.load().active_profile is None

    def test_verify_then_activate_valid(self, runner, store, fake_backend) -> None:
        store.add_or_replace("work", Profile(user_account="u@x.com"))
        runner.reload()
        fake_backend.valid["u@x.com"] = True
        effect = VerifyThenActivate("work", Column.PRIMARY, False, ((Role.PRIMARY, "u@x.com"),))
        assert runner.run([effect]) is True
        assert store.load().active_profile == "work"
        assert runner.controller.auth[0].primary is True

    def test_verify_then_activate_invalid_defers(self, runner, store, fake_backend) -> None:
        store.add_or_replace("work", Profile(user_account="u@x.com"))
        runner.reload()
        effect = VerifyThenActivate("work", Column.PRIMARY, True, ((Role.PRIMARY, "u@x.com"),))
        assert runner.run([effect]) is True
        pending = runner.controller.state.pending_action
        assert pending.kind is PendingKind.REAUTH_AND_ACTIVATE
        assert store.load().active_profile is None


class TestOtherEffects:
    def test_set_sync_mode(self, runner, store) -> None:
        runner.reload()
        runner.run([SetSyncMode(SyncMode.ADD), Reload()])
        assert store.load().sync_mode is SyncMode.ADD
        assert runner.controller.profile_set.sync_mode is SyncMode.ADD

    def test_load_account_suggestions(self, runner, store, fake_backend) -> None:
        store.add_or_replace("work", Profile(user_account="u@x.com", user_project="p"))
        runner.reload()
        fake_backend.known_accounts = ["other@x.com"]
        controller = runner.controller
        controller.state.mode = EditPrimary("work", EditField.ACCOUNT, "u@x.com", "p")
        runner.run([LoadAccountSuggestions()])
        assert controller.state.mode.account_suggestions == ("other@x.com", "u@x.com")

    def test_fetch_projects_goes_to_fetcher(self, runner, fake_backend) -> None:
        fake_backend.projects["u@x.com"] = ["p1", "p2"]
        runner.run([FetchProjects("u@x.com")])
        runner.fetcher.join(timeout=5)
        results = runner.fetcher.drain()
        assert [r.projects for r in results] == [("p1", "p2")]

    def test_reload_resets_mode_independent_state(self, runner, store) -> None:
        runner.reload()
        assert runner.controller.state.mode == Normal()
        assert runner.reloads == 1
