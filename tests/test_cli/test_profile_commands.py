"""CLI tests for the profile sub-commands using Typer's CliRunner."""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest

from gcloud_switch import __version__
from gcloud_switch.app import app
from gcloud_switch.backend import DiscoveredConfig
from gcloud_switch.exceptions import InvalidUsageError, NotFoundError
from gcloud_switch.models import Profile, SyncMode
from gcloud_switch.store import ProfileStore


@pytest.fixture
def patched_backend(fake_backend):
    with patch("gcloud_switch.backend.create_default_backend", lambda store: fake_backend):
        yield fake_backend


@pytest.mark.usefixtures("isolated_config")
class TestRootOptions:
    def test_version(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"gcloud-switch {__version__}" in result.output

    def test_no_subcommand_runs_interactive_ui(self, cli_runner) -> None:
        with patch("gcloud_switch.tui.run_interactive", return_value="Activated profile 'work'.") as run:
            result = cli_runner.invoke(app, ["--no-color"])
        assert result.exit_code == 0
        run.assert_called_once_with()
        assert "Activated profile 'work'." in result.stdout

    def test_logging_goes_to_file(self, cli_runner, isolated_config) -> None:
        cli_runner.invoke(app, ["--no-color", "list"])
        log_file = isolated_config / "data" / "gcloud-switch" / "logs" / "gcloud-switch.log"
        assert log_file.exists()


@pytest.mark.usefixtures("isolated_config")
class TestAdd:
    def test_add_with_defaults(self, cli_runner, patched_backend) -> None:
        result = cli_runner.invoke(app, ["--no-color", "add", "work", "-a", "me@x.com", "-p", "proj"])
        assert result.exit_code == 0, result.output
        assert "Profile 'work' added." in result.output
        profile = ProfileStore().get("work")
        assert (profile.adc_account, profile.adc_quota_project) == ("me@x.com", "proj")
        assert ("create_configuration", "work", "me@x.com", "proj") in patched_backend.calls

    def test_add_with_explicit_adc(self, cli_runner, patched_backend) -> None:
        result = cli_runner.invoke(
            app,
            ["add", "work", "-a", "me@x.com", "--adc-account", "sa@x.com", "--adc-quota-project", "q"],
        )
        assert result.exit_code == 0, result.output
        profile = ProfileStore().get("work")
        assert profile.adc_account == "sa@x.com"
        assert profile.adc_quota_project == "q"
        assert profile.user_project == ""

    def test_add_with_sync_off_skips_configuration(self, cli_runner, patched_backend) -> None:
        ProfileStore().set_sync_mode(SyncMode.OFF)
        cli_runner.invoke(app, ["add", "work", "-a", "me@x.com"])
        assert patched_backend.calls == []

    def test_empty_account_rejected(self, cli_runner, patched_backend) -> None:
        result = cli_runner.invoke(app, ["add", "work", "-a", "  "])
        assert isinstance(result.exception, InvalidUsageError)
        assert not ProfileStore().path.exists()

    def test_missing_account_is_usage_error(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["add", "work"])
        assert result.exit_code == 2


@pytest.mark.usefixtures("isolated_config")
class TestList:
    def test_empty(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--no-color", "list"])
        assert result.exit_code == 0
        assert "No profiles yet." in result.output

    def test_plain_marks_active(self, cli_runner) -> None:
        store = ProfileStore()
        store.add_or_replace("work", Profile(user_account="w@x.com", user_project="wp"))
        store.add_or_replace("home", Profile(user_account="h@x.com"))
        store.set_active("work")
        result = cli_runner.invoke(app, ["--plain", "--no-color", "list"])
        lines = result.stdout.strip().split("\n")
        assert lines[0].startswith("Active\tName")
        assert lines[1].startswith("\thome\th@x.com / ")
        assert lines[2].startswith("*\twork\tw@x.com / wp")

    def test_json(self, cli_runner) -> None:
        ProfileStore().add_or_replace("work", Profile(user_account="w@x.com"))
        result = cli_runner.invoke(app, ["--json", "list"])
        records = json.loads(result.stdout)
        assert records[0]["Name"] == "work"


@pytest.mark.usefixtures("isolated_config")
class TestSwitchAndDelete:
    def test_switch(self, cli_runner, patched_backend) -> None:
        ProfileStore().add_or_replace("work", Profile(user_account="w@x.com", user_project="wp"))
        result = cli_runner.invoke(app, ["--no-color", "switch", "work"])
        assert result.exit_code == 0, result.output
        assert "Activated profile 'work'." in result.output
        assert ProfileStore().load().active_profile == "work"

    def test_switch_unknown(self, cli_runner, patched_backend) -> None:
        result = cli_runner.invoke(app, ["switch", "nope"])
        assert isinstance(result.exception, NotFoundError)
        assert result.exception.exit_code == 4

    def test_delete(self, cli_runner, patched_backend) -> None:
        store = ProfileStore()
        store.add_or_replace("work", Profile(user_account="w@x.com"))
        store.set_active("work")
        result = cli_runner.invoke(app, ["--no-color", "delete", "work"])
        assert result.exit_code == 0, result.output
        assert store.load().profiles == {}
        assert store.load().active_profile is None
        assert ("delete_configuration", "work") in patched_backend.calls


@pytest.mark.usefixtures("isolated_config")
class TestImport:
    def test_import(self, cli_runner, patched_backend) -> None:
        patched_backend.configs = [DiscoveredConfig("work", "w@x.com", "wp")]
        result = cli_runner.invoke(app, ["--no-color", "import"])
        assert result.exit_code == 0
        assert "Imported 1 profile(s)." in result.output
        assert ProfileStore().load().names == ["work"]

    def test_nothing_found(self, cli_runner, patched_backend) -> None:
        result = cli_runner.invoke(app, ["--no-color", "import"])
        assert "No gcloud configurations found." in result.output
