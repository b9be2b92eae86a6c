"""Shared test fixtures for gcloud-switch.

Provides isolated config environments, a profile store in ``tmp_path``, and
in-memory stand-ins for the credential backend and the terminal so that the
state machine, the verification workers and the suspension protocol run
without gcloud or curses.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import pytest

from gcloud_switch.backend import CredentialBackend, DiscoveredConfig
from gcloud_switch.exceptions import BackendError
from gcloud_switch.models import Profile, Role
from gcloud_switch.output import OutputFormat, OutputManager, reset_output, set_output
from gcloud_switch.store import ProfileStore
from gcloud_switch.tui.state import Key


# ---------------------------------------------------------------------------
# Auto-reset global state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager and package logging after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale.
    """
    yield
    reset_output()
    logger = logging.getLogger("gcloud_switch")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path,
    clears GCLOUD_SWITCH_CONFIG_DIR, points CLOUDSDK_CONFIG at an empty
    gcloud directory and changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("gcloud_switch.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setenv("CLOUDSDK_CONFIG", str(tmp_path / "gcloud"))
    monkeypatch.delenv("GCLOUD_SWITCH_CONFIG_DIR", raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def store(tmp_path: Path) -> ProfileStore:
    """A profile store whose document and artifacts live in tmp_path."""
    return ProfileStore(path=tmp_path / "profiles.json", artifact_dir=tmp_path / "adc")


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeBackend(CredentialBackend):
    """Scriptable credential backend that records every state-changing call.

    ``valid`` maps accounts to their verdict (missing means invalid). A
    successful re-authentication marks the account valid.
    """

    def __init__(self) -> None:
        self.valid: dict[str, bool] = {}
        self.known_accounts: list[str] = []
        self.projects: dict[str, list[str]] = {}
        self.configs: list[DiscoveredConfig] = []
        self.active_config: Optional[str] = None
        self.secondary: set[str] = set()
        self.fail_reauth: Optional[str] = None
        self.fail_activation: Optional[str] = None
        self.calls: list[tuple] = []
        self.checked: list[str] = []

    def is_valid(self, account: str) -> bool:
        self.checked.append(account)
        return self.valid.get(account, False)

    def interactive_reauthenticate(self, name: str, profile: Profile, role: Role) -> None:
        self.calls.append(("reauth", name, role))
        if self.fail_reauth:
            raise BackendError(self.fail_reauth)
        self.valid[profile.account_for(role)] = True

    def activate_primary(self, name: str, account: str, project: str) -> None:
        self.calls.append(("activate_primary", name, account, project))
        if self.fail_activation:
            raise BackendError(self.fail_activation)

    def activate_secondary(self, name: str) -> None:
        self.calls.append(("activate_secondary", name))
        if name not in self.secondary:
            raise BackendError(f"No ADC credentials stored for profile '{name}'.")

    def has_secondary_credentials(self, name: str) -> bool:
        return name in self.secondary

    def list_known_accounts(self) -> list[str]:
        return list(self.known_accounts)

    def list_projects_for(self, account: str) -> list[str]:
        return list(self.projects.get(account, []))

    def discover_configurations(self) -> list[DiscoveredConfig]:
        return list(self.configs)

    def read_active_config(self) -> Optional[str]:
        return self.active_config

    def create_configuration(self, name: str, account: str, project: str) -> None:
        self.calls.append(("create_configuration", name, account, project))

    def delete_configuration(self, name: str) -> None:
        self.calls.append(("delete_configuration", name))


class FakeTerminal:
    """Feeds scripted keys to the event loop and records terminal handovers."""

    def __init__(self, keys: list[Optional[Key]] = ()) -> None:
        self.keys = list(keys)
        self.events: list[str] = []
        self.frames = 0

    def draw(self, controller) -> None:
        self.frames += 1

    def read_key(self) -> Optional[Key]:
        if not self.keys:
            raise AssertionError("event loop read more keys than were scripted")
        return self.keys.pop(0)

    def release(self) -> None:
        self.events.append("release")

    def reacquire(self) -> None:
        self.events.append("reacquire")


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def fake_terminal() -> FakeTerminal:
    return FakeTerminal()


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager for the test."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
