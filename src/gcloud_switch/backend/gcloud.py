"""gcloud implementation of the credential backend.

User credentials are switched through gcloud *configurations*: every profile
owns a configuration of the same name whose ``account`` and ``project``
properties mirror the profile's primary role.

Application-default credentials (ADC) have no configuration concept in
gcloud, so the store keeps a copy of each profile's
``application_default_credentials.json`` and activation copies it back into
gcloud's config directory.

Validity is checked without launching gcloud: the account's refresh token is
read from gcloud's ``credentials.db`` and exchanged at the token endpoint.
Only an HTTP 2xx answer counts as valid.
"""

from __future__ import annotations

import json
import logging
import shutil
import sqlite3
import subprocess
from pathlib import Path
from typing import Any, Optional

import httpx

from gcloud_switch.backend.base import CredentialBackend, DiscoveredConfig
from gcloud_switch.config import gcloud_config_dir
from gcloud_switch.exceptions import BackendError
from gcloud_switch.models import Profile, Role
from gcloud_switch.store import ProfileStore

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"
_ADC_FILENAME = "application_default_credentials.json"
_QUERY_TIMEOUT = 60.0


class GcloudBackend(CredentialBackend):
    """Credential backend driving the ``gcloud`` CLI.

    Args:
        store: Profile store holding the per-profile ADC copies.
        gcloud: Name or path of the gcloud executable.
        config_dir: gcloud's config directory. Defaults to
            :func:`~gcloud_switch.config.gcloud_config_dir`.
        http_timeout: Timeout in seconds for the token exchange.
    """

    def __init__(
        self,
        store: ProfileStore,
        gcloud: str = "gcloud",
        config_dir: Optional[Path] = None,
        http_timeout: float = 10.0,
    ) -> None:
        self._store = store
        self._gcloud = gcloud
        self._config_dir = config_dir or gcloud_config_dir()
        self._http_timeout = http_timeout

    @property
    def config_dir(self) -> Path:
        return self._config_dir

    # ------------------------------------------------------------------ #
    # Validity
    # ------------------------------------------------------------------ #

    def is_valid(self, account: str) -> bool:
        if not account:
            return False
        try:
            credentials = self.read_credentials(account)
            if credentials is None:
                return False
            return self._exchange_refresh_token(credentials)
        except Exception as exc:  # noqa: BLE001 -- any failure means "not valid"
            logger.debug("validity check for %s failed: %s", account, exc)
            return False

    def read_credentials(self, account: str) -> Optional[dict[str, Any]]:
        """Read *account*'s credential blob from ``credentials.db``.

        Returns:
            The decoded JSON blob, or ``None`` if the database or the account
            row does not exist.
        """
        rows = self._query_credentials_db(
            "SELECT value FROM credentials WHERE account_id = ?", (account,)
        )
        if not rows:
            return None
        return json.loads(rows[0][0])

    def _exchange_refresh_token(self, credentials: dict[str, Any]) -> bool:
        try:
            data = {
                "client_id": credentials["client_id"],
                "client_secret": credentials["client_secret"],
                "refresh_token": credentials["refresh_token"],
                "grant_type": "refresh_token",
            }
        except KeyError as exc:
            logger.debug("credentials missing %s", exc)
            return False
        token_uri = credentials.get("token_uri") or DEFAULT_TOKEN_URI
        response = httpx.post(token_uri, data=data, timeout=self._http_timeout)
        return response.is_success

    # ------------------------------------------------------------------ #
    # Interactive login
    # ------------------------------------------------------------------ #

    def interactive_reauthenticate(self, name: str, profile: Profile, role: Role) -> None:
        if role is Role.PRIMARY:
            self._run_interactive(
                ["auth", "login", f"--account={profile.user_account}"],
                "gcloud auth login",
            )
            self.activate_primary(name, profile.user_account, profile.user_project)
            return

        self._run_interactive(
            ["auth", "application-default", "login", "--quiet"],
            "gcloud auth application-default login",
        )
        if profile.adc_quota_project:
            self._run(
                [
                    "auth",
                    "application-default",
                    "set-quota-project",
                    profile.adc_quota_project,
                ],
                check=False,
            )
        adc_file = self._config_dir / _ADC_FILENAME
        if adc_file.is_file():
            self._store.save_artifact(name, adc_file.read_text(encoding="utf-8"))

    # ------------------------------------------------------------------ #
    # Activation
    # ------------------------------------------------------------------ #

    def activate_primary(self, name: str, account: str, project: str) -> None:
        self._run(["config", "configurations", "create", name, "--no-activate"], check=False)
        self._run(["config", "configurations", "activate", name])
        if account:
            self._run(["config", "set", "account", account])
        if project:
            self._run(["config", "set", "project", project])
        logger.info("activated gcloud configuration %r", name)

    def activate_secondary(self, name: str) -> None:
        src = self._store.artifact_path(name)
        if not src.is_file():
            raise BackendError(
                f"No ADC credentials stored for profile '{name}'. Run re-auth (r) first."
            )
        dest = self._config_dir / _ADC_FILENAME
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(src, dest)
        except OSError as exc:
            raise BackendError(f"Failed to copy ADC from {src} to {dest}: {exc}") from exc
        logger.info("activated ADC for %r", name)

    def has_secondary_credentials(self, name: str) -> bool:
        return self._store.has_artifact(name)

    # ------------------------------------------------------------------ #
    # Suggestions
    # ------------------------------------------------------------------ #

    def list_known_accounts(self) -> list[str]:
        try:
            rows = self._query_credentials_db("SELECT account_id FROM credentials", ())
        except sqlite3.Error as exc:
            logger.debug("cannot list accounts: %s", exc)
            return []
        return [row[0] for row in rows if row[0]]

    def list_projects_for(self, account: str) -> list[str]:
        if not account:
            return []
        try:
            result = subprocess.run(
                [
                    self._gcloud,
                    "projects",
                    "list",
                    f"--account={account}",
                    "--format=value(projectId)",
                    "--sort-by=projectId",
                ],
                capture_output=True,
                text=True,
                timeout=_QUERY_TIMEOUT,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            logger.debug("gcloud projects list failed for %s: %s", account, exc)
            return []
        if result.returncode != 0:
            return []
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    # ------------------------------------------------------------------ #
    # Discovery
    # ------------------------------------------------------------------ #

    def discover_configurations(self) -> list[DiscoveredConfig]:
        """Parse ``configurations/config_<name>`` files.

        Configurations without an account are skipped.
        """
        directory = self._config_dir / "configurations"
        if not directory.is_dir():
            return []
        found: list[DiscoveredConfig] = []
        for path in sorted(directory.glob("config_*")):
            name = path.name[len("config_"):]
            try:
                content = path.read_text(encoding="utf-8")
            except OSError:
                continue
            account, project = _parse_config_properties(content)
            if name and account:
                found.append(DiscoveredConfig(name, account, project))
        return found

    def read_active_config(self) -> Optional[str]:
        path = self._config_dir / "active_config"
        try:
            name = path.read_text(encoding="utf-8").strip()
        except OSError:
            return None
        return name or None

    def create_configuration(self, name: str, account: str, project: str) -> None:
        self._run(["config", "configurations", "create", name, "--no-activate"], check=False)
        if account:
            self._run(
                ["config", "set", "account", account, f"--configuration={name}"],
                check=False,
            )
        if project:
            self._run(
                ["config", "set", "project", project, f"--configuration={name}"],
                check=False,
            )

    def delete_configuration(self, name: str) -> None:
        self._run(["config", "configurations", "delete", name, "--quiet"], check=False)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _run(self, args: list[str], check: bool = True) -> None:
        """Run a non-interactive gcloud command with its output discarded."""
        command = [self._gcloud, *args]
        try:
            result = subprocess.run(
                command,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                timeout=_QUERY_TIMEOUT,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            if check:
                raise BackendError(f"Failed to run {' '.join(command)}: {exc}") from exc
            logger.debug("ignored failure of %s: %s", command, exc)
            return
        if check and result.returncode != 0:
            raise BackendError(
                f"{' '.join(command[:4])} failed with status {result.returncode}"
            )

    def _run_interactive(self, args: list[str], label: str) -> None:
        """Run a gcloud command attached to the user's terminal."""
        try:
            result = subprocess.run([self._gcloud, *args])
        except OSError as exc:
            raise BackendError(f"Failed to run {label}: {exc}") from exc
        if result.returncode != 0:
            raise BackendError(f"{label} failed with status {result.returncode}")

    def _query_credentials_db(self, sql: str, params: tuple[Any, ...]) -> list[tuple[Any, ...]]:
        db_path = self._config_dir / "credentials.db"
        if not db_path.is_file():
            return []
        conn = sqlite3.connect(f"file:{db_path}?mode=ro", uri=True)
        try:
            return conn.execute(sql, params).fetchall()
        finally:
            conn.close()


def _parse_config_properties(content: str) -> tuple[str, str]:
    """Extract ``account`` and ``project`` from a gcloud configuration file."""
    account = ""
    project = ""
    for line in content.splitlines():
        line = line.strip()
        if line.startswith("account = "):
            account = line[len("account = "):].strip()
        elif line.startswith("project = "):
            project = line[len("project = "):].strip()
    return account, project
