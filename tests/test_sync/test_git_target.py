"""Tests for gcloud_switch.sync.git.GitSyncTarget."""

from __future__ import annotations

import json
import os
import shutil
import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from gcloud_switch.exceptions import SyncError
from gcloud_switch.models import Profile, ProfileSet, SyncConfig
from gcloud_switch.store import ProfileStore
from gcloud_switch.sync.git import SYNC_FILE, GitSyncTarget
from gcloud_switch.sync.merge import MergeChoice


requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


@pytest.fixture
def git_identity(monkeypatch: pytest.MonkeyPatch) -> None:
    """Give commits an author without touching the user's git config."""
    for var in ("GIT_AUTHOR_NAME", "GIT_COMMITTER_NAME"):
        monkeypatch.setenv(var, "Test")
    for var in ("GIT_AUTHOR_EMAIL", "GIT_COMMITTER_EMAIL"):
        monkeypatch.setenv(var, "test@example.com")
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", os.devnull)


@pytest.fixture
def bare_remote(tmp_path: Path) -> str:
    remote = tmp_path / "remote.git"
    subprocess.run(["git", "init", "--bare", str(remote)], check=True, capture_output=True)
    return str(remote)


def _completed(returncode: int = 0, stdout: str = "", stderr: str = "") -> MagicMock:
    result = MagicMock()
    result.returncode = returncode
    result.stdout = stdout
    result.stderr = stderr
    return result


class TestConstruction:
    def test_unconfigured_raises(self, tmp_path: Path) -> None:
        with pytest.raises(SyncError, match="not configured"):
            GitSyncTarget(SyncConfig(), repo_dir=tmp_path / "repo")

    def test_remote_ref(self, tmp_path: Path) -> None:
        target = GitSyncTarget(SyncConfig(remote_url="u", branch="dev"), repo_dir=tmp_path / "repo")
        assert target.remote_ref == "origin/dev"


class TestFetchRemoteMocked:
    def test_fetch_failure_returns_empty_set(self, tmp_path: Path) -> None:
        repo = tmp_path / "repo"
        (repo / ".git").mkdir(parents=True)
        target = GitSyncTarget(SyncConfig(remote_url="u"), repo_dir=repo)
        with patch("gcloud_switch.sync.git.subprocess.run", return_value=_completed(128, stderr="unreachable")):
            assert target.fetch_remote() == ProfileSet()

    def test_unreadable_document_returns_empty_set(self, tmp_path: Path) -> None:
        repo = tmp_path / "repo"
        (repo / ".git").mkdir(parents=True)
        target = GitSyncTarget(SyncConfig(remote_url="u"), repo_dir=repo)
        results = [_completed(), _completed(stdout="{not json")]
        with patch("gcloud_switch.sync.git.subprocess.run", side_effect=results):
            assert target.fetch_remote() == ProfileSet()

    def test_missing_git_binary_is_sync_error(self, tmp_path: Path) -> None:
        repo = tmp_path / "repo"
        (repo / ".git").mkdir(parents=True)
        target = GitSyncTarget(SyncConfig(remote_url="u"), repo_dir=repo)
        with patch("gcloud_switch.sync.git.subprocess.run", side_effect=FileNotFoundError("git")):
            with pytest.raises(SyncError, match="Failed to run git add"):
                target.push_local(ProfileSet())


@requires_git
@pytest.mark.usefixtures("git_identity")
class TestAgainstRealRemote:
    def test_push_then_pull_on_second_machine(self, tmp_path: Path, bare_remote: str) -> None:
        config = SyncConfig(remote_url=bare_remote, branch="main")
        first = GitSyncTarget(config, repo_dir=tmp_path / "first")
        first.push_local(ProfileSet(profiles={"work": Profile(user_account="w@x.com", updated_at=10)}))

        store = ProfileStore(tmp_path / "second" / "profiles.json", tmp_path / "second" / "adc")
        store.add_or_replace("home", Profile(user_account="h@x.com"))
        second = GitSyncTarget(config, repo_dir=tmp_path / "second-clone")
        report = second.pull(store)

        assert report.added == ["work"]
        assert sorted(store.load().profiles) == ["home", "work"]
        committed = json.loads((tmp_path / "second-clone" / SYNC_FILE).read_text())
        assert sorted(committed["profiles"]) == ["home", "work"]

    def test_pull_from_empty_remote(self, tmp_path: Path, bare_remote: str) -> None:
        store = ProfileStore(tmp_path / "profiles.json", tmp_path / "adc")
        store.add_or_replace("home", Profile(user_account="h@x.com"))
        target = GitSyncTarget(SyncConfig(remote_url=bare_remote), repo_dir=tmp_path / "clone")
        report = target.pull(store)
        assert not report.changed
        assert store.load().names == ["home"]

    def test_conflict_prompt_chooses_remote(self, tmp_path: Path, bare_remote: str) -> None:
        config = SyncConfig(remote_url=bare_remote)
        GitSyncTarget(config, repo_dir=tmp_path / "first").push_local(
            ProfileSet(profiles={"work": Profile(user_account="remote@x.com", updated_at=50)})
        )
        store = ProfileStore(tmp_path / "profiles.json", tmp_path / "adc")
        store.save(ProfileSet(profiles={"work": Profile(user_account="local@x.com", updated_at=50)}))

        report = GitSyncTarget(config, repo_dir=tmp_path / "clone").pull(
            store, resolve=lambda name, local, remote: MergeChoice.REMOTE
        )

        assert report.conflicts == ["work"]
        assert store.get("work").user_account == "remote@x.com"

    def test_write_made_while_prompting_survives(self, tmp_path: Path, bare_remote: str) -> None:
        config = SyncConfig(remote_url=bare_remote)
        GitSyncTarget(config, repo_dir=tmp_path / "first").push_local(
            ProfileSet(profiles={"work": Profile(user_account="remote@x.com", updated_at=50)})
        )
        store = ProfileStore(tmp_path / "profiles.json", tmp_path / "adc")
        store.save(ProfileSet(profiles={"work": Profile(user_account="local@x.com", updated_at=50)}))
        other = ProfileStore(tmp_path / "profiles.json", tmp_path / "adc")

        def resolve(name: str, local: Profile, remote: Profile) -> MergeChoice:
            other.add_or_replace("home", Profile(user_account="h@x.com"))
            return MergeChoice.REMOTE

        report = GitSyncTarget(config, repo_dir=tmp_path / "clone").pull(store, resolve=resolve)

        assert report.conflicts == ["work"]
        assert store.load().names == ["home", "work"]
        assert store.get("work").user_account == "remote@x.com"
        committed = json.loads((tmp_path / "clone" / SYNC_FILE).read_text())
        assert sorted(committed["profiles"]) == ["home", "work"]

    def test_resolver_asked_once_per_conflict(self, tmp_path: Path, bare_remote: str) -> None:
        config = SyncConfig(remote_url=bare_remote)
        GitSyncTarget(config, repo_dir=tmp_path / "first").push_local(
            ProfileSet(profiles={"work": Profile(user_account="remote@x.com", updated_at=50)})
        )
        store = ProfileStore(tmp_path / "profiles.json", tmp_path / "adc")
        store.save(ProfileSet(profiles={"work": Profile(user_account="local@x.com", updated_at=50)}))
        asked: list[str] = []

        def resolve(name: str, local: Profile, remote: Profile) -> MergeChoice:
            asked.append(name)
            return MergeChoice.LOCAL

        GitSyncTarget(config, repo_dir=tmp_path / "clone").pull(store, resolve=resolve)

        assert asked == ["work"]
        assert store.get("work").user_account == "local@x.com"
