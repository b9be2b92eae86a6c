"""Sync commands -- share profile metadata through a git remote.

Provides the ``gcloud-switch sync`` sub-command group. Only the profile
document is synchronised; stored credentials stay on this machine.

Typical workflow::

    gcloud-switch sync init git@github.com:me/gcloud-profiles.git
    gcloud-switch sync push     # on the first machine
    gcloud-switch sync pull     # on the others
"""

from __future__ import annotations

from typing import Optional

import typer

from gcloud_switch.models import Profile, SyncMode
from gcloud_switch.output import info, success, suggest, warning
from gcloud_switch.sync import GitSyncTarget, MergeChoice, parse_choice


sync_app = typer.Typer(no_args_is_help=True)


def _describe(profile: Profile) -> str:
    return (
        f"{profile.user_account} / {profile.user_project} "
        f"(adc: {profile.adc_account} / {profile.adc_quota_project})"
    )


def prompt_conflict(name: str, local: Profile, remote: Profile) -> MergeChoice:
    """Ask on the terminal which copy of a conflicting profile to keep."""
    warning(f"Profile '{name}' changed on both sides.")
    info(f"  Local:  {_describe(local)}")
    info(f"  Remote: {_describe(remote)}")
    answer = typer.prompt(
        "Keep (L)ocal or (R)emote? [L/r]", default="l", show_default=False, err=True
    )
    return parse_choice(answer)


def _target() -> GitSyncTarget:
    from gcloud_switch.config import load_sync_config
    from gcloud_switch.exceptions import SyncError

    config = load_sync_config()
    if config is None:
        raise SyncError("Sync is not configured. Run 'gcloud-switch sync init <url>' first.")
    return GitSyncTarget(config)


@sync_app.command("init")
def sync_init(
    remote_url: str = typer.Argument(help="Git remote URL for the profile repository."),
    branch: str = typer.Option("main", "--branch", "-b", help="Branch to push and pull."),
) -> None:
    """Configure the git remote used by push and pull.

    Example::

        gcloud-switch sync init git@github.com:me/gcloud-profiles.git
    """
    from gcloud_switch.config import save_sync_config
    from gcloud_switch.exceptions import InvalidUsageError
    from gcloud_switch.models import SyncConfig

    remote_url = remote_url.strip()
    if not remote_url:
        raise InvalidUsageError("Remote URL must not be empty.")
    save_sync_config(SyncConfig(remote_url=remote_url, branch=branch.strip() or "main"))
    success(f"Sync configured: {remote_url} ({branch}).")
    suggest("Upload your profiles: gcloud-switch sync push")


@sync_app.command("push")
def sync_push() -> None:
    """Upload the local profile document, replacing the remote copy."""
    from gcloud_switch.store import ProfileStore

    target = _target()
    target.push_local(ProfileStore().load())
    success(f"Pushed profiles to {target.config.remote_url}.")


@sync_app.command("pull")
def sync_pull() -> None:
    """Merge the remote profile document into the local one.

    Newer copies win. When both sides changed a profile at the same time
    you are asked which to keep.
    """
    from gcloud_switch.store import ProfileStore

    target = _target()
    report = target.pull(ProfileStore(), resolve=prompt_conflict)
    for name in report.added:
        info(f"  + {name}")
    for name in report.updated:
        info(f"  ~ {name}")
    if report.changed:
        success(f"Pulled {len(report.added)} new and {len(report.updated)} updated profile(s).")
    else:
        info("Already up to date.")


@sync_app.command("mode")
def sync_mode(
    mode: Optional[SyncMode] = typer.Argument(
        None, help="New mode: strict, add or off. Omit to show the current mode."
    ),
) -> None:
    """Show or set how startup mirrors gcloud configurations."""
    from gcloud_switch.store import ProfileStore

    store = ProfileStore()
    if mode is None:
        info(f"Sync mode: {store.load().sync_mode.value}")
        return
    store.set_sync_mode(mode)
    success(f"Sync mode set to {mode.value}.")
