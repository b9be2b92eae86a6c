"""Profile commands -- manage profiles without the interactive UI.

Each command is a plain callback registered on the root app in
:mod:`gcloud_switch.app`. They share the same
:class:`~gcloud_switch.store.ProfileStore` document and file lock as the
interactive UI, so running one while the UI is open is safe.

Typical workflow::

    gcloud-switch import
    gcloud-switch add work --account me@example.com --project my-proj
    gcloud-switch switch work
"""

from __future__ import annotations

from typing import Optional

import typer

from gcloud_switch.output import info, print_table, success, suggest


def add_command(
    name: str = typer.Argument(help="Profile name."),
    account: str = typer.Option(..., "--account", "-a", help="User account (email)."),
    project: str = typer.Option("", "--project", "-p", help="User project."),
    adc_account: Optional[str] = typer.Option(
        None, "--adc-account", help="ADC account. Defaults to --account."
    ),
    adc_quota_project: Optional[str] = typer.Option(
        None, "--adc-quota-project", help="ADC quota project. Defaults to --project."
    ),
) -> None:
    """Add or replace a profile.

    Unless the sync mode is ``off``, a gcloud configuration with the same
    name is created too, so that startup reconciliation keeps the profile.

    Example::

        gcloud-switch add work --account me@example.com --project my-proj
    """
    from gcloud_switch.backend import create_default_backend
    from gcloud_switch.exceptions import InvalidUsageError
    from gcloud_switch.models import Profile, SyncMode
    from gcloud_switch.store import ProfileStore

    name = name.strip()
    account = account.strip()
    if not name:
        raise InvalidUsageError("Profile name must not be empty.")
    if not account:
        raise InvalidUsageError("--account must not be empty.")
    project = project.strip()

    profile = Profile(
        user_account=account,
        user_project=project,
        adc_account=(adc_account or account).strip(),
        adc_quota_project=(adc_quota_project if adc_quota_project is not None else project).strip(),
    )
    store = ProfileStore()
    if store.load().sync_mode is not SyncMode.OFF:
        create_default_backend(store).create_configuration(name, account, project)
    store.add_or_replace(name, profile)
    success(f"Profile '{name}' added.")
    suggest(f"Activate it: gcloud-switch switch {name}")


def list_command() -> None:
    """List profiles.

    The active profile is marked with ``*``.
    """
    from gcloud_switch.store import ProfileStore

    profile_set = ProfileStore().load()
    if not profile_set.profiles:
        info("No profiles yet.")
        suggest("Add one with 'gcloud-switch add' or 'gcloud-switch import'.")
        return

    rows = []
    for name, profile in profile_set.profiles.items():
        rows.append(
            [
                "*" if name == profile_set.active_profile else "",
                name,
                f"{profile.user_account} / {profile.user_project}",
                f"{profile.adc_account} / {profile.adc_quota_project}",
            ]
        )
    print_table(
        ["Active", "Name", "User account / project", "ADC account / quota project"],
        rows,
        title=f"Profiles (sync mode: {profile_set.sync_mode.value})",
    )


def switch_command(
    name: str = typer.Argument(help="Profile to activate."),
) -> None:
    """Activate a profile's user config and, if stored, its ADC credentials."""
    from gcloud_switch.backend import create_default_backend
    from gcloud_switch.models import Column
    from gcloud_switch.store import ProfileStore

    store = ProfileStore()
    profile = store.get(name)
    message = create_default_backend(store).activate(name, profile, Column.BOTH)
    store.set_active(name)
    success(message)


def delete_command(
    name: str = typer.Argument(help="Profile to delete."),
) -> None:
    """Delete a profile and its stored ADC credentials.

    Unless the sync mode is ``off``, the gcloud configuration of the same
    name is removed as well.
    """
    from gcloud_switch.backend import create_default_backend
    from gcloud_switch.models import SyncMode
    from gcloud_switch.store import ProfileStore

    store = ProfileStore()
    sync_mode = store.load().sync_mode
    store.delete(name)
    if sync_mode is not SyncMode.OFF:
        create_default_backend(store).delete_configuration(name)
    success(f"Deleted profile '{name}'.")


def import_command() -> None:
    """Import existing gcloud configurations as profiles."""
    from gcloud_switch.backend import create_default_backend
    from gcloud_switch.discovery import import_profiles
    from gcloud_switch.store import ProfileStore

    store = ProfileStore()
    imported, skipped = import_profiles(store, create_default_backend(store))
    for name in imported:
        info(f"  + {name}")
    for name in skipped:
        info(f"  = {name} (already exists)")
    if imported:
        success(f"Imported {len(imported)} profile(s).")
    elif not skipped:
        info("No gcloud configurations found.")
    else:
        info("Nothing new to import.")
