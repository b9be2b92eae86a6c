"""Interaction state machine for the profile switcher UI.

:class:`Controller` owns the :class:`~gcloud_switch.tui.state.InteractionState`
and the in-memory copy of the profile set. :meth:`Controller.handle` is a pure
transition function: it inspects the current mode, builds the next one and
returns the side effects the transition needs. It never touches the store,
the backend or the terminal, which keeps every transition testable without
I/O.

Effects that fail are reported back through :meth:`Controller.abort`, which
puts the mode, row and column back to what they were before the key was
handled.

Example::

    controller = Controller(store.load())
    effects = controller.handle(Key(KeyCode.DOWN))
    runner.run(effects)
"""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Optional, Sequence

from gcloud_switch.models import Column, Profile, ProfileSet, Role
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
from gcloud_switch.tui.state import (
    AddName,
    AddPrimaryAccount,
    AddPrimaryProject,
    AddSecondaryAccount,
    AddSecondaryProject,
    AuthStatus,
    ConfirmDelete,
    EditField,
    Editing,
    EditPrimary,
    EditSecondary,
    InteractionState,
    Key,
    KeyCode,
    Mode,
    Normal,
    PendingAction,
    PendingKind,
    WizardMode,
)
from gcloud_switch.verification import ProjectListResult, VerificationResult

EDIT_ACCOUNT_HELP = "Edit: Tab next field  ↓ suggestions  Enter save  Esc cancel"
EDIT_PROJECT_HELP = "Edit project: Tab save  ↓ suggestions  Enter save  Esc cancel"


def _sorted_unique(values: Iterable[str]) -> tuple[str, ...]:
    return tuple(sorted({value for value in values if value}))


def _opened(mode: Editing) -> Editing:
    """Show the current sub-field's suggestions, highlighting the first one."""
    return replace(mode, cursor=0 if mode.suggestions else None)


def _with_buffer(mode: Editing, text: str) -> Editing:
    """Replace the current sub-field's text and close the suggestion list."""
    if mode.field is EditField.ACCOUNT:
        return replace(mode, account=text, cursor=None)
    return replace(mode, project=text, cursor=None)


class Controller:
    """Pure key-to-effects state machine.

    Args:
        profile_set: Initial profile data. Can also be supplied later via
            :meth:`load`.

    Attributes:
        state: The interaction state. Read by the renderer, written only here.
        profile_set: The authoritative in-memory copy of the profile data.
        names: Profile names in display order.
        auth: Verification status per row, parallel to :attr:`names`.
    """

    def __init__(self, profile_set: Optional[ProfileSet] = None) -> None:
        self.state = InteractionState()
        self.profile_set = ProfileSet()
        self.names: list[str] = []
        self.auth: list[AuthStatus] = []
        self._projects: dict[str, tuple[str, ...]] = {}
        self._checkpoint: Optional[tuple[Mode, int, Column]] = None
        self._loaded = False
        if profile_set is not None:
            self.load(profile_set)

    # ------------------------------------------------------------------ #
    # Profile data
    # ------------------------------------------------------------------ #

    def load(self, profile_set: ProfileSet) -> None:
        """Replace the in-memory profile data wholesale.

        Every status goes back to unknown. On the very first load the cursor
        starts on the active profile.
        """
        self.profile_set = profile_set
        self.names = list(profile_set.profiles)
        self.auth = [AuthStatus() for _ in self.names]
        if not self._loaded and profile_set.active_profile in profile_set.profiles:
            self.state.selected_row = self.names.index(profile_set.active_profile)
        self._loaded = True
        self._clamp_row()

    @property
    def profiles(self) -> list[Profile]:
        return [self.profile_set.profiles[name] for name in self.names]

    @property
    def selected_name(self) -> Optional[str]:
        if not self.names:
            return None
        return self.names[self.state.selected_row]

    def _clamp_row(self) -> None:
        last = max(len(self.names) - 1, 0)
        self.state.selected_row = min(max(self.state.selected_row, 0), last)

    # ------------------------------------------------------------------ #
    # Background results
    # ------------------------------------------------------------------ #

    def apply_verification(self, result: VerificationResult) -> None:
        """Fan one accepted verification result out to every slot it targets."""
        for index, role in result.targets:
            if index < len(self.auth):
                self.auth[index] = self.auth[index].with_role(role, result.valid)

    def apply_projects(self, result: ProjectListResult) -> None:
        self._projects[result.account] = result.projects

    # ------------------------------------------------------------------ #
    # Callbacks from the effect runner
    # ------------------------------------------------------------------ #

    def show_account_suggestions(self, backend_accounts: Sequence[str]) -> None:
        """Open the account suggestion list once the backend's accounts are known."""
        mode = self.state.mode
        if not isinstance(mode, Editing) or mode.field is not EditField.ACCOUNT:
            return
        values = [profile.account_for(role) for profile in self.profiles for role in Role]
        values.extend(backend_accounts)
        self.state.mode = _opened(replace(mode, account_suggestions=_sorted_unique(values)))

    def activation_checked(
        self,
        name: str,
        column: Column,
        exit_after: bool,
        verdicts: dict[Role, bool],
    ) -> list[Effect]:
        """Finish an activation whose verdicts had to be checked synchronously.

        Returns:
            An :class:`Activate` effect if every checked credential is valid,
            otherwise no effects and a pending re-auth-then-activate action.
        """
        if name in self.names:
            index = self.names.index(name)
            for role, valid in verdicts.items():
                self.auth[index] = self.auth[index].with_role(role, valid)
        invalid = tuple(role for role, valid in verdicts.items() if not valid)
        if not invalid:
            return [Activate(name, column, exit_after)]
        self.state.pending_action = PendingAction(
            PendingKind.REAUTH_AND_ACTIVATE, name, column, invalid, exit_after
        )
        return []

    def activated(self, name: str, message: str, exit_after: bool) -> None:
        self.profile_set.active_profile = name
        self.state.status = message
        if exit_after:
            self.state.quit = True

    def abort(self, message: str) -> None:
        """Undo the transition of the last key press and report *message*."""
        if self._checkpoint is not None:
            mode, row, column = self._checkpoint
            self.state.mode = mode
            self.state.selected_row = row
            self.state.selected_column = column
            self._clamp_row()
        self.state.status = message

    def set_status(self, message: Optional[str]) -> None:
        self.state.status = message

    def take_pending(self) -> Optional[PendingAction]:
        """Return and clear the pending action."""
        pending = self.state.pending_action
        self.state.pending_action = None
        return pending

    # ------------------------------------------------------------------ #
    # Key handling
    # ------------------------------------------------------------------ #

    def handle(self, key: Key) -> list[Effect]:
        """Apply one key press and return the effects it requires."""
        state = self.state
        self._checkpoint = (state.mode, state.selected_row, state.selected_column)
        mode = state.mode
        if isinstance(mode, Normal):
            return self._handle_normal(key)
        if isinstance(mode, ConfirmDelete):
            return self._handle_confirm_delete(mode, key)
        if isinstance(mode, Editing):
            return self._handle_edit(mode, key)
        return self._handle_wizard(mode, key)

    # --- Normal ---

    def _handle_normal(self, key: Key) -> list[Effect]:
        state = self.state
        code = key.code
        if code is KeyCode.ESC or key.is_char("q"):
            state.quit = True
        elif code is KeyCode.UP:
            state.selected_row = max(state.selected_row - 1, 0)
        elif code is KeyCode.DOWN:
            state.selected_row = min(state.selected_row + 1, max(len(self.names) - 1, 0))
        elif code is KeyCode.LEFT:
            state.selected_column = state.selected_column.left()
        elif code is KeyCode.RIGHT:
            state.selected_column = state.selected_column.right()
        elif key.is_char("a", "n"):
            state.mode = AddName()
            state.status = "Enter profile name:"
        elif key.is_char("s"):
            mode = self.profile_set.sync_mode.next()
            state.status = f"Sync mode: {mode.value}."
            return [SetSyncMode(mode), Reload()]
        elif self.selected_name is None:
            return []
        elif code is KeyCode.ENTER:
            return self._activate(exit_after=not key.alt)
        elif key.is_char("r"):
            column = state.selected_column
            roles = (Role.SECONDARY,) if column is Column.SECONDARY else (Role.PRIMARY,)
            if not self.profile_set.profiles[self.selected_name].account_for(roles[0]):
                state.status = "No account set for this credential; edit the profile first."
                return []
            state.pending_action = PendingAction(
                PendingKind.REAUTH, self.selected_name, column, roles
            )
        elif key.is_char("e"):
            self._start_edit()
        elif key.is_char("d"):
            state.mode = ConfirmDelete(self.selected_name)
            state.status = f"Delete profile '{self.selected_name}'? (y/n)"
        return []

    def _activate(self, exit_after: bool) -> list[Effect]:
        name = self.selected_name
        profile = self.profile_set.profiles[name]
        column = self.state.selected_column
        status = self.auth[self.state.selected_row]
        # Roles without an account have nothing to verify.
        required = [role for role in column.roles if profile.account_for(role)]

        if all(status.get(role) is True for role in required):
            return [Activate(name, column, exit_after)]
        if any(status.get(role) is False for role in required):
            roles = tuple(role for role in required if status.get(role) is not True)
            self.state.pending_action = PendingAction(
                PendingKind.REAUTH_AND_ACTIVATE, name, column, roles, exit_after
            )
            return []
        checks = tuple(
            (role, profile.account_for(role)) for role in required if status.get(role) is None
        )
        return [VerifyThenActivate(name, column, exit_after, checks)]

    def _start_edit(self) -> None:
        name = self.selected_name
        profile = self.profile_set.profiles[name]
        if self.state.selected_column is Column.SECONDARY:
            mode_cls, role = EditSecondary, Role.SECONDARY
        else:
            mode_cls, role = EditPrimary, Role.PRIMARY
        self.state.mode = mode_cls(
            name, EditField.ACCOUNT, profile.account_for(role), profile.project_for(role)
        )
        self.state.status = EDIT_ACCOUNT_HELP

    # --- ConfirmDelete ---

    def _handle_confirm_delete(self, mode: ConfirmDelete, key: Key) -> list[Effect]:
        self.state.mode = Normal()
        if key.is_char("y", "Y"):
            self.state.status = f"Deleted profile '{mode.name}'."
            return [DeleteProfile(mode.name), Reload()]
        self.state.status = None
        return []

    # --- Add wizard ---

    def _handle_wizard(self, mode: WizardMode, key: Key) -> list[Effect]:
        state = self.state
        if key.code is KeyCode.ESC:
            state.mode = Normal()
            state.status = None
        elif key.code is KeyCode.BACKSPACE:
            state.mode = replace(mode, buffer=mode.buffer[:-1])
        elif key.code is KeyCode.CHAR:
            state.mode = replace(mode, buffer=mode.buffer + key.char)
        elif key.code is KeyCode.ENTER:
            value = mode.buffer.strip()
            if value:
                return self._advance_wizard(mode, value)
        return []

    def _advance_wizard(self, mode: WizardMode, value: str) -> list[Effect]:
        state = self.state
        if isinstance(mode, AddName):
            state.mode = AddPrimaryAccount(value)
            state.status = "Enter user account (email):"
        elif isinstance(mode, AddPrimaryAccount):
            state.mode = AddPrimaryProject(mode.name, value)
            state.status = "Enter user project:"
        elif isinstance(mode, AddPrimaryProject):
            # Secondary steps start pre-filled with the primary values.
            state.mode = AddSecondaryAccount(mode.name, mode.account, value, buffer=mode.account)
            state.status = f"Enter ADC account [{mode.account}]:"
        elif isinstance(mode, AddSecondaryAccount):
            state.mode = AddSecondaryProject(
                mode.name, mode.account, mode.project, value, buffer=mode.project
            )
            state.status = f"Enter ADC quota project [{mode.project}]:"
        else:
            profile = Profile(
                user_account=mode.account,
                user_project=mode.project,
                adc_account=mode.secondary_account,
                adc_quota_project=value,
            )
            state.mode = Normal()
            state.status = f"Profile '{mode.name}' added."
            return [PersistProfile(mode.name, profile, created=True), Reload()]
        return []

    # --- Editing ---

    def _handle_edit(self, mode: Editing, key: Key) -> list[Effect]:
        state = self.state
        code = key.code
        if code is KeyCode.ESC:
            state.mode = Normal()
            state.status = "Edit cancelled."
        elif code is KeyCode.DOWN:
            if mode.cursor is not None:
                state.mode = replace(mode, cursor=(mode.cursor + 1) % len(mode.suggestions))
            elif mode.suggestions is not None:
                state.mode = _opened(mode)
            elif mode.field is EditField.ACCOUNT:
                return [LoadAccountSuggestions()]
            else:
                suggestions = self._project_suggestions(mode.account)
                state.mode = _opened(replace(mode, project_suggestions=suggestions))
        elif code is KeyCode.UP:
            if mode.cursor is not None:
                state.mode = replace(mode, cursor=(mode.cursor - 1) % len(mode.suggestions))
        elif code is KeyCode.ENTER:
            if mode.cursor is None:
                return self._save_edit(mode)
            state.mode = _with_buffer(mode, mode.suggestions[mode.cursor])
        elif code is KeyCode.TAB:
            if mode.field is EditField.PROJECT:
                return self._save_edit(mode)
            state.mode = replace(mode, field=EditField.PROJECT, cursor=None)
            state.status = EDIT_PROJECT_HELP
            account = mode.account.strip()
            return [FetchProjects(account)] if account else []
        elif code is KeyCode.BACKSPACE:
            state.mode = _with_buffer(mode, mode.buffer[:-1])
        elif code is KeyCode.CHAR:
            state.mode = _with_buffer(mode, mode.buffer + key.char)
        return []

    def _project_suggestions(self, account: str) -> tuple[str, ...]:
        values = [profile.project_for(role) for profile in self.profiles for role in Role]
        values.extend(self._projects.get(account.strip(), ()))
        return _sorted_unique(values)

    def _save_edit(self, mode: Editing) -> list[Effect]:
        state = self.state
        state.mode = Normal()
        profile = self.profile_set.profiles.get(mode.name)
        if profile is None:
            state.status = f"Profile '{mode.name}' no longer exists."
            return []
        updated = profile.with_role(mode.role, mode.account.strip(), mode.project.strip())
        state.status = f"Profile '{mode.name}' updated."
        return [PersistProfile(mode.name, updated), Reload()]
