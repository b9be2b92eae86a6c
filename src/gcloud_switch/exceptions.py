"""Exception hierarchy for gcloud-switch.

All exceptions inherit from :class:`GcloudSwitchError`, which carries an
``exit_code`` attribute mapped to a constant from
:mod:`gcloud_switch.exit_codes`. The top-level error handler in
:func:`gcloud_switch.app.main` catches ``GcloudSwitchError`` and exits with
the appropriate code, while unexpected exceptions produce a crash log.

Inside the interactive UI the same exceptions abort the transition in
progress and are shown on the status line instead.

Subclass hierarchy::

    GcloudSwitchError (exit 1)
    +-- InvalidUsageError   (exit 2)
    +-- NotFoundError       (exit 4)
    +-- ConfigError         (exit 1)
    +-- StoreError          (exit 1)
    +-- BackendError        (exit 3)
    +-- SyncError           (exit 6)
"""

from gcloud_switch.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_SYNC_FAILURE,
)


class GcloudSwitchError(Exception):
    """Base exception for all gcloud-switch errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(GcloudSwitchError):
    """Raised for invalid CLI arguments or missing required parameters."""

    exit_code = EXIT_INVALID_USAGE


class NotFoundError(GcloudSwitchError):
    """Raised when a named profile does not exist."""

    exit_code = EXIT_NOT_FOUND


class ConfigError(GcloudSwitchError):
    """Raised when the config directory is unusable or a settings file is invalid."""

    exit_code = EXIT_GENERIC_FAILURE


class StoreError(GcloudSwitchError):
    """Raised when the profile document cannot be read or written."""

    exit_code = EXIT_GENERIC_FAILURE


class BackendError(GcloudSwitchError):
    """Raised when a credential backend command (login, activation) fails."""

    exit_code = EXIT_AUTH_FAILURE


class SyncError(GcloudSwitchError):
    """Raised on synchronisation transport failures (git clone/fetch/push)."""

    exit_code = EXIT_SYNC_FAILURE
