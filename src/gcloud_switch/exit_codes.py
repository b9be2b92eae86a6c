"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~gcloud_switch.exceptions.GcloudSwitchError` subclass.
Shell wrappers can inspect the exit code to determine the failure class
without parsing stderr.

Example::

    $ gcloud-switch switch nope
    $ echo $?
    4   # EXIT_NOT_FOUND -- no such profile
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_AUTH_FAILURE = 3
"""A credential backend operation (login, activation) failed."""

EXIT_NOT_FOUND = 4
"""The named profile does not exist."""

EXIT_SYNC_FAILURE = 6
"""The synchronisation remote could not be reached or updated."""

EXIT_INTERRUPTED = 130
"""The user cancelled with Ctrl-C."""
