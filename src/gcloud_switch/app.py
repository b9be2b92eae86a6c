"""Typer application and CLI entry point for gcloud-switch.

Running ``gcloud-switch`` with no sub-command opens the interactive profile
switcher; the sub-commands (``add``, ``list``, ``switch``, ``delete``,
``import`` and the ``sync`` group) cover the same operations for scripts.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers and invokes the Typer app.
:class:`~gcloud_switch.exceptions.GcloudSwitchError` exits with the error's
``exit_code``; any other exception is written to a crash log under the data
directory.

See Also:
    :mod:`gcloud_switch.tui`: The interactive UI.
    :mod:`gcloud_switch.output`: Output formatting initialised in
    :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any

import typer

from gcloud_switch import __version__
from gcloud_switch.exit_codes import EXIT_GENERIC_FAILURE, EXIT_INTERRUPTED


app = typer.Typer(
    name="gcloud-switch",
    help="Switch between gcloud accounts, projects and ADC credentials.",
    no_args_is_help=False,
    add_completion=False,
    rich_markup_mode="rich",
)

# ------------------------------------------------------------------ #
# Sub-commands
# ------------------------------------------------------------------ #

from gcloud_switch.commands.profiles import (  # noqa: E402
    add_command,
    delete_command,
    import_command,
    list_command,
    switch_command,
)
from gcloud_switch.commands.sync import sync_app  # noqa: E402

app.command("add")(add_command)
app.command("list")(list_command)
app.command("switch")(switch_command)
app.command("delete")(delete_command)
app.command("import")(import_command)
app.add_typer(sync_app, name="sync", help="Synchronise profiles through a git remote.")


_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(threadName)s] %(message)s"


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"gcloud-switch {__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool = False) -> None:
    """Send the package's log records to ``logs/gcloud-switch.log``.

    Nothing is logged to the terminal, which the interactive UI owns.
    Calling this again only adjusts the level.
    """
    from gcloud_switch.config import get_logs_dir

    logger = logging.getLogger("gcloud_switch")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False
    log_path = get_logs_dir() / "gcloud-switch.log"
    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == str(log_path):
            return
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    logger.addHandler(handler)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~gcloud_switch.output.OutputManager` and
    file logging from CLI flags. Without a sub-command it runs the
    interactive UI and, once the terminal is restored, prints the UI's final
    status line.

    Args:
        ctx: Typer invocation context.
        version: If ``True``, print the version string and exit.
        json_output: Force JSON output format.
        plain_output: Force plain-text output format.
        no_color: Disable all colour and Rich markup.
        quiet: Suppress non-essential diagnostic output.
        verbose: Write debug-level records to the log file.
    """
    from gcloud_switch.output import OutputFormat, OutputManager, print_data, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet))
    configure_logging(verbose)

    if ctx.invoked_subcommand is None:
        from gcloud_switch.tui import run_interactive

        status = run_interactive()
        if status:
            print_data(status)


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from gcloud_switch.config import get_logs_dir

    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = get_logs_dir() / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``gcloud-switch`` console script.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)
    except Exception as exc:
        from gcloud_switch.exceptions import GcloudSwitchError
        from gcloud_switch.output import error

        if isinstance(exc, GcloudSwitchError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            logging.getLogger(__name__).exception("unexpected error")
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
