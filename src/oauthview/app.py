"""Typer application factory and CLI entry point for oauthview.

This module wires together the top-level Typer application and registers the
built-in sub-commands (``trust``, ``config``, ``replay``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers and invokes the Typer app.
Unhandled exceptions are written to a crash log under the data directory.

See Also:
    :mod:`oauthview.config`: Configuration resolution.
    :mod:`oauthview.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from oauthview import __version__
from oauthview.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="oauthview",
    help="Capture OAuth2 redirects from an embedded browser and manage trusted certificates.",
    no_args_is_help=True,
    add_completion=True,
    rich_markup_mode="rich",
)

# ------------------------------------------------------------------ #
# Commands
# ------------------------------------------------------------------ #

from oauthview.commands.config import config_app  # noqa: E402
from oauthview.commands.replay import replay_command  # noqa: E402
from oauthview.commands.trust import trust_app  # noqa: E402

app.add_typer(trust_app, name="trust", help="Manage trusted server certificates.")
app.add_typer(config_app, name="config", help="Configuration management.")
app.command("replay")(replay_command)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"oauthview {__version__}")
        raise typer.Exit()


def _configure_logging(level_name: str) -> None:
    """Send library log records to stderr at *level_name*."""
    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logging.getLogger().setLevel(level)


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    trust_store: Optional[str] = typer.Option(
        None, "--trust-store", help="Known-servers store file to use."
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
    force: bool = typer.Option(
        False, "--force", "-f", help="Skip confirmations."
    ),
    no_input: bool = typer.Option(
        False, "--no-input", help="Disable interactive prompts."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~oauthview.output.OutputManager` and
    logging from CLI flags, resolves the effective configuration, and stores
    shared options in the Typer context so that sub-commands can read them
    via ``ctx.obj``.
    """
    from oauthview.config import resolve_config
    from oauthview.exceptions import ConfigError
    from oauthview.models import GlobalConfig
    from oauthview.output import OutputFormat, OutputManager, set_output, warning

    config_error: Optional[ConfigError] = None
    try:
        config = resolve_config(cli_store_path=trust_store)
    except ConfigError as exc:
        # `config` sub-commands must still run so a broken file can be reset.
        if ctx.invoked_subcommand != "config":
            raise
        config_error = exc
        config = GlobalConfig()

    try:
        fmt = OutputFormat(config.output.format)
    except ValueError:
        fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet))
    if config_error is not None:
        warning(f"{config_error}; using defaults.")
    _configure_logging("DEBUG" if verbose else config.log_level)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["force"] = force
    ctx.obj["no_input"] = no_input
    ctx.obj["verbose"] = verbose


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from oauthview.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``oauthview`` console script.

    Unhandled :class:`~oauthview.exceptions.OAuthViewError` instances
    cause a clean exit with the error's ``exit_code``. All other exceptions
    produce a crash log and a generic failure exit.

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
        sys.exit(130)
    except Exception as exc:
        from oauthview.exceptions import OAuthViewError
        from oauthview.output import error

        if isinstance(exc, OAuthViewError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
