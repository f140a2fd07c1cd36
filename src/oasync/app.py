"""Typer application and CLI entry point for oasync.

This module wires together the top-level Typer application and registers the
built-in sub-commands (``parse``, ``deps``, ``diff``, ``status``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers, registers commands, and
invokes the Typer app. :class:`~oasync.exceptions.OasError` instances that
escape a command exit with their own ``exit_code``.

See Also:
    :mod:`oasync.config`: Settings resolution done in :func:`main_callback`.
    :mod:`oasync.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

import typer
from rich.logging import RichHandler

from oasync import __version__
from oasync.exit_codes import EXIT_GENERIC_FAILURE

if TYPE_CHECKING:
    from oasync.output import OutputManager


app = typer.Typer(
    name="oasync",
    help="Parse, cache and diff Swagger 2.0 / OpenAPI 3.x specs.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"oasync {__version__}")
        raise typer.Exit()


def _configure_logging(output: OutputManager) -> None:
    """Route ``oasync.*`` log records to the diagnostics console through Rich."""
    verbose = output.is_verbose
    logger = logging.getLogger("oasync")
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)
    handler = RichHandler(console=output.stderr_console, show_time=False, show_path=verbose)
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


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
        False, "--verbose", "-v", help="Enable debug output."
    ),
    config: Optional[Path] = typer.Option(
        None, "--config", help="Settings file (default: oasync/config.json in the config dir)."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~oasync.output.OutputManager` and logging
    from CLI flags, resolves :class:`~oasync.models.Settings`, and stores them
    in the Typer context so sub-commands can read them via ``ctx.obj``.
    """
    from oasync.config import load_settings
    from oasync.exceptions import OasError
    from oasync.output import OutputFormat, OutputManager, error, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    output = OutputManager(
        format=fmt,
        no_color=no_color,
        quiet=quiet,
        verbose=verbose,
    )
    set_output(output)
    _configure_logging(output)

    try:
        settings = load_settings(config)
    except OasError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code)

    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings
    ctx.obj["verbose"] = verbose


def register_commands() -> None:
    """Attach the built-in sub-commands to :data:`app` (idempotent)."""
    from oasync.commands.deps import deps_command
    from oasync.commands.diff import diff_command
    from oasync.commands.parse import parse_command
    from oasync.commands.status import status_command

    registered = {info.name for info in app.registered_commands}
    for name, command in (
        ("parse", parse_command),
        ("deps", deps_command),
        ("diff", diff_command),
        ("status", status_command),
    ):
        if name not in registered:
            app.command(name)(command)


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """CLI entry point invoked by the ``oasync`` console script.

    Unhandled :class:`~oasync.exceptions.OasError` instances cause a clean
    exit with the error's ``exit_code``. Anything else is logged with its
    traceback and exits with a generic failure.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        register_commands()
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from oasync.exceptions import OasError
        from oasync.output import error

        if isinstance(exc, OasError):
            error(str(exc))
            sys.exit(exc.exit_code)
        logging.getLogger(__name__).exception("Unexpected error")
        error(f"Unexpected error: {exc}")
        sys.exit(EXIT_GENERIC_FAILURE)
