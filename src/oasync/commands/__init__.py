"""Built-in CLI sub-commands for oasync.

Each module exports a plain callback registered on the root app in
:func:`~oasync.app.register_commands`:

* :mod:`~oasync.commands.parse` -- parse a spec, optionally through the
  project cache.
* :mod:`~oasync.commands.deps` -- dependency queries on a schema or endpoint.
* :mod:`~oasync.commands.diff` -- compare two specs.
* :mod:`~oasync.commands.status` -- show the project cache record.

Commands are thin: they call :mod:`oasync.tools`, render the result, and
map failures to exit codes with :func:`exit_on_failure`.
"""

from __future__ import annotations

import typer

from oasync.exit_codes import exit_code_for
from oasync.models import Settings
from oasync.output import error
from oasync.tools import ToolOutput


def settings_from(ctx: typer.Context) -> Settings | None:
    """Settings resolved by the root callback, if any."""
    if isinstance(ctx.obj, dict):
        return ctx.obj.get("settings")
    return None


def exit_on_failure(result: ToolOutput) -> None:
    """Print the error of a failed result and exit with its mapped code."""
    if result.success:
        return
    error(result.error or "Unknown error")
    raise typer.Exit(code=exit_code_for(result.error_code))
