"""Status command -- show the project cache record."""

from __future__ import annotations

from pathlib import Path

import typer

from oasync.commands import exit_on_failure, settings_from
from oasync.output import OutputFormat, get_output, info, success, suggest, warning
from oasync.tools import get_status


def status_command(
    ctx: typer.Context,
    project_dir: Path = typer.Argument(
        Path("."), help="Project directory holding the cache record."
    ),
    check_remote: bool = typer.Option(
        False, "--check-remote", help="Probe a remote source for changes."
    ),
    clear: bool = typer.Option(
        False, "--clear", help="Delete the cache record and stored spec content."
    ),
) -> None:
    """Show what the project cache knows about the last parsed spec.

    Example::

        oasync status
        oasync status ./service --check-remote --json
        oasync status ./service --clear
    """
    result = get_status(
        project_dir, check_remote=check_remote, clear=clear, settings=settings_from(ctx)
    )
    exit_on_failure(result)

    output = get_output()
    if output.format == OutputFormat.JSON:
        output.format_response(result.model_dump(mode="json", exclude_none=True))
        return

    if result.cleared is not None:
        if result.cleared:
            success(f"Cleared cache in {project_dir}.")
        else:
            info(f"No cache record in {project_dir}.")
        return

    if not result.has_cache or result.cache_info is None:
        info(f"No cache record in {project_dir}.")
        suggest("Run: oasync parse <source> --project-dir <dir>")
        return

    ci = result.cache_info
    output.print_table(
        ["Source", "Title", "Version", "Endpoints", "Schemas", "Last fetch", "Expired"],
        [[
            ci.source,
            ci.title or "-",
            ci.version or "-",
            str(ci.endpoint_count),
            str(ci.schema_count),
            ci.last_fetch,
            "yes" if result.expired else "no",
        ]],
        title="Cache",
    )
    if result.remote_status is not None:
        if result.remote_status.is_stale:
            warning(result.remote_status.message)
        else:
            info(result.remote_status.message)
