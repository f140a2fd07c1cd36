"""Deps command -- impact analysis for a schema or an endpoint."""

from __future__ import annotations

from typing import Optional

import typer

from oasync.commands import exit_on_failure, settings_from
from oasync.exit_codes import EXIT_INVALID_USAGE
from oasync.graph import DependencyDirection
from oasync.output import OutputFormat, error, get_output, info
from oasync.tools import query_deps


def deps_command(
    ctx: typer.Context,
    source: str = typer.Argument(help="URL or file path of the Swagger/OpenAPI spec."),
    schema: Optional[str] = typer.Option(None, "--schema", "-s", help="Schema name."),
    path: Optional[str] = typer.Option(
        None, "--path", "-p", help="Endpoint key ('get:/pets') or bare path ('/pets')."
    ),
    direction: DependencyDirection = typer.Option(
        DependencyDirection.DOWNSTREAM, "--direction", help="Query direction."
    ),
) -> None:
    """Show what a schema change affects, or which schemas an endpoint uses.

    Example::

        oasync deps openapi.yaml --schema Customer
        oasync deps openapi.yaml --path get:/orders --json
    """
    if (schema is None) == (path is None):
        error("Pass exactly one of --schema or --path.")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    result = query_deps(
        source, schema=schema, path=path, direction=direction, settings=settings_from(ctx)
    )
    exit_on_failure(result)

    output = get_output()
    if output.format == OutputFormat.JSON:
        output.format_response(result.model_dump(mode="json", exclude_none=True))
        return

    rows = [["endpoint", key] for key in result.affected_paths]
    rows += [["schema", name] for name in result.affected_schemas]
    output.print_table(["Kind", "Name"], rows, title=f"Dependencies of {result.target}")
    info(f"{result.total_affected} affected")
