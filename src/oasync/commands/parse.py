"""Parse command -- summarise or list the contents of a spec.

``oasync parse`` wraps :func:`~oasync.tools.parse_spec`. In JSON mode the
full result model is printed; otherwise metadata goes to stdout as a table
and listings as one table per kind.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from oasync.commands import exit_on_failure, settings_from
from oasync.output import OutputFormat, get_output, info, suggest
from oasync.tools import ParseFormat, ParseOutput, parse_spec


def _render(result: ParseOutput) -> None:
    output = get_output()
    if output.format == OutputFormat.JSON:
        output.format_response(result.model_dump(mode="json", exclude_none=True))
        return

    meta = result.metadata
    if meta is not None:
        output.print_table(
            ["Title", "Version", "Spec", "Endpoints", "Schemas", "Tags"],
            [[
                meta.title,
                meta.version,
                meta.openapi_version.label,
                str(meta.endpoint_count),
                str(meta.schema_count),
                str(meta.tag_count),
            ]],
            title="Spec",
        )
    if result.endpoint_keys is not None:
        output.print_table(["Endpoint"], [[k] for k in result.endpoint_keys], title="Endpoints")
    if result.schema_names is not None:
        output.print_table(["Schema"], [[n] for n in result.schema_names], title="Schemas")
    if result.endpoints is not None:
        output.print_table(
            ["Method", "Path", "Operation", "Tags", "Schemas"],
            [
                [
                    e.method.upper(),
                    e.path,
                    e.operation_id,
                    ", ".join(e.tags),
                    ", ".join(e.schema_refs) or "-",
                ]
                for e in result.endpoints
            ],
            title="Endpoints",
        )
    if result.schemas is not None:
        output.print_table(
            ["Name", "Type", "References"],
            [[s.name, s.type, ", ".join(s.refs) or "-"] for s in result.schemas],
            title="Schemas",
        )

    if result.message:
        info(result.message)
    elif result.from_cache:
        info("Served from project cache.")
    if result.pagination is not None and result.pagination.has_more:
        next_offset = result.pagination.offset + result.pagination.limit
        suggest(f"More results available: --offset {next_offset}")


def parse_command(
    ctx: typer.Context,
    source: str = typer.Argument(help="URL or file path of the Swagger/OpenAPI spec."),
    format: ParseFormat = typer.Option(
        ParseFormat.SUMMARY, "--format", "-f", help="What to return."
    ),
    project_dir: Optional[Path] = typer.Option(
        None, "--project-dir", "-d", help="Project directory holding the cache record."
    ),
    use_cache: bool = typer.Option(
        False, "--use-cache", help="Reuse a still-valid cache record."
    ),
    ttl: Optional[int] = typer.Option(
        None, "--ttl", help="TTL in seconds for the cache record written."
    ),
    limit: Optional[int] = typer.Option(None, "--limit", help="Page size."),
    offset: int = typer.Option(0, "--offset", help="Page start."),
    tag: Optional[str] = typer.Option(None, "--tag", help="Only endpoints with this tag."),
    path_prefix: Optional[str] = typer.Option(
        None, "--path-prefix", help="Only endpoints under this path."
    ),
) -> None:
    """Parse a spec and show its metadata, endpoints or schemas.

    Example::

        oasync parse openapi.yaml
        oasync parse https://petstore.swagger.io/v2/swagger.json -f endpoints --tag pet
        oasync parse api.json -d . --use-cache
    """
    result = parse_spec(
        source,
        format=format,
        project_dir=project_dir,
        use_cache=use_cache,
        ttl_seconds=ttl,
        limit=limit,
        offset=offset,
        tag=tag,
        path_prefix=path_prefix,
        settings=settings_from(ctx),
    )
    exit_on_failure(result)
    _render(result)
