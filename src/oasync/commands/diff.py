"""Diff command -- compare two versions of a spec.

With ``--fail-on-breaking`` the command exits with
:data:`~oasync.exit_codes.EXIT_BREAKING_CHANGES` when the new spec breaks
existing clients, which makes it usable as a CI gate.
"""

from __future__ import annotations

import typer

from oasync.commands import exit_on_failure, settings_from
from oasync.exit_codes import EXIT_BREAKING_CHANGES
from oasync.output import OutputFormat, get_output, success, warning
from oasync.tools import diff_specs


def diff_command(
    ctx: typer.Context,
    old_source: str = typer.Argument(help="The previous spec (URL or file path)."),
    new_source: str = typer.Argument(help="The candidate spec (URL or file path)."),
    affected_paths: bool = typer.Option(
        True,
        "--affected-paths/--no-affected-paths",
        help="Propagate schema changes onto endpoints that reach them.",
    ),
    breaking_only: bool = typer.Option(
        False, "--breaking-only", help="Show only removals and breaking changes."
    ),
    fail_on_breaking: bool = typer.Option(
        False, "--fail-on-breaking", help="Exit with code 3 when breaking changes exist."
    ),
) -> None:
    """Compare two specs and report breaking changes.

    Example::

        oasync diff v1.yaml v2.yaml
        oasync diff v1.yaml v2.yaml --breaking-only --fail-on-breaking
    """
    result = diff_specs(
        old_source,
        new_source,
        include_affected_paths=affected_paths,
        breaking_only=breaking_only,
        settings=settings_from(ctx),
    )
    exit_on_failure(result)
    assert result.summary is not None and result.diff is not None

    output = get_output()
    if output.format == OutputFormat.JSON:
        output.format_response(result.model_dump(mode="json", exclude_none=True))
    else:
        s = result.summary
        output.print_table(
            ["", "Added", "Modified", "Removed", "Unchanged"],
            [
                ["Endpoints", str(s.added_endpoints), str(s.modified_endpoints),
                 str(s.removed_endpoints), str(s.unchanged_endpoints)],
                ["Schemas", str(s.added_schemas), str(s.modified_schemas),
                 str(s.removed_schemas), str(s.unchanged_schemas)],
            ],
            title="Summary",
        )
        changes = result.diff
        rows = [["added", c.key, "; ".join(c.changes)] for c in changes.added_endpoints]
        rows += [["modified", c.key, "; ".join(c.changes)] for c in changes.modified_endpoints]
        rows += [["removed", c.key, "; ".join(c.changes)] for c in changes.removed_endpoints]
        rows += [["added", c.name, "; ".join(c.changes)] for c in changes.added_schemas]
        rows += [["modified", c.name, "; ".join(c.changes)] for c in changes.modified_schemas]
        rows += [["removed", c.name, "; ".join(c.changes)] for c in changes.removed_schemas]
        if rows:
            output.print_table(["Change", "Target", "Details"], rows, title="Changes")
        if changes.breaking_changes:
            output.print_table(
                ["Category", "Location", "Message"],
                [[b.category.value, b.location, b.message] for b in changes.breaking_changes],
                title="Breaking changes",
            )

    if result.summary.has_breaking_changes:
        warning(f"{result.summary.breaking_changes} breaking change(s) found.")
        if fail_on_breaking:
            raise typer.Exit(code=EXIT_BREAKING_CHANGES)
    else:
        success("No breaking changes.")
