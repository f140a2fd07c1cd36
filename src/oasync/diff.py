"""Structural diff between two parsed specs, with breaking-change detection.

:func:`diff` compares schemas and endpoints by name/key and uses content
hashes as an equality short-circuit. When a dependency graph built from the
**new** spec is supplied, a modified schema marks every endpoint that reaches
it (directly or through other schemas) as modified; without a graph only
endpoints that reference the schema directly are marked.

Auto-classified breaking changes are endpoint removal, schema removal and
newly required parameters. The remaining categories exist for consumers
that classify changes themselves; the engine reports other deltas as
descriptive notes.
"""

from __future__ import annotations

import enum
from typing import Optional

from pydantic import BaseModel, Field

from oasync.graph import DependencyGraph
from oasync.models import Endpoint, HTTPMethod, OpenApiVersion, ParsedSpec, Schema


class BreakingChangeCategory(str, enum.Enum):
    ENDPOINT_REMOVED = "endpoint_removed"
    PARAMETER_ADDED = "parameter_added"
    PARAMETER_TYPE_CHANGED = "parameter_type_changed"
    RESPONSE_TYPE_CHANGED = "response_type_changed"
    SCHEMA_REMOVED = "schema_removed"
    SCHEMA_FIELD_REMOVED = "schema_field_removed"
    SCHEMA_FIELD_TYPE_CHANGED = "schema_field_type_changed"


class EndpointChange(BaseModel):
    key: str
    path: str
    method: HTTPMethod
    operation_id: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    changes: list[str] = Field(default_factory=list)
    affected_by_schemas: list[str] = Field(default_factory=list)


class SchemaChange(BaseModel):
    name: str
    changes: list[str] = Field(default_factory=list)
    affected_endpoints: list[str] = Field(default_factory=list)


class BreakingChange(BaseModel):
    category: BreakingChangeCategory
    message: str
    location: str


class DiffSummary(BaseModel):
    """Counts derived from a :class:`SpecDiff`."""

    added_endpoints: int
    modified_endpoints: int
    removed_endpoints: int
    unchanged_endpoints: int
    added_schemas: int
    modified_schemas: int
    removed_schemas: int
    unchanged_schemas: int
    breaking_changes: int
    has_breaking_changes: bool


class SpecDiff(BaseModel):
    """All differences between an old and a new spec.

    Every list is ordered by endpoint key or schema name.
    """

    added_endpoints: list[EndpointChange] = Field(default_factory=list)
    modified_endpoints: list[EndpointChange] = Field(default_factory=list)
    removed_endpoints: list[EndpointChange] = Field(default_factory=list)
    unchanged_endpoints: int = 0

    added_schemas: list[SchemaChange] = Field(default_factory=list)
    modified_schemas: list[SchemaChange] = Field(default_factory=list)
    removed_schemas: list[SchemaChange] = Field(default_factory=list)
    unchanged_schemas: int = 0

    breaking_changes: list[BreakingChange] = Field(default_factory=list)

    @property
    def has_breaking_changes(self) -> bool:
        return bool(self.breaking_changes)

    def breaking_only(self) -> SpecDiff:
        """Return a view holding only removals and breaking changes."""
        return SpecDiff(
            removed_endpoints=list(self.removed_endpoints),
            removed_schemas=list(self.removed_schemas),
            breaking_changes=list(self.breaking_changes),
        )

    def summary(self) -> DiffSummary:
        return DiffSummary(
            added_endpoints=len(self.added_endpoints),
            modified_endpoints=len(self.modified_endpoints),
            removed_endpoints=len(self.removed_endpoints),
            unchanged_endpoints=self.unchanged_endpoints,
            added_schemas=len(self.added_schemas),
            modified_schemas=len(self.modified_schemas),
            removed_schemas=len(self.removed_schemas),
            unchanged_schemas=self.unchanged_schemas,
            breaking_changes=len(self.breaking_changes),
            has_breaking_changes=self.has_breaking_changes,
        )


def _schema_location(spec: ParsedSpec, name: str) -> str:
    if spec.metadata.openapi_version is OpenApiVersion.SWAGGER_2:
        return f"#/definitions/{name}"
    return f"#/components/schemas/{name}"


def _endpoint_change(key: str, endpoint: Endpoint, changes: list[str], **extra) -> EndpointChange:
    return EndpointChange(
        key=key,
        path=endpoint.path,
        method=endpoint.method,
        operation_id=endpoint.operation_id,
        tags=list(endpoint.tags),
        changes=changes,
        **extra,
    )


def compare_schema_details(old: Schema, new: Schema) -> list[str]:
    """Describe how two versions of a schema with differing hashes differ."""
    old_refs, new_refs = set(old.refs), set(new.refs)
    changes = [f"Added reference to {ref}" for ref in sorted(new_refs - old_refs)]
    changes += [f"Removed reference to {ref}" for ref in sorted(old_refs - new_refs)]
    return changes or ["Schema definition changed"]


def compare_endpoints(old: Endpoint, new: Endpoint) -> tuple[list[str], list[str]]:
    """Describe how two versions of an endpoint differ.

    Returns:
        ``(changes, added_required)``: human-readable notes, and the names of
        parameters that are new and required. Both are empty when the hashes
        match.
    """
    if old.hash == new.hash:
        return [], []

    changes: list[str] = []
    added_required: list[str] = []

    old_params = {(p.name, p.location): p for p in old.parameters}
    new_params = {(p.name, p.location): p for p in new.parameters}
    for key in sorted(new_params.keys() - old_params.keys()):
        param = new_params[key]
        if param.required:
            changes.append(f"Added required parameter: {param.name}")
            added_required.append(param.name)
        else:
            changes.append(f"Added parameter: {param.name}")
    for key in sorted(old_params.keys() - new_params.keys()):
        changes.append(f"Removed parameter: {old_params[key].name}")

    if old.request_body is None and new.request_body is not None:
        changes.append("Added request body")
    elif old.request_body is not None and new.request_body is None:
        changes.append("Removed request body")
    elif (
        old.request_body is not None
        and new.request_body is not None
        and old.request_body.schema_ref != new.request_body.schema_ref
    ):
        changes.append("Request body schema changed")

    old_status, new_status = set(old.responses), set(new.responses)
    changes += [f"Added response: {s}" for s in sorted(new_status - old_status)]
    changes += [f"Removed response: {s}" for s in sorted(old_status - new_status)]

    return changes or ["Endpoint definition changed"], added_required


def diff(
    old: ParsedSpec,
    new: ParsedSpec,
    graph: Optional[DependencyGraph] = None,
) -> SpecDiff:
    """Compare *old* against *new*.

    Args:
        old: The previous spec.
        new: The candidate spec.
        graph: Dependency graph built from *new*. Enables transitive
            propagation of schema changes onto endpoints and fills
            :attr:`SchemaChange.affected_endpoints`.
    """
    result = SpecDiff()

    # --- Schemas ---
    modified_schemas: set[str] = set()
    for name in sorted(new.schemas.keys() - old.schemas.keys()):
        result.added_schemas.append(SchemaChange(name=name, changes=["New schema"]))

    for name in sorted(old.schemas.keys() - new.schemas.keys()):
        result.removed_schemas.append(SchemaChange(name=name, changes=["Schema removed"]))
        result.breaking_changes.append(
            BreakingChange(
                category=BreakingChangeCategory.SCHEMA_REMOVED,
                message=f"Schema '{name}' was removed",
                location=_schema_location(old, name),
            )
        )

    affected_by: dict[str, list[str]] = {}
    for name in sorted(old.schemas.keys() & new.schemas.keys()):
        old_schema, new_schema = old.schemas[name], new.schemas[name]
        if old_schema.hash == new_schema.hash:
            result.unchanged_schemas += 1
            continue
        modified_schemas.add(name)
        affected = sorted(graph.get_affected_paths(name)) if graph is not None else []
        for key in affected:
            affected_by.setdefault(key, []).append(name)
        result.modified_schemas.append(
            SchemaChange(
                name=name,
                changes=compare_schema_details(old_schema, new_schema),
                affected_endpoints=affected,
            )
        )

    # --- Endpoints ---
    for key in sorted(new.endpoints.keys() - old.endpoints.keys()):
        result.added_endpoints.append(_endpoint_change(key, new.endpoints[key], ["New endpoint"]))

    for key in sorted(old.endpoints.keys() - new.endpoints.keys()):
        endpoint = old.endpoints[key]
        result.removed_endpoints.append(_endpoint_change(key, endpoint, ["Endpoint removed"]))
        result.breaking_changes.append(
            BreakingChange(
                category=BreakingChangeCategory.ENDPOINT_REMOVED,
                message=f"Endpoint '{key}' was removed",
                location=endpoint.path,
            )
        )

    for key in sorted(old.endpoints.keys() & new.endpoints.keys()):
        old_endpoint, new_endpoint = old.endpoints[key], new.endpoints[key]
        changes, added_required = compare_endpoints(old_endpoint, new_endpoint)

        if graph is not None:
            via_schemas = affected_by.get(key, [])
        else:
            via_schemas = sorted(set(new_endpoint.schema_refs) & modified_schemas)

        if not changes and not via_schemas:
            result.unchanged_endpoints += 1
            continue

        changes = changes + [f"Affected by schema change: {s}" for s in via_schemas]
        result.modified_endpoints.append(
            _endpoint_change(key, new_endpoint, changes, affected_by_schemas=via_schemas)
        )
        for name in added_required:
            result.breaking_changes.append(
                BreakingChange(
                    category=BreakingChangeCategory.PARAMETER_ADDED,
                    message=f"Required parameter '{name}' was added to '{key}'",
                    location=new_endpoint.path,
                )
            )

    return result
