"""Schema and endpoint dependency graph.

A :class:`DependencyGraph` is built once from a
:class:`~oasync.models.ParsedSpec` and answers impact questions such as
"which endpoints change if schema ``Customer`` changes?".

Only the edges the parser extracted are stored (endpoint to schema, schema to
schema, plus reverse indexes). Transitive relationships are computed on
query with an explicit work list and visited set, so cyclic and mutually
recursive schemas terminate. Unknown targets yield empty results.
"""

from __future__ import annotations

import enum
import logging
from collections import defaultdict
from typing import Iterable

from pydantic import BaseModel

from oasync.models import ParsedSpec

logger = logging.getLogger(__name__)


class DependencyDirection(str, enum.Enum):
    """Direction of a :meth:`DependencyGraph.query`."""

    DOWNSTREAM = "downstream"
    """What depends on the target."""
    UPSTREAM = "upstream"
    """What the target depends on."""
    BOTH = "both"


class GraphStats(BaseModel):
    total_schemas: int
    total_paths: int
    schema_to_path_edges: int
    schema_to_schema_edges: int


class DependencyQueryResult(BaseModel):
    """Outcome of a :meth:`DependencyGraph.query`; both lists are sorted."""

    target: str
    is_schema: bool
    direction: DependencyDirection
    affected_paths: list[str]
    affected_schemas: list[str]


class DependencyGraph:
    """Adjacency maps between endpoint keys and schema names.

    Four maps are kept:

    * ``schema -> endpoints`` that use it directly
    * ``endpoint -> schemas`` it uses directly
    * ``schema -> schemas`` it references
    * ``schema -> schemas`` that reference it (reverse index)

    Build with :meth:`build`; the graph is not mutated afterwards.
    """

    def __init__(self) -> None:
        self._schema_to_paths: dict[str, set[str]] = defaultdict(set)
        self._path_to_schemas: dict[str, set[str]] = defaultdict(set)
        self._schema_to_schemas: dict[str, set[str]] = defaultdict(set)
        self._schema_referrers: dict[str, set[str]] = defaultdict(set)
        self._path_edges = 0
        self._schema_edges = 0

    @classmethod
    def build(cls, spec: ParsedSpec) -> DependencyGraph:
        """Build the graph from a parsed spec's ``refs`` and ``schema_refs``."""
        graph = cls()
        for name, schema in spec.schemas.items():
            for ref in schema.refs:
                graph._link_schemas(name, ref)
        for key, endpoint in spec.endpoints.items():
            for ref in endpoint.schema_refs:
                graph._link_path(key, ref)
        logger.debug(
            "Built dependency graph: %d path edges, %d schema edges",
            graph._path_edges, graph._schema_edges,
        )
        return graph

    @classmethod
    def from_edges(
        cls,
        schema_edges: Iterable[tuple[str, str]] = (),
        path_edges: Iterable[tuple[str, str]] = (),
    ) -> DependencyGraph:
        """Build a graph from explicit ``(from, to)`` edge pairs."""
        graph = cls()
        for source, target in schema_edges:
            graph._link_schemas(source, target)
        for path, schema in path_edges:
            graph._link_path(path, schema)
        return graph

    def _link_path(self, path: str, schema: str) -> None:
        if schema not in self._path_to_schemas[path]:
            self._path_edges += 1
        self._path_to_schemas[path].add(schema)
        self._schema_to_paths[schema].add(path)

    def _link_schemas(self, source: str, target: str) -> None:
        if target not in self._schema_to_schemas[source]:
            self._schema_edges += 1
        self._schema_to_schemas[source].add(target)
        self._schema_referrers[target].add(source)

    # --- Traversals ---

    def get_affected_paths(self, schema: str) -> set[str]:
        """Endpoint keys impacted by a change to *schema*.

        Includes endpoints using *schema* directly and endpoints using any
        schema that references it, transitively.
        """
        affected: set[str] = set()
        visited: set[str] = set()
        pending = [schema]
        while pending:
            current = pending.pop()
            if current in visited:
                continue
            visited.add(current)
            affected |= self._schema_to_paths.get(current, set())
            pending.extend(self._schema_referrers.get(current, ()))
        return affected

    def get_schema_dependents(self, schema: str) -> set[str]:
        """Schemas that reference *schema*, transitively.

        In a reference cycle *schema* is its own dependent and is included.
        """
        dependents: set[str] = set()
        visited: set[str] = set()
        pending = [schema]
        while pending:
            current = pending.pop()
            if current in visited:
                continue
            visited.add(current)
            for referrer in self._schema_referrers.get(current, ()):
                dependents.add(referrer)
                pending.append(referrer)
        return dependents

    def get_path_schemas(self, path: str) -> set[str]:
        """Schemas an endpoint uses, directly or through other schemas."""
        collected: set[str] = set()
        pending = list(self._path_to_schemas.get(path, ()))
        while pending:
            current = pending.pop()
            if current in collected:
                continue
            collected.add(current)
            pending.extend(self._schema_to_schemas.get(current, ()))
        return collected

    def get_schema_references(self, schema: str) -> set[str]:
        """Schemas *schema* references directly (one hop)."""
        return set(self._schema_to_schemas.get(schema, ()))

    def query(
        self,
        target: str,
        direction: DependencyDirection = DependencyDirection.DOWNSTREAM,
        is_schema: bool = True,
    ) -> DependencyQueryResult:
        """Answer a dependency question about a schema or an endpoint.

        For a schema, ``DOWNSTREAM`` returns the affected endpoints and
        transitive dependents, ``UPSTREAM`` only the schemas it references
        directly, and ``BOTH`` the union. For an endpoint key, the direction
        is ignored and its transitive schema set is returned.
        """
        paths: set[str] = set()
        schemas: set[str] = set()
        if is_schema:
            if direction in (DependencyDirection.DOWNSTREAM, DependencyDirection.BOTH):
                paths = self.get_affected_paths(target)
                schemas = self.get_schema_dependents(target)
            if direction in (DependencyDirection.UPSTREAM, DependencyDirection.BOTH):
                # Upstream stays one hop deep.
                schemas |= self.get_schema_references(target)
        else:
            schemas = self.get_path_schemas(target)

        return DependencyQueryResult(
            target=target,
            is_schema=is_schema,
            direction=direction,
            affected_paths=sorted(paths),
            affected_schemas=sorted(schemas),
        )

    def stats(self) -> GraphStats:
        """Aggregate counts; ``total_schemas`` counts schemas used by an endpoint."""
        return GraphStats(
            total_schemas=len(self._schema_to_paths),
            total_paths=len(self._path_to_schemas),
            schema_to_path_edges=self._path_edges,
            schema_to_schema_edges=self._schema_edges,
        )
