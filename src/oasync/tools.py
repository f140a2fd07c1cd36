"""The four boundary operations: parse, dependency query, diff and status.

Each operation returns a Pydantic output model carrying ``success`` plus
either a payload or ``error``/``error_code``. Nothing raises past this
module: :class:`~oasync.exceptions.OasError` subclasses are reported with
their code, and unexpected exceptions are logged with a traceback and
reported generically.

These functions are what a protocol adapter or the ``oasync`` CLI calls.
"""

from __future__ import annotations

import enum
import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, Field

from oasync.cache import CONTENT_DIRNAME, CacheManager, SpecContentStore
from oasync.config import load_settings
from oasync.diff import DiffSummary, SpecDiff, diff
from oasync.exceptions import CacheError, CacheNotFoundError, OasError
from oasync.graph import DependencyDirection, DependencyGraph, GraphStats
from oasync.models import (
    Endpoint,
    HTTPMethod,
    OasCache,
    OpenApiVersion,
    ParsedSpec,
    Schema,
    Settings,
    SpecMetadata,
)
from oasync.parser import FetchedSource, is_remote, parse_document, parse_source
from oasync.parser.schema import describe_schema_type

logger = logging.getLogger(__name__)


class ParseFormat(str, enum.Enum):
    """How much of a parsed spec :func:`parse_spec` returns."""

    SUMMARY = "summary"
    ENDPOINTS_LIST = "endpoints-list"
    SCHEMAS_LIST = "schemas-list"
    ENDPOINTS = "endpoints"
    SCHEMAS = "schemas"
    FULL = "full"


# --- Output models ---


class ToolOutput(BaseModel):
    success: bool
    error: Optional[str] = None
    error_code: Optional[str] = None


class PaginationInfo(BaseModel):
    total: int
    offset: int
    limit: int
    has_more: bool


class EndpointSummary(BaseModel):
    key: str
    path: str
    method: str
    operation_id: str
    summary: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    deprecated: bool = False
    schema_refs: list[str] = Field(default_factory=list)


class SchemaSummary(BaseModel):
    name: str
    type: str
    refs: list[str] = Field(default_factory=list)
    description: Optional[str] = None


class ParseOutput(ToolOutput):
    metadata: Optional[SpecMetadata] = None
    endpoints: Optional[list[EndpointSummary]] = None
    endpoint_keys: Optional[list[str]] = None
    schemas: Optional[list[SchemaSummary]] = None
    schema_names: Optional[list[str]] = None
    graph_stats: Optional[GraphStats] = None
    pagination: Optional[PaginationInfo] = None
    from_cache: bool = False
    message: Optional[str] = None


class DepsOutput(ToolOutput):
    target: str = ""
    is_schema: bool = False
    affected_paths: list[str] = Field(default_factory=list)
    affected_schemas: list[str] = Field(default_factory=list)
    total_affected: int = 0


class DiffOutput(ToolOutput):
    summary: Optional[DiffSummary] = None
    diff: Optional[SpecDiff] = None


class CacheInfo(BaseModel):
    source: str
    last_fetch: str
    spec_hash: str
    ttl_seconds: int
    title: Optional[str] = None
    version: Optional[str] = None
    openapi_version: Optional[str] = None
    endpoint_count: int = 0
    schema_count: int = 0


class RemoteStatus(BaseModel):
    is_stale: bool
    message: str


class StatusOutput(ToolOutput):
    has_cache: bool = False
    cache_info: Optional[CacheInfo] = None
    expired: Optional[bool] = None
    remote_status: Optional[RemoteStatus] = None
    cleared: Optional[bool] = None


def _failure(output_cls: type[ToolOutput], exc: Exception, prefix: str = "") -> ToolOutput:
    if isinstance(exc, OasError):
        return output_cls(success=False, error=f"{prefix}{exc}", error_code=exc.code)
    logger.exception("Unexpected error")
    return output_cls(success=False, error=f"{prefix}Unexpected error: {exc}")


# --- parse ---


def _summarise_endpoint(endpoint: Endpoint) -> EndpointSummary:
    return EndpointSummary(
        key=endpoint.key,
        path=endpoint.path,
        method=endpoint.method.value,
        operation_id=endpoint.effective_operation_id,
        summary=endpoint.summary,
        tags=list(endpoint.tags),
        deprecated=endpoint.deprecated,
        schema_refs=list(endpoint.schema_refs),
    )


def _summarise_schema(schema: Schema) -> SchemaSummary:
    return SchemaSummary(
        name=schema.name,
        type=describe_schema_type(schema.schema_type),
        refs=list(schema.refs),
        description=schema.description,
    )


def filter_endpoints(
    spec: ParsedSpec,
    tag: Optional[str] = None,
    path_prefix: Optional[str] = None,
) -> list[Endpoint]:
    """Endpoints sorted by key, restricted to a tag (case-insensitive) and path prefix."""
    wanted = tag.lower() if tag else None
    result = []
    for key in sorted(spec.endpoints):
        endpoint = spec.endpoints[key]
        if wanted is not None and not any(t.lower() == wanted for t in endpoint.tags):
            continue
        if path_prefix and not endpoint.path.startswith(path_prefix):
            continue
        result.append(endpoint)
    return result


def _metadata_from_cache(cache: OasCache) -> SpecMetadata:
    try:
        version = OpenApiVersion(cache.meta.openapi_version)
    except ValueError:
        version = OpenApiVersion.OPENAPI_30
    return SpecMetadata(
        title=cache.meta.title or "",
        version=cache.meta.version or "",
        openapi_version=version,
        endpoint_count=cache.meta.endpoint_count,
        schema_count=cache.meta.schema_count,
    )


def _load_valid_cache(manager: CacheManager, source: str) -> Optional[OasCache]:
    try:
        cache = manager.load()
    except CacheNotFoundError:
        logger.debug("No cache record in %s", manager.project_dir)
        return None
    except CacheError as exc:
        logger.warning("Ignoring unusable cache record: %s", exc)
        return None

    if cache.source != source:
        logger.debug("Cache record is for %s, not %s", cache.source, source)
        return None
    if not manager.is_valid(cache):
        logger.debug("Cache record for %s is stale", source)
        return None
    logger.debug("Cache hit for %s", source)
    return cache


def _save_cache(
    manager: CacheManager,
    spec: ParsedSpec,
    source: str,
    fetched: FetchedSource,
    ttl_seconds: Optional[int],
) -> None:
    try:
        cache = manager.create(spec, source, ttl_seconds=ttl_seconds, http_cache=fetched.http_cache)
        manager.save(cache)
        with SpecContentStore(manager.project_dir) as store:
            store.put(source, spec.spec_hash, fetched.content)
    except (CacheError, OSError, sqlite3.Error) as exc:
        logger.warning("Parsed %s but could not update the cache: %s", source, exc)


def _page(items: list, offset: int, limit: int) -> tuple[list, PaginationInfo]:
    total = len(items)
    return items[offset:offset + limit], PaginationInfo(
        total=total, offset=offset, limit=limit, has_more=offset + limit < total
    )


def _format_parse_output(
    spec: ParsedSpec,
    graph: DependencyGraph,
    fmt: ParseFormat,
    limit: int,
    offset: int,
    tag: Optional[str],
    path_prefix: Optional[str],
    from_cache: bool,
) -> ParseOutput:
    output = ParseOutput(
        success=True,
        metadata=spec.metadata,
        graph_stats=graph.stats(),
        from_cache=from_cache,
    )
    endpoints = filter_endpoints(spec, tag=tag, path_prefix=path_prefix)
    schemas = [spec.schemas[name] for name in sorted(spec.schemas)]

    if fmt is ParseFormat.ENDPOINTS_LIST:
        output.endpoint_keys = [e.key for e in endpoints]
    elif fmt is ParseFormat.SCHEMAS_LIST:
        output.schema_names = [s.name for s in schemas]
    elif fmt is ParseFormat.ENDPOINTS:
        page, output.pagination = _page(endpoints, offset, limit)
        output.endpoints = [_summarise_endpoint(e) for e in page]
    elif fmt is ParseFormat.SCHEMAS:
        page, output.pagination = _page(schemas, offset, limit)
        output.schemas = [_summarise_schema(s) for s in page]
    elif fmt is ParseFormat.FULL:
        endpoint_page, endpoint_info = _page(endpoints, offset, limit)
        schema_page, schema_info = _page(schemas, offset, limit)
        output.endpoints = [_summarise_endpoint(e) for e in endpoint_page]
        output.schemas = [_summarise_schema(s) for s in schema_page]
        output.pagination = PaginationInfo(
            total=max(endpoint_info.total, schema_info.total),
            offset=offset,
            limit=limit,
            has_more=endpoint_info.has_more or schema_info.has_more,
        )
    return output


def parse_spec(
    source: str,
    format: Union[ParseFormat, str] = ParseFormat.SUMMARY,
    project_dir: Optional[Union[str, Path]] = None,
    use_cache: bool = False,
    ttl_seconds: Optional[int] = None,
    limit: Optional[int] = None,
    offset: int = 0,
    tag: Optional[str] = None,
    path_prefix: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> ParseOutput:
    """Parse a spec and return the requested view of it.

    With *project_dir*, the project's cache record is checked first when
    *use_cache* is set, and refreshed after every successful fetch. A valid
    cache hit re-parses the stored document text when available and falls
    back to the cached metadata otherwise.

    Args:
        source: URL or local path of the spec.
        format: One of :class:`ParseFormat`.
        project_dir: Directory holding the cache record.
        use_cache: Reuse a still-valid cache record instead of fetching.
        ttl_seconds: TTL for the record written after this parse.
        limit: Page size for paginated formats (default from settings).
        offset: Page start for paginated formats.
        tag: Keep only endpoints carrying this tag (case-insensitive).
        path_prefix: Keep only endpoints whose path starts with this.
        settings: Explicit settings; resolved with
            :func:`~oasync.config.load_settings` when omitted.
    """
    try:
        fmt = ParseFormat(format)
    except ValueError:
        return ParseOutput(success=False, error=f"Unknown format: {format}")

    try:
        settings = settings or load_settings()
        manager = CacheManager(project_dir, settings) if project_dir is not None else None

        spec: Optional[ParsedSpec] = None
        from_cache = False
        if use_cache and manager is not None:
            cached = _load_valid_cache(manager, source)
            if cached is not None:
                with SpecContentStore(manager.project_dir) as store:
                    content = store.get(source, cached.spec_hash)
                if content is None:
                    return ParseOutput(
                        success=True,
                        metadata=_metadata_from_cache(cached),
                        from_cache=True,
                        message="Using cached metadata. Pass use_cache=False to force refresh.",
                    )
                spec = parse_document(content, source)
                from_cache = True

        if spec is None:
            spec, fetched = parse_source(source, timeout=settings.fetch_timeout)
            if manager is not None:
                _save_cache(manager, spec, source, fetched, ttl_seconds)

        graph = DependencyGraph.build(spec)
        return _format_parse_output(
            spec,
            graph,
            fmt,
            limit=limit or settings.page_limit,
            offset=max(offset, 0),
            tag=tag,
            path_prefix=path_prefix,
            from_cache=from_cache,
        )
    except Exception as exc:
        return _failure(ParseOutput, exc)


# --- deps ---


def resolve_path_target(spec: ParsedSpec, path: str) -> list[str]:
    """Map a ``method:path`` key or a bare path to endpoint keys.

    A bare path covers every method declared on it.
    """
    method, sep, rest = path.partition(":")
    if sep and method.lower() in {m.value for m in HTTPMethod}:
        return [f"{method.lower()}:{rest}"]
    return sorted(key for key, ep in spec.endpoints.items() if ep.path == path)


def query_deps(
    source: str,
    schema: Optional[str] = None,
    path: Optional[str] = None,
    direction: Union[DependencyDirection, str] = DependencyDirection.DOWNSTREAM,
    settings: Optional[Settings] = None,
) -> DepsOutput:
    """Answer "what is affected" for a schema name or an endpoint.

    Exactly one of *schema* and *path* must be given.
    """
    if schema is None and path is None:
        return DepsOutput(success=False, error="Either 'schema' or 'path' must be provided")
    if schema is not None and path is not None:
        return DepsOutput(success=False, error="Cannot specify both 'schema' and 'path'")

    try:
        direction = DependencyDirection(direction)
    except ValueError:
        return DepsOutput(success=False, error=f"Unknown direction: {direction}")

    try:
        settings = settings or load_settings()
        spec, _ = parse_source(source, timeout=settings.fetch_timeout)
        graph = DependencyGraph.build(spec)

        if schema is not None:
            result = graph.query(schema, direction, is_schema=True)
            target, paths, schemas = schema, result.affected_paths, result.affected_schemas
        else:
            target = path
            paths = []
            collected: set[str] = set()
            for key in resolve_path_target(spec, path):
                collected.update(graph.query(key, direction, is_schema=False).affected_schemas)
            schemas = sorted(collected)

        return DepsOutput(
            success=True,
            target=target,
            is_schema=schema is not None,
            affected_paths=paths,
            affected_schemas=schemas,
            total_affected=len(paths) + len(schemas),
        )
    except Exception as exc:
        return _failure(DepsOutput, exc)


# --- diff ---


def diff_specs(
    old_source: str,
    new_source: str,
    include_affected_paths: bool = True,
    breaking_only: bool = False,
    settings: Optional[Settings] = None,
) -> DiffOutput:
    """Compare two specs.

    With *include_affected_paths*, a dependency graph of the new spec
    propagates schema changes onto every endpoint that reaches them. The
    summary always describes the full diff, even for the breaking-only view.
    """
    try:
        settings = settings or load_settings()
    except Exception as exc:
        return _failure(DiffOutput, exc)

    try:
        old_spec, _ = parse_source(old_source, timeout=settings.fetch_timeout)
    except Exception as exc:
        return _failure(DiffOutput, exc, prefix="Failed to parse old spec: ")
    try:
        new_spec, _ = parse_source(new_source, timeout=settings.fetch_timeout)
    except Exception as exc:
        return _failure(DiffOutput, exc, prefix="Failed to parse new spec: ")

    try:
        graph = DependencyGraph.build(new_spec) if include_affected_paths else None
        result = diff(old_spec, new_spec, graph)
        return DiffOutput(
            success=True,
            summary=result.summary(),
            diff=result.breaking_only() if breaking_only else result,
        )
    except Exception as exc:
        return _failure(DiffOutput, exc)


# --- status ---


def _clear_cache(manager: CacheManager) -> StatusOutput:
    cleared = manager.clear()
    if (manager.project_dir / CONTENT_DIRNAME).is_dir():
        with SpecContentStore(manager.project_dir) as store:
            store.clear()
    logger.debug("Cleared cache in %s (record existed: %s)", manager.project_dir, cleared)
    return StatusOutput(success=True, has_cache=False, cleared=cleared)


def get_status(
    project_dir: Union[str, Path],
    check_remote: bool = False,
    clear: bool = False,
    settings: Optional[Settings] = None,
    now: Optional[datetime] = None,
) -> StatusOutput:
    """Report the project's cache record without parsing anything.

    With *check_remote* and a remote source, a freshness probe decides
    whether the remote spec changed since the last fetch. With *clear* the
    cache record and stored spec content are deleted instead; ``cleared``
    tells whether a record existed.
    """
    try:
        settings = settings or load_settings()
        manager = CacheManager(project_dir, settings)
        if clear:
            return _clear_cache(manager)
        if not manager.exists():
            return StatusOutput(success=True, has_cache=False)
        cache = manager.load()

        info = CacheInfo(
            source=cache.source,
            last_fetch=cache.last_fetch,
            spec_hash=cache.spec_hash,
            ttl_seconds=cache.ttl_seconds,
            title=cache.meta.title,
            version=cache.meta.version,
            openapi_version=cache.meta.openapi_version,
            endpoint_count=cache.meta.endpoint_count,
            schema_count=cache.meta.schema_count,
        )

        remote_status = None
        if check_remote and is_remote(cache.source):
            is_valid = manager.check_remote_validity(cache.source, cache, now=now)
            remote_status = RemoteStatus(
                is_stale=not is_valid,
                message=(
                    "Cache is up to date with remote"
                    if is_valid
                    else "Remote spec has been updated. Run parse to refresh."
                ),
            )

        return StatusOutput(
            success=True,
            has_cache=True,
            cache_info=info,
            expired=manager.is_expired(cache, now=now),
            remote_status=remote_status,
        )
    except Exception as exc:
        return _failure(StatusOutput, exc)
