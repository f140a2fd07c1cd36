"""Canonical Pydantic models shared across all oasync modules.

This is the single source of truth for data shapes in the project. The
models fall into three groups:

**Content model** -- the version-independent result of parsing a Swagger
2.0 or OpenAPI 3.x document:
    :class:`OpenApiVersion`, :class:`HTTPMethod`, :class:`ParameterLocation`,
    :class:`Parameter`, :class:`RequestBody`, :class:`Response`, the
    :data:`SchemaType` variants, :class:`Schema`, :class:`Endpoint`,
    :class:`SpecMetadata`, and :class:`ParsedSpec`.

**Cache record** -- serialised as JSON in the project directory:
    :class:`HttpCacheInfo`, :class:`LocalCacheInfo`, :class:`CachedMeta`,
    and :class:`OasCache`.

**Settings** -- :class:`Settings`, resolved by :mod:`oasync.config`.

Content-model instances are frozen: a :class:`ParsedSpec` is built once per
parse call and never mutated afterwards.
"""

from __future__ import annotations

import enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# --- Enumerations ---


class OpenApiVersion(str, enum.Enum):
    """Spec dialects the parser understands.

    The value is the short tag stored in the cache record; :attr:`label`
    is the human-readable name.
    """

    SWAGGER_2 = "2.0"
    OPENAPI_30 = "3.0"
    OPENAPI_31 = "3.1"

    @property
    def label(self) -> str:
        if self is OpenApiVersion.SWAGGER_2:
            return "Swagger 2.0"
        return f"OpenAPI {self.value}"


class HTTPMethod(str, enum.Enum):
    """HTTP methods recognised as operations inside a path item."""

    GET = "get"
    POST = "post"
    PUT = "put"
    PATCH = "patch"
    DELETE = "delete"
    HEAD = "head"
    OPTIONS = "options"
    TRACE = "trace"


class ParameterLocation(str, enum.Enum):
    """Locations where a non-body parameter can appear (``in`` field)."""

    PATH = "path"
    QUERY = "query"
    HEADER = "header"
    COOKIE = "cookie"


# --- Operation parts ---


class Parameter(BaseModel):
    """A single non-body parameter of an operation.

    ``schema_ref`` holds the bare schema name when the parameter schema is a
    ``$ref``; ``schema_type`` holds the inline JSON Schema type otherwise.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    location: ParameterLocation
    required: bool = False
    description: Optional[str] = None
    schema_ref: Optional[str] = None
    schema_type: Optional[str] = None


class RequestBody(BaseModel):
    """Request body of an operation (OpenAPI 3 ``requestBody`` or Swagger 2 ``in: body``)."""

    model_config = ConfigDict(frozen=True)

    required: bool = False
    description: Optional[str] = None
    content_types: list[str] = Field(default_factory=list)
    schema_ref: Optional[str] = None


class Response(BaseModel):
    """Response declared for one status code."""

    model_config = ConfigDict(frozen=True)

    status_code: str
    description: Optional[str] = None
    content_types: list[str] = Field(default_factory=list)
    schema_ref: Optional[str] = None


# --- Schema shapes ---
#
# SchemaType is a closed union discriminated by ``kind``. Code that walks a
# SchemaType handles every variant explicitly; see
# :func:`oasync.parser.schema.describe_schema_type`.


class StringType(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["string"] = "string"
    format: Optional[str] = None
    enum_values: Optional[list[str]] = None


class NumberType(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["number"] = "number"
    format: Optional[str] = None


class IntegerType(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["integer"] = "integer"
    format: Optional[str] = None


class BooleanType(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["boolean"] = "boolean"


class ArrayType(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["array"] = "array"
    items: SchemaType


class ObjectType(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["object"] = "object"
    properties: dict[str, SchemaType] = Field(default_factory=dict)
    required: list[str] = Field(default_factory=list)


class RefType(BaseModel):
    """Pointer to a named schema; ``name`` has the version prefix stripped."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["ref"] = "ref"
    name: str


class OneOfType(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["one_of"] = "one_of"
    variants: list[SchemaType] = Field(default_factory=list)


class AnyOfType(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["any_of"] = "any_of"
    variants: list[SchemaType] = Field(default_factory=list)


class AllOfType(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["all_of"] = "all_of"
    variants: list[SchemaType] = Field(default_factory=list)


class UnknownType(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["unknown"] = "unknown"


SchemaType = Annotated[
    Union[
        StringType,
        NumberType,
        IntegerType,
        BooleanType,
        ArrayType,
        ObjectType,
        RefType,
        OneOfType,
        AnyOfType,
        AllOfType,
        UnknownType,
    ],
    Field(discriminator="kind"),
]
"""Recursive shape of a schema, one variant per JSON Schema construct."""

for _model in (ArrayType, ObjectType, OneOfType, AnyOfType, AllOfType):
    _model.model_rebuild()


# --- Content model ---


class Schema(BaseModel):
    """A named schema definition (``definitions`` or ``components.schemas`` entry).

    ``refs`` lists the schema names this definition references directly,
    sorted and deduplicated. ``hash`` is a content digest of the raw
    definition, used by the diff engine as an equality short-circuit.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    schema_type: SchemaType
    description: Optional[str] = None
    refs: list[str] = Field(default_factory=list)
    hash: str


class Endpoint(BaseModel):
    """One HTTP method bound to one path.

    Identity is :attr:`key` (``"<method>:<path>"``), unique within a
    :class:`ParsedSpec`. ``schema_refs`` holds only the schema names the
    operation references directly; schemas reachable through other schemas
    are found with :class:`~oasync.graph.DependencyGraph`.
    """

    model_config = ConfigDict(frozen=True)

    path: str
    method: HTTPMethod
    operation_id: Optional[str] = None
    summary: Optional[str] = None
    description: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    parameters: list[Parameter] = Field(default_factory=list)
    request_body: Optional[RequestBody] = None
    responses: dict[str, Response] = Field(default_factory=dict)
    deprecated: bool = False
    hash: str
    schema_refs: list[str] = Field(default_factory=list)

    @property
    def key(self) -> str:
        """Unique endpoint key, e.g. ``"get:/pets/{id}"``."""
        return endpoint_key(self.method, self.path)

    @property
    def effective_operation_id(self) -> str:
        """The declared ``operationId``, or one derived from method and static path segments."""
        if self.operation_id:
            return self.operation_id
        segments = [
            seg for seg in self.path.split("/") if seg and not seg.startswith("{")
        ]
        return f"{self.method.value}_{'_'.join(segments)}"


def endpoint_key(method: HTTPMethod | str, path: str) -> str:
    """Build the endpoint identity key from a method and a path."""
    value = method.value if isinstance(method, HTTPMethod) else str(method)
    return f"{value.lower()}:{path}"


class SpecMetadata(BaseModel):
    """Document-level facts and precomputed counts."""

    model_config = ConfigDict(frozen=True)

    title: str
    version: str
    description: Optional[str] = None
    openapi_version: OpenApiVersion
    endpoint_count: int = 0
    schema_count: int = 0
    tag_count: int = 0


class ParsedSpec(BaseModel):
    """Complete normalised representation of one Swagger/OpenAPI document.

    Produced fresh by every parse call. ``endpoints`` is keyed by
    :attr:`Endpoint.key` and ``schemas`` by schema name. ``spec_hash`` is a
    digest of the whole document; ``source`` is the URL or path it came
    from.
    """

    model_config = ConfigDict(frozen=True)

    metadata: SpecMetadata
    endpoints: dict[str, Endpoint] = Field(default_factory=dict)
    schemas: dict[str, Schema] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)
    spec_hash: str
    source: str


# --- Cache record ---


DEFAULT_TTL_SECONDS = 86400
"""Default cache TTL (24 hours); API specs rarely change more often."""


class HttpCacheInfo(BaseModel):
    """Conditional-freshness headers captured from a remote fetch."""

    etag: Optional[str] = None
    last_modified: Optional[str] = None


class LocalCacheInfo(BaseModel):
    """Modification time (ISO-8601, UTC) of a local spec file at fetch time."""

    mtime: Optional[str] = None


class CachedMeta(BaseModel):
    """Condensed metadata for status reporting without re-parsing."""

    title: Optional[str] = None
    version: Optional[str] = None
    openapi_version: Optional[str] = None
    endpoint_count: int = 0
    schema_count: int = 0


class OasCache(BaseModel):
    """The per-project cache record (``.openapi-sync.cache.json``).

    See Also:
        :class:`~oasync.cache.CacheManager`: loads, saves and validates it.
    """

    version: str = "1.0.0"
    last_fetch: str = Field(description="ISO-8601 timestamp of the last successful fetch")
    spec_hash: str
    source: str
    ttl_seconds: int = DEFAULT_TTL_SECONDS
    http_cache: HttpCacheInfo = Field(default_factory=HttpCacheInfo)
    local_cache: LocalCacheInfo = Field(default_factory=LocalCacheInfo)
    meta: CachedMeta = Field(default_factory=CachedMeta)


# --- Settings ---


class Settings(BaseModel):
    """Tunable defaults, resolved by :func:`oasync.config.load_settings`."""

    ttl_seconds: int = Field(default=DEFAULT_TTL_SECONDS, ge=0)
    fetch_timeout: float = Field(default=30.0, gt=0, description="Full document fetch timeout")
    probe_timeout: float = Field(default=10.0, gt=0, description="HEAD existence probe timeout")
    page_limit: int = Field(default=50, gt=0, description="Default page size for listings")
