"""Extract endpoints, schemas and metadata from a decoded Swagger/OpenAPI document.

This module walks a decoded document and builds a
:class:`~oasync.models.ParsedSpec`. The two dialects converge on the same
model:

* **Swagger 2.0** reads schemas from ``definitions``, the request body from
  the ``in: body`` parameter, and content types from ``consumes`` /
  ``produces`` (operation level, then document level, then
  ``application/json``).
* **OpenAPI 3.x** reads schemas from ``components.schemas`` and bodies from
  the ``requestBody.content`` / ``responses.*.content`` maps.

The single public entry point is :func:`extract_spec`.

Parameter merging follows the OpenAPI specification: path-level parameters
provide defaults, and operation-level parameters override them when they share
the same ``name`` and ``in`` values.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from oasync.exceptions import InvalidDocumentError
from oasync.hashing import compute_json_hash
from oasync.models import (
    Endpoint,
    HTTPMethod,
    OpenApiVersion,
    Parameter,
    ParameterLocation,
    ParsedSpec,
    RequestBody,
    Response,
    Schema,
    SpecMetadata,
)
from oasync.parser.refs import collect_refs, deref, schema_name_from_ref
from oasync.parser.schema import parse_schema_type, type_name

logger = logging.getLogger(__name__)

_HTTP_METHODS = {m.value: m for m in HTTPMethod}
_DEFAULT_CONTENT_TYPE = "application/json"

# Swagger 2.0 has no cookie parameters; formData is not modelled.
_SWAGGER2_LOCATIONS = {"path", "query", "header"}
_OAS3_LOCATIONS = {"path", "query", "header", "cookie"}


def extract_spec(
    document: dict[str, Any],
    version: OpenApiVersion,
    source: str,
) -> ParsedSpec:
    """Build a :class:`~oasync.models.ParsedSpec` from a decoded document.

    Args:
        document: The decoded document, as returned by
            :func:`~oasync.parser.loader.decode_document`.
        version: The dialect returned by
            :func:`~oasync.parser.loader.detect_version`.
        source: URL or path the document came from.

    Raises:
        InvalidDocumentError: If ``info`` is missing or not an object.
        UnresolvedRefError: For external or dangling structural references.
        CircularRefError: For looping chains of component references.
    """
    info = document.get("info")
    if not isinstance(info, dict):
        raise InvalidDocumentError("Missing 'info' field")

    swagger2 = version is OpenApiVersion.SWAGGER_2
    if swagger2:
        raw_schemas = document.get("definitions")
    else:
        components = document.get("components")
        raw_schemas = components.get("schemas") if isinstance(components, dict) else None

    schemas = _extract_schemas(raw_schemas, document)
    endpoints = _extract_endpoints(document, swagger2)
    tags = sorted({tag for ep in endpoints.values() for tag in ep.tags})

    title = info.get("title")
    api_version = info.get("version")
    metadata = SpecMetadata(
        title=title if isinstance(title, str) else "Unknown API",
        version=str(api_version) if api_version is not None else "0.0.0",
        description=_text(info.get("description")),
        openapi_version=version,
        endpoint_count=len(endpoints),
        schema_count=len(schemas),
        tag_count=len(tags),
    )
    logger.debug(
        "Extracted %d endpoints and %d schemas from %s (%s)",
        len(endpoints), len(schemas), source, version.label,
    )
    return ParsedSpec(
        metadata=metadata,
        endpoints=endpoints,
        schemas=schemas,
        tags=tags,
        spec_hash=compute_json_hash(document),
        source=source,
    )


def _text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _schema_ref(schema: Any) -> Optional[str]:
    if isinstance(schema, dict) and isinstance(schema.get("$ref"), str):
        return schema_name_from_ref(schema["$ref"])
    return None


# --- Schemas ---


def _extract_schemas(raw_schemas: Any, document: dict[str, Any]) -> dict[str, Schema]:
    if not isinstance(raw_schemas, dict):
        return {}
    schemas: dict[str, Schema] = {}
    for name, raw in raw_schemas.items():
        name = str(name)
        schemas[name] = Schema(
            name=name,
            schema_type=parse_schema_type(raw),
            description=_text(raw.get("description")) if isinstance(raw, dict) else None,
            refs=collect_refs(raw, document),
            hash=compute_json_hash(raw),
        )
    return schemas


# --- Endpoints ---


def _extract_endpoints(document: dict[str, Any], swagger2: bool) -> dict[str, Endpoint]:
    """Extract every path + method combination from ``paths``."""
    paths = document.get("paths")
    if not isinstance(paths, dict):
        return {}

    endpoints: dict[str, Endpoint] = {}
    for path, path_item in paths.items():
        path_item = deref(path_item, document)
        if not isinstance(path_item, dict):
            continue

        path_params = path_item.get("parameters")
        path_params = path_params if isinstance(path_params, list) else []

        for method_str, operation in path_item.items():
            method = _HTTP_METHODS.get(str(method_str).lower())
            if method is None or not isinstance(operation, dict):
                continue
            endpoint = _extract_operation(
                str(path), method, operation, path_params, document, swagger2
            )
            if endpoint.key in endpoints:
                logger.warning("Duplicate operation %s; keeping the last one", endpoint.key)
            endpoints[endpoint.key] = endpoint
    return endpoints


def _merge_parameters(
    path_params: list[Any],
    op_params: list[Any],
    document: dict[str, Any],
) -> list[tuple[Any, dict[str, Any]]]:
    """Merge path-level and operation-level parameters.

    Returns ``(raw, resolved)`` pairs: *raw* is the entry as written (possibly
    a ``$ref``), *resolved* the dereferenced parameter object. Operation-level
    entries replace path-level ones with the same ``(name, in)``.
    """

    def key(resolved: dict[str, Any]) -> tuple[str, str]:
        return (str(resolved.get("name", "")), str(resolved.get("in", "")))

    op_pairs = []
    for raw in op_params:
        resolved = deref(raw, document)
        if isinstance(resolved, dict):
            op_pairs.append((raw, resolved))
    op_keys = {key(resolved) for _, resolved in op_pairs}

    merged = []
    for raw in path_params:
        resolved = deref(raw, document)
        if isinstance(resolved, dict) and key(resolved) not in op_keys:
            merged.append((raw, resolved))
    merged.extend(op_pairs)
    return merged


def _extract_operation(
    path: str,
    method: HTTPMethod,
    operation: dict[str, Any],
    path_params: list[Any],
    document: dict[str, Any],
    swagger2: bool,
) -> Endpoint:
    op_params = operation.get("parameters")
    op_params = op_params if isinstance(op_params, list) else []
    merged = _merge_parameters(path_params, op_params, document)
    resolved_params = [resolved for _, resolved in merged]

    # The hash subject covers inherited path-level parameters too.
    subject: dict[str, Any] = operation
    if path_params:
        subject = dict(operation)
        subject["parameters"] = [raw for raw, _ in merged]

    if swagger2:
        parameters = _swagger2_parameters(resolved_params)
        request_body = _swagger2_body(resolved_params, operation, document)
        responses = _swagger2_responses(operation, document)
    else:
        parameters = _oas3_parameters(resolved_params)
        request_body = _oas3_body(operation.get("requestBody"), document)
        responses = _oas3_responses(operation, document)

    tags = operation.get("tags")
    return Endpoint(
        path=path,
        method=method,
        operation_id=_text(operation.get("operationId")),
        summary=_text(operation.get("summary")),
        description=_text(operation.get("description")),
        tags=[t for t in tags if isinstance(t, str)] if isinstance(tags, list) else [],
        parameters=parameters,
        request_body=request_body,
        responses=responses,
        deprecated=operation.get("deprecated") is True,
        hash=compute_json_hash(subject),
        schema_refs=collect_refs(subject, document),
    )


def _build_parameter(
    param: dict[str, Any],
    location: str,
    schema_ref: Optional[str],
    schema_type: Optional[str],
) -> Parameter:
    loc = ParameterLocation(location)
    required = param.get("required")
    return Parameter(
        name=str(param.get("name", "")),
        location=loc,
        required=required if isinstance(required, bool) else loc is ParameterLocation.PATH,
        description=_text(param.get("description")),
        schema_ref=schema_ref,
        schema_type=schema_type,
    )


# --- Swagger 2.0 ---


def _content_types(operation: dict[str, Any], document: dict[str, Any], field: str) -> list[str]:
    for holder in (operation, document):
        value = holder.get(field)
        if isinstance(value, list):
            return [v for v in value if isinstance(v, str)]
    return [_DEFAULT_CONTENT_TYPE]


def _swagger2_parameters(params: list[dict[str, Any]]) -> list[Parameter]:
    result = []
    for param in params:
        location = param.get("in")
        if location not in _SWAGGER2_LOCATIONS:
            continue
        result.append(
            _build_parameter(param, location, None, _text(param.get("type")))
        )
    return result


def _swagger2_body(
    params: list[dict[str, Any]],
    operation: dict[str, Any],
    document: dict[str, Any],
) -> Optional[RequestBody]:
    for param in params:
        if param.get("in") != "body":
            continue
        return RequestBody(
            required=param.get("required") is True,
            description=_text(param.get("description")),
            content_types=_content_types(operation, document, "consumes"),
            schema_ref=_schema_ref(param.get("schema")),
        )
    return None


def _swagger2_responses(operation: dict[str, Any], document: dict[str, Any]) -> dict[str, Response]:
    raw_responses = operation.get("responses")
    if not isinstance(raw_responses, dict):
        return {}
    produces = _content_types(operation, document, "produces")
    responses = {}
    for status, raw in raw_responses.items():
        resp = deref(raw, document)
        if not isinstance(resp, dict):
            continue
        status = str(status)
        responses[status] = Response(
            status_code=status,
            description=_text(resp.get("description")),
            content_types=produces,
            schema_ref=_schema_ref(resp.get("schema")),
        )
    return responses


# --- OpenAPI 3.x ---


def _oas3_parameters(params: list[dict[str, Any]]) -> list[Parameter]:
    result = []
    for param in params:
        location = param.get("in")
        if location not in _OAS3_LOCATIONS:
            continue
        schema = param.get("schema")
        schema_type = type_name(schema) if isinstance(schema, dict) else None
        result.append(_build_parameter(param, location, _schema_ref(schema), schema_type))
    return result


def _first_content_schema(content: dict[str, Any]) -> Optional[str]:
    for media in content.values():
        if isinstance(media, dict):
            return _schema_ref(media.get("schema"))
        return None
    return None


def _oas3_body(raw_body: Any, document: dict[str, Any]) -> Optional[RequestBody]:
    body = deref(raw_body, document)
    if not isinstance(body, dict):
        return None
    content = body.get("content")
    if not isinstance(content, dict):
        return None
    return RequestBody(
        required=body.get("required") is True,
        description=_text(body.get("description")),
        content_types=[str(ct) for ct in content],
        schema_ref=_first_content_schema(content),
    )


def _oas3_responses(operation: dict[str, Any], document: dict[str, Any]) -> dict[str, Response]:
    raw_responses = operation.get("responses")
    if not isinstance(raw_responses, dict):
        return {}
    responses = {}
    for status, raw in raw_responses.items():
        resp = deref(raw, document)
        if not isinstance(resp, dict):
            continue
        status = str(status)
        content = resp.get("content")
        if isinstance(content, dict):
            content_types = [str(ct) for ct in content]
            schema_ref = _first_content_schema(content)
        else:
            content_types, schema_ref = [], None
        responses[status] = Response(
            status_code=status,
            description=_text(resp.get("description")),
            content_types=content_types,
            schema_ref=schema_ref,
        )
    return responses
