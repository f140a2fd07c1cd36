"""Fetch Swagger/OpenAPI documents from a URL or local file and decode them.

This module handles all I/O for the parser. It fetches raw text, decodes it
into a Python dictionary and detects which spec dialect it declares.

The public functions are:

* :func:`fetch_source` -- Fetch raw text plus freshness headers from a URL
  or local path.
* :func:`decode_document` -- Turn raw text into a dict (JSON or YAML).
* :func:`detect_version` -- Map the ``swagger``/``openapi`` field to an
  :class:`~oasync.models.OpenApiVersion`.

After decoding, the dict is passed to
:func:`~oasync.parser.extractor.extract_spec`.
"""

from __future__ import annotations

import json
import logging
import ssl
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import httpx
import yaml

from oasync.exceptions import (
    ConnectionFailedError,
    FetchTimeoutError,
    FileReadError,
    HttpStatusError,
    InvalidDocumentError,
    InvalidJSONError,
    InvalidYAMLError,
    PathTraversalError,
    PermissionDeniedError,
    SpecFileNotFoundError,
    TLSError,
    UnsupportedVersionError,
)
from oasync.models import HttpCacheInfo, OpenApiVersion

logger = logging.getLogger(__name__)

DEFAULT_FETCH_TIMEOUT = 30.0


@dataclass
class FetchedSource:
    """Raw document text and the freshness headers seen while fetching it."""

    content: str
    http_cache: HttpCacheInfo = field(default_factory=HttpCacheInfo)


def is_remote(source: str) -> bool:
    """Return True for ``http://`` and ``https://`` sources."""
    return source.startswith(("http://", "https://"))


def fetch_source(source: str, timeout: float = DEFAULT_FETCH_TIMEOUT) -> FetchedSource:
    """Fetch a spec document from a URL or a local file path.

    Args:
        source: An HTTP(S) URL or a filesystem path.
        timeout: Timeout in seconds for remote fetches.

    Raises:
        NetworkError: For remote fetch failures.
        FileSystemError: For local read failures.
    """
    if is_remote(source):
        return _fetch_remote(source, timeout)
    return FetchedSource(content=_read_local(source))


def _fetch_remote(url: str, timeout: float) -> FetchedSource:
    logger.debug("Fetching spec from %s (timeout=%.1fs)", url, timeout)
    try:
        response = httpx.get(url, timeout=timeout, follow_redirects=True)
    except httpx.TimeoutException as exc:
        raise FetchTimeoutError(timeout) from exc
    except httpx.ConnectError as exc:
        if isinstance(exc.__cause__ or exc.__context__, ssl.SSLError):
            raise TLSError(str(exc)) from exc
        raise ConnectionFailedError(str(exc)) from exc
    except httpx.RequestError as exc:
        raise ConnectionFailedError(str(exc)) from exc

    if not response.is_success:
        raise HttpStatusError(response.status_code, response.reason_phrase or "Unknown")

    headers = HttpCacheInfo(
        etag=response.headers.get("etag"),
        last_modified=response.headers.get("last-modified"),
    )
    return FetchedSource(content=response.text, http_cache=headers)


def _has_parent_segment(path: Path) -> bool:
    return ".." in path.parts


def _read_local(source: str) -> str:
    """Read a local spec file, rejecting parent-directory segments.

    The check runs on the path as given and again after canonicalisation.
    """
    path = Path(source)
    if _has_parent_segment(path):
        raise PathTraversalError(source)

    try:
        resolved = path.resolve(strict=True)
    except FileNotFoundError as exc:
        raise SpecFileNotFoundError(source) from exc
    except PermissionError as exc:
        raise PermissionDeniedError(source) from exc
    except (OSError, RuntimeError) as exc:
        raise FileReadError(f"{source}: {exc}") from exc

    if _has_parent_segment(resolved):
        raise PathTraversalError(source)

    logger.debug("Reading spec from %s", resolved)
    try:
        return resolved.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise FileReadError(f"{source}: file disappeared") from exc
    except PermissionError as exc:
        raise PermissionDeniedError(source) from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise FileReadError(f"{source}: {exc}") from exc


def decode_document(content: str) -> dict[str, Any]:
    """Decode document text as JSON or YAML.

    Content whose first non-whitespace character is ``{`` is parsed as
    JSON; anything else as YAML.

    Raises:
        InvalidJSONError: If JSON-looking content fails to parse.
        InvalidYAMLError: If YAML content fails to parse.
        InvalidDocumentError: If the top level is not a mapping.
    """
    if content.lstrip().startswith("{"):
        try:
            value = json.loads(content)
        except json.JSONDecodeError as exc:
            raise InvalidJSONError(str(exc)) from exc
    else:
        try:
            value = yaml.safe_load(content)
        except yaml.YAMLError as exc:
            raise InvalidYAMLError(str(exc)) from exc

    if not isinstance(value, dict):
        kind = type(value).__name__ if value is not None else "empty document"
        raise InvalidDocumentError(f"document must be an object (got {kind})")
    return value


def detect_version(document: dict[str, Any]) -> OpenApiVersion:
    """Detect the spec dialect from the ``swagger`` or ``openapi`` field.

    Numeric YAML scalars (``openapi: 3.0``) are coerced to strings first.

    Raises:
        UnsupportedVersionError: For any version outside 2.x, 3.0 and 3.1.
        InvalidDocumentError: When neither field is present.
    """
    if "swagger" in document:
        swagger = str(document["swagger"])
        if swagger.startswith("2."):
            return OpenApiVersion.SWAGGER_2
        raise UnsupportedVersionError(swagger)

    if "openapi" in document:
        openapi = str(document["openapi"])
        if openapi.startswith("3.0"):
            return OpenApiVersion.OPENAPI_30
        if openapi.startswith("3.1"):
            return OpenApiVersion.OPENAPI_31
        raise UnsupportedVersionError(openapi)

    raise InvalidDocumentError("Missing 'openapi' or 'swagger' field")
