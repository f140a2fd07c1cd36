"""Swagger/OpenAPI parser -- fetch, decode, detect the dialect, and extract.

This sub-package turns a Swagger 2.0 or OpenAPI 3.0/3.1 document (JSON or
YAML, local file or remote URL) into a version-independent
:class:`~oasync.models.ParsedSpec`.

Typical usage::

    from oasync.parser import parse_source

    spec, fetched = parse_source("https://petstore.swagger.io/v2/swagger.json")
    print(spec.metadata.endpoint_count, fetched.http_cache.etag)

Sub-modules:

* :mod:`~oasync.parser.loader` -- I/O layer (URL, file), format decoding
  and dialect detection.
* :mod:`~oasync.parser.refs` -- ``$ref`` lookup, validation and
  cycle-safe collection.
* :mod:`~oasync.parser.schema` -- Raw schema to
  :data:`~oasync.models.SchemaType` conversion.
* :mod:`~oasync.parser.extractor` -- Walks the document and produces the
  :class:`~oasync.models.ParsedSpec`.
"""

from __future__ import annotations

import logging

from oasync.models import ParsedSpec
from oasync.parser.extractor import extract_spec
from oasync.parser.loader import (
    DEFAULT_FETCH_TIMEOUT,
    FetchedSource,
    decode_document,
    detect_version,
    fetch_source,
    is_remote,
)

logger = logging.getLogger(__name__)

__all__ = [
    "FetchedSource",
    "decode_document",
    "detect_version",
    "extract_spec",
    "fetch_source",
    "is_remote",
    "parse_document",
    "parse_source",
]


def parse_document(content: str, source: str) -> ParsedSpec:
    """Parse raw document text that has already been fetched."""
    document = decode_document(content)
    version = detect_version(document)
    logger.debug("Detected %s for %s", version.label, source)
    return extract_spec(document, version, source)


def parse_source(
    source: str,
    timeout: float = DEFAULT_FETCH_TIMEOUT,
) -> tuple[ParsedSpec, FetchedSource]:
    """Fetch *source* and parse it.

    Returns:
        The parsed spec and the fetched text with its freshness headers.
    """
    fetched = fetch_source(source, timeout=timeout)
    return parse_document(fetched.content, source), fetched
