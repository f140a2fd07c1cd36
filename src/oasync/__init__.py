"""oasync -- Parse, graph, diff and cache Swagger/OpenAPI specifications.

This package normalises Swagger 2.0 and OpenAPI 3.0/3.1 documents into one
version-independent model, links schemas to the endpoints that use them,
compares two versions of a spec with breaking-change detection, and keeps a
per-project freshness cache so unchanged specs are not fetched again.

Typical workflow::

    oasync parse openapi.yaml --project-dir . --use-cache
    oasync deps openapi.yaml --schema Customer
    oasync diff old.yaml new.yaml --fail-on-breaking

Modules:
    app: Typer application and CLI entry point.
    tools: The four boundary operations (parse, deps, diff, status).
    models: Pydantic models shared across the entire package.
    parser: Fetching, decoding and extraction.
    graph: Schema/endpoint dependency graph.
    diff: Structural diff and breaking-change detection.
    cache: Project cache record and spec content store.
    config: XDG-aware settings resolution and atomic writes.
    exceptions: Exception hierarchy with error codes and exit codes.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
