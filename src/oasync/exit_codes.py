"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to an error layer and is referenced by the corresponding
:class:`~oasync.exceptions.OasError` subclass. CI scripts can inspect the
exit code to tell a network hiccup from a broken spec without parsing
stderr.

Example::

    $ oasync diff old.yaml new.yaml --fail-on-breaking
    $ echo $?
    3   # EXIT_BREAKING_CHANGES -- the new spec breaks existing clients
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred (also used for configuration errors)."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_BREAKING_CHANGES = 3
"""``oasync diff --fail-on-breaking`` found at least one breaking change."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, TLS, non-2xx response)."""

EXIT_SPEC_PARSE_ERROR = 7
"""The OpenAPI/Swagger document could not be parsed or is structurally invalid."""

EXIT_FILE_ERROR = 8
"""A local spec file could not be read (missing, permission denied, path traversal)."""

EXIT_CACHE_ERROR = 9
"""The project cache record is missing, corrupted, or could not be written."""


_EXIT_BY_CODE_PREFIX = {
    "E1": EXIT_CONNECTION_ERROR,
    "E2": EXIT_SPEC_PARSE_ERROR,
    "E3": EXIT_FILE_ERROR,
    "E5": EXIT_GENERIC_FAILURE,
    "E6": EXIT_CACHE_ERROR,
}


def exit_code_for(error_code: str | None) -> int:
    """Map an ``E###`` error code to the exit code of its layer."""
    if not error_code:
        return EXIT_GENERIC_FAILURE
    return _EXIT_BY_CODE_PREFIX.get(error_code[:2], EXIT_GENERIC_FAILURE)
