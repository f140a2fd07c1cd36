"""Exception hierarchy for oasync.

All exceptions inherit from :class:`OasError`, which carries a stable
``code`` (``E101`` ... ``E603``), a ``recoverable`` flag, and an
``exit_code`` mapped to a constant from :mod:`oasync.exit_codes`. The core
raises these; the boundary operations in :mod:`oasync.tools` catch them and
turn them into ``success=False`` results, so nothing escapes to the caller.

Subclass hierarchy::

    OasError
    +-- NetworkError                (exit 6)
    |   +-- ConnectionFailedError   E101  non-recoverable
    |   +-- FetchTimeoutError       E102
    |   +-- HttpStatusError         E103
    |   +-- TLSError                E104  non-recoverable
    +-- SpecParseError              (exit 7)
    |   +-- InvalidJSONError        E201
    |   +-- InvalidYAMLError        E202
    |   +-- InvalidDocumentError    E203  non-recoverable
    |   +-- UnsupportedVersionError E204
    |   +-- UnresolvedRefError      E205
    |   +-- CircularRefError        E206
    |   +-- UnsupportedFeatureError E207
    +-- FileSystemError             (exit 8)
    |   +-- SpecFileNotFoundError   E301  non-recoverable
    |   +-- PermissionDeniedError   E302  non-recoverable
    |   +-- FileReadError           E303
    |   +-- FileWriteError          E304
    |   +-- PathTraversalError      E305  non-recoverable
    +-- ConfigError                 (exit 1)
    |   +-- ConfigNotFoundError     E501
    |   +-- InvalidConfigError      E502
    |   +-- MissingFieldError       E503
    +-- CacheError                  (exit 9)
        +-- CacheNotFoundError      E601
        +-- CacheCorruptedError     E602
        +-- CacheWriteError         E603

"Non-recoverable" means retrying with identical input will fail the same
way; callers should change the input instead of retrying.
"""

from __future__ import annotations

from oasync.exit_codes import (
    EXIT_CACHE_ERROR,
    EXIT_CONNECTION_ERROR,
    EXIT_FILE_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_SPEC_PARSE_ERROR,
)


class OasError(Exception):
    """Base exception for all oasync errors.

    Every concrete subclass sets a class-level ``code`` and may clear
    ``recoverable``. ``str(exc)`` renders as ``"<code>: <message>"``.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    code: str = "E000"
    exit_code: int = EXIT_GENERIC_FAILURE
    recoverable: bool = True

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        self.message = message
        if exit_code is not None:
            self.exit_code = exit_code

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


# --- Network ---


class NetworkError(OasError):
    """Base class for failures while talking to a remote spec host."""

    exit_code = EXIT_CONNECTION_ERROR


class ConnectionFailedError(NetworkError):
    """Raised when the host cannot be reached (DNS, refused, reset)."""

    code = "E101"
    recoverable = False

    def __init__(self, detail: str):
        super().__init__(f"Connection failed - {detail}")


class FetchTimeoutError(NetworkError):
    """Raised when a fetch does not complete within its timeout."""

    code = "E102"

    def __init__(self, timeout: float):
        super().__init__(f"Request timeout after {int(timeout * 1000)}ms")
        self.timeout = timeout


class HttpStatusError(NetworkError):
    """Raised when the spec host answers with a non-2xx status."""

    code = "E103"

    def __init__(self, status: int, reason: str):
        super().__init__(f"HTTP error {status}: {reason}")
        self.status = status


class TLSError(NetworkError):
    """Raised when the TLS handshake or certificate verification fails."""

    code = "E104"
    recoverable = False

    def __init__(self, detail: str):
        super().__init__(f"SSL/TLS error - {detail}")


# --- Parse ---


class SpecParseError(OasError):
    """Base class for documents that cannot be turned into a ParsedSpec."""

    exit_code = EXIT_SPEC_PARSE_ERROR


class InvalidJSONError(SpecParseError):
    """Raised when content starting with ``{`` is not valid JSON."""

    code = "E201"

    def __init__(self, detail: str):
        super().__init__(f"Invalid JSON - {detail}")


class InvalidYAMLError(SpecParseError):
    """Raised when non-JSON content is not valid YAML."""

    code = "E202"

    def __init__(self, detail: str):
        super().__init__(f"Invalid YAML - {detail}")


class InvalidDocumentError(SpecParseError):
    """Raised when required OpenAPI/Swagger structure is missing or malformed."""

    code = "E203"
    recoverable = False

    def __init__(self, detail: str):
        super().__init__(f"Invalid OpenAPI spec - {detail}")


class UnsupportedVersionError(SpecParseError):
    """Raised for ``swagger``/``openapi`` versions other than 2.x, 3.0 and 3.1."""

    code = "E204"

    def __init__(self, version: str):
        super().__init__(f"Unsupported OpenAPI version: {version}")
        self.version = version


class UnresolvedRefError(SpecParseError):
    """Raised for external ``$ref`` values and local pointers with no target."""

    code = "E205"

    def __init__(self, ref: str, detail: str | None = None):
        message = f"Unresolved reference: {ref}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)
        self.ref = ref


class CircularRefError(SpecParseError):
    """Raised when a chain of component ``$ref`` objects never reaches content."""

    code = "E206"

    def __init__(self, ref: str):
        super().__init__(f"Circular reference detected: {ref}")
        self.ref = ref


class UnsupportedFeatureError(SpecParseError):
    """Raised for document constructs the extractor deliberately does not handle."""

    code = "E207"

    def __init__(self, detail: str):
        super().__init__(f"Unsupported feature: {detail}")


# --- Filesystem ---


class FileSystemError(OasError):
    """Base class for local file access failures."""

    exit_code = EXIT_FILE_ERROR


class SpecFileNotFoundError(FileSystemError):
    """Raised when a local spec path does not exist."""

    code = "E301"
    recoverable = False

    def __init__(self, path: str):
        super().__init__(f"File not found: {path}")
        self.path = path


class PermissionDeniedError(FileSystemError):
    """Raised when the process may not read a local spec path."""

    code = "E302"
    recoverable = False

    def __init__(self, path: str):
        super().__init__(f"Permission denied: {path}")
        self.path = path


class FileReadError(FileSystemError):
    """Raised for any other failure reading a local file."""

    code = "E303"

    def __init__(self, detail: str):
        super().__init__(f"Failed to read file: {detail}")


class FileWriteError(FileSystemError):
    """Raised when writing a file (other than the cache record) fails."""

    code = "E304"

    def __init__(self, detail: str):
        super().__init__(f"Failed to write file: {detail}")


class PathTraversalError(FileSystemError):
    """Raised when a local path contains a parent-directory segment."""

    code = "E305"
    recoverable = False

    def __init__(self, path: str):
        super().__init__(f"Path traversal attempt blocked: {path}")
        self.path = path


# --- Configuration ---


class ConfigError(OasError):
    """Base class for settings problems (missing file, invalid JSON, bad values)."""

    exit_code = EXIT_GENERIC_FAILURE


class ConfigNotFoundError(ConfigError):
    """Raised when an explicitly requested config file does not exist."""

    code = "E501"

    def __init__(self, path: str):
        super().__init__(f"Configuration not found at {path}")


class InvalidConfigError(ConfigError):
    """Raised when a config file or environment override cannot be parsed."""

    code = "E502"

    def __init__(self, detail: str):
        super().__init__(f"Invalid configuration - {detail}")


class MissingFieldError(ConfigError):
    """Raised when a config document lacks a required field."""

    code = "E503"

    def __init__(self, field: str):
        super().__init__(f"Missing required field: {field}")
        self.field = field


# --- Cache ---


class CacheError(OasError):
    """Base class for project cache record failures."""

    exit_code = EXIT_CACHE_ERROR


class CacheNotFoundError(CacheError):
    """Raised when the project directory holds no cache record."""

    code = "E601"

    def __init__(self, path: str | None = None):
        super().__init__("Cache not found" + (f" at {path}" if path else ""))


class CacheCorruptedError(CacheError):
    """Raised when the cache record exists but cannot be decoded."""

    code = "E602"

    def __init__(self, detail: str):
        super().__init__(f"Cache corrupted - {detail}")


class CacheWriteError(CacheError):
    """Raised when the cache record cannot be written atomically."""

    code = "E603"

    def __init__(self, detail: str):
        super().__init__(f"Cache write failed - {detail}")
