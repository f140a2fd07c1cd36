"""Tests for oasync.parser.loader."""

from __future__ import annotations

import os
import ssl
import textwrap
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest

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
from oasync.models import OpenApiVersion
from oasync.parser.loader import decode_document, detect_version, fetch_source, is_remote

URL = "https://api.example.com/openapi.json"


def _response(status_code: int = 200, text: str = "{}", headers: dict | None = None) -> httpx.Response:
    return httpx.Response(
        status_code=status_code,
        text=text,
        headers=headers or {},
        request=httpx.Request("GET", URL),
    )


# ---------------------------------------------------------------------------
# is_remote
# ---------------------------------------------------------------------------


class TestIsRemote:
    @pytest.mark.parametrize("source", ["http://x/spec.json", "https://x/spec.yaml"])
    def test_http_schemes_are_remote(self, source: str) -> None:
        assert is_remote(source)

    @pytest.mark.parametrize("source", ["spec.json", "/abs/spec.yaml", "ftp://x/spec"])
    def test_everything_else_is_local(self, source: str) -> None:
        assert not is_remote(source)


# ---------------------------------------------------------------------------
# Remote fetch
# ---------------------------------------------------------------------------


class TestFetchRemote:
    def test_returns_body_and_freshness_headers(self) -> None:
        resp = _response(
            text='{"openapi": "3.0.0"}',
            headers={"ETag": '"abc"', "Last-Modified": "Wed, 01 Jan 2025 00:00:00 GMT"},
        )
        with patch("oasync.parser.loader.httpx.get", return_value=resp) as mock_get:
            fetched = fetch_source(URL, timeout=5.0)

        assert fetched.content == '{"openapi": "3.0.0"}'
        assert fetched.http_cache.etag == '"abc"'
        assert fetched.http_cache.last_modified == "Wed, 01 Jan 2025 00:00:00 GMT"
        assert mock_get.call_args.kwargs["timeout"] == 5.0

    def test_missing_headers_are_none(self) -> None:
        with patch("oasync.parser.loader.httpx.get", return_value=_response()):
            fetched = fetch_source(URL)
        assert fetched.http_cache.etag is None
        assert fetched.http_cache.last_modified is None

    def test_non_success_status_raises(self) -> None:
        with patch("oasync.parser.loader.httpx.get", return_value=_response(status_code=404)):
            with pytest.raises(HttpStatusError, match="HTTP error 404: Not Found") as exc_info:
                fetch_source(URL)
        assert exc_info.value.code == "E103"
        assert exc_info.value.status == 404

    def test_timeout_raises_fetch_timeout(self) -> None:
        with patch(
            "oasync.parser.loader.httpx.get",
            side_effect=httpx.ReadTimeout("slow", request=httpx.Request("GET", URL)),
        ):
            with pytest.raises(FetchTimeoutError, match="30000ms"):
                fetch_source(URL, timeout=30.0)

    def test_connect_error_raises_connection_failed(self) -> None:
        with patch(
            "oasync.parser.loader.httpx.get",
            side_effect=httpx.ConnectError("refused", request=httpx.Request("GET", URL)),
        ):
            with pytest.raises(ConnectionFailedError, match="refused"):
                fetch_source(URL)

    def test_ssl_failure_raises_tls_error(self) -> None:
        error = httpx.ConnectError("certificate verify failed", request=httpx.Request("GET", URL))
        error.__cause__ = ssl.SSLError("bad cert")
        with patch("oasync.parser.loader.httpx.get", side_effect=error):
            with pytest.raises(TLSError) as exc_info:
                fetch_source(URL)
        assert exc_info.value.code == "E104"


# ---------------------------------------------------------------------------
# Local read
# ---------------------------------------------------------------------------


class TestReadLocal:
    def test_reads_file(self, tmp_path: Path) -> None:
        spec = tmp_path / "spec.yaml"
        spec.write_text("openapi: 3.0.0\n", encoding="utf-8")
        fetched = fetch_source(str(spec))
        assert fetched.content == "openapi: 3.0.0\n"
        assert fetched.http_cache.etag is None

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(SpecFileNotFoundError) as exc_info:
            fetch_source(str(tmp_path / "nope.json"))
        assert exc_info.value.code == "E301"

    def test_parent_segment_is_rejected_before_io(self, tmp_path: Path) -> None:
        target = tmp_path / "spec.json"
        target.write_text("{}", encoding="utf-8")
        sneaky = str(tmp_path / "sub" / ".." / "spec.json")
        with pytest.raises(PathTraversalError) as exc_info:
            fetch_source(sneaky)
        assert exc_info.value.code == "E305"

    @pytest.mark.skipif(not hasattr(os, "geteuid") or os.geteuid() == 0,
                        reason="needs a non-root POSIX user")
    def test_unreadable_directory(self, tmp_path: Path) -> None:
        locked = tmp_path / "locked"
        locked.mkdir()
        (locked / "spec.json").write_text("{}", encoding="utf-8")
        locked.chmod(0)
        try:
            with pytest.raises((PermissionDeniedError, SpecFileNotFoundError)):
                fetch_source(str(locked / "spec.json"))
        finally:
            locked.chmod(0o755)

    @pytest.mark.skipif(not hasattr(os, "geteuid") or os.geteuid() == 0,
                        reason="needs a non-root POSIX user")
    def test_unreadable_file(self, tmp_path: Path) -> None:
        spec = tmp_path / "spec.json"
        spec.write_text("{}", encoding="utf-8")
        spec.chmod(0)
        try:
            with pytest.raises(PermissionDeniedError) as exc_info:
                fetch_source(str(spec))
            assert exc_info.value.code == "E302"
        finally:
            spec.chmod(0o644)

    def test_path_through_regular_file_is_read_error(self, tmp_path: Path) -> None:
        (tmp_path / "spec.json").write_text("{}", encoding="utf-8")
        with pytest.raises(FileReadError) as exc_info:
            fetch_source(str(tmp_path / "spec.json" / "nested.yaml"))
        assert exc_info.value.code == "E303"
        assert exc_info.value.recoverable is True

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="needs symlink support")
    def test_symlink_loop_is_read_error(self, tmp_path: Path) -> None:
        loop = tmp_path / "loop.yaml"
        os.symlink(loop, loop)
        with pytest.raises(FileReadError) as exc_info:
            fetch_source(str(loop))
        assert exc_info.value.code == "E303"


# ---------------------------------------------------------------------------
# decode_document
# ---------------------------------------------------------------------------


class TestDecodeDocument:
    def test_json_object(self) -> None:
        assert decode_document('  {"openapi": "3.0.0"}') == {"openapi": "3.0.0"}

    def test_yaml_mapping(self) -> None:
        content = textwrap.dedent("""\
            swagger: "2.0"
            info:
              title: YAML
        """)
        assert decode_document(content)["info"]["title"] == "YAML"

    def test_broken_json(self) -> None:
        with pytest.raises(InvalidJSONError) as exc_info:
            decode_document('{"openapi": ')
        assert exc_info.value.code == "E201"

    def test_broken_yaml(self) -> None:
        with pytest.raises(InvalidYAMLError) as exc_info:
            decode_document("info: [unclosed\n  - x: :")
        assert exc_info.value.code == "E202"

    @pytest.mark.parametrize("content", ["- a\n- b\n", "just a string", ""])
    def test_non_mapping_top_level(self, content: str) -> None:
        with pytest.raises(InvalidDocumentError, match="document must be an object"):
            decode_document(content)


# ---------------------------------------------------------------------------
# detect_version
# ---------------------------------------------------------------------------


class TestDetectVersion:
    @pytest.mark.parametrize(
        "document, expected",
        [
            ({"swagger": "2.0"}, OpenApiVersion.SWAGGER_2),
            ({"openapi": "3.0.3"}, OpenApiVersion.OPENAPI_30),
            ({"openapi": "3.1.0"}, OpenApiVersion.OPENAPI_31),
            ({"openapi": 3.0}, OpenApiVersion.OPENAPI_30),
            ({"swagger": 2.0}, OpenApiVersion.SWAGGER_2),
        ],
    )
    def test_supported_versions(self, document: dict, expected: OpenApiVersion) -> None:
        assert detect_version(document) is expected

    @pytest.mark.parametrize("document", [{"openapi": "2.0"}, {"openapi": "4.0.0"}, {"swagger": "1.2"}])
    def test_unsupported_versions(self, document: dict) -> None:
        with pytest.raises(UnsupportedVersionError) as exc_info:
            detect_version(document)
        assert exc_info.value.code == "E204"

    def test_missing_version_field(self) -> None:
        with pytest.raises(InvalidDocumentError, match="Missing 'openapi' or 'swagger' field"):
            detect_version({"info": {}})
