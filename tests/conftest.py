"""Shared test fixtures for oasync.

Provides fixture file paths, parsed specs, isolated configuration and a
reset of the global output state. These fixtures are discovered by pytest
and available to all test modules without explicit imports.
"""

from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path
from typing import Any

import pytest

from oasync.models import ParsedSpec
from oasync.output import OutputFormat, OutputManager, reset_output, set_output


FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Auto-reset global state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager and CLI log handlers after every test.

    Both hold references to the streams CliRunner swaps in; once the runner
    closes them the references go stale.
    """
    yield
    reset_output()
    logger = logging.getLogger("oasync")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points XDG_CONFIG_HOME into tmp_path and clears every OASYNC_*
    variable so tests never read the real user settings.
    """
    monkeypatch.setattr("oasync.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    for var in (
        "OASYNC_TTL_SECONDS",
        "OASYNC_FETCH_TIMEOUT",
        "OASYNC_PROBE_TIMEOUT",
        "OASYNC_PAGE_LIMIT",
    ):
        monkeypatch.delenv(var, raising=False)
    return tmp_path


# ---------------------------------------------------------------------------
# Fixture files
# ---------------------------------------------------------------------------


@pytest.fixture
def petstore_path() -> Path:
    """Swagger 2.0 petstore (YAML)."""
    return FIXTURES_DIR / "petstore_swagger2.yaml"


@pytest.fixture
def orders_v1_path() -> Path:
    """OpenAPI 3.1 order service, first version (JSON)."""
    return FIXTURES_DIR / "orders_v1.json"


@pytest.fixture
def orders_v2_path() -> Path:
    """OpenAPI 3.1 order service with breaking and non-breaking changes."""
    return FIXTURES_DIR / "orders_v2.json"


@pytest.fixture
def cyclic_path() -> Path:
    """OpenAPI 3.0 spec with self-referencing and mutually recursive schemas."""
    return FIXTURES_DIR / "cyclic.yaml"


@pytest.fixture
def orders_v1_raw(orders_v1_path: Path) -> dict[str, Any]:
    with open(orders_v1_path) as f:
        return json.load(f)


@pytest.fixture
def project_spec(tmp_path: Path, orders_v1_path: Path) -> Path:
    """A copy of the order service spec inside a fresh project directory."""
    project = tmp_path / "project"
    project.mkdir()
    target = project / "openapi.json"
    shutil.copy(orders_v1_path, target)
    return target


# ---------------------------------------------------------------------------
# Parsed specs
# ---------------------------------------------------------------------------


def _parse(path: Path) -> ParsedSpec:
    from oasync.parser import parse_document

    return parse_document(path.read_text(encoding="utf-8"), str(path))


@pytest.fixture
def petstore_spec(petstore_path: Path) -> ParsedSpec:
    return _parse(petstore_path)


@pytest.fixture
def orders_v1_spec(orders_v1_path: Path) -> ParsedSpec:
    return _parse(orders_v1_path)


@pytest.fixture
def orders_v2_spec(orders_v2_path: Path) -> ParsedSpec:
    return _parse(orders_v2_path)


@pytest.fixture
def cyclic_spec(cyclic_path: Path) -> ParsedSpec:
    return _parse(cyclic_path)


# ---------------------------------------------------------------------------
# Output and CLI
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager for the test."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
