"""Tests for the oasync CLI (app callback and sub-commands).

JSON assertions run with ``--quiet`` so nothing but data reaches the
captured output.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from oasync import __version__
from oasync.app import app, register_commands
from oasync.exit_codes import (
    EXIT_BREAKING_CHANGES,
    EXIT_FILE_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_SPEC_PARSE_ERROR,
)


@pytest.fixture(autouse=True)
def _commands() -> None:
    register_commands()


def _json(output: str) -> dict:
    return json.loads(output)


# ---------------------------------------------------------------------------
# Root callback
# ---------------------------------------------------------------------------


class TestRoot:
    def test_version(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"oasync {__version__}" in result.output

    def test_register_commands_is_idempotent(self) -> None:
        register_commands()
        names = [info.name for info in app.registered_commands]
        assert sorted(names) == ["deps", "diff", "parse", "status"]

    def test_missing_explicit_config(self, cli_runner, tmp_path: Path, petstore_path: Path) -> None:
        result = cli_runner.invoke(
            app, ["--config", str(tmp_path / "nope.json"), "parse", str(petstore_path)]
        )
        assert result.exit_code == EXIT_GENERIC_FAILURE
        assert "E501" in result.output

    def test_settings_file_is_applied(self, cli_runner, tmp_path: Path, petstore_path: Path) -> None:
        config = tmp_path / "settings.json"
        config.write_text(json.dumps({"page_limit": 2}), encoding="utf-8")
        result = cli_runner.invoke(
            app, ["--json", "-q", "--config", str(config), "parse", str(petstore_path), "-f", "endpoints"]
        )
        assert result.exit_code == 0
        assert _json(result.output)["pagination"]["limit"] == 2


# ---------------------------------------------------------------------------
# parse
# ---------------------------------------------------------------------------


class TestParseCommand:
    def test_summary_json(self, cli_runner, petstore_path: Path) -> None:
        result = cli_runner.invoke(app, ["--json", "-q", "parse", str(petstore_path)])
        assert result.exit_code == 0
        data = _json(result.output)
        assert data["success"] is True
        assert data["metadata"]["title"] == "Swagger Petstore"
        assert data["metadata"]["openapi_version"] == "2.0"
        assert "endpoints" not in data

    def test_endpoints_list_json(self, cli_runner, orders_v1_path: Path) -> None:
        result = cli_runner.invoke(
            app, ["--json", "-q", "parse", str(orders_v1_path), "--format", "endpoints-list", "--tag", "orders"]
        )
        assert result.exit_code == 0
        assert _json(result.output)["endpoint_keys"] == [
            "get:/orders", "get:/orders/{orderId}", "post:/orders",
        ]

    def test_plain_tables(self, cli_runner, petstore_path: Path) -> None:
        result = cli_runner.invoke(app, ["--plain", "parse", str(petstore_path), "-f", "schemas"])
        assert result.exit_code == 0
        assert "Swagger Petstore" in result.output
        assert "Pet\tobject{4 properties}\tCategory" in result.output

    def test_missing_file_exit_code(self, cli_runner, tmp_path: Path) -> None:
        result = cli_runner.invoke(app, ["parse", str(tmp_path / "missing.yaml")])
        assert result.exit_code == EXIT_FILE_ERROR
        assert "E301" in result.output

    def test_invalid_spec_exit_code(self, cli_runner, tmp_path: Path) -> None:
        spec = tmp_path / "spec.json"
        spec.write_text('{"info": {}}', encoding="utf-8")
        result = cli_runner.invoke(app, ["parse", str(spec)])
        assert result.exit_code == EXIT_SPEC_PARSE_ERROR

    def test_cache_round_trip(self, cli_runner, project_spec: Path) -> None:
        project = project_spec.parent
        first = cli_runner.invoke(app, ["--json", "-q", "parse", str(project_spec), "-d", str(project)])
        assert first.exit_code == 0
        assert _json(first.output)["from_cache"] is False

        second = cli_runner.invoke(
            app, ["--json", "-q", "parse", str(project_spec), "-d", str(project), "--use-cache"]
        )
        assert second.exit_code == 0
        assert _json(second.output)["from_cache"] is True

    def test_invalid_format_rejected_by_cli(self, cli_runner, petstore_path: Path) -> None:
        result = cli_runner.invoke(app, ["parse", str(petstore_path), "-f", "bogus"])
        assert result.exit_code == EXIT_INVALID_USAGE


# ---------------------------------------------------------------------------
# deps
# ---------------------------------------------------------------------------


class TestDepsCommand:
    def test_schema_json(self, cli_runner, orders_v1_path: Path) -> None:
        result = cli_runner.invoke(app, ["--json", "-q", "deps", str(orders_v1_path), "--schema", "Customer"])
        assert result.exit_code == 0
        data = _json(result.output)
        assert data["affected_schemas"] == ["Order"]
        assert data["total_affected"] == 5

    def test_path_plain(self, cli_runner, orders_v1_path: Path) -> None:
        result = cli_runner.invoke(app, ["--plain", "deps", str(orders_v1_path), "--path", "get:/customers/{customerId}"])
        assert result.exit_code == 0
        assert "schema\tAddress" in result.output
        assert "schema\tCustomer" in result.output

    def test_requires_exactly_one_target(self, cli_runner, orders_v1_path: Path) -> None:
        none = cli_runner.invoke(app, ["deps", str(orders_v1_path)])
        both = cli_runner.invoke(app, ["deps", str(orders_v1_path), "-s", "Order", "-p", "/orders"])
        assert none.exit_code == EXIT_INVALID_USAGE
        assert both.exit_code == EXIT_INVALID_USAGE


# ---------------------------------------------------------------------------
# diff
# ---------------------------------------------------------------------------


class TestDiffCommand:
    def test_reports_breaking_changes(self, cli_runner, orders_v1_path: Path, orders_v2_path: Path) -> None:
        result = cli_runner.invoke(app, ["--plain", "diff", str(orders_v1_path), str(orders_v2_path)])
        assert result.exit_code == 0
        assert "endpoint_removed\t/health" in result.output
        assert "3 breaking change(s) found." in result.output

    def test_fail_on_breaking(self, cli_runner, orders_v1_path: Path, orders_v2_path: Path) -> None:
        result = cli_runner.invoke(
            app, ["diff", str(orders_v1_path), str(orders_v2_path), "--fail-on-breaking"]
        )
        assert result.exit_code == EXIT_BREAKING_CHANGES

    def test_no_breaking_changes_passes_gate(self, cli_runner, orders_v1_path: Path) -> None:
        result = cli_runner.invoke(
            app, ["--json", "-q", "diff", str(orders_v1_path), str(orders_v1_path), "--fail-on-breaking"]
        )
        assert result.exit_code == 0
        data = _json(result.output)
        assert data["summary"]["has_breaking_changes"] is False
        assert data["summary"]["unchanged_endpoints"] == 5

    def test_parse_failure_exit_code(self, cli_runner, tmp_path: Path, orders_v1_path: Path) -> None:
        result = cli_runner.invoke(app, ["diff", str(tmp_path / "old.json"), str(orders_v1_path)])
        assert result.exit_code == EXIT_FILE_ERROR
        assert "Failed to parse old spec" in result.output


# ---------------------------------------------------------------------------
# status
# ---------------------------------------------------------------------------


class TestStatusCommand:
    def test_no_cache(self, cli_runner, tmp_path: Path) -> None:
        result = cli_runner.invoke(app, ["--json", "-q", "status", str(tmp_path)])
        assert result.exit_code == 0
        assert _json(result.output) == {"success": True, "has_cache": False}

    def test_after_parse(self, cli_runner, project_spec: Path) -> None:
        project = project_spec.parent
        cli_runner.invoke(app, ["-q", "parse", str(project_spec), "-d", str(project)])
        result = cli_runner.invoke(app, ["--plain", "status", str(project)])
        assert result.exit_code == 0
        assert "Order Service" in result.output
        assert "\t5\t6\t" in result.output
        assert result.output.rstrip().endswith("\tno")

    def test_clear(self, cli_runner, project_spec: Path) -> None:
        project = project_spec.parent
        cli_runner.invoke(app, ["-q", "parse", str(project_spec), "-d", str(project)])
        result = cli_runner.invoke(app, ["--plain", "status", str(project), "--clear"])
        assert result.exit_code == 0
        assert "Cleared cache in" in result.output

        after = cli_runner.invoke(app, ["--json", "-q", "status", str(project)])
        assert _json(after.output) == {"success": True, "has_cache": False}
