"""Tests for CLI commands.

Tests scoregraph CLI commands using Click's CliRunner:
- plan: Show the execution plan
- run: Execute the formula suite
- formulas: List the catalog
- version: Show version information
"""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from scoregraph import __version__
from scoregraph.cli import main
from scoregraph.core.errors import NodeExecutionError


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Click CLI test runner."""
    return CliRunner()


class TestPlanCommand:
    """Tests for 'scoregraph plan' command."""

    def test_full_plan(self, cli_runner):
        result = cli_runner.invoke(main, ["plan"])

        assert result.exit_code == 0
        assert "Plan: full graph" in result.output
        assert "21 nodes, 5 levels" in result.output

    def test_primary_plan(self, cli_runner):
        result = cli_runner.invoke(main, ["plan", "--primary"])

        assert result.exit_code == 0
        assert "10 nodes, 4 levels" in result.output
        assert "OSI" not in result.output

    def test_target_plan(self, cli_runner):
        result = cli_runner.invoke(main, ["plan", "-t", "SPI"])

        assert result.exit_code == 0
        assert "targets: SPI" in result.output
        assert "3 nodes, 2 levels" in result.output

    def test_unknown_target(self, cli_runner):
        result = cli_runner.invoke(main, ["plan", "-t", "NOPE"])

        assert result.exit_code == 1
        assert "Unknown target nodes" in result.output

    def test_custom_catalog(self, cli_runner, small_catalog_file):
        result = cli_runner.invoke(main, ["plan", "--catalog", str(small_catalog_file)])

        assert result.exit_code == 0
        assert "3 nodes, 2 levels" in result.output


class TestRunCommand:
    """Tests for 'scoregraph run' command."""

    def test_run_defaults(self, cli_runner):
        result = cli_runner.invoke(main, ["run"])

        assert result.exit_code == 0
        assert "Formula Execution Report" in result.output
        assert "completed" in result.output

    def test_run_json(self, cli_runner, intake_file):
        result = cli_runner.invoke(main, ["run", "-p", str(intake_file), "--primary", "--json"])

        assert result.exit_code == 0
        report = json.loads(result.output)
        assert report["status"] == "completed"
        assert len(report["results"]) == 10
        assert report["cache_misses"] == 10
        assert report["plan"]["targets"] == ["SPI", "RROI", "SEAM", "IVAS", "SCF"]

    def test_run_with_config_and_overrides(self, cli_runner, config_file):
        result = cli_runner.invoke(
            main,
            ["run", "--config", str(config_file), "--max-workers", "1", "-t", "PRI", "--json"],
        )

        assert result.exit_code == 0
        assert list(json.loads(result.output)["results"]) == ["PRI"]

    def test_invalid_params(self, cli_runner, tmp_path):
        params = tmp_path / "bad.yaml"
        params.write_text("deal_size: gigantic\n")

        result = cli_runner.invoke(main, ["run", "-p", str(params)])

        assert result.exit_code == 1
        assert "Invalid parameters" in result.output

    def test_invalid_max_workers(self, cli_runner):
        result = cli_runner.invoke(main, ["run", "--max-workers", "0"])
        assert result.exit_code == 2

    def test_node_failure_exits_nonzero(self, cli_runner, mocker):
        mocker.patch(
            "scoregraph.cli.Scheduler.run",
            side_effect=NodeExecutionError("SPI", "Node 'SPI' failed: feed down"),
        )

        result = cli_runner.invoke(main, ["run"])

        assert result.exit_code == 1
        assert "Node 'SPI' failed: feed down" in result.output


class TestFormulasCommand:
    """Tests for 'scoregraph formulas' command."""

    def test_lists_formulas(self, cli_runner):
        result = cli_runner.invoke(main, ["formulas"])

        assert result.exit_code == 0
        assert "SCF" in result.output
        assert "BARNA" in result.output
        assert "Formulas" in result.output


class TestVersionCommand:
    """Tests for 'scoregraph version' command."""

    def test_version(self, cli_runner):
        result = cli_runner.invoke(main, ["version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_version_option(self, cli_runner):
        result = cli_runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output
