"""CLI entry point for scoregraph.

Commands:
- scoregraph plan: Show the execution plan for the formula suite
- scoregraph run: Run the formula suite (or a target subset) on intake data
- scoregraph formulas: List the formulas in the catalog
- scoregraph version: Show version information
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
import pydantic
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from scoregraph import __version__
from scoregraph.catalog import PRIMARY_ENGINES, BusinessContext, build_formula_graph, load_catalog
from scoregraph.cli_ui.plan_renderer import PlanRenderer
from scoregraph.core.config import load_config
from scoregraph.core.errors import ConfigError, GraphDefinitionError, NodeExecutionError
from scoregraph.core.scheduler import Scheduler
from scoregraph.metrics.dashboard import ReportDashboard

console = Console()

catalog_option = click.option(
    "--catalog",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Formula catalog YAML (defaults to the bundled suite)",
)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load_params(path: Path | None) -> BusinessContext:
    if path is None:
        return BusinessContext()
    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Parameters in {path} must be a mapping")
    try:
        return BusinessContext.model_validate(raw)
    except pydantic.ValidationError as e:
        raise ConfigError(f"Invalid parameters in {path}: {e}") from e


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def main(verbose: bool) -> None:
    """scoregraph - dependency-aware parallel formula engine."""
    _setup_logging(verbose)


@main.command()
@click.option("--target", "-t", multiple=True, help="Plan only these formulas and their dependencies")
@click.option("--primary", is_flag=True, help="Plan the primary engines only")
@catalog_option
def plan(target: tuple[str, ...], primary: bool, catalog: Path | None) -> None:
    """Show the level-by-level execution plan.

    Example:
        scoregraph plan
        scoregraph plan -t SCF
    """
    targets = list(PRIMARY_ENGINES) if primary else (list(target) or None)
    try:
        graph = build_formula_graph(load_catalog(catalog))
        execution_plan = Scheduler(graph).plan(targets)
    except (ConfigError, GraphDefinitionError) as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    PlanRenderer(graph, console=console).show(execution_plan)


@main.command()
@click.option(
    "--params",
    "-p",
    "params_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Intake parameters (YAML or JSON)",
)
@click.option("--target", "-t", multiple=True, help="Run only these formulas and their dependencies")
@click.option("--primary", is_flag=True, help="Run the primary engines only")
@click.option("--max-workers", type=click.IntRange(min=1), help="Cap concurrent nodes per level")
@click.option("--timeout", type=click.FloatRange(min=0, min_open=True), help="Per-node deadline in seconds")
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Scheduler config YAML",
)
@click.option("--json", "as_json", is_flag=True, help="Print the report as JSON")
@catalog_option
def run(
    params_file: Path | None,
    target: tuple[str, ...],
    primary: bool,
    max_workers: int | None,
    timeout: float | None,
    config_file: Path | None,
    as_json: bool,
    catalog: Path | None,
) -> None:
    """Run the formula suite on intake data.

    Example:
        scoregraph run -p intake.yaml
        scoregraph run -p intake.yaml -t SCF --max-workers 2 --json
    """
    targets = list(PRIMARY_ENGINES) if primary else (list(target) or None)
    try:
        config = load_config(config_file)
        overrides = {}
        if max_workers is not None:
            overrides["max_workers"] = max_workers
        if timeout is not None:
            overrides["node_timeout"] = timeout
        if overrides:
            config = config.model_copy(update=overrides)

        params = _load_params(params_file)
        scheduler = Scheduler(build_formula_graph(load_catalog(catalog)), config)
        report = scheduler.run(params, targets)
    except (ConfigError, GraphDefinitionError, NodeExecutionError) as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    if as_json:
        click.echo(report.model_dump_json(indent=2))
    else:
        ReportDashboard(console=console).show(report)

    if not report.succeeded:
        sys.exit(1)


@main.command()
@catalog_option
def formulas(catalog: Path | None) -> None:
    """List the formulas in the catalog."""
    try:
        formula_catalog = load_catalog(catalog)
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    table = Table(title="Formulas")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Priority", justify="right")
    table.add_column("Depends On", style="dim")

    for spec in formula_catalog.formulas:
        table.add_row(spec.id, spec.name, f"{spec.priority:g}", ", ".join(spec.dependencies) or "-")

    console.print(table)


@main.command()
def version() -> None:
    """Show version information."""
    console.print(f"scoregraph {__version__}")


if __name__ == "__main__":
    main()
