"""Tests for run metrics and the report dashboard.

- compute_speedup: edge cases of the speedup ratio
- MetricsCollector: level timings and report assembly
- ReportDashboard: rendering completed, aborted and partial reports
"""

from __future__ import annotations

import time

import pytest
from rich.console import Console

from scoregraph.core.cache import MemoizationCache
from scoregraph.core.models import (
    ExecutionPlan,
    ExecutionReport,
    NodeFailure,
    NodeResult,
    RunStatus,
)
from scoregraph.core.scheduler import Scheduler
from scoregraph.metrics.collector import MetricsCollector, compute_speedup
from scoregraph.metrics.dashboard import ReportDashboard


def make_result(node_id: str, score: float, execution_time: float = 0.01) -> NodeResult:
    return NodeResult(
        id=node_id,
        score=score,
        grade="B",
        drivers=["Market readiness", "Partner fit", "Ignored third"],
        execution_time=execution_time,
    )


# =============================================================================
# compute_speedup Tests
# =============================================================================


class TestComputeSpeedup:
    def test_ratio(self):
        assert compute_speedup(0.8, 0.2, nodes_run=4) == pytest.approx(4.0)

    @pytest.mark.parametrize(
        "sequential, wall, nodes_run",
        [
            (0.5, 0.5, 1),  # single node
            (0.0, 0.0, 0),  # nothing ran
            (0.3, 0.0, 3),  # wall time too small to measure
            (0.0, 0.1, 2),  # instantaneous nodes
        ],
    )
    def test_degenerate_cases_are_one(self, sequential, wall, nodes_run):
        assert compute_speedup(sequential, wall, nodes_run) == 1.0

    def test_raw_ratio_below_one(self):
        # Overhead-dominated runs report the measured ratio as is
        assert compute_speedup(0.1, 0.2, nodes_run=2) == pytest.approx(0.5)
        assert compute_speedup(0.99, 1.0, nodes_run=3) == pytest.approx(0.99)


# =============================================================================
# MetricsCollector Tests
# =============================================================================


class TestMetricsCollector:
    def test_level_times(self):
        collector = MetricsCollector()
        collector.start_run()
        collector.start_level(0)
        time.sleep(0.02)
        assert collector.end_level(0) >= 0.02
        collector.start_level(1)
        collector.end_level(1)
        total = collector.stop_run()

        assert total >= 0.02
        assert collector.total_time == total

    def test_total_time_before_start(self):
        assert MetricsCollector().total_time == 0.0

    def test_build_report_counts_only_executed_nodes(self):
        cache = MemoizationCache()
        cache.set("A", make_result("A", 70, execution_time=0.5))
        cache.set("B", make_result("B", 80, execution_time=0.25))
        plan = ExecutionPlan(levels=[["A", "B"]], node_levels={"A": 0, "B": 0})

        collector = MetricsCollector()
        collector.start_run()
        collector.record_executed("B")
        report = collector.build_report(plan, cache, RunStatus.COMPLETED)

        assert collector.executed_nodes == ["B"]
        assert report.sequential_estimate == pytest.approx(0.25)
        assert set(report.results) == {"A", "B"}
        # Only one node executed
        assert report.speedup == 1.0

    def test_build_report_subtracts_baseline(self):
        cache = MemoizationCache()
        cache.get("A")
        cache.set("A", make_result("A", 70))
        baseline = cache.stats()
        cache.get("A")
        plan = ExecutionPlan(levels=[["A"]], node_levels={"A": 0})

        collector = MetricsCollector()
        collector.start_run()
        report = collector.build_report(plan, cache, RunStatus.COMPLETED, baseline=baseline)

        assert (report.cache_hits, report.cache_misses) == (1, 0)
        assert report.cache_hit_rate == 1.0

    def test_build_report_drops_unplanned_results(self):
        cache = MemoizationCache()
        cache.set("A", make_result("A", 70))
        cache.set("OTHER", make_result("OTHER", 10))
        plan = ExecutionPlan(levels=[["A"]], node_levels={"A": 0}, targets=["A"])

        collector = MetricsCollector()
        collector.start_run()
        report = collector.build_report(plan, cache, RunStatus.COMPLETED)

        assert list(report.results) == ["A"]


# =============================================================================
# ReportDashboard Tests
# =============================================================================


@pytest.fixture
def console() -> Console:
    return Console(record=True, width=140, color_system=None)


def render(console: Console) -> str:
    return console.export_text()


class TestReportDashboard:
    def test_completed_report(self, diamond_graph, console):
        report = Scheduler(diamond_graph).run(None)

        ReportDashboard(console=console).show(report)
        output = render(console)

        assert "Formula Execution Report" in output
        assert "completed" in output
        assert "3/3" in output
        assert "0 hits / 3 misses" in output
        for node_id in ("A", "B", "C"):
            assert node_id in output

    def test_aborted_report_shows_failure(self, console):
        plan = ExecutionPlan(
            levels=[["PRI", "CRI"], ["SPI"]],
            node_levels={"PRI": 0, "CRI": 0, "SPI": 1},
        )
        report = ExecutionReport(
            status=RunStatus.ABORTED,
            results={"PRI": make_result("PRI", 72.5)},
            plan=plan,
            failure=NodeFailure(
                node_id="CRI", level=0, error_type="RuntimeError", message="feed down"
            ),
        )

        ReportDashboard(console=console).show(report)
        output = render(console)

        assert "aborted" in output
        assert "CRI (level 0): RuntimeError - feed down" in output
        assert "not run" in output
        assert "72.5" in output
        assert "Market readiness, Partner fit" in output
        assert "Ignored third" not in output

    def test_timed_out_failure(self, console):
        plan = ExecutionPlan(levels=[["SLOW"]], node_levels={"SLOW": 0})
        report = ExecutionReport(
            status=RunStatus.ABORTED,
            plan=plan,
            failure=NodeFailure(
                node_id="SLOW",
                level=0,
                error_type="TimeoutError",
                message="Node 'SLOW' timed out after 1.0s",
                timed_out=True,
            ),
        )

        ReportDashboard(console=console).show(report)
        assert "timed out" in render(console)

    def test_node_ids_with_markup_are_escaped(self, console):
        plan = ExecutionPlan(levels=[["[red]X"]], node_levels={"[red]X": 0})
        report = ExecutionReport(
            status=RunStatus.COMPLETED,
            results={"[red]X": make_result("[red]X", 50)},
            plan=plan,
        )

        ReportDashboard(console=console).show(report)
        assert "[red]X" in render(console)
