# conftest.py - Shared pytest fixtures for all tests
"""Shared pytest fixtures for the scoregraph test suite.

Provides:
- Executor factories (constant, recording, sleeping, failing)
- Small reference graphs (diamond, chain, wide)
- The bundled formula graph
- Config and catalog files written to tmp_path

Usage:
    Fixtures are discovered by pytest. The executor factories are plain
    functions: `from conftest import sleeping`.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import pytest
import yaml

from scoregraph.catalog import build_formula_graph, load_catalog
from scoregraph.core.graph import Graph, GraphBuilder
from scoregraph.core.models import NodeOutput, NodeResult


# =============================================================================
# Executor Helpers
# =============================================================================


class CallRecorder:
    """Thread-safe record of executor calls.

    Each entry is (node_id, params, dependency ids seen) in call order.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, Any, tuple[str, ...]]] = []
        self._lock = threading.Lock()

    def record(self, node_id: str, params: Any, dependencies: Mapping[str, NodeResult]) -> None:
        with self._lock:
            self.calls.append((node_id, params, tuple(sorted(dependencies))))

    @property
    def order(self) -> list[str]:
        return [node_id for node_id, _, _ in self.calls]

    def count(self, node_id: str) -> int:
        return self.order.count(node_id)


def constant(score: float, recorder: CallRecorder | None = None, node_id: str = "") -> Callable:
    """Executor returning a fixed score."""

    def execute(params, dependencies):
        if recorder is not None:
            recorder.record(node_id, params, dependencies)
        return NodeOutput(score=score, drivers=[f"{node_id or 'node'} driver"])

    return execute


def summing(recorder: CallRecorder | None = None, node_id: str = "") -> Callable:
    """Executor scoring the sum of its dependency scores."""

    def execute(params, dependencies):
        if recorder is not None:
            recorder.record(node_id, params, dependencies)
        return NodeOutput(score=sum(r.score for r in dependencies.values()))

    return execute


def sleeping(seconds: float, score: float = 50.0) -> Callable:
    """Sync executor that blocks its worker thread for `seconds`."""

    def execute(params, dependencies):
        time.sleep(seconds)
        return NodeOutput(score=score)

    return execute


def failing(message: str = "boom", exc_type: type[Exception] = RuntimeError) -> Callable:
    def execute(params, dependencies):
        raise exc_type(message)

    return execute


# =============================================================================
# Graph Fixtures
# =============================================================================


@pytest.fixture
def recorder() -> CallRecorder:
    return CallRecorder()


@pytest.fixture
def diamond_graph(recorder: CallRecorder) -> Graph:
    """A and B are independent, C depends on both.

    Scores: A=10, B=20, C=A+B=30.
    """
    return (
        GraphBuilder()
        .add_node("A", constant(10.0, recorder, "A"))
        .add_node("B", constant(20.0, recorder, "B"))
        .add_node("C", summing(recorder, "C"), dependencies=["A", "B"])
        .build()
    )


@pytest.fixture
def chain_graph(recorder: CallRecorder) -> Graph:
    """A -> B -> C -> D, plus an unrelated E."""
    return (
        GraphBuilder()
        .add_node("A", constant(5.0, recorder, "A"))
        .add_node("B", summing(recorder, "B"), dependencies=["A"])
        .add_node("C", summing(recorder, "C"), dependencies=["B"])
        .add_node("D", summing(recorder, "D"), dependencies=["C"])
        .add_node("E", constant(1.0, recorder, "E"))
        .build()
    )


@pytest.fixture
def wide_graph() -> Graph:
    """Four independent nodes each sleeping 0.2s, feeding one sink."""
    builder = GraphBuilder()
    for node_id in ("W1", "W2", "W3", "W4"):
        builder.add_node(node_id, sleeping(0.2))
    builder.add_node("SINK", summing(), dependencies=["W1", "W2", "W3", "W4"])
    return builder.build()


@pytest.fixture(scope="session")
def formula_graph() -> Graph:
    """The bundled 21-formula suite."""
    return build_formula_graph(load_catalog())


# =============================================================================
# File Fixtures
# =============================================================================


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(
        yaml.dump({"scheduler": {"max_workers": 2, "node_timeout": 5.0, "raise_on_failure": False}})
    )
    return path


@pytest.fixture
def intake_file(tmp_path: Path) -> Path:
    path = tmp_path / "intake.yaml"
    path.write_text(
        yaml.dump(
            {
                "organization_name": "Acme Health",
                "organization_type": "corporation",
                "country": "Kenya",
                "industry": ["healthcare"],
                "risk_tolerance": "low",
                "deal_size": "large",
                "headcount_band": "100-1000",
                "expansion_timeline": "12-24 months",
                "stakeholder_alignment": ["board", "ministry"],
                "target_counterpart_type": ["distributor"],
                "contact_email": "ops@example.com",
            }
        )
    )
    return path


@pytest.fixture
def small_catalog_file(tmp_path: Path) -> Path:
    """Three-formula catalog: X and Y feed Z."""
    path = tmp_path / "formulas.yaml"
    path.write_text(
        yaml.dump(
            {
                "version": "1.0",
                "formulas": [
                    {"id": "X", "name": "X Index", "signals": {"stability": 1.0}},
                    {"id": "Y", "name": "Y Index", "priority": 10, "signals": {"deal_scale": 1.0}},
                    {"id": "Z", "name": "Z Index", "dependencies": ["X", "Y"]},
                ],
                "primary_engines": ["Z"],
            }
        )
    )
    return path
