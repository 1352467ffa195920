"""Exception hierarchy for the scoregraph engine."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from scoregraph.core.models import ExecutionReport


class ScoreGraphError(Exception):
    """Base error for the scoregraph engine."""

    pass


class GraphDefinitionError(ScoreGraphError):
    """Graph is malformed: duplicate id, undeclared dependency, cycle or unknown target."""

    pass


class CacheConsistencyError(ScoreGraphError):
    """Memoization cache invariant violated.

    Raised on a second write to the same node id, or when a node reads a
    dependency that has not been computed yet. Either case is a planner defect
    and is never recovered from.
    """

    pass


class NodeExecutionError(ScoreGraphError):
    """A node executor failed during a run.

    Attributes:
        node_id: Node whose executor raised
        report: Partial ExecutionReport, set when raised by the Scheduler
    """

    def __init__(
        self,
        node_id: str,
        message: str,
        report: ExecutionReport | None = None,
    ):
        super().__init__(message)
        self.node_id = node_id
        self.report = report


class NodeTimeoutError(NodeExecutionError):
    """A node exceeded its deadline. Treated as a node failure."""

    def __init__(self, node_id: str, timeout: float):
        super().__init__(node_id, f"Node '{node_id}' timed out after {timeout}s")
        self.timeout = timeout


class ConfigError(ScoreGraphError):
    """Invalid scheduler configuration or formula catalog."""

    pass
