"""Core modules for the scoregraph engine."""

from scoregraph.core.cache import CacheStats, MemoizationCache
from scoregraph.core.config import SchedulerConfig, load_config
from scoregraph.core.errors import (
    CacheConsistencyError,
    ConfigError,
    GraphDefinitionError,
    NodeExecutionError,
    NodeTimeoutError,
    ScoreGraphError,
)
from scoregraph.core.graph import Graph, GraphBuilder, Node
from scoregraph.core.models import (
    ExecutionPlan,
    ExecutionReport,
    NodeFailure,
    NodeOutput,
    NodeResult,
    RunStatus,
    to_grade,
)
from scoregraph.core.planner import build_plan, collect_closure, compute_levels

__all__ = [
    "CacheConsistencyError",
    "CacheStats",
    "ConfigError",
    "ExecutionPlan",
    "ExecutionReport",
    "Graph",
    "GraphBuilder",
    "GraphDefinitionError",
    "MemoizationCache",
    "Node",
    "NodeExecutionError",
    "NodeFailure",
    "NodeOutput",
    "NodeResult",
    "NodeTimeoutError",
    "RunStatus",
    "SchedulerConfig",
    "ScoreGraphError",
    "build_plan",
    "collect_closure",
    "compute_levels",
    "load_config",
    "to_grade",
]
