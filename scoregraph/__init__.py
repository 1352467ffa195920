"""scoregraph - dependency-aware parallel execution of scoring formulas.

Named computation nodes declare dependencies on one another; the engine plans
them into levels, runs each level concurrently behind a barrier, memoizes
every result within a run and reports the achieved speedup.
"""

__version__ = "0.1.0"

from scoregraph.core import (
    CacheConsistencyError,
    ConfigError,
    ExecutionPlan,
    ExecutionReport,
    Graph,
    GraphBuilder,
    GraphDefinitionError,
    MemoizationCache,
    Node,
    NodeExecutionError,
    NodeFailure,
    NodeOutput,
    NodeResult,
    NodeTimeoutError,
    RunStatus,
    SchedulerConfig,
    build_plan,
)
from scoregraph.core.scheduler import RunHandle, Scheduler, run, run_subset

__all__ = [
    "CacheConsistencyError",
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
    "RunHandle",
    "RunStatus",
    "Scheduler",
    "SchedulerConfig",
    "__version__",
    "build_plan",
    "run",
    "run_subset",
]
