"""Level-synchronous parallel executor for scoring graphs.

EXECUTION MODEL:
1. Build (and validate) the plan before any node runs
2. For each level, start one task per node; sync executors run in the
   default thread pool, async executors on the event loop
3. Barrier: wait for every task of the level before starting the next
4. Each node reads its dependencies from the memoization cache and writes
   its own result exactly once

FAILURE POLICY (fail-fast):
- A node error finishes the current level (siblings are not interrupted),
  then no further level starts
- The report carries the partial cache and a NodeFailure
- With raise_on_failure, NodeExecutionError is raised carrying the report
- CacheConsistencyError and any other unexpected error always propagate

CANCELLATION:
- Setting the cancel event stops new levels from starting and cancels the
  in-flight tasks of the current level; the report status is CANCELLED
- Cancelling the coroutine itself cancels in-flight tasks and re-raises
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Iterable
from types import MappingProxyType
from typing import Any

from scoregraph.core.cache import MemoizationCache
from scoregraph.core.config import SchedulerConfig
from scoregraph.core.errors import (
    CacheConsistencyError,
    GraphDefinitionError,
    NodeExecutionError,
    NodeTimeoutError,
)
from scoregraph.core.graph import Graph, Node
from scoregraph.core.models import (
    ExecutionPlan,
    ExecutionReport,
    NodeFailure,
    NodeOutput,
    NodeResult,
    RunStatus,
)
from scoregraph.core.planner import build_plan
from scoregraph.metrics.collector import MetricsCollector

logger = logging.getLogger(__name__)


class RunHandle:
    """A run started in the background with Scheduler.start().

    USAGE:
        handle = scheduler.start(params)
        ...
        handle.cancel()  # optional
        report = await handle.wait()
    """

    def __init__(self, task: asyncio.Task, cancel_event: asyncio.Event):
        self._task = task
        self._cancel_event = cancel_event

    def cancel(self) -> None:
        """Request cancellation: no new level starts, in-flight nodes are cancelled."""
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    @property
    def done(self) -> bool:
        return self._task.done()

    async def wait(self) -> ExecutionReport:
        return await self._task


class Scheduler:
    """Execute a Graph level by level with maximum safe parallelism.

    USAGE:
        scheduler = Scheduler(graph, SchedulerConfig(max_workers=4))
        report = scheduler.run(params)
        subset = scheduler.run_subset(params, ["SCF"])

        # From async code
        report = await scheduler.execute(params)
    """

    def __init__(self, graph: Graph, config: SchedulerConfig | None = None):
        graph.validate()
        self.graph = graph
        self.config = config or SchedulerConfig()

    def plan(self, targets: Iterable[str] | None = None) -> ExecutionPlan:
        """Build the execution plan for the full graph or a target closure."""
        return build_plan(self.graph, targets)

    # ========== Async API ==========

    async def execute(
        self,
        params: Any,
        targets: Iterable[str] | None = None,
        cache: MemoizationCache | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> ExecutionReport:
        """Plan and run the full graph, or only the closure of targets.

        Args:
            params: Opaque input handed to every executor
            targets: Optional node ids to restrict the run to
            cache: Cache to reuse; a fresh one is created when omitted
            cancel_event: Set it to cancel the run

        Raises:
            GraphDefinitionError: Before any work, if the plan cannot be built
            NodeExecutionError: On node failure when raise_on_failure is set
            CacheConsistencyError: If a dependency is missing at read time
        """
        plan = build_plan(self.graph, targets)
        return await self.execute_plan(plan, params, cache=cache, cancel_event=cancel_event)

    async def execute_subset(
        self,
        params: Any,
        targets: Iterable[str],
        cache: MemoizationCache | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> ExecutionReport:
        """Run only targets and their transitive dependencies."""
        target_list = list(targets)
        if not target_list:
            raise ValueError("execute_subset requires at least one target node")
        return await self.execute(params, target_list, cache=cache, cancel_event=cancel_event)

    async def execute_plan(
        self,
        plan: ExecutionPlan,
        params: Any,
        cache: MemoizationCache | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> ExecutionReport:
        """Run an already built plan.

        Raises:
            GraphDefinitionError: Before any work, if the plan names an unknown
                node, plans a node twice, or places a dependency at the same
                or a later level without it being cached already
        """
        cache = cache if cache is not None else MemoizationCache()
        self._check_plan(plan, cache)
        baseline = cache.stats()
        collector = MetricsCollector()
        semaphore = (
            asyncio.Semaphore(self.config.max_workers) if self.config.max_workers else None
        )

        status = RunStatus.COMPLETED
        failure: NodeFailure | None = None
        failure_cause: BaseException | None = None

        collector.start_run()
        for index, level in enumerate(plan.levels):
            if cancel_event is not None and cancel_event.is_set():
                logger.warning(f"Run cancelled before level {index}; {len(cache)} results kept")
                status = RunStatus.CANCELLED
                break

            logger.debug(f"Starting level {index}: {level}")
            collector.start_level(index)
            outcomes = await self._run_level(level, params, cache, collector, semaphore, cancel_event)
            collector.end_level(index)

            # Only node failures and cancellation are folded into the report;
            # anything else (CacheConsistencyError included) is fatal
            for outcome in outcomes:
                if isinstance(outcome, BaseException) and not isinstance(
                    outcome, (NodeExecutionError, asyncio.CancelledError)
                ):
                    raise outcome

            for node_id, outcome in zip(level, outcomes):
                if isinstance(outcome, NodeExecutionError):
                    failure = self._to_failure(node_id, index, outcome)
                    failure_cause = outcome
                    break

            if failure is not None:
                logger.error(
                    f"Run aborted at level {index}: node '{failure.node_id}' failed "
                    f"({failure.error_type}: {failure.message})"
                )
                status = RunStatus.ABORTED
                break

            if any(isinstance(outcome, asyncio.CancelledError) for outcome in outcomes):
                logger.warning(f"Run cancelled during level {index}; in-flight nodes cancelled")
                status = RunStatus.CANCELLED
                break

        collector.stop_run()
        report = collector.build_report(plan, cache, status, failure, baseline=baseline)

        if failure is not None and self.config.raise_on_failure:
            raise NodeExecutionError(
                failure.node_id,
                f"Node '{failure.node_id}' failed: {failure.message}",
                report=report,
            ) from failure_cause
        return report

    def start(
        self,
        params: Any,
        targets: Iterable[str] | None = None,
        cache: MemoizationCache | None = None,
    ) -> RunHandle:
        """Start a run as a background task. Must be called from a running loop."""
        cancel_event = asyncio.Event()
        task = asyncio.create_task(
            self.execute(params, targets, cache=cache, cancel_event=cancel_event)
        )
        return RunHandle(task, cancel_event)

    # ========== Sync API ==========

    def run(
        self,
        params: Any,
        targets: Iterable[str] | None = None,
        cache: MemoizationCache | None = None,
    ) -> ExecutionReport:
        """Blocking wrapper around execute(). Not usable inside a running loop."""
        return asyncio.run(self.execute(params, targets, cache=cache))

    def run_subset(
        self,
        params: Any,
        targets: Iterable[str],
        cache: MemoizationCache | None = None,
    ) -> ExecutionReport:
        """Blocking wrapper around execute_subset()."""
        return asyncio.run(self.execute_subset(params, targets, cache=cache))

    # ========== Level and node execution ==========

    def _check_plan(self, plan: ExecutionPlan, cache: MemoizationCache) -> None:
        position: dict[str, int] = {}
        for index, level in enumerate(plan.levels):
            for node_id in level:
                if node_id not in self.graph:
                    raise GraphDefinitionError(
                        f"Plan names unknown node '{node_id}'. Available nodes: {sorted(self.graph)}"
                    )
                if node_id in position:
                    raise GraphDefinitionError(f"Plan lists node '{node_id}' more than once")
                position[node_id] = index

        for node_id, index in position.items():
            for dep_id in self.graph[node_id].dependencies:
                if dep_id in position:
                    if position[dep_id] >= index:
                        raise GraphDefinitionError(
                            f"Plan runs '{node_id}' at level {index} but its dependency "
                            f"'{dep_id}' at level {position[dep_id]}"
                        )
                elif not cache.has(dep_id):
                    raise GraphDefinitionError(
                        f"Plan omits '{dep_id}', a dependency of '{node_id}', "
                        f"and it is not cached"
                    )

    async def _run_level(
        self,
        level: list[str],
        params: Any,
        cache: MemoizationCache,
        collector: MetricsCollector,
        semaphore: asyncio.Semaphore | None,
        cancel_event: asyncio.Event | None,
    ) -> list[Any]:
        """Run every node of a level and wait for all of them (the barrier).

        Returns one entry per node, in level order: the NodeResult or the
        exception the node's task ended with.
        """
        tasks = [
            asyncio.create_task(
                self._run_node(node_id, params, cache, collector, semaphore),
                name=f"scoregraph:{node_id}",
            )
            for node_id in level
        ]
        barrier = asyncio.gather(*tasks, return_exceptions=True)

        if cancel_event is None:
            return await barrier

        watcher = asyncio.create_task(cancel_event.wait())
        try:
            done, _ = await asyncio.wait({barrier, watcher}, return_when=asyncio.FIRST_COMPLETED)
            if barrier not in done:
                for task in tasks:
                    task.cancel()
            return await barrier
        except asyncio.CancelledError:
            barrier.cancel()
            raise
        finally:
            watcher.cancel()

    async def _run_node(
        self,
        node_id: str,
        params: Any,
        cache: MemoizationCache,
        collector: MetricsCollector,
        semaphore: asyncio.Semaphore | None,
    ) -> NodeResult:
        cached = cache.get(node_id)
        if cached is not None:
            logger.debug(f"Node {node_id} served from cache")
            return cached

        node = self.graph[node_id]
        dependency_results = MappingProxyType(
            {dep_id: cache.require(dep_id) for dep_id in node.dependencies}
        )

        if semaphore is not None:
            async with semaphore:
                result = await self._invoke(node, params, dependency_results)
        else:
            result = await self._invoke(node, params, dependency_results)

        cache.set(node_id, result)
        collector.record_executed(node_id)
        logger.debug(f"Node {node_id} finished in {result.execution_time * 1000:.1f}ms")
        return result

    async def _invoke(
        self,
        node: Node,
        params: Any,
        dependency_results: MappingProxyType,
    ) -> NodeResult:
        """Call the executor under its deadline and normalize what it returns."""
        timeout = node.timeout if node.timeout is not None else self.config.node_timeout

        async def call() -> Any:
            if inspect.iscoroutinefunction(node.executor):
                return await node.executor(params, dependency_results)
            output = await asyncio.to_thread(node.executor, params, dependency_results)
            if inspect.isawaitable(output):
                output = await output
            return output

        start = time.perf_counter()
        try:
            if timeout is not None:
                output = await asyncio.wait_for(call(), timeout=timeout)
            else:
                output = await call()
        except asyncio.TimeoutError as e:
            if timeout is None:
                raise NodeExecutionError(node.id, str(e) or type(e).__name__) from e
            # A sync executor keeps running in its thread; its result is discarded
            logger.warning(f"Node '{node.id}' timed out after {timeout}s")
            raise NodeTimeoutError(node.id, timeout) from e
        except CacheConsistencyError:
            raise
        except Exception as e:
            logger.error(f"Node {node.id} failed: {e}")
            raise NodeExecutionError(node.id, str(e) or type(e).__name__) from e
        elapsed = time.perf_counter() - start

        return self._normalize(node.id, output, elapsed)

    @staticmethod
    def _normalize(node_id: str, output: Any, elapsed: float) -> NodeResult:
        if isinstance(output, NodeResult):
            if output.id != node_id:
                raise NodeExecutionError(
                    node_id,
                    f"Executor for '{node_id}' returned a result for '{output.id}'",
                )
            return output.model_copy(update={"execution_time": elapsed})
        if isinstance(output, NodeOutput):
            return NodeResult.from_output(node_id, output, elapsed)
        if isinstance(output, dict):
            try:
                return NodeResult.from_output(node_id, NodeOutput.model_validate(output), elapsed)
            except ValueError as e:
                raise NodeExecutionError(node_id, f"Invalid output from '{node_id}': {e}") from e
        raise NodeExecutionError(
            node_id,
            f"Executor for '{node_id}' returned {type(output).__name__}, "
            f"expected NodeResult, NodeOutput or dict",
        )

    @staticmethod
    def _to_failure(node_id: str, level: int, error: NodeExecutionError) -> NodeFailure:
        cause = error.__cause__
        error_type = type(cause).__name__ if cause is not None else type(error).__name__
        return NodeFailure(
            node_id=node_id,
            level=level,
            error_type=error_type,
            message=str(error),
            timed_out=isinstance(error, NodeTimeoutError),
        )


def run(
    graph: Graph,
    params: Any,
    targets: Iterable[str] | None = None,
    config: SchedulerConfig | None = None,
) -> ExecutionReport:
    """Run a graph once with a fresh cache."""
    return Scheduler(graph, config).run(params, targets)


def run_subset(
    graph: Graph,
    targets: Iterable[str],
    params: Any,
    config: SchedulerConfig | None = None,
) -> ExecutionReport:
    """Run only the closure of targets with a fresh cache."""
    return Scheduler(graph, config).run_subset(params, targets)
