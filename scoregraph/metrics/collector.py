"""Run timing and speedup measurement.

The Scheduler drives one MetricsCollector per run: it marks the run and
each level boundary, records which nodes actually executed, and finally asks
the collector to assemble the ExecutionReport.
"""

import logging
import time

from scoregraph.core.cache import CacheStats, MemoizationCache
from scoregraph.core.models import ExecutionPlan, ExecutionReport, NodeFailure, RunStatus

logger = logging.getLogger(__name__)

# Wall times below this are treated as zero when computing speedup
MIN_WALL_TIME = 1e-9


def compute_speedup(sequential_estimate: float, wall_time: float, nodes_run: int) -> float:
    """Ratio of summed node time to elapsed wall time.

    Defined as 1.0 when at most one node ran, or when either time is
    effectively zero. Not clamped: scheduling overhead on a
    narrow graph can show up as a value below 1.0.
    """
    if nodes_run <= 1 or wall_time < MIN_WALL_TIME or sequential_estimate <= 0:
        return 1.0
    return sequential_estimate / wall_time


class MetricsCollector:
    """Timing helper for a single run.

    USAGE:
        collector = MetricsCollector()
        collector.start_run()
        collector.start_level(0)
        ...
        collector.end_level(0)
        collector.stop_run()
        report = collector.build_report(plan, cache, RunStatus.COMPLETED)
    """

    def __init__(self) -> None:
        self._run_start: float | None = None
        self._run_end: float | None = None
        self._level_start_times: dict[int, float] = {}
        self._level_times: list[float] = []
        self._executed: list[str] = []

    def start_run(self) -> None:
        self._run_start = time.perf_counter()
        self._run_end = None

    def stop_run(self) -> float:
        """Mark the end of the run and return its wall time."""
        self._run_end = time.perf_counter()
        return self.total_time

    @property
    def total_time(self) -> float:
        if self._run_start is None:
            return 0.0
        end = self._run_end if self._run_end is not None else time.perf_counter()
        return end - self._run_start

    def start_level(self, index: int) -> None:
        self._level_start_times[index] = time.perf_counter()

    def end_level(self, index: int) -> float:
        """Record and return the wall time of a level."""
        start = self._level_start_times.pop(index, None)
        duration = time.perf_counter() - start if start is not None else 0.0
        self._level_times.append(duration)
        return duration

    def record_executed(self, node_id: str) -> None:
        """Note that node_id ran in this run rather than being served from cache."""
        self._executed.append(node_id)

    @property
    def executed_nodes(self) -> list[str]:
        return list(self._executed)

    def build_report(
        self,
        plan: ExecutionPlan,
        cache: MemoizationCache,
        status: RunStatus,
        failure: NodeFailure | None = None,
        baseline: CacheStats | None = None,
    ) -> ExecutionReport:
        """Assemble the final report from the cache and recorded timings.

        Results are limited to planned nodes. Cache counters are reported
        relative to baseline, the stats taken when the run started, so a
        reused cache only contributes this run's lookups.
        """
        if self._run_end is None:
            self.stop_run()

        snapshot = cache.snapshot()
        results = {node_id: snapshot[node_id] for node_id in plan.node_ids if node_id in snapshot}
        sequential_estimate = sum(
            results[node_id].execution_time for node_id in self._executed if node_id in results
        )
        total_time = self.total_time
        speedup = compute_speedup(sequential_estimate, total_time, len(self._executed))
        stats = cache.stats()
        hits = stats.hits - (baseline.hits if baseline else 0)
        misses = stats.misses - (baseline.misses if baseline else 0)

        report = ExecutionReport(
            status=status,
            results=results,
            plan=plan,
            total_time=total_time,
            level_times=list(self._level_times),
            sequential_estimate=sequential_estimate,
            speedup=speedup,
            cache_hits=hits,
            cache_misses=misses,
            failure=failure,
        )

        logger.info(
            f"Run {status.value}: {len(self._executed)} nodes executed in "
            f"{total_time * 1000:.1f}ms (sequential estimate "
            f"{sequential_estimate * 1000:.1f}ms, speedup {speedup:.2f}x, "
            f"cache hits {hits}/{hits + misses})"
        )
        return report
