"""Run-scoped memoization cache for node results."""

import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from scoregraph.core.errors import CacheConsistencyError
from scoregraph.core.models import NodeResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheStats:
    """Counters for one cache instance."""

    hits: int
    misses: int
    size: int

    @property
    def hit_rate(self) -> float:
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0


class MemoizationCache:
    """Write-once store mapping node id to its NodeResult.

    A fresh instance is created per run unless the caller passes one in to
    share results between runs (e.g. a full run followed by run_subset).

    Only get() touches the hit/miss counters. The scheduler uses get() for a
    node's own lookup and require() for dependency reads, so a full run of N
    nodes on a fresh cache ends with N misses and 0 hits.
    """

    def __init__(self) -> None:
        self._results: dict[str, NodeResult] = {}
        self._hits = 0
        self._misses = 0
        # Sync executors run in worker threads
        self._lock = threading.Lock()

    def get(self, node_id: str) -> NodeResult | None:
        """Look up a result, counting a hit or a miss."""
        with self._lock:
            result = self._results.get(node_id)
            if result is None:
                self._misses += 1
            else:
                self._hits += 1
            return result

    def set(self, node_id: str, result: NodeResult) -> None:
        """Store a result.

        Raises:
            CacheConsistencyError: If node_id was already written
        """
        with self._lock:
            if node_id in self._results:
                raise CacheConsistencyError(
                    f"Result for node '{node_id}' already cached; results are write-once per run"
                )
            self._results[node_id] = result

    def has(self, node_id: str) -> bool:
        with self._lock:
            return node_id in self._results

    def require(self, node_id: str) -> NodeResult:
        """Read a dependency result without counting it.

        Raises:
            CacheConsistencyError: If the dependency has not been computed
        """
        with self._lock:
            try:
                return self._results[node_id]
            except KeyError:
                raise CacheConsistencyError(
                    f"Dependency '{node_id}' read before it was computed. "
                    f"The execution plan is inconsistent."
                ) from None

    def snapshot(self) -> Mapping[str, NodeResult]:
        """Read-only copy of the current contents."""
        with self._lock:
            return MappingProxyType(dict(self._results))

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(hits=self._hits, misses=self._misses, size=len(self._results))

    def clear(self) -> None:
        with self._lock:
            self._results.clear()
            self._hits = 0
            self._misses = 0
        logger.debug("Memoization cache cleared")

    def __contains__(self, node_id: object) -> bool:
        with self._lock:
            return node_id in self._results

    def __len__(self) -> int:
        with self._lock:
            return len(self._results)
