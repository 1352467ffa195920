"""Graph registry: computation nodes and their declared dependencies.

A Graph is static configuration. Build it once with GraphBuilder and hand it
to as many Scheduler instances and runs as needed.

Example:
    builder = GraphBuilder()
    builder.add_node("A", score_a)
    builder.add_node("B", score_b, priority=10)
    builder.add_node("C", score_c, dependencies=["A", "B"])
    graph = builder.build()
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any, Union

import networkx as nx

from scoregraph.core.errors import GraphDefinitionError
from scoregraph.core.models import NodeOutput, NodeResult

logger = logging.getLogger(__name__)

NodeReturn = Union[NodeResult, NodeOutput]

# (params, dependency_results) -> result; plain functions run in a worker
# thread, coroutine functions are awaited on the event loop.
NodeExecutor = Callable[
    [Any, Mapping[str, NodeResult]],
    Union[NodeReturn, Awaitable[NodeReturn]],
]


@dataclass(frozen=True)
class Node:
    """A unit of computation with declared dependencies."""

    id: str
    executor: NodeExecutor
    dependencies: tuple[str, ...] = ()
    priority: float = 0.0  # Higher runs first within a level
    timeout: float | None = None  # Per-node deadline in seconds
    description: str = ""


class Graph:
    """Immutable, validated set of nodes.

    Iteration yields node ids in registration order, which is also the
    tie-break order for nodes of equal priority within a level.
    """

    def __init__(self, nodes: Iterable[Node]):
        self._nodes: dict[str, Node] = {}
        for node in nodes:
            if node.id in self._nodes:
                raise GraphDefinitionError(f"Duplicate node id: '{node.id}'")
            self._nodes[node.id] = node

        # Reverse adjacency: node -> nodes that depend on it
        self._dependents: dict[str, list[str]] = {node_id: [] for node_id in self._nodes}
        for node in self._nodes.values():
            for dep_id in node.dependencies:
                if dep_id in self._dependents:
                    self._dependents[dep_id].append(node.id)

    def __getitem__(self, node_id: str) -> Node:
        try:
            return self._nodes[node_id]
        except KeyError:
            raise GraphDefinitionError(
                f"Unknown node '{node_id}'. Available nodes: {sorted(self._nodes)}"
            ) from None

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __iter__(self) -> Iterator[str]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    @property
    def nodes(self) -> list[Node]:
        return list(self._nodes.values())

    def dependencies(self, node_id: str) -> tuple[str, ...]:
        return self[node_id].dependencies

    def dependents(self, node_id: str) -> list[str]:
        self[node_id]  # raises on unknown id
        return list(self._dependents[node_id])

    def validate(self) -> None:
        """Check every dependency is declared and the graph is acyclic.

        Raises:
            GraphDefinitionError: On an undeclared dependency or a cycle
        """
        from scoregraph.core.planner import compute_levels

        compute_levels(self)

    def to_networkx(self) -> nx.DiGraph:
        """Convert to a NetworkX DiGraph (edges run dependency -> dependent)."""
        G = nx.DiGraph()
        for node in self._nodes.values():
            G.add_node(node.id, priority=node.priority)
        for node in self._nodes.values():
            for dep_id in node.dependencies:
                G.add_edge(dep_id, node.id)
        return G

    def critical_path(self) -> list[str]:
        """Longest dependency chain, leaf first.

        This is the lower bound on the number of barrier-separated levels any
        run of the full graph needs.
        """
        G = self.to_networkx()
        try:
            return nx.dag_longest_path(G)
        except nx.NetworkXUnfeasible:
            return []  # Has cycles

    def __repr__(self) -> str:
        return f"Graph(nodes={list(self._nodes)})"


class GraphBuilder:
    """Collects node definitions and produces a validated Graph."""

    def __init__(self) -> None:
        self._nodes: dict[str, Node] = {}

    def add_node(
        self,
        node_id: str,
        executor: NodeExecutor,
        dependencies: Iterable[str] = (),
        priority: float = 0.0,
        timeout: float | None = None,
        description: str = "",
    ) -> GraphBuilder:
        """Register a node. Returns self so calls can be chained.

        Raises:
            GraphDefinitionError: If node_id is already registered, or a
                dependency is listed twice
        """
        if node_id in self._nodes:
            raise GraphDefinitionError(f"Duplicate node id: '{node_id}'")
        if not callable(executor):
            raise GraphDefinitionError(f"Executor for node '{node_id}' is not callable")
        deps = tuple(dependencies)
        if len(set(deps)) != len(deps):
            raise GraphDefinitionError(f"Node '{node_id}' lists a dependency more than once: {deps}")
        if timeout is not None and timeout <= 0:
            raise GraphDefinitionError(f"Node '{node_id}' timeout must be positive, got {timeout}")

        self._nodes[node_id] = Node(
            id=node_id,
            executor=executor,
            dependencies=deps,
            priority=priority,
            timeout=timeout,
            description=description,
        )
        return self

    def node(
        self,
        node_id: str | None = None,
        dependencies: Iterable[str] = (),
        priority: float = 0.0,
        timeout: float | None = None,
    ) -> Callable[[NodeExecutor], NodeExecutor]:
        """Decorator form of add_node. The id defaults to the function name."""

        def decorator(func: NodeExecutor) -> NodeExecutor:
            self.add_node(
                node_id or func.__name__,
                func,
                dependencies=dependencies,
                priority=priority,
                timeout=timeout,
                description=next(iter((func.__doc__ or "").strip().splitlines()), ""),
            )
            return func

        return decorator

    def build(self) -> Graph:
        """Validate and freeze the collected nodes.

        Raises:
            GraphDefinitionError: On an undeclared dependency or a cycle
        """
        graph = Graph(self._nodes.values())
        graph.validate()
        logger.debug(
            f"Built graph: {len(graph)} nodes, "
            f"{sum(len(n.dependencies) for n in graph.nodes)} edges"
        )
        return graph
