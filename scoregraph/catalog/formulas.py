"""The strategic-intelligence formula suite as a scoregraph Graph.

The bundled executors are deterministic weighted blends of intake signals
and dependency scores. They exist so the suite runs end to end; real scoring
formulas are injected through the `executors` argument of
build_formula_graph().
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from scoregraph.catalog.context import BusinessContext
from scoregraph.catalog.loader import FormulaCatalog, FormulaSpec, load_catalog
from scoregraph.core.graph import Graph, GraphBuilder, NodeExecutor
from scoregraph.core.models import ExecutionReport, NodeOutput, NodeResult

if TYPE_CHECKING:
    from scoregraph.core.scheduler import Scheduler

logger = logging.getLogger(__name__)

PRIMARY_ENGINES: tuple[str, ...] = ("SPI", "RROI", "SEAM", "IVAS", "SCF")


def as_context(params: Any) -> BusinessContext:
    """Accept a BusinessContext, a plain mapping, or None."""
    if isinstance(params, BusinessContext):
        return params
    if params is None:
        return BusinessContext()
    if isinstance(params, Mapping):
        return BusinessContext.model_validate(dict(params))
    raise TypeError(f"Expected BusinessContext or mapping, got {type(params).__name__}")


def weighted_executor(spec: FormulaSpec) -> NodeExecutor:
    """Build the default executor for a formula.

    score = clamp(weighted_mean(signals + dependency scores) + offset, bounds)
    """

    def execute(params: Any, dependencies: Mapping[str, NodeResult]) -> NodeOutput:
        signals = as_context(params).signals()

        weighted = [(signals[name], weight) for name, weight in spec.signals.items()]
        weighted += [(dependencies[dep_id].score, spec.weight_for(dep_id)) for dep_id in spec.dependencies]
        total_weight = sum(weight for _, weight in weighted)
        mean = sum(value * weight for value, weight in weighted) / total_weight if total_weight else 50.0

        low, high = spec.bounds
        score = round(max(low, min(high, mean + spec.offset)), 2)

        return NodeOutput(
            score=score,
            components={name: round(score * share, 2) for name, share in spec.components.items()},
            drivers=list(spec.drivers),
        )

    execute.__name__ = f"score_{spec.id.lower()}"
    return execute


def build_formula_graph(
    catalog: FormulaCatalog | None = None,
    executors: Mapping[str, NodeExecutor] | None = None,
) -> Graph:
    """Register every catalog formula as a node.

    Args:
        catalog: Formula catalog; the bundled suite when omitted
        executors: Per-formula executor overrides keyed by formula id

    Raises:
        GraphDefinitionError: If the catalog topology is invalid
        ValueError: If an override names a formula not in the catalog
    """
    catalog = catalog or load_catalog()
    executors = dict(executors or {})

    unknown = set(executors) - set(catalog.ids)
    if unknown:
        raise ValueError(f"Executor overrides for unknown formulas: {sorted(unknown)}")

    builder = GraphBuilder()
    for spec in catalog.formulas:
        builder.add_node(
            spec.id,
            executors.get(spec.id) or weighted_executor(spec),
            dependencies=spec.dependencies,
            priority=spec.priority,
            timeout=spec.timeout,
            description=spec.name,
        )
    graph = builder.build()
    logger.debug(f"Formula graph ready ({len(graph)} formulas, {len(executors)} overridden)")
    return graph


def run_primary_engines(scheduler: Scheduler, params: Any) -> ExecutionReport:
    """Run only the primary engines and what they depend on."""
    return scheduler.run_subset(params, PRIMARY_ENGINES)
