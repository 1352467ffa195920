"""Bundled strategic-intelligence formula suite."""

from scoregraph.catalog.context import BusinessContext
from scoregraph.catalog.formulas import (
    PRIMARY_ENGINES,
    build_formula_graph,
    run_primary_engines,
    weighted_executor,
)
from scoregraph.catalog.loader import FormulaCatalog, FormulaSpec, load_catalog

__all__ = [
    "PRIMARY_ENGINES",
    "BusinessContext",
    "FormulaCatalog",
    "FormulaSpec",
    "build_formula_graph",
    "load_catalog",
    "run_primary_engines",
    "weighted_executor",
]
