"""Formula catalog loading and validation."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import jsonschema
import pydantic
import yaml
from pydantic import BaseModel, Field, model_validator

from scoregraph.catalog.context import SIGNAL_NAMES
from scoregraph.core.config import PACKAGE_DIR
from scoregraph.core.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = PACKAGE_DIR / "config/formulas.yaml"
SCHEMA_PATH = PACKAGE_DIR / "config/formulas_schema.json"


class FormulaSpec(BaseModel):
    """One formula: its place in the graph and how it blends its inputs."""

    id: str
    name: str
    priority: float = 0.0
    dependencies: list[str] = Field(default_factory=list)
    dependency_weights: dict[str, float] = Field(default_factory=dict)
    signals: dict[str, float] = Field(default_factory=dict)
    offset: float = 0.0
    bounds: tuple[float, float] = (0.0, 100.0)
    timeout: float | None = None
    components: dict[str, float] = Field(default_factory=dict)
    drivers: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_inputs(self) -> FormulaSpec:
        stray = set(self.dependency_weights) - set(self.dependencies)
        if stray:
            raise ValueError(
                f"Formula '{self.id}' weights undeclared dependencies: {sorted(stray)}"
            )
        unknown = set(self.signals) - SIGNAL_NAMES
        if unknown:
            raise ValueError(
                f"Formula '{self.id}' uses unknown signals: {sorted(unknown)}. "
                f"Available: {sorted(SIGNAL_NAMES)}"
            )
        if not self.dependencies and not self.signals:
            raise ValueError(f"Formula '{self.id}' has no inputs (no dependencies or signals)")
        low, high = self.bounds
        if low > high:
            raise ValueError(f"Formula '{self.id}' has inverted bounds {self.bounds}")
        if self.components and abs(sum(self.components.values()) - 1.0) > 0.01:
            raise ValueError(
                f"Formula '{self.id}' component weights sum to "
                f"{sum(self.components.values()):.2f}, expected 1.0"
            )
        return self

    def weight_for(self, dependency_id: str) -> float:
        return self.dependency_weights.get(dependency_id, 1.0)


class FormulaCatalog(BaseModel):
    """The full formula suite as loaded from YAML."""

    version: str = "1.0"
    formulas: list[FormulaSpec]
    primary_engines: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_ids(self) -> FormulaCatalog:
        seen: set[str] = set()
        for formula in self.formulas:
            if formula.id in seen:
                raise ValueError(f"Duplicate formula id: '{formula.id}'")
            seen.add(formula.id)
        missing = [f for f in self.primary_engines if f not in seen]
        if missing:
            raise ValueError(f"Primary engines not defined as formulas: {missing}")
        return self

    def get(self, formula_id: str) -> FormulaSpec:
        for formula in self.formulas:
            if formula.id == formula_id:
                return formula
        raise KeyError(formula_id)

    @property
    def ids(self) -> list[str]:
        return [f.id for f in self.formulas]


def _load_schema() -> dict:
    with open(SCHEMA_PATH, encoding="utf-8") as f:
        return json.load(f)


def load_catalog(path: str | Path | None = None) -> FormulaCatalog:
    """Load and validate a formula catalog.

    Validation runs in two passes: the JSON schema checks structure, then the
    pydantic models check cross-field rules (weights, signals, bounds).
    Dependency existence and acyclicity are left to the graph builder.

    Args:
        path: Catalog YAML; the bundled suite when omitted

    Raises:
        ConfigError: If the file is missing, unparsable or invalid
    """
    source = Path(path) if path is not None else DEFAULT_CATALOG_PATH
    if not source.exists():
        raise ConfigError(f"Formula catalog not found: {source}")

    try:
        with open(source, encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {source}: {e}") from e

    try:
        jsonschema.validate(raw, _load_schema())
    except jsonschema.ValidationError as e:
        raise ConfigError(
            f"Formula catalog validation failed in {source}: {e.message}\n"
            f"Path: {' -> '.join(str(p) for p in e.absolute_path)}"
        ) from e

    try:
        catalog = FormulaCatalog.model_validate(raw)
    except pydantic.ValidationError as e:
        raise ConfigError(f"Invalid formula catalog {source}: {e}") from e

    logger.debug(f"Loaded {len(catalog.formulas)} formulas from {source}")
    return catalog
