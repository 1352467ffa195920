"""Scheduler configuration loaded from YAML."""

from __future__ import annotations

import logging
from pathlib import Path

import pydantic
import yaml
from pydantic import BaseModel, Field

from scoregraph.core.errors import ConfigError

logger = logging.getLogger(__name__)

PACKAGE_DIR = Path(__file__).parent.parent

CONFIG_SEARCH_PATHS = [
    Path(".scoregraph/config.yaml"),
    Path.home() / ".scoregraph/config.yaml",
]


class SchedulerConfig(BaseModel):
    """Execution limits for a Scheduler.

    Example config.yaml:
        scheduler:
          max_workers: 4
          node_timeout: 30
          raise_on_failure: false
    """

    model_config = pydantic.ConfigDict(frozen=True, extra="forbid")

    # Cap on concurrently running nodes within a level (None = level width)
    max_workers: int | None = Field(default=None, ge=1)
    # Default per-node deadline in seconds; Node.timeout takes precedence
    node_timeout: float | None = Field(default=None, gt=0)
    # Raise NodeExecutionError instead of returning an aborted report
    raise_on_failure: bool = False


def load_config(path: str | Path | None = None) -> SchedulerConfig:
    """Load SchedulerConfig from the first existing config file.

    Search order: explicit path, ./.scoregraph/config.yaml,
    ~/.scoregraph/config.yaml. Defaults apply when no file is found.

    Raises:
        ConfigError: If the explicit path is missing, or the file is not
            valid YAML or fails validation
    """
    if path is not None:
        candidates = [Path(path)]
        if not candidates[0].exists():
            raise ConfigError(f"Config file not found: {path}")
    else:
        candidates = CONFIG_SEARCH_PATHS

    for candidate in candidates:
        if not candidate.exists():
            continue
        try:
            with open(candidate, encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {candidate}: {e}") from e
        if not isinstance(raw, dict):
            raise ConfigError(f"Config in {candidate} must be a mapping")

        section = raw.get("scheduler", {}) or {}
        try:
            config = SchedulerConfig.model_validate(section)
        except pydantic.ValidationError as e:
            raise ConfigError(f"Invalid scheduler config in {candidate}: {e}") from e
        logger.debug(f"Loaded scheduler config from {candidate}: {config}")
        return config

    return SchedulerConfig()
