"""Data models for the scoregraph engine.

Uses Pydantic so plans, results and reports can be dumped verbatim by
whatever persistence layer consumes them.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

# Grade thresholds, highest first
GRADE_SCALE: tuple[tuple[float, str], ...] = (
    (90.0, "A+"),
    (80.0, "A"),
    (70.0, "B"),
    (60.0, "C"),
    (50.0, "D"),
)


def to_grade(score: float) -> str:
    """Map a 0-100 score to its qualitative grade."""
    for threshold, grade in GRADE_SCALE:
        if score >= threshold:
            return grade
    return "F"


class RunStatus(str, Enum):
    """Terminal status of a scheduler run."""

    COMPLETED = "completed"
    ABORTED = "aborted"  # fail-fast on a node error
    CANCELLED = "cancelled"


# --- Node outputs ---


class NodeOutput(BaseModel):
    """What a node executor computes.

    The scheduler stamps id, grade and timing on top of this to produce the
    NodeResult stored in the cache.
    """

    model_config = ConfigDict(frozen=True)

    score: float
    components: dict[str, float] = Field(default_factory=dict)
    drivers: list[str] = Field(default_factory=list)


class NodeResult(BaseModel):
    """Immutable result of one node in one run."""

    model_config = ConfigDict(frozen=True)

    id: str
    score: float
    grade: str
    components: dict[str, float] = Field(default_factory=dict)
    drivers: list[str] = Field(default_factory=list)
    execution_time: float = 0.0  # seconds

    @classmethod
    def from_output(cls, node_id: str, output: NodeOutput, execution_time: float) -> "NodeResult":
        return cls(
            id=node_id,
            score=output.score,
            grade=to_grade(output.score),
            components=dict(output.components),
            drivers=list(output.drivers),
            execution_time=execution_time,
        )


# --- Planning ---


class ExecutionPlan(BaseModel):
    """Ordered levels of mutually independent nodes.

    Every dependency of a planned node is planned at a strictly lower level.
    """

    model_config = ConfigDict(frozen=True)

    levels: list[list[str]] = Field(default_factory=list)
    node_levels: dict[str, int] = Field(default_factory=dict)
    targets: list[str] | None = None  # None means the full graph

    @property
    def total_nodes(self) -> int:
        return sum(len(level) for level in self.levels)

    @property
    def depth(self) -> int:
        return len(self.levels)

    @property
    def max_width(self) -> int:
        return max((len(level) for level in self.levels), default=0)

    @property
    def estimated_parallelism(self) -> float:
        """Average number of nodes per level."""
        if not self.levels:
            return 0.0
        return self.total_nodes / len(self.levels)

    @property
    def node_ids(self) -> list[str]:
        """All planned node ids in execution order."""
        return [node_id for level in self.levels for node_id in level]

    def level_of(self, node_id: str) -> int:
        return self.node_levels[node_id]


# --- Reporting ---


class NodeFailure(BaseModel):
    """Why a run stopped early."""

    node_id: str
    level: int
    error_type: str
    message: str
    timed_out: bool = False


class ExecutionReport(BaseModel):
    """Everything a caller gets back from one run."""

    status: RunStatus
    results: dict[str, NodeResult] = Field(default_factory=dict)
    plan: ExecutionPlan
    total_time: float = 0.0  # wall clock, seconds
    level_times: list[float] = Field(default_factory=list)
    sequential_estimate: float = 0.0  # sum of node times, seconds
    speedup: float = 1.0
    cache_hits: int = 0
    cache_misses: int = 0
    failure: NodeFailure | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == RunStatus.COMPLETED

    @property
    def cache_hit_rate(self) -> float:
        lookups = self.cache_hits + self.cache_misses
        return self.cache_hits / lookups if lookups else 0.0

    def get(self, node_id: str) -> NodeResult | None:
        return self.results.get(node_id)

    def scores(self) -> dict[str, float]:
        return {node_id: result.score for node_id, result in self.results.items()}
