# Standard library
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TypedDict

# Local imports
from datarefine.types import ActionType, ColumnType, Scalar, TransformationKind

# -----------------------------
# TypedDict Definitions
# -----------------------------


class CorrelationResult(TypedDict):
    """Pairwise Pearson coefficients over active numeric columns."""

    columns: list[str]
    matrix: list[list[float]]


class Loading(TypedDict):
    """Weight of one original column on a principal axis."""

    name: str
    value: float


class ComponentLoadings(TypedDict):
    pc1: list[Loading]
    pc2: list[Loading]


class ProjectedPoint(TypedDict):
    """A row placed on the first two principal axes."""

    id: int
    x: float
    y: float
    values: dict[str, Scalar]


class ReductionResult(TypedDict):
    """Complete PCA output."""

    projected_points: list[ProjectedPoint]
    loadings: ComponentLoadings
    eigenvalues: list[float]


class ProcessingSuggestion(TypedDict):
    """Cleaning suggestion, either heuristic or from the advisory service."""

    column: str
    suggestion: str
    reason: str
    action_type: ActionType


# -----------------------------
# Domain Models
# -----------------------------


@dataclass(frozen=True)
class DataRow:
    """Immutable row: a dataset-local id plus ordered cell values."""

    id: int
    values: dict[str, Scalar]

    def get(self, column: str) -> Scalar:
        return self.values.get(column)

    def keys(self) -> list[str]:
        return list(self.values)

    def with_values(self, values: dict[str, Scalar]) -> "DataRow":
        """Return a copy of this row carrying new values."""
        return DataRow(id=self.id, values=values)

    def with_id(self, row_id: int) -> "DataRow":
        return DataRow(id=row_id, values=self.values)


@dataclass(frozen=True)
class ColumnMetadata:
    """Inferred type and summary statistics for one column."""

    name: str
    type: ColumnType
    missing_count: int
    unique_count: int
    min: float | None = None
    max: float | None = None
    mean: float | None = None
    is_active: bool = True
    importance_score: float = 0.0
    categories: tuple[str, ...] | None = None

    @property
    def is_numeric(self) -> bool:
        return self.type == "number"


@dataclass(frozen=True)
class DatasetStats:
    """Running counters carried from dataset to derived dataset."""

    original_row_count: int = 0
    total_cells: int = 0
    imputed_cells: int = 0
    dropped_rows: int = 0


@dataclass(frozen=True)
class HierarchyDefinition:
    """Ordered column names defining nesting levels for grouping."""

    name: str
    levels: tuple[str, ...]


@dataclass(frozen=True)
class TransformationConfig:
    """One derived-column operation of the transformation pipeline."""

    kind: TransformationKind
    target_column: str
    params: Mapping[str, object] = field(default_factory=dict)

    def __repr__(self) -> str:
        return f"Transformation({self.kind} on {self.target_column}, {dict(self.params)})"
