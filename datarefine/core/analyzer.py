# Standard library
from collections.abc import Iterable, Sequence

# Local imports
from datarefine.core.models import ColumnMetadata, DataRow
from datarefine.core.utils import is_missing, is_number, parse_date, to_text
from datarefine.types import ColumnType, Scalar

# -----------------------------
# Constants
# -----------------------------

CATEGORY_LIMIT = 20
CATEGORY_SAMPLE_SIZE = 10

# Stands in for every missing cell when counting distinct values.
_MISSING = object()

# -----------------------------
# Column analysis
# -----------------------------


def column_order(
    rows: Sequence[DataRow], names: Sequence[str] | None = None
) -> list[str]:
    """Column order: the given names, then row keys in first-seen order.

    Without names this is the first row's keys followed by keys that only
    appear in later rows.
    """
    ordered: dict[str, None] = dict.fromkeys(names or ())
    for row in rows:
        for key in row.values:
            ordered.setdefault(key, None)
    return list(ordered)


def analyze_columns(
    rows: Sequence[DataRow],
    *,
    previous: Iterable[ColumnMetadata] | None = None,
    names: Sequence[str] | None = None,
) -> tuple[ColumnMetadata, ...]:
    """Infer type and statistics for every column of a row set.

    Args:
        rows: Rows to analyze
        previous: Metadata of the dataset these rows came from; the
            is_active flag of same-named columns is carried over
        names: Explicit column order; needed to keep a schema for zero rows

    Returns:
        One ColumnMetadata per column, in column order
    """
    if not rows and not names:
        return ()

    active: dict[str, bool] = {c.name: c.is_active for c in previous or ()}
    return tuple(
        analyze_column(name, [row.get(name) for row in rows], active.get(name, True))
        for name in column_order(rows, names)
    )


def analyze_column(
    name: str, values: Sequence[Scalar], is_active: bool = True
) -> ColumnMetadata:
    """Analyze a single column's values."""
    present: list[Scalar] = [v for v in values if not is_missing(v)]
    column_type: ColumnType = infer_type(present)

    minimum: float | None = None
    maximum: float | None = None
    mean: float | None = None
    if column_type == "number":
        # Single explicit pass; no reductions over unpacked sequences.
        total = 0.0
        for value in present:
            number = float(value)  # type: ignore[arg-type]
            if minimum is None or number < minimum:
                minimum = number
            if maximum is None or number > maximum:
                maximum = number
            total += number
        mean = total / len(present)

    distinct: dict[object, None] = {}
    for value in values:
        distinct.setdefault(_MISSING if is_missing(value) else to_text(value), None)
    unique_count: int = len(distinct)

    importance: float = 0.0
    if column_type == "number" and maximum != minimum:
        importance = unique_count / len(values)

    categories: tuple[str, ...] | None = None
    if unique_count < CATEGORY_LIMIT:
        labels = [key for key in distinct if isinstance(key, str)]
        categories = tuple(labels[:CATEGORY_SAMPLE_SIZE])

    return ColumnMetadata(
        name=name,
        type=column_type,
        missing_count=len(values) - len(present),
        unique_count=unique_count,
        min=minimum,
        max=maximum,
        mean=mean,
        is_active=is_active,
        importance_score=importance,
        categories=categories,
    )


def infer_type(present: Sequence[Scalar]) -> ColumnType:
    """Strict all-or-nothing type rule over non-missing values."""
    if not present:
        return "unknown"
    if all(is_number(v) for v in present):
        return "number"
    if all(parse_date(v) is not None for v in present):
        return "date"
    return "string"


def completeness(
    columns: Iterable[ColumnMetadata], row_count: int
) -> float:
    """Share of present cells over active columns; 1.0 when there is nothing."""
    active: list[ColumnMetadata] = [c for c in columns if c.is_active]
    cells: int = row_count * len(active)
    if cells == 0:
        return 1.0
    missing: int = sum(c.missing_count for c in active)
    return 1.0 - missing / cells
