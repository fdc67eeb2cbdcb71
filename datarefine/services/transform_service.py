# Standard library
import logging
import math
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import replace

# Local imports
from datarefine.core.formula import CompiledFormula, compile_formula
from datarefine.core.models import (
    ColumnMetadata,
    DataRow,
    HierarchyDefinition,
    ProcessingSuggestion,
    TransformationConfig,
)
from datarefine.core.utils import (
    generate_id,
    is_missing,
    to_number,
    to_number_or_zero,
    to_text,
    unique_name,
    utc_timestamp,
)
from datarefine.core.validation import (
    ValidationError,
    validate_column_exists,
    validate_dataset_name,
    validate_new_column_name,
)
from datarefine.datasets.dataset import Dataset
from datarefine.types import ImputeMethod, Scalar, TargetType

# -----------------------------
# Constants
# -----------------------------

EMAIL_PATTERN = r"([a-zA-Z0-9._-]+@[a-zA-Z0-9._-]+\.[a-zA-Z0-9_-]+)"
SUGGESTION_SAMPLE_SIZE = 5
DROP_MISSING_RATIO = 0.8

logger = logging.getLogger(__name__)

CellRule = Callable[[Scalar], Scalar]

# -----------------------------
# Transformation pipeline
# -----------------------------


def apply_transformation(dataset: Dataset, config: TransformationConfig) -> Dataset:
    """Add one derived column to the dataset.

    Existing rows and columns are never removed or overwritten.

    Args:
        dataset: Source dataset
        config: Operation kind, target column and parameters

    Returns:
        New dataset with exactly one extra column

    Raises:
        ValidationError: If the target column is unknown or params are invalid
    """
    validate_column_exists(dataset, config.target_column)
    base_name, rule = _build_rule(config)
    column: str = unique_name(base_name, dataset.column_names)

    target: str = config.target_column
    rows: list[DataRow] = [
        row.with_values({**row.values, column: rule(row.get(target))})
        for row in dataset.rows
    ]
    logger.debug("Applied %r as column %s", config, column)
    return dataset.derive(rows)


def _build_rule(config: TransformationConfig) -> tuple[str, CellRule]:
    """Resolve the new column name and per-cell rule of an operation."""
    col: str = config.target_column
    params: Mapping[str, object] = config.params

    if config.kind == "split_count":
        delimiter: str = _delimiter(params)
        return f"{col}_Count", lambda v: len(to_text(v).split(delimiter))

    if config.kind == "split_extract":
        delimiter = _delimiter(params)
        index: int = _int_param(params, "index", 0)

        def extract_part(value: Scalar) -> Scalar:
            parts: list[str] = to_text(value).split(delimiter)
            return parts[index] if 0 <= index < len(parts) else ""

        return f"{col}_Part{index}", extract_part

    if config.kind == "extract_regex":
        pattern: re.Pattern[str] = _regex(params)
        label: str = str(params.get("name") or "Match")

        def extract_match(value: Scalar) -> Scalar:
            match = pattern.search(to_text(value))
            if match is None:
                return ""
            return match.group(1) if pattern.groups else match.group(0)

        return f"{col}_{label}", extract_match

    if config.kind == "to_uppercase":
        return f"{col}_Upper", lambda v: to_text(v).upper()

    if config.kind == "to_lowercase":
        return f"{col}_Lower", lambda v: to_text(v).lower()

    if config.kind == "math_add":
        offset: float = _float_param(params, "value", 0.0)
        return f"{col}_Plus", lambda v: to_number_or_zero(v) + offset

    if config.kind == "math_log":

        def natural_log(value: Scalar) -> Scalar:
            number: float | None = to_number(value)
            return math.log(number) if number is not None and number > 0 else 0.0

        return f"Log_{col}", natural_log

    msg = f"Unknown transformation: {config.kind}"
    raise ValidationError(msg)


def _delimiter(params: Mapping[str, object]) -> str:
    delimiter = params.get("delimiter")
    if not isinstance(delimiter, str) or not delimiter:
        msg = "A non-empty 'delimiter' parameter is required"
        raise ValidationError(msg)
    return delimiter


def _regex(params: Mapping[str, object]) -> re.Pattern[str]:
    raw = params.get("regex")
    if not isinstance(raw, str) or not raw:
        msg = "A non-empty 'regex' parameter is required"
        raise ValidationError(msg)
    try:
        return re.compile(raw)
    except re.error as e:
        msg = f"Invalid regex {raw!r}: {e}"
        raise ValidationError(msg) from e


def _int_param(params: Mapping[str, object], key: str, default: int) -> int:
    raw = params.get(key, default)
    number: float | None = to_number(raw)  # type: ignore[arg-type]
    if number is None or not number.is_integer():
        msg = f"Parameter '{key}' must be an integer, got {raw!r}"
        raise ValidationError(msg)
    return int(number)


def _float_param(params: Mapping[str, object], key: str, default: float) -> float:
    raw = params.get(key, default)
    number: float | None = to_number(raw)  # type: ignore[arg-type]
    if number is None:
        msg = f"Parameter '{key}' must be a number, got {raw!r}"
        raise ValidationError(msg)
    return number


# -----------------------------
# Calculated columns
# -----------------------------


def create_calculated_column(dataset: Dataset, name: str, formula: str) -> Dataset:
    """Add a column computed from a formula over other columns.

    The formula is compiled before any row is touched. Rows whose evaluation
    fails, or yields a non-finite number, get 0.

    Raises:
        ValidationError: If the name is empty or taken
        FormulaError: If the formula does not compile
    """
    validate_new_column_name(name, dataset.column_names)
    compiled: CompiledFormula = compile_formula(formula, dataset.column_names)

    failures: int = 0
    rows: list[DataRow] = []
    for row in dataset.rows:
        args: list[float] = [to_number_or_zero(row.get(c)) for c in compiled.columns]
        try:
            result: float = compiled(*args)
        except (ArithmeticError, ValueError, TypeError):
            result = 0.0
            failures += 1
        if not math.isfinite(result):
            result = 0.0
        rows.append(row.with_values({**row.values, name: result}))

    if failures:
        logger.info("Formula %r defaulted %d row(s) to 0", formula, failures)
    return dataset.derive(rows)


# -----------------------------
# Cleaning operations
# -----------------------------


def convert_column_type(dataset: Dataset, column: str, target: TargetType) -> Dataset:
    """Rewrite a column's cells as numbers or as text."""
    validate_column_exists(dataset, column)

    def convert(value: Scalar) -> Scalar:
        if target == "number":
            if isinstance(value, str):
                return to_number(value.replace(",", ""))
            return to_number(value)
        return to_text(value)

    rows: list[DataRow] = [
        row.with_values({**row.values, column: convert(row.get(column))})
        for row in dataset.rows
    ]
    return dataset.derive(rows)


def impute_column(dataset: Dataset, column: str, method: ImputeMethod) -> Dataset:
    """Fill missing cells of a numeric column with its mean or with zero.

    Non-numeric columns are returned unchanged.
    """
    validate_column_exists(dataset, column)
    meta: ColumnMetadata = dataset.column(column)
    if not meta.is_numeric or meta.missing_count == 0:
        return dataset

    fill: float = meta.mean if method == "mean" and meta.mean is not None else 0.0
    filled: int = 0
    rows: list[DataRow] = []
    for row in dataset.rows:
        if is_missing(row.get(column)):
            rows.append(row.with_values({**row.values, column: fill}))
            filled += 1
        else:
            rows.append(row)

    stats = replace(dataset.stats, imputed_cells=dataset.stats.imputed_cells + filled)
    return dataset.derive(rows, stats=stats)


def set_column_active(dataset: Dataset, column: str, active: bool) -> Dataset:
    """Include or exclude a column from analysis without removing it."""
    validate_column_exists(dataset, column)
    columns: list[ColumnMetadata] = [
        replace(c, is_active=active) if c.name == column else c
        for c in dataset.columns
    ]
    return dataset.derive(dataset.rows, columns=columns)


def update_cell(dataset: Dataset, row_id: int, column: str, value: Scalar) -> Dataset:
    """Replace a single cell. Unknown row ids leave the dataset unchanged."""
    validate_column_exists(dataset, column)
    if not any(row.id == row_id for row in dataset.rows):
        return dataset
    rows: list[DataRow] = [
        row.with_values({**row.values, column: value}) if row.id == row_id else row
        for row in dataset.rows
    ]
    return dataset.derive(rows)


def filter_rows(dataset: Dataset, query: str) -> tuple[DataRow, ...]:
    """Rows with any cell containing the query, case-insensitively."""
    if not query:
        return dataset.rows
    needle: str = query.lower()
    return tuple(
        row
        for row in dataset.rows
        if any(needle in to_text(v).lower() for v in row.values.values())
    )


def set_hierarchy(dataset: Dataset, name: str, levels: Sequence[str]) -> Dataset:
    """Attach a grouping hierarchy made of existing columns."""
    if not levels:
        msg = "A hierarchy needs at least one level"
        raise ValidationError(msg)
    for level in levels:
        validate_column_exists(dataset, level)
    hierarchy = HierarchyDefinition(name=name, levels=tuple(levels))
    return replace(dataset, id=generate_id(), parent_id=dataset.id, hierarchy=hierarchy)


def snapshot(dataset: Dataset, name: str | None = None) -> Dataset:
    """Copy of the dataset with a new identity; rows are shared, not copied."""
    if name is not None:
        validate_dataset_name(name)
    return replace(
        dataset,
        id=generate_id(),
        parent_id=dataset.id,
        name=name or dataset.name,
        created_at=utc_timestamp(),
    )


# -----------------------------
# Suggestion heuristics
# -----------------------------


def suggest_transformations(
    column: ColumnMetadata, samples: Sequence[Scalar]
) -> list[TransformationConfig]:
    """Propose split/extract operations from a few text samples."""
    if column.type != "string":
        return []
    texts: list[str] = [s for s in samples if isinstance(s, str)][:SUGGESTION_SAMPLE_SIZE]

    suggestions: list[TransformationConfig] = []
    if any("," in s for s in texts):
        suggestions.append(
            TransformationConfig("split_count", column.name, {"delimiter": ","})
        )
        suggestions.append(
            TransformationConfig(
                "split_extract", column.name, {"delimiter": ",", "index": 0}
            )
        )
    if any("|" in s for s in texts):
        suggestions.append(
            TransformationConfig("split_count", column.name, {"delimiter": "|"})
        )
    if any("@" in s for s in texts):
        suggestions.append(
            TransformationConfig(
                "extract_regex",
                column.name,
                {"regex": EMAIL_PATTERN, "name": "Email"},
            )
        )
    return suggestions


def suggest_cleaning(dataset: Dataset) -> list[ProcessingSuggestion]:
    """Heuristic cleaning hints over active columns."""
    if dataset.row_count == 0:
        return []

    suggestions: list[ProcessingSuggestion] = []
    for col in dataset.active_columns:
        missing_ratio: float = col.missing_count / dataset.row_count
        if missing_ratio > DROP_MISSING_RATIO:
            suggestions.append(
                {
                    "column": col.name,
                    "suggestion": f"Drop {col.name}",
                    "reason": f"{missing_ratio:.0%} missing. Low information value.",
                    "action_type": "drop",
                }
            )
        elif missing_ratio > 0 and col.is_numeric:
            suggestions.append(
                {
                    "column": col.name,
                    "suggestion": f"Impute {col.name}",
                    "reason": f"{col.missing_count} missing values. Fill with mean?",
                    "action_type": "impute",
                }
            )
        if col.unique_count == 1:
            suggestions.append(
                {
                    "column": col.name,
                    "suggestion": f"Drop {col.name}",
                    "reason": "Only one distinct value. Adds no variance.",
                    "action_type": "drop",
                }
            )
    return suggestions
