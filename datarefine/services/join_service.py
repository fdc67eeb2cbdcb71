# Standard library
import logging

# Local imports
from datarefine.core.models import DataRow
from datarefine.core.utils import is_missing, to_text, unique_name
from datarefine.core.validation import validate_join_key
from datarefine.datasets.dataset import Dataset
from datarefine.types import Scalar

logger = logging.getLogger(__name__)

# -----------------------------
# Join / merge
# -----------------------------


def join_datasets(
    primary: Dataset,
    secondary: Dataset,
    primary_key: str,
    secondary_key: str,
) -> Dataset:
    """Left-outer hash join of two datasets.

    Secondary rows are indexed by their stringified key; when several share a
    key the last one wins. Secondary fields that collide with a primary
    column are prefixed with the secondary dataset's name, plus a numbered
    suffix if the prefixed name is taken too. Unmatched primary rows pass
    through untouched, and every output row keeps its primary row id.

    Args:
        primary: Left side; every row is kept
        secondary: Right side, looked up by key
        primary_key: Key column of the primary dataset
        secondary_key: Key column of the secondary dataset

    Returns:
        Merged dataset derived from the primary

    Raises:
        JoinKeyError: If either key column is missing
    """
    validate_join_key(primary, primary_key)
    validate_join_key(secondary, secondary_key)

    index: dict[str, DataRow] = {}
    duplicates: int = 0
    for row in secondary.rows:
        key: Scalar = row.get(secondary_key)
        if is_missing(key):
            continue
        text_key: str = to_text(key)
        if text_key in index:
            duplicates += 1
        index[text_key] = row
    if duplicates:
        logger.debug(
            "Secondary dataset %s has %d duplicate key(s) on %s; last row wins",
            secondary.name,
            duplicates,
            secondary_key,
        )

    primary_columns: set[str] = set(primary.column_names)
    taken: set[str] = set(primary_columns)
    field_names: dict[str, str] = {}

    def output_name(name: str) -> str:
        # Resolved once per field; never reuses a primary or assigned name.
        if name not in field_names:
            base: str = f"{secondary.name}_{name}" if name in primary_columns else name
            field_names[name] = unique_name(base, taken)
            taken.add(field_names[name])
        return field_names[name]

    for name in secondary.column_names:
        if name != secondary_key:
            output_name(name)

    matched: int = 0
    rows: list[DataRow] = []
    for row in primary.rows:
        key = row.get(primary_key)
        match: DataRow | None = None if is_missing(key) else index.get(to_text(key))
        if match is None:
            rows.append(row)
            continue
        matched += 1
        merged: dict[str, Scalar] = dict(row.values)
        for name, value in match.values.items():
            if name == secondary_key:
                continue
            merged[output_name(name)] = value
        rows.append(row.with_values(merged))

    logger.info(
        "Joined %s with %s on %s=%s: %d of %d rows matched",
        primary.name,
        secondary.name,
        primary_key,
        secondary_key,
        matched,
        primary.row_count,
    )
    return primary.derive(rows, name=f"{primary.name} + {secondary.name}")
