# Standard library
import logging
from collections.abc import Sequence
from dataclasses import replace

# Local imports
from datarefine.core.models import DataRow, DatasetStats
from datarefine.core.utils import dedupe_names, header_name
from datarefine.datasets.dataset import Dataset
from datarefine.types import Scalar

# -----------------------------
# Constants
# -----------------------------

ATTRIBUTE_COLUMN = "Attribute"
ROW_COLUMN_PREFIX = "Row_"

logger = logging.getLogger(__name__)

# -----------------------------
# Transpose
# -----------------------------


def transpose(dataset: Dataset) -> Dataset:
    """Swap rows and columns.

    Every original column becomes a row whose id is the column position. The
    row's first field, ``Attribute``, holds the column name, followed by one
    ``Row_<i>`` field per original row. The direct output of a transpose is
    turned back instead: its Attribute values become column names and every
    other column becomes a row again. Any other table is transposed forward,
    even one whose first column happens to be named ``Attribute``.

    Args:
        dataset: Source dataset

    Returns:
        Transposed dataset with total_cells recomputed
    """
    if dataset.transposed:
        return _restore(dataset)

    names: list[str] = dataset.column_names
    row_columns: list[str] = [f"{ROW_COLUMN_PREFIX}{i}" for i in range(dataset.row_count)]
    rows: list[DataRow] = []
    for position, name in enumerate(names):
        values: dict[str, Scalar] = {ATTRIBUTE_COLUMN: name}
        for column, row in zip(row_columns, dataset.rows):
            values[column] = row.get(name)
        rows.append(DataRow(id=position, values=values))

    logger.debug("Transposed %s into %d rows", dataset.name, len(rows))
    return dataset.derive(
        rows, column_names=[ATTRIBUTE_COLUMN, *row_columns], transposed=True
    )


def _restore(dataset: Dataset) -> Dataset:
    names: list[str] = dedupe_names(
        header_name(row.get(ATTRIBUTE_COLUMN), i) for i, row in enumerate(dataset.rows)
    )
    rows: list[DataRow] = []
    for position, column in enumerate(dataset.column_names[1:]):
        values: dict[str, Scalar] = {
            name: row.get(column) for name, row in zip(names, dataset.rows)
        }
        rows.append(DataRow(id=position, values=values))
    return dataset.derive(rows, column_names=names)


# -----------------------------
# Crop
# -----------------------------


def crop(
    dataset: Dataset,
    start_row: int,
    end_row: int,
    keep_columns: Sequence[str] | None = None,
) -> Dataset:
    """Keep rows start_row..end_row (inclusive), optionally only some columns.

    Bounds outside the table leave the dataset unchanged; start_row past
    end_row keeps no rows. Row ids are renumbered from 0 and the rows cut
    away are added to dropped_rows.

    Args:
        dataset: Source dataset
        start_row: First row position to keep
        end_row: Last row position to keep
        keep_columns: Columns to keep; unknown names are ignored

    Returns:
        Cropped dataset
    """
    if start_row < 0 or end_row >= dataset.row_count or start_row >= dataset.row_count:
        return dataset

    selected: tuple[DataRow, ...] = dataset.rows[start_row : end_row + 1]
    names: list[str] = dataset.column_names
    if keep_columns:
        wanted: set[str] = set(keep_columns)
        names = [name for name in names if name in wanted]

    rows: list[DataRow] = [
        DataRow(id=i, values={name: row.get(name) for name in names})
        for i, row in enumerate(selected)
    ]
    dropped: int = dataset.row_count - len(rows)
    stats: DatasetStats = replace(
        dataset.stats, dropped_rows=dataset.stats.dropped_rows + dropped
    )
    return dataset.derive(rows, stats=stats, column_names=names)


# -----------------------------
# Header promotion
# -----------------------------


def promote_row_to_header(dataset: Dataset, row_index: int) -> Dataset:
    """Use one row's values as column names.

    That row and every row above it are dropped. The remaining rows are
    mapped onto the new names by position, following the dataset's column
    order.

    Args:
        dataset: Source dataset
        row_index: Position of the row to promote

    Returns:
        Re-headed dataset, or the input unchanged if row_index is out of range
    """
    if row_index < 0 or row_index >= dataset.row_count:
        return dataset

    old_names: list[str] = dataset.column_names
    header_row: DataRow = dataset.rows[row_index]
    names: list[str] = dedupe_names(
        header_name(header_row.get(name), i) for i, name in enumerate(old_names)
    )

    rows: list[DataRow] = [
        DataRow(
            id=i,
            values={new: row.get(old) for new, old in zip(names, old_names)},
        )
        for i, row in enumerate(dataset.rows[row_index + 1 :])
    ]
    stats: DatasetStats = replace(
        dataset.stats, dropped_rows=dataset.stats.dropped_rows + row_index + 1
    )
    logger.debug("Promoted row %d of %s to header", row_index, dataset.name)
    return dataset.derive(rows, stats=stats, column_names=names)
