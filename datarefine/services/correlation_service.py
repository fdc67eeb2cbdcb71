# Standard library
import logging
import math
from collections.abc import Sequence

# Local imports
from datarefine.core.models import CorrelationResult
from datarefine.core.utils import to_number_or_zero
from datarefine.datasets.dataset import Dataset

logger = logging.getLogger(__name__)

VARIANCE_EPSILON = 1e-12

# -----------------------------
# Correlation
# -----------------------------


def pearson(xs: Sequence[float], ys: Sequence[float]) -> float:
    """Pearson correlation coefficient of two equally long series.

    Computed from sums, sums of squares and the cross product. Returns 0.0
    when either series has no variance, taken relative to its sum of
    squares. The result is clamped to [-1, 1].
    """
    n: int = len(xs)
    if n == 0:
        return 0.0

    sum_x = sum_y = sum_xx = sum_yy = sum_xy = 0.0
    for x, y in zip(xs, ys):
        sum_x += x
        sum_y += y
        sum_xx += x * x
        sum_yy += y * y
        sum_xy += x * y

    numerator: float = sum_xy - sum_x * sum_y / n
    var_x: float = sum_xx - sum_x * sum_x / n
    var_y: float = sum_yy - sum_y * sum_y / n
    # Rounding leaves constant series with a tiny non-zero variance.
    if var_x <= VARIANCE_EPSILON * sum_xx or var_y <= VARIANCE_EPSILON * sum_yy:
        return 0.0
    r: float = numerator / math.sqrt(var_x * var_y)
    return max(-1.0, min(1.0, r))


def correlation_matrix(dataset: Dataset) -> CorrelationResult:
    """Pairwise Pearson matrix over the active numeric columns.

    Non-numeric or missing cells count as 0. The diagonal is exactly 1.0 and
    each off-diagonal pair is computed once and mirrored.

    Args:
        dataset: Dataset to analyze

    Returns:
        Column names and the matching square matrix; both empty with fewer
        than two numeric columns
    """
    columns: list[str] = dataset.numeric_columns
    if len(columns) < 2:
        return {"columns": [], "matrix": []}

    series: list[list[float]] = [
        [to_number_or_zero(row.get(column)) for row in dataset.rows]
        for column in columns
    ]
    size: int = len(columns)
    matrix: list[list[float]] = [[0.0] * size for _ in range(size)]
    for i in range(size):
        matrix[i][i] = 1.0
        for j in range(i + 1, size):
            r: float = pearson(series[i], series[j])
            matrix[i][j] = r
            matrix[j][i] = r

    logger.debug("Correlated %d columns of %s", size, dataset.name)
    return {"columns": columns, "matrix": matrix}
