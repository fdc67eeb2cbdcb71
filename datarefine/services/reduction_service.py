"""
Principal component analysis for two-dimensional scatter views.

The covariance matrix is diagonalized with the classical Jacobi method:
each step zeroes the largest off-diagonal entry with a plane rotation and
folds that rotation into the eigenvector matrix. The first two components
are used to project the mean-centered rows.
"""

# Standard library
import logging
import math
from collections.abc import Sequence

# Local imports
from datarefine.core.config import (
    DEFAULT_JACOBI_MAX_ITERATIONS,
    DEFAULT_JACOBI_TOLERANCE,
    DEFAULT_PCA_MAX_POINTS,
)
from datarefine.core.models import DataRow, Loading, ProjectedPoint, ReductionResult
from datarefine.core.utils import to_number_or_zero

logger = logging.getLogger(__name__)

Matrix = list[list[float]]

# -----------------------------
# Linear algebra helpers
# -----------------------------


def covariance_matrix(data: Sequence[Sequence[float]]) -> Matrix:
    """Sample covariance of mean-centered data (rows are observations).

    Divides by n - 1, or by 1 for a single observation.
    """
    n: int = len(data)
    features: int = len(data[0]) if n else 0
    divisor: int = n - 1 if n > 1 else 1

    cov: Matrix = [[0.0] * features for _ in range(features)]
    for i in range(features):
        for j in range(i, features):
            total = 0.0
            for row in data:
                total += row[i] * row[j]
            value: float = total / divisor
            cov[i][j] = value
            cov[j][i] = value
    return cov


def jacobi_eigen(
    matrix: Sequence[Sequence[float]],
    max_iterations: int = DEFAULT_JACOBI_MAX_ITERATIONS,
    tolerance: float = DEFAULT_JACOBI_TOLERANCE,
) -> tuple[list[float], Matrix]:
    """Eigen-decomposition of a real symmetric matrix.

    Args:
        matrix: Square symmetric matrix; not modified
        max_iterations: Maximum number of rotations
        tolerance: Stop once the largest off-diagonal magnitude is below this

    Returns:
        (eigenvalues, eigenvectors), where eigenvectors[k] belongs to
        eigenvalues[k]. Order follows the diagonal, not magnitude.
    """
    n: int = len(matrix)
    d: Matrix = [list(map(float, row)) for row in matrix]
    v: Matrix = [[1.0 if i == j else 0.0 for j in range(n)] for i in range(n)]

    rotations: int = 0
    converged: bool = n < 2
    while not converged and rotations < max_iterations:
        p, q, largest = 0, 1, 0.0
        for i in range(n):
            for j in range(i + 1, n):
                if abs(d[i][j]) > largest:
                    p, q, largest = i, j, abs(d[i][j])
        if largest < tolerance:
            converged = True
            break

        theta: float = 0.5 * math.atan2(2 * d[p][q], d[q][q] - d[p][p])
        c: float = math.cos(theta)
        s: float = math.sin(theta)

        dpp, dqq, dpq = d[p][p], d[q][q], d[p][q]
        d[p][p] = c * c * dpp - 2 * s * c * dpq + s * s * dqq
        d[q][q] = s * s * dpp + 2 * s * c * dpq + c * c * dqq
        d[p][q] = d[q][p] = 0.0
        for i in range(n):
            if i in (p, q):
                continue
            dip, diq = d[i][p], d[i][q]
            d[i][p] = d[p][i] = c * dip - s * diq
            d[i][q] = d[q][i] = s * dip + c * diq

        for i in range(n):
            vip, viq = v[i][p], v[i][q]
            v[i][p] = c * vip - s * viq
            v[i][q] = s * vip + c * viq
        rotations += 1

    if converged:
        logger.debug("Jacobi converged after %d rotation(s)", rotations)
    else:
        logger.info(
            "Jacobi stopped after %d rotations without reaching tolerance %g",
            rotations,
            tolerance,
        )

    eigenvalues: list[float] = [d[i][i] for i in range(n)]
    # Columns of V are the eigenvectors.
    eigenvectors: Matrix = [[v[row][k] for row in range(n)] for k in range(n)]
    return eigenvalues, eigenvectors


# -----------------------------
# Projection
# -----------------------------


def reduce_to_two_dimensions(
    rows: Sequence[DataRow],
    numeric_columns: Sequence[str],
    *,
    max_points: int | None = None,
    max_iterations: int | None = None,
    tolerance: float | None = None,
) -> ReductionResult:
    """Project rows onto their first two principal components.

    Large inputs are thinned by keeping every step-th row, where
    step = ceil(n / max_points). Missing or non-numeric cells count as 0.

    Args:
        rows: Rows to project
        numeric_columns: Columns forming the feature space
        max_points: Largest number of rows used (default 2000)
        max_iterations: Jacobi rotation cap (default 100)
        tolerance: Jacobi convergence threshold (default 1e-9)

    Returns:
        Projected points, per-component loadings sorted by absolute weight,
        and the two leading eigenvalues. Empty with fewer than two
        columns or no rows.
    """
    columns: list[str] = list(numeric_columns)
    if not rows or len(columns) < 2:
        return _empty_result()

    cap: int = max_points or DEFAULT_PCA_MAX_POINTS
    sampled: Sequence[DataRow] = rows
    if len(rows) > cap:
        step: int = math.ceil(len(rows) / cap)
        sampled = rows[::step]
        logger.debug("Sampled %d of %d rows (step %d)", len(sampled), len(rows), step)

    data: Matrix = [[to_number_or_zero(row.get(c)) for c in columns] for row in sampled]
    means: list[float] = [
        sum(record[i] for record in data) / len(data) for i in range(len(columns))
    ]
    centered: Matrix = [[x - m for x, m in zip(record, means)] for record in data]

    eigenvalues, eigenvectors = jacobi_eigen(
        covariance_matrix(centered),
        max_iterations or DEFAULT_JACOBI_MAX_ITERATIONS,
        tolerance or DEFAULT_JACOBI_TOLERANCE,
    )
    order: list[int] = sorted(
        range(len(eigenvalues)), key=lambda k: eigenvalues[k], reverse=True
    )
    pc1: list[float] = eigenvectors[order[0]]
    pc2: list[float] = eigenvectors[order[1]]

    points: list[ProjectedPoint] = [
        {
            "id": row.id,
            "x": _dot(record, pc1),
            "y": _dot(record, pc2),
            "values": dict(row.values),
        }
        for row, record in zip(sampled, centered)
    ]
    return {
        "projected_points": points,
        "loadings": {
            "pc1": _loadings(columns, pc1),
            "pc2": _loadings(columns, pc2),
        },
        "eigenvalues": [eigenvalues[k] for k in order[:2]],
    }


def _dot(a: Sequence[float], b: Sequence[float]) -> float:
    total = 0.0
    for x, y in zip(a, b):
        total += x * y
    return total


def _loadings(columns: Sequence[str], vector: Sequence[float]) -> list[Loading]:
    loadings: list[Loading] = [
        {"name": name, "value": value} for name, value in zip(columns, vector)
    ]
    loadings.sort(key=lambda item: abs(item["value"]), reverse=True)
    return loadings


def _empty_result() -> ReductionResult:
    return {
        "projected_points": [],
        "loadings": {"pc1": [], "pc2": []},
        "eigenvalues": [],
    }
