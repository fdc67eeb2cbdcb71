"""Tests for covariance, Jacobi eigen-decomposition and PCA projection."""

from __future__ import annotations

import logging

import pytest

from datarefine.services.reduction_service import (
    covariance_matrix,
    jacobi_eigen,
    reduce_to_two_dimensions,
)
from tests.factories import make_rows


def test_covariance_divides_by_n_minus_one() -> None:
    centered = [[-1.0, -2.0], [0.0, 0.0], [1.0, 2.0]]

    assert covariance_matrix(centered) == [[1.0, 2.0], [2.0, 4.0]]


def test_covariance_single_observation() -> None:
    assert covariance_matrix([[0.0, 0.0]]) == [[0.0, 0.0], [0.0, 0.0]]


def test_jacobi_diagonalizes_symmetric_matrix() -> None:
    matrix = [[4.0, 1.0, 2.0], [1.0, 3.0, 0.5], [2.0, 0.5, 5.0]]

    values, vectors = jacobi_eigen(matrix)

    for value, vector in zip(values, vectors):
        product = [sum(matrix[i][j] * vector[j] for j in range(3)) for i in range(3)]
        assert product == pytest.approx([value * x for x in vector], abs=1e-6)
        assert sum(x * x for x in vector) == pytest.approx(1.0)
    assert sum(values) == pytest.approx(12.0)


def test_jacobi_known_two_by_two() -> None:
    values, _ = jacobi_eigen([[2.0, 1.0], [1.0, 2.0]])

    assert sorted(values) == pytest.approx([1.0, 3.0])


def test_jacobi_logs_when_rotation_cap_is_hit(caplog: pytest.LogCaptureFixture) -> None:
    matrix = [[4.0, 1.0, 2.0], [1.0, 3.0, 0.5], [2.0, 0.5, 5.0]]

    with caplog.at_level(logging.INFO, logger="datarefine"):
        jacobi_eigen(matrix, max_iterations=1)

    assert "without reaching tolerance" in caplog.text


def test_collinear_columns_project_onto_a_line() -> None:
    """y = 2x leaves all variance on the first axis."""
    rows = make_rows([{"x": x, "y": 2 * x} for x in range(1, 7)])

    result = reduce_to_two_dimensions(rows, ["x", "y"])

    points = result["projected_points"]
    assert len(points) == 6
    assert all(p["y"] == pytest.approx(0.0, abs=1e-9) for p in points)
    assert sum(p["x"] for p in points) == pytest.approx(0.0, abs=1e-9)
    assert result["eigenvalues"][1] == pytest.approx(0.0, abs=1e-9)
    assert result["eigenvalues"][0] > 0
    assert points[0]["id"] == 0
    assert points[0]["values"] == {"x": 1, "y": 2}


def test_loadings_sorted_by_absolute_weight() -> None:
    rows = make_rows(
        [
            {"a": 1, "b": 10, "c": 0.1},
            {"a": 2, "b": 30, "c": 0.0},
            {"a": 3, "b": 20, "c": 0.3},
            {"a": 4, "b": 50, "c": 0.2},
        ]
    )

    loadings = reduce_to_two_dimensions(rows, ["a", "b", "c"])["loadings"]

    for component in (loadings["pc1"], loadings["pc2"]):
        weights = [abs(item["value"]) for item in component]
        assert weights == sorted(weights, reverse=True)
        assert {item["name"] for item in component} == {"a", "b", "c"}
    assert loadings["pc1"][0]["name"] == "b"


def test_large_inputs_are_strided() -> None:
    rows = make_rows([{"a": i, "b": i % 7} for i in range(25)])

    result = reduce_to_two_dimensions(rows, ["a", "b"], max_points=10)

    assert [p["id"] for p in result["projected_points"]] == list(range(0, 25, 3))


def test_text_cells_count_as_zero() -> None:
    rows = make_rows([{"a": 1, "b": "x"}, {"a": 2, "b": 4}, {"a": 3, "b": None}])

    result = reduce_to_two_dimensions(rows, ["a", "b"])

    assert len(result["projected_points"]) == 3


@pytest.mark.parametrize(
    ("records", "columns"),
    [([], ["a", "b"]), ([{"a": 1, "b": 2}], ["a"])],
)
def test_degenerate_inputs_give_empty_result(
    records: list[dict[str, int]], columns: list[str]
) -> None:
    result = reduce_to_two_dimensions(make_rows(records), columns)

    assert result == {
        "projected_points": [],
        "loadings": {"pc1": [], "pc2": []},
        "eigenvalues": [],
    }
