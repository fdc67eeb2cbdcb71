"""Tests for the Pearson correlation engine."""

from __future__ import annotations

import pytest

from datarefine.services.correlation_service import correlation_matrix, pearson
from datarefine.services.transform_service import set_column_active
from tests.factories import make_dataset


def test_pearson_perfect_and_inverse() -> None:
    assert pearson([1, 2, 3], [2, 4, 6]) == pytest.approx(1.0)
    assert pearson([1, 2, 3], [3, 2, 1]) == pytest.approx(-1.0)


def test_pearson_zero_variance_is_zero() -> None:
    assert pearson([5, 5, 5], [1, 2, 3]) == 0.0
    assert pearson([], []) == 0.0


def test_pearson_constant_float_series_is_zero() -> None:
    assert pearson([0.1] * 7, [0.2] * 7) == 0.0
    assert pearson([0.07] * 3, [0.14] * 3) == 0.0
    assert pearson([0.1] * 7, [0.3 * i for i in range(7)]) == 0.0


def test_pearson_stays_within_unit_interval() -> None:
    xs = [0.1 * i for i in range(50)]
    r = pearson(xs, [3 * x + 0.7 for x in xs])
    assert -1.0 <= r <= 1.0
    assert r == pytest.approx(1.0)


def test_matrix_is_symmetric_with_unit_diagonal() -> None:
    ds = make_dataset(
        [
            {"x": 1, "y": 2.0, "z": 9, "label": "a"},
            {"x": 2, "y": 3.5, "z": 1, "label": "b"},
            {"x": 3, "y": 3.0, "z": 4, "label": "c"},
            {"x": 4, "y": 8.0, "z": 0, "label": "d"},
        ]
    )

    result = correlation_matrix(ds)

    assert result["columns"] == ["x", "y", "z"]
    matrix = result["matrix"]
    for i in range(3):
        assert matrix[i][i] == 1.0
        for j in range(3):
            assert matrix[i][j] == matrix[j][i]
            assert -1.0 <= matrix[i][j] <= 1.0 + 1e-12


def test_constant_column_correlates_zero() -> None:
    ds = make_dataset([{"k": 3, "v": 1}, {"k": 3, "v": 2}, {"k": 3, "v": 7}])

    result = correlation_matrix(ds)

    assert result["matrix"] == [[1.0, 0.0], [0.0, 1.0]]


def test_missing_cells_count_as_zero() -> None:
    ds = make_dataset([{"a": 1, "b": 1}, {"a": None, "b": 0}, {"a": 3, "b": 3}])

    assert correlation_matrix(ds)["matrix"][0][1] == pytest.approx(1.0)


def test_fewer_than_two_numeric_columns_is_empty() -> None:
    ds = make_dataset([{"a": 1, "b": 2}, {"a": 2, "b": 5}])

    assert correlation_matrix(set_column_active(ds, "b", False)) == {
        "columns": [],
        "matrix": [],
    }
