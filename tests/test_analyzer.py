"""Tests for column analysis and dataset metadata."""

from __future__ import annotations

import math
from dataclasses import replace

import pytest

from datarefine.core.analyzer import analyze_column, analyze_columns, infer_type
from datarefine.core.models import DataRow
from tests.factories import make_dataset, make_rows


def test_numeric_column_with_missing_value() -> None:
    """[1, 2, None, 4] counts the missing cell as one distinct value."""
    meta = analyze_column("n", [1, 2, None, 4])

    assert meta.type == "number"
    assert meta.missing_count == 1
    assert meta.unique_count == 4
    assert meta.mean == pytest.approx(7 / 3)
    assert meta.min == 1
    assert meta.max == 4
    assert meta.importance_score == pytest.approx(1.0)


def test_type_inference_is_all_or_nothing() -> None:
    assert infer_type([1, 2.5]) == "number"
    assert infer_type(["2024-01-05", "2024-02-01T10:00:00"]) == "date"
    assert infer_type([1, "x"]) == "string"
    assert infer_type([]) == "unknown"
    assert infer_type([True, False]) == "string"


def test_free_form_dates_are_recognised() -> None:
    assert infer_type(["5 March 2024", "Jan 7, 2023", "03/15/2024"]) == "date"
    assert infer_type(["2024-01-05T10:00:00Z"]) == "date"


def test_labels_are_not_mistaken_for_dates() -> None:
    assert infer_type(["A1", "B2"]) == "string"
    assert infer_type(["North", "May"]) == "string"
    assert infer_type(["2024-13-45"]) == "string"


def test_integers_beyond_float_range_are_not_numbers() -> None:
    meta = analyze_column("big", [10**400, 1])

    assert meta.type == "string"
    assert meta.mean is None


def test_all_missing_column_is_unknown_without_stats() -> None:
    meta = analyze_column("empty", [None, "", float("nan")])

    assert meta.type == "unknown"
    assert meta.missing_count == 3
    assert meta.mean is None
    assert meta.min is None


def test_categories_sampled_for_low_cardinality() -> None:
    meta = analyze_column("city", ["NY", "LA", "NY", None])

    assert meta.categories == ("NY", "LA")

    wide = analyze_column("id", [f"v{i}" for i in range(25)])
    assert wide.categories is None


def test_constant_numeric_column_has_no_importance() -> None:
    meta = analyze_column("k", [5, 5, 5])

    assert meta.unique_count == 1
    assert meta.importance_score == 0.0


def test_columns_are_union_of_row_keys_in_first_seen_order() -> None:
    rows = [
        DataRow(id=0, values={"a": 1}),
        DataRow(id=1, values={"a": 2, "b": "x"}),
    ]

    columns = analyze_columns(rows)

    assert [c.name for c in columns] == ["a", "b"]
    assert columns[1].missing_count == 1


def test_explicit_names_keep_schema_without_rows() -> None:
    columns = analyze_columns([], names=["a", "b"])

    assert [c.name for c in columns] == ["a", "b"]
    assert all(c.type == "unknown" for c in columns)


def test_active_flag_carries_over_by_name() -> None:
    first = analyze_columns(make_rows([{"a": 1, "b": 2}]))
    previous = (replace(first[0], is_active=False), first[1])

    again = analyze_columns(make_rows([{"a": 3, "b": 4}]), previous=previous)

    assert [c.is_active for c in again] == [False, True]


def test_completeness_identity() -> None:
    ds = make_dataset(
        [
            {"a": 1, "b": None, "c": "x"},
            {"a": None, "b": None, "c": "y"},
            {"a": 3, "b": 2, "c": ""},
        ]
    )
    missing = sum(c.missing_count for c in ds.active_columns)
    cells = ds.row_count * len(ds.active_columns)

    assert missing / cells + ds.completeness == pytest.approx(1.0)
    assert math.isclose(ds.completeness, 5 / 9)


def test_empty_dataset_is_complete() -> None:
    assert make_dataset([]).completeness == 1.0
