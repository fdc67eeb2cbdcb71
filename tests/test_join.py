"""Tests for the left-outer hash join."""

from __future__ import annotations

import logging

import pytest

from datarefine.core.validation import JoinKeyError, ValidationError
from datarefine.datasets.dataset import Dataset
from datarefine.services.join_service import join_datasets
from tests.factories import make_dataset


@pytest.fixture
def cities() -> Dataset:
    return make_dataset(
        [
            {"City": "NY", "Name": "New York", "Pop": 8.3},
            {"City": "LA", "Name": "Los Angeles", "Pop": 3.9},
        ],
        name="cities",
    )


def test_matched_rows_gain_secondary_fields(people: Dataset, cities: Dataset) -> None:
    out = join_datasets(people, cities, "City", "City")

    assert out.name == "people + cities"
    assert out.row_count == people.row_count
    assert out.column_names == ["Name", "Age", "City", "cities_Name", "Pop"]
    assert out.rows[0].get("cities_Name") == "New York"
    assert out.rows[0].get("Name") == "Ann"
    assert out.rows[1].get("Pop") == 3.9


def test_unmatched_rows_pass_through(people: Dataset, cities: Dataset) -> None:
    out = join_datasets(people, cities, "City", "City")

    assert out.rows[2] is people.rows[2]
    assert out.rows[2].get("Pop") is None


def test_output_rows_keep_primary_ids() -> None:
    left = make_dataset([{"id": 1}, {"id": 2}, {"id": 3}], name="left")
    right = make_dataset([{"id": 2, "label": "two"}], name="right")

    out = join_datasets(left, right, "id", "id")

    assert [r.id for r in out.rows] == [r.id for r in left.rows]
    assert out.rows[1].get("label") == "two"


def test_prefixed_name_never_overwrites_primary_column() -> None:
    left = make_dataset([{"id": 1, "Name": "Ann", "sec_Name": "KEEP"}], name="left")
    right = make_dataset([{"id": 1, "Name": "Other"}], name="sec")

    out = join_datasets(left, right, "id", "id")

    assert out.rows[0].get("sec_Name") == "KEEP"
    assert out.rows[0].get("sec_Name_2") == "Other"
    assert out.column_names == ["id", "Name", "sec_Name", "sec_Name_2"]


def test_no_matches_keeps_primary_content(people: Dataset) -> None:
    other = make_dataset([{"key": "zz", "extra": 1}], name="other")

    out = join_datasets(people, other, "City", "key")

    assert out.row_count == people.row_count
    assert [r.values for r in out.rows] == [r.values for r in people.rows]


def test_keys_compare_as_text() -> None:
    left = make_dataset([{"id": 1}, {"id": 2}], name="left")
    right = make_dataset([{"ref": "1", "label": "one"}], name="right")

    out = join_datasets(left, right, "id", "ref")

    assert out.rows[0].get("label") == "one"
    assert out.rows[1].get("label") is None


def test_duplicate_secondary_keys_last_wins(
    people: Dataset, caplog: pytest.LogCaptureFixture
) -> None:
    dupes = make_dataset(
        [{"City": "NY", "Tag": "first"}, {"City": "NY", "Tag": "second"}],
        name="dupes",
    )

    with caplog.at_level(logging.DEBUG, logger="datarefine"):
        out = join_datasets(people, dupes, "City", "City")

    assert out.rows[0].get("Tag") == "second"
    assert "duplicate" in caplog.text


def test_missing_key_raises(people: Dataset, cities: Dataset) -> None:
    with pytest.raises(JoinKeyError):
        join_datasets(people, cities, "Country", "City")
    with pytest.raises(ValidationError):
        join_datasets(people, cities, "City", "Code")
