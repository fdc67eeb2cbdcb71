"""Shared dataset fixtures."""

from __future__ import annotations

import pytest

from datarefine.datasets.dataset import Dataset
from tests.factories import make_dataset


@pytest.fixture
def people() -> Dataset:
    return make_dataset(
        [
            {"Name": "Ann", "Age": 30, "City": "NY"},
            {"Name": "Bo", "Age": 25, "City": "LA"},
            {"Name": "Cy", "Age": 40, "City": "SF"},
        ],
        name="people",
    )


@pytest.fixture
def sales() -> Dataset:
    return make_dataset(
        [
            {"Item": "pen", "Price": 10, "Quantity": 2},
            {"Item": "ink", "Price": "bad", "Quantity": 3},
        ],
        name="sales",
    )
