"""Tests for cell conversion helpers."""

from __future__ import annotations

from datetime import datetime

from datarefine.core.utils import parse_cell, parse_date, to_number, to_number_or_zero


def test_parse_cell_keeps_oversized_numbers_as_text() -> None:
    digits = "9" * 400

    assert parse_cell(digits) == digits
    assert parse_cell("1e999") == "1e999"
    assert parse_cell("12") == 12


def test_to_number_rejects_values_without_finite_reading() -> None:
    assert to_number("9" * 400) is None
    assert to_number(10**400) is None
    assert to_number_or_zero(10**400) == 0.0
    assert to_number(" 2.5 ") == 2.5


def test_parse_date_reads_common_layouts() -> None:
    assert parse_date("2024-01-05") == datetime(2024, 1, 5)
    assert parse_date("5 March 2024") == datetime(2024, 3, 5)
    assert parse_date("hello") is None
    assert parse_date(20240105) is None
