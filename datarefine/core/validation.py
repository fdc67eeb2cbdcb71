# Standard library
from collections.abc import Iterable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datarefine.datasets.dataset import Dataset

# -----------------------------
# Validation Constants
# -----------------------------

MAX_NAME_LENGTH = 255

# -----------------------------
# Errors
# -----------------------------


class DataRefineError(Exception):
    """Base class for all engine errors."""


class ValidationError(DataRefineError, ValueError):
    """Raised when an operation receives invalid arguments."""


class ParseError(DataRefineError):
    """Raised when raw input is structurally unrecoverable."""


class FormulaError(ValidationError):
    """Raised when a calculated-column formula cannot be compiled."""


class JoinKeyError(ValidationError):
    """Raised when a join key column is absent from its dataset."""


# -----------------------------
# Validation Functions
# -----------------------------


def validate_dataset_name(name: str) -> None:
    """Validate dataset display name.

    Args:
        name: Display name to validate

    Raises:
        ValidationError: If name is empty or too long
    """
    if not name or not name.strip():
        msg = "Dataset name cannot be empty"
        raise ValidationError(msg)

    if len(name) > MAX_NAME_LENGTH:
        msg = f"Dataset name too long ({len(name)} chars, max {MAX_NAME_LENGTH})"
        raise ValidationError(msg)


def validate_column_exists(dataset: "Dataset", column: str) -> None:
    """Validate that a column belongs to the dataset.

    Raises:
        ValidationError: If the column is unknown
    """
    if column not in dataset.column_names:
        msg = f"Column '{column}' not found in dataset '{dataset.name}'"
        raise ValidationError(msg)


def validate_new_column_name(name: str, existing: Iterable[str]) -> None:
    """Validate a user-chosen name for a new column.

    Raises:
        ValidationError: If name is empty or already used
    """
    if not name or not name.strip():
        msg = "Column name cannot be empty"
        raise ValidationError(msg)

    if name in set(existing):
        msg = f"Column '{name}' already exists"
        raise ValidationError(msg)


def validate_join_key(dataset: "Dataset", key: str) -> None:
    """Validate that a join key is a column of the dataset.

    Raises:
        JoinKeyError: If the key column is absent
    """
    if key not in dataset.column_names:
        msg = f"Join key '{key}' not found in dataset '{dataset.name}'"
        raise JoinKeyError(msg)
