# Standard library
from collections.abc import Callable
from typing import Literal

# -----------------------------
# Cell values
# -----------------------------

# A cell is a tagged variant: the runtime type is the tag, None is Missing.
Scalar = int | float | str | bool | None

ColumnType = Literal["number", "date", "string", "unknown"]

# -----------------------------
# Operations
# -----------------------------

TransformationKind = Literal[
    "split_count",
    "split_extract",
    "extract_regex",
    "to_uppercase",
    "to_lowercase",
    "math_add",
    "math_log",
]

ActionType = Literal["impute", "normalize", "drop", "convert_type", "extract"]

ImputeMethod = Literal["mean", "zero"]

TargetType = Literal["number", "string"]

ProgressSink = Callable[[int], None]
