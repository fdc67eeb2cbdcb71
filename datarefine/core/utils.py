# Standard library
import math
import re
import sys
import uuid
from collections.abc import Iterable
from datetime import UTC, datetime

# Third-party
from dateutil import parser as _dtparser

# Local imports
from datarefine.types import Scalar

# -----------------------------
# Constants
# -----------------------------

_INT_PATTERN = re.compile(r"^[+-]?\d+$")
_FLOAT_PATTERN = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
_BOOL_VALUES = {"true": True, "false": False}

# Text needs a date-like shape (2024-01-05, 5 Mar 2024, Mar 5) before it
# reaches the date parser.
_DATE_SHAPE = re.compile(r"\d[-/.:]\d|\d\s+[A-Za-z]{3}|[A-Za-z]{3,}\.?\s+\d")
_FLOAT_MAX = sys.float_info.max

# -----------------------------
# Value conversion
# -----------------------------


def is_missing(value: Scalar) -> bool:
    """Missing means None, blank text, or a float NaN."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, float):
        return math.isnan(value)
    return False


def is_number(value: Scalar) -> bool:
    """Numeric cell check; booleans are not numbers."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return abs(value) <= _FLOAT_MAX
    return isinstance(value, float) and not math.isnan(value)


def parse_cell(text: str | None) -> Scalar:
    """Type a raw text cell: integer, float, boolean, else text."""
    if text is None:
        return None
    stripped: str = text.strip()
    if not stripped:
        return None
    lowered: str = stripped.lower()
    if lowered in _BOOL_VALUES:
        return _BOOL_VALUES[lowered]
    if _INT_PATTERN.match(stripped):
        try:
            number = int(stripped)
        except ValueError:
            return text  # beyond int_max_str_digits
        return number if abs(number) <= _FLOAT_MAX else text
    if _FLOAT_PATTERN.match(stripped):
        real: float = float(stripped)
        return real if math.isfinite(real) else text
    return text


def to_number(value: Scalar) -> float | None:
    """Convert a cell to a finite float, or None when it has no numeric reading."""
    if is_number(value):
        number = float(value)  # type: ignore[arg-type]
        return number if math.isfinite(number) else None
    if isinstance(value, str):
        stripped: str = value.strip()
        if _INT_PATTERN.match(stripped) or _FLOAT_PATTERN.match(stripped):
            number = float(stripped)
            return number if math.isfinite(number) else None
    return None


def to_number_or_zero(value: Scalar) -> float:
    number: float | None = to_number(value)
    return 0.0 if number is None else number


def to_text(value: Scalar) -> str:
    """Stringify a cell; Missing becomes the empty string."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def parse_date(value: Scalar) -> datetime | None:
    """Parse a text cell as a date or datetime. Numbers are never dates."""
    if not isinstance(value, str):
        return None
    stripped: str = value.strip()
    if not _DATE_SHAPE.search(stripped):
        return None
    try:
        return _dtparser.parse(stripped)
    except (_dtparser.ParserError, OverflowError):
        return None


# -----------------------------
# Naming utilities
# -----------------------------


def header_name(value: Scalar, position: int) -> str:
    """Name a header cell; blank cells get a positional name (1-based)."""
    if is_missing(value):
        return f"Column_{position + 1}"
    return to_text(value).strip()


def dedupe_names(names: Iterable[str]) -> list[str]:
    """Suffix repeated names: Name, Name_2, Name_3, skipping taken suffixes."""
    raw: list[str] = list(names)
    taken: set[str] = set(raw)
    seen: dict[str, int] = {}
    result: list[str] = []
    for name in raw:
        count: int = seen.get(name, 0) + 1
        seen[name] = count
        if count == 1:
            result.append(name)
            continue
        candidate: str = f"{name}_{count}"
        while candidate in taken:
            count += 1
            candidate = f"{name}_{count}"
        seen[name] = count
        taken.add(candidate)
        result.append(candidate)
    return result


def unique_name(base: str, existing: Iterable[str]) -> str:
    """Return base, or base with a numbered suffix when already taken."""
    taken: set[str] = set(existing)
    if base not in taken:
        return base
    suffix: int = 2
    while f"{base}_{suffix}" in taken:
        suffix += 1
    return f"{base}_{suffix}"


# -----------------------------
# Identity utilities
# -----------------------------


def generate_id() -> str:
    """Generate a new unique dataset ID."""
    return str(uuid.uuid4())


def utc_timestamp() -> str:
    return datetime.now(UTC).isoformat()
