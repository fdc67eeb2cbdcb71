# Core module exports
from datarefine.core.analyzer import analyze_columns as analyze_columns
from datarefine.core.analyzer import completeness as completeness
from datarefine.core.config import EngineConfig as EngineConfig
from datarefine.core.formula import compile_formula as compile_formula
from datarefine.core.utils import (
    is_missing as is_missing,
)
from datarefine.core.utils import (
    parse_cell as parse_cell,
)
from datarefine.core.utils import (
    to_number as to_number,
)
from datarefine.core.utils import (
    to_text as to_text,
)

__all__ = [
    "EngineConfig",
    "analyze_columns",
    "compile_formula",
    "completeness",
    "is_missing",
    "parse_cell",
    "to_number",
    "to_text",
]
