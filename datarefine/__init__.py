# Public API exports
from datarefine.core.config import EngineConfig as EngineConfig
from datarefine.core.config import configure_logging as configure_logging
from datarefine.core.models import ColumnMetadata as ColumnMetadata
from datarefine.core.models import DataRow as DataRow
from datarefine.core.models import TransformationConfig as TransformationConfig
from datarefine.core.validation import DataRefineError as DataRefineError
from datarefine.core.validation import FormulaError as FormulaError
from datarefine.core.validation import JoinKeyError as JoinKeyError
from datarefine.core.validation import ParseError as ParseError
from datarefine.core.validation import ValidationError as ValidationError
from datarefine.datasets import Dataset as Dataset
from datarefine.managers import DataManager as DataManager

__all__ = [
    "ColumnMetadata",
    "DataManager",
    "DataRefineError",
    "DataRow",
    "Dataset",
    "EngineConfig",
    "FormulaError",
    "JoinKeyError",
    "ParseError",
    "TransformationConfig",
    "ValidationError",
    "configure_logging",
]
