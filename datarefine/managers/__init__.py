# Manager exports
from datarefine.managers.manager import DataManager as DataManager

__all__ = [
    "DataManager",
]
