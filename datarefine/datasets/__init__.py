# Dataset exports
from datarefine.datasets.dataset import Dataset as Dataset
from datarefine.datasets.dataset import create_dataset as create_dataset

__all__ = [
    "Dataset",
    "create_dataset",
]
