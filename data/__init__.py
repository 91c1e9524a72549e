"""
Data Layer

Handles loading, holding, and exporting tabular datasets.
"""

from .dataset import Dataset, Attribute, NUMERIC, NOMINAL
from .loaders import (
    DataLoader,
    ARFFDataLoader,
    CSVDataLoader,
    load_dataset
)
from .exporters import ResultsExporter
from .exceptions import (
    ModelSelectionError,
    ParseError,
    InvalidDatasetError,
    ModelTrainingError,
    UnsupportedModelError,
    EmptyCandidateSetError,
    EmptyResultSetError
)

__all__ = [
    # Core data structures
    'Dataset',
    'Attribute',
    'NUMERIC',
    'NOMINAL',

    # Loaders
    'DataLoader',
    'ARFFDataLoader',
    'CSVDataLoader',
    'load_dataset',

    # Exporters
    'ResultsExporter',

    # Errors
    'ModelSelectionError',
    'ParseError',
    'InvalidDatasetError',
    'ModelTrainingError',
    'UnsupportedModelError',
    'EmptyCandidateSetError',
    'EmptyResultSetError',
]
