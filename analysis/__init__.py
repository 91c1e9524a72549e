"""
Analysis Layer

Feature selection, dimensionality reduction, and row filters.
"""

from .feature_selector import CFSSelector
from .dimensionality import PCAReducer
from .filters import (
    remove_percentage,
    select_features_cfs,
    pca,
    apply_filter,
    apply_filters
)

__all__ = [
    # Feature Selection
    'CFSSelector',

    # Dimensionality Reduction
    'PCAReducer',

    # Filters
    'remove_percentage',
    'select_features_cfs',
    'pca',
    'apply_filter',
    'apply_filters',
]
