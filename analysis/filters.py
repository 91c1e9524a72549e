"""
Dataset Filters

Config-driven entry point for the dataset transforms. Every filter takes a
Dataset and returns a new one; the input is never modified.

Filter configs are dicts with a 'method' key:
    {'method': 'cfs', 'search_termination': 50}
    {'method': 'pca', 'variance_threshold': 0.95}
    {'method': 'remove_percentage', 'percentage': 50, 'invert': False}
"""

from typing import Dict, Any, Sequence, Union

from data.dataset import Dataset
from .feature_selector import CFSSelector
from .dimensionality import PCAReducer


def remove_percentage(dataset: Dataset, percentage: float = 50.0, invert: bool = False) -> Dataset:
    """
    Drop the first `percentage` percent of the rows.

    Rows are removed in stored order, without shuffling.

    Args:
        dataset: Source dataset
        percentage: Percentage of rows to remove, in [0, 100]
        invert: Keep the removed rows instead

    Returns:
        New Dataset
    """
    if not 0.0 <= percentage <= 100.0:
        raise ValueError(f"percentage must be in [0, 100], got {percentage}")
    n_remove = int(round(dataset.n_rows * percentage / 100.0))
    if invert:
        return dataset.subset(range(n_remove))
    return dataset.subset(range(n_remove, dataset.n_rows))


def select_features_cfs(dataset: Dataset, search_termination: int = 50) -> Dataset:
    """Keep the feature subset chosen by correlation-based selection."""
    return CFSSelector(search_termination=search_termination).fit_transform(dataset)


def pca(dataset: Dataset, variance_threshold: float = 0.95, n_components: int = None) -> Dataset:
    """Replace the features with principal components."""
    return PCAReducer(variance_threshold=variance_threshold, n_components=n_components).fit_transform(dataset)


FILTERS = {
    'cfs': select_features_cfs,
    'pca': pca,
    'remove_percentage': remove_percentage,
}


def apply_filter(filter_config: Union[str, Dict[str, Any]], dataset: Dataset) -> Dataset:
    """
    Apply one filter described by a config dict (or a bare method name).

    Returns:
        New Dataset
    """
    if isinstance(filter_config, str):
        filter_config = {'method': filter_config}

    options = dict(filter_config)
    method = str(options.pop('method', '')).lower()
    if method not in FILTERS:
        raise ValueError(f"Unknown filter '{method}'. Available: {sorted(FILTERS)}")
    return FILTERS[method](dataset, **options)


def apply_filters(filter_configs: Sequence[Union[str, Dict[str, Any]]], dataset: Dataset) -> Dataset:
    """Apply filters in order, each to the output of the previous one."""
    for config in filter_configs:
        dataset = apply_filter(config, dataset)
    return dataset
