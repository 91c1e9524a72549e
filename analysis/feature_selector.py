"""
Feature Selection

Correlation-based feature subset selection (CFS).

A subset is good when its features correlate with the class but not with
each other. Subsets are scored with the CFS merit

    merit(S) = k * mean|r_cf| / sqrt(k + k * (k - 1) * mean|r_ff|)

and explored with a forward best-first search that gives up after
`search_termination` consecutive expansions without improvement.
"""

from typing import List, Optional, FrozenSet, Tuple
import heapq
import numpy as np
import pandas as pd
import warnings

from data.dataset import Dataset
from data.exceptions import InvalidDatasetError


class CFSSelector:
    """
    Correlation-based feature subset selector with best-first search.

    Feature-feature correlation is the absolute Pearson correlation.
    Feature-class correlation is the class-prior weighted absolute
    correlation between the feature and each class indicator.
    """

    def __init__(self, search_termination: int = 50):
        """
        Initialize feature selector.

        Args:
            search_termination: Non-improving expansions before the search stops
        """
        if search_termination < 1:
            raise ValueError(f"search_termination must be >= 1, got {search_termination}")
        self.search_termination = search_termination

        # State
        self._selected_indices: Optional[List[int]] = None
        self._selected_names: Optional[List[str]] = None
        self._feature_scores: Optional[np.ndarray] = None
        self._r_ff: Optional[np.ndarray] = None
        self.merit_: float = 0.0
        self._is_fitted = False

    def fit(self, dataset: Dataset) -> 'CFSSelector':
        """
        Search for the best feature subset of a dataset.

        Returns:
            self
        """
        if dataset.is_empty() or dataset.n_features == 0:
            raise InvalidDatasetError(f"Dataset '{dataset.name}' has no rows or no features")

        X = self._impute(dataset.X)
        self._feature_scores = self._class_correlations(X, dataset.y)
        self._r_ff = self._feature_correlations(X)

        subset, merit = self._best_first(dataset.n_features)
        if not subset:
            best = int(np.argmax(self._feature_scores))
            warnings.warn(
                f"CFS found no informative subset in '{dataset.name}'; "
                f"keeping '{dataset.feature_names[best]}'"
            )
            subset, merit = [best], self._merit(frozenset([best]))

        self._selected_indices = subset
        self._selected_names = [dataset.feature_names[i] for i in subset]
        self.merit_ = merit
        self._is_fitted = True
        return self

    @staticmethod
    def _impute(X: np.ndarray) -> np.ndarray:
        """Replace missing values with column means (all-missing columns become 0)."""
        if not np.isnan(X).any():
            return X
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            means = np.nanmean(X, axis=0)
        means = np.nan_to_num(means, nan=0.0)
        return np.where(np.isnan(X), means, X)

    @staticmethod
    def _abs_corr(a: np.ndarray, b: np.ndarray) -> float:
        if np.std(a) == 0 or np.std(b) == 0:
            return 0.0
        return float(abs(np.corrcoef(a, b)[0, 1]))

    def _class_correlations(self, X: np.ndarray, y: np.ndarray) -> np.ndarray:
        priors = pd.Series(y).value_counts(normalize=True)
        scores = np.zeros(X.shape[1])
        for label, prior in priors.items():
            indicator = (y == label).astype(float)
            for j in range(X.shape[1]):
                scores[j] += prior * self._abs_corr(X[:, j], indicator)
        return scores

    @staticmethod
    def _feature_correlations(X: np.ndarray) -> np.ndarray:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            corr = np.corrcoef(X.T) if X.shape[1] > 1 else np.ones((1, 1))
        # Constant columns produce NaN correlations
        return np.abs(np.nan_to_num(np.atleast_2d(corr), nan=0.0))

    def _merit(self, subset: FrozenSet[int]) -> float:
        k = len(subset)
        if k == 0:
            return 0.0
        idx = sorted(subset)
        r_cf = self._feature_scores[idx].mean()
        if k == 1:
            r_ff = 0.0
        else:
            block = self._r_ff[np.ix_(idx, idx)]
            r_ff = (block.sum() - np.trace(block)) / (k * (k - 1))
        return float(k * r_cf / np.sqrt(k + k * (k - 1) * r_ff))

    def _best_first(self, n_features: int) -> Tuple[List[int], float]:
        start: FrozenSet[int] = frozenset()
        best_subset, best_merit = start, 0.0
        counter = 0
        open_list = [(0.0, counter, start)]
        visited = {start}
        stale = 0

        while open_list and stale < self.search_termination:
            _, _, current = heapq.heappop(open_list)
            improved = False
            for j in range(n_features):
                if j in current:
                    continue
                child = current | {j}
                if child in visited:
                    continue
                visited.add(child)
                merit = self._merit(child)
                counter += 1
                heapq.heappush(open_list, (-merit, counter, child))
                if merit > best_merit + 1e-12:
                    best_subset, best_merit = child, merit
                    improved = True
            stale = 0 if improved else stale + 1

        return sorted(best_subset), best_merit

    def transform(self, dataset: Dataset) -> Dataset:
        """Return a new dataset holding only the selected features."""
        if not self._is_fitted:
            raise ValueError("CFSSelector must be fitted first")

        missing = [n for n in self._selected_names if n not in dataset.feature_names]
        if missing:
            raise InvalidDatasetError(f"Dataset '{dataset.name}' lacks selected features: {missing}")

        positions = [dataset.feature_names.index(n) for n in self._selected_names]
        attributes = dataset.attributes
        return dataset.with_features(
            dataset.X[:, positions],
            list(self._selected_names),
            attributes=[attributes[p] for p in positions]
        )

    def fit_transform(self, dataset: Dataset) -> Dataset:
        return self.fit(dataset).transform(dataset)

    def get_selected_features(self) -> List[int]:
        """Indices of the selected features, in original column order."""
        if not self._is_fitted:
            raise ValueError("CFSSelector must be fitted first")
        return list(self._selected_indices)

    def get_selected_feature_names(self) -> List[str]:
        if not self._is_fitted:
            raise ValueError("CFSSelector must be fitted first")
        return list(self._selected_names)

    def get_feature_scores(self) -> np.ndarray:
        """Feature-class correlation of every feature."""
        if not self._is_fitted:
            raise ValueError("CFSSelector must be fitted first")
        return self._feature_scores.copy()
