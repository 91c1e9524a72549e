"""
Dimensionality Reduction

Principal component transform of a dataset's features.

Data is mean-imputed and standardized before PCA; components are kept
until the requested share of variance is covered.
"""

from typing import Optional, List
import numpy as np
from sklearn.decomposition import PCA
from sklearn.impute import SimpleImputer
from sklearn.preprocessing import StandardScaler

from data.dataset import Dataset
from data.exceptions import InvalidDatasetError


class PCAReducer:
    """
    Principal Component Analysis filter.

    Provides:
    - Dataset -> Dataset transform (PC1, PC2, ... plus the original label)
    - Explained variance per component
    """

    def __init__(
        self,
        variance_threshold: float = 0.95,
        n_components: Optional[int] = None,
        scale_data: bool = True,
        random_state: Optional[int] = 42
    ):
        """
        Initialize PCA.

        Args:
            variance_threshold: Cumulative variance to cover (used when n_components is None)
            n_components: Fixed number of components (overrides variance_threshold)
            scale_data: Whether to standardize data before PCA
            random_state: Random seed
        """
        if n_components is None and not 0.0 < variance_threshold <= 1.0:
            raise ValueError(f"variance_threshold must be in (0, 1], got {variance_threshold}")
        self.variance_threshold = variance_threshold
        self.n_components = n_components
        self.scale_data = scale_data
        self.random_state = random_state

        self._imputer = SimpleImputer(strategy='mean', keep_empty_features=True)
        self._scaler = StandardScaler() if scale_data else None
        self._pca: Optional[PCA] = None
        self._feature_names: Optional[List[str]] = None
        self._is_fitted = False

    def _prepare(self, dataset: Dataset, fit: bool) -> np.ndarray:
        X = dataset.X
        if fit:
            X = self._imputer.fit_transform(X)
            if self._scaler is not None:
                X = self._scaler.fit_transform(X)
        else:
            X = self._imputer.transform(X)
            if self._scaler is not None:
                X = self._scaler.transform(X)
        return X

    def fit(self, dataset: Dataset) -> 'PCAReducer':
        """
        Fit PCA to a dataset's features.

        Returns:
            self
        """
        if dataset.n_rows < 2 or dataset.n_features == 0:
            raise InvalidDatasetError(
                f"PCA needs at least 2 rows and 1 feature, '{dataset.name}' has "
                f"{dataset.n_rows} rows and {dataset.n_features} features"
            )

        X_scaled = self._prepare(dataset, fit=True)
        max_components = min(X_scaled.shape)
        if self.n_components is not None:
            n_components = min(self.n_components, max_components)
        elif self.variance_threshold >= 1.0:
            n_components = max_components
        else:
            n_components = self.variance_threshold

        self._pca = PCA(n_components=n_components, svd_solver='full', random_state=self.random_state)
        self._pca.fit(X_scaled)
        self._feature_names = dataset.feature_names
        self._is_fitted = True
        return self

    def transform(self, dataset: Dataset) -> Dataset:
        """
        Transform a dataset to principal components.

        Returns:
            New Dataset with columns PC1..PCk and the same labels
        """
        if not self._is_fitted:
            raise ValueError("PCAReducer must be fitted first")
        if dataset.feature_names != self._feature_names:
            raise InvalidDatasetError(
                f"Dataset '{dataset.name}' does not have the features PCA was fitted on"
            )

        components = self._pca.transform(self._prepare(dataset, fit=False))
        return dataset.with_features(components, self.get_component_names())

    def fit_transform(self, dataset: Dataset) -> Dataset:
        return self.fit(dataset).transform(dataset)

    def get_component_names(self) -> List[str]:
        """Get component names (PC1, PC2, ...)."""
        if not self._is_fitted:
            raise ValueError("PCAReducer must be fitted first")
        return [f"PC{i+1}" for i in range(self._pca.n_components_)]

    def get_explained_variance(self) -> np.ndarray:
        """
        Get explained variance ratio for each component.

        Returns:
            Array of explained variance ratios (sums to <=1)
        """
        if not self._is_fitted:
            raise ValueError("PCAReducer must be fitted first")
        return self._pca.explained_variance_ratio_

