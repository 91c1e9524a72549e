"""
Classifiers

Wrappers for machine learning classifiers with a consistent interface.

Every wrapper carries a `variant` tag used to look up its default
hyper-parameter search space (see models.tuning.SEARCH_SPACES).
Configuration never mutates a wrapper: with_params() returns a new,
untrained instance.
"""

from typing import Dict, Optional, Any, List, Type
import copy
import numpy as np
import warnings
import joblib

from sklearn.base import BaseEstimator, clone as sk_clone
from sklearn.svm import SVC
from sklearn.neighbors import KNeighborsClassifier
from sklearn.linear_model import LogisticRegression
# Alias sklearn estimators to avoid name collisions with our wrapper classes
from sklearn.ensemble import RandomForestClassifier as SkRandomForestClassifier
from sklearn.ensemble import AdaBoostClassifier as SkAdaBoostClassifier
from sklearn.ensemble import BaggingClassifier as SkBaggingClassifier
from sklearn.ensemble import GradientBoostingClassifier as SkGradientBoostingClassifier
from sklearn.tree import DecisionTreeClassifier as SkDecisionTreeClassifier

from data.exceptions import ModelTrainingError

RANDOM_STATE = 42


class Classifier:
    """Base class for all classifier wrappers."""

    variant: str = ''

    def __init__(self, name: str, model: BaseEstimator):
        self.name = name
        self.model = model
        self.is_trained = False
        self.feature_names: Optional[List[str]] = None
        self.classes: Optional[np.ndarray] = None

    def train(self, X: np.ndarray, y: np.ndarray, feature_names: List[str] = None) -> 'Classifier':
        """
        Train the classifier.

        Raises:
            ModelTrainingError: If the estimator cannot be fit to the data
        """
        try:
            self._fit(X, y)
        except (ValueError, TypeError) as e:
            raise ModelTrainingError(
                f"{self.name} could not be trained with {self.get_params()}: {e}"
            ) from e
        self.is_trained = True
        self.classes = self.model.classes_
        if feature_names:
            self.feature_names = list(feature_names)
        return self

    def _fit(self, X: np.ndarray, y: np.ndarray) -> None:
        self.model.fit(X, y)

    def predict(self, X: np.ndarray) -> np.ndarray:
        """Make class predictions."""
        if not self.is_trained:
            raise ValueError(f"{self.name} is not trained.")
        return self.model.predict(X)

    def predict_proba(self, X: np.ndarray) -> np.ndarray:
        """Predict class probabilities, columns ordered as self.classes."""
        if not self.is_trained:
            raise ValueError(f"{self.name} is not trained.")

        if hasattr(self.model, "predict_proba"):
            return self.model.predict_proba(X)
        else:
            warnings.warn(f"{self.name} does not support probability prediction.")
            return np.zeros((X.shape[0], len(self.classes)))

    def get_params(self) -> Dict[str, Any]:
        """Current hyper-parameters of the wrapped estimator."""
        return self.model.get_params(deep=False)

    def with_params(self, **params) -> 'Classifier':
        """
        Return a new, untrained classifier with the given hyper-parameters.

        The receiver is left untouched.
        """
        new = self.clone()
        try:
            new.model.set_params(**params)
        except ValueError as e:
            raise ModelTrainingError(f"{self.name}: invalid parameters {params}: {e}") from e
        return new

    def clone(self) -> 'Classifier':
        """Untrained copy with the same configuration."""
        new = copy.copy(self)
        new.model = sk_clone(self.model)
        new.is_trained = False
        new.classes = None
        new.feature_names = None
        return new

    def save(self, filepath: str) -> None:
        """Save trained model to disk."""
        if not self.is_trained:
            warnings.warn("Saving untrained model.")
        joblib.dump(self, filepath)

    @staticmethod
    def load(filepath: str) -> 'Classifier':
        """Load model from disk."""
        return joblib.load(filepath)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.get_params()})"


class AdaBoostClassifier(Classifier):
    """AdaBoost ensemble of decision stumps."""

    variant = 'adaboost'

    def __init__(self, n_estimators: int = 50, learning_rate: float = 1.0, **kwargs):
        super().__init__("AdaBoost", SkAdaBoostClassifier(
            n_estimators=n_estimators,
            learning_rate=learning_rate,
            random_state=RANDOM_STATE,
            **kwargs
        ))


class BaggingClassifier(Classifier):
    """Bagged decision trees."""

    variant = 'bagging'

    def __init__(self, n_estimators: int = 10, max_samples: float = 1.0, **kwargs):
        super().__init__("Bagging", SkBaggingClassifier(
            estimator=SkDecisionTreeClassifier(random_state=RANDOM_STATE),
            n_estimators=n_estimators,
            max_samples=max_samples,
            random_state=RANDOM_STATE,
            **kwargs
        ))


class DecisionTreeClassifier(Classifier):
    """CART decision tree."""

    variant = 'decision_tree'

    def __init__(self, min_samples_leaf: int = 2, max_depth: Optional[int] = None, **kwargs):
        super().__init__("DecisionTree", SkDecisionTreeClassifier(
            min_samples_leaf=min_samples_leaf,
            max_depth=max_depth,
            random_state=RANDOM_STATE,
            **kwargs
        ))


class PrunedTreeClassifier(Classifier):
    """Entropy-split decision tree with cost-complexity pruning (C4.5 style)."""

    variant = 'pruned_tree'

    def __init__(self, ccp_alpha: float = 0.01, min_samples_leaf: int = 2, **kwargs):
        super().__init__("PrunedTree", SkDecisionTreeClassifier(
            criterion='entropy',
            ccp_alpha=ccp_alpha,
            min_samples_leaf=min_samples_leaf,
            random_state=RANDOM_STATE,
            **kwargs
        ))


class GradientBoostingClassifier(Classifier):
    """Gradient boosting with log-loss (LogitBoost style)."""

    variant = 'gradient_boosting'

    def __init__(self, n_estimators: int = 10, learning_rate: float = 1.0, max_depth: int = 3, **kwargs):
        super().__init__("GradientBoosting", SkGradientBoostingClassifier(
            n_estimators=n_estimators,
            learning_rate=learning_rate,
            max_depth=max_depth,
            random_state=RANDOM_STATE,
            **kwargs
        ))


class SVMClassifier(Classifier):
    """Support Vector Machine classifier."""

    variant = 'svm'

    def __init__(self, kernel: str = 'rbf', C: float = 1.0, gamma='scale', probability: bool = True, **kwargs):
        super().__init__("SVM", SVC(
            kernel=kernel, C=C, gamma=gamma, probability=probability,
            random_state=RANDOM_STATE, **kwargs
        ))


class KNNClassifier(Classifier):
    """K-Nearest Neighbors classifier."""

    variant = 'knn'

    def __init__(self, n_neighbors: int = 1, weights: str = 'uniform', algorithm: str = 'auto', **kwargs):
        super().__init__("KNN", KNeighborsClassifier(
            n_neighbors=n_neighbors, weights=weights, algorithm=algorithm, **kwargs
        ))

    def _fit(self, X: np.ndarray, y: np.ndarray) -> None:
        if self.model.n_neighbors > len(X):
            raise ValueError(
                f"n_neighbors={self.model.n_neighbors} exceeds the {len(X)} training rows"
            )
        self.model.fit(X, y)


class RandomForestClassifier(Classifier):
    """Random Forest classifier."""

    variant = 'random_forest'

    def __init__(self, n_estimators: int = 100, max_depth: Optional[int] = None, class_weight: str = 'balanced', **kwargs):
        super().__init__("RandomForest", SkRandomForestClassifier(
            n_estimators=n_estimators,
            max_depth=max_depth,
            class_weight=class_weight,
            random_state=RANDOM_STATE,
            **kwargs
        ))


class LogisticRegressionClassifier(Classifier):
    """Logistic Regression classifier (baseline)."""

    variant = 'logistic_regression'

    def __init__(self, C: float = 1.0, solver: str = 'lbfgs', **kwargs):
        super().__init__("LogisticRegression", LogisticRegression(
            C=C, solver=solver, max_iter=1000, random_state=RANDOM_STATE, **kwargs
        ))


def _registry() -> Dict[str, Type[Classifier]]:
    from .neural_network import NeuralNetworkClassifier
    return {
        cls.variant: cls
        for cls in (
            AdaBoostClassifier,
            BaggingClassifier,
            DecisionTreeClassifier,
            PrunedTreeClassifier,
            GradientBoostingClassifier,
            SVMClassifier,
            KNNClassifier,
            RandomForestClassifier,
            LogisticRegressionClassifier,
            NeuralNetworkClassifier,
        )
    }


def available_variants() -> List[str]:
    """Variant tags accepted by create_classifier()."""
    return sorted(_registry())


def create_classifier(variant: str, **params) -> Classifier:
    """
    Build a classifier wrapper from its variant tag.

    Args:
        variant: Variant tag, e.g. 'svm', 'random_forest'
        **params: Constructor arguments for the wrapper

    Returns:
        Untrained Classifier
    """
    registry = _registry()
    if variant not in registry:
        raise ValueError(f"Unknown classifier '{variant}'. Available: {sorted(registry)}")
    return registry[variant](**params)
