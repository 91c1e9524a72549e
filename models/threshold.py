"""
Decision Threshold Selection

ThresholdClassifier turns a probabilistic classifier into a labeler by
comparing the probability of a designated class against a fixed cutoff.
ThresholdOptimizer picks the cutoff with the best cross-validated
weighted F-measure.
"""

from typing import Any, Dict, List, Optional, Sequence
import copy
import numpy as np
import pandas as pd
from tqdm import tqdm

from data.dataset import Dataset
from data.exceptions import EmptyCandidateSetError
from .classifiers import Classifier
from .evaluation import CrossValidator, EvaluationResult, DEFAULT_FOLDS, DEFAULT_SEED

POSITIVE_LABELS = ('yes', 'pos', 'positive', '1', 'true')


def resolve_designated_class(classes: Sequence[Any], y: np.ndarray) -> Any:
    """
    Pick the class whose probability is thresholded.

    First class named yes/pos/positive/1/true (case-insensitive), otherwise
    the least frequent class in y (first in `classes` order on ties).
    """
    for label in classes:
        if str(label).strip().lower() in POSITIVE_LABELS:
            return label
    counts = pd.Series(y).value_counts()
    return min(classes, key=lambda c: counts.get(c, 0))


def _check_threshold(threshold: float) -> float:
    threshold = float(threshold)
    if not 0.0 <= threshold <= 1.0:
        raise ValueError(f"Threshold must be in [0, 1], got {threshold}")
    return threshold


class ThresholdClassifier(Classifier):
    """
    Probability-threshold wrapper around a base classifier.

    The base classifier is a template: training fits a private clone, so
    the caller's classifier is never trained or modified.

    A row is labelled with the designated class when its predicted
    probability for that class is >= threshold; otherwise it gets the most
    probable of the remaining classes.
    """

    variant = 'threshold'

    def __init__(self, base: Classifier, threshold: float = 0.5, positive_class: Any = None):
        """
        Args:
            base: Classifier with predict_proba support
            threshold: Probability cutoff in [0, 1]
            positive_class: Designated class (None = resolve from the training labels)
        """
        self.base = base
        self.threshold = _check_threshold(threshold)
        self.positive_class = positive_class
        self.designated_class: Any = None
        self.result: Optional[EvaluationResult] = None
        super().__init__(f"Threshold({base.name}, {self.threshold:g})", None)

    def train(self, X: np.ndarray, y: np.ndarray, feature_names: List[str] = None) -> 'ThresholdClassifier':
        """Fit a clone of the base classifier and fix the designated class."""
        fitted = self.base.clone().train(X, y, feature_names)
        self.model = fitted
        self.classes = fitted.classes
        self.is_trained = True
        if feature_names:
            self.feature_names = list(feature_names)
        if self.positive_class is not None:
            self.designated_class = self.positive_class
        else:
            self.designated_class = resolve_designated_class(fitted.classes, y)
        return self

    def predict(self, X: np.ndarray) -> np.ndarray:
        if not self.is_trained:
            raise ValueError(f"{self.name} is not trained.")

        proba = self.model.predict_proba(X)
        classes = np.asarray(self.classes)
        matches = np.flatnonzero(classes == self.designated_class)
        if len(matches) == 0:
            return classes[np.argmax(proba, axis=1)]

        d = matches[0]
        others = proba.copy()
        others[:, d] = -np.inf
        fallback = classes[np.argmax(others, axis=1)]
        return np.where(proba[:, d] >= self.threshold, classes[d], fallback)

    def predict_proba(self, X: np.ndarray) -> np.ndarray:
        if not self.is_trained:
            raise ValueError(f"{self.name} is not trained.")
        return self.model.predict_proba(X)

    def get_params(self) -> Dict[str, Any]:
        return {'threshold': self.threshold, 'positive_class': self.positive_class}

    def with_params(self, **params) -> 'ThresholdClassifier':
        unknown = set(params) - {'threshold', 'positive_class'}
        if unknown:
            raise ValueError(f"{self.name}: unknown parameters {sorted(unknown)}")
        return ThresholdClassifier(
            self.base,
            threshold=params.get('threshold', self.threshold),
            positive_class=params.get('positive_class', self.positive_class)
        )

    def clone(self) -> 'ThresholdClassifier':
        new = copy.copy(self)
        new.model = None
        new.is_trained = False
        new.classes = None
        new.feature_names = None
        new.designated_class = None
        new.result = None
        return new

    def __repr__(self) -> str:
        return f"ThresholdClassifier(base={self.base!r}, threshold={self.threshold:g})"


class ThresholdOptimizer:
    """
    Chooses the probability threshold with the best weighted F-measure.

    Every candidate threshold is cross-validated; the winner is trained on
    the full dataset.
    """

    def __init__(
            self,
            folds: int = DEFAULT_FOLDS,
            seed: int = DEFAULT_SEED,
            positive_class: Any = None,
            n_jobs: int = 1,
            verbose: bool = False
    ):
        self.validator = CrossValidator(folds=folds, seed=seed, n_jobs=n_jobs)
        self.positive_class = positive_class
        self.verbose = verbose
        self.history_: List[Dict[str, float]] = []

    def optimize(
            self,
            classifier: Classifier,
            dataset: Dataset,
            thresholds: Sequence[float]
    ) -> ThresholdClassifier:
        """
        Find the best threshold for a classifier.

        Args:
            classifier: Base classifier (left untouched)
            dataset: Dataset to cross-validate on
            thresholds: Ordered candidate thresholds in [0, 1]

        Returns:
            Trained ThresholdClassifier using the winning threshold

        Raises:
            EmptyCandidateSetError: If thresholds is empty
        """
        if len(thresholds) == 0:
            raise EmptyCandidateSetError(f"No candidate thresholds given for {classifier.name}")
        thresholds = [_check_threshold(t) for t in thresholds]

        # Any real score above zero replaces the sentinel; the first
        # candidate stands in when none does.
        best: Optional[ThresholdClassifier] = None
        best_result: Optional[EvaluationResult] = None
        best_score = 0.0
        self.history_ = []

        iterator = tqdm(thresholds, desc=f"Thresholds {classifier.name}") if self.verbose else thresholds
        for threshold in iterator:
            candidate = ThresholdClassifier(classifier, threshold, self.positive_class)
            result = self.validator.evaluate(candidate, dataset)
            self.history_.append({'threshold': threshold, 'weighted_f_measure': result.weighted_f_measure})
            if best is None:
                best, best_result = candidate, result
            if result.weighted_f_measure > best_score:
                best, best_result, best_score = candidate, result, result.weighted_f_measure

        best.train(dataset.X, dataset.y, dataset.feature_names)
        best.result = best_result

        if self.verbose:
            print(f"  Best threshold for {classifier.name}: {best.threshold:g} "
                  f"(weighted F = {best_result.weighted_f_measure:.4f})")
        return best


def optimize_threshold(
        classifier: Classifier,
        dataset: Dataset,
        thresholds: Sequence[float],
        folds: int = DEFAULT_FOLDS,
        seed: int = DEFAULT_SEED,
        positive_class: Any = None,
        verbose: bool = False
) -> ThresholdClassifier:
    """Select the probability threshold that maximizes the weighted F-measure."""
    optimizer = ThresholdOptimizer(folds=folds, seed=seed, positive_class=positive_class, verbose=verbose)
    return optimizer.optimize(classifier, dataset, thresholds)
