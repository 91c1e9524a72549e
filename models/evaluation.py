"""
Model Evaluation

Stratified k-fold cross-validation of a classifier against a Dataset,
plus selection of the best result by weighted F-measure.

Each fold is an independent unit of work (untrained model clone + row
indices -> held-out predictions). Units are dispatched through joblib and
their predictions are pooled before any metric is computed, so per-class
counts are aggregated over all folds rather than averaged per fold.
"""

from dataclasses import dataclass
from typing import Dict, Any, List, Optional, Sequence, Tuple
import numpy as np
from joblib import Parallel, delayed
from sklearn.model_selection import StratifiedKFold
from sklearn.metrics import confusion_matrix, precision_recall_fscore_support
from tqdm import tqdm

from data.dataset import Dataset
from data.exceptions import InvalidDatasetError, ModelTrainingError, EmptyResultSetError
from .classifiers import Classifier

DEFAULT_FOLDS = 10
DEFAULT_SEED = 1


@dataclass(frozen=True, eq=False)
class EvaluationResult:
    """
    Metrics from one cross-validation run.

    Attributes:
        model_name: Name of the evaluated classifier
        classes: Class labels, in the order used by every per-class field
        confusion_matrix: Pooled counts, rows = true class, columns = predicted (read-only)
        precision / recall / f_measure: Per-class scores
        support: Number of rows per class
        weighted_f_measure: Per-class F-measure weighted by support
        accuracy: Fraction of rows predicted correctly
        n_folds: Number of folds used
        seed: Seed used for the fold assignment
    """
    model_name: str
    classes: Tuple[Any, ...]
    confusion_matrix: np.ndarray
    precision: Tuple[float, ...]
    recall: Tuple[float, ...]
    f_measure: Tuple[float, ...]
    support: Tuple[int, ...]
    weighted_f_measure: float
    accuracy: float
    n_folds: int
    seed: int

    @classmethod
    def from_predictions(
            cls,
            y_true: np.ndarray,
            y_pred: np.ndarray,
            classes: Sequence[Any],
            model_name: str = 'model',
            n_folds: int = DEFAULT_FOLDS,
            seed: int = DEFAULT_SEED
    ) -> 'EvaluationResult':
        """Compute all metrics from pooled true/predicted labels."""
        labels = list(classes)
        cm = confusion_matrix(y_true, y_pred, labels=labels)
        cm.setflags(write=False)
        precision, recall, f_measure, support = precision_recall_fscore_support(
            y_true, y_pred, labels=labels, zero_division=0
        )
        total = support.sum()
        weighted_f = float(np.sum(f_measure * support) / total) if total else 0.0
        accuracy = float(np.trace(cm) / cm.sum()) if cm.sum() else 0.0

        return cls(
            model_name=model_name,
            classes=tuple(labels),
            confusion_matrix=cm,
            precision=tuple(float(v) for v in precision),
            recall=tuple(float(v) for v in recall),
            f_measure=tuple(float(v) for v in f_measure),
            support=tuple(int(v) for v in support),
            weighted_f_measure=weighted_f,
            accuracy=accuracy,
            n_folds=n_folds,
            seed=seed
        )

    def _weighted(self, values: Tuple[float, ...]) -> float:
        support = np.asarray(self.support, dtype=float)
        if support.sum() == 0:
            return 0.0
        return float(np.sum(np.asarray(values) * support) / support.sum())

    @property
    def weighted_precision(self) -> float:
        return self._weighted(self.precision)

    @property
    def weighted_recall(self) -> float:
        return self._weighted(self.recall)

    def to_dict(self) -> Dict[str, Any]:
        """Flat summary row (used for comparison tables)."""
        return {
            'model': self.model_name,
            'weighted_f_measure': self.weighted_f_measure,
            'weighted_precision': self.weighted_precision,
            'weighted_recall': self.weighted_recall,
            'accuracy': self.accuracy,
            'folds': self.n_folds,
            'seed': self.seed,
        }

    def summary(self) -> str:
        lines = [
            f"Cross-validation: {self.model_name} ({self.n_folds} folds, seed {self.seed})",
            "=" * 60,
            f"Accuracy:            {self.accuracy:.4f}",
            f"Weighted F-measure:  {self.weighted_f_measure:.4f}",
            "",
            f"{'class':<20}{'precision':>10}{'recall':>10}{'F':>10}{'support':>10}",
        ]
        for i, label in enumerate(self.classes):
            lines.append(
                f"{str(label):<20}{self.precision[i]:>10.4f}{self.recall[i]:>10.4f}"
                f"{self.f_measure[i]:>10.4f}{self.support[i]:>10d}"
            )
        return "\n".join(lines)


@dataclass(frozen=True, eq=False)
class FoldTask:
    """One cross-validation fold: untrained model clone and its row split."""
    fold: int
    model: Classifier
    train_index: np.ndarray
    test_index: np.ndarray


def run_fold(task: FoldTask, X: np.ndarray, y: np.ndarray) -> np.ndarray:
    """Train the task's model on its training rows and predict the held-out rows."""
    model = task.model
    model.train(X[task.train_index], y[task.train_index])
    return model.predict(X[task.test_index])


class CrossValidator:
    """
    Stratified k-fold cross-validation with an explicit seed.

    Repeated calls with identical inputs give identical fold assignments
    and identical results.
    """

    def __init__(self, folds: int = DEFAULT_FOLDS, seed: int = DEFAULT_SEED, n_jobs: int = 1):
        """
        Args:
            folds: Number of folds (>= 2)
            seed: Seed for the stratified fold assignment
            n_jobs: Number of folds trained in parallel (joblib semantics)
        """
        if folds < 2:
            raise ValueError(f"folds must be >= 2, got {folds}")
        self.folds = folds
        self.seed = seed
        self.n_jobs = n_jobs

    def split(self, model: Classifier, dataset: Dataset) -> List[FoldTask]:
        """Build the independent fold tasks for a model/dataset pair."""
        self._validate(dataset)
        return [
            FoldTask(fold=k, model=model.clone(), train_index=train_idx, test_index=test_idx)
            for k, (train_idx, test_idx) in enumerate(self._fold_indices(dataset))
        ]

    def _fold_indices(self, dataset: Dataset) -> List[Tuple[np.ndarray, np.ndarray]]:
        """
        (train, test) row indices per fold.

        StratifiedKFold refuses more folds than the largest class has rows. In
        that case rows are shuffled with the seed, grouped by class and dealt
        round-robin over the folds.
        """
        if int(dataset.class_counts().max()) >= self.folds:
            skf = StratifiedKFold(n_splits=self.folds, shuffle=True, random_state=self.seed)
            return list(skf.split(dataset.X, dataset.y))

        _, codes = np.unique(dataset.y, return_inverse=True)
        order = np.random.RandomState(self.seed).permutation(dataset.n_rows)
        order = order[np.argsort(codes[order], kind='stable')]
        fold_of = np.empty(dataset.n_rows, dtype=int)
        fold_of[order] = np.arange(dataset.n_rows) % self.folds
        return [
            (np.flatnonzero(fold_of != k), np.flatnonzero(fold_of == k))
            for k in range(self.folds)
        ]

    def evaluate(self, model: Classifier, dataset: Dataset) -> EvaluationResult:
        """
        Cross-validate a classifier on a dataset.

        Args:
            model: Classifier (never trained in place; each fold trains a clone)
            dataset: Dataset to evaluate on

        Returns:
            EvaluationResult

        Raises:
            InvalidDatasetError: If the dataset is empty or cannot be split into folds
            ModelTrainingError: If the classifier cannot be fit on a fold
        """
        tasks = self.split(model, dataset)
        X, y = dataset.X, dataset.y

        predictions = Parallel(n_jobs=self.n_jobs)(
            delayed(self._run_task)(task, X, y, dataset.name) for task in tasks
        )

        test_index = np.concatenate([task.test_index for task in tasks])
        y_pred = np.concatenate(predictions)

        return EvaluationResult.from_predictions(
            y[test_index], y_pred, dataset.classes,
            model_name=model.name, n_folds=self.folds, seed=self.seed
        )

    def _run_task(self, task: FoldTask, X: np.ndarray, y: np.ndarray, dataset_name: str) -> np.ndarray:
        try:
            return run_fold(task, X, y)
        except ModelTrainingError as e:
            raise ModelTrainingError(
                f"dataset '{dataset_name}', fold {task.fold + 1}/{self.folds}: {e}"
            ) from e

    def _validate(self, dataset: Dataset) -> None:
        if dataset.is_empty():
            raise InvalidDatasetError(f"Dataset '{dataset.name}' is empty")
        if dataset.n_features == 0:
            raise InvalidDatasetError(f"Dataset '{dataset.name}' has no feature columns")
        if self.folds > dataset.n_rows:
            raise InvalidDatasetError(
                f"Cannot split {dataset.n_rows} rows of '{dataset.name}' into {self.folds} folds"
            )


def cross_validate(
        model: Classifier,
        dataset: Dataset,
        folds: int = DEFAULT_FOLDS,
        seed: int = DEFAULT_SEED,
        n_jobs: int = 1
) -> EvaluationResult:
    """Evaluate a classifier on a dataset with stratified k-fold cross-validation."""
    return CrossValidator(folds=folds, seed=seed, n_jobs=n_jobs).evaluate(model, dataset)


def evaluate_classifiers(
        classifiers: Sequence[Classifier],
        dataset: Dataset,
        folds: int = DEFAULT_FOLDS,
        seed: int = DEFAULT_SEED,
        n_jobs: int = 1,
        verbose: bool = False
) -> List[EvaluationResult]:
    """
    Cross-validate a set of classifiers on a dataset.

    Returns:
        One EvaluationResult per classifier, in input order
    """
    validator = CrossValidator(folds=folds, seed=seed, n_jobs=n_jobs)
    iterator = tqdm(classifiers, desc="Cross-validating") if verbose else classifiers
    return [validator.evaluate(clf, dataset) for clf in iterator]


def select_best(results: Sequence[EvaluationResult]) -> int:
    """
    Index of the result with the highest weighted F-measure.

    Ties go to the lowest index.

    Raises:
        EmptyResultSetError: If results is empty
    """
    if len(results) == 0:
        raise EmptyResultSetError("No evaluation results to select from")
    best = 0
    for i, result in enumerate(results):
        if result.weighted_f_measure > results[best].weighted_f_measure:
            best = i
    return best
