"""
Hyper-parameter Tuning

Exhaustive grid search over declarative parameter ranges, scored by
cross-validated weighted F-measure.

Each classifier variant has a default search space in SEARCH_SPACES.
Ranges may have data-dependent bounds (resolved against the dataset
before the grid is built) and may apply only to some configurations of
a variant (e.g. SVM gamma only for the RBF kernel).
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union
import itertools
import numpy as np
import pandas as pd
from tqdm import tqdm

from data.dataset import Dataset
from data.exceptions import ModelTrainingError, UnsupportedModelError
from .classifiers import Classifier
from .evaluation import CrossValidator, EvaluationResult, DEFAULT_FOLDS, DEFAULT_SEED

Bound = Union[float, Callable[[Dataset], float]]


@dataclass(frozen=True)
class ParameterRange:
    """
    Closed interval swept at `steps` evenly spaced points.

    Attributes:
        name: Estimator parameter name
        lower: Lower bound, or a callable computing it from the dataset
        upper: Upper bound, or a callable computing it from the dataset
        steps: Number of points; a single step uses only the lower bound
        integer: Round points to integers (duplicates after rounding are dropped)
        when: Optional predicate; the range is skipped for models it rejects
    """
    name: str
    lower: Bound
    upper: Bound
    steps: int
    integer: bool = False
    when: Optional[Callable[[Classifier], bool]] = None

    def resolve(self, dataset: Optional[Dataset] = None) -> Tuple[float, float]:
        """Concrete (lower, upper) bounds for a dataset."""
        bounds = []
        for bound in (self.lower, self.upper):
            if callable(bound):
                if dataset is None:
                    raise ValueError(f"Range '{self.name}' has a data-dependent bound; a dataset is required")
                bound = bound(dataset)
            bounds.append(float(bound))
        return bounds[0], bounds[1]

    def values(self, dataset: Optional[Dataset] = None) -> List[Union[int, float]]:
        """Discretised points of the range, in increasing order."""
        if self.steps < 1:
            raise ValueError(f"Range '{self.name}' needs at least one step, got {self.steps}")
        lower, upper = self.resolve(dataset)
        if upper < lower:
            raise ValueError(f"Range '{self.name}' is empty: [{lower}, {upper}]")

        if self.steps == 1:
            points = np.array([lower])
        else:
            points = np.clip(np.linspace(lower, upper, self.steps), lower, upper)

        values = []
        for p in points:
            v = int(np.floor(p + 0.5)) if self.integer else float(round(p, 10))
            if v not in values:
                values.append(v)
        return values

    def applies_to(self, model: Classifier) -> bool:
        return self.when is None or bool(self.when(model))


def _uses_rbf_kernel(model: Classifier) -> bool:
    return model.get_params().get('kernel') == 'rbf'


def _max_features_bound(dataset: Dataset) -> int:
    return max(1, min(20, dataset.n_features))


def _neighbors_bound(dataset: Dataset) -> int:
    # Smallest possible training fold holds half the rows
    return max(1, min(20, dataset.n_rows // 2))


SEARCH_SPACES: Dict[str, Tuple[ParameterRange, ...]] = {
    'adaboost': (
        ParameterRange('n_estimators', 50, 250, 5, integer=True),
    ),
    'bagging': (
        ParameterRange('max_samples', 0.5, 1.0, 3),
        ParameterRange('n_estimators', 10, 50, 5, integer=True),
    ),
    'decision_tree': (
        ParameterRange('min_samples_leaf', 2, 10, 9, integer=True),
    ),
    'pruned_tree': (
        ParameterRange('ccp_alpha', 0.0, 0.04, 5),
        ParameterRange('min_samples_leaf', 1, 20, 5, integer=True),
    ),
    'gradient_boosting': (
        ParameterRange('n_estimators', 10, 50, 5, integer=True),
        ParameterRange('learning_rate', 0.1, 1.0, 10),
    ),
    'knn': (
        ParameterRange('n_neighbors', 1, _neighbors_bound, 20, integer=True),
    ),
    'logistic_regression': (
        ParameterRange('C', 0.1, 10.1, 6),
    ),
    'neural_network': (
        ParameterRange('learning_rate_init', 0.1, 0.5, 5),
        ParameterRange('momentum', 0.1, 0.5, 5),
    ),
    'random_forest': (
        ParameterRange('n_estimators', 5, 20, 4, integer=True),
        ParameterRange('max_features', 1, _max_features_bound, 4, integer=True),
    ),
    'svm': (
        ParameterRange('C', 0.1, 10.1, 10),
        ParameterRange('gamma', 0.01, 1.01, 10, when=_uses_rbf_kernel),
    ),
}


RangeSpec = Union[ParameterRange, Tuple[Any, ...]]


def as_parameter_range(name: str, spec: RangeSpec) -> ParameterRange:
    """
    Normalise a range specification.

    Accepts a ParameterRange or a (lower, upper, steps) tuple; a tuple with
    integer bounds is swept over integers.
    """
    if isinstance(spec, ParameterRange):
        return spec
    if len(spec) != 3:
        raise ValueError(f"Range for '{name}' must be (lower, upper, steps), got {spec}")
    lower, upper, steps = spec
    integer = all(
        isinstance(b, (int, np.integer)) and not isinstance(b, bool)
        for b in (lower, upper)
    )
    return ParameterRange(name, lower, upper, int(steps), integer=integer)


@dataclass
class TunedModel:
    """
    Outcome of a sweep.

    Attributes:
        model: New classifier configured with the winning parameters
        params: Winning parameter assignment
        result: Cross-validation result of the winning point
        history: One entry per grid point tried, in sweep order
        completed: False if the sweep was stopped early
    """
    model: Classifier
    params: Dict[str, Any]
    result: EvaluationResult
    history: List[Dict[str, Any]] = field(default_factory=list)
    completed: bool = True

    def history_frame(self) -> pd.DataFrame:
        """Tried grid points as a table: param_<name> columns + weighted_f_measure."""
        rows = []
        for entry in self.history:
            row = {f"param_{k}": v for k, v in entry['params'].items()}
            row['weighted_f_measure'] = entry['weighted_f_measure']
            rows.append(row)
        return pd.DataFrame(rows)


class HyperparameterSweeper:
    """Grid-search tuner using stratified cross-validation."""

    def __init__(
            self,
            folds: int = DEFAULT_FOLDS,
            seed: int = DEFAULT_SEED,
            search_spaces: Optional[Mapping[str, Sequence[ParameterRange]]] = None,
            refit: bool = True,
            n_jobs: int = 1,
            verbose: bool = False
    ):
        """
        Args:
            folds: Cross-validation folds per grid point
            seed: Fold assignment seed
            search_spaces: Variant tag -> default ranges (defaults to SEARCH_SPACES)
            refit: Train the winning configuration on the full dataset
            n_jobs: Folds trained in parallel per grid point
            verbose: Print progress
        """
        self.validator = CrossValidator(folds=folds, seed=seed, n_jobs=n_jobs)
        self.search_spaces = dict(SEARCH_SPACES if search_spaces is None else search_spaces)
        self.refit = refit
        self.verbose = verbose

    def search_space(self, model: Classifier) -> List[ParameterRange]:
        """Default ranges declared for the model's variant."""
        if model.variant not in self.search_spaces:
            raise UnsupportedModelError(
                f"No search space declared for {model.name} (variant '{model.variant}')"
            )
        return list(self.search_spaces[model.variant])

    def grid(
            self,
            model: Classifier,
            dataset: Dataset,
            parameter_ranges: Optional[Mapping[str, RangeSpec]] = None
    ) -> List[Dict[str, Any]]:
        """
        All grid points, first range outermost.

        Data-dependent bounds are resolved against the dataset and ranges
        that do not apply to the model are dropped.
        """
        if parameter_ranges is None:
            ranges = self.search_space(model)
        else:
            ranges = [as_parameter_range(name, spec) for name, spec in parameter_ranges.items()]
        ranges = [r for r in ranges if r.applies_to(model)]

        names = [r.name for r in ranges]
        axes = [r.values(dataset) for r in ranges]
        return [dict(zip(names, point)) for point in itertools.product(*axes)]

    def sweep(
            self,
            model: Classifier,
            dataset: Dataset,
            parameter_ranges: Optional[Mapping[str, RangeSpec]] = None,
            should_stop: Optional[Callable[[], bool]] = None
    ) -> TunedModel:
        """
        Find the best parameter assignment for a classifier.

        Args:
            model: Classifier to tune (left untouched)
            dataset: Dataset to cross-validate on
            parameter_ranges: Parameter name -> range; None uses the variant's default space
            should_stop: Checked after every grid point; returning True ends the sweep

        Returns:
            TunedModel holding a new configured classifier

        Raises:
            UnsupportedModelError: If no ranges are given and the variant has no search space
            ModelTrainingError: If any grid point fails to train
        """
        points = self.grid(model, dataset, parameter_ranges)

        if self.verbose:
            print(f"Tuning {model.name} over {len(points)} grid points...")

        best_params: Optional[Dict[str, Any]] = None
        best_result: Optional[EvaluationResult] = None
        history = []
        completed = True

        iterator = tqdm(points, desc=f"Sweeping {model.name}") if self.verbose else points
        for i, point in enumerate(iterator):
            candidate = model.with_params(**point)
            try:
                result = self.validator.evaluate(candidate, dataset)
            except ModelTrainingError as e:
                raise ModelTrainingError(f"{model.name} at grid point {point}: {e}") from e

            history.append({'params': dict(point), 'weighted_f_measure': result.weighted_f_measure})
            if best_result is None or result.weighted_f_measure > best_result.weighted_f_measure:
                best_params, best_result = dict(point), result

            if should_stop is not None and i < len(points) - 1 and should_stop():
                completed = False
                if self.verbose:
                    print(f"  Sweep of {model.name} stopped after {i + 1}/{len(points)} points")
                break

        tuned = model.with_params(**best_params)
        if self.refit:
            tuned.train(dataset.X, dataset.y, dataset.feature_names)

        if self.verbose:
            print(f"  Best {model.name}: {best_params} (weighted F = {best_result.weighted_f_measure:.4f})")

        return TunedModel(
            model=tuned, params=best_params, result=best_result,
            history=history, completed=completed
        )


def optimize_classifiers(
        classifiers: Sequence[Classifier],
        dataset: Dataset,
        folds: int = DEFAULT_FOLDS,
        seed: int = DEFAULT_SEED,
        n_jobs: int = 1,
        verbose: bool = False
) -> List[TunedModel]:
    """
    Sweep every classifier over its variant's default search space.

    Returns:
        One TunedModel per classifier, in input order
    """
    sweeper = HyperparameterSweeper(folds=folds, seed=seed, n_jobs=n_jobs, verbose=verbose)
    return [sweeper.sweep(clf, dataset) for clf in classifiers]
