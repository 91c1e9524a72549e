"""
Model-Selection Pipeline

Steps:
1. Load the dataset
2. Apply filters (feature selection, PCA, row removal)
3. Sweep hyper-parameters of every candidate classifier
4. Cross-validate all candidates
5. Pick the best by weighted F-measure
6. Optionally tune a decision threshold for the winner
7. Export results and persist the final model
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Any
import pandas as pd

from data.dataset import Dataset
from data.loaders import load_dataset
from data.exporters import ResultsExporter
from analysis.filters import apply_filters
from models.classifiers import Classifier, create_classifier
from models.evaluation import EvaluationResult, evaluate_classifiers, select_best
from models.tuning import HyperparameterSweeper, TunedModel
from models.threshold import ThresholdClassifier, ThresholdOptimizer
from .config import SelectionConfig


@dataclass
class SelectionReport:
    """Everything a pipeline run produced."""
    dataset: Dataset
    classifiers: List[Classifier]
    results: List[EvaluationResult]
    best_index: int
    tuned: Dict[str, TunedModel] = field(default_factory=dict)
    threshold_model: Optional[ThresholdClassifier] = None
    output_path: Optional[str] = None

    @property
    def best_classifier(self) -> Classifier:
        return self.classifiers[self.best_index]

    @property
    def best_result(self) -> EvaluationResult:
        return self.results[self.best_index]

    @property
    def final_model(self) -> Classifier:
        """Threshold wrapper when one was tuned, otherwise the best classifier."""
        return self.threshold_model if self.threshold_model is not None else self.best_classifier

    def comparison(self) -> pd.DataFrame:
        """One row per candidate, in evaluation order."""
        rows = []
        for i, (clf, result) in enumerate(zip(self.classifiers, self.results)):
            row = result.to_dict()
            row['variant'] = clf.variant
            row['params'] = str(self.tuned[clf.name].params) if clf.name in self.tuned else ''
            row['best'] = i == self.best_index
            rows.append(row)
        return pd.DataFrame(rows)


class ModelSelectionPipeline:
    """Runs load -> filter -> tune -> evaluate -> select -> threshold."""

    def __init__(self, config: SelectionConfig):
        config.validate()
        self.config = config

    def load_data(self) -> Dataset:
        """Load the configured dataset."""
        dataset = load_dataset(self.config.data_file, label_column=self.config.label_column)
        if self.config.verbose:
            print(f"    Loaded {dataset}")
            print(f"    Class balance: {dataset.class_counts().to_dict()}")
        return dataset

    def filter_data(self, dataset: Dataset) -> Dataset:
        """Apply the configured filters in order."""
        if not self.config.filters:
            return dataset
        filtered = apply_filters(self.config.filters, dataset)
        if self.config.verbose:
            print(f"    Filtered: {dataset.n_features} -> {filtered.n_features} features, "
                  f"{dataset.n_rows} -> {filtered.n_rows} rows")
        return filtered

    def build_classifiers(self) -> List[Classifier]:
        return [
            create_classifier(variant, **self.config.classifier_params.get(variant, {}))
            for variant in self.config.classifiers
        ]

    def tune(self, classifiers: List[Classifier], dataset: Dataset) -> Dict[str, TunedModel]:
        """Sweep every classifier; overrides in config.search_spaces replace the defaults."""
        sweeper = HyperparameterSweeper(
            folds=self.config.tuning_folds,
            seed=self.config.seed,
            refit=False,
            n_jobs=self.config.n_jobs,
            verbose=self.config.verbose
        )
        return {
            clf.name: sweeper.sweep(clf, dataset, self.config.search_spaces.get(clf.variant))
            for clf in classifiers
        }

    def run(self, dataset: Optional[Dataset] = None) -> SelectionReport:
        """
        Run the complete pipeline.

        Args:
            dataset: Pre-loaded dataset (None = load config.data_file)

        Returns:
            SelectionReport
        """
        cfg = self.config

        if cfg.verbose:
            print("\n[PHASE 1] Data")
        if dataset is None:
            dataset = self.load_data()
        dataset = self.filter_data(dataset)

        classifiers = self.build_classifiers()
        tuned: Dict[str, TunedModel] = {}
        if cfg.hyperparameter_tuning:
            if cfg.verbose:
                print("\n[PHASE 2] Hyper-parameter sweep")
            tuned = self.tune(classifiers, dataset)
            classifiers = [tuned[clf.name].model for clf in classifiers]

        if cfg.verbose:
            print(f"\n[PHASE 3] {cfg.cv_folds}-fold cross-validation")
        results = evaluate_classifiers(
            classifiers, dataset, folds=cfg.cv_folds, seed=cfg.seed,
            n_jobs=cfg.n_jobs, verbose=cfg.verbose
        )
        best_index = select_best(results)
        if cfg.verbose:
            print(f"    Best: {classifiers[best_index].name} "
                  f"(weighted F = {results[best_index].weighted_f_measure:.4f})")

        threshold_model = None
        if cfg.optimize_threshold:
            if cfg.verbose:
                print("\n[PHASE 4] Decision threshold")
            optimizer = ThresholdOptimizer(
                folds=cfg.cv_folds, seed=cfg.seed, positive_class=cfg.positive_class,
                n_jobs=cfg.n_jobs, verbose=cfg.verbose
            )
            threshold_model = optimizer.optimize(classifiers[best_index], dataset, cfg.thresholds)

        return SelectionReport(
            dataset=dataset,
            classifiers=classifiers,
            results=results,
            best_index=best_index,
            tuned=tuned,
            threshold_model=threshold_model
        )

    def export(self, report: SelectionReport) -> str:
        """Write the comparison table, sweep histories and (optionally) the final model."""
        cfg = self.config
        out_dir = Path(cfg.output_dir)
        out_dir.mkdir(parents=True, exist_ok=True)

        metadata: Dict[str, Any] = {
            'dataset': report.dataset.name,
            'rows': report.dataset.n_rows,
            'features': report.dataset.n_features,
            'cv_folds': cfg.cv_folds,
            'seed': cfg.seed,
            'best_model': report.best_classifier.name,
        }
        if report.threshold_model is not None:
            metadata['threshold'] = report.threshold_model.threshold
            metadata['threshold_weighted_f_measure'] = report.threshold_model.result.weighted_f_measure

        exporter = ResultsExporter(
            str(out_dir / 'model_selection'), format=cfg.export_format, verbose=cfg.verbose
        )
        report.output_path = exporter.export(
            report.comparison(),
            {name: t.history_frame() for name, t in report.tuned.items()},
            metadata
        )

        if cfg.save_model:
            final = report.final_model
            if not final.is_trained:
                final = final.clone().train(
                    report.dataset.X, report.dataset.y, report.dataset.feature_names
                )
            model_path = out_dir / f"{report.best_classifier.variant}.joblib"
            final.save(str(model_path))
            if cfg.verbose:
                print(f"    Model saved to: {model_path}")

        return report.output_path
