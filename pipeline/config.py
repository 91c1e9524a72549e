"""
Pipeline Configuration

Dataclass holding every setting of a model-selection run, with YAML
round-tripping.
"""

from dataclasses import dataclass, field, asdict, fields
from pathlib import Path
from typing import List, Dict, Optional, Any, Union
import yaml

from models.classifiers import available_variants

EXPORT_FORMATS = ('csv', 'excel')


@dataclass
class SelectionConfig:
    """Configuration for the model-selection pipeline."""

    # Data
    data_file: str = ''
    label_column: Optional[Union[str, int]] = None  # None = last column
    output_dir: str = "results"

    # Filters, applied in order (see analysis.filters)
    filters: List[Dict[str, Any]] = field(default_factory=list)

    # Candidate classifiers: variant tags plus optional constructor arguments
    classifiers: List[str] = field(default_factory=lambda: ['decision_tree', 'knn', 'random_forest'])
    classifier_params: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    # Tuning
    hyperparameter_tuning: bool = True
    search_spaces: Dict[str, Dict[str, List[float]]] = field(default_factory=dict)  # variant -> {param: [lower, upper, steps]}
    tuning_folds: int = 10

    # Evaluation
    cv_folds: int = 10
    seed: int = 1
    n_jobs: int = 1

    # Threshold selection
    optimize_threshold: bool = False
    thresholds: List[float] = field(default_factory=lambda: [0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9])
    positive_class: Optional[Any] = None

    # Output
    export_format: str = 'csv'
    save_model: bool = False
    verbose: bool = True

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> 'SelectionConfig':
        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ValueError(f"Unknown configuration keys: {sorted(unknown)}")
        config = cls(**values)
        config.validate()
        return config

    @classmethod
    def from_yaml(cls, filepath: str) -> 'SelectionConfig':
        """Load configuration from YAML file."""
        path = Path(filepath)
        if not path.exists():
            raise FileNotFoundError(f"Config not found: {path}")
        with open(path, 'r') as f:
            values = yaml.safe_load(f) or {}
        if not isinstance(values, dict):
            raise ValueError(f"{path.name}: top level must be a mapping")
        return cls.from_dict(values)

    def to_yaml(self, filepath: str) -> None:
        """Save configuration to YAML file."""
        with open(filepath, 'w') as f:
            yaml.safe_dump(asdict(self), f, sort_keys=False)

    def validate(self) -> None:
        """Validate configuration parameters."""
        for key in ("cv_folds", "tuning_folds"):
            value = getattr(self, key)
            if isinstance(value, bool) or not isinstance(value, int) or value < 2:
                raise ValueError(f"{key} must be an integer >= 2, got {value!r}")
        if not self.classifiers:
            raise ValueError("At least one classifier is required")

        variants = available_variants()
        unknown = [c for c in self.classifiers if c not in variants]
        if unknown:
            raise ValueError(f"Unknown classifiers {unknown}. Available: {variants}")
        if len(set(self.classifiers)) != len(self.classifiers):
            raise ValueError(f"Duplicate classifiers in {self.classifiers}")

        for variant, ranges in self.search_spaces.items():
            for name, spec in ranges.items():
                if len(spec) != 3:
                    raise ValueError(
                        f"search_spaces.{variant}.{name} must be [lower, upper, steps], got {spec}"
                    )

        if self.optimize_threshold:
            if not self.thresholds:
                raise ValueError("thresholds must not be empty when optimize_threshold is set")
            bad = [
                t for t in self.thresholds
                if isinstance(t, bool) or not isinstance(t, (int, float)) or not 0.0 <= t <= 1.0
            ]
            if bad:
                raise ValueError(f"thresholds must be numbers in [0, 1], got {bad}")

        if self.export_format not in EXPORT_FORMATS:
            raise ValueError(f"export_format must be one of {EXPORT_FORMATS}, got '{self.export_format}'")
