"""Models Package - Classifier wrappers, evaluation, tuning, threshold selection"""

from .classifiers import (
    Classifier,
    AdaBoostClassifier,
    BaggingClassifier,
    DecisionTreeClassifier,
    PrunedTreeClassifier,
    GradientBoostingClassifier,
    SVMClassifier,
    KNNClassifier,
    RandomForestClassifier,
    LogisticRegressionClassifier,
    available_variants,
    create_classifier
)
from .neural_network import NeuralNetworkClassifier
from .evaluation import (
    EvaluationResult,
    CrossValidator,
    cross_validate,
    evaluate_classifiers,
    select_best
)
from .tuning import (
    ParameterRange,
    SEARCH_SPACES,
    TunedModel,
    HyperparameterSweeper,
    optimize_classifiers
)
from .threshold import (
    ThresholdClassifier,
    ThresholdOptimizer,
    optimize_threshold
)

__all__ = [
    # Classifiers
    'Classifier',
    'AdaBoostClassifier',
    'BaggingClassifier',
    'DecisionTreeClassifier',
    'PrunedTreeClassifier',
    'GradientBoostingClassifier',
    'SVMClassifier',
    'KNNClassifier',
    'RandomForestClassifier',
    'LogisticRegressionClassifier',
    'NeuralNetworkClassifier',
    'available_variants',
    'create_classifier',

    # Evaluation
    'EvaluationResult',
    'CrossValidator',
    'cross_validate',
    'evaluate_classifiers',
    'select_best',

    # Tuning
    'ParameterRange',
    'SEARCH_SPACES',
    'TunedModel',
    'HyperparameterSweeper',
    'optimize_classifiers',

    # Threshold selection
    'ThresholdClassifier',
    'ThresholdOptimizer',
    'optimize_threshold',
]
