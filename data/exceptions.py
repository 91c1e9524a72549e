"""
Exceptions

Error taxonomy shared by the data, analysis and model layers.
"""


class ModelSelectionError(Exception):
    """Base class for all toolkit errors."""
    pass


class ParseError(ModelSelectionError, ValueError):
    """A dataset file could not be parsed."""
    pass


class InvalidDatasetError(ModelSelectionError, ValueError):
    """Dataset is empty, malformed, or has no usable label column."""
    pass


class ModelTrainingError(ModelSelectionError, ValueError):
    """A model could not be fit to the given data or parameter combination."""
    pass


class UnsupportedModelError(ModelSelectionError, ValueError):
    """No search space is declared for a model variant."""
    pass


class EmptyCandidateSetError(ModelSelectionError, ValueError):
    """Caller supplied no candidate thresholds."""
    pass


class EmptyResultSetError(ModelSelectionError, ValueError):
    """Caller supplied no evaluation results."""
    pass
