"""
Neural Network Classifier

Multi-Layer Perceptron trained with momentum SGD.
"""

from typing import Tuple, Union
import numpy as np
from sklearn.neural_network import MLPClassifier
from sklearn.preprocessing import StandardScaler
from .classifiers import Classifier, RANDOM_STATE


class NeuralNetworkClassifier(Classifier):
    """
    Feed-forward Neural Network (Multi-Layer Perceptron).

    Includes automatic internal scaling, as NNs require standardized inputs.
    Uses the 'sgd' solver so that learning rate and momentum are both tunable.
    """

    variant = 'neural_network'

    def __init__(
            self,
            hidden_layer_sizes: Union[int, Tuple[int, ...]] = (100,),
            activation: str = 'logistic',
            learning_rate_init: float = 0.3,
            momentum: float = 0.2,
            alpha: float = 0.0001,
            max_iter: int = 500,
            **kwargs
    ):
        """
        Initialize Neural Network.

        Args:
            hidden_layer_sizes: Tuple determining architecture (e.g., (100, 50) for 2 layers)
            activation: 'identity', 'logistic', 'tanh', 'relu'
            learning_rate_init: SGD learning rate
            momentum: SGD momentum
            alpha: L2 penalty (regularization term) parameter
        """
        super().__init__("NeuralNetwork", MLPClassifier(
            hidden_layer_sizes=hidden_layer_sizes,
            activation=activation,
            solver='sgd',
            learning_rate_init=learning_rate_init,
            momentum=momentum,
            alpha=alpha,
            max_iter=max_iter,
            random_state=RANDOM_STATE,
            **kwargs
        ))
        self.scaler = StandardScaler()

    def _fit(self, X: np.ndarray, y: np.ndarray) -> None:
        X_scaled = self.scaler.fit_transform(X)
        self.model.fit(X_scaled, y)

    def clone(self) -> 'NeuralNetworkClassifier':
        new = super().clone()
        new.scaler = StandardScaler()
        return new

    def predict(self, X: np.ndarray) -> np.ndarray:
        """Predict classes using scaled data."""
        if not self.is_trained:
            raise ValueError("Model not trained")
        return self.model.predict(self.scaler.transform(X))

    def predict_proba(self, X: np.ndarray) -> np.ndarray:
        """Predict probabilities using scaled data."""
        if not self.is_trained:
            raise ValueError("Model not trained")
        return self.model.predict_proba(self.scaler.transform(X))
