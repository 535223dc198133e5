"""
Loss Functions
==============

Single-sample criteria scoring a network output against its target. Forward
propagation and the optimizers never call them; they exist for the gradient
oracle, which differentiates a loss with respect to the parameters.

loss_function() binds a network's layers and a criterion into the
`loss_fn(weights, biases, x, y)` callable the oracle expects.
"""

import numpy as np

from .errors import ConfigurationError
from .network import propagate


class Loss:
    """Maps (prediction, target) to a float."""

    def forward(self, prediction, target):
        raise NotImplementedError

    def __call__(self, prediction, target):
        return self.forward(prediction, target)


class CrossEntropyLoss(Loss):
    """
    Negative log-likelihood of the target class under a probability vector.

        L = -sum_i y_i * log(p_i)

    Meant to follow a softmax output layer.

    Args:
        epsilon: Probabilities are clipped to [epsilon, 1 - epsilon] before the log
    """

    def __init__(self, epsilon=1e-15):
        self.epsilon = epsilon

    def forward(self, prediction, target):
        """
        Args:
            prediction: Probability vector (any shape, flattened)
            target: One-hot vector with as many entries, or an integer class index

        Returns:
            Loss as a float
        """
        p = np.clip(np.ravel(prediction), self.epsilon, 1 - self.epsilon)
        target = np.asarray(target)

        if target.ndim == 0:
            return float(-np.log(p[int(target)]))
        return float(-np.sum(np.ravel(target) * np.log(p)))


class MSELoss(Loss):
    """Mean of squared differences, L = mean((prediction - target)^2)."""

    def forward(self, prediction, target):
        return float(np.mean((np.asarray(prediction) - np.asarray(target)) ** 2))


# ============================================================================
# Registry
# ============================================================================

LOSSES = {
    'mse': MSELoss,
    'mean_squared_error': MSELoss,
    'cross_entropy': CrossEntropyLoss,
    'crossentropy': CrossEntropyLoss,
    'ce': CrossEntropyLoss,
}


def get_loss(kind):
    """
    Resolve a criterion from a registered name or a Loss instance.

    Raises:
        ConfigurationError: if the name is not registered
    """
    if isinstance(kind, Loss):
        return kind
    if not isinstance(kind, str):
        raise ConfigurationError(f"Loss must be a name or Loss instance, got {kind!r}")

    key = kind.lower().replace('-', '_').replace(' ', '_')
    if key not in LOSSES:
        raise ConfigurationError(f"Unknown loss '{kind}'. Available: {', '.join(sorted(LOSSES))}")
    return LOSSES[key]()


def loss_function(network, criterion='mse'):
    """
    Build the loss callable consumed by a gradient oracle.

    Args:
        network: Network whose layers define the computation
        criterion: Loss name or instance

    Returns:
        loss_fn(weights, biases, x, y) -> float, evaluating the network's
        layers with the given parameters (not necessarily the network's own)

    Example:
        >>> loss_fn = loss_function(net, 'cross_entropy')
        >>> grad_w, grad_b = numerical_gradient(net.weights, net.biases, loss_fn, x, y)
    """
    criterion = get_loss(criterion)
    layers = network.layers

    def loss_fn(weights, biases, x, y):
        return criterion(propagate(layers, weights, biases, x), y)
    return loss_fn
