"""
Activation Functions
====================

Non-linear functions applied to the pre-activation `z = W·a + b` of Dense and
Conv2D layers. A layer picks its activation by name when it is built and keeps
it for life.

Registered names:
- identity (aliases: linear, none): z
- sigmoid: 1 / (1 + exp(-z))
- relu: max(0, z)
- tanh: tanh(z)
- leaky_relu: z where z > 0, alpha * z elsewhere
- softmax: exp(z_i) / sum_j exp(z_j), normalized over the whole array
"""

import numpy as np

from .errors import ConfigurationError


class Activation:
    """Elementwise (or whole-array) map from pre-activations to activations."""

    name = None

    def forward(self, z):
        raise NotImplementedError

    def __call__(self, z):
        return self.forward(z)

    def __repr__(self):
        return f"{type(self).__name__}()"


class Identity(Activation):
    """Passes pre-activations through; the layer emits raw scores."""

    name = 'identity'

    def forward(self, z):
        return z


class Sigmoid(Activation):
    """
    Logistic function, output in (0, 1).

    Inputs are clipped to [-500, 500] so exp(-z) cannot overflow.
    """

    name = 'sigmoid'

    def forward(self, z):
        z = np.clip(z, -500, 500)
        return 1.0 / (1.0 + np.exp(-z))


class ReLU(Activation):
    name = 'relu'

    def forward(self, z):
        return np.maximum(0, z)


class Tanh(Activation):
    name = 'tanh'

    def forward(self, z):
        return np.tanh(z)


class LeakyReLU(Activation):
    """
    ReLU with a small slope on the negative side.

    Args:
        alpha: Negative-side slope (default: 0.01)
    """

    name = 'leaky_relu'

    def __init__(self, alpha=0.01):
        self.alpha = alpha

    def forward(self, z):
        return np.where(z > 0, z, self.alpha * z)

    def __repr__(self):
        return f"LeakyReLU(alpha={self.alpha})"


class Softmax(Activation):
    """
    Normalized exponential over every element it receives.

    The result is non-negative and sums to 1. Dense layers pass the whole
    output vector; Conv2D layers pass one feature map at a time.

    The maximum is subtracted before exponentiating; the shift cancels in the
    ratio, and the largest exponent becomes exp(0) = 1.
    """

    name = 'softmax'

    def forward(self, z):
        e = np.exp(z - np.max(z))
        return e / np.sum(e)


# ============================================================================
# Registry
# ============================================================================

ACTIVATIONS = {
    'identity': Identity,
    'linear': Identity,
    'none': Identity,
    'sigmoid': Sigmoid,
    'relu': ReLU,
    'tanh': Tanh,
    'leaky_relu': LeakyReLU,
    'leakyrelu': LeakyReLU,
    'softmax': Softmax,
}


def get_activation(kind):
    """
    Resolve a layer's activation.

    Args:
        kind: Registered name (case-insensitive, '-' accepted for '_'), an
            Activation instance, or None for identity

    Returns:
        Activation instance

    Raises:
        ConfigurationError: if the name is not registered

    Example:
        >>> get_activation('relu')(np.array([-1.0, 0.0, 1.0]))
        array([0., 0., 1.])
    """
    if isinstance(kind, Activation):
        return kind
    if kind is None:
        return Identity()
    if not isinstance(kind, str):
        raise ConfigurationError(f"Activation must be a name or Activation instance, got {kind!r}")

    key = kind.lower().replace('-', '_')
    if key not in ACTIVATIONS:
        raise ConfigurationError(
            f"Unknown activation '{kind}'. Available: {', '.join(sorted(ACTIVATIONS))}")
    return ACTIVATIONS[key]()
