"""
Pooling Operators
=================

Reductions applied to each sliding window of a Pool2D layer.

Each operator reduces the last two axes of a window array and knows the value
used to pad the input border, chosen so padding never wins the reduction
(except for mean, which counts padded zeros like a zero-padded convolution).
"""

import numpy as np

from .errors import ConfigurationError


class PoolOp:
    """Base class for pooling operators."""

    name = None
    pad_value = 0.0

    def reduce(self, windows):
        """Reduce windows of shape (..., k, k) to shape (...)."""
        raise NotImplementedError

    def __call__(self, windows):
        return self.reduce(windows)

    def __repr__(self):
        return f"{type(self).__name__}()"


class MaxPool(PoolOp):
    """Keep the strongest activation in each window."""

    name = 'max'
    pad_value = -np.inf

    def reduce(self, windows):
        return np.max(windows, axis=(-2, -1))


class MeanPool(PoolOp):
    """Average of each window."""

    name = 'mean'
    pad_value = 0.0

    def reduce(self, windows):
        return np.mean(windows, axis=(-2, -1))


class MinPool(PoolOp):
    name = 'min'
    pad_value = np.inf

    def reduce(self, windows):
        return np.min(windows, axis=(-2, -1))


POOL_OPS = {
    'max': MaxPool,
    'mean': MeanPool,
    'avg': MeanPool,
    'average': MeanPool,
    'min': MinPool,
}


def get_pool_op(name):
    """
    Get pooling operator by name.

    Args:
        name: 'max', 'mean' ('avg', 'average') or 'min', or a PoolOp instance

    Returns:
        PoolOp instance

    Raises:
        ConfigurationError: if the name is not registered
    """
    if isinstance(name, PoolOp):
        return name

    if not isinstance(name, str):
        raise ConfigurationError(f"Pool operator must be a name or PoolOp instance, got {name!r}")

    name_lower = name.lower()
    if name_lower not in POOL_OPS:
        available = ', '.join(POOL_OPS.keys())
        raise ConfigurationError(f"Unknown pool operator '{name}'. Available: {available}")

    return POOL_OPS[name_lower]()
