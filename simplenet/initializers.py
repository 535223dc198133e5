"""
Parameter Distributions
=======================

Samplers used by create_network() to fill weights and biases.

A distribution is any callable `distribution(shape) -> np.ndarray`; every entry
is drawn independently from the same law. The factories below cover the usual
cases and take an optional seed for reproducible networks.
"""

import numpy as np


def normal(mean=0.0, std=1.0, seed=None):
    """
    Gaussian samples N(mean, std^2).

    Example:
        >>> sample = normal(seed=0)
        >>> sample((2, 3)).shape
        (2, 3)
    """
    rng = np.random.default_rng(seed)

    def sample(shape):
        return rng.normal(mean, std, size=shape)
    return sample


def uniform(low=-1.0, high=1.0, seed=None):
    """Uniform samples on [low, high)."""
    rng = np.random.default_rng(seed)

    def sample(shape):
        return rng.uniform(low, high, size=shape)
    return sample


def constant(value=0.0):
    """Every entry equals `value`. Handy for deterministic tests."""
    def sample(shape):
        return np.full(shape, value, dtype=np.float64)
    return sample
