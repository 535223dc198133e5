"""
Optimizers
==========

Optimizers update network parameters from externally computed gradients.
Each optimizer is a small state machine: it holds its hyperparameters, a step
counter `t`, and accumulators shaped exactly like the network's weight and
bias sequences.

This module implements:
- SGD: plain gradient descent
- Momentum: gradient descent with a velocity term
- RMSProp: per-parameter step scaled by a running average of squared gradients
- Adam: first and second moment estimates with bias correction

All updates are elementwise and happen in place on the parameter arrays.
"""

import logging

import numpy as np

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


def _is_number(value):
    return isinstance(value, (int, float, np.number)) and not isinstance(value, bool)


def _positive(name, value):
    if not _is_number(value) or not value > 0:
        raise ConfigurationError(f"{name} must be positive, got {value!r}")
    return float(value)


def _decay_rate(name, value):
    if not _is_number(value) or not 0 <= value < 1:
        raise ConfigurationError(f"{name} must lie in [0, 1), got {value!r}")
    return float(value)


def _zeros_like(params):
    return [np.zeros_like(param) for param in params]


class Optimizer:
    """
    Base class for optimizers.

    Subclasses list their constructor keywords in `hyperparameters`; those are
    the only names optimizer_setup() accepts as overrides.
    """

    hyperparameters = ()

    def __init__(self):
        self.t = 0

    def initialize(self, weights, biases):
        """Allocate zeroed accumulators matching the given parameters."""
        self.t = 0
        self._allocate(weights, biases)
        logger.debug("Initialized %s for %d layers", type(self).__name__, len(weights))

    def _allocate(self, weights, biases):
        pass

    def step(self, weights, biases, grad_w, grad_b):
        """
        Apply one update in place.

        Args:
            weights: Per-layer weight arrays (mutated)
            biases: Per-layer bias arrays (mutated)
            grad_w: Per-layer weight gradients, shapes already validated
            grad_b: Per-layer bias gradients, shapes already validated
        """
        raise NotImplementedError

    def reset(self):
        """Zero the accumulators and the step counter."""
        self.t = 0
        for value in vars(self).values():
            if isinstance(value, list):
                for accumulator in value:
                    accumulator.fill(0)

    def get_config(self):
        """Hyperparameters as a dict."""
        return {name: getattr(self, name) for name in self.hyperparameters}

    def __repr__(self):
        args = ', '.join(f"{name}={value}" for name, value in self.get_config().items())
        return f"{type(self).__name__}({args})"


class SGD(Optimizer):
    """
    Plain gradient descent.

        w <- w - learning_rate * grad

    Args:
        learning_rate: Step size (default: 0.01)
    """

    hyperparameters = ('learning_rate',)

    def __init__(self, learning_rate=0.01):
        super().__init__()
        self.learning_rate = _positive('learning_rate', learning_rate)

    def step(self, weights, biases, grad_w, grad_b):
        self.t += 1
        for params, grads in ((weights, grad_w), (biases, grad_b)):
            for param, grad in zip(params, grads):
                param -= self.learning_rate * grad


class Momentum(Optimizer):
    """
    Gradient descent with momentum.

        v <- gamma * v + learning_rate * grad
        w <- w - v

    The velocity keeps moving the parameters in directions that gradients
    agree on across steps, damping oscillation.

    Args:
        learning_rate: Step size (default: 0.01)
        gamma: Velocity decay (default: 0.9)
    """

    hyperparameters = ('learning_rate', 'gamma')

    def __init__(self, learning_rate=0.01, gamma=0.9):
        super().__init__()
        self.learning_rate = _positive('learning_rate', learning_rate)
        self.gamma = _decay_rate('gamma', gamma)
        self.velocity_w = []
        self.velocity_b = []

    def _allocate(self, weights, biases):
        self.velocity_w = _zeros_like(weights)
        self.velocity_b = _zeros_like(biases)

    def step(self, weights, biases, grad_w, grad_b):
        self.t += 1
        self._update(weights, grad_w, self.velocity_w)
        self._update(biases, grad_b, self.velocity_b)

    def _update(self, params, grads, velocity):
        for param, grad, v in zip(params, grads, velocity):
            v *= self.gamma
            v += self.learning_rate * grad
            param -= v


class RMSProp(Optimizer):
    """
    RMSProp optimizer.

        accum <- decay * accum + (1 - decay) * grad^2
        w <- w - learning_rate * grad / sqrt(accum + epsilon)

    Args:
        learning_rate: Step size (default: 0.01)
        decay: Moving average factor for squared gradients (default: 0.9)
        epsilon: Small constant for numerical stability (default: 1e-8)
    """

    hyperparameters = ('learning_rate', 'decay', 'epsilon')

    def __init__(self, learning_rate=0.01, decay=0.9, epsilon=1e-8):
        super().__init__()
        self.learning_rate = _positive('learning_rate', learning_rate)
        self.decay = _decay_rate('decay', decay)
        self.epsilon = _positive('epsilon', epsilon)
        self.accum_w = []
        self.accum_b = []

    def _allocate(self, weights, biases):
        self.accum_w = _zeros_like(weights)
        self.accum_b = _zeros_like(biases)

    def step(self, weights, biases, grad_w, grad_b):
        self.t += 1
        self._update(weights, grad_w, self.accum_w)
        self._update(biases, grad_b, self.accum_b)

    def _update(self, params, grads, accum):
        for param, grad, a in zip(params, grads, accum):
            a *= self.decay
            a += (1 - self.decay) * grad ** 2
            param -= self.learning_rate * grad / np.sqrt(a + self.epsilon)


class Adam(Optimizer):
    """
    Adam (Adaptive Moment Estimation) optimizer.

    Combines momentum (running average of gradients) with RMSProp (running
    average of squared gradients):

        m <- beta1 * m + (1 - beta1) * grad
        v <- beta2 * v + (1 - beta2) * grad^2
        m_hat = m / (1 - beta1^t)
        v_hat = v / (1 - beta2^t)
        w <- w - step_size * m_hat / (sqrt(v_hat) + epsilon)

    `t` counts applied updates, so the bias correction fades as training
    proceeds. On the first step it equals dividing by (1 - beta).

    Args:
        step_size: Step size (default: 0.01)
        beta1: Decay rate for first moment (default: 0.9)
        beta2: Decay rate for second moment (default: 0.999)
        epsilon: Small constant for numerical stability (default: 1e-8)
    """

    hyperparameters = ('step_size', 'beta1', 'beta2', 'epsilon')

    def __init__(self, step_size=0.01, beta1=0.9, beta2=0.999, epsilon=1e-8):
        super().__init__()
        self.step_size = _positive('step_size', step_size)
        self.beta1 = _decay_rate('beta1', beta1)
        self.beta2 = _decay_rate('beta2', beta2)
        self.epsilon = _positive('epsilon', epsilon)
        self.m_w = []
        self.v_w = []
        self.m_b = []
        self.v_b = []

    def _allocate(self, weights, biases):
        self.m_w = _zeros_like(weights)
        self.v_w = _zeros_like(weights)
        self.m_b = _zeros_like(biases)
        self.v_b = _zeros_like(biases)

    def step(self, weights, biases, grad_w, grad_b):
        self.t += 1
        self._update(weights, grad_w, self.m_w, self.v_w)
        self._update(biases, grad_b, self.m_b, self.v_b)

    def _update(self, params, grads, first_moments, second_moments):
        correction1 = 1 - self.beta1 ** self.t
        correction2 = 1 - self.beta2 ** self.t

        for param, grad, m, v in zip(params, grads, first_moments, second_moments):
            # Update biased first moment estimate
            m *= self.beta1
            m += (1 - self.beta1) * grad

            # Update biased second raw moment estimate
            v *= self.beta2
            v += (1 - self.beta2) * grad ** 2

            m_hat = m / correction1
            v_hat = v / correction2

            param -= self.step_size * m_hat / (np.sqrt(v_hat) + self.epsilon)


# Optimizer registry
OPTIMIZERS = {
    'sgd': SGD,
    'gradient_descent': SGD,
    'momentum': Momentum,
    'rmsprop': RMSProp,
    'adam': Adam,
}


def get_optimizer(kind, **overrides):
    """
    Build an optimizer with its defaults, replacing the named hyperparameters.

    Args:
        kind: Registered name ('sgd', 'momentum', 'rmsprop', 'adam'), an
            Optimizer subclass, or an Optimizer instance used as a template
            (its hyperparameters are copied; its state is not)
        **overrides: Hyperparameter values, e.g. learning_rate=0.1

    Returns:
        Optimizer instance (accumulators not yet allocated)

    Raises:
        ConfigurationError: unknown kind, or an override the optimizer
            does not define
    """
    if isinstance(kind, Optimizer):
        if overrides:
            raise ConfigurationError("Overrides cannot be applied to an optimizer instance")
        return type(kind)(**kind.get_config())

    if isinstance(kind, type) and issubclass(kind, Optimizer):
        cls = kind
    elif isinstance(kind, str) and kind.lower().replace('-', '_') in OPTIMIZERS:
        cls = OPTIMIZERS[kind.lower().replace('-', '_')]
    else:
        raise ConfigurationError(f"Unknown optimizer '{kind}'. Available: {list(OPTIMIZERS.keys())}")

    unknown = sorted(set(overrides) - set(cls.hyperparameters))
    if unknown:
        raise ConfigurationError(
            f"{cls.__name__} has no hyperparameter(s) {unknown}. "
            f"Available: {list(cls.hyperparameters)}")

    return cls(**overrides)
