"""
Reference Gradient Oracle
=========================

Networks never differentiate anything themselves; Network.step() and update()
take gradients from an external oracle with the signature

    gradient_fn(weights, biases, loss_fn, x, y) -> (grad_w, grad_b)

This module provides one such oracle based on centered finite differences:

    f'(w) ≈ (f(w + ε) - f(w - ε)) / (2ε)

It costs two forward passes per parameter, so it is meant for small networks,
tests and checking other oracles, not for training real models.
"""

import numpy as np


def _perturbation_gradient(f, params, epsilon):
    """
    Numerical gradient of f with respect to every array in params.

    Entries of `params` are perturbed in place and restored afterwards.
    """
    grads = []
    for param in params:
        grad = np.zeros_like(param)

        it = np.nditer(param, flags=['multi_index', 'zerosize_ok'])
        while not it.finished:
            idx = it.multi_index
            original = param[idx]

            # f(w + epsilon)
            param[idx] = original + epsilon
            loss_plus = f()

            # f(w - epsilon)
            param[idx] = original - epsilon
            loss_minus = f()

            # Restore
            param[idx] = original

            # Centered difference
            grad[idx] = (loss_plus - loss_minus) / (2 * epsilon)

            it.iternext()

        grads.append(grad)
    return grads


def numerical_gradient(weights, biases, loss_fn, x, y, epsilon=1e-5):
    """
    Gradients of loss_fn(weights, biases, x, y) by centered finite differences.

    Works on float64 copies, so the caller's arrays are never touched and
    float32 networks still get accurate estimates.

    Args:
        weights: Per-layer weight arrays
        biases: Per-layer bias arrays
        loss_fn: Callable loss_fn(weights, biases, x, y) -> scalar
        x: Input sample
        y: Target
        epsilon: Perturbation size

    Returns:
        (grad_w, grad_b): lists shaped like weights and biases, each entry in
        the dtype of the matching parameter
    """
    w = [np.array(param, dtype=np.float64) for param in weights]
    b = [np.array(param, dtype=np.float64) for param in biases]

    def f():
        return float(loss_fn(w, b, x, y))

    grad_w = _perturbation_gradient(f, w, epsilon)
    grad_b = _perturbation_gradient(f, b, epsilon)

    grad_w = [g.astype(np.asarray(param).dtype) for g, param in zip(grad_w, weights)]
    grad_b = [g.astype(np.asarray(param).dtype) for g, param in zip(grad_b, biases)]
    return grad_w, grad_b
