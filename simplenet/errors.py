"""
Errors raised by simplenet
==========================

Two kinds of failure exist:

- ConfigurationError: the network or optimizer was described incorrectly
  (incompatible consecutive layers, unknown activation/pool/optimizer name,
  bad hyperparameter).
- DimensionError: a tensor does not have the shape the network needs
  (non-integer feature-map size, input or gradient shape mismatch).

Both subclass ValueError so callers that already catch ValueError keep working.
"""


class SimpleNetError(Exception):
    """Base class for all simplenet errors."""


class ConfigurationError(SimpleNetError, ValueError):
    """Invalid layer stack, function name or optimizer setup."""


class DimensionError(SimpleNetError, ValueError):
    """Tensor shape incompatible with the network geometry."""
