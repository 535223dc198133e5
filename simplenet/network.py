"""
Network
=======

Ties layers, parameters and the optimizer together:
- Parameter store: one weight and one bias array per layer
- Forward propagation through the heterogeneous layer stack
- Optimizer setup and parameter updates from external gradients

Public API:
    create_network(layers, distribution, dtype) -> Network
    forward(network, x) -> output
    optimizer_setup(network, kind, **overrides) -> Optimizer
    update(network, grad_w, grad_b)

Example:
    >>> from simplenet import Conv2D, Pool2D, Dense, create_network
    >>> net = create_network([
    ...     Conv2D(1, 4, kernel_size=3, padding=1, activation='relu'),
    ...     Pool2D(kernel_size=2),
    ...     Dense(4 * 4 * 4, 10, activation='softmax'),
    ... ], input_shape=(1, 8, 8))
    >>> net.forward(np.zeros((1, 8, 8))).shape
    (10,)
"""

import logging

import numpy as np

from .errors import ConfigurationError, DimensionError
from .initializers import normal
from .layers import Layer, Dense, Conv2D
from .optimizers import get_optimizer

logger = logging.getLogger(__name__)


def _check_layer_chain(layers, input_shape=None):
    """
    Verify that consecutive layers fit together.

    Channel counts and Dense sizes are always checked. When input_shape is
    known the full shape chain is propagated too, which also catches bad
    padding/stride/kernel combinations.

    Returns:
        Output shape of the last layer, or None without input_shape

    Raises:
        ConfigurationError: incompatible consecutive layers
        DimensionError: non-integer feature map size for input_shape
    """
    if not layers:
        raise ConfigurationError("A network needs at least one layer")

    channels = None
    if input_shape is not None and len(input_shape) in (2, 3):
        channels = 1 if len(input_shape) == 2 else int(input_shape[0])

    previous = None
    for index, layer in enumerate(layers):
        if not isinstance(layer, Layer):
            raise ConfigurationError(f"Layer {index} is not a layer specification: {layer!r}")

        if isinstance(layer, Dense):
            if isinstance(previous, Dense) and layer.in_size != previous.out_size:
                raise ConfigurationError(
                    f"Layer {index}: Dense in_size {layer.in_size} does not match "
                    f"previous output size {previous.out_size}")
            channels = None
        else:
            if isinstance(previous, Dense):
                raise ConfigurationError(
                    f"Layer {index}: {type(layer).__name__} cannot follow a Dense layer")
            if isinstance(layer, Conv2D):
                if channels is not None and layer.in_channels != channels:
                    raise ConfigurationError(
                        f"Layer {index}: Conv2D in_channels {layer.in_channels} does not match "
                        f"previous channel count {channels}")
                channels = layer.out_channels
        previous = layer

    if input_shape is None:
        return None

    shape = tuple(int(n) for n in input_shape)
    for index, layer in enumerate(layers):
        if isinstance(layer, Dense) and int(np.prod(shape)) != layer.in_size:
            raise ConfigurationError(
                f"Layer {index}: Dense in_size {layer.in_size} does not match "
                f"flattened input size {int(np.prod(shape))} (shape {shape})")
        try:
            shape = layer.output_shape(shape)
        except DimensionError as exc:
            raise DimensionError(f"Layer {index} ({layer!r}): {exc}") from exc
    return shape


def propagate(layers, weights, biases, x, return_all=False):
    """
    Run x through the layers with the given parameters.

    Args:
        layers: Sequence of layer specifications
        weights: Per-layer weight arrays
        biases: Per-layer bias arrays
        x: Input sample
        return_all: Return every layer's output instead of the last one

    Raises:
        DimensionError: if x (or an intermediate activation) does not fit a layer
    """
    a = np.asarray(x)
    if not np.issubdtype(a.dtype, np.floating):
        a = a.astype(np.float64)

    outputs = []
    for index, (layer, weight, bias) in enumerate(zip(layers, weights, biases)):
        try:
            a = layer.forward(a, weight, bias)
        except DimensionError as exc:
            raise DimensionError(f"Layer {index} ({layer!r}): {exc}") from exc
        outputs.append(a)

    return outputs if return_all else a


class Network:
    """
    Feed-forward network of Dense, Conv2D and Pool2D layers.

    The network owns its parameters: `weights[i]` and `biases[i]` belong to
    `layers[i]` (empty arrays for Pool2D) and are only changed by update().

    Args:
        layers: Sequence of layer specifications
        weights: Per-layer weight arrays, shapes must equal layer.weight_shape
        biases: Per-layer bias arrays, shapes must equal layer.bias_shape
        dtype: Floating point type for parameters and activations
        input_shape: Optional input shape, enables construction-time checks
            of the full shape chain

    Use create_network() to get randomly initialized parameters.
    """

    def __init__(self, layers, weights, biases, dtype=np.float32, input_shape=None):
        self.dtype = _float_dtype(dtype)
        self.layers = list(layers)
        self.input_shape = None if input_shape is None else tuple(input_shape)
        self._output_shape = _check_layer_chain(self.layers, self.input_shape)

        if len(weights) != len(self.layers) or len(biases) != len(self.layers):
            raise ConfigurationError(
                f"Expected {len(self.layers)} weight and bias entries, "
                f"got {len(weights)} and {len(biases)}")

        # Copies, so the network never shares arrays with the caller
        self.weights = []
        self.biases = []
        for index, (layer, weight, bias) in enumerate(zip(self.layers, weights, biases)):
            if not layer.trainable:
                weight = np.empty(layer.weight_shape) if weight is None else weight
                bias = np.empty(layer.bias_shape) if bias is None else bias
            weight = np.array(weight, dtype=self.dtype)
            bias = np.array(bias, dtype=self.dtype)
            if weight.shape != layer.weight_shape or bias.shape != layer.bias_shape:
                raise ConfigurationError(
                    f"Layer {index} ({layer!r}) needs weight {layer.weight_shape} and "
                    f"bias {layer.bias_shape}, got {weight.shape} and {bias.shape}")
            self.weights.append(weight)
            self.biases.append(bias)

        self.optimizer = None

    @property
    def num_parameters(self):
        """Total number of learnable scalars."""
        return sum(w.size + b.size for w, b in zip(self.weights, self.biases))

    def output_shape(self, input_shape=None):
        """
        Declared output shape of the last layer for an input of input_shape.

        Defaults to the input_shape given at construction.
        """
        if input_shape is None:
            if self.input_shape is None:
                raise ConfigurationError("No input_shape given and none set at construction")
            return self._output_shape

        shape = tuple(input_shape)
        for index, layer in enumerate(self.layers):
            try:
                shape = layer.output_shape(shape)
            except DimensionError as exc:
                raise DimensionError(f"Layer {index} ({layer!r}): {exc}") from exc
        return shape

    def forward(self, x):
        """
        Forward pass through the network.

        Args:
            x: Input sample. A vector for a Dense first layer, a
                (channels, height, width) volume for a Conv2D/Pool2D first
                layer (a 2D array is read as one channel)

        Returns:
            Output of the last layer
        """
        return propagate(self.layers, self.weights, self.biases,
                         np.asarray(x, dtype=self.dtype))

    def feature_maps(self, x):
        """Outputs of every layer, in order, for input x."""
        return propagate(self.layers, self.weights, self.biases,
                         np.asarray(x, dtype=self.dtype), return_all=True)

    def setup_optimizer(self, kind, **overrides):
        """
        Attach a fresh optimizer with zeroed accumulators.

        Args:
            kind: 'sgd', 'momentum', 'rmsprop', 'adam', an Optimizer class, or an
                Optimizer instance whose hyperparameters are copied into a new one
            **overrides: Hyperparameters replacing the optimizer defaults

        Returns:
            The attached optimizer
        """
        optimizer = get_optimizer(kind, **overrides)
        optimizer.initialize(self.weights, self.biases)
        self.optimizer = optimizer
        logger.debug("Optimizer set up: %r", optimizer)
        return optimizer

    def _check_gradients(self, grads, params, label):
        try:
            grads = list(grads)
        except TypeError:
            raise DimensionError(f"{label} must be a sequence of arrays, got {type(grads).__name__}")

        if len(grads) != len(params):
            raise DimensionError(f"{label} has {len(grads)} entries, expected {len(params)}")

        checked = []
        for index, (grad, param) in enumerate(zip(grads, params)):
            if grad is None and param.size == 0:
                checked.append(np.zeros_like(param))
                continue
            if grad is None:
                raise DimensionError(f"{label}[{index}] is missing, expected shape {param.shape}")
            try:
                grad = np.asarray(grad, dtype=param.dtype)
            except (TypeError, ValueError) as e:
                raise DimensionError(f"{label}[{index}] is not a numeric array: {e}") from e
            if grad.shape != param.shape:
                raise DimensionError(
                    f"{label}[{index}] has shape {grad.shape}, expected {param.shape}")
            checked.append(grad)
        return checked

    def update(self, grad_w, grad_b):
        """
        Apply one optimizer step with externally computed gradients.

        All gradients are validated before anything changes, so a failing call
        leaves parameters and optimizer state untouched.

        Args:
            grad_w: Per-layer weight gradients matching self.weights
            grad_b: Per-layer bias gradients matching self.biases
                (None is accepted for parameter-free layers)

        Raises:
            ConfigurationError: no optimizer set up
            DimensionError: gradient count or shape mismatch
        """
        if self.optimizer is None:
            raise ConfigurationError("No optimizer set up; call setup_optimizer() first")

        grad_w = self._check_gradients(grad_w, self.weights, 'grad_w')
        grad_b = self._check_gradients(grad_b, self.biases, 'grad_b')

        self.optimizer.step(self.weights, self.biases, grad_w, grad_b)
        logger.debug("%s step %d applied", type(self.optimizer).__name__, self.optimizer.t)

    def step(self, gradient_fn, loss_fn, x, y):
        """
        Compute gradients with an external oracle and apply one update.

        Args:
            gradient_fn: Oracle called as gradient_fn(weights, biases, loss_fn, x, y)
                returning (grad_w, grad_b)
            loss_fn: Loss passed through to the oracle
            x: Input sample
            y: Target
        """
        grad_w, grad_b = gradient_fn(self.weights, self.biases, loss_fn, x, y)
        self.update(grad_w, grad_b)

    def summary(self):
        """Print model summary and return the parameter count."""
        print("\n" + "=" * 70)
        print("Network Summary")
        print("=" * 70)
        if self.input_shape is not None:
            print(f"Input shape: {self.input_shape}")
        print(f"Dtype: {self.dtype}")
        print("-" * 70)

        for i, (layer, weight, bias) in enumerate(zip(self.layers, self.weights, self.biases)):
            n_params = weight.size + bias.size
            print(f"{i:3d}. {str(layer):<50} Params: {n_params:,}")

        print("-" * 70)
        print(f"Total trainable parameters: {self.num_parameters:,}")
        if self.optimizer is not None:
            print(f"Optimizer: {self.optimizer!r}")
        print("=" * 70 + "\n")

        return self.num_parameters

    def __repr__(self):
        return f"Network(layers={len(self.layers)}, parameters={self.num_parameters}, dtype={self.dtype})"


def _float_dtype(dtype):
    try:
        dtype = np.dtype(dtype)
    except TypeError as exc:
        raise ConfigurationError(f"Invalid dtype {dtype!r}") from exc
    if not np.issubdtype(dtype, np.floating):
        raise ConfigurationError(f"dtype must be a floating point type, got {dtype}")
    return dtype


def _sample(distribution, shape, dtype):
    values = np.asarray(distribution(shape), dtype=dtype)
    if values.shape != tuple(shape):
        raise ConfigurationError(
            f"Distribution returned shape {values.shape}, expected {tuple(shape)}")
    return values


def create_network(layers, distribution=None, dtype=np.float32, input_shape=None):
    """
    Build a network with parameters drawn from a distribution.

    Every weight and bias entry is sampled independently from `distribution`
    and cast to `dtype`. Pool2D layers get empty parameter arrays.

    Args:
        layers: Sequence of Dense/Conv2D/Pool2D specifications
        distribution: Callable distribution(shape) -> array
            (default: standard normal)
        dtype: Parameter type (default: float32)
        input_shape: Optional input shape for full construction-time checks.
            Without it, a Dense in_size that does not match the flattened
            output of a preceding Conv2D/Pool2D layer cannot be known here and
            is reported by forward() as a DimensionError.

    Returns:
        Network

    Raises:
        ConfigurationError: incompatible consecutive layers or bad dtype
        DimensionError: non-integer feature map size for input_shape
    """
    dtype = _float_dtype(dtype)
    layers = list(layers)
    _check_layer_chain(layers, input_shape)

    if distribution is None:
        distribution = normal()

    weights, biases = [], []
    for layer in layers:
        if layer.trainable:
            weights.append(_sample(distribution, layer.weight_shape, dtype))
            biases.append(_sample(distribution, layer.bias_shape, dtype))
        else:
            weights.append(np.empty(layer.weight_shape, dtype=dtype))
            biases.append(np.empty(layer.bias_shape, dtype=dtype))

    network = Network(layers, weights, biases, dtype=dtype, input_shape=input_shape)
    logger.debug("Created network: %d layers, %d parameters, dtype %s",
                 len(layers), network.num_parameters, dtype)
    return network


def forward(network, x):
    """Forward pass of `network` on a single input sample."""
    return network.forward(x)


def optimizer_setup(network, kind, **overrides):
    """Configure the optimizer of `network`; see Network.setup_optimizer."""
    return network.setup_optimizer(kind, **overrides)


def update(network, grad_w, grad_b):
    """Apply one optimizer step to `network`; see Network.update."""
    network.update(grad_w, grad_b)
