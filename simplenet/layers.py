"""
Layer Specifications
====================

A layer describes its own geometry and knows how to run its forward pass given
parameters owned by the Network. Layers never hold weights themselves, so a
layer object is plain immutable data and can be shared between networks.

Layers implemented:
- Dense: fully connected affine transform + activation
- Conv2D: 2D convolution over multiple input channels + activation
- Pool2D: parameter-free sliding-window reduction per channel

Tensors are single samples:
- Dense input/output: vector, shape (features,)
- Conv2D/Pool2D input/output: volume, shape (channels, height, width)

Feature-map size along each spatial axis:
    n_out = (n_in - kernel_size + 2*padding) / stride + 1
which must be a whole number.
"""

import numpy as np

from .activations import get_activation
from .errors import ConfigurationError, DimensionError
from .pooling import get_pool_op


def feature_dim(n_in, kernel_size, padding, stride):
    """
    Output size of a convolution/pooling along one spatial axis.

    Raises:
        DimensionError: if the kernel does not fit the padded input or the
            stride does not divide the remaining span exactly
    """
    span = n_in - kernel_size + 2 * padding
    if span < 0:
        raise DimensionError(
            f"Kernel size {kernel_size} exceeds padded input size {n_in + 2 * padding}")
    if span % stride != 0:
        raise DimensionError(
            f"Non-integer feature map size: ({n_in} - {kernel_size} + 2*{padding}) / {stride} + 1")
    return span // stride + 1


def _check_int(name, value, minimum=1):
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value < minimum:
        raise ConfigurationError(f"{name} must be an integer >= {minimum}, got {value!r}")
    return int(value)


def _volume_shape(shape):
    """Normalize a spatial input shape to (channels, height, width)."""
    shape = tuple(shape)
    if len(shape) == 2:
        return (1,) + shape
    if len(shape) != 3:
        raise DimensionError(f"Expected a (channels, height, width) volume, got shape {shape}")
    return shape


def _pad(x, padding, value=0.0):
    """Pad the two spatial axes of a (C, H, W) volume."""
    if padding == 0:
        return x
    return np.pad(x, ((0, 0), (padding, padding), (padding, padding)),
                  mode='constant', constant_values=value)


def _windows(x_padded, kernel_size, stride, h_out, w_out):
    """
    View of every kernel window of a padded volume.

    Uses numpy stride tricks so no patch is copied.

    Returns:
        Read-only array of shape (C, h_out, w_out, k, k) where
        [c, m, n] is the window whose top-left corner is (m*stride, n*stride)
    """
    s_c, s_h, s_w = x_padded.strides
    shape = (x_padded.shape[0], h_out, w_out, kernel_size, kernel_size)
    strides = (
        s_c,            # channel
        s_h * stride,   # output row (strided)
        s_w * stride,   # output column (strided)
        s_h,            # kernel row
        s_w,            # kernel column
    )
    return np.lib.stride_tricks.as_strided(x_padded, shape=shape, strides=strides,
                                           writeable=False)


class Layer:
    """
    Base class for all layers.

    Attributes are frozen once the constructor finishes.
    """

    trainable = False
    weight_shape = (0,)
    bias_shape = (0,)

    def __setattr__(self, name, value):
        if getattr(self, '_frozen', False):
            raise AttributeError(f"{type(self).__name__} is immutable; cannot set '{name}'")
        super().__setattr__(name, value)

    def _freeze(self):
        object.__setattr__(self, '_frozen', True)

    def output_shape(self, input_shape):
        """Shape produced by forward() for an input of the given shape."""
        raise NotImplementedError

    def forward(self, a, weight, bias):
        """Forward pass for a single sample."""
        raise NotImplementedError

    def __call__(self, a, weight, bias):
        return self.forward(a, weight, bias)


class Dense(Layer):
    """
    Fully Connected (Dense) Layer.

    Forward: output = activation(W @ a + b)

    A multi-channel volume coming from a Conv2D/Pool2D layer is flattened
    (channel-major, then row-major) before the product.

    Args:
        in_size: Number of input features
        out_size: Number of output features
        activation: Activation name or instance (default: 'identity')

    Parameters:
        weight: shape (out_size, in_size)
        bias: shape (out_size,)
    """

    trainable = True

    def __init__(self, in_size, out_size, activation='identity'):
        self.in_size = _check_int('in_size', in_size)
        self.out_size = _check_int('out_size', out_size)
        self.activation = get_activation(activation)
        self.weight_shape = (self.out_size, self.in_size)
        self.bias_shape = (self.out_size,)
        self._freeze()

    def output_shape(self, input_shape):
        size = int(np.prod(input_shape))
        if size != self.in_size:
            raise DimensionError(
                f"Dense layer expects {self.in_size} input features, got {size} "
                f"(input shape {tuple(input_shape)})")
        return (self.out_size,)

    def forward(self, a, weight, bias):
        self.output_shape(np.shape(a))
        a = np.reshape(a, -1)
        return self.activation(weight @ a + bias)

    def __repr__(self):
        return f"Dense({self.in_size}, {self.out_size}, activation={self.activation.name})"


class Conv2D(Layer):
    """
    2D Convolutional Layer.

    For each output channel v and output position (m, n):
        out[v, m, n] = sum_i <patch_i(m, n), W[v, i]> + b[v]
    where patch_i(m, n) is the kernel_size x kernel_size window of zero-padded
    input channel i whose top-left corner is (m*stride, n*stride). The
    activation is then applied to each output feature map.

    Args:
        in_channels: Number of input channels (e.g., 1 for grayscale, 3 for RGB)
        out_channels: Number of output channels (number of filters)
        kernel_size: Side of the square kernel
        padding: Zero rows/columns added on every border (default: 1)
        stride: Step between windows (default: 1)
        activation: Activation name or instance (default: 'identity')

    Parameters:
        weight: shape (out_channels, in_channels, kernel_size, kernel_size)
        bias: shape (out_channels,), one scalar per output channel
    """

    trainable = True

    def __init__(self, in_channels, out_channels, kernel_size, padding=1, stride=1,
                 activation='identity'):
        self.in_channels = _check_int('in_channels', in_channels)
        self.out_channels = _check_int('out_channels', out_channels)
        self.kernel_size = _check_int('kernel_size', kernel_size)
        self.padding = _check_int('padding', padding, minimum=0)
        self.stride = _check_int('stride', stride)
        self.activation = get_activation(activation)
        self.weight_shape = (self.out_channels, self.in_channels,
                             self.kernel_size, self.kernel_size)
        self.bias_shape = (self.out_channels,)
        self._freeze()

    def output_shape(self, input_shape):
        channels, height, width = _volume_shape(input_shape)
        if channels != self.in_channels:
            raise DimensionError(
                f"Conv2D expects {self.in_channels} input channels, got {channels}")
        h_out = feature_dim(height, self.kernel_size, self.padding, self.stride)
        w_out = feature_dim(width, self.kernel_size, self.padding, self.stride)
        return (self.out_channels, h_out, w_out)

    def forward(self, a, weight, bias):
        """
        Forward pass using im2col and a single matrix multiplication.

        Args:
            a: Input volume, shape (in_channels, height, width); a 2D array is
                read as one channel
            weight: Kernels, shape (out_channels, in_channels, k, k)
            bias: Per-channel bias, shape (out_channels,)

        Returns:
            Output volume, shape (out_channels, h_out, w_out)
        """
        a = np.reshape(a, _volume_shape(np.shape(a)))
        _, h_out, w_out = self.output_shape(a.shape)

        x_padded = _pad(a, self.padding)
        windows = _windows(x_padded, self.kernel_size, self.stride, h_out, w_out)

        # (C, h_out, w_out, k, k) -> (h_out * w_out, C * k * k)
        col = windows.transpose(1, 2, 0, 3, 4).reshape(h_out * w_out, -1)
        W_col = weight.reshape(self.out_channels, -1)

        output = (col @ W_col.T).T.reshape(self.out_channels, h_out, w_out)
        output = output + bias.reshape(-1, 1, 1)

        return np.stack([self.activation(feature_map) for feature_map in output])

    def __repr__(self):
        return (f"Conv2D({self.in_channels}, {self.out_channels}, "
                f"kernel_size={self.kernel_size}, padding={self.padding}, "
                f"stride={self.stride}, activation={self.activation.name})")


class Pool2D(Layer):
    """
    2D Pooling Layer.

    Reduces each kernel_size x kernel_size window of every channel with the
    pooling operator. Channel count is preserved, no activation is applied and
    there are no learnable parameters.

    Args:
        kernel_size: Side of the pooling window (default: 2)
        padding: Border added on every side (default: 0), filled with the
            operator's pad value; must be smaller than kernel_size
        stride: Step between windows (default: kernel_size)
        pool_op: 'max', 'mean' or 'min', or a PoolOp instance (default: 'max')
    """

    def __init__(self, kernel_size=2, padding=0, stride=None, pool_op='max'):
        self.kernel_size = _check_int('kernel_size', kernel_size)
        self.padding = _check_int('padding', padding, minimum=0)
        if self.padding >= self.kernel_size:
            raise ConfigurationError(
                f"Pool2D padding ({self.padding}) must be smaller than kernel_size ({self.kernel_size})")
        self.stride = self.kernel_size if stride is None else _check_int('stride', stride)
        self.pool_op = get_pool_op(pool_op)
        self._freeze()

    def output_shape(self, input_shape):
        channels, height, width = _volume_shape(input_shape)
        h_out = feature_dim(height, self.kernel_size, self.padding, self.stride)
        w_out = feature_dim(width, self.kernel_size, self.padding, self.stride)
        return (channels, h_out, w_out)

    def forward(self, a, weight=None, bias=None):
        a = np.reshape(a, _volume_shape(np.shape(a)))
        _, h_out, w_out = self.output_shape(a.shape)

        x_padded = _pad(a, self.padding, self.pool_op.pad_value)
        windows = _windows(x_padded, self.kernel_size, self.stride, h_out, w_out)

        return self.pool_op(windows)

    def __repr__(self):
        return (f"Pool2D(kernel_size={self.kernel_size}, padding={self.padding}, "
                f"stride={self.stride}, pool_op={self.pool_op.name})")
