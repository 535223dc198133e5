"""
Tests for Layers
================

Unit tests for dense, convolution and pooling layers, the feature map size
formula, and the activation and pooling function sets.
"""

import numpy as np
import pytest
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from simplenet.layers import Dense, Conv2D, Pool2D, feature_dim
from simplenet.activations import get_activation, Identity, Softmax
from simplenet.pooling import get_pool_op, MaxPool
from simplenet.errors import ConfigurationError, DimensionError


def naive_conv(x, weight, bias, padding, stride):
    """Reference convolution with explicit loops."""
    out_channels, in_channels, k, _ = weight.shape
    x_padded = np.pad(x, ((0, 0), (padding, padding), (padding, padding)))
    h_out = (x.shape[1] - k + 2 * padding) // stride + 1
    w_out = (x.shape[2] - k + 2 * padding) // stride + 1

    out = np.zeros((out_channels, h_out, w_out))
    for v in range(out_channels):
        for m in range(h_out):
            for n in range(w_out):
                total = 0.0
                for i in range(in_channels):
                    patch = x_padded[i, m * stride:m * stride + k, n * stride:n * stride + k]
                    total += np.sum(patch * weight[v, i])
                out[v, m, n] = total + bias[v]
    return out


class TestFeatureDim:
    """Tests for the feature map size formula."""

    def test_same_padding(self):
        assert feature_dim(28, 3, 1, 1) == 28

    def test_strided(self):
        assert feature_dim(5, 3, 0, 2) == 2
        assert feature_dim(7, 3, 1, 2) == 4

    def test_non_integer_size(self):
        """Stride that does not divide the span is rejected."""
        with pytest.raises(DimensionError):
            feature_dim(6, 3, 0, 2)

    def test_kernel_larger_than_input(self):
        with pytest.raises(DimensionError):
            feature_dim(2, 5, 0, 1)


class TestDense:
    """Tests for Dense layer."""

    def test_known_values(self):
        """W @ a + b with hand-computed result."""
        dense = Dense(2, 2)
        W = np.array([[1.0, 2.0], [3.0, 4.0]])
        b = np.array([0.0, 1.0])
        a = np.array([1.0, 1.0])

        output = dense.forward(a, W, b)

        np.testing.assert_array_equal(output, [3.0, 8.0])

    def test_flattens_volume(self):
        """A (C, H, W) volume is flattened channel-major before the product."""
        dense = Dense(8, 1)
        x = np.arange(8, dtype=np.float64).reshape(2, 2, 2)
        W = np.arange(8, dtype=np.float64).reshape(1, 8)

        output = dense.forward(x, W, np.zeros(1))

        assert output.shape == (1,)
        assert output[0] == np.sum(np.arange(8) ** 2)

    def test_activation_applied(self):
        dense = Dense(2, 2, activation='relu')
        W = np.array([[1.0, 0.0], [0.0, 1.0]])
        output = dense.forward(np.array([-2.0, 3.0]), W, np.zeros(2))

        np.testing.assert_array_equal(output, [0.0, 3.0])

    def test_wrong_input_size(self):
        dense = Dense(3, 2)
        with pytest.raises(DimensionError):
            dense.forward(np.ones(4), np.ones((2, 3)), np.zeros(2))

    def test_parameter_shapes(self):
        dense = Dense(784, 128)
        assert dense.weight_shape == (128, 784)
        assert dense.bias_shape == (128,)
        assert dense.output_shape((784,)) == (128,)


class TestConv2D:
    """Tests for Conv2D layer."""

    def test_identity_kernel(self):
        """Center-one kernel with padding 1 reproduces the input."""
        conv = Conv2D(in_channels=1, out_channels=1, kernel_size=3, padding=1, stride=1)
        x = np.arange(16, dtype=np.float64).reshape(1, 4, 4)
        kernel = np.zeros((1, 1, 3, 3))
        kernel[0, 0, 1, 1] = 1.0

        output = conv.forward(x, kernel, np.zeros(1))

        np.testing.assert_array_equal(output, x)

    def test_forward_shape(self):
        """Test output shape with padding 1."""
        conv = Conv2D(in_channels=3, out_channels=8, kernel_size=3, padding=1)
        x = np.random.randn(3, 16, 16)
        output = conv.forward(x, np.random.randn(*conv.weight_shape), np.zeros(8))

        assert output.shape == (8, 16, 16)

    def test_forward_valid_padding(self):
        """With no padding and 3x3 kernel: 28 - 3 + 1 = 26."""
        conv = Conv2D(in_channels=1, out_channels=4, kernel_size=3, padding=0)
        x = np.random.randn(1, 28, 28)
        output = conv.forward(x, np.random.randn(*conv.weight_shape), np.zeros(4))

        assert output.shape == (4, 26, 26)

    def test_forward_stride(self):
        """With stride 2 and padding 1: 7 -> 4."""
        conv = Conv2D(in_channels=1, out_channels=2, kernel_size=3, padding=1, stride=2)
        x = np.random.randn(1, 7, 7)
        output = conv.forward(x, np.random.randn(*conv.weight_shape), np.zeros(2))

        assert output.shape == (2, 4, 4)

    def test_matches_naive_loops(self):
        """Vectorized forward agrees with the explicit window sum."""
        rng = np.random.default_rng(0)
        conv = Conv2D(in_channels=3, out_channels=4, kernel_size=3, padding=1, stride=2)
        x = rng.normal(size=(3, 9, 9))
        weight = rng.normal(size=conv.weight_shape)
        bias = rng.normal(size=conv.bias_shape)

        output = conv.forward(x, weight, bias)
        expected = naive_conv(x, weight, bias, padding=1, stride=2)

        np.testing.assert_allclose(output, expected, rtol=1e-10, atol=1e-12)

    def test_sums_over_input_channels(self):
        """1x1 kernels weight each input channel and add the bias."""
        conv = Conv2D(in_channels=2, out_channels=1, kernel_size=1, padding=0)
        x = np.stack([np.ones((3, 3)), np.full((3, 3), 2.0)])
        weight = np.array([[[[1.0]], [[2.0]]]])

        output = conv.forward(x, weight, np.array([0.5]))

        np.testing.assert_array_equal(output, np.full((1, 3, 3), 5.5))

    def test_two_dimensional_input_is_one_channel(self):
        conv = Conv2D(in_channels=1, out_channels=1, kernel_size=3, padding=1)
        kernel = np.zeros((1, 1, 3, 3))
        kernel[0, 0, 1, 1] = 2.0
        x = np.arange(9, dtype=np.float64).reshape(3, 3)

        output = conv.forward(x, kernel, np.zeros(1))

        np.testing.assert_array_equal(output[0], 2 * x)

    def test_softmax_per_feature_map(self):
        """Softmax normalizes each output feature map separately."""
        conv = Conv2D(in_channels=1, out_channels=3, kernel_size=3, padding=1,
                      activation='softmax')
        x = np.random.randn(1, 5, 5)
        output = conv.forward(x, np.random.randn(*conv.weight_shape), np.zeros(3))

        np.testing.assert_allclose(output.sum(axis=(1, 2)), np.ones(3))

    def test_non_integer_feature_map(self):
        """(6 - 3 + 0) / 2 is not whole."""
        conv = Conv2D(in_channels=1, out_channels=1, kernel_size=3, padding=0, stride=2)
        with pytest.raises(DimensionError):
            conv.forward(np.ones((1, 6, 6)), np.ones(conv.weight_shape), np.zeros(1))

    def test_wrong_channel_count(self):
        conv = Conv2D(in_channels=3, out_channels=1, kernel_size=3)
        with pytest.raises(DimensionError):
            conv.output_shape((2, 8, 8))

    def test_invalid_geometry(self):
        with pytest.raises(ConfigurationError):
            Conv2D(1, 1, kernel_size=0)
        with pytest.raises(ConfigurationError):
            Conv2D(1, 1, kernel_size=3, padding=-1)
        with pytest.raises(ConfigurationError):
            Conv2D(1, 1, kernel_size=3, stride=1.5)

    def test_immutable(self):
        conv = Conv2D(1, 2, kernel_size=3)
        with pytest.raises(AttributeError):
            conv.stride = 2


class TestPool2D:
    """Tests for Pool2D layer."""

    def test_max_values(self):
        """Test that max values are correctly extracted."""
        pool = Pool2D(kernel_size=2)
        x = np.array([[[1.0, 2.0], [3.0, 4.0]]])

        output = pool.forward(x)

        assert output.shape == (1, 1, 1)
        assert output[0, 0, 0] == 4

    def test_average_values(self):
        pool = Pool2D(kernel_size=2, pool_op='mean')
        x = np.array([[[1.0, 2.0], [3.0, 4.0]]])

        output = pool.forward(x)

        assert output[0, 0, 0] == (1 + 2 + 3 + 4) / 4

    def test_forward_shape(self):
        """Channels preserved, spatial size halved with the default stride."""
        pool = Pool2D(kernel_size=2)
        x = np.random.randn(8, 28, 28)

        assert pool.forward(x).shape == (8, 14, 14)

    def test_strided_windows(self):
        pool = Pool2D(kernel_size=2, stride=2)
        x = np.arange(16, dtype=np.float64).reshape(1, 4, 4)

        output = pool.forward(x)

        np.testing.assert_array_equal(output[0], [[5.0, 7.0], [13.0, 15.0]])

    def test_overlapping_windows(self):
        pool = Pool2D(kernel_size=2, stride=1, pool_op='min')
        x = np.arange(9, dtype=np.float64).reshape(1, 3, 3)

        output = pool.forward(x)

        np.testing.assert_array_equal(output[0], [[0.0, 1.0], [3.0, 4.0]])

    def test_max_padding_never_wins(self):
        """Padded border does not beat negative activations."""
        pool = Pool2D(kernel_size=2, padding=1, stride=2)
        x = -np.ones((1, 2, 2))

        output = pool.forward(x)

        np.testing.assert_array_equal(output, -np.ones((1, 2, 2)))

    def test_mean_padding_counts_zeros(self):
        pool = Pool2D(kernel_size=2, padding=1, stride=2, pool_op='mean')
        x = -np.ones((1, 2, 2))

        output = pool.forward(x)

        np.testing.assert_array_equal(output, np.full((1, 2, 2), -0.25))

    def test_no_parameters(self):
        pool = Pool2D()
        assert not pool.trainable
        assert pool.weight_shape == (0,)
        assert pool.bias_shape == (0,)

    def test_non_integer_feature_map(self):
        pool = Pool2D(kernel_size=2, stride=2)
        with pytest.raises(DimensionError):
            pool.forward(np.ones((1, 5, 5)))

    def test_invalid_configuration(self):
        with pytest.raises(ConfigurationError):
            Pool2D(kernel_size=2, padding=2)
        with pytest.raises(ConfigurationError):
            Pool2D(kernel_size=2, pool_op='median')


class TestActivations:
    """Tests for the activation function set."""

    def test_identity(self):
        x = np.array([-1.5, 0.0, 2.0])
        np.testing.assert_array_equal(get_activation('identity')(x), x)

    def test_sigmoid(self):
        output = get_activation('sigmoid')(np.array([0.0, 1000.0, -1000.0]))
        np.testing.assert_allclose(output, [0.5, 1.0, 0.0], atol=1e-12)

    def test_relu(self):
        output = get_activation('relu')(np.array([-1.0, 0.0, 1.0]))
        np.testing.assert_array_equal(output, [0.0, 0.0, 1.0])

    def test_relu_keeps_dtype(self):
        x = np.array([-1.0, 2.0], dtype=np.float32)
        assert get_activation('relu')(x).dtype == np.float32

    def test_softmax_sums_to_one(self):
        """Softmax output is a probability distribution, even for large inputs."""
        softmax = get_activation('softmax')
        for x in (np.array([1.0, 2.0, 3.0]), np.array([1000.0, 1001.0, 999.0]),
                  np.random.randn(10) * 50):
            output = softmax(x)
            assert abs(np.sum(output) - 1.0) < 1e-6
            assert np.all(output >= 0)

    def test_softmax_whole_vector(self):
        """Softmax couples elements rather than acting elementwise."""
        output = Softmax()(np.array([0.0, np.log(3.0)]))
        np.testing.assert_allclose(output, [0.25, 0.75])

    def test_registry(self):
        assert isinstance(get_activation(None), Identity)
        assert isinstance(get_activation('linear'), Identity)
        act = Softmax()
        assert get_activation(act) is act

    def test_unknown_activation(self):
        with pytest.raises(ConfigurationError):
            get_activation('swishy')
        with pytest.raises(ValueError):
            get_activation('swishy')


class TestPoolOps:
    """Tests for the pooling operator registry."""

    def test_aliases(self):
        assert get_pool_op('avg').name == 'mean'
        assert get_pool_op('average').name == 'mean'
        assert isinstance(get_pool_op('MAX'), MaxPool)

    def test_unknown(self):
        with pytest.raises(ConfigurationError):
            get_pool_op('median')


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
