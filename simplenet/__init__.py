"""
simplenet
=========

Small feed-forward and convolutional neural networks in NumPy.

This library covers:
- Dense, 2D convolution and 2D pooling layers for single samples
- Parameter initialization from a sampling distribution
- Forward propagation through mixed layer stacks
- SGD, Momentum, RMSProp and Adam parameter updates from external gradients

Gradients come from an oracle supplied by the caller; numerical_gradient is a
finite-difference reference oracle for small networks.
"""

from .errors import SimpleNetError, ConfigurationError, DimensionError
from .activations import Identity, Sigmoid, ReLU, Tanh, LeakyReLU, Softmax, get_activation
from .pooling import MaxPool, MeanPool, MinPool, get_pool_op
from .layers import Dense, Conv2D, Pool2D, feature_dim
from .initializers import normal, uniform, constant
from .optimizers import SGD, Momentum, RMSProp, Adam, get_optimizer
from .network import Network, create_network, forward, optimizer_setup, update
from .losses import CrossEntropyLoss, MSELoss, get_loss, loss_function
from .gradients import numerical_gradient

__version__ = "1.0.0"
__all__ = [
    # Errors
    'SimpleNetError', 'ConfigurationError', 'DimensionError',
    # Activations and pooling
    'Identity', 'Sigmoid', 'ReLU', 'Tanh', 'LeakyReLU', 'Softmax', 'get_activation',
    'MaxPool', 'MeanPool', 'MinPool', 'get_pool_op',
    # Layers
    'Dense', 'Conv2D', 'Pool2D', 'feature_dim',
    # Distributions
    'normal', 'uniform', 'constant',
    # Optimizers
    'SGD', 'Momentum', 'RMSProp', 'Adam', 'get_optimizer',
    # Network
    'Network', 'create_network', 'forward', 'optimizer_setup', 'update',
    # Losses and reference oracle
    'CrossEntropyLoss', 'MSELoss', 'get_loss', 'loss_function', 'numerical_gradient',
]
