"""Core bit-perceptron network framework."""

from .config import Architecture, Hyperparameters
from .synapse import Synapse
from .node import ActivationNode
from .layer import Layer
from .network import Network
from .persistence import (
    ModelStore,
    ModelFormatError,
    encode_network,
    decode_network,
    export_model,
    load_and_predict,
)

__all__ = [
    'Architecture',
    'Hyperparameters',
    'Synapse',
    'ActivationNode',
    'Layer',
    'Network',
    'ModelStore',
    'ModelFormatError',
    'encode_network',
    'decode_network',
    'export_model',
    'load_and_predict',
]
