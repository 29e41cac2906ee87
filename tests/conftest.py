"""Shared fixtures for the bracketnet tests."""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from bracketnet.core.config import Architecture, Hyperparameters
from bracketnet.core.layer import Layer
from bracketnet.core.network import Network


def constant_network(architecture, weight, offset, params=None):
    """Network whose every synapse has the same weight and offset."""
    layers = [
        Layer(np.full(shape, weight, dtype=float), np.full(shape, offset, dtype=float))
        for shape in architecture.layer_shapes
    ]
    return Network(architecture, layers, params)


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def params():
    return Hyperparameters()


@pytest.fixture
def small_architecture():
    """Odd widths so partial bytes show up at every layer boundary."""
    return Architecture(input_bits=20, hidden_layers=[5, 11], output_bits=13)


@pytest.fixture
def byte_architecture():
    """Single layer mapping one byte to one byte."""
    return Architecture(input_bits=8, hidden_layers=[], output_bits=8)
