"""
Activation nodes.

A node only exists through the synapses feeding it: it reads one upstream
bit per synapse and fires when the weighted sum exceeds the threshold.
"""

from typing import List, Optional

import numpy as np

from .bits import Buffer, unpack_bits
from .config import Hyperparameters
from .synapse import Synapse, mutate_synapses, trade_synapses


class ActivationNode:
    """
    One downstream unit of a layer.

    Holds views onto one row of the layer's weight and offset matrices, so
    changes made through the node are changes to the layer.
    """

    def __init__(self, weights: np.ndarray, offsets: np.ndarray):
        if weights.shape != offsets.shape or weights.ndim != 1:
            raise ValueError(
                f"Node needs matching 1-D weights and offsets, got "
                f"{weights.shape} and {offsets.shape}"
            )
        self.weights = weights
        self.offsets = offsets

    @property
    def width(self) -> int:
        """Number of upstream bits read by this node."""
        return len(self.weights)

    @property
    def synapses(self) -> List[Synapse]:
        return [Synapse(float(w), float(o)) for w, o in zip(self.weights, self.offsets)]

    def weighted_sum(self, input_buffer: Buffer) -> float:
        bits = unpack_bits(input_buffer, self.width)
        if len(bits) < self.width:
            raise ValueError(
                f"Node reads {self.width} bits but the input holds only {len(bits)}"
            )
        # Offsets are added for every synapse, whether or not its bit is set:
        # they act as a bias term, not as part of the gated input.
        return float(bits @ self.weights + self.offsets.sum())

    def activated(self, input_buffer: Buffer, threshold: float) -> bool:
        return self.weighted_sum(input_buffer) > threshold

    def trade_with(
        self,
        other: 'ActivationNode',
        chance: float,
        rng: Optional[np.random.Generator] = None,
    ) -> int:
        return trade_synapses(
            self.weights, self.offsets, other.weights, other.offsets, chance, rng
        )

    def mutate(self, params: Hyperparameters, rng: Optional[np.random.Generator] = None) -> None:
        mutate_synapses(self.weights, self.offsets, params, rng)

    def __repr__(self) -> str:
        return f"ActivationNode(width={self.width})"
