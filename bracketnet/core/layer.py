"""
Layers: a fixed set of activation nodes mapping one bit buffer to the next.

Weights and offsets are stored as (node_count, synapse_count) matrices;
row i belongs to node i and column j to upstream bit j.
"""

from typing import List, Optional

import numpy as np

from .bits import Buffer, as_byte_array, pack_bits, unpack_bits
from .config import Hyperparameters
from .node import ActivationNode
from .synapse import random_synapses, mutate_synapses, trade_synapses


class Layer:
    """One fully connected layer of bit perceptrons."""

    def __init__(self, weights: np.ndarray, offsets: np.ndarray):
        weights = np.asarray(weights, dtype=np.float64)
        offsets = np.asarray(offsets, dtype=np.float64)
        if weights.ndim != 2 or weights.shape != offsets.shape:
            raise ValueError(
                f"Layer needs matching 2-D weights and offsets, got "
                f"{weights.shape} and {offsets.shape}"
            )
        self.weights = weights
        self.offsets = offsets

    @classmethod
    def new_random(
        cls,
        node_count: int,
        synapse_count: int,
        rng: Optional[np.random.Generator] = None,
    ) -> 'Layer':
        weights, offsets = random_synapses((node_count, synapse_count), rng)
        return cls(weights, offsets)

    @property
    def node_count(self) -> int:
        return self.weights.shape[0]

    @property
    def synapse_count(self) -> int:
        """Synapses per node, i.e. the upstream width in bits."""
        return self.weights.shape[1]

    @property
    def shape(self):
        return self.weights.shape

    @property
    def output_bytes(self) -> int:
        return (self.node_count + 7) // 8

    @property
    def nodes(self) -> List[ActivationNode]:
        return [
            ActivationNode(self.weights[i], self.offsets[i])
            for i in range(self.node_count)
        ]

    def activations(self, bits: np.ndarray, threshold: float) -> np.ndarray:
        """
        Fire every node for a batch of inputs.

        Args:
            bits: (n_samples, synapse_count) matrix of 0.0/1.0 input bits
            threshold: Activation threshold

        Returns:
            (n_samples, node_count) boolean matrix
        """
        # Each node's offsets are summed unconditionally (bias term), only
        # the weights are gated by the input bits.
        sums = bits @ self.weights.T + self.offsets.sum(axis=1)
        return sums > threshold

    def forward_bits(self, bits: np.ndarray, threshold: float) -> np.ndarray:
        """Unpacked batch in, unpacked batch out (as 0.0/1.0 floats)."""
        return self.activations(bits, threshold).astype(np.float64)

    def forward(self, input_buffer: Buffer, threshold: float) -> bytes:
        """
        Map one packed input buffer to this layer's packed output.

        Node outputs are packed MSB first in node order. When node_count is not
        a multiple of 8 the last byte is zero padded.
        """
        data = as_byte_array(input_buffer)
        if len(data) * 8 < self.synapse_count:
            raise ValueError(
                f"Layer reads {self.synapse_count} bits but the input holds "
                f"only {len(data) * 8}"
            )
        bits = unpack_bits(data, self.synapse_count)[np.newaxis, :]
        fired = self.activations(bits, threshold)[0]
        return pack_bits(fired).tobytes()

    def trade_with(
        self,
        other: 'Layer',
        chance: float,
        rng: Optional[np.random.Generator] = None,
    ) -> int:
        """Per-synapse uniform crossover with the matching layer of another network."""
        return trade_synapses(
            self.weights, self.offsets, other.weights, other.offsets, chance, rng
        )

    def mutate(self, params: Hyperparameters, rng: Optional[np.random.Generator] = None) -> None:
        mutate_synapses(self.weights, self.offsets, params, rng)

    def copy(self) -> 'Layer':
        return Layer(self.weights.copy(), self.offsets.copy())

    def __repr__(self) -> str:
        return f"Layer(nodes={self.node_count}, synapses={self.synapse_count})"
