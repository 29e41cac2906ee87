"""
Bit-perceptron networks.

A Network is an ordered stack of Layers:
    input_bits -> hidden_layers[0] -> ... -> hidden_layers[-1] -> output_bits

It is the unit of fitness evaluation, crossover, mutation and persistence.
Evaluation is a pure function of the current weights; crossover and mutation
change the network in place and are only applied to networks owned by a
single caller.
"""

from typing import Iterator, List, Optional, Tuple

import numpy as np

from .bits import Buffer, as_byte_array, pack_bits, unpack_bits
from .config import Architecture, Hyperparameters
from .layer import Layer
from .synapse import Synapse


class Network:
    """
    A strictly layered, fully connected bit-perceptron network.

    Attributes:
        architecture: Layer widths the network was built for
        layers: Layers in evaluation order
        params: Hyperparameters used for evaluation and by default for mutation
    """

    def __init__(
        self,
        architecture: Architecture,
        layers: List[Layer],
        params: Optional[Hyperparameters] = None,
    ):
        expected = architecture.layer_shapes
        actual = [layer.shape for layer in layers]
        if actual != expected:
            raise ValueError(
                f"Layer shapes {actual} do not match architecture "
                f"{architecture.architecture_string} (expected {expected})"
            )
        self.architecture = architecture
        self.layers = layers
        self.params = params if params is not None else Hyperparameters()

    @classmethod
    def new_random(
        cls,
        architecture: Architecture,
        params: Optional[Hyperparameters] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> 'Network':
        """Build a network with every synapse drawn at random."""
        if rng is None:
            rng = np.random.default_rng()
        layers = [
            Layer.new_random(node_count, synapse_count, rng)
            for node_count, synapse_count in architecture.layer_shapes
        ]
        return cls(architecture, layers, params)

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    def evaluate_batch(self, inputs: np.ndarray) -> np.ndarray:
        """
        Evaluate a batch of packed input buffers.

        Args:
            inputs: (n_samples, input_bytes) uint8 array

        Returns:
            (n_samples, output_bytes) uint8 array
        """
        inputs = as_byte_array(inputs)
        if inputs.ndim != 2 or inputs.shape[1] != self.architecture.input_bytes:
            raise ValueError(
                f"Expected inputs of shape (n, {self.architecture.input_bytes}), "
                f"got {inputs.shape}"
            )
        threshold = self.params.activation_threshold
        bits = unpack_bits(inputs, self.architecture.input_bits)
        # Layers are strictly sequential: each one reads the previous output.
        for layer in self.layers:
            bits = layer.forward_bits(bits, threshold)
        return pack_bits(bits)

    def evaluate(self, input_buffer: Buffer) -> bytes:
        """Evaluate one input buffer; returns output_bytes bytes."""
        data = as_byte_array(input_buffer)
        if data.ndim != 1 or len(data) != self.architecture.input_bytes:
            raise ValueError(
                f"Expected an input buffer of {self.architecture.input_bytes} bytes, "
                f"got {len(data)}"
            )
        return self.evaluate_batch(data[np.newaxis, :])[0].tobytes()

    # -------------------------------------------------------------------------
    # Genetic operators
    # -------------------------------------------------------------------------

    def crossover(
        self,
        other: 'Network',
        params: Optional[Hyperparameters] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> int:
        """
        Uniform per-synapse trade with another network of the same architecture.

        Both networks are modified in place. The swap chance comes from params,
        defaulting to this network's own hyperparameters.

        Returns:
            Number of synapses swapped
        """
        if other.architecture.layer_shapes != self.architecture.layer_shapes:
            raise ValueError(
                f"Cannot cross {self.architecture.architecture_string} with "
                f"{other.architecture.architecture_string}"
            )
        params = params if params is not None else self.params
        if rng is None:
            rng = np.random.default_rng()
        chance = params.trait_swap_chance
        return sum(
            layer.trade_with(other_layer, chance, rng)
            for layer, other_layer in zip(self.layers, other.layers)
        )

    def mutate(
        self,
        params: Optional[Hyperparameters] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        """Mutate every synapse in place."""
        params = params if params is not None else self.params
        if rng is None:
            rng = np.random.default_rng()
        for layer in self.layers:
            layer.mutate(params, rng)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def copy(self) -> 'Network':
        """Deep copy; the clone shares no arrays with this network."""
        return Network(
            self.architecture,
            [layer.copy() for layer in self.layers],
            self.params,
        )

    def synapses(self) -> Iterator[Tuple[int, int, int, Synapse]]:
        """Yield (layer, node, index, synapse) in storage order."""
        for l_idx, layer in enumerate(self.layers):
            for n_idx in range(layer.node_count):
                for s_idx in range(layer.synapse_count):
                    yield l_idx, n_idx, s_idx, Synapse(
                        float(layer.weights[n_idx, s_idx]),
                        float(layer.offsets[n_idx, s_idx]),
                    )

    def to_bytes(self) -> bytes:
        from .persistence import encode_network
        return encode_network(self)

    @classmethod
    def from_bytes(
        cls,
        buffer: bytes,
        architecture: Architecture,
        params: Optional[Hyperparameters] = None,
    ) -> 'Network':
        from .persistence import decode_network
        return decode_network(buffer, architecture, params)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Network):
            return NotImplemented
        if self.architecture.layer_shapes != other.architecture.layer_shapes:
            return False
        return all(
            np.array_equal(a.weights, b.weights) and np.array_equal(a.offsets, b.offsets)
            for a, b in zip(self.layers, other.layers)
        )

    def __repr__(self) -> str:
        return (
            f"Network(arch={self.architecture.architecture_string}, "
            f"synapses={self.architecture.synapse_count})"
        )
