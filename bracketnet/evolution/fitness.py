"""
Fitness evaluation.

Fitness is the number of correctly predicted output bits, summed over every
training pair. Each pair can contribute up to output_bits points, so partial
credit is given for nearly right scores rather than only for exact matches.
"""

from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np

from ..core.bits import Buffer, as_byte_array
from ..core.config import Architecture
from ..core.network import Network


@dataclass
class TrainingSet:
    """
    Read-only training pairs as packed uint8 matrices.

    Attributes:
        inputs: (n_pairs, input_bytes) input buffers
        outputs: (n_pairs, output_bytes) expected output buffers
        output_bits: Number of meaningful bits in each output row
    """
    inputs: np.ndarray
    outputs: np.ndarray
    output_bits: int

    def __post_init__(self):
        if len(self.inputs) != len(self.outputs):
            raise ValueError(
                f"Got {len(self.inputs)} inputs but {len(self.outputs)} outputs"
            )
        self.inputs.setflags(write=False)
        self.outputs.setflags(write=False)

    def __len__(self) -> int:
        return len(self.inputs)

    @classmethod
    def from_pairs(
        cls,
        pairs: Sequence[Tuple[Buffer, Buffer]],
        architecture: Architecture,
    ) -> 'TrainingSet':
        """
        Stack (input_buffer, output_buffer) pairs, checking their widths.

        Raises:
            ValueError: If the set is empty or any buffer has the wrong width
        """
        if not pairs:
            raise ValueError("Training set is empty")

        inputs = np.zeros((len(pairs), architecture.input_bytes), dtype=np.uint8)
        outputs = np.zeros((len(pairs), architecture.output_bytes), dtype=np.uint8)
        for i, (input_buffer, output_buffer) in enumerate(pairs):
            input_row = as_byte_array(input_buffer)
            output_row = as_byte_array(output_buffer)
            if len(input_row) != architecture.input_bytes:
                raise ValueError(
                    f"Pair {i}: input has {len(input_row)} bytes, "
                    f"expected {architecture.input_bytes}"
                )
            if len(output_row) != architecture.output_bytes:
                raise ValueError(
                    f"Pair {i}: output has {len(output_row)} bytes, "
                    f"expected {architecture.output_bytes}"
                )
            inputs[i] = input_row
            outputs[i] = output_row

        return cls(inputs=inputs, outputs=outputs, output_bits=architecture.output_bits)

    @property
    def max_fitness(self) -> int:
        return len(self) * self.output_bits


def bits_correct(result: np.ndarray, expected: np.ndarray, n_bits: int) -> int:
    """
    Count matching bits between packed result and expected rows.

    Only the first n_bits bits of each row are compared, so padding in a
    trailing partial byte never earns points.
    """
    result_bits = np.unpackbits(as_byte_array(result), axis=-1)[..., :n_bits]
    expected_bits = np.unpackbits(as_byte_array(expected), axis=-1)[..., :n_bits]
    return int(np.count_nonzero(result_bits == expected_bits))


def score_network(network: Network, training_set: TrainingSet) -> int:
    """Total matching output bits of a network over a training set."""
    results = network.evaluate_batch(training_set.inputs)
    return bits_correct(results, training_set.outputs, training_set.output_bits)


def max_fitness(training_set: TrainingSet) -> int:
    """Best achievable score on a training set."""
    return training_set.max_fitness
