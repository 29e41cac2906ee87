"""
Configuration for bit-perceptron networks.

Two pieces of configuration travel with every network:
- Architecture: input width, hidden layer widths and output width (in bits)
- Hyperparameters: activation threshold and the genetic operator rates

Both are passed explicitly to every operation so several training runs with
different settings can coexist in one process.
"""

from dataclasses import dataclass, asdict
from typing import List, Dict, Any, Tuple


def bytes_for_bits(n_bits: int) -> int:
    """Number of bytes needed to hold n_bits packed bits."""
    return (n_bits + 7) // 8


@dataclass
class Architecture:
    """
    Layer widths of a strictly layered, fully connected network.

    Attributes:
        input_bits: Width of the input bit buffer
        hidden_layers: Node count of each hidden layer, e.g. [8, 32, 32, 16]
        output_bits: Width of the output bit buffer (node count of last layer)
    """
    input_bits: int
    hidden_layers: List[int]
    output_bits: int

    def __post_init__(self):
        self.hidden_layers = list(self.hidden_layers)
        widths = [self.input_bits, *self.hidden_layers, self.output_bits]
        for width in widths:
            if not isinstance(width, int) or width <= 0:
                raise ValueError(f"Layer widths must be positive integers, got {widths}")

    @property
    def layer_shapes(self) -> List[Tuple[int, int]]:
        """(node_count, synapse_count) for each layer, input side first."""
        widths = [self.input_bits, *self.hidden_layers, self.output_bits]
        return [(widths[i + 1], widths[i]) for i in range(len(widths) - 1)]

    @property
    def n_layers(self) -> int:
        return len(self.hidden_layers) + 1

    @property
    def input_bytes(self) -> int:
        return bytes_for_bits(self.input_bits)

    @property
    def output_bytes(self) -> int:
        return bytes_for_bits(self.output_bits)

    @property
    def synapse_count(self) -> int:
        """Total number of (weight, offset) pairs in the network."""
        return sum(nodes * synapses for nodes, synapses in self.layer_shapes)

    @property
    def model_size_bytes(self) -> int:
        """Size of a stored model: two 8-byte doubles per synapse."""
        return 16 * self.synapse_count

    @property
    def architecture_string(self) -> str:
        """Human-readable description, e.g. 544-[8-32-32-16]-24."""
        layers_str = '-'.join(str(w) for w in self.hidden_layers)
        return f"{self.input_bits}-[{layers_str}]-{self.output_bits}"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Architecture':
        return cls(**data)


@dataclass
class Hyperparameters:
    """
    Activation threshold and genetic operator rates.

    Defaults are the tuning that produced the shipped tournament models.
    """
    activation_threshold: float = 0.60
    trait_swap_chance: float = 0.80
    weight_mutate_chance: float = 0.65
    weight_mutate_amount: float = 0.5
    offset_mutate_chance: float = 0.25
    offset_mutate_amount: float = 0.05

    def __post_init__(self):
        for name in ('trait_swap_chance', 'weight_mutate_chance', 'offset_mutate_chance'):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} {value} out of range [0, 1]")
        for name in ('weight_mutate_amount', 'offset_mutate_amount'):
            value = getattr(self, name)
            if value < 0.0:
                raise ValueError(f"{name} must be non-negative, got {value}")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Hyperparameters':
        return cls(**data)
