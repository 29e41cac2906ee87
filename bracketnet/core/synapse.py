"""
Synapses: the learnable (weight, offset) pairs between one upstream bit and
one downstream node.

A synapse is the atomic unit of both genetic operators:
- Mutation redraws a value uniformly within +/- amount of its current value
- Crossover swaps a synapse wholesale with the one at the same position in
  another network

Layers keep their synapses as weight/offset matrices, so the operators come
in two forms: methods on a single Synapse and elementwise array functions
with the same semantics.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from .config import Hyperparameters

WEIGHT_RANGE = (-1.0, 1.0)
OFFSET_RANGE = (-0.5, 0.5)


def _rng(rng: Optional[np.random.Generator]) -> np.random.Generator:
    return rng if rng is not None else np.random.default_rng()


@dataclass
class Synapse:
    """One (weight, offset) pair."""
    weight: float
    offset: float

    @classmethod
    def new_random(cls, rng: Optional[np.random.Generator] = None) -> 'Synapse':
        rng = _rng(rng)
        return cls(
            weight=float(rng.uniform(*WEIGHT_RANGE)),
            offset=float(rng.uniform(*OFFSET_RANGE)),
        )

    def mutate(self, params: Hyperparameters, rng: Optional[np.random.Generator] = None) -> None:
        """Locally perturb weight and offset, each with its own chance."""
        rng = _rng(rng)
        if rng.random() < params.weight_mutate_chance:
            self.weight = float(rng.uniform(
                self.weight - params.weight_mutate_amount,
                self.weight + params.weight_mutate_amount,
            ))
        if rng.random() < params.offset_mutate_chance:
            self.offset = float(rng.uniform(
                self.offset - params.offset_mutate_amount,
                self.offset + params.offset_mutate_amount,
            ))

    def trade_with(
        self,
        other: 'Synapse',
        chance: float,
        rng: Optional[np.random.Generator] = None,
    ) -> bool:
        """Swap both values with other with probability chance."""
        rng = _rng(rng)
        if rng.random() < chance:
            self.weight, other.weight = other.weight, self.weight
            self.offset, other.offset = other.offset, self.offset
            return True
        return False


# =============================================================================
# Array forms
# =============================================================================

def random_synapses(
    shape: Tuple[int, ...],
    rng: Optional[np.random.Generator] = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """Random weight and offset arrays of the given shape."""
    rng = _rng(rng)
    weights = rng.uniform(*WEIGHT_RANGE, size=shape)
    offsets = rng.uniform(*OFFSET_RANGE, size=shape)
    return weights, offsets


def _perturb(values: np.ndarray, chance: float, amount: float, rng: np.random.Generator) -> None:
    mask = rng.random(values.shape) < chance
    if not mask.any():
        return
    current = values[mask]
    values[mask] = rng.uniform(current - amount, current + amount)


def mutate_synapses(
    weights: np.ndarray,
    offsets: np.ndarray,
    params: Hyperparameters,
    rng: Optional[np.random.Generator] = None,
) -> None:
    """Apply Synapse.mutate to every position of the arrays, in place."""
    rng = _rng(rng)
    _perturb(weights, params.weight_mutate_chance, params.weight_mutate_amount, rng)
    _perturb(offsets, params.offset_mutate_chance, params.offset_mutate_amount, rng)


def trade_synapses(
    weights_a: np.ndarray,
    offsets_a: np.ndarray,
    weights_b: np.ndarray,
    offsets_b: np.ndarray,
    chance: float,
    rng: Optional[np.random.Generator] = None,
) -> int:
    """
    Uniform crossover between two sets of synapses, in place.

    Every position flips its own coin; on success the weight and the offset
    at that position are swapped together.

    Returns:
        Number of synapses swapped
    """
    if weights_a.shape != weights_b.shape:
        raise ValueError(
            f"Cannot trade synapses of shape {weights_a.shape} with {weights_b.shape}"
        )
    rng = _rng(rng)
    mask = rng.random(weights_a.shape) < chance

    swapped = weights_a[mask]
    weights_a[mask] = weights_b[mask]
    weights_b[mask] = swapped

    swapped = offsets_a[mask]
    offsets_a[mask] = offsets_b[mask]
    offsets_b[mask] = swapped

    return int(mask.sum())
