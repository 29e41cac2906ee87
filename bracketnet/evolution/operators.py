"""
Evolutionary operators: selection and reproduction.

Selection is truncation: after sorting, the top half of the population is
the breeding pool and the bottom half is discarded. The pool is split into
consecutive parent pairs; each pair contributes both unchanged parents and
two children (clone, crossover, mutate) to the next generation.
"""

from typing import List, Tuple, Optional

import numpy as np

from ..core.config import Hyperparameters
from ..core.network import Network


def breeding_pool_size(population_size: int) -> int:
    """Size of the fitter part of the population allowed to breed."""
    return max(2, population_size // 2)


def breeding_pairs(pool_size: int) -> List[Tuple[int, int]]:
    """
    Pair pool members by rank: (0, 1), (2, 3), ...

    With an odd pool the last member is paired with the fittest one.

    Example:
        breeding_pairs(5) -> [(0, 1), (2, 3), (4, 0)]
    """
    if pool_size < 2:
        raise ValueError(f"Need at least 2 parents to breed, got {pool_size}")
    pairs = [(i, i + 1) for i in range(0, pool_size - 1, 2)]
    if pool_size % 2 == 1:
        pairs.append((pool_size - 1, 0))
    return pairs


def breed(
    parent_a: Network,
    parent_b: Network,
    params: Optional[Hyperparameters] = None,
    rng: Optional[np.random.Generator] = None,
) -> Tuple[Network, Network]:
    """
    Produce two children from two parents.

    The parents are cloned; the clones trade synapses with each other and are
    then mutated, both steps using params (each clone's own hyperparameters
    when params is None). The parents themselves are left untouched.

    Returns:
        Tuple of two child networks
    """
    if rng is None:
        rng = np.random.default_rng()
    child_a = parent_a.copy()
    child_b = parent_b.copy()

    child_a.crossover(child_b, params, rng)
    child_a.mutate(params, rng)
    child_b.mutate(params, rng)

    return child_a, child_b


def reproduce(
    population: List[Network],
    params: Optional[Hyperparameters] = None,
    rng: Optional[np.random.Generator] = None,
) -> List[Network]:
    """
    Build the next generation from a population sorted fittest first.

    For each parent pair, in rank order, the next generation receives
    parent_a, parent_b, child_a, child_b. Pairs are revisited from the top
    when the pool alone cannot fill the population (sizes not divisible by
    4). Filling stops at the original size; a pair is only bred when at
    least one of its children still fits.

    Args:
        population: Population sorted by descending fitness
        params: Crossover and mutation hyperparameters (defaults to each
            network's own)
        rng: Random generator

    Returns:
        New population of the same size
    """
    size = len(population)
    if size < 4:
        raise ValueError(f"Population must hold at least 4 networks, got {size}")
    if rng is None:
        rng = np.random.default_rng()

    pairs = breeding_pairs(breeding_pool_size(size))
    next_generation: List[Network] = []
    kept = set()
    pair_idx = 0
    while len(next_generation) < size:
        i, j = pairs[pair_idx % len(pairs)]
        for idx in (i, j):
            if len(next_generation) == size:
                break
            # A parent kept twice gets its own copy so no two slots share arrays
            parent = population[idx] if idx not in kept else population[idx].copy()
            kept.add(idx)
            next_generation.append(parent)
        remaining = size - len(next_generation)
        if remaining > 0:
            children = breed(population[i], population[j], params, rng)
            next_generation.extend(children[:remaining])
        pair_idx += 1

    return next_generation
