"""
Population management for evolutionary training.

Handles:
- Initial population creation (independent random networks, in parallel)
- Parallel fitness scoring with a barrier before sorting
- Stable ranking by fitness
"""

from multiprocessing import Pool
from typing import List, Dict, Any, Optional

import numpy as np

from ..core.config import Architecture, Hyperparameters
from ..core.network import Network
from .fitness import TrainingSet, score_network


def create_initial_population(
    architecture: Architecture,
    params: Hyperparameters,
    population_size: int = 2000,
    seed: Optional[int] = None,
    n_workers: int = 1,
) -> List[Network]:
    """
    Create a population of independently random networks.

    Every individual gets its own child seed spawned from the run seed, so a
    seeded population is identical whatever the number of workers.

    Args:
        architecture: Layer widths shared by every network
        params: Hyperparameters attached to every network
        population_size: Number of networks
        seed: Random seed for reproducibility
        n_workers: Parallel workers (1 builds in this process)

    Returns:
        List of random networks
    """
    child_seeds = np.random.SeedSequence(seed).spawn(population_size)
    args_list = [(architecture, params, child) for child in child_seeds]

    if n_workers <= 1:
        return [_build_worker(args) for args in args_list]

    with Pool(n_workers) as pool:
        return pool.map(_build_worker, args_list)


def score_population(
    population: List[Network],
    training_set: TrainingSet,
    n_workers: int = 1,
) -> List[int]:
    """
    Score every network against the training set.

    Networks are scored independently; the call returns only after all of
    them are done. Any failing task aborts the whole call.

    Returns:
        Scores in population order
    """
    if n_workers <= 1:
        return [score_network(network, training_set) for network in population]

    with Pool(n_workers, initializer=_init_score_worker, initargs=(training_set,)) as pool:
        return pool.map(_score_worker, population)


def sort_population(population: List[Network], scores: List[int]) -> List[int]:
    """
    Reorder the population in place, fittest first.

    The sort is stable: networks with equal scores keep their prior relative
    order, so rankings are reproducible.

    Returns:
        Scores reordered to match the population
    """
    if len(population) != len(scores):
        raise ValueError(
            f"Got {len(scores)} scores for a population of {len(population)}"
        )
    order = sorted(range(len(scores)), key=lambda i: scores[i], reverse=True)
    population[:] = [population[i] for i in order]
    return [scores[i] for i in order]


def get_population_stats(scores: List[int]) -> Dict[str, Any]:
    """
    Compute summary statistics for one generation's scores.

    Args:
        scores: Fitness scores

    Returns:
        Dictionary with population statistics
    """
    if not scores:
        return {'size': 0}

    return {
        'size': len(scores),
        'best_fitness': max(scores),
        'mean_fitness': float(np.mean(scores)),
        'min_fitness': min(scores),
        'std_fitness': float(np.std(scores)),
    }


# =============================================================================
# Workers (module level so multiprocessing can pickle them)
# =============================================================================

_worker_training_set: Optional[TrainingSet] = None


def _build_worker(args: tuple) -> Network:
    architecture, params, seed = args
    return Network.new_random(architecture, params, np.random.default_rng(seed))


def _init_score_worker(training_set: TrainingSet) -> None:
    global _worker_training_set
    _worker_training_set = training_set


def _score_worker(network: Network) -> int:
    return score_network(network, _worker_training_set)
