"""
Main evolutionary training engine.

Orchestrates the evolution loop:
1. Initialize a population of random networks (parallel)
2. Score every network against the training pairs (parallel)
3. Sort the population, fittest first
4. Reproduce from the top half to refill the population
5. Repeat from 2 for the configured number of generations
6. Score and sort one last time; index 0 is the trained network

Each phase finishes completely before the next begins. A failure in any
construction or scoring task aborts the run.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Dict, Any, Optional, Callable, Sequence, Tuple
from multiprocessing import cpu_count
import time

import numpy as np

from ..core.bits import Buffer
from ..core.config import Architecture, Hyperparameters
from ..core.network import Network
from .fitness import TrainingSet
from .history import EvolutionHistory, GenerationStats, generate_run_id
from .operators import reproduce
from .population import (
    create_initial_population,
    score_population,
    sort_population,
)


class EngineState(str, Enum):
    """Lifecycle of an evolution run."""
    CREATED = 'created'
    INITIALIZED = 'initialized'
    SCORED = 'scored'
    SORTED = 'sorted'
    REPRODUCED = 'reproduced'
    FINALIZED = 'finalized'


@dataclass
class EvolutionConfig:
    """Configuration for an evolution run."""
    architecture: Architecture
    params: Hyperparameters = field(default_factory=Hyperparameters)

    # Population parameters
    population_size: int = 2000
    n_generations: int = 1000

    # Reproducibility
    seed: Optional[int] = None

    # Parallelization
    n_workers: Optional[int] = None

    def __post_init__(self):
        if self.population_size < 4:
            raise ValueError(
                f"population_size must be at least 4, got {self.population_size}"
            )
        if self.n_generations < 0:
            raise ValueError(f"n_generations must be >= 0, got {self.n_generations}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'architecture': self.architecture.to_dict(),
            'params': self.params.to_dict(),
            'population_size': self.population_size,
            'n_generations': self.n_generations,
            'seed': self.seed,
            'n_workers': self.n_workers,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EvolutionConfig':
        return cls(
            architecture=Architecture.from_dict(data['architecture']),
            params=Hyperparameters.from_dict(data['params']),
            population_size=data['population_size'],
            n_generations=data['n_generations'],
            seed=data.get('seed'),
            n_workers=data.get('n_workers'),
        )


@dataclass
class EvolutionResult:
    """Results from an evolution run."""
    run_id: str
    generations_completed: int
    best_network: Network
    best_fitness: int
    max_fitness: int
    history: EvolutionHistory
    final_population: List[Network]
    final_scores: List[int]
    runtime_seconds: float

    @property
    def best_ratio(self) -> float:
        return self.best_fitness / self.max_fitness if self.max_fitness else 0.0

    def summary(self) -> str:
        """Generate summary string."""
        lines = [
            f"Evolution Run: {self.run_id}",
            f"Generations: {self.generations_completed}",
            f"Architecture: {self.best_network.architecture.architecture_string}",
            f"Best fitness: {self.best_fitness} / {self.max_fitness} = {self.best_ratio:.4f}",
            f"Runtime: {self.runtime_seconds:.1f}s",
        ]
        return '\n'.join(lines)


class EvolutionEngine:
    """
    Main evolutionary training engine.

    Evolves bit-perceptron networks to reproduce the expected output bits of
    a set of training pairs.
    """

    def __init__(
        self,
        config: EvolutionConfig,
        training_pairs: Sequence[Tuple[Buffer, Buffer]],
        run_id: Optional[str] = None,
    ):
        """
        Initialize evolution engine.

        Args:
            config: Evolution configuration
            training_pairs: (input_buffer, output_buffer) pairs matching the
                configured architecture
            run_id: Optional run identifier (auto-generated if not provided)

        Raises:
            ValueError: If the pairs do not fit the architecture
        """
        self.config = config
        self.training_set = TrainingSet.from_pairs(training_pairs, config.architecture)
        self.run_id = run_id or generate_run_id()

        self.population: List[Network] = []
        self.scores: List[int] = []
        self.history = EvolutionHistory()
        self.generation = 0
        self.state = EngineState.CREATED
        self.rng = np.random.default_rng(config.seed)

        self.n_workers = config.n_workers or max(1, cpu_count() - 1)

        self.init_seconds = 0.0
        self._timings = {'score': 0.0, 'sort': 0.0, 'reproduce': 0.0}

    @property
    def max_fitness(self) -> int:
        return self.training_set.max_fitness

    @property
    def best_network(self) -> Optional[Network]:
        """Fittest network, once the population has been sorted."""
        if self.state not in (EngineState.SORTED, EngineState.FINALIZED):
            return None
        return self.population[0]

    def _require(self, *states: EngineState) -> None:
        if self.state not in states:
            allowed = ', '.join(s.value for s in states)
            raise RuntimeError(
                f"Engine is {self.state.value}; this step needs one of: {allowed}"
            )

    def initialize_population(self, seed: Optional[int] = None) -> None:
        """
        Create the initial random population.

        Args:
            seed: Random seed (defaults to the configured seed)
        """
        if seed is None:
            seed = self.config.seed
        self.rng = np.random.default_rng(seed)

        start = time.time()
        self.population = create_initial_population(
            self.config.architecture,
            self.config.params,
            population_size=self.config.population_size,
            seed=seed,
            n_workers=self.n_workers,
        )
        self.init_seconds = time.time() - start

        self.scores = []
        self.generation = 0
        self.history = EvolutionHistory()
        self.state = EngineState.INITIALIZED

    def score_population(self) -> List[int]:
        """Score every network; returns scores in population order."""
        self._require(
            EngineState.INITIALIZED,
            EngineState.SCORED,
            EngineState.SORTED,
            EngineState.REPRODUCED,
        )
        start = time.time()
        self.scores = score_population(self.population, self.training_set, self.n_workers)
        self._timings['score'] = time.time() - start
        self.state = EngineState.SCORED
        return self.scores

    def sort_population(self) -> None:
        """Order the population fittest first (stable for equal scores)."""
        self._require(EngineState.SCORED, EngineState.SORTED)
        start = time.time()
        self.scores = sort_population(self.population, self.scores)
        self._timings['sort'] = time.time() - start
        self.state = EngineState.SORTED

    def reproduce(self) -> None:
        """Replace the population with the next generation."""
        self._require(EngineState.SORTED)
        start = time.time()
        self.population = reproduce(self.population, self.config.params, self.rng)
        self._timings['reproduce'] = time.time() - start
        self.scores = []
        self.state = EngineState.REPRODUCED

    def run_generation(self) -> GenerationStats:
        """Execute one generation: score, sort, record, reproduce."""
        self._require(EngineState.INITIALIZED, EngineState.REPRODUCED)
        self.generation += 1

        self.score_population()
        self.sort_population()
        scores = list(self.scores)
        self.reproduce()

        return self.history.record_generation(
            generation=self.generation,
            scores=scores,
            max_fitness=self.max_fitness,
            score_seconds=self._timings['score'],
            sort_seconds=self._timings['sort'],
            reproduce_seconds=self._timings['reproduce'],
        )

    def finalize(self) -> Network:
        """Score and sort one last time and return the fittest network."""
        self._require(
            EngineState.INITIALIZED,
            EngineState.SCORED,
            EngineState.SORTED,
            EngineState.REPRODUCED,
        )
        self.score_population()
        self.sort_population()
        self.state = EngineState.FINALIZED
        return self.population[0]

    def evolve(
        self,
        n_generations: Optional[int] = None,
        progress_callback: Optional[Callable[[int, int, Dict], None]] = None,
    ) -> EvolutionResult:
        """
        Run the full training loop.

        Args:
            n_generations: Number of generations (defaults to the configured count)
            progress_callback: Optional callback(gen, total_gens, stats)

        Returns:
            EvolutionResult with the trained network and statistics
        """
        if n_generations is None:
            n_generations = self.config.n_generations
        if self.state == EngineState.CREATED:
            self.initialize_population()

        start_time = time.time()

        for _ in range(n_generations):
            stats = self.run_generation()

            if progress_callback:
                progress_callback(self.generation, n_generations, stats.to_dict())

        best = self.finalize()
        runtime = time.time() - start_time

        return EvolutionResult(
            run_id=self.run_id,
            generations_completed=self.generation,
            best_network=best,
            best_fitness=self.scores[0],
            max_fitness=self.max_fitness,
            history=self.history,
            final_population=self.population,
            final_scores=self.scores,
            runtime_seconds=runtime,
        )
