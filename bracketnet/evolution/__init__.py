"""
Genetic training of bit-perceptron networks.

Key components:
- TrainingSet / score_network: bit-level fitness evaluation
- Population helpers: parallel construction, parallel scoring, stable sort
- Operators: truncation selection and clone/crossover/mutate reproduction
- EvolutionEngine: the generation loop
- EvolutionHistory: per-generation statistics

Example usage:
    from bracketnet.core import Architecture, Hyperparameters
    from bracketnet.evolution import EvolutionEngine, EvolutionConfig

    config = EvolutionConfig(
        architecture=Architecture(544, [8, 32, 32, 16], 24),
        population_size=200,
        n_generations=50,
        seed=7,
    )
    engine = EvolutionEngine(config, training_pairs)
    result = engine.evolve()

    print(result.summary())
"""

from .fitness import TrainingSet, bits_correct, score_network, max_fitness
from .population import (
    create_initial_population,
    score_population,
    sort_population,
    get_population_stats,
)
from .operators import breeding_pairs, breed, reproduce
from .history import EvolutionHistory, GenerationStats
from .engine import EvolutionEngine, EvolutionConfig, EvolutionResult, EngineState

__all__ = [
    # Core classes
    'EvolutionEngine',
    'EvolutionConfig',
    'EvolutionResult',
    'EngineState',
    'EvolutionHistory',
    'GenerationStats',
    'TrainingSet',
    # Fitness
    'bits_correct',
    'score_network',
    'max_fitness',
    # Population
    'create_initial_population',
    'score_population',
    'sort_population',
    'get_population_stats',
    # Operators
    'breeding_pairs',
    'breed',
    'reproduce',
]
