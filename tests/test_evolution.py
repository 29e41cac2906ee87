"""
Tests for fitness, population management, operators and the evolution engine.

Run with: python -m pytest tests/test_evolution.py -v
"""

import numpy as np
import pytest

from bracketnet.core.config import Architecture, Hyperparameters
from bracketnet.core.network import Network
from bracketnet.evolution.fitness import (
    TrainingSet,
    bits_correct,
    score_network,
    max_fitness,
)
from bracketnet.evolution.population import (
    create_initial_population,
    score_population,
    sort_population,
    get_population_stats,
)
from bracketnet.evolution.operators import (
    breeding_pool_size,
    breeding_pairs,
    breed,
    reproduce,
)
from bracketnet.evolution.history import EvolutionHistory, generate_run_id
from bracketnet.evolution.engine import (
    EngineState,
    EvolutionConfig,
    EvolutionEngine,
)

from conftest import constant_network


def identity_pairs(values=(0x00, 0x0F, 0x3C, 0x81, 0xF0, 0xFF)):
    return [(bytes([v]), bytes([v])) for v in values]


@pytest.fixture
def identity_set(byte_architecture):
    return TrainingSet.from_pairs(identity_pairs(), byte_architecture)


@pytest.fixture
def engine_config():
    return EvolutionConfig(
        architecture=Architecture(8, [8], 8),
        population_size=8,
        n_generations=4,
        seed=42,
        n_workers=1,
    )


# =============================================================================
# Fitness
# =============================================================================

class TestFitness:
    """Tests for bit-level fitness."""

    def test_all_ones_network(self, byte_architecture):
        network = constant_network(byte_architecture, 1.0, 0.0)

        matching = TrainingSet.from_pairs([(b'\x01', b'\xff')], byte_architecture)
        opposite = TrainingSet.from_pairs([(b'\x01', b'\x00')], byte_architecture)

        assert score_network(network, matching) == 8
        assert score_network(network, opposite) == 0

    def test_bits_correct_partial(self):
        result = np.array([[0b10110000]], dtype=np.uint8)
        expected = np.array([[0b10010000]], dtype=np.uint8)

        assert bits_correct(result, expected, 8) == 7
        assert bits_correct(result, expected, 2) == 2

    def test_padding_earns_nothing(self):
        # Only the first 3 bits count; the padding bits differ
        result = np.array([[0b10100000]], dtype=np.uint8)
        expected = np.array([[0b10111111]], dtype=np.uint8)

        assert bits_correct(result, expected, 3) == 3

    def test_score_bounds(self, small_architecture, rng):
        pairs = [
            (rng.integers(0, 256, 3, dtype=np.uint8).tobytes(),
             rng.integers(0, 256, 2, dtype=np.uint8).tobytes())
            for _ in range(5)
        ]
        training_set = TrainingSet.from_pairs(pairs, small_architecture)

        for _ in range(5):
            score = score_network(Network.new_random(small_architecture, rng=rng), training_set)
            assert 0 <= score <= max_fitness(training_set)
        assert max_fitness(training_set) == 5 * 13

    def test_max_fitness(self, identity_set):
        assert identity_set.max_fitness == 48
        assert len(identity_set) == 6

    def test_empty_set(self, byte_architecture):
        with pytest.raises(ValueError):
            TrainingSet.from_pairs([], byte_architecture)

    def test_wrong_widths(self, byte_architecture):
        with pytest.raises(ValueError):
            TrainingSet.from_pairs([(b'\x01\x02', b'\x00')], byte_architecture)
        with pytest.raises(ValueError):
            TrainingSet.from_pairs([(b'\x01', b'')], byte_architecture)

    def test_training_set_is_read_only(self, identity_set):
        with pytest.raises(ValueError):
            identity_set.inputs[0, 0] = 1


# =============================================================================
# Population
# =============================================================================

class TestPopulation:
    """Tests for population creation, scoring and ranking."""

    def test_size_and_architecture(self, small_architecture, params):
        population = create_initial_population(small_architecture, params, 6, seed=1)

        assert len(population) == 6
        assert all(n.architecture == small_architecture for n in population)

    def test_seed_reproducibility(self, small_architecture, params):
        a = create_initial_population(small_architecture, params, 5, seed=11)
        b = create_initial_population(small_architecture, params, 5, seed=11)
        c = create_initial_population(small_architecture, params, 5, seed=12)

        assert a == b
        assert a != c

    def test_individuals_differ(self, small_architecture, params):
        population = create_initial_population(small_architecture, params, 4, seed=3)
        assert population[0] != population[1]

    def test_parallel_matches_serial(self, small_architecture, params):
        serial = create_initial_population(small_architecture, params, 6, seed=5, n_workers=1)
        parallel = create_initial_population(small_architecture, params, 6, seed=5, n_workers=2)

        assert serial == parallel

    def test_parallel_scoring_matches_serial(self, byte_architecture, params, identity_set):
        population = create_initial_population(byte_architecture, params, 6, seed=8)

        serial = score_population(population, identity_set, n_workers=1)
        parallel = score_population(population, identity_set, n_workers=2)

        assert serial == parallel
        assert all(0 <= s <= identity_set.max_fitness for s in serial)

    def test_sort_is_stable(self, byte_architecture):
        population = [constant_network(byte_architecture, w, 0.0) for w in range(5)]
        scores = [3, 5, 3, 5, 1]

        sorted_scores = sort_population(population, scores)

        assert sorted_scores == [5, 5, 3, 3, 1]
        weights = [int(n.layers[0].weights[0, 0]) for n in population]
        assert weights == [1, 3, 0, 2, 4]

    def test_sort_length_mismatch(self, byte_architecture):
        population = [constant_network(byte_architecture, 0.0, 0.0)]
        with pytest.raises(ValueError):
            sort_population(population, [1, 2])

    def test_population_stats(self):
        stats = get_population_stats([2, 4, 6])

        assert stats['size'] == 3
        assert stats['best_fitness'] == 6
        assert stats['min_fitness'] == 2
        assert stats['mean_fitness'] == pytest.approx(4.0)
        assert get_population_stats([]) == {'size': 0}


# =============================================================================
# Operators
# =============================================================================

class TestOperators:
    """Tests for selection and reproduction."""

    def test_breeding_pool_size(self):
        assert breeding_pool_size(2000) == 1000
        assert breeding_pool_size(5) == 2
        assert breeding_pool_size(4) == 2

    def test_breeding_pairs(self):
        assert breeding_pairs(4) == [(0, 1), (2, 3)]
        assert breeding_pairs(5) == [(0, 1), (2, 3), (4, 0)]
        assert breeding_pairs(2) == [(0, 1)]
        with pytest.raises(ValueError):
            breeding_pairs(1)

    def test_breed_leaves_parents_untouched(self, small_architecture, rng):
        parent_a = Network.new_random(small_architecture, rng=rng)
        parent_b = Network.new_random(small_architecture, rng=rng)
        a_before, b_before = parent_a.copy(), parent_b.copy()

        child_a, child_b = breed(parent_a, parent_b, rng=rng)

        assert parent_a == a_before
        assert parent_b == b_before
        assert child_a != parent_a
        assert child_b != parent_b

    def test_breed_without_variation(self, small_architecture, rng):
        params = Hyperparameters(
            trait_swap_chance=0.0, weight_mutate_chance=0.0, offset_mutate_chance=0.0,
        )
        parent_a = Network.new_random(small_architecture, params, rng)
        parent_b = Network.new_random(small_architecture, params, rng)

        child_a, child_b = breed(parent_a, parent_b, params, rng)

        assert child_a == parent_a
        assert child_b == parent_b
        assert child_a.layers[0].weights is not parent_a.layers[0].weights

    def test_breed_params_override_parents(self, small_architecture, rng):
        """The params passed to breed drive crossover, not the parents' own."""
        parent_a = Network.new_random(small_architecture, Hyperparameters(), rng)
        parent_b = Network.new_random(small_architecture, Hyperparameters(), rng)
        frozen = Hyperparameters(
            trait_swap_chance=0.0, weight_mutate_chance=0.0, offset_mutate_chance=0.0,
        )

        child_a, child_b = breed(parent_a, parent_b, frozen, rng)

        assert child_a == parent_a
        assert child_b == parent_b

    @pytest.mark.parametrize('size', [4, 5, 6, 7, 8, 10])
    def test_reproduce_conserves_size(self, byte_architecture, rng, size):
        population = [constant_network(byte_architecture, w, 0.0) for w in range(size)]

        next_generation = reproduce(population, rng=rng)

        assert len(next_generation) == size

    def test_reproduce_keeps_elite_and_drops_bottom_half(self, byte_architecture, rng):
        params = Hyperparameters(
            trait_swap_chance=0.0, weight_mutate_chance=0.0, offset_mutate_chance=0.0,
        )
        population = [constant_network(byte_architecture, float(w), 0.0, params) for w in range(8)]

        next_generation = reproduce(population, params, rng)

        weights = [n.layers[0].weights[0, 0] for n in next_generation]
        # parents a, b then their unchanged clones, pair by pair
        assert weights == [0, 1, 0, 1, 2, 3, 2, 3]
        assert next_generation[0] is population[0]

    def test_reproduce_never_shares_arrays(self, byte_architecture, rng):
        population = [constant_network(byte_architecture, float(w), 0.0) for w in range(6)]

        next_generation = reproduce(population, rng=rng)

        arrays = [id(n.layers[0].weights) for n in next_generation]
        assert len(set(arrays)) == len(arrays)

    @pytest.mark.parametrize('size, expected_breeds', [
        (4, 1), (5, 1), (6, 1), (7, 2), (8, 2), (10, 2),
    ])
    def test_reproduce_skips_pairs_without_room(
        self, byte_architecture, rng, monkeypatch, size, expected_breeds
    ):
        calls = []

        def counting_breed(*args):
            calls.append(args)
            return breed(*args)

        monkeypatch.setattr('bracketnet.evolution.operators.breed', counting_breed)
        population = [constant_network(byte_architecture, float(w), 0.0) for w in range(size)]

        next_generation = reproduce(population, rng=rng)

        assert len(next_generation) == size
        assert len(calls) == expected_breeds

    def test_reproduce_too_small(self, byte_architecture, rng):
        population = [constant_network(byte_architecture, 0.0, 0.0) for _ in range(3)]
        with pytest.raises(ValueError):
            reproduce(population, rng=rng)


# =============================================================================
# History
# =============================================================================

class TestHistory:
    """Tests for generation history."""

    def test_record_generation(self):
        history = EvolutionHistory()

        stats = history.record_generation(1, [4, 8, 6], max_fitness=16, score_seconds=0.5)

        assert stats.best_fitness == 8
        assert stats.min_fitness == 4
        assert stats.best_ratio == pytest.approx(0.5)
        assert stats.population_size == 3
        assert history.fitness_trajectory == [8]
        assert len(history) == 1

    def test_record_generation_matches_population_stats(self):
        scores = [5, 1, 9, 3]
        history = EvolutionHistory()

        stats = history.record_generation(1, scores, max_fitness=12)
        summary = get_population_stats(scores)

        assert stats.mean_fitness == pytest.approx(summary['mean_fitness'])
        assert stats.std_fitness == pytest.approx(summary['std_fitness'])
        assert stats.population_size == summary['size']

    def test_best_fitness(self):
        history = EvolutionHistory()
        assert history.best_fitness is None

        history.record_generation(1, [3], 10)
        history.record_generation(2, [7], 10)

        assert history.best_fitness == 7

    def test_save_and_load(self, tmp_path):
        history = EvolutionHistory()
        history.record_generation(1, [1, 2], 4)
        history.record_generation(2, [3, 2], 4)

        path = history.save(tmp_path / 'runs' / 'history.json')
        restored = EvolutionHistory.load(path)

        assert restored.fitness_trajectory == [2, 3]
        assert restored.generations[1].to_dict() == history.generations[1].to_dict()

    def test_run_ids_unique(self):
        assert generate_run_id() != generate_run_id()


# =============================================================================
# Engine
# =============================================================================

class TestEvolutionEngine:
    """Tests for the training loop."""

    def test_config_validation(self):
        with pytest.raises(ValueError):
            EvolutionConfig(architecture=Architecture(8, [], 8), population_size=3)
        with pytest.raises(ValueError):
            EvolutionConfig(architecture=Architecture(8, [], 8), n_generations=-1)

    def test_config_round_trip(self, engine_config):
        restored = EvolutionConfig.from_dict(engine_config.to_dict())
        assert restored == engine_config

    def test_rejects_mismatched_pairs(self, engine_config):
        with pytest.raises(ValueError):
            EvolutionEngine(engine_config, [(b'\x00\x00', b'\x00')])

    def test_evolve(self, engine_config):
        engine = EvolutionEngine(engine_config, identity_pairs(), run_id='test_run')

        result = engine.evolve()

        assert result.run_id == 'test_run'
        assert result.generations_completed == 4
        assert len(result.history) == 4
        assert len(result.final_population) == engine_config.population_size
        assert result.best_network is result.final_population[0]
        assert result.best_fitness == max(result.final_scores)
        assert result.max_fitness == 48
        assert 0 <= result.best_fitness <= result.max_fitness
        assert engine.state == EngineState.FINALIZED
        assert 'test_run' in result.summary()

    def test_best_fitness_never_decreases(self, engine_config):
        engine = EvolutionEngine(engine_config, identity_pairs())

        result = engine.evolve(n_generations=6)

        trajectory = result.history.fitness_trajectory
        assert all(b >= a for a, b in zip(trajectory, trajectory[1:]))
        assert result.best_fitness >= trajectory[-1]

    def test_seeded_runs_are_identical(self, engine_config):
        first = EvolutionEngine(engine_config, identity_pairs()).evolve()
        second = EvolutionEngine(engine_config, identity_pairs()).evolve()

        assert first.best_network == second.best_network
        assert first.history.fitness_trajectory == second.history.fitness_trajectory
        assert first.final_scores == second.final_scores

    def test_progress_callback(self, engine_config):
        calls = []
        engine = EvolutionEngine(engine_config, identity_pairs())

        engine.evolve(progress_callback=lambda gen, total, stats: calls.append((gen, total, stats)))

        assert [c[0] for c in calls] == [1, 2, 3, 4]
        assert all(c[1] == 4 for c in calls)
        assert set(calls[0][2]) >= {'best_fitness', 'max_fitness', 'score_seconds'}

    def test_zero_generations(self, engine_config):
        engine = EvolutionEngine(engine_config, identity_pairs())

        result = engine.evolve(n_generations=0)

        assert result.generations_completed == 0
        assert len(result.history) == 0
        assert result.best_fitness == result.final_scores[0]

    def test_manual_steps(self, engine_config):
        engine = EvolutionEngine(engine_config, identity_pairs())
        engine.initialize_population()
        assert engine.best_network is None

        scores = engine.score_population()
        assert len(scores) == engine_config.population_size

        engine.sort_population()
        assert engine.scores == sorted(scores, reverse=True)
        assert engine.best_network is engine.population[0]

        engine.reproduce()
        assert engine.state == EngineState.REPRODUCED
        assert len(engine.population) == engine_config.population_size

    def test_out_of_order_steps(self, engine_config):
        engine = EvolutionEngine(engine_config, identity_pairs())

        with pytest.raises(RuntimeError):
            engine.score_population()
        with pytest.raises(RuntimeError):
            engine.run_generation()

        engine.initialize_population()
        with pytest.raises(RuntimeError):
            engine.sort_population()
        with pytest.raises(RuntimeError):
            engine.reproduce()


# =============================================================================
# Plots
# =============================================================================

class TestPlots:
    """Tests for the fitness plot."""

    def test_plot_fitness_history(self, tmp_path):
        from bracketnet.visualization.plots import plot_fitness_history

        history = EvolutionHistory()
        for gen, best in enumerate([2, 3, 5], start=1):
            history.record_generation(gen, [1, best], 8)

        output = tmp_path / 'plots' / 'fitness.png'
        fig = plot_fitness_history(history, output, title='Test run')

        assert output.exists()
        assert fig.axes[0].get_title() == 'Test run'
