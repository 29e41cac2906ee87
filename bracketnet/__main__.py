"""
Command line interface for the tournament game predictor.

Usage:
    python -m bracketnet train [options]
    python -m bracketnet predict YEAR ROUND REGION HIGH_SEED HIGH_TEAM LOW_SEED LOW_TEAM [options]

Options (train):
    --data PATH          Historical results CSV
    --model PATH         Where to save the trained model
    --population N       Population size (default: 2000)
    --generations N      Number of generations (default: 1000)
    --layers W [W...]    Hidden layer widths (default: 8 32 32 16)
    --workers N          Parallel workers (default: cpu_count - 1)
    --seed N             Random seed for reproducibility
    --history PATH       Save per-generation statistics as JSON
    --plot PATH          Save a fitness plot

The model file does not record its layer widths, so predict must be given
the same --layers as the training run.
"""

import argparse
import sys
import time
from typing import List, Optional

from .core.config import Architecture, Hyperparameters
from .core.persistence import ModelStore
from .datasets.games import (
    INPUT_BITS,
    OUTPUT_BITS,
    load_games,
    training_pairs,
    prediction_input,
)
from .evolution.engine import EvolutionEngine, EvolutionConfig

DATA_FILE_NAME = 'march_madness_historical_data.csv'
MODEL_FILE_NAME = 'model.mmp'
DEFAULT_LAYERS = [8, 32, 32, 16]


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog='bracketnet',
        description='Tournament game predictor trained with a genetic algorithm',
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    train = subparsers.add_parser('train', help='Train on the historical results CSV')
    train.add_argument(
        '--data', type=str, default=DATA_FILE_NAME,
        help=f'Historical results CSV (default: {DATA_FILE_NAME})'
    )
    train.add_argument(
        '--model', type=str, default=MODEL_FILE_NAME,
        help=f'Output model file (default: {MODEL_FILE_NAME})'
    )
    train.add_argument(
        '--population', type=int, default=2000,
        help='Population size (default: 2000)'
    )
    train.add_argument(
        '--generations', type=int, default=1000,
        help='Number of generations (default: 1000)'
    )
    train.add_argument(
        '--layers', type=int, nargs='+', default=DEFAULT_LAYERS,
        help='Hidden layer widths (default: 8 32 32 16)'
    )
    train.add_argument(
        '--workers', type=int, default=None,
        help='Number of parallel workers (default: cpu_count - 1)'
    )
    train.add_argument(
        '--seed', type=int, default=None,
        help='Random seed for reproducibility'
    )
    train.add_argument(
        '--history', type=str, default=None,
        help='Save per-generation statistics to this JSON file'
    )
    train.add_argument(
        '--plot', type=str, default=None,
        help='Save a fitness plot to this image file'
    )

    predict = subparsers.add_parser('predict', help='Use a trained model to predict a game')
    predict.add_argument(
        '--model', type=str, default=MODEL_FILE_NAME,
        help=f'Model file (default: {MODEL_FILE_NAME})'
    )
    predict.add_argument(
        '--layers', type=int, nargs='+', default=DEFAULT_LAYERS,
        help='Hidden layer widths the model was trained with'
    )
    predict.add_argument('year', help='Two-digit year')
    predict.add_argument('round', help='Round, e.g. r64, sweet16, "Elite Eight"')
    predict.add_argument('region', help='Region, or "none"')
    predict.add_argument('high_seed', type=int)
    predict.add_argument('high_seed_team')
    predict.add_argument('low_seed', type=int)
    predict.add_argument('low_seed_team')

    return parser.parse_args(argv)


def progress_callback(gen: int, total: int, stats: dict):
    """Print per-generation results and phase timings."""
    print(f"Generation {gen} / {total}")
    print(f"   Test took {stats['score_seconds']:.3f}s")
    print(f"   Sort took {stats['sort_seconds']:.3f}s")
    print(f"   Reproduction took {stats['reproduce_seconds']:.3f}s")
    print(
        f"   Gen best: {stats['best_fitness']} / {stats['max_fitness']} "
        f"= {stats['best_ratio']:.4f}"
    )


def train(args: argparse.Namespace) -> int:
    print("Training new tournament predictor model")

    print(f"Loading training data from {args.data}")
    games = load_games(args.data)
    pairs = training_pairs(games)
    print(f"   {len(pairs)} training pairs (including mirrored games)")

    config = EvolutionConfig(
        architecture=Architecture(INPUT_BITS, args.layers, OUTPUT_BITS),
        params=Hyperparameters(),
        population_size=args.population,
        n_generations=args.generations,
        seed=args.seed,
        n_workers=args.workers,
    )
    engine = EvolutionEngine(config, pairs)

    print("\nConfiguration:")
    print(f"   Architecture:       {config.architecture.architecture_string}")
    print(f"   Population size:    {config.population_size}")
    print(f"   Generations:        {config.n_generations}")
    print(f"   Workers:            {engine.n_workers}")
    print(f"   Seed:               {config.seed}")

    print("\nGenerating randomized population")
    engine.initialize_population()
    print(f"Generation took {engine.init_seconds:.3f}s")

    print("\nStarting training")
    result = engine.evolve(progress_callback=progress_callback)

    print()
    print(result.summary())

    print(f"\nSaving model to {args.model}")
    ModelStore(args.model).save(result.best_network)

    if args.history:
        path = result.history.save(args.history)
        print(f"Saved history: {path}")
    if args.plot:
        from .visualization.plots import plot_fitness_history
        plot_fitness_history(result.history, args.plot)
        print(f"Saved plot: {args.plot}")

    return 0


def predict(args: argparse.Namespace) -> int:
    print("Converting input into data...")
    input_bits = prediction_input(
        args.year, args.round, args.region,
        args.high_seed, args.high_seed_team,
        args.low_seed, args.low_seed_team,
    )

    print("Predicting!")
    architecture = Architecture(INPUT_BITS, args.layers, OUTPUT_BITS)
    network = ModelStore(args.model).load(architecture, Hyperparameters())
    result = network.evaluate(input_bits)

    print(f"Predicted score for {args.high_seed_team}: {result[0]}")
    print(f"Predicted score for {args.low_seed_team}: {result[1]}")
    print(f"Expected overtimes: {result[2]}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    start = time.time()
    try:
        if args.command == 'train':
            status = train(args)
        else:
            status = predict(args)
    except (ValueError, OSError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(f"\nDone in {time.time() - start:.1f}s")
    return status


if __name__ == '__main__':
    sys.exit(main())
