"""
Generation history for evolutionary runs.

Records per-generation fitness statistics and phase timings so a run can be
reported, saved as JSON and plotted afterwards.
"""

from dataclasses import dataclass, asdict
from typing import List, Dict, Any, Optional, Union
from pathlib import Path
from datetime import datetime
import json
import uuid

from .population import get_population_stats


@dataclass
class GenerationStats:
    """Statistics for a single generation."""
    generation: int
    best_fitness: int
    mean_fitness: float
    min_fitness: int
    std_fitness: float
    max_fitness: int
    best_ratio: float
    population_size: int
    score_seconds: float
    sort_seconds: float
    reproduce_seconds: float
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class EvolutionHistory:
    """
    Tracks evolution progress over generations.

    Records per-generation statistics for analysis and visualization.
    """

    def __init__(self):
        self.generations: List[GenerationStats] = []
        self.fitness_trajectory: List[int] = []

    def record_generation(
        self,
        generation: int,
        scores: List[int],
        max_fitness: int,
        score_seconds: float = 0.0,
        sort_seconds: float = 0.0,
        reproduce_seconds: float = 0.0,
    ) -> GenerationStats:
        """
        Record statistics for a scored generation.

        Args:
            generation: Generation number
            scores: Fitness of every network this generation
            max_fitness: Best achievable score on the training set
            score_seconds: Time spent scoring
            sort_seconds: Time spent sorting
            reproduce_seconds: Time spent reproducing

        Returns:
            GenerationStats for this generation
        """
        if not scores:
            scores = [0]
        summary = get_population_stats(scores)
        best = int(summary['best_fitness'])

        stats = GenerationStats(
            generation=generation,
            best_fitness=best,
            mean_fitness=summary['mean_fitness'],
            min_fitness=int(summary['min_fitness']),
            std_fitness=summary['std_fitness'],
            max_fitness=max_fitness,
            best_ratio=best / max_fitness if max_fitness else 0.0,
            population_size=summary['size'],
            score_seconds=score_seconds,
            sort_seconds=sort_seconds,
            reproduce_seconds=reproduce_seconds,
            timestamp=datetime.now().isoformat(),
        )

        self.generations.append(stats)
        self.fitness_trajectory.append(best)
        return stats

    @property
    def best_fitness(self) -> Optional[int]:
        return max(self.fitness_trajectory) if self.fitness_trajectory else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert history to dictionary for serialization."""
        return {
            'generations': [g.to_dict() for g in self.generations],
            'fitness_trajectory': self.fitness_trajectory,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EvolutionHistory':
        """Restore history from dictionary."""
        history = cls()
        history.generations = [
            GenerationStats(**g) for g in data.get('generations', [])
        ]
        history.fitness_trajectory = data.get('fitness_trajectory', [])
        return history

    def save(self, path: Union[str, Path]) -> Path:
        """Save history to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)
        return path

    @classmethod
    def load(cls, path: Union[str, Path]) -> 'EvolutionHistory':
        """Load history from a JSON file."""
        with open(path, 'r') as f:
            data = json.load(f)
        return cls.from_dict(data)

    def __len__(self) -> int:
        return len(self.generations)


def generate_run_id() -> str:
    """Generate unique run identifier."""
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    short_uuid = uuid.uuid4().hex[:6]
    return f"evo_{timestamp}_{short_uuid}"
