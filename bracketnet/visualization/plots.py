"""
Matplotlib-based plots for evolution runs.

These functions create static plots for analysis and documentation.
"""

from pathlib import Path
from typing import Optional, Tuple, Union

# Matplotlib imports with non-GUI backend
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from ..evolution.history import EvolutionHistory


def plot_fitness_history(
    history: EvolutionHistory,
    output_path: Optional[Union[str, Path]] = None,
    title: Optional[str] = None,
    figsize: Tuple[int, int] = (8, 5),
) -> plt.Figure:
    """
    Plot best and mean fitness (as a fraction of the maximum) per generation.

    Args:
        history: Recorded evolution history
        output_path: Save the figure here when given
        title: Plot title
        figsize: Figure size

    Returns:
        matplotlib Figure
    """
    generations = [g.generation for g in history.generations]
    best = [g.best_ratio for g in history.generations]
    mean = [
        g.mean_fitness / g.max_fitness if g.max_fitness else 0.0
        for g in history.generations
    ]

    fig, ax = plt.subplots(figsize=figsize)
    ax.plot(generations, best, label='Best', color='#e74c3c', linewidth=2)
    ax.plot(generations, mean, label='Mean', color='#3498db', linewidth=1.5, alpha=0.8)

    ax.set_xlabel('Generation')
    ax.set_ylabel('Correct output bits (fraction)')
    ax.set_ylim(0, 1)
    ax.set_title(title or 'Fitness by generation')
    ax.grid(True, alpha=0.3)
    ax.legend()
    plt.tight_layout()

    if output_path is not None:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(output_path, dpi=100, bbox_inches='tight')

    return fig
