"""Plots for evolution runs."""

from .plots import plot_fitness_history

__all__ = ['plot_fitness_history']
