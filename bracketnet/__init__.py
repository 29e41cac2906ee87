"""
bracketnet - tournament game prediction with genetically evolved bit networks.

Subpackages:
- core: networks, layers, nodes, synapses and the model file format
- evolution: fitness, population, operators and the training engine
- datasets: historical game records and their bit encoding
- visualization: plots of evolution runs
"""

__version__ = '0.1.0'
