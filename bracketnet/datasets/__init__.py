"""Tournament game data and its encoding into training pairs."""

from .games import (
    GameRecord,
    Round,
    Region,
    INPUT_BITS,
    OUTPUT_BITS,
    NAME_LEN,
    load_games,
    training_pairs,
    prediction_input,
)

__all__ = [
    'GameRecord',
    'Round',
    'Region',
    'INPUT_BITS',
    'OUTPUT_BITS',
    'NAME_LEN',
    'load_games',
    'training_pairs',
    'prediction_input',
]
