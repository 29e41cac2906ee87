"""
Tournament game records and their bit encoding.

Historical results are read from a CSV file with one game per row:
    date, round, region, win seed, winner, win score,
    lose seed, loser, lose score, overtime

Each game becomes one training pair:
- Input (68 bytes = 544 bits):
    bytes 0-1   date: 4-bit month, 5-bit day, 7-bit two-digit year
    byte 2      round (3 bits, shifted left by 3) and region (3 bits)
    byte 3      seed of side A minus 1 (high nibble), side B (low nibble)
    bytes 4-35  side A team name, right aligned, space padded
    bytes 36-67 side B team name
- Output (3 bytes = 24 bits): side A score, side B score, overtime count

Every game is also added with its sides swapped, so the network cannot learn
that the first side always wins.
"""

from dataclasses import dataclass, replace
from enum import IntEnum
from pathlib import Path
from typing import Dict, List, Tuple, Union
import csv
import re

NAME_LEN = 32
INPUT_BYTES = 4 + 2 * NAME_LEN
OUTPUT_BYTES = 3
INPUT_BITS = INPUT_BYTES * 8
OUTPUT_BITS = OUTPUT_BYTES * 8

_OVERTIME_PATTERN = re.compile(r'^(\d*)\s*OT$', re.IGNORECASE)


class Round(IntEnum):
    """Tournament round; the value is its 3-bit code."""
    OPENING = 0
    R64 = 1
    R32 = 2
    SWEET16 = 3
    ELITE8 = 4
    SEMIS = 5
    CHAMPIONSHIP = 6
    NONE = 7

    @classmethod
    def parse(cls, text: str, strict: bool = False) -> 'Round':
        return _parse_enum(cls, ROUND_LABELS, text, strict)


class Region(IntEnum):
    """Bracket region; the value is its 3-bit code."""
    WEST = 0
    EAST = 1
    MIDWEST = 2
    SOUTH = 3
    SOUTHEAST = 4
    SOUTHWEST = 5
    NONE = 6

    @classmethod
    def parse(cls, text: str, strict: bool = False) -> 'Region':
        return _parse_enum(cls, {}, text, strict)


# Round names as they appear in the historical data
ROUND_LABELS = {
    'opening round': Round.OPENING,
    'round of 64': Round.R64,
    'round of 32': Round.R32,
    'sweet sixteen': Round.SWEET16,
    'elite eight': Round.ELITE8,
    'national semifinals': Round.SEMIS,
    'national championship': Round.CHAMPIONSHIP,
}


def _parse_enum(enum_cls, labels: Dict, text: str, strict: bool):
    key = (text or '').strip().lower()
    if key in labels:
        return labels[key]
    for member in enum_cls:
        if member.name.lower() == key.replace(' ', ''):
            return member
    if strict:
        names = ', '.join(m.name.lower() for m in enum_cls if m.name != 'NONE')
        raise ValueError(f"Unknown {enum_cls.__name__.lower()} '{text}'. Available: {names}")
    return enum_cls.NONE


# CSV header aliases, keyed by the header lowercased with spaces and
# underscores removed
COLUMN_ALIASES = {
    'date': 'date',
    'round': 'round',
    'region': 'region',
    'winseed': 'win_seed',
    'winningseed': 'win_seed',
    'winner': 'winner',
    'winscore': 'win_score',
    'winningscore': 'win_score',
    'loseseed': 'lose_seed',
    'losingseed': 'lose_seed',
    'loser': 'loser',
    'losescore': 'lose_score',
    'losingscore': 'lose_score',
    'overtime': 'overtime',
}

REQUIRED_COLUMNS = [
    'date', 'round', 'region', 'win_seed', 'winner', 'win_score',
    'lose_seed', 'loser', 'lose_score',
]


def _normalize_row(row: Dict[str, str]) -> Dict[str, str]:
    normalized = {}
    for key, value in row.items():
        if key is None:
            continue
        alias = COLUMN_ALIASES.get(key.strip().lower().replace(' ', '').replace('_', ''))
        if alias:
            normalized[alias] = (value or '').strip()
    missing = [c for c in REQUIRED_COLUMNS if c not in normalized]
    if missing:
        raise ValueError(f"Missing columns: {', '.join(missing)}")
    return normalized


def parse_date(text: str) -> Tuple[int, int, int]:
    """Parse M/D/YY (or M/D/YYYY) into (month, day, two-digit year)."""
    pieces = text.split('/')
    if len(pieces) != 3:
        raise ValueError(f"Failed to parse date '{text}'")
    month, day, year = (int(p) for p in pieces)
    return month, day, year % 100


def parse_overtime(text: str) -> int:
    """'' -> 0, 'OT' -> 1, '2 OT' -> 2."""
    text = (text or '').strip()
    if not text:
        return 0
    match = _OVERTIME_PATTERN.match(text)
    if not match:
        raise ValueError(f"Failed to parse overtime '{text}'")
    return int(match.group(1)) if match.group(1) else 1


def _check_seed(seed: int) -> int:
    if not 1 <= seed <= 16:
        raise ValueError(f"Seed {seed} out of range [1, 16]")
    return seed


def _encode_name(name: str) -> bytes:
    return name.rjust(NAME_LEN)[:NAME_LEN].encode('ascii', errors='replace')


@dataclass(frozen=True)
class GameRecord:
    """
    One game between side A and side B.

    In the historical data side A is the winner; mirrored records and
    prediction inputs have no such meaning.
    """
    month: int
    day: int
    year: int
    round: Round
    region: Region
    seed_a: int
    team_a: str
    score_a: int
    seed_b: int
    team_b: str
    score_b: int
    overtime: int = 0

    @classmethod
    def from_row(cls, row: Dict[str, str]) -> 'GameRecord':
        """Parse a CSV row (header names are matched loosely)."""
        fields = _normalize_row(row)
        month, day, year = parse_date(fields['date'])
        return cls(
            month=month,
            day=day,
            year=year,
            round=Round.parse(fields['round']),
            region=Region.parse(fields['region']),
            seed_a=_check_seed(int(fields['win_seed'])),
            team_a=fields['winner'],
            score_a=int(fields['win_score']),
            seed_b=_check_seed(int(fields['lose_seed'])),
            team_b=fields['loser'],
            score_b=int(fields['lose_score']),
            overtime=parse_overtime(fields.get('overtime', '')),
        )

    def mirrored(self) -> 'GameRecord':
        """Same game with the two sides swapped."""
        return replace(
            self,
            seed_a=self.seed_b, team_a=self.team_b, score_a=self.score_b,
            seed_b=self.seed_a, team_b=self.team_a, score_b=self.score_a,
        )

    @property
    def packed_date(self) -> int:
        return ((self.month & 0x0F) << 12) + ((self.day & 0x1F) << 7) + (self.year & 0x7F)

    def to_input_bits(self) -> bytes:
        date = self.packed_date
        header = bytes([
            date >> 8,
            date & 0xFF,
            ((int(self.round) & 0x07) << 3) + (int(self.region) & 0x07),
            (((self.seed_a - 1) & 0x0F) << 4) + ((self.seed_b - 1) & 0x0F),
        ])
        return header + _encode_name(self.team_a) + _encode_name(self.team_b)

    def to_output_bits(self) -> bytes:
        return bytes(min(max(v, 0), 255) for v in (self.score_a, self.score_b, self.overtime))


def load_games(path: Union[str, Path], mirror: bool = True) -> List[GameRecord]:
    """
    Load game records from a CSV file.

    Args:
        path: CSV file with a header row
        mirror: Also add every game with its sides swapped

    Returns:
        List of records (each original followed by its mirror)

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If a row cannot be parsed (message includes the line)
    """
    games = []
    with open(path, 'r', newline='') as f:
        reader = csv.DictReader(f)
        for row in reader:
            try:
                game = GameRecord.from_row(row)
            except ValueError as e:
                raise ValueError(f"{path}, line {reader.line_num}: {e}") from e
            games.append(game)
            if mirror:
                games.append(game.mirrored())
    return games


def training_pairs(games: List[GameRecord]) -> List[Tuple[bytes, bytes]]:
    """(input_bits, output_bits) for every game."""
    return [(game.to_input_bits(), game.to_output_bits()) for game in games]


def prediction_input(
    year: str,
    game_round: Union[Round, str],
    region: Union[Region, str, None],
    high_seed: int,
    high_team: str,
    low_seed: int,
    low_team: str,
) -> bytes:
    """
    Encode a matchup to predict.

    Raises:
        ValueError: On a year that is not two or more digits, an unknown round
            or region, a seed outside 1-16 or a team name longer than 32
    """
    if len(year) < 2 or not year.isdigit():
        raise ValueError(f"Invalid year '{year}', expected two digits")
    for team in (high_team, low_team):
        if len(team) > NAME_LEN:
            raise ValueError(f"Team name {team} is longer than {NAME_LEN} characters.")

    if not isinstance(game_round, Round):
        game_round = Round.parse(game_round, strict=True)
    if region is None:
        region = Region.NONE
    elif not isinstance(region, Region):
        region = Region.parse(region, strict=True)

    game = GameRecord(
        month=0,
        day=0,
        year=int(year) % 100,
        round=game_round,
        region=region,
        seed_a=_check_seed(high_seed),
        team_a=high_team,
        score_a=0,
        seed_b=_check_seed(low_seed),
        team_b=low_team,
        score_b=0,
    )
    return game.to_input_bits()
