"""
Tennis Ranking Predictor - Core Data Model

Enums and immutable records consumed by the prediction engine:
- Surfaces and prediction areas/items
- Per-player ranking snapshots (rank, rank points, Elo variants)
- Head-to-head won/lost tallies and rivalry records
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from numbers import Integral
from typing import Dict, Optional

from .exceptions import InvalidInputError

BEST_OF_FORMATS = (3, 5)


def validate_best_of(best_of: int) -> int:
    """Return best_of if it is a supported match format"""
    if isinstance(best_of, bool) or not isinstance(best_of, Integral) or best_of not in BEST_OF_FORMATS:
        raise InvalidInputError(f"Unsupported match format best_of={best_of!r}, expected one of {BEST_OF_FORMATS}")
    return int(best_of)


class Surface(Enum):
    HARD = ("H", "Hard")
    CLAY = ("C", "Clay")
    GRASS = ("G", "Grass")
    CARPET = ("P", "Carpet")

    def __init__(self, code: str, text: str):
        self.code = code
        self.text = text

    @property
    def lower_case_text(self) -> str:
        return self.text.lower()

    @classmethod
    def decode(cls, code: str) -> 'Surface':
        for surface in cls:
            if surface.code == code:
                return surface
        raise ValueError(f"Unknown surface code: {code!r}")

    @classmethod
    def safe_decode(cls, code: Optional[str]) -> Optional['Surface']:
        if not code:
            return None
        try:
            return cls.decode(code)
        except ValueError:
            return None

    @classmethod
    def as_map(cls) -> Dict[str, str]:
        return {surface.code: surface.text for surface in cls}


class PredictionArea(Enum):
    RANKING = "ranking"
    H2H = "h2h"


class PredictionItem(Enum):
    """Signal kinds feeding a match prediction, tagged with area and set-level flag"""

    RANK = ("rank", PredictionArea.RANKING, False)
    RANK_POINTS = ("rank_points", PredictionArea.RANKING, False)
    ELO = ("elo", PredictionArea.RANKING, False)
    RECENT_ELO = ("recent_elo", PredictionArea.RANKING, False)
    SURFACE_ELO = ("surface_elo", PredictionArea.RANKING, False)
    IN_OUT_ELO = ("in_out_elo", PredictionArea.RANKING, False)
    SET_ELO = ("set_elo", PredictionArea.RANKING, True)
    H2H = ("h2h", PredictionArea.H2H, False)

    def __new__(cls, value: str, area: PredictionArea, for_set: bool):
        item = object.__new__(cls)
        item._value_ = value
        item.area = area
        item.for_set = for_set
        return item

    @classmethod
    def for_area(cls, area: PredictionArea):
        return [item for item in cls if item.area == area]


@dataclass(frozen=True)
class RankingData:
    """
    Ranking snapshot of a single player at match time.
    None and 0 both mean "no data" for every field.
    """
    rank: Optional[int] = None
    rank_points: Optional[int] = None
    elo_rating: Optional[int] = None
    recent_elo_rating: Optional[int] = None
    surface_elo_rating: Optional[int] = None
    in_out_elo_rating: Optional[int] = None
    set_elo_rating: Optional[int] = None

    def __post_init__(self):
        for name in _RANKING_FIELDS.values():
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, Integral):
                raise InvalidInputError(f"{name} must be an integer or None, got {value!r}")
            if value < 0:
                raise InvalidInputError(f"{name} must not be negative, got {value}")

    def value(self, item: PredictionItem) -> Optional[int]:
        """Raw value backing a ranking-area prediction item"""
        try:
            return getattr(self, _RANKING_FIELDS[item])
        except KeyError:
            raise InvalidInputError(f"{item.name} is not a ranking item") from None


_RANKING_FIELDS = {
    PredictionItem.RANK: 'rank',
    PredictionItem.RANK_POINTS: 'rank_points',
    PredictionItem.ELO: 'elo_rating',
    PredictionItem.RECENT_ELO: 'recent_elo_rating',
    PredictionItem.SURFACE_ELO: 'surface_elo_rating',
    PredictionItem.IN_OUT_ELO: 'in_out_elo_rating',
    PredictionItem.SET_ELO: 'set_elo_rating',
}


@dataclass(frozen=True)
class WonLost:
    won: int = 0
    lost: int = 0

    def __post_init__(self):
        if self.won < 0 or self.lost < 0:
            raise InvalidInputError(f"Won/lost counts must not be negative: {self.won}/{self.lost}")

    @property
    def total(self) -> int:
        return self.won + self.lost

    @property
    def won_pct(self) -> Optional[float]:
        return self.won / self.total if self.total else None

    def add(self, other: 'WonLost') -> 'WonLost':
        return WonLost(self.won + other.won, self.lost + other.lost)

    def __add__(self, other: 'WonLost') -> 'WonLost':
        if not isinstance(other, WonLost):
            return NotImplemented
        return self.add(other)

    def inverted(self) -> 'WonLost':
        """Same tally seen from the opponent's side"""
        return WonLost(self.lost, self.won)


@dataclass(frozen=True)
class RivalryPlayer:
    player_id: int
    name: str
    seed: Optional[int] = None
    country_id: Optional[str] = None


@dataclass(frozen=True)
class LastMatch:
    match_id: int
    season: int
    winner_id: int
    match_date: Optional[date] = None
    level: Optional[str] = None
    surface: Optional[Surface] = None
    tournament: Optional[str] = None
    round_name: Optional[str] = None
    score: Optional[str] = None


@dataclass
class Rivalry:
    """Head-to-head record between two players, won/lost from player1's side"""
    player1: RivalryPlayer
    player2: RivalryPlayer
    won_lost: WonLost = field(default_factory=WonLost)
    last_match: Optional[LastMatch] = None

    def add_won_lost(self, won_lost: WonLost):
        self.won_lost = self.won_lost.add(won_lost)

    @property
    def matches(self) -> int:
        return self.won_lost.total

    @property
    def won(self) -> int:
        return self.won_lost.won

    @property
    def lost(self) -> int:
        return self.won_lost.lost
