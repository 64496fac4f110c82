"""
Win probability functions for the individual ranking signals

All functions are pure. A value of None or 0 means "no data" and is replaced
with the matching default from ModelConstants before computing.
"""

from typing import Callable, Optional

from .config import ModelConstants, get_model_constants
from .core import validate_best_of

_MAX_ELO_EXPONENT = 300.0


def is_present(value: Optional[float]) -> bool:
    """Zero is a sentinel for missing data, not a real rank or rating"""
    return value is not None and value != 0


def default_if_absent(value: Optional[float], default: float) -> float:
    return value if is_present(value) else default


def presence_weight(value1: Optional[float], value2: Optional[float]) -> float:
    """How much to trust a signal given which of its two inputs are present"""
    present1 = is_present(value1)
    present2 = is_present(value2)
    if present1 and present2:
        return 1.0
    elif not present1 and not present2:
        return 0.0
    else:
        return 0.5


def elo_win_probability(rating1: Optional[float], rating2: Optional[float],
                        constants: Optional[ModelConstants] = None) -> float:
    """Logistic Elo expectation of player 1 beating player 2"""
    constants = constants or get_model_constants()
    rating1 = default_if_absent(rating1, constants.start_rating)
    rating2 = default_if_absent(rating2, constants.start_rating)
    # Exponents past +-300 saturate to 0 or 1 anyway and would overflow float
    exponent = max(-_MAX_ELO_EXPONENT, min(_MAX_ELO_EXPONENT, (rating2 - rating1) / constants.elo_scale))
    return 1 / (1 + 10 ** exponent)


def rank_win_probability(rank1: Optional[int], rank2: Optional[int], best_of: int,
                         constants: Optional[ModelConstants] = None) -> float:
    """Lower rank is better, so a rank ratio below 1 favours player 1"""
    constants = constants or get_model_constants()
    rank1 = default_if_absent(rank1, constants.default_rank)
    rank2 = default_if_absent(rank2, constants.default_rank)
    return 1 / (1 + (rank1 / rank2) ** constants.rank_exponent(best_of))


def rank_points_win_probability(rank_points1: Optional[int], rank_points2: Optional[int], best_of: int,
                                constants: Optional[ModelConstants] = None) -> float:
    constants = constants or get_model_constants()
    rank_points1 = default_if_absent(rank_points1, constants.default_rank_points)
    rank_points2 = default_if_absent(rank_points2, constants.default_rank_points)
    return 1 / (1 + (rank_points2 / rank_points1) ** constants.rank_points_exponent(best_of))


def set_to_match_probability(p: float, best_of: int) -> float:
    """
    Probability of winning the match given probability p of winning a single set,
    with sets treated as independent and identically distributed.
    """
    validate_best_of(best_of)
    q = 1 - p
    if best_of == 3:
        # 2-0 or 2-1
        return p ** 2 + 2 * p ** 2 * q
    # 3-0, 3-1 or 3-2
    return p ** 3 + 3 * p ** 3 * q + 6 * p ** 3 * q ** 2


def probability_transformer(for_set: bool, best_of: int) -> Callable[[float], float]:
    if not for_set:
        return lambda p: p
    validate_best_of(best_of)
    return lambda p: set_to_match_probability(p, best_of)
