"""
Match Prediction Engine
Combines weighted win probabilities of independent signals into one prediction

A MatchPrediction accumulates (weight, probability) contributions for both
players. MatchPredictor implementations (ranking, head-to-head, ...) feed it
one item at a time; the final probability of a player is the weighted mean
of everything fed for that player.
"""

import math
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Optional

import structlog

from .config import ModelConstants, PredictionConfig, get_model_constants
from .core import PredictionArea, PredictionItem, RankingData, Rivalry, WonLost, validate_best_of
from .exceptions import InvalidInputError
from .probability import (
    elo_win_probability, presence_weight, probability_transformer,
    rank_points_win_probability, rank_win_probability
)

logger = structlog.get_logger(__name__)


class _WeightedSum:
    """Running weighted sum of probabilities for one player"""

    __slots__ = ('weight', 'weighted_probability', 'items')

    def __init__(self):
        self.weight = 0.0
        self.weighted_probability = 0.0
        self.items: Dict[PredictionItem, list] = {}

    def add(self, item: PredictionItem, weight: float, probability: float):
        self.weight += weight
        self.weighted_probability += weight * probability
        totals = self.items.setdefault(item, [0.0, 0.0])
        totals[0] += weight
        totals[1] += weight * probability

    def merge(self, other: '_WeightedSum'):
        self.weight += other.weight
        self.weighted_probability += other.weighted_probability
        for item, (weight, weighted_probability) in other.items.items():
            totals = self.items.setdefault(item, [0.0, 0.0])
            totals[0] += weight
            totals[1] += weighted_probability

    def probability(self) -> float:
        # No information, no preference
        return self.weighted_probability / self.weight if self.weight > 0.0 else 0.5

    def item_probability(self, item: PredictionItem) -> Optional[float]:
        totals = self.items.get(item)
        if not totals or totals[0] <= 0.0:
            return None
        return totals[1] / totals[0]


class MatchPrediction:
    """
    Aggregated prediction for a single match.

    Player 1 and player 2 are accumulated independently, so
    win_probability1() + win_probability2() is expected, not forced, to be 1.
    Not safe for concurrent writers; see merge() for combining partial results.
    """

    def __init__(self, total_weight: float, best_of: int):
        if not math.isfinite(total_weight) or total_weight < 0.0:
            raise InvalidInputError(f"Total weight must be a non-negative number, got {total_weight}")
        self.total_weight = float(total_weight)
        self.best_of = validate_best_of(best_of)
        self._player1 = _WeightedSum()
        self._player2 = _WeightedSum()

    def add_item_probability1(self, item: PredictionItem, weight: float, probability: float):
        self._player1.add(item, *_check_contribution(item, weight, probability))

    def add_item_probability2(self, item: PredictionItem, weight: float, probability: float):
        self._player2.add(item, *_check_contribution(item, weight, probability))

    def win_probability1(self) -> float:
        return self._player1.probability()

    def win_probability2(self) -> float:
        return self._player2.probability()

    def item_probability1(self, item: PredictionItem) -> Optional[float]:
        return self._player1.item_probability(item)

    def item_probability2(self, item: PredictionItem) -> Optional[float]:
        return self._player2.item_probability(item)

    def items(self):
        return [item for item in PredictionItem if item in self._player1.items or item in self._player2.items]

    @property
    def applied_weight1(self) -> float:
        return self._player1.weight

    @property
    def applied_weight2(self) -> float:
        return self._player2.weight

    @property
    def coverage(self) -> float:
        """Share of the configured weight that was backed by data"""
        if self.total_weight <= 0.0:
            return 0.0
        return max(self.applied_weight1, self.applied_weight2) / self.total_weight

    def merge(self, other: 'MatchPrediction') -> 'MatchPrediction':
        """Add another (partial) prediction of the same match into this one"""
        if other.best_of != self.best_of:
            raise InvalidInputError(f"Cannot merge best-of-{other.best_of} prediction into best-of-{self.best_of}")
        self._player1.merge(other._player1)
        self._player2.merge(other._player2)
        return self

    def as_dict(self) -> Dict[str, Any]:
        return {
            'best_of': self.best_of,
            'probability_p1_wins': self.win_probability1(),
            'probability_p2_wins': self.win_probability2(),
            'total_weight': self.total_weight,
            'applied_weight': max(self.applied_weight1, self.applied_weight2),
            'coverage': self.coverage,
            'items': {
                item.value: {
                    'probability_p1_wins': self.item_probability1(item),
                    'probability_p2_wins': self.item_probability2(item),
                }
                for item in self.items()
            },
        }

    def __repr__(self):
        return (f"MatchPrediction(best_of={self.best_of}, p1={self.win_probability1():.4f}, "
                f"p2={self.win_probability2():.4f}, coverage={self.coverage:.2f})")


def _check_contribution(item: PredictionItem, weight: float, probability: float):
    if not math.isfinite(weight) or weight < 0.0:
        raise InvalidInputError(f"Weight of {item.name} must be a non-negative number, got {weight}")
    if not 0.0 <= probability <= 1.0:
        raise InvalidInputError(f"Probability of {item.name} must be in [0, 1], got {probability}")
    return weight, probability


class MatchPredictor(ABC):
    """A source of weighted item probabilities for one match"""

    def __init__(self, best_of: int, config: PredictionConfig):
        self.best_of = validate_best_of(best_of)
        self.config = config

    @property
    @abstractmethod
    def area(self) -> PredictionArea:
        pass

    @abstractmethod
    def contribute(self, prediction: MatchPrediction):
        """Feed this predictor's item probabilities for both players into prediction"""

    def predict_match(self) -> MatchPrediction:
        prediction = MatchPrediction(self.config.total_weight, self.best_of)
        self.contribute(prediction)
        return prediction


class RankingMatchPredictor(MatchPredictor):
    """Predicts from rank, rank points and the Elo rating variants of both players"""

    def __init__(self, ranking_data1: RankingData, ranking_data2: RankingData, best_of: int,
                 config: PredictionConfig, constants: Optional[ModelConstants] = None):
        super().__init__(best_of, config)
        self.ranking_data1 = ranking_data1
        self.ranking_data2 = ranking_data2
        self.constants = constants or get_model_constants()

    @property
    def area(self) -> PredictionArea:
        return PredictionArea.RANKING

    def contribute(self, prediction: MatchPrediction):
        data1, data2 = self.ranking_data1, self.ranking_data2
        self._add_item_probabilities(prediction, PredictionItem.RANK, data1.rank, data2.rank,
                                     self._rank_win_probability)
        self._add_item_probabilities(prediction, PredictionItem.RANK_POINTS, data1.rank_points, data2.rank_points,
                                     self._rank_points_win_probability)
        for item in (PredictionItem.ELO, PredictionItem.RECENT_ELO, PredictionItem.SURFACE_ELO,
                     PredictionItem.IN_OUT_ELO, PredictionItem.SET_ELO):
            self._add_item_probabilities(prediction, item, data1.value(item), data2.value(item),
                                         self._elo_win_probability)

    def _add_item_probabilities(self, prediction: MatchPrediction, item: PredictionItem,
                                value1: Optional[int], value2: Optional[int], win_probability):
        weight = self.config.item_weight(item) * presence_weight(value1, value2)
        if weight <= 0.0:
            return
        transform = probability_transformer(item.for_set, self.best_of)
        # Each direction is computed and transformed on its own, not as 1 - p
        probability1 = transform(win_probability(value1, value2))
        probability2 = transform(win_probability(value2, value1))
        prediction.add_item_probability1(item, weight, probability1)
        prediction.add_item_probability2(item, weight, probability2)
        logger.debug("item_probability", item=item.value, weight=weight,
                     probability_p1=probability1, probability_p2=probability2)

    def _rank_win_probability(self, rank1, rank2) -> float:
        return rank_win_probability(rank1, rank2, self.best_of, self.constants)

    def _rank_points_win_probability(self, rank_points1, rank_points2) -> float:
        return rank_points_win_probability(rank_points1, rank_points2, self.best_of, self.constants)

    def _elo_win_probability(self, rating1, rating2) -> float:
        return elo_win_probability(rating1, rating2, self.constants)


class H2HMatchPredictor(MatchPredictor):
    """Predicts from the head-to-head record, won/lost seen from player 1"""

    def __init__(self, won_lost: WonLost, best_of: int, config: PredictionConfig,
                 constants: Optional[ModelConstants] = None):
        super().__init__(best_of, config)
        self.won_lost = won_lost
        self.constants = constants or get_model_constants()

    @classmethod
    def from_rivalry(cls, rivalry: Rivalry, best_of: int, config: PredictionConfig,
                     constants: Optional[ModelConstants] = None) -> 'H2HMatchPredictor':
        return cls(rivalry.won_lost, best_of, config, constants)

    @property
    def area(self) -> PredictionArea:
        return PredictionArea.H2H

    def contribute(self, prediction: MatchPrediction):
        matches = self.won_lost.total
        if matches == 0:
            return
        full_weight_matches = self.constants.h2h_full_weight_matches
        weight = self.config.item_weight(PredictionItem.H2H) * min(matches, full_weight_matches) / full_weight_matches
        if weight <= 0.0:
            return
        # Laplace smoothing keeps a single meeting from deciding the match
        probability1 = (self.won_lost.won + 1) / (matches + 2)
        probability2 = (self.won_lost.lost + 1) / (matches + 2)
        prediction.add_item_probability1(PredictionItem.H2H, weight, probability1)
        prediction.add_item_probability2(PredictionItem.H2H, weight, probability2)
        logger.debug("item_probability", item=PredictionItem.H2H.value, weight=weight,
                     probability_p1=probability1, probability_p2=probability2)


def predict_match(predictors: Iterable[MatchPredictor], config: PredictionConfig, best_of: int) -> MatchPrediction:
    """Run predictors one after another into a single prediction"""
    prediction = MatchPrediction(config.total_weight, best_of)
    for predictor in predictors:
        if predictor.best_of != prediction.best_of:
            raise InvalidInputError(f"{type(predictor).__name__} is set up for best-of-{predictor.best_of}, "
                                    f"match is best-of-{prediction.best_of}")
        predictor.contribute(prediction)
    logger.debug("match_predicted", best_of=best_of,
                 probability_p1=prediction.win_probability1(),
                 probability_p2=prediction.win_probability2(),
                 coverage=prediction.coverage)
    return prediction


def merge_predictions(predictions: Iterable[MatchPrediction]) -> MatchPrediction:
    """Reduce partial predictions, e.g. computed in parallel, into the first one"""
    merged = None
    for prediction in predictions:
        merged = prediction if merged is None else merged.merge(prediction)
    if merged is None:
        raise InvalidInputError("No predictions to merge")
    return merged
