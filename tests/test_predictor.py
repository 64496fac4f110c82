"""
Test suite for the match prediction engine
Tests the aggregator, the ranking and head-to-head predictors and their combination
"""

import numpy as np
import pytest
import structlog
from structlog.testing import capture_logs

# Import our ranking prediction system
import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ranking_predictor.config import PredictionConfig
from ranking_predictor.core import PredictionArea, PredictionItem, RankingData, Rivalry, RivalryPlayer, WonLost
from ranking_predictor import predictor as predictor_module
from ranking_predictor.exceptions import InvalidInputError
from ranking_predictor.predictor import (
    H2HMatchPredictor, MatchPrediction, MatchPredictor, RankingMatchPredictor,
    merge_predictions, predict_match
)
from ranking_predictor.probability import elo_win_probability, rank_win_probability, set_to_match_probability

RANKING_ITEMS = PredictionItem.for_area(PredictionArea.RANKING)


def full_ranking_data(rank, points, elo):
    return RankingData(rank=rank, rank_points=points, elo_rating=elo, recent_elo_rating=elo + 15,
                       surface_elo_rating=elo - 20, in_out_elo_rating=elo + 5, set_elo_rating=elo - 10)


class TestMatchPrediction:
    """Test the weighted probability aggregator"""

    def test_no_contributions_is_even(self):
        prediction = MatchPrediction(5.0, 3)
        assert prediction.win_probability1() == 0.5
        assert prediction.win_probability2() == 0.5
        assert prediction.coverage == 0.0

    def test_weighted_mean(self):
        prediction = MatchPrediction(4.0, 3)
        prediction.add_item_probability1(PredictionItem.RANK, 1.0, 0.6)
        prediction.add_item_probability1(PredictionItem.ELO, 3.0, 0.8)
        prediction.add_item_probability2(PredictionItem.RANK, 1.0, 0.4)
        prediction.add_item_probability2(PredictionItem.ELO, 3.0, 0.2)

        assert prediction.win_probability1() == pytest.approx(0.75)
        assert prediction.win_probability2() == pytest.approx(0.25)
        assert prediction.applied_weight1 == 4.0
        assert prediction.coverage == 1.0

    def test_players_accumulate_independently(self):
        prediction = MatchPrediction(2.0, 3)
        prediction.add_item_probability1(PredictionItem.SET_ELO, 1.0, 0.7)
        assert prediction.win_probability1() == pytest.approx(0.7)
        assert prediction.win_probability2() == 0.5

    def test_partial_coverage(self):
        prediction = MatchPrediction(4.0, 5)
        prediction.add_item_probability1(PredictionItem.RANK, 1.0, 0.6)
        prediction.add_item_probability2(PredictionItem.RANK, 1.0, 0.4)
        assert prediction.coverage == 0.25

    def test_item_probabilities(self):
        prediction = MatchPrediction(2.0, 3)
        prediction.add_item_probability1(PredictionItem.ELO, 2.0, 0.65)
        prediction.add_item_probability2(PredictionItem.ELO, 2.0, 0.35)

        assert prediction.item_probability1(PredictionItem.ELO) == pytest.approx(0.65)
        assert prediction.item_probability2(PredictionItem.ELO) == pytest.approx(0.35)
        assert prediction.item_probability1(PredictionItem.RANK) is None
        assert prediction.items() == [PredictionItem.ELO]

    @pytest.mark.parametrize("weight,probability", [(-1.0, 0.5), (float('nan'), 0.5), (1.0, 1.2), (1.0, -0.1)])
    def test_invalid_contributions(self, weight, probability):
        prediction = MatchPrediction(1.0, 3)
        with pytest.raises(InvalidInputError):
            prediction.add_item_probability1(PredictionItem.RANK, weight, probability)
        with pytest.raises(InvalidInputError):
            prediction.add_item_probability2(PredictionItem.RANK, weight, probability)

    def test_invalid_construction(self):
        with pytest.raises(InvalidInputError):
            MatchPrediction(1.0, 4)
        with pytest.raises(InvalidInputError):
            MatchPrediction(-1.0, 3)

    def test_merge(self):
        partial1 = MatchPrediction(3.0, 3)
        partial1.add_item_probability1(PredictionItem.RANK, 1.0, 0.6)
        partial1.add_item_probability2(PredictionItem.RANK, 1.0, 0.4)
        partial2 = MatchPrediction(3.0, 3)
        partial2.add_item_probability1(PredictionItem.ELO, 2.0, 0.9)
        partial2.add_item_probability2(PredictionItem.ELO, 2.0, 0.1)

        merged = partial1.merge(partial2)

        assert merged is partial1
        assert merged.win_probability1() == pytest.approx(0.8)
        assert merged.win_probability2() == pytest.approx(0.2)
        assert merged.items() == [PredictionItem.RANK, PredictionItem.ELO]

    def test_merge_requires_same_format(self):
        with pytest.raises(InvalidInputError):
            MatchPrediction(1.0, 3).merge(MatchPrediction(1.0, 5))

    def test_as_dict(self):
        prediction = MatchPrediction(1.0, 5)
        prediction.add_item_probability1(PredictionItem.RANK, 1.0, 0.6)
        prediction.add_item_probability2(PredictionItem.RANK, 1.0, 0.4)

        result = prediction.as_dict()

        assert result['best_of'] == 5
        assert result['probability_p1_wins'] == pytest.approx(0.6)
        assert result['probability_p2_wins'] == pytest.approx(0.4)
        assert result['coverage'] == 1.0
        assert result['items'] == {'rank': {'probability_p1_wins': 0.6, 'probability_p2_wins': 0.4}}


class TestRankingMatchPredictor:
    """Test predictions from rankings and Elo ratings"""

    def setup_method(self):
        self.all_items = PredictionConfig.equal_weights(PredictionArea.RANKING)

    def test_better_rank_wins(self):
        config = PredictionConfig(item_weights={PredictionItem.RANK: 1.0})
        prediction = RankingMatchPredictor(RankingData(rank=1), RankingData(rank=2), 3, config).predict_match()

        assert prediction.win_probability1() > 0.5
        assert abs(prediction.win_probability1() + prediction.win_probability2() - 1.0) < 1e-12
        assert prediction.win_probability1() == pytest.approx(rank_win_probability(1, 2, 3))

    def test_no_data_is_even(self):
        config = PredictionConfig.equal_weights()
        prediction = RankingMatchPredictor(RankingData(), RankingData(), 5, config).predict_match()

        assert prediction.win_probability1() == 0.5
        assert prediction.win_probability2() == 0.5
        assert prediction.items() == []
        assert prediction.coverage == 0.0

    def test_elo_only_matches_closed_form(self):
        config = PredictionConfig(item_weights={PredictionItem.ELO: 1.0})
        prediction = RankingMatchPredictor(RankingData(elo_rating=1800), RankingData(elo_rating=1600),
                                           3, config).predict_match()

        expected = 1 / (1 + 10 ** (-(1800 - 1600) / 400))
        assert 0.5 < prediction.win_probability1() < 1.0
        assert abs(prediction.win_probability1() - expected) < 1e-9

    def test_extreme_elo_gap(self):
        config = PredictionConfig(item_weights={PredictionItem.ELO: 1.0})
        prediction = RankingMatchPredictor(RankingData(elo_rating=1), RankingData(elo_rating=200000),
                                           3, config).predict_match()

        assert prediction.win_probability1() < 0.5
        assert prediction.win_probability2() == pytest.approx(1.0)

    def test_swapping_players_swaps_probabilities(self):
        data1 = full_ranking_data(3, 6500, 2050)
        data2 = RankingData(rank=17, rank_points=2400, elo_rating=1930, set_elo_rating=1900)

        for best_of in (3, 5):
            forward = RankingMatchPredictor(data1, data2, best_of, self.all_items).predict_match()
            backward = RankingMatchPredictor(data2, data1, best_of, self.all_items).predict_match()

            assert forward.win_probability1() == backward.win_probability2()
            assert forward.win_probability2() == backward.win_probability1()

    def test_one_sided_data_gets_half_weight(self):
        config = PredictionConfig(item_weights={PredictionItem.RANK: 2.0})
        prediction = RankingMatchPredictor(RankingData(rank=10), RankingData(), 3, config).predict_match()

        assert prediction.applied_weight1 == 1.0
        assert prediction.coverage == 0.5
        assert prediction.win_probability1() == pytest.approx(rank_win_probability(10, 500, 3))
        assert prediction.win_probability1() > 0.5

    def test_zero_rank_is_missing(self):
        config = PredictionConfig(item_weights={PredictionItem.RANK: 1.0})
        prediction = RankingMatchPredictor(RankingData(rank=0), RankingData(rank=0), 3, config).predict_match()
        assert prediction.items() == []
        assert prediction.win_probability1() == 0.5

    def test_set_elo_is_transformed_to_match_probability(self):
        config = PredictionConfig(item_weights={PredictionItem.SET_ELO: 1.0})
        data1, data2 = RankingData(set_elo_rating=1600), RankingData(set_elo_rating=1500)

        best_of_3 = RankingMatchPredictor(data1, data2, 3, config).predict_match()
        best_of_5 = RankingMatchPredictor(data1, data2, 5, config).predict_match()

        set_probability = elo_win_probability(1600, 1500)
        assert best_of_3.win_probability1() == pytest.approx(set_to_match_probability(set_probability, 3))
        assert best_of_5.win_probability1() == pytest.approx(set_to_match_probability(set_probability, 5))
        assert best_of_5.win_probability1() > best_of_3.win_probability1() > set_probability
        assert best_of_3.win_probability1() + best_of_3.win_probability2() == pytest.approx(1.0)

    def test_match_level_elo_is_not_transformed(self):
        config = PredictionConfig(item_weights={PredictionItem.SURFACE_ELO: 1.0})
        prediction = RankingMatchPredictor(RankingData(surface_elo_rating=1600),
                                           RankingData(surface_elo_rating=1500), 5, config).predict_match()
        assert prediction.win_probability1() == pytest.approx(elo_win_probability(1600, 1500))

    def test_unweighted_items_are_skipped(self):
        config = PredictionConfig(item_weights={PredictionItem.RANK: 1.0, PredictionItem.ELO: 0.0})
        prediction = RankingMatchPredictor(full_ranking_data(1, 9000, 2100), full_ranking_data(5, 4000, 1950),
                                           3, config).predict_match()
        assert prediction.items() == [PredictionItem.RANK]

    def test_prediction_is_seeded_from_config(self):
        prediction = RankingMatchPredictor(RankingData(), RankingData(), 5, self.all_items).predict_match()
        assert prediction.total_weight == 7.0
        assert prediction.best_of == 5

    def test_area(self):
        predictor = RankingMatchPredictor(RankingData(), RankingData(), 3, self.all_items)
        assert predictor.area == PredictionArea.RANKING

    def test_invalid_format(self):
        with pytest.raises(InvalidInputError):
            RankingMatchPredictor(RankingData(), RankingData(), 2, self.all_items)

    def test_probabilities_sum_to_one(self):
        rng = np.random.default_rng(42)
        for _ in range(200):
            data = []
            for _ in range(2):
                values = [int(v) for v in rng.integers(0, 2000, size=7)]
                # Roughly a third of the values missing
                values = [v if rng.random() > 0.33 else None for v in values]
                data.append(RankingData(rank=values[0], rank_points=values[1], elo_rating=values[2],
                                        recent_elo_rating=values[3], surface_elo_rating=values[4],
                                        in_out_elo_rating=values[5], set_elo_rating=values[6]))
            weights = {item: float(w) for item, w in zip(RANKING_ITEMS, rng.uniform(0, 3, size=7))}
            config = PredictionConfig(item_weights=weights)
            best_of = int(rng.choice([3, 5]))

            prediction = RankingMatchPredictor(data[0], data[1], best_of, config).predict_match()

            assert 0.0 <= prediction.win_probability1() <= 1.0
            assert abs(prediction.win_probability1() + prediction.win_probability2() - 1.0) < 1e-9


class TestH2HMatchPredictor:
    """Test predictions from head-to-head records"""

    def setup_method(self):
        self.config = PredictionConfig(item_weights={PredictionItem.H2H: 1.0})

    def test_no_matches_contributes_nothing(self):
        prediction = H2HMatchPredictor(WonLost(), 3, self.config).predict_match()
        assert prediction.items() == []
        assert prediction.win_probability1() == 0.5

    def test_smoothed_probability_and_partial_weight(self):
        prediction = H2HMatchPredictor(WonLost(3, 1), 3, self.config).predict_match()

        assert prediction.applied_weight1 == pytest.approx(0.8)
        assert prediction.win_probability1() == pytest.approx(4 / 6)
        assert prediction.win_probability2() == pytest.approx(2 / 6)

    def test_full_weight_after_enough_matches(self):
        prediction = H2HMatchPredictor(WonLost(10, 2), 5, self.config).predict_match()
        assert prediction.applied_weight1 == 1.0

    def test_area(self):
        assert H2HMatchPredictor(WonLost(), 3, self.config).area == PredictionArea.H2H

    def test_from_rivalry(self):
        rivalry = Rivalry(RivalryPlayer(1, "Player One"), RivalryPlayer(2, "Player Two"), WonLost(1, 3))
        prediction = H2HMatchPredictor.from_rivalry(rivalry, 3, self.config).predict_match()
        assert prediction.win_probability1() == pytest.approx(2 / 6)

    def test_logs_item_probability(self, monkeypatch):
        with capture_logs() as logs:
            # Fresh logger, in case an earlier configure_logging cached the module one
            monkeypatch.setattr(predictor_module, "logger", structlog.get_logger(predictor_module.__name__))
            H2HMatchPredictor(WonLost(3, 1), 3, self.config).predict_match()

        events = [log for log in logs if log["event"] == "item_probability"]
        assert len(events) == 1
        assert events[0]["item"] == "h2h"
        assert events[0]["weight"] == pytest.approx(0.8)
        assert events[0]["probability_p1"] == pytest.approx(4 / 6)
        assert events[0]["probability_p2"] == pytest.approx(2 / 6)


class FixedPredictor(MatchPredictor):
    """Predictor emitting one fixed item probability"""

    def __init__(self, item, probability, best_of, config):
        super().__init__(best_of, config)
        self.item = item
        self.probability = probability

    @property
    def area(self):
        return self.item.area

    def contribute(self, prediction):
        weight = self.config.item_weight(self.item)
        prediction.add_item_probability1(self.item, weight, self.probability)
        prediction.add_item_probability2(self.item, weight, 1 - self.probability)


class TestPredictMatch:
    """Test combining several predictors into one prediction"""

    def setup_method(self):
        self.config = PredictionConfig(item_weights={PredictionItem.RANK: 1.0, PredictionItem.H2H: 1.0})

    def test_combines_predictors(self):
        prediction = predict_match([
            RankingMatchPredictor(RankingData(rank=1), RankingData(rank=2), 3, self.config),
            H2HMatchPredictor(WonLost(0, 8), 3, self.config),
        ], self.config, 3)

        expected = (rank_win_probability(1, 2, 3) + 1 / 10) / 2
        assert prediction.win_probability1() == pytest.approx(expected)
        assert prediction.items() == [PredictionItem.RANK, PredictionItem.H2H]
        assert abs(prediction.win_probability1() + prediction.win_probability2() - 1.0) < 1e-12

    def test_custom_predictor_implementation(self):
        prediction = predict_match([FixedPredictor(PredictionItem.H2H, 0.9, 5, self.config)], self.config, 5)
        assert prediction.win_probability1() == pytest.approx(0.9)
        assert prediction.coverage == 0.5

    def test_format_mismatch(self):
        with pytest.raises(InvalidInputError):
            predict_match([H2HMatchPredictor(WonLost(1, 0), 5, self.config)], self.config, 3)

    def test_merged_partials_match_sequential_run(self):
        config = PredictionConfig.equal_weights()
        predictors = [
            RankingMatchPredictor(full_ranking_data(4, 5000, 2010), full_ranking_data(9, 3100, 1980), 5, config),
            H2HMatchPredictor(WonLost(2, 3), 5, config),
        ]

        sequential = predict_match(predictors, config, 5)
        merged = merge_predictions(predictor.predict_match() for predictor in predictors)

        assert merged.win_probability1() == pytest.approx(sequential.win_probability1())
        assert merged.win_probability2() == pytest.approx(sequential.win_probability2())
        assert merged.coverage == pytest.approx(sequential.coverage)

    def test_merge_nothing(self):
        with pytest.raises(InvalidInputError):
            merge_predictions([])
