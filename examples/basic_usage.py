#!/usr/bin/env python3
"""
Basic Usage Example for the Ranking Predictor
Predicts a single match from rankings, Elo ratings and head-to-head record
"""

import logging

from ranking_predictor import (
    H2HMatchPredictor,
    PredictionConfig,
    PredictionItem,
    RankingData,
    RankingMatchPredictor,
    WonLost,
    predict_match
)
from ranking_predictor.logs import configure_logging


def basic_prediction_example():
    print("🎾 RANKING BASED MATCH PREDICTION EXAMPLE")
    print("=" * 50)

    config = PredictionConfig(item_weights={
        PredictionItem.RANK: 1.0,
        PredictionItem.RANK_POINTS: 1.0,
        PredictionItem.ELO: 3.0,
        PredictionItem.RECENT_ELO: 2.0,
        PredictionItem.SURFACE_ELO: 2.0,
        PredictionItem.IN_OUT_ELO: 1.0,
        PredictionItem.SET_ELO: 1.0,
        PredictionItem.H2H: 1.0,
    })

    player1 = RankingData(rank=1, rank_points=11540, elo_rating=2150, recent_elo_rating=2120,
                          surface_elo_rating=2100, in_out_elo_rating=2130, set_elo_rating=2080)
    player2 = RankingData(rank=2, rank_points=8120, elo_rating=2090, recent_elo_rating=2140,
                          surface_elo_rating=2060, set_elo_rating=2050)

    for best_of in (3, 5):
        prediction = predict_match([
            RankingMatchPredictor(player1, player2, best_of, config),
            H2HMatchPredictor(WonLost(won=3, lost=2), best_of, config),
        ], config, best_of)

        print(f"\n📊 Best of {best_of}")
        print(f"   Player 1 wins: {prediction.win_probability1():.1%}")
        print(f"   Player 2 wins: {prediction.win_probability2():.1%}")
        print(f"   Data coverage: {prediction.coverage:.0%}")
        for item in prediction.items():
            print(f"     {item.value:12s} {prediction.item_probability1(item):.3f}")


if __name__ == "__main__":
    configure_logging(logging.INFO)
    basic_prediction_example()
