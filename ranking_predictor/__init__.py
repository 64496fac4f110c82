"""
Tennis Ranking Predictor
Match win probabilities from rankings and Elo ratings

Combines independent signals into one weighted prediction:
- Current rank and ranking points
- Overall, recent, surface, indoor/outdoor and set Elo ratings
- Head-to-head record
"""

__version__ = "1.0.0"
__license__ = "MIT"

from .core import (
    BEST_OF_FORMATS,
    Surface,
    PredictionArea,
    PredictionItem,
    RankingData,
    WonLost,
    RivalryPlayer,
    LastMatch,
    Rivalry
)

from .config import ModelConstants, PredictionConfig, get_model_constants
from .exceptions import PredictionError, InvalidInputError
from .probability import (
    elo_win_probability,
    rank_win_probability,
    rank_points_win_probability,
    presence_weight,
    set_to_match_probability
)
from .predictor import (
    MatchPrediction,
    MatchPredictor,
    RankingMatchPredictor,
    H2HMatchPredictor,
    predict_match,
    merge_predictions
)
from .validation import PredictionValidation

__all__ = [
    # Data model
    'BEST_OF_FORMATS',
    'Surface',
    'PredictionArea',
    'PredictionItem',
    'RankingData',
    'WonLost',
    'RivalryPlayer',
    'LastMatch',
    'Rivalry',

    # Configuration
    'ModelConstants',
    'PredictionConfig',
    'get_model_constants',

    # Errors
    'PredictionError',
    'InvalidInputError',

    # Probability functions
    'elo_win_probability',
    'rank_win_probability',
    'rank_points_win_probability',
    'presence_weight',
    'set_to_match_probability',

    # Prediction engine
    'MatchPrediction',
    'MatchPredictor',
    'RankingMatchPredictor',
    'H2HMatchPredictor',
    'predict_match',
    'merge_predictions',

    # Backtesting
    'PredictionValidation',

    # Metadata
    '__version__',
    '__license__'
]
