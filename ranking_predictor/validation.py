"""
Backtesting of the ranking prediction engine on historical matches
Measures calibration and accuracy of the fixed probability constants
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

import numpy as np
import pandas as pd
from sklearn.metrics import accuracy_score, brier_score_loss, log_loss, roc_auc_score

from .config import ModelConstants, PredictionConfig, get_model_constants
from .core import RankingData, WonLost, validate_best_of
from .exceptions import InvalidInputError
from .predictor import H2HMatchPredictor, MatchPrediction, RankingMatchPredictor, predict_match

RANKING_COLUMNS = {
    'rank': 'rank',
    'rank_points': 'rank_points',
    'elo_rating': 'elo',
    'recent_elo_rating': 'recent_elo',
    'surface_elo_rating': 'surface_elo',
    'in_out_elo_rating': 'in_out_elo',
    'set_elo_rating': 'set_elo',
}


class PredictionValidation:
    """
    Replays historical matches through the engine and scores the predictions.

    Expected columns: p1_/p2_ prefixed ranking columns (rank, rank_points, elo,
    recent_elo, surface_elo, in_out_elo, set_elo), best_of (default 3), p1_won.
    Optional p1_h2h_won / p1_h2h_lost columns add the head-to-head predictor.
    """

    def __init__(self, constants: Optional[ModelConstants] = None):
        self.logger = logging.getLogger(__name__)
        self.constants = constants or get_model_constants()
        self.validation_results = {}

    @staticmethod
    def ranking_data_from_row(row: pd.Series, prefix: str) -> RankingData:
        values = {
            field: _optional_int(row.get(f'{prefix}_{column}'), f'{prefix}_{column}')
            for field, column in RANKING_COLUMNS.items()
        }
        return RankingData(**values)

    def predict_row(self, row: pd.Series, config: PredictionConfig) -> MatchPrediction:
        best_of = validate_best_of(_optional_int(row.get('best_of'), 'best_of') or 3)
        predictors = [RankingMatchPredictor(
            self.ranking_data_from_row(row, 'p1'), self.ranking_data_from_row(row, 'p2'),
            best_of, config, self.constants
        )]
        h2h_won = _optional_int(row.get('p1_h2h_won'), 'p1_h2h_won')
        h2h_lost = _optional_int(row.get('p1_h2h_lost'), 'p1_h2h_lost')
        if h2h_won is not None or h2h_lost is not None:
            predictors.append(H2HMatchPredictor(WonLost(h2h_won or 0, h2h_lost or 0), best_of, config, self.constants))
        return predict_match(predictors, config, best_of)

    def backtest(self, data: pd.DataFrame, config: PredictionConfig) -> Dict:
        """Predict every match in data and compute metrics overall and per format"""
        self.logger.info(f"Starting backtest on {len(data)} matches")

        records = []
        skipped = 0
        for index, row in data.iterrows():
            try:
                prediction = self.predict_row(row, config)
                outcome = _outcome(row)
            except InvalidInputError as e:
                self.logger.warning(f"Skipping match {index}: {e}")
                skipped += 1
                continue

            records.append({
                'best_of': prediction.best_of,
                'p1_won': outcome,
                'probability_p1_wins': prediction.win_probability1(),
                'probability_p2_wins': prediction.win_probability2(),
                'coverage': prediction.coverage,
            })

        if not records:
            raise InvalidInputError("No valid matches to backtest")

        results = pd.DataFrame(records)
        summary = self._calculate_metrics(results)
        summary['skipped_matches'] = skipped
        summary['by_format'] = {
            f'best_of_{best_of}': self._calculate_metrics(group)
            for best_of, group in results.groupby('best_of')
        }
        summary['validation_completed'] = datetime.now().isoformat()

        self.validation_results['backtest'] = summary
        self.logger.info(f"Backtest completed: {summary['total_predictions']} predictions, "
                         f"Brier score {summary['brier_score']:.4f}")
        return summary

    def _calculate_metrics(self, results: pd.DataFrame) -> Dict:
        y_true = results['p1_won'].to_numpy()
        y_pred = results['probability_p1_wins'].to_numpy()
        y_pred_binary = (y_pred > 0.5).astype(int)

        metrics = {
            'total_predictions': len(y_true),
            'accuracy': float(accuracy_score(y_true, y_pred_binary)),
            'log_loss': float(log_loss(y_true, y_pred, labels=[0, 1])),
            'brier_score': float(brier_score_loss(y_true, y_pred, pos_label=1)),
            'calibration_error': self._calculate_calibration_error(y_true, y_pred),
            'mean_confidence': float(np.mean(np.abs(y_pred - 0.5))),
            'mean_coverage': float(results['coverage'].mean()),
            'mean_probability_sum_deviation': float(np.mean(np.abs(
                results['probability_p1_wins'] + results['probability_p2_wins'] - 1.0
            ))),
        }
        if len(np.unique(y_true)) == 2:
            metrics['roc_auc'] = float(roc_auc_score(y_true, y_pred))
        return metrics

    def _calculate_calibration_error(self, y_true: np.ndarray, y_pred: np.ndarray, n_bins: int = 10) -> float:
        """Expected calibration error over equal-width probability bins"""
        table = self.calibration_table(y_true, y_pred, n_bins)
        if table.empty:
            return 0.0
        weights = table['matches'] / table['matches'].sum()
        return float((weights * (table['mean_predicted'] - table['observed_win_rate']).abs()).sum())

    @staticmethod
    def calibration_table(y_true, y_pred, n_bins: int = 10) -> pd.DataFrame:
        """Predicted vs observed win rate per probability bin, empty bins omitted"""
        y_true = np.asarray(y_true, dtype=float)
        y_pred = np.asarray(y_pred, dtype=float)
        bin_boundaries = np.linspace(0, 1, n_bins + 1)

        rows: List[Dict] = []
        for bin_lower, bin_upper in zip(bin_boundaries[:-1], bin_boundaries[1:]):
            in_bin = (y_pred > bin_lower) & (y_pred <= bin_upper)
            if bin_lower == 0:
                in_bin |= y_pred == 0
            if not in_bin.any():
                continue
            rows.append({
                'bin_lower': float(bin_lower),
                'bin_upper': float(bin_upper),
                'matches': int(in_bin.sum()),
                'mean_predicted': float(y_pred[in_bin].mean()),
                'observed_win_rate': float(y_true[in_bin].mean()),
            })
        return pd.DataFrame(rows, columns=['bin_lower', 'bin_upper', 'matches', 'mean_predicted', 'observed_win_rate'])


def _optional_int(value, column: str) -> Optional[int]:
    if value is None or pd.isna(value):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"Column {column} must be numeric, got {value!r}") from None
    if not number.is_integer():
        raise InvalidInputError(f"Column {column} must hold whole numbers, got {value!r}")
    return int(number)


def _outcome(row: pd.Series) -> int:
    outcome = _optional_int(row.get('p1_won'), 'p1_won')
    if outcome not in (0, 1):
        raise InvalidInputError(f"Column p1_won must be 0 or 1, got {row.get('p1_won')!r}")
    return outcome
