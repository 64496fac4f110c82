#!/usr/bin/env python3
"""
Backtest Script for the Ranking Predictor
Replays historical matches from a CSV file and reports calibration metrics
"""

import argparse
import json
import logging
import sys
from pathlib import Path

import pandas as pd

from ranking_predictor import PredictionConfig, PredictionItem, PredictionValidation
from ranking_predictor.logs import configure_logging

logger = logging.getLogger(__name__)


def parse_weight(text: str):
    item, _, weight = text.partition('=')
    if not weight:
        raise argparse.ArgumentTypeError(f"Expected ITEM=WEIGHT, got {text!r}")
    return item, float(weight)


def load_config(args) -> PredictionConfig:
    weights = {}
    if args.config:
        weights.update(json.loads(Path(args.config).read_text()))
    weights.update(dict(args.weight or []))
    if not weights:
        return PredictionConfig.equal_weights()
    return PredictionConfig.from_mapping(weights)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='Backtest ranking based match predictions')
    parser.add_argument('matches', help='CSV file with p1_/p2_ ranking columns, best_of and p1_won')
    parser.add_argument('--config', help='JSON file mapping prediction items to weights')
    parser.add_argument('--weight', action='append', type=parse_weight, metavar='ITEM=WEIGHT',
                        help=f"Item weight override, items: {', '.join(item.value for item in PredictionItem)}")
    parser.add_argument('--output', help='Write the metrics as JSON to this file')
    parser.add_argument('--json-logs', action='store_true', help='Emit logs as JSON')
    parser.add_argument('--verbose', action='store_true', help='Log every item probability')

    args = parser.parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.INFO, json=args.json_logs)

    try:
        config = load_config(args)
    except ValueError as e:
        logger.error(f"Invalid prediction config: {e}")
        return 2

    data = pd.read_csv(args.matches)
    logger.info(f"Loaded {len(data):,} matches from {args.matches}")

    summary = PredictionValidation().backtest(data, config)

    report = json.dumps(summary, indent=2)
    if args.output:
        Path(args.output).write_text(report)
        logger.info(f"Metrics written to {args.output}")
    else:
        print(report)
    return 0


if __name__ == "__main__":
    sys.exit(main())
