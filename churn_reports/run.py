#!/usr/bin/env python3
"""
CLI entry point for the churn risk engine.

Usage:
    # Check a config before activating it
    python -m churn_reports.run validate scoring.yaml

    # Score a feature extract and write predictions
    python -m churn_reports.run score scoring.yaml features.csv --output predictions.csv

    # Evaluate predictions against outcomes
    python -m churn_reports.run evaluate predictions.csv outcomes.csv --positive-tier high

    # Run a YAML-defined report, list past runs
    python -m churn_reports.run report reports/weekly.yaml
    python -m churn_reports.run history
"""

import argparse
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

import pandas as pd

from churn_engine.config import ScoringConfig
from churn_engine.errors import ConfigValidationError, NoActiveFactorsError
from churn_engine.predictor import ChurnPredictor
from churn_engine.schemas import (
    COMPUTED_AT,
    CONFIG_VERSION,
    RISK_SCORE,
    RISK_TIER,
    SUBJECT_ID,
    WINDOW_DAYS,
)
from churn_engine.validator import ConfigValidator

from .config import ReportConfig
from .io import load_outcomes, load_predictions
from .runner import ReportRunner


def _load_scoring_config(path: str) -> ScoringConfig:
    if path.endswith(".json"):
        with open(path) as f:
            return ScoringConfig.from_dict(json.load(f))
    return ScoringConfig.from_yaml(path)


def cmd_validate(args: argparse.Namespace) -> int:
    result = ConfigValidator().validate(_load_scoring_config(args.config))
    if result.ok:
        config = result.config
        active = sum(1 for f in config.factors if f.enabled)
        print(f"OK: version {config.version}, {active}/{len(config.factors)} factors enabled")
        return 0
    print(f"INVALID: {len(result.issues)} issue(s)")
    for issue in result.issues:
        print(f"  [{issue.code.value}] {issue.field}: {issue.message}")
    return 1


def cmd_score(args: argparse.Namespace) -> int:
    features = pd.read_csv(args.features, dtype={SUBJECT_ID: str})
    try:
        predictor = ChurnPredictor(_load_scoring_config(args.config))
        result = predictor.score_frame(features)
    except (ConfigValidationError, NoActiveFactorsError) as e:
        print(f"ERROR: {e}")
        return 1

    print(result.tier_distribution().to_string())
    unscored = len(result.unscored())
    if unscored:
        print(f"\n{unscored} subject(s) could not be scored")

    if args.output:
        scored = result.scored()
        predictions = pd.DataFrame({
            SUBJECT_ID: scored[SUBJECT_ID],
            RISK_SCORE: scored[RISK_SCORE],
            RISK_TIER: scored[RISK_TIER],
            COMPUTED_AT: datetime.now(timezone.utc).isoformat(),
            WINDOW_DAYS: predictor.config.prediction_window_days,
            CONFIG_VERSION: predictor.config.version,
        })
        predictions.to_csv(args.output, index=False)
        print(f"\nPredictions written to: {args.output}")
    return 0


def cmd_evaluate(args: argparse.Namespace) -> int:
    runner = ReportRunner(base_path=Path(args.base_path))
    config = ReportConfig(
        name=args.name,
        predictions_path=args.predictions,
        outcomes_path=args.outcomes,
        positive_tier=args.positive_tier,
    )
    result = runner.evaluate(
        config,
        load_predictions(args.predictions),
        load_outcomes(args.outcomes),
    )
    print(result.summary())
    print()
    print(result.snapshot.summary())
    if result.passed:
        print(f"\nArtifacts saved to: {runner.artifacts_dir / result.run_id}")
    return 0


def cmd_report(args: argparse.Namespace) -> int:
    runner = ReportRunner(base_path=Path(args.base_path))
    try:
        results = runner.run_batch(args.configs, stop_on_failure=args.stop_on_failure)
    except Exception as e:
        print(f"ERROR: {e}")
        return 1

    for result in results:
        print(f"\n{'=' * 60}")
        print(result.summary())

    errored = len(args.configs) - len(results)
    passed = sum(1 for r in results if r.passed)
    print(
        f"\nTotal: {len(args.configs)}, Passed: {passed}, "
        f"Failed: {len(results) - passed}, Errored: {errored}"
    )
    return 1 if errored else 0


def cmd_history(args: argparse.Namespace) -> int:
    df = ReportRunner(base_path=Path(args.base_path)).list_runs()
    if df.empty:
        print("No evaluation runs found.")
    else:
        print(df.to_string(index=False))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Churn risk scoring and evaluation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument(
        "--base-path",
        default=".",
        help="Directory for logs/ and artifacts/ (default: current directory)",
    )
    sub = parser.add_subparsers(dest="command")

    p = sub.add_parser("validate", help="Validate a scoring config (YAML or JSON)")
    p.add_argument("config")
    p.set_defaults(func=cmd_validate)

    p = sub.add_parser("score", help="Score a feature CSV")
    p.add_argument("config")
    p.add_argument("features")
    p.add_argument("--output", help="Write predictions CSV here")
    p.set_defaults(func=cmd_score)

    p = sub.add_parser("evaluate", help="Evaluate predictions against outcomes")
    p.add_argument("predictions")
    p.add_argument("outcomes")
    p.add_argument(
        "--positive-tier",
        default="high",
        choices=["low", "medium", "high", "critical"],
    )
    p.add_argument("--name", default="adhoc")
    p.set_defaults(func=cmd_evaluate)

    p = sub.add_parser("report", help="Run YAML-defined evaluation reports")
    p.add_argument("configs", nargs="+")
    p.add_argument(
        "--stop-on-failure",
        action="store_true",
        help="Stop batch run if any report errors",
    )
    p.set_defaults(func=cmd_report)

    p = sub.add_parser("history", help="List past evaluation runs")
    p.set_defaults(func=cmd_history)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return 1
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
