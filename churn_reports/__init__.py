"""
Reporting pipeline for the churn risk engine.

Usage:
    from churn_reports import ReportRunner, ReportConfig

    # Run from YAML
    runner = ReportRunner()
    result = runner.run_from_yaml("reports/weekly.yaml")
    print(result.summary())

    # Run on records already in memory
    config = ReportConfig(name="adhoc", positive_tier="medium")
    result = runner.evaluate(config, predictions, outcomes)

CLI:
    python -m churn_reports.run evaluate predictions.csv outcomes.csv
    python -m churn_reports.run history
"""

from .config import ReportConfig
from .runner import ReportRunner, ReportResult
from .logger import EvaluationLogger
from .artifacts import ArtifactManager
from .io import load_outcomes, load_predictions, pairs_to_frame

__all__ = [
    "ReportConfig",
    "ReportRunner",
    "ReportResult",
    "EvaluationLogger",
    "ArtifactManager",
    "load_outcomes",
    "load_predictions",
    "pairs_to_frame",
]
