"""
Evaluation runs: windowed join, snapshot, tier sweep, verdict.

ReportRunner is what the weekly reporting job calls. It joins stored
predictions to observed outcomes, evaluates them at the configured
positive tier, sweeps the other tiers for comparison and checks the
snapshot against the report's bar. Every run is logged; only passing
runs get artifacts written.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence

import pandas as pd

from churn_engine.classifier import RiskTier
from churn_engine.evaluation import EvaluationEngine, PerformanceSnapshot
from churn_engine.records import Outcome, Prediction
from churn_engine.window import join_within_window

from .artifacts import ArtifactManager
from .config import ReportConfig
from .io import load_outcomes, load_predictions, pairs_to_frame
from .logger import EvaluationLogger

logger = logging.getLogger(__name__)


def criteria_failures(snapshot: PerformanceSnapshot, config: ReportConfig) -> list[str]:
    """
    Bars the snapshot misses, as readable strings.

    An empty snapshot always fails: no pairs means nothing was measured.
    """
    if snapshot.total_predictions == 0:
        return ["no prediction/outcome pairs inside any window"]

    failures = []
    bars = [("accuracy", config.min_accuracy), ("f1", config.min_f1), ("recall", config.min_recall)]
    for metric, minimum in bars:
        value = getattr(snapshot, metric)
        if minimum is not None and value < minimum:
            failures.append(f"{metric} {value:.3f} < {minimum:.3f}")
    return failures


@dataclass
class ReportResult:
    run_id: str
    config: ReportConfig
    snapshot: PerformanceSnapshot
    sweep: pd.DataFrame
    recommended_tier: RiskTier
    timestamp: datetime
    duration_seconds: float
    n_predictions: int
    n_outcomes: int
    n_pairs: int
    failed_criteria: list[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.failed_criteria

    def summary(self) -> str:
        s = self.snapshot
        lines = [
            f"[{self.run_id}] {self.config.name} - {'PASS' if self.passed else 'FAIL'}",
            f"  Pairs:     {self.n_pairs} "
            f"({self.n_predictions} predictions, {self.n_outcomes} outcomes)",
            f"  Accuracy:  {s.accuracy:.1%}",
            f"  Precision: {s.precision:.1%}",
            f"  Recall:    {s.recall:.1%}",
            f"  F1:        {s.f1:.3f}",
            f"  Positive tier: >= {s.positive_tier.value} "
            f"(best by {self.config.optimize_metric}: >= {self.recommended_tier.value})",
        ]
        lines.extend(f"  Missed: {reason}" for reason in self.failed_criteria)
        return "\n".join(lines)


class ReportRunner:
    """
    Runs reports against a base directory.

    Relative input paths resolve against `base_path`; logs and artifacts
    go to `base_path/logs` and `base_path/artifacts`.

        runner = ReportRunner(Path("/srv/churn"))
        result = runner.run_from_yaml("reports/weekly.yaml")
        result = runner.evaluate(config, predictions, outcomes)
    """

    def __init__(
        self,
        base_path: Optional[Path] = None,
        logs_dir: str = "logs",
        artifacts_dir: str = "artifacts",
    ):
        self.base_path = base_path or Path.cwd()
        self.logs_dir = self.base_path / logs_dir
        self.artifacts_dir = self.base_path / artifacts_dir

        self.run_logger = EvaluationLogger(self.logs_dir)
        self.artifact_manager = ArtifactManager(self.artifacts_dir)

    def generate_run_id(self) -> str:
        """eval_YYYYMMDD_xxxx, sortable by date."""
        return f"eval_{datetime.now():%Y%m%d}_{uuid.uuid4().hex[:4]}"

    def run(self, config: ReportConfig) -> ReportResult:
        """Load the config's two extracts from disk, then evaluate."""
        run_id = self.generate_run_id()
        try:
            predictions = load_predictions(self._resolve(config.predictions_path))
            outcomes = load_outcomes(self._resolve(config.outcomes_path))
        except Exception as e:
            self.run_logger.log_failure(run_id, config, str(e))
            raise
        return self.evaluate(config, predictions, outcomes, run_id=run_id)

    def evaluate(
        self,
        config: ReportConfig,
        predictions: Sequence[Prediction],
        outcomes: Sequence[Outcome],
        run_id: Optional[str] = None,
    ) -> ReportResult:
        """
        Evaluate records already in memory.

        Args:
            config: Positive tier, sweep metric and pass criteria
            predictions: Stored predictions, any order
            outcomes: Observed outcomes, any order
            run_id: Reuse an id already handed out (see `run`)

        Returns:
            ReportResult; `passed` is False when any bar is missed
        """
        run_id = run_id or self.generate_run_id()
        started = datetime.now()

        try:
            engine = EvaluationEngine(config.positive_tier)
            computed_at = datetime.now(timezone.utc)
            pairs = join_within_window(predictions, outcomes)
            snapshot = engine.evaluate(pairs, computed_at=computed_at)
            sweep = engine.sweep(pairs, computed_at=computed_at)

            result = ReportResult(
                run_id=run_id,
                config=config,
                snapshot=snapshot,
                sweep=sweep,
                recommended_tier=engine.best_tier(sweep, config.optimize_metric),
                timestamp=started,
                duration_seconds=(datetime.now() - started).total_seconds(),
                n_predictions=len(predictions),
                n_outcomes=len(outcomes),
                n_pairs=len(pairs),
                failed_criteria=criteria_failures(snapshot, config),
            )
            self.run_logger.log_run(result)
            if result.passed:
                self.artifact_manager.save_artifacts(result, pairs_to_frame(pairs))
        except Exception as e:
            self.run_logger.log_failure(run_id, config, str(e))
            raise

        logger.info(
            "Run %s: %d pairs, f1=%.3f, %s",
            run_id,
            result.n_pairs,
            snapshot.f1,
            "PASS" if result.passed else "FAIL " + "; ".join(result.failed_criteria),
        )
        return result

    def run_from_yaml(self, config_path: str | Path) -> ReportResult:
        return self.run(ReportConfig.from_yaml(self._resolve(config_path)))

    def run_batch(
        self,
        config_paths: list[str | Path],
        stop_on_failure: bool = False,
    ) -> list[ReportResult]:
        """
        Run several reports in order, skipping any that error.

        Errored runs are still logged; they just have no ReportResult.
        """
        results = []
        for path in config_paths:
            try:
                results.append(self.run_from_yaml(path))
            except Exception:
                logger.exception("Report %s failed", path)
                if stop_on_failure:
                    raise
        return results

    def list_runs(self) -> pd.DataFrame:
        return self.run_logger.get_summary_dataframe()

    def _resolve(self, path: str | Path) -> Path:
        path = Path(path)
        return path if path.is_absolute() else self.base_path / path
