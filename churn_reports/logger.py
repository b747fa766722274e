"""
Run history for the reporting job.

Every evaluation run leaves one JSON record under logs/, named after its
run id, whether it passed, failed the bar or crashed. The history view
flattens those records into a DataFrame for the CLI and for charting
precision/recall drift week over week.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

import pandas as pd

if TYPE_CHECKING:
    from .config import ReportConfig
    from .runner import ReportResult

METRIC_KEYS = ("accuracy", "precision", "recall", "f1")


class EvaluationLogger:
    """Append-only JSON records, one file per run."""

    def __init__(self, logs_dir: Path):
        self.logs_dir = logs_dir
        self.logs_dir.mkdir(parents=True, exist_ok=True)

    def _write(self, run_id: str, record: dict) -> Path:
        path = self.logs_dir / f"{run_id}.json"
        path.write_text(json.dumps(record, indent=2, default=str))
        return path

    def log_run(self, result: "ReportResult") -> Path:
        """Record a finished run, with its snapshot and PASS/FAIL verdict."""
        return self._write(result.run_id, {
            "run_id": result.run_id,
            "timestamp": result.timestamp.isoformat(),
            "duration_seconds": result.duration_seconds,
            "config": result.config.to_dict(),
            "counts": {
                "predictions": result.n_predictions,
                "outcomes": result.n_outcomes,
                "pairs": result.n_pairs,
            },
            "results": {
                "snapshot": result.snapshot.to_dict(),
                "recommended_tier": result.recommended_tier.value,
            },
            "passed": result.passed,
            "failed_criteria": result.failed_criteria,
            "status": "PASS" if result.passed else "FAIL",
        })

    def log_failure(self, run_id: str, config: "ReportConfig", error: str) -> Path:
        """
        Record a run that crashed before a snapshot existed.

        Only the report's identity is kept; input paths may be the very
        thing that was wrong.
        """
        return self._write(run_id, {
            "run_id": run_id,
            "timestamp": datetime.now().isoformat(),
            "config": {"name": config.name, "description": config.description},
            "status": "ERROR",
            "error": error,
        })

    def get_all_logs(self) -> list[dict]:
        """All run records, in file-name order (run date, then id)."""
        return [
            json.loads(path.read_text())
            for path in sorted(self.logs_dir.glob("eval_*.json"))
        ]

    def get_summary_dataframe(self) -> pd.DataFrame:
        """
        One row per run, newest first.

        Errored runs have no metrics, so their metric columns are NaN.
        """
        rows = []
        for record in self.get_all_logs():
            snapshot = record.get("results", {}).get("snapshot", {})
            row = {
                "run_id": record["run_id"],
                "name": record["config"]["name"],
                "timestamp": record["timestamp"],
                "status": record["status"],
                "positive_tier": snapshot.get("positive_tier"),
                "pairs": snapshot.get("total_predictions"),
            }
            row.update({key: snapshot.get(key) for key in METRIC_KEYS})
            rows.append(row)

        if not rows:
            return pd.DataFrame()
        return pd.DataFrame(rows).sort_values("timestamp", ascending=False)
