"""
Artifacts for passing evaluation runs.

Layout under artifacts/<run_id>/:
    config.yaml           report settings used
    snapshot.csv          the PerformanceSnapshot, one row
    tier_sweep.csv        metrics at every candidate positive tier
    pairs.csv             the windowed prediction/outcome pairs
    confusion_matrix.png
    tier_sweep.png
"""

from pathlib import Path
from typing import TYPE_CHECKING

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

from churn_engine.evaluation import PerformanceSnapshot

from .config import ReportConfig

if TYPE_CHECKING:
    from .runner import ReportResult

SWEEP_METRICS = ("accuracy", "precision", "recall", "f1")


class ArtifactManager:
    """Writes and reads back per-run artifact directories."""

    def __init__(self, artifacts_dir: Path):
        self.artifacts_dir = artifacts_dir
        self.artifacts_dir.mkdir(parents=True, exist_ok=True)

    def save_artifacts(self, result: "ReportResult", pairs: pd.DataFrame) -> Path:
        """Write every artifact for `result` and return the run directory."""
        run_dir = self.artifacts_dir / result.run_id
        run_dir.mkdir(exist_ok=True)

        result.config.to_yaml(run_dir / "config.yaml")
        tables = {
            "snapshot.csv": pd.DataFrame([result.snapshot.to_dict()]),
            "tier_sweep.csv": result.sweep,
            "pairs.csv": pairs,
        }
        for filename, table in tables.items():
            table.to_csv(run_dir / filename, index=False)

        self._confusion_heatmap(result.snapshot, run_dir / "confusion_matrix.png")
        self._sweep_chart(
            result.sweep, result.snapshot.positive_tier.value, run_dir / "tier_sweep.png"
        )
        return run_dir

    def load_run(self, run_id: str) -> dict | None:
        """Artifacts of a past run, or None if it never passed."""
        run_dir = self.artifacts_dir / run_id
        if not run_dir.exists():
            return None
        return {
            "config": ReportConfig.from_yaml(run_dir / "config.yaml"),
            "snapshot": pd.read_csv(run_dir / "snapshot.csv"),
            "tier_sweep": pd.read_csv(run_dir / "tier_sweep.csv"),
            "pairs": pd.read_csv(run_dir / "pairs.csv"),
        }

    @staticmethod
    def _confusion_heatmap(snapshot: PerformanceSnapshot, path: Path) -> None:
        # Rows are actual, columns predicted; retained first
        cells = [
            [snapshot.true_negatives, snapshot.false_positives],
            [snapshot.false_negatives, snapshot.true_positives],
        ]
        fig, ax = plt.subplots(figsize=(8, 6))
        sns.heatmap(
            cells,
            annot=True,
            fmt="d",
            cmap="Blues",
            ax=ax,
            xticklabels=["Predicted Retained", "Predicted Churn"],
            yticklabels=["Actual Retained", "Actual Churn"],
        )
        ax.set_title(f"Confusion Matrix (tier >= {snapshot.positive_tier.value})")
        fig.tight_layout()
        fig.savefig(path, dpi=150)
        plt.close(fig)

    @staticmethod
    def _sweep_chart(sweep: pd.DataFrame, chosen_tier: str, path: Path) -> None:
        tiers = list(sweep["positive_tier"])
        positions = list(range(len(tiers)))

        fig, ax = plt.subplots(figsize=(10, 6))
        for metric in SWEEP_METRICS:
            ax.plot(positions, sweep[metric], marker="o", linewidth=2, label=metric.capitalize())
        if chosen_tier in tiers:
            ax.axvline(
                tiers.index(chosen_tier),
                color="red",
                linestyle="--",
                alpha=0.7,
                label=f"Chosen (>= {chosen_tier})",
            )

        ax.set(
            xticks=positions,
            xlabel="Positive tier",
            ylabel="Score",
            ylim=(0, 1),
            title="Metrics vs. Positive Tier",
        )
        ax.set_xticklabels([f">= {t}" for t in tiers])
        ax.grid(True, alpha=0.3)
        ax.legend()
        fig.tight_layout()
        fig.savefig(path, dpi=150)
        plt.close(fig)
