"""
Settings for one evaluation report.

A report names its two input extracts, the tier that counts as a churn
call, and the bar a snapshot has to clear before artifacts are kept.
Reports live as small YAML files under reports/ and are run by
ReportRunner (or `churn-risk report`).
"""

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Literal, Optional

import yaml

from churn_engine.classifier import TIER_ORDER, RiskTier

OPTIMIZE_METRICS = ("f1", "accuracy", "precision", "recall")


@dataclass
class ReportConfig:
    """
    One reporting job.

        config = ReportConfig.from_yaml("reports/weekly.yaml")
        config = ReportConfig(name="adhoc", positive_tier="medium", min_recall=0.6)
    """

    name: str
    description: str = ""

    # Resolved against the runner's base path when relative
    predictions_path: str = "data/predictions.csv"
    outcomes_path: str = "data/outcomes.csv"

    positive_tier: str = "high"
    optimize_metric: Literal["f1", "accuracy", "precision", "recall"] = "f1"

    # A run passes only if every bar that is set is met
    min_accuracy: float = 0.50
    min_f1: Optional[float] = None
    min_recall: Optional[float] = None

    def __post_init__(self):
        tier = RiskTier.parse(self.positive_tier)
        self.positive_tier = tier.value
        if tier is RiskTier.NONE:
            raise ValueError(
                f"positive_tier must be one of {[t.value for t in TIER_ORDER[1:]]}"
            )
        if self.optimize_metric not in OPTIMIZE_METRICS:
            raise ValueError(
                f"optimize_metric must be one of {list(OPTIMIZE_METRICS)}, "
                f"got {self.optimize_metric!r}"
            )

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_yaml(cls, path: Path | str) -> "ReportConfig":
        data = yaml.safe_load(Path(path).read_text())
        return cls(**data)

    def to_yaml(self, path: Path | str) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(yaml.safe_dump(self.to_dict(), sort_keys=False))
