"""
ChurnPredictor - the scoring call.

Ties the pieces together for one subject:

    policy gate -> weighted score -> tier -> Prediction

    predictor = ChurnPredictor(store.active, prediction_store)
    result = predictor.predict("sub_42", features, observation_count=14)
    if isinstance(result, PredictionRejected):
        ...  # not enough data, or nothing to score from
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, Mapping, Optional, Union

import pandas as pd

from .classifier import ThresholdClassifier
from .config import ScoringConfig
from .errors import NoActiveFactorsError
from .records import Prediction, PredictionRejected, RejectionReason
from .registry import FactorRegistry
from .schemas import OBSERVATION_COUNT, RISK_SCORE, RISK_TIER
from .scorer import RiskScorer, ScoringResult
from .store import PredictionStore
from .validator import ConfigValidator
from .window import PredictionWindowPolicy

logger = logging.getLogger(__name__)

PredictResult = Union[Prediction, PredictionRejected]


class ChurnPredictor:
    """
    Emits predictions against one validated config.

    Construction validates the config and raises ConfigValidationError if
    it is not activatable; a predictor never runs on a draft.
    """

    def __init__(
        self,
        config: ScoringConfig,
        store: Optional[PredictionStore] = None,
    ):
        self.config = ConfigValidator().validate(config).raise_for_issues()
        self.store = store
        self.registry = FactorRegistry.from_config(self.config)
        self.scorer = RiskScorer()
        self.classifier = ThresholdClassifier(self.config.thresholds)
        self.policy = PredictionWindowPolicy.from_config(self.config)

    def predict(
        self,
        subject_id: str,
        features: Mapping[str, Optional[float]],
        observation_count: int,
        computed_at: Optional[datetime] = None,
    ) -> PredictResult:
        """
        Score and classify one subject.

        Args:
            subject_id: Subject identifier
            features: Factor id -> value in [0, 1]; missing ids are skipped
            observation_count: Observations behind the feature vector
            computed_at: Prediction timestamp (default: now, UTC)

        Returns:
            Prediction, or PredictionRejected with the reason
        """
        if not self.policy.can_predict(observation_count):
            logger.debug(
                "Skipping %s: %d observations < %d required",
                subject_id,
                observation_count,
                self.policy.minimum_data_points,
            )
            return PredictionRejected(
                subject_id=subject_id,
                reason=RejectionReason.INSUFFICIENT_DATA_POINTS,
                detail=(
                    f"{observation_count} observations, "
                    f"{self.policy.minimum_data_points} required"
                ),
            )

        try:
            result = self.scorer.score(features, self.registry.active_factors())
        except NoActiveFactorsError as e:
            logger.debug("Skipping %s: %s", subject_id, e)
            return PredictionRejected(
                subject_id=subject_id,
                reason=RejectionReason.NO_ACTIVE_FACTORS,
                detail=str(e),
            )

        prediction = Prediction(
            subject_id=subject_id,
            score=result.score,
            tier=self.classifier.classify(result.score),
            computed_at=computed_at or datetime.now(timezone.utc),
            window_days=self.policy.prediction_window_days,
            config_version=self.config.version,
            contributions={
                factor_id: c.contribution
                for factor_id, c in result.contributions.items()
            },
        )
        if self.store is not None:
            self.store.append(prediction)
        return prediction

    def predict_many(
        self,
        requests: Iterable[tuple[str, Mapping[str, Optional[float]], int]],
        computed_at: Optional[datetime] = None,
    ) -> list[PredictResult]:
        """Predict for (subject_id, features, observation_count) triples."""
        computed_at = computed_at or datetime.now(timezone.utc)
        return [
            self.predict(subject_id, features, count, computed_at)
            for subject_id, features, count in requests
        ]

    def score_frame(
        self,
        df: pd.DataFrame,
        observation_column: Optional[str] = OBSERVATION_COUNT,
    ) -> ScoringResult:
        """
        Vectorized scores and tiers for a feature frame.

        If `observation_column` is present in the frame, rows below the
        configured minimum keep their row but get no score and no tier.
        """
        result = self.scorer.score_frame(
            df, self.registry.active_factors(), self.classifier
        )
        if observation_column and observation_column in result.df.columns:
            insufficient = result.df[observation_column] < self.policy.minimum_data_points
            result.df.loc[insufficient, RISK_SCORE] = float("nan")
            result.df.loc[insufficient, RISK_TIER] = None
            for col in result.contribution_columns:
                result.df.loc[insufficient, col] = 0.0
        return result
