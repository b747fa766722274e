"""
Prediction window policy.

Two concerns live here:
- Data sufficiency: a subject needs at least `minimum_data_points`
  observations before any prediction is emitted.
- Horizon: each prediction claims `window_days` of forward validity. An
  outcome may only be paired with a prediction if it was observed inside
  that window; later outcomes belong to a different prediction period.
"""

import logging
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Iterable

from .config import ScoringConfig
from .records import Outcome, Prediction

logger = logging.getLogger(__name__)


def _as_utc(moment: datetime) -> datetime:
    # Naive timestamps are taken to be UTC, like the CSV loaders assume
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


class PredictionWindowPolicy:
    """Gates scoring on data sufficiency and defines the forward horizon."""

    def __init__(self, prediction_window_days: int, minimum_data_points: int):
        self.prediction_window_days = prediction_window_days
        self.minimum_data_points = minimum_data_points

    @classmethod
    def from_config(cls, config: ScoringConfig) -> "PredictionWindowPolicy":
        return cls(config.prediction_window_days, config.minimum_data_points)

    def can_predict(self, observation_count: int) -> bool:
        """False when there are fewer observations than the configured minimum."""
        return observation_count >= self.minimum_data_points

    @staticmethod
    def window_end(prediction: Prediction) -> datetime:
        return _as_utc(prediction.computed_at) + timedelta(days=prediction.window_days)

    @staticmethod
    def is_within_window(prediction: Prediction, outcome: Outcome) -> bool:
        """
        True when the outcome is about the same subject and was observed in
        [computed_at, computed_at + window_days].

        Outcomes observed before the prediction was made are excluded too:
        they describe the state the prediction started from. Naive
        timestamps on either side are read as UTC.
        """
        if outcome.subject_id != prediction.subject_id:
            return False
        start = _as_utc(prediction.computed_at)
        observed = _as_utc(outcome.observed_at)
        return start <= observed <= PredictionWindowPolicy.window_end(prediction)


def _pick_outcome(candidates: list[Outcome]) -> Outcome:
    # A churn event anywhere in the window is the label; otherwise the
    # latest observation is the best view of the subject at window end.
    churned = [o for o in candidates if o.churned]
    if churned:
        return min(churned, key=lambda o: _as_utc(o.observed_at))
    return max(candidates, key=lambda o: _as_utc(o.observed_at))


def join_within_window(
    predictions: Iterable[Prediction],
    outcomes: Iterable[Outcome],
) -> list[tuple[Prediction, Outcome]]:
    """
    Pair each prediction with at most one outcome from inside its window.

    Each prediction uses its own `window_days`, so predictions made under
    different configs are joined correctly. Predictions with no in-window
    outcome are left out: their result is not known yet.

    Args:
        predictions: Stored predictions
        outcomes: Observed outcomes, in any order

    Returns:
        List of (prediction, outcome) pairs, in prediction order
    """
    by_subject: dict[str, list[Outcome]] = defaultdict(list)
    for outcome in outcomes:
        by_subject[outcome.subject_id].append(outcome)

    pairs = []
    unmatched = 0
    for prediction in predictions:
        candidates = [
            o
            for o in by_subject.get(prediction.subject_id, [])
            if PredictionWindowPolicy.is_within_window(prediction, o)
        ]
        if candidates:
            pairs.append((prediction, _pick_outcome(candidates)))
        else:
            unmatched += 1

    if unmatched:
        logger.debug("%d predictions have no outcome inside their window", unmatched)
    return pairs
