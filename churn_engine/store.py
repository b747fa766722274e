"""
In-memory stores: the active config and the append-only record logs.

ConfigStore holds the one piece of shared mutable state in the engine.
Updates are version-checked (optimistic concurrency): every update names
the version it was based on, and is refused with StaleConfigVersionError
if another update landed first. The caller re-reads and retries.
"""

import logging
import threading
from typing import Iterable, Iterator, Optional, Union

import pandas as pd

from .config import DEFAULT_CONFIG, ScoringConfig
from .errors import StaleConfigVersionError
from .records import Outcome, Prediction
from .schemas import (
    CHURNED,
    COMPUTED_AT,
    CONFIG_VERSION,
    OBSERVED_AT,
    RISK_SCORE,
    RISK_TIER,
    SUBJECT_ID,
    WINDOW_DAYS,
)
from .validator import ConfigCommand, ConfigValidator, ValidationResult, build_draft

logger = logging.getLogger(__name__)


class ConfigStore:
    """
    Holds the active ScoringConfig.

    Usage:
        store = ConfigStore(initial_config)
        current = store.active
        result = store.update(SetFactorWeight("login_frequency", 0.2), current.version)

    Reads never block. The version compare and the swap happen together
    under a short internal lock so two writers cannot both win; nobody
    waits on a reader.
    """

    def __init__(
        self,
        initial: Optional[ScoringConfig] = None,
        validator: Optional[ConfigValidator] = None,
    ):
        self.validator = validator or ConfigValidator()
        result = self.validator.validate(initial or DEFAULT_CONFIG)
        self._active = result.raise_for_issues()
        self._swap_lock = threading.Lock()

    @property
    def active(self) -> ScoringConfig:
        return self._active

    @property
    def version(self) -> int:
        return self._active.version

    def update(
        self,
        change: Union[ConfigCommand, ScoringConfig],
        expected_version: int,
    ) -> ValidationResult:
        """
        Validate and activate a change based on `expected_version`.

        Args:
            change: A config command, or a complete draft ScoringConfig
            expected_version: Version of the config the change was made from

        Returns:
            ValidationResult; when ok, `config` is now active with
            version `expected_version + 1`. When not ok, nothing changed.

        Raises:
            StaleConfigVersionError: If the active version has moved on
        """
        with self._swap_lock:
            current = self._active
            if current.version != expected_version:
                logger.info(
                    "Stale config update: based on v%d, current is v%d",
                    expected_version,
                    current.version,
                )
                raise StaleConfigVersionError(expected_version, current.version)

            if isinstance(change, ScoringConfig):
                draft = change
            else:
                draft = build_draft(current, change)
            draft = draft.replace(version=current.version + 1)

            result = self.validator.validate(draft)
            if result.ok:
                self._active = result.config
                logger.info("Activated scoring config v%d", result.config.version)
            return result


class PredictionStore:
    """Append-only log of emitted predictions."""

    def __init__(self, predictions: Iterable[Prediction] = ()):
        self._predictions: list[Prediction] = list(predictions)

    def append(self, prediction: Prediction) -> None:
        self._predictions.append(prediction)

    def extend(self, predictions: Iterable[Prediction]) -> None:
        self._predictions.extend(predictions)

    def all(self) -> tuple[Prediction, ...]:
        return tuple(self._predictions)

    def for_subject(self, subject_id: str) -> tuple[Prediction, ...]:
        return tuple(p for p in self._predictions if p.subject_id == subject_id)

    def latest(self, subject_id: str) -> Optional[Prediction]:
        predictions = self.for_subject(subject_id)
        if not predictions:
            return None
        return max(predictions, key=lambda p: p.computed_at)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [
                {
                    SUBJECT_ID: p.subject_id,
                    RISK_SCORE: p.score,
                    RISK_TIER: p.tier.value,
                    COMPUTED_AT: p.computed_at,
                    WINDOW_DAYS: p.window_days,
                    CONFIG_VERSION: p.config_version,
                }
                for p in self._predictions
            ],
            columns=[SUBJECT_ID, RISK_SCORE, RISK_TIER, COMPUTED_AT, WINDOW_DAYS, CONFIG_VERSION],
        )

    def __iter__(self) -> Iterator[Prediction]:
        return iter(self.all())

    def __len__(self) -> int:
        return len(self._predictions)


class OutcomeStore:
    """Append-only log of observed outcomes (may arrive long after predictions)."""

    def __init__(self, outcomes: Iterable[Outcome] = ()):
        self._outcomes: list[Outcome] = list(outcomes)

    def record(self, outcome: Outcome) -> None:
        self._outcomes.append(outcome)

    def extend(self, outcomes: Iterable[Outcome]) -> None:
        self._outcomes.extend(outcomes)

    def all(self) -> tuple[Outcome, ...]:
        return tuple(self._outcomes)

    def for_subject(self, subject_id: str) -> tuple[Outcome, ...]:
        return tuple(o for o in self._outcomes if o.subject_id == subject_id)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [
                {SUBJECT_ID: o.subject_id, CHURNED: o.churned, OBSERVED_AT: o.observed_at}
                for o in self._outcomes
            ],
            columns=[SUBJECT_ID, CHURNED, OBSERVED_AT],
        )

    def __iter__(self) -> Iterator[Outcome]:
        return iter(self.all())

    def __len__(self) -> int:
        return len(self._outcomes)
