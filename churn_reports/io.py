"""
CSV loading and export for predictions, outcomes and joined pairs.

Timestamps are parsed as UTC before schema validation so that records
from different sources compare correctly.
"""

from pathlib import Path
from typing import Iterable

import pandas as pd

from churn_engine.classifier import RiskTier
from churn_engine.records import Outcome, Prediction
from churn_engine.schemas import (
    CHURNED,
    COMPUTED_AT,
    CONFIG_VERSION,
    OBSERVED_AT,
    OUTCOMES_SCHEMA,
    PREDICTIONS_SCHEMA,
    RISK_SCORE,
    RISK_TIER,
    SUBJECT_ID,
    WINDOW_DAYS,
)


def predictions_from_frame(df: pd.DataFrame) -> list[Prediction]:
    """
    Build Prediction records from a predictions frame.

    Raises:
        pandera.errors.SchemaError: If the frame violates PREDICTIONS_SCHEMA
    """
    df = df.copy()
    df[COMPUTED_AT] = pd.to_datetime(df[COMPUTED_AT], utc=True)
    df = PREDICTIONS_SCHEMA.validate(df)
    has_version = CONFIG_VERSION in df.columns
    return [
        Prediction(
            subject_id=row[SUBJECT_ID],
            score=float(row[RISK_SCORE]),
            tier=RiskTier.parse(row[RISK_TIER]),
            computed_at=row[COMPUTED_AT].to_pydatetime(),
            window_days=int(row[WINDOW_DAYS]),
            config_version=int(row[CONFIG_VERSION]) if has_version else 0,
        )
        for row in df.to_dict("records")
    ]


def outcomes_from_frame(df: pd.DataFrame) -> list[Outcome]:
    """
    Build Outcome records from an outcomes frame.

    Raises:
        pandera.errors.SchemaError: If the frame violates OUTCOMES_SCHEMA
    """
    df = df.copy()
    df[OBSERVED_AT] = pd.to_datetime(df[OBSERVED_AT], utc=True)
    df = OUTCOMES_SCHEMA.validate(df)
    return [
        Outcome(
            subject_id=row[SUBJECT_ID],
            churned=bool(row[CHURNED]),
            observed_at=row[OBSERVED_AT].to_pydatetime(),
        )
        for row in df.to_dict("records")
    ]


def load_predictions(path: Path | str) -> list[Prediction]:
    return predictions_from_frame(pd.read_csv(path, dtype={SUBJECT_ID: str}))


def load_outcomes(path: Path | str) -> list[Outcome]:
    return outcomes_from_frame(pd.read_csv(path, dtype={SUBJECT_ID: str}))


def pairs_to_frame(pairs: Iterable[tuple[Prediction, Outcome]]) -> pd.DataFrame:
    """One row per windowed pair, ready for EvaluationEngine.evaluate_frame."""
    return pd.DataFrame(
        [
            {
                SUBJECT_ID: prediction.subject_id,
                RISK_SCORE: prediction.score,
                RISK_TIER: prediction.tier.value,
                COMPUTED_AT: prediction.computed_at,
                WINDOW_DAYS: prediction.window_days,
                CHURNED: outcome.churned,
                OBSERVED_AT: outcome.observed_at,
            }
            for prediction, outcome in pairs
        ],
        columns=[
            SUBJECT_ID,
            RISK_SCORE,
            RISK_TIER,
            COMPUTED_AT,
            WINDOW_DAYS,
            CHURNED,
            OBSERVED_AT,
        ],
    )
