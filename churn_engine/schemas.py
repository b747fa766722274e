"""
Data schema definitions for the churn risk engine.

Uses Pandera for runtime validation of input DataFrames so that bad
feature extracts or prediction logs are caught before scoring or
evaluation, not halfway through.
"""

from typing import Iterable

from pandera import Column, Check, DataFrameSchema

from .classifier import TIER_ORDER

SUBJECT_ID = "SUBJECT_ID"
RISK_SCORE = "RISK_SCORE"
RISK_TIER = "RISK_TIER"
COMPUTED_AT = "COMPUTED_AT"
WINDOW_DAYS = "WINDOW_DAYS"
CONFIG_VERSION = "CONFIG_VERSION"
OBSERVATION_COUNT = "OBSERVATION_COUNT"
CHURNED = "CHURNED"
OBSERVED_AT = "OBSERVED_AT"

TIER_VALUES = [tier.value for tier in TIER_ORDER]


def feature_frame_schema(factor_ids: Iterable[str]) -> DataFrameSchema:
    """
    Schema for a batch of feature vectors.

    One row per subject, one column per factor id. Values are
    pre-normalized to [0, 1]; null means the value was not collected.

    Args:
        factor_ids: Factor columns to check (only those present are required)

    Returns:
        DataFrameSchema for the feature frame
    """
    columns = {
        SUBJECT_ID: Column(
            str,
            nullable=False,
            unique=True,
            description="Unique subject identifier",
        ),
    }
    for factor_id in factor_ids:
        columns[factor_id] = Column(
            float,
            nullable=True,
            required=False,
            checks=[
                Check.greater_than_or_equal_to(0.0),
                Check.less_than_or_equal_to(1.0),
            ],
            description=f"Observed value for factor {factor_id}",
        )
    return DataFrameSchema(
        columns,
        strict=False,  # Extra columns (e.g. observation counts) pass through
        coerce=True,
        description="Schema for churn risk feature vectors",
    )


# Schema for stored predictions (timestamps are parsed before validation)
PREDICTIONS_SCHEMA = DataFrameSchema(
    {
        SUBJECT_ID: Column(str, nullable=False),
        RISK_SCORE: Column(
            float,
            nullable=False,
            checks=[
                Check.greater_than_or_equal_to(0.0),
                Check.less_than_or_equal_to(1.0),
            ],
        ),
        RISK_TIER: Column(str, nullable=False, checks=Check.isin(TIER_VALUES)),
        COMPUTED_AT: Column(nullable=False),
        WINDOW_DAYS: Column(
            int,
            nullable=False,
            checks=Check.greater_than_or_equal_to(1),
        ),
    },
    strict=False,
    coerce=True,
    description="Schema for emitted churn risk predictions",
)


# Schema for observed outcomes
OUTCOMES_SCHEMA = DataFrameSchema(
    {
        SUBJECT_ID: Column(str, nullable=False),
        CHURNED: Column(bool, nullable=False),
        OBSERVED_AT: Column(nullable=False),
    },
    strict=False,
    coerce=True,
    description="Schema for observed churn outcomes",
)


# Schema for already-joined prediction/outcome pairs
EVALUATION_FRAME_SCHEMA = DataFrameSchema(
    {
        RISK_TIER: Column(str, nullable=False, checks=Check.isin(TIER_VALUES)),
        CHURNED: Column(bool, nullable=False),
    },
    strict=False,
    coerce=True,
    description="Schema for windowed prediction/outcome pairs",
)
