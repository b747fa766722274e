"""
Churn Risk Engine Package

Deterministic risk scoring, tier classification and prediction
evaluation for the churn-prediction feature.
"""

from .classifier import RiskTier, ThresholdClassifier
from .config import DEFAULT_CONFIG, Factor, FactorCategory, ScoringConfig, ThresholdSet
from .errors import (
    ChurnEngineError,
    ConfigValidationError,
    DuplicateFactorIdError,
    FeatureValueError,
    InvalidWeightError,
    NoActiveFactorsError,
    StaleConfigVersionError,
    ThresholdOrderViolationError,
    UnknownFactorError,
)
from .evaluation import ConfusionCounts, EvaluationEngine, PerformanceSnapshot
from .predictor import ChurnPredictor
from .records import Outcome, Prediction, PredictionRejected, RejectionReason
from .registry import FactorRegistry
from .scorer import RiskScorer, ScoreResult, ScoringResult, generate_sample_data
from .store import ConfigStore, OutcomeStore, PredictionStore
from .validator import (
    AddFactor,
    ConfigValidator,
    RemoveFactor,
    SetFactorEnabled,
    SetFactorWeight,
    SetThresholds,
    SetWindowPolicy,
    ValidationCode,
    ValidationIssue,
    ValidationResult,
    apply,
)
from .window import PredictionWindowPolicy, join_within_window

__all__ = [
    "AddFactor",
    "ChurnEngineError",
    "ChurnPredictor",
    "ConfigStore",
    "ConfigValidationError",
    "ConfigValidator",
    "ConfusionCounts",
    "DEFAULT_CONFIG",
    "DuplicateFactorIdError",
    "EvaluationEngine",
    "Factor",
    "FactorCategory",
    "FactorRegistry",
    "FeatureValueError",
    "InvalidWeightError",
    "NoActiveFactorsError",
    "Outcome",
    "OutcomeStore",
    "PerformanceSnapshot",
    "Prediction",
    "PredictionRejected",
    "PredictionStore",
    "PredictionWindowPolicy",
    "RejectionReason",
    "RemoveFactor",
    "RiskScorer",
    "RiskTier",
    "ScoreResult",
    "ScoringConfig",
    "ScoringResult",
    "SetFactorEnabled",
    "SetFactorWeight",
    "SetThresholds",
    "SetWindowPolicy",
    "StaleConfigVersionError",
    "ThresholdClassifier",
    "ThresholdOrderViolationError",
    "ThresholdSet",
    "UnknownFactorError",
    "ValidationCode",
    "ValidationIssue",
    "ValidationResult",
    "apply",
    "generate_sample_data",
    "join_within_window",
]
__version__ = "1.0.0"
