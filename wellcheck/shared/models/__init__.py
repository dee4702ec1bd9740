"""Shared domain models for the wellcheck platform."""
from .checkin import (
    Domain,
    SelfHarmIndicator,
    RiskTier,
    TriggerCode,
    ConfidenceBand,
    Submission,
    RiskClassification,
    MIN_INTENSITY,
    MAX_INTENSITY,
    utc_now,
)

__all__ = [
    "Domain",
    "SelfHarmIndicator",
    "RiskTier",
    "TriggerCode",
    "ConfidenceBand",
    "Submission",
    "RiskClassification",
    "MIN_INTENSITY",
    "MAX_INTENSITY",
    "utc_now",
]
