"""Check-in Service: Weekly submissions with inline risk scoring.

Per ADR-001: Risk classification is deterministic and explainable.
Every check-in is scored synchronously before it is stored; the
classification is written separately and best-effort so that an audit
write can never block the student's own submission.

This service provides:
- Historical context from the student's last three check-ins
- Additive rule-based scoring with tiers R0-R3
- Self-harm indicator inference when the question was skipped

Endpoints:
- GET /health - Health check
- GET /ready - Readiness check
- POST /checkins - Submit and score a check-in
"""

from .config import RiskRules, CLASSIFIER_VERSION
from .history import HistoricalSignals, HistoricalContextBuilder, derive_signals
from .scorer import RiskAssessment, score_checkin, tier_for, NO_RISK_EXPLANATION
from .classifier import SelfHarmClassifier, KeywordSelfHarmClassifier
from .handler import CheckinHandler, CheckinResult, app

__all__ = [
    "RiskRules",
    "CLASSIFIER_VERSION",
    "HistoricalSignals",
    "HistoricalContextBuilder",
    "derive_signals",
    "RiskAssessment",
    "score_checkin",
    "tier_for",
    "NO_RISK_EXPLANATION",
    "SelfHarmClassifier",
    "KeywordSelfHarmClassifier",
    "CheckinHandler",
    "CheckinResult",
    "app",
]
