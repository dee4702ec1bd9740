"""Deterministic risk scorer.

Every rule is independently triggerable and additive; the tier is a
monotonic function of the score and the self-harm indicator. The scorer
is total: no combination of inputs raises.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

from wellcheck.shared.models import (
    Domain,
    RiskTier,
    SelfHarmIndicator,
    TriggerCode,
)
from .config import RiskRules
from .history import HistoricalSignals

logger = logging.getLogger(__name__)

NO_RISK_EXPLANATION = "No risk factors detected."


@dataclass(frozen=True)
class RiskAssessment:
    """Explainable result of scoring one check-in."""
    score: int
    tier: RiskTier
    trigger_codes: Tuple[TriggerCode, ...]
    explanation: str

    @property
    def high_risk(self) -> bool:
        """Binary signal kept for consumers that predate tiers."""
        return self.tier >= RiskTier.R2

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "tier": int(self.tier),
            "high_risk": self.high_risk,
            "trigger_codes": [code.value for code in self.trigger_codes],
            "explanation": self.explanation,
        }


def coerce_indicator(value: Union[SelfHarmIndicator, str, None]) -> SelfHarmIndicator:
    """Map any input to an indicator, treating unknown values as NONE."""
    if isinstance(value, SelfHarmIndicator):
        return value
    try:
        return SelfHarmIndicator(str(value).lower())
    except ValueError:
        logger.warning(
            "UNKNOWN_SELF_HARM_INDICATOR",
            extra={"value_type": type(value).__name__, "action": "TREATED_AS_NONE"}
        )
        return SelfHarmIndicator.NONE


def tier_for(
    score: int,
    indicator: SelfHarmIndicator,
    rules: RiskRules = RiskRules(),
) -> RiskTier:
    """Map a score and indicator to a tier. First match wins."""
    if score >= rules.tier3_min_score or indicator == SelfHarmIndicator.OFTEN:
        return RiskTier.R3
    if score >= rules.tier2_min_score or indicator == SelfHarmIndicator.SOMETIMES:
        return RiskTier.R2
    if score >= rules.tier1_min_score:
        return RiskTier.R1
    return RiskTier.R0


def score_checkin(
    intensity: int,
    self_harm_indicator: Union[SelfHarmIndicator, str, None],
    history: Optional[HistoricalSignals] = None,
    domain: Optional[Domain] = None,
    rules: RiskRules = RiskRules(),
) -> RiskAssessment:
    """Score a check-in against the rule table.

    Args:
        intensity: Current intensity (1-5)
        self_harm_indicator: Supplied or inferred indicator
        history: Signals from prior check-ins (empty history if None)
        domain: Primary domain, used in the explanation only
        rules: Rule weights and thresholds

    Returns:
        RiskAssessment with score, tier, ordered trigger codes and
        a human-readable explanation
    """
    history = history or HistoricalSignals()
    indicator = coerce_indicator(self_harm_indicator)

    score = 0
    codes: List[TriggerCode] = []
    clauses: List[str] = []

    if indicator == SelfHarmIndicator.SOMETIMES:
        score += rules.self_harm_sometimes_points
        codes.append(TriggerCode.SELF_HARM_SOMETIMES)
        clauses.append(f"Self-harm sometimes reported (+{rules.self_harm_sometimes_points})")
    elif indicator == SelfHarmIndicator.OFTEN:
        score += rules.self_harm_often_points
        codes.append(TriggerCode.SELF_HARM_OFTEN)
        clauses.append(f"Self-harm often reported (+{rules.self_harm_often_points})")

    if intensity >= rules.high_intensity_min:
        score += rules.high_intensity_points
        codes.append(TriggerCode.HIGH_INTENSITY)
        clauses.append(f"High intensity ({intensity}/5) (+{rules.high_intensity_points})")

    last = history.last_intensity
    if last is not None and intensity - last >= rules.spike_min_increase:
        score += rules.intensity_spike_points
        codes.append(TriggerCode.INTENSITY_SPIKE)
        clauses.append(
            f"Intensity spike: {last} -> {intensity} (+{rules.intensity_spike_points})"
        )

    if history.same_domain_last_three_weeks_high_intensity:
        score += rules.repeated_domain_points
        codes.append(TriggerCode.REPEATED_DOMAIN_SPIKE)
        domain_label = domain.value if domain else "unknown"
        clauses.append(
            f"Same domain {domain_label} high intensity 3 weeks (+{rules.repeated_domain_points})"
        )

    return RiskAssessment(
        score=score,
        tier=tier_for(score, indicator, rules),
        trigger_codes=tuple(codes),
        explanation="; ".join(clauses) if clauses else NO_RISK_EXPLANATION,
    )
