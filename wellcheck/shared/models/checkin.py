"""Check-in and risk classification domain models.

This file defines the core enums and data structures shared by the
check-in service (scoring) and the analytics service (aggregation).
Following ADR-001: Deterministic rules with explicit risk tiers.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Optional, Tuple
import uuid


def utc_now() -> datetime:
    """Timezone-aware current time used for every stored timestamp."""
    return datetime.now(timezone.utc)


class Domain(Enum):
    """The seven fixed pressure domains a check-in can be tagged with."""
    ACADEMIC = "academic"               # Coursework, deadlines, exams
    FINANCIAL = "financial"             # Tuition, cost of living
    BELONGING = "belonging"             # Friendships, community, homesickness
    ADMINISTRATIVE = "administrative"   # Visa, registrations, paperwork
    WORKLIFE = "worklife"               # Part-time work, commutes
    HEALTH = "health"                   # Sleep, exercise, energy
    FUTURE = "future"                   # Career uncertainty, next steps


class SelfHarmIndicator(Enum):
    """Three-valued self-harm signal, supplied by the student or inferred."""
    NONE = "none"
    SOMETIMES = "sometimes"
    OFTEN = "often"


class RiskTier(IntEnum):
    """Ordinal risk tiers for a single check-in."""
    R0 = 0      # Normal distress
    R1 = 1      # Elevated: vulnerability signals
    R2 = 2      # Support-eligible: passive ideation
    R3 = 3      # Priority: active intent indicators


class TriggerCode(Enum):
    """Enumerated reasons a risk rule fired. Never free text."""
    SELF_HARM_SOMETIMES = "self_harm_sometimes"
    SELF_HARM_OFTEN = "self_harm_often"
    HIGH_INTENSITY = "high_intensity"
    INTENSITY_SPIKE = "intensity_spike"
    REPEATED_DOMAIN_SPIKE = "repeated_domain_spike"


class ConfidenceBand(Enum):
    """How much weight a classification carries for review."""
    HIGH = "high"       # Explicit self-harm signal present
    MEDIUM = "medium"   # Intensity and history signals only


MIN_INTENSITY = 1
MAX_INTENSITY = 5


@dataclass(frozen=True)
class Submission:
    """A single weekly check-in.

    Immutable once written. Stored in the weekly_checkin_responses table.
    """
    user_id: str
    institution_id: str
    week_number: int
    academic_year: int
    primary_domain: Domain
    intensity: int
    reflection: str = ""
    secondary_domain: Optional[Domain] = None
    self_harm_indicator: SelfHarmIndicator = SelfHarmIndicator.NONE
    submission_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        if not MIN_INTENSITY <= self.intensity <= MAX_INTENSITY:
            raise ValueError(
                f"Intensity must be {MIN_INTENSITY}-{MAX_INTENSITY}, got {self.intensity}"
            )
        if self.week_number < 1:
            raise ValueError(f"Week number must be positive, got {self.week_number}")


@dataclass(frozen=True)
class RiskClassification:
    """Persisted outcome of scoring one submission.

    Stored in the risk_classifications table, separately from the
    submission itself. Aggregations read tiers from here only.
    """
    submission_id: str
    user_id: str
    institution_id: str
    score: int
    tier: RiskTier
    trigger_codes: Tuple[TriggerCode, ...]
    confidence_band: ConfidenceBand
    classifier_version: str
    classification_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        if self.score < 0:
            raise ValueError(f"Risk score must be non-negative, got {self.score}")
