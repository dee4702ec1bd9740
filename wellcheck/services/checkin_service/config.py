"""Check-in Service scoring rules and keyword lists.

Rules are fixed, additive and hand-authored. Any change to a weight or
threshold must bump CLASSIFIER_VERSION so stored classifications stay
attributable to the rule set that produced them.
"""
from dataclasses import dataclass
from typing import FrozenSet

CLASSIFIER_VERSION = "1.1"


@dataclass(frozen=True)
class RiskRules:
    """Rule weights and tier thresholds for the risk scorer."""

    # Score deltas
    self_harm_sometimes_points: int = 5
    self_harm_often_points: int = 8
    high_intensity_points: int = 2
    intensity_spike_points: int = 2
    repeated_domain_points: int = 3

    # Signal thresholds
    high_intensity_min: int = 4         # Intensity counted as "high"
    spike_min_increase: int = 2         # current - last >= this is a spike
    sustained_prior_count: int = 3      # Priors needed for the sustained rule

    # Tier thresholds (checked highest first)
    tier3_min_score: int = 10
    tier2_min_score: int = 7
    tier1_min_score: int = 4


# Used only when the student did not answer the self-harm question.
# Phrases indicating active intent map to "often".
HIGH_SIGNAL_PHRASES: FrozenSet[str] = frozenset({
    "suicidal",
    "suicide",
    "kill myself",
    "end my life",
    "end it",
    "self-harm",
})

# Phrases indicating self-harm without stated intent map to "sometimes".
MEDIUM_SIGNAL_PHRASES: FrozenSet[str] = frozenset({
    "self harm",
    "hurt myself",
    "harm myself",
})
