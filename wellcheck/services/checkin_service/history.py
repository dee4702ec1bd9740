"""Historical context for risk scoring.

Derives the three history signals from at most three prior check-ins.
Missing history is never an error: each signal degrades to its
"absent" default.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from wellcheck.shared.database import CheckinStore, RepositoryError
from wellcheck.shared.models import Domain, Submission
from .config import RiskRules

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistoricalSignals:
    """Signals derived from a user's prior check-ins."""
    last_intensity: Optional[int] = None
    same_domain_last_two_weeks: bool = False
    same_domain_last_three_weeks_high_intensity: bool = False


def derive_signals(
    priors: List[Submission],
    domain: Domain,
    intensity: int,
    rules: RiskRules = RiskRules(),
) -> HistoricalSignals:
    """Compute history signals from prior submissions (newest first).

    Args:
        priors: Up to ``rules.sustained_prior_count`` prior submissions
        domain: Primary domain of the current submission
        intensity: Intensity of the current submission
        rules: Rule thresholds

    Returns:
        HistoricalSignals
    """
    last_intensity = priors[0].intensity if priors else None

    same_domain_two = (
        len(priors) >= 2
        and priors[0].primary_domain == priors[1].primary_domain
    )

    needed = rules.sustained_prior_count
    window = priors[:needed]
    sustained = (
        len(window) == needed
        and all(p.primary_domain == domain for p in window)
        and all(p.intensity >= rules.high_intensity_min for p in window)
        and intensity >= rules.high_intensity_min
    )

    return HistoricalSignals(
        last_intensity=last_intensity,
        same_domain_last_two_weeks=same_domain_two,
        same_domain_last_three_weeks_high_intensity=sustained,
    )


class HistoricalContextBuilder:
    """Reads a user's recent check-ins and derives scoring signals."""

    def __init__(self, store: CheckinStore, rules: Optional[RiskRules] = None):
        self.store = store
        self.rules = rules or RiskRules()

    def build(
        self,
        user_id: str,
        domain: Domain,
        intensity: int,
        before: Optional[datetime] = None,
    ) -> HistoricalSignals:
        """Build signals for a new submission that is not yet persisted.

        Only check-ins created strictly before ``before`` count as priors,
        so a backfilled submission is never scored against newer ones.

        A store failure degrades to empty history so that scoring never
        blocks the submission write.
        """
        try:
            priors = self.store.recent_submissions(
                user_id, limit=self.rules.sustained_prior_count, before=before
            )
        except RepositoryError as e:
            logger.warning(
                "HISTORY_READ_FAILED",
                extra={"error": str(e), "action": "SCORING_WITHOUT_HISTORY"}
            )
            priors = []

        return derive_signals(priors, domain, intensity, self.rules)
