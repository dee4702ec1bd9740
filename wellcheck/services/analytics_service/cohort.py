"""Cohort snapshot for the current rolling week.

Below the k-anonymity floor the whole snapshot is withheld and every
numeric field is zeroed; there is no partially populated payload.

The top domain here is ranked by raw frequency (primary and secondary
domain both counted). The trend engine ranks by average intensity
instead; each payload names its ranking basis.
"""
import logging
from collections import Counter
from datetime import datetime
from typing import Any, Dict, List, Optional

from wellcheck.shared.database import CheckinStore
from wellcheck.shared.models import Domain, RiskClassification, RiskTier
from .config import AnalyticsConfig
from .k_anonymity import KAnonymityEnforcer
from .recommendations import (
    Audience,
    HIGH_DISTRESS_RECOMMENDATION,
    SUPPORT_ELIGIBLE_RECOMMENDATION,
    recommendation_for,
)
from .stats import build_period_stats
from .windows import CohortWindow, day_aligned_window

logger = logging.getLogger(__name__)

TOP_DOMAIN_RANKING = "submission_count"


def empty_tier_counts() -> Dict[str, int]:
    return {f"r{int(tier)}": 0 for tier in RiskTier}


def count_tiers(classifications: List[RiskClassification]) -> Dict[str, int]:
    """Count classifications per tier (per classification, not per user)."""
    counts = empty_tier_counts()
    for classification in classifications:
        counts[f"r{int(classification.tier)}"] += 1
    return counts


class CohortAggregator:
    """Computes the suppressed-or-populated cohort snapshot."""

    def __init__(
        self,
        store: CheckinStore,
        config: Optional[AnalyticsConfig] = None,
        k_enforcer: Optional[KAnonymityEnforcer] = None,
    ):
        """Initialize aggregator.

        Args:
            store: Check-in store to read from
            config: Shared analytics configuration
            k_enforcer: K-anonymity enforcer (injected for testing)
        """
        self.store = store
        self.config = config or AnalyticsConfig()
        self.k_enforcer = k_enforcer or KAnonymityEnforcer(
            k_threshold=self.config.k_anonymity_threshold
        )

    def aggregate(self, institution_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Compute the snapshot for the trailing window.

        Args:
            institution_id: Institution identifier
            now: Reference time (defaults to current UTC time)

        Returns:
            Snapshot payload, always carrying ``suppressed``

        Raises:
            StoreUnavailableError: If the store cannot be read
        """
        window = day_aligned_window(self.config.window_days, now)
        submissions = self.store.submissions_between(
            institution_id, window.start, window.end
        )
        stats = build_period_stats(submissions, self.config.high_intensity_threshold)

        result = self.k_enforcer.check_and_suppress(
            data=stats,
            group_size=stats.distinct_users,
            context=f"cohort_snapshot:{institution_id}",
        )
        if result.suppressed:
            logger.warning(
                "COHORT_SNAPSHOT_SUPPRESSED",
                extra={"institution_id": institution_id, "reason": result.suppression_reason}
            )
            return self._below_threshold(institution_id, window, result.suppression_reason)

        domain_counts: Counter = Counter()
        for submission in submissions:
            domain_counts[submission.primary_domain] += 1
            if submission.secondary_domain is not None:
                domain_counts[submission.secondary_domain] += 1

        top_domain = self._top_domain(domain_counts)
        top_domain_share = (
            domain_counts[top_domain] / len(submissions) if top_domain else 0.0
        )
        high_intensity_share = stats.high_intensity_users / stats.distinct_users

        classifications = self.store.classifications_between(
            institution_id, window.start, window.end
        )
        tier_counts = count_tiers(classifications)

        recommendations = self._recommendations(top_domain, high_intensity_share, tier_counts)

        logger.info(
            "COHORT_SNAPSHOT_RETRIEVED",
            extra={
                "institution_id": institution_id,
                "cohort_size": stats.distinct_users,
                "submission_count": len(submissions),
                "classification_count": len(classifications),
            }
        )

        return {
            "institution_id": institution_id,
            "suppressed": False,
            "below_threshold": False,
            "k_anonymity_threshold": self.k_enforcer.k_threshold,
            "cohort_size": stats.distinct_users,
            "submission_count": len(submissions),
            "top_domain": top_domain.value if top_domain else None,
            "top_domain_ranking": TOP_DOMAIN_RANKING,
            "top_domain_share": top_domain_share,
            "domain_counts": {d.value: n for d, n in domain_counts.items()},
            "avg_intensity": stats.avg_intensity,
            "high_intensity_share": high_intensity_share,
            "risk_tier_counts": tier_counts,
            "recommendations": recommendations,
            "week_start": window.start.date().isoformat(),
            "week_end": window.last_day.isoformat(),
            "is_rolling_window": True,
        }

    @staticmethod
    def _top_domain(domain_counts: Counter) -> Optional[Domain]:
        """Highest count wins; ties go to the earlier domain in enum order."""
        best: Optional[Domain] = None
        for domain in Domain:
            if domain_counts[domain] and (best is None or domain_counts[domain] > domain_counts[best]):
                best = domain
        return best

    def _recommendations(
        self,
        top_domain: Optional[Domain],
        high_intensity_share: float,
        tier_counts: Dict[str, int],
    ) -> List[str]:
        recommendations = []

        domain_text = recommendation_for(top_domain, Audience.COHORT)
        if domain_text:
            recommendations.append(domain_text)

        if high_intensity_share > self.config.high_distress_share:
            recommendations.append(
                HIGH_DISTRESS_RECOMMENDATION.format(share=self.config.high_distress_share)
            )

        support_eligible = tier_counts["r2"] + tier_counts["r3"]
        if support_eligible >= self.config.support_eligible_min:
            recommendations.append(
                SUPPORT_ELIGIBLE_RECOMMENDATION.format(count=support_eligible)
            )

        return recommendations

    def _below_threshold(
        self,
        institution_id: str,
        window: CohortWindow,
        reason: Optional[str],
    ) -> Dict[str, Any]:
        return {
            "institution_id": institution_id,
            "suppressed": True,
            "below_threshold": True,
            "message": reason,
            "k_anonymity_threshold": self.k_enforcer.k_threshold,
            "cohort_size": 0,
            "submission_count": 0,
            "top_domain": None,
            "top_domain_ranking": TOP_DOMAIN_RANKING,
            "top_domain_share": 0.0,
            "domain_counts": {},
            "avg_intensity": 0.0,
            "high_intensity_share": 0.0,
            "risk_tier_counts": empty_tier_counts(),
            "recommendations": [],
            "week_start": window.start.date().isoformat(),
            "week_end": window.last_day.isoformat(),
            "is_rolling_window": True,
        }
