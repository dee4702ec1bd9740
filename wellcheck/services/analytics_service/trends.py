"""Trend engine: week-over-week metrics and academic-week series.

Rolling model: six metrics over the current and previous trailing
windows, each with its own k-anonymity decision. A metric is never
disclosed when the current window itself is below the floor, and
per-domain rows are withheld one by one below it.

Academic model: a week x domain series over the last N academic weeks,
anchored to the latest week present in the data rather than the clock.
"""
import logging
from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from wellcheck.shared.database import CheckinStore
from wellcheck.shared.models import Domain, RiskClassification, Submission
from .config import AnalyticsConfig
from .k_anonymity import AggregateResult, KAnonymityEnforcer
from .recommendations import Audience, recommendation_for
from .stats import (
    DomainStat,
    PeriodStats,
    build_period_stats,
    distinct_users,
    per_user_averages,
)
from .windows import AcademicWindow, WindowSelector, rolling_window

logger = logging.getLogger(__name__)

COMPARISON_MESSAGE = "Not enough data for comparison"
DOMAIN_RANKING_MESSAGE = "Insufficient data for domain ranking."
SUSTAINED_MESSAGE = "Insufficient trend data."
RECOMMENDATIONS_MESSAGE = "Insufficient data for recommendations."

TOP_DOMAIN_RANKING = "avg_intensity"


def highest_tier_per_user(classifications: List[RiskClassification]) -> Dict[str, int]:
    """Highest tier each user reached, so repeat submitters count once."""
    tiers: Dict[str, int] = {}
    for classification in classifications:
        tier = int(classification.tier)
        if tier > tiers.get(classification.user_id, -1):
            tiers[classification.user_id] = tier
    return tiers


class TrendEngine:
    """Computes suppressed-or-populated trend metrics."""

    def __init__(
        self,
        store: CheckinStore,
        config: Optional[AnalyticsConfig] = None,
        k_enforcer: Optional[KAnonymityEnforcer] = None,
    ):
        """Initialize engine.

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

    @property
    def k(self) -> int:
        return self.k_enforcer.k_threshold

    def compute(
        self,
        institution_id: str,
        selector: Optional[WindowSelector] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Dispatch on the window selector."""
        selector = selector or WindowSelector()
        if selector.is_rolling:
            return self.rolling_trends(institution_id, now=now)
        return self.academic_trends(institution_id, selector.weeks)

    # Rolling model

    def rolling_trends(self, institution_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Six independently suppressed metrics for the trailing window.

        Raises:
            StoreUnavailableError: If the store cannot be read
        """
        current_window = rolling_window(self.config.window_days, now)
        previous_window = current_window.previous()

        submissions = self.store.submissions_between(
            institution_id, previous_window.start, current_window.end
        )
        current = build_period_stats(
            [s for s in submissions if current_window.contains(s.created_at)],
            self.config.high_intensity_threshold,
        )
        previous = build_period_stats(
            [s for s in submissions if previous_window.contains(s.created_at)],
            self.config.high_intensity_threshold,
        )

        classifications = self.store.classifications_between(
            institution_id, current_window.start, current_window.end
        )

        distribution = self._domain_distribution(current)
        top_domain = self._top_domain(distribution, current)
        metrics = {
            "high_intensity": self._high_intensity(current),
            "week_over_week": self._week_over_week(current, previous),
            "top_domain": top_domain,
            "domain_distribution": distribution,
            "sustained_pressure": self._sustained_pressure(current, previous),
            "risk_tier_distribution": self._risk_tiers(classifications, current),
        }

        if top_domain.suppressed:
            recommendations = self.k_enforcer.suppress(
                reason=RECOMMENDATIONS_MESSAGE,
                context="trends:recommendations",
            )
        else:
            recommendations = AggregateResult(
                data={"text": recommendation_for(top_domain.data["stat"].domain, Audience.TRENDS)},
                group_size=top_domain.group_size,
                suppressed=False,
            )

        logger.info(
            "ROLLING_TRENDS_RETRIEVED",
            extra={
                "institution_id": institution_id,
                "current_users": current.distinct_users,
                "previous_users": previous.distinct_users,
                "suppressed_metrics": [
                    name for name, result in metrics.items() if result.suppressed
                ],
            }
        )

        return {
            "institution_id": institution_id,
            "window": {
                **current_window.to_dict("current_"),
                **previous_window.to_dict("previous_"),
                "k_threshold": self.k,
            },
            "metrics": {name: self._render(result) for name, result in metrics.items()},
            "recommendations": recommendations.to_dict(),
        }

    @staticmethod
    def _render(result: AggregateResult) -> Dict[str, Any]:
        if result.suppressed or "stat" not in (result.data or {}):
            return result.to_dict()
        stat: DomainStat = result.data["stat"]
        return {
            "suppressed": False,
            "domain": stat.domain.value,
            "distinct_users": stat.distinct_users,
            "avg_intensity": stat.avg_intensity,
            "ranking": TOP_DOMAIN_RANKING,
        }

    def _high_intensity(self, current: PeriodStats) -> AggregateResult:
        users = current.distinct_users
        return self.k_enforcer.check_and_suppress(
            data={
                "value_pct": current.high_intensity_users / users * 100 if users else 0.0,
                "flagged_users": current.high_intensity_users,
                "distinct_users": users,
            },
            group_size=users,
            context="trends:high_intensity",
        )

    def _week_over_week(self, current: PeriodStats, previous: PeriodStats) -> AggregateResult:
        group_size = min(current.distinct_users, previous.distinct_users)
        if group_size >= self.k and previous.avg_intensity <= 0:
            return self.k_enforcer.suppress(
                reason=COMPARISON_MESSAGE,
                group_size=group_size,
                context="trends:week_over_week:zero_baseline",
            )
        data = None
        if group_size >= self.k:
            data = {
                "change_pct": (
                    (current.avg_intensity - previous.avg_intensity)
                    / previous.avg_intensity * 100
                ),
                "current_avg": current.avg_intensity,
                "previous_avg": previous.avg_intensity,
            }
        return self.k_enforcer.check_and_suppress(
            data=data,
            group_size=group_size,
            context="trends:week_over_week",
            message=COMPARISON_MESSAGE,
        )

    def _domain_distribution(self, current: PeriodStats) -> AggregateResult:
        """Per-domain rows, each suppressed on its own contributing users."""
        if current.distinct_users < self.k:
            return self.k_enforcer.suppress(
                reason=self.k_enforcer.insufficient_users_message,
                group_size=current.distinct_users,
                context="trends:domain_distribution",
            )

        rows = []
        for stat in current.domain_stats:
            row = self.k_enforcer.check_and_suppress(
                data=stat.to_dict(),
                group_size=stat.distinct_users,
                context=f"trends:domain_distribution:{stat.domain.value}",
            )
            rows.append({"domain": stat.domain.value, **row.to_dict()})

        return AggregateResult(
            data={"domains": rows},
            group_size=current.distinct_users,
            suppressed=False,
        )

    def _top_domain(self, distribution: AggregateResult, current: PeriodStats) -> AggregateResult:
        """Highest average intensity among domains with at least k users."""
        eligible = [s for s in current.domain_stats if s.distinct_users >= self.k]
        if distribution.suppressed or not eligible:
            return self.k_enforcer.suppress(
                reason=DOMAIN_RANKING_MESSAGE,
                group_size=max((s.distinct_users for s in current.domain_stats), default=0),
                context="trends:top_domain",
            )
        # Stable sort keeps enum order among equal averages
        top = sorted(eligible, key=lambda s: s.avg_intensity, reverse=True)[0]
        return AggregateResult(
            data={"stat": top},
            group_size=top.distinct_users,
            suppressed=False,
        )

    def _sustained_pressure(self, current: PeriodStats, previous: PeriodStats) -> AggregateResult:
        """Domains with high average and k users in both windows."""
        group_size = min(current.distinct_users, previous.distinct_users)
        if group_size < self.k:
            if previous.distinct_users < self.k:
                logger.warning(
                    "SUSTAINED_PRESSURE_SUPPRESSED",
                    extra={"reason": "previous_period_below_k"}
                )
            return self.k_enforcer.suppress(
                reason=SUSTAINED_MESSAGE,
                group_size=group_size,
                context="trends:sustained_pressure",
            )

        threshold = self.config.high_intensity_threshold
        domains = []
        for stat in current.domain_stats:
            prior = previous.domain(stat.domain)
            if (
                stat.avg_intensity >= threshold
                and stat.distinct_users >= self.k
                and prior is not None
                and prior.avg_intensity >= threshold
                and prior.distinct_users >= self.k
            ):
                domains.append(stat.domain.value)

        return self.k_enforcer.check_and_suppress(
            data={"domains": domains},
            group_size=group_size,
            context="trends:sustained_pressure",
            message=SUSTAINED_MESSAGE,
        )

    def _risk_tiers(
        self,
        classifications: List[RiskClassification],
        current: PeriodStats,
    ) -> AggregateResult:
        user_tiers = highest_tier_per_user(classifications)
        risk_users = len(user_tiers)

        if risk_users >= self.k and risk_users != current.distinct_users:
            logger.warning(
                "RISK_TIER_USER_MISMATCH",
                extra={
                    "current_users": current.distinct_users,
                    "risk_distinct_users": risk_users,
                }
            )

        counts = {"r0": 0, "r1": 0, "r2": 0, "r3": 0}
        for tier in user_tiers.values():
            counts[f"r{tier}"] += 1

        return self.k_enforcer.check_and_suppress(
            data={"counts": counts, "distinct_users": risk_users},
            group_size=min(risk_users, current.distinct_users),
            context="trends:risk_tier_distribution",
        )

    # Academic-window model

    def academic_trends(self, institution_id: str, weeks: int) -> Dict[str, Any]:
        """Week x domain series over the last ``weeks`` academic weeks.

        Each cell is averaged per user first and suppressed on its own;
        the summary is withheld when the whole range is below k.

        Raises:
            StoreUnavailableError: If the store cannot be read
        """
        weeks = min(max(1, int(weeks)), self.config.max_trend_weeks)
        latest = self.store.latest_academic_week(institution_id)

        if latest is None:
            logger.info(
                "ACADEMIC_TRENDS_EMPTY",
                extra={"institution_id": institution_id, "weeks": weeks}
            )
            summary = self.k_enforcer.suppress(
                reason=self.k_enforcer.insufficient_users_message,
                context="trends:academic_summary:no_data",
            )
            return {
                "institution_id": institution_id,
                "suppressed": True,
                "message": summary.suppression_reason,
                "window": {"weeks": weeks, "academic_year": None,
                           "start_week": None, "end_week": None},
                "period": {"latest_week": None},
                "summary": summary.to_dict(),
                "trends": [],
            }

        academic_year, latest_week = latest
        window = AcademicWindow.ending_at(academic_year, latest_week, weeks)
        submissions = self.store.submissions_in_weeks(
            institution_id, window.academic_year, window.start_week, window.end_week
        )

        user_count = distinct_users(submissions)
        summary = self.k_enforcer.check_and_suppress(
            data={
                "user_count": user_count,
                "checkin_count": len(submissions),
            },
            group_size=user_count,
            context="trends:academic_summary",
        )

        cells = self._weekly_cells(submissions) if not summary.suppressed else []

        logger.info(
            "ACADEMIC_TRENDS_RETRIEVED",
            extra={
                "institution_id": institution_id,
                "start_week": window.start_week,
                "end_week": window.end_week,
                "cells": len(cells),
                "suppressed": summary.suppressed,
            }
        )

        payload = {
            "institution_id": institution_id,
            "suppressed": summary.suppressed,
            "window": {
                "weeks": window.weeks,
                "academic_year": window.academic_year,
                "start_week": window.start_week,
                "end_week": window.end_week,
            },
            "period": {"latest_week": latest_week},
            "summary": summary.to_dict(),
            "trends": cells,
        }
        if summary.suppressed:
            payload["message"] = summary.suppression_reason
        return payload

    def _weekly_cells(self, submissions: List[Submission]) -> List[Dict[str, Any]]:
        by_cell: Dict[Tuple[int, Domain], List[Submission]] = defaultdict(list)
        for submission in submissions:
            by_cell[(submission.week_number, submission.primary_domain)].append(submission)

        domain_order = {domain: index for index, domain in enumerate(Domain)}
        cells = []
        for (week, domain) in sorted(by_cell, key=lambda key: (key[0], domain_order[key[1]])):
            averages = per_user_averages(by_cell[(week, domain)])
            result = self.k_enforcer.check_and_suppress(
                data={
                    "avg_intensity": sum(averages.values()) / len(averages),
                    "distinct_users": len(averages),
                },
                group_size=len(averages),
                context=f"trends:academic_cell:{week}:{domain.value}",
            )
            cell = {"week_number": week, "domain": domain.value}
            cell.update(result.to_dict())
            cells.append(cell)
        return cells
