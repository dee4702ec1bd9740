"""Analytics Service: Aggregate reporting with privacy protection.

Per ADR-006: Mandatory k-anonymity for dashboard reports.
Suppress any metric computed over fewer than k distinct users (k=10)
so that no individual student can be singled out from an aggregate.

This service provides:
- Current-week cohort snapshot with tier counts and recommendations
- Rolling week-over-week trend metrics, each suppressed independently
- Academic-week series anchored to the latest week in the data

Endpoints:
- GET /health - Health check
- GET /ready - Readiness check
- GET /cohort-aggregates - Cohort snapshot
- GET /trends - Trend metrics (?weeks=N for the academic series)
"""

from .config import AnalyticsConfig, K_ANONYMITY_THRESHOLD
from .k_anonymity import (
    KAnonymityEnforcer,
    AggregateResult,
)
from .windows import CohortWindow, AcademicWindow, WindowSelector
from .stats import DomainStat, PeriodStats, build_period_stats
from .recommendations import Audience, recommendation_for
from .cohort import CohortAggregator
from .trends import TrendEngine
from .handler import AnalyticsHandler, app

__all__ = [
    "AnalyticsConfig",
    "K_ANONYMITY_THRESHOLD",
    "KAnonymityEnforcer",
    "AggregateResult",
    "CohortWindow",
    "AcademicWindow",
    "WindowSelector",
    "DomainStat",
    "PeriodStats",
    "build_period_stats",
    "Audience",
    "recommendation_for",
    "CohortAggregator",
    "TrendEngine",
    "AnalyticsHandler",
    "app",
]
