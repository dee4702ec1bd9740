"""Tests for the cohort snapshot aggregator."""
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

from wellcheck.shared.database import InMemoryCheckinStore, StoreUnavailableError
from wellcheck.shared.models import (
    ConfidenceBand,
    Domain,
    RiskClassification,
    RiskTier,
    Submission,
)
from wellcheck.services.analytics_service.cohort import CohortAggregator
from wellcheck.services.analytics_service.config import AnalyticsConfig
from wellcheck.services.analytics_service.recommendations import (
    Audience,
    recommendation_for,
)

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def store():
    return InMemoryCheckinStore()


@pytest.fixture
def aggregator(store):
    return CohortAggregator(store, AnalyticsConfig())


def add_checkin(store, user_id, intensity=2, domain=Domain.ACADEMIC, secondary=None,
                days_ago=1, institution_id="inst_1", tier=None):
    submission = Submission(
        user_id=user_id,
        institution_id=institution_id,
        week_number=10,
        academic_year=2025,
        primary_domain=domain,
        secondary_domain=secondary,
        intensity=intensity,
        created_at=NOW - timedelta(days=days_ago),
    )
    store.save_submission(submission)
    if tier is not None:
        store.save_classification(RiskClassification(
            submission_id=submission.submission_id,
            user_id=user_id,
            institution_id=institution_id,
            score=0,
            tier=tier,
            trigger_codes=(),
            confidence_band=ConfidenceBand.MEDIUM,
            classifier_version="1.1",
            created_at=submission.created_at,
        ))
    return submission


class TestBelowThreshold:
    """Snapshots for fewer than k users are fully zeroed."""

    def test_nine_users_suppressed(self, store, aggregator):
        for i in range(9):
            add_checkin(store, f"user_{i}", intensity=5, tier=RiskTier.R3)

        result = aggregator.aggregate("inst_1", now=NOW)

        assert result["suppressed"] is True
        assert result["below_threshold"] is True
        assert result["message"] == "Insufficient data (minimum 10 distinct users required)"
        assert result["cohort_size"] == 0
        assert result["submission_count"] == 0
        assert result["top_domain"] is None
        assert result["top_domain_share"] == 0.0
        assert result["domain_counts"] == {}
        assert result["avg_intensity"] == 0.0
        assert result["high_intensity_share"] == 0.0
        assert result["risk_tier_counts"] == {"r0": 0, "r1": 0, "r2": 0, "r3": 0}
        assert result["recommendations"] == []

    def test_repeat_submissions_do_not_reach_k(self, store, aggregator):
        for _ in range(20):
            add_checkin(store, "user_0")

        assert aggregator.aggregate("inst_1", now=NOW)["suppressed"] is True

    def test_empty_institution(self, aggregator):
        result = aggregator.aggregate("inst_1", now=NOW)

        assert result["suppressed"] is True
        assert result["week_start"] == "2025-03-03"
        assert result["week_end"] == "2025-03-10"


class TestPopulatedSnapshot:
    """Snapshots for at least k users."""

    def test_top_domain_counts_primary_and_secondary(self, store, aggregator):
        for i in range(6):
            add_checkin(store, f"a_{i}", domain=Domain.ACADEMIC)
        for i in range(4):
            add_checkin(store, f"f_{i}", domain=Domain.FINANCIAL, secondary=Domain.HEALTH)
        for i in range(3):
            add_checkin(store, f"h_{i}", domain=Domain.HEALTH)

        result = aggregator.aggregate("inst_1", now=NOW)

        assert result["suppressed"] is False
        assert result["cohort_size"] == 13
        assert result["submission_count"] == 13
        assert result["domain_counts"] == {"academic": 6, "financial": 4, "health": 7}
        assert result["top_domain"] == "health"
        assert result["top_domain_ranking"] == "submission_count"
        assert result["top_domain_share"] == pytest.approx(7 / 13)

    def test_top_domain_tie_goes_to_enum_order(self, store, aggregator):
        for i in range(5):
            add_checkin(store, f"b_{i}", domain=Domain.BELONGING)
        for i in range(5):
            add_checkin(store, f"a_{i}", domain=Domain.ACADEMIC)

        assert aggregator.aggregate("inst_1", now=NOW)["top_domain"] == "academic"

    def test_averages_are_per_user(self, store, aggregator):
        for _ in range(5):
            add_checkin(store, "heavy", intensity=5)
        for i in range(9):
            add_checkin(store, f"user_{i}", intensity=1)

        result = aggregator.aggregate("inst_1", now=NOW)

        assert result["cohort_size"] == 10
        assert result["submission_count"] == 14
        assert result["avg_intensity"] == pytest.approx(1.4)
        assert result["high_intensity_share"] == pytest.approx(0.1)

    def test_risk_tiers_counted_per_classification(self, store, aggregator):
        for i in range(10):
            add_checkin(store, f"user_{i}", tier=RiskTier.R0)
        add_checkin(store, "user_0", tier=RiskTier.R2)
        add_checkin(store, "user_1", tier=RiskTier.R3)
        add_checkin(store, "user_1", tier=RiskTier.R3)

        result = aggregator.aggregate("inst_1", now=NOW)

        assert result["risk_tier_counts"] == {"r0": 10, "r1": 0, "r2": 1, "r3": 2}

    def test_window_excludes_old_and_foreign_checkins(self, store, aggregator):
        for i in range(10):
            add_checkin(store, f"user_{i}", intensity=2)
        add_checkin(store, "old", intensity=5, days_ago=9)
        add_checkin(store, "foreign", intensity=5, institution_id="inst_2")

        result = aggregator.aggregate("inst_1", now=NOW)

        assert result["cohort_size"] == 10
        assert result["avg_intensity"] == pytest.approx(2.0)

    def test_window_bounds(self, store, aggregator):
        for i in range(10):
            add_checkin(store, f"user_{i}")

        result = aggregator.aggregate("inst_1", now=NOW)

        assert result["week_start"] == "2025-03-03"
        assert result["week_end"] == "2025-03-10"
        assert result["is_rolling_window"] is True


class TestRecommendations:
    """Tests for snapshot recommendations."""

    def test_domain_recommendation_only(self, store, aggregator):
        for i in range(10):
            add_checkin(store, f"user_{i}", intensity=2, domain=Domain.FINANCIAL, tier=RiskTier.R0)

        result = aggregator.aggregate("inst_1", now=NOW)

        assert result["recommendations"] == [
            recommendation_for(Domain.FINANCIAL, Audience.COHORT)
        ]

    def test_high_distress_and_support_eligible(self, store, aggregator):
        for i in range(4):
            add_checkin(store, f"hi_{i}", intensity=5, tier=RiskTier.R2)
        for i in range(6):
            add_checkin(store, f"lo_{i}", intensity=1, tier=RiskTier.R0)

        recommendations = aggregator.aggregate("inst_1", now=NOW)["recommendations"]

        assert len(recommendations) == 3
        assert recommendations[0] == recommendation_for(Domain.ACADEMIC, Audience.COHORT)
        assert recommendations[1].startswith("Over 30% of the cohort")
        assert recommendations[2].startswith("4 students this week")

    def test_high_distress_at_exact_share_not_triggered(self, store, aggregator):
        for i in range(3):
            add_checkin(store, f"hi_{i}", intensity=5)
        for i in range(7):
            add_checkin(store, f"lo_{i}", intensity=1)

        recommendations = aggregator.aggregate("inst_1", now=NOW)["recommendations"]

        assert not any(r.startswith("Over") for r in recommendations)


class TestStoreErrors:
    """Read failures surface to the caller."""

    def test_store_unavailable_propagates(self):
        store = MagicMock()
        store.submissions_between.side_effect = StoreUnavailableError("down")
        aggregator = CohortAggregator(store)

        with pytest.raises(StoreUnavailableError):
            aggregator.aggregate("inst_1", now=NOW)
