"""Tests for per-user-first aggregation statistics."""
import pytest
from datetime import datetime, timezone

from wellcheck.shared.models import Domain, Submission
from wellcheck.services.analytics_service.stats import (
    build_period_stats,
    distinct_users,
    per_user_averages,
)

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


def checkin(user_id, intensity, domain=Domain.ACADEMIC, secondary=None):
    return Submission(
        user_id=user_id,
        institution_id="inst_1",
        week_number=10,
        academic_year=2025,
        primary_domain=domain,
        secondary_domain=secondary,
        intensity=intensity,
        created_at=NOW,
    )


class TestPerUserAveraging:
    """A repeat submitter never outweighs a single submitter."""

    def test_heavy_submitter_counts_once(self):
        submissions = [checkin("heavy", 5) for _ in range(5)]
        submissions += [checkin(f"user_{i}", 1) for i in range(9)]

        stats = build_period_stats(submissions)

        assert stats.distinct_users == 10
        assert stats.avg_intensity == pytest.approx(1.4)
        assert stats.domain(Domain.ACADEMIC).avg_intensity == pytest.approx(1.4)
        assert stats.high_intensity_users == 1

    def test_per_user_averages(self):
        averages = per_user_averages([checkin("a", 2), checkin("a", 4), checkin("b", 5)])

        assert averages == {"a": 3.0, "b": 5.0}

    def test_high_intensity_uses_user_average(self):
        stats = build_period_stats([checkin("a", 5), checkin("a", 2)])

        # 3.5 average is below the threshold of 4
        assert stats.high_intensity_users == 0


class TestDomainStats:
    """Tests for per-domain statistics."""

    def test_domains_in_enum_order(self):
        stats = build_period_stats([
            checkin("a", 3, Domain.FUTURE),
            checkin("b", 3, Domain.ACADEMIC),
            checkin("c", 3, Domain.HEALTH),
        ])

        assert [s.domain for s in stats.domain_stats] == [
            Domain.ACADEMIC, Domain.HEALTH, Domain.FUTURE
        ]

    def test_secondary_domain_ignored(self):
        stats = build_period_stats([checkin("a", 4, Domain.ACADEMIC, Domain.FINANCIAL)])

        assert stats.domain(Domain.FINANCIAL) is None

    def test_user_in_two_domains(self):
        stats = build_period_stats([
            checkin("a", 5, Domain.ACADEMIC),
            checkin("a", 1, Domain.HEALTH),
            checkin("b", 3, Domain.ACADEMIC),
        ])

        academic = stats.domain(Domain.ACADEMIC)
        assert academic.distinct_users == 2
        assert academic.avg_intensity == pytest.approx(4.0)
        assert academic.high_intensity_pct == pytest.approx(50.0)
        assert stats.domain(Domain.HEALTH).distinct_users == 1
        assert stats.distinct_users == 2

    def test_to_dict(self):
        stat = build_period_stats([checkin("a", 4)]).domain(Domain.ACADEMIC)

        assert stat.to_dict() == {
            "domain": "academic",
            "avg_intensity": 4.0,
            "distinct_users": 1,
            "high_intensity_pct": 100.0,
        }


class TestEmptyInput:
    """Empty windows produce zeroed statistics."""

    def test_empty(self):
        stats = build_period_stats([])

        assert stats.distinct_users == 0
        assert stats.avg_intensity == 0.0
        assert stats.domain_stats == ()
        assert distinct_users([]) == 0
