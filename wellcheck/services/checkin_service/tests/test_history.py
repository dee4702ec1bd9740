"""Tests for historical context signals."""
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

from wellcheck.shared.database import InMemoryCheckinStore, StoreUnavailableError
from wellcheck.shared.models import Domain, Submission
from wellcheck.services.checkin_service.history import (
    HistoricalContextBuilder,
    HistoricalSignals,
    derive_signals,
)

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


def prior(domain=Domain.ACADEMIC, intensity=4, weeks_ago=1, user_id="user_1"):
    return Submission(
        user_id=user_id,
        institution_id="inst_1",
        week_number=10 - weeks_ago,
        academic_year=2025,
        primary_domain=domain,
        intensity=intensity,
        created_at=NOW - timedelta(weeks=weeks_ago),
    )


class TestDeriveSignals:
    """Tests for the pure signal derivation."""

    def test_no_history(self):
        signals = derive_signals([], Domain.ACADEMIC, 5)

        assert signals == HistoricalSignals()
        assert signals.last_intensity is None

    def test_last_intensity_is_most_recent(self):
        signals = derive_signals(
            [prior(intensity=2, weeks_ago=1), prior(intensity=5, weeks_ago=2)],
            Domain.ACADEMIC, 3,
        )

        assert signals.last_intensity == 2

    def test_same_domain_two_weeks_compares_priors_with_each_other(self):
        priors = [prior(domain=Domain.FINANCIAL, weeks_ago=1),
                  prior(domain=Domain.FINANCIAL, weeks_ago=2)]

        signals = derive_signals(priors, Domain.ACADEMIC, 3)

        assert signals.same_domain_last_two_weeks is True

    def test_same_domain_two_weeks_false_with_one_prior(self):
        signals = derive_signals([prior()], Domain.ACADEMIC, 3)

        assert signals.same_domain_last_two_weeks is False

    def test_same_domain_two_weeks_false_when_priors_differ(self):
        priors = [prior(domain=Domain.FINANCIAL, weeks_ago=1),
                  prior(domain=Domain.HEALTH, weeks_ago=2)]

        assert derive_signals(priors, Domain.ACADEMIC, 3).same_domain_last_two_weeks is False

    def test_sustained_requires_three_high_same_domain_priors(self):
        priors = [prior(weeks_ago=w) for w in (1, 2, 3)]

        signals = derive_signals(priors, Domain.ACADEMIC, 4)

        assert signals.same_domain_last_three_weeks_high_intensity is True

    def test_sustained_false_with_only_two_priors(self):
        priors = [prior(weeks_ago=w) for w in (1, 2)]

        signals = derive_signals(priors, Domain.ACADEMIC, 5)

        assert signals.same_domain_last_three_weeks_high_intensity is False

    def test_sustained_false_when_one_prior_below_four(self):
        priors = [prior(weeks_ago=1), prior(weeks_ago=2, intensity=3), prior(weeks_ago=3)]

        signals = derive_signals(priors, Domain.ACADEMIC, 5)

        assert signals.same_domain_last_three_weeks_high_intensity is False

    def test_sustained_false_when_prior_domain_differs(self):
        priors = [prior(weeks_ago=1), prior(weeks_ago=2, domain=Domain.HEALTH), prior(weeks_ago=3)]

        signals = derive_signals(priors, Domain.ACADEMIC, 5)

        assert signals.same_domain_last_three_weeks_high_intensity is False

    def test_sustained_false_when_current_domain_differs(self):
        priors = [prior(weeks_ago=w) for w in (1, 2, 3)]

        signals = derive_signals(priors, Domain.FUTURE, 5)

        assert signals.same_domain_last_three_weeks_high_intensity is False

    def test_sustained_false_when_current_intensity_low(self):
        priors = [prior(weeks_ago=w) for w in (1, 2, 3)]

        signals = derive_signals(priors, Domain.ACADEMIC, 3)

        assert signals.same_domain_last_three_weeks_high_intensity is False


class TestHistoricalContextBuilder:
    """Tests for store-backed history building."""

    def test_reads_three_most_recent(self):
        store = InMemoryCheckinStore()
        for weeks_ago in (1, 2, 3, 4):
            store.save_submission(prior(weeks_ago=weeks_ago, intensity=4))
        builder = HistoricalContextBuilder(store)

        signals = builder.build("user_1", Domain.ACADEMIC, 5)

        assert signals.last_intensity == 4
        assert signals.same_domain_last_three_weeks_high_intensity is True

    def test_other_users_ignored(self):
        store = InMemoryCheckinStore()
        store.save_submission(prior(user_id="user_2", intensity=1))
        builder = HistoricalContextBuilder(store)

        assert builder.build("user_1", Domain.ACADEMIC, 5) == HistoricalSignals()

    def test_backfill_ignores_newer_checkins(self):
        store = InMemoryCheckinStore()
        for weeks_ago in (1, 2, 3):
            store.save_submission(prior(weeks_ago=weeks_ago, intensity=5))
        store.save_submission(prior(weeks_ago=5, intensity=1))
        builder = HistoricalContextBuilder(store)

        signals = builder.build(
            "user_1", Domain.ACADEMIC, 5, before=NOW - timedelta(weeks=4)
        )

        assert signals.last_intensity == 1
        assert signals.same_domain_last_three_weeks_high_intensity is False

    def test_store_failure_degrades_to_empty_history(self):
        store = MagicMock()
        store.recent_submissions.side_effect = StoreUnavailableError("down")
        builder = HistoricalContextBuilder(store)

        signals = builder.build("user_1", Domain.ACADEMIC, 5)

        assert signals == HistoricalSignals()
