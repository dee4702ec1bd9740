"""Tests for aggregation windows and recommendations."""
import pytest
from datetime import date, datetime, timedelta, timezone

from wellcheck.shared.models import Domain
from wellcheck.services.analytics_service.recommendations import (
    Audience,
    DOMAIN_RECOMMENDATIONS,
    TRENDS_FALLBACK_RECOMMENDATION,
    recommendation_for,
)
from wellcheck.services.analytics_service.windows import (
    AcademicWindow,
    CohortWindow,
    WindowSelector,
    day_aligned_window,
    rolling_window,
)

NOW = datetime(2025, 3, 10, 15, 30, tzinfo=timezone.utc)


class TestRollingWindow:
    """Tests for the trailing window model."""

    def test_trailing_seven_days(self):
        window = rolling_window(7, NOW)

        assert window.start == NOW - timedelta(days=7)
        assert window.end == NOW

    def test_previous_is_adjacent(self):
        window = rolling_window(7, NOW)
        previous = window.previous()

        assert previous.end == window.start
        assert previous.start == NOW - timedelta(days=14)

    def test_half_open(self):
        window = CohortWindow(start=NOW - timedelta(days=1), end=NOW)

        assert window.contains(NOW - timedelta(days=1))
        assert not window.contains(NOW)

    def test_to_dict_prefix(self):
        window = rolling_window(7, NOW)

        assert window.to_dict("current_") == {
            "current_start": (NOW - timedelta(days=7)).isoformat(),
            "current_end": NOW.isoformat(),
        }


class TestDayAlignedWindow:
    """Tests for the cohort snapshot window."""

    def test_midnight_to_end_of_today(self):
        window = day_aligned_window(7, NOW)

        assert window.start == datetime(2025, 3, 3, tzinfo=timezone.utc)
        assert window.end == datetime(2025, 3, 11, tzinfo=timezone.utc)
        assert window.last_day == date(2025, 3, 10)


class TestAcademicWindow:
    """Tests for the academic-week window."""

    def test_spans_last_n_weeks(self):
        window = AcademicWindow.ending_at(2025, 14, 4)

        assert (window.start_week, window.end_week) == (11, 14)

    def test_floored_at_week_one(self):
        window = AcademicWindow.ending_at(2025, 3, 12)

        assert window.start_week == 1
        assert window.end_week == 3
        assert window.weeks == 12


class TestWindowSelector:
    """Tests for selector parsing."""

    @pytest.mark.parametrize("value", [None, "rolling"])
    def test_rolling(self, value):
        assert WindowSelector.parse(value).is_rolling

    @pytest.mark.parametrize("value, weeks", [("4", 4), (4, 4), ({"weeks": "6"}, 6)])
    def test_weeks(self, value, weeks):
        selector = WindowSelector.parse(value)

        assert not selector.is_rolling
        assert selector.weeks == weeks

    @pytest.mark.parametrize("value", [{"weeks": 0}, {"weeks": -2}, "monthly", "0", {}])
    def test_invalid(self, value):
        with pytest.raises(ValueError, match="weeks must be a positive integer"):
            WindowSelector.parse(value)


class TestRecommendations:
    """Tests for the shared recommendation table."""

    def test_every_domain_has_both_audiences(self):
        for domain in Domain:
            assert set(DOMAIN_RECOMMENDATIONS[domain]) == set(Audience)

    def test_wording_differs_per_audience(self):
        assert recommendation_for(Domain.ACADEMIC, Audience.COHORT) != recommendation_for(
            Domain.ACADEMIC, Audience.TRENDS
        )

    def test_missing_domain(self):
        assert recommendation_for(None, Audience.COHORT) is None
        assert recommendation_for(None, Audience.TRENDS) == TRENDS_FALLBACK_RECOMMENDATION
