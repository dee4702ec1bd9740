"""Static domain-keyed recommendations for the staff dashboard.

One table serves both the cohort snapshot and the trend view. Each
audience keeps its own wording; keeping both in one place means a new
domain cannot be added to one view and forgotten in the other.
"""
from enum import Enum
from typing import Dict, Optional

from wellcheck.shared.models import Domain


class Audience(Enum):
    """Which aggregation view is asking."""
    COHORT = "cohort"
    TRENDS = "trends"


DOMAIN_RECOMMENDATIONS: Dict[Domain, Dict[Audience, str]] = {
    Domain.ACADEMIC: {
        Audience.COHORT: (
            "Consider offering study skills workshops or time management resources "
            "for students experiencing high academic pressure."
        ),
        Audience.TRENDS: (
            "Academic load is elevated. Consider study skills sessions and workload "
            "planning support."
        ),
    },
    Domain.FINANCIAL: {
        Audience.COHORT: (
            "Ensure students are aware of financial aid options, emergency funds, "
            "and budgeting support services."
        ),
        Audience.TRENDS: (
            "Financial pressure is rising. Ensure emergency funds and financial aid "
            "resources are visible."
        ),
    },
    Domain.BELONGING: {
        Audience.COHORT: (
            "Promote social connection opportunities such as peer support groups, "
            "student clubs, and community events."
        ),
        Audience.TRENDS: (
            "Belonging stress is elevated. Focus on inclusion initiatives and "
            "community-building activities."
        ),
    },
    Domain.ADMINISTRATIVE: {
        Audience.COHORT: (
            "Make visa, registration and residency guidance easy to find, and offer "
            "drop-in sessions with administrative staff."
        ),
        Audience.TRENDS: (
            "Administrative pressure is rising. Review processes and improve "
            "guidance and clarity."
        ),
    },
    Domain.WORKLIFE: {
        Audience.COHORT: (
            "Share time management resources and flexible scheduling options for "
            "students balancing study with work or long commutes."
        ),
        Audience.TRENDS: (
            "Work-life balance is strained. Promote time management support and "
            "flexible scheduling guidance."
        ),
    },
    Domain.HEALTH: {
        Audience.COHORT: (
            "Highlight health and wellness services including mental health support, "
            "exercise programs, and nutritional guidance."
        ),
        Audience.TRENDS: (
            "Health concerns are elevated. Highlight wellbeing services and "
            "preventative care programs."
        ),
    },
    Domain.FUTURE: {
        Audience.COHORT: (
            "Promote career advising, alumni mentoring and post-graduation planning "
            "sessions."
        ),
        Audience.TRENDS: (
            "Uncertainty about the future is elevated. Increase visibility of career "
            "services and planning support."
        ),
    },
}

HIGH_DISTRESS_RECOMMENDATION = (
    "Over {share:.0%} of the cohort is reporting high-intensity distress. Consider "
    "campus-wide wellness initiatives or stress reduction programs."
)

SUPPORT_ELIGIBLE_RECOMMENDATION = (
    "{count} students this week are eligible for enhanced support. Ensure support "
    "services are visible and accessible."
)

TRENDS_FALLBACK_RECOMMENDATION = (
    "Monitor cohort trends and ensure support services are accessible."
)


def recommendation_for(domain: Optional[Domain], audience: Audience) -> Optional[str]:
    """Domain-specific recommendation for an audience.

    The trends view always gets text (falling back to a generic line);
    the cohort view gets None when no entry exists.
    """
    entry = DOMAIN_RECOMMENDATIONS.get(domain) if domain else None
    text = entry.get(audience) if entry else None
    if text is None and audience == Audience.TRENDS:
        return TRENDS_FALLBACK_RECOMMENDATION
    return text
