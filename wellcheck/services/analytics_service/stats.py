"""Per-user-first statistics over a set of check-ins.

Intensity is averaged per user before it is combined into a cohort or
domain mean, so a user who submits five times carries the same weight
as a user who submits once.
"""
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from wellcheck.shared.models import Domain, Submission


@dataclass(frozen=True)
class DomainStat:
    """Per-domain statistics, averaged per user first."""
    domain: Domain
    avg_intensity: float
    distinct_users: int
    high_intensity_users: int

    @property
    def high_intensity_pct(self) -> float:
        if self.distinct_users == 0:
            return 0.0
        return self.high_intensity_users / self.distinct_users * 100

    def to_dict(self) -> Dict[str, object]:
        return {
            "domain": self.domain.value,
            "avg_intensity": self.avg_intensity,
            "distinct_users": self.distinct_users,
            "high_intensity_pct": self.high_intensity_pct,
        }


@dataclass(frozen=True)
class PeriodStats:
    """Cohort-level statistics for one window."""
    distinct_users: int
    avg_intensity: float
    high_intensity_users: int
    domain_stats: Tuple[DomainStat, ...]

    def domain(self, domain: Domain) -> Optional[DomainStat]:
        for stat in self.domain_stats:
            if stat.domain == domain:
                return stat
        return None


def _mean(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def per_user_averages(submissions: Iterable[Submission]) -> Dict[str, float]:
    """Average intensity per user."""
    by_user: Dict[str, List[int]] = defaultdict(list)
    for submission in submissions:
        by_user[submission.user_id].append(submission.intensity)
    return {user_id: _mean(values) for user_id, values in by_user.items()}


def build_period_stats(
    submissions: Iterable[Submission],
    high_intensity_threshold: int = 4,
) -> PeriodStats:
    """Aggregate a window's check-ins, per user first then per domain.

    Domain statistics use the primary domain only.
    """
    submissions = list(submissions)
    user_averages = per_user_averages(submissions)

    by_user_domain: Dict[Tuple[str, Domain], List[int]] = defaultdict(list)
    for submission in submissions:
        by_user_domain[(submission.user_id, submission.primary_domain)].append(
            submission.intensity
        )

    domain_user_averages: Dict[Domain, List[float]] = defaultdict(list)
    for (_, domain), values in by_user_domain.items():
        domain_user_averages[domain].append(_mean(values))

    # Enum order keeps output deterministic
    domain_stats = []
    for domain in Domain:
        averages = domain_user_averages.get(domain)
        if not averages:
            continue
        domain_stats.append(DomainStat(
            domain=domain,
            avg_intensity=_mean(averages),
            distinct_users=len(averages),
            high_intensity_users=sum(
                1 for avg in averages if avg >= high_intensity_threshold
            ),
        ))

    return PeriodStats(
        distinct_users=len(user_averages),
        avg_intensity=_mean(list(user_averages.values())),
        high_intensity_users=sum(
            1 for avg in user_averages.values() if avg >= high_intensity_threshold
        ),
        domain_stats=tuple(domain_stats),
    )


def distinct_users(submissions: Iterable[Submission]) -> int:
    return len({submission.user_id for submission in submissions})
