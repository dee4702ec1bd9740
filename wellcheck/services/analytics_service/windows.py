"""Time windows for cohort aggregation.

Two temporal models coexist:
- Rolling: anchored to "now" (trailing N days, and the N days before)
- Academic: anchored to the latest academic week present in the data
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Dict, Optional, Union

from wellcheck.shared.models import utc_now


@dataclass(frozen=True)
class CohortWindow:
    """Half-open time range ``start <= t < end``."""
    start: datetime
    end: datetime

    def contains(self, timestamp: datetime) -> bool:
        return self.start <= timestamp < self.end

    @property
    def last_day(self) -> date:
        """Calendar date of the last instant inside the window."""
        return (self.end - timedelta(microseconds=1)).date()

    def to_dict(self, prefix: str = "") -> Dict[str, str]:
        return {
            f"{prefix}start": self.start.isoformat(),
            f"{prefix}end": self.end.isoformat(),
        }

    def previous(self) -> "CohortWindow":
        """The window of equal length immediately before this one."""
        length = self.end - self.start
        return CohortWindow(start=self.start - length, end=self.start)


def rolling_window(days: int = 7, now: Optional[datetime] = None) -> CohortWindow:
    """Trailing window ending at ``now``."""
    now = now or utc_now()
    return CohortWindow(start=now - timedelta(days=days), end=now)


def day_aligned_window(days: int = 7, now: Optional[datetime] = None) -> CohortWindow:
    """Midnight ``days`` ago through the end of today."""
    now = now or utc_now()
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return CohortWindow(
        start=midnight - timedelta(days=days),
        end=midnight + timedelta(days=1),
    )


@dataclass(frozen=True)
class AcademicWindow:
    """Inclusive academic week range within one academic year."""
    academic_year: int
    start_week: int
    end_week: int
    weeks: int

    @classmethod
    def ending_at(cls, academic_year: int, latest_week: int, weeks: int) -> "AcademicWindow":
        """Span ``[latest_week - weeks + 1, latest_week]``, floored at week 1."""
        weeks = max(1, int(weeks))
        return cls(
            academic_year=academic_year,
            start_week=max(1, latest_week - weeks + 1),
            end_week=latest_week,
            weeks=weeks,
        )


@dataclass(frozen=True)
class WindowSelector:
    """Either the rolling model (weeks is None) or an N-week academic window."""
    weeks: Optional[int] = None

    def __post_init__(self):
        if self.weeks is not None and self.weeks < 1:
            raise ValueError(f"weeks must be a positive integer, got {self.weeks}")

    @property
    def is_rolling(self) -> bool:
        return self.weeks is None

    @classmethod
    def parse(cls, value: Union[str, int, Dict[str, Any], None]) -> "WindowSelector":
        """Accept ``None``, ``"rolling"``, a week count, or ``{"weeks": N}``.

        Week counts may arrive as query-string text.

        Raises:
            ValueError: If the value is neither rolling nor a positive integer
        """
        if value is None or value == "rolling":
            return cls()
        weeks = value.get("weeks") if isinstance(value, dict) else value
        try:
            weeks = int(weeks)
        except (TypeError, ValueError):
            raise ValueError(f"weeks must be a positive integer, got {value!r}") from None
        return cls(weeks=weeks)
