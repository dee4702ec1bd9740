"""Check-in store capability.

Scoring and aggregation code depends only on this minimal contract:
filter by institution, user and time range, then select. Two
implementations exist: the in-memory store below (tests, local runs)
and the PostgreSQL store in checkin_repository.py.
"""
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Tuple

from wellcheck.shared.models import RiskClassification, Submission

logger = logging.getLogger(__name__)


class CheckinStore(ABC):
    """Read/write capability over submissions and classifications.

    All time ranges are half-open: ``start <= created_at < end``.
    """

    @abstractmethod
    def recent_submissions(
        self,
        user_id: str,
        limit: int,
        before: Optional[datetime] = None,
    ) -> List[Submission]:
        """Most recent submissions for a user, newest first.

        With ``before``, only submissions created strictly earlier.
        """

    @abstractmethod
    def submissions_between(
        self,
        institution_id: str,
        start: datetime,
        end: datetime,
    ) -> List[Submission]:
        """Submissions for an institution created within the range."""

    @abstractmethod
    def classifications_between(
        self,
        institution_id: str,
        start: datetime,
        end: datetime,
    ) -> List[RiskClassification]:
        """Classifications for an institution created within the range."""

    @abstractmethod
    def latest_academic_week(self, institution_id: str) -> Optional[Tuple[int, int]]:
        """Latest (academic_year, week_number) present, or None if no data."""

    @abstractmethod
    def submissions_in_weeks(
        self,
        institution_id: str,
        academic_year: int,
        start_week: int,
        end_week: int,
    ) -> List[Submission]:
        """Submissions in an academic year with start_week <= week <= end_week."""

    @abstractmethod
    def save_submission(self, submission: Submission) -> Submission:
        """Persist one submission."""

    @abstractmethod
    def save_classification(self, classification: RiskClassification) -> RiskClassification:
        """Persist one classification."""


class InMemoryCheckinStore(CheckinStore):
    """Process-local store implementing the same contract as PostgreSQL.

    Used by tests and for running the services without a database.
    """

    def __init__(self):
        self._submissions: List[Submission] = []
        self._classifications: List[RiskClassification] = []
        self._lock = threading.Lock()

    def recent_submissions(self, user_id, limit, before=None):
        with self._lock:
            matches = [
                s for s in self._submissions
                if s.user_id == user_id and (before is None or s.created_at < before)
            ]
        matches.sort(key=lambda s: s.created_at, reverse=True)
        return matches[:limit]

    def submissions_between(self, institution_id, start, end):
        with self._lock:
            return [
                s for s in self._submissions
                if s.institution_id == institution_id and start <= s.created_at < end
            ]

    def classifications_between(self, institution_id, start, end):
        with self._lock:
            return [
                c for c in self._classifications
                if c.institution_id == institution_id and start <= c.created_at < end
            ]

    def latest_academic_week(self, institution_id):
        with self._lock:
            weeks = [
                (s.academic_year, s.week_number) for s in self._submissions
                if s.institution_id == institution_id
            ]
        return max(weeks) if weeks else None

    def submissions_in_weeks(self, institution_id, academic_year, start_week, end_week):
        with self._lock:
            return [
                s for s in self._submissions
                if s.institution_id == institution_id
                and s.academic_year == academic_year
                and start_week <= s.week_number <= end_week
            ]

    def save_submission(self, submission: Submission) -> Submission:
        with self._lock:
            self._submissions.append(submission)
        logger.debug(
            "SUBMISSION_STORED",
            extra={"submission_id": submission.submission_id}
        )
        return submission

    def save_classification(self, classification: RiskClassification) -> RiskClassification:
        with self._lock:
            self._classifications.append(classification)
        logger.debug(
            "CLASSIFICATION_STORED",
            extra={"classification_id": classification.classification_id}
        )
        return classification
