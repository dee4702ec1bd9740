"""PostgreSQL-backed check-in store.

Tables:
- weekly_checkin_responses: one row per submission (immutable)
- risk_classifications: one row per scored submission (best-effort write)
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from psycopg2.extras import Json

from wellcheck.shared.models import (
    ConfidenceBand,
    Domain,
    RiskClassification,
    RiskTier,
    SelfHarmIndicator,
    Submission,
    TriggerCode,
)
from .connection import ConnectionManager
from .repository import BaseRepository
from .store import CheckinStore

logger = logging.getLogger(__name__)


class SubmissionRepository(BaseRepository[Submission]):
    """Repository for weekly check-in submissions."""

    columns = (
        "id",
        "user_id",
        "institution_id",
        "week_number",
        "academic_year",
        "primary_domain_id",
        "secondary_domain_id",
        "intensity_numeric",
        "response_text",
        "self_harm_indicator",
        "created_at",
    )

    def __init__(self, connection_manager: ConnectionManager):
        super().__init__(connection_manager, "weekly_checkin_responses")

    def _row_to_entity(self, row: tuple) -> Submission:
        return Submission(
            submission_id=str(row[0]),
            user_id=str(row[1]),
            institution_id=str(row[2]),
            week_number=row[3],
            academic_year=row[4],
            primary_domain=Domain(row[5]),
            secondary_domain=Domain(row[6]) if row[6] else None,
            intensity=row[7],
            reflection=row[8] or "",
            self_harm_indicator=SelfHarmIndicator(row[9] or "none"),
            created_at=row[10],
        )

    def _entity_to_params(self, entity: Submission) -> Dict[str, Any]:
        return {
            "id": entity.submission_id,
            "user_id": entity.user_id,
            "institution_id": entity.institution_id,
            "week_number": entity.week_number,
            "academic_year": entity.academic_year,
            "primary_domain_id": entity.primary_domain.value,
            "secondary_domain_id": (
                entity.secondary_domain.value if entity.secondary_domain else None
            ),
            "intensity_numeric": entity.intensity,
            "response_text": entity.reflection,
            "self_harm_indicator": entity.self_harm_indicator.value,
            "created_at": entity.created_at,
        }

    def find_recent_by_user(
        self,
        user_id: str,
        limit: int,
        before: Optional[datetime] = None,
    ) -> List[Submission]:
        """Find a user's most recent submissions, newest first."""
        if before is None:
            return self._fetchall(
                f"{self._select_clause} WHERE user_id = %s ORDER BY created_at DESC LIMIT %s",
                (user_id, limit),
            )
        return self._fetchall(
            f"""
            {self._select_clause}
            WHERE user_id = %s AND created_at < %s
            ORDER BY created_at DESC LIMIT %s
            """,
            (user_id, before, limit),
        )

    def find_between(self, institution_id, start, end) -> List[Submission]:
        return self._fetchall(
            f"""
            {self._select_clause}
            WHERE institution_id = %s AND created_at >= %s AND created_at < %s
            """,
            (institution_id, start, end),
        )

    def find_latest_week(self, institution_id: str) -> Optional[Tuple[int, int]]:
        """Latest (academic_year, week_number) for an institution."""
        row = self._fetchone_raw(
            f"""
            SELECT academic_year, week_number FROM {self.table_name}
            WHERE institution_id = %s
            ORDER BY academic_year DESC, week_number DESC
            LIMIT 1
            """,
            (institution_id,),
        )
        if row is None:
            return None
        return row[0], row[1]

    def find_in_weeks(self, institution_id, academic_year, start_week, end_week):
        return self._fetchall(
            f"""
            {self._select_clause}
            WHERE institution_id = %s AND academic_year = %s
              AND week_number >= %s AND week_number <= %s
            """,
            (institution_id, academic_year, start_week, end_week),
        )


class ClassificationRepository(BaseRepository[RiskClassification]):
    """Repository for risk classifications."""

    columns = (
        "id",
        "submission_id",
        "user_id",
        "institution_id",
        "risk_score",
        "risk_tier",
        "trigger_codes",
        "confidence_band",
        "classifier_version",
        "created_at",
    )

    def __init__(self, connection_manager: ConnectionManager):
        super().__init__(connection_manager, "risk_classifications")

    def _row_to_entity(self, row: tuple) -> RiskClassification:
        return RiskClassification(
            classification_id=str(row[0]),
            submission_id=str(row[1]),
            user_id=str(row[2]),
            institution_id=str(row[3]),
            score=row[4],
            tier=RiskTier(row[5]),
            trigger_codes=tuple(TriggerCode(code) for code in (row[6] or [])),
            confidence_band=ConfidenceBand(row[7]),
            classifier_version=row[8],
            created_at=row[9],
        )

    def _entity_to_params(self, entity: RiskClassification) -> Dict[str, Any]:
        return {
            "id": entity.classification_id,
            "submission_id": entity.submission_id,
            "user_id": entity.user_id,
            "institution_id": entity.institution_id,
            "risk_score": entity.score,
            "risk_tier": int(entity.tier),
            "trigger_codes": Json([code.value for code in entity.trigger_codes]),
            "confidence_band": entity.confidence_band.value,
            "classifier_version": entity.classifier_version,
            "created_at": entity.created_at,
        }

    def find_between(self, institution_id, start, end) -> List[RiskClassification]:
        return self._fetchall(
            f"""
            {self._select_clause}
            WHERE institution_id = %s AND created_at >= %s AND created_at < %s
            """,
            (institution_id, start, end),
        )


class PostgresCheckinStore(CheckinStore):
    """CheckinStore backed by the two PostgreSQL repositories."""

    def __init__(self, connection_manager: ConnectionManager):
        self.submissions = SubmissionRepository(connection_manager)
        self.classifications = ClassificationRepository(connection_manager)

    def recent_submissions(self, user_id, limit, before=None):
        return self.submissions.find_recent_by_user(user_id, limit, before)

    def submissions_between(self, institution_id, start, end):
        return self.submissions.find_between(institution_id, start, end)

    def classifications_between(self, institution_id, start, end):
        return self.classifications.find_between(institution_id, start, end)

    def latest_academic_week(self, institution_id):
        return self.submissions.find_latest_week(institution_id)

    def submissions_in_weeks(self, institution_id, academic_year, start_week, end_week):
        return self.submissions.find_in_weeks(
            institution_id, academic_year, start_week, end_week
        )

    def save_submission(self, submission):
        return self.submissions.insert(submission)

    def save_classification(self, classification):
        return self.classifications.insert(classification)
