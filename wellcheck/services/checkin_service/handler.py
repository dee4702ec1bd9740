"""Check-in Service HTTP Handler - weekly submission endpoint.

Scores each check-in inline with its write:
1. Resolve the self-harm indicator (supplied, or inferred from text)
2. Build historical signals from the user's prior check-ins
3. Score deterministically
4. Persist the submission (required - failure fails the request)
5. Persist the classification (best-effort - failure is logged only)

Per ADR-003: No PII in logs - use hash_pii() for user identifiers.

Endpoints:
- GET /health - Health check
- GET /ready - Readiness check
- POST /checkins - Submit a weekly check-in
"""
import logging
import os
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from flask import Flask, request, jsonify

from wellcheck.shared.database import (
    CheckinStore,
    InMemoryCheckinStore,
    PostgresCheckinStore,
    RepositoryError,
    get_connection_manager,
)
from wellcheck.shared.models import (
    ConfidenceBand,
    Domain,
    RiskClassification,
    SelfHarmIndicator,
    Submission,
)
from wellcheck.shared.utils import hash_pii, configure_pii_salt
from .classifier import KeywordSelfHarmClassifier, SelfHarmClassifier
from .config import CLASSIFIER_VERSION, RiskRules
from .history import HistoricalContextBuilder
from .scorer import RiskAssessment, coerce_indicator, score_checkin

logger = logging.getLogger(__name__)

app = Flask(__name__)


@dataclass(frozen=True)
class CheckinResult:
    """Outcome of one submission."""
    submission: Submission
    assessment: RiskAssessment
    classification_persisted: bool

    def to_dict(self) -> Dict[str, Any]:
        result = {"submission_id": self.submission.submission_id}
        result.update(self.assessment.to_dict())
        return result


class CheckinHandler:
    """Handler for check-in submission and inline scoring."""

    def __init__(
        self,
        store: Optional[CheckinStore] = None,
        classifier: Optional[SelfHarmClassifier] = None,
        rules: Optional[RiskRules] = None,
    ):
        """Initialize handler with dependencies.

        Args:
            store: Check-in store (in-memory if not provided)
            classifier: Text classifier for missing self-harm answers
            rules: Scoring rules
        """
        self.store = store or InMemoryCheckinStore()
        self.classifier = classifier or KeywordSelfHarmClassifier()
        self.rules = rules or RiskRules()
        self.history_builder = HistoricalContextBuilder(self.store, self.rules)

        logger.info(
            "CHECKIN_HANDLER_INITIALIZED",
            extra={"classifier_version": CLASSIFIER_VERSION}
        )

    def submit_checkin(
        self,
        user_id: str,
        institution_id: str,
        week_number: int,
        academic_year: int,
        primary_domain: Domain,
        intensity: int,
        reflection: str = "",
        secondary_domain: Optional[Domain] = None,
        self_harm_indicator: Optional[SelfHarmIndicator] = None,
        created_at: Optional[datetime] = None,
    ) -> CheckinResult:
        """Score and persist one check-in.

        Returns:
            CheckinResult with the stored submission and its assessment

        Raises:
            ValueError: If the submission fields are invalid
            RepositoryError: If the submission itself could not be stored
        """
        user_id_hash = hash_pii(user_id)

        if self_harm_indicator is None:
            indicator = self.classifier.classify(reflection)
        else:
            indicator = coerce_indicator(self_harm_indicator)

        fields = dict(
            user_id=user_id,
            institution_id=institution_id,
            week_number=week_number,
            academic_year=academic_year,
            primary_domain=primary_domain,
            secondary_domain=secondary_domain,
            intensity=intensity,
            reflection=reflection,
            self_harm_indicator=indicator,
        )
        if created_at is not None:
            fields["created_at"] = created_at
        submission = Submission(**fields)

        history = self.history_builder.build(
            user_id, primary_domain, intensity, before=submission.created_at
        )
        assessment = score_checkin(
            intensity=intensity,
            self_harm_indicator=indicator,
            history=history,
            domain=primary_domain,
            rules=self.rules,
        )
        self._log_assessment(user_id_hash, assessment)

        self.store.save_submission(submission)

        persisted = self._persist_classification(submission, assessment, user_id_hash)

        return CheckinResult(
            submission=submission,
            assessment=assessment,
            classification_persisted=persisted,
        )

    def _persist_classification(
        self,
        submission: Submission,
        assessment: RiskAssessment,
        user_id_hash: str,
    ) -> bool:
        """Write the classification. Never raises."""
        classification = RiskClassification(
            submission_id=submission.submission_id,
            user_id=submission.user_id,
            institution_id=submission.institution_id,
            score=assessment.score,
            tier=assessment.tier,
            trigger_codes=assessment.trigger_codes,
            confidence_band=(
                ConfidenceBand.HIGH
                if submission.self_harm_indicator != SelfHarmIndicator.NONE
                else ConfidenceBand.MEDIUM
            ),
            classifier_version=CLASSIFIER_VERSION,
            created_at=submission.created_at,
        )

        try:
            self.store.save_classification(classification)
        except Exception as e:
            logger.error(
                "RISK_CLASSIFICATION_PERSIST_FAILED",
                extra={
                    "submission_id": submission.submission_id,
                    "user_id_hash": user_id_hash,
                    "risk_tier": int(assessment.tier),
                    "error": str(e),
                    "error_type": type(e).__name__,
                    "action": "SUBMISSION_KEPT",
                }
            )
            return False

        return True

    def _log_assessment(self, user_id_hash: str, assessment: RiskAssessment) -> None:
        extra = {
            "user_id_hash": user_id_hash,
            "risk_score": assessment.score,
            "risk_tier": int(assessment.tier),
            "trigger_codes": [code.value for code in assessment.trigger_codes],
        }
        if assessment.high_risk:
            logger.warning("RISK_HIGH", extra=extra)
        elif assessment.score > 0:
            logger.info("RISK_MODERATE", extra=extra)


# Global handler instance
_handler: Optional[CheckinHandler] = None


def get_handler() -> CheckinHandler:
    """Get or create the global handler instance."""
    global _handler
    if _handler is None:
        _handler = CheckinHandler()
    return _handler


def set_handler(handler: CheckinHandler) -> None:
    """Set the global handler (for testing)."""
    global _handler
    _handler = handler


REQUIRED_FIELDS = (
    "user_id",
    "institution_id",
    "week_number",
    "academic_year",
    "primary_domain",
    "intensity",
)


def _parse_domain(value: Optional[str], field_name: str) -> Optional[Domain]:
    if value is None:
        return None
    try:
        return Domain(str(value).lower())
    except ValueError:
        raise ValueError(f"Unknown {field_name}: {value}")


# Flask routes
@app.route("/health", methods=["GET"])
def health():
    """Health check endpoint."""
    return jsonify({
        "status": "healthy",
        "service": "checkin-service",
        "classifier_version": CLASSIFIER_VERSION,
    })


@app.route("/ready", methods=["GET"])
def ready():
    """Readiness check endpoint."""
    return jsonify({"status": "ready", "service": "checkin-service"})


@app.route("/checkins", methods=["POST"])
def submit_checkin():
    """Submit a weekly check-in.

    Body:
        user_id: Owning user
        institution_id: User's institution
        week_number: Academic week number
        academic_year: Academic year
        primary_domain: One of the seven domains
        secondary_domain: Optional second domain
        intensity: 1-5
        reflection: Free-text reflection
        self_harm_indicator: Optional none|sometimes|often
    """
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"error": "Request body required"}), 400

    missing = [f for f in REQUIRED_FIELDS if data.get(f) is None]
    if missing:
        return jsonify({"error": f"Missing fields: {missing}"}), 400

    indicator = data.get("self_harm_indicator")
    try:
        if indicator is not None:
            indicator = SelfHarmIndicator(str(indicator).lower())
        primary = _parse_domain(data["primary_domain"], "primary_domain")
        secondary = _parse_domain(data.get("secondary_domain"), "secondary_domain")
        result = get_handler().submit_checkin(
            user_id=str(data["user_id"]),
            institution_id=str(data["institution_id"]),
            week_number=int(data["week_number"]),
            academic_year=int(data["academic_year"]),
            primary_domain=primary,
            secondary_domain=secondary,
            intensity=int(data["intensity"]),
            reflection=str(data.get("reflection", "")),
            self_harm_indicator=indicator,
        )
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except RepositoryError as e:
        logger.error(
            "CHECKIN_PERSIST_FAILED",
            extra={"error": str(e), "error_type": type(e).__name__}
        )
        status = 503 if e.retryable else 500
        return jsonify({
            "error": "Failed to save check-in",
            "retryable": e.retryable,
        }), status

    return jsonify(result.to_dict()), 201


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    configure_pii_salt(os.getenv("PII_HASH_SALT", ""))
    if os.getenv("DB_HOST"):
        set_handler(CheckinHandler(store=PostgresCheckinStore(get_connection_manager())))
    port = int(os.getenv("PORT", "8080"))
    app.run(host="0.0.0.0", port=port)
