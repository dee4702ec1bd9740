"""Analytics Service HTTP Handler - Staff Dashboard API.

Provides cohort and trend endpoints with k-anonymity enforcement.
Per ADR-006: every aggregate is withheld when fewer than k distinct
users stand behind it (k=10 by default).

Endpoints:
- GET /health - Health check
- GET /ready - Readiness check
- GET /cohort-aggregates - Current-week cohort snapshot
- GET /trends - Rolling week-over-week metrics, or ?weeks=N academic series
"""
import logging
import os
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
from wellcheck.shared.utils import configure_pii_salt
from .cohort import CohortAggregator
from .config import AnalyticsConfig
from .k_anonymity import KAnonymityEnforcer
from .trends import TrendEngine
from .windows import WindowSelector

logger = logging.getLogger(__name__)

app = Flask(__name__)


class AnalyticsHandler:
    """Handler for analytics/dashboard endpoints."""

    def __init__(
        self,
        store: Optional[CheckinStore] = None,
        config: Optional[AnalyticsConfig] = None,
        k_enforcer: Optional[KAnonymityEnforcer] = None,
    ):
        """Initialize handler with dependencies.

        Both engines share one config and one enforcer, so they always
        apply the same k.

        Args:
            store: Check-in store (in-memory if not provided)
            config: Analytics configuration
            k_enforcer: K-anonymity enforcer (injected for testing)
        """
        self.store = store or InMemoryCheckinStore()
        self.config = config or AnalyticsConfig()
        self.k_enforcer = k_enforcer or KAnonymityEnforcer(
            k_threshold=self.config.k_anonymity_threshold
        )
        self.cohort = CohortAggregator(self.store, self.config, self.k_enforcer)
        self.trends = TrendEngine(self.store, self.config, self.k_enforcer)

        logger.info(
            "ANALYTICS_HANDLER_INITIALIZED",
            extra={
                "k_threshold": self.config.k_anonymity_threshold,
                "window_days": self.config.window_days,
            }
        )

    def get_cohort_aggregates(
        self,
        institution_id: str,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Cohort snapshot for an institution."""
        return self.cohort.aggregate(institution_id, now=now)

    def get_trends(
        self,
        institution_id: str,
        selector: Optional[WindowSelector] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Trend metrics for an institution.

        Args:
            institution_id: Institution identifier
            selector: Rolling (default) or an N-week academic window
            now: Reference time for the rolling model

        Returns:
            Trend payload; academic windows are capped at max_trend_weeks
        """
        selector = selector or WindowSelector()
        if not selector.is_rolling and selector.weeks > self.config.max_trend_weeks:
            logger.info(
                "TREND_WEEKS_CLAMPED",
                extra={"requested": selector.weeks, "max": self.config.max_trend_weeks}
            )
            selector = WindowSelector(weeks=self.config.max_trend_weeks)
        return self.trends.compute(institution_id, selector, now=now)


# Global handler instance
_handler: Optional[AnalyticsHandler] = None


def get_handler() -> AnalyticsHandler:
    """Get or create the global handler instance."""
    global _handler
    if _handler is None:
        _handler = AnalyticsHandler()
    return _handler


def set_handler(handler: AnalyticsHandler) -> None:
    """Set the global handler (for testing)."""
    global _handler
    _handler = handler


def _store_error_response(e: RepositoryError, endpoint: str):
    logger.error(
        "ANALYTICS_STORE_READ_FAILED",
        extra={"endpoint": endpoint, "error": str(e), "error_type": type(e).__name__}
    )
    status = 503 if e.retryable else 500
    return jsonify({"error": "Analytics data unavailable", "retryable": e.retryable}), status


# Flask routes
@app.route("/health", methods=["GET"])
def health():
    """Health check endpoint."""
    return jsonify({"status": "healthy", "service": "analytics-service"})


@app.route("/ready", methods=["GET"])
def ready():
    """Readiness check endpoint."""
    return jsonify({"status": "ready", "service": "analytics-service"})


@app.route("/cohort-aggregates", methods=["GET"])
def cohort_aggregates():
    """Get the current-week cohort snapshot.

    Query params:
        institution_id: Required - Institution identifier
    """
    institution_id = request.args.get("institution_id")
    if not institution_id:
        return jsonify({"error": "institution_id is required"}), 400

    try:
        result = get_handler().get_cohort_aggregates(institution_id)
    except RepositoryError as e:
        return _store_error_response(e, "cohort-aggregates")

    return jsonify(result)


@app.route("/trends", methods=["GET"])
def trends():
    """Get trend metrics.

    Query params:
        institution_id: Required - Institution identifier
        weeks: Optional - Academic window size; omitted or "rolling"
            selects the rolling week-over-week model
    """
    institution_id = request.args.get("institution_id")
    if not institution_id:
        return jsonify({"error": "institution_id is required"}), 400

    try:
        selector = WindowSelector.parse(request.args.get("weeks"))
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    try:
        result = get_handler().get_trends(institution_id, selector)
    except RepositoryError as e:
        return _store_error_response(e, "trends")

    return jsonify(result)


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    configure_pii_salt(os.getenv("PII_HASH_SALT", ""))
    config = AnalyticsConfig.from_env()
    if os.getenv("DB_HOST"):
        set_handler(AnalyticsHandler(
            store=PostgresCheckinStore(get_connection_manager()),
            config=config,
        ))
    else:
        set_handler(AnalyticsHandler(config=config))
    port = int(os.getenv("PORT", "8080"))
    app.run(host="0.0.0.0", port=port)
