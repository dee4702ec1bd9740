"""K-anonymity enforcement per ADR-006.

Suppress any statistic computed over fewer than k distinct users.
Suppression is decided per metric: two metrics over the same window
can have different effective populations.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Generic, Optional, TypeVar

from .config import K_ANONYMITY_THRESHOLD

logger = logging.getLogger(__name__)

T = TypeVar('T')


@dataclass(frozen=True)
class AggregateResult(Generic[T]):
    """Result of an aggregation with k-anonymity applied.

    Attributes:
        data: The aggregated payload (None if suppressed)
        group_size: Number of distinct users behind the payload
        suppressed: True if the payload was withheld
        suppression_reason: Fixed human-readable reason if suppressed
    """
    data: Optional[T]
    group_size: int
    suppressed: bool
    suppression_reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Render as a metric payload.

        Suppressed results carry only the flag and the message; the
        group size is withheld too.
        """
        if self.suppressed:
            return {"suppressed": True, "message": self.suppression_reason}

        payload: Dict[str, Any] = {"suppressed": False}
        if isinstance(self.data, dict):
            payload.update(self.data)
        else:
            payload["value"] = self.data
        return payload


class KAnonymityEnforcer:
    """Enforces k-anonymity on aggregated data.

    Per ADR-006: every dashboard metric must be withheld when its
    population is below threshold.
    """

    def __init__(self, k_threshold: int = K_ANONYMITY_THRESHOLD):
        """Initialize enforcer.

        Args:
            k_threshold: Minimum group size (default 10)
        """
        self.k_threshold = k_threshold

        logger.info(
            "K_ANONYMITY_ENFORCER_INITIALIZED",
            extra={"k_threshold": k_threshold}
        )

    @property
    def insufficient_users_message(self) -> str:
        return f"Insufficient data (minimum {self.k_threshold} distinct users required)"

    def check_and_suppress(
        self,
        data: T,
        group_size: int,
        context: Optional[str] = None,
        message: Optional[str] = None,
    ) -> AggregateResult[T]:
        """Check group size and suppress if below threshold.

        Args:
            data: The aggregated data to potentially suppress
            group_size: Number of distinct users in the group
            context: Description of the metric for logging
            message: Reason shown to consumers when suppressed

        Returns:
            AggregateResult with data or suppression info

        Logs:
            - K_ANONYMITY_SUPPRESSED: When data is suppressed
            - K_ANONYMITY_PASSED: When data passes threshold
        """
        if group_size < self.k_threshold:
            return self.suppress(
                reason=message or self.insufficient_users_message,
                group_size=group_size,
                context=context,
            )

        logger.info(
            "K_ANONYMITY_PASSED",
            extra={
                "group_size": group_size,
                "k_threshold": self.k_threshold,
                "context": context,
            }
        )
        return AggregateResult(
            data=data,
            group_size=group_size,
            suppressed=False,
        )

    def suppress(
        self,
        reason: str,
        group_size: int = 0,
        context: Optional[str] = None,
    ) -> AggregateResult[Any]:
        """Withhold a metric for any reason, including non-size guards."""
        logger.warning(
            "K_ANONYMITY_SUPPRESSED",
            extra={
                "group_size": group_size,
                "k_threshold": self.k_threshold,
                "context": context,
                "action": "DATA_SUPPRESSED",
            }
        )
        return AggregateResult(
            data=None,
            group_size=group_size,
            suppressed=True,
            suppression_reason=reason,
        )
