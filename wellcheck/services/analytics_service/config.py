"""Analytics Service configuration.

One config instance is shared by the cohort aggregator and the trend
engine so the k-anonymity floor can never drift between them.
"""
import os
from dataclasses import dataclass

# Minimum distinct users before any aggregate may be disclosed
K_ANONYMITY_THRESHOLD = 10


@dataclass(frozen=True)
class AnalyticsConfig:
    """Configuration for analytics service."""
    k_anonymity_threshold: int = K_ANONYMITY_THRESHOLD
    window_days: int = 7
    high_intensity_threshold: int = 4       # Per-user average counted as "high"
    high_distress_share: float = 0.3        # Cohort share triggering generic advice
    support_eligible_min: int = 1           # R2+R3 count triggering support advice
    max_trend_weeks: int = 52

    def __post_init__(self):
        if self.k_anonymity_threshold < 1:
            raise ValueError(
                f"k_anonymity_threshold must be positive, got {self.k_anonymity_threshold}"
            )
        if self.window_days < 1:
            raise ValueError(f"window_days must be positive, got {self.window_days}")

    @classmethod
    def from_env(cls) -> "AnalyticsConfig":
        """Create config from environment variables.

        Environment variables:
            K_ANONYMITY_THRESHOLD: Minimum group size (default 10)
            ANALYTICS_WINDOW_DAYS: Rolling window length (default 7)
            ANALYTICS_MAX_TREND_WEEKS: Upper bound for ?weeks= (default 52)
        """
        return cls(
            k_anonymity_threshold=int(
                os.getenv("K_ANONYMITY_THRESHOLD", str(K_ANONYMITY_THRESHOLD))
            ),
            window_days=int(os.getenv("ANALYTICS_WINDOW_DAYS", "7")),
            max_trend_weeks=int(os.getenv("ANALYTICS_MAX_TREND_WEEKS", "52")),
        )
