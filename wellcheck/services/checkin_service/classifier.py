"""Self-harm indicator inference from free-text reflections.

The check-in service treats the classifier as opaque: anything that maps
text to a SelfHarmIndicator can be injected. The keyword classifier is
the default and matches whole phrases case-insensitively.
"""
import logging
import re
from abc import ABC, abstractmethod
from typing import FrozenSet, Iterable, List, Optional

from wellcheck.shared.models import SelfHarmIndicator
from .config import HIGH_SIGNAL_PHRASES, MEDIUM_SIGNAL_PHRASES

logger = logging.getLogger(__name__)


def compile_phrases(phrases: Iterable[str]) -> List[re.Pattern]:
    """One word-bounded, case-insensitive pattern per phrase.

    Boundaries keep "end it" from matching "spend it" or "attend it".
    """
    return [
        re.compile(rf"\b{re.escape(phrase)}\b", re.IGNORECASE)
        for phrase in sorted(phrases)
    ]


class SelfHarmClassifier(ABC):
    """Maps a reflection to a three-valued self-harm indicator."""

    @abstractmethod
    def classify(self, text: str) -> SelfHarmIndicator:
        pass


class KeywordSelfHarmClassifier(SelfHarmClassifier):
    """Phrase-matching classifier. High-signal phrases win over medium."""

    def __init__(
        self,
        high_signal: Optional[FrozenSet[str]] = None,
        medium_signal: Optional[FrozenSet[str]] = None,
    ):
        self.high_signal = high_signal or HIGH_SIGNAL_PHRASES
        self.medium_signal = medium_signal or MEDIUM_SIGNAL_PHRASES
        self._high_patterns = compile_phrases(self.high_signal)
        self._medium_patterns = compile_phrases(self.medium_signal)

    def classify(self, text: str) -> SelfHarmIndicator:
        value = text or ""

        if any(p.search(value) for p in self._high_patterns):
            indicator = SelfHarmIndicator.OFTEN
        elif any(p.search(value) for p in self._medium_patterns):
            indicator = SelfHarmIndicator.SOMETIMES
        else:
            indicator = SelfHarmIndicator.NONE

        # Text itself is never logged
        logger.info(
            "SELF_HARM_INDICATOR_INFERRED",
            extra={"indicator": indicator.value, "text_length": len(value)}
        )
        return indicator
