"""Tests for keyword-based self-harm inference."""
import pytest

from wellcheck.shared.models import SelfHarmIndicator
from wellcheck.services.checkin_service.classifier import KeywordSelfHarmClassifier


@pytest.fixture
def classifier():
    return KeywordSelfHarmClassifier()


class TestKeywordSelfHarmClassifier:
    """Tests for phrase matching."""

    @pytest.mark.parametrize("text", [
        "I have been feeling suicidal lately",
        "Sometimes I want to END MY LIFE",
        "thinking about self-harm again",
    ])
    def test_high_signal_phrases(self, classifier, text):
        assert classifier.classify(text) == SelfHarmIndicator.OFTEN

    @pytest.mark.parametrize("text", [
        "I want to hurt myself",
        "I think about self harm",
    ])
    def test_medium_signal_phrases(self, classifier, text):
        assert classifier.classify(text) == SelfHarmIndicator.SOMETIMES

    def test_high_signal_wins(self, classifier):
        text = "I want to hurt myself and I feel suicidal"

        assert classifier.classify(text) == SelfHarmIndicator.OFTEN

    @pytest.mark.parametrize("text", ["", None, "Exams are stressful but fine"])
    def test_no_signal(self, classifier, text):
        assert classifier.classify(text) == SelfHarmIndicator.NONE

    @pytest.mark.parametrize("text", [
        "I got paid and will spend it on rent",
        "The lecture was optional so I did not attend it",
        "My roommate asked me to lend it to her",
        "That movie was so suicidally boring",
    ])
    def test_phrases_match_whole_words_only(self, classifier, text):
        assert classifier.classify(text) == SelfHarmIndicator.NONE

    def test_phrase_at_text_edges(self, classifier):
        assert classifier.classify("end it.") == SelfHarmIndicator.OFTEN
        assert classifier.classify("Hurt myself") == SelfHarmIndicator.SOMETIMES

    def test_custom_phrases(self):
        classifier = KeywordSelfHarmClassifier(
            high_signal=frozenset({"crisis"}),
            medium_signal=frozenset({"struggling"}),
        )

        assert classifier.classify("I am in crisis") == SelfHarmIndicator.OFTEN
        assert classifier.classify("struggling a bit") == SelfHarmIndicator.SOMETIMES
        assert classifier.classify("suicidal") == SelfHarmIndicator.NONE

    def test_text_never_logged(self, classifier, caplog):
        caplog.set_level("INFO")

        classifier.classify("I want to hurt myself")

        for record in caplog.records:
            assert "hurt myself" not in record.getMessage()
            assert "hurt myself" not in str(record.__dict__)
