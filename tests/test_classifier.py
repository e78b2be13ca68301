import pytest
from pydantic import ValidationError

from bank_ledger_recon.config import Thresholds
from bank_ledger_recon.matching.classifier import StatusClassifier
from bank_ledger_recon.models.transaction import ReconciliationStatus


@pytest.fixture
def classifier():
    return StatusClassifier()


class TestBoundaries:
    def test_at_auto_match(self, classifier):
        assert classifier.classify(0.90) == ReconciliationStatus.MATCHED

    def test_just_below_auto_match(self, classifier):
        assert classifier.classify(0.90 - 0.01) == ReconciliationStatus.TO_REVIEW

    def test_at_review(self, classifier):
        assert classifier.classify(0.70) == ReconciliationStatus.TO_REVIEW

    def test_just_below_review(self, classifier):
        assert classifier.classify(0.70 - 0.01) == ReconciliationStatus.UNMATCHED

    def test_extremes(self, classifier):
        assert classifier.classify(1.0) == ReconciliationStatus.MATCHED
        assert classifier.classify(0.0) == ReconciliationStatus.UNMATCHED


class TestCustomThresholds:
    def test_overridden_thresholds(self):
        classifier = StatusClassifier(Thresholds(auto_match=0.8, review=0.5))

        assert classifier.classify(0.8) == ReconciliationStatus.MATCHED
        assert classifier.classify(0.79) == ReconciliationStatus.TO_REVIEW
        assert classifier.classify(0.5) == ReconciliationStatus.TO_REVIEW
        assert classifier.classify(0.49) == ReconciliationStatus.UNMATCHED

    def test_auto_match_must_exceed_review(self):
        with pytest.raises(ValidationError):
            Thresholds(auto_match=0.6, review=0.7)

    def test_equal_thresholds_rejected(self):
        with pytest.raises(ValidationError):
            Thresholds(auto_match=0.7, review=0.7)
