"""Maps a best-candidate confidence to a reconciliation status."""

from typing import Optional

from ..config import Thresholds
from ..models.transaction import ReconciliationStatus


class StatusClassifier:
    """Two-threshold classifier: auto match, review, or unmatched."""

    def __init__(self, thresholds: Optional[Thresholds] = None):
        self.thresholds = thresholds or Thresholds()

    def classify(self, confidence: float) -> ReconciliationStatus:
        if confidence >= self.thresholds.auto_match:
            return ReconciliationStatus.MATCHED
        if confidence >= self.thresholds.review:
            return ReconciliationStatus.TO_REVIEW
        return ReconciliationStatus.UNMATCHED
