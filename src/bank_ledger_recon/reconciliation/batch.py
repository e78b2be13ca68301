"""
Batch reconciliation of a venue's pending bank transactions.

Transactions are classified oldest first and each result is persisted
before the next candidate search, so an entry claimed by an earlier
transaction is never offered to a later one in the same run. The set of
claimed entries is threaded explicitly from one step to the next.
"""

from datetime import date
from typing import Optional
import logging
import threading

from ..config import MatchingConfig
from ..models.transaction import (
    BankTransaction,
    MatchCandidate,
    ReconcileResult,
    ReconciliationStatus,
    TransactionOutcome,
)
from ..matching.candidates import CandidateFinder
from ..matching.classifier import StatusClassifier
from ..storage.base import ReconciliationStore, ReconciliationUpdate
from ..utils.exceptions import ExclusivityViolationError, InvalidStateTransitionError
from .lifecycle import Action, check_transition

logger = logging.getLogger(__name__)


class BatchReconciler:
    """Classifies every PENDING transaction of a venue against the ledger."""

    def __init__(
        self,
        store: ReconciliationStore,
        config: Optional[MatchingConfig] = None,
        finder: Optional[CandidateFinder] = None,
        classifier: Optional[StatusClassifier] = None,
    ):
        """
        Initialize the batch reconciler.

        Args:
            store: Transaction and ledger store
            config: Matching configuration
            finder: Candidate finder; built over store when omitted
            classifier: Status classifier; built from config thresholds when omitted
        """
        self.store = store
        self.config = config or MatchingConfig()
        self.finder = finder or CandidateFinder(store, self.config)
        self.classifier = classifier or StatusClassifier(self.config.thresholds)

    def reconcile(
        self,
        venue_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        auto_match_only: bool = False,
        cancel_event: Optional[threading.Event] = None,
    ) -> ReconcileResult:
        """
        Classify the venue's pending transactions.

        Args:
            venue_id: Venue to reconcile
            date_from: Earliest transaction date (inclusive)
            date_to: Latest transaction date (inclusive)
            auto_match_only: Only create MATCHED links; anything weaker
                becomes UNMATCHED instead of TO_REVIEW
            cancel_event: Checked between transactions; when set, the run
                stops and the rest stay PENDING

        Returns:
            Counts per status and the per-transaction outcomes
        """
        pending = self.store.list_transactions(
            venue_id, ReconciliationStatus.PENDING, date_from, date_to
        )
        logger.info(
            f"Starting reconciliation for venue {venue_id}: {len(pending)} pending transactions"
            + (" (auto-match only)" if auto_match_only else "")
        )

        result = ReconcileResult()
        claimed: frozenset[str] = frozenset()

        for txn in pending:
            if cancel_event is not None and cancel_event.is_set():
                result.cancelled = True
                logger.warning(
                    f"Reconciliation for venue {venue_id} cancelled after "
                    f"{result.processed_count} of {len(pending)} transactions"
                )
                break

            outcome, claimed = self._reconcile_one(txn, venue_id, claimed, auto_match_only)
            if outcome is not None:
                result.record(outcome)

        logger.info(
            f"Reconciliation for venue {venue_id} complete: {result.matched_count} matched, "
            f"{result.to_review_count} to review, {result.unmatched_count} unmatched"
        )
        return result

    def decide(
        self, candidates: list[MatchCandidate], auto_match_only: bool = False
    ) -> ReconciliationUpdate:
        """
        Reconciliation fields for a transaction given its ranked candidates.

        MATCHED and TO_REVIEW link the best candidate; UNMATCHED carries no
        link and no confidence.
        """
        if not candidates:
            return ReconciliationUpdate(status=ReconciliationStatus.UNMATCHED)

        best = candidates[0]
        status = self.classifier.classify(best.confidence)

        if auto_match_only and status != ReconciliationStatus.MATCHED:
            status = ReconciliationStatus.UNMATCHED

        if status == ReconciliationStatus.UNMATCHED:
            return ReconciliationUpdate(status=status)

        return ReconciliationUpdate(
            status=status,
            matched_entry_id=best.entry_id,
            match_confidence=best.confidence,
        )

    def _reconcile_one(
        self,
        txn: BankTransaction,
        venue_id: str,
        claimed: frozenset[str],
        auto_match_only: bool,
    ) -> tuple[Optional[TransactionOutcome], frozenset[str]]:
        """
        Classify and persist one transaction.

        Returns:
            The outcome (None if the transaction left PENDING concurrently)
            and the claimed set to hand to the next step
        """
        while True:
            candidates = self.finder.find_candidates(txn, venue_id, limit=1, exclude=claimed)
            update = self.decide(candidates, auto_match_only)
            check_transition(Action.CLASSIFY, txn, update.status)

            try:
                self.store.apply_update(txn.id, ReconciliationStatus.PENDING, update)
            except ExclusivityViolationError as e:
                # Another writer linked the entry after the search; try the next best
                logger.warning(
                    f"Transaction {txn.id}: entry {e.entry_id} claimed concurrently, re-evaluating"
                )
                claimed = claimed | {e.entry_id}
                continue
            except InvalidStateTransitionError:
                logger.warning(f"Transaction {txn.id} left PENDING during the run, skipped")
                return None, claimed

            if update.matched_entry_id:
                claimed = claimed | {update.matched_entry_id}

            logger.debug(
                f"Transaction {txn.id}: {update.status.value}"
                + (
                    f" -> {update.matched_entry_id} ({update.match_confidence:.2f})"
                    if update.matched_entry_id
                    else ""
                )
            )
            return (
                TransactionOutcome(
                    transaction_id=txn.id,
                    status=update.status,
                    matched_entry_id=update.matched_entry_id,
                    match_confidence=update.match_confidence,
                ),
                claimed,
            )
