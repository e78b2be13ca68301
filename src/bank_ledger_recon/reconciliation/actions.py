"""
Manual reconciliation actions: confirm, manual match, ignore, unmatch.

Each action reads the transaction, validates the transition, and writes
through the store's conditional update, which re-checks status and entry
exclusivity at write time.
"""

from datetime import datetime, timezone
from typing import Callable, Optional
import logging

from ..models.transaction import BankTransaction, ReconciliationStatus
from ..matching.scoring import ConfidenceScorer
from ..storage.base import ReconciliationStore, ReconciliationUpdate
from ..utils.exceptions import ExclusivityViolationError, NotFoundError
from .lifecycle import Action, check_transition

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ReconciliationActions:
    """State-changing operations applied by a reviewer to one transaction."""

    def __init__(
        self,
        store: ReconciliationStore,
        scorer: Optional[ConfidenceScorer] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize the actions.

        Args:
            store: Transaction and ledger store
            scorer: Scorer used to record the confidence of manual links
            clock: Source of reconciliation timestamps
        """
        self.store = store
        self.scorer = scorer or ConfidenceScorer()
        self.clock = clock

    def _load(self, transaction_id: str) -> BankTransaction:
        txn = self.store.get_transaction(transaction_id)
        if txn is None:
            raise NotFoundError("Bank transaction", transaction_id)
        return txn

    def confirm(self, transaction_id: str, actor: str) -> BankTransaction:
        """
        Confirm a suggested match.

        Raises:
            NotFoundError: Unknown transaction
            InvalidStateTransitionError: Not under review, or nothing to confirm
        """
        txn = self._load(transaction_id)
        check_transition(Action.CONFIRM, txn, ReconciliationStatus.MATCHED)

        updated = self.store.apply_update(
            txn.id,
            txn.status,
            ReconciliationUpdate(
                status=ReconciliationStatus.MATCHED,
                matched_entry_id=txn.matched_entry_id,
                match_confidence=txn.match_confidence,
                reconciled_by=actor,
                reconciled_at=self.clock(),
            ),
        )
        logger.info(f"Transaction {txn.id} confirmed against {txn.matched_entry_id} by {actor}")
        return updated

    def manual_match(self, transaction_id: str, entry_id: str, actor: str) -> BankTransaction:
        """
        Link a transaction to a ledger entry chosen by the reviewer.

        The confidence is still computed and stored for audit.

        Raises:
            NotFoundError: Unknown transaction or ledger entry
            InvalidStateTransitionError: Transaction already matched, manual or ignored
            ExclusivityViolationError: Entry linked to a different transaction
        """
        txn = self._load(transaction_id)
        check_transition(Action.MANUAL_MATCH, txn, ReconciliationStatus.MANUAL)

        entry = self.store.get_entry(entry_id)
        if entry is None:
            raise NotFoundError("Ledger entry", entry_id)

        holder = self.store.find_holder(entry_id)
        if holder is not None and holder.id != txn.id:
            raise ExclusivityViolationError(entry_id, holder.id)

        confidence = self.scorer.score(txn, entry)
        updated = self.store.apply_update(
            txn.id,
            txn.status,
            ReconciliationUpdate(
                status=ReconciliationStatus.MANUAL,
                matched_entry_id=entry_id,
                match_confidence=confidence,
                reconciled_by=actor,
                reconciled_at=self.clock(),
            ),
        )
        logger.info(
            f"Transaction {txn.id} manually linked to {entry_id} by {actor} "
            f"(confidence {confidence:.2f})"
        )
        return updated

    def ignore(self, transaction_id: str, actor: str) -> BankTransaction:
        """
        Mark a transaction as not requiring a ledger counterpart.

        Raises:
            NotFoundError: Unknown transaction
            InvalidStateTransitionError: Transaction is MATCHED or MANUAL
        """
        txn = self._load(transaction_id)
        check_transition(Action.IGNORE, txn, ReconciliationStatus.IGNORED)

        updated = self.store.apply_update(
            txn.id,
            txn.status,
            ReconciliationUpdate(
                status=ReconciliationStatus.IGNORED,
                reconciled_by=actor,
                reconciled_at=self.clock(),
            ),
        )
        logger.info(f"Transaction {txn.id} ignored by {actor}")
        return updated

    def unmatch(self, transaction_id: str) -> BankTransaction:
        """
        Drop any link and return the transaction to PENDING.

        Raises:
            NotFoundError: Unknown transaction
            InvalidStateTransitionError: Transaction is not MATCHED, MANUAL or IGNORED
        """
        txn = self._load(transaction_id)
        check_transition(Action.UNMATCH, txn, ReconciliationStatus.PENDING)

        updated = self.store.apply_update(
            txn.id,
            txn.status,
            ReconciliationUpdate(status=ReconciliationStatus.PENDING),
        )
        logger.info(f"Transaction {txn.id} unmatched (was {txn.status.value})")
        return updated
