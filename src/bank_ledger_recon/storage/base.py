"""
Storage interfaces for bank transactions and ledger entries.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Optional

from ..models.transaction import (
    LINKED_STATUSES,
    BankTransaction,
    LedgerEntry,
    ReconciliationStatus,
)


@dataclass(frozen=True)
class ReconciliationUpdate:
    """
    Reconciliation fields written by one state change.

    Every field is written, so clearing a link means passing None.
    """

    status: ReconciliationStatus
    matched_entry_id: Optional[str] = None
    match_confidence: Optional[float] = None
    reconciled_by: Optional[str] = None
    reconciled_at: Optional[datetime] = None


def check_link_allowed(txn: BankTransaction) -> None:
    """
    Reject an incoming transaction that holds a link its status cannot carry.

    PENDING with a link is accepted; confirm treats it as a suggestion.

    Raises:
        ValueError: If the link sits on an IGNORED or UNMATCHED record
    """
    if not txn.matched_entry_id:
        return
    if txn.status in LINKED_STATUSES or txn.status == ReconciliationStatus.PENDING:
        return
    raise ValueError(
        f"Transaction {txn.id} in status {txn.status.value} cannot link entry {txn.matched_entry_id}"
    )


class LedgerStore(ABC):
    """Read access to ledger entries."""

    @abstractmethod
    def add_entries(self, entries: Iterable[LedgerEntry]) -> int:
        """
        Store ledger entries.

        Args:
            entries: Entries to add

        Returns:
            Number of entries added
        """
        pass

    @abstractmethod
    def get_entry(self, entry_id: str) -> Optional[LedgerEntry]:
        pass

    @abstractmethod
    def find_eligible_entries(
        self, venue_id: str, date_from: date, date_to: date
    ) -> list[LedgerEntry]:
        """
        Bank-register entries of a venue dated within [date_from, date_to]
        that no bank transaction links to.
        """
        pass

    @abstractmethod
    def list_entries(
        self,
        venue_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[LedgerEntry]:
        """All bank-register entries of a venue, optionally by date range."""
        pass


class TransactionStore(ABC):
    """Access to bank transactions with an atomic conditional update."""

    @abstractmethod
    def add_transactions(self, transactions: Iterable[BankTransaction]) -> int:
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: str) -> Optional[BankTransaction]:
        pass

    @abstractmethod
    def list_transactions(
        self,
        venue_id: str,
        status: Optional[ReconciliationStatus] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[BankTransaction]:
        """Transactions of a venue ordered by transaction date, then id."""
        pass

    @abstractmethod
    def find_holder(self, entry_id: str) -> Optional[BankTransaction]:
        """The transaction currently linked to a ledger entry, if any."""
        pass

    @abstractmethod
    def apply_update(
        self,
        transaction_id: str,
        expected_status: ReconciliationStatus,
        update: ReconciliationUpdate,
    ) -> BankTransaction:
        """
        Write reconciliation fields if the transaction is still in expected_status.

        The status check, the exclusivity check on update.matched_entry_id and
        the write form one atomic step. On failure nothing is written.

        Args:
            transaction_id: Transaction to update
            expected_status: Status the caller read before deciding
            update: New reconciliation fields

        Returns:
            The updated transaction

        Raises:
            NotFoundError: If the transaction does not exist
            InvalidStateTransitionError: If the status moved since it was read
            ExclusivityViolationError: If another transaction holds the entry
        """
        pass


class ReconciliationStore(TransactionStore, LedgerStore):
    """A store serving both transactions and ledger entries."""

    pass
