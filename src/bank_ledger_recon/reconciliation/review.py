"""Read models for manual review: transaction detail, listing and venue summary."""

from datetime import date
from decimal import Decimal
from typing import Optional

from ..config import MatchingConfig
from ..models.transaction import (
    BankTransaction,
    ReconciliationStatus,
    ReconciliationSummary,
    TransactionDetail,
    TransactionListing,
)
from ..matching.candidates import CandidateFinder
from ..storage.base import ReconciliationStore
from ..utils.exceptions import NotFoundError

# Rows returned by list_transactions when no limit is given
DEFAULT_LIST_LIMIT = 50

# Statuses for which a reviewer may still pick a different entry
REVIEWABLE_STATUSES = frozenset(
    {
        ReconciliationStatus.PENDING,
        ReconciliationStatus.UNMATCHED,
        ReconciliationStatus.TO_REVIEW,
    }
)


class ReconciliationReview:
    """Read-only views over the store for reviewers."""

    def __init__(
        self,
        store: ReconciliationStore,
        config: Optional[MatchingConfig] = None,
        finder: Optional[CandidateFinder] = None,
    ):
        self.store = store
        self.config = config or MatchingConfig()
        self.finder = finder or CandidateFinder(store, self.config)

    def transaction_detail(
        self, transaction_id: str, limit: Optional[int] = None
    ) -> TransactionDetail:
        """
        A transaction with its linked entry and its top candidates.

        Candidates are only searched while the transaction is PENDING,
        UNMATCHED or TO_REVIEW.

        Args:
            transaction_id: Transaction to show
            limit: Number of candidates (review_limit from config when omitted)

        Raises:
            NotFoundError: Unknown transaction
        """
        txn = self.store.get_transaction(transaction_id)
        if txn is None:
            raise NotFoundError("Bank transaction", transaction_id)

        if limit is None:
            limit = self.config.candidates.review_limit

        matched_entry = (
            self.store.get_entry(txn.matched_entry_id) if txn.matched_entry_id else None
        )

        candidates = []
        if txn.status in REVIEWABLE_STATUSES:
            candidates = self.finder.find_candidates(txn, txn.venue_id, limit=limit)

        return TransactionDetail(
            transaction=txn, matched_entry=matched_entry, candidates=candidates
        )

    def summarize(
        self,
        venue_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> ReconciliationSummary:
        """
        Status counts and balances for a venue.

        The bank balance is the balance_after of the latest transaction that
        reports one; the ledger balance is bank-register debits minus credits.
        """
        transactions = self.store.list_transactions(
            venue_id, date_from=date_from, date_to=date_to
        )
        summary = ReconciliationSummary(venue_id=venue_id, date_from=date_from, date_to=date_to)

        for txn in transactions:
            if txn.status in (ReconciliationStatus.MATCHED, ReconciliationStatus.MANUAL):
                summary.matched += 1
            elif txn.status == ReconciliationStatus.TO_REVIEW:
                summary.to_review += 1
            elif txn.status == ReconciliationStatus.UNMATCHED:
                summary.unmatched += 1
            elif txn.status == ReconciliationStatus.IGNORED:
                summary.ignored += 1
            else:
                summary.pending += 1

        with_balance = [t for t in transactions if t.balance_after is not None]
        if with_balance:
            # list_transactions is ordered by date then id
            summary.bank_balance = with_balance[-1].balance_after

        debits = Decimal("0")
        credits = Decimal("0")
        for entry in self.store.list_entries(venue_id, date_from, date_to):
            debits += entry.debit_amount or Decimal("0")
            credits += entry.credit_amount or Decimal("0")
        summary.ledger_balance = debits - credits

        return summary

    def list_transactions(
        self,
        venue_id: str,
        status: Optional[ReconciliationStatus] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        search: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> TransactionListing:
        """
        Transactions of a venue, newest first.

        Args:
            venue_id: Venue to list
            status: Only transactions in this status
            date_from: Earliest transaction date (inclusive)
            date_to: Latest transaction date (inclusive)
            search: Case-insensitive text matched against the description
                and the bank reference
            limit: Maximum rows returned (DEFAULT_LIST_LIMIT when omitted)

        Returns:
            The selected rows, the number of rows matching before the limit,
            and status counts over every transaction of the venue
        """
        if limit is None:
            limit = DEFAULT_LIST_LIMIT

        transactions = self.store.list_transactions(
            venue_id, status=status, date_from=date_from, date_to=date_to
        )
        needle = search.strip().casefold() if search else ""
        if needle:
            transactions = [t for t in transactions if _mentions(t, needle)]
        # list_transactions is ordered by date then id
        transactions.reverse()

        status_counts = {s: 0 for s in ReconciliationStatus}
        for txn in self.store.list_transactions(venue_id):
            status_counts[txn.status] += 1

        return TransactionListing(
            transactions=transactions[: max(limit, 0)],
            total=len(transactions),
            status_counts=status_counts,
        )


def _mentions(txn: BankTransaction, needle: str) -> bool:
    if needle in txn.description.casefold():
        return True
    return bool(txn.bank_reference) and needle in txn.bank_reference.casefold()
