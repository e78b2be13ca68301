"""
In-memory reconciliation store.

A single re-entrant lock serializes writers. An index from ledger entry id
to the transaction holding it makes the exclusivity check and the write one
step under that lock.
"""

from dataclasses import replace
from datetime import date
from typing import Iterable, Optional
import threading

from ..models.transaction import (
    BankTransaction,
    LedgerEntry,
    ReconciliationStatus,
    RegisterType,
    to_day,
)
from ..utils.exceptions import (
    ExclusivityViolationError,
    InvalidStateTransitionError,
    NotFoundError,
)
from .base import ReconciliationStore, ReconciliationUpdate, check_link_allowed


class InMemoryStore(ReconciliationStore):
    """Thread-safe store keeping transactions and entries in dictionaries."""

    def __init__(self):
        self._lock = threading.RLock()
        self._transactions: dict[str, BankTransaction] = {}
        self._entries: dict[str, LedgerEntry] = {}
        self._claims: dict[str, str] = {}

    def add_transactions(self, transactions: Iterable[BankTransaction]) -> int:
        count = 0
        with self._lock:
            for txn in transactions:
                if txn.id in self._transactions:
                    raise ValueError(f"Duplicate transaction id: {txn.id}")
                check_link_allowed(txn)
                if txn.matched_entry_id:
                    self._claim(txn.matched_entry_id, txn.id)
                self._transactions[txn.id] = txn
                count += 1
        return count

    def add_entries(self, entries: Iterable[LedgerEntry]) -> int:
        count = 0
        with self._lock:
            for entry in entries:
                if entry.id in self._entries:
                    raise ValueError(f"Duplicate ledger entry id: {entry.id}")
                self._entries[entry.id] = entry
                count += 1
        return count

    def get_transaction(self, transaction_id: str) -> Optional[BankTransaction]:
        with self._lock:
            return self._transactions.get(transaction_id)

    def get_entry(self, entry_id: str) -> Optional[LedgerEntry]:
        with self._lock:
            return self._entries.get(entry_id)

    def list_transactions(
        self,
        venue_id: str,
        status: Optional[ReconciliationStatus] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[BankTransaction]:
        with self._lock:
            selected = [
                txn
                for txn in self._transactions.values()
                if txn.venue_id == venue_id
                and (status is None or txn.status == status)
                and _in_range(txn.transaction_date, date_from, date_to)
            ]
        return sorted(selected, key=lambda t: (to_day(t.transaction_date), t.id))

    def list_entries(
        self,
        venue_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[LedgerEntry]:
        with self._lock:
            selected = [
                entry
                for entry in self._entries.values()
                if entry.venue_id == venue_id
                and entry.register == RegisterType.BANK
                and _in_range(entry.date, date_from, date_to)
            ]
        return sorted(selected, key=lambda e: (to_day(e.date), e.id))

    def find_eligible_entries(
        self, venue_id: str, date_from: date, date_to: date
    ) -> list[LedgerEntry]:
        with self._lock:
            return [
                entry
                for entry in self.list_entries(venue_id, date_from, date_to)
                if entry.id not in self._claims
            ]

    def find_holder(self, entry_id: str) -> Optional[BankTransaction]:
        with self._lock:
            holder_id = self._claims.get(entry_id)
            return self._transactions.get(holder_id) if holder_id else None

    def apply_update(
        self,
        transaction_id: str,
        expected_status: ReconciliationStatus,
        update: ReconciliationUpdate,
    ) -> BankTransaction:
        with self._lock:
            current = self._transactions.get(transaction_id)
            if current is None:
                raise NotFoundError("Bank transaction", transaction_id)

            if current.status != expected_status:
                raise InvalidStateTransitionError(
                    f"move to {update.status.value}",
                    current.status,
                    reason=f"expected {expected_status.value}, status changed concurrently",
                )

            new_entry_id = update.matched_entry_id
            if new_entry_id:
                holder_id = self._claims.get(new_entry_id)
                if holder_id is not None and holder_id != transaction_id:
                    raise ExclusivityViolationError(new_entry_id, holder_id)

            updated = replace(
                current,
                status=update.status,
                matched_entry_id=update.matched_entry_id,
                match_confidence=update.match_confidence,
                reconciled_by=update.reconciled_by,
                reconciled_at=update.reconciled_at,
            )

            if current.matched_entry_id and current.matched_entry_id != new_entry_id:
                self._claims.pop(current.matched_entry_id, None)
            if new_entry_id:
                self._claims[new_entry_id] = transaction_id
            self._transactions[transaction_id] = updated

        return updated

    def _claim(self, entry_id: str, transaction_id: str) -> None:
        holder_id = self._claims.get(entry_id)
        if holder_id is not None and holder_id != transaction_id:
            raise ExclusivityViolationError(entry_id, holder_id)
        self._claims[entry_id] = transaction_id


def _in_range(value: date, date_from: Optional[date], date_to: Optional[date]) -> bool:
    day = to_day(value)
    if date_from is not None and day < to_day(date_from):
        return False
    if date_to is not None and day > to_day(date_to):
        return False
    return True
