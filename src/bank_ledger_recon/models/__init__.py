"""Data models for reconciliation."""

from .transaction import (
    BankTransaction,
    LedgerEntry,
    MatchCandidate,
    ReconciliationStatus,
    RegisterType,
    ReconcileResult,
    ReconciliationSummary,
    TransactionDetail,
    TransactionListing,
    TransactionOutcome,
    LINKED_STATUSES,
    to_day,
)

__all__ = [
    "BankTransaction",
    "LedgerEntry",
    "MatchCandidate",
    "ReconciliationStatus",
    "RegisterType",
    "ReconcileResult",
    "ReconciliationSummary",
    "TransactionDetail",
    "TransactionListing",
    "TransactionOutcome",
    "LINKED_STATUSES",
    "to_day",
]
