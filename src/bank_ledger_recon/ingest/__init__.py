"""Validation and loading of normalized records."""

from .records import (
    BankTransactionRecord,
    LedgerEntryRecord,
    read_records_csv,
    validate_entries,
    validate_transactions,
)

__all__ = [
    "BankTransactionRecord",
    "LedgerEntryRecord",
    "read_records_csv",
    "validate_entries",
    "validate_transactions",
]
