"""Shared fixtures and builders for the reconciliation test suite."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from bank_ledger_recon.models.transaction import (
    BankTransaction,
    LedgerEntry,
    ReconciliationStatus,
    RegisterType,
)
from bank_ledger_recon.storage.memory import InMemoryStore

VENUE = "venue-1"
FIXED_NOW = datetime(2024, 3, 20, 9, 30, tzinfo=timezone.utc)


def make_tx(
    id: str = "tx-1",
    amount: str = "150.00",
    on: date = date(2024, 3, 10),
    description: str = "PAGAMENTO FORNITORE ACME SRL",
    venue_id: str = VENUE,
    **kwargs,
) -> BankTransaction:
    """Build a bank transaction with sensible defaults."""
    return BankTransaction(
        id=id,
        venue_id=venue_id,
        transaction_date=on,
        description=description,
        amount=Decimal(amount),
        **kwargs,
    )


def make_entry(
    id: str = "entry-1",
    debit: str = "150.00",
    credit: str = None,
    on: date = date(2024, 3, 10),
    description: str = "Pagamento fornitore ACME",
    venue_id: str = VENUE,
    document_ref: str = None,
    register: RegisterType = RegisterType.BANK,
) -> LedgerEntry:
    """Build a ledger entry with sensible defaults."""
    return LedgerEntry(
        id=id,
        venue_id=venue_id,
        date=on,
        description=description,
        debit_amount=Decimal(debit) if debit is not None else None,
        credit_amount=Decimal(credit) if credit is not None else None,
        document_ref=document_ref,
        register=register,
    )


@pytest.fixture
def store():
    """Empty in-memory store for each test."""
    return InMemoryStore()


@pytest.fixture
def clock():
    """Clock returning a fixed timestamp."""
    return lambda: FIXED_NOW


@pytest.fixture
def linked_tx():
    """Builder for a transaction that already holds a link."""

    def _build(
        id: str,
        entry_id: str,
        status: ReconciliationStatus = ReconciliationStatus.TO_REVIEW,
        confidence: float = 0.80,
        **kwargs,
    ) -> BankTransaction:
        return make_tx(
            id=id,
            status=status,
            matched_entry_id=entry_id,
            match_confidence=confidence,
            **kwargs,
        )

    return _build
