"""
Intake of normalized records from the statement import and the ledger.

Records are validated here before anything enters the PENDING pool; a bad
record raises MalformedInputError and nothing from the batch is accepted.
Raw statement formats are parsed upstream; this module only reads
already-normalized rows (e.g. a CSV with one column per field).
"""

from datetime import date, datetime
import datetime as dt
from decimal import Decimal
from pathlib import Path
from typing import Any, Iterable, Optional
import logging
import uuid

import pandas as pd
from pydantic import BaseModel, Field, ValidationError, field_validator

from ..models.transaction import BankTransaction, LedgerEntry, RegisterType
from ..utils.exceptions import MalformedInputError

logger = logging.getLogger(__name__)


def generate_id() -> str:
    return str(uuid.uuid4())


class _Record(BaseModel):
    @field_validator("*", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


def _truncate_to_day(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and len(value) > 10 and value[10] in "T ":
        return value[:10]
    return value


class BankTransactionRecord(_Record):
    """A normalized bank-statement line."""

    id: str = Field(default_factory=generate_id)
    venue_id: str = Field(min_length=1)
    transaction_date: date
    description: str = Field(min_length=1, max_length=500)
    amount: Decimal
    value_date: Optional[date] = None
    balance_after: Optional[Decimal] = None
    bank_reference: Optional[str] = Field(default=None, max_length=100)

    @field_validator("transaction_date", "value_date", mode="before")
    @classmethod
    def _day(cls, value: Any) -> Any:
        return _truncate_to_day(value)

    @field_validator("id", mode="before")
    @classmethod
    def _id(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return generate_id()
        return value

    @field_validator("amount")
    @classmethod
    def _non_zero(cls, value: Decimal) -> Decimal:
        if not value.is_finite():
            raise ValueError("amount must be a finite number")
        if value == 0:
            raise ValueError("amount must not be zero")
        return value

    def to_transaction(self) -> BankTransaction:
        return BankTransaction(
            id=self.id,
            venue_id=self.venue_id,
            transaction_date=self.transaction_date,
            description=self.description,
            amount=self.amount,
            value_date=self.value_date,
            balance_after=self.balance_after,
            bank_reference=self.bank_reference,
        )


class LedgerEntryRecord(_Record):
    """A journal entry exported by the accounting subsystem."""

    id: str = Field(min_length=1)
    venue_id: str = Field(min_length=1)
    date: dt.date
    description: Optional[str] = None
    debit_amount: Optional[Decimal] = Field(default=None, ge=0)
    credit_amount: Optional[Decimal] = Field(default=None, ge=0)
    document_ref: Optional[str] = Field(default=None, max_length=100)
    register_type: RegisterType = Field(default=RegisterType.BANK, alias="register")

    @field_validator("date", mode="before")
    @classmethod
    def _day(cls, value: Any) -> Any:
        return _truncate_to_day(value)

    @field_validator("register_type", mode="before")
    @classmethod
    def _register(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().upper()
        return value or RegisterType.BANK

    def to_entry(self) -> LedgerEntry:
        return LedgerEntry(
            id=self.id,
            venue_id=self.venue_id,
            date=self.date,
            description=self.description or "",
            debit_amount=self.debit_amount,
            credit_amount=self.credit_amount,
            document_ref=self.document_ref,
            register=self.register_type,
        )


def validate_transactions(rows: Iterable[dict[str, Any]]) -> list[BankTransaction]:
    """
    Validate normalized bank rows.

    Args:
        rows: Mappings with BankTransactionRecord fields

    Returns:
        PENDING bank transactions

    Raises:
        MalformedInputError: On the first invalid row
    """
    transactions = []
    for idx, row in enumerate(rows):
        try:
            transactions.append(BankTransactionRecord(**row).to_transaction())
        except ValidationError as e:
            raise MalformedInputError(f"Bank transaction row {idx}: {_describe(e)}") from e
    return transactions


def validate_entries(rows: Iterable[dict[str, Any]]) -> list[LedgerEntry]:
    """
    Validate ledger rows.

    Raises:
        MalformedInputError: On the first invalid row
    """
    entries = []
    for idx, row in enumerate(rows):
        try:
            entries.append(LedgerEntryRecord(**row).to_entry())
        except ValidationError as e:
            raise MalformedInputError(f"Ledger entry row {idx}: {_describe(e)}") from e
    return entries


def read_records_csv(
    file_path: Path, delimiter: str = ",", encoding: str = "utf-8"
) -> list[dict[str, Any]]:
    """
    Read a normalized-record CSV into row dictionaries.

    All cells are read as text so amounts keep their exact decimal digits;
    empty cells become None.

    Raises:
        MalformedInputError: If the file cannot be read as CSV
    """
    logger.info(f"Reading records from: {file_path}")
    try:
        df = pd.read_csv(
            file_path,
            delimiter=delimiter,
            encoding=encoding,
            dtype=str,
            keep_default_na=False,
        )
    except (OSError, UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise MalformedInputError(f"Failed to read CSV file {file_path}: {e}") from e

    df.columns = [str(c).strip() for c in df.columns]
    rows = []
    for record in df.to_dict(orient="records"):
        rows.append({k: (v.strip() if v.strip() else None) for k, v in record.items()})

    logger.info(f"Read {len(rows)} rows from {file_path.name}")
    return rows


def _describe(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item.get("loc", ())) or "record"
        parts.append(f"{location}: {item.get('msg')}")
    return "; ".join(parts)
