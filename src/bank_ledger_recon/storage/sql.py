"""
SQLAlchemy-backed reconciliation store.

Exclusivity is a storage-level constraint: bank_transactions.matched_entry_id
is UNIQUE, so two writers racing for one ledger entry cannot both commit.
State changes are conditional UPDATEs on the status the caller read.
"""

from datetime import date
import datetime as dt
from decimal import Decimal
from typing import Iterable, Optional
import logging

from sqlalchemy import (
    Date,
    DateTime,
    Enum as SQLEnum,
    Float,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    create_engine,
    select,
    update as sql_update,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

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

logger = logging.getLogger(__name__)

_IN_MEMORY_URLS = {"sqlite://", "sqlite:///:memory:"}


class Base(DeclarativeBase):
    pass


class LedgerEntryRow(Base):
    """Ledger entries eligible for reconciliation."""

    __tablename__ = "ledger_entries"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    venue_id: Mapped[str] = mapped_column(String(64), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    debit_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    credit_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    document_ref: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    register: Mapped[RegisterType] = mapped_column(
        SQLEnum(RegisterType, native_enum=False, length=16),
        nullable=False,
        default=RegisterType.BANK,
    )

    __table_args__ = (Index("ix_ledger_entries_venue_register_date", "venue_id", "register", "date"),)


class BankTransactionRow(Base):
    """Imported bank-statement transactions and their reconciliation state."""

    __tablename__ = "bank_transactions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    venue_id: Mapped[str] = mapped_column(String(64), nullable=False)
    transaction_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    status: Mapped[ReconciliationStatus] = mapped_column(
        SQLEnum(ReconciliationStatus, native_enum=False, length=16),
        nullable=False,
        default=ReconciliationStatus.PENDING,
    )
    matched_entry_id: Mapped[Optional[str]] = mapped_column(
        String(64), ForeignKey("ledger_entries.id"), nullable=True, unique=True
    )
    match_confidence: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    reconciled_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    reconciled_at: Mapped[Optional[dt.datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    value_date: Mapped[Optional[dt.date]] = mapped_column(Date, nullable=True)
    balance_after: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    bank_reference: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    __table_args__ = (
        Index("ix_bank_transactions_venue_status_date", "venue_id", "status", "transaction_date"),
    )


class SqlStore(ReconciliationStore):
    """Reconciliation store over any SQLAlchemy database URL."""

    def __init__(self, database_url: str, echo: bool = False):
        """
        Initialize the store and create tables if missing.

        Args:
            database_url: SQLAlchemy URL, e.g. "sqlite:///reconciliation.db"
            echo: Log emitted SQL
        """
        if database_url in _IN_MEMORY_URLS:
            # One shared connection, otherwise each session sees an empty database
            self.engine = create_engine(
                database_url,
                echo=echo,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
        else:
            self.engine = create_engine(database_url, echo=echo, pool_pre_ping=True)

        self._session_factory = sessionmaker(self.engine, expire_on_commit=False)
        Base.metadata.create_all(self.engine)
        logger.debug(f"Reconciliation store ready: {self.engine.url!r}")

    def close(self) -> None:
        self.engine.dispose()

    def add_transactions(self, transactions: Iterable[BankTransaction]) -> int:
        rows = []
        for txn in transactions:
            check_link_allowed(txn)
            rows.append(_transaction_to_row(txn))
        self._add_rows(rows, "bank transactions")
        return len(rows)

    def add_entries(self, entries: Iterable[LedgerEntry]) -> int:
        rows = [_entry_to_row(entry) for entry in entries]
        self._add_rows(rows, "ledger entries")
        return len(rows)

    def _add_rows(self, rows: list, kind: str) -> None:
        with self._session_factory() as session:
            session.add_all(rows)
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise ValueError(f"Rejected {kind}: {e.orig}") from e

    def get_transaction(self, transaction_id: str) -> Optional[BankTransaction]:
        with self._session_factory() as session:
            row = session.get(BankTransactionRow, transaction_id)
            return _row_to_transaction(row) if row else None

    def get_entry(self, entry_id: str) -> Optional[LedgerEntry]:
        with self._session_factory() as session:
            row = session.get(LedgerEntryRow, entry_id)
            return _row_to_entry(row) if row else None

    def list_transactions(
        self,
        venue_id: str,
        status: Optional[ReconciliationStatus] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[BankTransaction]:
        stmt = select(BankTransactionRow).where(BankTransactionRow.venue_id == venue_id)
        if status is not None:
            stmt = stmt.where(BankTransactionRow.status == status)
        if date_from is not None:
            stmt = stmt.where(BankTransactionRow.transaction_date >= to_day(date_from))
        if date_to is not None:
            stmt = stmt.where(BankTransactionRow.transaction_date <= to_day(date_to))
        stmt = stmt.order_by(BankTransactionRow.transaction_date, BankTransactionRow.id)

        with self._session_factory() as session:
            return [_row_to_transaction(row) for row in session.scalars(stmt)]

    def list_entries(
        self,
        venue_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[LedgerEntry]:
        stmt = self._bank_entries(venue_id, date_from, date_to)
        with self._session_factory() as session:
            return [_row_to_entry(row) for row in session.scalars(stmt)]

    def find_eligible_entries(
        self, venue_id: str, date_from: date, date_to: date
    ) -> list[LedgerEntry]:
        linked = (
            select(BankTransactionRow.id)
            .where(BankTransactionRow.matched_entry_id == LedgerEntryRow.id)
            .exists()
        )
        stmt = self._bank_entries(venue_id, date_from, date_to).where(~linked)
        with self._session_factory() as session:
            return [_row_to_entry(row) for row in session.scalars(stmt)]

    def _bank_entries(
        self, venue_id: str, date_from: Optional[date], date_to: Optional[date]
    ):
        stmt = select(LedgerEntryRow).where(
            LedgerEntryRow.venue_id == venue_id,
            LedgerEntryRow.register == RegisterType.BANK,
        )
        if date_from is not None:
            stmt = stmt.where(LedgerEntryRow.date >= to_day(date_from))
        if date_to is not None:
            stmt = stmt.where(LedgerEntryRow.date <= to_day(date_to))
        return stmt.order_by(LedgerEntryRow.date, LedgerEntryRow.id)

    def find_holder(self, entry_id: str) -> Optional[BankTransaction]:
        stmt = select(BankTransactionRow).where(BankTransactionRow.matched_entry_id == entry_id)
        with self._session_factory() as session:
            row = session.scalars(stmt).first()
            return _row_to_transaction(row) if row else None

    def apply_update(
        self,
        transaction_id: str,
        expected_status: ReconciliationStatus,
        update: ReconciliationUpdate,
    ) -> BankTransaction:
        stmt = (
            sql_update(BankTransactionRow)
            .where(
                BankTransactionRow.id == transaction_id,
                BankTransactionRow.status == expected_status,
            )
            .values(
                status=update.status,
                matched_entry_id=update.matched_entry_id,
                match_confidence=update.match_confidence,
                reconciled_by=update.reconciled_by,
                reconciled_at=_as_utc(update.reconciled_at),
            )
            .execution_options(synchronize_session=False)
        )

        with self._session_factory() as session:
            try:
                result = session.execute(stmt)
            except IntegrityError as e:
                session.rollback()
                holder = self.find_holder(update.matched_entry_id)
                raise ExclusivityViolationError(
                    update.matched_entry_id, holder.id if holder else None
                ) from e

            if result.rowcount == 0:
                session.rollback()
                current = session.get(BankTransactionRow, transaction_id)
                if current is None:
                    raise NotFoundError("Bank transaction", transaction_id)
                raise InvalidStateTransitionError(
                    f"move to {update.status.value}",
                    current.status,
                    reason=f"expected {expected_status.value}, status changed concurrently",
                )

            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                holder = self.find_holder(update.matched_entry_id)
                raise ExclusivityViolationError(
                    update.matched_entry_id, holder.id if holder else None
                ) from e

            row = session.get(BankTransactionRow, transaction_id, populate_existing=True)
            return _row_to_transaction(row)


def _transaction_to_row(txn: BankTransaction) -> BankTransactionRow:
    return BankTransactionRow(
        id=txn.id,
        venue_id=txn.venue_id,
        transaction_date=to_day(txn.transaction_date),
        description=txn.description,
        amount=txn.amount,
        status=txn.status,
        matched_entry_id=txn.matched_entry_id,
        match_confidence=txn.match_confidence,
        reconciled_by=txn.reconciled_by,
        reconciled_at=_as_utc(txn.reconciled_at),
        value_date=txn.value_date,
        balance_after=txn.balance_after,
        bank_reference=txn.bank_reference,
    )


def _row_to_transaction(row: BankTransactionRow) -> BankTransaction:
    return BankTransaction(
        id=row.id,
        venue_id=row.venue_id,
        transaction_date=row.transaction_date,
        description=row.description,
        amount=Decimal(row.amount),
        status=ReconciliationStatus(row.status),
        matched_entry_id=row.matched_entry_id,
        match_confidence=row.match_confidence,
        reconciled_by=row.reconciled_by,
        reconciled_at=_as_utc(row.reconciled_at),
        value_date=row.value_date,
        balance_after=Decimal(row.balance_after) if row.balance_after is not None else None,
        bank_reference=row.bank_reference,
    )


def _entry_to_row(entry: LedgerEntry) -> LedgerEntryRow:
    return LedgerEntryRow(
        id=entry.id,
        venue_id=entry.venue_id,
        date=to_day(entry.date),
        description=entry.description,
        debit_amount=entry.debit_amount,
        credit_amount=entry.credit_amount,
        document_ref=entry.document_ref,
        register=entry.register,
    )


def _row_to_entry(row: LedgerEntryRow) -> LedgerEntry:
    return LedgerEntry(
        id=row.id,
        venue_id=row.venue_id,
        date=row.date,
        description=row.description,
        debit_amount=Decimal(row.debit_amount) if row.debit_amount is not None else None,
        credit_amount=Decimal(row.credit_amount) if row.credit_amount is not None else None,
        document_ref=row.document_ref,
        register=RegisterType(row.register),
    )


def _as_utc(value: Optional[dt.datetime]) -> Optional[dt.datetime]:
    # Timestamps are stored in UTC; SQLite returns them without tzinfo
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)
