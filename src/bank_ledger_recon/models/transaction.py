"""Data models for bank transactions, ledger entries and reconciliation results."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class ReconciliationStatus(str, Enum):
    """Reconciliation status of a bank transaction."""

    PENDING = "PENDING"
    MATCHED = "MATCHED"
    TO_REVIEW = "TO_REVIEW"
    MANUAL = "MANUAL"
    IGNORED = "IGNORED"
    UNMATCHED = "UNMATCHED"


# Statuses in which a transaction may hold a ledger link
LINKED_STATUSES = frozenset(
    {
        ReconciliationStatus.MATCHED,
        ReconciliationStatus.TO_REVIEW,
        ReconciliationStatus.MANUAL,
    }
)


class RegisterType(str, Enum):
    """Ledger register an entry was posted against."""

    BANK = "BANK"
    CASH = "CASH"


def to_day(value: date) -> date:
    """Truncate a datetime to its calendar day; dates pass through."""
    if isinstance(value, datetime):
        return value.date()
    return value


@dataclass(frozen=True)
class BankTransaction:
    """
    A bank-statement line as handed over by the import process.

    Amount is signed: positive is an inflow, negative an outflow. The
    reconciliation fields (status onwards) are written only by the batch
    reconciler and the reconciliation actions.
    """

    id: str
    venue_id: str
    transaction_date: date
    description: str
    amount: Decimal

    status: ReconciliationStatus = ReconciliationStatus.PENDING
    matched_entry_id: Optional[str] = None
    match_confidence: Optional[float] = None
    reconciled_by: Optional[str] = None
    reconciled_at: Optional[datetime] = None

    # Carried from the statement, not used for matching
    value_date: Optional[date] = None
    balance_after: Optional[Decimal] = None
    bank_reference: Optional[str] = None

    @property
    def is_inflow(self) -> bool:
        return self.amount > 0


@dataclass(frozen=True)
class LedgerEntry:
    """Journal entry from the accounting subsystem, read-only here."""

    id: str
    venue_id: str
    date: date
    description: str
    debit_amount: Optional[Decimal] = None
    credit_amount: Optional[Decimal] = None
    document_ref: Optional[str] = None
    register: RegisterType = RegisterType.BANK


@dataclass(frozen=True)
class MatchCandidate:
    """A ledger entry proposed for a bank transaction, with its confidence."""

    entry_id: str
    date: date
    description: str
    amount: Decimal
    document_ref: Optional[str]
    confidence: float


@dataclass(frozen=True)
class TransactionOutcome:
    """Result of classifying one transaction in a batch run."""

    transaction_id: str
    status: ReconciliationStatus
    matched_entry_id: Optional[str] = None
    match_confidence: Optional[float] = None


@dataclass
class ReconcileResult:
    """Aggregate result of a batch reconciliation run."""

    matched_count: int = 0
    to_review_count: int = 0
    unmatched_count: int = 0
    transactions: list[TransactionOutcome] = field(default_factory=list)
    cancelled: bool = False

    @property
    def processed_count(self) -> int:
        return self.matched_count + self.to_review_count + self.unmatched_count

    def record(self, outcome: TransactionOutcome) -> None:
        """Add one outcome and bump the matching counter."""
        if outcome.status == ReconciliationStatus.MATCHED:
            self.matched_count += 1
        elif outcome.status == ReconciliationStatus.TO_REVIEW:
            self.to_review_count += 1
        else:
            self.unmatched_count += 1
        self.transactions.append(outcome)


@dataclass(frozen=True)
class TransactionDetail:
    """A transaction with its linked entry and candidates for manual review."""

    transaction: BankTransaction
    matched_entry: Optional[LedgerEntry]
    candidates: list[MatchCandidate] = field(default_factory=list)


@dataclass(frozen=True)
class TransactionListing:
    """A page of a venue's transactions with status counts over the whole venue."""

    transactions: list[BankTransaction]
    total: int
    status_counts: dict[ReconciliationStatus, int] = field(default_factory=dict)


@dataclass
class ReconciliationSummary:
    """Status counts and balances for a venue."""

    venue_id: str
    date_from: Optional[date]
    date_to: Optional[date]

    pending: int = 0
    matched: int = 0
    to_review: int = 0
    unmatched: int = 0
    ignored: int = 0

    bank_balance: Decimal = Decimal("0")
    ledger_balance: Decimal = Decimal("0")

    @property
    def total_transactions(self) -> int:
        """All transactions; MANUAL links are counted under matched."""
        return self.pending + self.matched + self.to_review + self.unmatched + self.ignored

    @property
    def difference(self) -> Decimal:
        """Bank balance minus ledger balance, rounded to cents."""
        return (self.bank_balance - self.ledger_balance).quantize(Decimal("0.01"))

    @property
    def reconciled_rate(self) -> float:
        """Percentage of transactions matched or manually linked."""
        if self.total_transactions == 0:
            return 0.0
        return (self.matched / self.total_transactions) * 100
