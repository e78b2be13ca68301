"""
Confidence scoring for a bank transaction against a ledger entry.

The score is a weighted sum of amount, date and description agreement,
plus a flat bonus when the entry's document reference shows up in the bank
description. Weights and partial-credit factors come from MatchingConfig.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional
import re

from ..config import MatchingConfig
from ..models.transaction import BankTransaction, LedgerEntry, to_day
from .similarity import similarity

_NON_ALNUM = re.compile(r"[^0-9a-zA-Z]")
_CENT = Decimal("0.01")


def ledger_amount_for(bank_tx: BankTransaction, entry: LedgerEntry) -> Decimal:
    """
    Ledger amount comparable to a bank transaction.

    An inflow on the bank statement is a debit on the bank register, an
    outflow is a credit. Missing amounts count as zero.
    """
    if bank_tx.is_inflow:
        amount = entry.debit_amount
    else:
        amount = entry.credit_amount
    return amount if amount is not None else Decimal("0")


def days_between(bank_tx: BankTransaction, entry: LedgerEntry) -> int:
    """Absolute distance in calendar days, time of day ignored."""
    return abs((to_day(bank_tx.transaction_date) - to_day(entry.date)).days)


def normalize_reference(value: Optional[str]) -> str:
    """Strip non-alphanumerics and case-fold."""
    if not value:
        return ""
    return _NON_ALNUM.sub("", value).casefold()


def round_score(score: float) -> float:
    """Round half-up to two decimal places."""
    return float(Decimal(repr(score)).quantize(_CENT, rounding=ROUND_HALF_UP))


class ConfidenceScorer:
    """Computes the confidence that a ledger entry is a bank transaction's counterpart."""

    def __init__(self, config: Optional[MatchingConfig] = None):
        """
        Initialize the scorer.

        Args:
            config: Matching configuration; defaults when omitted
        """
        self.config = config or MatchingConfig()
        tolerance = self.config.amount_tolerance
        self._rounding_difference = Decimal(str(tolerance.rounding_difference))
        self._near_difference = Decimal(str(tolerance.near_difference))

    def amount_component(self, bank_tx: BankTransaction, entry: LedgerEntry) -> float:
        weight = self.config.weights.amount
        tolerance = self.config.amount_tolerance

        bank_amount = abs(bank_tx.amount)
        entry_amount = abs(ledger_amount_for(bank_tx, entry))

        if bank_amount == entry_amount:
            return weight

        difference = abs(bank_amount - entry_amount)
        if difference <= self._rounding_difference:
            return weight * tolerance.rounding_factor
        if difference <= self._near_difference:
            return weight * tolerance.near_factor
        return 0.0

    def date_component(self, bank_tx: BankTransaction, entry: LedgerEntry) -> float:
        weight = self.config.weights.date
        proximity = self.config.date_proximity

        days = days_between(bank_tx, entry)
        if days == 0:
            return weight * proximity.same_day
        if days == 1:
            return weight * proximity.one_day
        if days == 2:
            return weight * proximity.two_days
        if days <= proximity.max_days:
            return weight * proximity.within_max_days
        return 0.0

    def description_component(self, bank_tx: BankTransaction, entry: LedgerEntry) -> float:
        return self.config.weights.description * similarity(
            bank_tx.description, entry.description
        )

    def has_reference(self, bank_tx: BankTransaction, entry: LedgerEntry) -> bool:
        """Whether the entry's document reference appears in the bank description."""
        reference = normalize_reference(entry.document_ref)
        if not reference:
            return False
        return reference in normalize_reference(bank_tx.description)

    def score(self, bank_tx: BankTransaction, entry: LedgerEntry) -> float:
        """
        Confidence in [0, 1] rounded to two decimals.

        Args:
            bank_tx: Bank transaction
            entry: Candidate ledger entry

        Returns:
            Confidence score
        """
        score = (
            self.amount_component(bank_tx, entry)
            + self.date_component(bank_tx, entry)
            + self.description_component(bank_tx, entry)
        )

        if self.has_reference(bank_tx, entry):
            score = min(1.0, score + self.config.weights.reference_bonus)

        return round_score(min(1.0, max(0.0, score)))
