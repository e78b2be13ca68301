"""
Candidate search for a bank transaction.
Queries unlinked bank-register entries in a date window and ranks them.
"""

from datetime import timedelta
from typing import AbstractSet, Optional
import logging

from ..config import MatchingConfig
from ..models.transaction import BankTransaction, MatchCandidate, to_day
from ..storage.base import LedgerStore
from .scoring import ConfidenceScorer, days_between, ledger_amount_for

logger = logging.getLogger(__name__)


class CandidateFinder:
    """
    Finds and ranks ledger entries that may match a bank transaction.

    The finder never writes; eligibility (bank register, not yet linked) is
    answered by the ledger store.
    """

    def __init__(
        self,
        ledger: LedgerStore,
        config: Optional[MatchingConfig] = None,
        scorer: Optional[ConfidenceScorer] = None,
    ):
        """
        Initialize the finder.

        Args:
            ledger: Store answering eligible-entry queries
            config: Matching configuration
            scorer: Scorer to use; built from config when omitted
        """
        self.ledger = ledger
        self.config = config or MatchingConfig()
        self.scorer = scorer or ConfidenceScorer(self.config)

    def find_candidates(
        self,
        bank_tx: BankTransaction,
        venue_id: str,
        limit: Optional[int] = None,
        exclude: AbstractSet[str] = frozenset(),
    ) -> list[MatchCandidate]:
        """
        Rank eligible ledger entries for a bank transaction.

        Args:
            bank_tx: Transaction to find counterparts for
            venue_id: Venue whose ledger is searched
            limit: Maximum number of candidates (config default when omitted)
            exclude: Entry ids to leave out, e.g. entries already claimed
                earlier in the same batch run

        Returns:
            Candidates above the noise floor, best first
        """
        settings = self.config.candidates
        if limit is None:
            limit = settings.default_limit

        day = to_day(bank_tx.transaction_date)
        window = timedelta(days=settings.window_days)
        entries = self.ledger.find_eligible_entries(venue_id, day - window, day + window)

        scored = []
        for entry in entries:
            if entry.id in exclude:
                continue
            confidence = self.scorer.score(bank_tx, entry)
            if confidence <= settings.min_confidence:
                continue
            candidate = MatchCandidate(
                entry_id=entry.id,
                date=entry.date,
                description=entry.description,
                amount=ledger_amount_for(bank_tx, entry),
                document_ref=entry.document_ref,
                confidence=confidence,
            )
            scored.append((candidate, days_between(bank_tx, entry)))

        scored.sort(key=lambda item: (-item[0].confidence, item[1], item[0].entry_id))

        logger.debug(
            f"Transaction {bank_tx.id}: {len(entries)} entries in window, "
            f"{len(scored)} above {settings.min_confidence}"
        )

        return [candidate for candidate, _ in scored[:limit]]
