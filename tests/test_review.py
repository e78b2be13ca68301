from datetime import date
from decimal import Decimal

import pytest

from bank_ledger_recon.models.transaction import ReconciliationStatus, RegisterType
from bank_ledger_recon.reconciliation.review import ReconciliationReview
from bank_ledger_recon.utils.exceptions import NotFoundError
from tests.conftest import make_entry, make_tx

S = ReconciliationStatus


@pytest.fixture
def review(store):
    return ReconciliationReview(store)


class TestTransactionDetail:
    def test_pending_transaction_lists_candidates(self, store, review):
        store.add_entries([make_entry(id=f"entry-{i:02d}") for i in range(12)])
        store.add_transactions([make_tx(id="tx-1")])

        detail = review.transaction_detail("tx-1")

        assert detail.transaction.id == "tx-1"
        assert detail.matched_entry is None
        assert len(detail.candidates) == 10
        assert detail.candidates[0].entry_id == "entry-00"

    def test_limit(self, store, review):
        store.add_entries([make_entry(id=f"entry-{i}") for i in range(4)])
        store.add_transactions([make_tx(id="tx-1")])

        assert len(review.transaction_detail("tx-1", limit=2).candidates) == 2

    def test_under_review_shows_link_and_alternatives(self, store, review, linked_tx):
        store.add_entries(
            [make_entry(id="entry-1"), make_entry(id="entry-2", on=date(2024, 3, 11))]
        )
        store.add_transactions([linked_tx("tx-1", "entry-1")])

        detail = review.transaction_detail("tx-1")

        assert detail.matched_entry.id == "entry-1"
        # the linked entry is not eligible, only the alternative is offered
        assert [c.entry_id for c in detail.candidates] == ["entry-2"]

    def test_matched_transaction_has_no_candidates(self, store, review, linked_tx):
        store.add_entries([make_entry(id="entry-1"), make_entry(id="entry-2")])
        store.add_transactions([linked_tx("tx-1", "entry-1", status=S.MATCHED)])

        detail = review.transaction_detail("tx-1")

        assert detail.matched_entry.id == "entry-1"
        assert detail.candidates == []

    def test_unknown_transaction(self, review):
        with pytest.raises(NotFoundError):
            review.transaction_detail("missing")


class TestSummary:
    def test_counts_and_balances(self, store, review, linked_tx):
        store.add_entries(
            [
                make_entry(id="entry-1", debit="150.00"),
                make_entry(id="entry-2", debit="200.00"),
                make_entry(id="entry-3", debit=None, credit="80.00"),
                make_entry(id="cash-1", debit="999.00", register=RegisterType.CASH),
            ]
        )
        store.add_transactions(
            [
                linked_tx("tx-1", "entry-1", status=S.MATCHED, balance_after=Decimal("1150.00")),
                linked_tx(
                    "tx-2",
                    "entry-2",
                    status=S.MANUAL,
                    on=date(2024, 3, 11),
                    balance_after=Decimal("1350.00"),
                ),
                linked_tx("tx-3", "entry-3", on=date(2024, 3, 12)),
                make_tx(id="tx-4", status=S.UNMATCHED, on=date(2024, 3, 13)),
                make_tx(id="tx-5", status=S.IGNORED, on=date(2024, 3, 13)),
                make_tx(id="tx-6", on=date(2024, 3, 14)),
                make_tx(id="tx-9", venue_id="venue-2", balance_after=Decimal("5.00")),
            ]
        )

        summary = review.summarize("venue-1")

        assert summary.matched == 2
        assert summary.to_review == 1
        assert summary.unmatched == 1
        assert summary.ignored == 1
        assert summary.pending == 1
        assert summary.total_transactions == 6
        assert summary.bank_balance == Decimal("1350.00")
        assert summary.ledger_balance == Decimal("270.00")
        assert summary.difference == Decimal("1080.00")
        assert summary.reconciled_rate == pytest.approx(100 * 2 / 6)

    def test_date_range(self, store, review):
        store.add_transactions(
            [
                make_tx(id="tx-1", on=date(2024, 3, 1)),
                make_tx(id="tx-2", on=date(2024, 3, 15)),
            ]
        )

        summary = review.summarize("venue-1", date_from=date(2024, 3, 10))

        assert summary.total_transactions == 1
        assert summary.date_from == date(2024, 3, 10)

    def test_empty_venue(self, review):
        summary = review.summarize("venue-1")

        assert summary.total_transactions == 0
        assert summary.reconciled_rate == 0.0
        assert summary.difference == Decimal("0.00")


class TestListTransactions:
    @pytest.fixture
    def loaded(self, store, linked_tx):
        store.add_entries([make_entry(id="entry-1"), make_entry(id="entry-2")])
        store.add_transactions(
            [
                linked_tx("tx-1", "entry-1", status=S.MATCHED, on=date(2024, 3, 10)),
                linked_tx("tx-2", "entry-2", on=date(2024, 3, 12), bank_reference="CRO 998877"),
                make_tx(id="tx-3", on=date(2024, 3, 11), description="Commissioni tenuta conto"),
                make_tx(id="tx-4", on=date(2024, 3, 15), status=S.IGNORED),
                make_tx(id="other-venue", venue_id="venue-2"),
            ]
        )
        return store

    def test_newest_first(self, loaded, review):
        listing = review.list_transactions("venue-1")

        assert [t.id for t in listing.transactions] == ["tx-4", "tx-2", "tx-3", "tx-1"]
        assert listing.total == 4

    def test_status_filter_keeps_venue_counts(self, loaded, review):
        listing = review.list_transactions("venue-1", status=S.TO_REVIEW)

        assert [t.id for t in listing.transactions] == ["tx-2"]
        assert listing.total == 1
        assert listing.status_counts[S.MATCHED] == 1
        assert listing.status_counts[S.TO_REVIEW] == 1
        assert listing.status_counts[S.PENDING] == 1
        assert listing.status_counts[S.IGNORED] == 1
        assert listing.status_counts[S.UNMATCHED] == 0

    def test_search_description_ignores_case(self, loaded, review):
        listing = review.list_transactions("venue-1", search="COMMISSIONI")

        assert [t.id for t in listing.transactions] == ["tx-3"]

    def test_search_bank_reference(self, loaded, review):
        listing = review.list_transactions("venue-1", search="cro 9988")

        assert [t.id for t in listing.transactions] == ["tx-2"]

    def test_date_range(self, loaded, review):
        listing = review.list_transactions(
            "venue-1", date_from=date(2024, 3, 11), date_to=date(2024, 3, 12)
        )

        assert [t.id for t in listing.transactions] == ["tx-2", "tx-3"]

    def test_limit_reports_total(self, loaded, review):
        listing = review.list_transactions("venue-1", limit=2)

        assert [t.id for t in listing.transactions] == ["tx-4", "tx-2"]
        assert listing.total == 4

    def test_unknown_venue(self, review):
        listing = review.list_transactions("venue-404")

        assert listing.transactions == []
        assert listing.total == 0
        assert set(listing.status_counts.values()) == {0}
