import logging

import pytest
from click.testing import CliRunner

from bank_ledger_recon.cli import main
from bank_ledger_recon.storage.sql import SqlStore
from bank_ledger_recon.utils.logging_config import PACKAGE_LOGGER

LEDGER_CSV = """\
id,venue_id,date,description,debit_amount,credit_amount,document_ref,register
entry-1,venue-1,2024-03-10,Pagamento fornitore ACME,150.00,,FT-1,BANK
entry-2,venue-1,2024-03-11,Bonifico,150.00,,,BANK
entry-3,venue-1,2024-03-11,Fondo cassa,500.00,,,CASH
"""

BANK_CSV = """\
id,venue_id,transaction_date,description,amount,balance_after
tx-1,venue-1,2024-03-10,PAGAMENTO FORNITORE ACME SRL,150.00,1150.00
tx-2,venue-1,2024-03-11,PAGAMENTO FORNITORE ACME SRL,150.00,1300.00
"""


@pytest.fixture(autouse=True)
def reset_package_logger():
    yield
    logging.getLogger(PACKAGE_LOGGER).handlers = []


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'recon.db'}"


@pytest.fixture
def run(database_url):
    runner = CliRunner()

    def _run(*args, env=None):
        return runner.invoke(main, ["--database", database_url, *args], env=env)

    return _run


@pytest.fixture
def loaded(run, tmp_path):
    ledger = tmp_path / "ledger.csv"
    ledger.write_text(LEDGER_CSV)
    bank = tmp_path / "bank.csv"
    bank.write_text(BANK_CSV)

    result = run("load-ledger", str(ledger))
    assert result.exit_code == 0, result.output
    result = run("load-transactions", str(bank))
    assert result.exit_code == 0, result.output
    return run


def test_version():
    result = CliRunner().invoke(main, ["--version"])
    assert result.exit_code == 0
    assert "0.1.0" in result.output


def test_init_config(tmp_path):
    output = tmp_path / "config.yaml"

    result = CliRunner().invoke(main, ["init-config", "-o", str(output)])

    assert result.exit_code == 0, result.output
    assert output.exists()

    result = CliRunner().invoke(
        main, ["-c", str(output), "--database", "sqlite://", "summary", "venue-1"]
    )
    assert result.exit_code == 0, result.output
    assert "Total Transactions" in result.output


def test_load_reports_counts(run, tmp_path):
    ledger = tmp_path / "ledger.csv"
    ledger.write_text(LEDGER_CSV)

    result = run("load-ledger", str(ledger))

    assert result.exit_code == 0, result.output
    assert "Loaded 3 ledger entries" in result.output


def test_load_malformed_transactions(run, tmp_path, database_url):
    bank = tmp_path / "bank.csv"
    bank.write_text(BANK_CSV + "tx-3,venue-1,2024-03-12,Commissioni,0,\n")

    result = run("load-transactions", str(bank))

    assert result.exit_code == 1
    assert "row 2" in result.output
    store = SqlStore(database_url)
    assert store.list_transactions("venue-1") == []
    store.close()


def test_reconcile_and_review_workflow(loaded, database_url):
    result = loaded("reconcile", "venue-1")
    assert result.exit_code == 0, result.output
    assert "Matched: 1" in result.output
    assert "To review: 1" in result.output

    result = loaded("show", "tx-2")
    assert result.exit_code == 0, result.output
    assert "TO_REVIEW" in result.output
    assert "entry-2" in result.output

    result = loaded("confirm", "tx-2", "--actor", "reviewer-1")
    assert result.exit_code == 0, result.output

    result = loaded("unmatch", "tx-1")
    assert result.exit_code == 0, result.output
    assert "PENDING" in result.output

    result = loaded("match", "tx-1", "entry-1", env={"RECON_ACTOR": "reviewer-2"})
    assert result.exit_code == 0, result.output
    assert "MANUAL" in result.output

    store = SqlStore(database_url)
    tx1 = store.get_transaction("tx-1")
    tx2 = store.get_transaction("tx-2")
    store.close()
    assert tx1.reconciled_by == "reviewer-2"
    assert tx2.status.value == "MATCHED"
    assert tx2.reconciled_by == "reviewer-1"

    result = loaded("summary", "venue-1")
    assert result.exit_code == 0, result.output
    assert "Reconciled Rate" in result.output
    assert "100.0%" in result.output


def test_auto_match_only(loaded):
    result = loaded("reconcile", "venue-1", "--auto-match-only")

    assert result.exit_code == 0, result.output
    assert "Matched: 1" in result.output
    assert "To review: 0" in result.output
    assert "Unmatched: 1" in result.output


def test_confirm_pending_fails(loaded):
    result = loaded("confirm", "tx-1", "--actor", "reviewer-1")

    assert result.exit_code == 1
    assert "nothing to confirm" in result.output


def test_match_requires_actor(loaded):
    result = loaded("match", "tx-1", "entry-1", env={"RECON_ACTOR": None})

    assert result.exit_code == 2


def test_unknown_transaction(loaded):
    result = loaded("show", "tx-404")

    assert result.exit_code == 1
    assert "not found" in result.output


def test_invalid_config_file(tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text("matching:\n  weights:\n    amount: 0.5\n")

    result = CliRunner().invoke(main, ["-c", str(config), "summary", "venue-1"])

    assert result.exit_code == 1
    assert "Invalid configuration" in result.output


def test_list_filters_by_status(loaded):
    result = loaded("reconcile", "venue-1")
    assert result.exit_code == 0, result.output

    result = loaded("list", "venue-1", "--status", "to_review")

    assert result.exit_code == 0, result.output
    assert "tx-2" in result.output
    assert "tx-1" not in result.output
    assert "MATCHED: 1" in result.output
    assert "TO_REVIEW: 1" in result.output


def test_list_search_and_dates(loaded):
    result = loaded("list", "venue-1", "--search", "acme", "--date-from", "2024-03-11")

    assert result.exit_code == 0, result.output
    assert "tx-2" in result.output
    assert "tx-1" not in result.output
    assert "PENDING: 2" in result.output


def test_list_rejects_unknown_status(loaded):
    result = loaded("list", "venue-1", "--status", "DONE")

    assert result.exit_code == 2
