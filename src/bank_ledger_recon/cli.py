"""
Command-line interface for bank statement to ledger reconciliation.
"""

from datetime import datetime
from pathlib import Path
from typing import Optional
import logging
import sys

import click
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from . import __version__
from .config import load_config, generate_default_config, ReconConfig
from .ingest.records import read_records_csv, validate_entries, validate_transactions
from .matching.scoring import ConfidenceScorer
from .models.transaction import (
    ReconcileResult,
    ReconciliationStatus,
    ReconciliationSummary,
    TransactionDetail,
    TransactionListing,
)
from .reconciliation.actions import ReconciliationActions
from .reconciliation.batch import BatchReconciler
from .reconciliation.review import ReconciliationReview
from .storage.sql import SqlStore
from .utils.exceptions import ReconciliationError
from .utils.logging_config import setup_logging

console = Console()

DATE = click.DateTime(formats=["%Y-%m-%d"])


class CliContext:
    """Configuration and lazily opened store shared by subcommands."""

    def __init__(self, config: ReconConfig, database: Optional[str], verbose: bool):
        self.config = config
        self.database_url = database or config.storage.database_url
        self.verbose = verbose
        self._store: Optional[SqlStore] = None

    @property
    def store(self) -> SqlStore:
        if self._store is None:
            self._store = SqlStore(self.database_url, echo=self.config.storage.echo)
        return self._store

    def actions(self) -> ReconciliationActions:
        return ReconciliationActions(self.store, ConfidenceScorer(self.config.matching))

    def review(self) -> ReconciliationReview:
        return ReconciliationReview(self.store, self.config.matching)


pass_context = click.make_pass_decorator(CliContext)


@click.group()
@click.version_option(version=__version__)
@click.option(
    "-c",
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file (YAML)",
)
@click.option("--database", help="SQLAlchemy database URL (overrides configuration)")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.pass_context
def main(ctx: click.Context, config: Optional[Path], database: Optional[str], verbose: bool):
    """Bank statement to ledger reconciliation tool."""
    try:
        recon_config = load_config(config)
    except ReconciliationError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)

    log_level = logging.DEBUG if verbose else recon_config.logging.level
    log_file = Path(recon_config.logging.file) if recon_config.logging.file else None
    setup_logging(log_level, log_file, recon_config.logging.format)

    ctx.obj = CliContext(recon_config, database, verbose)


def _fail(ctx: CliContext, error: Exception) -> None:
    console.print(f"[red]Error: {escape(str(error))}[/red]")
    if ctx.verbose:
        console.print_exception()
    sys.exit(1)


@main.command("init-config")
@click.option(
    "-o", "--output", type=click.Path(path_type=Path), default=Path("config.yaml")
)
def init_config(output: Path):
    """Generate a sample configuration file."""
    generate_default_config(output)
    console.print(f"[green]Configuration file generated: {output}[/green]")


@main.command("load-transactions")
@click.argument("csv_file", type=click.Path(exists=True, path_type=Path))
@click.option("--delimiter", default=",", show_default=True)
@pass_context
def load_transactions(ctx: CliContext, csv_file: Path, delimiter: str):
    """
    Load normalized bank transactions as PENDING.

    CSV_FILE: Columns venue_id, transaction_date, description, amount and
    optionally id, value_date, balance_after, bank_reference
    """
    try:
        transactions = validate_transactions(read_records_csv(csv_file, delimiter=delimiter))
        count = ctx.store.add_transactions(transactions)
    except (ReconciliationError, ValueError) as e:
        _fail(ctx, e)
        return
    console.print(f"[green]Loaded {count} bank transactions[/green]")


@main.command("load-ledger")
@click.argument("csv_file", type=click.Path(exists=True, path_type=Path))
@click.option("--delimiter", default=",", show_default=True)
@pass_context
def load_ledger(ctx: CliContext, csv_file: Path, delimiter: str):
    """
    Load ledger entries.

    CSV_FILE: Columns id, venue_id, date, description, debit_amount,
    credit_amount, document_ref, register
    """
    try:
        entries = validate_entries(read_records_csv(csv_file, delimiter=delimiter))
        count = ctx.store.add_entries(entries)
    except (ReconciliationError, ValueError) as e:
        _fail(ctx, e)
        return
    console.print(f"[green]Loaded {count} ledger entries[/green]")


@main.command()
@click.argument("venue_id")
@click.option("--date-from", type=DATE, default=None, help="Earliest transaction date")
@click.option("--date-to", type=DATE, default=None, help="Latest transaction date")
@click.option(
    "--auto-match-only",
    is_flag=True,
    help="Only link high-confidence matches; nothing is left for review",
)
@pass_context
def reconcile(
    ctx: CliContext,
    venue_id: str,
    date_from: Optional[datetime],
    date_to: Optional[datetime],
    auto_match_only: bool,
):
    """
    Classify the pending transactions of a venue.

    VENUE_ID: Venue whose transactions are reconciled
    """
    reconciler = BatchReconciler(ctx.store, ctx.config.matching)
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            task = progress.add_task(f"Reconciling {venue_id}...", total=None)
            result = reconciler.reconcile(
                venue_id,
                date_from=date_from.date() if date_from else None,
                date_to=date_to.date() if date_to else None,
                auto_match_only=auto_match_only,
            )
            progress.update(task, completed=True)
    except ReconciliationError as e:
        _fail(ctx, e)
        return
    _display_result(result)


@main.command("list")
@click.argument("venue_id")
@click.option(
    "--status",
    type=click.Choice([s.value for s in ReconciliationStatus], case_sensitive=False),
    default=None,
    help="Only transactions in this status",
)
@click.option("--search", default=None, help="Text to find in description or bank reference")
@click.option("--date-from", type=DATE, default=None, help="Earliest transaction date")
@click.option("--date-to", type=DATE, default=None, help="Latest transaction date")
@click.option("--limit", type=click.IntRange(1, 100), default=50, show_default=True)
@pass_context
def list_transactions(
    ctx: CliContext,
    venue_id: str,
    status: Optional[str],
    search: Optional[str],
    date_from: Optional[datetime],
    date_to: Optional[datetime],
    limit: int,
):
    """
    List the transactions of a venue, newest first.

    VENUE_ID: Venue whose transactions are listed
    """
    listing = ctx.review().list_transactions(
        venue_id,
        status=ReconciliationStatus(status.upper()) if status else None,
        date_from=date_from.date() if date_from else None,
        date_to=date_to.date() if date_to else None,
        search=search,
        limit=limit,
    )
    _display_listing(listing)


@main.command()
@click.argument("transaction_id")
@click.option("--limit", type=int, default=None, help="Number of candidates to show")
@pass_context
def show(ctx: CliContext, transaction_id: str, limit: Optional[int]):
    """Show a transaction with its link and match candidates."""
    try:
        detail = ctx.review().transaction_detail(transaction_id, limit=limit)
    except ReconciliationError as e:
        _fail(ctx, e)
        return
    _display_detail(detail)


@main.command()
@click.argument("transaction_id")
@click.option("--actor", required=True, envvar="RECON_ACTOR", help="Reviewer id")
@pass_context
def confirm(ctx: CliContext, transaction_id: str, actor: str):
    """Confirm the suggested match of a transaction under review."""
    try:
        txn = ctx.actions().confirm(transaction_id, actor)
    except ReconciliationError as e:
        _fail(ctx, e)
        return
    console.print(f"[green]{txn.id}: {txn.status.value} -> {txn.matched_entry_id}[/green]")


@main.command()
@click.argument("transaction_id")
@click.argument("entry_id")
@click.option("--actor", required=True, envvar="RECON_ACTOR", help="Reviewer id")
@pass_context
def match(ctx: CliContext, transaction_id: str, entry_id: str, actor: str):
    """Manually link a transaction to a ledger entry."""
    try:
        txn = ctx.actions().manual_match(transaction_id, entry_id, actor)
    except ReconciliationError as e:
        _fail(ctx, e)
        return
    console.print(
        f"[green]{txn.id}: {txn.status.value} -> {txn.matched_entry_id} "
        f"(confidence {txn.match_confidence:.2f})[/green]"
    )


@main.command()
@click.argument("transaction_id")
@click.option("--actor", required=True, envvar="RECON_ACTOR", help="Reviewer id")
@pass_context
def ignore(ctx: CliContext, transaction_id: str, actor: str):
    """Mark a transaction as not needing a ledger counterpart."""
    try:
        txn = ctx.actions().ignore(transaction_id, actor)
    except ReconciliationError as e:
        _fail(ctx, e)
        return
    console.print(f"[green]{txn.id}: {txn.status.value}[/green]")


@main.command()
@click.argument("transaction_id")
@pass_context
def unmatch(ctx: CliContext, transaction_id: str):
    """Drop a transaction's link and return it to PENDING."""
    try:
        txn = ctx.actions().unmatch(transaction_id)
    except ReconciliationError as e:
        _fail(ctx, e)
        return
    console.print(f"[green]{txn.id}: {txn.status.value}[/green]")


@main.command()
@click.argument("venue_id")
@click.option("--date-from", type=DATE, default=None)
@click.option("--date-to", type=DATE, default=None)
@pass_context
def summary(
    ctx: CliContext,
    venue_id: str,
    date_from: Optional[datetime],
    date_to: Optional[datetime],
):
    """Show status counts and balances for a venue."""
    result = ctx.review().summarize(
        venue_id,
        date_from=date_from.date() if date_from else None,
        date_to=date_to.date() if date_to else None,
    )
    _display_summary(result)


def _display_result(result: ReconcileResult) -> None:
    """Display batch reconciliation counts and outcomes."""
    table = Table(title="Reconciliation Results")
    table.add_column("Transaction")
    table.add_column("Status")
    table.add_column("Entry")
    table.add_column("Confidence", justify="right")

    for outcome in result.transactions[:50]:
        table.add_row(
            outcome.transaction_id,
            outcome.status.value,
            outcome.matched_entry_id or "-",
            f"{outcome.match_confidence:.2f}" if outcome.match_confidence is not None else "-",
        )

    if result.transactions:
        console.print(table)
        if len(result.transactions) > 50:
            console.print(f"\n... and {len(result.transactions) - 50} more transactions")

    console.print(
        f"\nMatched: [green]{result.matched_count}[/green]  "
        f"To review: [yellow]{result.to_review_count}[/yellow]  "
        f"Unmatched: [red]{result.unmatched_count}[/red]"
    )
    if result.cancelled:
        console.print("[yellow]Run cancelled; remaining transactions stay PENDING[/yellow]")


def _display_detail(detail: TransactionDetail) -> None:
    """Display one transaction and its candidates."""
    txn = detail.transaction
    console.print(f"[bold]{txn.id}[/bold]  {txn.transaction_date}  {txn.amount:,.2f}")
    console.print(escape(txn.description))
    console.print(f"Status: {txn.status.value}")
    if detail.matched_entry:
        entry = detail.matched_entry
        confidence = f"{txn.match_confidence:.2f}" if txn.match_confidence is not None else "-"
        console.print(
            f"Linked to {entry.id} ({entry.date}, {escape(entry.description)}), confidence {confidence}"
        )

    if not detail.candidates:
        return

    table = Table(title="Match Candidates")
    table.add_column("Entry")
    table.add_column("Date")
    table.add_column("Amount", justify="right")
    table.add_column("Reference")
    table.add_column("Description")
    table.add_column("Confidence", justify="right")

    for candidate in detail.candidates:
        table.add_row(
            candidate.entry_id,
            str(candidate.date),
            f"{candidate.amount:,.2f}",
            candidate.document_ref or "-",
            (
                candidate.description[:40] + "..."
                if len(candidate.description) > 40
                else candidate.description
            ),
            f"{candidate.confidence:.2f}",
        )

    console.print(table)


def _display_listing(listing: TransactionListing) -> None:
    """Display a page of transactions and the venue's status counts."""
    if listing.transactions:
        table = Table(title="Bank Transactions")
        table.add_column("Transaction")
        table.add_column("Date")
        table.add_column("Amount", justify="right")
        table.add_column("Status")
        table.add_column("Entry")
        table.add_column("Confidence", justify="right")
        table.add_column("Description")

        for txn in listing.transactions:
            description = txn.description
            if len(description) > 40:
                description = description[:40] + "..."
            table.add_row(
                escape(txn.id),
                str(txn.transaction_date),
                f"{txn.amount:,.2f}",
                txn.status.value,
                escape(txn.matched_entry_id) if txn.matched_entry_id else "-",
                f"{txn.match_confidence:.2f}" if txn.match_confidence is not None else "-",
                escape(description),
            )

        console.print(table)
        if listing.total > len(listing.transactions):
            console.print(f"\n... and {listing.total - len(listing.transactions)} more transactions")
    else:
        console.print("[yellow]No transactions found[/yellow]")

    counts = "  ".join(
        f"{status.value}: {count}" for status, count in listing.status_counts.items() if count
    )
    console.print(f"\n{counts or 'No transactions for this venue'}")


def _display_summary(summary: ReconciliationSummary) -> None:
    """Display reconciliation summary in console."""
    table = Table(title=f"Reconciliation Summary: {summary.venue_id}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Total Transactions", str(summary.total_transactions))
    table.add_row("Matched", str(summary.matched))
    table.add_row("To Review", str(summary.to_review))
    table.add_row("Unmatched", str(summary.unmatched))
    table.add_row("Ignored", str(summary.ignored))
    table.add_row("Pending", str(summary.pending))
    table.add_row("Reconciled Rate", f"{summary.reconciled_rate:.1f}%")
    table.add_row("Bank Balance", f"{summary.bank_balance:,.2f}")
    table.add_row("Ledger Balance", f"{summary.ledger_balance:,.2f}")
    table.add_row("Difference", f"{summary.difference:,.2f}")

    console.print(table)


if __name__ == "__main__":
    main()
