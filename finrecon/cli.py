"""
Command-line interface for the ledger reconciliation tool.
"""
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich import box

from .config import config
from .exceptions import FinReconError
from .logging_config import setup_logging
from .models import MatchStatus
from .reconciler import LedgerReconciler, create_sample_data
from .reporting import ReportGenerator, STATUS_LABELS, filter_results, format_currency


console = Console()

STATUS_STYLES = {
    MatchStatus.MATCHED: "green",
    MatchStatus.VARIANCE: "yellow",
    MatchStatus.UNMATCHED_BANK: "red",
    MatchStatus.UNMATCHED_BOOK: "dark_orange",
}


@click.group()
@click.version_option(version="1.0.0")
@click.option("--log-level", default=None, help="Log level (default from LOG_LEVEL)")
@click.option("--log-file", type=click.Path(), default=None, help="Also write logs to this file")
@click.option("--json-logs", is_flag=True, help="Emit structured JSON log lines")
def cli(log_level, log_file, json_logs):
    """
    Ledger Reconciliation Tool

    Matches a bank settlement export against a general-ledger export,
    flags variances and orphans, and suggests likely root causes.
    """
    setup_logging(level=log_level or config.log_level, log_file=log_file, json_format=json_logs or None)


@cli.command()
@click.option("--bank-file", "-b", type=click.Path(exists=True), help="Path to bank settlement CSV")
@click.option("--book-file", "-k", type=click.Path(exists=True), help="Path to general-ledger CSV")
@click.option("--output-dir", "-o", type=click.Path(), default=None, help="Output directory for reports")
@click.option("--format", "-f", "formats", multiple=True, default=[],
              type=click.Choice(["excel", "html", "json"]), help="Report formats to write")
@click.option("--status", "-s", "status_filter", default="ALL",
              type=click.Choice(["ALL"] + [s.value for s in MatchStatus], case_sensitive=False),
              help="Only show results with this status")
@click.option("--search", default="", help="Search invoice number, description or document no")
@click.option("--no-narrative", is_flag=True, help="Skip the narrative report")
@click.option("--demo", is_flag=True, help="Run with sample demo data")
def reconcile(bank_file, book_file, output_dir, formats, status_filter, search, no_narrative, demo):
    """
    Run a ledger reconciliation.

    Examples:
        recon reconcile --bank-file bank.csv --book-file book.csv
        recon reconcile --demo --format excel --format html
    """
    console.print(Panel.fit(
        "[bold blue]Ledger Reconciliation Tool[/bold blue]\n"
        "Bank settlement vs general ledger",
        border_style="blue"
    ))

    if not demo and not (bank_file and book_file):
        console.print("[red]Error: --bank-file and --book-file required (or use --demo)[/red]")
        sys.exit(1)

    report_generator = ReportGenerator(Path(output_dir)) if output_dir and formats else None
    reconciler = LedgerReconciler(report_generator=report_generator)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Initializing...", total=None)

        try:
            if demo:
                progress.update(task, description="Loading sample data...")
                bank_records, book_records = create_sample_data()
                progress.update(task, description="Running reconciliation...")
                result = reconciler.reconcile(
                    bank_records=bank_records,
                    book_records=book_records,
                    generate_narrative=not no_narrative,
                    generate_reports=bool(formats),
                    report_formats=list(formats)
                )
            else:
                progress.update(task, description="Parsing ledgers and matching...")
                result = reconciler.reconcile(
                    bank_file=Path(bank_file),
                    book_file=Path(book_file),
                    generate_narrative=not no_narrative,
                    generate_reports=bool(formats),
                    report_formats=list(formats)
                )
        except FinReconError as e:
            progress.stop()
            console.print(f"[red]Error: {e.message}[/red]")
            sys.exit(1)

        progress.update(task, description="Complete!")

    _display_summary(result.summary, result.processing_time_seconds)
    _display_results(filter_results(result.results, status_filter, search))
    _display_narrative(result.narrative, result.narrative_failed)

    if result.report_paths:
        console.print("\n[bold green]Reports Generated:[/bold green]")
        for fmt, path in result.report_paths.items():
            console.print(f"  {fmt.upper()}: {path}")


@cli.command()
def status():
    """Show configuration status."""
    console.print("\n[bold]Configuration Status[/bold]\n")

    table = Table(show_header=False, box=box.SIMPLE)
    table.add_column("Setting", style="cyan")
    table.add_column("Status")

    narrative_ok = config.narrative.is_configured()
    table.add_row(
        "Narrative API Key",
        "[green]Configured[/green]" if narrative_ok else "[yellow]Not configured[/yellow]"
    )
    table.add_row("Narrative Model", config.narrative.model)
    table.add_row("Amount Tolerance", f"{config.matching.amount_epsilon}")
    table.add_row("Smart Fix Date Window", f"{config.matching.date_window_days} days")
    table.add_row("Reports Directory", str(config.reports_dir))

    console.print(table)


def _display_summary(summary, processing_time):
    """Display reconciliation summary."""
    console.print("\n")

    table = Table(title="Reconciliation Summary", box=box.ROUNDED)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Bank Records", str(summary.total_bank))
    table.add_row("Book Records", str(summary.total_book))
    table.add_row("Matched", f"[green]{summary.matched_count}[/green]")
    table.add_row("Variances", f"[yellow]{summary.variance_count}[/yellow]")
    table.add_row("Unmatched (Bank)", f"[red]{summary.unmatched_bank_count}[/red]")
    table.add_row("Unmatched (Book)", f"[red]{summary.unmatched_book_count}[/red]")
    table.add_row("", "")
    table.add_row("Total Variance", format_currency(summary.total_variance_amount))
    table.add_row("Match Rate", f"[bold]{summary.match_rate:.1f}%[/bold]")
    table.add_row("Processing Time", f"{processing_time:.2f}s")

    console.print(table)


def _display_results(results):
    """Display reconciliation details."""
    if not results:
        console.print("\n[yellow]No records found matching your criteria.[/yellow]")
        return

    table = Table(title="Reconciliation Details", box=box.SIMPLE)
    table.add_column("Status")
    table.add_column("Invoice / Description")
    table.add_column("Date")
    table.add_column("Bank", justify="right")
    table.add_column("Book", justify="right")
    table.add_column("Difference", justify="right")
    table.add_column("Smart Fix")

    for r in results:
        style = STATUS_STYLES[r.status]
        bank, book = r.bank_record, r.book_record
        fix = r.smart_fix
        table.add_row(
            f"[{style}]{STATUS_LABELS[r.status]}[/{style}]",
            bank.invoice_number if bank else book.description,
            str(bank.raw_date if bank else book.raw_date),
            format_currency(bank.total_amount) if bank else "-",
            format_currency(book.amount) if book else "-",
            format_currency(r.amount_difference) if r.amount_difference else "-",
            f"{fix.message} ({fix.confidence}%)" if fix else (r.notes or ""),
        )

    console.print(table)


def _display_narrative(narrative, failed):
    if narrative is None:
        return
    style = "yellow" if failed else "blue"
    console.print(Panel(narrative, title="Financial Insight Report", border_style=style))


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
