#!/usr/bin/env python3
"""
Demo script to showcase the ledger reconciliation tool.

Run this script to see the tool in action with the built-in sample
ledgers. The narrative report is requested only when GEMINI_API_KEY is set.
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from finrecon.config import config
from finrecon.reconciler import LedgerReconciler, create_sample_data
from finrecon.reporting import STATUS_LABELS, format_currency

from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich import box


console = Console()


def main():
    console.print(Panel.fit(
        "[bold blue]Ledger Reconciliation Tool - Demo[/bold blue]\n"
        "[dim]Bank settlement vs general ledger with smart fix suggestions[/dim]",
        border_style="blue"
    ))

    console.print("\n[cyan]Loading sample data...[/cyan]")
    bank_records, book_records = create_sample_data()

    console.print(f"  • Bank records: {len(bank_records)}")
    console.print(f"  • Book records: {len(book_records)}")

    console.print("\n[cyan]Running reconciliation...[/cyan]")
    reconciler = LedgerReconciler()
    result = reconciler.reconcile(
        bank_records=bank_records,
        book_records=book_records,
        generate_narrative=config.narrative.is_configured(),
        generate_reports=True,
        report_formats=["excel", "html", "json"]
    )

    display_summary(result.summary, result.processing_time_seconds)
    display_flagged(result.results)

    if result.narrative:
        console.print(Panel(result.narrative, title="Financial Insight Report"))
    else:
        console.print("\n[yellow]Narrative report skipped (set GEMINI_API_KEY)[/yellow]")

    console.print("\n[bold green]Reports Generated:[/bold green]")
    for fmt, path in result.report_paths.items():
        console.print(f"  [cyan]{fmt.upper()}:[/cyan] {path}")

    console.print("\n[bold green]Demo complete![/bold green]")
    console.print("\nTo run with your own data:")
    console.print("  recon reconcile --bank-file bank.csv --book-file book.csv")


def display_summary(summary, processing_time):
    """Display reconciliation summary."""
    table = Table(title="\nReconciliation Summary", box=box.ROUNDED)
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


def display_flagged(results):
    """Display variances and orphans."""
    flagged = [r for r in results if r.is_flagged]
    if not flagged:
        console.print("\n[green]✓ Every record matched![/green]")
        return

    table = Table(title="\nFlagged Results", box=box.ROUNDED)
    table.add_column("Status")
    table.add_column("Invoice / Description")
    table.add_column("Difference", justify="right")
    table.add_column("Smart Fix")

    for r in flagged:
        table.add_row(
            STATUS_LABELS[r.status],
            r.bank_record.invoice_number if r.bank_record else r.book_record.description,
            format_currency(r.amount_difference),
            f"{r.smart_fix.message} ({r.smart_fix.confidence}%)" if r.smart_fix else "-"
        )

    console.print(table)


if __name__ == "__main__":
    main()
