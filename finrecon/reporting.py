"""
Reconciliation reporting and export functionality.

Generates:
- Excel reports with one worksheet per status bucket
- JSON reports for API consumption
- HTML reports with status badges and the narrative block

Also provides the filtering and formatting helpers shared by the CLI
and the API.
"""
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import List, Dict, Any, Optional, Sequence
import json

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Border, Side
from openpyxl.utils import get_column_letter
from jinja2 import Template

from .exceptions import ReportError
from .models import ReconResult, ReconSummary, MatchStatus

STATUS_LABELS = {
    MatchStatus.MATCHED: "Matched",
    MatchStatus.VARIANCE: "Variance",
    MatchStatus.UNMATCHED_BANK: "Missing in Book",
    MatchStatus.UNMATCHED_BOOK: "Missing in Bank",
}

ALL_STATUSES = "ALL"


def format_currency(amount: Decimal, symbol: str = "฿") -> str:
    """Format an amount as currency, sign before the symbol."""
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


def filter_results(
    results: Sequence[ReconResult],
    status: str = ALL_STATUSES,
    search: str = ""
) -> List[ReconResult]:
    """
    Filter results by status and free-text search.

    The search is case-insensitive over the bank invoice number, the book
    description and the book document number.
    """
    status = (status or ALL_STATUSES).upper()
    term = (search or "").strip().lower()

    filtered = []
    for result in results:
        if status != ALL_STATUSES and result.status.value != status:
            continue
        if term:
            haystack = [
                result.bank_record.invoice_number if result.bank_record else "",
                result.book_record.description if result.book_record else "",
                result.book_record.document_no if result.book_record else "",
            ]
            if not any(term in value.lower() for value in haystack):
                continue
        filtered.append(result)
    return filtered


def result_to_dict(result: ReconResult) -> Dict[str, Any]:
    """Convert a result to a JSON-friendly dictionary."""
    bank = result.bank_record
    book = result.book_record
    fix = result.smart_fix
    return {
        "id": result.id,
        "status": result.status.value,
        "amount_difference": str(result.amount_difference),
        "notes": result.notes,
        "bank_record": {
            "invoice_number": bank.invoice_number,
            "date": bank.raw_date.isoformat(),
            "total_amount": str(bank.total_amount),
            "product": bank.product,
            "fuel_brand": bank.fuel_brand,
        } if bank else None,
        "book_record": {
            "document_no": book.document_no,
            "description": book.description,
            "date": book.raw_date.isoformat(),
            "amount": str(book.amount),
        } if book else None,
        "smart_fix": {
            "type": fix.type.value,
            "message": fix.message,
            "confidence": fix.confidence,
            "suggested_invoice": fix.suggested_record.invoice_number if fix.suggested_record else None,
        } if fix else None,
    }


def summary_to_dict(summary: ReconSummary) -> Dict[str, Any]:
    return {
        "total_bank": summary.total_bank,
        "total_book": summary.total_book,
        "matched_count": summary.matched_count,
        "variance_count": summary.variance_count,
        "unmatched_bank_count": summary.unmatched_bank_count,
        "unmatched_book_count": summary.unmatched_book_count,
        "match_rate": summary.match_rate,
        "total_variance_amount": str(summary.total_variance_amount),
    }


class ReportGenerator:
    """Generates reconciliation reports in various formats."""

    # Excel styling
    HEADER_FILL = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
    HEADER_FONT = Font(bold=True, color="FFFFFF")
    STATUS_FILLS = {
        MatchStatus.MATCHED: PatternFill(start_color="C6EFCE", end_color="C6EFCE", fill_type="solid"),
        MatchStatus.VARIANCE: PatternFill(start_color="FFEB9C", end_color="FFEB9C", fill_type="solid"),
        MatchStatus.UNMATCHED_BANK: PatternFill(start_color="FFC7CE", end_color="FFC7CE", fill_type="solid"),
        MatchStatus.UNMATCHED_BOOK: PatternFill(start_color="F8CBAD", end_color="F8CBAD", fill_type="solid"),
    }
    BORDER = Border(
        left=Side(style='thin'),
        right=Side(style='thin'),
        top=Side(style='thin'),
        bottom=Side(style='thin')
    )
    RESULT_HEADERS = [
        "Result ID", "Status", "Invoice No", "Bank Date", "Bank Amount",
        "Document No", "Book Description", "Book Amount", "Difference",
        "Smart Fix", "Confidence", "Notes"
    ]

    def __init__(self, output_dir: Optional[Path] = None):
        self.output_dir = Path(output_dir or "./reports")
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def generate_excel_report(
        self,
        summary: ReconSummary,
        results: Sequence[ReconResult],
        narrative: Optional[str] = None,
        filename: Optional[str] = None
    ) -> Path:
        """Generate Excel reconciliation workbook."""
        wb = Workbook()
        wb.remove(wb.active)

        self._create_summary_sheet(wb, summary)
        self._create_results_sheet(wb, "All Results", results)
        self._create_results_sheet(wb, "Variances", filter_results(results, MatchStatus.VARIANCE.value))
        self._create_results_sheet(wb, "Unmatched Bank", filter_results(results, MatchStatus.UNMATCHED_BANK.value))
        self._create_results_sheet(wb, "Unmatched Book", filter_results(results, MatchStatus.UNMATCHED_BOOK.value))
        self._create_results_sheet(wb, "Smart Fixes", [r for r in results if r.smart_fix])

        output_path = self.output_dir / (filename or self._default_name("xlsx"))
        try:
            wb.save(output_path)
        except OSError as e:
            raise ReportError("excel", str(e)) from e

        return output_path

    def _create_summary_sheet(self, wb: Workbook, summary: ReconSummary):
        """Create summary dashboard sheet."""
        ws = wb.create_sheet("Summary", 0)

        ws["A1"] = "Ledger Reconciliation Summary"
        ws["A1"].font = Font(bold=True, size=16)
        ws.merge_cells("A1:D1")

        ws["A3"] = "Run Date:"
        ws["B3"] = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

        ws["A5"] = "Record Summary"
        ws["A5"].font = Font(bold=True, size=12)

        count_data = [
            ("Bank Records", summary.total_bank),
            ("Book Records", summary.total_book),
            ("Matched", summary.matched_count),
            ("Variances", summary.variance_count),
            ("Unmatched (Bank)", summary.unmatched_bank_count),
            ("Unmatched (Book)", summary.unmatched_book_count),
        ]

        for i, (label, value) in enumerate(count_data, start=6):
            ws[f"A{i}"] = label
            ws[f"B{i}"] = value

        ws["A13"] = "Total Variance Amount"
        ws["B13"] = float(summary.total_variance_amount)
        ws["B13"].number_format = '#,##0.00'
        ws["A14"] = "Match Rate"
        ws["B14"] = f"{summary.match_rate:.1f}%"

        ws.column_dimensions["A"].width = 25
        ws.column_dimensions["B"].width = 20

    def _create_results_sheet(self, wb: Workbook, title: str, results: Sequence[ReconResult]):
        """Create a sheet listing results with status fills."""
        ws = wb.create_sheet(title)

        for col, header in enumerate(self.RESULT_HEADERS, start=1):
            cell = ws.cell(row=1, column=col, value=header)
            cell.fill = self.HEADER_FILL
            cell.font = self.HEADER_FONT
            cell.border = self.BORDER

        for row_num, result in enumerate(results, start=2):
            bank = result.bank_record
            book = result.book_record
            fix = result.smart_fix

            row_data = [
                result.id,
                STATUS_LABELS[result.status],
                bank.invoice_number if bank else "",
                bank.raw_date if bank else None,
                float(bank.total_amount) if bank else None,
                book.document_no if book else "",
                book.description if book else "",
                float(book.amount) if book else None,
                float(result.amount_difference),
                f"{fix.type.value}: {fix.message}" if fix else "",
                fix.confidence if fix else None,
                result.notes or "",
            ]

            for col, value in enumerate(row_data, start=1):
                cell = ws.cell(row=row_num, column=col, value=value)
                cell.border = self.BORDER
                if col == 2:
                    cell.fill = self.STATUS_FILLS[result.status]

            for col in (5, 8, 9):
                ws.cell(row=row_num, column=col).number_format = '#,##0.00'

        widths = [10, 16, 14, 12, 14, 12, 20, 14, 14, 50, 12, 30]
        for col, width in enumerate(widths, start=1):
            ws.column_dimensions[get_column_letter(col)].width = width

    def generate_json_report(
        self,
        summary: ReconSummary,
        results: Sequence[ReconResult],
        narrative: Optional[str] = None,
        filename: Optional[str] = None
    ) -> Path:
        """Generate JSON report for API consumption or further processing."""
        report_data = {
            "generated_at": datetime.now().isoformat(),
            "summary": summary_to_dict(summary),
            "results": [result_to_dict(r) for r in results],
            "narrative": narrative,
        }

        output_path = self.output_dir / (filename or self._default_name("json"))
        try:
            with open(output_path, 'w', encoding='utf-8') as f:
                json.dump(report_data, f, indent=2, default=str)
        except OSError as e:
            raise ReportError("json", str(e)) from e

        return output_path

    def generate_html_report(
        self,
        summary: ReconSummary,
        results: Sequence[ReconResult],
        narrative: Optional[str] = None,
        filename: Optional[str] = None
    ) -> Path:
        """Generate HTML report for web viewing."""
        html_content = self.render_html(summary, results, narrative)

        output_path = self.output_dir / (filename or self._default_name("html"))
        try:
            with open(output_path, 'w', encoding='utf-8') as f:
                f.write(html_content)
        except OSError as e:
            raise ReportError("html", str(e)) from e

        return output_path

    def render_html(
        self,
        summary: ReconSummary,
        results: Sequence[ReconResult],
        narrative: Optional[str] = None
    ) -> str:
        template = Template(HTML_REPORT_TEMPLATE)
        return template.render(
            summary=summary,
            results=results,
            narrative=narrative,
            labels={status.value: label for status, label in STATUS_LABELS.items()},
            format_currency=format_currency,
            generated_at=datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        )

    @staticmethod
    def _default_name(extension: str) -> str:
        return f"reconciliation_{datetime.now().strftime('%Y%m%d_%H%M%S')}.{extension}"


# HTML Report Template
HTML_REPORT_TEMPLATE = """
<!DOCTYPE html>
<html>
<head>
    <title>Ledger Reconciliation Report</title>
    <style>
        body { font-family: Arial, sans-serif; margin: 20px; background: #f5f5f5; }
        .container { max-width: 1200px; margin: 0 auto; background: white; padding: 20px; border-radius: 8px; box-shadow: 0 2px 4px rgba(0,0,0,0.1); }
        h1 { color: #333; border-bottom: 2px solid #366092; padding-bottom: 10px; }
        h2 { color: #366092; margin-top: 30px; }
        .summary-grid { display: grid; grid-template-columns: repeat(auto-fit, minmax(200px, 1fr)); gap: 20px; margin: 20px 0; }
        .summary-card { background: #f8f9fa; padding: 15px; border-radius: 8px; border-left: 4px solid #366092; }
        .summary-card h3 { margin: 0 0 10px 0; color: #666; font-size: 14px; }
        .summary-card .value { font-size: 24px; font-weight: bold; color: #333; }
        .summary-card .sub { font-size: 12px; color: #666; }
        table { width: 100%; border-collapse: collapse; margin: 20px 0; }
        th, td { padding: 12px; text-align: left; border-bottom: 1px solid #ddd; }
        th { background: #366092; color: white; }
        tr:hover { background: #f5f5f5; }
        .badge { padding: 4px 8px; border-radius: 4px; font-size: 12px; }
        .status-MATCHED { background: #c6efce; color: #006100; }
        .status-VARIANCE { background: #ffeb9c; color: #9c5700; }
        .status-UNMATCHED_BANK { background: #ffc7ce; color: #9c0006; }
        .status-UNMATCHED_BOOK { background: #f8cbad; color: #843c0c; }
        .fix { font-size: 12px; color: #4338ca; }
        .narrative { border: 1px solid #ddd; border-radius: 8px; padding: 15px; margin: 20px 0; }
        .footer { margin-top: 40px; text-align: center; color: #666; font-size: 12px; }
    </style>
</head>
<body>
    <div class="container">
        <h1>Ledger Reconciliation Report</h1>
        <p>Generated: {{ generated_at }}</p>

        <div class="summary-grid">
            <div class="summary-card">
                <h3>Matched</h3>
                <div class="value">{{ summary.matched_count }}</div>
                <div class="sub">{{ "%.1f"|format(summary.match_rate) }}% match rate</div>
            </div>
            <div class="summary-card">
                <h3>Variances</h3>
                <div class="value">{{ summary.variance_count }}</div>
                <div class="sub">Total Diff: {{ format_currency(summary.total_variance_amount) }}</div>
            </div>
            <div class="summary-card">
                <h3>Unmatched (Bank)</h3>
                <div class="value">{{ summary.unmatched_bank_count }}</div>
                <div class="sub">Requires Book entry</div>
            </div>
            <div class="summary-card">
                <h3>Unmatched (Book)</h3>
                <div class="value">{{ summary.unmatched_book_count }}</div>
                <div class="sub">Requires verification</div>
            </div>
        </div>

        {% if narrative %}
        <h2>Financial Insight Report</h2>
        <div class="narrative">{{ narrative }}</div>
        {% endif %}

        <h2>Reconciliation Details ({{ results|length }})</h2>
        <table>
            <thead>
                <tr>
                    <th>Status</th>
                    <th>Invoice / Description</th>
                    <th>Date</th>
                    <th>Bank Amount</th>
                    <th>Book Amount</th>
                    <th>Difference</th>
                    <th>Smart Fix</th>
                </tr>
            </thead>
            <tbody>
                {% for r in results %}
                <tr>
                    <td><span class="badge status-{{ r.status.value }}">{{ labels[r.status.value] }}</span></td>
                    <td>{{ r.bank_record.invoice_number if r.bank_record else r.book_record.description }}</td>
                    <td>{{ r.bank_record.raw_date if r.bank_record else r.book_record.raw_date }}</td>
                    <td>{{ format_currency(r.bank_record.total_amount) if r.bank_record else '-' }}</td>
                    <td>{{ format_currency(r.book_record.amount) if r.book_record else '-' }}</td>
                    <td>{{ format_currency(r.amount_difference) if r.amount_difference else '-' }}</td>
                    <td>
                        {% if r.smart_fix %}<span class="fix">{{ r.smart_fix.message }} ({{ r.smart_fix.confidence }}%)</span>
                        {% elif r.notes %}{{ r.notes }}{% endif %}
                    </td>
                </tr>
                {% endfor %}
            </tbody>
        </table>

        <div class="footer">
            Generated by FinRecon | {{ generated_at }}
        </div>
    </div>
</body>
</html>
"""
