"""
Main reconciliation orchestrator.

Coordinates all components to perform a ledger reconciliation:
1. Parse bank and book exports (unless records are passed in)
2. Run the matching cascade
3. Attach smart fixes
4. Summarize
5. Request a narrative report (failures degrade to a fallback message)
6. Write reports
"""
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from .config import config, MatchingConfig
from .exceptions import FinReconError, ReportError
from .ledger_parser import LedgerParser, SAMPLE_BANK_CSV, SAMPLE_BOOK_CSV
from .logging_config import (
    get_logger, log_error, log_narrative_fallback, log_report_written,
    log_reconciliation_start, log_reconciliation_complete
)
from .matching_engine import MatchingCascade
from .models import BankRecord, BookRecord, ReconResult, ReconSummary
from .narrative import NarrativeGenerator
from .reporting import ReportGenerator
from .smart_fix import SmartFixAdvisor, unmatched_bank_records
from .summary import SummaryAggregator

logger = get_logger("reconciler")

NARRATIVE_FALLBACK_MESSAGE = (
    "<p>Analysis unavailable. Please ensure a valid API key is configured.</p>"
)


@dataclass
class ReconciliationResult:
    """Complete result of a reconciliation run."""
    run_id: str
    results: List[ReconResult]
    summary: ReconSummary
    narrative: Optional[str] = None
    narrative_failed: bool = False
    processing_time_seconds: float = 0.0
    report_paths: Dict[str, Path] = field(default_factory=dict)


class LedgerReconciler:
    """
    Runs the full reconciliation pipeline.

    Usage:
        reconciler = LedgerReconciler()
        result = reconciler.reconcile(
            bank_file="bank.csv",
            book_file="book.csv"
        )
    """

    def __init__(
        self,
        matching_cfg: Optional[MatchingConfig] = None,
        narrator: Optional[NarrativeGenerator] = None,
        report_generator: Optional[ReportGenerator] = None
    ):
        cfg = matching_cfg or config.matching
        self.parser = LedgerParser()
        self.cascade = MatchingCascade(cfg)
        self.advisor = SmartFixAdvisor(cfg)
        self.aggregator = SummaryAggregator()
        self._narrator = narrator
        self._report_generator = report_generator

    @property
    def narrator(self) -> NarrativeGenerator:
        if self._narrator is None:
            self._narrator = NarrativeGenerator()
        return self._narrator

    @property
    def report_generator(self) -> ReportGenerator:
        if self._report_generator is None:
            self._report_generator = ReportGenerator(config.reports_dir)
        return self._report_generator

    def run_core(
        self,
        bank_records: Sequence[BankRecord],
        book_records: Sequence[BookRecord]
    ) -> Tuple[List[ReconResult], ReconSummary]:
        """Cascade, advisor and summary only. Never raises on parsed input."""
        results = self.cascade.match(bank_records, book_records)
        # Pool is captured once so every book record sees the same candidates
        pool = unmatched_bank_records(results)
        results = self.advisor.advise(results, pool)
        return results, self.aggregator.summarize(results)

    def reconcile(
        self,
        bank_records: Optional[Sequence[BankRecord]] = None,
        book_records: Optional[Sequence[BookRecord]] = None,
        bank_file: Optional[Path] = None,
        book_file: Optional[Path] = None,
        generate_narrative: bool = True,
        generate_reports: bool = False,
        report_formats: List[str] = None
    ) -> ReconciliationResult:
        """
        Perform a reconciliation.

        Args:
            bank_records: Pre-parsed bank records (alternative to bank_file)
            book_records: Pre-parsed book records (alternative to book_file)
            bank_file: Path to the bank settlement CSV
            book_file: Path to the general-ledger CSV
            generate_narrative: Whether to request a narrative report
            generate_reports: Whether to write report files
            report_formats: Report formats to generate ("excel", "json", "html")

        Returns:
            ReconciliationResult with results, summary, narrative and report paths
        """
        start_time = time.time()
        run_id = str(uuid.uuid4())
        report_formats = report_formats or ["excel", "html"]

        if bank_records is None:
            bank_records = self.parser.parse_bank_file(Path(bank_file)) if bank_file else []
        if book_records is None:
            book_records = self.parser.parse_book_file(Path(book_file)) if book_file else []

        log_reconciliation_start(logger, run_id, len(bank_records), len(book_records))

        results, summary = self.run_core(bank_records, book_records)

        narrative = None
        narrative_failed = False
        if generate_narrative:
            narrative, narrative_failed = self._generate_narrative(run_id, summary, results)

        processing_time = time.time() - start_time
        log_reconciliation_complete(
            logger,
            run_id,
            summary.matched_count,
            len(results) - summary.matched_count,
            summary.match_rate,
            processing_time
        )

        outcome = ReconciliationResult(
            run_id=run_id,
            results=results,
            summary=summary,
            narrative=narrative,
            narrative_failed=narrative_failed,
            processing_time_seconds=processing_time,
        )

        if generate_reports:
            outcome.report_paths = self._write_reports(outcome, report_formats)

        return outcome

    def reconcile_from_dataframes(self, bank_df, book_df, **kwargs) -> ReconciliationResult:
        """
        Reconcile from pandas DataFrames.

        Useful for Jupyter notebooks or when data is already loaded.
        """
        return self.reconcile(
            bank_records=self.parser.parse_bank_dataframe(bank_df),
            book_records=self.parser.parse_book_dataframe(book_df),
            **kwargs
        )

    def _generate_narrative(
        self,
        run_id: str,
        summary: ReconSummary,
        results: List[ReconResult]
    ) -> Tuple[str, bool]:
        """Request the narrative; any failure yields the fallback message."""
        try:
            return self.narrator.generate(summary, results), False
        except FinReconError as e:
            log_narrative_fallback(logger, run_id, e)
        except Exception as e:
            log_error(logger, e, context="narrative_generation", extra={"run_id": run_id})
        return NARRATIVE_FALLBACK_MESSAGE, True

    def _write_reports(
        self,
        outcome: ReconciliationResult,
        report_formats: List[str]
    ) -> Dict[str, Path]:
        writers = {
            "excel": (self.report_generator.generate_excel_report, "xlsx"),
            "json": (self.report_generator.generate_json_report, "json"),
            "html": (self.report_generator.generate_html_report, "html"),
        }
        unknown = [fmt for fmt in report_formats if fmt not in writers]
        if unknown:
            raise ReportError(", ".join(unknown), "unsupported report format")

        report_paths = {}
        stem = f"reconciliation_{outcome.run_id[:8]}"
        for fmt in report_formats:
            write, extension = writers[fmt]
            report_paths[fmt] = write(
                outcome.summary, outcome.results, outcome.narrative, filename=f"{stem}.{extension}"
            )
            log_report_written(logger, fmt, report_paths[fmt])

        return report_paths


def create_sample_data() -> Tuple[List[BankRecord], List[BookRecord]]:
    """Built-in demo ledgers: ten fuel-card transactions, one variance."""
    parser = LedgerParser()
    return (
        parser.parse_bank_csv(SAMPLE_BANK_CSV, source="sample_bank.csv"),
        parser.parse_book_csv(SAMPLE_BOOK_CSV, source="sample_book.csv"),
    )
