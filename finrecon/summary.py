"""Reduce a reconciliation result set to summary counters."""
from collections import Counter
from decimal import Decimal
from typing import Sequence

from .models import ReconResult, ReconSummary, MatchStatus


class SummaryAggregator:
    """Pure reduction of results into a ReconSummary."""

    def summarize(self, results: Sequence[ReconResult]) -> ReconSummary:
        counts = Counter(r.status for r in results)
        total_bank = sum(1 for r in results if r.bank_record is not None)
        total_book = sum(1 for r in results if r.book_record is not None)

        # Orphan exposure is excluded from the variance total
        total_variance = sum(
            (abs(r.amount_difference) for r in results if r.status == MatchStatus.VARIANCE),
            Decimal("0")
        )

        matched = counts[MatchStatus.MATCHED]
        denominator = total_bank + total_book
        match_rate = 0.0
        if denominator > 0:
            # One MATCHED result consumes one record from each ledger
            match_rate = min(100.0, max(0.0, (matched * 2) / denominator * 100))

        return ReconSummary(
            total_bank=total_bank,
            total_book=total_book,
            matched_count=matched,
            variance_count=counts[MatchStatus.VARIANCE],
            unmatched_bank_count=counts[MatchStatus.UNMATCHED_BANK],
            unmatched_book_count=counts[MatchStatus.UNMATCHED_BOOK],
            match_rate=match_rate,
            total_variance_amount=total_variance,
        )


def summarize(results: Sequence[ReconResult]) -> ReconSummary:
    """Module-level shortcut for SummaryAggregator().summarize."""
    return SummaryAggregator().summarize(results)
