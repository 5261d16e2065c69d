"""
Greedy matching cascade between a bank export and a book (GL) export.

Matches bank records to book records using ordered passes:
1. Exact ID match (book description == bank invoice number)
2. Date + amount match (same calendar day, amount within tolerance)
3. Unmatched bank records
4. Unmatched book records

Each pass only sees records that no earlier pass has claimed. Matching is
first-fit in input order, not a minimum-cost assignment.
"""
from decimal import Decimal
from typing import List, Optional, Sequence, Set

from .config import config, MatchingConfig
from .logging_config import get_logger
from .models import BankRecord, BookRecord, ReconResult, MatchStatus

logger = get_logger("matching")

INFERRED_MATCH_NOTE = "Inferred match by Date & Amount"


def amounts_match(amount1: Decimal, amount2: Decimal, epsilon: Decimal) -> bool:
    """Check if two amounts are equal within epsilon (strict)."""
    return abs(amount1 - amount2) < epsilon


class _CascadeBuilder:
    """Accumulates claimed indices and results for one match() call."""

    def __init__(self):
        self.claimed_bank: Set[int] = set()
        self.claimed_book: Set[int] = set()
        self._results: List[ReconResult] = []

    def claim(self, bank_idx: int, book_idx: int):
        self.claimed_bank.add(bank_idx)
        self.claimed_book.add(book_idx)

    def add(
        self,
        status: MatchStatus,
        difference: Decimal,
        bank: Optional[BankRecord] = None,
        book: Optional[BookRecord] = None,
        notes: Optional[str] = None
    ):
        self._results.append(ReconResult(
            id=f"R-{len(self._results) + 1:05d}",
            status=status,
            amount_difference=difference,
            bank_record=bank,
            book_record=book,
            notes=notes,
        ))

    def build(self) -> List[ReconResult]:
        return list(self._results)


class MatchingCascade:
    """
    Partitions two ledgers into matched, variance and orphaned results.

    Every bank record and every book record appears in exactly one result.
    The cascade never raises on well-formed input.
    """

    def __init__(self, cfg: Optional[MatchingConfig] = None):
        self.config = cfg or config.matching

    def match(
        self,
        bank_records: Sequence[BankRecord],
        book_records: Sequence[BookRecord]
    ) -> List[ReconResult]:
        """
        Match bank records to book records.

        Returns:
            Results in pass order: ID matches, date+amount matches,
            bank orphans, book orphans.
        """
        builder = _CascadeBuilder()

        self._match_exact_id(bank_records, book_records, builder)
        self._match_date_amount(bank_records, book_records, builder)

        # Pass 3: bank orphans carry their full exposure
        for idx, bank in enumerate(bank_records):
            if idx not in builder.claimed_bank:
                builder.add(MatchStatus.UNMATCHED_BANK, bank.total_amount, bank=bank)

        # Pass 4: book orphans, negative exposure
        for idx, book in enumerate(book_records):
            if idx not in builder.claimed_book:
                builder.add(MatchStatus.UNMATCHED_BOOK, -book.amount, book=book)

        results = builder.build()
        logger.debug(
            f"Cascade produced {len(results)} results from "
            f"{len(bank_records)} bank / {len(book_records)} book records"
        )
        return results

    def _match_exact_id(
        self,
        bank_records: Sequence[BankRecord],
        book_records: Sequence[BookRecord],
        builder: _CascadeBuilder
    ):
        """Pass 1: book description equals bank invoice number."""
        for bank_idx, bank in enumerate(bank_records):
            book_idx = self._first_unclaimed(
                book_records, builder.claimed_book,
                lambda book: book.description == bank.invoice_number
            )
            if book_idx is None:
                continue

            book = book_records[book_idx]
            builder.claim(bank_idx, book_idx)

            if amounts_match(book.amount, bank.total_amount, self.config.amount_epsilon):
                builder.add(MatchStatus.MATCHED, Decimal("0"), bank=bank, book=book)
            else:
                # Positive: book overstates bank
                builder.add(
                    MatchStatus.VARIANCE,
                    book.amount - bank.total_amount,
                    bank=bank,
                    book=book
                )

    def _match_date_amount(
        self,
        bank_records: Sequence[BankRecord],
        book_records: Sequence[BookRecord],
        builder: _CascadeBuilder
    ):
        """Pass 2: same calendar day and amount within tolerance."""
        for bank_idx, bank in enumerate(bank_records):
            if bank_idx in builder.claimed_bank:
                continue

            book_idx = self._first_unclaimed(
                book_records, builder.claimed_book,
                lambda book: (
                    book.raw_date == bank.raw_date
                    and amounts_match(book.amount, bank.total_amount, self.config.amount_epsilon)
                )
            )
            if book_idx is None:
                continue

            builder.claim(bank_idx, book_idx)
            builder.add(
                MatchStatus.MATCHED,
                Decimal("0"),
                bank=bank,
                book=book_records[book_idx],
                notes=INFERRED_MATCH_NOTE
            )

    @staticmethod
    def _first_unclaimed(records, claimed: Set[int], predicate) -> Optional[int]:
        for idx, record in enumerate(records):
            if idx in claimed:
                continue
            if predicate(record):
                return idx
        return None
