"""
Smart fix advisor.

Explains variances and orphaned book entries by testing them against
common data-entry error patterns:

- Transposed digits (54 vs 45): the difference is a multiple of 9 and
  both amounts use the same digits.
- Scaling errors (100 vs 1000): one amount is ten times the other.
- Invoice ID typos: the book description is a small edit away from an
  unmatched bank invoice number with the same amount.

Fixes are advisory. The advisor never changes a result's status.
"""
from dataclasses import replace
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterator, List, Optional, Sequence

from rapidfuzz.distance import Levenshtein

from .config import config, MatchingConfig
from .logging_config import get_logger, log_smart_fix
from .matching_engine import amounts_match
from .models import (
    BankRecord, BookRecord, ReconResult, SmartFix, FixType, MatchStatus
)

logger = get_logger("smart_fix")

# Transposition differences are multiples of 9 at the unit or cent scale
TRANSPOSITION_SCALES = (Decimal("9"), Decimal("0.9"), Decimal("0.09"))
TRANSPOSITION_REMAINDER_TOLERANCE = Decimal("0.001")
CENTS = Decimal("0.01")
TEN = Decimal("10")


def _digit_signature(amount: Decimal) -> str:
    text = str(amount.quantize(CENTS, rounding=ROUND_HALF_UP)).replace(".", "")
    return "".join(sorted(text))


def _is_multiple_of_nine(diff: Decimal) -> bool:
    for scale in TRANSPOSITION_SCALES:
        remainder = diff % scale
        if min(remainder, scale - remainder) < TRANSPOSITION_REMAINDER_TOLERANCE:
            return True
    return False


def is_potential_transposition(amount1: Decimal, amount2: Decimal) -> bool:
    """Check whether two amounts differ by swapped digits (e.g. 540 vs 450)."""
    diff = abs(amount1 - amount2)
    if diff == 0:
        return False
    if not _is_multiple_of_nine(diff):
        return False
    return _digit_signature(amount1) == _digit_signature(amount2)


def is_scaling_error(amount1: Decimal, amount2: Decimal, epsilon: Decimal) -> bool:
    """Check whether one amount is the other multiplied or divided by 10."""
    if amount1 == 0 or amount2 == 0:
        return False
    return (
        amounts_match(amount1, amount2 * TEN, epsilon)
        or amounts_match(amount1, amount2 / TEN, epsilon)
    )


def days_apart(date1: date, date2: date) -> int:
    return abs((date1 - date2).days)


def unmatched_bank_records(results: Sequence[ReconResult]) -> List[BankRecord]:
    """Bank records left orphaned by the cascade, in result order."""
    return [
        r.bank_record for r in results
        if r.status == MatchStatus.UNMATCHED_BANK and r.bank_record is not None
    ]


class SmartFixAdvisor:
    """Attaches at most one best-confidence smart fix per flagged result."""

    def __init__(self, cfg: Optional[MatchingConfig] = None):
        self.config = cfg or config.matching

    def advise(
        self,
        results: Sequence[ReconResult],
        unmatched_bank: Sequence[BankRecord]
    ) -> List[ReconResult]:
        """
        Return a new result list with smart fixes attached.

        Only VARIANCE and UNMATCHED_BOOK results are considered; all other
        results are passed through unchanged. Every book record is compared
        against the same candidate pool.
        """
        pool = tuple(unmatched_bank)
        advised = []

        for result in results:
            fix = None
            if result.book_record is not None:
                if result.status == MatchStatus.VARIANCE and result.bank_record is not None:
                    fix = self._explain_variance(result.bank_record, result.book_record)
                elif result.status == MatchStatus.UNMATCHED_BOOK:
                    fix = self._explain_orphan(result.book_record, pool)

            if fix is None:
                advised.append(result)
                continue

            log_smart_fix(
                logger, result.id, fix.type.value, fix.confidence,
                fix.suggested_record.invoice_number if fix.suggested_record else None
            )
            advised.append(replace(result, smart_fix=fix))

        return advised

    def _explain_variance(self, bank: BankRecord, book: BookRecord) -> Optional[SmartFix]:
        """Explain an ID-matched pair whose amounts differ."""
        bank_amount = bank.total_amount
        book_amount = book.amount

        if is_potential_transposition(bank_amount, book_amount):
            return SmartFix(
                type=FixType.TRANSPOSED_DIGITS,
                message=f"Possible Transposed Digits. Correct amount likely {bank_amount}.",
                confidence=self.config.confidence_variance_transposition,
                suggested_record=bank
            )

        if is_scaling_error(bank_amount, book_amount, self.config.amount_epsilon):
            return SmartFix(
                type=FixType.SCALING_ERROR,
                message="Possible Decimal/Scaling Error.",
                confidence=self.config.confidence_variance_scaling,
                suggested_record=bank
            )

        return None

    def _explain_orphan(
        self,
        book: BookRecord,
        candidates: Sequence[BankRecord]
    ) -> Optional[SmartFix]:
        """Find the best bank candidate for an orphaned book record."""
        best: Optional[SmartFix] = None

        for bank in candidates:
            for current in self._candidate_fixes(book, bank):
                # Ties keep the earlier candidate, then the earlier heuristic
                if best is None or current.confidence > best.confidence:
                    best = current

        return best

    def _candidate_fixes(self, book: BookRecord, bank: BankRecord) -> Iterator[SmartFix]:
        """Yield every heuristic that explains book against one bank candidate."""
        eps = self.config.amount_epsilon

        max_dist = (
            self.config.typo_max_distance_long
            if len(book.description) > self.config.typo_long_id_length
            else self.config.typo_max_distance_short
        )
        dist = Levenshtein.distance(book.description, bank.invoice_number)
        if 0 < dist <= max_dist and amounts_match(book.amount, bank.total_amount, eps):
            yield SmartFix(
                type=FixType.ID_TYPO,
                message=f"Typo in Invoice ID detected (Found: {bank.invoice_number}).",
                confidence=self.config.confidence_id_typo,
                suggested_record=bank
            )

        if days_apart(book.raw_date, bank.raw_date) > self.config.date_window_days:
            return

        if is_potential_transposition(book.amount, bank.total_amount):
            yield SmartFix(
                type=FixType.TRANSPOSED_DIGITS,
                message="Amount mismatch (Transposed Digits?) found near date.",
                confidence=self.config.confidence_orphan_transposition,
                suggested_record=bank
            )

        if is_scaling_error(bank.total_amount, book.amount, eps):
            yield SmartFix(
                type=FixType.SCALING_ERROR,
                message="Possible Decimal Point Error.",
                confidence=self.config.confidence_orphan_scaling,
                suggested_record=bank
            )
