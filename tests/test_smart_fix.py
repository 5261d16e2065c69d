"""
Tests for the smart fix advisor.
"""
import pytest
from datetime import timedelta
from decimal import Decimal

from finrecon.matching_engine import MatchingCascade
from finrecon.models import ReconResult, MatchStatus, FixType
from finrecon.smart_fix import (
    SmartFixAdvisor, is_potential_transposition, is_scaling_error,
    unmatched_bank_records, days_apart
)

from conftest import make_bank, make_book, BASE_DATE

EPS = Decimal("0.01")


@pytest.fixture
def advisor(matching_config):
    return SmartFixAdvisor(matching_config)


@pytest.fixture
def run(matching_config, advisor):
    """Cascade then advise, the way the reconciler does."""
    cascade = MatchingCascade(matching_config)

    def _run(bank, book):
        results = cascade.match(bank, book)
        return advisor.advise(results, unmatched_bank_records(results))

    return _run


def orphan_book(results):
    return [r for r in results if r.status == MatchStatus.UNMATCHED_BOOK]


class TestTranspositionDetection:
    """Tests for is_potential_transposition."""

    @pytest.mark.parametrize("a, b", [
        ("54", "45"),
        ("540.00", "450.00"),
        ("12.34", "12.43"),
        ("1.20", "2.10"),
    ])
    def test_transposed(self, a, b):
        assert is_potential_transposition(Decimal(a), Decimal(b))

    @pytest.mark.parametrize("a, b", [
        ("5200.00", "5044.00"),   # not a multiple of 9
        ("90", "9"),              # multiple of 9, different digits
        ("100", "100"),           # identical
        ("63", "45"),             # multiple of 9, different digits
    ])
    def test_not_transposed(self, a, b):
        assert not is_potential_transposition(Decimal(a), Decimal(b))

    def test_symmetric(self):
        assert is_potential_transposition(Decimal("45"), Decimal("54"))


class TestScalingDetection:
    """Tests for is_scaling_error."""

    def test_times_ten(self):
        assert is_scaling_error(Decimal("1000"), Decimal("100"), EPS)

    def test_divided_by_ten(self):
        assert is_scaling_error(Decimal("12.50"), Decimal("125.00"), EPS)

    def test_not_scaled(self):
        assert not is_scaling_error(Decimal("1000"), Decimal("101"), EPS)

    def test_zero_amounts_excluded(self):
        assert not is_scaling_error(Decimal("0"), Decimal("0"), EPS)
        assert not is_scaling_error(Decimal("0"), Decimal("0.0001"), EPS)


class TestVarianceFixes:
    """Tests for fixes attached to ID-matched pairs."""

    def test_transposition_fix(self, run):
        results = run([make_bank("A1", "54.00")], [make_book("A1", "45.00")])
        fix = results[0].smart_fix

        assert results[0].status == MatchStatus.VARIANCE
        assert fix.type == FixType.TRANSPOSED_DIGITS
        assert fix.confidence == 90
        assert fix.message == "Possible Transposed Digits. Correct amount likely 54.00."
        assert fix.suggested_record.invoice_number == "A1"

    def test_scaling_fix(self, run):
        results = run([make_bank("A1", "1000.00")], [make_book("A1", "100.00")])
        fix = results[0].smart_fix

        assert fix.type == FixType.SCALING_ERROR
        assert fix.confidence == 85
        assert fix.message == "Possible Decimal/Scaling Error."

    def test_unexplained_variance_has_no_fix(self, run, variance_pair):
        bank, book = variance_pair
        results = run([bank], [book])
        assert results[0].status == MatchStatus.VARIANCE
        assert results[0].smart_fix is None

    def test_matched_results_untouched(self, run, exact_pair):
        bank, book = exact_pair
        results = run([bank], [book])
        assert results[0].smart_fix is None


class TestOrphanFixes:
    """Tests for fixes attached to orphaned book records."""

    def test_id_typo(self, run):
        bank = make_bank("395443", "2080.00", day=BASE_DATE)
        book = make_book("395434", "2080.00", day=BASE_DATE + timedelta(days=10))
        fix = orphan_book(run([bank], [book]))[0].smart_fix

        assert fix.type == FixType.ID_TYPO
        assert fix.confidence == 85
        assert fix.message == "Typo in Invoice ID detected (Found: 395443)."
        assert fix.suggested_record is bank

    def test_short_id_allows_single_edit_only(self, run):
        bank = make_bank("A12", "10.00", day=BASE_DATE)
        book = make_book("B21", "10.00", day=BASE_DATE + timedelta(days=10))
        assert orphan_book(run([bank], [book]))[0].smart_fix is None

    def test_typo_requires_same_amount(self, run):
        bank = make_bank("395443", "2080.00", day=BASE_DATE)
        book = make_book("395434", "3000.00", day=BASE_DATE + timedelta(days=10))
        assert orphan_book(run([bank], [book]))[0].smart_fix is None

    def test_transposition_near_date(self, run):
        bank = make_bank("B9", "54.00", day=BASE_DATE + timedelta(days=1))
        book = make_book("X1", "45.00", day=BASE_DATE)
        fix = orphan_book(run([bank], [book]))[0].smart_fix

        assert fix.type == FixType.TRANSPOSED_DIGITS
        assert fix.confidence == 75
        assert fix.message == "Amount mismatch (Transposed Digits?) found near date."

    def test_scaling_near_date(self, run):
        bank = make_bank("B9", "1000.00", day=BASE_DATE + timedelta(days=2))
        book = make_book("X1", "100.00", day=BASE_DATE)
        fix = orphan_book(run([bank], [book]))[0].smart_fix

        assert fix.type == FixType.SCALING_ERROR
        assert fix.confidence == 80
        assert fix.message == "Possible Decimal Point Error."

    def test_outside_date_window(self, run):
        bank = make_bank("B9", "1000.00", day=BASE_DATE + timedelta(days=3))
        book = make_book("X1", "100.00", day=BASE_DATE)
        assert orphan_book(run([bank], [book]))[0].smart_fix is None

    def test_empty_pool(self, run):
        results = run([], [make_book("X1", "100.00")])
        assert results[0].smart_fix is None

    def test_highest_confidence_wins(self, run):
        book = make_book("X1", "45.00", day=BASE_DATE)
        bank = [
            make_bank("B1", "54.00", day=BASE_DATE),     # transposition, 75
            make_bank("B2", "450.00", day=BASE_DATE),    # scaling, 80
        ]
        fix = orphan_book(run(bank, [book]))[0].smart_fix

        assert fix.type == FixType.SCALING_ERROR
        assert fix.suggested_record.invoice_number == "B2"

    def test_best_heuristic_within_one_candidate(self, run):
        """1.00 vs 0.10 is both a digit swap and a tenfold error; scaling scores higher."""
        bank = make_bank("B1", "0.10", day=BASE_DATE)
        book = make_book("ZZZZZZ", "1.00", day=BASE_DATE)
        assert is_potential_transposition(book.amount, bank.total_amount)

        fix = orphan_book(run([bank], [book]))[0].smart_fix

        assert fix.type == FixType.SCALING_ERROR
        assert fix.confidence == 80
        assert fix.suggested_record is bank

    def test_typo_beats_near_date_candidates(self, run):
        book = make_book("X1", "45.00", day=BASE_DATE + timedelta(days=10))
        bank = [
            make_bank("B1", "450.00", day=BASE_DATE + timedelta(days=10)),
            make_bank("X2", "45.00", day=BASE_DATE),
        ]
        fix = orphan_book(run(bank, [book]))[0].smart_fix

        assert fix.type == FixType.ID_TYPO
        assert fix.suggested_record.invoice_number == "X2"

    def test_ties_keep_first_candidate(self, run):
        book = make_book("X1", "100.00", day=BASE_DATE)
        bank = [
            make_bank("B1", "1000.00", day=BASE_DATE + timedelta(days=1)),
            make_bank("B2", "1000.00", day=BASE_DATE + timedelta(days=2)),
        ]
        fix = orphan_book(run(bank, [book]))[0].smart_fix
        assert fix.suggested_record.invoice_number == "B1"

    def test_candidate_can_be_suggested_twice(self, run):
        """The pool is shared; suggestions do not claim bank records."""
        bank = [make_bank("B1", "1000.00", day=BASE_DATE)]
        book = [
            make_book("X1", "100.00", day=BASE_DATE, document_no="D1"),
            make_book("X2", "100.00", day=BASE_DATE + timedelta(days=1), document_no="D2"),
        ]
        orphans = orphan_book(run(bank, book))

        assert len(orphans) == 2
        assert all(r.smart_fix.suggested_record.invoice_number == "B1" for r in orphans)


class TestAdvisorContract:
    """Tests for what the advisor must never change."""

    def test_statuses_and_ids_preserved(self, run, matching_config, mixed_ledgers):
        bank, book = mixed_ledgers
        plain = MatchingCascade(matching_config).match(bank, book)
        advised = run(bank, book)

        assert [(r.id, r.status, r.amount_difference) for r in advised] == \
            [(r.id, r.status, r.amount_difference) for r in plain]

    def test_bank_orphans_never_advised(self, advisor):
        result = ReconResult(
            id="R-00001",
            status=MatchStatus.UNMATCHED_BANK,
            amount_difference=Decimal("100.00"),
            bank_record=make_bank("B1", "100.00")
        )
        advised = advisor.advise([result], [make_bank("B2", "1000.00")])
        assert advised[0].smart_fix is None

    def test_input_not_mutated(self, advisor):
        result = ReconResult(
            id="R-00001",
            status=MatchStatus.UNMATCHED_BOOK,
            amount_difference=Decimal("-100.00"),
            book_record=make_book("X1", "100.00")
        )
        advised = advisor.advise([result], [make_bank("B1", "1000.00")])

        assert result.smart_fix is None
        assert advised[0].smart_fix is not None

    def test_days_apart(self):
        assert days_apart(BASE_DATE, BASE_DATE + timedelta(days=2)) == 2
        assert days_apart(BASE_DATE + timedelta(days=2), BASE_DATE) == 2
