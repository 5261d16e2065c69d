"""
Pytest fixtures for ledger reconciliation tests.
"""
import pytest
from datetime import date, timedelta
from decimal import Decimal
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from finrecon.config import MatchingConfig
from finrecon.ledger_parser import SAMPLE_BANK_CSV, SAMPLE_BOOK_CSV
from finrecon.models import BankRecord, BookRecord


BASE_DATE = date(2025, 9, 1)


def make_bank(invoice_number, amount, day=BASE_DATE, **kwargs):
    """Build a bank record with string/float friendly inputs."""
    return BankRecord(
        invoice_number=invoice_number,
        total_amount=Decimal(str(amount)),
        raw_date=day,
        transaction_date=day.strftime("%d/%m/%Y"),
        **kwargs
    )


def make_book(description, amount, day=BASE_DATE, document_no="DOC-1"):
    """Build a book record with string/float friendly inputs."""
    return BookRecord(
        document_no=document_no,
        description=description,
        amount=Decimal(str(amount)),
        raw_date=day,
        posting_date=day.strftime("%d/%m/%Y"),
    )


@pytest.fixture
def matching_config():
    """Default matching configuration, independent of the environment."""
    return MatchingConfig(amount_epsilon=Decimal("0.01"), date_window_days=2)


@pytest.fixture
def exact_pair():
    return make_bank("395443", "2080.00"), make_book("395443", "2080.00")


@pytest.fixture
def variance_pair():
    return make_bank("857576", "5200.00"), make_book("857576", "5044.00")


@pytest.fixture
def mixed_ledgers():
    """Ledgers exercising every cascade pass."""
    bank = [
        make_bank("1001", "100.00"),                                    # exact
        make_bank("1002", "250.00"),                                    # variance
        make_bank("2001", "75.50", day=BASE_DATE + timedelta(days=1)),  # date+amount
        make_bank("3001", "999.99"),                                    # orphan
    ]
    book = [
        make_book("1002", "260.00", document_no="B1"),
        make_book("1001", "100.00", document_no="B2"),
        make_book("no-ref", "75.50", day=BASE_DATE + timedelta(days=1), document_no="B3"),
        make_book("4001", "12.00", document_no="B4"),                   # orphan
    ]
    return bank, book


@pytest.fixture
def sample_bank_csv():
    return SAMPLE_BANK_CSV


@pytest.fixture
def sample_book_csv():
    return SAMPLE_BOOK_CSV


@pytest.fixture
def bank_csv_file(tmp_path, sample_bank_csv):
    path = tmp_path / "bank.csv"
    path.write_text(sample_bank_csv)
    return path


@pytest.fixture
def book_csv_file(tmp_path, sample_book_csv):
    path = tmp_path / "book.csv"
    path.write_text(sample_book_csv)
    return path
