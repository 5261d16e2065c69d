"""
Tests for ledger parsing.
"""
import pytest
from datetime import date
from decimal import Decimal
import pandas as pd
import io

from finrecon.exceptions import ParseError
from finrecon.ledger_parser import LedgerParser

BOOK_HEADER = "document_no,posting_date,description,amount\n"


@pytest.fixture
def parser():
    return LedgerParser()


class TestBankParsing:
    """Tests for bank settlement exports."""

    def test_sample_bank(self, parser, sample_bank_csv):
        records = parser.parse_bank_csv(sample_bank_csv)

        assert len(records) == 10
        first = records[0]
        assert first.invoice_number == "395443"
        assert first.total_amount == Decimal("2080.00")
        assert first.amount_before_vat == Decimal("1943.93")
        assert first.liter == Decimal("65")
        assert first.raw_date == date(2025, 9, 1)
        assert first.account_no == "123456789"
        assert first.fuel_brand == "PTT"
        assert first.time == "19:21:15"

    def test_day_first_dates(self, parser, sample_bank_csv):
        records = parser.parse_bank_csv(sample_bank_csv)
        assert records[5].raw_date == date(2025, 9, 2)

    def test_bank_file(self, parser, bank_csv_file):
        records = parser.parse_bank_file(bank_csv_file)
        assert [r.invoice_number for r in records][:2] == ["395443", "934785"]

    def test_too_few_columns(self, parser):
        with pytest.raises(ParseError):
            parser.parse_bank_csv("a,b,c\n1,2,3\n")


class TestBookParsing:
    """Tests for general-ledger exports."""

    def test_sample_book(self, parser, sample_book_csv):
        records = parser.parse_book_csv(sample_book_csv)

        assert len(records) == 10
        assert records[5].description == "857576"
        assert records[5].amount == Decimal("5044.00")
        assert records[0].document_no == "1"
        assert records[0].raw_date == date(2025, 9, 1)

    def test_leading_zeros_preserved(self, parser):
        records = parser.parse_book_csv(BOOK_HEADER + "1,1/9/2025,000123,10.00\n")
        assert records[0].description == "000123"

    def test_iso_dates_and_time_suffix(self, parser):
        records = parser.parse_book_csv(
            BOOK_HEADER + "1,2025-09-03,A,10\n2,4/9/2025 10:15,B,20\n"
        )
        assert records[0].raw_date == date(2025, 9, 3)
        assert records[1].raw_date == date(2025, 9, 4)

    def test_empty_amount_is_zero(self, parser, sample_bank_csv):
        records = parser.parse_bank_csv(sample_bank_csv.replace(",19.44,", ",,", 1))
        assert records[0].wht_1_percent == Decimal("0")

    def test_short_rows_skipped(self, parser):
        records = parser.parse_book_csv(
            BOOK_HEADER + "1,1/9/2025,A,10.00\n2,1/9/2025\n3,2/9/2025,C,30.00\n"
        )
        assert [r.document_no for r in records] == ["1", "3"]

    def test_empty_text(self, parser):
        assert parser.parse_book_csv("") == []

    def test_dataframe_input(self, parser, sample_book_csv):
        df = pd.read_csv(io.StringIO(sample_book_csv), dtype=str, keep_default_na=False)
        records = parser.parse_book_dataframe(df)
        assert len(records) == 10


class TestParseErrors:
    """Tests for malformed input."""

    def test_invalid_amount(self, parser):
        with pytest.raises(ParseError) as exc_info:
            parser.parse_book_csv(BOOK_HEADER + "1,1/9/2025,A,abc\n")
        assert exc_info.value.details["line"] == 2
        assert exc_info.value.code == "PARSE_ERROR"

    @pytest.mark.parametrize("amount", ["NaN", "Infinity", "-inf", "sNaN"])
    def test_non_finite_amount(self, parser, amount):
        with pytest.raises(ParseError) as exc_info:
            parser.parse_book_csv(BOOK_HEADER + f"1,1/9/2025,A,{amount}\n")
        assert "non-finite amount" in exc_info.value.message
        assert exc_info.value.details["line"] == 2

    def test_non_finite_bank_total(self, parser, sample_bank_csv):
        with pytest.raises(ParseError):
            parser.parse_bank_csv(sample_bank_csv.replace('"2,080.00"', "Infinity", 1))

    def test_non_finite_liter_dropped(self, parser, sample_bank_csv):
        records = parser.parse_bank_csv(sample_bank_csv.replace(",65,32,", ",NaN,32,", 1))
        assert records[0].liter is None
        assert records[0].price == Decimal("32")

    def test_invalid_date(self, parser):
        with pytest.raises(ParseError) as exc_info:
            parser.parse_book_csv(BOOK_HEADER + "1,31/31/2025,A,10\n")
        assert "unrecognized date" in exc_info.value.message

    def test_missing_date(self, parser):
        with pytest.raises(ParseError) as exc_info:
            parser.parse_book_csv(BOOK_HEADER + "1,,A,10\n")
        assert "missing date" in exc_info.value.message

    def test_missing_file(self, parser, tmp_path):
        with pytest.raises(ParseError) as exc_info:
            parser.parse_book_file(tmp_path / "nope.csv")
        assert "file not found" in exc_info.value.message
