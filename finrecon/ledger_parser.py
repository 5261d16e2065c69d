"""Bank and book ledger parsers."""
import io
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, List, Optional, Tuple
import pandas as pd

from .exceptions import ParseError
from .logging_config import get_logger, log_row_skipped
from .models import BankRecord, BookRecord

logger = get_logger("ledger_parser")


class LedgerParser:
    """
    Parser for the two reconciliation inputs.

    Supports:
    - Bank settlement exports (fuel/card transactions, 15 columns)
    - General-ledger book exports (4 columns)

    Columns are read by position; the header row is skipped.
    """

    BANK_COLUMNS = (
        "account_no", "settlement_date", "transaction_date", "time",
        "invoice_number", "product", "liter", "price", "amount_before_vat",
        "vat", "total_amount", "wht_1_percent", "total_amount_after_wd",
        "merchant_id", "fuel_brand",
    )
    BOOK_COLUMNS = ("document_no", "posting_date", "description", "amount")

    # Rows shorter than this are skipped
    BANK_MIN_COLUMNS = 11
    BOOK_MIN_COLUMNS = 4

    DATE_FORMATS = ["%d/%m/%Y", "%Y-%m-%d"]
    ENCODINGS = ["utf-8", "utf-8-sig", "latin-1"]

    def parse_bank_file(self, file_path: Path) -> List[BankRecord]:
        """Parse a bank settlement CSV export."""
        file_path = Path(file_path)
        return self.parse_bank_csv(self._read_text(file_path), source=file_path.name)

    def parse_book_file(self, file_path: Path) -> List[BookRecord]:
        """Parse a general-ledger CSV export."""
        file_path = Path(file_path)
        return self.parse_book_csv(self._read_text(file_path), source=file_path.name)

    def parse_bank_csv(self, text: str, source: str = "bank.csv") -> List[BankRecord]:
        return self.parse_bank_dataframe(self._read_frame(text, source), source=source)

    def parse_book_csv(self, text: str, source: str = "book.csv") -> List[BookRecord]:
        return self.parse_book_dataframe(self._read_frame(text, source), source=source)

    def parse_bank_dataframe(self, df: pd.DataFrame, source: str = "dataframe") -> List[BankRecord]:
        """Parse bank records from a pandas DataFrame of string cells."""
        df = self._positional(df, self.BANK_COLUMNS, self.BANK_MIN_COLUMNS, source)

        records = []
        for line, row in self._rows(df, self.BANK_MIN_COLUMNS, source):
            transaction_date = self._text(row.get("transaction_date"))
            records.append(BankRecord(
                account_no=self._text(row.get("account_no")),
                settlement_date=self._text(row.get("settlement_date")),
                transaction_date=transaction_date,
                time=self._text(row.get("time")),
                invoice_number=self._text(row.get("invoice_number")),
                product=self._text(row.get("product")),
                liter=self._parse_optional_decimal(row.get("liter")),
                price=self._parse_optional_decimal(row.get("price")),
                amount_before_vat=self._parse_amount(row.get("amount_before_vat"), source, line),
                vat=self._parse_amount(row.get("vat"), source, line),
                total_amount=self._parse_amount(row.get("total_amount"), source, line),
                wht_1_percent=self._parse_amount(row.get("wht_1_percent"), source, line),
                total_amount_after_wd=self._parse_amount(row.get("total_amount_after_wd"), source, line),
                merchant_id=self._text(row.get("merchant_id")),
                fuel_brand=self._text(row.get("fuel_brand")),
                raw_date=self._parse_date(transaction_date, source, line),
            ))

        logger.info(f"Parsed {len(records)} bank records from {source}")
        return records

    def parse_book_dataframe(self, df: pd.DataFrame, source: str = "dataframe") -> List[BookRecord]:
        """Parse book records from a pandas DataFrame of string cells."""
        df = self._positional(df, self.BOOK_COLUMNS, self.BOOK_MIN_COLUMNS, source)

        records = []
        for line, row in self._rows(df, self.BOOK_MIN_COLUMNS, source):
            posting_date = self._text(row.get("posting_date"))
            records.append(BookRecord(
                document_no=self._text(row.get("document_no")),
                posting_date=posting_date,
                # Usually echoes the bank invoice number
                description=self._text(row.get("description")),
                amount=self._parse_amount(row.get("amount"), source, line),
                raw_date=self._parse_date(posting_date, source, line),
            ))

        logger.info(f"Parsed {len(records)} book records from {source}")
        return records

    def _read_text(self, file_path: Path) -> str:
        if not file_path.exists():
            raise ParseError(str(file_path), reason="file not found")

        for encoding in self.ENCODINGS:
            try:
                return file_path.read_text(encoding=encoding)
            except UnicodeDecodeError:
                continue

        raise ParseError(str(file_path), reason="could not decode file with any supported encoding")

    def _read_frame(self, text: str, source: str) -> pd.DataFrame:
        if not text.strip():
            return pd.DataFrame()
        try:
            return pd.read_csv(
                io.StringIO(text.strip()),
                dtype=str,
                keep_default_na=False,
                skipinitialspace=True,
                skip_blank_lines=True,
            )
        except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            raise ParseError(source, reason=str(e)) from e

    def _positional(
        self,
        df: pd.DataFrame,
        columns: Tuple[str, ...],
        min_columns: int,
        source: str
    ) -> pd.DataFrame:
        """Rename columns by position to the standard field names."""
        if df.empty and len(df.columns) == 0:
            return df
        if len(df.columns) < min_columns:
            raise ParseError(
                source,
                reason=f"expected at least {min_columns} columns, found {len(df.columns)}"
            )
        df = df.iloc[:, :len(columns)].copy()
        df.columns = list(columns[:len(df.columns)])
        return df

    def _rows(self, df: pd.DataFrame, min_columns: int, source: str):
        """Yield (line number, row) for rows carrying enough columns."""
        for position, (_, row) in enumerate(df.iterrows()):
            line = position + 2  # header is line 1
            width = self._row_width(row)
            if width < min_columns:
                log_row_skipped(logger, source, line, width, min_columns)
                continue
            yield line, row

    @staticmethod
    def _row_width(row: pd.Series) -> int:
        """Number of columns up to the last non-empty cell."""
        width = 0
        for idx, value in enumerate(row.tolist(), start=1):
            if LedgerParser._text(value):
                width = idx
        return width

    @staticmethod
    def _text(value: Any) -> str:
        if value is None or (not isinstance(value, str) and pd.isna(value)):
            return ""
        return str(value).strip()

    def _parse_date(self, value: str, source: str, line: int) -> date:
        """Parse d/m/yyyy (or ISO) dates; time of day is ignored."""
        value_str = value.strip().split(" ")[0] if value else ""
        if not value_str:
            raise ParseError(source, line=line, reason="missing date")

        for fmt in self.DATE_FORMATS:
            try:
                return datetime.strptime(value_str, fmt).date()
            except ValueError:
                continue

        raise ParseError(source, line=line, reason=f"unrecognized date '{value}'")

    def _parse_amount(self, value: Any, source: str, line: int) -> Decimal:
        """Parse amounts like '1,234.56' or '"2,080.00"'."""
        value_str = self._text(value)
        for char in ("'", '"', ",", " "):
            value_str = value_str.replace(char, "")

        if not value_str:
            return Decimal("0")

        try:
            amount = Decimal(value_str)
        except InvalidOperation:
            raise ParseError(source, line=line, reason=f"invalid amount '{value}'")

        # Decimal accepts NaN and Infinity, which cannot be compared or summed
        if not amount.is_finite():
            raise ParseError(source, line=line, reason=f"non-finite amount '{value}'")
        return amount

    def _parse_optional_decimal(self, value: Any) -> Optional[Decimal]:
        value_str = self._text(value).replace(",", "")
        if not value_str:
            return None
        try:
            number = Decimal(value_str)
        except InvalidOperation:
            return None
        return number if number.is_finite() else None


SAMPLE_BANK_CSV = """account_no,settlement_date,transaction_date,time,invoice_number,product,liter,price,amount_before_vat,vat,total_amount,wht_1_percent,total_amount_after_wd,merchant_id,fuel_brand
123456789,1/9/2025,1/9/2025,19:21:15,395443,DIESEL (PTT),65,32,"1,943.93",136.07,"2,080.00",19.44,"2,060.56",1235001074,PTT
123456789,1/9/2025,1/9/2025,15:01:09,934785,DIESEL (PTT),50,32.12,"1,500.93",105.07,"1,606.00",15.01,"1,590.99",1024261188,PTT
123456789,1/9/2025,1/9/2025,13:45:26,441282,DIESEL (PTT),70.603,32.01,"2,112.15",147.85,"2,260.00",21.12,"2,238.88",1208001468,PTT
123456789,1/9/2025,1/9/2025,12:58:37,641858,HI DIESEL S (BCP),155.67,32.12,"4,672.90",327.1,"5,000.00",46.73,"4,953.27",1068401574,ESSO
123456789,1/9/2025,1/9/2025,10:29:50,585585,HI DIESEL S (BCP),65.81,32.06,"1,971.96",138.04,"2,110.00",19.72,"2,090.28",1235008036,BCP
123456789,2/9/2025,2/9/2025,06:55:53,857576,DIESEL (PTT),162.55,31.99,"4,859.81",340.19,"5,200.00",48.6,"5,151.40",1114970236,PTT
123456789,2/9/2025,2/9/2025,11:12:32,249171,HI DIESEL S (BCP),43.74,32.01,"1,308.41",91.59,"1,400.00",13.08,"1,386.92",1086002228,BCP
123456789,2/9/2025,2/9/2025,16:57:38,813343,DIESEL (PTT),51.794,32.05,"1,551.40",108.6,"1,660.00",15.51,"1,644.49",1067590235,PTT
123456789,2/9/2025,2/9/2025,14:11:10,116663,HI DIESEL S (BCP),262.42,32.01,"7,850.47",549.53,"8,400.00",78.5,"8,321.50",1022880786,ESSO
123456789,2/9/2025,2/9/2025,06:11:20,835972,DIESEL (PTT),146.554,32.07,"4,392.52",307.48,"4,700.00",43.93,"4,656.07",1107090475,PTT
"""

SAMPLE_BOOK_CSV = """document_no,posting_date,description,amount
1,1/9/2025,395443,"2,080.00"
2,1/9/2025,934785,"1,606.00"
3,1/9/2025,441282,"2,260.00"
4,1/9/2025,641858,"5,000.00"
5,1/9/2025,585585,"2,110.00"
6,2/9/2025,857576,"5,044.00"
7,2/9/2025,249171,"1,400.00"
8,2/9/2025,813343,"1,660.00"
9,2/9/2025,116663,"8,400.00"
10,2/9/2025,835972,"4,700.00"
"""
