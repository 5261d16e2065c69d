"""Data models for ledger reconciliation."""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional


class MatchStatus(Enum):
    """Reconciliation match status."""
    MATCHED = "MATCHED"
    VARIANCE = "VARIANCE"  # matched on ID but amount differs
    UNMATCHED_BANK = "UNMATCHED_BANK"
    UNMATCHED_BOOK = "UNMATCHED_BOOK"


class FixType(Enum):
    """Root-cause categories for a smart fix."""
    TRANSPOSED_DIGITS = "TRANSPOSED_DIGITS"  # 54 vs 45
    SCALING_ERROR = "SCALING_ERROR"  # 100 vs 1000
    ID_TYPO = "ID_TYPO"  # INV-01 vs INV-0l
    TIMING_DIFF = "TIMING_DIFF"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class BankRecord:
    """A settled card/fuel transaction from the bank export."""
    invoice_number: str
    total_amount: Decimal
    raw_date: date
    transaction_date: str = ""
    account_no: str = ""
    settlement_date: str = ""
    time: str = ""
    product: str = ""
    liter: Optional[Decimal] = None
    price: Optional[Decimal] = None
    amount_before_vat: Decimal = Decimal("0")
    vat: Decimal = Decimal("0")
    wht_1_percent: Decimal = Decimal("0")
    total_amount_after_wd: Decimal = Decimal("0")
    merchant_id: str = ""
    fuel_brand: str = ""


@dataclass(frozen=True)
class BookRecord:
    """A general-ledger posting."""
    document_no: str
    description: str
    amount: Decimal
    raw_date: date
    posting_date: str = ""


@dataclass(frozen=True)
class SmartFix:
    """Advisory, confidence-scored explanation for a discrepancy."""
    type: FixType
    message: str
    confidence: int  # 0 to 100
    suggested_record: Optional[BankRecord] = None


@dataclass(frozen=True)
class ReconResult:
    """One matched pair or one orphan."""
    id: str
    status: MatchStatus
    amount_difference: Decimal
    bank_record: Optional[BankRecord] = None
    book_record: Optional[BookRecord] = None
    notes: Optional[str] = None
    smart_fix: Optional[SmartFix] = None

    @property
    def is_pair(self) -> bool:
        return self.bank_record is not None and self.book_record is not None

    @property
    def is_flagged(self) -> bool:
        return self.status != MatchStatus.MATCHED


@dataclass(frozen=True)
class ReconSummary:
    """Aggregate counters for a reconciliation run."""
    total_bank: int = 0
    total_book: int = 0
    matched_count: int = 0
    variance_count: int = 0
    unmatched_bank_count: int = 0
    unmatched_book_count: int = 0
    match_rate: float = 0.0
    total_variance_amount: Decimal = Decimal("0")
