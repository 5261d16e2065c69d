"""Bank-to-book ledger reconciliation with smart fix suggestions."""
__version__ = "1.0.0"
