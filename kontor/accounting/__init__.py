"""Double-entry bookkeeping: chart of accounts, validation, journal and quick entry."""

from .chart import SKR03_DEFAULT_ACCOUNTS, ChartOfAccounts, VatAccountTable, seed_default_chart
from .contacts import ContactService
from .journal import JournalService
from .quick_entry import QuickEntryIntent, classify_transaction, generate_quick_entry
from .validation import ValidationResult, validate_entry
from .engine import AccountingEngine

__all__ = [
    "AccountingEngine",
    "ChartOfAccounts",
    "ContactService",
    "JournalService",
    "QuickEntryIntent",
    "SKR03_DEFAULT_ACCOUNTS",
    "ValidationResult",
    "VatAccountTable",
    "classify_transaction",
    "generate_quick_entry",
    "seed_default_chart",
    "validate_entry",
]
