"""Ledger data model: accounts, contacts and journal entries."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Iterable, Literal, Optional, Tuple

AccountType = Literal["asset", "liability", "equity", "revenue", "expense"]
ContactKind = Literal["customer", "vendor", "both", "other"]
Side = Literal["debit", "credit"]
EntryStatus = Literal["draft", "posted", "cancelled"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def opposite(side: Side) -> Side:
    return "credit" if side == "debit" else "debit"


@dataclass(frozen=True)
class Account:
    """A ledger account of the chart of accounts."""

    id: str
    code: str
    name: str
    type: AccountType


@dataclass
class Contact:
    """A business partner with optional debtor/creditor accounts."""

    id: str
    name: str
    kind: ContactKind
    customer_account_id: Optional[str] = None
    vendor_account_id: Optional[str] = None
    account_id: Optional[str] = None

    def receivable_account_id(self) -> Optional[str]:
        return self.customer_account_id or self.account_id

    def payable_account_id(self) -> Optional[str]:
        return self.vendor_account_id or self.account_id


@dataclass(frozen=True)
class JournalLine:
    """A single debit or credit line in a journal entry."""

    account_id: str
    side: Side
    amount: int
    memo: Optional[str] = None

    def flipped(self) -> "JournalLine":
        return JournalLine(
            account_id=self.account_id,
            side=opposite(self.side),
            amount=self.amount,
            memo=self.memo,
        )


@dataclass
class JournalEntry:
    """A journal entry grouping lines whose debits and credits balance."""

    description: str
    entry_date: date
    lines: Tuple[JournalLine, ...]
    id: Optional[str] = None
    contact_id: Optional[str] = None
    source_document_ref: Optional[str] = None
    status: EntryStatus = "draft"
    locked_at: Optional[datetime] = None
    reversal_of: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        self.lines = tuple(self.lines)

    @property
    def debit_total(self) -> int:
        return _side_total(self.lines, "debit")

    @property
    def credit_total(self) -> int:
        return _side_total(self.lines, "credit")

    @property
    def is_locked(self) -> bool:
        return self.locked_at is not None


def _side_total(lines: Iterable[JournalLine], side: Side) -> int:
    return sum(line.amount for line in lines if line.side == side)


__all__ = [
    "AccountType",
    "ContactKind",
    "Side",
    "EntryStatus",
    "Account",
    "Contact",
    "JournalLine",
    "JournalEntry",
    "opposite",
    "utcnow",
]
