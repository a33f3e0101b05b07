"""Receipts (Belege): single-amount vouchers booked through quick entry."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar, Dict, Literal, Optional, Tuple

from kontor.accounting.chart import Direction
from kontor.documents.base import StatefulDocument
from kontor.models import JournalLine, utcnow
from kontor.money import VatComputation, compute_vat, to_decimal

ReceiptType = Literal["outgoing", "incoming", "open", "other"]

RECEIPT_TRANSITIONS: Dict[Tuple[str, str], str] = {
    ("draft", "book"): "booked",
    ("booked", "mark_paid"): "paid",
    ("booked", "cancel"): "cancelled",
    ("paid", "cancel"): "cancelled",
}

_ROLES: Dict[str, Direction] = {
    "outgoing": "sale",
    "incoming": "purchase",
    "open": "purchase",
}


@dataclass
class Receipt(StatefulDocument):
    document_type: ClassVar[str] = "receipt"
    transitions: ClassVar[Dict[Tuple[str, str], str]] = RECEIPT_TRANSITIONS

    receipt_type: ReceiptType
    title: str
    document_date: date
    gross_amount: int
    vat_rate: Decimal = Decimal("19")
    contact_id: Optional[str] = None
    category_account_id: Optional[str] = None
    is_paid: bool = False
    payment_account_id: Optional[str] = None
    due_date: Optional[date] = None
    notes: Optional[str] = None
    id: Optional[str] = None
    document_number: str = ""
    status: str = "draft"
    journal_entry_id: Optional[str] = None
    payment_entry_id: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        self.vat_rate = to_decimal(self.vat_rate)

    @property
    def role(self) -> Optional[Direction]:
        """``sale`` for outgoing, ``purchase`` for incoming/open, ``None`` otherwise."""
        return _ROLES.get(self.receipt_type)

    @property
    def amounts(self) -> VatComputation:
        return compute_vat(self.gross_amount, self.vat_rate)

    @property
    def total(self) -> int:
        return self.gross_amount


def settlement_lines(
    receipt: Receipt, payment_account_id: str, contact_account_id: str
) -> Tuple[JournalLine, ...]:
    """Clear the open receivable or payable of a booked receipt."""
    if receipt.role == "sale":
        debit, credit = payment_account_id, contact_account_id
    else:
        debit, credit = contact_account_id, payment_account_id
    return (
        JournalLine(account_id=debit, side="debit", amount=receipt.gross_amount),
        JournalLine(account_id=credit, side="credit", amount=receipt.gross_amount),
    )


__all__ = ["RECEIPT_TRANSITIONS", "Receipt", "ReceiptType", "settlement_lines"]
