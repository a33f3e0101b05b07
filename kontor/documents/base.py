"""Shared shape of quotes, orders and invoices."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar, Dict, List, Mapping, Optional, Tuple

from kontor.errors import InvalidQuantity, InvalidTransition, NonPositiveAmount
from kontor.models import utcnow
from kontor.money import DocumentTotals, LineAmounts, document_totals, line_total, to_decimal

Transitions = Mapping[Tuple[str, str], str]


def next_status(transitions: Transitions, current: str, action: str) -> str:
    """Look up the target status, failing loudly on an out-of-order action."""
    try:
        return transitions[(current, action)]
    except KeyError:
        raise InvalidTransition(current, action) from None


class StatefulDocument:
    """Transition table plumbing shared by every document type."""

    document_type: ClassVar[str] = "document"
    transitions: ClassVar[Dict[Tuple[str, str], str]] = {}
    editable_statuses: ClassVar[Tuple[str, ...]] = ("draft",)

    status: str

    def can(self, action: str) -> bool:
        return (self.status, action) in self.transitions

    def advance(self, action: str) -> str:
        self.status = next_status(self.transitions, self.status, action)
        return self.status

    def ensure_editable(self) -> None:
        if self.status not in self.editable_statuses:
            raise InvalidTransition(self.status, "edit", f"{self.document_type} is no longer editable")


@dataclass
class DocumentLine:
    """A priced line; ``unit_price`` is net, in minor units."""

    description: str
    quantity: Decimal
    unit_price: int
    tax_rate: Decimal = Decimal("19")
    unit: Optional[str] = None
    account_id: Optional[str] = None

    def __post_init__(self) -> None:
        self.quantity = to_decimal(self.quantity)
        self.tax_rate = to_decimal(self.tax_rate)
        if self.quantity < 0:
            raise InvalidQuantity(f"Quantity of '{self.description}' must not be negative")
        if self.unit_price < 0:
            raise NonPositiveAmount(f"Unit price of '{self.description}' must not be negative")

    @property
    def amounts(self) -> LineAmounts:
        return line_total(self.quantity, self.unit_price, self.tax_rate)


@dataclass
class SalesDocument(StatefulDocument):
    contact_id: str
    document_date: date
    lines: List[DocumentLine]
    id: Optional[str] = None
    document_number: str = ""
    status: str = "draft"
    notes: Optional[str] = None
    intro_text: Optional[str] = None
    payment_terms: Optional[str] = None
    footer_note: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)

    @property
    def totals(self) -> DocumentTotals:
        return document_totals(self.lines)

    @property
    def subtotal(self) -> int:
        return self.totals.subtotal

    @property
    def tax_total(self) -> int:
        return self.totals.tax_total

    @property
    def total(self) -> int:
        return self.totals.total

    def replace_lines(self, lines: List[DocumentLine]) -> None:
        self.ensure_editable()
        self.lines = list(lines)


__all__ = [
    "DocumentLine",
    "SalesDocument",
    "StatefulDocument",
    "Transitions",
    "next_status",
]
