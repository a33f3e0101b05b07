"""Order confirmations (Auftragsbestätigungen) with delivery and billing progress.

An order has no transition table. Its status is derived from how much of each
line has been delivered and invoiced, and both counters only ever grow.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import ClassVar, Dict, List, Mapping, Optional, Sequence, Tuple

from kontor.documents.base import DocumentLine, SalesDocument
from kontor.errors import InvalidQuantity, InvalidTransition, QuantityExceeded
from kontor.money import to_decimal

ZERO = Decimal("0")

ORDER_STATUSES: Tuple[str, ...] = (
    "open",
    "partial_delivered",
    "delivered",
    "partial_invoiced",
    "invoiced",
    "completed",
)


@dataclass
class OrderLine(DocumentLine):
    delivered_quantity: Decimal = ZERO
    invoiced_quantity: Decimal = ZERO

    def __post_init__(self) -> None:
        super().__post_init__()
        self.delivered_quantity = to_decimal(self.delivered_quantity)
        self.invoiced_quantity = to_decimal(self.invoiced_quantity)

    @property
    def remaining_to_deliver(self) -> Decimal:
        return self.quantity - self.delivered_quantity

    @property
    def remaining_to_invoice(self) -> Decimal:
        return self.quantity - self.invoiced_quantity

    @classmethod
    def from_line(cls, line: DocumentLine) -> "OrderLine":
        return cls(
            description=line.description,
            quantity=line.quantity,
            unit_price=line.unit_price,
            tax_rate=line.tax_rate,
            unit=line.unit,
            account_id=line.account_id,
        )


def derive_order_status(lines: Sequence[OrderLine]) -> str:
    """Status implied by the delivery and invoicing counters of ``lines``."""
    if not lines:
        return "open"
    fully_delivered = all(line.delivered_quantity >= line.quantity for line in lines)
    fully_invoiced = all(line.invoiced_quantity >= line.quantity for line in lines)
    any_delivered = any(line.delivered_quantity > 0 for line in lines)
    any_invoiced = any(line.invoiced_quantity > 0 for line in lines)
    if fully_delivered and fully_invoiced:
        return "completed"
    if fully_invoiced:
        return "invoiced"
    if any_invoiced:
        return "partial_invoiced"
    if fully_delivered:
        return "delivered"
    if any_delivered:
        return "partial_delivered"
    return "open"


@dataclass
class Order(SalesDocument):
    document_type: ClassVar[str] = "order"
    editable_statuses: ClassVar[Tuple[str, ...]] = ("open",)

    lines: List[OrderLine] = field(default_factory=list)  # type: ignore[assignment]
    status: str = "open"
    delivery_date: Optional[date] = None
    quote_id: Optional[str] = None
    invoice_ids: List[str] = field(default_factory=list)

    def replace_lines(self, lines: Sequence[DocumentLine]) -> None:  # type: ignore[override]
        self.ensure_editable()
        self.lines = [line if isinstance(line, OrderLine) else OrderLine.from_line(line) for line in lines]

    def refresh_status(self) -> str:
        self.status = derive_order_status(self.lines)
        return self.status

    def record_delivery(self, quantities: Optional[Mapping[int, Decimal]] = None) -> None:
        """Add delivered quantities per line index; ``None`` delivers everything left."""
        if self.status == "completed":
            raise InvalidTransition(self.status, "record_delivery")
        plan = self._plan(quantities, "remaining_to_deliver", "deliver")
        for index, quantity in plan.items():
            self.lines[index].delivered_quantity += quantity
        self.refresh_status()

    def plan_invoice(self, quantities: Optional[Mapping[int, Decimal]] = None) -> Dict[int, Decimal]:
        """Validated quantities to bill per line index; nothing is changed yet."""
        if self.status == "completed":
            raise InvalidTransition(self.status, "create_invoice")
        return self._plan(quantities, "remaining_to_invoice", "invoice")

    def apply_invoiced(self, plan: Mapping[int, Decimal]) -> None:
        for index, quantity in plan.items():
            self.lines[index].invoiced_quantity += quantity
        self.refresh_status()

    def _plan(
        self, quantities: Optional[Mapping[int, Decimal]], remaining_attr: str, verb: str
    ) -> Dict[int, Decimal]:
        if quantities is None:
            quantities = {index: getattr(line, remaining_attr) for index, line in enumerate(self.lines)}
        plan: Dict[int, Decimal] = {}
        for index, raw in quantities.items():
            if not 0 <= index < len(self.lines):
                raise InvalidQuantity(f"Order {self.document_number} has no line {index}")
            quantity = to_decimal(raw)
            if quantity < 0:
                raise InvalidQuantity(f"Cannot {verb} a negative quantity on line {index}")
            remaining = getattr(self.lines[index], remaining_attr)
            if quantity > remaining:
                raise QuantityExceeded(
                    f"Line {index} of order {self.document_number}: cannot {verb} {quantity}, "
                    f"only {remaining} left"
                )
            if quantity > 0:
                plan[index] = quantity
        if not plan:
            raise InvalidQuantity(f"Nothing to {verb} on order {self.document_number}")
        return plan


__all__ = ["ORDER_STATUSES", "Order", "OrderLine", "derive_order_status"]
