"""Sales document state machines: quotes, orders, invoices and receipts."""

from .base import DocumentLine, SalesDocument, next_status
from .invoice import Invoice
from .order import Order, OrderLine, derive_order_status
from .quote import Quote
from .receipt import Receipt
from .service import DocumentService

__all__ = [
    "DocumentLine",
    "DocumentService",
    "Invoice",
    "Order",
    "OrderLine",
    "Quote",
    "Receipt",
    "SalesDocument",
    "derive_order_status",
    "next_status",
]
