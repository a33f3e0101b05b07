"""Invoices (Rechnungen) and the journal lines they post."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import ClassVar, Dict, List, Optional, Tuple

from kontor.accounting.chart import ChartOfAccounts
from kontor.documents.base import SalesDocument
from kontor.models import JournalLine

INVOICE_TRANSITIONS: Dict[Tuple[str, str], str] = {
    ("draft", "book"): "booked",
    ("booked", "send"): "sent",
    ("booked", "mark_paid"): "paid",
    ("sent", "mark_paid"): "paid",
    ("overdue", "mark_paid"): "paid",
    ("sent", "mark_overdue"): "overdue",
    ("booked", "cancel"): "cancelled",
    ("sent", "cancel"): "cancelled",
    ("overdue", "cancel"): "cancelled",
}


@dataclass
class Invoice(SalesDocument):
    document_type: ClassVar[str] = "invoice"
    transitions: ClassVar[Dict[Tuple[str, str], str]] = INVOICE_TRANSITIONS

    due_date: Optional[date] = None
    order_id: Optional[str] = None
    journal_entry_id: Optional[str] = None
    payment_entry_id: Optional[str] = None

    def is_overdue(self, today: date) -> bool:
        return self.status == "sent" and self.due_date is not None and self.due_date < today


def booking_lines(
    invoice: Invoice, receivable_account_id: str, chart: ChartOfAccounts
) -> Tuple[JournalLine, ...]:
    """Receivable over the total, revenue per (account, rate), output VAT per account.

    Each group sums already rounded line amounts, so the entry balances by
    construction.
    """
    default_revenue = chart.find_revenue_or_expense_default("sale").id
    revenue: Dict[Tuple[str, Decimal], int] = {}
    for line in invoice.lines:
        key = (line.account_id or default_revenue, line.tax_rate)
        revenue[key] = revenue.get(key, 0) + line.amounts.net

    vat: Dict[str, int] = {}
    for rate, amounts in invoice.totals.by_rate.items():
        if amounts.tax <= 0:
            continue
        account_id = chart.vat_account(rate, "output").id
        vat[account_id] = vat.get(account_id, 0) + amounts.tax

    memo = invoice.document_number or None
    lines: List[JournalLine] = [
        JournalLine(account_id=receivable_account_id, side="debit", amount=invoice.total, memo=memo)
    ]
    for (account_id, rate), amount in revenue.items():
        if amount > 0:
            lines.append(
                JournalLine(account_id=account_id, side="credit", amount=amount, memo=f"{rate}%")
            )
    for account_id, amount in vat.items():
        lines.append(JournalLine(account_id=account_id, side="credit", amount=amount, memo=memo))
    return tuple(lines)


def payment_lines(
    invoice: Invoice, payment_account_id: str, receivable_account_id: str
) -> Tuple[JournalLine, ...]:
    return (
        JournalLine(account_id=payment_account_id, side="debit", amount=invoice.total),
        JournalLine(account_id=receivable_account_id, side="credit", amount=invoice.total),
    )


__all__ = ["INVOICE_TRANSITIONS", "Invoice", "booking_lines", "payment_lines"]
