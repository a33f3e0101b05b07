"""Quick entry: derive a journal entry draft from a compact booking intent.

The generator is a convenience, not a trusted bypass. Its output is a draft
that still has to pass validation before it can be posted.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Callable, Literal, Optional, Tuple

from kontor.accounting.chart import ChartOfAccounts, Direction
from kontor.errors import (
    AccountNotFound,
    DanglingAccountReference,
    MissingContact,
    MissingContactAccount,
    MissingContraAccount,
    MissingGrossAmount,
    MissingPaymentAccount,
)
from kontor.models import Account, AccountType, Contact, ContactKind, JournalEntry, JournalLine, Side, opposite
from kontor.money import VatComputation, compute_vat

LOGGER = logging.getLogger(__name__)

TransactionRole = Literal["sale", "purchase", "other"]
Classifier = Callable[[ContactKind, AccountType], TransactionRole]

_ROLE_LABELS = {"sale": "Verkauf", "purchase": "Einkauf", "other": "Buchung"}


@dataclass(frozen=True)
class QuickEntryIntent:
    """What the operator typed into the quick entry form."""

    contact_id: Optional[str]
    contra_account_id: Optional[str]
    gross_amount: Optional[int]
    vat_rate: Decimal = Decimal("19")
    is_paid: bool = False
    payment_account_id: Optional[str] = None
    entry_date: date = field(default_factory=date.today)
    description: str = ""
    source_document_ref: Optional[str] = None


def classify_transaction(contact_kind: ContactKind, contra_account_type: AccountType) -> TransactionRole:
    """Decide whether a booking is a sale, a purchase or unclassified.

    ``both`` contacts are disambiguated by the contra account: revenue means a
    sale, expense a purchase. ``other`` contacts are never classified.
    """
    if contact_kind == "customer":
        return "sale"
    if contact_kind == "vendor":
        return "purchase"
    if contact_kind == "both":
        if contra_account_type == "revenue":
            return "sale"
        if contra_account_type == "expense":
            return "purchase"
    return "other"


def build_lines(
    *,
    amounts: VatComputation,
    contact_side: Side,
    contra_account_id: str,
    contact_account_id: Optional[str],
    vat_account_id: Optional[str],
    payment_account_id: Optional[str],
) -> Tuple[JournalLine, ...]:
    """Decision table for the two to five lines of a quick entry.

    The invoice step opens the receivable/payable for the gross amount. The
    payment step, present only when a payment account is given, closes it again
    within the same entry. Rows without an account or amount are dropped.
    """
    contra_side = opposite(contact_side)
    rows = [
        (contact_account_id, contact_side, amounts.gross),
        (contra_account_id, contra_side, amounts.net),
        (vat_account_id, contra_side, amounts.tax),
    ]
    if payment_account_id is not None:
        rows += [
            (payment_account_id, contact_side, amounts.gross),
            (contact_account_id, contra_side, amounts.gross),
        ]
    return tuple(
        JournalLine(account_id=account_id, side=side, amount=amount)
        for account_id, side, amount in rows
        if account_id is not None and amount > 0
    )


def _resolve(chart: ChartOfAccounts, account_id: str) -> Account:
    try:
        return chart.by_id(account_id)
    except AccountNotFound as exc:
        raise DanglingAccountReference(account_id) from exc


def _contact_account(contact: Contact, role: TransactionRole, chart: ChartOfAccounts) -> Optional[str]:
    if role == "other":
        return None
    if role == "sale":
        account_id, label = contact.receivable_account_id(), "receivable (Debitor)"
    else:
        account_id, label = contact.payable_account_id(), "payable (Kreditor)"
    if account_id is None:
        raise MissingContactAccount(f"Contact '{contact.name}' has no {label} account")
    return _resolve(chart, account_id).id


def generate_quick_entry(
    intent: QuickEntryIntent,
    *,
    contact: Optional[Contact],
    chart: ChartOfAccounts,
    classifier: Classifier = classify_transaction,
) -> JournalEntry:
    """Build a draft entry for ``intent``; aborts before emitting any line on error."""
    if contact is None:
        raise MissingContact("A contact is required for quick entry")
    if not intent.contra_account_id:
        raise MissingContraAccount("A revenue or expense contra account is required")
    contra = _resolve(chart, intent.contra_account_id)
    if intent.gross_amount is None or intent.gross_amount <= 0:
        raise MissingGrossAmount(f"A positive gross amount is required, got {intent.gross_amount}")
    payment_account_id = None
    if intent.is_paid:
        if not intent.payment_account_id:
            raise MissingPaymentAccount("Paid bookings need a payment account (Kasse/Bank)")
        payment_account_id = _resolve(chart, intent.payment_account_id).id

    amounts = compute_vat(intent.gross_amount, intent.vat_rate)
    role = classifier(contact.kind, contra.type)
    # unclassified bookings take their direction from the contra account
    direction: Direction
    if role == "other":
        direction = "sale" if contra.type == "revenue" else "purchase"
    else:
        direction = role
    contact_account_id = _contact_account(contact, role, chart)

    vat_account_id = None
    if amounts.tax > 0:
        vat_direction = "output" if direction == "sale" else "input"
        vat_account_id = chart.vat_account(intent.vat_rate, vat_direction).id

    lines = build_lines(
        amounts=amounts,
        contact_side="debit" if direction == "sale" else "credit",
        contra_account_id=contra.id,
        contact_account_id=contact_account_id,
        vat_account_id=vat_account_id,
        payment_account_id=payment_account_id,
    )
    if role == "other":
        LOGGER.info(
            "Contact %s is unclassified; the contact line must be added manually before posting",
            contact.id,
        )
    description = intent.description or _describe(role, contact, contra, intent.is_paid)
    return JournalEntry(
        description=description,
        entry_date=intent.entry_date,
        lines=lines,
        contact_id=contact.id,
        source_document_ref=intent.source_document_ref,
    )


def _describe(role: TransactionRole, contact: Contact, contra: Account, is_paid: bool) -> str:
    prefix = "Bezahlt - " if is_paid else ""
    return f"{prefix}{_ROLE_LABELS[role]} - {contact.name} - {contra.name}"


__all__ = [
    "QuickEntryIntent",
    "TransactionRole",
    "classify_transaction",
    "build_lines",
    "generate_quick_entry",
]
