"""Document lifecycle service: creation, transitions and ledger side effects.

Every transition holds the document's lock. Transitions that touch more than
one entity (bookings, payments, cancellations, conversions) run in a single
unit of work, so a failure leaves every repository as it was.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from kontor.accounting.chart import ChartOfAccounts
from kontor.accounting.journal import JournalService
from kontor.accounting.quick_entry import QuickEntryIntent, generate_quick_entry
from kontor.documents.base import DocumentLine, StatefulDocument, next_status
from kontor.documents.invoice import Invoice, booking_lines, payment_lines
from kontor.documents.order import Order, OrderLine
from kontor.documents.quote import Quote
from kontor.documents.receipt import Receipt, ReceiptType, settlement_lines
from kontor.errors import (
    InvalidTransition,
    MissingContactAccount,
    MissingPaymentAccount,
)
from kontor.models import Contact, JournalEntry
from kontor.repositories import (
    ContactRepository,
    DocumentNumberAllocator,
    DocumentRepository,
    EntityLocks,
    UnitOfWork,
)

LOGGER = logging.getLogger(__name__)

Document = Union[Quote, Order, Invoice, Receipt]
ChartProvider = Callable[[str], ChartOfAccounts]


class DocumentService:
    """Creates quotes, orders, invoices and receipts and drives their state machines."""

    def __init__(
        self,
        documents: DocumentRepository,
        contacts: ContactRepository,
        numbers: DocumentNumberAllocator,
        journal: JournalService,
        chart_provider: ChartProvider,
        unit_of_work: UnitOfWork,
        locks: EntityLocks,
        *,
        payment_terms_days: int = 14,
        default_unit: str = "Stück",
        today: Callable[[], date] = date.today,
    ) -> None:
        self._documents = documents
        self._contacts = contacts
        self._numbers = numbers
        self._journal = journal
        self._chart = chart_provider
        self._uow = unit_of_work
        self._locks = locks
        self._payment_terms = timedelta(days=payment_terms_days)
        self._default_unit = default_unit
        self._today = today

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------
    def create_quote(
        self,
        tenant_id: str,
        *,
        contact_id: str,
        lines: Sequence[DocumentLine],
        document_date: Optional[date] = None,
        valid_until: Optional[date] = None,
        **texts: Optional[str],
    ) -> Quote:
        quote = Quote(
            contact_id=contact_id,
            document_date=document_date or self._today(),
            lines=[self._with_unit(line) for line in lines],
            valid_until=valid_until,
            **texts,
        )
        return self._create(tenant_id, quote)

    def create_order(
        self,
        tenant_id: str,
        *,
        contact_id: str,
        lines: Sequence[DocumentLine],
        document_date: Optional[date] = None,
        delivery_date: Optional[date] = None,
        **texts: Optional[str],
    ) -> Order:
        order = Order(
            contact_id=contact_id,
            document_date=document_date or self._today(),
            lines=[OrderLine.from_line(self._with_unit(line)) for line in lines],
            delivery_date=delivery_date,
            **texts,
        )
        return self._create(tenant_id, order)

    def create_invoice(
        self,
        tenant_id: str,
        *,
        contact_id: str,
        lines: Sequence[DocumentLine],
        document_date: Optional[date] = None,
        due_date: Optional[date] = None,
        order_id: Optional[str] = None,
        **texts: Optional[str],
    ) -> Invoice:
        invoice_date = document_date or self._today()
        invoice = Invoice(
            contact_id=contact_id,
            document_date=invoice_date,
            lines=[self._with_unit(_plain_line(line)) for line in lines],
            due_date=due_date or invoice_date + self._payment_terms,
            order_id=order_id,
            **texts,
        )
        return self._create(tenant_id, invoice)

    def create_receipt(
        self,
        tenant_id: str,
        *,
        receipt_type: ReceiptType,
        title: str,
        gross_amount: int,
        vat_rate: Decimal = Decimal("19"),
        document_date: Optional[date] = None,
        contact_id: Optional[str] = None,
        category_account_id: Optional[str] = None,
        is_paid: bool = False,
        payment_account_id: Optional[str] = None,
        due_date: Optional[date] = None,
        notes: Optional[str] = None,
    ) -> Receipt:
        receipt = Receipt(
            receipt_type=receipt_type,
            title=title,
            document_date=document_date or self._today(),
            gross_amount=gross_amount,
            vat_rate=vat_rate,
            contact_id=contact_id,
            category_account_id=category_account_id,
            is_paid=is_paid,
            payment_account_id=payment_account_id,
            due_date=due_date,
            notes=notes,
        )
        return self._create(tenant_id, receipt)

    def _with_unit(self, line: DocumentLine) -> DocumentLine:
        return line if line.unit else replace(line, unit=self._default_unit)

    def _create(self, tenant_id: str, document: Any) -> Any:
        with self._uow.atomic():
            document.document_number = self._numbers.next(
                tenant_id, document.document_type, document.document_date
            )
            saved = self._documents.save(tenant_id, document)
        LOGGER.info("Created %s %s", saved.document_type, saved.document_number)
        return saved

    # ------------------------------------------------------------------
    # Reads and edits
    # ------------------------------------------------------------------
    def get(self, tenant_id: str, document_id: str) -> Document:
        return self._documents.load(tenant_id, document_id)

    def list(self, tenant_id: str, document_type: Optional[str] = None) -> List[Document]:
        return self._documents.list(tenant_id, document_type)

    def update_lines(
        self, tenant_id: str, document_id: str, lines: Sequence[DocumentLine]
    ) -> Document:
        with self._locks.hold(tenant_id, document_id):
            document = self._documents.load(tenant_id, document_id)
            if isinstance(document, Receipt):
                raise InvalidTransition(document.status, "edit", "receipts have no lines")
            document.replace_lines([self._with_unit(line) for line in lines])
            return self._documents.save(tenant_id, document)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def transition(self, tenant_id: str, document_id: str, action: str, **params: Any) -> Document:
        """Apply ``action`` to a document.

        Returns the document acted upon, except for ``create_order`` and
        ``create_invoice`` which return the newly created document.
        """
        document = self._documents.load(tenant_id, document_id)
        handler = self._handlers(document).get(action)
        if handler is None:
            raise InvalidTransition(document.status, action, f"unknown action for a {document.document_type}")
        return handler(tenant_id, document_id, **params)

    def _handlers(self, document: StatefulDocument) -> Dict[str, Callable[..., Document]]:
        if isinstance(document, Quote):
            return {
                "send": self._simple("send"),
                "accept": self._simple("accept"),
                "reject": self._simple("reject"),
                "expire": self.expire_quote,
                "create_order": self.create_order_from_quote,
            }
        if isinstance(document, Order):
            return {
                "record_delivery": self.record_delivery,
                "create_invoice": self.create_invoice_from_order,
            }
        if isinstance(document, Invoice):
            return {
                "book": self.book_invoice,
                "send": self._simple("send"),
                "mark_paid": self.mark_invoice_paid,
                "mark_overdue": self.mark_invoice_overdue,
                "cancel": self.cancel_invoice,
            }
        return {
            "book": self.book_receipt,
            "mark_paid": self.mark_receipt_paid,
            "cancel": self.cancel_receipt,
        }

    def _simple(
        self,
        action: str,
        due: Optional[Callable[[Any, date], bool]] = None,
        not_due: str = "",
    ) -> Callable[..., Document]:
        """Plain status change; ``due`` gates the time-based ones on a date."""

        def apply(tenant_id: str, document_id: str, *, today: Optional[date] = None) -> Document:
            with self._locks.hold(tenant_id, document_id):
                document = self._documents.load(tenant_id, document_id)
                previous = document.status
                if due is not None and document.can(action) and not due(document, today or self._today()):
                    raise InvalidTransition(previous, action, not_due)
                document.advance(action)
                saved = self._documents.save(tenant_id, document)
            LOGGER.info(
                "%s %s: %s -> %s", saved.document_type, saved.document_number, previous, saved.status
            )
            return saved

        return apply

    # Quotes ------------------------------------------------------------
    def create_order_from_quote(
        self, tenant_id: str, quote_id: str, *, document_date: Optional[date] = None
    ) -> Order:
        with self._locks.hold(tenant_id, quote_id), self._uow.atomic():
            quote: Quote = self._documents.load(tenant_id, quote_id)
            status = next_status(quote.transitions, quote.status, "create_order")
            order = Order(
                contact_id=quote.contact_id,
                document_date=document_date or self._today(),
                lines=[OrderLine.from_line(line) for line in quote.lines],
                quote_id=quote.id,
                notes=quote.notes,
                intro_text=quote.intro_text,
                payment_terms=quote.payment_terms,
                footer_note=quote.footer_note,
            )
            order = self._create(tenant_id, order)
            quote.status = status
            quote.order_id = order.id
            self._documents.save(tenant_id, quote)
        return order

    def expire_quote(self, tenant_id: str, quote_id: str, *, today: Optional[date] = None) -> Quote:
        return self._simple("expire", Quote.is_expired, "quote is still valid")(
            tenant_id, quote_id, today=today
        )

    def expire_quotes(self, tenant_id: str, today: Optional[date] = None) -> List[Quote]:
        """Expire every sent or accepted quote whose ``valid_until`` has passed."""
        today = today or self._today()
        expired = []
        for quote in self._documents.list(tenant_id, "quote"):
            if quote.is_expired(today):
                expired.append(self.expire_quote(tenant_id, quote.id, today=today))
        return expired

    # Orders ------------------------------------------------------------
    def record_delivery(
        self,
        tenant_id: str,
        order_id: str,
        *,
        quantities: Optional[Mapping[int, Decimal]] = None,
    ) -> Order:
        with self._locks.hold(tenant_id, order_id):
            order: Order = self._documents.load(tenant_id, order_id)
            order.record_delivery(quantities)
            saved = self._documents.save(tenant_id, order)
        LOGGER.info("Order %s delivery recorded, now %s", saved.document_number, saved.status)
        return saved

    def create_invoice_from_order(
        self,
        tenant_id: str,
        order_id: str,
        *,
        quantities: Optional[Mapping[int, Decimal]] = None,
        document_date: Optional[date] = None,
    ) -> Invoice:
        """Draft an invoice for the given (or all remaining) quantities."""
        with self._locks.hold(tenant_id, order_id), self._uow.atomic():
            order: Order = self._documents.load(tenant_id, order_id)
            plan = order.plan_invoice(quantities)
            lines = [
                replace(_plain_line(order.lines[index]), quantity=quantity)
                for index, quantity in sorted(plan.items())
            ]
            invoice = self.create_invoice(
                tenant_id,
                contact_id=order.contact_id,
                lines=lines,
                document_date=document_date,
                order_id=order.id,
                payment_terms=order.payment_terms,
            )
            order.apply_invoiced(plan)
            order.invoice_ids.append(invoice.id)
            self._documents.save(tenant_id, order)
        return invoice

    # Invoices ----------------------------------------------------------
    def book_invoice(self, tenant_id: str, invoice_id: str) -> Invoice:
        with self._locks.hold(tenant_id, invoice_id), self._uow.atomic():
            invoice: Invoice = self._documents.load(tenant_id, invoice_id)
            status = next_status(invoice.transitions, invoice.status, "book")
            contact = self._contacts.get(tenant_id, invoice.contact_id)
            receivable = _receivable(contact)
            entry = JournalEntry(
                description=f"Rechnung {invoice.document_number} - {contact.name}",
                entry_date=invoice.document_date,
                lines=booking_lines(invoice, receivable, self._chart(tenant_id)),
                contact_id=contact.id,
                source_document_ref=invoice.document_number,
            )
            posted = self._journal.record_posted(tenant_id, entry)
            invoice.status = status
            invoice.journal_entry_id = posted.id
            saved = self._documents.save(tenant_id, invoice)
        LOGGER.info("Booked invoice %s as journal entry %s", saved.document_number, posted.id)
        return saved

    def mark_invoice_paid(
        self,
        tenant_id: str,
        invoice_id: str,
        *,
        payment_account_id: Optional[str] = None,
        payment_date: Optional[date] = None,
    ) -> Invoice:
        with self._locks.hold(tenant_id, invoice_id), self._uow.atomic():
            invoice: Invoice = self._documents.load(tenant_id, invoice_id)
            status = next_status(invoice.transitions, invoice.status, "mark_paid")
            if not payment_account_id:
                raise MissingPaymentAccount("Marking an invoice paid needs a payment account (Kasse/Bank)")
            contact = self._contacts.get(tenant_id, invoice.contact_id)
            entry = JournalEntry(
                description=f"Zahlung {invoice.document_number} - {contact.name}",
                entry_date=payment_date or self._today(),
                lines=payment_lines(invoice, payment_account_id, _receivable(contact)),
                contact_id=contact.id,
                source_document_ref=invoice.document_number,
            )
            posted = self._journal.record_posted(tenant_id, entry)
            invoice.status = status
            invoice.payment_entry_id = posted.id
            saved = self._documents.save(tenant_id, invoice)
        LOGGER.info("Invoice %s paid via journal entry %s", saved.document_number, posted.id)
        return saved

    def cancel_invoice(self, tenant_id: str, invoice_id: str) -> Invoice:
        with self._locks.hold(tenant_id, invoice_id), self._uow.atomic():
            invoice: Invoice = self._documents.load(tenant_id, invoice_id)
            invoice.advance("cancel")
            if invoice.journal_entry_id:
                self._journal.reverse(tenant_id, invoice.journal_entry_id)
            saved = self._documents.save(tenant_id, invoice)
        LOGGER.info("Cancelled invoice %s", saved.document_number)
        return saved

    def mark_invoice_overdue(
        self, tenant_id: str, invoice_id: str, *, today: Optional[date] = None
    ) -> Invoice:
        return self._simple("mark_overdue", Invoice.is_overdue, "due date not reached")(
            tenant_id, invoice_id, today=today
        )

    def flag_overdue_invoices(self, tenant_id: str, today: Optional[date] = None) -> List[Invoice]:
        """Move every sent invoice past its due date to ``overdue``."""
        today = today or self._today()
        flagged = []
        for invoice in self._documents.list(tenant_id, "invoice"):
            if invoice.is_overdue(today):
                flagged.append(self.mark_invoice_overdue(tenant_id, invoice.id, today=today))
        return flagged

    # Receipts ----------------------------------------------------------
    def book_receipt(self, tenant_id: str, receipt_id: str) -> Receipt:
        with self._locks.hold(tenant_id, receipt_id), self._uow.atomic():
            receipt: Receipt = self._documents.load(tenant_id, receipt_id)
            status = next_status(receipt.transitions, receipt.status, "book")
            role = receipt.role
            if role is None:
                raise InvalidTransition(
                    receipt.status, "book", f"receipt type '{receipt.receipt_type}' cannot be booked automatically"
                )
            chart = self._chart(tenant_id)
            contra_id = receipt.category_account_id or chart.find_revenue_or_expense_default(role).id
            contact = self._contacts.get(tenant_id, receipt.contact_id) if receipt.contact_id else None
            intent = QuickEntryIntent(
                contact_id=receipt.contact_id,
                contra_account_id=contra_id,
                gross_amount=receipt.gross_amount,
                vat_rate=receipt.vat_rate,
                is_paid=receipt.is_paid,
                payment_account_id=receipt.payment_account_id,
                entry_date=receipt.document_date,
                description=f"Beleg {receipt.document_number} - {receipt.title}",
                source_document_ref=receipt.document_number,
            )
            draft = generate_quick_entry(
                intent, contact=contact, chart=chart, classifier=lambda kind, contra_type: role
            )
            posted = self._journal.record_posted(tenant_id, draft)
            receipt.status = status
            receipt.journal_entry_id = posted.id
            if receipt.is_paid:
                receipt.advance("mark_paid")
                receipt.payment_entry_id = posted.id
            saved = self._documents.save(tenant_id, receipt)
        LOGGER.info("Booked receipt %s as journal entry %s", saved.document_number, posted.id)
        return saved

    def mark_receipt_paid(
        self,
        tenant_id: str,
        receipt_id: str,
        *,
        payment_account_id: Optional[str] = None,
        payment_date: Optional[date] = None,
    ) -> Receipt:
        with self._locks.hold(tenant_id, receipt_id), self._uow.atomic():
            receipt: Receipt = self._documents.load(tenant_id, receipt_id)
            status = next_status(receipt.transitions, receipt.status, "mark_paid")
            payment_account_id = payment_account_id or receipt.payment_account_id
            if not payment_account_id:
                raise MissingPaymentAccount("Marking a receipt paid needs a payment account (Kasse/Bank)")
            contact = self._contacts.get(tenant_id, receipt.contact_id)
            contact_account = (
                contact.receivable_account_id() if receipt.role == "sale" else contact.payable_account_id()
            )
            if contact_account is None:
                raise MissingContactAccount(f"Contact '{contact.name}' has no account to settle")
            entry = JournalEntry(
                description=f"Zahlung {receipt.document_number} - {receipt.title}",
                entry_date=payment_date or self._today(),
                lines=settlement_lines(receipt, payment_account_id, contact_account),
                contact_id=contact.id,
                source_document_ref=receipt.document_number,
            )
            posted = self._journal.record_posted(tenant_id, entry)
            receipt.status = status
            receipt.is_paid = True
            receipt.payment_account_id = payment_account_id
            receipt.payment_entry_id = posted.id
            saved = self._documents.save(tenant_id, receipt)
        return saved

    def cancel_receipt(self, tenant_id: str, receipt_id: str) -> Receipt:
        with self._locks.hold(tenant_id, receipt_id), self._uow.atomic():
            receipt: Receipt = self._documents.load(tenant_id, receipt_id)
            receipt.advance("cancel")
            for entry_id in dict.fromkeys((receipt.payment_entry_id, receipt.journal_entry_id)):
                if entry_id:
                    self._journal.reverse(tenant_id, entry_id)
            saved = self._documents.save(tenant_id, receipt)
        LOGGER.info("Cancelled receipt %s", saved.document_number)
        return saved


def _receivable(contact: Contact) -> str:
    account_id = contact.receivable_account_id()
    if account_id is None:
        raise MissingContactAccount(f"Contact '{contact.name}' has no receivable (Debitor) account")
    return account_id


def _plain_line(line: DocumentLine) -> DocumentLine:
    return DocumentLine(
        description=line.description,
        quantity=line.quantity,
        unit_price=line.unit_price,
        tax_rate=line.tax_rate,
        unit=line.unit,
        account_id=line.account_id,
    )


__all__ = ["Document", "DocumentService"]
