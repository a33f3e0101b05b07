from datetime import date
from decimal import Decimal
from typing import List, Tuple

import pytest

from kontor.accounting.chart import ChartOfAccounts, VatAccountTable
from kontor.accounting.engine import AccountingEngine
from kontor.accounting.quick_entry import QuickEntryIntent, classify_transaction, generate_quick_entry
from kontor.config import AppSettings
from kontor.errors import (
    DanglingAccountReference,
    MissingContact,
    MissingContactAccount,
    MissingContraAccount,
    MissingGrossAmount,
    MissingPaymentAccount,
    MissingVatAccount,
)
from kontor.models import Account, Contact, JournalEntry

TENANT = "t1"
DAY = date(2026, 3, 1)


@pytest.fixture()
def engine() -> AccountingEngine:
    engine = AccountingEngine(AppSettings())
    engine.open_tenant(TENANT)
    return engine


def _rows(entry: JournalEntry) -> List[Tuple[str, str, int]]:
    return [(line.account_id, line.side, line.amount) for line in entry.lines]


def _intent(contact_id: str, contra: str = "acc-8400", **kwargs) -> QuickEntryIntent:
    kwargs.setdefault("gross_amount", 11900)
    return QuickEntryIntent(contact_id=contact_id, contra_account_id=contra, entry_date=DAY, **kwargs)


def test_unpaid_sale_has_three_lines(engine: AccountingEngine) -> None:
    customer = engine.register_contact(TENANT, "Muster GmbH", "customer")
    entry = engine.generate_quick_entry_lines(TENANT, _intent(customer.id))
    assert _rows(entry) == [
        (customer.customer_account_id, "debit", 11900),
        ("acc-8400", "credit", 10000),
        ("acc-1776", "credit", 1900),
    ]
    assert entry.status == "draft"
    assert engine.validate_entry(TENANT, entry).ok


def test_paid_sale_has_five_balanced_lines(engine: AccountingEngine) -> None:
    customer = engine.register_contact(TENANT, "Muster GmbH", "customer")
    entry = engine.generate_quick_entry_lines(
        TENANT, _intent(customer.id, is_paid=True, payment_account_id="acc-1200")
    )
    assert _rows(entry) == [
        (customer.customer_account_id, "debit", 11900),
        ("acc-8400", "credit", 10000),
        ("acc-1776", "credit", 1900),
        ("acc-1200", "debit", 11900),
        (customer.customer_account_id, "credit", 11900),
    ]
    assert entry.debit_total == entry.credit_total == 23800
    posted = engine.post_entry(TENANT, entry)
    assert posted.status == "posted"
    assert engine.account_balance(TENANT, "acc-1200") == 11900
    assert engine.account_balance(TENANT, customer.customer_account_id) == 0


def test_unpaid_purchase_mirrors_sides(engine: AccountingEngine) -> None:
    vendor = engine.register_contact(TENANT, "Papier AG", "vendor")
    entry = engine.generate_quick_entry_lines(TENANT, _intent(vendor.id, contra="acc-3400"))
    assert _rows(entry) == [
        (vendor.vendor_account_id, "credit", 11900),
        ("acc-3400", "debit", 10000),
        ("acc-1576", "debit", 1900),
    ]
    assert engine.validate_entry(TENANT, entry).ok


@pytest.mark.parametrize("is_paid, expected", [(False, 2), (True, 4)])
def test_zero_rate_omits_vat_line(engine: AccountingEngine, is_paid: bool, expected: int) -> None:
    customer = engine.register_contact(TENANT, "Verein e.V.", "customer")
    entry = engine.generate_quick_entry_lines(
        TENANT,
        _intent(
            customer.id,
            contra="acc-8100",
            vat_rate=Decimal("0"),
            is_paid=is_paid,
            payment_account_id="acc-1000" if is_paid else None,
        ),
    )
    assert len(entry.lines) == expected
    assert engine.validate_entry(TENANT, entry).ok


def test_reduced_rate_uses_its_own_vat_account(engine: AccountingEngine) -> None:
    customer = engine.register_contact(TENANT, "Buchladen", "customer")
    entry = engine.generate_quick_entry_lines(
        TENANT, _intent(customer.id, contra="acc-8300", gross_amount=10700, vat_rate=Decimal("7"))
    )
    assert _rows(entry)[1:] == [("acc-8300", "credit", 10000), ("acc-1771", "credit", 700)]


def test_both_contact_is_classified_by_contra_account(engine: AccountingEngine) -> None:
    partner = engine.register_contact(TENANT, "Handelspartner KG", "both")
    sale = engine.generate_quick_entry_lines(TENANT, _intent(partner.id, contra="acc-8400"))
    purchase = engine.generate_quick_entry_lines(TENANT, _intent(partner.id, contra="acc-4930"))
    assert _rows(sale)[0] == (partner.customer_account_id, "debit", 11900)
    assert _rows(purchase)[0] == (partner.vendor_account_id, "credit", 11900)


def test_classification_table() -> None:
    assert classify_transaction("customer", "expense") == "sale"
    assert classify_transaction("vendor", "revenue") == "purchase"
    assert classify_transaction("both", "revenue") == "sale"
    assert classify_transaction("both", "expense") == "purchase"
    assert classify_transaction("both", "asset") == "other"
    assert classify_transaction("other", "revenue") == "other"


def test_other_contact_gets_no_contact_line(engine: AccountingEngine) -> None:
    other = engine.register_contact(TENANT, "Privat", "other")
    entry = engine.generate_quick_entry_lines(TENANT, _intent(other.id))
    assert _rows(entry) == [("acc-8400", "credit", 10000), ("acc-1776", "credit", 1900)]
    assert engine.validate_entry(TENANT, entry).kinds == ["Unbalanced"]


def test_description_is_generated(engine: AccountingEngine) -> None:
    customer = engine.register_contact(TENANT, "Muster GmbH", "customer")
    entry = engine.generate_quick_entry_lines(
        TENANT, _intent(customer.id, is_paid=True, payment_account_id="acc-1200")
    )
    assert entry.description == "Bezahlt - Verkauf - Muster GmbH - Erlöse 19% USt"
    explicit = engine.generate_quick_entry_lines(TENANT, _intent(customer.id, description="Kasse"))
    assert explicit.description == "Kasse"


def test_classifier_can_be_overridden(engine: AccountingEngine) -> None:
    partner = engine.register_contact(TENANT, "Handelspartner KG", "both")
    contact = engine.store.contacts.get(TENANT, partner.id)
    entry = generate_quick_entry(
        _intent(partner.id, contra="acc-4930"),
        contact=contact,
        chart=engine.chart(TENANT),
        classifier=lambda kind, contra_type: "sale",
    )
    assert _rows(entry)[0] == (partner.customer_account_id, "debit", 11900)
    assert _rows(entry)[2] == ("acc-1776", "credit", 1900)


def test_missing_contact(engine: AccountingEngine) -> None:
    with pytest.raises(MissingContact):
        engine.generate_quick_entry_lines(
            TENANT, QuickEntryIntent(contact_id=None, contra_account_id="acc-8400", gross_amount=100)
        )


def test_missing_contra_account(engine: AccountingEngine) -> None:
    customer = engine.register_contact(TENANT, "Muster GmbH", "customer")
    with pytest.raises(MissingContraAccount):
        engine.generate_quick_entry_lines(TENANT, _intent(customer.id, contra=""))
    with pytest.raises(DanglingAccountReference):
        engine.generate_quick_entry_lines(TENANT, _intent(customer.id, contra="acc-9999"))


@pytest.mark.parametrize("gross", [None, 0, -100])
def test_missing_gross_amount(engine: AccountingEngine, gross) -> None:
    customer = engine.register_contact(TENANT, "Muster GmbH", "customer")
    with pytest.raises(MissingGrossAmount):
        engine.generate_quick_entry_lines(TENANT, _intent(customer.id, gross_amount=gross))


def test_missing_payment_account(engine: AccountingEngine) -> None:
    customer = engine.register_contact(TENANT, "Muster GmbH", "customer")
    with pytest.raises(MissingPaymentAccount):
        engine.generate_quick_entry_lines(TENANT, _intent(customer.id, is_paid=True))
    with pytest.raises(DanglingAccountReference):
        engine.generate_quick_entry_lines(
            TENANT, _intent(customer.id, is_paid=True, payment_account_id="acc-1300")
        )


def test_missing_contact_account(engine: AccountingEngine) -> None:
    contact = Contact(id="c-1", name="Ohne Konto", kind="customer")
    with pytest.raises(MissingContactAccount):
        generate_quick_entry(_intent("c-1"), contact=contact, chart=engine.chart(TENANT))


def test_legacy_account_is_used_as_fallback(engine: AccountingEngine) -> None:
    contact = Contact(id="c-1", name="Altkunde", kind="customer", account_id="acc-1400")
    entry = generate_quick_entry(_intent("c-1"), contact=contact, chart=engine.chart(TENANT))
    assert _rows(entry)[0] == ("acc-1400", "debit", 11900)


def test_missing_vat_account() -> None:
    chart = ChartOfAccounts(
        [
            Account(id="acc-1400", code="1400", name="Forderungen", type="asset"),
            Account(id="acc-8400", code="8400", name="Erlöse", type="revenue"),
        ],
        vat_table=VatAccountTable({}),
    )
    contact = Contact(id="c-1", name="Muster GmbH", kind="customer", customer_account_id="acc-1400")
    with pytest.raises(MissingVatAccount):
        generate_quick_entry(_intent("c-1"), contact=contact, chart=chart)
