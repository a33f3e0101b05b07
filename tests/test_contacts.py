import pytest

from kontor.accounting.engine import AccountingEngine
from kontor.config import AppSettings
from kontor.errors import ContactNotFound

TENANT = "t1"


@pytest.fixture()
def engine() -> AccountingEngine:
    engine = AccountingEngine(AppSettings())
    engine.open_tenant(TENANT)
    return engine


def test_customer_gets_debtor_account(engine: AccountingEngine) -> None:
    contact = engine.register_contact(TENANT, "Muster GmbH", "customer")
    account = engine.get_account(TENANT, contact.customer_account_id)
    assert account.code == "10001"
    assert account.type == "asset"
    assert account.name == "Muster GmbH"
    assert contact.vendor_account_id is None


def test_debtor_codes_are_sequential(engine: AccountingEngine) -> None:
    first = engine.register_contact(TENANT, "Erster Kunde", "customer")
    second = engine.register_contact(TENANT, "Zweiter Kunde", "customer")
    assert first.customer_account_id == "acc-10001"
    assert second.customer_account_id == "acc-10002"


def test_vendor_gets_creditor_account(engine: AccountingEngine) -> None:
    contact = engine.register_contact(TENANT, "Papier AG", "vendor")
    account = engine.get_account(TENANT, contact.vendor_account_id)
    assert account.code == "70001"
    assert account.type == "liability"


def test_both_gets_both_accounts_and_other_none(engine: AccountingEngine) -> None:
    both = engine.register_contact(TENANT, "Handelspartner KG", "both")
    other = engine.register_contact(TENANT, "Privat", "other")
    assert both.customer_account_id == "acc-10001"
    assert both.vendor_account_id == "acc-70001"
    assert other.customer_account_id is None and other.vendor_account_id is None


def test_change_kind_opens_missing_account(engine: AccountingEngine) -> None:
    contact = engine.register_contact(TENANT, "Muster GmbH", "customer")
    changed = engine.contacts.change_kind(TENANT, contact.id, "both")
    assert changed.customer_account_id == contact.customer_account_id
    assert changed.vendor_account_id == "acc-70001"
    assert engine.store.contacts.get(TENANT, contact.id).kind == "both"


def test_unknown_contact(engine: AccountingEngine) -> None:
    with pytest.raises(ContactNotFound):
        engine.contacts.change_kind(TENANT, "missing", "vendor")


def test_account_ranges_are_per_tenant(engine: AccountingEngine) -> None:
    engine.open_tenant("t2")
    engine.register_contact(TENANT, "Muster GmbH", "customer")
    other_tenant = engine.register_contact("t2", "Muster GmbH", "customer")
    assert other_tenant.customer_account_id == "acc-10001"
