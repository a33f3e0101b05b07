from datetime import date
from decimal import Decimal

import pytest

from kontor.accounting.engine import AccountingEngine
from kontor.accounting.quick_entry import QuickEntryIntent
from kontor.config import AppSettings
from kontor.documents import DocumentLine
from kontor.errors import AccountNotFound

TENANT = "t1"
DAY = date(2026, 3, 1)


@pytest.fixture()
def engine() -> AccountingEngine:
    engine = AccountingEngine(AppSettings(), today=lambda: DAY)
    engine.open_tenant(TENANT)
    customer = engine.register_contact(TENANT, "Muster GmbH", "customer")
    vendor = engine.register_contact(TENANT, "Papier AG", "vendor")
    engine.post_entry(
        TENANT,
        engine.generate_quick_entry_lines(
            TENANT,
            QuickEntryIntent(
                contact_id=customer.id,
                contra_account_id="acc-8400",
                gross_amount=11900,
                is_paid=True,
                payment_account_id="acc-1200",
                entry_date=DAY,
            ),
        ),
    )
    engine.post_entry(
        TENANT,
        engine.generate_quick_entry_lines(
            TENANT,
            QuickEntryIntent(
                contact_id=vendor.id,
                contra_account_id="acc-4930",
                gross_amount=1070,
                vat_rate=Decimal("7"),
                entry_date=date(2026, 3, 15),
            ),
        ),
    )
    invoice = engine.documents.create_invoice(
        TENANT,
        contact_id=customer.id,
        lines=[DocumentLine(description="Wartung", quantity=3, unit_price=1234)],
    )
    engine.transition_document(TENANT, invoice.id, "book")
    return engine


def test_debits_equal_credits(engine: AccountingEngine) -> None:
    debit_total = 0
    credit_total = 0
    for entry in engine.list_entries(TENANT):
        for line in entry.lines:
            if line.side == "debit":
                debit_total += line.amount
            else:
                credit_total += line.amount
    assert debit_total == credit_total


def test_trial_balance_nets_out(engine: AccountingEngine) -> None:
    balances = engine.trial_balance(TENANT)
    debit_normal = 0
    credit_normal = 0
    for account in engine.list_accounts(TENANT):
        if account.type in {"asset", "expense"}:
            debit_normal += balances[account.code]
        else:
            credit_normal += balances[account.code]
    assert debit_normal == credit_normal
    assert balances["1200"] == 11900
    assert balances["8400"] == 10000 + 3702
    assert balances["1571"] == 70


def test_balance_as_of(engine: AccountingEngine) -> None:
    assert engine.account_balance(TENANT, "acc-4930", as_of=DAY) == 0
    assert engine.account_balance(TENANT, "acc-4930") == 1000


def test_drafts_do_not_count(engine: AccountingEngine) -> None:
    engine.journal.create_draft(
        TENANT,
        description="Entwurf",
        entry_date=DAY,
        lines=[],
    )
    assert engine.trial_balance(TENANT)["1200"] == 11900


def test_create_new_account(engine: AccountingEngine) -> None:
    account = engine.add_account(TENANT, code="4600", name="Werbekosten", type="expense")
    assert account.id == "acc-4600"
    assert engine.get_account(TENANT, "acc-4600").name == "Werbekosten"
    assert "acc-4600" in engine.chart(TENANT)
    with pytest.raises(ValueError):
        engine.add_account(TENANT, code="4600", name="Doppelt", type="expense")
    with pytest.raises(AccountNotFound):
        engine.get_account("t2", "acc-4600")


def test_compute_vat(engine: AccountingEngine) -> None:
    result = engine.compute_vat(11900, "19")
    assert (result.net, result.tax) == (10000, 1900)


def test_open_tenant_is_idempotent(engine: AccountingEngine) -> None:
    before = len(engine.list_accounts(TENANT))
    engine.open_tenant(TENANT)
    assert len(engine.list_accounts(TENANT)) == before


def test_tenant_without_seed() -> None:
    engine = AccountingEngine(AppSettings(seed_chart=False))
    assert engine.open_tenant(TENANT) == []


def test_income_statement(engine: AccountingEngine) -> None:
    statement = engine.income_statement(TENANT)
    assert statement["revenue"]["8400"] == 13702
    assert statement["expenses"]["4930"] == 1000
    assert statement["total_revenue"] == 13702
    assert statement["total_expenses"] == 1000
    assert statement["net_income"] == 12702
    march_first = engine.income_statement(TENANT, start=DAY, end=DAY)
    assert march_first["total_expenses"] == 0


def test_balance_sheet_balances(engine: AccountingEngine) -> None:
    for as_of in (None, DAY):
        sheet = engine.balance_sheet(TENANT, as_of=as_of)
        assert sheet["total_assets"] == sheet["total_liabilities"] + sheet["total_equity"] + sheet["net_income"]
    sheet = engine.balance_sheet(TENANT)
    assert sheet["total_assets"] == 11900 + 4405 + 70
    assert sheet["liabilities"]["1776"] == 2603
    assert engine.balance_sheet(TENANT, as_of=DAY)["total_liabilities"] == 2603


def test_account_movements(engine: AccountingEngine) -> None:
    report = engine.account_movements(TENANT, "acc-4930", start=date(2026, 3, 2))
    assert report["opening_balance"] == 0
    assert [(row["side"], row["amount"]) for row in report["movements"]] == [("debit", 1000)]
    assert report["closing_balance"] == 1000

    later = engine.account_movements(TENANT, "acc-4930", start=date(2026, 3, 16))
    assert later["opening_balance"] == 1000
    assert later["movements"] == []
    assert later["closing_balance"] == 1000


def test_vat_summary(engine: AccountingEngine) -> None:
    summary = engine.vat_summary(TENANT)
    assert summary["output"] == {"1771": 0, "1776": 2603}
    assert summary["input"] == {"1571": 70, "1576": 0}
    assert summary["payable"] == 2533
    assert engine.vat_summary(TENANT, end=DAY)["total_input"] == 0


def test_reports_drop_reversed_pairs(engine: AccountingEngine) -> None:
    purchase = next(entry for entry in engine.list_entries(TENANT) if entry.entry_date == date(2026, 3, 15))
    reversal = engine.reverse_entry(TENANT, purchase.id)

    assert engine.income_statement(TENANT)["total_expenses"] == 0
    assert engine.vat_summary(TENANT)["total_input"] == 0
    assert engine.account_movements(TENANT, "acc-4930")["movements"] == []
    assert engine.trial_balance(TENANT)["4930"] == 0
    sheet = engine.balance_sheet(TENANT)
    assert sheet["total_assets"] == sheet["total_liabilities"] + sheet["total_equity"] + sheet["net_income"]

    # reversing the reversal books the purchase again
    engine.reverse_entry(TENANT, reversal.id)
    assert engine.income_statement(TENANT)["total_expenses"] == 1000
    assert engine.vat_summary(TENANT)["total_input"] == 70
