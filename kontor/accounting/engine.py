"""Accounting engine: the operations the bookkeeping core exposes to callers."""
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Set

from kontor.accounting.chart import ChartOfAccounts, seed_default_chart
from kontor.accounting.contacts import ContactService
from kontor.accounting.journal import JournalService
from kontor.accounting.quick_entry import QuickEntryIntent, generate_quick_entry
from kontor.accounting.validation import ValidationResult
from kontor.config import AppSettings, get_settings
from kontor.documents.service import Document, DocumentService
from kontor.models import Account, AccountType, Contact, ContactKind, JournalEntry, Side, utcnow
from kontor.money import VatComputation, compute_vat
from kontor.repositories import InMemoryStore

LOGGER = logging.getLogger(__name__)


class AccountingEngine:
    """In-memory bookkeeping engine wiring the ledger and document services together."""

    def __init__(
        self,
        settings: Optional[AppSettings] = None,
        store: Optional[InMemoryStore] = None,
        *,
        clock: Callable[[], datetime] = utcnow,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.settings = settings or get_settings()
        self.store = store or InMemoryStore(self.settings.number_prefixes)
        self.journal = JournalService(
            self.store.journal,
            self.store,
            self.store.locks,
            self.chart,
            reversal_prefix=self.settings.reversal_prefix,
            clock=clock,
        )
        self.contacts = ContactService(
            self.store.contacts,
            self.store.accounts,
            self.store,
            self.store.locks,
            debtor_base=self.settings.debtor_account_base,
            creditor_base=self.settings.creditor_account_base,
        )
        self.documents = DocumentService(
            self.store.documents,
            self.store.contacts,
            self.store.numbers,
            self.journal,
            self.chart,
            self.store,
            self.store.locks,
            payment_terms_days=self.settings.payment_terms_days,
            default_unit=self.settings.default_unit,
            today=today,
        )

    # ------------------------------------------------------------------
    # Tenants and accounts
    # ------------------------------------------------------------------
    def open_tenant(self, tenant_id: str) -> List[Account]:
        """Prepare a tenant, seeding the SKR03 defaults when configured to."""
        if self.settings.seed_chart and not self.store.accounts.list(tenant_id):
            return seed_default_chart(self.store.accounts, tenant_id)
        return self.store.accounts.list(tenant_id)

    def chart(self, tenant_id: str) -> ChartOfAccounts:
        return ChartOfAccounts.from_repository(self.store.accounts, tenant_id, self.settings)

    def list_accounts(self, tenant_id: str) -> List[Account]:
        return self.store.accounts.list(tenant_id)

    def get_account(self, tenant_id: str, account_id: str) -> Account:
        return self.store.accounts.get(tenant_id, account_id)

    def add_account(
        self,
        tenant_id: str,
        *,
        code: str,
        name: str,
        type: AccountType,
        account_id: Optional[str] = None,
    ) -> Account:
        account = Account(id=account_id or f"acc-{code}", code=code, name=name, type=type)
        return self.store.accounts.add(tenant_id, account)

    def register_contact(self, tenant_id: str, name: str, kind: ContactKind) -> Contact:
        return self.contacts.register_contact(tenant_id, name, kind)

    # ------------------------------------------------------------------
    # Ledger operations
    # ------------------------------------------------------------------
    def compute_vat(self, gross_amount: int, rate_percent: Decimal | int | str) -> VatComputation:
        return compute_vat(gross_amount, rate_percent)

    def generate_quick_entry_lines(self, tenant_id: str, intent: QuickEntryIntent) -> JournalEntry:
        contact = None
        if intent.contact_id:
            contact = self.store.contacts.get(tenant_id, intent.contact_id)
        return generate_quick_entry(intent, contact=contact, chart=self.chart(tenant_id))

    def validate_entry(self, tenant_id: str, entry: JournalEntry) -> ValidationResult:
        return self.journal.validate(tenant_id, entry)

    def post_entry(self, tenant_id: str, entry: JournalEntry) -> JournalEntry:
        return self.journal.post_entry(tenant_id, entry)

    def reverse_entry(self, tenant_id: str, entry_id: str) -> JournalEntry:
        return self.journal.reverse(tenant_id, entry_id)

    def list_entries(self, tenant_id: str) -> List[JournalEntry]:
        return self.store.journal.list(tenant_id)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------
    def transition_document(
        self, tenant_id: str, document_id: str, action: str, **params: Any
    ) -> Document:
        return self.documents.transition(tenant_id, document_id, action, **params)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------
    def trial_balance(self, tenant_id: str, *, as_of: Optional[date] = None) -> Dict[str, int]:
        """Balance per account code, in minor units, over all booked entries."""
        balances: Dict[str, int] = {}
        for account in self.store.accounts.list(tenant_id):
            balances[account.code] = self.account_balance(tenant_id, account.id, as_of=as_of)
        return balances

    def account_balance(
        self, tenant_id: str, account_id: str, *, as_of: Optional[date] = None
    ) -> int:
        account = self.store.accounts.get(tenant_id, account_id)
        return self._net_activity(tenant_id, account, end=as_of)

    def income_statement(
        self, tenant_id: str, *, start: Optional[date] = None, end: Optional[date] = None
    ) -> Dict[str, Any]:
        revenue: Dict[str, int] = {}
        expenses: Dict[str, int] = {}
        for account in self.store.accounts.list(tenant_id):
            if account.type == "revenue":
                revenue[account.code] = self._net_activity(tenant_id, account, start=start, end=end)
            elif account.type == "expense":
                expenses[account.code] = self._net_activity(tenant_id, account, start=start, end=end)
        total_revenue = sum(revenue.values())
        total_expenses = sum(expenses.values())
        return {
            "revenue": revenue,
            "expenses": expenses,
            "total_revenue": total_revenue,
            "total_expenses": total_expenses,
            "net_income": total_revenue - total_expenses,
        }

    def balance_sheet(self, tenant_id: str, *, as_of: Optional[date] = None) -> Dict[str, Any]:
        """Assets, liabilities and equity as of a date, with the unclosed result.

        ``total_assets`` equals ``total_liabilities + total_equity + net_income``.
        """
        sections: Dict[str, Dict[str, int]] = {"asset": {}, "liability": {}, "equity": {}}
        for account in self.store.accounts.list(tenant_id):
            if account.type in sections:
                sections[account.type][account.code] = self._net_activity(tenant_id, account, end=as_of)
        return {
            "assets": sections["asset"],
            "liabilities": sections["liability"],
            "equity": sections["equity"],
            "total_assets": sum(sections["asset"].values()),
            "total_liabilities": sum(sections["liability"].values()),
            "total_equity": sum(sections["equity"].values()),
            "net_income": self.income_statement(tenant_id, end=as_of)["net_income"],
        }

    def account_movements(
        self,
        tenant_id: str,
        account_id: str,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Dict[str, Any]:
        """Opening balance, every line booked on the account in the period, closing balance."""
        account = self.store.accounts.get(tenant_id, account_id)
        opening = 0
        if start is not None:
            opening = self._net_activity(tenant_id, account, end=start - timedelta(days=1))
        movements: List[Dict[str, Any]] = []
        totals: Dict[Side, int] = {"debit": 0, "credit": 0}
        for entry in self._reportable_entries(tenant_id, start=start, end=end):
            for line in entry.lines:
                if line.account_id != account_id:
                    continue
                totals[line.side] += line.amount
                movements.append(
                    {
                        "entry_id": entry.id,
                        "entry_date": entry.entry_date,
                        "description": entry.description,
                        "side": line.side,
                        "amount": line.amount,
                    }
                )
        return {
            "account": account.code,
            "opening_balance": opening,
            "movements": movements,
            "closing_balance": opening + self._net_balance(account, totals["debit"], totals["credit"]),
        }

    def vat_summary(
        self, tenant_id: str, *, start: Optional[date] = None, end: Optional[date] = None
    ) -> Dict[str, Any]:
        """Output and input VAT per tax account; ``payable`` is output minus input."""
        codes = {
            direction: set(by_rate.values()) for direction, by_rate in self.settings.vat_accounts.items()
        }
        prefixes = self.settings.vat_fallback_prefixes
        summary: Dict[str, Dict[str, int]] = {"output": {}, "input": {}}
        for account in self.store.accounts.list(tenant_id):
            for direction in summary:
                prefix = prefixes.get(direction)
                if account.code in codes.get(direction, ()) or (prefix and account.code.startswith(prefix)):
                    summary[direction][account.code] = self._net_activity(
                        tenant_id, account, start=start, end=end
                    )
        total_output = sum(summary["output"].values())
        total_input = sum(summary["input"].values())
        return {
            "output": summary["output"],
            "input": summary["input"],
            "total_output": total_output,
            "total_input": total_input,
            "payable": total_output - total_input,
        }

    def _reportable_entries(
        self, tenant_id: str, *, start: Optional[date] = None, end: Optional[date] = None
    ) -> List[JournalEntry]:
        booked = [entry for entry in self.store.journal.list(tenant_id) if entry.status != "draft"]
        # a standing reversal and the entry it cancels drop out together
        paired: Set[str] = set()
        for entry in booked:
            if entry.status == "posted" and entry.reversal_of:
                paired.update((entry.id, entry.reversal_of))
        return [
            entry
            for entry in booked
            if entry.id not in paired
            and (start is None or entry.entry_date >= start)
            and (end is None or entry.entry_date <= end)
        ]

    def _net_activity(
        self,
        tenant_id: str,
        account: Account,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> int:
        totals: Dict[Side, int] = {"debit": 0, "credit": 0}
        for entry in self._reportable_entries(tenant_id, start=start, end=end):
            for line in entry.lines:
                if line.account_id == account.id:
                    totals[line.side] += line.amount
        return self._net_balance(account, totals["debit"], totals["credit"])

    @staticmethod
    def _normal_balance(account: Account) -> Side:
        return "debit" if account.type in {"asset", "expense"} else "credit"

    def _net_balance(self, account: Account, debit_total: int, credit_total: int) -> int:
        if self._normal_balance(account) == "debit":
            return debit_total - credit_total
        return credit_total - debit_total


__all__ = ["AccountingEngine"]
