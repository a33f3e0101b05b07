"""Chart of accounts registry and the VAT rate to account-code table."""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Literal, Mapping, Optional, Tuple

from kontor.config import AppSettings
from kontor.errors import AccountNotFound, MissingVatAccount
from kontor.models import Account, AccountType
from kontor.money import to_decimal
from kontor.repositories import AccountRepository

LOGGER = logging.getLogger(__name__)

Direction = Literal["sale", "purchase"]
VatDirection = Literal["output", "input"]

# code, name, type
SKR03_DEFAULT_ACCOUNTS: Tuple[Tuple[str, str, AccountType], ...] = (
    ("1000", "Kasse", "asset"),
    ("1200", "Bank", "asset"),
    ("1400", "Forderungen a.LL.", "asset"),
    ("1571", "Vorsteuer 7%", "asset"),
    ("1576", "Vorsteuer 19%", "asset"),
    ("1600", "Verbindlichkeiten a.LL.", "liability"),
    ("1771", "Umsatzsteuer 7%", "liability"),
    ("1776", "Umsatzsteuer 19%", "liability"),
    ("3400", "Wareneingang 19%", "expense"),
    ("4930", "Bürobedarf", "expense"),
    ("4980", "Betriebsbedarf", "expense"),
    ("8100", "Steuerfreie Umsätze", "revenue"),
    ("8300", "Erlöse 7% USt", "revenue"),
    ("8400", "Erlöse 19% USt", "revenue"),
)


def seed_default_chart(repository: AccountRepository, tenant_id: str) -> List[Account]:
    """Populate a tenant with the SKR03 default accounts (ids ``acc-<code>``)."""
    accounts = []
    for code, name, account_type in SKR03_DEFAULT_ACCOUNTS:
        account = Account(id=f"acc-{code}", code=code, name=name, type=account_type)
        accounts.append(repository.add(tenant_id, account))
    LOGGER.debug("Seeded %d default accounts for tenant %s", len(accounts), tenant_id)
    return accounts


class VatAccountTable:
    """Maps ``(rate, direction)`` to a VAT account code.

    Injected rather than compiled in so SKR03, SKR04 or custom charts can be
    used without code changes.
    """

    def __init__(self, codes: Mapping[Tuple[Decimal, VatDirection], str]) -> None:
        self._codes: Dict[Tuple[Decimal, VatDirection], str] = dict(codes)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Mapping[str, str]]) -> "VatAccountTable":
        codes: Dict[Tuple[Decimal, VatDirection], str] = {}
        for direction, by_rate in mapping.items():
            for rate, code in by_rate.items():
                codes[(to_decimal(rate), direction)] = code  # type: ignore[index]
        return cls(codes)

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "VatAccountTable":
        return cls.from_mapping(settings.vat_accounts)

    def code_for(self, rate: Decimal | int | str, direction: VatDirection) -> Optional[str]:
        return self._codes.get((to_decimal(rate), direction))


class ChartOfAccounts:
    """Read-only registry of one tenant's accounts."""

    def __init__(
        self,
        accounts: Iterable[Account],
        *,
        vat_table: VatAccountTable,
        default_revenue_code: Optional[str] = None,
        default_expense_code: Optional[str] = None,
        vat_fallback_prefixes: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._by_id: Dict[str, Account] = {}
        self._by_code: Dict[str, Account] = {}
        for account in sorted(accounts, key=lambda acc: acc.code):
            self._by_id[account.id] = account
            self._by_code[account.code] = account
        self.vat_table = vat_table
        self._default_codes: Dict[Direction, Optional[str]] = {
            "sale": default_revenue_code,
            "purchase": default_expense_code,
        }
        self._vat_fallback_prefixes = dict(vat_fallback_prefixes or {})

    @classmethod
    def from_repository(
        cls, repository: AccountRepository, tenant_id: str, settings: AppSettings
    ) -> "ChartOfAccounts":
        return cls(
            repository.list(tenant_id),
            vat_table=VatAccountTable.from_settings(settings),
            default_revenue_code=settings.default_revenue_account_code,
            default_expense_code=settings.default_expense_account_code,
            vat_fallback_prefixes=settings.vat_fallback_prefixes,
        )

    def __contains__(self, account_id: object) -> bool:
        return account_id in self._by_id

    @property
    def accounts(self) -> List[Account]:
        return list(self._by_id.values())

    def by_id(self, account_id: str) -> Account:
        try:
            return self._by_id[account_id]
        except KeyError as exc:
            raise AccountNotFound(f"Unknown account '{account_id}'") from exc

    def by_code(self, code: str) -> Account:
        try:
            return self._by_code[code]
        except KeyError as exc:
            raise AccountNotFound(f"No account with code '{code}'") from exc

    def find_revenue_or_expense_default(self, direction: Direction) -> Account:
        """Default contra account when no explicit one is known."""
        wanted: AccountType = "revenue" if direction == "sale" else "expense"
        code = self._default_codes.get(direction)
        if code and code in self._by_code and self._by_code[code].type == wanted:
            return self._by_code[code]
        for account in self._by_id.values():
            if account.type == wanted:
                LOGGER.debug("Default %s account %s not found; using %s", wanted, code, account.code)
                return account
        raise AccountNotFound(f"No {wanted} account available as default")

    def vat_account(self, rate: Decimal | int | str, direction: VatDirection) -> Account:
        code = self.vat_table.code_for(rate, direction)
        if code is not None and code in self._by_code:
            return self._by_code[code]
        wanted: AccountType = "liability" if direction == "output" else "asset"
        prefix = self._vat_fallback_prefixes.get(direction)
        if prefix:
            for account in self._by_id.values():
                if account.type == wanted and account.code.startswith(prefix):
                    LOGGER.debug(
                        "No %s VAT account for rate %s (code %s); falling back to %s",
                        direction,
                        rate,
                        code,
                        account.code,
                    )
                    return account
        raise MissingVatAccount(f"No {direction} VAT account configured for rate {rate}%")


__all__ = [
    "SKR03_DEFAULT_ACCOUNTS",
    "ChartOfAccounts",
    "VatAccountTable",
    "seed_default_chart",
]
