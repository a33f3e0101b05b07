"""Contact registration with automatic debtor/creditor accounts."""
from __future__ import annotations

import logging
from typing import Optional
from uuid import uuid4

from kontor.models import Account, Contact, ContactKind
from kontor.repositories import AccountRepository, ContactRepository, EntityLocks, UnitOfWork

LOGGER = logging.getLogger(__name__)


class ContactService:
    """Opens a receivable account for customers and a payable account for vendors.

    ``other`` contacts get no account; bookings for them need an explicit
    operator choice.
    """

    def __init__(
        self,
        contacts: ContactRepository,
        accounts: AccountRepository,
        unit_of_work: UnitOfWork,
        locks: EntityLocks,
        *,
        debtor_base: int = 10000,
        creditor_base: int = 70000,
    ) -> None:
        self._contacts = contacts
        self._accounts = accounts
        self._uow = unit_of_work
        self._locks = locks
        self._bases = {"customer": debtor_base, "vendor": creditor_base}

    def register_contact(self, tenant_id: str, name: str, kind: ContactKind) -> Contact:
        with self._uow.atomic():
            contact = Contact(id=str(uuid4()), name=name, kind=kind)
            self._open_missing_accounts(tenant_id, contact)
            saved = self._contacts.save(tenant_id, contact)
        LOGGER.info("Registered %s contact %s (%s)", kind, saved.id, name)
        return saved

    def change_kind(self, tenant_id: str, contact_id: str, kind: ContactKind) -> Contact:
        """Switch the contact kind, opening any account the new kind needs."""
        with self._locks.hold(tenant_id, contact_id), self._uow.atomic():
            contact = self._contacts.get(tenant_id, contact_id)
            contact.kind = kind
            self._open_missing_accounts(tenant_id, contact)
            return self._contacts.save(tenant_id, contact)

    def _open_missing_accounts(self, tenant_id: str, contact: Contact) -> None:
        if contact.kind in ("customer", "both") and not contact.customer_account_id:
            contact.customer_account_id = self._open_account(tenant_id, contact.name, "customer").id
        if contact.kind in ("vendor", "both") and not contact.vendor_account_id:
            contact.vendor_account_id = self._open_account(tenant_id, contact.name, "vendor").id

    def _open_account(self, tenant_id: str, name: str, side: str) -> Account:
        base = self._bases[side]
        code = self._next_free_code(tenant_id, base)
        account = Account(
            id=f"acc-{code}",
            code=str(code),
            name=name,
            type="asset" if side == "customer" else "liability",
        )
        return self._accounts.add(tenant_id, account)

    def _next_free_code(self, tenant_id: str, base: int) -> int:
        highest: Optional[int] = None
        for account in self._accounts.list(tenant_id):
            if not account.code.isdigit():
                continue
            code = int(account.code)
            # the range of one base ends where the next ten-thousand block starts
            if base < code < base + 10000 and (highest is None or code > highest):
                highest = code
        return (highest or base) + 1


__all__ = ["ContactService"]
