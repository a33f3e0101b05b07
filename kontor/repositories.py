"""Persistence contracts consumed by the core, and an in-memory implementation.

Every call takes the tenant id explicitly. The in-memory store keeps deep
copies of what it is given, so an entity can only change through ``save``.
"""
from __future__ import annotations

import copy
import logging
import threading
from contextlib import contextmanager
from datetime import date
from typing import Any, ContextManager, Dict, Iterator, List, Mapping, Optional, Protocol, Tuple
from uuid import uuid4

from kontor.errors import AccountNotFound, ContactNotFound, DocumentNotFound, EntryNotFound
from kontor.models import Account, Contact, JournalEntry

LOGGER = logging.getLogger(__name__)


class AccountRepository(Protocol):
    def get(self, tenant_id: str, account_id: str) -> Account: ...

    def get_by_code(self, tenant_id: str, code: str) -> Account: ...

    def list(self, tenant_id: str) -> List[Account]: ...

    def add(self, tenant_id: str, account: Account) -> Account: ...


class ContactRepository(Protocol):
    def get(self, tenant_id: str, contact_id: str) -> Contact: ...

    def save(self, tenant_id: str, contact: Contact) -> Contact: ...

    def list(self, tenant_id: str) -> List[Contact]: ...


class JournalRepository(Protocol):
    def save(self, tenant_id: str, entry: JournalEntry) -> JournalEntry: ...

    def load(self, tenant_id: str, entry_id: str) -> JournalEntry: ...

    def list(self, tenant_id: str) -> List[JournalEntry]: ...

    def delete(self, tenant_id: str, entry_id: str) -> None: ...


class DocumentRepository(Protocol):
    def save(self, tenant_id: str, document: Any) -> Any: ...

    def load(self, tenant_id: str, document_id: str) -> Any: ...

    def list(self, tenant_id: str, document_type: Optional[str] = None) -> List[Any]: ...


class DocumentNumberAllocator(Protocol):
    def next(self, tenant_id: str, document_type: str, on: date) -> str: ...


class UnitOfWork(Protocol):
    def atomic(self) -> ContextManager[None]: ...


class _TenantTable:
    """Rows keyed by ``(tenant_id, id)``; values are never mutated in place."""

    def __init__(self) -> None:
        self._rows: Dict[Tuple[str, str], Any] = {}

    def snapshot(self) -> Dict[Tuple[str, str], Any]:
        return dict(self._rows)

    def restore(self, snapshot: Dict[Tuple[str, str], Any]) -> None:
        self._rows = snapshot

    def put(self, tenant_id: str, key: str, value: Any) -> None:
        self._rows[(tenant_id, key)] = copy.deepcopy(value)

    def get(self, tenant_id: str, key: str) -> Optional[Any]:
        value = self._rows.get((tenant_id, key))
        return copy.deepcopy(value) if value is not None else None

    def remove(self, tenant_id: str, key: str) -> None:
        self._rows.pop((tenant_id, key), None)

    def values(self, tenant_id: str) -> List[Any]:
        return [copy.deepcopy(v) for (tenant, _), v in self._rows.items() if tenant == tenant_id]


class InMemoryAccountRepository(_TenantTable):
    def get(self, tenant_id: str, account_id: str) -> Account:
        account = super().get(tenant_id, account_id)
        if account is None:
            raise AccountNotFound(f"Unknown account '{account_id}'")
        return account

    def get_by_code(self, tenant_id: str, code: str) -> Account:
        for account in self.values(tenant_id):
            if account.code == code:
                return account
        raise AccountNotFound(f"No account with code '{code}'")

    def list(self, tenant_id: str) -> List[Account]:
        return sorted(self.values(tenant_id), key=lambda account: account.code)

    def add(self, tenant_id: str, account: Account) -> Account:
        if super().get(tenant_id, account.id) is not None:
            raise ValueError(f"Account '{account.id}' already exists")
        if any(existing.code == account.code for existing in self.values(tenant_id)):
            raise ValueError(f"Account code '{account.code}' is already in use")
        self.put(tenant_id, account.id, account)
        return account


class InMemoryContactRepository(_TenantTable):
    def get(self, tenant_id: str, contact_id: str) -> Contact:
        contact = super().get(tenant_id, contact_id)
        if contact is None:
            raise ContactNotFound(f"Unknown contact '{contact_id}'")
        return contact

    def save(self, tenant_id: str, contact: Contact) -> Contact:
        self.put(tenant_id, contact.id, contact)
        return copy.deepcopy(contact)

    def list(self, tenant_id: str) -> List[Contact]:
        return self.values(tenant_id)


class InMemoryJournalRepository(_TenantTable):
    def save(self, tenant_id: str, entry: JournalEntry) -> JournalEntry:
        stored = copy.deepcopy(entry)
        if stored.id is None:
            stored.id = str(uuid4())
        self.put(tenant_id, stored.id, stored)
        return stored

    def load(self, tenant_id: str, entry_id: str) -> JournalEntry:
        entry = self.get(tenant_id, entry_id)
        if entry is None:
            raise EntryNotFound(f"Unknown journal entry '{entry_id}'")
        return entry

    def list(self, tenant_id: str) -> List[JournalEntry]:
        return sorted(self.values(tenant_id), key=lambda entry: (entry.entry_date, entry.created_at))

    def delete(self, tenant_id: str, entry_id: str) -> None:
        self.load(tenant_id, entry_id)
        self.remove(tenant_id, entry_id)


class InMemoryDocumentRepository(_TenantTable):
    def save(self, tenant_id: str, document: Any) -> Any:
        stored = copy.deepcopy(document)
        if stored.id is None:
            stored.id = str(uuid4())
        self.put(tenant_id, stored.id, stored)
        return stored

    def load(self, tenant_id: str, document_id: str) -> Any:
        document = self.get(tenant_id, document_id)
        if document is None:
            raise DocumentNotFound(f"Unknown document '{document_id}'")
        return document

    def list(self, tenant_id: str, document_type: Optional[str] = None) -> List[Any]:
        documents = self.values(tenant_id)
        if document_type is not None:
            documents = [doc for doc in documents if doc.document_type == document_type]
        return sorted(documents, key=lambda doc: doc.document_number)


class SequentialNumberAllocator:
    """Allocates ``PREFIX-YYYY-NNNN`` numbers per tenant, type and year."""

    def __init__(self, prefixes: Mapping[str, str]) -> None:
        self._prefixes = dict(prefixes)
        self._counters: Dict[Tuple[str, str, int], int] = {}
        self._lock = threading.Lock()

    def next(self, tenant_id: str, document_type: str, on: date) -> str:
        try:
            prefix = self._prefixes[document_type]
        except KeyError as exc:
            raise ValueError(f"No number prefix configured for '{document_type}'") from exc
        with self._lock:
            key = (tenant_id, document_type, on.year)
            number = self._counters.get(key, 0) + 1
            self._counters[key] = number
        return f"{prefix}-{on.year}-{number:04d}"

    def snapshot(self) -> Dict[Tuple[str, str, int], int]:
        with self._lock:
            return dict(self._counters)

    def restore(self, snapshot: Dict[Tuple[str, str, int], int]) -> None:
        with self._lock:
            self._counters = snapshot


class EntityLocks:
    """Per-entity re-entrant locks serializing transitions on one id."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[Tuple[str, str], threading.RLock] = {}

    def _lock_for(self, key: Tuple[str, str]) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, tenant_id: str, *entity_ids: Optional[str]) -> Iterator[None]:
        # sorted acquisition order keeps multi-entity holds deadlock free
        keys = sorted({(tenant_id, entity_id) for entity_id in entity_ids if entity_id})
        acquired = []
        try:
            for key in keys:
                lock = self._lock_for(key)
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()


class InMemoryStore:
    """All repositories of one process plus an all-or-nothing ``atomic`` block.

    Lock order: document and contact locks, then ``atomic``, then journal entry
    locks.
    """

    def __init__(self, number_prefixes: Mapping[str, str]) -> None:
        self.accounts = InMemoryAccountRepository()
        self.contacts = InMemoryContactRepository()
        self.journal = InMemoryJournalRepository()
        self.documents = InMemoryDocumentRepository()
        self.numbers = SequentialNumberAllocator(number_prefixes)
        self.locks = EntityLocks()
        self._tx_lock = threading.RLock()
        self._depth = 0

    @property
    def _parts(self) -> List[Any]:
        return [self.accounts, self.contacts, self.journal, self.documents, self.numbers]

    @contextmanager
    def atomic(self) -> Iterator[None]:
        with self._tx_lock:
            if self._depth:
                self._depth += 1
                try:
                    yield
                finally:
                    self._depth -= 1
                return
            snapshots = [part.snapshot() for part in self._parts]
            self._depth = 1
            try:
                yield
            except BaseException:
                for part, snapshot in zip(self._parts, snapshots):
                    part.restore(snapshot)
                LOGGER.debug("Rolled back unit of work")
                raise
            finally:
                self._depth = 0


__all__ = [
    "AccountRepository",
    "ContactRepository",
    "JournalRepository",
    "DocumentRepository",
    "DocumentNumberAllocator",
    "UnitOfWork",
    "InMemoryAccountRepository",
    "InMemoryContactRepository",
    "InMemoryJournalRepository",
    "InMemoryDocumentRepository",
    "SequentialNumberAllocator",
    "EntityLocks",
    "InMemoryStore",
]
