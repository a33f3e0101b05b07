"""Journal entry lifecycle: draft -> posted -> cancelled.

A posted entry is locked. The only way to close it is :meth:`JournalService.reverse`,
which books the mirror image as a new posted entry and marks the original
cancelled. Nothing is ever deleted or edited once posted.
"""
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable, Iterable, Optional

from kontor.accounting.chart import ChartOfAccounts
from kontor.accounting.validation import ValidationResult, validate_entry
from kontor.errors import AlreadyCancelled, AlreadyLocked, Immutable, NotPosted
from kontor.models import JournalEntry, JournalLine, utcnow
from kontor.money import format_amount
from kontor.repositories import EntityLocks, JournalRepository, UnitOfWork

LOGGER = logging.getLogger(__name__)

ChartProvider = Callable[[str], ChartOfAccounts]


class JournalService:
    """Serializes every transition of a journal entry on its id."""

    def __init__(
        self,
        repository: JournalRepository,
        unit_of_work: UnitOfWork,
        locks: EntityLocks,
        chart_provider: ChartProvider,
        *,
        reversal_prefix: str = "Storno: ",
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._repository = repository
        self._uow = unit_of_work
        self._locks = locks
        self._chart = chart_provider
        self._reversal_prefix = reversal_prefix
        self._clock = clock

    # ------------------------------------------------------------------
    # Drafts
    # ------------------------------------------------------------------
    def create_draft(
        self,
        tenant_id: str,
        *,
        description: str,
        entry_date: date,
        lines: Iterable[JournalLine],
        contact_id: Optional[str] = None,
        source_document_ref: Optional[str] = None,
    ) -> JournalEntry:
        entry = JournalEntry(
            description=description,
            entry_date=entry_date,
            lines=tuple(lines),
            contact_id=contact_id,
            source_document_ref=source_document_ref,
        )
        saved = self._repository.save(tenant_id, entry)
        LOGGER.debug("Created draft journal entry %s", saved.id)
        return saved

    def update_draft(
        self,
        tenant_id: str,
        entry_id: str,
        *,
        description: Optional[str] = None,
        entry_date: Optional[date] = None,
        lines: Optional[Iterable[JournalLine]] = None,
        contact_id: Optional[str] = None,
    ) -> JournalEntry:
        with self._locks.hold(tenant_id, entry_id):
            entry = self._repository.load(tenant_id, entry_id)
            self._ensure_draft(entry, "edit")
            if description is not None:
                entry.description = description
            if entry_date is not None:
                entry.entry_date = entry_date
            if lines is not None:
                entry.lines = tuple(lines)
            if contact_id is not None:
                entry.contact_id = contact_id
            return self._repository.save(tenant_id, entry)

    def delete_draft(self, tenant_id: str, entry_id: str) -> None:
        with self._locks.hold(tenant_id, entry_id):
            entry = self._repository.load(tenant_id, entry_id)
            self._ensure_draft(entry, "delete")
            self._repository.delete(tenant_id, entry_id)
            LOGGER.debug("Deleted draft journal entry %s", entry_id)

    # ------------------------------------------------------------------
    # Posting
    # ------------------------------------------------------------------
    def validate(self, tenant_id: str, entry: JournalEntry) -> ValidationResult:
        return validate_entry(entry, self._chart(tenant_id))

    def post(self, tenant_id: str, entry_id: str) -> JournalEntry:
        """Lock a saved draft. Invalid drafts are rejected and stay drafts."""
        with self._locks.hold(tenant_id, entry_id):
            entry = self._repository.load(tenant_id, entry_id)
            if entry.status != "draft":
                raise AlreadyLocked(f"Journal entry {entry_id} is already {entry.status}")
            self.validate(tenant_id, entry).raise_first()
            entry.status = "posted"
            entry.locked_at = self._clock()
            posted = self._repository.save(tenant_id, entry)
        LOGGER.info(
            "Posted journal entry %s over %s", posted.id, format_amount(posted.debit_total)
        )
        return posted

    def record_posted(self, tenant_id: str, entry: JournalEntry) -> JournalEntry:
        """Validate, save and lock an unsaved draft in one step."""
        if entry.id is not None:
            raise ValueError("record_posted expects an unsaved draft; use post() for saved drafts")
        if entry.status != "draft":
            raise AlreadyLocked(f"Journal entry is already {entry.status}")
        self.validate(tenant_id, entry).raise_first()
        with self._uow.atomic():
            draft = self._repository.save(tenant_id, entry)
            return self.post(tenant_id, draft.id)

    def post_entry(self, tenant_id: str, entry: JournalEntry) -> JournalEntry:
        if entry.id is None:
            return self.record_posted(tenant_id, entry)
        return self.post(tenant_id, entry.id)

    # ------------------------------------------------------------------
    # Reversal
    # ------------------------------------------------------------------
    def reverse(
        self, tenant_id: str, entry_id: str, *, entry_date: Optional[date] = None
    ) -> JournalEntry:
        """Book the mirror image of a posted entry and cancel the original."""
        # atomic, then the entry lock; document cancellations nest in that order
        with self._uow.atomic(), self._locks.hold(tenant_id, entry_id):
            original = self._repository.load(tenant_id, entry_id)
            if original.status == "draft":
                raise NotPosted(
                    f"Journal entry {entry_id} is a draft; only posted entries can be reversed"
                )
            if original.status == "cancelled":
                raise AlreadyCancelled(f"Journal entry {entry_id} has already been reversed")
            reversal = JournalEntry(
                description=f"{self._reversal_prefix}{original.description}",
                entry_date=entry_date or original.entry_date,
                lines=tuple(line.flipped() for line in original.lines),
                contact_id=original.contact_id,
                source_document_ref=original.source_document_ref,
                status="posted",
                locked_at=self._clock(),
                reversal_of=original.id,
            )
            reversal = self._repository.save(tenant_id, reversal)
            original.status = "cancelled"
            self._repository.save(tenant_id, original)
        LOGGER.info("Reversed journal entry %s with %s", entry_id, reversal.id)
        return reversal

    @staticmethod
    def _ensure_draft(entry: JournalEntry, attempted: str) -> None:
        if entry.status != "draft":
            raise Immutable(
                f"Cannot {attempted} journal entry {entry.id}: it is {entry.status}; "
                "posted entries can only be reversed"
            )


__all__ = ["JournalService"]
