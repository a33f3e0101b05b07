from datetime import date

import pytest

from kontor.accounting.engine import AccountingEngine
from kontor.config import AppSettings
from kontor.errors import AlreadyCancelled, AlreadyLocked, EntryNotFound, Immutable, NotPosted, Unbalanced
from kontor.models import JournalEntry, JournalLine

TENANT = "t1"
DAY = date(2026, 3, 1)


@pytest.fixture()
def engine() -> AccountingEngine:
    engine = AccountingEngine(AppSettings())
    engine.open_tenant(TENANT)
    return engine


def _sale() -> JournalEntry:
    return JournalEntry(
        description="Barverkauf",
        entry_date=DAY,
        lines=(
            JournalLine(account_id="acc-1000", side="debit", amount=11900),
            JournalLine(account_id="acc-8400", side="credit", amount=10000),
            JournalLine(account_id="acc-1776", side="credit", amount=1900),
        ),
    )


def test_post_locks_entry(engine: AccountingEngine) -> None:
    posted = engine.post_entry(TENANT, _sale())
    assert posted.id is not None
    assert posted.status == "posted"
    assert posted.locked_at is not None
    assert posted.debit_total == posted.credit_total == 11900


def test_unbalanced_draft_stays_draft(engine: AccountingEngine) -> None:
    draft = engine.journal.create_draft(
        TENANT,
        description="Tippfehler",
        entry_date=DAY,
        lines=[
            JournalLine(account_id="acc-1000", side="debit", amount=11900),
            JournalLine(account_id="acc-8400", side="credit", amount=10000),
        ],
    )
    with pytest.raises(Unbalanced):
        engine.post_entry(TENANT, draft)
    stored = engine.store.journal.load(TENANT, draft.id)
    assert stored.status == "draft"
    assert stored.locked_at is None


def test_unbalanced_unsaved_entry_is_not_stored(engine: AccountingEngine) -> None:
    entry = _sale()
    entry.lines = entry.lines[:2]
    with pytest.raises(Unbalanced):
        engine.post_entry(TENANT, entry)
    assert engine.list_entries(TENANT) == []


def test_posting_twice_is_rejected(engine: AccountingEngine) -> None:
    posted = engine.post_entry(TENANT, _sale())
    with pytest.raises(AlreadyLocked):
        engine.journal.post(TENANT, posted.id)


def test_reverse_books_mirror_image(engine: AccountingEngine) -> None:
    original = engine.post_entry(TENANT, _sale())
    reversal = engine.reverse_entry(TENANT, original.id)

    assert reversal.status == "posted"
    assert reversal.reversal_of == original.id
    assert reversal.description == "Storno: Barverkauf"
    assert [(line.account_id, line.side, line.amount) for line in reversal.lines] == [
        ("acc-1000", "credit", 11900),
        ("acc-8400", "debit", 10000),
        ("acc-1776", "debit", 1900),
    ]
    assert engine.store.journal.load(TENANT, original.id).status == "cancelled"
    assert engine.trial_balance(TENANT)["1000"] == 0


def test_reverse_twice_fails(engine: AccountingEngine) -> None:
    original = engine.post_entry(TENANT, _sale())
    engine.reverse_entry(TENANT, original.id)
    with pytest.raises(AlreadyCancelled):
        engine.reverse_entry(TENANT, original.id)
    assert len(engine.list_entries(TENANT)) == 2


def test_reverse_draft_fails(engine: AccountingEngine) -> None:
    draft = engine.journal.create_draft(
        TENANT, description="Entwurf", entry_date=DAY, lines=_sale().lines
    )
    with pytest.raises(NotPosted):
        engine.reverse_entry(TENANT, draft.id)


def test_drafts_can_be_edited_and_deleted(engine: AccountingEngine) -> None:
    draft = engine.journal.create_draft(
        TENANT, description="Entwurf", entry_date=DAY, lines=_sale().lines
    )
    updated = engine.journal.update_draft(TENANT, draft.id, description="Barverkauf März")
    assert updated.description == "Barverkauf März"
    engine.journal.delete_draft(TENANT, draft.id)
    with pytest.raises(EntryNotFound):
        engine.store.journal.load(TENANT, draft.id)


def test_posted_entries_are_immutable(engine: AccountingEngine) -> None:
    posted = engine.post_entry(TENANT, _sale())
    with pytest.raises(Immutable):
        engine.journal.update_draft(TENANT, posted.id, description="Nachträglich")
    with pytest.raises(Immutable):
        engine.journal.delete_draft(TENANT, posted.id)


def test_loaded_entries_are_copies(engine: AccountingEngine) -> None:
    posted = engine.post_entry(TENANT, _sale())
    posted.description = "changed outside the repository"
    assert engine.store.journal.load(TENANT, posted.id).description == "Barverkauf"


def test_entries_are_tenant_scoped(engine: AccountingEngine) -> None:
    posted = engine.post_entry(TENANT, _sale())
    with pytest.raises(EntryNotFound):
        engine.store.journal.load("t2", posted.id)
