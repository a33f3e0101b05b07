"""Error taxonomy for the bookkeeping core.

Every error carries a machine-readable ``kind`` and a message naming the
invariant that failed, e.g. ``"debit 119.00 != credit 100.00"``.
"""
from __future__ import annotations

from typing import Optional

from kontor.money import format_amount


class LedgerError(Exception):
    """Base class for all errors raised by the core."""

    kind = "LedgerError"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class LedgerValidationError(LedgerError, ValueError):
    """Input violates an invariant; the caller corrects it and resubmits."""

    kind = "ValidationError"


class Unbalanced(LedgerValidationError):
    kind = "Unbalanced"

    def __init__(self, debit_total: int, credit_total: int) -> None:
        super().__init__(
            f"Entry is not balanced: debit {format_amount(debit_total)} "
            f"!= credit {format_amount(credit_total)}"
        )
        self.debit_total = debit_total
        self.credit_total = credit_total


class TooFewLines(LedgerValidationError):
    kind = "TooFewLines"


class NonPositiveAmount(LedgerValidationError):
    kind = "NonPositiveAmount"


class DanglingAccountReference(LedgerValidationError):
    kind = "DanglingAccountReference"

    def __init__(self, account_id: str) -> None:
        super().__init__(f"Account '{account_id}' does not exist in the chart of accounts")
        self.account_id = account_id


class MissingContact(LedgerValidationError):
    kind = "MissingContact"


class MissingContraAccount(LedgerValidationError):
    kind = "MissingContraAccount"


class MissingGrossAmount(LedgerValidationError):
    kind = "MissingGrossAmount"


class MissingPaymentAccount(LedgerValidationError):
    kind = "MissingPaymentAccount"


class MissingContactAccount(LedgerValidationError):
    kind = "MissingContactAccount"


class MissingVatAccount(LedgerValidationError):
    kind = "MissingVatAccount"


class InvalidQuantity(LedgerValidationError):
    kind = "InvalidQuantity"


class QuantityExceeded(LedgerValidationError):
    kind = "QuantityExceeded"


class InvalidTransition(LedgerValidationError):
    kind = "InvalidTransition"

    def __init__(self, from_status: str, attempted: str, detail: Optional[str] = None) -> None:
        message = f"Cannot {attempted} a document in status '{from_status}'"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.from_status = from_status
        self.attempted = attempted


class LifecycleConflict(LedgerError, RuntimeError):
    """Operation ordering bug or race; surfaced verbatim, never coerced."""

    kind = "LifecycleConflict"


class AlreadyLocked(LifecycleConflict):
    kind = "AlreadyLocked"


class NotPosted(LifecycleConflict):
    kind = "NotPosted"


class AlreadyCancelled(LifecycleConflict):
    kind = "AlreadyCancelled"


class Immutable(LifecycleConflict):
    kind = "Immutable"


class NotFound(LedgerError, KeyError):
    """A repository lookup failed."""

    kind = "NotFound"


class AccountNotFound(NotFound):
    kind = "AccountNotFound"


class ContactNotFound(NotFound):
    kind = "ContactNotFound"


class EntryNotFound(NotFound):
    kind = "EntryNotFound"


class DocumentNotFound(NotFound):
    kind = "DocumentNotFound"


__all__ = [
    "LedgerError",
    "LedgerValidationError",
    "Unbalanced",
    "TooFewLines",
    "NonPositiveAmount",
    "DanglingAccountReference",
    "MissingContact",
    "MissingContraAccount",
    "MissingGrossAmount",
    "MissingPaymentAccount",
    "MissingContactAccount",
    "MissingVatAccount",
    "InvalidQuantity",
    "QuantityExceeded",
    "InvalidTransition",
    "LifecycleConflict",
    "AlreadyLocked",
    "NotPosted",
    "AlreadyCancelled",
    "Immutable",
    "NotFound",
    "AccountNotFound",
    "ContactNotFound",
    "EntryNotFound",
    "DocumentNotFound",
]
