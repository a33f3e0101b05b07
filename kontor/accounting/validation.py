"""Double-entry invariants checked against a proposed journal entry."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

from kontor.accounting.chart import ChartOfAccounts
from kontor.errors import (
    DanglingAccountReference,
    LedgerValidationError,
    NonPositiveAmount,
    TooFewLines,
    Unbalanced,
)
from kontor.models import JournalEntry


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of :func:`validate_entry`; ``ok`` when no invariant failed."""

    errors: Tuple[LedgerValidationError, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def kinds(self) -> List[str]:
        return [error.kind for error in self.errors]

    def raise_first(self) -> None:
        if self.errors:
            raise self.errors[0]


def validate_entry(entry: JournalEntry, chart: ChartOfAccounts) -> ValidationResult:
    """Collect every violated invariant without touching the entry."""
    errors: List[LedgerValidationError] = []
    if len(entry.lines) < 2:
        errors.append(
            TooFewLines(f"Journal entry requires at least two lines, got {len(entry.lines)}")
        )
    for index, line in enumerate(entry.lines, start=1):
        if line.amount <= 0:
            errors.append(
                NonPositiveAmount(f"Line {index} amount must be positive, got {line.amount}")
            )
    for account_id in dict.fromkeys(line.account_id for line in entry.lines):
        if account_id not in chart:
            errors.append(DanglingAccountReference(account_id))
    # amounts are integers, so equality is exact
    if entry.debit_total != entry.credit_total:
        errors.append(Unbalanced(entry.debit_total, entry.credit_total))
    return ValidationResult(errors=tuple(errors))


__all__ = ["ValidationResult", "validate_entry"]
