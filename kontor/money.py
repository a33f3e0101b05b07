"""Money and VAT arithmetic on integer minor currency units.

All amounts are ``int`` cents. ``round_half_up`` is the only place where a
fractional value becomes an amount; nothing downstream re-rounds a value that
has passed through this module.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, Protocol

ONE_HUNDRED = Decimal("100")


def to_decimal(value: Decimal | float | int | str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_half_up(value: Decimal) -> int:
    """Round a fractional amount of minor units to the nearest unit, ties away from zero."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_minor_units(value: Decimal | float | int | str) -> int:
    """Convert a major-unit amount such as ``"119.00"`` to cents."""
    return round_half_up(to_decimal(value) * ONE_HUNDRED)


def format_amount(amount: int) -> str:
    return str((Decimal(amount) / ONE_HUNDRED).quantize(Decimal("0.01")))


def _check_rate(rate_percent: Decimal | float | int | str) -> Decimal:
    rate = to_decimal(rate_percent)
    if rate < 0 or rate >= ONE_HUNDRED:
        raise ValueError(f"VAT rate must be within [0, 100), got {rate}")
    return rate


@dataclass(frozen=True)
class VatComputation:
    gross: int
    net: int
    tax: int


@dataclass(frozen=True)
class LineAmounts:
    net: int
    tax: int
    gross: int


@dataclass(frozen=True)
class DocumentTotals:
    subtotal: int
    tax_total: int
    total: int
    by_rate: Dict[Decimal, LineAmounts] = field(default_factory=dict)


class PricedLine(Protocol):
    quantity: Decimal
    unit_price: int
    tax_rate: Decimal


def compute_vat(gross_amount: int, rate_percent: Decimal | float | int | str) -> VatComputation:
    """Split a gross amount into net and tax.

    The net amount is rounded once and the tax is the remainder, so
    ``net + tax == gross`` holds for every input.
    """
    if isinstance(gross_amount, bool) or not isinstance(gross_amount, int):
        raise ValueError(f"Gross amount must be an integer number of minor units, got {gross_amount!r}")
    if gross_amount < 0:
        raise ValueError(f"Gross amount must not be negative, got {gross_amount}")
    rate = _check_rate(rate_percent)
    if rate == 0:
        return VatComputation(gross=gross_amount, net=gross_amount, tax=0)
    net = round_half_up(Decimal(gross_amount) / (1 + rate / ONE_HUNDRED))
    return VatComputation(gross=gross_amount, net=net, tax=gross_amount - net)


def line_total(
    quantity: Decimal | float | int | str,
    unit_price_net: int,
    tax_rate_percent: Decimal | float | int | str,
) -> LineAmounts:
    """Net, tax and gross of a single document line, each rounded once."""
    qty = to_decimal(quantity)
    if qty < 0:
        raise ValueError(f"Quantity must not be negative, got {qty}")
    rate = _check_rate(tax_rate_percent)
    net = round_half_up(qty * Decimal(unit_price_net))
    tax = round_half_up(Decimal(net) * rate / ONE_HUNDRED)
    return LineAmounts(net=net, tax=tax, gross=net + tax)


def document_totals(lines: Iterable[PricedLine]) -> DocumentTotals:
    """Sum of per-line rounded amounts, never a re-rounded blended total."""
    subtotal = 0
    tax_total = 0
    by_rate: Dict[Decimal, LineAmounts] = {}
    for line in lines:
        amounts = line_total(line.quantity, line.unit_price, line.tax_rate)
        subtotal += amounts.net
        tax_total += amounts.tax
        rate = to_decimal(line.tax_rate)
        current = by_rate.get(rate, LineAmounts(net=0, tax=0, gross=0))
        by_rate[rate] = LineAmounts(
            net=current.net + amounts.net,
            tax=current.tax + amounts.tax,
            gross=current.gross + amounts.gross,
        )
    return DocumentTotals(
        subtotal=subtotal,
        tax_total=tax_total,
        total=subtotal + tax_total,
        by_rate=by_rate,
    )


__all__ = [
    "VatComputation",
    "LineAmounts",
    "DocumentTotals",
    "compute_vat",
    "line_total",
    "document_totals",
    "round_half_up",
    "to_decimal",
    "to_minor_units",
    "format_amount",
]
