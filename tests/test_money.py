from decimal import Decimal

import pytest

from kontor.documents import DocumentLine
from kontor.money import (
    compute_vat,
    document_totals,
    format_amount,
    line_total,
    round_half_up,
    to_minor_units,
)


def test_compute_vat_standard_rate() -> None:
    result = compute_vat(11900, 19)
    assert (result.gross, result.net, result.tax) == (11900, 10000, 1900)


def test_compute_vat_rounds_net_once() -> None:
    # 100 / 1.19 = 84.03...
    result = compute_vat(100, Decimal("19"))
    assert result.net == 84
    assert result.tax == 16


@pytest.mark.parametrize("rate", ["0", "5.5", "7", "16", "19"])
def test_net_plus_tax_equals_gross(rate: str) -> None:
    for gross in range(0, 2000, 7):
        result = compute_vat(gross, rate)
        assert result.net + result.tax == gross
        assert result.net >= 0 and result.tax >= 0


def test_zero_rate_keeps_gross_as_net() -> None:
    result = compute_vat(4711, 0)
    assert (result.gross, result.net, result.tax) == (4711, 4711, 0)


@pytest.mark.parametrize(
    "gross, rate",
    [(-1, 19), (10.5, 19), (True, 19), (100, 100), (100, -1)],
)
def test_compute_vat_rejects_invalid_input(gross: object, rate: int) -> None:
    with pytest.raises(ValueError):
        compute_vat(gross, rate)  # type: ignore[arg-type]


def test_round_half_up_ties_away_from_zero() -> None:
    assert round_half_up(Decimal("0.5")) == 1
    assert round_half_up(Decimal("2.5")) == 3
    assert round_half_up(Decimal("2.49")) == 2
    assert round_half_up(Decimal("-0.5")) == -1


def test_line_total_rounds_net_then_tax() -> None:
    amounts = line_total(Decimal("2.5"), 333, 19)
    # 832.5 -> 833, 833 * 0.19 = 158.27 -> 158
    assert (amounts.net, amounts.tax, amounts.gross) == (833, 158, 991)


def test_line_total_rejects_negative_quantity() -> None:
    with pytest.raises(ValueError):
        line_total(-1, 100, 19)


def test_document_totals_sum_rounded_lines() -> None:
    lines = [
        DocumentLine(description="Schraube", quantity=1, unit_price=3),
        DocumentLine(description="Mutter", quantity=1, unit_price=3),
    ]
    totals = document_totals(lines)
    # each line rounds 0.57 up to 1; a blended total would give 1
    assert totals.tax_total == 2
    assert totals.subtotal == 6
    assert totals.total == 8


def test_document_totals_break_down_by_rate() -> None:
    lines = [
        DocumentLine(description="Beratung", quantity=1, unit_price=1000, tax_rate=19),
        DocumentLine(description="Fachbuch", quantity=3, unit_price=333, tax_rate=7),
    ]
    totals = document_totals(lines)
    assert totals.subtotal == 1999
    assert totals.tax_total == 260
    assert totals.total == 2259
    assert totals.by_rate[Decimal("19")].tax == 190
    assert totals.by_rate[Decimal("7")].net == 999
    assert totals.by_rate[Decimal("7")].tax == 70


def test_amount_formatting() -> None:
    assert format_amount(11900) == "119.00"
    assert format_amount(5) == "0.05"
    assert to_minor_units("119.00") == 11900
    assert to_minor_units("0.005") == 1
