"""Command line interface for previewing VAT splits and quick-entry bookings."""
from __future__ import annotations

import argparse
import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List

from kontor.accounting.engine import AccountingEngine
from kontor.config import AppSettings, get_settings
from kontor.errors import LedgerError
from kontor.money import compute_vat, format_amount, line_total
from kontor.schemas import AccountModel, JournalEntryResponse, QuickEntryRequest, VatRequest, VatResponse

LOGGER = logging.getLogger(__name__)

CLI_TENANT = "cli"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Kontor bookkeeping core")
    parser.add_argument("--config", type=Path, help="Optional settings override JSON")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    vat = commands.add_parser("vat", help="Split a gross amount into net and tax")
    vat.add_argument("gross", type=int, help="Gross amount in cents")
    vat.add_argument("--rate", type=Decimal, default=Decimal("19"), help="VAT rate in percent")

    commands.add_parser("accounts", help="List the default chart of accounts")

    total = commands.add_parser("line-total", help="Net, tax and gross of a document line")
    total.add_argument("--quantity", type=Decimal, required=True)
    total.add_argument("--unit-price", type=int, required=True, help="Net unit price in cents")
    total.add_argument("--rate", type=Decimal, default=Decimal("19"))

    quick = commands.add_parser("quick-entry", help="Preview the journal lines of a quick entry")
    quick.add_argument("gross", type=int, help="Gross amount in cents")
    quick.add_argument(
        "--kind",
        choices=["customer", "vendor", "both", "other"],
        default="customer",
        help="Kind of the booking's contact",
    )
    quick.add_argument("--contra", default=None, help="Contra account code (default per direction)")
    quick.add_argument("--rate", type=Decimal, default=Decimal("19"))
    quick.add_argument("--paid", action="store_true", help="Book the payment in the same entry")
    quick.add_argument("--payment", default="1200", help="Payment account code (Kasse 1000, Bank 1200)")
    return parser


def _load_settings(config: Path | None) -> AppSettings:
    settings = get_settings()
    if config:
        overrides = json.loads(config.read_text(encoding="utf-8"))
        settings = settings.model_copy(update=overrides)
    return settings


def _quick_entry(args: argparse.Namespace, settings: AppSettings) -> Dict[str, Any]:
    engine = AccountingEngine(settings)
    engine.open_tenant(CLI_TENANT)
    chart = engine.chart(CLI_TENANT)
    contact = engine.register_contact(CLI_TENANT, "Muster GmbH", args.kind)
    if args.contra:
        contra = chart.by_code(args.contra)
    else:
        contra = chart.find_revenue_or_expense_default("purchase" if args.kind == "vendor" else "sale")
    request = QuickEntryRequest(
        contact_id=contact.id,
        contra_account_id=contra.id,
        gross_amount=args.gross,
        vat_rate=args.rate,
        is_paid=args.paid,
        payment_account_id=chart.by_code(args.payment).id if args.paid else None,
    )
    draft = engine.generate_quick_entry_lines(CLI_TENANT, request.to_intent())
    result = engine.validate_entry(CLI_TENANT, draft)
    payload = JournalEntryResponse.model_validate(draft).model_dump(mode="json")
    payload["valid"] = result.ok
    payload["errors"] = [str(error) for error in result.errors]
    return payload


def _accounts(settings: AppSettings) -> List[Dict[str, Any]]:
    engine = AccountingEngine(settings)
    engine.open_tenant(CLI_TENANT)
    return [AccountModel.model_validate(account).model_dump() for account in engine.list_accounts(CLI_TENANT)]


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.debug else logging.INFO)
    settings = _load_settings(args.config)
    try:
        if args.command == "vat":
            request = VatRequest(gross_amount=args.gross, rate=args.rate)
            payload: Dict[str, Any] = VatResponse.from_computation(
                compute_vat(request.gross_amount, request.rate)
            ).model_dump()
            payload["display"] = {key: format_amount(value) for key, value in payload.items()}
        elif args.command == "accounts":
            payload = {"accounts": _accounts(settings)}
        elif args.command == "line-total":
            amounts = line_total(args.quantity, args.unit_price, args.rate)
            payload = {"net": amounts.net, "tax": amounts.tax, "gross": amounts.gross}
        else:
            payload = _quick_entry(args, settings)
    except (LedgerError, ValueError) as exc:
        LOGGER.error("%s", exc)
        return 1
    print(json.dumps(payload, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
