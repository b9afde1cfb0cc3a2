import argparse
import json
import logging
import sys
from dataclasses import asdict
from datetime import date
from pathlib import Path

from jewellery_billing.adapters import product_from_record, product_to_price_input
from jewellery_billing.charges import validate_charge_configuration
from jewellery_billing.config import load_environment, setup_logging
from jewellery_billing.db import (
    get_all_settings,
    get_category,
    get_company_info,
    get_connection,
    get_current_prices,
    get_product,
    init_db,
    save_price,
)
from jewellery_billing.documents import build_invoice_document, build_invoice_html, build_invoice_text
from jewellery_billing.formatting import format_currency
from jewellery_billing.invoice import validate_invoice_data
from jewellery_billing.models import ChargeSpec, ChargeType, ProductRecord
from jewellery_billing.pricing import compute_final_price
from jewellery_billing.providers.rates_api import refresh_daily_prices, resolve_price_per_gram

logger = logging.getLogger(__name__)

CHARGE_TYPE_CHOICES = [member.name.lower() for member in ChargeType]


def _parse_date(raw: str | None) -> date | None:
    return date.fromisoformat(raw) if raw else None


def _charge_spec(raw_type: str | None, raw_value: float | None) -> ChargeSpec:
    return ChargeSpec(type=ChargeType.parse(raw_type), value=raw_value)


def _cmd_init_db(args: argparse.Namespace) -> int:
    conn = get_connection()
    init_db(conn)
    print("Database initialised successfully.")
    return 0


def _cmd_set_rate(args: argparse.Namespace) -> int:
    conn = get_connection()
    init_db(conn)
    if get_category(conn, args.category) is None:
        print(f"Unknown category {args.category}.", file=sys.stderr)
        return 1
    save_price(conn, args.category, args.price, _parse_date(args.date))
    print(f"Saved {args.category.upper()} at {format_currency(args.price)}/gm.")
    return 0


def _cmd_rates(args: argparse.Namespace) -> int:
    conn = get_connection()
    init_db(conn)
    on_date = _parse_date(args.date)
    if args.refresh:
        try:
            refresh_daily_prices(conn, on_date)
        except Exception as exc:
            logger.warning("Spot price refresh failed: %s", exc)
            print(f"Price API unavailable. Showing stored price master. Details: {exc}", file=sys.stderr)

    for row in get_current_prices(conn, on_date):
        price = row["price_per_gram"]
        shown = f"{format_currency(price)}/gm" if price is not None else "No data"
        print(f"{row['category_code']:<14} {row['category_name']:<20} {shown:<16} {row['effective_date'] or '-'}")
    return 0


def _cmd_price(args: argparse.Namespace) -> int:
    conn = get_connection()
    init_db(conn)
    settings = get_all_settings(conn)

    if args.product_id is not None:
        product_row = get_product(conn, args.product_id)
        if product_row is None:
            print(f"Product {args.product_id} not found.", file=sys.stderr)
            return 1
        product = product_from_record(product_row)
    else:
        if args.net_weight is None:
            print("Either --product-id or --net-weight is required.", file=sys.stderr)
            return 2
        product = ProductRecord(
            name="Ad-hoc item",
            net_weight=args.net_weight,
            gross_weight=args.net_weight,
            making_charge=_charge_spec(args.making_type, args.making_value),
            wastage_charge=_charge_spec(args.wastage_type, args.wastage_value),
            additional_cost=args.additional_cost,
            category_code=args.category,
        )

    category_code = args.category or product.category_code
    if not category_code:
        print("A category is required to look up the day's price.", file=sys.stderr)
        return 2

    for label, spec, allow_per_piece in (
        ("making", product.making_charge, False),
        ("wastage", product.wastage_charge, True),
    ):
        if not validate_charge_configuration(spec.type, spec.value, allow_per_piece=allow_per_piece):
            print(f"Invalid {label} charge configuration.", file=sys.stderr)
            return 2

    point, warning = resolve_price_per_gram(conn, category_code, _parse_date(args.date), args.refresh)
    if warning:
        print(warning, file=sys.stderr)
    if point is None:
        print(f"No price available for {category_code}.", file=sys.stderr)
        return 1

    category = get_category(conn, category_code)
    gst_rate = float(category["tax_percentage"]) if category is not None else settings["default_gst_pct"]
    price_input = product_to_price_input(
        product,
        point.price_per_gram,
        gst_rate,
        quantity=args.quantity,
        stone_value=args.stone_value,
        round_final_to_rupee=args.round or settings["round_final_to_rupee"],
    )
    breakdown = compute_final_price(price_input)

    print(
        json.dumps(
            {
                "product": product.name,
                "price_point": asdict(point),
                "gst_rate": gst_rate,
                "breakdown": breakdown.as_dict(),
            },
            indent=2,
        )
    )
    return 0


def _cmd_invoice(args: argparse.Namespace) -> int:
    order = json.loads(Path(args.order_file).read_text(encoding="utf-8"))

    conn = get_connection()
    init_db(conn)
    invoice = build_invoice_document(order, get_company_info(conn))

    errors = validate_invoice_data(invoice.items)
    if errors:
        for error in errors:
            print(error, file=sys.stderr)
        return 1

    if args.format == "json":
        print(json.dumps(asdict(invoice), indent=2))
    elif args.format == "text":
        print(build_invoice_text(invoice))
    else:
        print(build_invoice_html(invoice))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Jewellery billing: daily rates, item pricing and invoices")
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init-db", help="Create tables, default settings and seed categories")
    init_parser.set_defaults(handler=_cmd_init_db)

    rate_parser = subparsers.add_parser("set-rate", help="Record a category's price per gram for a day")
    rate_parser.add_argument("category")
    rate_parser.add_argument("price", type=float)
    rate_parser.add_argument("--date", help="Effective date (YYYY-MM-DD), defaults to today")
    rate_parser.set_defaults(handler=_cmd_set_rate)

    rates_parser = subparsers.add_parser("rates", help="Show each category's effective price")
    rates_parser.add_argument("--date")
    rates_parser.add_argument("--refresh", action="store_true", help="Pull today's spot prices first")
    rates_parser.set_defaults(handler=_cmd_rates)

    price_parser = subparsers.add_parser("price", help="Price one item at the day's rate")
    price_parser.add_argument("--product-id", type=int)
    price_parser.add_argument("--category")
    price_parser.add_argument("--net-weight", type=float)
    price_parser.add_argument("--making-type", choices=CHARGE_TYPE_CHOICES)
    price_parser.add_argument("--making-value", type=float)
    price_parser.add_argument("--wastage-type", choices=CHARGE_TYPE_CHOICES)
    price_parser.add_argument("--wastage-value", type=float)
    price_parser.add_argument("--additional-cost", type=float, default=0.0)
    price_parser.add_argument("--stone-value", type=float, default=0.0)
    price_parser.add_argument("--quantity", type=int, default=1)
    price_parser.add_argument("--date")
    price_parser.add_argument("--refresh", action="store_true")
    price_parser.add_argument("--round", action="store_true", help="Also round the final price to the rupee")
    price_parser.set_defaults(handler=_cmd_price)

    invoice_parser = subparsers.add_parser("invoice", help="Render a tax invoice from an order JSON file")
    invoice_parser.add_argument("order_file")
    invoice_parser.add_argument("--format", choices=["html", "text", "json"], default="html")
    invoice_parser.set_defaults(handler=_cmd_invoice)

    return parser


def main(argv: list[str] | None = None) -> int:
    load_environment()
    setup_logging()
    args = build_parser().parse_args(argv)
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
