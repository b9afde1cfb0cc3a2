import random
import re
from datetime import datetime
from typing import Iterable

from jewellery_billing.models import DiscountRules, InvoiceCalculation, InvoiceItem, ItemTotal
from jewellery_billing.pricing import round_half_up

GSTIN_PATTERN = re.compile(r"^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z][1-9A-Z]Z[0-9A-Z]$")

INVOICE_STATUS_LABELS: dict[str, str] = {
    "pending": "Draft",
    "confirmed": "Confirmed",
    "invoiced": "Invoiced",
    "shipped": "Shipped",
    "received": "Completed",
    "cancelled": "Cancelled",
}


def _to2(value: float) -> float:
    return round_half_up(value, 2)


def calculate_item_total(item: InvoiceItem) -> ItemTotal:
    gold_cost = item.gold_rate_per_gram * item.net_weight
    labour_cost = item.labour_rate_per_gram * item.net_weight
    base_price = (gold_cost + labour_cost + item.additional_cost) * item.quantity

    gst_amount = (base_price * item.gst_percentage) / 100
    total_price = base_price + gst_amount

    return ItemTotal(
        base_price=_to2(base_price),
        gst_amount=_to2(gst_amount),
        total_price=_to2(total_price),
    )


def calculate_invoice_total(
    items: Iterable[InvoiceItem],
    discount_rules: DiscountRules | None = None,
    advance_amount: float = 0.0,
) -> InvoiceCalculation:
    """
    Order-level totals for the labour-rate invoice path.

    Discounts are taken after the GST-inclusive item totals are summed: a
    percentage off the labour (making) charges on net weight, and a flat
    amount per gram of gross weight. The advance is subtracted last.
    """
    rules = discount_rules or DiscountRules()

    sub_total = 0.0
    total_making_charges = 0.0
    total_gold_gross_weight = 0.0
    gst_amount = 0.0

    for item in items:
        item_total = calculate_item_total(item)
        sub_total += item_total.total_price
        gst_amount += item_total.gst_amount
        total_making_charges += item.labour_rate_per_gram * item.net_weight * item.quantity
        total_gold_gross_weight += item.gross_weight * item.quantity

    making_charge_discount = (total_making_charges * (rules.making_charge_discount_percentage or 0)) / 100
    gold_value_discount = total_gold_gross_weight * (rules.gold_value_discount_per_gram or 0)
    total_discount_amount = making_charge_discount + gold_value_discount

    total_amount = sub_total - total_discount_amount
    grand_total = total_amount - (advance_amount or 0)

    return InvoiceCalculation(
        sub_total=_to2(sub_total),
        total_making_charges=_to2(total_making_charges),
        making_charge_discount=_to2(making_charge_discount),
        total_gold_gross_weight=round_half_up(total_gold_gross_weight, 3),
        gold_value_discount=_to2(gold_value_discount),
        total_discount_amount=_to2(total_discount_amount),
        gst_amount=_to2(gst_amount),
        total_amount=_to2(total_amount),
        grand_total=_to2(grand_total),
    )


def generate_invoice_number(now: datetime | None = None) -> str:
    stamp = (now or datetime.now()).strftime("%Y%m%d")
    return f"INV-{stamp}-{random.randint(0, 999):03d}"


def get_invoice_status(order_status: str) -> str:
    return INVOICE_STATUS_LABELS.get(order_status, "Unknown")


def validate_gst_number(gst_number: str) -> bool:
    return bool(GSTIN_PATTERN.fullmatch(gst_number.strip().upper()))


def validate_invoice_data(items: list[InvoiceItem]) -> list[str]:
    errors: list[str] = []

    if not items:
        errors.append("Invoice must have at least one item")
        return errors

    for index, item in enumerate(items, start=1):
        if not item.product_name or not item.product_name.strip():
            errors.append(f"Item {index}: Product name is required")
        if not item.purity or not item.purity.strip():
            errors.append(f"Item {index}: Purity is required")
        if item.quantity <= 0:
            errors.append(f"Item {index}: Quantity must be greater than 0")
        if item.gold_rate_per_gram <= 0:
            errors.append(f"Item {index}: Gold rate per gram must be greater than 0")
        if item.net_weight <= 0:
            errors.append(f"Item {index}: Net weight must be greater than 0")
        if item.gross_weight < item.net_weight:
            errors.append(f"Item {index}: Gross weight cannot be less than net weight")
        if item.gst_percentage < 0 or item.gst_percentage > 100:
            errors.append(f"Item {index}: GST percentage must be between 0 and 100")

    return errors
