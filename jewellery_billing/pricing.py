import math
import sys
from typing import Iterable

from jewellery_billing.adapters import product_to_price_input
from jewellery_billing.charges import calculate_making_charge, calculate_wastage_charge
from jewellery_billing.models import (
    OrderLine,
    OrderSummary,
    PriceBreakdown,
    PriceInput,
    ProductRecord,
    PurchaseOrderLinePrice,
)


def round_half_up(value: float, places: int) -> float:
    factor = 10**places
    return math.floor(value * factor + 0.5) / factor


def round_money(value: float) -> float:
    # Nudged by one epsilon so values like 1.005 land on the upper cent.
    return round_half_up(value + sys.float_info.epsilon, 2)


def round_weight(value: float) -> float:
    return round_half_up(value + sys.float_info.epsilon, 3)


def round_rupee(value: float) -> int:
    return math.floor(value + 0.5)


def _as_number(value: float | None) -> float:
    return float(value or 0)


def compute_final_price(price_input: PriceInput) -> PriceBreakdown:
    net_weight = _as_number(price_input.net_weight)
    price_per_gram = _as_number(price_input.price_per_gram)
    additional_cost = _as_number(price_input.additional_cost)
    stone_value = _as_number(price_input.stone_value)
    gst_rate = _as_number(price_input.gst_rate)
    piece_qty = max(1, int(price_input.piece_qty or 1))

    gold_value = net_weight * price_per_gram
    wastage = calculate_wastage_charge(gold_value, net_weight, piece_qty, price_input.wastage_charge)
    making = calculate_making_charge(gold_value, net_weight, price_input.making_charge)

    subtotal = gold_value + wastage + making + additional_cost + stone_value
    gst_amount = subtotal * (gst_rate / 100)
    # Rounded once from the unrounded parts, not from the rounded fields below.
    final_price = round_money(subtotal + gst_amount)

    return PriceBreakdown(
        gold_value=round_money(gold_value),
        wastage_charge=round_money(wastage),
        making_charge=round_money(making),
        additional_cost=round_money(additional_cost),
        stone_value=round_money(stone_value),
        subtotal=round_money(subtotal),
        gst_amount=round_money(gst_amount),
        final_price=final_price,
        final_price_rounded=round_rupee(final_price) if price_input.round_final_to_rupee else None,
    )


def calculate_purchase_order_item_price(
    product: ProductRecord,
    quantity: int,
    gold_rate_per_gram: float,
    gst_percentage: float,
    stone_value: float = 0.0,
) -> PurchaseOrderLinePrice:
    """
    Line totals for a catalog product on a purchase order.

    The quantity is passed as the piece count and multiplied again at the line
    level, so a "Per Piece" wastage charge scales with quantity squared.
    """
    price_input = product_to_price_input(
        product,
        gold_rate_per_gram,
        gst_percentage,
        quantity=quantity,
        stone_value=stone_value,
    )
    breakdown = compute_final_price(price_input)

    return PurchaseOrderLinePrice(
        breakdown=breakdown,
        total_price=breakdown.final_price * quantity,
        base_price=breakdown.subtotal * quantity,
        gst_amount=breakdown.gst_amount * quantity,
    )


def apply_making_charge_discount(making_charge: float, discount_percentage: float) -> tuple[float, float]:
    discount_amount = making_charge * (discount_percentage / 100)
    final_making_charge = making_charge - discount_amount
    return round_money(discount_amount), round_money(final_making_charge)


def calculate_order_summary(lines: Iterable[OrderLine]) -> OrderSummary:
    total_gold_value = 0.0
    total_making_charges = 0.0
    total_wastage_charges = 0.0
    total_stone_value = 0.0
    total_additional_costs = 0.0
    total_gst_amount = 0.0
    grand_total = 0.0
    total_gold_weight = 0.0
    item_count = 0

    for line in lines:
        qty = line.quantity
        breakdown = line.breakdown
        total_gold_value += breakdown.gold_value * qty
        total_making_charges += breakdown.making_charge * qty
        total_wastage_charges += breakdown.wastage_charge * qty
        total_stone_value += breakdown.stone_value * qty
        total_additional_costs += breakdown.additional_cost * qty
        total_gst_amount += breakdown.gst_amount * qty
        grand_total += breakdown.final_price * qty
        total_gold_weight += line.net_weight * qty
        item_count += qty

    subtotal = (
        total_gold_value
        + total_making_charges
        + total_wastage_charges
        + total_stone_value
        + total_additional_costs
    )

    return OrderSummary(
        total_gold_value=round_money(total_gold_value),
        total_making_charges=round_money(total_making_charges),
        total_wastage_charges=round_money(total_wastage_charges),
        total_stone_value=round_money(total_stone_value),
        total_additional_costs=round_money(total_additional_costs),
        subtotal=round_money(subtotal),
        total_gst_amount=round_money(total_gst_amount),
        grand_total=round_money(grand_total),
        total_gold_weight=round_weight(total_gold_weight),
        item_count=item_count,
    )
