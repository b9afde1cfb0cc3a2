from datetime import datetime

import pytest

from jewellery_billing.invoice import (
    calculate_invoice_total,
    calculate_item_total,
    generate_invoice_number,
    get_invoice_status,
    validate_gst_number,
    validate_invoice_data,
)
from jewellery_billing.models import DiscountRules, InvoiceItem


def test_item_total_uses_labour_rate_on_net_weight(chain_item):
    total = calculate_item_total(chain_item)

    assert total.base_price == 66000.0
    assert total.gst_amount == 1980.0
    assert total.total_price == 67980.0


def test_item_total_scales_with_quantity(chain_item):
    chain_item.quantity = 2
    chain_item.additional_cost = 250
    total = calculate_item_total(chain_item)

    assert total.base_price == 132500.0
    assert total.total_price == pytest.approx(132500 * 1.03)


def test_discounts_from_order_rules(chain_item):
    result = calculate_invoice_total(
        [chain_item],
        DiscountRules(making_charge_discount_percentage=50, gold_value_discount_per_gram=10),
    )

    assert result.total_making_charges == 6000.0
    assert result.making_charge_discount == 3000.0
    assert result.total_gold_gross_weight == 12.0
    assert result.gold_value_discount == 120.0
    assert result.total_discount_amount == 3120.0
    assert result.sub_total == 67980.0
    assert result.gst_amount == 1980.0
    assert result.total_amount == 64860.0
    assert result.grand_total == 64860.0


def test_advance_is_subtracted_last(chain_item):
    result = calculate_invoice_total(
        [chain_item],
        DiscountRules(making_charge_discount_percentage=50),
        advance_amount=10000,
    )

    assert result.total_amount == 64980.0
    assert result.grand_total == 54980.0


def test_no_rules_means_no_discount(chain_item):
    result = calculate_invoice_total([chain_item, chain_item])

    assert result.total_discount_amount == 0.0
    assert result.sub_total == 135960.0
    assert result.total_gold_gross_weight == 24.0


def test_empty_invoice_totals_are_zero():
    result = calculate_invoice_total([], advance_amount=500)

    assert result.sub_total == 0.0
    assert result.grand_total == -500.0


def test_gross_weight_keeps_three_decimals():
    item = InvoiceItem(
        product_id=None,
        product_name="Stud",
        purity="18kt",
        quantity=3,
        gold_rate_per_gram=4900,
        net_weight=1.1,
        gross_weight=1.2346,
        labour_rate_per_gram=400,
    )
    assert calculate_invoice_total([item]).total_gold_gross_weight == 3.704


def test_validate_invoice_data(chain_item):
    assert validate_invoice_data([]) == ["Invoice must have at least one item"]
    assert validate_invoice_data([chain_item]) == []

    broken = InvoiceItem(
        product_id=2,
        product_name=" ",
        purity="",
        quantity=0,
        gold_rate_per_gram=0,
        net_weight=5,
        gross_weight=4,
        labour_rate_per_gram=100,
        gst_percentage=120,
    )
    errors = validate_invoice_data([chain_item, broken])

    assert errors == [
        "Item 2: Product name is required",
        "Item 2: Purity is required",
        "Item 2: Quantity must be greater than 0",
        "Item 2: Gold rate per gram must be greater than 0",
        "Item 2: Gross weight cannot be less than net weight",
        "Item 2: GST percentage must be between 0 and 100",
    ]


def test_generate_invoice_number():
    number = generate_invoice_number(datetime(2024, 3, 9, 15, 30))

    assert number.startswith("INV-20240309-")
    assert len(number.rsplit("-", 1)[1]) == 3


@pytest.mark.parametrize(
    ("status", "label"),
    [("pending", "Draft"), ("received", "Completed"), ("cancelled", "Cancelled"), ("lost", "Unknown")],
)
def test_get_invoice_status(status, label):
    assert get_invoice_status(status) == label


def test_validate_gst_number():
    assert validate_gst_number("27ABCDE1234F1Z5") is True
    assert validate_gst_number("27abcde1234f1z5") is True
    assert validate_gst_number("27ABCDE1234F1X5") is False
