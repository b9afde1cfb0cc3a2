"""
Maps raw product and order records onto the engine's input types.

Records arrive from storage, JSON payloads or form posts with either
camelCase or snake_case keys and with decimals encoded as strings or numbers.
Everything past this module only sees `ProductRecord`, `PriceInput` and
`InvoiceItem` values with plain floats.
"""

from typing import Any, Mapping

from jewellery_billing.models import (
    ChargeSpec,
    ChargeType,
    DiscountRules,
    InvoiceItem,
    PriceInput,
    ProductRecord,
)


def parse_decimal(raw: Any, default: float = 0.0) -> float:
    if raw is None or isinstance(raw, bool):
        return default
    if isinstance(raw, (int, float)):
        return float(raw)
    try:
        return float(str(raw).strip())
    except ValueError:
        return default


def _parse_id(raw: Any) -> int | str | None:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float) and raw.is_integer():
        return int(raw)
    text = str(raw).strip()
    if not text:
        return None
    # Non-numeric ids such as barcodes are kept as strings.
    return int(text) if text.isdecimal() else text


def _pick(record: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = record.get(key)
        if value is not None and value != "":
            return value
    return None


def _charge_from_record(record: Mapping[str, Any], camel_prefix: str, snake_prefix: str) -> ChargeSpec:
    raw_type = _pick(record, f"{camel_prefix}Type", f"{snake_prefix}_type")
    raw_value = _pick(record, f"{camel_prefix}Value", f"{snake_prefix}_value")
    return ChargeSpec(type=ChargeType.parse(raw_type), value=parse_decimal(raw_value))


def product_from_record(record: Mapping[str, Any]) -> ProductRecord:
    record = dict(record)
    return ProductRecord(
        name=str(_pick(record, "name", "productName", "product_name") or ""),
        net_weight=parse_decimal(_pick(record, "netWeight", "net_weight")),
        gross_weight=parse_decimal(_pick(record, "grossWeight", "gross_weight")),
        making_charge=_charge_from_record(record, "makingCharge", "making_charge"),
        wastage_charge=_charge_from_record(record, "wastageCharge", "wastage_charge"),
        additional_cost=parse_decimal(_pick(record, "additionalCost", "additional_cost")),
        category_code=_pick(record, "categoryCode", "category_code"),
    )


def product_to_price_input(
    product: ProductRecord,
    price_per_gram: float,
    gst_rate: float,
    quantity: int = 1,
    stone_value: float = 0.0,
    round_final_to_rupee: bool = False,
) -> PriceInput:
    return PriceInput(
        net_weight=product.net_weight,
        price_per_gram=price_per_gram,
        making_charge=product.making_charge,
        wastage_charge=product.wastage_charge,
        additional_cost=product.additional_cost,
        stone_value=stone_value,
        gst_rate=gst_rate,
        piece_qty=quantity,
        round_final_to_rupee=round_final_to_rupee,
    )


def invoice_item_from_record(record: Mapping[str, Any]) -> InvoiceItem:
    record = dict(record)
    return InvoiceItem(
        product_id=_parse_id(_pick(record, "productId", "product_id")),
        product_name=str(_pick(record, "productName", "product_name") or "Unknown Product"),
        purity=str(_pick(record, "purity") or ""),
        quantity=int(parse_decimal(_pick(record, "quantity"))),
        gold_rate_per_gram=parse_decimal(_pick(record, "goldRatePerGram", "gold_rate_per_gram")),
        net_weight=parse_decimal(_pick(record, "netWeight", "net_weight")),
        gross_weight=parse_decimal(_pick(record, "grossWeight", "gross_weight")),
        labour_rate_per_gram=parse_decimal(_pick(record, "labourRatePerGram", "labour_rate_per_gram")),
        additional_cost=parse_decimal(_pick(record, "additionalCost", "additional_cost")),
        gst_percentage=parse_decimal(_pick(record, "gstPercentage", "gst_percentage")),
    )


def discount_rules_from_record(record: Mapping[str, Any]) -> DiscountRules:
    return DiscountRules(
        making_charge_discount_percentage=parse_decimal(
            _pick(record, "makingChargeDiscountPercentage", "making_charge_discount_percentage")
        ),
        gold_value_discount_per_gram=parse_decimal(
            _pick(record, "goldValueDiscountPerGram", "gold_value_discount_per_gram")
        ),
    )


def advance_from_record(record: Mapping[str, Any]) -> float:
    return parse_decimal(_pick(record, "advanceAmount", "advance_amount"))
