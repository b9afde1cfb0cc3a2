from typing import Any

from jewellery_billing.models import ChargeSpec, ChargeType


def calculate_charge(
    base_value: float,
    net_weight: float,
    piece_qty: int,
    spec: ChargeSpec,
    allow_per_piece: bool = True,
) -> float:
    """
    Amount for one making or wastage charge scheme.

    Percentage charges are always taken on `base_value`, which callers pass as
    the gold value. Unknown or missing types contribute nothing.
    """
    charge_type = ChargeType.parse(spec.type)
    value = float(spec.value or 0)

    if charge_type is ChargeType.PERCENTAGE:
        return base_value * (value / 100)
    if charge_type is ChargeType.PER_GRAM:
        return net_weight * value
    if charge_type is ChargeType.FIXED_AMOUNT:
        return value
    if charge_type is ChargeType.PER_PIECE and allow_per_piece:
        return piece_qty * value
    return 0.0


def calculate_making_charge(gold_value: float, net_weight: float, spec: ChargeSpec) -> float:
    # Making charges have no per-piece scheme.
    return calculate_charge(gold_value, net_weight, 1, spec, allow_per_piece=False)


def calculate_wastage_charge(
    gold_value: float,
    net_weight: float,
    piece_qty: int,
    spec: ChargeSpec,
) -> float:
    return calculate_charge(gold_value, net_weight, piece_qty, spec)


def validate_charge_configuration(
    charge_type: Any,
    value: float | None = None,
    allow_per_piece: bool = True,
) -> bool:
    if not charge_type:
        return True

    if value is None or value < 0:
        return False

    parsed = ChargeType.parse(charge_type)
    if parsed is ChargeType.PERCENTAGE and value > 100:
        return False
    if parsed is ChargeType.PER_PIECE and not allow_per_piece:
        return False

    return True
