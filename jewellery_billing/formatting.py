import math
from decimal import ROUND_HALF_UP, Decimal


def _group_indian(integer_digits: str) -> str:
    if len(integer_digits) <= 3:
        return integer_digits
    head, tail = integer_digits[:-3], integer_digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups) + "," + tail


def format_currency(
    amount: float | None,
    min_fraction_digits: int = 2,
    max_fraction_digits: int = 2,
) -> str:
    """
    Formats rupees the way en-IN does: ₹1,23,456.78.

    Bills use 0-2 fraction digits and breakdowns a fixed 2.
    """
    if amount is None or not math.isfinite(amount):
        return "₹0"

    quantum = Decimal(1).scaleb(-max_fraction_digits)
    rounded = Decimal(str(amount)).quantize(quantum, rounding=ROUND_HALF_UP)
    sign = "-" if rounded < 0 else ""

    text = f"{abs(rounded):.{max_fraction_digits}f}"
    integer_part, _, fraction_part = text.partition(".")
    while len(fraction_part) > min_fraction_digits and fraction_part.endswith("0"):
        fraction_part = fraction_part[:-1]

    formatted = _group_indian(integer_part)
    if fraction_part:
        formatted = f"{formatted}.{fraction_part}"
    return f"{sign}₹{formatted}"


def format_weight(weight: float) -> str:
    return f"{weight:.3f} gm"
