from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterable

from jewellery_billing.invoice import calculate_invoice_total, calculate_item_total
from jewellery_billing.models import (
    DiscountRules,
    InvoiceCalculation,
    InvoiceItem,
    ItemTotal,
    OrderLine,
    OrderSummary,
    ProductRecord,
)
from jewellery_billing.pricing import calculate_order_summary, calculate_purchase_order_item_price


@dataclass
class CatalogLine:
    product: ProductRecord
    quantity: int
    price_per_gram: float
    gst_rate: float
    stone_value: float = 0.0


class PricingStrategy(ABC):
    strategy_name: str

    @abstractmethod
    def line_total(self, line: Any) -> ItemTotal:
        raise NotImplementedError

    @abstractmethod
    def summarize(self, lines: Iterable[Any], *args: Any, **kwargs: Any) -> Any:
        raise NotImplementedError


class ChargeSchemePricing(PricingStrategy):
    """
    Catalog pricing from making/wastage charge schemes on net weight.
    """

    strategy_name = "charge_scheme"

    def line_total(self, line: CatalogLine) -> ItemTotal:
        priced = calculate_purchase_order_item_price(
            line.product,
            line.quantity,
            line.price_per_gram,
            line.gst_rate,
            stone_value=line.stone_value,
        )
        return ItemTotal(
            base_price=priced.base_price,
            gst_amount=priced.gst_amount,
            total_price=priced.total_price,
        )

    def summarize(self, lines: Iterable[CatalogLine]) -> OrderSummary:
        order_lines = []
        for line in lines:
            priced = calculate_purchase_order_item_price(
                line.product,
                line.quantity,
                line.price_per_gram,
                line.gst_rate,
                stone_value=line.stone_value,
            )
            order_lines.append(
                OrderLine(
                    breakdown=priced.breakdown,
                    quantity=line.quantity,
                    net_weight=line.product.net_weight,
                )
            )
        return calculate_order_summary(order_lines)


class LabourRatePricing(PricingStrategy):
    """
    Invoice pricing from a per-gram labour rate, with discounts on gross weight.
    """

    strategy_name = "labour_rate"

    def line_total(self, line: InvoiceItem) -> ItemTotal:
        return calculate_item_total(line)

    def summarize(
        self,
        lines: Iterable[InvoiceItem],
        discount_rules: DiscountRules | None = None,
        advance_amount: float = 0.0,
    ) -> InvoiceCalculation:
        return calculate_invoice_total(lines, discount_rules, advance_amount)


STRATEGIES: dict[str, type[PricingStrategy]] = {
    ChargeSchemePricing.strategy_name: ChargeSchemePricing,
    LabourRatePricing.strategy_name: LabourRatePricing,
}


def get_strategy(name: str) -> PricingStrategy:
    strategy_cls = STRATEGIES.get(name.strip().lower())
    if strategy_cls is None:
        raise ValueError(f"Unsupported pricing strategy '{name}'. Use 'charge_scheme' or 'labour_rate'.")
    return strategy_cls()
