from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Optional


class ChargeType(str, Enum):
    PERCENTAGE = "Percentage"
    PER_GRAM = "Per Gram"
    FIXED_AMOUNT = "Fixed Amount"
    PER_PIECE = "Per Piece"

    @classmethod
    def parse(cls, raw: Any) -> Optional["ChargeType"]:
        if isinstance(raw, cls):
            return raw
        if not isinstance(raw, str):
            return None
        cleaned = raw.strip().lower()
        for member in cls:
            if cleaned in (member.value.lower(), member.name.lower()):
                return member
        return None


@dataclass(frozen=True)
class ChargeSpec:
    type: Optional[ChargeType] = None
    value: Optional[float] = None


NO_CHARGE = ChargeSpec()


@dataclass
class PriceInput:
    net_weight: float
    price_per_gram: float
    making_charge: ChargeSpec = NO_CHARGE
    wastage_charge: ChargeSpec = NO_CHARGE
    additional_cost: Optional[float] = 0.0
    stone_value: Optional[float] = 0.0
    gst_rate: float = 0.0
    piece_qty: Optional[int] = 1
    round_final_to_rupee: bool = False


@dataclass(frozen=True)
class PriceBreakdown:
    gold_value: float
    wastage_charge: float
    making_charge: float
    additional_cost: float
    stone_value: float
    subtotal: float
    gst_amount: float
    final_price: float
    final_price_rounded: Optional[int] = None

    def as_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        if self.final_price_rounded is None:
            payload.pop("final_price_rounded")
        return payload


@dataclass(frozen=True)
class OrderLine:
    breakdown: PriceBreakdown
    quantity: int
    net_weight: float


@dataclass(frozen=True)
class OrderSummary:
    total_gold_value: float = 0.0
    total_making_charges: float = 0.0
    total_wastage_charges: float = 0.0
    total_stone_value: float = 0.0
    total_additional_costs: float = 0.0
    subtotal: float = 0.0
    total_gst_amount: float = 0.0
    grand_total: float = 0.0
    total_gold_weight: float = 0.0
    item_count: int = 0

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PurchaseOrderLinePrice:
    breakdown: PriceBreakdown
    total_price: float
    base_price: float
    gst_amount: float


@dataclass
class ProductRecord:
    name: str
    net_weight: float
    gross_weight: float
    making_charge: ChargeSpec = NO_CHARGE
    wastage_charge: ChargeSpec = NO_CHARGE
    additional_cost: float = 0.0
    category_code: Optional[str] = None


@dataclass
class DiscountRules:
    making_charge_discount_percentage: float = 0.0
    gold_value_discount_per_gram: float = 0.0


@dataclass
class InvoiceItem:
    product_id: Optional[int | str]
    product_name: str
    purity: str
    quantity: int
    gold_rate_per_gram: float
    net_weight: float
    gross_weight: float
    labour_rate_per_gram: float
    additional_cost: float = 0.0
    gst_percentage: float = 0.0


@dataclass(frozen=True)
class ItemTotal:
    base_price: float
    gst_amount: float
    total_price: float


@dataclass(frozen=True)
class InvoiceCalculation:
    sub_total: float
    total_making_charges: float
    making_charge_discount: float
    total_gold_gross_weight: float
    gold_value_discount: float
    total_discount_amount: float
    gst_amount: float
    total_amount: float
    grand_total: float

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class CompanyInfo:
    company_name: str
    address: str
    gst_number: str
    phone: str
    email: str
    website: Optional[str] = None
    invoice_terms: Optional[str] = None


@dataclass
class CustomerInfo:
    name: str
    phone: str
    email: Optional[str] = None
    address: Optional[str] = None


@dataclass
class InvoiceDocument:
    invoice_number: str
    order_number: str
    bill_date: str
    company: CompanyInfo
    customer: CustomerInfo
    items: list[InvoiceItem]
    totals: InvoiceCalculation
    discount_rules: DiscountRules = field(default_factory=DiscountRules)
    advance_amount: float = 0.0
    due_date: Optional[str] = None
    biller_name: Optional[str] = None


@dataclass
class PricePoint:
    category_code: str
    effective_date: str
    price_per_gram: float
    source: str
