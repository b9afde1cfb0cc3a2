import pytest

from jewellery_billing.db import get_connection, init_db
from jewellery_billing.models import ChargeSpec, ChargeType, InvoiceItem, PriceInput, ProductRecord


@pytest.fixture
def conn():
    connection = get_connection(":memory:")
    init_db(connection)
    yield connection
    connection.close()


@pytest.fixture
def ring_input():
    return PriceInput(
        net_weight=10,
        price_per_gram=6000,
        making_charge=ChargeSpec(ChargeType.PERCENTAGE, 10),
        wastage_charge=ChargeSpec(ChargeType.PER_GRAM, 50),
        additional_cost=0,
        stone_value=0,
        gst_rate=3,
    )


@pytest.fixture
def bangle_product():
    return ProductRecord(
        name="Bangle",
        net_weight=8.0,
        gross_weight=8.5,
        making_charge=ChargeSpec(ChargeType.FIXED_AMOUNT, 1500),
        wastage_charge=ChargeSpec(ChargeType.PER_PIECE, 200),
        additional_cost=100,
        category_code="CAT-GOLD22K",
    )


@pytest.fixture
def chain_item():
    return InvoiceItem(
        product_id=1,
        product_name="Chain",
        purity="22kt",
        quantity=1,
        gold_rate_per_gram=6000,
        net_weight=10,
        gross_weight=12,
        labour_rate_per_gram=600,
        additional_cost=0,
        gst_percentage=3,
    )
