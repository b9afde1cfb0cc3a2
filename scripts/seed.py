"""
Initialises the local SQLite database, default settings and the protected
seed categories, then records a starting price master for today.
Run this once before first use, or anytime to repair missing tables.
"""

from jewellery_billing.config import load_environment
from jewellery_billing.db import get_connection, get_current_prices, init_db, save_daily_prices

STARTING_PRICES: dict[str, float] = {
    "CAT-GOLD22K": 6000.0,
    "CAT-GOLD18K": 4900.0,
    "CAT-SILVER": 75.0,
    "CAT-PLATINUM": 3100.0,
}


def main() -> None:
    load_environment()
    conn = get_connection()
    init_db(conn)

    missing = {
        row["category_code"]: STARTING_PRICES[row["category_code"]]
        for row in get_current_prices(conn)
        if row["price_per_gram"] is None and row["category_code"] in STARTING_PRICES
    }
    save_daily_prices(conn, missing, source="seed")
    print(f"Database initialised successfully. Seeded {len(missing)} daily prices.")


if __name__ == "__main__":
    main()
