import logging
import sqlite3
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Iterable

from jewellery_billing.config import DEFAULT_CATEGORIES, PROTECTED_CATEGORY_CODES, get_db_path
from jewellery_billing.models import CompanyInfo, PricePoint

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS: dict[str, str] = {
    "default_gst_pct": "3",
    "round_final_to_rupee": "0",
    "troy_oz_to_grams": "31.1034768",
    "price_cache_ttl_minutes": "60",
    "company_name": "",
    "company_address": "",
    "company_gst_number": "",
    "company_phone": "",
    "company_email": "",
    "company_website": "",
    "invoice_terms": "",
}


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def get_connection(db_path: Path | str | None = None) -> sqlite3.Connection:
    target = db_path or get_db_path()
    if str(target) != ":memory:":
        Path(target).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(target)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(conn: sqlite3.Connection) -> None:
    cursor = conn.cursor()

    cursor.execute(
        """
        CREATE TABLE IF NOT EXISTS settings (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
        """
    )

    cursor.execute(
        """
        CREATE TABLE IF NOT EXISTS product_categories (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            code TEXT NOT NULL UNIQUE,
            name TEXT NOT NULL,
            hsn_code TEXT NOT NULL,
            tax_percentage REAL NOT NULL,
            metal_symbol TEXT,
            purity_factor REAL NOT NULL DEFAULT 1.0,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
        """
    )

    cursor.execute(
        """
        CREATE TABLE IF NOT EXISTS price_master (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            category_code TEXT NOT NULL,
            effective_date TEXT NOT NULL,
            price_per_gram REAL NOT NULL,
            source TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            UNIQUE (category_code, effective_date),
            FOREIGN KEY (category_code) REFERENCES product_categories(code)
        )
        """
    )

    cursor.execute(
        """
        CREATE TABLE IF NOT EXISTS products (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            barcode_number TEXT UNIQUE,
            purity TEXT,
            category_code TEXT,
            net_weight REAL NOT NULL,
            gross_weight REAL NOT NULL,
            making_charge_type TEXT,
            making_charge_value REAL,
            wastage_charge_type TEXT,
            wastage_charge_value REAL,
            additional_cost REAL NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            FOREIGN KEY (category_code) REFERENCES product_categories(code)
        )
        """
    )

    for key, value in DEFAULT_SETTINGS.items():
        cursor.execute(
            """
            INSERT OR IGNORE INTO settings (key, value, updated_at)
            VALUES (?, ?, ?)
            """,
            (key, value, utc_now_iso()),
        )

    now = utc_now_iso()
    for category in DEFAULT_CATEGORIES:
        cursor.execute(
            """
            INSERT OR IGNORE INTO product_categories
            (code, name, hsn_code, tax_percentage, metal_symbol, purity_factor, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                category["code"],
                category["name"],
                category["hsn_code"],
                category["tax_percentage"],
                category["metal_symbol"],
                category["purity_factor"],
                now,
                now,
            ),
        )

    conn.commit()


def get_all_settings(conn: sqlite3.Connection) -> dict[str, Any]:
    rows = conn.execute("SELECT key, value FROM settings").fetchall()
    raw = {row["key"]: row["value"] for row in rows}

    def get_float(key: str) -> float:
        try:
            return float(raw.get(key, DEFAULT_SETTINGS[key]))
        except (TypeError, ValueError):
            return float(DEFAULT_SETTINGS[key])

    def get_text(key: str) -> str:
        return str(raw.get(key, DEFAULT_SETTINGS[key]))

    return {
        "default_gst_pct": get_float("default_gst_pct"),
        "round_final_to_rupee": raw.get("round_final_to_rupee", DEFAULT_SETTINGS["round_final_to_rupee"]) == "1",
        "troy_oz_to_grams": get_float("troy_oz_to_grams"),
        "price_cache_ttl_minutes": int(get_float("price_cache_ttl_minutes")),
        "company_name": get_text("company_name"),
        "company_address": get_text("company_address"),
        "company_gst_number": get_text("company_gst_number"),
        "company_phone": get_text("company_phone"),
        "company_email": get_text("company_email"),
        "company_website": get_text("company_website"),
        "invoice_terms": get_text("invoice_terms"),
    }


def save_settings(conn: sqlite3.Connection, settings: dict[str, Any]) -> None:
    now = utc_now_iso()
    payload: dict[str, str] = {}
    for key, value in settings.items():
        if key not in DEFAULT_SETTINGS:
            continue
        if isinstance(value, bool):
            payload[key] = "1" if value else "0"
        else:
            payload[key] = str(value)

    for key, value in payload.items():
        conn.execute(
            """
            INSERT INTO settings (key, value, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
            """,
            (key, value, now),
        )
    conn.commit()


def get_company_info(conn: sqlite3.Connection) -> CompanyInfo:
    settings = get_all_settings(conn)
    return CompanyInfo(
        company_name=settings["company_name"],
        address=settings["company_address"],
        gst_number=settings["company_gst_number"],
        phone=settings["company_phone"],
        email=settings["company_email"],
        website=settings["company_website"] or None,
        invoice_terms=settings["invoice_terms"] or None,
    )


def list_categories(conn: sqlite3.Connection) -> list[sqlite3.Row]:
    return conn.execute("SELECT * FROM product_categories ORDER BY name").fetchall()


def get_category(conn: sqlite3.Connection, code: str) -> sqlite3.Row | None:
    return conn.execute(
        "SELECT * FROM product_categories WHERE code = ?",
        (code.strip().upper(),),
    ).fetchone()


def add_category(conn: sqlite3.Connection, category: dict[str, Any]) -> tuple[bool, str]:
    code = str(category["code"]).strip().upper()
    tax_percentage = float(category["tax_percentage"])
    if not 0 <= tax_percentage <= 100:
        return False, "Tax percentage must be between 0 and 100."

    now = utc_now_iso()
    try:
        conn.execute(
            """
            INSERT INTO product_categories
            (code, name, hsn_code, tax_percentage, metal_symbol, purity_factor, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                code,
                category["name"],
                category.get("hsn_code", ""),
                tax_percentage,
                category.get("metal_symbol"),
                float(category.get("purity_factor", 1.0)),
                now,
                now,
            ),
        )
        conn.commit()
    except sqlite3.IntegrityError:
        return False, "That category code already exists."

    return True, code


def delete_category(
    conn: sqlite3.Connection,
    code: str,
    protected_codes: Iterable[str] = PROTECTED_CATEGORY_CODES,
) -> tuple[bool, str]:
    normalized = code.strip().upper()
    if normalized in frozenset(protected_codes):
        logger.warning("Refused to delete protected category %s", normalized)
        return False, f"{normalized} is a protected category and cannot be deleted."

    row = get_category(conn, normalized)
    if row is None:
        return False, "Category not found."

    conn.execute("DELETE FROM price_master WHERE category_code = ?", (normalized,))
    conn.execute("DELETE FROM product_categories WHERE code = ?", (normalized,))
    conn.commit()
    logger.info("Deleted category %s", normalized)
    return True, "Category deleted."


def _as_iso_date(value: date | str | None) -> str:
    if value is None:
        return date.today().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return date.fromisoformat(value.strip()).isoformat()


def save_price(
    conn: sqlite3.Connection,
    category_code: str,
    price_per_gram: float,
    effective_date: date | str | None = None,
    source: str = "manual",
) -> None:
    conn.execute(
        """
        INSERT INTO price_master (category_code, effective_date, price_per_gram, source, updated_at)
        VALUES (?, ?, ?, ?, ?)
        ON CONFLICT(category_code, effective_date)
        DO UPDATE SET
            price_per_gram = excluded.price_per_gram,
            source = excluded.source,
            updated_at = excluded.updated_at
        """,
        (category_code.strip().upper(), _as_iso_date(effective_date), float(price_per_gram), source, utc_now_iso()),
    )
    conn.commit()


def save_daily_prices(
    conn: sqlite3.Connection,
    prices: dict[str, float],
    effective_date: date | str | None = None,
    source: str = "manual",
) -> int:
    for category_code, price_per_gram in prices.items():
        save_price(conn, category_code, price_per_gram, effective_date, source)
    return len(prices)


def _row_to_price_point(row: sqlite3.Row) -> PricePoint:
    return PricePoint(
        category_code=row["category_code"],
        effective_date=row["effective_date"],
        price_per_gram=float(row["price_per_gram"]),
        source=row["source"],
    )


def get_price_row(conn: sqlite3.Connection, category_code: str, on_date: date | str | None = None) -> sqlite3.Row | None:
    code = category_code.strip().upper()
    target = _as_iso_date(on_date)

    row = conn.execute(
        """
        SELECT * FROM price_master
        WHERE category_code = ? AND effective_date = ?
        """,
        (code, target),
    ).fetchone()
    if row is not None:
        return row

    # Fall back to the last price set before the requested day.
    return conn.execute(
        """
        SELECT * FROM price_master
        WHERE category_code = ? AND effective_date < ?
        ORDER BY effective_date DESC
        LIMIT 1
        """,
        (code, target),
    ).fetchone()


def get_price_for_date(
    conn: sqlite3.Connection,
    category_code: str,
    on_date: date | str | None = None,
) -> PricePoint | None:
    row = get_price_row(conn, category_code, on_date)
    return _row_to_price_point(row) if row is not None else None


def get_current_prices(conn: sqlite3.Connection, on_date: date | str | None = None) -> list[dict[str, Any]]:
    result = []
    for category in list_categories(conn):
        point = get_price_for_date(conn, category["code"], on_date)
        result.append(
            {
                "category_code": category["code"],
                "category_name": category["name"],
                "price_per_gram": point.price_per_gram if point else None,
                "effective_date": point.effective_date if point else None,
                "source": point.source if point else None,
            }
        )
    return result


def get_price_history(conn: sqlite3.Connection, limit: int = 30, offset: int = 0) -> list[dict[str, Any]]:
    dates = conn.execute(
        """
        SELECT DISTINCT effective_date FROM price_master
        ORDER BY effective_date DESC
        LIMIT ? OFFSET ?
        """,
        (limit, offset),
    ).fetchall()

    history = []
    for date_row in dates:
        rows = conn.execute(
            """
            SELECT pm.category_code, pm.price_per_gram, pc.name AS category_name
            FROM price_master pm
            LEFT JOIN product_categories pc ON pc.code = pm.category_code
            WHERE pm.effective_date = ?
            ORDER BY pc.name
            """,
            (date_row["effective_date"],),
        ).fetchall()
        history.append(
            {
                "date": date_row["effective_date"],
                "categories": {
                    row["category_name"] or row["category_code"]: float(row["price_per_gram"])
                    for row in rows
                },
            }
        )
    return history


def import_prices_from_df(conn: sqlite3.Connection, df: Any) -> int:
    import pandas as pd

    required = ["category_code", "effective_date", "price_per_gram"]
    missing = [column for column in required if column not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {', '.join(missing)}")

    inserted = 0
    for _, row in df.iterrows():
        if pd.isna(row["price_per_gram"]):
            continue
        effective = row["effective_date"]
        if isinstance(effective, pd.Timestamp):
            effective = effective.date()
        save_price(
            conn,
            str(row["category_code"]),
            float(row["price_per_gram"]),
            effective_date=effective if isinstance(effective, date) else str(effective),
            source="import",
        )
        inserted += 1

    logger.info("Imported %d price master rows", inserted)
    return inserted


def is_price_fresh(updated_at_iso: str, max_age_minutes: int) -> bool:
    try:
        updated_at = datetime.fromisoformat(updated_at_iso)
    except ValueError:
        return False
    if updated_at.tzinfo is None:
        updated_at = updated_at.replace(tzinfo=timezone.utc)
    return datetime.now(timezone.utc) - updated_at <= timedelta(minutes=max_age_minutes)


def add_product(conn: sqlite3.Connection, product: dict[str, Any]) -> int:
    now = utc_now_iso()
    cursor = conn.cursor()
    cursor.execute(
        """
        INSERT INTO products
        (name, barcode_number, purity, category_code, net_weight, gross_weight,
         making_charge_type, making_charge_value, wastage_charge_type, wastage_charge_value,
         additional_cost, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            product["name"],
            product.get("barcode_number"),
            product.get("purity", ""),
            product.get("category_code"),
            product["net_weight"],
            product["gross_weight"],
            product.get("making_charge_type"),
            product.get("making_charge_value"),
            product.get("wastage_charge_type"),
            product.get("wastage_charge_value"),
            product.get("additional_cost", 0),
            now,
            now,
        ),
    )
    conn.commit()
    return int(cursor.lastrowid)


def get_product(conn: sqlite3.Connection, product_id: int) -> sqlite3.Row | None:
    return conn.execute("SELECT * FROM products WHERE id = ?", (product_id,)).fetchone()


def list_products(conn: sqlite3.Connection) -> list[sqlite3.Row]:
    return conn.execute("SELECT * FROM products ORDER BY name").fetchall()
