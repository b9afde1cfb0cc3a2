import logging
import os
import sqlite3
from datetime import date
from typing import Any, Iterable

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from jewellery_billing.db import (
    get_all_settings,
    get_category,
    get_price_for_date,
    get_price_row,
    is_price_fresh,
    list_categories,
    save_price,
)
from jewellery_billing.models import PricePoint
from jewellery_billing.providers.base import SpotPriceProvider

logger = logging.getLogger(__name__)


class MetalPriceAPIProvider(SpotPriceProvider):
    """
    Provider implementation for metalpriceapi.com.

    The endpoint returns rates in the shape 'metal units per INR' when base=INR,
    so we invert each rate to get INR per troy ounce.
    """

    provider_name = "metalpriceapi"
    endpoint = "https://api.metalpriceapi.com/v1/latest"

    def __init__(self, api_key: str | None = None, timeout_seconds: int = 10):
        self.api_key = api_key or os.getenv("METALPRICEAPI_KEY", "")
        self.timeout_seconds = timeout_seconds

    def fetch_latest_inr_per_oz(self, symbols: list[str]) -> dict[str, float]:
        if not self.api_key:
            raise RuntimeError("Missing METALPRICEAPI_KEY in .env")

        response = requests.get(
            self.endpoint,
            params={
                "api_key": self.api_key,
                "base": "INR",
                "currencies": ",".join(symbols),
            },
            timeout=self.timeout_seconds,
        )
        response.raise_for_status()

        payload: dict[str, Any] = response.json()
        if payload.get("success") is False:
            raise RuntimeError(payload.get("error", "Provider returned unsuccessful response"))

        rates = payload.get("rates", {})
        result: dict[str, float] = {}
        for symbol in symbols:
            rate = rates.get(symbol)
            if rate is None:
                continue
            if float(rate) <= 0:
                raise RuntimeError(f"Invalid {symbol} rate from provider")
            result[symbol] = 1 / float(rate)

        return result


class GoldAPIProvider(SpotPriceProvider):
    """
    Provider implementation for gold-api.com.

    GET {base_url}/{symbol}/INR is expected to return a numeric `price` in INR
    per troy ounce. Any other currency in the payload is rejected rather than
    silently mispricing the day's rates.
    """

    provider_name = "goldapi"
    endpoint_base = "https://api.gold-api.com/price"

    def __init__(self, api_key: str | None = None, timeout_seconds: int = 10):
        self.api_key = api_key or os.getenv("GOLDAPI_KEY", "")
        self.timeout_seconds = timeout_seconds

        override_base = os.getenv("GOLDAPI_BASE_URL", "").strip()
        base_urls = [override_base] if override_base else [self.endpoint_base]
        fallback_raw = os.getenv("GOLDAPI_FALLBACK_BASE_URLS", "").strip()
        if fallback_raw:
            base_urls.extend(url.strip() for url in fallback_raw.split(",") if url.strip())

        self.base_urls: list[str] = []
        for base_url in base_urls:
            cleaned = base_url.rstrip("/")
            if cleaned and cleaned not in self.base_urls:
                self.base_urls.append(cleaned)

        self.session = requests.Session()
        retry = Retry(
            total=2,
            connect=2,
            read=2,
            backoff_factor=0.5,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET"],
        )
        adapter = HTTPAdapter(max_retries=retry)
        self.session.mount("https://", adapter)
        self.session.mount("http://", adapter)

    def _fetch_payload(self, symbol: str, headers: dict[str, str]) -> dict[str, Any]:
        last_error: Exception | None = None
        for base_url in self.base_urls:
            try:
                response = self.session.get(
                    f"{base_url}/{symbol}/INR",
                    headers=headers,
                    timeout=self.timeout_seconds,
                )
                response.raise_for_status()
                return response.json()
            except (requests.RequestException, ValueError) as exc:
                logger.warning("Gold API request to %s failed for %s: %s", base_url, symbol, exc)
                last_error = exc

        raise RuntimeError(
            f"Gold API request failed for {symbol} across configured URLs. Last error: {last_error}"
        )

    def fetch_latest_inr_per_oz(self, symbols: list[str]) -> dict[str, float]:
        headers: dict[str, str] = {}
        if self.api_key:
            headers["x-access-token"] = self.api_key

        result: dict[str, float] = {}
        for symbol in symbols:
            payload = self._fetch_payload(symbol, headers)

            if "price" not in payload:
                raise RuntimeError(f"Missing price field for {symbol} from Gold API")

            currency = str(payload.get("currency", "INR")).upper()
            if currency != "INR":
                raise RuntimeError(f"Gold API returned {currency} for {symbol}. Expected INR pricing.")

            price_value = float(payload["price"])
            if price_value <= 0:
                raise RuntimeError(f"Invalid {symbol} price from Gold API")

            result[symbol] = price_value

        return result


def build_provider_from_env() -> SpotPriceProvider:
    provider_name = os.getenv("PRICE_PROVIDER", "goldapi").strip().lower()
    if provider_name == "metalpriceapi":
        return MetalPriceAPIProvider()
    if provider_name == "goldapi":
        return GoldAPIProvider()
    raise RuntimeError("Unsupported PRICE_PROVIDER. Use 'goldapi' or 'metalpriceapi'.")


def refresh_daily_prices(
    conn: sqlite3.Connection,
    on_date: date | None = None,
    provider: SpotPriceProvider | None = None,
    category_codes: Iterable[str] | None = None,
    force: bool = False,
) -> dict[str, float]:
    """
    Pulls spot prices and stores a per-gram rate for metal-backed categories.

    Spot INR per troy ounce is converted to grams and scaled by the category's
    purity factor, so 22K gold is priced at 22/24 of fine gold. Rates entered
    manually for the same day are left alone unless `force` is set.
    """
    target = on_date or date.today()
    wanted = {code.strip().upper() for code in category_codes} if category_codes is not None else None

    categories = []
    for row in list_categories(conn):
        if not row["metal_symbol"] or (wanted is not None and row["code"] not in wanted):
            continue
        existing = get_price_row(conn, row["code"], target)
        if (
            not force
            and existing is not None
            and existing["effective_date"] == target.isoformat()
            and existing["source"] == "manual"
        ):
            continue
        categories.append(row)

    symbols = sorted({row["metal_symbol"] for row in categories})
    if not symbols:
        return {}

    troy_oz_to_grams = get_all_settings(conn)["troy_oz_to_grams"]
    active_provider = provider or build_provider_from_env()
    spot = active_provider.fetch_latest_inr_per_oz(symbols)

    saved: dict[str, float] = {}
    for category in categories:
        per_oz = spot.get(category["metal_symbol"])
        if per_oz is None:
            continue
        per_gram = round(per_oz / troy_oz_to_grams * float(category["purity_factor"]), 2)
        save_price(conn, category["code"], per_gram, target, source=active_provider.provider_name)
        saved[category["code"]] = per_gram

    logger.info("Refreshed %d daily prices from %s", len(saved), active_provider.provider_name)
    return saved


def resolve_price_per_gram(
    conn: sqlite3.Connection,
    category_code: str,
    on_date: date | None = None,
    force_refresh: bool = False,
    provider: SpotPriceProvider | None = None,
) -> tuple[PricePoint | None, str | None]:
    """
    Returns the price-of-the-day for a category.

    Today's rate is refreshed from the spot provider when it is missing or a
    stale provider quote; manually entered rates are kept unless a refresh is
    forced. Only the requested category is refreshed. If the API fails, the
    stored price master is used and a warning message is returned alongside it.
    """
    target = on_date or date.today()
    category = get_category(conn, category_code)
    if category is None:
        return None, f"Unknown category {category_code}."

    row = get_price_row(conn, category_code, target)
    # Spot quotes are only "latest", so past days are never refreshed.
    need_refresh = False
    if target == date.today() and category["metal_symbol"]:
        if force_refresh or row is None or row["effective_date"] != target.isoformat():
            need_refresh = True
        elif row["source"] != "manual":
            ttl = get_all_settings(conn)["price_cache_ttl_minutes"]
            need_refresh = not is_price_fresh(row["updated_at"], ttl)

    warning = None
    if need_refresh:
        try:
            refresh_daily_prices(conn, target, provider, category_codes=[category_code], force=force_refresh)
        except Exception as exc:
            logger.warning("Spot price refresh failed: %s", exc)
            if row is not None:
                warning = f"Price API unavailable. Using stored price master. Details: {exc}"
            else:
                warning = f"Price API unavailable and no stored price yet. Details: {exc}"

    return get_price_for_date(conn, category_code, target), warning
