from datetime import date, timedelta

import pytest
import requests

from jewellery_billing.db import get_price_for_date, save_price
from jewellery_billing.providers.base import SpotPriceProvider
from jewellery_billing.providers.rates_api import (
    GoldAPIProvider,
    MetalPriceAPIProvider,
    build_provider_from_env,
    refresh_daily_prices,
    resolve_price_per_gram,
)

TROY_OZ = 31.1034768


class StaticProvider(SpotPriceProvider):
    provider_name = "static"

    def __init__(self, prices):
        self.prices = prices
        self.calls = 0

    def fetch_latest_inr_per_oz(self, symbols):
        self.calls += 1
        return {symbol: self.prices[symbol] for symbol in symbols if symbol in self.prices}


class BrokenProvider(SpotPriceProvider):
    provider_name = "broken"

    def fetch_latest_inr_per_oz(self, symbols):
        raise RuntimeError("rate limited")


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


def test_refresh_converts_spot_to_purity_adjusted_grams(conn):
    provider = StaticProvider({"XAU": 620000.0, "XAG": 2400.0})
    saved = refresh_daily_prices(conn, date(2024, 3, 9), provider)

    assert saved["CAT-GOLD22K"] == round(620000.0 / TROY_OZ * 22 / 24, 2)
    assert saved["CAT-GOLD18K"] == round(620000.0 / TROY_OZ * 18 / 24, 2)
    assert saved["CAT-SILVER"] == round(2400.0 / TROY_OZ, 2)
    assert "CAT-PLATINUM" not in saved
    assert "CAT-DIAMOND" not in saved
    assert get_price_for_date(conn, "CAT-GOLD22K", date(2024, 3, 9)).source == "static"


def test_resolve_keeps_todays_manual_price(conn):
    save_price(conn, "CAT-GOLD22K", 6000, date.today())
    provider = StaticProvider({"XAU": 620000.0})

    point, warning = resolve_price_per_gram(conn, "CAT-GOLD22K", provider=provider)

    assert point.price_per_gram == 6000.0
    assert warning is None
    assert provider.calls == 0


def test_resolve_refreshes_when_today_is_missing(conn):
    provider = StaticProvider({"XAU": 620000.0, "XAG": 2400.0, "XPT": 250000.0})

    point, warning = resolve_price_per_gram(conn, "CAT-GOLD18K", provider=provider)

    assert warning is None
    assert point.effective_date == date.today().isoformat()
    assert point.source == "static"


def test_resolve_leaves_other_categories_manual_rates(conn):
    save_price(conn, "CAT-SILVER", 80.0, date.today())
    provider = StaticProvider({"XAU": 620000.0, "XAG": 2400.0})

    gold, _ = resolve_price_per_gram(conn, "CAT-GOLD22K", provider=provider)
    silver = get_price_for_date(conn, "CAT-SILVER", date.today())

    assert gold.source == "static"
    assert silver.source == "manual"
    assert silver.price_per_gram == 80.0


def test_forced_resolve_only_touches_requested_category(conn):
    save_price(conn, "CAT-GOLD22K", 6000, date.today())
    save_price(conn, "CAT-SILVER", 80.0, date.today())
    provider = StaticProvider({"XAU": 620000.0, "XAG": 2400.0})

    gold, _ = resolve_price_per_gram(conn, "CAT-GOLD22K", force_refresh=True, provider=provider)

    assert gold.price_per_gram == round(620000.0 / TROY_OZ * 22 / 24, 2)
    assert get_price_for_date(conn, "CAT-SILVER", date.today()).source == "manual"
    assert get_price_for_date(conn, "CAT-GOLD18K", date.today()) is None


def test_refresh_skips_same_day_manual_rates_unless_forced(conn):
    today = date.today()
    save_price(conn, "CAT-SILVER", 80.0, today)
    provider = StaticProvider({"XAU": 620000.0, "XAG": 2400.0, "XPT": 250000.0})

    saved = refresh_daily_prices(conn, today, provider)
    assert "CAT-SILVER" not in saved
    assert get_price_for_date(conn, "CAT-SILVER", today).price_per_gram == 80.0

    forced = refresh_daily_prices(conn, today, provider, force=True)
    assert forced["CAT-SILVER"] == round(2400.0 / TROY_OZ, 2)
    assert get_price_for_date(conn, "CAT-SILVER", today).source == "static"


def test_resolve_falls_back_to_stored_price_when_api_fails(conn):
    yesterday = date.today() - timedelta(days=1)
    save_price(conn, "CAT-GOLD22K", 5950, yesterday)

    point, warning = resolve_price_per_gram(conn, "CAT-GOLD22K", provider=BrokenProvider())

    assert point.price_per_gram == 5950.0
    assert point.effective_date == yesterday.isoformat()
    assert "Using stored price master" in warning


def test_resolve_without_any_price_warns(conn):
    point, warning = resolve_price_per_gram(conn, "CAT-SILVER", provider=BrokenProvider())

    assert point is None
    assert "no stored price yet" in warning


def test_resolve_never_refreshes_past_days_or_unpriced_metals(conn):
    save_price(conn, "CAT-DIAMOND", 1000, date(2024, 1, 1))
    provider = StaticProvider({"XAU": 620000.0})

    past, _ = resolve_price_per_gram(conn, "CAT-GOLD22K", date(2024, 1, 1), force_refresh=True, provider=provider)
    diamond, _ = resolve_price_per_gram(conn, "CAT-DIAMOND", provider=provider)

    assert past is None
    assert diamond.price_per_gram == 1000.0
    assert provider.calls == 0


def test_resolve_unknown_category(conn):
    assert resolve_price_per_gram(conn, "CAT-NOPE") == (None, "Unknown category CAT-NOPE.")


def test_gold_api_provider_uses_fallback_urls(monkeypatch):
    monkeypatch.setenv("GOLDAPI_BASE_URL", "https://primary.example/price/")
    monkeypatch.setenv("GOLDAPI_FALLBACK_BASE_URLS", "https://backup.example/price, https://primary.example/price")
    provider = GoldAPIProvider(api_key="secret")
    assert provider.base_urls == ["https://primary.example/price", "https://backup.example/price"]

    requested = []

    def fake_get(url, headers, timeout):
        requested.append(url)
        if url.startswith("https://primary"):
            raise requests.ConnectionError("down")
        return FakeResponse({"price": 620000.0, "currency": "INR"})

    monkeypatch.setattr(provider.session, "get", fake_get)

    assert provider.fetch_latest_inr_per_oz(["XAU"]) == {"XAU": 620000.0}
    assert requested == ["https://primary.example/price/XAU/INR", "https://backup.example/price/XAU/INR"]


def test_gold_api_provider_rejects_other_currencies(monkeypatch):
    monkeypatch.delenv("GOLDAPI_BASE_URL", raising=False)
    monkeypatch.delenv("GOLDAPI_FALLBACK_BASE_URLS", raising=False)
    provider = GoldAPIProvider()
    monkeypatch.setattr(
        provider.session,
        "get",
        lambda url, headers, timeout: FakeResponse({"price": 2300.0, "currency": "USD"}),
    )

    with pytest.raises(RuntimeError, match="Expected INR"):
        provider.fetch_latest_inr_per_oz(["XAU"])


def test_metal_price_api_inverts_rates(monkeypatch):
    captured = {}

    def fake_get(url, params, timeout):
        captured.update(params)
        return FakeResponse({"success": True, "rates": {"XAU": 0.0000016, "XAG": 0.0004}})

    monkeypatch.setattr(requests, "get", fake_get)
    prices = MetalPriceAPIProvider(api_key="key").fetch_latest_inr_per_oz(["XAU", "XAG", "XPT"])

    assert captured["base"] == "INR"
    assert prices["XAU"] == pytest.approx(625000.0)
    assert prices["XAG"] == pytest.approx(2500.0)
    assert "XPT" not in prices


def test_metal_price_api_requires_key(monkeypatch):
    monkeypatch.delenv("METALPRICEAPI_KEY", raising=False)
    with pytest.raises(RuntimeError, match="METALPRICEAPI_KEY"):
        MetalPriceAPIProvider().fetch_latest_inr_per_oz(["XAU"])


def test_build_provider_from_env(monkeypatch):
    monkeypatch.setenv("PRICE_PROVIDER", "metalpriceapi")
    assert isinstance(build_provider_from_env(), MetalPriceAPIProvider)

    monkeypatch.setenv("PRICE_PROVIDER", "other")
    with pytest.raises(RuntimeError):
        build_provider_from_env()
