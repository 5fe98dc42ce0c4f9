"""
Market Cache Tests.

============================================================
PURPOSE
============================================================
Lazy, single-flight loading of market and currency metadata.

============================================================
"""

import asyncio
import logging

import pytest

from exchange_gateway import (
    BadSymbol,
    Currency,
    CurrencyCodeMapper,
    ExchangeNotAvailable,
    Market,
    MarketCache,
)


def make_market(market_id: str, symbol: str) -> Market:
    base_id, quote_id = market_id.split("_")
    base, quote = symbol.split("/")
    return Market(
        id=market_id,
        symbol=symbol,
        base=base,
        quote=quote,
        base_id=base_id,
        quote_id=quote_id,
    )


class Loader:
    """Async loader returning scripted results, counting calls."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        await asyncio.sleep(0)
        result = self.results[min(self.calls, len(self.results)) - 1]
        if isinstance(result, BaseException):
            raise result
        return result


# ============================================================
# LOADING TESTS
# ============================================================

class TestLoading:
    """Tests for MarketCache.load."""

    @pytest.mark.asyncio
    async def test_loads_once(self):
        loader = Loader([make_market("btc_usd", "BTC/USD")])
        cache = MarketCache("test", CurrencyCodeMapper(), loader)

        await cache.load()
        await cache.load()
        await cache.ensure_loaded()

        assert loader.calls == 1
        assert cache.loaded
        assert cache.symbols == ["BTC/USD"]

    @pytest.mark.asyncio
    async def test_concurrent_first_callers_share_one_load(self):
        loader = Loader([make_market("btc_usd", "BTC/USD")])
        cache = MarketCache("test", CurrencyCodeMapper(), loader)

        results = await asyncio.gather(*[cache.ensure_loaded() for _ in range(5)])

        assert loader.calls == 1
        assert all(list(r) == ["BTC/USD"] for r in results)

    @pytest.mark.asyncio
    async def test_reload_fetches_again(self):
        loader = Loader(
            [make_market("btc_usd", "BTC/USD")],
            [make_market("btc_usd", "BTC/USD"), make_market("ltc_btc", "LTC/BTC")],
        )
        cache = MarketCache("test", CurrencyCodeMapper(), loader)

        await cache.load()
        await cache.load(reload=True)

        assert loader.calls == 2
        assert cache.symbols == ["BTC/USD", "LTC/BTC"]

    @pytest.mark.asyncio
    async def test_failed_first_load_leaves_cache_empty(self):
        loader = Loader(ExchangeNotAvailable("down", exchange_id="test"))
        cache = MarketCache("test", CurrencyCodeMapper(), loader)

        with pytest.raises(ExchangeNotAvailable):
            await cache.load()

        assert not cache.loaded
        assert cache.markets == {}
        with pytest.raises(BadSymbol):
            cache.market("BTC/USD")

    @pytest.mark.asyncio
    async def test_failed_reload_keeps_previous_state(self):
        loader = Loader(
            [make_market("btc_usd", "BTC/USD")],
            ExchangeNotAvailable("down", exchange_id="test"),
        )
        cache = MarketCache("test", CurrencyCodeMapper(), loader)
        await cache.load()

        with pytest.raises(ExchangeNotAvailable):
            await cache.load(reload=True)

        assert cache.symbols == ["BTC/USD"]

    @pytest.mark.asyncio
    async def test_currency_loader_is_used_when_given(self):
        markets = Loader([make_market("btc_usd", "BTC/USD")])
        currencies = Loader([Currency(id="xbt", code="BTC", name="Bitcoin")])
        cache = MarketCache("test", CurrencyCodeMapper(), markets, currencies)

        await cache.load()

        assert currencies.calls == 1
        assert list(cache.currencies) == ["BTC"]
        assert cache.currency("BTC").name == "Bitcoin"


# ============================================================
# LOOKUP TESTS
# ============================================================

async def loaded_cache() -> MarketCache:
    loader = Loader([
        make_market("btc_usd", "BTC/USD"),
        make_market("ltc_btc", "LTC/BTC"),
    ])
    cache = MarketCache("test", CurrencyCodeMapper({"DSH": "DASH"}), loader)
    await cache.load()
    return cache


class TestLookups:
    """Tests for market and currency lookups."""

    @pytest.mark.asyncio
    async def test_market_lookup(self):
        cache = await loaded_cache()
        assert cache.market("BTC/USD").id == "btc_usd"
        assert cache.market_id("LTC/BTC") == "ltc_btc"
        assert cache.market_by_id("ltc_btc").symbol == "LTC/BTC"
        assert cache.market_by_id("nope") is None
        assert cache.ids == ["btc_usd", "ltc_btc"]

    @pytest.mark.asyncio
    async def test_unknown_symbol(self):
        cache = await loaded_cache()
        with pytest.raises(BadSymbol, match="ETH/USD"):
            cache.market("ETH/USD")

    @pytest.mark.asyncio
    async def test_currencies_derived_from_markets(self):
        cache = await loaded_cache()
        assert sorted(cache.currencies) == ["BTC", "LTC", "USD"]
        assert cache.currency("BTC").id == "btc"

    @pytest.mark.asyncio
    async def test_unlisted_currency_uses_mapper(self):
        cache = await loaded_cache()
        currency = cache.currency("DASH")

        assert currency.id == "DSH"
        assert currency.code == "DASH"

    def test_lookup_before_load_raises(self):
        cache = MarketCache("test", CurrencyCodeMapper(), Loader([]))

        with pytest.raises(BadSymbol, match="not loaded"):
            cache.market("BTC/USD")

    @pytest.mark.asyncio
    async def test_duplicate_symbols_keep_first(self, caplog):
        loader = Loader([
            make_market("dsh_btc", "DASH/BTC"),
            make_market("dash_btc", "DASH/BTC"),
        ])
        cache = MarketCache("test", CurrencyCodeMapper(), loader)

        with caplog.at_level(logging.WARNING, logger="exchange_gateway.markets"):
            await cache.load()

        assert cache.market("DASH/BTC").id == "dsh_btc"
        assert cache.market_by_id("dash_btc") is None
        assert "Duplicate symbol DASH/BTC" in caplog.text
