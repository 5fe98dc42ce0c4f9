"""
ZB Adapter Tests.

============================================================
PURPOSE
============================================================
End-to-end adapter behavior against scripted HTTP responses.

TEST CATEGORIES:
- Market data: markets, ticker, order book, trades, OHLCV
- Account: balance, deposit address, withdraw
- Trading: create, cancel, fetch orders
- Pipeline: retries, terminal errors, malformed bodies

============================================================
"""

import pytest

from exchange_gateway import (
    ArgumentsRequired,
    AuthenticationError,
    BadSymbol,
    DDoSProtection,
    ExchangeError,
    ExchangeNotAvailable,
    InsufficientFunds,
    InvalidAddress,
    InvalidOrder,
    NetworkError,
    NotSupported,
    OrderNotFound,
    OrderSide,
    OrderStatus,
    ZBAdapter,
)


NOW_MS = 1_500_000_000_000


# ============================================================
# MARKET DATA TESTS
# ============================================================

class TestZBMarketData:
    """Tests for public ZB endpoints."""

    @pytest.mark.asyncio
    async def test_fetch_markets(self, zb, transport):
        transport.add_response("/v1/markets", {"AAA_BBB": {"amountScale": 4, "priceScale": 2}})

        markets = await zb.load_markets()

        market = markets["AAA/BBB"]
        assert market.id == "AAA_BBB"
        assert market.base == "AAA"
        assert market.quote == "BBB"
        assert market.precision.amount == 4
        assert market.precision.price == 2
        assert market.limits.amount.min == pytest.approx(1e-4)
        assert market.limits.price.min == pytest.approx(0.01)
        assert market.limits.cost.min == 0.0
        assert transport.requests[0].url == "http://api.zb.com/data/v1/markets"

    @pytest.mark.asyncio
    async def test_markets_loaded_once(self, zb, transport, zb_markets):
        await zb.load_markets()
        await zb.load_markets()

        assert len(transport.requests_matching("/v1/markets")) == 1
        assert zb.symbols == ["BTC/USDT", "ETH/BTC"]

    @pytest.mark.asyncio
    async def test_fetch_ticker(self, zb, transport, zb_markets):
        transport.add_response("/v1/ticker?", {
            "date": "1500000000000",
            "ticker": {
                "vol": "1234.5", "last": "9000", "sell": "9001",
                "buy": "8999", "high": "9100", "low": "8800",
            },
        })

        ticker = await zb.fetch_ticker("BTC/USDT")

        assert ticker.symbol == "BTC/USDT"
        assert ticker.timestamp == NOW_MS
        assert ticker.bid == 8999.0
        assert ticker.ask == 9001.0
        assert ticker.last == 9000.0
        assert ticker.base_volume == 1234.5
        assert ticker.quote_volume is None
        assert transport.requests_matching("/v1/ticker?")[0].url.endswith("ticker?market=btc_usdt")

    @pytest.mark.asyncio
    async def test_fetch_tickers_one_request_per_market(self, zb, transport, zb_markets):
        transport.add_response("/v1/ticker?", {"ticker": {"last": "1"}})

        tickers = await zb.fetch_tickers()

        assert sorted(tickers) == ["BTC/USDT", "ETH/BTC"]
        assert len(transport.requests_matching("/v1/ticker?")) == 2

    @pytest.mark.asyncio
    async def test_unknown_symbol(self, zb, transport, zb_markets):
        with pytest.raises(BadSymbol):
            await zb.fetch_ticker("DOGE/USDT")

        assert transport.requests_matching("/v1/ticker?") == []

    @pytest.mark.asyncio
    async def test_fetch_order_book(self, zb, transport, zb_markets):
        transport.add_response("/v1/depth?", {
            "asks": [[9010, 1], [9005, 2], [9005, 1]],
            "bids": [[8990, 1], [8995, 3]],
            "timestamp": 1500000000,
        })

        book = await zb.fetch_order_book("BTC/USDT", limit=5)

        assert book.asks == [(9005.0, 3.0), (9010.0, 1.0)]
        assert book.bids == [(8995.0, 3.0), (8990.0, 1.0)]
        assert book.timestamp == NOW_MS
        assert "size=5" in transport.requests_matching("/v1/depth?")[0].url

    @pytest.mark.asyncio
    async def test_fetch_trades(self, zb, transport, zb_markets):
        transport.add_response("/v1/trades?", [
            {"amount": "0.5", "price": "9000", "tid": 1, "date": 1500000001, "type": "buy", "trade_type": "bid"},
            {"amount": "0.2", "price": "9001", "tid": 2, "date": 1500000002, "type": "sell", "trade_type": "ask"},
        ])

        trades = await zb.fetch_trades("BTC/USDT", since=1500000002000)

        assert len(trades) == 1
        assert trades[0].id == "2"
        assert trades[0].side == OrderSide.SELL
        assert trades[0].timestamp == 1500000002000

    @pytest.mark.asyncio
    async def test_fetch_ohlcv(self, zb, transport, zb_markets):
        transport.add_response("/v1/kline?", {
            "data": [
                [1500000000000, "9000", "9100", "8900", "9050", "12.5"],
                [1500003600000, "9050", "9200", "9000", "9150", "7"],
            ],
            "moneyType": "usdt",
            "symbol": "btc",
        })

        rows = await zb.fetch_ohlcv("BTC/USDT", "1h")

        assert rows[0] == [1500000000000, 9000.0, 9100.0, 8900.0, 9050.0, 12.5]
        assert len(rows) == 2
        url = transport.requests_matching("/v1/kline?")[0].url
        assert "type=1hour" in url
        assert "limit=1000" in url

    @pytest.mark.asyncio
    async def test_fetch_ohlcv_unknown_timeframe(self, zb, transport, zb_markets):
        with pytest.raises(NotSupported, match="7m"):
            await zb.fetch_ohlcv("BTC/USDT", "7m")

        assert transport.requests_matching("/v1/kline?") == []


# ============================================================
# ACCOUNT TESTS
# ============================================================

class TestZBAccount:
    """Tests for private account endpoints."""

    @pytest.mark.asyncio
    async def test_fetch_balance(self, zb, transport, zb_markets):
        transport.add_response("/getAccountInfo?", {
            "result": {
                "coins": [
                    {"key": "btc", "enName": "BTC", "available": "0.5", "freez": "0.25"},
                    {"key": "usdt", "enName": "USDT", "available": "100", "freez": "0"},
                    {"key": "qtum", "enName": "QTUM", "available": "3", "freez": "1"},
                ],
            },
        })

        balance = await zb.fetch_balance()

        assert balance["BTC"].free == 0.5
        assert balance["BTC"].used == 0.25
        assert balance["BTC"].total == 0.75
        assert balance["USDT"].total == 100.0
        assert balance["QTUM"].total == 4.0

    @pytest.mark.asyncio
    async def test_private_request_is_signed(self, zb, transport, zb_markets):
        transport.add_response("/getAccountInfo?", {"result": {"coins": []}})

        await zb.fetch_balance()

        url = transport.requests_matching("/getAccountInfo?")[0].url
        assert url.startswith("https://trade.zb.com/api/getAccountInfo?accesskey=key&method=getAccountInfo&sign=")
        assert url.endswith(f"&reqTime={NOW_MS}")

    @pytest.mark.asyncio
    async def test_missing_credentials(self, build, transport, zb_markets):
        zb = build(ZBAdapter, api_key=None, api_secret=None)

        with pytest.raises(AuthenticationError):
            await zb.fetch_balance()

        assert transport.requests_matching("/getAccountInfo?") == []

    @pytest.mark.asyncio
    async def test_fetch_deposit_address(self, zb, transport):
        transport.add_response("/getUserAddress?", {
            "code": 1000,
            "message": {"des": "success", "isSuc": True, "datas": {"key": "1BTCaddressXYZ"}},
        })

        address = await zb.fetch_deposit_address("BTC")

        assert address.address == "1BTCaddressXYZ"
        assert address.currency == "BTC"
        assert "currency=btc" in transport.requests[0].url

    @pytest.mark.asyncio
    async def test_fetch_deposit_address_failure(self, zb, transport):
        transport.add_response("/getUserAddress?", {"message": {"des": "failed", "isSuc": False}})

        with pytest.raises(ExchangeError, match="fetch_deposit_address failed"):
            await zb.fetch_deposit_address("BTC")

    @pytest.mark.asyncio
    async def test_withdraw(self, zb, transport, zb_markets):
        transport.add_response("/withdraw?", {"code": 1000, "message": "success", "id": "w1"})

        tx = await zb.withdraw("USDT", 100, "0xabcdef0123456789")

        assert tx.id == "w1"
        assert tx.amount == 100
        url = transport.requests_matching("/withdraw?")[0].url
        assert "currency=usdt" in url
        assert "fees=0.1&" in url
        assert "itransfer=0" in url
        assert "receiveAddr=0xabcdef0123456789" in url
        assert "safePwd=fundpassword" in url

    @pytest.mark.asyncio
    async def test_withdraw_requires_password(self, build, transport, zb_markets):
        zb = build(ZBAdapter, password=None)

        with pytest.raises(ArgumentsRequired, match="password"):
            await zb.withdraw("BTC", 1, "1BTCaddressXYZ")

        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_withdraw_rejects_bad_address(self, zb, transport):
        with pytest.raises(InvalidAddress):
            await zb.withdraw("BTC", 1, "1BTC address")

        assert transport.requests == []

    def test_withdraw_fee_table(self, zb):
        assert zb.withdraw_fee("BTC", 1) == 0.0001
        assert zb.withdraw_fee("USDT", 1000) == pytest.approx(1.0)
        assert zb.withdraw_fee("UNKNOWN", 1) == 0.0


# ============================================================
# TRADING TESTS
# ============================================================

ZB_ORDER = {
    "currency": "btc_usdt",
    "id": "20150928158614292",
    "price": 1560,
    "status": 3,
    "total_amount": 0.1,
    "trade_amount": 0.04,
    "trade_date": 1443410396717,
    "trade_money": 62.4,
    "trade_price": 1560,
    "type": 1,
}


class TestZBTrading:
    """Tests for order endpoints."""

    @pytest.mark.asyncio
    async def test_create_limit_order(self, zb, transport, zb_markets):
        transport.add_response("/order?", {"code": 1000, "message": "ok", "id": "12345"})

        order = await zb.create_order("BTC/USDT", "limit", "buy", 0.12345, 9000.456)

        assert order.id == "12345"
        assert order.status == OrderStatus.OPEN
        assert order.side == OrderSide.BUY
        assert order.amount == 0.12345
        url = transport.requests_matching("/order?")[0].url
        assert "amount=0.1234&" in url
        assert "price=9000.46&" in url
        assert "tradeType=1" in url
        assert "currency=btc_usdt" in url

    @pytest.mark.asyncio
    async def test_sell_order_trade_type(self, zb, transport, zb_markets):
        transport.add_response("/order?", {"code": 1000, "id": "2"})

        await zb.create_order("BTC/USDT", "limit", "sell", 1, 9000)

        assert "tradeType=0" in transport.requests_matching("/order?")[0].url

    @pytest.mark.asyncio
    async def test_market_order_rejected_without_request(self, zb, transport):
        with pytest.raises(InvalidOrder, match="limit orders only"):
            await zb.create_order("BTC/USDT", "market", "buy", 1)

        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_limit_order_requires_price(self, zb, transport):
        with pytest.raises(ArgumentsRequired) as exc_info:
            await zb.create_order("BTC/USDT", "limit", "buy", 1)

        assert exc_info.value.context == {"symbol": "BTC/USDT", "type": "limit", "side": "buy"}
        assert transport.requests == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("side", ["Buy", "SELL", "long", ""])
    async def test_invalid_side_rejected_without_request(self, build, transport, zb_markets, side):
        zb = build(ZBAdapter, enable_rate_limit=True)

        with pytest.raises(InvalidOrder, match="invalid order side") as exc_info:
            await zb.create_order("BTC/USDT", "limit", side, 1, 100)

        assert exc_info.value.exchange_id == "zb"
        assert exc_info.value.context == {"symbol": "BTC/USDT", "side": side}
        assert transport.requests == []
        assert zb.limiter.last_request is None

    @pytest.mark.asyncio
    async def test_insufficient_funds_is_terminal(self, zb, transport, zb_markets, clock):
        transport.add_response("/order?", {"code": 2009, "message": "Account balance is not enough"})

        with pytest.raises(InsufficientFunds) as exc_info:
            await zb.create_order("BTC/USDT", "limit", "buy", 1, 9000)

        assert exc_info.value.exchange_code == "2009"
        assert exc_info.value.context["endpoint"] == "create_order"
        assert len(transport.requests_matching("/order?")) == 1
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_cancel_order(self, zb, transport, zb_markets):
        transport.add_response("/cancelOrder?", {"code": 1000, "message": "ok"})

        order = await zb.cancel_order("123", "BTC/USDT")

        assert order.id == "123"
        assert order.status == OrderStatus.CANCELED
        url = transport.requests_matching("/cancelOrder?")[0].url
        assert "id=123" in url
        assert "currency=btc_usdt" in url

    @pytest.mark.asyncio
    async def test_cancel_order_requires_symbol(self, zb):
        with pytest.raises(ArgumentsRequired) as exc_info:
            await zb.cancel_order("123")

        assert exc_info.value.context == {"id": "123"}

    @pytest.mark.asyncio
    async def test_fetch_order(self, zb, transport, zb_markets):
        transport.add_response("/getOrder?", ZB_ORDER)

        order = await zb.fetch_order("20150928158614292", "BTC/USDT")

        assert order.symbol == "BTC/USDT"
        assert order.side == OrderSide.BUY
        assert order.status == OrderStatus.OPEN
        assert order.amount == 0.1
        assert order.filled == 0.04
        assert order.remaining == pytest.approx(0.06)
        assert order.average == 1560.0
        assert order.cost == 62.4
        assert order.timestamp == 1443410396717

    @pytest.mark.asyncio
    async def test_fetch_order_not_found(self, zb, transport, zb_markets):
        transport.add_response("/getOrder?", {"code": 3001, "message": "not found"})

        with pytest.raises(OrderNotFound):
            await zb.fetch_order("1", "BTC/USDT")

    @pytest.mark.asyncio
    async def test_fetch_orders(self, zb, transport, zb_markets):
        transport.add_response("/getOrdersIgnoreTradeType?", [ZB_ORDER, {**ZB_ORDER, "id": "2", "status": 2}])

        orders = await zb.fetch_orders("BTC/USDT")

        assert [o.status for o in orders] == [OrderStatus.OPEN, OrderStatus.CLOSED]
        url = transport.requests_matching("/getOrdersIgnoreTradeType?")[0].url
        assert "pageIndex=1" in url
        assert "pageSize=50" in url

    @pytest.mark.asyncio
    async def test_fetch_orders_with_trade_type(self, zb, transport, zb_markets):
        transport.add_response("/getOrdersNew?", [ZB_ORDER])

        orders = await zb.fetch_orders("BTC/USDT", params={"tradeType": 1})

        assert len(orders) == 1
        assert transport.requests_matching("/getOrdersIgnoreTradeType?") == []

    @pytest.mark.asyncio
    async def test_no_orders_is_empty_list(self, zb, transport, zb_markets):
        transport.add_response("/getUnfinishedOrdersIgnoreTradeType?", {"code": 3001, "message": "none"})

        assert await zb.fetch_open_orders("BTC/USDT") == []
        url = transport.requests_matching("/getUnfinishedOrdersIgnoreTradeType?")[0].url
        assert "pageSize=10" in url

    @pytest.mark.asyncio
    async def test_order_lists_require_symbol(self, zb):
        with pytest.raises(ArgumentsRequired):
            await zb.fetch_orders()
        with pytest.raises(ArgumentsRequired):
            await zb.fetch_open_orders()

    @pytest.mark.asyncio
    async def test_unsupported_operation(self, zb):
        assert not zb.has("fetch_my_trades")

        with pytest.raises(NotSupported):
            await zb.fetch_my_trades("BTC/USDT")


# ============================================================
# PIPELINE TESTS
# ============================================================

class TestZBPipeline:
    """Tests for retry, classification and transport failures."""

    @pytest.mark.asyncio
    async def test_throttled_request_is_retried_with_fresh_nonce(self, zb, transport, zb_markets, clock):
        transport.add_response("/getAccountInfo?", {"code": 4002, "message": "Request too often"})
        transport.add_response("/getAccountInfo?", {"result": {"coins": []}})

        await zb.fetch_balance()

        requests = transport.requests_matching("/getAccountInfo?")
        assert len(requests) == 2
        assert requests[0].url != requests[1].url
        assert clock.sleeps == [1.0]
        assert zb.metrics.get_summary()["retries"] == 1

    @pytest.mark.asyncio
    async def test_retries_exhausted(self, zb, transport, zb_markets, clock):
        transport.add_response("/getAccountInfo?", {"code": 4002, "message": "Request too often"})

        with pytest.raises(DDoSProtection):
            await zb.fetch_balance()

        assert len(transport.requests_matching("/getAccountInfo?")) == 3
        assert clock.sleeps == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_server_error_is_not_available(self, zb, transport, zb_markets):
        transport.add_response("/v1/ticker?", "<html>Bad Gateway</html>", status=502)

        with pytest.raises(ExchangeNotAvailable):
            await zb.fetch_ticker("BTC/USDT")

    @pytest.mark.asyncio
    async def test_malformed_success_body(self, zb, transport, zb_markets):
        transport.add_response("/v1/ticker?", "<html>maintenance</html>")

        with pytest.raises(ExchangeError, match="Malformed response") as exc_info:
            await zb.fetch_ticker("BTC/USDT")

        assert type(exc_info.value) is ExchangeError

    @pytest.mark.asyncio
    async def test_network_error_is_not_reinterpreted(self, zb, transport, zb_markets):
        transport.add_exception("/v1/ticker?", NetworkError("connection reset"))

        with pytest.raises(NetworkError) as exc_info:
            await zb.fetch_ticker("BTC/USDT")

        assert exc_info.value.exchange_id == "zb"
        assert len(transport.requests_matching("/v1/ticker?")) == 1

    @pytest.mark.asyncio
    async def test_rate_limit_spaces_requests(self, build, transport, zb_markets, clock):
        zb = build(ZBAdapter, enable_rate_limit=True)
        transport.add_response("/v1/ticker?", {"ticker": {"last": "1"}})

        await zb.fetch_ticker("BTC/USDT")
        await zb.fetch_ticker("BTC/USDT")

        # markets + two tickers, 1000 ms apart
        assert clock.sleeps == [1.0, 1.0]
        assert zb.metrics.get_summary()["throttle"]["waits"] == 2

    @pytest.mark.asyncio
    async def test_metrics_recorded(self, zb, transport, zb_markets):
        transport.add_response("/v1/ticker?", {"ticker": {"last": "1"}})
        transport.add_response("/getOrder?", {"code": 3001, "message": "not found"})

        await zb.fetch_ticker("BTC/USDT")
        with pytest.raises(OrderNotFound):
            await zb.fetch_order("1", "BTC/USDT")

        summary = zb.metrics.get_summary()
        assert summary["requests"]["success"] == 2
        assert summary["requests"]["failure"] == 1
        assert summary["errors"] == {"ORDER_NOT_FOUND": 1}
        assert set(summary["latency_by_endpoint"]) == {"markets", "ticker", "order"}

    @pytest.mark.asyncio
    async def test_close_closes_transport(self, zb, transport):
        async with zb:
            pass

        assert transport.closed
