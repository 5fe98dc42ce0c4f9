"""
Exchange Gateway - ZB Adapter.

============================================================
PURPOSE
============================================================
Adapter for the ZB REST API (api.zb.com / trade.zb.com).

PROTOCOL:
- Errors reported as {"code": "<n>", "message": ...}; 1000 is success
- Private calls signed into the URL query (SHA1 + HMAC-MD5)
- Limit orders only
- Nonce (reqTime) in milliseconds

============================================================
"""

import logging
from typing import Any, Dict, List, Optional

from ..config import BASE_DESCRIPTION, AdapterConfig, Endpoint, merge_description
from ..errors import (
    ArgumentsRequired,
    AuthenticationError,
    DDoSProtection,
    ExchangeError,
    ExchangeNotAvailable,
    InsufficientFunds,
    InvalidOrder,
    NotSupported,
    OrderNotFound,
)
from ..normalizer import (
    build_balance,
    build_order,
    build_order_book,
    build_ticker,
    build_trade,
    parse_order_status,
    safe_float,
    safe_integer,
    safe_string,
    safe_value,
)
from ..signing import ZBSigner
from ..transport import Transport
from ..types import (
    Balance,
    DepositAddress,
    Market,
    MarketLimits,
    MinMax,
    Order,
    OrderBook,
    OrderStatus,
    Precision,
    Ticker,
    Trade,
    Transaction,
)
from .base import ExchangeAdapter, filter_by_since_limit


logger = logging.getLogger(__name__)


# ============================================================
# DESCRIPTION
# ============================================================

ZB_OVERRIDES: Dict[str, Any] = {
    "id": "zb",
    "name": "ZB",
    "countries": ["CN"],
    "version": "v1",
    "rate_limit": 1000,
    "has": {
        "fetch_ohlcv": True,
        "fetch_tickers": True,
        "create_market_order": False,
        "fetch_order": True,
        "fetch_orders": True,
        "fetch_open_orders": True,
        "fetch_deposit_address": True,
        "withdraw": True,
    },
    "urls": {
        "api": {
            "public": "http://api.zb.com/data",
            "private": "https://trade.zb.com/api",
        },
        "www": "https://trade.zb.com/api",
        "doc": "https://www.zb.com/i/developer",
        "fees": "https://www.zb.com/i/rate",
    },
    "endpoints": {
        "markets": Endpoint("public", "GET", "markets"),
        "ticker": Endpoint("public", "GET", "ticker"),
        "depth": Endpoint("public", "GET", "depth"),
        "trades": Endpoint("public", "GET", "trades"),
        "kline": Endpoint("public", "GET", "kline"),
        "balance": Endpoint("private", "GET", "getAccountInfo"),
        "create_order": Endpoint("private", "GET", "order"),
        "cancel_order": Endpoint("private", "GET", "cancelOrder"),
        "order": Endpoint("private", "GET", "getOrder"),
        "orders": Endpoint("private", "GET", "getOrdersIgnoreTradeType"),
        "open_orders": Endpoint("private", "GET", "getUnfinishedOrdersIgnoreTradeType"),
        "orders_by_type": Endpoint("private", "GET", "getOrdersNew"),
        "deposit_address": Endpoint("private", "GET", "getUserAddress"),
        "withdraw": Endpoint("private", "GET", "withdraw"),
    },
    "timeframes": {
        "1m": "1min",
        "3m": "3min",
        "5m": "5min",
        "15m": "15min",
        "30m": "30min",
        "1h": "1hour",
        "2h": "2hour",
        "4h": "4hour",
        "6h": "6hour",
        "12h": "12hour",
        "1d": "1day",
        "3d": "3day",
        "1w": "1week",
    },
    "exceptions": {
        "1001": ExchangeError,           # General error message
        "1002": ExchangeError,           # Internal error
        "1003": AuthenticationError,     # Verification does not pass
        "1004": AuthenticationError,     # Funding security password lock
        "1005": AuthenticationError,     # Funds security password incorrect
        "1006": AuthenticationError,     # Real-name certification pending
        "1009": ExchangeNotAvailable,    # Interface under maintenance
        "2001": InsufficientFunds,       # Insufficient CNY balance
        "2002": InsufficientFunds,       # Insufficient BTC balance
        "2003": InsufficientFunds,       # Insufficient LTC balance
        "2005": InsufficientFunds,       # Insufficient ETH balance
        "2006": InsufficientFunds,       # Insufficient ETC balance
        "2007": InsufficientFunds,       # Insufficient BTS balance
        "2009": InsufficientFunds,       # Account balance is not enough
        "3001": OrderNotFound,           # Pending orders not found
        "3002": InvalidOrder,            # Invalid price
        "3003": InvalidOrder,            # Invalid amount
        "3004": AuthenticationError,     # User does not exist
        "3005": ExchangeError,           # Invalid parameter
        "3006": AuthenticationError,     # Invalid or unbound IP
        "3007": AuthenticationError,     # Request time has expired
        "3008": OrderNotFound,           # Transaction records not found
        "4001": ExchangeNotAvailable,    # API locked or not enabled
        "4002": DDoSProtection,          # Request too often
    },
    "order_statuses": {
        "0": "open",
        "1": "canceled",
        "2": "closed",
        "3": "open",  # partially filled
    },
    "fees": {
        "trading": {
            "maker": 0.002,
            "taker": 0.002,
        },
        "funding": {
            "withdraw": {
                "BTC": 0.0001,
                "BCH": 0.0006,
                "LTC": 0.005,
                "ETH": 0.01,
                "ETC": 0.01,
                "BTS": 3,
                "EOS": 1,
                "QTUM": 0.01,
                "HSR": 0.001,
                "XRP": 0.1,
                "USDT": "0.1%",
                "QCASH": 5,
                "DASH": 0.002,
                "BCD": 0,
                "UBTC": 0,
                "SBTC": 0,
                "INK": 20,
                "TV": 0.1,
                "BTH": 0,
                "BCX": 0,
                "LBTC": 0,
                "CHAT": 20,
                "bitCNY": 20,
                "HLC": 20,
                "BTP": 0,
                "BCW": 0,
            },
        },
    },
    "options": {
        "nonce_resolution": "ms",
        "ohlcv_limit": 1000,
        "orders_limit": 50,
        "open_orders_limit": 10,
    },
}

ZB_DESCRIPTION = merge_description(BASE_DESCRIPTION, ZB_OVERRIDES)


# ============================================================
# ZB ADAPTER
# ============================================================

class ZBAdapter(ExchangeAdapter):
    """
    ZB exchange adapter.
    """

    REQUIRED_ENDPOINTS = {
        "fetch_markets": ["markets"],
        "fetch_ticker": ["ticker"],
        "fetch_order_book": ["depth"],
        "fetch_trades": ["trades"],
        "fetch_ohlcv": ["kline"],
        "fetch_balance": ["balance"],
        "create_order": ["create_order"],
        "cancel_order": ["cancel_order"],
        "fetch_order": ["order"],
        "fetch_orders": ["orders", "orders_by_type"],
        "fetch_open_orders": ["open_orders", "orders_by_type"],
        "fetch_deposit_address": ["deposit_address"],
        "withdraw": ["withdraw"],
    }

    def __init__(
        self,
        config: Optional[AdapterConfig] = None,
        transport: Optional[Transport] = None,
        description=None,
        **kwargs,
    ):
        super().__init__(description or ZB_DESCRIPTION, config, transport, **kwargs)

    def _create_signer(self) -> ZBSigner:
        return ZBSigner(
            self.id,
            self.description.urls["api"],
            self.description.version,
            api_key=self.config.api_key,
            api_secret=self.config.api_secret,
            nonce=self.nonce,
        )

    # --------------------------------------------------------
    # MARKET DATA
    # --------------------------------------------------------

    async def fetch_markets(self) -> List[Market]:
        response = await self.request("markets")
        result = []
        for market_id, raw in response.items():
            base_id, quote_id = market_id.split("_")
            base = self.common_currency_code(base_id.upper())
            quote = self.common_currency_code(quote_id.upper())
            amount_digits = safe_integer(raw, "amountScale")
            price_digits = safe_integer(raw, "priceScale")
            result.append(Market(
                id=market_id,
                symbol=f"{base}/{quote}",
                base=base,
                quote=quote,
                base_id=base_id,
                quote_id=quote_id,
                active=True,
                precision=Precision(amount=amount_digits, price=price_digits),
                limits=MarketLimits(
                    amount=MinMax(min=10 ** -amount_digits if amount_digits is not None else None),
                    price=MinMax(min=10 ** -price_digits if price_digits is not None else None),
                    cost=MinMax(min=0.0),
                ),
                info=raw,
            ))
        return result

    async def fetch_ticker(self, symbol, params=None) -> Ticker:
        await self.load_markets()
        market = self.market(symbol)
        response = await self.request("ticker", {"market": market.id, **(params or {})})
        ticker = response["ticker"]
        return build_ticker(
            symbol,
            timestamp=self.milliseconds(),
            bid=ticker.get("buy"),
            ask=ticker.get("sell"),
            last=ticker.get("last"),
            high=ticker.get("high"),
            low=ticker.get("low"),
            base_volume=ticker.get("vol"),
            info=ticker,
        )

    async def fetch_tickers(self, symbols=None, params=None) -> Dict[str, Ticker]:
        """
        One ticker request per cached market.

        Each request is individually retried by the retry policy.
        """
        await self.load_markets()
        wanted = symbols or self.symbols
        result = {}
        for symbol in wanted:
            result[symbol] = await self.fetch_ticker(symbol, params)
        return result

    async def fetch_order_book(self, symbol, limit=None, params=None) -> OrderBook:
        await self.load_markets()
        market = self.market(symbol)
        request: Dict[str, Any] = {"market": market.id}
        if limit is not None:
            request["size"] = limit
        response = await self.request("depth", {**request, **(params or {})})
        return build_order_book(
            response.get("bids"),
            response.get("asks"),
            symbol=symbol,
            timestamp=self.milliseconds(),
            info=response,
        )

    def parse_trade(self, trade: Dict[str, Any], market: Market) -> Trade:
        date = safe_integer(trade, "date")
        return build_trade(
            id=safe_string(trade, "tid"),
            timestamp=date * 1000 if date is not None else None,
            symbol=market.symbol,
            side="buy" if trade.get("trade_type") == "bid" else "sell",
            price=trade.get("price"),
            amount=trade.get("amount"),
            info=trade,
        )

    async def fetch_trades(self, symbol, since=None, limit=None, params=None) -> List[Trade]:
        await self.load_markets()
        market = self.market(symbol)
        response = await self.request("trades", {"market": market.id, **(params or {})})
        trades = [self.parse_trade(t, market) for t in response]
        return filter_by_since_limit(trades, since, limit)

    async def fetch_ohlcv(self, symbol, timeframe="1m", since=None, limit=None, params=None) -> List[List[float]]:
        await self.load_markets()
        market = self.market(symbol)
        if timeframe not in self.description.timeframes:
            raise NotSupported(
                f"unsupported timeframe {timeframe}",
                exchange_id=self.id,
                context={"timeframe": timeframe},
            )
        if limit is None:
            limit = self.options["ohlcv_limit"]
        request: Dict[str, Any] = {
            "market": market.id,
            "type": self.description.timeframes[timeframe],
            "limit": limit,
        }
        if since is not None:
            request["since"] = since
        response = await self.request("kline", {**request, **(params or {})})

        rows = []
        for row in response.get("data") or []:
            rows.append([int(row[0])] + [float(v) for v in row[1:6]])
        if since is not None:
            rows = [r for r in rows if r[0] >= since]
        return rows[:limit]

    # --------------------------------------------------------
    # ACCOUNT
    # --------------------------------------------------------

    async def fetch_balance(self, params=None) -> Balance:
        await self.load_markets()
        response = await self.request("balance", params)
        coins = response["result"]["coins"]

        by_id = {c.id: c.code for c in self.currencies.values()}
        accounts: Dict[str, Dict[str, Any]] = {}
        for coin in coins:
            key = coin.get("key")
            if key in by_id:
                code = by_id[key]
            else:
                code = self.common_currency_code(coin.get("enName") or key)
            free = safe_float(coin, "available")
            used = safe_float(coin, "freez")
            total = free + used if free is not None and used is not None else None
            accounts[code.upper()] = {"free": free, "used": used, "total": total}

        return build_balance(accounts, info=response)

    async def fetch_deposit_address(self, code, params=None) -> DepositAddress:
        response = await self.request(
            "deposit_address",
            {"currency": code.lower(), **(params or {})},
        )
        message = response.get("message")
        if isinstance(message, dict) and message.get("des") == "success":
            address = safe_string(message.get("datas"), "key")
            self.check_address(address)
            return DepositAddress(currency=code, address=address, status="ok", info=response)

        raise ExchangeError(
            "fetch_deposit_address failed",
            exchange_id=self.id,
            raw_response=response,
        )

    def withdraw_fee(self, code: str, amount: float) -> float:
        fee = self.description.fees.get("funding", {}).get("withdraw", {}).get(code)
        if fee is None:
            return 0.0
        if isinstance(fee, str) and fee.endswith("%"):
            return amount * float(fee[:-1]) / 100
        return float(fee)

    async def withdraw(self, code, amount, address, tag=None, params=None) -> Transaction:
        self.check_address(address)
        if not self.config.password:
            raise ArgumentsRequired(
                "withdraw requires a funds password (config.password)",
                exchange_id=self.id,
                context={"currency": code},
            )
        await self.load_markets()
        currency = self.currency(code)
        request = {
            "amount": amount,
            "currency": currency.id.lower(),
            "fees": self.withdraw_fee(code, amount),
            "itransfer": 0,
            "receiveAddr": address,
            "safePwd": self.config.password,
        }
        response = await self.request("withdraw", {**request, **(params or {})})
        return Transaction(
            id=safe_string(response, "id"),
            currency=code,
            amount=amount,
            address=address,
            info=response,
        )

    # --------------------------------------------------------
    # TRADING
    # --------------------------------------------------------

    async def create_order(self, symbol, type, side, amount, price=None, params=None) -> Order:
        if type != "limit":
            raise InvalidOrder(
                "allows limit orders only",
                exchange_id=self.id,
                context={"symbol": symbol, "type": type},
            )
        self.check_order_side(symbol, side)
        if price is None:
            raise ArgumentsRequired(
                "create_order requires a price",
                exchange_id=self.id,
                context={"symbol": symbol, "type": type, "side": side},
            )

        await self.load_markets()
        request = {
            "price": self.price_to_precision(symbol, price),
            "amount": self.amount_to_precision(symbol, amount),
            "tradeType": "1" if side == "buy" else "0",
            "currency": self.market_id(symbol),
        }
        response = await self.request("create_order", {**request, **(params or {})})
        return build_order(
            id=safe_string(response, "id"),
            timestamp=self.milliseconds(),
            symbol=symbol,
            side=side,
            type="limit",
            price=price,
            amount=amount,
            status=OrderStatus.OPEN,
            info=response,
        )

    async def cancel_order(self, id, symbol=None, params=None) -> Order:
        if symbol is None:
            raise ArgumentsRequired(
                "cancel_order requires a symbol",
                exchange_id=self.id,
                context={"id": id},
            )
        await self.load_markets()
        request = {"id": str(id), "currency": self.market_id(symbol)}
        response = await self.request("cancel_order", {**request, **(params or {})})
        return build_order(id=id, symbol=symbol, status=OrderStatus.CANCELED, info=response)

    def parse_order(self, order: Dict[str, Any], market: Optional[Market] = None) -> Order:
        if "currency" in order:
            market = self.markets_cache.market_by_id(order["currency"]) or market
        return build_order(
            id=safe_string(order, "id"),
            timestamp=safe_integer(order, "trade_date"),
            symbol=market.symbol if market else None,
            side="buy" if safe_integer(order, "type") == 1 else "sell",
            type="limit",
            price=order.get("price"),
            average=order.get("trade_price"),
            amount=order.get("total_amount"),
            filled=order.get("trade_amount"),
            cost=order.get("trade_money"),
            status=parse_order_status(
                safe_value(order, "status"),
                self.description.order_statuses,
                self.id,
            ),
            info=order,
        )

    async def fetch_order(self, id, symbol=None, params=None) -> Order:
        if symbol is None:
            raise ArgumentsRequired(
                "fetch_order requires a symbol",
                exchange_id=self.id,
                context={"id": id},
            )
        await self.load_markets()
        request = {"id": str(id), "currency": self.market_id(symbol)}
        response = await self.request("order", {**request, **(params or {})})
        return self.parse_order(response, self.market(symbol))

    async def _fetch_order_list(self, default_key, operation, symbol, since, limit, params) -> List[Order]:
        if symbol is None:
            raise ArgumentsRequired(
                f"{operation} requires a symbol",
                exchange_id=self.id,
                context={"operation": operation, "symbol": symbol},
            )
        params = dict(params or {})
        await self.load_markets()
        market = self.market(symbol)
        request = {"currency": market.id, "pageIndex": 1, "pageSize": limit}
        key = "orders_by_type" if "tradeType" in params else default_key

        try:
            response = await self.request(key, {**request, **params})
        except OrderNotFound as e:
            # 3001 means no orders at all
            if e.exchange_code == "3001":
                return []
            raise

        orders = [self.parse_order(o, market) for o in response or []]
        return filter_by_since_limit(orders, since, None)

    async def fetch_orders(self, symbol=None, since=None, limit=None, params=None) -> List[Order]:
        if limit is None:
            limit = self.options["orders_limit"]
        return await self._fetch_order_list("orders", "fetch_orders", symbol, since, limit, params)

    async def fetch_open_orders(self, symbol=None, since=None, limit=None, params=None) -> List[Order]:
        if limit is None:
            limit = self.options["open_orders_limit"]
        return await self._fetch_order_list("open_orders", "fetch_open_orders", symbol, since, limit, params)
