"""
Exchange Gateway - Liqui-family Adapter.

============================================================
PURPOSE
============================================================
One adapter for every exchange speaking the Liqui wire protocol
(yobit, tidex). Per-exchange differences live in descriptions,
not subclasses:

- currency rename tables
- error message tables
- order status tables
- capabilities and options (ticker chunk size, whether open
  orders need a symbol, public URL version segment)

PROTOCOL:
- Public: GET <base>[/3]/<method>/<pair>[-<pair>...]
- Private: POST form body signed with HMAC-SHA512, nonce in seconds
- Failures: {"success": 0, "error": "<message>"} under HTTP 200

============================================================
"""

import logging
from typing import Any, Dict, List, Optional

from ..classifier import SuccessFlagClassifier
from ..config import (
    BASE_DESCRIPTION,
    AdapterConfig,
    Endpoint,
    ExchangeDescription,
    merge_description,
)
from ..errors import (
    ArgumentsRequired,
    AuthenticationError,
    DDoSProtection,
    ExchangeError,
    ExchangeNotAvailable,
    InsufficientFunds,
    InvalidOrder,
    OrderNotFound,
)
from ..normalizer import (
    build_balance,
    build_currency,
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
from ..signing import LiquiSigner
from ..transport import Transport
from ..types import (
    Balance,
    Currency,
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
# SHARED DESCRIPTION
# ============================================================

# Message tables used by exchanges that keep Liqui's own wording
LIQUI_EXCEPTIONS = {
    "Invalid pair name": ExchangeError,
    "invalid api key": AuthenticationError,
    "invalid sign": AuthenticationError,
    "api key dont have trade permission": AuthenticationError,
    "invalid parameter": InvalidOrder,
    "invalid order": InvalidOrder,
    "Requests too often": DDoSProtection,
    "not available": ExchangeNotAvailable,
    "data unavailable": ExchangeNotAvailable,
    "external service unavailable": ExchangeNotAvailable,
    "order not found": OrderNotFound,
}

LIQUI_BROAD_EXCEPTIONS = {
    "Insufficient funds": InsufficientFunds,
    "Not enougth": InsufficientFunds,  # sic
}

LIQUI_OVERRIDES: Dict[str, Any] = {
    "version": "3",
    "has": {
        "fetch_tickers": True,
        "create_market_order": False,
        "fetch_order": True,
        "fetch_open_orders": True,
        "fetch_my_trades": True,
    },
    "endpoints": {
        "info": Endpoint("public", "GET", "info"),
        "depth": Endpoint("public", "GET", "depth/{pair}"),
        "ticker": Endpoint("public", "GET", "ticker/{pair}"),
        "trades": Endpoint("public", "GET", "trades/{pair}"),
        "balance": Endpoint("private", "POST", "getInfo"),
        "create_order": Endpoint("private", "POST", "Trade"),
        "cancel_order": Endpoint("private", "POST", "CancelOrder"),
        "order": Endpoint("private", "POST", "OrderInfo"),
        "open_orders": Endpoint("private", "POST", "ActiveOrders"),
        "my_trades": Endpoint("private", "POST", "TradeHistory"),
    },
    "order_statuses": {
        "0": "open",
        "1": "closed",
        "2": "canceled",
        "3": "canceled",  # canceled after partial fill
    },
    "options": {
        "nonce_resolution": "s",
        "version_in_url": True,
        "tickers_chunk_size": None,
        "tickers_max_url_length": 2048,
        "fetch_orders_requires_symbol": False,
    },
}

LIQUI_DESCRIPTION = merge_description(BASE_DESCRIPTION, LIQUI_OVERRIDES)


def liqui_description(override: Dict[str, Any]) -> ExchangeDescription:
    """Family description with one exchange's override applied."""
    return merge_description(LIQUI_DESCRIPTION, override)


# ============================================================
# LIQUI ADAPTER
# ============================================================

class LiquiAdapter(ExchangeAdapter):
    """
    Adapter for the Liqui wire protocol.
    """

    REQUIRED_ENDPOINTS = {
        "fetch_markets": ["info"],
        "fetch_currencies": ["currencies"],
        "fetch_ticker": ["ticker"],
        "fetch_tickers": ["ticker"],
        "fetch_order_book": ["depth"],
        "fetch_trades": ["trades"],
        "fetch_balance": ["balance"],
        "create_order": ["create_order"],
        "cancel_order": ["cancel_order"],
        "fetch_order": ["order"],
        "fetch_open_orders": ["open_orders"],
        "fetch_my_trades": ["my_trades"],
        "fetch_deposit_address": ["deposit_address"],
        "create_deposit_address": ["deposit_address"],
        "withdraw": ["withdraw"],
    }

    def __init__(
        self,
        description: ExchangeDescription,
        config: Optional[AdapterConfig] = None,
        transport: Optional[Transport] = None,
        **kwargs,
    ):
        super().__init__(description, config, transport, **kwargs)

    def _create_signer(self) -> LiquiSigner:
        return LiquiSigner(
            self.id,
            self.description.urls["api"],
            self.description.version,
            api_key=self.config.api_key,
            api_secret=self.config.api_secret,
            nonce=self.nonce,
            version_in_url=self.options.get("version_in_url", True),
        )

    def _create_classifier(self) -> SuccessFlagClassifier:
        return SuccessFlagClassifier(
            self.id,
            exceptions=self.description.exceptions,
            broad_exceptions=self.description.broad_exceptions,
        )

    # --------------------------------------------------------
    # MARKET DATA
    # --------------------------------------------------------

    async def fetch_markets(self) -> List[Market]:
        response = await self.request("info")
        result = []
        for market_id, raw in (response.get("pairs") or {}).items():
            base_id, quote_id = market_id.split("_")
            base = self.common_currency_code(base_id.upper())
            quote = self.common_currency_code(quote_id.upper())
            digits = safe_integer(raw, "decimal_places")
            result.append(Market(
                id=market_id,
                symbol=f"{base}/{quote}",
                base=base,
                quote=quote,
                base_id=base_id,
                quote_id=quote_id,
                active=safe_integer(raw, "hidden", 0) == 0,
                precision=Precision(amount=digits, price=digits),
                limits=MarketLimits(
                    amount=MinMax(
                        min=safe_float(raw, "min_amount"),
                        max=safe_float(raw, "max_amount"),
                    ),
                    price=MinMax(
                        min=safe_float(raw, "min_price"),
                        max=safe_float(raw, "max_price"),
                    ),
                    cost=MinMax(min=safe_float(raw, "min_total")),
                ),
                info=raw,
            ))
        return result

    def parse_ticker(self, ticker: Dict[str, Any], symbol: str) -> Ticker:
        updated = safe_integer(ticker, "updated")
        return build_ticker(
            symbol,
            timestamp=updated * 1000 if updated is not None else None,
            bid=ticker.get("buy"),
            ask=ticker.get("sell"),
            last=ticker.get("last"),
            high=ticker.get("high"),
            low=ticker.get("low"),
            base_volume=ticker.get("vol_cur"),
            quote_volume=ticker.get("vol"),
            info=ticker,
        )

    async def fetch_ticker(self, symbol, params=None) -> Ticker:
        await self.load_markets()
        market = self.market(symbol)
        response = await self.request("ticker", {"pair": market.id, **(params or {})})
        if market.id not in response:
            raise ExchangeError(
                f"no ticker for {symbol}",
                exchange_id=self.id,
                raw_response=response,
            )
        return self.parse_ticker(response[market.id], symbol)

    def _ticker_chunks(self, ids: List[str]) -> List[List[str]]:
        size = self.options.get("tickers_chunk_size")
        if size:
            return [ids[i:i + size] for i in range(0, len(ids), size)]

        max_length = self.options.get("tickers_max_url_length")
        if max_length and len("-".join(ids)) > max_length:
            raise ArgumentsRequired(
                f"has {len(ids)} markets exceeding max URL length for this endpoint, "
                f"pass a list of symbols to fetch_tickers",
                exchange_id=self.id,
                context={"markets": len(ids), "max_url_length": max_length},
            )
        return [ids]

    async def fetch_tickers(self, symbols=None, params=None) -> Dict[str, Ticker]:
        await self.load_markets()
        if symbols:
            ids = [self.market_id(s) for s in symbols]
        else:
            ids = self.markets_cache.ids

        result: Dict[str, Ticker] = {}
        for chunk in self._ticker_chunks(ids):
            response = await self.request("ticker", {"pair": "-".join(chunk), **(params or {})})
            for market_id, raw in response.items():
                market = self.markets_cache.market_by_id(market_id)
                symbol = market.symbol if market else market_id
                result[symbol] = self.parse_ticker(raw, symbol)
        return result

    async def fetch_order_book(self, symbol, limit=None, params=None) -> OrderBook:
        await self.load_markets()
        market = self.market(symbol)
        request: Dict[str, Any] = {"pair": market.id}
        if limit is not None:
            request["limit"] = limit
        response = await self.request("depth", {**request, **(params or {})})
        if market.id not in response:
            raise ExchangeError(
                f"{symbol} order book is empty or not available",
                exchange_id=self.id,
                raw_response=response,
            )
        book = response[market.id]
        return build_order_book(
            book.get("bids"),
            book.get("asks"),
            symbol=symbol,
            info=book,
        )

    def parse_trade(self, trade: Dict[str, Any], market: Optional[Market] = None) -> Trade:
        """Public and private trades share one parser."""
        timestamp = safe_integer(trade, "timestamp")
        side = trade.get("type")
        if side == "ask":
            side = "sell"
        elif side == "bid":
            side = "buy"

        price = safe_float(trade, "rate") if "rate" in trade else safe_float(trade, "price")
        trade_id = safe_string(trade, "trade_id") if "trade_id" in trade else safe_string(trade, "tid")

        if "pair" in trade:
            market = self.markets_cache.market_by_id(trade["pair"]) or market

        return build_trade(
            id=trade_id,
            timestamp=timestamp * 1000 if timestamp is not None else None,
            symbol=market.symbol if market else None,
            side=side,
            price=price,
            amount=trade.get("amount"),
            info=trade,
        )

    async def fetch_trades(self, symbol, since=None, limit=None, params=None) -> List[Trade]:
        await self.load_markets()
        market = self.market(symbol)
        request: Dict[str, Any] = {"pair": market.id}
        if limit is not None:
            request["limit"] = limit
        response = await self.request("trades", {**request, **(params or {})})
        trades = [self.parse_trade(t, market) for t in response.get(market.id) or []]
        trades.sort(key=lambda t: t.timestamp or 0)
        return filter_by_since_limit(trades, since, limit)

    # --------------------------------------------------------
    # ACCOUNT
    # --------------------------------------------------------

    async def fetch_balance(self, params=None) -> Balance:
        """
        free from `funds`, total from `funds_incl_orders`; used derived.
        """
        await self.load_markets()
        response = await self.request("balance", params)
        balances = response.get("return") or {}

        accounts: Dict[str, Dict[str, Any]] = {}
        for key, side in (("free", "funds"), ("total", "funds_incl_orders")):
            for native, value in (balances.get(side) or {}).items():
                code = self.common_currency_code(native.upper())
                accounts.setdefault(code, {})[key] = value

        # Without funds_incl_orders, no open orders means nothing is locked
        if "funds_incl_orders" not in balances and balances.get("open_orders") == 0:
            for account in accounts.values():
                account["total"] = account.get("free")
                account["used"] = 0.0

        return build_balance(accounts, info=balances)

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
        market = self.market(symbol)
        request = {
            "pair": market.id,
            "type": side,
            "amount": self.amount_to_precision(symbol, amount),
            "rate": self.price_to_precision(symbol, price),
        }
        response = await self.request("create_order", {**request, **(params or {})})
        result = response.get("return") or {}

        order_id = safe_string(result, "order_id")
        status = OrderStatus.OPEN
        # order_id 0 means it filled immediately
        if order_id == "0":
            order_id = safe_string(result, "init_order_id")
            status = OrderStatus.CLOSED

        filled = safe_float(result, "received")
        return build_order(
            id=order_id,
            timestamp=self.milliseconds(),
            symbol=symbol,
            side=side,
            type="limit",
            price=price,
            amount=amount,
            filled=filled,
            remaining=safe_float(result, "remains"),
            cost=price * filled if filled is not None else None,
            status=status,
            info=response,
        )

    def _order_id(self, id) -> int:
        try:
            return int(id)
        except (TypeError, ValueError):
            raise InvalidOrder(
                f"order id must be numeric, got {id!r}",
                exchange_id=self.id,
                context={"id": id},
            )

    async def cancel_order(self, id, symbol=None, params=None) -> Order:
        order_id = self._order_id(id)
        await self.load_markets()
        response = await self.request("cancel_order", {"order_id": order_id, **(params or {})})
        return build_order(id=id, symbol=symbol, status=OrderStatus.CANCELED, info=response)

    def parse_order(self, order: Dict[str, Any], market: Optional[Market] = None) -> Order:
        created = safe_integer(order, "timestamp_created")
        if "pair" in order:
            market = self.markets_cache.market_by_id(order["pair"]) or market

        price = safe_float(order, "rate")
        remaining = safe_float(order, "amount")
        amount = safe_float(order, "start_amount")
        filled = amount - remaining if amount is not None and remaining is not None else None

        return build_order(
            id=safe_string(order, "id"),
            timestamp=created * 1000 if created is not None else None,
            symbol=market.symbol if market else None,
            side=order.get("type"),
            type="limit",
            price=price,
            amount=amount,
            filled=filled,
            remaining=remaining,
            cost=price * filled if price is not None and filled is not None else None,
            status=parse_order_status(
                safe_value(order, "status"),
                self.description.order_statuses,
                self.id,
            ),
            info=order,
        )

    async def fetch_order(self, id, symbol=None, params=None) -> Order:
        order_id = self._order_id(id)
        await self.load_markets()
        response = await self.request("order", {"order_id": order_id, **(params or {})})
        orders = response.get("return") or {}
        if str(id) not in orders:
            raise OrderNotFound(
                f"order {id} not found",
                exchange_id=self.id,
                raw_response=response,
            )
        return self.parse_order({"id": str(id), **orders[str(id)]})

    async def fetch_open_orders(self, symbol=None, since=None, limit=None, params=None) -> List[Order]:
        if symbol is None and self.options.get("fetch_orders_requires_symbol"):
            raise ArgumentsRequired(
                "fetch_open_orders requires a symbol",
                exchange_id=self.id,
                context={"symbol": symbol},
            )
        await self.load_markets()
        request: Dict[str, Any] = {}
        market = None
        if symbol is not None:
            market = self.market(symbol)
            request["pair"] = market.id

        response = await self.request("open_orders", {**request, **(params or {})})
        raw_orders = response.get("return") or {}
        orders = [
            self.parse_order({"id": order_id, **raw}, market)
            for order_id, raw in raw_orders.items()
        ]
        return filter_by_since_limit(orders, since, limit)

    async def fetch_my_trades(self, symbol=None, since=None, limit=None, params=None) -> List[Trade]:
        await self.load_markets()
        request: Dict[str, Any] = {}
        market = None
        if symbol is not None:
            market = self.market(symbol)
            request["pair"] = market.id
        if limit is not None:
            request["count"] = limit
        if since is not None:
            request["since"] = int(since / 1000)

        response = await self.request("my_trades", {**request, **(params or {})})
        raw_trades = response.get("return") or {}
        trades = [
            self.parse_trade({"trade_id": trade_id, **raw}, market)
            for trade_id, raw in raw_trades.items()
        ]
        trades.sort(key=lambda t: t.timestamp or 0)
        return filter_by_since_limit(trades, since, limit)

    # --------------------------------------------------------
    # CURRENCIES AND FUNDING (capability gated)
    # --------------------------------------------------------

    async def fetch_currencies(self) -> List[Currency]:
        """Currency metadata from the web API `currency` listing."""
        if not self.has("fetch_currencies"):
            raise self._not_supported("fetch_currencies")

        response = await self.request("currencies")
        result = []
        for raw in response or []:
            currency_id = raw["symbol"]
            digits = safe_integer(raw, "amountPoint")
            step = 10.0 ** digits if digits is not None else None
            result.append(build_currency(
                id=currency_id,
                code=self.common_currency_code(currency_id.upper()),
                name=raw.get("name"),
                status="ok" if raw.get("visible") is True else "disabled",
                precision=digits,
                withdraw_active=raw.get("withdrawEnable") is True,
                deposit_active=raw.get("depositEnable") is True,
                withdraw_fee=raw.get("withdrawFee"),
                deposit_fee=0.0,
                limits={
                    "amount": {"max": step},
                    "price": {"min": 1 / step if step else None, "max": step},
                    "withdraw": {"min": raw.get("withdrawMinAmout")},  # sic
                    "deposit": {"min": raw.get("depositMinAmount")},
                },
                info=raw,
            ))
        return result

    async def fetch_deposit_address(self, code, params=None) -> DepositAddress:
        if not self.has("fetch_deposit_address"):
            raise self._not_supported("fetch_deposit_address")

        await self.load_markets()
        request = {"coinName": self.currency_id(code), "need_new": 0}
        response = await self.request("deposit_address", {**request, **(params or {})})
        address = safe_string(response.get("return"), "address")
        self.check_address(address)
        return DepositAddress(currency=code, address=address, status="ok", info=response)

    async def create_deposit_address(self, code, params=None) -> DepositAddress:
        if not self.has("create_deposit_address"):
            raise self._not_supported("create_deposit_address")
        return await self.fetch_deposit_address(code, {**(params or {}), "need_new": 1})

    async def withdraw(self, code, amount, address, tag=None, params=None) -> Transaction:
        if not self.has("withdraw"):
            raise self._not_supported("withdraw")

        self.check_address(address)
        await self.load_markets()
        request = {
            "coinName": self.currency_id(code),
            "amount": amount,
            "address": address,
        }
        response = await self.request("withdraw", {**request, **(params or {})})
        return Transaction(
            id=None,
            currency=code,
            amount=amount,
            address=address,
            info=response,
        )
