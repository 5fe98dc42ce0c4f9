"""
Exchange Gateway - Exchange Adapter Base.

============================================================
PURPOSE
============================================================
Exchange-agnostic adapter contract and request pipeline.

An adapter composes strategy objects rather than inheriting
behavior:
    signer, mapper, classifier, limiter, retry policy,
    transport, market cache, logger, metrics

PIPELINE (request):
    sign -> throttle -> fetch -> classify -> parse JSON
Retryable failures re-enter at the signing step (fresh nonce).

Operations not offered by an exchange raise NotSupported.

============================================================
"""

import asyncio
import logging
import random
import time
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

from ..classifier import ErrorClassifier, parse_json
from ..config import AdapterConfig, Endpoint, ExchangeDescription
from ..currency import CurrencyCodeMapper
from ..errors import (
    BaseError,
    ExchangeError,
    InvalidAddress,
    InvalidOrder,
    NetworkError,
    NotSupported,
)
from ..logging_utils import AdapterLogger
from ..markets import MarketCache
from ..metrics import AdapterMetrics
from ..precision import round_to_string, truncate_to_string
from ..signing import NonceGenerator, RequestSigner
from ..throttle import RateLimiter, RetryPolicy
from ..transport import AiohttpTransport, Transport
from ..types import (
    Balance,
    Currency,
    DepositAddress,
    Market,
    Order,
    OrderBook,
    Ticker,
    Trade,
    Transaction,
)


logger = logging.getLogger(__name__)

HTTP_METHODS = ("GET", "POST", "PUT", "DELETE")


def filter_by_since_limit(items: List[Any], since: Optional[int] = None, limit: Optional[int] = None) -> List[Any]:
    """Keep items with timestamp >= since, then the first `limit`."""
    if since is not None:
        items = [i for i in items if i.timestamp is not None and i.timestamp >= since]
    if limit is not None:
        items = items[:limit]
    return items


class ExchangeAdapter(ABC):
    """
    Abstract exchange adapter.

    Subclasses provide the signer and classifier for their wire
    protocol and implement the operations their description's
    `has` table enables.
    """

    # operation -> endpoint keys it needs; checked at construction
    REQUIRED_ENDPOINTS: Dict[str, List[str]] = {}

    def __init__(
        self,
        description: ExchangeDescription,
        config: Optional[AdapterConfig] = None,
        transport: Optional[Transport] = None,
        *,
        clock: Callable[[], float] = time.time,
        monotonic: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ):
        """
        Args:
            description: Merged exchange description
            config: Credentials and tuning
            transport: HTTP transport (aiohttp by default)
            clock: Wall clock in seconds, for nonces and timestamps
            monotonic: Clock for rate limiting and latency
            sleep: Async sleep for the limiter and retry backoff
            rng: Random source for backoff jitter
        """
        self.description = description
        self.config = config or AdapterConfig()
        self.options: Dict[str, Any] = {**description.options, **self.config.options}
        self._clock = clock
        self._monotonic = monotonic

        self._endpoints = self._validate_endpoints(description)

        self.transport = transport or AiohttpTransport()
        self.mapper = CurrencyCodeMapper(
            description.common_currencies,
            description.currency_ids,
        )
        self.nonce = NonceGenerator(
            self.options.get("nonce_resolution", "ms"),
            clock=clock,
        )
        self.signer = self._create_signer()
        self.classifier = self._create_classifier()
        self.limiter = RateLimiter(
            self.config.rate_limit_ms if self.config.rate_limit_ms is not None else description.rate_limit,
            enabled=self.config.enable_rate_limit,
            clock=monotonic,
            sleep=sleep,
        )
        self.retry_policy = RetryPolicy(self.config.retry, sleep=sleep, rng=rng)
        self.markets_cache = MarketCache(
            description.id,
            self.mapper,
            self.fetch_markets,
            self.fetch_currencies if self.has("fetch_currencies") else None,
        )
        self.log = AdapterLogger(description.id)
        self.metrics = AdapterMetrics(description.id)

    # --------------------------------------------------------
    # IDENTITY
    # --------------------------------------------------------

    @property
    def id(self) -> str:
        return self.description.id

    @property
    def exchange_id(self) -> str:
        return self.description.id

    @property
    def name(self) -> str:
        return self.description.name

    def has(self, operation: str) -> bool:
        return bool(self.description.has.get(operation, False))

    def milliseconds(self) -> int:
        return int(self._clock() * 1000)

    # --------------------------------------------------------
    # STRATEGY HOOKS
    # --------------------------------------------------------

    @abstractmethod
    def _create_signer(self) -> RequestSigner:
        pass

    def _create_classifier(self) -> ErrorClassifier:
        return ErrorClassifier(
            self.id,
            exceptions=self.description.exceptions,
            broad_exceptions=self.description.broad_exceptions,
        )

    def _validate_endpoints(self, description: ExchangeDescription) -> Dict[str, Endpoint]:
        api_urls = description.urls.get("api", {})
        for key, endpoint in description.endpoints.items():
            if endpoint.api not in api_urls:
                raise ValueError(
                    f"{description.id}: endpoint '{key}' uses unknown api '{endpoint.api}'"
                )
            if endpoint.method not in HTTP_METHODS:
                raise ValueError(
                    f"{description.id}: endpoint '{key}' has bad method '{endpoint.method}'"
                )

        for operation, keys in self.REQUIRED_ENDPOINTS.items():
            if not description.has.get(operation):
                continue
            missing = [k for k in keys if k not in description.endpoints]
            if missing:
                raise ValueError(
                    f"{description.id}: operation '{operation}' needs endpoints {missing}"
                )
        return dict(description.endpoints)

    # --------------------------------------------------------
    # REQUEST PIPELINE
    # --------------------------------------------------------

    def endpoint(self, key: str) -> Endpoint:
        try:
            return self._endpoints[key]
        except KeyError:
            raise NotSupported(f"no endpoint '{key}'", exchange_id=self.id)

    async def request(self, endpoint_key: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        """
        Call one endpoint and return the decoded JSON payload.

        Raises:
            BaseError subclass classified from the response
        """
        endpoint = self.endpoint(endpoint_key)
        params = dict(params or {})

        async def attempt(number: int) -> Any:
            return await self._send(endpoint_key, endpoint, params, number)

        return await self.retry_policy.run(attempt, on_retry=self._on_retry)

    def _on_retry(self, error: BaseError, attempt: int, delay: float) -> None:
        self.metrics.record_retry()

    async def _send(self, key: str, endpoint: Endpoint, params: Dict[str, Any], attempt: int) -> Any:
        signed = self.signer.sign(endpoint.path, endpoint.api, endpoint.method, params)

        waited = await self.limiter.acquire()
        self.metrics.record_throttle_wait(waited)

        request_id = self.log.log_request(
            key,
            signed.method,
            signed.url,
            headers=signed.headers,
            params=params,
            body=signed.body,
            attempt=attempt,
        )
        started = self._monotonic()

        try:
            response = await self.transport.fetch(signed, self.config.timeout_seconds)
        except NetworkError as e:
            e.exchange_id = e.exchange_id or self.id
            self._record_failure(key, request_id, started, None, e)
            raise

        error = self.classifier.classify(response.body, response.status)
        if error is None:
            payload = parse_json(response.body)
            if payload is None:
                error = ExchangeError(
                    "Malformed response",
                    exchange_id=self.id,
                    http_status=response.status,
                    raw_response=response.body,
                )
        if error is not None:
            error.context.setdefault("endpoint", key)
            self._record_failure(key, request_id, started, response.status, error, response.body)
            raise error

        latency_ms = (self._monotonic() - started) * 1000.0
        self.log.log_response(key, request_id, response.status, latency_ms, True)
        self.metrics.record_request(key, latency_ms, True)
        return payload

    def _record_failure(self, key, request_id, started, status, error, body=None) -> None:
        latency_ms = (self._monotonic() - started) * 1000.0
        self.log.log_response(
            key, request_id, status, latency_ms, False,
            error=error, response_body=body,
        )
        self.metrics.record_request(key, latency_ms, False, error.category.value)

    # --------------------------------------------------------
    # MARKETS AND CURRENCIES
    # --------------------------------------------------------

    async def load_markets(self, reload: bool = False) -> Dict[str, Market]:
        return await self.markets_cache.load(reload=reload)

    @property
    def markets(self) -> Dict[str, Market]:
        return self.markets_cache.markets

    @property
    def symbols(self) -> List[str]:
        return self.markets_cache.symbols

    @property
    def currencies(self) -> Dict[str, Currency]:
        return self.markets_cache.currencies

    def market(self, symbol: str) -> Market:
        return self.markets_cache.market(symbol)

    def market_id(self, symbol: str) -> str:
        return self.markets_cache.market_id(symbol)

    def currency(self, code: str) -> Currency:
        return self.markets_cache.currency(code)

    def currency_id(self, code: str) -> str:
        return self.currency(code).id

    def common_currency_code(self, native: str) -> str:
        return self.mapper.to_canonical(native)

    def symbol_from_ids(self, base_id: str, quote_id: str) -> str:
        base = self.common_currency_code(base_id)
        quote = self.common_currency_code(quote_id)
        return f"{base}/{quote}"

    # --------------------------------------------------------
    # PRECISION AND VALIDATION
    # --------------------------------------------------------

    def price_to_precision(self, symbol: str, price: float) -> str:
        return round_to_string(price, self.market(symbol).precision.price)

    def amount_to_precision(self, symbol: str, amount: float) -> str:
        return truncate_to_string(amount, self.market(symbol).precision.amount)

    def check_address(self, address: Optional[str]) -> str:
        """
        Raises:
            InvalidAddress: Empty, too short or containing whitespace
        """
        min_length = self.options.get("min_funding_address_length", 1)
        if (
            not address
            or len(address) < min_length
            or any(ch.isspace() for ch in address)
        ):
            raise InvalidAddress(
                f"address is invalid or has less than {min_length} characters: {address!r}",
                exchange_id=self.id,
                context={"address": address},
            )
        return address

    def check_order_side(self, symbol: str, side: str) -> str:
        """
        Raises:
            InvalidOrder: Side is not "buy" or "sell"
        """
        if side not in ("buy", "sell"):
            raise InvalidOrder(
                f"invalid order side {side!r}, expected 'buy' or 'sell'",
                exchange_id=self.id,
                context={"symbol": symbol, "side": side},
            )
        return side

    def _not_supported(self, operation: str) -> NotSupported:
        return NotSupported(f"{operation}() not supported", exchange_id=self.id)

    # --------------------------------------------------------
    # MARKET DATA
    # --------------------------------------------------------

    @abstractmethod
    async def fetch_markets(self) -> List[Market]:
        pass

    async def fetch_currencies(self) -> List[Currency]:
        raise self._not_supported("fetch_currencies")

    @abstractmethod
    async def fetch_ticker(self, symbol: str, params: Optional[Dict[str, Any]] = None) -> Ticker:
        pass

    async def fetch_tickers(
        self,
        symbols: Optional[List[str]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Ticker]:
        raise self._not_supported("fetch_tickers")

    @abstractmethod
    async def fetch_order_book(
        self,
        symbol: str,
        limit: Optional[int] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> OrderBook:
        pass

    @abstractmethod
    async def fetch_trades(
        self,
        symbol: str,
        since: Optional[int] = None,
        limit: Optional[int] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> List[Trade]:
        pass

    async def fetch_ohlcv(
        self,
        symbol: str,
        timeframe: str = "1m",
        since: Optional[int] = None,
        limit: Optional[int] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> List[List[float]]:
        raise self._not_supported("fetch_ohlcv")

    # --------------------------------------------------------
    # ACCOUNT AND TRADING
    # --------------------------------------------------------

    @abstractmethod
    async def fetch_balance(self, params: Optional[Dict[str, Any]] = None) -> Balance:
        pass

    @abstractmethod
    async def create_order(
        self,
        symbol: str,
        type: str,
        side: str,
        amount: float,
        price: Optional[float] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Order:
        pass

    @abstractmethod
    async def cancel_order(
        self,
        id: str,
        symbol: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Order:
        pass

    async def fetch_order(
        self,
        id: str,
        symbol: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Order:
        raise self._not_supported("fetch_order")

    async def fetch_orders(
        self,
        symbol: Optional[str] = None,
        since: Optional[int] = None,
        limit: Optional[int] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> List[Order]:
        raise self._not_supported("fetch_orders")

    async def fetch_open_orders(
        self,
        symbol: Optional[str] = None,
        since: Optional[int] = None,
        limit: Optional[int] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> List[Order]:
        raise self._not_supported("fetch_open_orders")

    async def fetch_my_trades(
        self,
        symbol: Optional[str] = None,
        since: Optional[int] = None,
        limit: Optional[int] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> List[Trade]:
        raise self._not_supported("fetch_my_trades")

    async def fetch_deposit_address(
        self,
        code: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> DepositAddress:
        raise self._not_supported("fetch_deposit_address")

    async def create_deposit_address(
        self,
        code: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> DepositAddress:
        raise self._not_supported("create_deposit_address")

    async def withdraw(
        self,
        code: str,
        amount: float,
        address: str,
        tag: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Transaction:
        raise self._not_supported("withdraw")

    # --------------------------------------------------------
    # LIFECYCLE
    # --------------------------------------------------------

    async def close(self) -> None:
        await self.transport.close()

    async def __aenter__(self) -> "ExchangeAdapter":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
