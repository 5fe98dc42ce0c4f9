"""
Exchange Gateway Package.

============================================================
PURPOSE
============================================================
One exchange-agnostic interface for market data and trading
across cryptocurrency exchanges with incompatible REST APIs.

CRITICAL PRINCIPLE:
    "Same object model whichever exchange backs the call."
    Unknown values are None, never zero; the raw payload is
    always kept under `info`.

============================================================
MODULES
============================================================
- types: Canonical dataclasses (Market, Ticker, Order, ...)
- errors: Canonical error taxonomy
- config: Exchange descriptions, adapter/retry configuration
- currency: Native <-> canonical currency codes
- markets: Market/currency metadata cache
- signing: Request signers and nonce generator
- throttle: Rate limiter and retry policy
- classifier: Raw response -> canonical error
- normalizer: Canonical builders and safe accessors
- precision: Decimal rounding/truncation helpers
- transport: aiohttp and scripted transports
- logging_utils: Secure structured logging
- metrics: Per-adapter counters
- adapters: zb, liqui family (yobit, tidex), factory

============================================================
"""

from .types import (
    iso8601,
    OrderSide,
    OrderType,
    OrderStatus,
    CurrencyStatus,
    MinMax,
    Precision,
    MarketLimits,
    Market,
    FundingRule,
    Funding,
    CurrencyLimits,
    Currency,
    Ticker,
    OrderBook,
    Trade,
    Order,
    Account,
    Balance,
    DepositAddress,
    Transaction,
)

from .errors import (
    ErrorCategory,
    RetryEligibility,
    BaseError,
    ExchangeError,
    AuthenticationError,
    InsufficientFunds,
    InvalidOrder,
    OrderNotFound,
    ExchangeNotAvailable,
    DDoSProtection,
    NotSupported,
    BadSymbol,
    ArgumentsRequired,
    InvalidAddress,
    NetworkError,
    RequestTimeout,
)

from .config import (
    Endpoint,
    ExchangeDescription,
    BASE_DESCRIPTION,
    merge_description,
    RetryConfig,
    AdapterConfig,
)

from .currency import CurrencyCodeMapper
from .markets import MarketCache
from .signing import (
    SignedRequest,
    NonceGenerator,
    RequestSigner,
    ZBSigner,
    LiquiSigner,
)
from .throttle import RateLimiter, RetryPolicy
from .classifier import ErrorClassifier, SuccessFlagClassifier
from .transport import HttpResponse, Transport, AiohttpTransport, MockTransport
from .logging_utils import AdapterLogger
from .metrics import AdapterMetrics

from .adapters import (
    ExchangeAdapter,
    ZBAdapter,
    LiquiAdapter,
    create_yobit_adapter,
    create_tidex_adapter,
    AdapterFactory,
    create_adapter,
)


__all__ = [
    # Types
    "iso8601",
    "OrderSide",
    "OrderType",
    "OrderStatus",
    "CurrencyStatus",
    "MinMax",
    "Precision",
    "MarketLimits",
    "Market",
    "FundingRule",
    "Funding",
    "CurrencyLimits",
    "Currency",
    "Ticker",
    "OrderBook",
    "Trade",
    "Order",
    "Account",
    "Balance",
    "DepositAddress",
    "Transaction",
    # Errors
    "ErrorCategory",
    "RetryEligibility",
    "BaseError",
    "ExchangeError",
    "AuthenticationError",
    "InsufficientFunds",
    "InvalidOrder",
    "OrderNotFound",
    "ExchangeNotAvailable",
    "DDoSProtection",
    "NotSupported",
    "BadSymbol",
    "ArgumentsRequired",
    "InvalidAddress",
    "NetworkError",
    "RequestTimeout",
    # Config
    "Endpoint",
    "ExchangeDescription",
    "BASE_DESCRIPTION",
    "merge_description",
    "RetryConfig",
    "AdapterConfig",
    # Components
    "CurrencyCodeMapper",
    "MarketCache",
    "SignedRequest",
    "NonceGenerator",
    "RequestSigner",
    "ZBSigner",
    "LiquiSigner",
    "RateLimiter",
    "RetryPolicy",
    "ErrorClassifier",
    "SuccessFlagClassifier",
    "HttpResponse",
    "Transport",
    "AiohttpTransport",
    "MockTransport",
    "AdapterLogger",
    "AdapterMetrics",
    # Adapters
    "ExchangeAdapter",
    "ZBAdapter",
    "LiquiAdapter",
    "create_yobit_adapter",
    "create_tidex_adapter",
    "AdapterFactory",
    "create_adapter",
]
