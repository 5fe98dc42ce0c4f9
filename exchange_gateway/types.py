"""
Exchange Gateway - Types.

============================================================
PURPOSE
============================================================
Canonical object model returned by every adapter.

CRITICAL PRINCIPLE:
    "Unknown is None, never zero."
    Every entity keeps the exchange payload verbatim under `info`.

============================================================
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any, List, Tuple
from dataclasses import dataclass, field
from enum import Enum


def iso8601(timestamp: Optional[int]) -> Optional[str]:
    """Format a millisecond timestamp as ISO-8601 UTC."""
    if timestamp is None:
        return None
    dt = datetime.fromtimestamp(timestamp / 1000.0, tz=timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{int(timestamp) % 1000:03d}Z"


# ============================================================
# ENUMS
# ============================================================

class OrderSide(str, Enum):
    """Order side."""

    BUY = "buy"
    SELL = "sell"


class OrderType(str, Enum):
    """Order type."""

    LIMIT = "limit"
    MARKET = "market"


class OrderStatus(str, Enum):
    """
    Canonical order status.

    open     - live on the book, including partially filled
    closed   - fully filled
    canceled - terminal, no further fills
    """

    OPEN = "open"
    CLOSED = "closed"
    CANCELED = "canceled"


class CurrencyStatus(str, Enum):
    OK = "ok"
    DISABLED = "disabled"


# ============================================================
# MARKET METADATA
# ============================================================

@dataclass
class MinMax:
    """Inclusive bounds; None means unbounded or unknown."""

    min: Optional[float] = None
    max: Optional[float] = None


@dataclass
class Precision:
    """Decimal digit counts accepted by the exchange."""

    amount: Optional[int] = None
    price: Optional[int] = None


@dataclass
class MarketLimits:
    amount: MinMax = field(default_factory=MinMax)
    price: MinMax = field(default_factory=MinMax)
    cost: MinMax = field(default_factory=MinMax)


@dataclass
class Market:
    """Instrument metadata."""

    id: str
    """Native market id (e.g. btc_usdt)."""

    symbol: str
    """Canonical BASE/QUOTE symbol."""

    base: str
    quote: str
    base_id: str
    quote_id: str

    active: bool = True
    precision: Precision = field(default_factory=Precision)
    limits: MarketLimits = field(default_factory=MarketLimits)
    info: Any = None


@dataclass
class FundingRule:
    active: bool = True
    fee: Optional[float] = None


@dataclass
class Funding:
    withdraw: FundingRule = field(default_factory=FundingRule)
    deposit: FundingRule = field(default_factory=FundingRule)


@dataclass
class CurrencyLimits:
    amount: MinMax = field(default_factory=MinMax)
    price: MinMax = field(default_factory=MinMax)
    cost: MinMax = field(default_factory=MinMax)
    withdraw: MinMax = field(default_factory=MinMax)
    deposit: MinMax = field(default_factory=MinMax)


@dataclass
class Currency:
    """Asset metadata."""

    id: str
    """Native currency id."""

    code: str
    """Canonical currency code."""

    name: Optional[str] = None
    active: bool = True
    status: CurrencyStatus = CurrencyStatus.OK
    precision: Optional[int] = None
    funding: Funding = field(default_factory=Funding)
    limits: CurrencyLimits = field(default_factory=CurrencyLimits)
    info: Any = None


# ============================================================
# MARKET DATA
# ============================================================

@dataclass
class Ticker:
    symbol: str
    timestamp: Optional[int] = None
    bid: Optional[float] = None
    ask: Optional[float] = None
    last: Optional[float] = None
    high: Optional[float] = None
    low: Optional[float] = None
    base_volume: Optional[float] = None
    quote_volume: Optional[float] = None
    info: Any = None

    @property
    def datetime(self) -> Optional[str]:
        return iso8601(self.timestamp)


PriceLevel = Tuple[float, float]


@dataclass
class OrderBook:
    """
    Order book snapshot.

    Bids strictly descending by price, asks strictly ascending.
    """

    symbol: Optional[str] = None
    timestamp: Optional[int] = None
    bids: List[PriceLevel] = field(default_factory=list)
    asks: List[PriceLevel] = field(default_factory=list)
    info: Any = None

    @property
    def datetime(self) -> Optional[str]:
        return iso8601(self.timestamp)

    @property
    def best_bid(self) -> Optional[PriceLevel]:
        return self.bids[0] if self.bids else None

    @property
    def best_ask(self) -> Optional[PriceLevel]:
        return self.asks[0] if self.asks else None


@dataclass
class Trade:
    id: Optional[str]
    timestamp: Optional[int]
    symbol: Optional[str]
    side: Optional[OrderSide]
    price: Optional[float]
    amount: Optional[float]
    info: Any = None

    @property
    def datetime(self) -> Optional[str]:
        return iso8601(self.timestamp)


# ============================================================
# TRADING
# ============================================================

@dataclass
class Order:
    """
    Point-in-time order snapshot.

    remaining == amount - filled whenever both are known.
    """

    id: Optional[str]
    timestamp: Optional[int] = None
    symbol: Optional[str] = None
    side: Optional[OrderSide] = None
    type: Optional[OrderType] = None
    price: Optional[float] = None
    average: Optional[float] = None
    amount: Optional[float] = None
    filled: Optional[float] = None
    remaining: Optional[float] = None
    cost: Optional[float] = None
    status: Optional[OrderStatus] = None
    info: Any = None

    @property
    def datetime(self) -> Optional[str]:
        return iso8601(self.timestamp)


@dataclass
class Account:
    free: Optional[float] = None
    used: Optional[float] = None
    total: Optional[float] = None


@dataclass
class Balance:
    """Per-currency accounts keyed by canonical code."""

    accounts: Dict[str, Account] = field(default_factory=dict)
    info: Any = None

    def __getitem__(self, code: str) -> Account:
        return self.accounts[code]

    def __contains__(self, code: str) -> bool:
        return code in self.accounts

    @property
    def free(self) -> Dict[str, Optional[float]]:
        return {code: acc.free for code, acc in self.accounts.items()}

    @property
    def used(self) -> Dict[str, Optional[float]]:
        return {code: acc.used for code, acc in self.accounts.items()}

    @property
    def total(self) -> Dict[str, Optional[float]]:
        return {code: acc.total for code, acc in self.accounts.items()}


@dataclass
class DepositAddress:
    currency: str
    address: str
    tag: Optional[str] = None
    status: str = "ok"
    info: Any = None


@dataclass
class Transaction:
    """Result of a withdrawal request."""

    id: Optional[str]
    currency: str
    amount: float
    address: str
    info: Any = None
