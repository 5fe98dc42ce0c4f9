"""
Exchange Gateway - Normalizer.

============================================================
PURPOSE
============================================================
Pure builders for canonical structures. Per-exchange parsers
map raw fields onto these; the builders enforce the invariants:

- String numerics become floats; absent stays None
- Order books sorted (bids desc, asks asc), duplicate levels merged
- remaining = amount - filled when both known
- used = total - free when used is not reported
- A currency is inactive if withdraw or deposit is disabled

============================================================
"""

import logging
from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from .types import (
    iso8601,
    Account,
    Balance,
    Currency,
    CurrencyLimits,
    CurrencyStatus,
    Funding,
    FundingRule,
    MinMax,
    Order,
    OrderBook,
    OrderSide,
    OrderStatus,
    OrderType,
    PriceLevel,
    Ticker,
    Trade,
)


logger = logging.getLogger(__name__)

__all__ = [
    "iso8601",
    "safe_value",
    "safe_float",
    "safe_string",
    "safe_integer",
    "parse_order_status",
    "build_ticker",
    "build_order_book",
    "build_trade",
    "build_order",
    "build_balance",
    "build_currency",
]


# ============================================================
# SAFE ACCESSORS
# ============================================================

def safe_value(obj: Any, key: Any, default: Any = None) -> Any:
    """obj[key] for mappings and sequences; default when absent or None."""
    if obj is None:
        return default
    try:
        value = obj[key]
    except (KeyError, IndexError, TypeError):
        return default
    return default if value is None else value


def safe_float(obj: Any, key: Any, default: Optional[float] = None) -> Optional[float]:
    value = safe_value(obj, key)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def safe_string(obj: Any, key: Any, default: Optional[str] = None) -> Optional[str]:
    value = safe_value(obj, key)
    if value is None:
        return default
    return str(value)


def safe_integer(obj: Any, key: Any, default: Optional[int] = None) -> Optional[int]:
    value = safe_value(obj, key)
    if value is None or value == "":
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def _float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


# ============================================================
# ORDER STATUS
# ============================================================

def parse_order_status(
    raw: Any,
    table: Mapping[str, str],
    exchange_id: str = "",
) -> Optional[OrderStatus]:
    """
    Map a raw exchange status code to open/closed/canceled.

    Missing status stays None. Unknown codes are logged and reported
    as open.
    """
    if raw is None:
        return None
    mapped = table.get(str(raw))
    if mapped is None:
        logger.warning(f"[{exchange_id}] Unknown order status {raw!r}, reporting open")
        return OrderStatus.OPEN
    return OrderStatus(mapped)


# ============================================================
# BUILDERS
# ============================================================

def build_ticker(
    symbol: str,
    timestamp: Optional[int] = None,
    bid: Any = None,
    ask: Any = None,
    last: Any = None,
    high: Any = None,
    low: Any = None,
    base_volume: Any = None,
    quote_volume: Any = None,
    info: Any = None,
) -> Ticker:
    return Ticker(
        symbol=symbol,
        timestamp=timestamp,
        bid=_float(bid),
        ask=_float(ask),
        last=_float(last),
        high=_float(high),
        low=_float(low),
        base_volume=_float(base_volume),
        quote_volume=_float(quote_volume),
        info=info,
    )


def _parse_levels(levels: Optional[Iterable[Any]], price_key: Any, amount_key: Any) -> List[PriceLevel]:
    merged: "OrderedDict[float, float]" = OrderedDict()
    for level in levels or []:
        price = safe_float(level, price_key)
        amount = safe_float(level, amount_key)
        if price is None or amount is None:
            continue
        merged[price] = merged.get(price, 0.0) + amount
    return list(merged.items())


def build_order_book(
    bids: Optional[Sequence[Any]],
    asks: Optional[Sequence[Any]],
    symbol: Optional[str] = None,
    timestamp: Optional[int] = None,
    info: Any = None,
    price_key: Any = 0,
    amount_key: Any = 1,
) -> OrderBook:
    """
    Build an order book from raw levels in any order.

    Levels are [price, amount] pairs (or mappings with price_key /
    amount_key). Levels at the same price are merged by summing.
    """
    return OrderBook(
        symbol=symbol,
        timestamp=timestamp,
        bids=sorted(_parse_levels(bids, price_key, amount_key), key=lambda lv: lv[0], reverse=True),
        asks=sorted(_parse_levels(asks, price_key, amount_key), key=lambda lv: lv[0]),
        info=info,
    )


def build_trade(
    id: Any,
    timestamp: Optional[int],
    symbol: Optional[str],
    side: Optional[str],
    price: Any,
    amount: Any,
    info: Any = None,
) -> Trade:
    return Trade(
        id=None if id is None else str(id),
        timestamp=timestamp,
        symbol=symbol,
        side=OrderSide(side) if side else None,
        price=_float(price),
        amount=_float(amount),
        info=info,
    )


def build_order(
    id: Any,
    timestamp: Optional[int] = None,
    symbol: Optional[str] = None,
    side: Optional[str] = None,
    type: Optional[str] = None,
    price: Any = None,
    average: Any = None,
    amount: Any = None,
    filled: Any = None,
    remaining: Any = None,
    cost: Any = None,
    status: Optional[OrderStatus] = None,
    info: Any = None,
) -> Order:
    """
    Build an order snapshot.

    Whichever of filled/remaining is missing is derived from amount.
    """
    amount = _float(amount)
    filled = _float(filled)
    remaining = _float(remaining)

    if amount is not None:
        if filled is not None:
            remaining = amount - filled
        elif remaining is not None:
            filled = amount - remaining

    return Order(
        id=None if id is None else str(id),
        timestamp=timestamp,
        symbol=symbol,
        side=OrderSide(side) if side else None,
        type=OrderType(type) if type else None,
        price=_float(price),
        average=_float(average),
        amount=amount,
        filled=filled,
        remaining=remaining,
        cost=_float(cost),
        status=OrderStatus(status) if status is not None else None,
        info=info,
    )


def build_balance(accounts: Mapping[str, Mapping[str, Any]], info: Any = None) -> Balance:
    """
    Build a balance from code -> {free, used, total}.

    Any one missing field is derived from the other two.
    """
    result: Dict[str, Account] = {}
    for code, raw in accounts.items():
        free = safe_float(raw, "free")
        used = safe_float(raw, "used")
        total = safe_float(raw, "total")

        if used is None and free is not None and total is not None:
            used = total - free
        elif total is None and free is not None and used is not None:
            total = free + used
        elif free is None and total is not None and used is not None:
            free = total - used

        result[code] = Account(free=free, used=used, total=total)

    return Balance(accounts=result, info=info)


def build_currency(
    id: str,
    code: str,
    name: Optional[str] = None,
    status: str = "ok",
    precision: Optional[int] = None,
    withdraw_active: bool = True,
    deposit_active: bool = True,
    withdraw_fee: Any = None,
    deposit_fee: Any = None,
    limits: Optional[Mapping[str, Mapping[str, Any]]] = None,
    info: Any = None,
) -> Currency:
    """
    Build currency metadata.

    active is true only when status is ok and both funding
    directions are enabled.
    """
    currency_status = CurrencyStatus(status)
    limits = limits or {}

    def minmax(name: str) -> MinMax:
        bounds = limits.get(name) or {}
        return MinMax(min=_float(bounds.get("min")), max=_float(bounds.get("max")))

    return Currency(
        id=id,
        code=code,
        name=name,
        active=(
            currency_status == CurrencyStatus.OK
            and bool(withdraw_active)
            and bool(deposit_active)
        ),
        status=currency_status,
        precision=precision,
        funding=Funding(
            withdraw=FundingRule(active=bool(withdraw_active), fee=_float(withdraw_fee)),
            deposit=FundingRule(active=bool(deposit_active), fee=_float(deposit_fee)),
        ),
        limits=CurrencyLimits(
            amount=minmax("amount"),
            price=minmax("price"),
            cost=minmax("cost"),
            withdraw=minmax("withdraw"),
            deposit=minmax("deposit"),
        ),
        info=info,
    )
