"""
Exchange Gateway - YoBit.

YoBit is a Liqui-family exchange; this module only holds its
description and a builder for a configured LiquiAdapter.
"""

from typing import Any, Dict, Optional

from ..config import AdapterConfig, Endpoint
from ..errors import DDoSProtection, InsufficientFunds
from ..transport import Transport
from .liqui import LiquiAdapter, liqui_description


YOBIT_OVERRIDES: Dict[str, Any] = {
    "id": "yobit",
    "name": "YoBit",
    "countries": ["RU"],
    "rate_limit": 3000,  # responses are cached every 2 seconds
    "version": "3",
    "has": {
        "fetch_deposit_address": True,
        "create_deposit_address": True,
        "withdraw": True,
    },
    "urls": {
        "api": {
            "public": "https://yobit.net/api",
            "private": "https://yobit.net/tapi",
        },
        "www": "https://www.yobit.net",
        "doc": "https://www.yobit.net/en/api/",
        "fees": "https://www.yobit.net/en/fees/",
    },
    "endpoints": {
        "deposit_address": Endpoint("private", "POST", "GetDepositAddress"),
        "withdraw": Endpoint("private", "POST", "WithdrawCoinsToAddress"),
    },
    "fees": {
        "trading": {
            "maker": 0.002,
            "taker": 0.002,
        },
        "funding": {
            "withdraw": {},
        },
    },
    "common_currencies": {
        "AIR": "AirCoin",
        "ANI": "ANICoin",
        "ANT": "AntsCoin",
        "ATM": "Autumncoin",
        "BCC": "BCH",
        "BCS": "BitcoinStake",
        "BTS": "Bitshares2",
        "DCT": "Discount",
        "DGD": "DarkGoldCoin",
        "ICN": "iCoin",
        "LIZI": "LiZi",
        "LUN": "LunarCoin",
        "MDT": "Midnight",
        "NAV": "NavajoCoin",
        "OMG": "OMGame",
        "PAY": "EPAY",
        "REP": "Republicoin",
    },
    "exceptions": {
        "Requests too often": DDoSProtection,
        "not available": DDoSProtection,
        "external service unavailable": DDoSProtection,
    },
    "broad_exceptions": {
        "Insufficient funds": InsufficientFunds,
    },
    "order_statuses": {
        "0": "open",
        "1": "closed",
        "2": "canceled",
        "3": "open",  # partially filled
    },
    "options": {
        "tickers_chunk_size": 61,
        "fetch_orders_requires_symbol": True,
    },
}

YOBIT_DESCRIPTION = liqui_description(YOBIT_OVERRIDES)


def create_yobit_adapter(
    config: Optional[AdapterConfig] = None,
    transport: Optional[Transport] = None,
    **kwargs,
) -> LiquiAdapter:
    return LiquiAdapter(YOBIT_DESCRIPTION, config, transport, **kwargs)
