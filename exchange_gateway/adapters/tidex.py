"""
Exchange Gateway - Tidex.

Tidex is a Liqui-family exchange with an extra `web` API for
currency metadata. Its public base URL already carries the API
version.
"""

from typing import Any, Dict, Optional

from ..config import AdapterConfig, Endpoint
from ..transport import Transport
from .liqui import (
    LIQUI_BROAD_EXCEPTIONS,
    LIQUI_EXCEPTIONS,
    LiquiAdapter,
    liqui_description,
)


TIDEX_OVERRIDES: Dict[str, Any] = {
    "id": "tidex",
    "name": "Tidex",
    "countries": ["UK"],
    "rate_limit": 2000,
    "version": "3",
    "has": {
        "fetch_currencies": True,
    },
    "urls": {
        "api": {
            "web": "https://web.tidex.com/api",
            "public": "https://api.tidex.com/api/3",
            "private": "https://api.tidex.com/tapi",
        },
        "www": "https://tidex.com",
        "doc": "https://tidex.com/exchange/public-api",
        "fees": [
            "https://tidex.com/exchange/assets-spec",
            "https://tidex.com/exchange/pairs-spec",
        ],
    },
    "endpoints": {
        "currencies": Endpoint("web", "GET", "currency"),
    },
    "fees": {
        "trading": {
            "tier_based": False,
            "percentage": True,
            "taker": 0.001,
            "maker": 0.001,
        },
    },
    "common_currencies": {
        "DSH": "DASH",
        "MGO": "WMGO",   # MGO on WAVES
        "EMGO": "MGO",   # MGO on ETH
    },
    "currency_ids": {
        "DASH": "DSH",
    },
    "exceptions": LIQUI_EXCEPTIONS,
    "broad_exceptions": LIQUI_BROAD_EXCEPTIONS,
    "options": {
        "version_in_url": False,
    },
}

TIDEX_DESCRIPTION = liqui_description(TIDEX_OVERRIDES)


def create_tidex_adapter(
    config: Optional[AdapterConfig] = None,
    transport: Optional[Transport] = None,
    **kwargs,
) -> LiquiAdapter:
    return LiquiAdapter(TIDEX_DESCRIPTION, config, transport, **kwargs)
