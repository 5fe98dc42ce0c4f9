"""
Exchange Gateway - Configuration.

============================================================
PURPOSE
============================================================
Layered configuration for exchange adapters.

LAYERS:
1. BASE_DESCRIPTION   - defaults shared by every exchange
2. Exchange override  - static per-exchange table (urls, endpoints,
                        currency renames, error codes, statuses)
3. AdapterConfig      - per-instance credentials and tuning

MERGE SEMANTICS (merge_description):
- Mappings merge key by key, recursively
- Lists, tuples and scalars in the override replace the base value
- The merge is pure: inputs are never mutated

============================================================
"""

import copy
import os
from dataclasses import dataclass, field, fields, replace
from typing import Dict, Any, List, Optional, Mapping, Type

from dotenv import load_dotenv

from .errors import ExchangeError


# ============================================================
# ENDPOINTS
# ============================================================

@dataclass(frozen=True)
class Endpoint:
    """One exchange endpoint in the dispatch table."""

    api: str
    """API section: public, private, web."""

    method: str
    """HTTP method."""

    path: str
    """Path template, may contain {param} placeholders."""


# ============================================================
# EXCHANGE DESCRIPTION
# ============================================================

@dataclass
class ExchangeDescription:
    """
    Static description of one exchange.
    """

    id: str = ""
    name: str = ""
    countries: List[str] = field(default_factory=list)
    version: Optional[str] = None

    rate_limit: int = 2000
    """Minimum interval between requests, in milliseconds."""

    urls: Dict[str, Any] = field(default_factory=dict)
    """Base URLs; urls["api"] maps API section to base URL."""

    endpoints: Dict[str, Endpoint] = field(default_factory=dict)
    """Operation key -> endpoint."""

    has: Dict[str, bool] = field(default_factory=dict)
    """Capability flags by operation name."""

    fees: Dict[str, Any] = field(default_factory=dict)

    common_currencies: Dict[str, str] = field(default_factory=dict)
    """Native code -> canonical code."""

    currency_ids: Dict[str, str] = field(default_factory=dict)
    """Explicit canonical code -> native code, wins over derived inverse."""

    exceptions: Dict[str, Type[ExchangeError]] = field(default_factory=dict)
    """Exact exchange code/message -> canonical error kind."""

    broad_exceptions: Dict[str, Type[ExchangeError]] = field(default_factory=dict)
    """Message substring -> canonical error kind."""

    order_statuses: Dict[str, str] = field(default_factory=dict)
    """Raw status code -> canonical status."""

    timeframes: Dict[str, str] = field(default_factory=dict)

    options: Dict[str, Any] = field(default_factory=dict)


BASE_DESCRIPTION = ExchangeDescription(
    rate_limit=2000,
    has={
        "fetch_markets": True,
        "fetch_currencies": False,
        "fetch_ticker": True,
        "fetch_tickers": False,
        "fetch_order_book": True,
        "fetch_trades": True,
        "fetch_ohlcv": False,
        "fetch_balance": True,
        "create_order": True,
        "create_market_order": True,
        "cancel_order": True,
        "fetch_order": False,
        "fetch_orders": False,
        "fetch_open_orders": False,
        "fetch_my_trades": False,
        "fetch_deposit_address": False,
        "create_deposit_address": False,
        "withdraw": False,
    },
    common_currencies={
        "XBT": "BTC",
        "BCC": "BCH",
        "DRK": "DASH",
    },
)


def _merge_value(base: Any, override: Any) -> Any:
    if isinstance(base, Mapping) and isinstance(override, Mapping):
        merged = dict(base)
        for key, value in override.items():
            if key in merged:
                merged[key] = _merge_value(merged[key], value)
            else:
                merged[key] = copy.deepcopy(value)
        return merged
    return copy.deepcopy(override)


def merge_description(
    base: ExchangeDescription,
    override: Mapping[str, Any],
) -> ExchangeDescription:
    """
    Merge an override table onto a base description.

    Args:
        base: Base description
        override: Field name -> value; unknown field names are rejected

    Returns:
        New ExchangeDescription
    """
    known = {f.name for f in fields(ExchangeDescription)}
    unknown = set(override) - known
    if unknown:
        raise ValueError(f"Unknown description fields: {sorted(unknown)}")

    changes = {}
    for name, value in override.items():
        changes[name] = _merge_value(getattr(base, name), value)

    return replace(copy.deepcopy(base), **changes)


# ============================================================
# RETRY CONFIGURATION
# ============================================================

@dataclass
class RetryConfig:
    """
    Retry configuration for throttled or unavailable responses.

    SAFETY: Limited retries with exponential backoff.
    """

    max_retries: int = 3
    """Maximum number of retry attempts."""

    initial_delay_seconds: float = 1.0
    """Initial delay before first retry."""

    max_delay_seconds: float = 30.0
    """Maximum delay between retries."""

    backoff_multiplier: float = 2.0
    """Exponential backoff multiplier."""

    jitter_ratio: float = 0.25
    """Random extra delay as a fraction of the computed delay."""

    retry_on_network_error: bool = False
    """Whether to retry on transport errors."""


# ============================================================
# ADAPTER CONFIGURATION
# ============================================================

@dataclass
class AdapterConfig:
    """
    Per-instance configuration for an exchange adapter.
    """

    # Credentials
    api_key: Optional[str] = None
    api_secret: Optional[str] = None
    password: Optional[str] = None  # zb withdraw password

    # Connection
    timeout_seconds: float = 10.0

    # Throttling
    enable_rate_limit: bool = True
    rate_limit_ms: Optional[int] = None
    """Overrides the description's rate limit when set."""

    retry: RetryConfig = field(default_factory=RetryConfig)

    # Merged into description options
    options: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_env(
        cls,
        exchange_id: str,
        dotenv_path: Optional[str] = None,
        **kwargs,
    ) -> "AdapterConfig":
        """
        Create config from environment variables.

        Reads <ID>_API_KEY, <ID>_API_SECRET and <ID>_PASSWORD after
        loading a .env file (existing variables are not overridden).

        Args:
            exchange_id: Exchange identifier
            dotenv_path: Explicit .env path
            **kwargs: Other AdapterConfig fields

        Returns:
            AdapterConfig
        """
        load_dotenv(dotenv_path, override=False)
        prefix = exchange_id.upper()

        return cls(
            api_key=os.environ.get(f"{prefix}_API_KEY"),
            api_secret=os.environ.get(f"{prefix}_API_SECRET"),
            password=os.environ.get(f"{prefix}_PASSWORD"),
            **kwargs,
        )
