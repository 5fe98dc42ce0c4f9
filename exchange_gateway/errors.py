"""
Exchange Gateway - Error Taxonomy.

============================================================
PURPOSE
============================================================
Canonical error hierarchy shared by every exchange adapter:
- One exception class per canonical error kind
- Retry eligibility derived from the kind
- Raw exchange response preserved on the error itself

============================================================
ERROR KINDS
============================================================
ExchangeError (generic / unmapped)
  AuthenticationError   - bad key, signature, IP, expired time
  InsufficientFunds     - balance too low
  InvalidOrder          - bad price/amount/order type
  OrderNotFound         - unknown order
  ExchangeNotAvailable  - maintenance, feature disabled
  DDoSProtection        - throttled (retryable)
  NotSupported, BadSymbol, ArgumentsRequired, InvalidAddress
NetworkError (transport, never reinterpreted)
  RequestTimeout

============================================================
"""

import json
from enum import Enum
from typing import Optional, Dict, Any


# ============================================================
# CATEGORIES
# ============================================================

class ErrorCategory(Enum):
    """Standardized error categories."""

    NETWORK = "NETWORK"
    TIMEOUT = "TIMEOUT"
    RATE_LIMIT = "RATE_LIMIT"
    AUTHENTICATION = "AUTHENTICATION"
    INVALID_ORDER = "INVALID_ORDER"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    NOT_AVAILABLE = "NOT_AVAILABLE"
    EXCHANGE_ERROR = "EXCHANGE_ERROR"


class RetryEligibility(Enum):
    """Whether error is eligible for retry."""

    RETRY = "RETRY"           # Safe to retry
    NO_RETRY = "NO_RETRY"     # Should not retry
    BACKOFF = "BACKOFF"       # Retry with exponential backoff


# ============================================================
# BASE ERROR
# ============================================================

class BaseError(Exception):
    """
    Root of all gateway errors.

    Carries the originating exchange and the raw response (or the
    request context for errors raised before any network call).
    """

    category: ErrorCategory = ErrorCategory.EXCHANGE_ERROR
    retry_eligible: RetryEligibility = RetryEligibility.NO_RETRY

    def __init__(
        self,
        message: str = "",
        exchange_id: Optional[str] = None,
        http_status: Optional[int] = None,
        exchange_code: Optional[str] = None,
        raw_response: Any = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.exchange_id = exchange_id
        self.http_status = http_status
        self.exchange_code = exchange_code
        self.raw_response = raw_response
        self.context = context or {}
        super().__init__(self._format())

    def _format(self) -> str:
        parts = []
        if self.exchange_id:
            parts.append(self.exchange_id)
        if self.message:
            parts.append(self.message)
        if self.raw_response is not None:
            parts.append(_preview(self.raw_response))
        return " ".join(parts)

    def is_retryable(self) -> bool:
        """Check if error is retryable."""
        return self.retry_eligible in (RetryEligibility.RETRY, RetryEligibility.BACKOFF)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "kind": type(self).__name__,
            "category": self.category.value,
            "retry_eligible": self.retry_eligible.value,
            "message": self.message,
            "exchange_id": self.exchange_id,
            "http_status": self.http_status,
            "exchange_code": self.exchange_code,
            "raw_response": self.raw_response,
            "context": self.context,
        }


def _preview(raw: Any, limit: int = 500) -> str:
    if isinstance(raw, str):
        text = raw
    else:
        try:
            text = json.dumps(raw, default=str)
        except (TypeError, ValueError):
            text = repr(raw)
    return text[:limit]


# ============================================================
# EXCHANGE TAXONOMY
# ============================================================

class ExchangeError(BaseError):
    """Generic or unmapped exchange failure."""


class AuthenticationError(ExchangeError):
    """Bad credentials, signature, IP restriction or expired timestamp."""

    category = ErrorCategory.AUTHENTICATION


class InsufficientFunds(ExchangeError):
    category = ErrorCategory.INSUFFICIENT_FUNDS


class InvalidOrder(ExchangeError):
    """Bad price, amount or order type."""

    category = ErrorCategory.INVALID_ORDER


class OrderNotFound(ExchangeError):
    category = ErrorCategory.ORDER_NOT_FOUND


class ExchangeNotAvailable(ExchangeError):
    """Maintenance or feature disabled."""

    category = ErrorCategory.NOT_AVAILABLE
    retry_eligible = RetryEligibility.BACKOFF


class DDoSProtection(ExchangeError):
    """Rate limited or throttled by the exchange."""

    category = ErrorCategory.RATE_LIMIT
    retry_eligible = RetryEligibility.BACKOFF


class NotSupported(ExchangeError):
    """Operation not offered by this exchange."""


class BadSymbol(ExchangeError):
    """Unknown market symbol or id."""


class ArgumentsRequired(ExchangeError):
    """A required argument was omitted by the caller."""


class InvalidAddress(ExchangeError):
    """Malformed deposit or withdrawal address."""


# ============================================================
# TRANSPORT ERRORS
# ============================================================

class NetworkError(BaseError):
    """Connection-level failure reported by the transport."""

    category = ErrorCategory.NETWORK
    retry_eligible = RetryEligibility.RETRY


class RequestTimeout(NetworkError):
    category = ErrorCategory.TIMEOUT


# Canonical kinds that per-exchange tables may map to.
CANONICAL_KINDS = (
    AuthenticationError,
    InsufficientFunds,
    InvalidOrder,
    OrderNotFound,
    ExchangeNotAvailable,
    DDoSProtection,
    ExchangeError,
)


def create_rate_limit_error(
    exchange_id: str,
    raw_response: Any = None,
    http_status: Optional[int] = None,
) -> DDoSProtection:
    """Create rate limit error."""
    return DDoSProtection(
        "Rate limit exceeded",
        exchange_id=exchange_id,
        http_status=http_status,
        raw_response=raw_response,
    )
