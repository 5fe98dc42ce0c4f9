"""
Exchange Gateway - Secure Logging Utilities.

============================================================
PURPOSE
============================================================
Structured request/response logging for adapters with
credential masking.

============================================================
SECURITY REQUIREMENTS
============================================================
1. NEVER log raw API keys, secrets or signatures
2. Mask Key/Sign headers and accesskey/sign query parameters
3. Log request bodies only as a short hash

============================================================
"""

import logging
import re
import json
import hashlib
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from dataclasses import dataclass, asdict


logger = logging.getLogger(__name__)


# ============================================================
# SENSITIVE DATA
# ============================================================

# Header names that should be masked (compared lower-case)
SENSITIVE_HEADERS = {
    "key",
    "sign",
    "authorization",
    "api-key",
    "secret",
    "signature",
}

# Parameter names that should be masked (compared lower-case)
SENSITIVE_PARAMS = {
    "apikey",
    "api_key",
    "accesskey",
    "key",
    "secret",
    "password",
    "safepwd",
    "signature",
    "sign",
}

# Long hex runs are HMAC digests or SHA1'd secrets
SENSITIVE_PATTERNS = [
    (re.compile(r"[a-f0-9]{32,}", re.IGNORECASE), "***HMAC***"),
]


# ============================================================
# MASKING FUNCTIONS
# ============================================================

def mask_value(value: str, show_chars: int = 4) -> str:
    """
    Mask a sensitive value, showing only first few chars.

    Args:
        value: Value to mask
        show_chars: Number of chars to show at start

    Returns:
        Masked value
    """
    if not value or len(value) <= show_chars * 2:
        return "***"
    return f"{value[:show_chars]}...***"


def mask_headers(headers: Optional[Dict[str, str]]) -> Dict[str, str]:
    """Mask sensitive headers."""
    if not headers:
        return {}

    masked = {}
    for key, value in headers.items():
        if key.lower() in SENSITIVE_HEADERS:
            masked[key] = mask_value(str(value))
        else:
            masked[key] = value
    return masked


def mask_params(params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Mask sensitive parameters, recursing into nested mappings.

    Args:
        params: Request parameters

    Returns:
        Parameters with sensitive values masked
    """
    if not params:
        return {}

    masked = {}
    for key, value in params.items():
        if str(key).lower() in SENSITIVE_PARAMS:
            masked[key] = mask_value(str(value)) if value else value
        elif isinstance(value, dict):
            masked[key] = mask_params(value)
        elif isinstance(value, str):
            masked_value = value
            for pattern, replacement in SENSITIVE_PATTERNS:
                masked_value = pattern.sub(replacement, masked_value)
            masked[key] = masked_value
        else:
            masked[key] = value
    return masked


def mask_url(url: str) -> str:
    """Mask sensitive query parameters in a URL."""
    if not url:
        return url

    for param in SENSITIVE_PARAMS:
        pattern = re.compile(rf"([?&]{param}=)([^&]+)", re.IGNORECASE)
        url = pattern.sub(lambda m: f"{m.group(1)}***", url)

    return url


def hash_body(body: Any) -> Optional[str]:
    """Short SHA-256 of a request body."""
    if not body:
        return None
    if isinstance(body, (dict, list)):
        body_str = json.dumps(body, sort_keys=True, default=str)
    else:
        body_str = str(body)
    return hashlib.sha256(body_str.encode()).hexdigest()[:16]


# ============================================================
# LOG ENTRY STRUCTURES
# ============================================================

def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class RequestLogEntry:
    """Structured log entry for requests."""

    timestamp: str
    exchange_id: str
    operation: str
    method: str
    url: str
    request_id: str
    attempt: int = 1

    headers: Optional[Dict[str, str]] = None
    params: Optional[Dict[str, Any]] = None
    body_hash: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


@dataclass
class ResponseLogEntry:
    """Structured log entry for responses."""

    timestamp: str
    exchange_id: str
    operation: str
    request_id: str

    status_code: Optional[int]
    latency_ms: float
    success: bool

    error_kind: Optional[str] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    response_preview: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


# ============================================================
# ADAPTER LOGGER
# ============================================================

class AdapterLogger:
    """
    Secure logger for one adapter instance.

    Logger name is exchange_gateway.<exchange_id>.
    """

    def __init__(self, exchange_id: str, logger_name: Optional[str] = None):
        self._exchange_id = exchange_id
        self._logger = logging.getLogger(
            logger_name or f"exchange_gateway.{exchange_id}"
        )
        self._request_counter = 0

    @property
    def name(self) -> str:
        return self._logger.name

    def _generate_request_id(self) -> str:
        self._request_counter += 1
        return f"{self._exchange_id}-{self._request_counter}"

    def log_request(
        self,
        operation: str,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        body: Any = None,
        attempt: int = 1,
    ) -> str:
        """
        Log outgoing request.

        Returns:
            Request ID for correlation
        """
        request_id = self._generate_request_id()

        entry = RequestLogEntry(
            timestamp=_utc_now(),
            exchange_id=self._exchange_id,
            operation=operation,
            method=method,
            url=mask_url(url),
            request_id=request_id,
            attempt=attempt,
            headers=mask_headers(headers) if headers else None,
            params=mask_params(params) if params else None,
            body_hash=hash_body(body),
        )

        self._logger.debug(f"REQUEST: {entry.to_json()}")
        return request_id

    def log_response(
        self,
        operation: str,
        request_id: str,
        status_code: Optional[int],
        latency_ms: float,
        success: bool,
        error: Optional[BaseException] = None,
        response_body: Any = None,
    ) -> None:
        """Log incoming response or failure."""
        preview = None
        if response_body:
            if isinstance(response_body, (dict, list)):
                preview = json.dumps(response_body, default=str)[:200]
            else:
                preview = str(response_body)[:200]

        error_code = getattr(error, "exchange_code", None) if error else None
        error_message = getattr(error, "message", None) or (str(error) if error else None)

        entry = ResponseLogEntry(
            timestamp=_utc_now(),
            exchange_id=self._exchange_id,
            operation=operation,
            request_id=request_id,
            status_code=status_code,
            latency_ms=round(latency_ms, 3),
            success=success,
            error_kind=type(error).__name__ if error else None,
            error_code=error_code,
            error_message=error_message[:200] if error_message else None,
            response_preview=preview,
        )

        if success:
            self._logger.debug(f"RESPONSE: {entry.to_json()}")
        else:
            self._logger.warning(f"RESPONSE_ERROR: {entry.to_json()}")

    def info(self, message: str) -> None:
        self._logger.info(f"[{self._exchange_id}] {message}")

    def warning(self, message: str) -> None:
        self._logger.warning(f"[{self._exchange_id}] {message}")

    def error(self, message: str, exc_info: bool = False) -> None:
        self._logger.error(f"[{self._exchange_id}] {message}", exc_info=exc_info)

    def debug(self, message: str) -> None:
        self._logger.debug(f"[{self._exchange_id}] {message}")
