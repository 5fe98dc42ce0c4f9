"""
Exchange Gateway - Error Classification.

============================================================
PURPOSE
============================================================
Map a raw HTTP response onto the canonical error taxonomy
BEFORE any success-path parsing (exchanges report failures
under HTTP 200).

ORDER:
1. Structured JSON body -> exchange-specific table
2. Otherwise, or nothing matched -> HTTP status
   429 DDoSProtection, 401/403 AuthenticationError,
   5xx ExchangeNotAvailable, other >= 400 ExchangeError

============================================================
"""

import json
import logging
from typing import Any, Iterable, Mapping, Optional, Type

from .errors import (
    AuthenticationError,
    BaseError,
    ExchangeError,
    ExchangeNotAvailable,
    create_rate_limit_error,
)


logger = logging.getLogger(__name__)


def parse_json(body: Any) -> Any:
    """Decode a JSON object/array body, or None if it is not one."""
    if not isinstance(body, str):
        return body
    text = body.strip()
    if not text or text[0] not in "{[":
        return None
    try:
        return json.loads(text)
    except ValueError:
        return None


class ErrorClassifier:
    """
    Code-table classifier (zb).

    Reads `code_field`; success codes yield no error, mapped codes
    their kind, anything else the generic ExchangeError.
    """

    def __init__(
        self,
        exchange_id: str,
        exceptions: Optional[Mapping[str, Type[ExchangeError]]] = None,
        broad_exceptions: Optional[Mapping[str, Type[ExchangeError]]] = None,
        code_field: str = "code",
        success_codes: Iterable[str] = ("1000",),
    ):
        self.exchange_id = exchange_id
        self.exceptions = dict(exceptions or {})
        self.broad_exceptions = dict(broad_exceptions or {})
        self.code_field = code_field
        self.success_codes = {str(c) for c in success_codes}

    def classify(self, body: Any, http_status: int = 200) -> Optional[BaseError]:
        """
        Args:
            body: Raw response body (text)
            http_status: HTTP status code

        Returns:
            Error instance, or None when the response is a success
        """
        payload = parse_json(body)
        if isinstance(payload, dict):
            error = self.classify_payload(payload, http_status)
            if error is not None:
                return error
        return self.classify_status(http_status, payload if payload is not None else body)

    def classify_payload(self, payload: Mapping[str, Any], http_status: int) -> Optional[BaseError]:
        if self.code_field not in payload:
            return None
        code = str(payload[self.code_field])
        if code in self.success_codes:
            return None
        message = payload.get("message") or payload.get("msg") or ""
        kind = self.exceptions.get(code, ExchangeError)
        return self._build(kind, str(message), http_status, code, payload)

    def classify_status(self, http_status: int, raw: Any) -> Optional[BaseError]:
        if http_status < 400:
            return None
        if http_status == 429:
            return create_rate_limit_error(self.exchange_id, raw_response=raw, http_status=http_status)
        if http_status in (401, 403):
            kind = AuthenticationError
        elif http_status >= 500:
            kind = ExchangeNotAvailable
        else:
            kind = ExchangeError
        return self._build(kind, f"HTTP {http_status}", http_status, None, raw)

    def match_message(self, message: str) -> Optional[Type[ExchangeError]]:
        """Exact table first, then substring table."""
        if message in self.exceptions:
            return self.exceptions[message]
        for fragment, kind in self.broad_exceptions.items():
            if fragment in message:
                return kind
        return None

    def _build(
        self,
        kind: Type[BaseError],
        message: str,
        http_status: int,
        code: Optional[str],
        raw: Any,
    ) -> BaseError:
        return kind(
            message,
            exchange_id=self.exchange_id,
            http_status=http_status,
            exchange_code=code,
            raw_response=raw,
        )


class SuccessFlagClassifier(ErrorClassifier):
    """
    Success-flag classifier (liqui family).

    A falsy `success` marks failure; the `error` message (or `code`)
    is matched exactly, then by substring; unmatched -> ExchangeError.
    """

    def __init__(self, exchange_id, exceptions=None, broad_exceptions=None):
        super().__init__(
            exchange_id,
            exceptions=exceptions,
            broad_exceptions=broad_exceptions,
            code_field="success",
            success_codes=(),
        )

    @staticmethod
    def _is_success(flag: Any) -> bool:
        if isinstance(flag, str):
            return flag in ("true", "1")
        return bool(flag)

    def classify_payload(self, payload, http_status):
        if "success" not in payload or self._is_success(payload["success"]):
            return None

        code = payload.get("code")
        code = None if code is None else str(code)
        message = str(payload.get("error") or "")

        kind = None
        if code is not None:
            kind = self.exceptions.get(code)
        if kind is None:
            kind = self.match_message(message) or ExchangeError

        return self._build(kind, message, http_status, code, payload)
