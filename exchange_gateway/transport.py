"""
Exchange Gateway - HTTP Transport.

============================================================
PURPOSE
============================================================
The raw HTTP seam used by adapters.

- AiohttpTransport: aiohttp.ClientSession, created lazily
- MockTransport:    scripted responses for tests, records requests

Transport failures become NetworkError / RequestTimeout and are
never reinterpreted as exchange errors.

============================================================
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional, Tuple, Union

import aiohttp

from .errors import NetworkError, RequestTimeout
from .signing import SignedRequest


logger = logging.getLogger(__name__)


@dataclass
class HttpResponse:
    """Raw HTTP response."""

    status: int
    body: str = ""
    headers: Dict[str, str] = field(default_factory=dict)


class Transport(ABC):
    """Abstract HTTP transport."""

    @abstractmethod
    async def fetch(self, request: SignedRequest, timeout: float) -> HttpResponse:
        """
        Execute one request.

        Raises:
            NetworkError: Connection-level failure
            RequestTimeout: No response within timeout
        """
        pass

    async def close(self) -> None:
        pass


# ============================================================
# AIOHTTP
# ============================================================

class AiohttpTransport(Transport):
    """Transport backed by one aiohttp.ClientSession."""

    def __init__(self, session: Optional[aiohttp.ClientSession] = None):
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def fetch(self, request: SignedRequest, timeout: float) -> HttpResponse:
        session = await self._get_session()
        try:
            async with session.request(
                request.method,
                request.url,
                headers=request.headers or None,
                data=request.body,
                timeout=aiohttp.ClientTimeout(total=timeout),
            ) as response:
                body = await response.text()
                return HttpResponse(
                    status=response.status,
                    body=body,
                    headers=dict(response.headers),
                )
        except asyncio.TimeoutError:
            raise RequestTimeout(
                f"{request.method} {request.url.split('?')[0]} timed out after {timeout}s",
            )
        except aiohttp.ClientError as e:
            raise NetworkError(
                f"Network error: {e}",
                context={"method": request.method, "url": request.url.split("?")[0]},
            )

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None


# ============================================================
# MOCK
# ============================================================

ScriptedResponse = Union[HttpResponse, BaseException]


class MockTransport(Transport):
    """
    Scripted transport for tests.

    Responses are registered against a substring of
    "<url> <body>"; the longest matching substring wins. Each match
    has a FIFO queue and its last response repeats once the queue is
    drained. Exceptions may be queued in place of responses.
    """

    def __init__(self):
        self._routes: List[Tuple[str, Deque[ScriptedResponse]]] = []
        self.requests: List[SignedRequest] = []
        self.closed = False

    def add_response(
        self,
        match: str,
        body: Any = None,
        status: int = 200,
        headers: Optional[Dict[str, str]] = None,
    ) -> "MockTransport":
        """
        Queue a response for requests containing `match`.

        Non-string bodies are JSON encoded.
        """
        if body is None:
            text = ""
        elif isinstance(body, str):
            text = body
        else:
            text = json.dumps(body)
        self._queue(match).append(HttpResponse(status=status, body=text, headers=headers or {}))
        return self

    def add_exception(self, match: str, error: BaseException) -> "MockTransport":
        self._queue(match).append(error)
        return self

    def _queue(self, match: str) -> Deque[ScriptedResponse]:
        for existing, queue in self._routes:
            if existing == match:
                return queue
        queue: Deque[ScriptedResponse] = deque()
        self._routes.append((match, queue))
        return queue

    def requests_matching(self, match: str) -> List[SignedRequest]:
        return [r for r in self.requests if match in f"{r.url} {r.body or ''}"]

    async def fetch(self, request: SignedRequest, timeout: float) -> HttpResponse:
        self.requests.append(request)
        key = f"{request.url} {request.body or ''}"

        candidates = [(m, q) for m, q in self._routes if m in key and q]
        if not candidates:
            raise AssertionError(f"No scripted response for {request.method} {key}")

        # Longest match wins so "getOrdersNew" beats "getOrder"
        _, queue = max(candidates, key=lambda item: len(item[0]))
        scripted = queue.popleft() if len(queue) > 1 else queue[0]
        if isinstance(scripted, BaseException):
            raise scripted
        return scripted

    async def close(self) -> None:
        self.closed = True
