"""
Exchange Gateway - Request Signing.

============================================================
PURPOSE
============================================================
Turn (path, api, method, params) into a ready-to-send request.

SCHEMES:
- ZBSigner:    SHA1(secret) as key, HMAC-MD5 over the raw sorted
               query string, signature and reqTime in the URL
- LiquiSigner: HMAC-SHA512 over the form body, Key/Sign headers

Public requests fill {placeholders} in the path from params and
encode the rest verbatim.

============================================================
"""

import hashlib
import hmac
import json
import logging
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Tuple
from urllib.parse import urlencode as _urlencode

from .errors import AuthenticationError


logger = logging.getLogger(__name__)


@dataclass
class SignedRequest:
    """Request descriptor handed to the transport."""

    url: str
    method: str = "GET"
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[str] = None


# ============================================================
# ENCODING HELPERS
# ============================================================

_PLACEHOLDER = re.compile(r"\{([^}]+)\}")


def extract_params(path: str) -> list:
    """Names of {placeholders} in a path template."""
    return _PLACEHOLDER.findall(path)


def implode_params(path: str, params: Mapping[str, Any]) -> str:
    """Fill {placeholders} in a path template."""
    return _PLACEHOLDER.sub(lambda m: str(params[m.group(1)]), path)


def omit(params: Mapping[str, Any], *keys: str) -> Dict[str, Any]:
    return {k: v for k, v in params.items() if k not in keys}


def keysort(params: Mapping[str, Any]) -> Dict[str, Any]:
    return dict(sorted(params.items()))


def urlencode(params: Mapping[str, Any]) -> str:
    """Percent-encoded query string, insertion order kept."""
    return _urlencode({k: _stringify(v) for k, v in params.items()})


def rawencode(params: Mapping[str, Any]) -> str:
    """Unescaped k=v&... query string, insertion order kept."""
    return "&".join(f"{k}={_stringify(v)}" for k, v in params.items())


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


# ============================================================
# NONCE
# ============================================================

class NonceGenerator:
    """
    Strictly increasing wall-clock nonce.

    resolution "ms" or "s". A clock step backwards (or two calls
    within the same tick) still yields last + 1.
    """

    def __init__(self, resolution: str = "ms", clock: Callable[[], float] = time.time):
        if resolution not in ("ms", "s"):
            raise ValueError(f"Unknown nonce resolution: {resolution}")
        self.resolution = resolution
        self._clock = clock
        self._last = 0

    def __call__(self) -> int:
        now = self._clock()
        value = int(now * 1000) if self.resolution == "ms" else int(now)
        self._last = max(value, self._last + 1)
        return self._last


# ============================================================
# SIGNERS
# ============================================================

class RequestSigner(ABC):
    """
    Base signer holding endpoint URLs, credentials and the nonce.
    """

    def __init__(
        self,
        exchange_id: str,
        urls: Mapping[str, str],
        version: Optional[str],
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        nonce: Optional[NonceGenerator] = None,
    ):
        self.exchange_id = exchange_id
        self.urls = dict(urls)
        self.version = version
        self.api_key = api_key
        self.api_secret = api_secret
        self.nonce = nonce or NonceGenerator()

    def check_credentials(self) -> None:
        missing = [
            name for name, value in (("api_key", self.api_key), ("api_secret", self.api_secret))
            if not value
        ]
        if missing:
            raise AuthenticationError(
                f"requires {', '.join(missing)}",
                exchange_id=self.exchange_id,
            )

    def base_url(self, api: str) -> str:
        try:
            return self.urls[api]
        except KeyError:
            raise ValueError(f"No base URL for api section '{api}'")

    @abstractmethod
    def sign(
        self,
        path: str,
        api: str = "public",
        method: str = "GET",
        params: Optional[Mapping[str, Any]] = None,
    ) -> SignedRequest:
        """Build the request for one endpoint call."""
        pass


class ZBSigner(RequestSigner):
    """
    zb scheme.

    query     = keysort({method: path, accesskey: key, **params})
    signature = HMAC-MD5(key=SHA1(secret).hex, msg=rawencode(query))
    url       = private/<path>?<query>&sign=<signature>&reqTime=<nonce>
    """

    def compute_signature(self, auth: str) -> str:
        secret = hashlib.sha1(self.api_secret.encode()).hexdigest()
        return hmac.new(secret.encode(), auth.encode(), hashlib.md5).hexdigest()

    def sign(self, path, api="public", method="GET", params=None) -> SignedRequest:
        params = dict(params or {})
        url = self.base_url(api)

        if api == "public":
            url += f"/{self.version}/{path}"
            if params:
                url += "?" + urlencode(params)
            return SignedRequest(url=url, method=method)

        self.check_credentials()
        query = keysort({"method": path, "accesskey": self.api_key, **params})
        auth = rawencode(query)
        nonce = self.nonce()
        signature = self.compute_signature(auth)
        url += f"/{path}?{auth}&sign={signature}&reqTime={nonce}"
        return SignedRequest(url=url, method=method)


class LiquiSigner(RequestSigner):
    """
    Liqui-family scheme (yobit, tidex).

    Private: POST form body nonce=..&method=<path>&<params>,
             Sign = HMAC-SHA512(secret, body) hex.
    Public:  <base>[/<version>]/<path with placeholders filled>?<rest>.
    Web:     <base>/<path>, GET query or JSON body.
    """

    def __init__(self, *args, version_in_url: bool = True, **kwargs):
        super().__init__(*args, **kwargs)
        self.version_in_url = version_in_url

    def compute_signature(self, body: str) -> str:
        return hmac.new(
            self.api_secret.encode(),
            body.encode(),
            hashlib.sha512,
        ).hexdigest()

    def _split(self, path: str, params: Mapping[str, Any]) -> Tuple[str, Dict[str, Any]]:
        query = omit(params, *extract_params(path))
        return implode_params(path, params), query

    def sign(self, path, api="public", method="GET", params=None) -> SignedRequest:
        params = dict(params or {})
        url = self.base_url(api)

        if api == "private":
            self.check_credentials()
            body = urlencode({"nonce": self.nonce(), "method": path, **params})
            headers = {
                "Content-Type": "application/x-www-form-urlencoded",
                "Key": self.api_key,
                "Sign": self.compute_signature(body),
            }
            return SignedRequest(url=url, method="POST", headers=headers, body=body)

        filled, query = self._split(path, params)

        if api == "public":
            if self.version_in_url and self.version:
                url += f"/{self.version}"
            url += f"/{filled}"
            if query:
                url += "?" + urlencode(query)
            return SignedRequest(url=url, method=method)

        url += f"/{filled}"
        if method == "GET":
            if query:
                url += "?" + urlencode(query)
            return SignedRequest(url=url, method=method)

        body = json.dumps(query) if query else None
        headers = {"Content-Type": "application/json"} if body else {}
        return SignedRequest(url=url, method=method, headers=headers, body=body)
