"""
HTTP transport for the Payfirma API.

HttpTransport executes exactly one request and either returns a
TransportResponse or raises a TransportError. It never classifies failures
and never retries; the service layer maps TransportError instances into the
SDK's typed errors once (see payfirma.errors).

All sessions are aiohttp ClientSessions with explicit timeouts. A transport
creates its session lazily inside the running event loop, and transports
derived with ``with_base_url`` share it:

    transport = HttpTransport("https://apigateway.payfirma.com", timeout=30)
    gateway = transport.with_base_url("https://apigateway.payfirma.com/plan-service")
    try:
        resp = await gateway.get("/plan", headers={"Authorization": "Bearer ..."})
        print(resp.status, resp.data)
    finally:
        await transport.close()
"""

from __future__ import annotations

import asyncio
import json
import time
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

import aiohttp
from aiohttp import ClientTimeout

from payfirma.__version__ import USER_AGENT
from payfirma.logging_config import get_logger
from payfirma.transformers import transform_keys_to_camel, transform_keys_to_snake

logger = get_logger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json"

DEFAULT_TIMEOUT = ClientTimeout(
    total=30,  # Total time for the entire request
    connect=10,  # Time to establish connection
    sock_read=20,  # Time to read response
)


def create_client_session(
    timeout: ClientTimeout | None = None,
    **kwargs,
) -> aiohttp.ClientSession:
    """Create an aiohttp ClientSession with proper timeout configuration.

    Args:
        timeout: Optional custom timeout. Uses DEFAULT_TIMEOUT if not specified.
        **kwargs: Additional arguments passed to ClientSession.
    """
    if timeout is None:
        timeout = DEFAULT_TIMEOUT
    return aiohttp.ClientSession(timeout=timeout, **kwargs)


# ============================================================================
# Transport failures
# ============================================================================


class TransportError(Exception):
    """Base class for failures raised by HttpTransport."""

    def __init__(self, message: str, method: str = "", url: str = ""):
        super().__init__(message)
        self.method = method
        self.url = url


class TransportTimeoutError(TransportError):
    """The request did not finish within the transport timeout."""

    def __init__(self, method: str, url: str, timeout: float):
        super().__init__(f"{method} {url} timed out after {timeout}s", method, url)
        self.timeout = timeout


class TransportConnectionError(TransportError):
    """No HTTP response was received (DNS, refused connection, reset, TLS)."""


class HTTPStatusError(TransportError):
    """The server answered with a non-2xx status."""

    def __init__(
        self,
        method: str,
        url: str,
        status: int,
        reason: str,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
    ):
        super().__init__(f"HTTP {status} {reason} for {method} {url}", method, url)
        self.status = status
        self.reason = reason
        self.body = body
        self.headers = dict(headers or {})
        self.request_id = get_header(self.headers, "X-Request-Id")


def get_header(headers: Mapping[str, str], name: str) -> Optional[str]:
    """Case-insensitive header lookup over a plain mapping."""
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


@dataclass
class TransportResponse:
    """Decoded response of a successful call."""

    data: Any
    status: int
    status_text: str = ""
    headers: dict[str, str] = field(default_factory=dict)


class _SessionHolder:
    """Owns the aiohttp session shared by a family of transports."""

    def __init__(self, session: aiohttp.ClientSession | None = None):
        self._session = session
        self._owned = session is None

    def get(self) -> aiohttp.ClientSession:
        if self._session is None or (self._owned and self._session.closed):
            self._session = create_client_session()
            self._owned = True
        return self._session

    async def close(self) -> None:
        if self._session is not None and self._owned:
            if not self._session.closed:
                await self._session.close()
            self._session = None


class HttpTransport:
    """Executes single HTTP requests against one base URL.

    Args:
        base_url: Prefix joined with each request path.
        timeout: Seconds before an in-flight call is cancelled.
        transform_request: Rewrite JSON request bodies to snake_case keys.
        transform_response: Rewrite JSON response bodies to camelCase keys.
        headers: Extra default headers. Per-call headers override these.
        user_agent: User-Agent header value.
        session: Caller-owned aiohttp session. Never closed by the transport.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        transform_request: bool = False,
        transform_response: bool = False,
        headers: Mapping[str, str] | None = None,
        user_agent: str = USER_AGENT,
        session: aiohttp.ClientSession | None = None,
        _holder: _SessionHolder | None = None,
    ):
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transform_request = transform_request
        self.transform_response = transform_response
        self.user_agent = user_agent
        self._extra_headers = dict(headers or {})
        self._holder = _holder or _SessionHolder(session)

    def with_base_url(self, base_url: str, **overrides: Any) -> HttpTransport:
        """Derive a transport for another base URL sharing this session."""
        options: dict[str, Any] = {
            "timeout": self.timeout,
            "transform_request": self.transform_request,
            "transform_response": self.transform_response,
            "headers": self._extra_headers,
            "user_agent": self.user_agent,
        }
        options.update(overrides)
        return HttpTransport(base_url, _holder=self._holder, **options)

    @property
    def default_headers(self) -> dict[str, str]:
        return {
            "Content-Type": JSON_CONTENT_TYPE,
            "Accept": JSON_CONTENT_TYPE,
            "User-Agent": self.user_agent,
            **self._extra_headers,
        }

    async def close(self) -> None:
        """Close the shared session if this transport family created it."""
        await self._holder.close()

    # ------------------------------------------------------------------
    # Request helpers
    # ------------------------------------------------------------------

    async def get(self, path: str, **kwargs: Any) -> TransportResponse:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> TransportResponse:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> TransportResponse:
        return await self.request("PUT", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> TransportResponse:
        return await self.request("DELETE", path, **kwargs)

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        body: Any = None,
    ) -> TransportResponse:
        """Execute one request.

        Raises:
            TransportTimeoutError: The call exceeded ``timeout`` and was cancelled.
            TransportConnectionError: No response was received.
            HTTPStatusError: The response status was not 2xx.
        """
        method = method.upper()
        url = self._build_url(path)
        merged_headers = {**self.default_headers, **(headers or {})}
        content_type = get_header(merged_headers, "Content-Type") or JSON_CONTENT_TYPE
        data = self._encode_body(body, content_type)
        query = _encode_params(params)

        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._send(method, url, query, merged_headers, data),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            logger.debug("HTTP request timed out", method=method, url=url, timeout=self.timeout)
            raise TransportTimeoutError(method, url, self.timeout) from e
        except aiohttp.ClientError as e:
            logger.debug("HTTP request failed", method=method, url=url, error_type=type(e).__name__)
            raise TransportConnectionError(f"{method} {url} failed: {e}", method, url) from e
        except OSError as e:
            raise TransportConnectionError(f"{method} {url} failed: {e}", method, url) from e

        logger.debug(
            "HTTP request completed",
            method=method,
            url=url,
            status=response.status,
            duration_ms=round((time.monotonic() - start) * 1000, 2),
        )
        if not 200 <= response.status < 300:
            raise HTTPStatusError(
                method,
                url,
                response.status,
                response.status_text,
                response.data,
                response.headers,
            )
        return response

    def _build_url(self, path: str) -> str:
        if not path:
            return self.base_url
        if not path.startswith("/"):
            path = "/" + path
        return self.base_url + path

    def _encode_body(self, body: Any, content_type: str) -> Any:
        if body is None:
            return None
        if content_type.startswith(FORM_CONTENT_TYPE):
            return {k: str(v) for k, v in body.items() if v is not None}
        payload = transform_keys_to_snake(body) if self.transform_request else body
        return json.dumps(payload)

    async def _send(
        self,
        method: str,
        url: str,
        params: dict[str, str] | None,
        headers: dict[str, str],
        data: Any,
    ) -> TransportResponse:
        session = self._holder.get()
        async with session.request(
            method,
            url,
            params=params,
            headers=headers,
            data=data,
            timeout=ClientTimeout(total=self.timeout),
        ) as resp:
            text = _decode_text(await resp.read(), resp.charset)
            response_headers = dict(resp.headers or {})
            return TransportResponse(
                data=self._decode_body(text, resp.content_type or ""),
                status=resp.status,
                status_text=resp.reason or "",
                headers=response_headers,
            )

    def _decode_body(self, text: str, content_type: str) -> Any:
        if "json" not in content_type.lower():
            return text
        if not text.strip():
            return None
        try:
            data = json.loads(text)
        except ValueError:
            # Mislabelled body; hand back the text unchanged
            return text
        return transform_keys_to_camel(data) if self.transform_response else data


def _decode_text(raw: bytes, charset: str | None) -> str:
    """Decode a response body, replacing bytes the charset cannot represent."""
    try:
        return raw.decode(charset or "utf-8", errors="replace")
    except LookupError:
        # Unknown charset label
        return raw.decode("utf-8", errors="replace")


def _encode_params(params: Mapping[str, Any] | None) -> dict[str, str] | None:
    if not params:
        return None
    encoded: dict[str, str] = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            encoded[key] = "true" if value else "false"
        else:
            encoded[key] = str(value)
    return encoded or None


__all__ = [
    "DEFAULT_TIMEOUT",
    "FORM_CONTENT_TYPE",
    "JSON_CONTENT_TYPE",
    "HTTPStatusError",
    "HttpTransport",
    "TransportConnectionError",
    "TransportError",
    "TransportResponse",
    "TransportTimeoutError",
    "create_client_session",
    "get_header",
]
