"""
Shared pytest fixtures for the Payfirma SDK test suite.

Network access is never used. Tests drive the real HttpTransport through
RoutedSession, a stand-in for aiohttp.ClientSession that answers requests from
canned responses keyed by method and URL path and records every call.
"""

import asyncio
import json
from types import SimpleNamespace
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock
from urllib.parse import urlsplit

import pytest

from payfirma.auth import Credentials, TokenStore
from payfirma.client import PayfirmaClient
from payfirma.config import SANDBOX, PayfirmaConfig
from payfirma.http_client import HttpTransport

START_TIME = 1_700_000_000.0


# ============================================================================
# Response and session fakes
# ============================================================================


def make_response(
    status: int = 200,
    body: Any = None,
    headers: dict[str, str] | None = None,
    content_type: str = "application/json",
    reason: str = "OK",
    delay: float = 0.0,
    charset: str | None = None,
) -> MagicMock:
    """Create a mock aiohttp response usable as an async context manager.

    ``body`` may be a dict/list (JSON encoded), a str (UTF-8 encoded), raw
    bytes (sent verbatim) or None. ``delay`` makes entering the response
    context sleep first.
    """
    response = MagicMock()
    response.status = status
    response.reason = reason
    response.content_type = content_type
    response.charset = charset
    response.headers = headers or {}
    if body is None:
        raw = b""
    elif isinstance(body, bytes):
        raw = body
    elif isinstance(body, str):
        raw = body.encode("utf-8")
    else:
        raw = json.dumps(body).encode("utf-8")
    response.read = AsyncMock(return_value=raw)

    async def enter(*args):
        if delay:
            await asyncio.sleep(delay)
        return response

    response.__aenter__ = AsyncMock(side_effect=enter)
    response.__aexit__ = AsyncMock(return_value=None)
    return response


def make_failing_response(error: BaseException) -> MagicMock:
    """A response context manager whose entry raises ``error``."""
    response = MagicMock()
    response.__aenter__ = AsyncMock(side_effect=error)
    response.__aexit__ = AsyncMock(return_value=None)
    return response


class RoutedSession:
    """Mock aiohttp.ClientSession routing on (METHOD, path).

    Each route holds a list of responses. Calls consume them in order and
    keep answering with the last one once the list is down to one entry.
    """

    def __init__(self):
        self.routes: dict[tuple[str, str], list[MagicMock]] = {}
        self.handlers: dict[tuple[str, str], Callable[[SimpleNamespace], MagicMock]] = {}
        self.calls: list[SimpleNamespace] = []
        self.closed = False

    def add(self, method: str, path: str, *responses: MagicMock) -> None:
        self.routes[(method.upper(), path)] = list(responses)

    def handle(self, method: str, path: str, handler: Callable[[SimpleNamespace], MagicMock]) -> None:
        """Answer a route by calling ``handler`` with the recorded call."""
        self.handlers[(method.upper(), path)] = handler

    def request(self, method: str, url: str, **kwargs: Any) -> MagicMock:
        parts = urlsplit(url)
        call = SimpleNamespace(method=method, url=url, host=parts.netloc, path=parts.path, **kwargs)
        self.calls.append(call)
        handler = self.handlers.get((method.upper(), parts.path))
        if handler is not None:
            return handler(call)
        queue = self.routes.get((method.upper(), parts.path))
        if not queue:
            return make_response(404, {"message": f"no route for {method} {parts.path}"})
        return queue.pop(0) if len(queue) > 1 else queue[0]

    def calls_to(self, method: str, path: str) -> list[SimpleNamespace]:
        return [c for c in self.calls if c.method == method and c.path == path]

    async def close(self) -> None:
        self.closed = True


class FakeClock:
    """Settable time source in UNIX seconds."""

    def __init__(self, now: float = START_TIME):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def token_body(
    access_token: str = "access-1",
    refresh_token: str | None = "refresh-1",
    expires_in: int = 3600,
    **extra: Any,
) -> dict[str, Any]:
    body: dict[str, Any] = {
        "access_token": access_token,
        "token_type": "Bearer",
        "expires_in": expires_in,
        "scope": "ecom invoice",
        "merchant_id": "merchant-42",
        **extra,
    }
    if refresh_token is not None:
        body["refresh_token"] = refresh_token
    return body


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def routed_session():
    """Fresh RoutedSession with no routes."""
    return RoutedSession()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    """Sandbox configuration with test credentials."""
    return PayfirmaConfig(client_id="test-client", client_secret="test-secret", sandbox=True)


@pytest.fixture
def auth_transport(routed_session):
    return HttpTransport(SANDBOX.auth_url, session=routed_session)


@pytest.fixture
def token_store(config, auth_transport, clock):
    """TokenStore wired to the routed session and fake clock."""
    return TokenStore(config, transport=auth_transport, clock=clock)


@pytest.fixture
def client(config, routed_session, clock):
    """Uninitialized PayfirmaClient over the routed session."""
    return PayfirmaClient(config, session=routed_session, clock=clock)


@pytest.fixture
def authed_client(client, clock):
    """PayfirmaClient holding a token valid for one hour."""
    client.auth.set_credentials(
        Credentials(
            access_token="live-token",
            refresh_token="refresh-token",
            expires_at=clock() + 3600,
        )
    )
    return client
