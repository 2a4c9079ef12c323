"""
OAuth 2.0 token lifecycle for the Payfirma API.

TokenStore owns the Credentials of one SDK instance. It performs the three
grant flows against ``{auth_url}/oauth/token``, validates expiry against a
safety buffer, and refreshes transparently when a caller asks for a usable
token.

Token states:

- no credentials: every token request fails with AuthenticationError
- valid: more than ``token_refresh_buffer`` seconds until expiry
- expiring soon: inside the buffer with a refresh token, refreshed on demand
- expired without refresh token: AuthenticationError until a new grant

Refreshes are single-flight. The first caller that needs a refresh starts one
asyncio task; concurrent callers await the same task and share its result or
its failure. The task releases the slot when it settles, so a failed refresh
can be retried by the next caller. Waiters are shielded: cancelling one
caller never cancels a refresh other callers are waiting on.
"""

from __future__ import annotations

import asyncio
import base64
import json
import time
from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Optional
from urllib.parse import urlencode

from payfirma.config import Environment, PayfirmaConfig
from payfirma.errors import AuthenticationError, classify_error
from payfirma.http_client import FORM_CONTENT_TYPE, HttpTransport, TransportError
from payfirma.logging_config import get_logger
from payfirma.serialization import SerializableMixin

logger = get_logger(__name__)

TOKEN_PATH = "/oauth/token"
REVOKE_PATH = "/oauth/revoke_token"
AUTHORIZE_PATH = "/oauth/authorize"


@dataclass
class Credentials(SerializableMixin):
    """Access token plus the metadata needed to keep it usable.

    ``expires_at`` is an absolute UNIX timestamp in seconds.
    """

    access_token: str
    expires_at: float
    refresh_token: Optional[str] = None
    merchant_id: Optional[str] = None
    scope: Optional[list[str]] = None
    token_type: str = "Bearer"

    def __repr__(self) -> str:
        return (
            f"Credentials(expires_at={self.expires_at!r}, merchant_id={self.merchant_id!r}, "
            f"scope={self.scope!r}, has_refresh_token={self.refresh_token is not None})"
        )

    @classmethod
    def from_token_response(cls, data: dict[str, Any], now: float) -> Credentials:
        """Build credentials from an ``/oauth/token`` response body."""
        scope = data.get("scope")
        if isinstance(scope, str):
            scope = scope.split()
        return cls(
            access_token=data["access_token"],
            expires_at=now + float(data.get("expires_in") or 0),
            refresh_token=data.get("refresh_token") or None,
            merchant_id=data.get("merchant_id") or None,
            scope=scope or None,
            token_type=data.get("token_type") or "Bearer",
        )


@dataclass
class TokenValidation(SerializableMixin):
    """Result of a local expiry check."""

    valid: bool
    expires_at: Optional[float] = None
    reason: Optional[str] = None
    needs_refresh: Optional[bool] = None

    _omit_none: ClassVar[bool] = True


class TokenStore:
    """Holds credentials and coordinates grants, refreshes and revocation.

    Args:
        config: SDK configuration supplying client credentials, timeout and
            the refresh buffer.
        environment: Hosts to talk to. Defaults to ``config.environment``.
        transport: Transport rooted at the auth host. Created from the config
            when omitted.
        clock: Returns the current UNIX time in seconds.
    """

    def __init__(
        self,
        config: PayfirmaConfig,
        environment: Environment | None = None,
        *,
        transport: HttpTransport | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self._config = config
        self._environment = environment or config.environment
        self._transport = transport or HttpTransport(
            self._environment.auth_url,
            timeout=config.timeout,
            user_agent=config.user_agent,
        )
        self._clock = clock
        self._credentials: Credentials | None = None
        self._refresh_task: asyncio.Task[Credentials] | None = None

    @property
    def environment(self) -> Environment:
        return self._environment

    @property
    def refresh_in_progress(self) -> bool:
        return self._refresh_task is not None

    def configure(self, config: PayfirmaConfig, environment: Environment | None = None) -> None:
        """Swap in a replaced configuration. Stored credentials are kept."""
        self._config = config
        self._environment = environment or config.environment
        self._transport = self._transport.with_base_url(
            self._environment.auth_url,
            timeout=config.timeout,
            user_agent=config.user_agent,
        )

    # ------------------------------------------------------------------
    # Grants
    # ------------------------------------------------------------------

    async def client_credentials_grant(self) -> Credentials:
        """Obtain a merchant token with the client id and secret."""
        return await self._request_token({"grant_type": "client_credentials"})

    async def authorization_code_grant(
        self,
        code: str,
        redirect_uri: str,
        state: str | None = None,
    ) -> Credentials:
        """Exchange an authorization code from the OAuth redirect for a token."""
        return await self._request_token(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri,
                "state": state,
            }
        )

    async def refresh_token(self, refresh_token: str | None = None) -> Credentials:
        """Refresh the access token, sharing any refresh already in flight.

        Uses ``refresh_token`` when given, otherwise the stored one.

        Raises:
            AuthenticationError: No refresh token is available, or the
                refresh was rejected.
        """
        task = self._refresh_task
        if task is None:
            token = refresh_token or (
                self._credentials.refresh_token if self._credentials else None
            )
            if not token:
                raise AuthenticationError("No refresh token available")
            task = asyncio.ensure_future(self._run_refresh(token))
            task.add_done_callback(_log_refresh_outcome)
            self._refresh_task = task
        else:
            logger.debug("Joining token refresh already in progress")
        return await asyncio.shield(task)

    async def _run_refresh(self, token: str) -> Credentials:
        try:
            return await self._request_token(
                {"grant_type": "refresh_token", "refresh_token": token}
            )
        finally:
            self._refresh_task = None

    async def _request_token(self, params: dict[str, Any]) -> Credentials:
        grant_type = params["grant_type"]
        body = {
            **params,
            "client_id": self._config.client_id,
            "client_secret": self._config.client_secret,
        }
        headers = {
            "Content-Type": FORM_CONTENT_TYPE,
            "Authorization": self._basic_auth_header(),
        }
        try:
            response = await self._transport.post(TOKEN_PATH, headers=headers, body=body)
        except TransportError as e:
            logger.warning("Token request failed", grant_type=grant_type, error_type=type(e).__name__)
            raise classify_error(e, context="authentication", fallback=AuthenticationError) from e

        data = response.data
        if not isinstance(data, dict) or not data.get("access_token"):
            raise AuthenticationError(
                "Token response did not include an access token",
                {"grant_type": grant_type, "status": response.status},
            )

        credentials = Credentials.from_token_response(data, self._clock())
        self._credentials = credentials
        logger.info(
            "Access token acquired",
            grant_type=grant_type,
            expires_in=data.get("expires_in"),
            merchant_id=credentials.merchant_id,
        )
        return credentials

    def _basic_auth_header(self) -> str:
        raw = f"{self._config.client_id}:{self._config.client_secret}".encode("utf-8")
        return "Basic " + base64.b64encode(raw).decode("ascii")

    # ------------------------------------------------------------------
    # Token access
    # ------------------------------------------------------------------

    def validate_token(self) -> TokenValidation:
        """Check the stored token against the clock. Local only, never raises."""
        credentials = self._credentials
        if credentials is None:
            return TokenValidation(valid=False, reason="No credentials available")

        remaining = credentials.expires_at - self._clock()
        if remaining <= self._config.token_refresh_buffer:
            return TokenValidation(
                valid=False,
                expires_at=credentials.expires_at,
                reason="Token expired or expiring soon",
                needs_refresh=bool(credentials.refresh_token),
            )
        return TokenValidation(valid=True, expires_at=credentials.expires_at)

    async def get_valid_token(self) -> str:
        """Return a usable access token, refreshing first when needed.

        Raises:
            AuthenticationError: No credentials, or expired without a
                refresh token.
        """
        validation = self.validate_token()
        credentials = self._credentials
        if validation.valid and credentials is not None:
            return credentials.access_token
        if validation.needs_refresh:
            credentials = await self.refresh_token()
            return credentials.access_token
        raise AuthenticationError(
            "No valid token available and cannot refresh",
            {"reason": validation.reason},
        )

    async def get_auth_header(self) -> dict[str, str]:
        token = await self.get_valid_token()
        return {"Authorization": f"Bearer {token}"}

    def set_credentials(self, credentials: Credentials) -> None:
        """Install credentials restored by the application."""
        self._credentials = credentials

    def get_credentials(self) -> Credentials | None:
        return self._credentials

    def clear_credentials(self) -> None:
        self._credentials = None

    async def revoke_token(self) -> None:
        """Revoke the access token remotely and forget it locally.

        Remote failures are logged and ignored; local credentials are
        cleared in every case.
        """
        credentials = self._credentials
        if credentials is None:
            return
        try:
            await self._transport.delete(
                REVOKE_PATH,
                headers={"Authorization": f"Bearer {credentials.access_token}"},
            )
            logger.info("Access token revoked")
        except TransportError as e:
            logger.warning("Token revocation failed, clearing local credentials", error=str(e))
        finally:
            self._credentials = None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def get_authorization_url(
        self,
        redirect_uri: str,
        state: str | None = None,
        scopes: list[str] | None = None,
    ) -> str:
        """Build the URL to send a merchant to for the authorization-code flow."""
        query: dict[str, str] = {
            "response_type": "code",
            "client_id": self._config.client_id,
            "redirect_uri": redirect_uri,
        }
        if state:
            query["state"] = state
        if scopes:
            query["scope"] = " ".join(scopes)
        return f"{self._environment.auth_url}{AUTHORIZE_PATH}?{urlencode(query)}"

    @staticmethod
    def parse_token_payload(token: str) -> dict[str, Any]:
        """Decode the claims segment of a three-part JWT-style token.

        The signature is not verified.

        Raises:
            AuthenticationError: The token is malformed.
        """
        parts = token.split(".") if isinstance(token, str) else []
        if len(parts) != 3 or not parts[1]:
            raise AuthenticationError(
                "Invalid token format",
                {"original_error": "Token must have three dot-separated segments"},
            )
        segment = parts[1].replace("+", "-").replace("/", "_")
        segment += "=" * (-len(segment) % 4)
        try:
            payload = json.loads(base64.urlsafe_b64decode(segment).decode("utf-8"))
        except ValueError as e:
            raise AuthenticationError("Invalid token format", {"original_error": str(e)}) from e
        if not isinstance(payload, dict):
            raise AuthenticationError(
                "Invalid token format",
                {"original_error": "Token payload is not a JSON object"},
            )
        return payload

    async def close(self) -> None:
        await self._transport.close()


def _log_refresh_outcome(task: asyncio.Task) -> None:
    if task.cancelled():
        logger.warning("Token refresh was cancelled")
        return
    error = task.exception()
    if error is not None:
        logger.warning("Token refresh failed", error_type=type(error).__name__)


__all__ = [
    "Credentials",
    "TokenStore",
    "TokenValidation",
]
