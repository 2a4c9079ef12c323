"""
PayfirmaClient: the SDK entry point.

Wires one TokenStore and the resource services around a shared aiohttp
session:

    async with PayfirmaClient.create_sandbox("client-id", "client-secret") as client:
        await client.initialize()
        plans = await client.plans.get_active_plans()
        sale = await client.transactions.quick_sale(10.00, "4111111111111111", 11, 30, "123")

Configuration is validated on construction, before any network activity.
``update_config`` replaces the configuration wholesale and rebinds the token
store and services to the recomputed environment.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, ClassVar, Optional, Union

import aiohttp

from payfirma.auth import Credentials, TokenStore
from payfirma.config import Environment, PayfirmaConfig
from payfirma.errors import ConfigurationError, PayfirmaError
from payfirma.http_client import HttpTransport
from payfirma.logging_config import get_logger
from payfirma.serialization import SerializableMixin
from payfirma.services import (
    CustomerService,
    EFTService,
    InvoiceService,
    PlanService,
    TerminalService,
    TransactionService,
)

logger = get_logger(__name__)

DEFAULT_TOKEN_LIFETIME_SECONDS = 12 * 60 * 60
DEFAULT_SCOPE = ["ecom", "invoice", "terminal", "eft"]


@dataclass
class AuthStatus(SerializableMixin):
    """Snapshot of the client's authentication state."""

    is_authenticated: bool
    token_valid: bool
    expires_at: Optional[float] = None
    needs_refresh: Optional[bool] = None

    _omit_none: ClassVar[bool] = True


class PayfirmaClient:
    """Async client for the Payfirma API.

    Args:
        config: Validated SDK configuration.
        session: Optional caller-owned aiohttp session. When omitted the
            client creates one lazily and closes it in ``close()``.
        clock: Time source in UNIX seconds, used for token expiry.
    """

    def __init__(
        self,
        config: PayfirmaConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self._config = config
        self._environment = config.environment
        self._clock = clock
        self._initialized = False
        self._transport = HttpTransport(
            self._environment.gateway_url,
            timeout=config.timeout,
            transform_request=config.transform_requests,
            transform_response=config.transform_responses,
            user_agent=config.user_agent,
            session=session,
        )
        self.auth = TokenStore(
            config,
            self._environment,
            transport=self._auth_transport(),
            clock=clock,
        )
        self._bind_services()
        logger.debug("Payfirma client created", environment=self._environment.name)

    def _auth_transport(self) -> HttpTransport:
        return self._transport.with_base_url(
            self._environment.auth_url,
            transform_request=False,
            transform_response=False,
        )

    def _bind_services(self) -> None:
        env, auth, transport = self._environment, self.auth, self._transport
        self.customers = CustomerService(env, auth, transport)
        self.plans = PlanService(env, auth, transport)
        self.transactions = TransactionService(env, auth, transport)
        self.invoices = InvoiceService(env, auth, transport)
        self.terminals = TerminalService(env, auth, transport)
        self.eft = EFTService(env, auth, transport)

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def create(cls, config: PayfirmaConfig | None = None, **options: Any) -> PayfirmaClient:
        """Build a client from a config, keyword options, or the environment."""
        if config is None:
            config = PayfirmaConfig.from_env(**options)
        elif options:
            config = config.with_overrides(**options)
        return cls(config)

    @classmethod
    def create_sandbox(cls, client_id: str, client_secret: str, **options: Any) -> PayfirmaClient:
        return cls(PayfirmaConfig(client_id=client_id, client_secret=client_secret, sandbox=True, **options))

    @classmethod
    def create_production(cls, client_id: str, client_secret: str, **options: Any) -> PayfirmaClient:
        return cls(PayfirmaConfig(client_id=client_id, client_secret=client_secret, sandbox=False, **options))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Obtain a merchant token with the client-credentials grant.

        Idempotent once it has succeeded.

        Raises:
            ConfigurationError: The grant failed. The typed cause is chained.
        """
        if self._initialized:
            return
        try:
            await self.auth.client_credentials_grant()
        except PayfirmaError as e:
            raise ConfigurationError(
                "Failed to initialize SDK: Authentication failed",
                {"original_error": e.message},
                cause=e,
            ) from e
        self._initialized = True
        logger.info("Payfirma client initialized", environment=self._environment.name)

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def environment(self) -> Environment:
        return self._environment

    @property
    def config(self) -> PayfirmaConfig:
        return self._config

    def get_current_environment(self) -> str:
        return self._environment.name

    def update_config(self, **changes: Any) -> PayfirmaConfig:
        """Replace the configuration and rebind every service to it.

        Credentials held by the token store are kept.

        Raises:
            ConfigurationError: The merged configuration is invalid. The
                current configuration is left untouched.
        """
        config = self._config.with_overrides(**changes)
        self._config = config
        self._environment = config.environment
        self._transport = self._transport.with_base_url(
            self._environment.gateway_url,
            timeout=config.timeout,
            transform_request=config.transform_requests,
            transform_response=config.transform_responses,
            user_agent=config.user_agent,
        )
        self.auth.configure(config, self._environment)
        self._bind_services()
        logger.info("Payfirma configuration updated", environment=self._environment.name)
        return config

    async def close(self) -> None:
        await self._transport.close()

    async def __aenter__(self) -> PayfirmaClient:
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Authentication shortcuts
    # ------------------------------------------------------------------

    def set_credentials(
        self,
        access_token: str,
        refresh_token: str | None = None,
        expires_at: Union[float, datetime, None] = None,
    ) -> None:
        """Install a token obtained elsewhere and mark the client initialized.

        Without ``expires_at`` the token is assumed to live 12 hours.
        """
        if isinstance(expires_at, datetime):
            expires_at = expires_at.timestamp()
        self.auth.set_credentials(
            Credentials(
                access_token=access_token,
                refresh_token=refresh_token,
                expires_at=(
                    expires_at
                    if expires_at is not None
                    else self._clock() + DEFAULT_TOKEN_LIFETIME_SECONDS
                ),
                scope=list(DEFAULT_SCOPE),
            )
        )
        self._initialized = True

    def get_authorization_url(
        self,
        redirect_uri: str,
        state: str | None = None,
        scopes: list[str] | None = None,
    ) -> str:
        return self.auth.get_authorization_url(redirect_uri, state, scopes)

    async def exchange_code_for_token(
        self, code: str, redirect_uri: str, state: str | None = None
    ) -> Credentials:
        credentials = await self.auth.authorization_code_grant(code, redirect_uri, state)
        self._initialized = True
        return credentials

    async def refresh_token(self, refresh_token: str | None = None) -> Credentials:
        return await self.auth.refresh_token(refresh_token)

    async def revoke(self) -> None:
        await self.auth.revoke_token()
        self._initialized = False

    def get_auth_status(self) -> AuthStatus:
        validation = self.auth.validate_token()
        return AuthStatus(
            is_authenticated=self.auth.get_credentials() is not None,
            token_valid=validation.valid,
            expires_at=validation.expires_at,
            needs_refresh=validation.needs_refresh,
        )


__all__ = ["AuthStatus", "PayfirmaClient"]
