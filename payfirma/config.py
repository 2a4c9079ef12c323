"""
SDK configuration and environment resolution.

PayfirmaConfig is a frozen dataclass validated on construction, so an invalid
configuration fails with ConfigurationError before any network activity.
Updates never mutate an existing instance: ``with_overrides`` returns a new,
re-validated config, and the derived Environment is recomputed from it.

Example:
    config = PayfirmaConfig(client_id="id", client_secret="secret", sandbox=True)
    config.environment.gateway_url
    # "https://sandbox-apigateway.payfirma.com"

    slower = config.with_overrides(timeout=60)
"""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass, field
from typing import Any, Optional

from payfirma.__version__ import USER_AGENT
from payfirma.exceptions import ConfigurationError, ErrorCode

DEFAULT_TIMEOUT_SECONDS = 30.0
MIN_TIMEOUT_SECONDS = 1.0
MAX_TIMEOUT_SECONDS = 300.0
DEFAULT_TOKEN_REFRESH_BUFFER_SECONDS = 300.0

# Optional fields where None means "use the environment default"
CLEARABLE_FIELDS = frozenset({"auth_url", "gateway_url"})


@dataclass(frozen=True)
class Environment:
    """Resolved base URLs for one deployment of the Payfirma API."""

    name: str
    auth_url: str
    gateway_url: str

    @property
    def is_sandbox(self) -> bool:
        return self.name == "sandbox"


SANDBOX = Environment(
    name="sandbox",
    auth_url="https://sandbox-auth.payfirma.com",
    gateway_url="https://sandbox-apigateway.payfirma.com",
)

PRODUCTION = Environment(
    name="production",
    auth_url="https://auth.payfirma.com",
    gateway_url="https://apigateway.payfirma.com",
)


@dataclass(frozen=True)
class PayfirmaConfig:
    """Configuration for one SDK instance.

    Attributes:
        client_id: OAuth client id issued by Payfirma.
        client_secret: OAuth client secret. Excluded from repr.
        sandbox: Use the sandbox hosts instead of production.
        timeout: Per-request timeout in seconds, within [1, 300].
        auth_url: Override for the auth host.
        gateway_url: Override for the API gateway host.
        transform_requests: Rewrite outbound JSON keys to snake_case.
        transform_responses: Rewrite inbound JSON keys to camelCase.
        token_refresh_buffer: Seconds before expiry at which a token is
            treated as expiring and refreshed.
        user_agent: User-Agent header sent with every request.
    """

    client_id: str
    client_secret: str = field(repr=False)
    sandbox: bool = False
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    auth_url: Optional[str] = None
    gateway_url: Optional[str] = None
    transform_requests: bool = True
    transform_responses: bool = False
    token_refresh_buffer: float = DEFAULT_TOKEN_REFRESH_BUFFER_SECONDS
    user_agent: str = USER_AGENT

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if not self.client_id:
            raise ConfigurationError("Client ID is required", code=ErrorCode.MISSING_CREDENTIALS)
        if not self.client_secret:
            raise ConfigurationError(
                "Client secret is required", code=ErrorCode.MISSING_CREDENTIALS
            )
        if not MIN_TIMEOUT_SECONDS <= self.timeout <= MAX_TIMEOUT_SECONDS:
            raise ConfigurationError(
                f"Timeout must be between {MIN_TIMEOUT_SECONDS:g} and "
                f"{MAX_TIMEOUT_SECONDS:g} seconds",
                {"timeout": self.timeout},
            )
        if self.token_refresh_buffer < 0:
            raise ConfigurationError(
                "token_refresh_buffer must not be negative",
                {"token_refresh_buffer": self.token_refresh_buffer},
            )

    @property
    def environment(self) -> Environment:
        """Environment derived from the sandbox flag and URL overrides."""
        base = SANDBOX if self.sandbox else PRODUCTION
        if self.auth_url is None and self.gateway_url is None:
            return base
        return Environment(
            name=base.name,
            auth_url=(self.auth_url or base.auth_url).rstrip("/"),
            gateway_url=(self.gateway_url or base.gateway_url).rstrip("/"),
        )

    def with_overrides(self, **changes: Any) -> PayfirmaConfig:
        """Create a new validated config with the given fields replaced.

        ``None`` keeps the current value, matching a partial update. The host
        overrides ``auth_url`` and ``gateway_url`` are the exception: ``None``
        clears them back to the hosts of the selected environment.

        Raises:
            ConfigurationError: If a name is not a config field or the result
                is invalid.
        """
        known = {f.name for f in dataclasses.fields(self)}
        unknown = sorted(set(changes) - known)
        if unknown:
            raise ConfigurationError(f"Unknown configuration fields: {', '.join(unknown)}")
        return dataclasses.replace(
            self,
            **{k: v for k, v in changes.items() if v is not None or k in CLEARABLE_FIELDS},
        )

    @classmethod
    def from_env(cls, **overrides: Any) -> PayfirmaConfig:
        """Build a config from PAYFIRMA_* environment variables.

        Environment variables:
            PAYFIRMA_CLIENT_ID, PAYFIRMA_CLIENT_SECRET: credentials
            PAYFIRMA_SANDBOX: "1", "true" or "yes" selects sandbox hosts
            PAYFIRMA_TIMEOUT: timeout in seconds
            PAYFIRMA_AUTH_URL, PAYFIRMA_GATEWAY_URL: host overrides

        Keyword arguments take precedence over the environment.
        """
        values: dict[str, Any] = {
            "client_id": os.environ.get("PAYFIRMA_CLIENT_ID", ""),
            "client_secret": os.environ.get("PAYFIRMA_CLIENT_SECRET", ""),
            "sandbox": _get_env_bool("PAYFIRMA_SANDBOX") or False,
            "auth_url": os.environ.get("PAYFIRMA_AUTH_URL") or None,
            "gateway_url": os.environ.get("PAYFIRMA_GATEWAY_URL") or None,
        }
        env_timeout = _get_env_float("PAYFIRMA_TIMEOUT")
        if env_timeout is not None:
            values["timeout"] = env_timeout
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def _get_env_float(name: str) -> Optional[float]:
    """Get a float from environment variable, or None if not set/invalid."""
    value = os.environ.get(name)
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _get_env_bool(name: str) -> Optional[bool]:
    value = os.environ.get(name)
    if value is None:
        return None
    return value.strip().lower() in ("1", "true", "yes", "on")


__all__ = [
    "DEFAULT_TIMEOUT_SECONDS",
    "DEFAULT_TOKEN_REFRESH_BUFFER_SECONDS",
    "MAX_TIMEOUT_SECONDS",
    "MIN_TIMEOUT_SECONDS",
    "PRODUCTION",
    "SANDBOX",
    "Environment",
    "PayfirmaConfig",
]
