"""
Shared plumbing for the resource services.

Every service call follows the same path: fetch a bearer token from the
TokenStore (refreshing transparently), issue one transport call against
``{gateway_url}/{service_path}``, and classify any failure into a typed error
exactly once. Services keep no state beyond their injected collaborators.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any, Awaitable, ClassVar, Mapping

from payfirma.auth import TokenStore
from payfirma.config import Environment
from payfirma.errors import NotFoundError, PayfirmaError, classify_error
from payfirma.http_client import HttpTransport, TransportError
from payfirma.logging_config import LogContext, get_logger
from payfirma.transformers import snake_to_camel
from payfirma.types import DEFAULT_CURRENCY, JsonDict

logger = get_logger(__name__)


class ResourceService:
    """Base class for the gateway resource services.

    Subclasses set ``service_path`` (the gateway prefix, e.g.
    ``"customer-service"``) and ``label`` (used in error messages).
    """

    service_path: ClassVar[str] = ""
    label: ClassVar[str] = "gateway service"

    def __init__(
        self,
        environment: Environment,
        token_store: TokenStore,
        transport: HttpTransport,
    ):
        self._environment = environment
        self._auth = token_store
        self._transport = transport.with_base_url(self.base_url)

    @property
    def base_url(self) -> str:
        return f"{self._environment.gateway_url}/{self.service_path}"

    async def _request(
        self,
        method: str,
        path: str,
        *,
        body: Any = None,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        """Run one authenticated call and return the decoded body."""
        with LogContext(service=self.service_path):
            headers = await self._auth.get_auth_header()
            try:
                response = await self._transport.request(
                    method, path, params=params, headers=headers, body=body
                )
            except TransportError as e:
                error = classify_error(e, context=self.label)
                logger.debug(
                    "Service call failed",
                    method=method,
                    path=path,
                    category=error.category.value,
                    status=error.status_code,
                )
                raise error from e
            return response.data

    async def _get(self, path: str, params: Mapping[str, Any] | None = None) -> Any:
        return await self._request("GET", path, params=params)

    async def _post(self, path: str, body: Any = None) -> Any:
        return await self._request("POST", path, body=body)

    async def _put(self, path: str, body: Any = None) -> Any:
        return await self._request("PUT", path, body=body)

    async def _delete(self, path: str) -> Any:
        return await self._request("DELETE", path)

    @staticmethod
    async def _exists(lookup: Awaitable[Any]) -> bool:
        """True if ``lookup`` succeeds, False if it fails with a 404."""
        try:
            await lookup
        except NotFoundError:
            return False
        except PayfirmaError as e:
            if e.status_code == 404:
                return False
            raise
        return True

    # ------------------------------------------------------------------
    # Entity field access
    # ------------------------------------------------------------------

    def _key(self, name: str) -> str:
        """Spelling of a snake_case API field in decoded responses."""
        return snake_to_camel(name) if self._transport.transform_response else name

    def _field(self, entity: Any, name: str, default: Any = None) -> Any:
        if not isinstance(entity, dict):
            return default
        value = entity.get(self._key(name))
        return default if value is None else value

    def _entities(self, listing: Any) -> list[JsonDict]:
        """Items of a paginated listing (``{"entities": [...], "paging": ...}``)."""
        if isinstance(listing, list):
            return listing
        entities = self._field(listing, "entities", [])
        return list(entities) if isinstance(entities, list) else []

    def _amount(self, entity: Any, name: str = "amount") -> float:
        value = self._field(entity, name, 0)
        try:
            return float(value)
        except (TypeError, ValueError):
            return 0.0

    def _currency(self, entities: list[JsonDict]) -> str:
        """Currency of the first entity, CAD when there are none."""
        if not entities:
            return DEFAULT_CURRENCY
        return self._field(entities[0], "currency", DEFAULT_CURRENCY)


def compact(**fields: Any) -> JsonDict:
    """Request body or query params with unset (None) fields left out."""
    return {k: v for k, v in fields.items() if v is not None}


def _as_date(day: date | datetime | str) -> date:
    if isinstance(day, datetime):
        return day.date()
    if isinstance(day, date):
        return day
    return date.fromisoformat(day[:10])


def _epoch_ms(moment: datetime) -> int:
    return int(moment.replace(tzinfo=timezone.utc).timestamp() * 1000)


def day_range_ms(day: date | datetime | str) -> tuple[int, int]:
    """Epoch-millisecond bounds [00:00:00.000, 23:59:59.999] of a UTC day."""
    start = datetime.combine(_as_date(day), datetime.min.time())
    return _epoch_ms(start), _epoch_ms(start + timedelta(days=1)) - 1


def month_range_ms(year: int, month: int) -> tuple[int, int]:
    """Epoch-millisecond bounds of a UTC calendar month, last day inclusive."""
    if not 1 <= month <= 12:
        raise ValueError(f"month must be between 1 and 12, got {month}")
    start = datetime(year, month, 1)
    end = datetime(year + 1, 1, 1) if month == 12 else datetime(year, month + 1, 1)
    return _epoch_ms(start), _epoch_ms(end) - 1


__all__ = ["ResourceService", "compact", "day_range_ms", "month_range_ms"]
