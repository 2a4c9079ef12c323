"""Card-present payments through physical terminals."""

from __future__ import annotations

import asyncio
from typing import Optional

from payfirma.errors import PayfirmaError
from payfirma.logging_config import get_logger, log_operation
from payfirma.services.base import ResourceService, compact
from payfirma.types import DEFAULT_CURRENCY, JsonDict

logger = get_logger(__name__)


class TerminalService(ResourceService):
    service_path = "terminal-service"
    label = "terminal service"

    async def sale_with_customer(self, request: JsonDict) -> JsonDict:
        return await self._post("/sale/customer", request)

    async def sale(self, request: JsonDict) -> JsonDict:
        return await self._post("/sale", request)

    async def refund(self, request: JsonDict) -> JsonDict:
        return await self._post("/refund", request)

    async def authorize(self, request: JsonDict) -> JsonDict:
        return await self._post("/authorize", request)

    async def capture(self, transaction_id: str, request: JsonDict) -> JsonDict:
        return await self._post(f"/capture/{transaction_id}", request)

    async def get_transaction(self, transaction_id: str) -> JsonDict:
        return await self._get(f"/transaction/{transaction_id}")

    async def get_terminal_config(self, terminal_id: str) -> JsonDict:
        return await self._get(f"/terminal/{terminal_id}/config")

    async def update_terminal_config(self, terminal_id: str, config: JsonDict) -> JsonDict:
        return await self._put(f"/terminal/{terminal_id}/config", config)

    async def get_terminal_status(self, terminal_id: str) -> JsonDict:
        """``{terminal_id, status, last_activity, is_online}``."""
        return await self._get(f"/terminal/{terminal_id}/status")

    async def list_terminals(self) -> list[JsonDict]:
        return self._entities(await self._get("/terminals"))

    async def terminal_exists(self, terminal_id: str) -> bool:
        return await self._exists(self.get_terminal_config(terminal_id))

    async def quick_sale(
        self, terminal_id: str, amount: float, currency: str = DEFAULT_CURRENCY
    ) -> JsonDict:
        return await self.sale({"terminal_id": terminal_id, "amount": amount, "currency": currency})

    async def quick_refund(
        self, terminal_id: str, original_transaction_id: str, amount: float
    ) -> JsonDict:
        return await self.refund(
            {
                "terminal_id": terminal_id,
                "original_transaction_id": original_transaction_id,
                "amount": amount,
            }
        )

    async def get_terminal_transactions(
        self, terminal_id: str, date: Optional[str] = None
    ) -> list[JsonDict]:
        data = await self._get(f"/terminal/{terminal_id}/transactions", compact(date=date))
        return self._entities(data)

    async def get_terminal_daily_totals(self, terminal_id: str, date: Optional[str] = None) -> JsonDict:
        return await self._get(f"/terminal/{terminal_id}/daily-totals", compact(date=date))

    async def is_terminal_online(self, terminal_id: str) -> bool:
        """Online flag from the status endpoint. Any failure reads as offline."""
        try:
            status = await self.get_terminal_status(terminal_id)
        except PayfirmaError as e:
            logger.debug("Terminal status unavailable", terminal_id=terminal_id, error=e.message)
            return False
        return bool(self._field(status, "is_online", False))

    @log_operation()
    async def get_online_terminals(self) -> list[JsonDict]:
        terminals = await self.list_terminals()
        online = await asyncio.gather(
            *(self.is_terminal_online(self._field(t, "terminal_id")) for t in terminals)
        )
        return [t for t, is_online in zip(terminals, online) if is_online]
