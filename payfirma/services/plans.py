"""Recurring payment plans."""

from __future__ import annotations

from collections import Counter
from typing import Any, Optional

from payfirma.logging_config import log_operation
from payfirma.services.base import ResourceService
from payfirma.types import DEFAULT_CURRENCY, JsonDict

ACTIVE = "ACTIVE"
INACTIVE = "INACTIVE"


class PlanService(ResourceService):
    service_path = "plan-service"
    label = "plan service"

    async def create_plan(self, request: JsonDict) -> JsonDict:
        return await self._post("/plan", request)

    async def get_plan(self, plan_lookup_id: str) -> JsonDict:
        return await self._get(f"/plan/{plan_lookup_id}")

    async def update_plan(self, plan_lookup_id: str, request: JsonDict) -> JsonDict:
        return await self._put(f"/plan/{plan_lookup_id}", request)

    async def delete_plan(self, plan_lookup_id: str) -> None:
        await self._delete(f"/plan/{plan_lookup_id}")

    async def list_plans(self) -> JsonDict:
        return await self._get("/plan")

    async def plan_exists(self, plan_lookup_id: str) -> bool:
        return await self._exists(self.get_plan(plan_lookup_id))

    # ------------------------------------------------------------------
    # Client-side filters over the full listing
    # ------------------------------------------------------------------

    async def _all_plans(self) -> list[JsonDict]:
        return self._entities(await self.list_plans())

    async def get_active_plans(self) -> list[JsonDict]:
        return [p for p in await self._all_plans() if self._field(p, "status") == ACTIVE]

    async def get_plans_by_frequency(self, frequency: str) -> list[JsonDict]:
        return [p for p in await self._all_plans() if self._field(p, "frequency") == frequency]

    async def search_plans_by_name(self, name: str) -> list[JsonDict]:
        needle = name.lower()
        return [
            p for p in await self._all_plans() if needle in str(self._field(p, "name", "")).lower()
        ]

    async def get_plans_by_amount_range(self, min_amount: float, max_amount: float) -> list[JsonDict]:
        return [
            p for p in await self._all_plans() if min_amount <= self._amount(p) <= max_amount
        ]

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    async def activate_plan(self, plan_lookup_id: str) -> JsonDict:
        """Fetch a plan and return a copy marked ACTIVE.

        The API exposes no status update for plans, so nothing is written.
        """
        plan = await self.get_plan(plan_lookup_id)
        return {**plan, self._key("status"): ACTIVE}

    async def deactivate_plan(self, plan_lookup_id: str) -> JsonDict:
        """Fetch a plan and return a copy marked INACTIVE. Nothing is written."""
        plan = await self.get_plan(plan_lookup_id)
        return {**plan, self._key("status"): INACTIVE}

    # ------------------------------------------------------------------
    # Frequency shortcuts
    # ------------------------------------------------------------------

    async def _create_with_frequency(
        self,
        frequency: str,
        name: str,
        amount: float,
        currency: str,
        number_of_payments: Optional[int],
    ) -> JsonDict:
        request: dict[str, Any] = {
            "name": name,
            "amount": amount,
            "currency": currency,
            "frequency": frequency,
            "send_receipt": True,
        }
        if number_of_payments is not None:
            request["number_of_payments"] = number_of_payments
        return await self.create_plan(request)

    async def create_daily_plan(
        self,
        name: str,
        amount: float,
        currency: str = DEFAULT_CURRENCY,
        number_of_payments: Optional[int] = None,
    ) -> JsonDict:
        return await self._create_with_frequency("DAILY", name, amount, currency, number_of_payments)

    async def create_weekly_plan(
        self,
        name: str,
        amount: float,
        currency: str = DEFAULT_CURRENCY,
        number_of_payments: Optional[int] = None,
    ) -> JsonDict:
        return await self._create_with_frequency("WEEKLY", name, amount, currency, number_of_payments)

    async def create_monthly_plan(
        self,
        name: str,
        amount: float,
        currency: str = DEFAULT_CURRENCY,
        number_of_payments: Optional[int] = None,
    ) -> JsonDict:
        return await self._create_with_frequency("MONTHLY", name, amount, currency, number_of_payments)

    async def create_yearly_plan(
        self,
        name: str,
        amount: float,
        currency: str = DEFAULT_CURRENCY,
        number_of_payments: Optional[int] = None,
    ) -> JsonDict:
        return await self._create_with_frequency("YEARLY", name, amount, currency, number_of_payments)

    @log_operation()
    async def get_plan_statistics(self) -> JsonDict:
        plans = await self._all_plans()
        statuses = [self._field(p, "status") for p in plans]
        return {
            "total_plans": len(plans),
            "active_plans": statuses.count(ACTIVE),
            "inactive_plans": statuses.count(INACTIVE),
            "plans_by_frequency": dict(Counter(self._field(p, "frequency") for p in plans)),
        }
