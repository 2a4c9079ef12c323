"""Customers, their stored cards and their subscriptions."""

from __future__ import annotations

from typing import Any, Optional

from payfirma.services.base import ResourceService, compact
from payfirma.types import DEFAULT_CURRENCY, JsonDict


class CustomerService(ResourceService):
    service_path = "customer-service"
    label = "customer service"

    # ------------------------------------------------------------------
    # Customers
    # ------------------------------------------------------------------

    async def create_customer(self, request: JsonDict) -> JsonDict:
        return await self._post("/customer", request)

    async def get_customer(self, customer_lookup_id: str) -> JsonDict:
        return await self._get(f"/customer/{customer_lookup_id}")

    async def update_customer(self, customer_lookup_id: str, request: JsonDict) -> JsonDict:
        return await self._put(f"/customer/{customer_lookup_id}", request)

    async def list_customers(self, params: Optional[JsonDict] = None) -> JsonDict:
        """List customers. ``params`` may include email_address, first_name,
        last_name, company, with_subscription, limit, before and after."""
        return await self._get("/customer", params)

    async def get_customers_by_plan(
        self, plan_lookup_id: str, params: Optional[JsonDict] = None
    ) -> JsonDict:
        return await self._get(f"/customer/plan/{plan_lookup_id}", params)

    async def customer_exists(self, customer_lookup_id: str) -> bool:
        return await self._exists(self.get_customer(customer_lookup_id))

    async def search_customers_by_email(self, email: str) -> list[JsonDict]:
        return self._entities(await self.list_customers({"email_address": email}))

    async def search_customers_by_name(
        self, first_name: Optional[str] = None, last_name: Optional[str] = None
    ) -> list[JsonDict]:
        params = compact(first_name=first_name or None, last_name=last_name or None)
        return self._entities(await self.list_customers(params))

    async def get_customers_with_subscriptions(self) -> list[JsonDict]:
        return self._entities(await self.list_customers({"with_subscription": True}))

    # ------------------------------------------------------------------
    # Cards
    # ------------------------------------------------------------------

    async def add_card(self, customer_lookup_id: str, request: JsonDict) -> JsonDict:
        return await self._post(f"/customer/{customer_lookup_id}/card", request)

    async def update_card(
        self, customer_lookup_id: str, card_lookup_id: str, request: JsonDict
    ) -> JsonDict:
        return await self._put(f"/customer/{customer_lookup_id}/card/{card_lookup_id}", request)

    async def remove_card(self, customer_lookup_id: str, card_lookup_id: str) -> None:
        await self._delete(f"/customer/{customer_lookup_id}/card/{card_lookup_id}")

    async def get_default_card(self, customer_lookup_id: str) -> Optional[JsonDict]:
        """The customer's card flagged ``is_default``, or None."""
        customer = await self.get_customer(customer_lookup_id)
        for card in self._field(customer, "cards", []):
            if self._field(card, "is_default", False):
                return card
        return None

    async def set_default_card(self, customer_lookup_id: str, card_lookup_id: str) -> JsonDict:
        return await self.update_card(customer_lookup_id, card_lookup_id, {"is_default": True})

    async def charge_default_card(
        self, customer_lookup_id: str, amount: float, currency: str = DEFAULT_CURRENCY
    ) -> Any:
        return await self._post(
            f"/customer/{customer_lookup_id}/charge",
            {"amount": amount, "currency": currency},
        )

    async def charge_card(
        self,
        customer_lookup_id: str,
        card_lookup_id: str,
        amount: float,
        currency: str = DEFAULT_CURRENCY,
    ) -> Any:
        return await self._post(
            f"/customer/{customer_lookup_id}/card/{card_lookup_id}/charge",
            {"amount": amount, "currency": currency},
        )

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    async def create_subscription(self, customer_lookup_id: str, request: JsonDict) -> JsonDict:
        return await self._post(f"/customer/{customer_lookup_id}/subscription", request)

    async def update_subscription(
        self, customer_lookup_id: str, subscription_lookup_id: str, request: JsonDict
    ) -> JsonDict:
        return await self._put(
            f"/customer/{customer_lookup_id}/subscription/{subscription_lookup_id}", request
        )

    async def cancel_subscription(self, customer_lookup_id: str, subscription_lookup_id: str) -> None:
        await self._delete(f"/customer/{customer_lookup_id}/subscription/{subscription_lookup_id}")

    async def get_subscription(
        self, customer_lookup_id: str, subscription_lookup_id: str
    ) -> JsonDict:
        return await self._get(
            f"/customer/{customer_lookup_id}/subscription/{subscription_lookup_id}"
        )

    async def list_subscriptions(self, customer_lookup_id: str) -> list[JsonDict]:
        """Subscriptions embedded in the customer record."""
        customer = await self.get_customer(customer_lookup_id)
        return list(self._field(customer, "subscriptions", []))
