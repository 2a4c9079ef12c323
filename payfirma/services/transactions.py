"""Card transactions: sales, authorizations, captures and refunds."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional, Union

from payfirma.logging_config import log_operation
from payfirma.services.base import ResourceService, compact, day_range_ms
from payfirma.types import DEFAULT_CURRENCY, JsonDict

DateLike = Union[str, int, float]

_STATUSES = {
    "approved": "APPROVED",
    "declined": "DECLINED",
    "pending": "PENDING",
    "cancelled": "CANCELLED",
    "failed": "FAILED",
}

_TYPES = {
    "sales": "SALE",
    "authorizations": "AUTHORIZATION",
    "captures": "CAPTURE",
    "refunds": "REFUND",
    "voids": "VOID",
}


def card_details(card_number: str, expiry_month: int, expiry_year: int, cvv: str) -> JsonDict:
    return {
        "card_number": card_number,
        "card_expiry_month": expiry_month,
        "card_expiry_year": expiry_year,
        "cvv2": cvv,
    }


class TransactionService(ResourceService):
    service_path = "transaction-service"
    label = "transaction service"

    async def create_sale(self, request: JsonDict) -> JsonDict:
        return await self._post("/sale", request)

    async def create_authorization(self, request: JsonDict) -> JsonDict:
        """Hold funds without capturing them."""
        return await self._post("/authorize", request)

    async def capture_transaction(self, transaction_id: str, request: JsonDict) -> JsonDict:
        return await self._post(f"/capture/{transaction_id}", request)

    async def refund_transaction(self, transaction_id: str, request: JsonDict) -> JsonDict:
        return await self._post(f"/refund/{transaction_id}", request)

    async def get_transaction(self, transaction_id: str) -> JsonDict:
        return await self._get(f"/transaction/{transaction_id}")

    async def list_transactions(self, params: Optional[JsonDict] = None) -> JsonDict:
        return await self._get("/transaction", params)

    async def transaction_exists(self, transaction_id: str) -> bool:
        return await self._exists(self.get_transaction(transaction_id))

    # ------------------------------------------------------------------
    # Convenience payments
    # ------------------------------------------------------------------

    async def quick_sale(
        self,
        amount: float,
        card_number: str,
        expiry_month: int,
        expiry_year: int,
        cvv: str,
        currency: str = DEFAULT_CURRENCY,
    ) -> JsonDict:
        return await self.create_sale(
            {
                "amount": amount,
                "currency": currency,
                "card": card_details(card_number, expiry_month, expiry_year, cvv),
            }
        )

    async def sale_with_token(
        self, amount: float, token: str, currency: str = DEFAULT_CURRENCY
    ) -> JsonDict:
        """Sale paid with a card token from the hosted payment fields."""
        return await self.create_sale({"amount": amount, "currency": currency, "token": token})

    async def sale_with_customer(
        self,
        amount: float,
        customer_lookup_id: str,
        currency: str = DEFAULT_CURRENCY,
        card_lookup_id: Optional[str] = None,
    ) -> JsonDict:
        """Sale charged to a stored customer, on a specific card if given."""
        request = compact(
            amount=amount,
            currency=currency,
            customer_lookup_id=customer_lookup_id,
            card_lookup_id=card_lookup_id or None,
        )
        return await self.create_sale(request)

    async def quick_authorization(
        self,
        amount: float,
        card_number: str,
        expiry_month: int,
        expiry_year: int,
        cvv: str,
        currency: str = DEFAULT_CURRENCY,
    ) -> JsonDict:
        return await self.create_authorization(
            {
                "amount": amount,
                "currency": currency,
                "card": card_details(card_number, expiry_month, expiry_year, cvv),
            }
        )

    async def full_refund(self, transaction_id: str) -> JsonDict:
        """Refund the full original amount, looked up first."""
        transaction = await self.get_transaction(transaction_id)
        return await self.refund_transaction(
            transaction_id, {"amount": self._field(transaction, "amount")}
        )

    async def partial_refund(
        self, transaction_id: str, amount: float, reason: Optional[str] = None
    ) -> JsonDict:
        return await self.refund_transaction(transaction_id, compact(amount=amount, reason=reason))

    async def capture_full_amount(self, transaction_id: str) -> JsonDict:
        """Capture the full authorized amount, looked up first."""
        transaction = await self.get_transaction(transaction_id)
        return await self.capture_transaction(
            transaction_id, {"amount": self._field(transaction, "amount")}
        )

    async def capture_partial_amount(self, transaction_id: str, amount: float) -> JsonDict:
        return await self.capture_transaction(transaction_id, {"amount": amount})

    # ------------------------------------------------------------------
    # Filters
    # ------------------------------------------------------------------

    async def _search(self, **params: Any) -> list[JsonDict]:
        return self._entities(await self.list_transactions(compact(**params)))

    async def get_transactions_by_status(self, status: str) -> list[JsonDict]:
        return await self._search(status=status)

    async def get_transactions_by_date_range(
        self, start_date: DateLike, end_date: DateLike
    ) -> list[JsonDict]:
        return await self._search(start_date=start_date, end_date=end_date)

    async def get_transactions_by_amount_range(
        self, min_amount: float, max_amount: float
    ) -> list[JsonDict]:
        return await self._search(amount_min=min_amount, amount_max=max_amount)

    async def get_transactions_by_customer_email(self, email: str) -> list[JsonDict]:
        return await self._search(customer_email=email)

    async def get_transactions_by_order_id(self, order_id: str) -> list[JsonDict]:
        return await self._search(order_id=order_id)

    async def get_approved_transactions(self) -> list[JsonDict]:
        return await self.get_transactions_by_status("APPROVED")

    async def get_declined_transactions(self) -> list[JsonDict]:
        return await self.get_transactions_by_status("DECLINED")

    async def get_pending_transactions(self) -> list[JsonDict]:
        return await self.get_transactions_by_status("PENDING")

    async def get_refunded_transactions(self) -> list[JsonDict]:
        return await self._search(type="REFUND")

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    @log_operation()
    async def get_transaction_summary(self, params: Optional[JsonDict] = None) -> JsonDict:
        """Totals and status/type breakdowns over one listing page."""
        transactions = self._entities(await self.list_transactions(params))
        statuses = [self._field(t, "status") for t in transactions]
        types = [self._field(t, "type") for t in transactions]
        return {
            "total_count": len(transactions),
            "total_amount": sum(self._amount(t) for t in transactions),
            "total_fees": sum(self._amount(t, "fee_amount") for t in transactions),
            "net_amount": sum(
                self._amount(t, "net_amount") or self._amount(t) for t in transactions
            ),
            "currency": self._currency(transactions),
            "status_breakdown": {name: statuses.count(s) for name, s in _STATUSES.items()},
            "type_breakdown": {name: types.count(t) for name, t in _TYPES.items()},
        }

    @log_operation()
    async def get_daily_volume(self, day: date | datetime | str) -> JsonDict:
        """Count and total of transactions on one UTC day."""
        start, end = day_range_ms(day)
        transactions = await self.get_transactions_by_date_range(start, end)
        return {
            "date": day if isinstance(day, str) else day.isoformat()[:10],
            "transaction_count": len(transactions),
            "total_amount": sum(self._amount(t) for t in transactions),
            "currency": self._currency(transactions),
        }
