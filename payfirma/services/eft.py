"""Electronic funds transfer: bank debits, credits and deposits."""

from __future__ import annotations

import asyncio
import re
from datetime import date, datetime, timezone
from typing import Any, Optional

from payfirma.logging_config import log_operation
from payfirma.services.base import ResourceService, compact
from payfirma.types import DEFAULT_CURRENCY, JsonDict

_DIGITS = re.compile(r"^\d+$")


def bank_account(
    account_number: str,
    routing_number: str,
    account_holder_name: str,
    account_type: str = "CHECKING",
) -> JsonDict:
    return {
        "account_number": account_number,
        "routing_number": routing_number,
        "account_type": account_type,
        "account_holder_name": account_holder_name,
    }


def validate_bank_account(account_number: str, routing_number: str) -> JsonDict:
    """Local format check of bank account details. No network call.

    Returns ``{"valid": bool, "errors": [str, ...]}``.
    """
    errors: list[str] = []
    if not account_number or not 4 <= len(account_number) <= 17:
        errors.append("Account number must be between 4 and 17 digits")
    if not _DIGITS.match(account_number or ""):
        errors.append("Account number must contain only digits")
    if not routing_number or len(routing_number) != 9:
        errors.append("Routing number must be 9 digits")
    if not _DIGITS.match(routing_number or ""):
        errors.append("Routing number must contain only digits")
    return {"valid": not errors, "errors": errors}


class EFTService(ResourceService):
    service_path = "eft-service"
    label = "EFT service"

    async def get_balance(self) -> JsonDict:
        return await self._get("/balance")

    async def process_debit(self, request: JsonDict) -> JsonDict:
        return await self._post("/debit", request)

    async def process_credit(self, request: JsonDict) -> JsonDict:
        return await self._post("/credit", request)

    async def bank_deposit(self, request: JsonDict) -> JsonDict:
        return await self._post("/deposit", request)

    async def get_transaction(self, transaction_id: str) -> JsonDict:
        return await self._get(f"/transaction/{transaction_id}")

    async def list_transactions(self, params: Optional[JsonDict] = None) -> JsonDict:
        return await self._get("/transactions", params)

    async def transaction_exists(self, transaction_id: str) -> bool:
        return await self._exists(self.get_transaction(transaction_id))

    validate_bank_account = staticmethod(validate_bank_account)

    # ------------------------------------------------------------------
    # Filters
    # ------------------------------------------------------------------

    async def _search(self, **params: Any) -> list[JsonDict]:
        return self._entities(await self.list_transactions(compact(**params)))

    async def get_transactions_by_status(self, status: str) -> list[JsonDict]:
        return await self._search(status=status)

    async def get_transactions_by_type(self, type: str) -> list[JsonDict]:
        return await self._search(type=type)

    async def get_transactions_by_date_range(self, start_date: str, end_date: str) -> list[JsonDict]:
        return await self._search(start_date=start_date, end_date=end_date)

    async def get_transactions_by_amount_range(
        self, min_amount: float, max_amount: float
    ) -> list[JsonDict]:
        return await self._search(amount_min=min_amount, amount_max=max_amount)

    async def get_pending_transactions(self) -> list[JsonDict]:
        return await self.get_transactions_by_status("PENDING")

    async def get_completed_transactions(self) -> list[JsonDict]:
        return await self.get_transactions_by_status("COMPLETED")

    async def get_failed_transactions(self) -> list[JsonDict]:
        return await self.get_transactions_by_status("FAILED")

    async def get_debit_transactions(self) -> list[JsonDict]:
        return await self.get_transactions_by_type("DEBIT")

    async def get_credit_transactions(self) -> list[JsonDict]:
        return await self.get_transactions_by_type("CREDIT")

    async def get_deposit_transactions(self) -> list[JsonDict]:
        return await self.get_transactions_by_type("DEPOSIT")

    # ------------------------------------------------------------------
    # Convenience transfers
    # ------------------------------------------------------------------

    async def quick_debit(
        self,
        amount: float,
        account_number: str,
        routing_number: str,
        account_holder_name: str,
        currency: str = DEFAULT_CURRENCY,
    ) -> JsonDict:
        return await self.process_debit(
            {
                "amount": amount,
                "currency": currency,
                "bank_account": bank_account(account_number, routing_number, account_holder_name),
            }
        )

    async def quick_credit(
        self,
        amount: float,
        account_number: str,
        routing_number: str,
        account_holder_name: str,
        currency: str = DEFAULT_CURRENCY,
    ) -> JsonDict:
        return await self.process_credit(
            {
                "amount": amount,
                "currency": currency,
                "bank_account": bank_account(account_number, routing_number, account_holder_name),
            }
        )

    async def quick_bank_deposit(
        self,
        amount: float,
        account_number: str,
        routing_number: str,
        account_holder_name: str,
        currency: str = DEFAULT_CURRENCY,
    ) -> JsonDict:
        return await self.bank_deposit(
            {
                "amount": amount,
                "currency": currency,
                "bank_account": bank_account(account_number, routing_number, account_holder_name),
            }
        )

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    @log_operation()
    async def get_account_summary(self, today: Optional[date] = None) -> JsonDict:
        """Balance, the ten most recent transfers, and today's outcomes (UTC)."""
        balance, recent, pending = await asyncio.gather(
            self.get_balance(),
            self.list_transactions({"limit": 10}),
            self.get_pending_transactions(),
        )
        day = (today or datetime.now(timezone.utc).date()).isoformat()
        todays = await self.get_transactions_by_date_range(day, day)
        statuses = [self._field(t, "status") for t in todays]
        return {
            "balance": balance,
            "recent_transactions": self._entities(recent),
            "pending_count": len(pending),
            "completed_today": statuses.count("COMPLETED"),
            "failed_today": statuses.count("FAILED"),
        }

    @log_operation()
    async def get_daily_volume(self, day: str) -> JsonDict:
        """Counts and amounts per transfer type for one day (``YYYY-MM-DD``)."""
        transactions = await self.get_transactions_by_date_range(day, day)
        by_type: dict[str, list[JsonDict]] = {"DEBIT": [], "CREDIT": [], "DEPOSIT": []}
        for t in transactions:
            bucket = by_type.get(self._field(t, "type"))
            if bucket is not None:
                bucket.append(t)
        summary: JsonDict = {
            "date": day,
            "transaction_count": len(transactions),
            "total_amount": sum(self._amount(t) for t in transactions),
        }
        for type_name, items in by_type.items():
            summary[f"{type_name.lower()}_count"] = len(items)
            summary[f"{type_name.lower()}_amount"] = sum(self._amount(t) for t in items)
        summary["currency"] = self._currency(transactions)
        return summary
