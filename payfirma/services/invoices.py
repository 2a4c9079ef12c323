"""Invoices, invoice e-mail delivery and invoice reporting."""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Union

from payfirma.logging_config import log_operation
from payfirma.services.base import ResourceService, compact, month_range_ms
from payfirma.types import DEFAULT_CURRENCY, JsonDict

DateLike = Union[str, int, float]

_STATUSES = ("DRAFT", "SENT", "PAID", "OVERDUE", "CANCELLED")


def calculate_invoice_totals(
    items: Iterable[Mapping[str, Any]],
    tax_rate: float = 0,
    discount_amount: float = 0,
    shipping_amount: float = 0,
) -> dict[str, float]:
    """Totals for a list of line items.

    ``subtotal`` is the sum of quantity × unit_price, ``tax`` is
    subtotal × tax_rate / 100, and ``total`` is subtotal + tax − discount +
    shipping. Items may use ``unit_price`` or ``unitPrice``.

    >>> calculate_invoice_totals([{"quantity": 2, "unit_price": 10}], 10, 1, 2)["total"]
    23.0
    """
    subtotal = sum(
        float(item["quantity"]) * float(item.get("unit_price", item.get("unitPrice", 0)))
        for item in items
    )
    tax = subtotal * (tax_rate / 100)
    return {
        "subtotal": subtotal,
        "tax": tax,
        "discount": discount_amount,
        "shipping": shipping_amount,
        "total": subtotal + tax - discount_amount + shipping_amount,
    }


class InvoiceService(ResourceService):
    service_path = "invoice-service"
    label = "invoice service"

    async def create_invoice(self, request: JsonDict) -> JsonDict:
        return await self._post("/invoice", request)

    async def create_draft_invoice(self, request: JsonDict) -> JsonDict:
        """Create an invoice without e-mailing it."""
        return await self.create_invoice({**request, "send_email": False})

    async def get_invoice(self, invoice_id: str) -> JsonDict:
        return await self._get(f"/invoice/{invoice_id}")

    async def update_invoice(self, invoice_id: str, request: JsonDict) -> JsonDict:
        return await self._put(f"/invoice/{invoice_id}", request)

    async def delete_invoice(self, invoice_id: str) -> None:
        await self._delete(f"/invoice/{invoice_id}")

    async def list_invoices(self, params: Optional[JsonDict] = None) -> JsonDict:
        return await self._get("/invoice", params)

    async def invoice_exists(self, invoice_id: str) -> bool:
        return await self._exists(self.get_invoice(invoice_id))

    async def send_invoice_email(self, invoice_id: str, request: JsonDict) -> None:
        await self._post(f"/invoice/{invoice_id}/send", request)

    async def send_invoice_to_email(
        self,
        invoice_id: str,
        email: str,
        subject: Optional[str] = None,
        message: Optional[str] = None,
    ) -> None:
        await self.send_invoice_email(
            invoice_id, compact(email=email, subject=subject, message=message)
        )

    async def mark_invoice_as_paid(self, invoice_id: str) -> JsonDict:
        return await self.update_invoice(invoice_id, {"status": "PAID"})

    async def cancel_invoice(self, invoice_id: str) -> JsonDict:
        return await self.update_invoice(invoice_id, {"status": "CANCELLED"})

    # ------------------------------------------------------------------
    # Filters
    # ------------------------------------------------------------------

    async def _search(self, **params: Any) -> list[JsonDict]:
        return self._entities(await self.list_invoices(compact(**params)))

    async def get_invoices_by_status(self, status: str) -> list[JsonDict]:
        return await self._search(status=status)

    async def get_invoices_by_customer(self, customer_lookup_id: str) -> list[JsonDict]:
        return await self._search(customer_lookup_id=customer_lookup_id)

    async def get_invoices_by_customer_email(self, email: str) -> list[JsonDict]:
        return await self._search(customer_email=email)

    async def get_invoices_by_date_range(
        self, start_date: DateLike, end_date: DateLike
    ) -> list[JsonDict]:
        return await self._search(start_date=start_date, end_date=end_date)

    async def get_invoices_by_amount_range(
        self, min_amount: float, max_amount: float
    ) -> list[JsonDict]:
        return await self._search(amount_min=min_amount, amount_max=max_amount)

    async def search_invoices_by_number(self, invoice_number: str) -> list[JsonDict]:
        return await self._search(invoice_number=invoice_number)

    async def get_draft_invoices(self) -> list[JsonDict]:
        return await self.get_invoices_by_status("DRAFT")

    async def get_sent_invoices(self) -> list[JsonDict]:
        return await self.get_invoices_by_status("SENT")

    async def get_paid_invoices(self) -> list[JsonDict]:
        return await self.get_invoices_by_status("PAID")

    async def get_overdue_invoices(self) -> list[JsonDict]:
        return await self.get_invoices_by_status("OVERDUE")

    async def get_cancelled_invoices(self) -> list[JsonDict]:
        return await self.get_invoices_by_status("CANCELLED")

    # ------------------------------------------------------------------
    # Totals and reporting
    # ------------------------------------------------------------------

    @staticmethod
    def calculate_invoice_totals(
        items: Iterable[Mapping[str, Any]],
        tax_rate: float = 0,
        discount_amount: float = 0,
        shipping_amount: float = 0,
    ) -> dict[str, float]:
        return calculate_invoice_totals(items, tax_rate, discount_amount, shipping_amount)

    async def create_simple_invoice(
        self,
        invoice_number: str,
        customer_email: str,
        items: Iterable[Mapping[str, Any]],
        due_date: str,
        *,
        tax_rate: float = 0,
        discount_amount: float = 0,
        shipping_amount: float = 0,
        notes: Optional[str] = None,
        currency: str = DEFAULT_CURRENCY,
    ) -> JsonDict:
        """Create an invoice from ``{description, quantity, unit_price}`` items.

        Each item gains ``total_amount`` and ``tax_amount`` computed locally.
        """
        invoice_items = []
        for item in items:
            line_total = float(item["quantity"]) * float(item["unit_price"])
            invoice_items.append(
                {**item, "total_amount": line_total, "tax_amount": line_total * (tax_rate / 100)}
            )
        request = compact(
            invoice_number=invoice_number,
            due_date=due_date,
            items=invoice_items,
            currency=currency,
            tax_rate=tax_rate,
            discount_amount=discount_amount,
            shipping_amount=shipping_amount,
            email=customer_email,
            notes=notes,
        )
        return await self.create_invoice(request)

    def _sum_total(self, invoices: list[JsonDict], status: Optional[str] = None) -> float:
        return sum(
            self._amount(inv, "total_amount")
            for inv in invoices
            if status is None or self._field(inv, "status") == status
        )

    @log_operation()
    async def get_invoice_summary(self, params: Optional[JsonDict] = None) -> JsonDict:
        """Amounts by state and a status breakdown over one listing page.

        ``outstanding_amount`` covers SENT invoices; OVERDUE ones are reported
        separately in ``overdue_amount``.
        """
        invoices = self._entities(await self.list_invoices(params))
        statuses = [self._field(inv, "status") for inv in invoices]
        return {
            "total_count": len(invoices),
            "total_amount": self._sum_total(invoices),
            "paid_amount": self._sum_total(invoices, "PAID"),
            "outstanding_amount": self._sum_total(invoices, "SENT"),
            "overdue_amount": self._sum_total(invoices, "OVERDUE"),
            "currency": self._currency(invoices),
            "status_breakdown": {s.lower(): statuses.count(s) for s in _STATUSES},
        }

    @log_operation()
    async def get_monthly_invoice_stats(self, year: int, month: int) -> JsonDict:
        """Invoices created and paid within one UTC calendar month."""
        start, end = month_range_ms(year, month)
        invoices = await self.get_invoices_by_date_range(start, end)
        paid = [inv for inv in invoices if self._field(inv, "status") == "PAID"]
        return {
            "month": f"{year}-{month:02d}",
            "invoices_created": len(invoices),
            "invoices_paid": len(paid),
            "total_amount": self._sum_total(invoices),
            "paid_amount": self._sum_total(paid),
            "currency": self._currency(invoices),
        }
