"""
Tests for EFTService and local bank account validation.
"""

import json
from datetime import date

import pytest

from payfirma.services.eft import EFTService, bank_account, validate_bank_account
from tests.conftest import make_response

SERVICE = "/eft-service"

LISTING = {
    "entities": [
        {"id": 1, "type": "DEBIT", "amount": 100.0, "status": "COMPLETED", "currency": "CAD"},
        {"id": 2, "type": "DEBIT", "amount": 50.0, "status": "FAILED"},
        {"id": 3, "type": "CREDIT", "amount": 25.0, "status": "COMPLETED"},
        {"id": 4, "type": "DEPOSIT", "amount": 10.0, "status": "PENDING"},
    ]
}


def sent_json(call):
    return json.loads(call.data)


class TestBankAccountValidation:
    """Tests for local bank account checks."""

    def test_valid(self):
        """Test well-formed details pass."""
        assert validate_bank_account("12345678", "123456789") == {"valid": True, "errors": []}

    def test_short_account_number(self):
        """Test account numbers under four digits are rejected."""
        result = validate_bank_account("123", "123456789")

        assert result["valid"] is False
        assert result["errors"] == ["Account number must be between 4 and 17 digits"]

    def test_non_digit_values(self):
        """Test letters are rejected in both fields."""
        result = validate_bank_account("12ab5678", "12345678x")

        assert result["errors"] == [
            "Account number must contain only digits",
            "Routing number must contain only digits",
        ]

    def test_wrong_routing_length(self):
        """Test routing numbers must be nine digits."""
        result = validate_bank_account("12345678", "12345678")
        assert result["errors"] == ["Routing number must be 9 digits"]

    def test_empty_values(self):
        """Test empty values fail every rule."""
        assert len(validate_bank_account("", "")["errors"]) == 4

    def test_service_exposes_validation(self):
        """Test the service exposes the same check."""
        assert EFTService.validate_bank_account("12345678", "123456789")["valid"] is True


class TestTransfers:
    """Tests for debit, credit and deposit."""

    @pytest.mark.asyncio
    async def test_endpoints(self, authed_client, routed_session):
        """Test each transfer posts to its endpoint."""
        for path in ("/debit", "/credit", "/deposit"):
            routed_session.add("POST", SERVICE + path, make_response(200, {"id": 1}))

        await authed_client.eft.process_debit({"amount": 1})
        await authed_client.eft.process_credit({"amount": 1})
        await authed_client.eft.bank_deposit({"amount": 1})

        assert [c.path for c in routed_session.calls] == [
            f"{SERVICE}/debit",
            f"{SERVICE}/credit",
            f"{SERVICE}/deposit",
        ]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "method,path",
        [("quick_debit", "/debit"), ("quick_credit", "/credit"), ("quick_bank_deposit", "/deposit")],
    )
    async def test_quick_transfers(self, authed_client, routed_session, method, path):
        """Test shortcuts build a checking account block."""
        routed_session.add("POST", SERVICE + path, make_response(200, {}))

        await getattr(authed_client.eft, method)(75.0, "12345678", "123456789", "Ada Lovelace")

        assert sent_json(routed_session.calls[0]) == {
            "amount": 75.0,
            "currency": "CAD",
            "bank_account": bank_account("12345678", "123456789", "Ada Lovelace"),
        }
        assert sent_json(routed_session.calls[0])["bank_account"]["account_type"] == "CHECKING"

    @pytest.mark.asyncio
    async def test_balance_and_lookup(self, authed_client, routed_session):
        """Test balance and transaction lookup endpoints."""
        routed_session.add("GET", f"{SERVICE}/balance", make_response(200, {"available_balance": 10}))
        routed_session.add("GET", f"{SERVICE}/transaction/e1", make_response(200, {"id": "e1"}))

        assert await authed_client.eft.get_balance() == {"available_balance": 10}
        assert await authed_client.eft.get_transaction("e1") == {"id": "e1"}
        assert await authed_client.eft.transaction_exists("e404") is False


class TestFilters:
    """Tests for EFT listing filters."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "method,args,params",
        [
            ("get_transactions_by_status", ("PENDING",), {"status": "PENDING"}),
            ("get_transactions_by_type", ("DEBIT",), {"type": "DEBIT"}),
            ("get_transactions_by_date_range", ("2024-01-01", "2024-01-02"), {"start_date": "2024-01-01", "end_date": "2024-01-02"}),
            ("get_transactions_by_amount_range", (5, 50), {"amount_min": "5", "amount_max": "50"}),
            ("get_pending_transactions", (), {"status": "PENDING"}),
            ("get_completed_transactions", (), {"status": "COMPLETED"}),
            ("get_failed_transactions", (), {"status": "FAILED"}),
            ("get_debit_transactions", (), {"type": "DEBIT"}),
            ("get_credit_transactions", (), {"type": "CREDIT"}),
            ("get_deposit_transactions", (), {"type": "DEPOSIT"}),
        ],
    )
    async def test_filter_params(self, authed_client, routed_session, method, args, params):
        """Test each filter sends its query parameters."""
        routed_session.add("GET", f"{SERVICE}/transactions", make_response(200, LISTING))

        result = await getattr(authed_client.eft, method)(*args)

        assert routed_session.calls[0].params == params
        assert len(result) == 4


class TestReporting:
    """Tests for EFT summaries."""

    @pytest.mark.asyncio
    async def test_account_summary(self, authed_client, routed_session):
        """Test the summary combines balance, recent and today's outcomes."""

        def transactions(call):
            params = call.params or {}
            if params.get("limit") == "10":
                return make_response(200, {"entities": [{"id": "recent"}]})
            if params.get("status") == "PENDING":
                return make_response(200, {"entities": [{"id": 4}, {"id": 5}]})
            assert params == {"start_date": "2024-01-15", "end_date": "2024-01-15"}
            return make_response(200, LISTING)

        routed_session.add("GET", f"{SERVICE}/balance", make_response(200, {"available_balance": 500}))
        routed_session.handle("GET", f"{SERVICE}/transactions", transactions)

        summary = await authed_client.eft.get_account_summary(today=date(2024, 1, 15))

        assert summary == {
            "balance": {"available_balance": 500},
            "recent_transactions": [{"id": "recent"}],
            "pending_count": 2,
            "completed_today": 2,
            "failed_today": 1,
        }

    @pytest.mark.asyncio
    async def test_daily_volume(self, authed_client, routed_session):
        """Test per-type counts and amounts."""
        routed_session.add("GET", f"{SERVICE}/transactions", make_response(200, LISTING))

        volume = await authed_client.eft.get_daily_volume("2024-01-15")

        assert volume == {
            "date": "2024-01-15",
            "transaction_count": 4,
            "total_amount": 185.0,
            "debit_count": 2,
            "debit_amount": 150.0,
            "credit_count": 1,
            "credit_amount": 25.0,
            "deposit_count": 1,
            "deposit_amount": 10.0,
            "currency": "CAD",
        }
