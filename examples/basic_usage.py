#!/usr/bin/env python3
"""
Payfirma SDK walkthrough
========================

Creates a customer with a stored card, runs sales, an authorization with a
partial capture and a refund, sets up a recurring plan and subscription,
issues an invoice, and prints a few reports.

Requirements: sandbox credentials in PAYFIRMA_CLIENT_ID / PAYFIRMA_CLIENT_SECRET

Usage:
    python examples/basic_usage.py
    python examples/basic_usage.py --debug     # Log every HTTP call
"""

import argparse
import asyncio
import sys
import time

from payfirma import (
    AuthenticationError,
    PayfirmaClient,
    PayfirmaError,
    PaymentError,
    configure_logging,
)

TEST_CARD = "4111111111111111"
DECLINED_CARD = "4000000000000002"


async def walkthrough(client: PayfirmaClient) -> None:
    print("Initializing authentication...")
    await client.initialize()

    customer = await client.customers.create_customer(
        {
            "email": "john.doe@example.com",
            "first_name": "John",
            "last_name": "Doe",
            "company": "Acme Corporation",
            "telephone": "555-123-4567",
            "address1": "123 Main Street",
            "city": "Toronto",
            "province": "ON",
            "country": "CA",
            "postal_code": "M5V 3A8",
            "custom_id": "CUSTOMER-001",
        }
    )
    customer_id = customer["lookup_id"]
    print(f"Customer created: {customer_id}")

    card = await client.customers.add_card(
        customer_id,
        {
            "card_number": TEST_CARD,
            "card_expiry_month": 12,
            "card_expiry_year": 30,
            "cvv2": "123",
            "is_default": True,
            "card_description": "Primary Visa Card",
        },
    )
    print(f"Card added: {card['lookup_id']}")

    sale = await client.transactions.quick_sale(25.99, TEST_CARD, 12, 30, "123")
    print(f"Quick sale: {sale['id']}")

    customer_sale = await client.transactions.sale_with_customer(49.99, customer_id)
    print(f"Customer sale: {customer_sale['id']}")

    plan = await client.plans.create_monthly_plan(
        "Premium Monthly Service", 29.99, number_of_payments=12
    )
    subscription = await client.customers.create_subscription(
        customer_id,
        {
            "plan_lookup_id": plan["lookup_id"],
            "card_lookup_id": card["lookup_id"],
            "amount": 29.99,
            "start_date": int(time.time() * 1000),
            "email": customer["email"],
            "description": "Premium monthly service subscription",
        },
    )
    print(f"Subscription created: {subscription['lookup_id']}")

    invoice = await client.invoices.create_simple_invoice(
        "INV-001",
        customer["email"],
        [
            {"description": "Web Development Services", "quantity": 10, "unit_price": 100.00},
            {"description": "Hosting Services", "quantity": 1, "unit_price": 50.00},
        ],
        "2024-03-15",
        tax_rate=13,
        notes="Thank you for your business!",
    )
    print(f"Invoice created: {invoice['lookup_id']}")

    authorization = await client.transactions.quick_authorization(75.00, TEST_CARD, 12, 30, "123")
    capture = await client.transactions.capture_partial_amount(authorization["id"], 50.00)
    print(f"Captured {capture['id']} from authorization {authorization['id']}")

    refund = await client.transactions.partial_refund(
        sale["id"], 10.00, "Customer requested partial refund"
    )
    print(f"Refund processed: {refund['id']}")

    summary = await client.transactions.get_transaction_summary(
        {"start_date": "2024-01-01", "end_date": "2024-12-31"}
    )
    print(
        f"Transactions: {summary['total_count']} totalling "
        f"{summary['total_amount']:.2f} {summary['currency']}"
    )

    stats = await client.plans.get_plan_statistics()
    print(f"Plans: {stats['active_plans']} active of {stats['total_plans']}")

    try:
        balance = await client.eft.get_balance()
        print(f"EFT balance: {balance.get('available_balance')} {balance.get('currency')}")
    except PayfirmaError as e:
        print(f"EFT service not available: {e.message}")

    status = client.get_auth_status()
    print(f"Authenticated: {status.is_authenticated}, token valid: {status.token_valid}")


async def reporting(client: PayfirmaClient) -> None:
    """Run several independent lookups at once."""
    results = await asyncio.gather(
        client.customers.search_customers_by_email("test@example.com"),
        client.transactions.get_transactions_by_date_range("2024-01-01", "2024-12-31"),
        client.plans.get_active_plans(),
        client.invoices.get_paid_invoices(),
        return_exceptions=True,
    )
    for index, result in enumerate(results, start=1):
        if isinstance(result, PayfirmaError):
            print(f"Lookup {index} failed: {result.message}")
        else:
            print(f"Lookup {index}: {len(result)} results")


async def declined_card(client: PayfirmaClient) -> None:
    try:
        await client.transactions.quick_sale(100.00, DECLINED_CARD, 12, 30, "123")
    except PaymentError as e:
        print(f"Expected decline: {e.message} ({e.code})")


async def main() -> int:
    parser = argparse.ArgumentParser(description="Payfirma SDK walkthrough")
    parser.add_argument("--debug", action="store_true", help="Enable SDK debug logging")
    args = parser.parse_args()

    if args.debug:
        configure_logging(level="DEBUG")

    try:
        async with PayfirmaClient.create(sandbox=True) as client:
            await walkthrough(client)
            await reporting(client)
            await declined_card(client)
    except PayfirmaError as e:
        if isinstance(e.cause, AuthenticationError):
            print("Authentication failed. Check your credentials.", file=sys.stderr)
        print(f"Error [{e.category.value}] {e.code}: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
