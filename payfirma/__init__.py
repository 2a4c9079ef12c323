"""
payfirma: async Python client for the Payfirma payment API.

OAuth 2.0 token lifecycle with single-flight refresh, camelCase/snake_case
key transformation, typed error classification, and resource services for
customers, plans, transactions, invoices, terminals and EFT.

    from payfirma import PayfirmaClient

    async with PayfirmaClient.create_sandbox("client-id", "client-secret") as client:
        await client.initialize()
        summary = await client.transactions.get_transaction_summary()

Public names are imported lazily so ``import payfirma`` stays cheap.
"""

from __future__ import annotations

import importlib
from typing import Any

from payfirma.__version__ import __version__

_EXPORT_MAP = {
    'ApiError': ('payfirma.exceptions', 'ApiError'),
    'AuthStatus': ('payfirma.client', 'AuthStatus'),
    'AuthenticationError': ('payfirma.exceptions', 'AuthenticationError'),
    'ConfigurationError': ('payfirma.exceptions', 'ConfigurationError'),
    'Credentials': ('payfirma.auth', 'Credentials'),
    'CustomerService': ('payfirma.services', 'CustomerService'),
    'EFTService': ('payfirma.services', 'EFTService'),
    'Environment': ('payfirma.config', 'Environment'),
    'ErrorCategory': ('payfirma.exceptions', 'ErrorCategory'),
    'ErrorCode': ('payfirma.exceptions', 'ErrorCode'),
    'HttpTransport': ('payfirma.http_client', 'HttpTransport'),
    'InvoiceService': ('payfirma.services', 'InvoiceService'),
    'NetworkError': ('payfirma.exceptions', 'NetworkError'),
    'NetworkTimeoutError': ('payfirma.exceptions', 'NetworkTimeoutError'),
    'NotFoundError': ('payfirma.exceptions', 'NotFoundError'),
    'PayfirmaClient': ('payfirma.client', 'PayfirmaClient'),
    'PayfirmaConfig': ('payfirma.config', 'PayfirmaConfig'),
    'PayfirmaError': ('payfirma.exceptions', 'PayfirmaError'),
    'PaymentError': ('payfirma.exceptions', 'PaymentError'),
    'PlanService': ('payfirma.services', 'PlanService'),
    'RateLimitError': ('payfirma.exceptions', 'RateLimitError'),
    'TerminalService': ('payfirma.services', 'TerminalService'),
    'TokenStore': ('payfirma.auth', 'TokenStore'),
    'TokenValidation': ('payfirma.auth', 'TokenValidation'),
    'TransactionService': ('payfirma.services', 'TransactionService'),
    'ValidationError': ('payfirma.exceptions', 'ValidationError'),
    'calculate_invoice_totals': ('payfirma.services', 'calculate_invoice_totals'),
    'camel_to_snake': ('payfirma.transformers', 'camel_to_snake'),
    'classify_error': ('payfirma.errors', 'classify_error'),
    'configure_logging': ('payfirma.logging_config', 'configure_logging'),
    'snake_to_camel': ('payfirma.transformers', 'snake_to_camel'),
    'transform_keys_to_camel': ('payfirma.transformers', 'transform_keys_to_camel'),
    'transform_keys_to_snake': ('payfirma.transformers', 'transform_keys_to_snake'),
}


def __getattr__(name: str) -> Any:
    """Lazily import public symbols to avoid import side effects."""
    try:
        module_name, attr_name = _EXPORT_MAP[name]
    except KeyError as exc:
        raise AttributeError(f"module 'payfirma' has no attribute {name!r}") from exc
    module = importlib.import_module(module_name)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value


def __dir__() -> list[str]:
    return sorted(set(globals()) | set(__all__))


__all__ = [
    "__version__",
    # Client
    "PayfirmaClient",
    "AuthStatus",
    "PayfirmaConfig",
    "Environment",
    # Auth
    "TokenStore",
    "Credentials",
    "TokenValidation",
    # Transport
    "HttpTransport",
    "camel_to_snake",
    "snake_to_camel",
    "transform_keys_to_camel",
    "transform_keys_to_snake",
    # Services
    "CustomerService",
    "PlanService",
    "TransactionService",
    "InvoiceService",
    "TerminalService",
    "EFTService",
    "calculate_invoice_totals",
    # Errors
    "PayfirmaError",
    "ErrorCategory",
    "ErrorCode",
    "AuthenticationError",
    "ValidationError",
    "PaymentError",
    "NotFoundError",
    "RateLimitError",
    "NetworkError",
    "NetworkTimeoutError",
    "ApiError",
    "ConfigurationError",
    "classify_error",
    # Logging
    "configure_logging",
]
