"""
Exception types for the Payfirma SDK.

Every failure a caller can observe is one of the classes below, all rooted at
PayfirmaError. Each class carries a fixed ``category`` from the closed
ErrorCategory enum, so call sites may either catch by class or dispatch on the
category:

    try:
        await client.transactions.create_sale(request)
    except PayfirmaError as err:
        match err.category:
            case ErrorCategory.PAYMENT:
                ...
            case ErrorCategory.RATE_LIMIT:
                ...

Instances are built once by the error classifier (payfirma.errors) or by
configuration validation and are never mutated afterwards.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, ClassVar


class ErrorCategory(str, Enum):
    """Closed set of error categories."""

    AUTHENTICATION = "authentication"
    VALIDATION = "validation"
    PAYMENT = "payment"
    NOT_FOUND = "not_found"
    RATE_LIMIT = "rate_limit"
    NETWORK = "network"
    API = "api"
    CONFIGURATION = "configuration"


class ErrorCode(str, Enum):
    """Error codes reported by the Payfirma API or assigned locally."""

    # Authentication
    AUTHENTICATION_FAILED = "AUTHENTICATION_FAILED"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    INSUFFICIENT_SCOPE = "INSUFFICIENT_SCOPE"

    # Validation
    VALIDATION_ERROR = "VALIDATION_ERROR"
    REQUIRED_FIELD_MISSING = "REQUIRED_FIELD_MISSING"
    INVALID_FORMAT = "INVALID_FORMAT"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    INVALID_CURRENCY = "INVALID_CURRENCY"
    INVALID_CARD_NUMBER = "INVALID_CARD_NUMBER"
    INVALID_EXPIRY_DATE = "INVALID_EXPIRY_DATE"
    INVALID_CVV = "INVALID_CVV"

    # Payment
    PAYMENT_DECLINED = "PAYMENT_DECLINED"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    CARD_DECLINED = "CARD_DECLINED"
    DUPLICATE_TRANSACTION = "DUPLICATE_TRANSACTION"
    REFUND_FAILED = "REFUND_FAILED"
    CAPTURE_FAILED = "CAPTURE_FAILED"

    # Resource
    TRANSACTION_NOT_FOUND = "TRANSACTION_NOT_FOUND"
    CUSTOMER_NOT_FOUND = "CUSTOMER_NOT_FOUND"
    PLAN_NOT_FOUND = "PLAN_NOT_FOUND"
    INVOICE_NOT_FOUND = "INVOICE_NOT_FOUND"
    CARD_NOT_FOUND = "CARD_NOT_FOUND"
    SUBSCRIPTION_NOT_FOUND = "SUBSCRIPTION_NOT_FOUND"

    # Rate limiting
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    # System
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    API_ERROR = "API_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"

    # Configuration
    INVALID_CONFIGURATION = "INVALID_CONFIGURATION"
    MISSING_CREDENTIALS = "MISSING_CREDENTIALS"


class PayfirmaError(Exception):
    """Base exception for all Payfirma SDK errors.

    Attributes:
        message: Human-readable description.
        code: Error code string. Known codes are ErrorCode members; codes the
            API reports that this SDK does not know are kept verbatim.
        status_code: HTTP status when the failure came from a response.
        details: Structured details, normally the API error body.
        request_id: Correlation id surfaced by the API, if any.
        cause: The underlying exception, also chained as ``__cause__``.
    """

    category: ClassVar[ErrorCategory] = ErrorCategory.API
    default_code: ClassVar[ErrorCode] = ErrorCode.API_ERROR

    def __init__(
        self,
        message: str,
        code: ErrorCode | str | None = None,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
        request_id: str | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = _coerce_code(code) if code is not None else self.default_code
        self.status_code = status_code
        self.details = details or {}
        self.request_id = request_id
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(message={self.message!r}, code={_code_value(self.code)!r}, "
            f"status_code={self.status_code!r}, request_id={self.request_id!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Plain-dict view for logging or returning from an embedding API."""
        result: dict[str, Any] = {
            "category": self.category.value,
            "code": _code_value(self.code),
            "message": self.message,
        }
        if self.status_code is not None:
            result["status_code"] = self.status_code
        if self.details:
            result["details"] = self.details
        if self.request_id:
            result["request_id"] = self.request_id
        return result


def _coerce_code(code: ErrorCode | str) -> ErrorCode | str:
    if isinstance(code, ErrorCode):
        return code
    try:
        return ErrorCode(code)
    except ValueError:
        return code


def _code_value(code: ErrorCode | str) -> str:
    return code.value if isinstance(code, ErrorCode) else code


# ============================================================================
# Remote errors
# ============================================================================


class AuthenticationError(PayfirmaError):
    """Credentials were rejected, have expired, or lack the required scope."""

    category = ErrorCategory.AUTHENTICATION
    default_code = ErrorCode.AUTHENTICATION_FAILED

    def __init__(self, message: str, details: dict[str, Any] | None = None, **kwargs: Any):
        kwargs.setdefault("status_code", 401)
        super().__init__(message, details=details, **kwargs)


class ValidationError(PayfirmaError):
    """The request was malformed or failed server-side validation."""

    category = ErrorCategory.VALIDATION
    default_code = ErrorCode.VALIDATION_ERROR

    def __init__(self, message: str, details: dict[str, Any] | None = None, **kwargs: Any):
        kwargs.setdefault("status_code", 400)
        super().__init__(message, details=details, **kwargs)


class PaymentError(PayfirmaError):
    """A payment was declined or could not be processed."""

    category = ErrorCategory.PAYMENT
    default_code = ErrorCode.PAYMENT_FAILED

    def __init__(self, message: str, details: dict[str, Any] | None = None, **kwargs: Any):
        kwargs.setdefault("status_code", 402)
        super().__init__(message, details=details, **kwargs)


class NotFoundError(PayfirmaError):
    """The addressed resource does not exist."""

    category = ErrorCategory.NOT_FOUND

    def __init__(
        self,
        message: str,
        resource_type: str,
        details: dict[str, Any] | None = None,
        **kwargs: Any,
    ):
        kwargs.setdefault("status_code", 404)
        kwargs.setdefault("code", f"{resource_type.upper()}_NOT_FOUND")
        super().__init__(message, details={**(details or {}), "resource_type": resource_type}, **kwargs)
        self.resource_type = resource_type


class RateLimitError(PayfirmaError):
    """The API rejected the call because the client exceeded its quota."""

    category = ErrorCategory.RATE_LIMIT
    default_code = ErrorCode.RATE_LIMIT_EXCEEDED

    def __init__(
        self,
        message: str,
        reset_at: float | None = None,
        remaining: int | None = None,
        window: int | None = None,
        details: dict[str, Any] | None = None,
        **kwargs: Any,
    ):
        kwargs.setdefault("status_code", 429)
        extra = {
            k: v
            for k, v in (("reset_at", reset_at), ("remaining", remaining), ("window", window))
            if v is not None
        }
        super().__init__(message, details={**(details or {}), **extra}, **kwargs)
        self.reset_at = reset_at
        self.remaining = remaining
        self.window = window


class ApiError(PayfirmaError):
    """Any other API failure, carrying the HTTP status it arrived with."""

    category = ErrorCategory.API
    default_code = ErrorCode.API_ERROR

    def __init__(
        self,
        message: str,
        code: ErrorCode | str | None = None,
        status_code: int | None = 500,
        details: dict[str, Any] | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, code=code, status_code=status_code, details=details, **kwargs)


# ============================================================================
# Local errors
# ============================================================================


class NetworkError(PayfirmaError):
    """No HTTP response was received at all."""

    category = ErrorCategory.NETWORK
    default_code = ErrorCode.NETWORK_ERROR


class NetworkTimeoutError(NetworkError):
    """The request did not complete within the configured timeout."""

    default_code = ErrorCode.TIMEOUT_ERROR

    def __init__(self, message: str, timeout: float | None = None, **kwargs: Any):
        details = kwargs.pop("details", None) or {}
        if timeout is not None:
            details = {**details, "timeout_seconds": timeout}
        super().__init__(message, details=details, **kwargs)
        self.timeout = timeout


class ConfigurationError(PayfirmaError):
    """SDK configuration is invalid. Raised before any network activity."""

    category = ErrorCategory.CONFIGURATION
    default_code = ErrorCode.INVALID_CONFIGURATION

    def __init__(self, message: str, details: dict[str, Any] | None = None, **kwargs: Any):
        super().__init__(message, details=details, **kwargs)


__all__ = [
    "ErrorCategory",
    "ErrorCode",
    "PayfirmaError",
    "AuthenticationError",
    "ValidationError",
    "PaymentError",
    "NotFoundError",
    "RateLimitError",
    "ApiError",
    "NetworkError",
    "NetworkTimeoutError",
    "ConfigurationError",
]
