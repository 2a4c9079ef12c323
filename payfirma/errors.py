"""
Error classification for the Payfirma SDK.

This module is the single import point for the SDK's exceptions and the one
place where raw transport failures become typed errors. Classification
happens once, at the service boundary:

    from payfirma.errors import NotFoundError, PayfirmaError, classify_error

    try:
        response = await transport.get("/customer/abc")
    except TransportError as exc:
        raise classify_error(exc, context="customer service") from exc

Policy:
- an API ``error`` code in the response body selects the error class;
- a response without a code falls back on its status (429 is a rate limit,
  anything else becomes ``fallback``, ApiError by default);
- no response at all is always a NetworkError, whatever else is known;
- the message, status, body, request id and the original exception are kept
  on every result.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Type

from payfirma.exceptions import (
    ApiError,
    AuthenticationError,
    ConfigurationError,
    ErrorCategory,
    ErrorCode,
    NetworkError,
    NetworkTimeoutError,
    NotFoundError,
    PayfirmaError,
    PaymentError,
    RateLimitError,
    ValidationError,
)
from payfirma.http_client import (
    HTTPStatusError,
    TransportConnectionError,
    TransportError,
    TransportTimeoutError,
    get_header,
)


def _codes(*members: ErrorCode) -> frozenset[str]:
    return frozenset(m.value for m in members)


AUTHENTICATION_CODES = _codes(
    ErrorCode.AUTHENTICATION_FAILED,
    ErrorCode.TOKEN_EXPIRED,
    ErrorCode.INVALID_CREDENTIALS,
    ErrorCode.INSUFFICIENT_SCOPE,
)

VALIDATION_CODES = _codes(
    ErrorCode.VALIDATION_ERROR,
    ErrorCode.REQUIRED_FIELD_MISSING,
    ErrorCode.INVALID_FORMAT,
    ErrorCode.INVALID_AMOUNT,
    ErrorCode.INVALID_CURRENCY,
    ErrorCode.INVALID_CARD_NUMBER,
    ErrorCode.INVALID_EXPIRY_DATE,
    ErrorCode.INVALID_CVV,
)

PAYMENT_CODES = _codes(
    ErrorCode.PAYMENT_DECLINED,
    ErrorCode.PAYMENT_FAILED,
    ErrorCode.CARD_DECLINED,
    ErrorCode.INSUFFICIENT_FUNDS,
    ErrorCode.DUPLICATE_TRANSACTION,
    ErrorCode.REFUND_FAILED,
    ErrorCode.CAPTURE_FAILED,
)

NOT_FOUND_CODES = _codes(
    ErrorCode.TRANSACTION_NOT_FOUND,
    ErrorCode.CUSTOMER_NOT_FOUND,
    ErrorCode.PLAN_NOT_FOUND,
    ErrorCode.INVOICE_NOT_FOUND,
    ErrorCode.CARD_NOT_FOUND,
    ErrorCode.SUBSCRIPTION_NOT_FOUND,
)


def from_api_response(
    code: ErrorCode | str,
    message: str,
    status: Optional[int] = None,
    details: Optional[dict[str, Any]] = None,
    request_id: Optional[str] = None,
    cause: Optional[BaseException] = None,
    headers: Optional[Mapping[str, str]] = None,
) -> PayfirmaError:
    """Build the typed error for an API error code.

    Codes are matched exactly. Unknown codes produce an ApiError carrying the
    HTTP status, or 500 when no status is known.
    """
    if isinstance(code, ErrorCode):
        code = code.value
    common: dict[str, Any] = {"details": details, "request_id": request_id, "cause": cause}
    if code in AUTHENTICATION_CODES:
        return AuthenticationError(message, code=code, status_code=status or 401, **common)
    if code in VALIDATION_CODES:
        return ValidationError(message, code=code, status_code=status or 400, **common)
    if code in PAYMENT_CODES:
        return PaymentError(message, code=code, status_code=status or 402, **common)
    if code == ErrorCode.RATE_LIMIT_EXCEEDED.value:
        return _rate_limit_error(message, details, headers, status, request_id, cause)
    if code in NOT_FOUND_CODES:
        return NotFoundError(
            message,
            resource_type=code[: -len("_NOT_FOUND")],
            status_code=status or 404,
            **common,
        )
    return ApiError(message, code=code, status_code=status or 500, **common)


def classify_error(
    error: BaseException,
    *,
    context: str = "request",
    fallback: Type[PayfirmaError] = ApiError,
) -> PayfirmaError:
    """Turn any failure raised below the service layer into one typed error.

    Args:
        error: The exception to classify.
        context: Short label used in generated messages, e.g. "customer service".
        fallback: Class for responses that carry neither a known status rule
            nor an error code.
    """
    if isinstance(error, PayfirmaError):
        return error

    if isinstance(error, TransportTimeoutError):
        return NetworkTimeoutError(
            f"Request timed out in {context} after {error.timeout:g}s",
            timeout=error.timeout,
            cause=error,
        )

    if isinstance(error, TransportConnectionError):
        return NetworkError(f"Network error in {context}", cause=error)

    if isinstance(error, HTTPStatusError):
        return _classify_status_error(error, context, fallback)

    if isinstance(error, TransportError):
        return NetworkError(f"Network error in {context}", cause=error)

    return ApiError(
        f"Unexpected error in {context}: {error}",
        code=ErrorCode.UNKNOWN_ERROR,
        status_code=500,
        cause=error,
    )


def _classify_status_error(
    error: HTTPStatusError,
    context: str,
    fallback: Type[PayfirmaError],
) -> PayfirmaError:
    body = error.body
    details: dict[str, Any]
    if isinstance(body, dict):
        details = dict(body)
    elif body:
        details = {"body": body}
    else:
        details = {}

    request_id = error.request_id or _first(details, "request_id", "requestId")
    code = _first(details, "error", "code")
    message = _first(details, "message", "error_description", "errorDescription")

    if isinstance(code, str) and code:
        return from_api_response(
            code,
            message or f"{_sentence(context)} error",
            status=error.status,
            details=details,
            request_id=request_id,
            cause=error,
            headers=error.headers,
        )

    if error.status == 429:
        return _rate_limit_error(
            message or f"Rate limit exceeded in {context}",
            details,
            error.headers,
            error.status,
            request_id,
            error,
        )

    fallback_message = message or f"{_sentence(context)} error: {error.status}"
    kwargs: dict[str, Any] = {
        "details": details,
        "status_code": error.status,
        "request_id": request_id,
        "cause": error,
    }
    if fallback is ApiError:
        kwargs["code"] = ErrorCode.API_ERROR
    return fallback(fallback_message, **kwargs)


def _rate_limit_error(
    message: str,
    details: Optional[dict[str, Any]],
    headers: Optional[Mapping[str, str]],
    status: Optional[int],
    request_id: Optional[str],
    cause: Optional[BaseException],
) -> RateLimitError:
    body = details or {}
    headers = headers or {}
    reset_at = _to_number(
        _body_or_header(body, headers, "X-RateLimit-Reset", "reset_at", "resetAt"), float
    )
    remaining = _to_number(
        _body_or_header(body, headers, "X-RateLimit-Remaining", "remaining"), int
    )
    window = _to_number(_body_or_header(body, headers, "X-RateLimit-Window", "window"), int)
    return RateLimitError(
        message,
        reset_at=reset_at,
        remaining=remaining,
        window=window,
        details=details,
        status_code=status or 429,
        request_id=request_id,
        cause=cause,
    )


def _sentence(context: str) -> str:
    return context[:1].upper() + context[1:]


def _first(mapping: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = mapping.get(key)
        if value is not None:
            return value
    return None


def _body_or_header(
    body: Mapping[str, Any], headers: Mapping[str, str], header: str, *keys: str
) -> Any:
    """Body value for ``keys``, else the header. Zero is a real value."""
    value = _first(body, *keys)
    if value is None:
        value = get_header(headers, header)
    return value


def _to_number(value: Any, kind: type) -> Any:
    if value is None:
        return None
    try:
        return kind(value)
    except (TypeError, ValueError):
        return None


__all__ = [
    "ApiError",
    "AuthenticationError",
    "ConfigurationError",
    "ErrorCategory",
    "ErrorCode",
    "NetworkError",
    "NetworkTimeoutError",
    "NotFoundError",
    "PayfirmaError",
    "PaymentError",
    "RateLimitError",
    "ValidationError",
    "classify_error",
    "from_api_response",
]
