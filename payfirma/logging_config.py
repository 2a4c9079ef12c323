"""
Structured logging configuration for the Payfirma SDK.

Provides JSON or text formatted logging with automatic context propagation
through contextvars, so every record emitted while a service call is in
progress carries the service and operation it belongs to.

The library never configures handlers on import. Applications opt in:

    from payfirma.logging_config import configure_logging, get_logger

    configure_logging(level="DEBUG", json_output=False)

    logger = get_logger(__name__)
    logger.info("Charging customer", customer_id="c_123", amount=10.0)

    with LogContext(service="customer-service", operation="charge"):
        logger.info("Charge submitted")  # includes service and operation
"""

import json
import logging
import logging.handlers
import os
import sys
import threading
import time
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable, Dict, Optional

_log_context: ContextVar[Dict[str, str]] = ContextVar("payfirma_log_context", default={})

# Environment configuration
LOG_LEVEL = os.environ.get("PAYFIRMA_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.environ.get("PAYFIRMA_LOG_FORMAT", "text")  # "json" or "text"
LOG_FILE = os.environ.get("PAYFIRMA_LOG_FILE", "")

LOG_MAX_BYTES = int(os.environ.get("PAYFIRMA_LOG_MAX_BYTES", 10 * 1024 * 1024))
LOG_BACKUP_COUNT = int(os.environ.get("PAYFIRMA_LOG_BACKUP_COUNT", 5))

# Fields that must never reach a log sink
_REDACTED_FIELDS = frozenset(
    {"access_token", "refresh_token", "client_secret", "authorization", "card_number", "cvv2"}
)
REDACTED = "***"


class LogContext:
    """
    Bind service/operation labels to every record logged inside the block.

    Nested blocks add to the outer labels and restore them on exit. Each
    asyncio task works on its own copy.
    """

    def __init__(self, **labels: str):
        self._labels = labels
        self._token: Optional[Token[Dict[str, str]]] = None

    def __enter__(self) -> "LogContext":
        self._token = _log_context.set({**_log_context.get(), **self._labels})
        return self

    def __exit__(self, *args) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None

    @staticmethod
    def current() -> Dict[str, str]:
        """Labels bound in the running context."""
        return dict(_log_context.get())


@dataclass
class LogEntry:
    """One rendered SDK log line before serialization."""

    timestamp: str
    level: str
    logger: str
    message: str
    context: Dict[str, str] = field(default_factory=dict)
    fields: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[Dict[str, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "ts": self.timestamp,
            "level": self.level,
            "logger": self.logger,
            "msg": self.message,
            **self.context,
            **self.fields,
        }
        if self.exception:
            result["exception"] = self.exception
        return result

    def to_text(self) -> str:
        parts = [self.timestamp, f"[{self.level}]", f"[{self.logger}]"]
        if "service" in self.context:
            parts.append(f"[{self.context['service']}]")
        parts.append(self.message)
        if "operation" in self.context:
            parts.append(f"operation={self.context['operation']}")
        parts.extend(f"{k}={v}" for k, v in self.fields.items())
        text = " ".join(parts)
        if self.exception:
            text += "\n" + self.exception["traceback"]
        return text


class _StructuredFormatter(logging.Formatter):
    """Builds a LogEntry from the record, the bound context and redacted fields."""

    time_format = "%Y-%m-%dT%H:%M:%S.%fZ"

    def _entry(self, record: logging.LogRecord) -> LogEntry:
        fields = getattr(record, "structured_fields", {})
        entry = LogEntry(
            timestamp=datetime.now(timezone.utc).strftime(self.time_format),
            level=record.levelname,
            logger=self._logger_name(record.name),
            message=record.getMessage(),
            context=LogContext.current(),
            fields={k: (REDACTED if k.lower() in _REDACTED_FIELDS else v) for k, v in fields.items()},
        )
        if record.exc_info:
            exc_type, exc, _ = record.exc_info
            entry.exception = {
                "type": exc_type.__name__ if exc_type else "Unknown",
                "message": str(exc) if exc else "",
                "traceback": self.formatException(record.exc_info),
            }
        return entry

    def _logger_name(self, name: str) -> str:
        return name


class JSONFormatter(_StructuredFormatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        return json.dumps(self._entry(record).to_dict(), default=str)


class TextFormatter(_StructuredFormatter):
    """Human-readable lines with the module part of the logger name."""

    time_format = "%Y-%m-%d %H:%M:%S"

    def format(self, record: logging.LogRecord) -> str:
        return self._entry(record).to_text()

    def _logger_name(self, name: str) -> str:
        return name.rsplit(".", 1)[-1]


class StructuredLogger:
    """Logger whose keyword arguments become structured fields on the record."""

    def __init__(self, name: str):
        self._logger = logging.getLogger(name)

    def log(self, level: int, message: str, exc_info: bool = False, **fields: Any) -> None:
        if self._logger.isEnabledFor(level):
            self._logger.log(
                level, message, exc_info=exc_info, extra={"structured_fields": fields}
            )

    def debug(self, message: str, **fields: Any) -> None:
        self.log(logging.DEBUG, message, **fields)

    def info(self, message: str, **fields: Any) -> None:
        self.log(logging.INFO, message, **fields)

    def warning(self, message: str, exc_info: bool = False, **fields: Any) -> None:
        self.log(logging.WARNING, message, exc_info=exc_info, **fields)

    def error(self, message: str, exc_info: bool = False, **fields: Any) -> None:
        self.log(logging.ERROR, message, exc_info=exc_info, **fields)


_loggers: Dict[str, StructuredLogger] = {}
_loggers_lock = threading.Lock()


def get_logger(name: str) -> StructuredLogger:
    """Get or create the structured logger for ``name`` (thread-safe)."""
    with _loggers_lock:
        if name not in _loggers:
            _loggers[name] = StructuredLogger(name)
        return _loggers[name]


def configure_logging(
    level: str | None = None,
    json_output: bool | None = None,
    log_file: str | None = None,
    propagate: bool = False,
) -> logging.Logger:
    """
    Configure handlers for the ``payfirma`` logger hierarchy.

    Only the SDK's own loggers are touched; the root logger is left to the
    embedding application. Calling it again replaces the earlier handlers.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: If True, output JSON format; if False, text format
        log_file: Optional file path for rotating file output
        propagate: Whether records also propagate to the root logger

    Returns:
        The configured ``payfirma`` logger.
    """
    log_level = getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO)
    use_json = json_output if json_output is not None else (LOG_FORMAT == "json")
    file_path = log_file or LOG_FILE

    formatter = JSONFormatter() if use_json else TextFormatter()

    sdk_logger = logging.getLogger("payfirma")
    sdk_logger.setLevel(log_level)
    sdk_logger.propagate = propagate

    for handler in sdk_logger.handlers[:]:
        sdk_logger.removeHandler(handler)
        handler.close()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if file_path:
        handlers.append(
            logging.handlers.RotatingFileHandler(
                file_path, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT
            )
        )
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(log_level)
        sdk_logger.addHandler(handler)

    return sdk_logger


def log_operation(operation: str | None = None, level: str = "DEBUG"):
    """
    Decorator for async service methods: binds ``operation`` into the log
    context for the duration of the call and logs completion with timing.

    Failures are logged at DEBUG with the error class and re-raised.
    """
    log_level = getattr(logging, level.upper(), logging.DEBUG)

    def decorator(func: Callable) -> Callable:
        logger = get_logger(func.__module__)
        op_name = operation or func.__name__

        @wraps(func)
        async def wrapper(*args, **kwargs):
            with LogContext(operation=op_name):
                start = time.monotonic()
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    logger.debug(
                        f"Operation failed: {op_name}",
                        duration_ms=round((time.monotonic() - start) * 1000, 2),
                        error_type=type(e).__name__,
                    )
                    raise
                logger.log(
                    log_level,
                    f"Operation completed: {op_name}",
                    duration_ms=round((time.monotonic() - start) * 1000, 2),
                )
                return result

        return wrapper

    return decorator
