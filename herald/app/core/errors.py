"""
Centralised error handling — exception hierarchy + FastAPI handlers.

Provides:
    • Delivery-specific exception classes (configuration, transport,
      timeout, retry exhaustion, dispatch composition)
    • Consistent JSON error response format
    • Automatic logging of unhandled errors

Every channel surfaces exactly one of these per ``send`` call.

Usage:
    from herald.app.core.errors import (
        NotifyError,
        ConfigurationError,
        TransportError,
        register_error_handlers,
    )

    raise ConfigurationError("bark key is required", field="key")
"""

from __future__ import annotations

import logging
import traceback
from typing import Any, Dict, List, Optional, Sequence, Tuple

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from herald.app.core.config import settings

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Exception Hierarchy
# ═══════════════════════════════════════════════════════════════════════════

class NotifyError(Exception):
    """Base exception for every delivery failure."""

    def __init__(
        self,
        message: str = "Notification delivery failed",
        *,
        status_code: int = 500,
        error_code: str = "NOTIFY_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}


class ConfigurationError(NotifyError):
    """A mandatory setting is missing or invalid."""

    def __init__(self, message: str, *, field: Optional[str] = None, **details: Any):
        d = {**details}
        if field:
            d["field"] = field
        super().__init__(
            message=message,
            status_code=500,
            error_code="CONFIGURATION_ERROR",
            details=d,
        )


class TransportError(NotifyError):
    """Network failure, non-2xx response, or an API-level error code."""

    def __init__(
        self,
        channel: str,
        message: str,
        *,
        status_code_received: Optional[int] = None,
        **details: Any,
    ):
        d: Dict[str, Any] = {"channel": channel, **details}
        if status_code_received is not None:
            d["status_code_received"] = status_code_received
        super().__init__(
            message=message,
            status_code=502,
            error_code="TRANSPORT_ERROR",
            details=d,
        )
        self.channel = channel
        self.status_code_received = status_code_received


class DeliveryTimeoutError(NotifyError, TimeoutError):
    """Per-channel deadline elapsed before a scheduled retry could run."""

    def __init__(self, channel: str, timeout_seconds: float):
        super().__init__(
            message=(
                f"{channel} send timeout: deadline of {timeout_seconds:g}s exceeded"
            ),
            status_code=504,
            error_code="DELIVERY_TIMEOUT",
            details={"channel": channel, "timeout_seconds": timeout_seconds},
        )
        self.channel = channel
        self.timeout_seconds = timeout_seconds


class RetryExhaustedError(NotifyError):
    """Every attempt allowed by the retry policy failed."""

    def __init__(self, channel: str, attempts: int, last_error: BaseException):
        super().__init__(
            message=f"{channel} send failed after {attempts} attempts: {last_error}",
            status_code=502,
            error_code="RETRY_EXHAUSTED",
            details={
                "channel": channel,
                "attempts": attempts,
                "last_error": str(last_error),
            },
        )
        self.channel = channel
        self.attempts = attempts
        self.last_error = last_error


class DispatchError(NotifyError):
    """A child notifier failed during sequential dispatch."""

    def __init__(self, index: int, error: BaseException):
        super().__init__(
            message=f"notifier {index} failed: {error}",
            status_code=502,
            error_code="DISPATCH_FAILED",
            details={"index": index, "error": str(error)},
        )
        self.index = index
        self.error = error


class AggregateDispatchError(NotifyError):
    """One or more children failed during parallel dispatch."""

    def __init__(self, failures: Sequence[Tuple[int, BaseException]]):
        self.failures: List[Tuple[int, BaseException]] = list(failures)
        joined = "; ".join(f"notifier {idx}: {err}" for idx, err in self.failures)
        super().__init__(
            message=f"multi-send failed: {joined}",
            status_code=502,
            error_code="AGGREGATE_DISPATCH_FAILED",
            details={
                "failures": [
                    {"index": idx, "error": str(err)} for idx, err in self.failures
                ],
            },
        )

    @property
    def failed_indices(self) -> List[int]:
        return [idx for idx, _ in self.failures]


# ═══════════════════════════════════════════════════════════════════════════
# Error Response Builder
# ═══════════════════════════════════════════════════════════════════════════

def _build_error_response(
    status_code: int,
    error_code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    request: Optional[Request] = None,
) -> JSONResponse:
    """Build a consistent JSON error response."""
    body: Dict[str, Any] = {
        "error": {
            "code": error_code,
            "message": message,
            "status": status_code,
        }
    }

    if details:
        body["error"]["details"] = details

    # Include request path in non-production
    if request and not settings.is_production:
        body["error"]["path"] = str(request.url.path)
        body["error"]["method"] = request.method

    return JSONResponse(status_code=status_code, content=body)


# ═══════════════════════════════════════════════════════════════════════════
# FastAPI Exception Handlers
# ═══════════════════════════════════════════════════════════════════════════

def register_error_handlers(app: FastAPI) -> None:
    """Register all exception handlers on the FastAPI app."""

    @app.exception_handler(NotifyError)
    async def handle_notify_error(request: Request, exc: NotifyError):
        logger.error(
            "Delivery error [%s]: %s | details=%s",
            exc.error_code, exc.message, exc.details,
        )
        return _build_error_response(
            exc.status_code, exc.error_code, exc.message,
            exc.details, request,
        )

    @app.exception_handler(Exception)
    async def handle_unhandled(request: Request, exc: Exception):
        logger.critical(
            "Unhandled exception: %s\n%s",
            exc, traceback.format_exc(),
        )
        message = str(exc) if settings.DEBUG else "Internal server error"
        return _build_error_response(
            500, "INTERNAL_ERROR", message, request=request,
        )
