"""
Shared error handling for Trend Ankara Access Layer.

Every error leaving a service is rendered as the mobile envelope
``{"success": false, "data": null, "error": "<message>"}``. Messages are
user-facing and in Turkish; details stay in the logs.
"""

from typing import Any, Dict, Optional

from opentelemetry import trace
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response envelope."""

    success: bool = False
    data: Optional[Any] = None
    error: str
    code: str
    trace_id: Optional[str] = None


class MobileApiException(Exception):
    """Base exception for Access Layer services."""

    status_code = 400

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        trace_id = None
        current_span = trace.get_current_span()
        if current_span and current_span.is_recording():
            span_context = current_span.get_span_context()
            if span_context.trace_id != 0:
                trace_id = f"{span_context.trace_id:032x}"

        return ErrorResponse(
            error=self.message,
            code=self.code,
            trace_id=trace_id,
        )


class ValidationError(MobileApiException):
    """Invalid client input."""

    status_code = 400

    def __init__(self, message: str = "Geçersiz istek", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class NotFoundError(MobileApiException):
    """Requested resource does not exist."""

    status_code = 404

    def __init__(self, message: str = "Kayıt bulunamadı", details: Optional[Dict[str, Any]] = None):
        super().__init__("NOT_FOUND", message, details)


class UpstreamFetchError(MobileApiException):
    """A read against the relational store failed; nothing was cached."""

    status_code = 500

    def __init__(
        self,
        resource: str,
        message: str = "Veriler yüklenirken bir hata oluştu",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.resource = resource
        super().__init__("UPSTREAM_FETCH_ERROR", message, details)


class DatabaseError(MobileApiException):
    """Persistence-layer failure."""

    status_code = 500

    def __init__(self, message: str = "Veritabanı hatası", details: Optional[Dict[str, Any]] = None):
        super().__init__("DATABASE_ERROR", message, details)
