from __future__ import annotations

from uuid import uuid4


def new_trace_id() -> str:
    return uuid4().hex


class SellKitError(Exception):
    def __init__(self, message: str, *, error_type: str, trace_id: str | None = None) -> None:
        self.error_type = error_type
        self.trace_id = trace_id or new_trace_id()
        super().__init__(message)

    def with_trace(self) -> str:
        return f"{self.args[0]} (trace_id={self.trace_id})"


class ConfigFetchError(SellKitError):
    def __init__(self, message: str, *, trace_id: str | None = None) -> None:
        super().__init__(message, error_type="config_fetch", trace_id=trace_id)


class CheckoutSessionError(SellKitError):
    """The backend refused or garbled a checkout-session request.

    ``message`` is already phrased for the visitor.
    """

    def __init__(self, message: str, *, trace_id: str | None = None) -> None:
        super().__init__(message, error_type="checkout_session", trace_id=trace_id)


class RequestTimeoutError(SellKitError):
    def __init__(self, message: str, *, trace_id: str | None = None) -> None:
        super().__init__(message, error_type="timeout", trace_id=trace_id)


class TransportError(SellKitError):
    def __init__(self, message: str, *, trace_id: str | None = None) -> None:
        super().__init__(message, error_type="transport", trace_id=trace_id)


class EventReportError(SellKitError):
    def __init__(self, message: str, *, trace_id: str | None = None) -> None:
        super().__init__(message, error_type="event_report", trace_id=trace_id)


__all__ = [
    "new_trace_id",
    "SellKitError",
    "ConfigFetchError",
    "CheckoutSessionError",
    "RequestTimeoutError",
    "TransportError",
    "EventReportError",
]
