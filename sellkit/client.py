from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from .config import Settings, get_settings
from .events.models import TrackEvent
from .exceptions import (
    CheckoutSessionError,
    ConfigFetchError,
    EventReportError,
    RequestTimeoutError,
    TransportError,
)
from .schemas import CheckoutRequest, CheckoutSession, OfferConfig, parse_flag

logger = logging.getLogger(__name__)

CHECKOUT_ERROR_PREFIX = "Unable to start checkout. "


def checkout_error_message(data: Any) -> str:
    """Visitor-facing text for a checkout response without a usable target."""
    body = data.get("response") if isinstance(data, dict) else None
    if isinstance(body, dict) and body.get("error"):
        detail = str(body["error"])
    elif isinstance(data, dict) and data.get("error"):
        detail = str(data["error"])
    elif isinstance(body, dict) and str(body.get("success", "")).lower() == "no":
        detail = "The checkout session could not be created."
    else:
        detail = "Please try again or contact support."
    return CHECKOUT_ERROR_PREFIX + detail


class SellKitClient:
    """Async client for the config, tracking and checkout-session endpoints.

    Every call is bounded by ``request_timeout_seconds``; none is retried.
    Methods raise ``SellKitError`` subclasses and callers turn them into
    outcomes.
    """

    def __init__(
        self,
        *,
        settings: Optional[Settings] = None,
        api_base: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        resolved_settings = settings or get_settings()
        self.api_base = (api_base or resolved_settings.api_base).rstrip("/")
        self._timeout_seconds = (
            float(timeout_seconds)
            if timeout_seconds is not None
            else float(resolved_settings.request_timeout_seconds)
        )
        self._client = httpx.AsyncClient(
            base_url=self.api_base,
            timeout=self._timeout_seconds,
            transport=transport,
            headers={"content-type": "application/json"},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_offer_config(self, offer_id: str) -> OfferConfig:
        logger.debug("Fetching offer config: %s", offer_id)
        response = await self._send(
            "GET",
            "/get-popup-config",
            params={"popup_id": offer_id},
        )
        if response.status_code >= 400:
            raise ConfigFetchError(f"Config endpoint returned {response.status_code} for {offer_id}")
        try:
            data = response.json()
        except ValueError as exc:
            raise ConfigFetchError(f"Config response for {offer_id} is not JSON") from exc
        try:
            config = OfferConfig.from_envelope(data)
        except ValueError as exc:
            raise ConfigFetchError(f"Invalid offer config for {offer_id}: {exc}") from exc
        if config.offer_id is None:
            config.offer_id = offer_id
        return config

    async def track_event(self, event: TrackEvent) -> None:
        response = await self._send(
            "POST",
            "/track-event",
            json=event.to_payload(),
        )
        if response.status_code >= 400:
            raise EventReportError(f"Tracking endpoint returned {response.status_code}")

    async def create_checkout_session(self, request: CheckoutRequest) -> CheckoutSession:
        response = await self._send(
            "POST",
            "/create-checkout-session",
            json=request.model_dump(mode="json", exclude_none=True),
        )
        try:
            data = response.json()
        except ValueError:
            data = None
        body = data.get("response") if isinstance(data, dict) else None
        if (
            response.status_code >= 400
            or not isinstance(body, dict)
            or not parse_flag(body.get("success"))
            or not body.get("checkout_url")
        ):
            logger.error("Invalid checkout response structure (status=%s): %s", response.status_code, data)
            raise CheckoutSessionError(checkout_error_message(data))
        try:
            return CheckoutSession.model_validate(body)
        except ValidationError as exc:
            raise CheckoutSessionError(checkout_error_message(data)) from exc

    async def _send(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        try:
            return await asyncio.wait_for(
                self._client.request(method, path, params=params, json=json),
                timeout=self._timeout_seconds,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise RequestTimeoutError(
                f"{method} {path} timed out after {self._timeout_seconds:.1f}s"
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {path} failed: {exc}") from exc


__all__ = ["CHECKOUT_ERROR_PREFIX", "checkout_error_message", "SellKitClient"]
