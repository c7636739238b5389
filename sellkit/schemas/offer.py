from __future__ import annotations

import enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

_TRUTHY = {"yes", "true", "1", "on"}


def parse_flag(value: Any) -> bool:
    """The backend encodes booleans as "yes"/"no" strings."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in _TRUTHY


class DisplayMode(str, enum.Enum):
    OVERLAY = "overlay"
    REMINDER_ONLY = "reminder-only"
    FULLSCREEN = "fullscreen"


class OfferColors(BaseModel):
    primary: Optional[str] = None
    left: Optional[str] = None
    right: Optional[str] = None
    text: Optional[str] = None
    text_light: Optional[str] = None
    cta_text: Optional[str] = None


_COLOR_KEYS = {
    "color_primary": "primary",
    "color_left": "left",
    "color_right": "right",
    "color_text": "text",
    "color_text_light": "text_light",
    "color_cta_text": "cta_text",
}


class OfferConfig(BaseModel):
    """Remote configuration of one offer surface.

    Presentation fields (title, price, image, colors) pass through untouched
    to the host's surface view.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    offer_id: Optional[str] = Field(default=None, alias="popup_id")
    product_id: Optional[str] = None
    is_live: bool = False
    trigger_type: str = "time"
    trigger_value: Optional[float] = None
    persistent_mode: bool = False
    mobile_floating: bool = False
    show_price: bool = True
    display_mode: DisplayMode = DisplayMode.OVERLAY

    title: Optional[str] = None
    price: Optional[str] = None
    image: Optional[str] = None
    cta_text: Optional[str] = None
    floating_emoji: Optional[str] = None
    colors: OfferColors = Field(default_factory=OfferColors)

    @model_validator(mode="before")
    @classmethod
    def collect_colors(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        flat = {target: data[key] for key, target in _COLOR_KEYS.items() if data.get(key)}
        if not flat:
            return data
        merged = dict(data)
        nested = merged.get("colors") or {}
        if isinstance(nested, dict):
            flat = {**flat, **nested}
        merged["colors"] = flat
        for key in _COLOR_KEYS:
            merged.pop(key, None)
        return merged

    @field_validator("is_live", "persistent_mode", "mobile_floating", "show_price", mode="before")
    @classmethod
    def coerce_flag(cls, value: Any) -> bool:
        return parse_flag(value)

    @field_validator("trigger_type", mode="before")
    @classmethod
    def normalize_trigger_type(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip().lower()

    @field_validator("trigger_value", mode="before")
    @classmethod
    def coerce_trigger_value(cls, value: Any) -> Optional[float]:
        if value is None or value == "":
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            return None

    @field_validator("display_mode", mode="before")
    @classmethod
    def coerce_display_mode(cls, value: Any) -> DisplayMode:
        if isinstance(value, DisplayMode):
            return value
        try:
            return DisplayMode(str(value or "").strip().lower())
        except ValueError:
            return DisplayMode.OVERLAY

    @field_validator("image", mode="before")
    @classmethod
    def upgrade_protocol_relative_image(cls, value: Any) -> Any:
        if isinstance(value, str) and value.startswith("//"):
            return f"https:{value}"
        return value

    @field_validator("price", mode="before")
    @classmethod
    def stringify_price(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @classmethod
    def from_envelope(cls, payload: Any) -> "OfferConfig":
        """Parse the backend's ``{"response": {"success": "yes", ...}}`` envelope."""
        if not isinstance(payload, dict):
            raise ValueError("Config payload must be an object")
        body = payload.get("response")
        if not isinstance(body, dict):
            raise ValueError("Config payload is missing 'response'")
        if not parse_flag(body.get("success")):
            raise ValueError("Config response was not successful")
        data: Dict[str, Any] = {key: value for key, value in body.items() if key != "success"}
        return cls.model_validate(data)


__all__ = [
    "parse_flag",
    "DisplayMode",
    "OfferColors",
    "OfferConfig",
]
