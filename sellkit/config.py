from __future__ import annotations

from dataclasses import dataclass, field
import os

from dotenv import find_dotenv, load_dotenv


def _load_env() -> None:
    env_path = find_dotenv(usecwd=True)
    if env_path:
        load_dotenv(env_path, override=False)


_load_env()


def _get_env(key: str, default: str | None = None) -> str | None:
    value = os.getenv(key)
    if value is None or value == "":
        return default
    return value


def _get_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


DAY_SECONDS = 86400.0


@dataclass
class Settings:
    api_base: str = field(
        default_factory=lambda: _get_env("SELLKIT_API_BASE", "https://mysellkit.com/api/1.1/wf")
    )
    checkout_base: str = field(
        default_factory=lambda: _get_env("SELLKIT_CHECKOUT_BASE", "https://mysellkit.com")
    )
    request_timeout_seconds: float = field(
        default_factory=lambda: _get_float("SELLKIT_REQUEST_TIMEOUT_SECONDS", 10.0)
    )

    session_ttl_seconds: float = field(
        default_factory=lambda: _get_float("SELLKIT_SESSION_TTL_SECONDS", DAY_SECONDS)
    )
    cooldown_seconds: float = field(
        default_factory=lambda: _get_float("SELLKIT_COOLDOWN_SECONDS", DAY_SECONDS)
    )

    exit_intent_threshold_px: int = field(
        default_factory=lambda: _get_int("SELLKIT_EXIT_INTENT_THRESHOLD_PX", 10)
    )
    default_time_trigger_seconds: float = field(
        default_factory=lambda: _get_float("SELLKIT_DEFAULT_TIME_TRIGGER_SECONDS", 5.0)
    )
    default_scroll_percent: float = field(
        default_factory=lambda: _get_float("SELLKIT_DEFAULT_SCROLL_PERCENT", 50.0)
    )
    mobile_breakpoint_px: int = field(
        default_factory=lambda: _get_int("SELLKIT_MOBILE_BREAKPOINT_PX", 768)
    )

    key_prefix: str = field(default_factory=lambda: _get_env("SELLKIT_KEY_PREFIX", "mysellkit") or "mysellkit")
    database_url: str = field(
        default_factory=lambda: _get_env("SELLKIT_DATABASE_URL", "sqlite:///./sellkit.db")
    )
    log_level: str = field(default_factory=lambda: (_get_env("SELLKIT_LOG_LEVEL", "INFO") or "INFO").upper())


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def refresh_settings() -> Settings:
    """Rebuild settings from environment variables."""
    global _settings
    _settings = Settings()
    return _settings


__all__ = [
    "DAY_SECONDS",
    "Settings",
    "get_settings",
    "refresh_settings",
]
