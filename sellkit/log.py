"""Structured JSON logging for sellkit.

Every state-machine decision (entry path, trigger activation, checkout
outcome) is logged as a single JSON line so a host can replay what the
widget decided for a visitor.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

ROOT_LOGGER = "sellkit"


class JSONFormatter(logging.Formatter):
    """Formats log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        # Merge extra structured data
        if hasattr(record, "data"):
            entry["data"] = record.data  # type: ignore[attr-defined]
        if record.exc_info and record.exc_info[1]:
            entry["error"] = str(record.exc_info[1])
        return json.dumps(entry, ensure_ascii=False, default=str)


def setup_logging(
    log_dir: Path | None = None,
    level: int | str = logging.INFO,
) -> logging.Logger:
    """Configure structured logging for the widget.

    Args:
        log_dir: Directory for log files. If None, logs to stderr only.
        level: Logging level.

    Returns:
        The root 'sellkit' logger.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)

    # Avoid duplicate handlers on repeated calls
    if logger.handlers:
        return logger

    fmt = JSONFormatter()

    if log_dir:
        log_dir.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_dir / "sellkit.jsonl", encoding="utf-8")
        fh.setFormatter(fmt)
        fh.setLevel(level)
        logger.addHandler(fh)

    sh = logging.StreamHandler()
    sh.setFormatter(fmt)
    sh.setLevel(logging.WARNING)
    logger.addHandler(sh)

    return logger


def log_decision(offer_id: str, decision: str, *, diagnostic: bool = False, **fields: Any) -> None:
    """Log a visibility or trigger decision for one offer.

    Records from diagnostic widgets carry ``diagnostic: true``.
    """
    if diagnostic:
        fields["diagnostic"] = True
    logger = logging.getLogger(f"{ROOT_LOGGER}.decision")
    logger.info(
        decision,
        extra={"data": {"offer_id": offer_id, **fields}},
    )


def log_checkout(offer_id: str, status: str, **fields: Any) -> None:
    logger = logging.getLogger(f"{ROOT_LOGGER}.checkout")
    level = logging.WARNING if status == "failed" else logging.INFO
    logger.log(
        level,
        "checkout",
        extra={"data": {"offer_id": offer_id, "status": status, **fields}},
    )


__all__ = [
    "ROOT_LOGGER",
    "JSONFormatter",
    "setup_logging",
    "log_decision",
    "log_checkout",
]
