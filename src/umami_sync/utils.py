"""
Utility functions for the sync pipeline.

Includes time helpers and the canonical timestamp rendering shared by the
normalizer and the ledger sink.
"""

import time
from datetime import datetime, timezone
from typing import Any, Optional

from loguru import logger

# Epoch values above this are taken to be milliseconds.
_EPOCH_MS_THRESHOLD = 100_000_000_000


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def unix_now() -> int:
    """Current wall-clock time in whole seconds."""
    return int(time.time())


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse a datetime from the representations Postgres and JSON produce.

    Returns None when the value is empty or unparseable.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, bool):
        return None
    elif isinstance(value, (int, float)):
        seconds = value / 1000.0 if abs(value) >= _EPOCH_MS_THRESHOLD else float(value)
        try:
            dt = datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z") or text.endswith("z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def render_timestamp(dt: datetime) -> str:
    """Render a datetime as UTC ISO-8601 with a ``Z`` suffix, keeping milliseconds if set."""
    dt = dt.astimezone(timezone.utc)
    base = dt.strftime("%Y-%m-%dT%H:%M:%S")
    millis = dt.microsecond // 1000
    if millis:
        return f"{base}.{millis:03d}Z"
    return f"{base}Z"


def format_timestamp(value: Any) -> str:
    """Canonical timestamp for any source representation; falls back to now."""
    dt = parse_datetime(value)
    if dt is None:
        if value not in (None, ""):
            logger.warning(f"Unparseable timestamp {value!r}, using current time")
        dt = utc_now()
    return render_timestamp(dt)
