"""
Event normalizer: maps decoded notification payloads to SyncItems.

Pure functions, no I/O. Identity fields must be present; descriptive metadata
falls back to ``UNKNOWN``.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from pydantic import ValidationError

from .errors import MalformedPayloadError
from .models import RecordKind, SyncItem
from .utils import format_timestamp

WEBSITE_EVENT_CHANNEL = "website_event_insert"
SESSION_CHANNEL = "session_insert"
CHANNELS = (WEBSITE_EVENT_CHANNEL, SESSION_CHANNEL)

# website_event.event_type values
EVENT_TYPE_PAGEVIEW = 1
EVENT_TYPE_CUSTOM = 2

UNKNOWN = "unknown"


def classify(channel: str, payload: Mapping[str, Any]) -> Optional[RecordKind]:
    """Record kind for a notification, or None if the row is not mirrored."""
    if channel == SESSION_CHANNEL:
        return RecordKind.SESSION
    if channel == WEBSITE_EVENT_CHANNEL:
        event_type = payload.get("event_type")
        if event_type == EVENT_TYPE_PAGEVIEW:
            return RecordKind.PAGEVIEW
        if event_type == EVENT_TYPE_CUSTOM:
            return RecordKind.EVENT
    return None


def _describe(payload: Mapping[str, Any], *keys: str) -> dict[str, str]:
    out = {}
    for k in keys:
        value = payload.get(k)
        out[k] = UNKNOWN if value is None or value == "" else str(value)
    return out


def _pageview(p: Mapping[str, Any], created_at: str) -> tuple[Optional[Any], dict, dict]:
    body = {
        "event_id": p.get("event_id"),
        "website_id": p.get("website_id"),
        "session_id": p.get("session_id"),
        "url_path": p.get("url_path"),
        "url_query": p.get("url_query"),
        "referrer_path": p.get("referrer_path"),
        "referrer_domain": p.get("referrer_domain"),
        "page_title": p.get("page_title"),
        "hostname": p.get("hostname"),
        "created_at": created_at,
    }
    return p.get("event_id"), body, _describe(p, "url_path", "hostname", "referrer_domain")


def _custom_event(p: Mapping[str, Any], created_at: str) -> tuple[Optional[Any], dict, dict]:
    body = {
        "event_id": p.get("event_id"),
        "website_id": p.get("website_id"),
        "session_id": p.get("session_id"),
        "event_name": p.get("event_name"),
        "url_path": p.get("url_path"),
        "hostname": p.get("hostname"),
        "created_at": created_at,
    }
    return p.get("event_id"), body, _describe(p, "event_name", "url_path", "hostname")


def _session(p: Mapping[str, Any], created_at: str) -> tuple[Optional[Any], dict, dict]:
    body = {
        "session_id": p.get("session_id"),
        "website_id": p.get("website_id"),
        "browser": p.get("browser"),
        "os": p.get("os"),
        "device": p.get("device"),
        "screen": p.get("screen"),
        "language": p.get("language"),
        "country": p.get("country"),
        "region": p.get("region"),
        "city": p.get("city"),
        "created_at": created_at,
    }
    return p.get("session_id"), body, _describe(p, "country", "device", "browser", "os")


_MAPPERS = {
    RecordKind.PAGEVIEW: _pageview,
    RecordKind.EVENT: _custom_event,
    RecordKind.SESSION: _session,
}


def normalize(kind: RecordKind, payload: Any) -> SyncItem:
    """Map a decoded payload of the given kind to a SyncItem.

    Raises:
        MalformedPayloadError: payload is not an object or lacks ``website_id``
    """
    if not isinstance(payload, Mapping):
        raise MalformedPayloadError(
            f"{kind.value} payload must be an object, got {type(payload).__name__}"
        )
    site_id = payload.get("website_id")
    if not site_id:
        raise MalformedPayloadError(f"{kind.value} payload missing website_id")

    created_at = format_timestamp(payload.get("created_at"))
    source_id, body, tags = _MAPPERS[kind](payload, created_at)
    try:
        return SyncItem(
            kind=kind,
            site_id=str(site_id),
            source_id=source_id,
            occurred_at=created_at,
            body=body,
            tags=tags,
        )
    except ValidationError as e:
        raise MalformedPayloadError(f"{kind.value} payload rejected: {e}") from e
