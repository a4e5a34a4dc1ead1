"""
Pydantic data models for the sync pipeline.

A SyncItem is the normalized, immutable form of one inserted analytics row.
A LedgerEntity is what the sink submits for it.
"""

from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from ledger_client.models import EntityCreate

from .utils import format_timestamp

TagValue = Union[str, int, float]

REQUIRED_ANNOTATIONS = ("type", "source", "timestamp", "sync_time")


class RecordKind(str, Enum):
    """Analytics record kinds mirrored to the ledger."""

    PAGEVIEW = "pageview"
    EVENT = "event"
    SESSION = "session"


class SyncItem(BaseModel):
    """Unit of work: one source-store change, normalized."""

    model_config = ConfigDict(frozen=True)

    kind: RecordKind
    site_id: str
    source_id: Optional[str] = None
    occurred_at: str
    body: Any = None
    tags: dict[str, TagValue] = {}

    @field_validator("site_id")
    @classmethod
    def _site_id_present(cls, v):
        if not v or not v.strip():
            raise ValueError("site_id must be non-empty")
        return v

    @field_validator("source_id", mode="before")
    @classmethod
    def _stringify_source_id(cls, v):
        if v is None or v == "":
            return None
        return str(v)

    @field_validator("occurred_at", mode="before")
    @classmethod
    def _canonical_timestamp(cls, v):
        return format_timestamp(v)

    @field_validator("tags", mode="before")
    @classmethod
    def _validate_tags(cls, v):
        if isinstance(v, (list, tuple)):
            v = {key: value for key, value in v}
        for key, value in dict(v).items():
            if not isinstance(key, str) or not key:
                raise ValueError(f"Tag key must be a non-empty string: {key!r}")
            if isinstance(value, bool) or not isinstance(value, (str, int, float)):
                raise ValueError(
                    f"Tag {key} must be a string or number, got {type(value).__name__}"
                )
        return v


class LedgerEntity(EntityCreate):
    """Ledger write request for a SyncItem; always independently queryable."""

    @model_validator(mode="after")
    def _required_annotations(self):
        missing = [k for k in REQUIRED_ANNOTATIONS if k not in self.annotations]
        if missing:
            raise ValueError(f"LedgerEntity missing required annotations: {missing}")
        return self
