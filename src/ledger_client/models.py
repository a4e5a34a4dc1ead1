"""
Pydantic data models for the ledger store client.

Entities carry a payload, searchable key/value annotations and an expiry.
"""

import base64
from typing import Optional, Union

from pydantic import BaseModel, field_validator

AnnotationValue = Union[str, int]


class EntityCreate(BaseModel):
    """A single entity submitted to the ledger store."""

    payload: bytes
    content_type: str = "application/json"
    annotations: dict[str, AnnotationValue] = {}
    expires_in: int  # seconds

    @field_validator("annotations", mode="before")
    @classmethod
    def _coerce_annotations(cls, v):
        # Pairs are accepted as well as mappings; a repeated key keeps the last value.
        if isinstance(v, (list, tuple)):
            v = {key: value for key, value in v}
        out: dict[str, AnnotationValue] = {}
        for key, value in dict(v).items():
            if not isinstance(key, str) or not key:
                raise ValueError(f"Annotation key must be a non-empty string: {key!r}")
            if value is None:
                continue
            if isinstance(value, bool):
                out[key] = str(value).lower()
            elif isinstance(value, int):
                if value < 0:
                    raise ValueError(f"Numeric annotation {key} must be non-negative")
                out[key] = value
            else:
                out[key] = str(value)
        return out

    @field_validator("expires_in")
    @classmethod
    def _positive_expiry(cls, v):
        if v <= 0:
            raise ValueError("expires_in must be positive")
        return v

    def string_annotations(self) -> list[dict]:
        return [{"key": k, "value": v} for k, v in self.annotations.items() if isinstance(v, str)]

    def numeric_annotations(self) -> list[dict]:
        return [{"key": k, "value": v} for k, v in self.annotations.items() if isinstance(v, int)]

    def to_wire(self) -> dict:
        return {
            "payload": base64.b64encode(self.payload).decode("ascii"),
            "contentType": self.content_type,
            "stringAnnotations": self.string_annotations(),
            "numericAnnotations": self.numeric_annotations(),
            "expiresIn": self.expires_in,
        }


class CreateReceipt(BaseModel):
    """Acknowledgement for one accepted entity."""

    entity_key: str
    expiration_block: Optional[int] = None


class Entity(BaseModel):
    """An entity returned by the query path."""

    entity_key: str
    payload: bytes = b""
    content_type: Optional[str] = None
    annotations: dict[str, AnnotationValue] = {}
    expires_at: Optional[int] = None

    @classmethod
    def from_wire(cls, raw: dict) -> "Entity":
        annotations: dict[str, AnnotationValue] = {}
        for a in raw.get("stringAnnotations") or []:
            annotations[a["key"]] = str(a["value"])
        for a in raw.get("numericAnnotations") or []:
            annotations[a["key"]] = int(a["value"])
        payload = raw.get("payload")
        return cls(
            entity_key=raw["entityKey"],
            payload=base64.b64decode(payload) if payload else b"",
            content_type=raw.get("contentType"),
            annotations=annotations,
            expires_at=raw.get("expiresAt"),
        )


class QueryPage(BaseModel):
    """One page of query results with a continuation cursor."""

    entities: list[Entity] = []
    cursor: Optional[str] = None

    @property
    def has_more(self) -> bool:
        return self.cursor is not None
