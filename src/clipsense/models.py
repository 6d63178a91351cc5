from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class ContentType(str, Enum):
    TEXT = "text"


@dataclass
class DetectedType:
    type: str
    confidence: float
    metadata: dict[str, Any] = field(default_factory=dict)
    preview: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type, "confidence": self.confidence, "metadata": self.metadata}
        if self.preview is not None:
            data["preview"] = self.preview
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DetectedType":
        return cls(
            type=str(data["type"]),
            confidence=float(data["confidence"]),
            metadata=dict(data.get("metadata") or {}),
            preview=data.get("preview"),
        )


@dataclass
class Suggestion:
    """An action the presentation layer may offer. Never executed by the core."""

    id: str
    label: str
    action_name: str
    params: dict[str, Any] = field(default_factory=dict)
    icon: str | None = None


@dataclass
class ClipEntry:
    id: str | None
    content: str
    content_type: ContentType = ContentType.TEXT
    detected_types: list[DetectedType] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    is_favorite: bool = False
    is_deleted: bool = False
    tags: list[str] = field(default_factory=list)

    @property
    def content_hash(self) -> str | None:
        return self.metadata.get("contentHash")

    @property
    def is_sensitive(self) -> bool:
        return bool(self.metadata.get("isSensitive", False))

    @property
    def primary_type(self) -> str | None:
        return self.detected_types[0].type if self.detected_types else None


@dataclass
class Template:
    id: str | None
    name: str
    template: str
    variables: list[str] = field(default_factory=list)
    created_at: datetime | None = None


@dataclass
class DateRange:
    start: datetime
    end: datetime


@dataclass
class SearchFilters:
    content_types: list[ContentType | str] | None = None
    detected_types: list[str] | None = None
    date_range: DateRange | None = None
    tags: list[str] | None = None
    is_favorite: bool | None = None
