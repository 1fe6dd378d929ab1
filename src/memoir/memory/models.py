"""Memory record and storage document types."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Literal

Importance = Literal["low", "medium", "high"]
MemoryType = Literal["conversation", "decision", "preference", "fact", "other"]

IMPORTANCE_LEVELS = ("low", "medium", "high")
MEMORY_TYPES = ("conversation", "decision", "preference", "fact", "other")

STORAGE_VERSION = "1.0.0"


def utc_now() -> str:
    """Current time as an ISO-8601 UTC string, e.g. 2026-02-18T09:30:00.123Z."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Parse a stored timestamp. Naive values are read as UTC; garbage sorts first."""
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return datetime.min.replace(tzinfo=timezone.utc)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


@dataclass
class Memory:
    """One stored note with its metadata."""

    id: str
    content: str
    tags: list[str] = field(default_factory=list)
    context: str = ""
    timestamp: str = field(default_factory=utc_now)
    session_id: str | None = None
    importance: Importance = "medium"
    type: MemoryType = "other"

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match on content, context and tags."""
        q = query.lower()
        return (
            q in self.content.lower()
            or q in self.context.lower()
            or any(q in tag.lower() for tag in self.tags)
        )

    def copy(self) -> Memory:
        return replace(self, tags=list(self.tags))

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "content": self.content,
            "tags": list(self.tags),
            "context": self.context,
            "timestamp": self.timestamp,
        }
        if self.session_id is not None:
            data["session_id"] = self.session_id
        data["importance"] = self.importance
        data["type"] = self.type
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Memory:
        return cls(
            id=str(data["id"]),
            content=data.get("content", ""),
            tags=list(data.get("tags") or []),
            context=data.get("context") or "",
            timestamp=data.get("timestamp") or utc_now(),
            session_id=data.get("session_id"),
            importance=data.get("importance") or "medium",
            type=data.get("type") or "other",
        )


@dataclass
class StorageDocument:
    """The whole persisted collection plus store-level metadata."""

    memories: list[Memory] = field(default_factory=list)
    version: str = STORAGE_VERSION
    last_updated: str = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "memories": [m.to_dict() for m in self.memories],
            "version": self.version,
            "last_updated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StorageDocument:
        return cls(
            memories=[Memory.from_dict(m) for m in data.get("memories", [])],
            version=data.get("version", STORAGE_VERSION),
            last_updated=data.get("last_updated") or utc_now(),
        )
