"""JSON-backed memory store.

The whole collection lives in one JSON document. Every operation loads the
document, mutates the in-memory list and writes the full document back.
A lock serializes those load-mutate-save sequences within one process.
"""

from __future__ import annotations

import json
import logging
import threading
import uuid
from pathlib import Path

from memoir.memory.models import (
    Importance,
    Memory,
    MemoryType,
    StorageDocument,
    parse_timestamp,
    utc_now,
)

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10
MAX_LIMIT = 100


class MemoryNotFoundError(Exception):
    """No memory with the given id exists in the store."""

    def __init__(self, memory_id: str) -> None:
        super().__init__(f"Memory with ID {memory_id} not found")
        self.memory_id = memory_id


class MemoryStore:
    """Read/write access to the memory collection at ``path``."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = threading.Lock()

    # ── Persistence ───────────────────────────────────────────

    def _load(self) -> StorageDocument:
        """Read the document. Missing or unreadable files yield an empty store."""
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return StorageDocument.from_dict(data)
        except FileNotFoundError:
            return StorageDocument()
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning("Could not read %s, starting empty: %s", self.path, e)
            return StorageDocument()

    def _save(self, doc: StorageDocument) -> None:
        doc.last_updated = utc_now()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(doc.to_dict(), ensure_ascii=False, indent=2),
            encoding="utf-8",
        )

    # ── Filtering ─────────────────────────────────────────────

    @staticmethod
    def _select(
        memories: list[Memory],
        query: str | None = None,
        tags: list[str] | None = None,
        session_id: str | None = None,
        importance: str | None = None,
        type: str | None = None,
    ) -> list[Memory]:
        """Apply the substring query, then every supplied filter."""
        selected = []
        for memory in memories:
            if query and not memory.matches(query):
                continue
            if tags is not None and not set(tags) & set(memory.tags):
                continue
            if session_id and memory.session_id != session_id:
                continue
            if importance and memory.importance != importance:
                continue
            if type and memory.type != type:
                continue
            selected.append(memory)
        return selected

    @staticmethod
    def _clamp_limit(limit: float | None) -> int:
        # 0/None fall back to the default
        if not limit:
            return DEFAULT_LIMIT
        return max(1, min(MAX_LIMIT, int(limit)))

    # ── Operations ────────────────────────────────────────────

    def create(
        self,
        content: str,
        tags: list[str] | None = None,
        context: str | None = None,
        session_id: str | None = None,
        importance: Importance | None = None,
        type: MemoryType | None = None,
    ) -> Memory:
        """Store a new memory and return it."""
        with self._lock:
            doc = self._load()
            memory = Memory(
                id=str(uuid.uuid4()),
                content=content,
                tags=list(tags or []),
                context=context or "",
                timestamp=utc_now(),
                session_id=session_id,
                importance=importance or "medium",
                type=type or "other",
            )
            doc.memories.append(memory)
            self._save(doc)
        logger.info("Created memory %s (%s, %s)", memory.id, memory.type, memory.importance)
        return memory.copy()

    def search(
        self,
        query: str | None = None,
        tags: list[str] | None = None,
        session_id: str | None = None,
        importance: Importance | None = None,
        type: MemoryType | None = None,
        limit: float | None = DEFAULT_LIMIT,
    ) -> list[Memory]:
        """Return matching memories, most recent first, at most ``limit`` of them."""
        with self._lock:
            doc = self._load()
        selected = self._select(doc.memories, query, tags, session_id, importance, type)
        # Later insertion wins ties on equal timestamps
        ordered = sorted(
            enumerate(selected),
            key=lambda pair: (parse_timestamp(pair[1].timestamp), pair[0]),
            reverse=True,
        )
        return [memory for _, memory in ordered[: self._clamp_limit(limit)]]

    def update(
        self,
        memory_id: str,
        content: str | None = None,
        tags: list[str] | None = None,
        context: str | None = None,
        importance: Importance | None = None,
        type: MemoryType | None = None,
    ) -> tuple[Memory, Memory]:
        """Replace only the supplied fields. Returns (before, after) snapshots."""
        with self._lock:
            doc = self._load()
            memory = self._find(doc, memory_id)
            before = memory.copy()
            if content is not None:
                memory.content = content
            if tags is not None:
                memory.tags = list(tags)
            if context is not None:
                memory.context = context
            if importance is not None:
                memory.importance = importance
            if type is not None:
                memory.type = type
            self._save(doc)
        logger.info("Updated memory %s", memory_id)
        return before, memory.copy()

    def delete(self, memory_id: str) -> Memory:
        """Remove a single memory by id."""
        with self._lock:
            doc = self._load()
            memory = self._find(doc, memory_id)
            doc.memories.remove(memory)
            self._save(doc)
        logger.info("Deleted memory %s", memory_id)
        return memory

    def preview_delete(
        self,
        query: str | None = None,
        tags: list[str] | None = None,
        session_id: str | None = None,
    ) -> list[Memory]:
        """Memories a confirmed bulk delete would remove. Storage is untouched."""
        with self._lock:
            doc = self._load()
        return self._select(doc.memories, query, tags, session_id)

    def delete_matching(
        self,
        query: str | None = None,
        tags: list[str] | None = None,
        session_id: str | None = None,
    ) -> int:
        """Bulk delete. With no query and no filters this empties the store."""
        if not query and tags is None and not session_id:
            logger.warning("Bulk delete without filters: removing every memory in %s", self.path)
        with self._lock:
            doc = self._load()
            doomed = {m.id for m in self._select(doc.memories, query, tags, session_id)}
            doc.memories = [m for m in doc.memories if m.id not in doomed]
            self._save(doc)
        logger.info("Bulk deleted %d memories", len(doomed))
        return len(doomed)

    # ── Read helpers ──────────────────────────────────────────

    def get(self, memory_id: str) -> Memory | None:
        with self._lock:
            doc = self._load()
        for memory in doc.memories:
            if memory.id == memory_id:
                return memory
        return None

    def all(self) -> list[Memory]:
        """Every memory in stored (insertion) order."""
        with self._lock:
            return self._load().memories

    def _find(self, doc: StorageDocument, memory_id: str) -> Memory:
        for memory in doc.memories:
            if memory.id == memory_id:
                return memory
        raise MemoryNotFoundError(memory_id)
