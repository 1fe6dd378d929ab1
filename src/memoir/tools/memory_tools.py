"""Agent-facing memory tools: schemas, argument checks and text output.

Each tool takes the raw ``arguments`` object of a tool call and returns a
human-readable summary. Arguments are validated before the store is touched.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from memoir.memory.models import IMPORTANCE_LEVELS, MEMORY_TYPES, Memory

if TYPE_CHECKING:
    from memoir.memory.store import MemoryStore

PREVIEW_CHARS = 50


class InvalidParamsError(ValueError):
    """Tool arguments do not match the tool's input schema."""


# ── Tool definitions ─────────────────────────────────────────

_TAGS = {"type": "array", "items": {"type": "string"}}
_IMPORTANCE = {"type": "string", "enum": list(IMPORTANCE_LEVELS)}
_TYPE = {"type": "string", "enum": list(MEMORY_TYPES)}

TOOLS: list[dict[str, Any]] = [
    {
        "name": "reflect",
        "description": "Store a new memory from the current conversation or context",
        "inputSchema": {
            "type": "object",
            "properties": {
                "content": {
                    "type": "string",
                    "description": "The main content of the memory to store",
                },
                "tags": {**_TAGS, "description": "Optional tags to categorize the memory"},
                "context": {
                    "type": "string",
                    "description": "Additional context about when/where this memory was created",
                },
                "session_id": {
                    "type": "string",
                    "description": "Optional session identifier to group related memories",
                },
                "importance": {**_IMPORTANCE, "description": "Importance level of this memory"},
                "type": {**_TYPE, "description": "Type of memory being stored"},
            },
            "required": ["content"],
        },
    },
    {
        "name": "recall",
        "description": "Retrieve memories based on search criteria",
        "inputSchema": {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "Search query to match against memory content, context, and tags",
                },
                "tags": {**_TAGS, "description": "Filter by specific tags"},
                "session_id": {"type": "string", "description": "Filter by session identifier"},
                "importance": {**_IMPORTANCE, "description": "Filter by importance level"},
                "type": {**_TYPE, "description": "Filter by memory type"},
                "limit": {
                    "type": "number",
                    "description": "Maximum number of memories to return (default: 10)",
                    "minimum": 1,
                    "maximum": 100,
                },
            },
            "required": [],
        },
    },
    {
        "name": "modify",
        "description": "Update an existing memory by its ID",
        "inputSchema": {
            "type": "object",
            "properties": {
                "id": {"type": "string", "description": "The unique ID of the memory to modify"},
                "content": {"type": "string", "description": "New content for the memory"},
                "tags": {**_TAGS, "description": "New tags for the memory"},
                "context": {"type": "string", "description": "New context for the memory"},
                "importance": {**_IMPORTANCE, "description": "New importance level"},
                "type": {**_TYPE, "description": "New memory type"},
            },
            "required": ["id"],
        },
    },
    {
        "name": "erase",
        "description": "Delete memories by ID or search criteria",
        "inputSchema": {
            "type": "object",
            "properties": {
                "id": {
                    "type": "string",
                    "description": "The unique ID of a specific memory to delete",
                },
                "query": {"type": "string", "description": "Search query to find memories to delete"},
                "tags": {**_TAGS, "description": "Delete memories with these tags"},
                "session_id": {
                    "type": "string",
                    "description": "Delete all memories from this session",
                },
                "confirm": {
                    "type": "boolean",
                    "description": "Confirmation flag for bulk deletions (required for non-ID deletions)",
                },
            },
            "required": [],
        },
    },
]

_SCHEMAS = {tool["name"]: tool["inputSchema"] for tool in TOOLS}


# ── Argument validation ──────────────────────────────────────


def _check_value(tool: str, key: str, value: Any, prop: dict) -> None:
    kind = prop["type"]
    if kind == "string":
        ok = isinstance(value, str)
    elif kind == "boolean":
        ok = isinstance(value, bool)
    elif kind == "number":
        ok = isinstance(value, (int, float)) and not isinstance(value, bool)
    elif kind == "array":
        ok = isinstance(value, list) and all(isinstance(v, str) for v in value)
    else:
        ok = True
    if not ok:
        raise InvalidParamsError(f"Invalid {tool} arguments: '{key}' must be of type {kind}")
    if "enum" in prop and value not in prop["enum"]:
        raise InvalidParamsError(
            f"Invalid {tool} arguments: '{key}' must be one of {', '.join(prop['enum'])}"
        )


def validate_args(tool: str, args: Any) -> dict[str, Any]:
    """Check ``args`` against the tool's schema. Returns the known fields present.

    An explicit null is a type error, not an omitted field.
    """
    if args is None:
        args = {}
    if not isinstance(args, dict):
        raise InvalidParamsError(f"Invalid {tool} arguments: expected an object")
    schema = _SCHEMAS[tool]
    for key in schema["required"]:
        if key not in args:
            raise InvalidParamsError(f"Invalid {tool} arguments: '{key}' is required")
    cleaned: dict[str, Any] = {}
    for key, prop in schema["properties"].items():
        if key not in args:
            continue
        value = args[key]
        _check_value(tool, key, value, prop)
        cleaned[key] = value
    return cleaned


# ── Rendering ────────────────────────────────────────────────


def _format_memory(index: int, memory: Memory) -> str:
    return (
        f"{index}. ID: {memory.id}\n"
        f"   Content: {memory.content}\n"
        f"   Tags: {', '.join(memory.tags)}\n"
        f"   Context: {memory.context}\n"
        f"   Importance: {memory.importance}\n"
        f"   Type: {memory.type}\n"
        f"   Session: {memory.session_id or 'N/A'}\n"
        f"   Timestamp: {memory.timestamp}"
    )


def _format_fields(memory: Memory) -> str:
    return (
        f"  Content: {memory.content}\n"
        f"  Tags: {', '.join(memory.tags)}\n"
        f"  Context: {memory.context}\n"
        f"  Importance: {memory.importance}\n"
        f"  Type: {memory.type}"
    )


# ── Tools ────────────────────────────────────────────────────


def get_memory_tools(store: MemoryStore) -> dict[str, Callable[[Any], str]]:
    """Return a dict of tool_name -> callable taking the raw tool arguments.

    Raises InvalidParamsError on malformed arguments and
    MemoryNotFoundError when an id does not exist.
    """

    def reflect(arguments: Any) -> str:
        """Store a new memory."""
        args = validate_args("reflect", arguments)
        memory = store.create(
            args["content"],
            tags=args.get("tags"),
            context=args.get("context"),
            session_id=args.get("session_id"),
            importance=args.get("importance"),
            type=args.get("type"),
        )
        return (
            f"Memory stored successfully with ID: {memory.id}\n\n"
            f"Content: {memory.content}\n"
            f"Tags: {', '.join(memory.tags)}\n"
            f"Importance: {memory.importance}\n"
            f"Type: {memory.type}"
        )

    def recall(arguments: Any) -> str:
        """Search memories, most recent first."""
        args = validate_args("recall", arguments)
        memories = store.search(
            query=args.get("query"),
            tags=args.get("tags"),
            session_id=args.get("session_id"),
            importance=args.get("importance"),
            type=args.get("type"),
            limit=args.get("limit"),
        )
        if not memories:
            return "No memories found matching the criteria."
        blocks = "\n\n".join(_format_memory(i, m) for i, m in enumerate(memories, 1))
        return f"Found {len(memories)} memories:\n\n{blocks}"

    def modify(arguments: Any) -> str:
        """Update only the supplied fields of one memory."""
        args = validate_args("modify", arguments)
        before, after = store.update(
            args["id"],
            content=args.get("content"),
            tags=args.get("tags"),
            context=args.get("context"),
            importance=args.get("importance"),
            type=args.get("type"),
        )
        return (
            f"Memory {args['id']} updated successfully.\n\n"
            f"Original:\n{_format_fields(before)}\n\n"
            f"Updated:\n{_format_fields(after)}"
        )

    def erase(arguments: Any) -> str:
        """Delete one memory by id, or preview/confirm a bulk delete."""
        args = validate_args("erase", arguments)
        if args.get("id"):
            store.delete(args["id"])
            return f"Memory {args['id']} deleted successfully."

        query, tags, session_id = args.get("query"), args.get("tags"), args.get("session_id")
        if not args.get("confirm"):
            matches = store.preview_delete(query=query, tags=tags, session_id=session_id)
            lines = "\n".join(f"- {m.id}: {m.content[:PREVIEW_CHARS]}..." for m in matches)
            return (
                f"This would delete {len(matches)} memories. "
                "To confirm, call erase again with confirm: true.\n\n"
                f"Memories to be deleted:\n{lines}"
            )

        count = store.delete_matching(query=query, tags=tags, session_id=session_id)
        return f"Successfully deleted {count} memories."

    return {
        "reflect": reflect,
        "recall": recall,
        "modify": modify,
        "erase": erase,
    }
