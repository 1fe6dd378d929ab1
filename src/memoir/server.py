"""Memory tool server — JSON-RPC 2.0 over stdio (NDJSON).

Exposes the memory tools (reflect, recall, modify, erase) to an agent host.
Requests are handled one at a time, in arrival order.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys

from memoir.config import MemoirConfig
from memoir.memory.store import MemoryNotFoundError, MemoryStore
from memoir.tools.memory_tools import TOOLS, InvalidParamsError, get_memory_tools

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"

# JSON-RPC error codes
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
MEMORY_NOT_FOUND = -32002


# ── JSON-RPC 2.0 helpers ─────────────────────────────────────


def jsonrpc_result(req_id, result):
    return {"jsonrpc": "2.0", "id": req_id, "result": result}


def jsonrpc_error(req_id, code, message):
    return {"jsonrpc": "2.0", "id": req_id, "error": {"code": code, "message": message}}


def text_result(text: str, is_error: bool = False) -> dict:
    result: dict = {"content": [{"type": "text", "text": text}]}
    if is_error:
        result["isError"] = True
    return result


class MemoryServer:
    """Dispatches tool-server requests to the memory tools."""

    def __init__(self, config: MemoirConfig, store: MemoryStore | None = None) -> None:
        self.config = config
        self.store = store or MemoryStore(config.memory_file)
        self._tools = get_memory_tools(self.store)

    # ── Request handler ──────────────────────────────────────

    async def handle_request(self, req: dict) -> dict | None:
        req_id = req.get("id")
        method = req.get("method", "")

        # Notifications (no id) — no response
        if req_id is None:
            if method == "notifications/initialized":
                logger.info("Client initialized")
            return None

        if method == "initialize":
            return jsonrpc_result(req_id, {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {"tools": {}},
                "serverInfo": {
                    "name": self.config.server.name,
                    "version": self.config.server.version,
                },
            })

        if method == "tools/list":
            return jsonrpc_result(req_id, {"tools": TOOLS})

        if method == "tools/call":
            params = req.get("params") or {}
            return self._call_tool(req_id, params.get("name", ""), params.get("arguments"))

        return jsonrpc_error(req_id, METHOD_NOT_FOUND, f"Method not found: {method}")

    def _call_tool(self, req_id, name: str, arguments) -> dict:
        tool = self._tools.get(name)
        if tool is None:
            return jsonrpc_error(req_id, METHOD_NOT_FOUND, f"Unknown tool: {name}")
        try:
            text = tool(arguments)
        except InvalidParamsError as e:
            logger.info("Rejected %s call: %s", name, e)
            return jsonrpc_error(req_id, INVALID_PARAMS, str(e))
        except MemoryNotFoundError as e:
            return jsonrpc_error(req_id, MEMORY_NOT_FOUND, str(e))
        except Exception as e:
            logger.exception("Tool %s failed", name)
            return jsonrpc_result(req_id, text_result(f"Error: {e}", is_error=True))
        return jsonrpc_result(req_id, text_result(text))

    # ── Stdio transport (NDJSON) ─────────────────────────────

    async def serve(self, reader: asyncio.StreamReader, write=None) -> None:
        """Read requests line by line until EOF, writing one response line each."""
        write = write or _write_stdout
        while True:
            line = await reader.readline()
            if not line:
                break
            line = line.decode("utf-8").strip()
            if not line:
                continue

            try:
                req = json.loads(line)
            except json.JSONDecodeError as e:
                logger.warning("Parse error: %s", e)
                continue
            if not isinstance(req, dict):
                logger.warning("Ignoring non-object request: %r", req)
                continue

            logger.debug("<- %s", req.get("method", "?"))
            try:
                response = await self.handle_request(req)
            except Exception as e:
                logger.error("Handler error: %s", e)
                continue
            if response:
                write(json.dumps(response, ensure_ascii=False) + "\n")

    async def run(self) -> None:
        """Serve on this process's stdin/stdout."""
        logger.info("Memory server running on stdio (store=%s)", self.store.path)
        reader = asyncio.StreamReader()
        protocol = asyncio.StreamReaderProtocol(reader)
        await asyncio.get_running_loop().connect_read_pipe(lambda: protocol, sys.stdin)
        await self.serve(reader)
        logger.info("Memory server stopped.")


def _write_stdout(data: str) -> None:
    sys.stdout.write(data)
    sys.stdout.flush()
