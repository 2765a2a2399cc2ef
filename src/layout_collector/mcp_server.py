"""
MCP (Model Context Protocol) server for layout-collector.

Exposes the saved layout reference library as three read-only tools
(search_layouts, get_layout, list_categories) so an AI agent can look up
design references before building a UI.

Protocol: JSON-RPC 2.0 over stdio (one JSON object per line).

Usage
-----
Run directly:
    python -m layout_collector.mcp_server

Or via the CLI:
    layout-collector mcp

.mcp.json entry (written by ``layout-collector init``)
------------------------------------------------------
{
  "mcpServers": {
    "layout-collector": {
      "command": "layout-collector",
      "args": ["mcp"]
    }
  }
}
"""
from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any

from .categories import (
    LayoutType,
    PagePurpose,
    categories_payload,
    layout_label,
    parse_layout_type,
    parse_purpose,
    purpose_label,
)
from .config import load_config
from .state import LayoutFilters, LayoutRecord
from .tools.errors import StoreRequestError
from .tools.layout_store import MAX_SEARCH_LIMIT, LayoutStore

log = logging.getLogger(__name__)

_store: LayoutStore | None = None


def _get_store() -> LayoutStore:
    global _store
    if _store is None:
        _store = LayoutStore.from_config(load_config())
    return _store


class ToolCallError(Exception):
    """Raised by a tool handler; reported to the client as ``isError: true``."""


# ---------------------------------------------------------------------------
# Tool schema registry: one entry per exposed tool
# ---------------------------------------------------------------------------

_TOOL_SCHEMAS: list[dict[str, Any]] = [
    {
        "name": "search_layouts",
        "description": (
            "Search the collected web layout references. Filter by keyword, page purpose and "
            "layout type. Results are newest first."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Search text (matched against title, URL and description)."},
                "page_purpose": {
                    "type": "string",
                    "enum": [p.value for p in PagePurpose],
                    "description": "Page purpose filter.",
                },
                "layout_type": {
                    "type": "string",
                    "enum": [t.value for t in LayoutType],
                    "description": "Layout type filter.",
                },
                "limit": {
                    "type": "integer",
                    "minimum": 1,
                    "maximum": MAX_SEARCH_LIMIT,
                    "default": 10,
                    "description": f"Number of results (default 10, max {MAX_SEARCH_LIMIT}).",
                },
            },
            "required": [],
        },
    },
    {
        "name": "get_layout",
        "description": "Get the full details of one layout, looked up by ID or exact URL.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "id": {"type": "string", "description": "Layout UUID."},
                "url": {"type": "string", "description": "Layout URL (exact match)."},
            },
            "required": [],
        },
    },
    {
        "name": "list_categories",
        "description": (
            "List the available layout categories: page purposes (page_purpose) and "
            "layout types (layout_type), with labels and descriptions."
        ),
        "inputSchema": {"type": "object", "properties": {}, "required": []},
    },
]


# ---------------------------------------------------------------------------
# Tool dispatch: returns a list of MCP content blocks
# ---------------------------------------------------------------------------

def _text(s: str) -> list[dict[str, Any]]:
    return [{"type": "text", "text": s}]


def _summary(store: LayoutStore, layout: LayoutRecord) -> dict[str, Any]:
    return {
        "id": layout.id,
        "title": layout.display_title,
        "url": layout.url,
        "page_purpose": f"{layout.page_purpose.value} ({purpose_label(layout.page_purpose)})",
        "layout_type": f"{layout.layout_type.value} ({layout_label(layout.layout_type)})",
        "screenshot_url": store.screenshot_url(layout.screenshot_path) if layout.screenshot_path else None,
        "created_at": layout.created_at,
    }


def _parse_limit(raw: object) -> int:
    if raw is None:
        return 10
    if isinstance(raw, bool):
        raise ToolCallError("limit must be an integer")
    try:
        limit = int(raw)
    except (TypeError, ValueError) as exc:
        raise ToolCallError("limit must be an integer") from exc
    if not 1 <= limit <= MAX_SEARCH_LIMIT:
        raise ToolCallError(f"limit must be between 1 and {MAX_SEARCH_LIMIT}")
    return limit


async def _search_layouts(arguments: dict[str, Any]) -> list[dict[str, Any]]:
    try:
        purpose = parse_purpose(arguments.get("page_purpose"))
        layout_type = parse_layout_type(arguments.get("layout_type"))
    except ValueError as exc:
        raise ToolCallError(f"Invalid category: {exc}") from exc
    query = str(arguments.get("query") or "").strip() or None
    limit = _parse_limit(arguments.get("limit"))
    store = _get_store()
    layouts = await store.search_layouts(
        LayoutFilters(page_purpose=purpose, layout_type=layout_type, search=query),
        limit=limit,
    )
    if not layouts:
        return _text("No layouts found.")
    results = [_summary(store, layout) for layout in layouts]
    return _text(f"Found {len(results)} layouts:\n\n{json.dumps(results, indent=2, ensure_ascii=False)}")


async def _get_layout(arguments: dict[str, Any]) -> list[dict[str, Any]]:
    layout_id = str(arguments.get("id") or "").strip()
    url = str(arguments.get("url") or "").strip()
    if not layout_id and not url:
        raise ToolCallError("Provide either 'id' or 'url'.")
    store = _get_store()
    layout = await store.get_layout(layout_id=layout_id or None, url=url or None)
    if layout is None:
        raise ToolCallError(f"Layout not found: {layout_id or url}")
    detail = {
        **layout.as_row(),
        "page_purpose_label": purpose_label(layout.page_purpose),
        "layout_type_label": layout_label(layout.layout_type),
        "screenshot_url": store.screenshot_url(layout.screenshot_path) if layout.screenshot_path else None,
    }
    return _text(json.dumps(detail, indent=2, ensure_ascii=False))


async def _list_categories(arguments: dict[str, Any]) -> list[dict[str, Any]]:
    return _text(json.dumps(categories_payload(), indent=2, ensure_ascii=False))


_HANDLERS = {
    "search_layouts": _search_layouts,
    "get_layout": _get_layout,
    "list_categories": _list_categories,
}


async def _call_tool(name: str, arguments: dict[str, Any]) -> list[dict[str, Any]]:
    """Dispatch a tool call and return a list of MCP content blocks."""
    handler = _HANDLERS.get(name)
    if handler is None:
        raise ToolCallError(f"Unknown tool: {name}")
    try:
        return await handler(arguments)
    except ToolCallError:
        raise
    except StoreRequestError as exc:
        raise ToolCallError(f"Error: {exc}") from exc
    except Exception as exc:
        log.exception("tool %s failed unexpectedly", name)
        raise ToolCallError(f"Error: {exc}") from exc


# ---------------------------------------------------------------------------
# JSON-RPC 2.0 helpers
# ---------------------------------------------------------------------------

def _ok(request_id: Any, result: Any) -> dict:
    return {"jsonrpc": "2.0", "id": request_id, "result": result}


def _err(request_id: Any, code: int, message: str) -> dict:
    return {"jsonrpc": "2.0", "id": request_id, "error": {"code": code, "message": message}}


def _write(obj: dict) -> None:
    sys.stdout.write(json.dumps(obj) + "\n")
    sys.stdout.flush()


# ---------------------------------------------------------------------------
# Main request handler
# ---------------------------------------------------------------------------

async def _handle(line: str) -> None:
    try:
        req = json.loads(line)
    except json.JSONDecodeError:
        _write(_err(None, -32700, "Parse error"))
        return
    if not isinstance(req, dict):
        _write(_err(None, -32600, "Invalid Request"))
        return

    req_id = req.get("id")
    method = req.get("method", "")
    params = req.get("params") or {}

    if method == "initialize":
        client_ver = params.get("protocolVersion", "2024-11-05")
        agreed_ver = client_ver if client_ver in {"2024-11-05", "2025-03-26"} else "2024-11-05"
        _write(_ok(req_id, {
            "protocolVersion": agreed_ver,
            "capabilities": {"tools": {}},
            "serverInfo": {
                "name": "layout-collector",
                "version": "1.0.0",
            },
        }))

    elif method in {"notifications/initialized", "initialized"}:
        # Notification, no response
        pass

    elif method == "tools/list":
        _write(_ok(req_id, {"tools": _TOOL_SCHEMAS}))

    elif method == "tools/call":
        tool_name = params.get("name", "")
        arguments = params.get("arguments") or {}
        if not isinstance(arguments, dict):
            _write(_ok(req_id, {"content": _text("Arguments must be an object."), "isError": True}))
            return
        try:
            content_blocks = await _call_tool(tool_name, arguments)
        except ToolCallError as exc:
            log.info("tool %s failed: %s", tool_name, exc)
            _write(_ok(req_id, {"content": _text(str(exc)), "isError": True}))
            return
        _write(_ok(req_id, {
            "content": content_blocks,
            "isError": False,
        }))

    elif method == "ping":
        _write(_ok(req_id, {}))

    else:
        if req_id is not None:
            _write(_err(req_id, -32601, f"Method not found: {method}"))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

async def _run() -> None:
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    protocol = asyncio.StreamReaderProtocol(reader)
    await loop.connect_read_pipe(lambda: protocol, sys.stdin)
    log.info("layout-collector MCP server running on stdio")

    while True:
        line_bytes = await reader.readline()
        if not line_bytes:
            break
        line = line_bytes.decode(errors="replace").strip()
        if line:
            await _handle(line)


def main() -> None:
    asyncio.run(_run())


if __name__ == "__main__":
    main()
