from __future__ import annotations

import json
import sys
from argparse import Namespace
from pathlib import Path
from typing import Any

import httpx
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from layout_collector import cli, mcp_server
from layout_collector.curator_init import run_init
from layout_collector.tools.layout_store import LayoutStore


def _row(n: int, **overrides: Any) -> dict[str, Any]:
    row = {
        "id": f"layout-{n}",
        "url": f"https://site{n}.example",
        "title": None,
        "og_title": None,
        "screenshot_path": None,
        "page_purpose": "Dashboard",
        "layout_type": "Card Grid",
        "created_at": "2025-02-01T00:00:00Z",
    }
    row.update(overrides)
    return row


# ---------------------------------------------------------------------------
# CLI routing
# ---------------------------------------------------------------------------

def test_save_requires_categories() -> None:
    parser = cli.build_parser()
    with pytest.raises(SystemExit) as exc:
        parser.parse_args(["save", "https://example.com", "--screenshot", "a.jpg"])
    assert exc.value.code == 2


def test_save_rejects_unknown_purpose() -> None:
    parser = cli.build_parser()
    with pytest.raises(SystemExit):
        parser.parse_args(
            ["save", "https://example.com", "--purpose", "Blog", "--layout-type", "Masonry", "--screenshot", "a.jpg"]
        )


def test_main_routes_to_app(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = {"app": 0}

    def _app_main() -> None:
        calls["app"] += 1

    monkeypatch.setattr(cli, "app_main", _app_main)
    monkeypatch.setattr(cli, "configure_logging", lambda *args, **kwargs: None)
    monkeypatch.setattr(sys, "argv", ["layout-collector"])
    cli.main()
    assert calls["app"] == 1


def test_main_routes_to_mcp(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = {"mcp": 0}

    def _mcp_main() -> None:
        calls["mcp"] += 1

    monkeypatch.setattr(cli, "mcp_main", _mcp_main)
    monkeypatch.setattr(cli, "configure_logging", lambda *args, **kwargs: None)
    monkeypatch.setattr(sys, "argv", ["layout-collector", "mcp"])
    cli.main()
    assert calls["mcp"] == 1


def test_main_fallthrough_exits_nonzero(monkeypatch: pytest.MonkeyPatch) -> None:
    class _DummyParser:
        def __init__(self) -> None:
            self.print_help_called = False

        def parse_args(self) -> Namespace:
            return Namespace(command="unknown")

        def print_help(self) -> None:
            self.print_help_called = True

    dummy = _DummyParser()
    monkeypatch.setattr(cli, "build_parser", lambda: dummy)
    with pytest.raises(SystemExit) as exc:
        cli.main()
    assert exc.value.code == 2
    assert dummy.print_help_called is True


def test_categories_command_prints_both_tables(capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.categories_command(Namespace()) == 0
    payload = json.loads(capsys.readouterr().out)
    assert len(payload["page_purposes"]) == 8
    assert len(payload["layout_types"]) == 8


def test_init_writes_agent_and_merges_mcp_json(tmp_path: Path) -> None:
    (tmp_path / ".mcp.json").write_text(json.dumps({"mcpServers": {"other": {"command": "x"}}}), encoding="utf-8")

    result = run_init(tmp_path)

    assert result.agent_file == tmp_path / ".claude" / "agents" / "layout-curator.md"
    prompt = result.agent_file.read_text(encoding="utf-8")
    assert "search_layouts" in prompt
    assert "| Sidebar+Content |" in prompt
    config = json.loads((tmp_path / ".mcp.json").read_text(encoding="utf-8"))
    assert set(config["mcpServers"]) == {"other", "layout-collector"}
    assert config["mcpServers"]["layout-collector"] == {"command": "layout-collector", "args": ["mcp"]}


# ---------------------------------------------------------------------------
# MCP handler
# ---------------------------------------------------------------------------

async def _run_handle(
    monkeypatch: pytest.MonkeyPatch,
    req: dict | str,
    *,
    store: LayoutStore | None = None,
) -> list[dict]:
    writes: list[dict] = []
    if store is not None:
        monkeypatch.setattr(mcp_server, "_store", store)
    monkeypatch.setattr(mcp_server, "_write", lambda obj: writes.append(obj))
    await mcp_server._handle(req if isinstance(req, str) else json.dumps(req))
    return writes


def _mock_store(rows: list[dict] | int, seen: list[httpx.Request] | None = None) -> LayoutStore:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        if isinstance(rows, int):
            return httpx.Response(rows, json={"message": "backend down"})
        return httpx.Response(200, json=rows)

    return LayoutStore("https://proj.supabase.co", "anon", transport=httpx.MockTransport(handler))


def _call(request_id: int, name: str, arguments: dict | None = None) -> dict:
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "method": "tools/call",
        "params": {"name": name, "arguments": arguments or {}},
    }


@pytest.mark.asyncio
async def test_initialize_negotiates_version(monkeypatch: pytest.MonkeyPatch) -> None:
    writes = await _run_handle(
        monkeypatch,
        {"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {"protocolVersion": "1999-01-01"}},
    )
    result = writes[0]["result"]
    assert result["protocolVersion"] == "2024-11-05"
    assert result["serverInfo"]["name"] == "layout-collector"


@pytest.mark.asyncio
async def test_initialized_notification_has_no_response(monkeypatch: pytest.MonkeyPatch) -> None:
    writes = await _run_handle(
        monkeypatch,
        {"jsonrpc": "2.0", "method": "notifications/initialized", "params": {}},
    )
    assert writes == []


@pytest.mark.asyncio
async def test_parse_error_and_unknown_method(monkeypatch: pytest.MonkeyPatch) -> None:
    writes = await _run_handle(monkeypatch, "{not json")
    assert writes[0]["error"]["code"] == -32700

    writes = await _run_handle(monkeypatch, {"jsonrpc": "2.0", "id": 3, "method": "resources/list"})
    assert writes[0]["error"]["code"] == -32601


@pytest.mark.asyncio
async def test_tools_list_exposes_three_tools(monkeypatch: pytest.MonkeyPatch) -> None:
    writes = await _run_handle(monkeypatch, {"jsonrpc": "2.0", "id": 2, "method": "tools/list"})
    names = [tool["name"] for tool in writes[0]["result"]["tools"]]
    assert names == ["search_layouts", "get_layout", "list_categories"]


@pytest.mark.asyncio
async def test_search_layouts_maps_arguments_to_query(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: list[httpx.Request] = []
    store = _mock_store([_row(1, og_title="OG Title", screenshot_path="layout-1.jpg"), _row(2)], seen)

    writes = await _run_handle(
        monkeypatch,
        _call(4, "search_layouts", {"query": "cosmos", "page_purpose": "Dashboard", "limit": 5}),
        store=store,
    )

    payload = writes[0]["result"]
    assert payload["isError"] is False
    params = seen[0].url.params
    assert params["page_purpose"] == "eq.Dashboard"
    assert params["search_vector"] == "wfts.cosmos"
    assert params["limit"] == "5"
    text = payload["content"][0]["text"]
    assert text.startswith("Found 2 layouts:")
    results = json.loads(text.split("\n\n", 1)[1])
    assert results[0]["title"] == "OG Title"
    assert results[0]["screenshot_url"].endswith("/storage/v1/object/public/screenshots/layout-1.jpg")
    assert results[1]["title"] == "Untitled"
    assert results[1]["screenshot_url"] is None
    assert results[1]["layout_type"] == "Card Grid (Card grid)"


@pytest.mark.asyncio
async def test_search_layouts_empty_result(monkeypatch: pytest.MonkeyPatch) -> None:
    writes = await _run_handle(monkeypatch, _call(5, "search_layouts"), store=_mock_store([]))
    payload = writes[0]["result"]
    assert payload["isError"] is False
    assert payload["content"][0]["text"] == "No layouts found."


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "arguments",
    [{"page_purpose": "Homepage"}, {"layout_type": "Carousel"}, {"limit": 0}, {"limit": 51}, {"limit": "many"}],
)
async def test_search_layouts_rejects_bad_arguments(monkeypatch: pytest.MonkeyPatch, arguments: dict) -> None:
    seen: list[httpx.Request] = []
    writes = await _run_handle(monkeypatch, _call(6, "search_layouts", arguments), store=_mock_store([], seen))
    assert writes[0]["result"]["isError"] is True
    assert seen == []


@pytest.mark.asyncio
async def test_get_layout_requires_id_or_url(monkeypatch: pytest.MonkeyPatch) -> None:
    writes = await _run_handle(monkeypatch, _call(7, "get_layout"), store=_mock_store([]))
    assert writes[0]["result"]["isError"] is True


@pytest.mark.asyncio
async def test_get_layout_returns_labelled_detail(monkeypatch: pytest.MonkeyPatch) -> None:
    store = _mock_store([_row(3, title="Docs", screenshot_path="layout-3.jpg", page_purpose="Documentation")])
    writes = await _run_handle(monkeypatch, _call(8, "get_layout", {"url": "https://site3.example"}), store=store)

    payload = writes[0]["result"]
    assert payload["isError"] is False
    detail = json.loads(payload["content"][0]["text"])
    assert detail["id"] == "layout-3"
    assert detail["page_purpose_label"] == "Docs / guide"
    assert detail["screenshot_url"].endswith("layout-3.jpg")


@pytest.mark.asyncio
async def test_get_layout_not_found_is_error(monkeypatch: pytest.MonkeyPatch) -> None:
    writes = await _run_handle(monkeypatch, _call(9, "get_layout", {"id": "missing"}), store=_mock_store([]))
    assert writes[0]["result"]["isError"] is True


@pytest.mark.asyncio
async def test_store_failure_is_tool_error(monkeypatch: pytest.MonkeyPatch) -> None:
    writes = await _run_handle(monkeypatch, _call(10, "search_layouts"), store=_mock_store(500))
    payload = writes[0]["result"]
    assert payload["isError"] is True
    assert "backend down" in payload["content"][0]["text"]


@pytest.mark.asyncio
async def test_unknown_tool_sets_is_error(monkeypatch: pytest.MonkeyPatch) -> None:
    writes = await _run_handle(monkeypatch, _call(11, "nonexistent_tool"), store=_mock_store([]))
    payload = writes[0]["result"]
    assert payload["isError"] is True
    assert payload["content"][0]["text"] == "Unknown tool: nonexistent_tool"


@pytest.mark.asyncio
async def test_list_categories_needs_no_store(monkeypatch: pytest.MonkeyPatch) -> None:
    writes = await _run_handle(monkeypatch, _call(12, "list_categories"))
    payload = json.loads(writes[0]["result"]["content"][0]["text"])
    assert [p["value"] for p in payload["page_purposes"]][:2] == ["Landing", "Dashboard"]
    assert payload["layout_types"][-1] == {
        "value": "F-Pattern",
        "label": "F-pattern",
        "description": "Eye flow left to right, then down",
    }


@pytest.mark.asyncio
async def test_unexpected_store_exception_is_tool_error(monkeypatch: pytest.MonkeyPatch) -> None:
    class _BrokenStore:
        async def search_layouts(self, filters: Any = None, limit: int = 10) -> list:
            raise RuntimeError("Invalid URL 'not a url'")

    writes = await _run_handle(
        monkeypatch, _call(13, "search_layouts", {"query": "x"}), store=_BrokenStore()  # type: ignore[arg-type]
    )
    writes += await _run_handle(monkeypatch, {"jsonrpc": "2.0", "id": 14, "method": "ping"})

    payload = writes[0]["result"]
    assert payload["isError"] is True
    assert payload["content"][0]["text"].startswith("Error: ")
    assert writes[1]["result"] == {}
