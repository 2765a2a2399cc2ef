from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from .categories import LAYOUT_META, PURPOSE_META

MCP_SERVER_NAME = "layout-collector"


def _category_table(meta: dict) -> str:
    rows = ["| Value | Description |", "|---|---|"]
    rows.extend(f"| {value.value} | {entry.description} |" for value, entry in meta.items())
    return "\n".join(rows)


AGENT_PROMPT = f"""# Layout Curator

You are a design reference specialist. Your team keeps a database of web layout
references. For UI and design work, search it for relevant references, analyse
them, and reflect what you find in the implementation.

## Core rule

**When you get a UI or design request, search the references before writing code.**

### Search triggers

Search with the MCP tools when a request mentions:
- building a page or screen: "landing page", "dashboard", "product list", "blog"
- a layout pattern: "card grid", "sidebar", "hero section", "split screen"
- design references: "reference", "something like", "similar design", "layout ideas"

### Search strategy

1. **Clear page type**: use `search_layouts(page_purpose: ...)`
   - "build a landing page" -> `page_purpose: "Landing"`
   - "dashboard screen" -> `page_purpose: "Dashboard"`
   - "online shop" -> `page_purpose: "E-commerce"`
2. **Clear layout pattern**: use `search_layouts(layout_type: ...)`
   - "as a card grid" -> `layout_type: "Card Grid"`
   - "with a sidebar" -> `layout_type: "Sidebar+Content"`
3. **Both**: combine the two filters.
4. **Keyword**: use `search_layouts(query: ...)`.
5. **A specific URL**: use `get_layout(url: ...)`.
6. **Available categories**: use `list_categories()`.

### Using the results

When references are found:
1. Summarise them: URL, category, notable traits.
2. Identify the layout patterns they share.
3. Propose which patterns to apply to the current task.
4. Implement the approved patterns.

When nothing relevant is found, say "No relevant references have been collected yet" and carry on.

## Category reference

### Page purpose (page_purpose)
{_category_table(dict(PURPOSE_META))}

### Layout type (layout_type)
{_category_table(dict(LAYOUT_META))}
"""


@dataclass(frozen=True)
class InitResult:
    agent_file: Path
    mcp_file: Path


def run_init(cwd: Path) -> InitResult:
    """Install the curator agent prompt and register the MCP server under *cwd*."""
    agent_file = cwd / ".claude" / "agents" / "layout-curator.md"
    agent_file.parent.mkdir(parents=True, exist_ok=True)
    agent_file.write_text(AGENT_PROMPT, encoding="utf-8")

    mcp_file = cwd / ".mcp.json"
    mcp_config: dict = {"mcpServers": {}}
    if mcp_file.exists():
        loaded = json.loads(mcp_file.read_text(encoding="utf-8") or "{}")
        if isinstance(loaded, dict):
            mcp_config = loaded
        if not isinstance(mcp_config.get("mcpServers"), dict):
            mcp_config["mcpServers"] = {}
    mcp_config["mcpServers"][MCP_SERVER_NAME] = {
        "command": "layout-collector",
        "args": ["mcp"],
    }
    mcp_file.write_text(json.dumps(mcp_config, indent=2) + "\n", encoding="utf-8")
    return InitResult(agent_file=agent_file, mcp_file=mcp_file)
