from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from .app import main as app_main
from .capture import FileScreenshotSource, HttpMetadataSource, LayoutSaver
from .categories import LayoutType, PagePurpose, categories_payload
from .config import DATA_DIR, ConfigError, load_config
from .curator_init import run_init
from .mcp_server import main as mcp_main
from .tools.errors import StoreRequestError
from .tools.layout_store import LayoutStore

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(log_file: Path | None = None, level: int = logging.INFO) -> None:
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logging.basicConfig(level=level, format=LOG_FORMAT, filename=str(log_file), force=True)
    else:
        logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr, force=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="layout-collector",
        description="Collect web layout references and browse them in a Textual side panel.",
    )
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser(
        "mcp",
        help=(
            "Run the MCP (Model Context Protocol) server over stdio. "
            "Exposes search_layouts, get_layout and list_categories."
        ),
    )

    init_parser = subparsers.add_parser("init", help="Install the layout-curator agent and register the MCP server")
    init_parser.add_argument("--dir", default=".", help="Project directory (default: current directory)")
    init_parser.set_defaults(func=init_command)

    save_parser = subparsers.add_parser("save", help="Save a page as a layout reference")
    save_parser.add_argument("url", help="Page URL")
    save_parser.add_argument(
        "--purpose", required=True, choices=[p.value for p in PagePurpose], help="Page purpose category"
    )
    save_parser.add_argument(
        "--layout-type", required=True, choices=[t.value for t in LayoutType], help="Layout type category"
    )
    save_parser.add_argument("--screenshot", required=True, help="Screenshot image file (jpg, png or webp)")
    save_parser.add_argument("--title", default="", help="Fallback title when the page has none")
    save_parser.set_defaults(func=save_command)

    categories_parser = subparsers.add_parser("categories", help="Print the category tables as JSON")
    categories_parser.set_defaults(func=categories_command)

    return parser


def init_command(args: argparse.Namespace) -> int:
    cwd = Path(getattr(args, "dir", ".")).resolve()
    result = run_init(cwd)
    print(f"Created {result.agent_file.relative_to(cwd)}")
    print(f"Updated {result.mcp_file.relative_to(cwd)}")
    print("\nLayout Curator installed.")
    return 0


async def _save(args: argparse.Namespace) -> int:
    cfg = load_config()
    store = LayoutStore.from_config(cfg)
    saver = LayoutSaver(
        store,
        FileScreenshotSource(Path(args.screenshot)),
        HttpMetadataSource(timeout=cfg["request_timeout"]),
    )
    draft = await saver.prepare(args.url, tab_title=args.title)
    if draft.duplicate_id:
        print("This URL is already saved; saving again overwrites the existing entry.")
    result = await saver.save(draft, PagePurpose(args.purpose), LayoutType(args.layout_type))
    print(("Layout updated: " if result.updated else "Layout saved: ") + result.layout.id)
    return 0


def save_command(args: argparse.Namespace) -> int:
    try:
        return asyncio.run(_save(args))
    except (StoreRequestError, ConfigError) as exc:
        print(f"Save failed: {exc}", file=sys.stderr)
        return 1


def categories_command(args: argparse.Namespace) -> int:
    print(json.dumps(categories_payload(), indent=2, ensure_ascii=False))
    return 0


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    if not args.command:
        configure_logging(DATA_DIR / "panel.log")
        app_main()
        return
    if args.command == "mcp":
        configure_logging()
        mcp_main()
        return
    if hasattr(args, "func"):
        configure_logging()
        sys.exit(args.func(args))
    parser.print_help()
    sys.exit(2)


if __name__ == "__main__":
    main()
