from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from textual.binding import Binding


@dataclass(frozen=True)
class KeybindSpec:
    key: str
    action: str
    label: str
    priority: bool = True
    confirm_only: bool = False


KEYBINDS: list[KeybindSpec] = [
    KeybindSpec("f5", "refresh", "Refresh"),
    KeybindSpec("f12", "quit", "Quit"),
    KeybindSpec("ctrl+f", "focus_search", "Search"),
    KeybindSpec("ctrl+l", "load_more", "Load More"),
    KeybindSpec("escape", "cancel_delete", "Cancel Delete", priority=False, confirm_only=True),
]


def binding_list() -> list["Binding"]:
    from textual.binding import Binding

    return [Binding(spec.key, spec.action, spec.label, priority=spec.priority) for spec in KEYBINDS]


def display_key(key: str) -> str:
    key_lower = key.lower()
    if key_lower.startswith("f") and key_lower[1:].isdigit():
        return key_lower.upper()
    if key_lower.startswith("ctrl+"):
        return "^" + key_lower[5:].upper()
    if key_lower == "escape":
        return "Esc"
    return key


def render_keybinds(confirming: bool = False) -> str:
    """Footer text; confirmation-only keys appear while a delete awaits confirmation."""
    return "  ".join(
        f"{display_key(spec.key)} {spec.label}" for spec in KEYBINDS if confirming or not spec.confirm_only
    )
