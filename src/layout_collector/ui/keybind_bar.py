from __future__ import annotations

from textual.widgets import Static

from .keybinds import render_keybinds


class KeybindBar(Static):
    """Footer listing the panel keys, with Esc shown only while confirming a delete."""

    def __init__(self, *, id: str | None = None) -> None:
        super().__init__(render_keybinds(), id=id)
        self._confirming = False

    def set_confirming(self, confirming: bool) -> None:
        if confirming != self._confirming:
            self._confirming = confirming
            self.update(render_keybinds(confirming))
