from __future__ import annotations

import asyncio
import logging
import webbrowser
from collections.abc import Coroutine
from typing import Any

from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.widgets import Button, Header, Input, Label, Select, Static

from .categories import layout_options, purpose_options
from .config import load_config
from .controller import LayoutListController
from .state import FilterDimension, ListState
from .themes import DEFAULT_THEME, THEMES
from .tools.layout_store import LayoutStore
from .ui.cards import LayoutCard
from .ui.keybind_bar import KeybindBar
from .ui.keybinds import binding_list

log = logging.getLogger(__name__)

_FILTER_IDS = {
    "purpose-filter": FilterDimension.PURPOSE,
    "layout-filter": FilterDimension.LAYOUT_TYPE,
}


class LayoutPanelApp(App):
    TITLE = "Saved Layouts"
    CSS = THEMES[DEFAULT_THEME]
    BINDINGS = binding_list()

    def __init__(self, store: LayoutStore | None = None, cfg: dict[str, Any] | None = None) -> None:
        cfg = cfg if cfg is not None else load_config()
        self.CSS = THEMES.get(cfg.get("theme", DEFAULT_THEME), THEMES[DEFAULT_THEME])
        super().__init__()
        self.store = store or LayoutStore.from_config(cfg)
        self.controller = LayoutListController(self.store, on_change=self._on_state_change)
        self._background: set[asyncio.Task[Any]] = set()
        self._sync_scheduled = False
        self._card_signature: tuple[Any, ...] | None = None
        self._last_error: str | None = None

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical(id="filters"):
            with Horizontal(id="filter-row"):
                with Vertical():
                    yield Label("Filter by purpose", classes="field-label")
                    yield Select(purpose_options(), prompt="All purposes", id="purpose-filter")
                with Vertical():
                    yield Label("Filter by layout type", classes="field-label")
                    yield Select(layout_options(), prompt="All layout types", id="layout-filter")
            yield Label("Search layouts", classes="field-label")
            yield Input(placeholder="Search layouts", id="search")
        yield Static("Loading...", id="status")
        yield VerticalScroll(id="results")
        yield Button("Load More", id="load-more")
        yield KeybindBar(id="keybind-bar")

    async def on_mount(self) -> None:
        self.query_one("#load-more", Button).display = False
        self.set_focus(self.query_one("#search", Input))
        self._spawn(self.controller.start())

    async def on_unmount(self) -> None:
        await self.controller.close()
        for task in list(self._background):
            task.cancel()

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _on_state_change(self, state: ListState) -> None:
        if self._sync_scheduled:
            return
        self._sync_scheduled = True
        self.call_later(self._sync_view)

    async def _sync_view(self) -> None:
        self._sync_scheduled = False
        state = self.controller.state
        status = self.query_one("#status", Static)
        status.set_class(bool(state.error), "error")
        if state.error:
            status.update(f"Error: {state.error}")
        elif state.loading:
            status.update("Loading...")
        elif not state.results:
            status.update("No layouts saved yet")
        else:
            status.update(f"{len(state.results)} layouts")
        if state.error and state.error != self._last_error:
            self.notify(state.error, severity="error")
        self._last_error = state.error

        signature = (
            state.loading,
            tuple(record.id for record in state.results),
            state.pending_delete_id,
            state.deleting_id,
        )
        if signature != self._card_signature:
            self._card_signature = signature
            results = self.query_one("#results", VerticalScroll)
            await results.remove_children()
            if not state.loading:
                await results.mount_all(
                    [
                        LayoutCard(
                            record,
                            screenshot_url=(
                                self.store.screenshot_url(record.screenshot_path) if record.screenshot_path else None
                            ),
                            confirming=record.id == state.pending_delete_id,
                            deleting=record.id == state.deleting_id,
                        )
                        for record in state.results
                    ]
                )

        load_more = self.query_one("#load-more", Button)
        load_more.display = state.show_load_more
        load_more.disabled = state.loading_more
        load_more.label = "Loading..." if state.loading_more else "Load More"
        self.query_one("#keybind-bar", KeybindBar).set_confirming(state.pending_delete_id is not None)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id == "search":
            self.controller.set_search_text(event.value)

    def on_select_changed(self, event: Select.Changed) -> None:
        dimension = _FILTER_IDS.get(event.select.id or "")
        if dimension is None:
            return
        value = None if event.select.is_blank() else event.value
        self._spawn(self.controller.set_filter(dimension, value))

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "load-more":
            self._spawn(self.controller.load_more())

    def on_layout_card_action(self, message: LayoutCard.Action) -> None:
        record = message.record
        if message.action == "open":
            webbrowser.open(record.url)
        elif message.action == "delete":
            self.controller.request_delete(record.id)
        elif message.action == "cancel":
            self.controller.cancel_delete()
        elif message.action == "confirm":
            self._spawn(self.controller.confirm_delete(record))

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def action_refresh(self) -> None:
        self._spawn(self.controller.refresh())

    def action_load_more(self) -> None:
        self._spawn(self.controller.load_more())

    def action_cancel_delete(self) -> None:
        if self.controller.state.pending_delete_id is not None:
            self.controller.cancel_delete()

    def action_focus_search(self) -> None:
        self.set_focus(self.query_one("#search", Input))


def main() -> None:
    LayoutPanelApp().run()
