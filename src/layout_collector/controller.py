"""Filter, search, pagination and delete state behind the layout panel.

The controller runs on the asyncio loop of whoever owns it (the Textual
app in production).  Two things can race: a user typing into the search
box and a user flipping filters while a fetch is outstanding.  Typing is
absorbed by a single re-armed ``call_later`` timer; fetch races are settled
by a request generation counter, so a response is applied only when it
belongs to the most recently issued fetch.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any, Protocol

from .categories import parse_layout_type, parse_purpose
from .state import PAGE_SIZE, FilterDimension, LayoutFilters, LayoutRecord, ListState
from .tools.errors import StoreRequestError

log = logging.getLogger(__name__)

SEARCH_DEBOUNCE_SECONDS = 0.3


class LayoutQueries(Protocol):
    async def query_layouts(self, filters: LayoutFilters | None = None, page: int = 1) -> list[LayoutRecord]: ...

    async def delete_layout(self, layout_id: str, screenshot_path: str | None = None) -> None: ...


class LayoutListController:
    def __init__(
        self,
        store: LayoutQueries,
        *,
        on_change: Callable[[ListState], None] | None = None,
        debounce: float = SEARCH_DEBOUNCE_SECONDS,
    ) -> None:
        self.store = store
        self.on_change = on_change
        self.debounce = debounce
        self.state = ListState()
        self._generation = 0
        self._debounce_handle: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task[Any]] = set()

    # ------------------------------------------------------------------
    # Filters and search
    # ------------------------------------------------------------------

    async def start(self) -> bool:
        return await self.fetch(1, reset=True)

    async def set_filter(self, dimension: FilterDimension | str, value: object) -> bool:
        """Apply a category filter and reload from page 1 (no debounce)."""
        dimension = FilterDimension(dimension)
        if dimension is FilterDimension.PURPOSE:
            self.state.page_purpose = parse_purpose(value)
        else:
            self.state.layout_type = parse_layout_type(value)
        log.debug("filter %s=%r", dimension.value, value)
        return await self.fetch(1, reset=True)

    def set_search_text(self, text: str) -> None:
        """Echo *text* immediately; apply it as the search term once typing settles."""
        self.state.search_text = text
        self._cancel_debounce()
        loop = asyncio.get_running_loop()
        self._debounce_handle = loop.call_later(self.debounce, self._apply_search, text)
        self._notify()

    def _apply_search(self, text: str) -> None:
        self._debounce_handle = None
        text = text.strip()
        if text == self.state.debounced_search:
            return
        self.state.debounced_search = text
        self._spawn(self.fetch(1, reset=True))

    def _cancel_debounce(self) -> None:
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None

    @property
    def search_pending(self) -> bool:
        return self._debounce_handle is not None

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    async def fetch(self, page: int, reset: bool) -> bool:
        """Query *page* with the current filters.

        Returns ``True`` when the response was applied, ``False`` when it
        failed or was superseded by a newer fetch.
        """
        self._generation += 1
        generation = self._generation
        filters = self.state.filters()
        self.state.loading = reset
        self.state.loading_more = not reset
        self.state.error = None
        self._notify()

        try:
            records = await self.store.query_layouts(filters, page)
        except Exception as exc:
            if generation != self._generation:
                log.debug("dropping stale fetch failure (generation %d): %s", generation, exc)
                return False
            if isinstance(exc, StoreRequestError):
                log.warning("fetch page %d failed: %s", page, exc)
            else:
                log.exception("fetch page %d failed unexpectedly", page)
            self._finish_fetch()
            self.state.error = str(exc) or "Failed to load layouts"
            self._notify()
            return False
        finally:
            # also reached on cancellation
            if generation == self._generation:
                self._finish_fetch()

        if generation != self._generation:
            log.debug("dropping stale fetch response (generation %d, latest %d)", generation, self._generation)
            return False
        if reset:
            self.state.results = list(records)
        else:
            self.state.results.extend(records)
        self.state.has_more = len(records) == PAGE_SIZE
        self.state.page = page
        self._finish_fetch()
        self._notify()
        return True

    def _finish_fetch(self) -> None:
        self.state.loading = False
        self.state.loading_more = False

    async def load_more(self) -> bool:
        if not self.state.has_more or self.state.busy:
            return False
        return await self.fetch(self.state.page + 1, reset=False)

    async def refresh(self) -> bool:
        return await self.fetch(1, reset=True)

    # ------------------------------------------------------------------
    # Deleting
    # ------------------------------------------------------------------

    def request_delete(self, layout_id: str) -> None:
        self.state.pending_delete_id = layout_id
        self._notify()

    def cancel_delete(self) -> None:
        self.state.pending_delete_id = None
        self._notify()

    async def confirm_delete(self, record: LayoutRecord) -> bool:
        if self.state.deleting_id is not None:
            return False
        self.state.deleting_id = record.id
        self.state.error = None
        self._notify()
        try:
            await self.store.delete_layout(record.id, record.screenshot_path or None)
        except Exception as exc:
            if isinstance(exc, StoreRequestError):
                log.warning("delete %s failed: %s", record.id, exc)
            else:
                log.exception("delete %s failed unexpectedly", record.id)
            self.state.error = str(exc) or "Failed to delete layout"
            return False
        else:
            self.state.results = [item for item in self.state.results if item.id != record.id]
            self.state.pending_delete_id = None
            return True
        finally:
            self.state.deleting_id = None
            self._notify()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_idle(self) -> None:
        """Wait until no timer-spawned fetch is outstanding."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        self._cancel_debounce()
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change(self.state)
