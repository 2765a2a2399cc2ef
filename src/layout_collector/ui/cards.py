from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.message import Message
from textual.widgets import Button, Label, Static

from ..categories import layout_label, purpose_label
from ..state import LayoutRecord


class LayoutCard(Vertical):
    """One saved layout with open and two-step delete controls."""

    class Action(Message):
        def __init__(self, record: LayoutRecord, action: str) -> None:
            super().__init__()
            self.record = record
            self.action = action

    def __init__(
        self,
        record: LayoutRecord,
        *,
        screenshot_url: str | None = None,
        confirming: bool = False,
        deleting: bool = False,
    ) -> None:
        super().__init__(classes="layout-card")
        self.record = record
        self.screenshot_url = screenshot_url
        self.confirming = confirming
        self.deleting = deleting

    def compose(self) -> ComposeResult:
        record = self.record
        yield Static(record.display_title, classes="card-title", markup=False)
        yield Static(record.url, classes="card-url", markup=False)
        with Horizontal(classes="card-badges"):
            yield Label(purpose_label(record.page_purpose), classes="badge-purpose")
            yield Label(" · ")
            yield Label(layout_label(record.layout_type), classes="badge-layout")
        if record.screenshot_path and self.screenshot_url:
            yield Static(f"Screenshot: {self.screenshot_url}", classes="card-screenshot", markup=False)
        with Horizontal(classes="card-actions"):
            yield Button("Open", name="open", variant="primary")
            if self.confirming:
                yield Label("Delete?", classes="confirm-label")
                yield Button(
                    "Deleting..." if self.deleting else "Confirm",
                    name="confirm",
                    variant="error",
                    disabled=self.deleting,
                )
                yield Button("Cancel", name="cancel")
            else:
                yield Button("Delete", name="delete", variant="warning")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        event.stop()
        if event.button.name:
            self.post_message(self.Action(self.record, event.button.name))
