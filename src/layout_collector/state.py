from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .categories import LayoutType, PagePurpose

PAGE_SIZE = 20

_OPTIONAL_TEXT_FIELDS = (
    "title",
    "description",
    "og_image",
    "og_title",
    "og_description",
    "og_type",
    "favicon_url",
    "screenshot_path",
)


class FilterDimension(str, Enum):
    PURPOSE = "page_purpose"
    LAYOUT_TYPE = "layout_type"


@dataclass(frozen=True, slots=True)
class LayoutRecord:
    id: str
    url: str
    page_purpose: PagePurpose
    layout_type: LayoutType
    title: str | None = None
    description: str | None = None
    og_image: str | None = None
    og_title: str | None = None
    og_description: str | None = None
    og_type: str | None = None
    favicon_url: str | None = None
    screenshot_path: str | None = None
    raw_metadata: dict[str, Any] = field(default_factory=dict)
    ai_category: dict[str, Any] | None = None
    created_at: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "LayoutRecord":
        """Build a record from a ``layouts`` row.

        Raises ``ValueError`` when the row is missing its identity or carries a
        category outside the two fixed enums.
        """
        if not isinstance(row, dict):
            raise ValueError(f"expected a layout row, got {type(row).__name__}")
        layout_id = row.get("id")
        url = row.get("url")
        if not layout_id or not isinstance(url, str) or not url:
            raise ValueError("layout row is missing 'id' or 'url'")
        optional = {name: row.get(name) or None for name in _OPTIONAL_TEXT_FIELDS}
        raw_metadata = row.get("raw_metadata")
        ai_category = row.get("ai_category")
        return cls(
            id=str(layout_id),
            url=url,
            page_purpose=PagePurpose(row.get("page_purpose")),
            layout_type=LayoutType(row.get("layout_type")),
            raw_metadata=raw_metadata if isinstance(raw_metadata, dict) else {},
            ai_category=ai_category if isinstance(ai_category, dict) else None,
            created_at=row.get("created_at"),
            **optional,
        )

    @property
    def display_title(self) -> str:
        return self.title or self.og_title or "Untitled"

    def as_row(self) -> dict[str, Any]:
        row: dict[str, Any] = {
            "id": self.id,
            "url": self.url,
            "page_purpose": self.page_purpose.value,
            "layout_type": self.layout_type.value,
            "raw_metadata": self.raw_metadata,
            "ai_category": self.ai_category,
            "created_at": self.created_at,
        }
        for name in _OPTIONAL_TEXT_FIELDS:
            row[name] = getattr(self, name)
        return row


@dataclass(frozen=True, slots=True)
class PageMetadata:
    title: str = ""
    description: str | None = None
    og_image: str | None = None
    og_title: str | None = None
    og_description: str | None = None
    og_type: str | None = None
    favicon_url: str | None = None


@dataclass(frozen=True, slots=True)
class LayoutFilters:
    page_purpose: PagePurpose | None = None
    layout_type: LayoutType | None = None
    search: str | None = None


@dataclass(slots=True)
class ListState:
    page_purpose: PagePurpose | None = None
    layout_type: LayoutType | None = None
    search_text: str = ""
    debounced_search: str = ""
    page: int = 1
    results: list[LayoutRecord] = field(default_factory=list)
    has_more: bool = True
    loading: bool = False
    loading_more: bool = False
    error: str | None = None
    pending_delete_id: str | None = None
    deleting_id: str | None = None

    def filters(self) -> LayoutFilters:
        return LayoutFilters(
            page_purpose=self.page_purpose,
            layout_type=self.layout_type,
            search=self.debounced_search or None,
        )

    @property
    def busy(self) -> bool:
        return self.loading or self.loading_more

    @property
    def show_load_more(self) -> bool:
        return self.has_more and not self.loading and bool(self.results)
