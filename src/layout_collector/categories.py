from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping


class PagePurpose(str, Enum):
    LANDING = "Landing"
    DASHBOARD = "Dashboard"
    E_COMMERCE = "E-commerce"
    BLOG_CONTENT = "Blog/Content"
    PORTFOLIO = "Portfolio"
    SAAS_APP = "SaaS App"
    DOCUMENTATION = "Documentation"
    SOCIAL_COMMUNITY = "Social/Community"


class LayoutType(str, Enum):
    HERO_CTA = "Hero+CTA"
    CARD_GRID = "Card Grid"
    SIDEBAR_CONTENT = "Sidebar+Content"
    FULL_WIDTH_SCROLL = "Full-width Scroll"
    SPLIT_SCREEN = "Split Screen"
    DATA_TABLE = "Data Table"
    MASONRY = "Masonry"
    F_PATTERN = "F-Pattern"


@dataclass(frozen=True)
class CategoryMeta:
    label: str
    description: str


PURPOSE_META: Mapping[PagePurpose, CategoryMeta] = MappingProxyType({
    PagePurpose.LANDING: CategoryMeta("Landing page", "Product or service introduction that drives sign-ups or purchases"),
    PagePurpose.DASHBOARD: CategoryMeta("Dashboard", "Management screen showing data and metrics"),
    PagePurpose.E_COMMERCE: CategoryMeta("Shopping", "Product listings, details, cart"),
    PagePurpose.BLOG_CONTENT: CategoryMeta("Blog / content", "Reading-focused posts, news, articles"),
    PagePurpose.PORTFOLIO: CategoryMeta("Portfolio", "Showcase of work and projects"),
    PagePurpose.SAAS_APP: CategoryMeta("SaaS app screen", "Real product screens such as editors and settings"),
    PagePurpose.DOCUMENTATION: CategoryMeta("Docs / guide", "API docs, tutorials, references"),
    PagePurpose.SOCIAL_COMMUNITY: CategoryMeta("Community", "Feeds, profiles, boards"),
})

LAYOUT_META: Mapping[LayoutType, CategoryMeta] = MappingProxyType({
    LayoutType.HERO_CTA: CategoryMeta("Hero section", "Large visual plus a call-to-action button"),
    LayoutType.CARD_GRID: CategoryMeta("Card grid", "Cards repeated in a grid"),
    LayoutType.SIDEBAR_CONTENT: CategoryMeta("Sidebar layout", "Sidebar next to a main content column"),
    LayoutType.FULL_WIDTH_SCROLL: CategoryMeta("Full scroll", "Full-width sections switched by scrolling"),
    LayoutType.SPLIT_SCREEN: CategoryMeta("Split screen", "Halves split left/right or top/bottom"),
    LayoutType.DATA_TABLE: CategoryMeta("Table-centric", "A data table or list is the core of the page"),
    LayoutType.MASONRY: CategoryMeta("Pinterest-style", "Cards of varying height packed without gaps"),
    LayoutType.F_PATTERN: CategoryMeta("F-pattern", "Eye flow left to right, then down"),
})


def parse_purpose(value: object) -> PagePurpose | None:
    """Return the matching purpose, ``None`` for blank input; raise ``ValueError`` otherwise."""
    if value is None or value == "":
        return None
    return PagePurpose(value)


def parse_layout_type(value: object) -> LayoutType | None:
    if value is None or value == "":
        return None
    return LayoutType(value)


def purpose_label(value: PagePurpose | str) -> str:
    try:
        return PURPOSE_META[PagePurpose(value)].label
    except ValueError:
        return str(value)


def layout_label(value: LayoutType | str) -> str:
    try:
        return LAYOUT_META[LayoutType(value)].label
    except ValueError:
        return str(value)


def purpose_options() -> list[tuple[str, str]]:
    return [(PURPOSE_META[p].label, p.value) for p in PagePurpose]


def layout_options() -> list[tuple[str, str]]:
    return [(LAYOUT_META[t].label, t.value) for t in LayoutType]


def categories_payload() -> dict[str, list[dict[str, str]]]:
    return {
        "page_purposes": [
            {"value": p.value, "label": PURPOSE_META[p].label, "description": PURPOSE_META[p].description}
            for p in PagePurpose
        ],
        "layout_types": [
            {"value": t.value, "label": LAYOUT_META[t].label, "description": LAYOUT_META[t].description}
            for t in LayoutType
        ],
    }
