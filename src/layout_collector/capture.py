"""Capture a page and save it as a layout record.

Screenshot capture and metadata extraction are capabilities handed in from
outside; the saver only sequences them against the store: look up the URL,
insert or update the row, upload the screenshot, then record its path.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup

from .categories import LayoutType, PagePurpose
from .state import LayoutRecord, PageMetadata
from .tools.errors import SaveError, StoreRequestError

log = logging.getLogger(__name__)

RESTRICTED_PREFIXES = ("chrome://", "about:", "chrome-extension://", "data:")

_CONTENT_TYPES = {".jpg": "image/jpeg", ".jpeg": "image/jpeg", ".png": "image/png", ".webp": "image/webp"}


def is_restricted_url(url: str) -> bool:
    return url.startswith(RESTRICTED_PREFIXES)


class ScreenshotSource(Protocol):
    content_type: str

    async def capture_visible_tab(self) -> bytes: ...


class MetadataSource(Protocol):
    async def extract_page_metadata(self, url: str) -> PageMetadata: ...


class LayoutWriter(Protocol):
    async def find_by_url(self, url: str) -> LayoutRecord | None: ...

    async def insert_layout(self, payload: dict[str, Any]) -> LayoutRecord: ...

    async def update_layout(self, layout_id: str, payload: dict[str, Any]) -> LayoutRecord: ...

    async def upload_screenshot(self, data: bytes, layout_id: str, content_type: str = "image/jpeg") -> str: ...

    async def update_screenshot_path(self, layout_id: str, screenshot_path: str) -> None: ...


def _meta_content(soup: BeautifulSoup, **attrs: str) -> str | None:
    tag = soup.find("meta", attrs=attrs)
    if tag is None:
        return None
    content = (tag.get("content") or "").strip()
    return content or None


def parse_page_metadata(html: str, page_url: str) -> PageMetadata:
    soup = BeautifulSoup(html, "html.parser")
    title = soup.title.get_text(strip=True) if soup.title else ""
    favicon = soup.find("link", rel="icon") or soup.find("link", rel="shortcut icon")
    favicon_href = (favicon.get("href") or "").strip() if favicon is not None else ""
    return PageMetadata(
        title=title,
        description=_meta_content(soup, name="description"),
        og_image=_meta_content(soup, property="og:image"),
        og_title=_meta_content(soup, property="og:title"),
        og_description=_meta_content(soup, property="og:description"),
        og_type=_meta_content(soup, property="og:type"),
        favicon_url=urljoin(page_url, favicon_href) if favicon_href else None,
    )


class HttpMetadataSource:
    def __init__(self, timeout: float = 20.0, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.timeout = timeout
        self._transport = transport

    async def extract_page_metadata(self, url: str) -> PageMetadata:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, follow_redirects=True, transport=self._transport
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise SaveError(f"Failed to extract metadata from {url}: {exc}") from exc
        return parse_page_metadata(response.text, str(response.url))


class FileScreenshotSource:
    def __init__(self, path: Path) -> None:
        self.path = path
        self.content_type = _CONTENT_TYPES.get(path.suffix.lower(), "image/jpeg")

    async def capture_visible_tab(self) -> bytes:
        try:
            return await asyncio.to_thread(self.path.read_bytes)
        except OSError as exc:
            raise SaveError(f"Cannot read screenshot {self.path}: {exc}") from exc


@dataclass(frozen=True)
class CaptureDraft:
    url: str
    tab_title: str
    metadata: PageMetadata
    screenshot: bytes
    content_type: str = "image/jpeg"
    duplicate_id: str | None = None


@dataclass(frozen=True)
class SaveResult:
    layout: LayoutRecord
    screenshot_path: str
    updated: bool


class LayoutSaver:
    def __init__(self, store: LayoutWriter, screenshots: ScreenshotSource, metadata: MetadataSource) -> None:
        self.store = store
        self.screenshots = screenshots
        self.metadata = metadata

    async def prepare(self, url: str, tab_title: str = "") -> CaptureDraft:
        if is_restricted_url(url):
            raise SaveError(f"This page cannot be captured: {url}")
        meta, shot, existing = await asyncio.gather(
            self.metadata.extract_page_metadata(url),
            self.screenshots.capture_visible_tab(),
            self.store.find_by_url(url),
        )
        if not shot:
            raise SaveError("No screenshot data received")
        return CaptureDraft(
            url=url,
            tab_title=tab_title,
            metadata=meta,
            screenshot=shot,
            content_type=getattr(self.screenshots, "content_type", "image/jpeg"),
            duplicate_id=existing.id if existing else None,
        )

    @staticmethod
    def build_payload(draft: CaptureDraft, purpose: PagePurpose, layout_type: LayoutType) -> dict[str, Any]:
        meta = draft.metadata
        return {
            "url": draft.url,
            "title": meta.title or draft.tab_title or None,
            "description": meta.description,
            "og_image": meta.og_image,
            "og_title": meta.og_title,
            "og_description": meta.og_description,
            "og_type": meta.og_type,
            "favicon_url": meta.favicon_url,
            "page_purpose": PagePurpose(purpose).value,
            "layout_type": LayoutType(layout_type).value,
        }

    async def save(self, draft: CaptureDraft, purpose: PagePurpose, layout_type: LayoutType) -> SaveResult:
        payload = self.build_payload(draft, purpose, layout_type)
        try:
            if draft.duplicate_id:
                layout = await self.store.update_layout(draft.duplicate_id, payload)
            else:
                layout = await self.store.insert_layout(payload)
            path = await self.store.upload_screenshot(draft.screenshot, layout.id, draft.content_type)
            await self.store.update_screenshot_path(layout.id, path)
        except SaveError:
            raise
        except StoreRequestError as exc:
            raise SaveError(str(exc), status_code=exc.status_code, retryable=exc.retryable) from exc
        log.info("%s layout %s for %s", "updated" if draft.duplicate_id else "saved", layout.id, draft.url)
        return SaveResult(layout=layout, screenshot_path=path, updated=bool(draft.duplicate_id))
