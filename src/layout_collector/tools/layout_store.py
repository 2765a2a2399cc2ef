"""Client for the Supabase ``layouts`` table and ``screenshots`` storage bucket.

Rows go through PostgREST (``/rest/v1``), screenshot blobs through the
Storage API (``/storage/v1``).  Every request carries the project's anon key
both as ``apikey`` and as a bearer token.
"""
from __future__ import annotations

import logging
from typing import Any

import httpx

from ..config import ConfigError
from ..state import PAGE_SIZE, LayoutFilters, LayoutRecord
from .errors import (
    DeleteError,
    FetchError,
    SaveError,
    StoreRequestError,
    is_retryable_status,
)

log = logging.getLogger(__name__)

MAX_SEARCH_LIMIT = 50

_EXTENSIONS = {"image/jpeg": "jpg", "image/png": "png", "image/webp": "webp"}


def _error_detail(exc: Exception) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        response = exc.response
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = body.get("message") or body.get("error") or body.get("msg")
            if message:
                return f"HTTP {response.status_code}: {message}"
        return f"HTTP {response.status_code}: {response.text[:300]}"
    return str(exc) or type(exc).__name__


class LayoutStore:
    def __init__(
        self,
        base_url: str,
        anon_key: str,
        *,
        table: str = "layouts",
        bucket: str = "screenshots",
        timeout: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.anon_key = anon_key
        self.table = table
        self.bucket = bucket
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_config(cls, cfg: dict[str, Any], **kwargs: Any) -> "LayoutStore":
        url = str(cfg.get("supabase_url") or "").strip()
        if not url:
            raise ConfigError("supabase_url is not configured (set SUPABASE_URL or edit the config file)")
        return cls(
            url,
            str(cfg.get("supabase_anon_key") or ""),
            table=str(cfg.get("table") or "layouts"),
            bucket=str(cfg.get("bucket") or "screenshots"),
            timeout=float(cfg.get("request_timeout") or 20.0),
            **kwargs,
        )

    def _auth_headers(self) -> dict[str, str]:
        headers = {"apikey": self.anon_key}
        if self.anon_key:
            headers["Authorization"] = f"Bearer {self.anon_key}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        error_cls: type[StoreRequestError] = FetchError,
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> Any:
        merged = {**self._auth_headers(), **(headers or {})}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.request(method, f"{self.base_url}{path}", headers=merged, **kwargs)
                response.raise_for_status()
                if not response.content:
                    return None
                return response.json()
        except (httpx.HTTPError, ValueError) as exc:
            status = None
            retryable = False
            if isinstance(exc, httpx.HTTPStatusError):
                status = exc.response.status_code
                retryable = is_retryable_status(status)
            elif isinstance(exc, (httpx.TimeoutException, httpx.TransportError)):
                retryable = True
            log.warning("store request %s %s failed: %s", method, path, _error_detail(exc))
            raise error_cls(
                f"Store request failed for {path}: {_error_detail(exc)}",
                status_code=status,
                retryable=retryable,
            ) from exc

    def _records(self, rows: Any, error_cls: type[StoreRequestError] = FetchError) -> list[LayoutRecord]:
        if rows is None:
            return []
        if not isinstance(rows, list):
            raise error_cls(f"Malformed response from {self.table}: expected a list of rows")
        try:
            return [LayoutRecord.from_row(row) for row in rows]
        except ValueError as exc:
            raise error_cls(f"Malformed layout row: {exc}") from exc

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _filter_params(self, filters: LayoutFilters | None) -> dict[str, str]:
        params: dict[str, str] = {"select": "*"}
        if filters is None:
            return params
        if filters.page_purpose:
            params["page_purpose"] = f"eq.{filters.page_purpose.value}"
        if filters.layout_type:
            params["layout_type"] = f"eq.{filters.layout_type.value}"
        if filters.search and filters.search.strip():
            params["search_vector"] = f"wfts.{filters.search.strip()}"
        return params

    async def _select(self, filters: LayoutFilters | None, *, limit: int, offset: int = 0) -> list[LayoutRecord]:
        params = self._filter_params(filters)
        params["order"] = "created_at.desc"
        params["limit"] = str(limit)
        params["offset"] = str(offset)
        rows = await self._request("GET", f"/rest/v1/{self.table}", params=params)
        return self._records(rows)

    async def query_layouts(self, filters: LayoutFilters | None = None, page: int = 1) -> list[LayoutRecord]:
        """Return one page (``PAGE_SIZE`` rows) of layouts, newest first."""
        if page < 1:
            raise ValueError("page must be >= 1")
        return await self._select(filters, limit=PAGE_SIZE, offset=(page - 1) * PAGE_SIZE)

    async def search_layouts(self, filters: LayoutFilters | None = None, limit: int = 10) -> list[LayoutRecord]:
        if not 1 <= limit <= MAX_SEARCH_LIMIT:
            raise ValueError(f"limit must be between 1 and {MAX_SEARCH_LIMIT}")
        return await self._select(filters, limit=limit)

    async def get_layout(self, layout_id: str | None = None, url: str | None = None) -> LayoutRecord | None:
        if not layout_id and not url:
            raise ValueError("either layout_id or url is required")
        params: dict[str, str] = {"select": "*", "limit": "1"}
        if layout_id:
            params["id"] = f"eq.{layout_id}"
        if url:
            params["url"] = f"eq.{url}"
        records = self._records(await self._request("GET", f"/rest/v1/{self.table}", params=params))
        return records[0] if records else None

    async def find_by_url(self, url: str) -> LayoutRecord | None:
        return await self.get_layout(url=url)

    def screenshot_url(self, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{path}"

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def _write_one(self, method: str, payload: dict[str, Any], params: dict[str, str] | None = None) -> LayoutRecord:
        rows = await self._request(
            method,
            f"/rest/v1/{self.table}",
            error_cls=SaveError,
            headers={"Prefer": "return=representation"},
            params=params,
            json=payload,
        )
        records = self._records(rows, SaveError)
        if not records:
            raise SaveError(f"{method} on {self.table} returned no row")
        return records[0]

    async def insert_layout(self, payload: dict[str, Any]) -> LayoutRecord:
        return await self._write_one("POST", payload)

    async def update_layout(self, layout_id: str, payload: dict[str, Any]) -> LayoutRecord:
        return await self._write_one("PATCH", payload, params={"id": f"eq.{layout_id}"})

    async def upload_screenshot(self, data: bytes, layout_id: str, content_type: str = "image/jpeg") -> str:
        if not data:
            raise SaveError("Screenshot is empty")
        path = f"{layout_id}.{_EXTENSIONS.get(content_type, 'jpg')}"
        await self._request(
            "POST",
            f"/storage/v1/object/{self.bucket}/{path}",
            error_cls=SaveError,
            headers={"Content-Type": content_type, "x-upsert": "true"},
            content=data,
        )
        return path

    async def update_screenshot_path(self, layout_id: str, screenshot_path: str) -> None:
        try:
            await self._write_one("PATCH", {"screenshot_path": screenshot_path}, params={"id": f"eq.{layout_id}"})
        except SaveError as exc:
            raise SaveError(
                f"Failed to update screenshot path: {exc}",
                status_code=exc.status_code,
                retryable=exc.retryable,
            ) from exc

    async def delete_layout(self, layout_id: str, screenshot_path: str | None = None) -> None:
        """Delete the screenshot blob, then the row.

        A failed blob delete aborts before the row is touched: the row and its
        screenshot stay together and the user can retry.
        """
        if screenshot_path:
            await self._request(
                "DELETE",
                f"/storage/v1/object/{self.bucket}",
                error_cls=DeleteError,
                json={"prefixes": [screenshot_path]},
            )
        await self._request(
            "DELETE",
            f"/rest/v1/{self.table}",
            error_cls=DeleteError,
            params={"id": f"eq.{layout_id}"},
        )
        log.info("deleted layout %s (screenshot=%s)", layout_id, screenshot_path or "-")
