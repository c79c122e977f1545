"""NeoDB shelf sync – merged catalog, per-category files and cover images."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from ..api import AsyncAPIClient
from ..config import NeoDBConfig
from ..errors import FetchError
from ..models import CatalogEntry
from ..storage import ImageStore, basename_from_url, read_json, write_json
from ..text import parse_iso

logger = logging.getLogger("profilesync.neodb")

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class NeoDBAPI(AsyncAPIClient):
    """Async client for the ``me/shelf/complete`` endpoint."""

    def __init__(self, cfg: NeoDBConfig, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        super().__init__(
            base_url=cfg.api_base,
            timeout=cfg.timeout,
            headers={
                "Authorization": f"Bearer {cfg.api_secret}",
                "Content-Type": "application/json",
            },
            transport=transport,
        )

    async def get_shelf_page(self, category: str, page: int = 1) -> dict:
        data = await self.get_json("/me/shelf/complete", params={"category": category, "page": page})
        if not isinstance(data, dict):
            raise FetchError(f"Unexpected NeoDB response for {category} page {page}")
        return data

    async def get_all_pages(self, category: str, pages: int) -> list[dict]:
        """Fetch pages ``1..pages`` of a shelf concurrently."""
        logger.info("Downloading %d pages for %s", pages, category)
        return list(await asyncio.gather(*(self.get_shelf_page(category, p) for p in range(1, pages + 1))))


# ── transform ────────────────────────────────────────────────────


def _created(mark: dict) -> datetime:
    value = mark.get("created_time")
    if not value:
        return EPOCH
    try:
        return parse_iso(value)
    except ValueError:
        return EPOCH


def merge_pages(pages: list[dict]) -> list[CatalogEntry]:
    """Flatten shelf pages into catalog entries, newest first, one per uuid.

    The sort is stable, so among marks with the same uuid and time the one
    from the earlier page is kept.
    """
    marks = [mark for page in pages for mark in page.get("data") or []]
    marks.sort(key=_created, reverse=True)

    seen: set[str] = set()
    entries: list[CatalogEntry] = []
    for mark in marks:
        item = mark.get("item") or {}
        uuid = item.get("uuid")
        if not uuid or uuid in seen:
            continue
        seen.add(uuid)
        entries.append(
            CatalogEntry(
                title=item.get("title", ""),
                description=item.get("description", ""),
                category=item.get("category", ""),
                type=item.get("type", ""),
                uuid=uuid,
                rating=item.get("rating"),
                rating_count=item.get("rating_count"),
                cover_image_url=item.get("cover_image_url") or "",
                external_resources=item.get("external_resources"),
                created_time=mark.get("created_time", ""),
            )
        )
    return entries


def build_catalog(entries: list[CatalogEntry], now: datetime | None = None) -> dict[str, Any]:
    now = now or datetime.now(timezone.utc)
    return {
        "data": [e.to_dict() for e in entries],
        "total_count": len(entries),
        "last_updated": now.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
    }


def split_by_category(entries: list[CatalogEntry], category: str) -> list[dict[str, Any]]:
    return [e.to_category_dict() for e in entries if e.category == category]


# ── pipeline ─────────────────────────────────────────────────────


class NeoDBSync:
    """Count check → full paginated fetch → catalog files → covers."""

    def __init__(
        self,
        cfg: NeoDBConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        cdn_transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.cfg = cfg
        self._transport = transport
        self._cdn_transport = cdn_transport
        self.stats = {"remote": 0, "local": 0, "entries": 0, "covers": 0, "skipped": 0, "errors": 0}

    def local_count(self) -> int:
        doc = read_json(self.cfg.catalog_path, default={})
        data = doc.get("data") if isinstance(doc, dict) else None
        return len(data) if isinstance(data, list) else 0

    async def _fetch(self, force: bool) -> list[dict] | None:
        async with NeoDBAPI(self.cfg, transport=self._transport) as api:
            first_pages = await asyncio.gather(*(api.get_shelf_page(c) for c in self.cfg.categories))
            remote = sum(int(p.get("count") or 0) for p in first_pages)
            local = self.local_count()
            self.stats["remote"], self.stats["local"] = remote, local
            logger.info("Remote count: %d, local count: %d", remote, local)

            if remote == local and not force:
                return None

            per_category = await asyncio.gather(
                *(
                    api.get_all_pages(category, int(first.get("pages") or 0))
                    for category, first in zip(self.cfg.categories, first_pages)
                )
            )
        return [page for pages in per_category for page in pages]

    def download_covers(self, entries: list[CatalogEntry]) -> None:
        with httpx.Client(timeout=self.cfg.timeout, follow_redirects=True, transport=self._cdn_transport) as client:
            store = ImageStore(self.cfg.cover_dir, client)
            urls = [e.cover_image_url for e in entries if e.cover_image_url.strip()]
            logger.info("Found %d cover images", len(urls))
            for url in urls:
                name = basename_from_url(url)
                if not name:
                    continue
                try:
                    store.download(url, name)
                except FetchError as exc:
                    logger.warning("Failed to download cover %s: %s", name, exc)
                    self.stats["errors"] += 1
            self.stats["covers"] = store.stats["downloaded"]
            self.stats["skipped"] = store.stats["skipped"]

    def run(self, *, force: bool = False) -> bool:
        """Sync the shelf.  Returns False when the local copy was already current."""
        pages = asyncio.run(self._fetch(force))
        if pages is None:
            logger.info("Counts are equal, no update needed")
            return False

        entries = merge_pages(pages)
        self.stats["entries"] = len(entries)
        write_json(self.cfg.catalog_path, build_catalog(entries))
        for category in self.cfg.categories:
            write_json(self.cfg.output_dir / f"{category}.json", split_by_category(entries, category))

        self.download_covers(entries)
        logger.info("NeoDB sync complete: %d entries", len(entries))
        return True
