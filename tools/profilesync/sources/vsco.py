"""VSCO profile sync: photos.json plus a local copy of every image."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..api import APIClient
from ..config import VSCOConfig
from ..errors import FetchError
from ..models import VSCOPhoto
from ..storage import ImageStore, write_json

logger = logging.getLogger("profilesync.vsco")

API_BASE = "https://vsco.co/api/3.0"
VSCO_IMAGE_HOST = "im.vsco.co/aws-us-west-2"


class VSCOAPI(APIClient):
    def __init__(self, cfg: VSCOConfig, *, transport: httpx.BaseTransport | None = None) -> None:
        self.cfg = cfg
        super().__init__(
            base_url=API_BASE,
            timeout=cfg.timeout,
            headers={
                "Accept": "application/json",
                "Content-Type": "application/json",
                "Referer": "https://vsco.co/",
                "Origin": "https://vsco.co",
            },
            transport=transport,
        )

    @property
    def _auth(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.cfg.secret}"}

    def endpoint_variants(self, limit: int) -> list[dict[str, Any]]:
        """Query variants tried in order; the API sometimes rejects a limit."""
        site = self.cfg.site_id
        return [
            {"site_id": site, "limit": limit},
            {"site_id": site},
            {"site_id": site, "limit": 6},
        ]

    def get_media(self, limit: int) -> list[dict]:
        last_error: FetchError | None = None
        for params in self.endpoint_variants(limit):
            try:
                data = self.get_json("/medias/profile", params=params, headers=self._auth)
            except FetchError as exc:
                logger.warning("VSCO endpoint %s failed: %s", params, exc)
                last_error = exc
                continue
            logger.info("VSCO endpoint %s succeeded", params)
            return data.get("media", []) if isinstance(data, dict) else []
        if last_error is None:
            raise FetchError("No VSCO endpoint variants to try")
        raise last_error

    def check_connection(self) -> dict[str, bool]:
        """Probe the API with and without credentials."""
        params = {"site_id": self.cfg.site_id, "limit": 1}
        results: dict[str, bool] = {}
        for label, headers in (("anonymous", {}), ("authenticated", self._auth)):
            try:
                self.get_json("/medias/profile", params=params, headers=headers)
                results[label] = True
            except FetchError as exc:
                logger.warning("VSCO %s connection failed: %s", label, exc)
                results[label] = False
        return results


def mirror_url(responsive_url: str, mirror: str) -> str:
    """Point a VSCO ``responsive_url`` at the image mirror."""
    url = responsive_url.replace(VSCO_IMAGE_HOST, mirror)
    if "://" not in url:
        url = "https://" + url.lstrip("/")
    return url


def simplify_media(entry: dict, mirror: str) -> VSCOPhoto:
    image = entry.get("image") or {}
    return VSCOPhoto(
        width=image.get("width", 0),
        height=image.get("height", 0),
        id=str(image.get("_id", "")),
        date=image.get("capture_date"),
        description=image.get("description") or "",
        location=image.get("location_coords"),
        src=mirror_url(image.get("responsive_url", ""), mirror),
    )


class VSCOSync:
    def __init__(self, cfg: VSCOConfig, *, transport: httpx.BaseTransport | None = None) -> None:
        self.cfg = cfg
        self.api = VSCOAPI(cfg, transport=transport)
        self._cdn = httpx.Client(timeout=cfg.timeout, follow_redirects=True, transport=transport)
        self.images = ImageStore(cfg.images_dir, self._cdn, request_delay=cfg.download_delay)
        self.stats = {"photos": 0, "downloaded": 0, "skipped": 0, "errors": 0}

    def download_images(self, photos: list[VSCOPhoto]) -> None:
        """Save each photo as ``<id>.jpg``; a failed download is only a warning."""
        for photo in photos:
            if not photo.id or not photo.src:
                continue
            try:
                self.images.download(photo.src, f"{photo.id}.jpg")
            except FetchError as exc:
                logger.warning("Skipped %s: %s", photo.src, exc)
                self.stats["errors"] += 1
        self.stats["downloaded"] = self.images.stats["downloaded"]
        self.stats["skipped"] = self.images.stats["skipped"]

    def run(self) -> list[VSCOPhoto]:
        logger.info("Fetching VSCO media for site %s (limit %d)", self.cfg.site_id, self.cfg.limit)
        photos = [simplify_media(m, self.cfg.image_mirror) for m in self.api.get_media(self.cfg.limit)]
        self.stats["photos"] = len(photos)
        write_json(self.cfg.json_path, [p.to_dict() for p in photos])
        self.download_images(photos)
        return photos

    def close(self) -> None:
        self.api.close()
        self._cdn.close()

    def __enter__(self) -> VSCOSync:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
