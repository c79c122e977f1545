"""Instagram feed sync: posts → instagram.json, images.json and photos/."""

from __future__ import annotations

import logging

import httpx

from ..api import APIClient, check_session
from ..config import InstagramConfig
from ..errors import AuthError, FetchError
from ..models import GalleryImage, MediaImage, MediaItem
from ..storage import ImageStore, filename_from_url, write_json
from ..text import iso_utc, parse_iso

logger = logging.getLogger("profilesync.instagram")

BASE_URL = "https://www.instagram.com"
IG_APP_ID = "936619743392459"
ASBD_ID = "359341"


def parse_cookies(raw: str) -> dict[str, str]:
    """Split a ``k=v; k=v`` cookie header into a dict."""
    cookies: dict[str, str] = {}
    for pair in raw.split(";"):
        name, sep, value = pair.strip().partition("=")
        if sep and name:
            cookies[name.strip()] = value.strip()
    return cookies


class InstagramAPI(APIClient):
    """Instagram private web API, authenticated by browser session cookies."""

    def __init__(self, cfg: InstagramConfig, *, transport: httpx.BaseTransport | None = None) -> None:
        cookies = parse_cookies(cfg.cookies)
        if not cookies:
            raise AuthError("Instagram cookies not found in environment variables")
        self.cookies = cookies
        super().__init__(
            base_url=BASE_URL,
            timeout=cfg.timeout,
            headers={
                "sec-fetch-dest": "empty",
                "sec-fetch-mode": "cors",
                "sec-fetch-site": "same-origin",
                "x-asbd-id": ASBD_ID,
                "x-csrftoken": self.csrf_token or "",
                "x-ig-app-id": IG_APP_ID,
                "x-ig-www-claim": "0",
                "cookie": "; ".join(f"{k}={v}" for k, v in cookies.items()),
            },
            transport=transport,
        )

    @property
    def csrf_token(self) -> str | None:
        return self.cookies.get("csrftoken")

    def _inspect(self, resp: httpx.Response) -> None:
        check_session(resp)

    def check_login(self) -> bool:
        try:
            data = self.post_json(
                "/api/v1/web/fxcal/ig_sso_users/",
                headers={"content-type": "application/x-www-form-urlencoded"},
            )
        except FetchError as exc:
            logger.error("Login check failed: %s", exc)
            return False
        return isinstance(data, dict) and data.get("status") == "ok"

    def get_user_info(self, username: str) -> dict:
        data = self.get_json("/api/v1/users/web_profile_info/", params={"username": username})
        user = (data.get("data") or {}).get("user") if isinstance(data, dict) else None
        if not user:
            raise FetchError(f"No Instagram profile returned for {username}")
        return user

    def get_feed(self, username: str, count: int = 12) -> list[dict]:
        data = self.get_json(f"/api/v1/feed/user/{username}/username/", params={"count": count})
        return data.get("items", []) if data else []


# ── transform ────────────────────────────────────────────────────


def first_candidate(media: dict | None) -> MediaImage | None:
    """First entry of ``image_versions2.candidates``, if there is one."""
    if not media:
        return None
    candidates = (media.get("image_versions2") or {}).get("candidates") or []
    if not candidates:
        return None
    c = candidates[0]
    return MediaImage(url=c.get("url", ""), width=c.get("width", 0), height=c.get("height", 0))


def simplify_item(item: dict) -> MediaItem:
    carousel = item.get("carousel_media") or []
    image = first_candidate(item)
    if image is None and carousel:
        image = first_candidate(carousel[0])
    caption = item.get("caption") or {}
    return MediaItem(
        id=str(item.get("id", "")),
        timestamp=iso_utc(item.get("taken_at", 0)),
        text=caption.get("text", "") if isinstance(caption, dict) else "",
        image=image or MediaImage(url=""),
        carousel_media=[img for img in (first_candidate(m) for m in carousel) if img],
    )


def build_gallery(items: list[MediaItem]) -> list[GalleryImage]:
    """One entry per distinct file name, newest first.

    When two posts reference the same file the newer post wins.
    """
    gallery: dict[str, tuple[float, GalleryImage]] = {}
    for item in items:
        ts = parse_iso(item.timestamp).timestamp()
        images = [item.image] if item.image.url else []
        images += [m for m in item.carousel_media if m.url]
        for img in images:
            name = filename_from_url(img.url, prefix="instagram")
            if name in gallery and gallery[name][0] >= ts:
                continue
            gallery[name] = (
                ts,
                GalleryImage(
                    src=name,
                    width=str(img.width),
                    height=str(img.height),
                    alt=item.text,
                    date=item.timestamp,
                ),
            )
    ordered = sorted(gallery.values(), key=lambda pair: pair[0], reverse=True)
    return [g for _, g in ordered]


# ── pipeline ─────────────────────────────────────────────────────


class InstagramSync:
    """Orchestrates login check → feed fetch → JSON → photo downloads."""

    def __init__(self, cfg: InstagramConfig, *, transport: httpx.BaseTransport | None = None) -> None:
        self.cfg = cfg
        self.api = InstagramAPI(cfg, transport=transport)
        # CDN downloads go through a bare client so session cookies stay on instagram.com
        self._cdn = httpx.Client(timeout=cfg.timeout, follow_redirects=True, transport=transport)
        self.images = ImageStore(cfg.photos_dir, self._cdn)
        self.stats = {"posts": 0, "images": 0, "downloaded": 0, "skipped": 0}

    def download_photos(self, items: list[MediaItem]) -> list[dict]:
        """Download images post by post until enough previews are collected.

        A post contributes its main image and the first carousel image to
        the preview list; every carousel image is downloaded.
        """
        previews: list[dict] = []
        for item in items:
            if item.image.url:
                filename = self._fetch(item.image.url)
                previews.append(self._preview(item, filename))
            for idx, media in enumerate(item.carousel_media):
                if not media.url:
                    continue
                filename = self._fetch(media.url)
                if idx == 0:
                    previews.append(self._preview(item, filename))
            if len(previews) >= self.cfg.preview_limit:
                break
        return previews

    def _fetch(self, url: str) -> str:
        filename = filename_from_url(url, prefix="instagram")
        self.images.download(url, filename)
        return filename

    @staticmethod
    def _preview(item: MediaItem, filename: str) -> dict:
        return {"url": f"instagram/photos/{filename}", "timestamp": item.timestamp, "text": item.text}

    def run(self) -> list[dict]:
        if not self.api.check_login():
            raise AuthError("Unable to log in to Instagram")

        user = self.api.get_user_info(self.cfg.username)
        logger.info("Fetched profile for %s", user.get("username", self.cfg.username))

        raw = self.api.get_feed(self.cfg.username, self.cfg.feed_count)
        logger.info("Fetched %d Instagram posts", len(raw))
        items = [simplify_item(i) for i in raw]
        self.stats["posts"] = len(items)

        write_json(self.cfg.feed_path, [i.to_dict() for i in items])
        gallery = build_gallery(items)
        write_json(self.cfg.images_path, [g.to_dict() for g in gallery])
        self.stats["images"] = len(gallery)

        previews = self.download_photos(items)
        self.stats["downloaded"] = self.images.stats["downloaded"]
        self.stats["skipped"] = self.images.stats["skipped"]
        logger.info(
            "Images: %d downloaded, %d already present",
            self.stats["downloaded"],
            self.stats["skipped"],
        )
        return previews

    def close(self) -> None:
        self.api.close()
        self._cdn.close()

    def __enter__(self) -> InstagramSync:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
