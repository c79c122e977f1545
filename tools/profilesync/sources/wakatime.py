"""WakaTime weekly language breakdown → Gist."""

from __future__ import annotations

import base64
import logging

import httpx

from ..api import APIClient
from ..config import WakaTimeConfig
from ..gist import GistWriter
from ..text import bar_chart, truncate

logger = logging.getLogger("profilesync.wakatime")

GIST_TITLE = "📊 Weekly development breakdown"
NAME_WIDTH = 10
TIME_WIDTH = 14
BAR_SIZE = 21


class WakaTimeAPI(APIClient):
    def __init__(self, cfg: WakaTimeConfig, *, transport: httpx.BaseTransport | None = None) -> None:
        token = base64.b64encode(cfg.api_key.encode()).decode()
        super().__init__(
            base_url=cfg.api_base,
            timeout=cfg.timeout,
            headers={"Authorization": f"Basic {token}"},
            transport=transport,
        )

    def get_stats(self, range_: str = "last_7_days") -> dict:
        return self.get_json(f"/users/current/stats/{range_}")


def format_language(lang: dict) -> str:
    name = truncate(lang.get("name", ""), NAME_WIDTH).ljust(NAME_WIDTH)
    spent = lang.get("text", "").ljust(TIME_WIDTH)
    percent = float(lang.get("percent") or 0)
    return " ".join([name, spent, bar_chart(percent, BAR_SIZE), f"{percent:.1f}".rjust(5) + "%"])


def render_stats(stats: dict, limit: int = 5) -> list[str]:
    languages = ((stats.get("data") or {}).get("languages")) or []
    return [format_language(lang) for lang in languages[:limit]]


class WakaTimeSync:
    def __init__(
        self,
        cfg: WakaTimeConfig,
        *,
        gist: GistWriter | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.cfg = cfg
        self.api = WakaTimeAPI(cfg, transport=transport)
        self.gist = gist or GistWriter(cfg.gh_token)
        self.stats = {"languages": 0, "updated": 0}

    def run(self) -> str | None:
        lines = render_stats(self.api.get_stats(), self.cfg.max_languages)
        self.stats["languages"] = len(lines)
        if not lines:
            logger.info("No language stats for the last 7 days, gist left untouched")
            return None
        content = "\n".join(lines)
        self.gist.update(self.cfg.gist_id, GIST_TITLE, content)
        self.stats["updated"] = 1
        return content

    def close(self) -> None:
        self.api.close()
        self.gist.close()

    def __enter__(self) -> WakaTimeSync:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
