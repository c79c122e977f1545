"""Hitokoto quote of the moment → Gist."""

from __future__ import annotations

import logging
from datetime import datetime

import httpx

from ..api import APIClient
from ..config import HitokotoConfig
from ..errors import FetchError
from ..gist import GistWriter
from ..text import first_present, local_timestamp

logger = logging.getLogger("profilesync.hitokoto")

API_URL = "https://v1.hitokoto.cn"
GIST_TITLE = "🌧Hitokoto"


class HitokotoAPI(APIClient):
    def __init__(self, cfg: HitokotoConfig, *, transport: httpx.BaseTransport | None = None) -> None:
        super().__init__(timeout=cfg.timeout, transport=transport)

    def get_sentence(self, categories: tuple[str, ...] = ()) -> dict:
        params = [("c", c) for c in categories if c.strip()]
        params += [("encode", "json"), ("charset", "utf-8")]
        data = self.get_json(API_URL, params=params)
        if not isinstance(data, dict) or not data.get("hitokoto"):
            raise FetchError("Hitokoto returned no sentence")
        return data


def attribution(sentence: dict) -> str:
    """Work title first, then author; empty when neither is known."""
    return first_present(sentence.get("from"), sentence.get("from_who"))


def render_quote(sentence: dict, tz_name: str, now: datetime | None = None) -> str:
    source = attribution(sentence)
    suffix = f"\n ---{source}" if source else ""
    return f"{sentence['hitokoto']}{suffix}\n\nUpdated at {local_timestamp(tz_name, now)}"


class HitokotoSync:
    def __init__(
        self,
        cfg: HitokotoConfig,
        *,
        gist: GistWriter | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.cfg = cfg
        self.api = HitokotoAPI(cfg, transport=transport)
        self.gist = gist or GistWriter(cfg.gh_token)
        self.stats = {"updated": 0}

    def run(self) -> str:
        sentence = self.api.get_sentence(self.cfg.categories)
        content = render_quote(sentence, self.cfg.timezone)
        self.gist.update(self.cfg.gist_id, GIST_TITLE, content)
        self.stats["updated"] = 1
        logger.info("Hitokoto updated")
        return content

    def close(self) -> None:
        self.api.close()
        self.gist.close()

    def __enter__(self) -> HitokotoSync:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
