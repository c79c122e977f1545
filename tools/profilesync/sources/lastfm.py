"""Last.fm recent tracks → Gist."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..api import APIClient
from ..config import LastfmConfig
from ..gist import GistWriter
from ..text import first_present, lookup, time_ago, truncate

logger = logging.getLogger("profilesync.lastfm")

API_URL = "https://ws.audioscrobbler.com/2.0/"
GIST_TITLE = "🎧 Recent tracks from Last.fm"
EMPTY_LINE = "No recent tracks found"
MAX_ARTIST_LEN = 20
MAX_TRACK_LEN = 30


class LastfmAPI(APIClient):
    def __init__(self, cfg: LastfmConfig, *, transport: httpx.BaseTransport | None = None) -> None:
        self.cfg = cfg
        super().__init__(timeout=cfg.timeout, transport=transport)

    def call(self, method: str, **params: Any) -> Any:
        query = {
            "method": method,
            "user": self.cfg.username,
            "api_key": self.cfg.api_key,
            "format": "json",
            **{k: str(v) for k, v in params.items()},
        }
        return self.get_json(API_URL, params=query)

    def get_recent_tracks(self, limit: int = 10) -> list[dict]:
        data = self.call("user.getrecenttracks", limit=limit, extended=0)
        tracks = (data.get("recenttracks") or {}).get("track") or []
        # A single track comes back as an object rather than a list
        return [tracks] if isinstance(tracks, dict) else list(tracks)


def artist_name(track: dict) -> str:
    """Artist precedence: plain string, ``name``, ``#text``, placeholder."""
    artist = track.get("artist")
    return first_present(
        artist,
        lookup(artist, "name"),
        lookup(artist, "#text"),
        default="Unknown Artist",
    )


def is_now_playing(track: dict) -> bool:
    return (track.get("@attr") or {}).get("nowplaying") == "true"


def play_time(track: dict, now: float | None = None) -> str:
    if is_now_playing(track):
        return "🎵 Now Playing"
    uts = (track.get("date") or {}).get("uts")
    if not uts:
        return ""
    return time_ago(int(uts), now=now)


def format_track(track: dict, *, show_time: bool = False, now: float | None = None) -> str:
    artist = truncate(artist_name(track), MAX_ARTIST_LEN)
    name = truncate(first_present(track.get("name"), default="Unknown Track"), MAX_TRACK_LEN)
    line = f"{name} - {artist}"
    if show_time:
        when = play_time(track, now=now)
        if when:
            line = f"{line} · {when}"
    return line


def render_tracks(tracks: list[dict], limit: int, *, show_time: bool = False) -> str:
    lines = [format_track(t, show_time=show_time) for t in tracks[:limit]]
    return "\n".join(lines or [EMPTY_LINE])


class LastfmSync:
    def __init__(
        self,
        cfg: LastfmConfig,
        *,
        gist: GistWriter | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.cfg = cfg
        self.api = LastfmAPI(cfg, transport=transport)
        self.gist = gist or GistWriter(cfg.gh_token)
        self.stats = {"tracks": 0, "lines": 0}

    def run(self) -> str:
        logger.info("Fetching recent tracks for %s", self.cfg.username)
        tracks = self.api.get_recent_tracks(self.cfg.fetch_limit)
        logger.info("Found %d recent tracks", len(tracks))
        self.stats["tracks"] = len(tracks)
        content = render_tracks(tracks, self.cfg.display_limit, show_time=self.cfg.show_time)
        self.stats["lines"] = content.count("\n") + 1
        self.gist.update(self.cfg.gist_id, GIST_TITLE, content)
        return content

    def close(self) -> None:
        self.api.close()
        self.gist.close()

    def __enter__(self) -> LastfmSync:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
