"""Pure helpers for rendering display strings."""

from __future__ import annotations

import math
import time
from datetime import datetime, timezone
from typing import Any, Callable

import pytz

BAR_GLYPHS = "░▏▎▍▌▋▊▉█"
ELLIPSIS = "..."


def truncate(text: str, limit: int) -> str:
    """Cut ``text`` to ``limit`` characters, the last three being ``...``."""
    if len(text) <= limit:
        return text
    return text[: max(limit - len(ELLIPSIS), 0)] + ELLIPSIS


def first_present(*candidates: Any, default: str = "") -> str:
    """Return the first candidate that is a non-empty string.

    Candidates are checked in the order given, so the argument order is the
    precedence.  Callables are invoked lazily, which lets callers guard
    lookups that only make sense for some shapes of input.
    """
    for candidate in candidates:
        value = candidate() if callable(candidate) else candidate
        if isinstance(value, str) and value:
            return value
    return default


def lookup(data: Any, *path: str) -> Callable[[], Any]:
    """Build a lazy nested-key getter for use with :func:`first_present`."""

    def _get() -> Any:
        node = data
        for key in path:
            if not isinstance(node, dict):
                return None
            node = node.get(key)
        return node

    return _get


def time_ago(timestamp: float, now: float | None = None) -> str:
    """Relative time for a unix timestamp in seconds."""
    now = time.time() if now is None else now
    diff = now - timestamp
    minutes = math.floor(diff / 60)
    hours = math.floor(diff / 3600)
    days = math.floor(diff / 86400)
    if minutes < 1:
        return "just now"
    if minutes < 60:
        return f"{minutes}m ago"
    if hours < 24:
        return f"{hours}h ago"
    return f"{days}d ago"


def bar_chart(percent: float, size: int) -> str:
    """Render ``percent`` as a bar of ``size`` eighth-block glyphs."""
    frac = math.floor(size * 8 * percent / 100)
    full = frac // 8
    if full >= size:
        return BAR_GLYPHS[8] * size
    semi = frac % 8
    return (BAR_GLYPHS[8] * full + BAR_GLYPHS[semi]).ljust(size, BAR_GLYPHS[0])


def iso_utc(ts: float) -> str:
    """Unix seconds to ``2024-04-01T12:00:00.000Z``."""
    dt = datetime.fromtimestamp(ts, tz=timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def parse_iso(value: str) -> datetime:
    """Parse an ISO-8601 string; naive values are taken as UTC."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def local_timestamp(tz_name: str, now: datetime | None = None) -> str:
    """Format like ``Thu, Oct 16, 2026, 03:04:05 PM`` in the given zone."""
    now = now or datetime.now(timezone.utc)
    local = now.astimezone(pytz.timezone(tz_name))
    return f"{local:%a}, {local:%b} {local.day}, {local:%Y}, {local:%I:%M:%S %p}"

