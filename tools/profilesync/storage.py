"""Local storage layer: JSON documents and append-only image directories."""

from __future__ import annotations

import hashlib
import json
import logging
import os
import posixpath
import re
import tempfile
import time
from pathlib import Path
from typing import Any
from urllib.parse import unquote, urlsplit

import httpx

from .errors import FetchError, PersistError

logger = logging.getLogger("profilesync.storage")

# CDN names look like 443711036_417575674565247_1156670569594802102_n.webp
CDN_FILENAME_RE = re.compile(r"/([^/]+_[^/]+_[^/]+_[^/]+\.(?:webp|jpg|jpeg|png|heic|avif))")


# ── file names ───────────────────────────────────────────────────


def filename_from_url(url: str, *, prefix: str = "image") -> str:
    """Pull the CDN file name out of ``url``, or derive a stable one from it.

    The fallback hashes the URL without its query string, so the same image
    always maps to the same file.
    """
    match = CDN_FILENAME_RE.search(url)
    if match:
        return match.group(1)
    parts = urlsplit(url)
    digest = hashlib.sha1(f"{parts.netloc}{parts.path}".encode()).hexdigest()[:16]
    name = f"{prefix}_{digest}.jpg"
    logger.info("Could not derive a file name from %s, using %s", url, name)
    return name


def basename_from_url(url: str) -> str:
    """Last path segment of ``url``, ignoring any query string."""
    return posixpath.basename(unquote(urlsplit(url).path))


# ── JSON documents ───────────────────────────────────────────────


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


def write_json(path: Path, data: Any) -> None:
    """Replace ``path`` with ``data`` serialised as indented JSON.

    The document is written to a sibling temp file first and renamed into
    place, so a reader never observes a half-written file.
    """
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            # mkstemp creates 0600; give the document the usual umask-derived mode
            os.chmod(tmp, 0o666 & ~_current_umask())
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
    except OSError as exc:
        raise PersistError(f"Failed to write {path}: {exc}") from exc
    logger.info("Saved %s", path)


def read_json(path: Path, default: Any = None) -> Any:
    """Load ``path``; a missing or unreadable document yields ``default``."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        return default
    except (OSError, ValueError) as exc:
        logger.warning("Could not read %s (%s), treating as empty", path, exc)
        return default


# ── images ───────────────────────────────────────────────────────


class ImageStore:
    """Download images into a directory, skipping names already on disk."""

    def __init__(self, directory: Path, client: httpx.Client, *, request_delay: float = 0.0) -> None:
        self.directory = Path(directory)
        self.request_delay = request_delay
        self._client = client
        self._last_request: float = 0.0
        self.stats = {"downloaded": 0, "skipped": 0}

    def _throttle(self) -> None:
        elapsed = time.monotonic() - self._last_request
        if elapsed < self.request_delay:
            time.sleep(self.request_delay - elapsed)
        self._last_request = time.monotonic()

    def path_for(self, filename: str) -> Path:
        return self.directory / filename

    def exists(self, filename: str) -> bool:
        return self.path_for(filename).exists()

    def download(self, url: str, filename: str) -> bool:
        """Fetch ``url`` into ``filename``.

        Returns True when bytes were written, False when the file was already
        present.  Data is streamed into ``<filename>.part`` and renamed once
        complete, so an interrupted run never leaves a truncated file under
        the final name.
        """
        target = self.path_for(filename)
        if target.exists():
            logger.debug("Image %s already exists, skipping", filename)
            self.stats["skipped"] += 1
            return False

        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistError(f"Cannot create {self.directory}: {exc}") from exc

        partial = target.with_name(target.name + ".part")
        self._throttle()
        try:
            with self._client.stream("GET", url) as resp:
                resp.raise_for_status()
                with open(partial, "wb") as f:
                    for chunk in resp.iter_bytes():
                        f.write(chunk)
            os.replace(partial, target)
        except httpx.HTTPStatusError as exc:
            partial.unlink(missing_ok=True)
            status = exc.response.status_code
            raise FetchError(f"Download of {url} failed: {status}", status_code=status) from exc
        except httpx.HTTPError as exc:
            partial.unlink(missing_ok=True)
            raise FetchError(f"Download of {url} failed: {exc}") from exc
        except OSError as exc:
            partial.unlink(missing_ok=True)
            raise PersistError(f"Cannot write {target}: {exc}") from exc

        self.stats["downloaded"] += 1
        logger.info("Downloaded %s", filename)
        return True
