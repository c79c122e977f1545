"""Gist writer: replace the content of a gist's first file."""

from __future__ import annotations

import logging
from typing import Any

from github import Auth, Github, InputFileContent
from github.GithubException import GithubException

from .errors import PersistError

logger = logging.getLogger("profilesync.gist")


class GistWriter:
    """Update a single-file gist in place.

    The existing file key is reused so the gist keeps its identity; only the
    display name and body change.
    """

    def __init__(self, token: str | None = None, *, client: Any = None) -> None:
        if client is None:
            client = Github(auth=Auth.Token(token)) if token else Github()
        self._gh = client

    def first_filename(self, gist_id: str) -> tuple[Any, str]:
        try:
            gist = self._gh.get_gist(gist_id)
        except GithubException as exc:
            raise PersistError(f"Unable to get gist {gist_id}: {exc}") from exc
        files = gist.files or {}
        if not files:
            raise PersistError(f"No files found in gist {gist_id}")
        return gist, next(iter(files))

    def update(self, gist_id: str, display_name: str, content: str) -> str:
        """Write ``content`` to the gist; returns the file key that was updated."""
        gist, filename = self.first_filename(gist_id)
        try:
            gist.edit(files={filename: InputFileContent(content, new_name=display_name)})
        except GithubException as exc:
            raise PersistError(f"Unable to update gist {gist_id}: {exc}") from exc
        logger.info("Updated gist %s (%s -> %s)", gist_id, filename, display_name)
        return filename

    def close(self) -> None:
        close = getattr(self._gh, "close", None)
        if callable(close):
            close()
