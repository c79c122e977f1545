"""Exception hierarchy shared by every sync pipeline."""

from __future__ import annotations


class SyncError(Exception):
    """Base class for failures that abort a sync run."""


class ConfigError(SyncError):
    """Required configuration is missing or invalid."""

    def __init__(self, message: str, missing: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.missing = missing


class AuthError(SyncError):
    """The remote service rejected our credentials or session."""


class FetchError(SyncError):
    """An HTTP request failed or returned something unusable."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PersistError(SyncError):
    """Writing to disk or to a Gist failed."""
