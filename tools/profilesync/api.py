"""HTTP client base classes shared by the source-specific API wrappers."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .errors import AuthError, FetchError

logger = logging.getLogger("profilesync.api")

BROWSER_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)

LOGIN_PATH = "/accounts/login/"


def check_session(resp: httpx.Response) -> None:
    """Raise AuthError when a request was bounced to a login page."""
    if LOGIN_PATH in resp.url.path:
        raise AuthError(
            "Invalid session cookie (redirected to login). "
            "Also check whether the account is being blocked."
        )


def _decode(resp: httpx.Response) -> Any:
    resp.raise_for_status()
    try:
        return resp.json()
    except ValueError as exc:
        raise FetchError(f"Response from {resp.url} is not valid JSON: {exc}") from exc


def _wrap(method: str, url: str, exc: httpx.HTTPError) -> FetchError:
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return FetchError(
            f"{method} {url} failed: {status} {exc.response.reason_phrase}", status_code=status
        )
    return FetchError(f"{method} {url} failed: {exc}")


class APIClient:
    """Thin wrapper around ``httpx.Client`` returning decoded JSON."""

    def __init__(
        self,
        *,
        base_url: str = "",
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(
            base_url=base_url,
            timeout=timeout,
            headers={"User-Agent": BROWSER_UA, **(headers or {})},
            follow_redirects=True,
            transport=transport,
        )

    @property
    def http(self) -> httpx.Client:
        return self._client

    def _inspect(self, resp: httpx.Response) -> None:
        """Hook for subclasses that need to look at the raw response."""

    def request_json(self, method: str, url: str, **kwargs: Any) -> Any:
        logger.debug("%s %s", method, url)
        try:
            resp = self._client.request(method, url, **kwargs)
            self._inspect(resp)
            return _decode(resp)
        except httpx.HTTPError as exc:
            raise _wrap(method, url, exc) from exc

    def get_json(self, url: str, **kwargs: Any) -> Any:
        return self.request_json("GET", url, **kwargs)

    def post_json(self, url: str, **kwargs: Any) -> Any:
        return self.request_json("POST", url, **kwargs)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> APIClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


class AsyncAPIClient:
    """``httpx.AsyncClient`` counterpart used where requests fan out."""

    def __init__(
        self,
        *,
        base_url: str = "",
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers={"User-Agent": BROWSER_UA, **(headers or {})},
            follow_redirects=True,
            transport=transport,
        )

    async def get_json(self, url: str, **kwargs: Any) -> Any:
        logger.debug("GET %s", url)
        try:
            resp = await self._client.get(url, **kwargs)
            return _decode(resp)
        except httpx.HTTPError as exc:
            raise _wrap("GET", url, exc) from exc

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> AsyncAPIClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()
