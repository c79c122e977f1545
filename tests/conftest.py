# Shared test fixtures: an httpx MockTransport router and a fake Gist client.

from __future__ import annotations

from typing import Any, Callable

import httpx
import pytest


def json_route(data: Any, status: int = 200) -> Callable[[httpx.Request], httpx.Response]:
    return lambda request: httpx.Response(status, json=data)


def bytes_route(body: bytes = b"\x89PNG fake", status: int = 200) -> Callable[[httpx.Request], httpx.Response]:
    return lambda request: httpx.Response(status, content=body)


class Router:
    """MockTransport handler that dispatches on URL path and records every request."""

    def __init__(self, routes: dict[str, Callable[[httpx.Request], httpx.Response]] | None = None) -> None:
        self.routes = dict(routes or {})
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get(request.url.path)
        if handler is None:
            return httpx.Response(404, text="no route")
        return handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]

    def count(self, path: str) -> int:
        return sum(1 for r in self.requests if r.url.path == path)


class FakeGist:
    def __init__(self, files: dict[str, Any]) -> None:
        self.files = files
        self.edits: list[dict] = []

    def edit(self, description: Any = None, files: dict | None = None) -> None:
        self.edits.append(files or {})


class FakeGithub:
    def __init__(self, gist: FakeGist) -> None:
        self.gist = gist
        self.requested: list[str] = []

    def get_gist(self, gist_id: str) -> FakeGist:
        self.requested.append(gist_id)
        return self.gist


@pytest.fixture
def router() -> Router:
    return Router()


@pytest.fixture
def fake_gist() -> FakeGist:
    return FakeGist({"original.md": object(), "second.md": object()})


@pytest.fixture
def gist_writer(fake_gist):
    from profilesync.gist import GistWriter

    return GistWriter(client=FakeGithub(fake_gist))
