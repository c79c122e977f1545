"""Configuration and environment settings for the sync pipelines."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Mapping

from .errors import ConfigError

Environ = Mapping[str, str]


def _env(environ: Environ, name: str, default: str = "") -> str:
    return environ.get(name, default).strip()


def _gh_token(environ: Environ) -> str:
    # GH_SECERT is the name older workflow files still export
    return _env(environ, "GH_TOKEN") or _env(environ, "GH_SECERT")


class _Validated:
    """Mixin: ``validate()`` checks every field listed in ``_required``."""

    _required: dict[str, str] = {}

    def validate(self) -> None:
        missing = tuple(
            env_name for attr, env_name in self._required.items() if not getattr(self, attr)
        )
        if missing:
            raise ConfigError(
                f"Missing required environment variables: {', '.join(missing)}",
                missing=missing,
            )

    def __repr__(self) -> str:
        # Keep secrets out of logs and tracebacks
        parts = []
        for f in fields(self):  # type: ignore[arg-type]
            value = getattr(self, f.name)
            if f.name in ("cookies", "secret", "api_key", "api_secret", "gh_token") and value:
                value = "***"
            parts.append(f"{f.name}={value!r}")
        return f"{type(self).__name__}({', '.join(parts)})"


@dataclass(frozen=True, repr=False)
class InstagramConfig(_Validated):
    cookies: str = ""
    username: str = ""
    output_dir: Path = Path(".data/instagram")
    feed_count: int = 12
    preview_limit: int = 6
    timeout: float = 30.0

    _required = {"cookies": "INSTAGRAM_COOKIES", "username": "INSTAGRAM_USERNAME"}

    @property
    def photos_dir(self) -> Path:
        return self.output_dir / "photos"

    @property
    def feed_path(self) -> Path:
        return self.output_dir / "instagram.json"

    @property
    def images_path(self) -> Path:
        return self.output_dir / "images.json"

    @classmethod
    def from_env(cls, environ: Environ | None = None) -> InstagramConfig:
        env = os.environ if environ is None else environ
        return cls(
            cookies=_env(env, "INSTAGRAM_COOKIES"),
            username=_env(env, "INSTAGRAM_USERNAME"),
            output_dir=Path(_env(env, "INSTAGRAM_OUTPUT_DIR", ".data/instagram")),
        )


@dataclass(frozen=True, repr=False)
class VSCOConfig(_Validated):
    """VSCO profile API.  Images are served through a mirror host."""

    secret: str = ""
    site_id: str = ""
    output_dir: Path = Path("vsco")
    limit: int = 20
    image_mirror: str = "https://fbf0ebb.webp.li"
    download_delay: float = 0.1
    timeout: float = 30.0

    _required = {"secret": "VSCO_SECRET", "site_id": "VSCO_SITE_ID"}

    @property
    def json_path(self) -> Path:
        return self.output_dir / "photos.json"

    @property
    def images_dir(self) -> Path:
        return self.output_dir / "images"

    @classmethod
    def from_env(cls, environ: Environ | None = None) -> VSCOConfig:
        env = os.environ if environ is None else environ
        return cls(
            secret=_env(env, "VSCO_SECRET"),
            site_id=_env(env, "VSCO_SITE_ID"),
            output_dir=Path(_env(env, "VSCO_OUTPUT_DIR", "vsco")),
            image_mirror=_env(env, "VSCO_IMAGE_MIRROR", "https://fbf0ebb.webp.li"),
        )


@dataclass(frozen=True, repr=False)
class NeoDBConfig(_Validated):
    api_secret: str = ""
    output_dir: Path = Path("neodb")
    api_base: str = "https://neodb.social/api"
    categories: tuple[str, ...] = ("movie", "tv", "book", "game")
    timeout: float = 30.0

    _required = {"api_secret": "NEODB_API_SECRET"}

    @property
    def catalog_path(self) -> Path:
        return self.output_dir / "neodb.json"

    @property
    def cover_dir(self) -> Path:
        return self.output_dir / "cover"

    @classmethod
    def from_env(cls, environ: Environ | None = None) -> NeoDBConfig:
        env = os.environ if environ is None else environ
        return cls(
            api_secret=_env(env, "NEODB_API_SECRET"),
            output_dir=Path(_env(env, "NEODB_OUTPUT_DIR", "neodb")),
        )


@dataclass(frozen=True, repr=False)
class LastfmConfig(_Validated):
    api_key: str = ""
    username: str = ""
    gist_id: str = ""
    gh_token: str = ""
    fetch_limit: int = 14
    display_limit: int = 10
    show_time: bool = False
    timeout: float = 30.0

    _required = {
        "api_key": "LASTFM_API_KEY",
        "username": "LASTFM_USERNAME",
        "gist_id": "LASTFM_GIST_ID",
        "gh_token": "GH_TOKEN",
    }

    @classmethod
    def from_env(cls, environ: Environ | None = None) -> LastfmConfig:
        env = os.environ if environ is None else environ
        return cls(
            api_key=_env(env, "LASTFM_API_KEY"),
            username=_env(env, "LASTFM_USERNAME"),
            gist_id=_env(env, "LASTFM_GIST_ID"),
            gh_token=_gh_token(env),
            show_time=_env(env, "LASTFM_SHOW_TIME", "false").lower() == "true",
        )


@dataclass(frozen=True, repr=False)
class HitokotoConfig(_Validated):
    gist_id: str = ""
    gh_token: str = ""
    categories: tuple[str, ...] = ()
    timezone: str = "Asia/Shanghai"
    timeout: float = 30.0

    _required = {"gist_id": "HITOKOTO_GIST_ID", "gh_token": "GH_TOKEN"}

    @classmethod
    def from_env(cls, environ: Environ | None = None) -> HitokotoConfig:
        env = os.environ if environ is None else environ
        # CATEGORY is a run of single-letter category codes, e.g. "abd"
        raw = _env(env, "CATEGORY")
        return cls(
            gist_id=_env(env, "HITOKOTO_GIST_ID"),
            gh_token=_gh_token(env),
            categories=tuple(c for c in raw if c.strip()),
        )


@dataclass(frozen=True, repr=False)
class WakaTimeConfig(_Validated):
    api_key: str = ""
    gist_id: str = ""
    gh_token: str = ""
    api_base: str = "https://wakatime.com/api/v1"
    max_languages: int = 5
    timeout: float = 30.0

    _required = {
        "api_key": "WAKATIME_API_KEY",
        "gist_id": "WAKABOX_GIST_ID",
        "gh_token": "GH_TOKEN",
    }

    @classmethod
    def from_env(cls, environ: Environ | None = None) -> WakaTimeConfig:
        env = os.environ if environ is None else environ
        return cls(
            api_key=_env(env, "WAKATIME_API_KEY"),
            gist_id=_env(env, "WAKABOX_GIST_ID"),
            gh_token=_gh_token(env),
        )


@dataclass(frozen=True, repr=False)
class FootprintsConfig(_Validated):
    kmz_url: str = ""
    kmz_path: Path = Path("footprints.kmz")
    geojson_path: Path = Path("footprints/footprints.json")
    timeout: float = 30.0

    _required = {"kmz_url": "KMZ_URL"}

    @classmethod
    def from_env(cls, environ: Environ | None = None) -> FootprintsConfig:
        env = os.environ if environ is None else environ
        return cls(kmz_url=_env(env, "KMZ_URL"))
