import json

import httpx
import pytest

from profilesync.config import InstagramConfig
from profilesync.errors import AuthError
from profilesync.models import MediaImage, MediaItem
from profilesync.sources.instagram import (
    InstagramSync,
    build_gallery,
    parse_cookies,
    simplify_item,
)

from conftest import Router, bytes_route, json_route

NAME_A = "111_222_333_n.webp"
NAME_B = "444_555_666_n.jpg"
NAME_C = "777_888_999_n.jpg"


def _candidate(name, width=1080, height=1350):
    return {"url": f"https://cdn.example/v/{name}?stp=x", "width": width, "height": height}


FEED = [
    {
        "id": "1",
        "taken_at": 1712000000,
        "caption": {"text": "single"},
        "image_versions2": {"candidates": [_candidate(NAME_A), _candidate("ignored_1_2_n.jpg")]},
    },
    {
        "id": "2",
        "taken_at": 1711000000,
        "caption": None,
        "carousel_media": [
            {"image_versions2": {"candidates": [_candidate(NAME_B, 640, 640)]}},
            {"image_versions2": {"candidates": []}},
            {"image_versions2": {"candidates": [_candidate(NAME_C)]}},
        ],
    },
]


def _routes(feed=FEED, login=None):
    return {
        "/api/v1/web/fxcal/ig_sso_users/": json_route(login or {"status": "ok"}),
        "/api/v1/users/web_profile_info/": json_route({"data": {"user": {"username": "me"}}}),
        "/api/v1/feed/user/me/username/": json_route({"items": feed}),
        f"/v/{NAME_A}": bytes_route(b"a"),
        f"/v/{NAME_B}": bytes_route(b"b"),
        f"/v/{NAME_C}": bytes_route(b"c"),
    }


@pytest.fixture
def cfg(tmp_path):
    return InstagramConfig(cookies="csrftoken=tok123; sessionid=abc", username="me", output_dir=tmp_path / "ig")


def test_parse_cookies():
    assert parse_cookies("csrftoken=abc; sessionid=x=y; ;junk") == {"csrftoken": "abc", "sessionid": "x=y"}


def test_simplify_uses_first_direct_candidate():
    item = simplify_item(FEED[0])
    assert item.image == MediaImage(url=f"https://cdn.example/v/{NAME_A}?stp=x", width=1080, height=1350)
    assert item.text == "single"
    assert item.timestamp == "2024-04-01T19:33:20.000Z"
    assert item.carousel_media == []


def test_simplify_falls_back_to_carousel_candidate():
    item = simplify_item(FEED[1])
    assert item.image == MediaImage(url=f"https://cdn.example/v/{NAME_B}?stp=x", width=640, height=640)
    assert item.text == ""
    # entries without candidates are dropped
    assert [m.url.split("/")[-1].split("?")[0] for m in item.carousel_media] == [NAME_B, NAME_C]


def test_gallery_deduplicates_by_filename_keeping_newest():
    img = MediaImage(url=f"https://cdn.example/v/{NAME_A}", width=1, height=2)
    old = MediaItem(id="old", timestamp="2024-01-01T00:00:00.000Z", text="old", image=img)
    new = MediaItem(id="new", timestamp="2024-02-01T00:00:00.000Z", text="new", image=img)
    other = MediaItem(
        id="x",
        timestamp="2024-01-15T00:00:00.000Z",
        text="other",
        image=MediaImage(url=f"https://cdn.example/v/{NAME_B}", width=3, height=4),
    )

    gallery = build_gallery([old, other, new])

    assert [g.src for g in gallery] == [NAME_A, NAME_B]
    assert gallery[0].alt == "new"
    assert gallery[0].width == "1" and gallery[0].height == "2"


def test_run_writes_documents_and_downloads_once(cfg):
    router = Router(_routes())

    with InstagramSync(cfg, transport=router.transport) as sync:
        previews = sync.run()

    feed = json.loads(cfg.feed_path.read_text(encoding="utf-8"))
    assert [i["id"] for i in feed] == ["1", "2"]
    assert feed[1]["image"]["width"] == 640

    images = json.loads(cfg.images_path.read_text(encoding="utf-8"))
    assert [i["src"] for i in images] == [NAME_A, NAME_B, NAME_C]

    assert sorted(p.name for p in cfg.photos_dir.iterdir()) == sorted([NAME_A, NAME_B, NAME_C])
    assert previews[0]["url"] == f"instagram/photos/{NAME_A}"
    assert sync.stats["downloaded"] == 3

    # the API calls carry the session cookie and CSRF token, CDN calls do not
    api_req = next(r for r in router.requests if r.url.path.startswith("/api/v1/feed"))
    assert api_req.headers["x-csrftoken"] == "tok123"
    assert "sessionid=abc" in api_req.headers["cookie"]
    cdn_req = next(r for r in router.requests if r.url.path == f"/v/{NAME_A}")
    assert "cookie" not in cdn_req.headers

    # a second run finds every photo on disk
    second = Router(_routes())
    with InstagramSync(cfg, transport=second.transport) as sync:
        sync.run()
    assert not any(p.startswith("/v/") for p in second.paths())
    assert sync.stats["downloaded"] == 0


def test_login_redirect_means_invalid_session(cfg):
    routes = _routes()
    routes["/api/v1/users/web_profile_info/"] = lambda request: httpx.Response(
        302, headers={"Location": "https://www.instagram.com/accounts/login/?next=/"}
    )
    routes["/accounts/login/"] = lambda request: httpx.Response(200, text="<html>login</html>")
    router = Router(routes)

    with InstagramSync(cfg, transport=router.transport) as sync:
        with pytest.raises(AuthError):
            sync.run()
    assert not cfg.feed_path.exists()


def test_failed_login_check_aborts(cfg):
    router = Router(_routes(login={"status": "fail"}))
    with InstagramSync(cfg, transport=router.transport) as sync:
        with pytest.raises(AuthError, match="Unable to log in"):
            sync.run()
    assert router.count("/api/v1/feed/user/me/username/") == 0


def test_unrecognised_cdn_url_maps_to_one_stable_file(cfg):
    plain = {
        "id": "9",
        "taken_at": 1712000000,
        "caption": {"text": "plain"},
        "image_versions2": {"candidates": [{"url": "https://cdn.example/plain/photo?sig=1", "width": 10, "height": 10}]},
    }
    routes = _routes(feed=[plain])
    routes["/plain/photo"] = bytes_route(b"p")
    router = Router(routes)

    with InstagramSync(cfg, transport=router.transport) as sync:
        sync.run()

    images = json.loads(cfg.images_path.read_text(encoding="utf-8"))
    on_disk = [p.name for p in cfg.photos_dir.iterdir()]
    assert on_disk == [images[0]["src"]]

    second = Router(routes)
    with InstagramSync(cfg, transport=second.transport) as sync:
        sync.run()
    assert second.count("/plain/photo") == 0
    assert [p.name for p in cfg.photos_dir.iterdir()] == on_disk
