import base64

import httpx
import pytest

from profilesync.config import WakaTimeConfig
from profilesync.sources.wakatime import GIST_TITLE, WakaTimeSync, format_language, render_stats

from conftest import Router, json_route

STATS_PATH = "/api/v1/users/current/stats/last_7_days"


@pytest.fixture
def cfg():
    return WakaTimeConfig(api_key="waka_key", gist_id="g1", gh_token="t")


def test_format_language_columns():
    line = format_language({"name": "Python", "text": "10 hrs 5 mins", "percent": 50})
    assert line == "Python     10 hrs 5 mins  " + "█" * 10 + "▌" + "░" * 10 + "  50.0%"


def test_format_language_truncates_name():
    line = format_language({"name": "JavaScript React", "text": "1 hr", "percent": 2.25})
    assert line.startswith("JavaScr... 1 hr ")
    assert line.endswith(" 2.2%")


def test_render_keeps_top_languages():
    languages = [{"name": f"L{i}", "text": "1 min", "percent": 10} for i in range(8)]
    lines = render_stats({"data": {"languages": languages}}, limit=5)
    assert [line.split()[0] for line in lines] == ["L0", "L1", "L2", "L3", "L4"]


def test_run_uses_basic_auth_and_updates_gist(cfg, gist_writer, fake_gist):
    def stats(request: httpx.Request) -> httpx.Response:
        expected = base64.b64encode(b"waka_key").decode()
        assert request.headers["Authorization"] == f"Basic {expected}"
        return httpx.Response(200, json={"data": {"languages": [{"name": "Go", "text": "3 hrs", "percent": 100}]}})

    router = Router({STATS_PATH: stats})
    with WakaTimeSync(cfg, gist=gist_writer, transport=router.transport) as sync:
        content = sync.run()

    assert content.split()[:3] == ["Go", "3", "hrs"]
    (key, file_content), = fake_gist.edits[0].items()
    assert key == "original.md"
    assert file_content._identity == {"content": content, "filename": GIST_TITLE}


def test_no_languages_leaves_gist_alone(cfg, gist_writer, fake_gist):
    router = Router({STATS_PATH: json_route({"data": {"languages": []}})})
    with WakaTimeSync(cfg, gist=gist_writer, transport=router.transport) as sync:
        assert sync.run() is None
    assert fake_gist.edits == []
    assert sync.stats["updated"] == 0
