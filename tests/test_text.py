from datetime import datetime, timezone

from profilesync.text import (
    bar_chart,
    first_present,
    iso_utc,
    local_timestamp,
    lookup,
    parse_iso,
    time_ago,
    truncate,
)


def test_bar_chart_empty_and_full():
    assert bar_chart(0, 21) == "░" * 21
    assert bar_chart(100, 21) == "█" * 21


def test_bar_chart_partial_glyph():
    # 21 * 8 * 50 / 100 = 84 eighths → 10 full blocks and a half block
    bar = bar_chart(50, 21)
    assert bar == "█" * 10 + "▌" + "░" * 10
    assert len(bar) == 21


def test_bar_chart_never_exceeds_size():
    assert bar_chart(150, 10) == "█" * 10
    assert len(bar_chart(33.3, 21)) == 21


def test_truncate():
    assert truncate("short", 10) == "short"
    assert truncate("exactly10!", 10) == "exactly10!"
    assert truncate("abcdefghijklmnop", 10) == "abcdefg..."


def test_time_ago_thresholds():
    now = 1_000_000.0
    assert time_ago(now - 30, now=now) == "just now"
    assert time_ago(now - 120, now=now) == "2m ago"
    assert time_ago(now - 59 * 60, now=now) == "59m ago"
    assert time_ago(now - 2 * 3600, now=now) == "2h ago"
    assert time_ago(now - (24 * 3600 - 60), now=now) == "23h ago"
    assert time_ago(now - 3 * 86400, now=now) == "3d ago"


def test_first_present_respects_order():
    data = {"name": "", "#text": "Fallback"}
    assert first_present(None, lookup(data, "name"), lookup(data, "#text")) == "Fallback"
    assert first_present("direct", lookup(data, "#text")) == "direct"
    assert first_present(None, "", default="none") == "none"


def test_lookup_tolerates_non_dicts():
    assert lookup("a string", "name")() is None
    assert lookup({"a": {"b": "c"}}, "a", "b")() == "c"


def test_iso_utc_has_millisecond_precision():
    assert iso_utc(0) == "1970-01-01T00:00:00.000Z"
    assert iso_utc(1712000000) == "2024-04-01T19:33:20.000Z"


def test_parse_iso_handles_zulu_and_naive():
    assert parse_iso("2024-04-01T19:33:20.000Z") == datetime(2024, 4, 1, 19, 33, 20, tzinfo=timezone.utc)
    assert parse_iso("2024-04-01T19:33:20").tzinfo is not None


def test_local_timestamp_format():
    now = datetime(2026, 10, 16, 7, 4, 5, tzinfo=timezone.utc)
    assert local_timestamp("Asia/Shanghai", now) == "Fri, Oct 16, 2026, 03:04:05 PM"
