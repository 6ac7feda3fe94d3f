"""
Tests for datetime helpers.
"""

from datetime import datetime

import pytz

from pickup.utils.datetime_utils import (
    ensure_utc,
    format_room_card_header,
    to_display_time,
)


def test_ensure_utc_naive_is_treated_as_utc():
    value = ensure_utc(datetime(2026, 3, 1, 9, 0))
    assert value.tzinfo is not None
    assert value.hour == 9


def test_ensure_utc_converts_aware():
    seoul = pytz.timezone("Asia/Seoul").localize(datetime(2026, 3, 1, 9, 0))
    assert ensure_utc(seoul).hour == 0


def test_ensure_utc_none():
    assert ensure_utc(None) is None


def test_display_time_is_seoul():
    local = to_display_time(datetime(2026, 2, 28, 10, 0, tzinfo=pytz.UTC))
    assert (local.day, local.hour) == (28, 19)


def test_card_header_has_weekday():
    header = format_room_card_header("⚽", "축구", datetime(2026, 2, 28, 10, 0, tzinfo=pytz.UTC))
    assert header == "⚽ 축구 · 2/28(토) 19:00"


def test_card_header_uses_seoul_date_after_midnight():
    header = format_room_card_header("🏀", "농구", datetime(2026, 2, 28, 16, 30, tzinfo=pytz.UTC))
    assert header == "🏀 농구 · 3/1(일) 01:30"
