"""
타임존 유틸리티 테스트

- HH:MM 파싱 ("24:00" 허용, 잘못된 형식은 None)
- 요일 규약 (0=일요일)
- 벽시계 정시 기준 구간 분할과 DST 전환
"""
import pytest
from datetime import datetime
from zoneinfo import ZoneInfo

from venue_pricing.utils.timezone import (
    day_of_week,
    elapsed_seconds,
    format_hhmm,
    get_zone,
    split_into_hourly_slots,
    time_to_minutes,
)

TZ = ZoneInfo("America/Detroit")


@pytest.mark.parametrize("value, expected", [
    ("00:00", 0),
    ("09:30", 570),
    ("24:00", 1440),
    ("24:30", None),
    ("9", None),
    ("ab:cd", None),
    ("12:60", None),
])
def test_time_to_minutes(value, expected):
    assert time_to_minutes(value) == expected


def test_day_of_week_sunday_is_zero():
    assert day_of_week(datetime(2026, 1, 11, 12, tzinfo=TZ), TZ) == 0  # 일요일
    assert day_of_week(datetime(2026, 1, 13, 12, tzinfo=TZ), TZ) == 2  # 화요일


def test_unknown_zone_falls_back_to_utc():
    assert get_zone("Not/AZone").key == "UTC"


def test_format_hhmm_converts_to_zone():
    instant = datetime(2026, 1, 13, 14, 5, tzinfo=ZoneInfo("UTC"))
    assert format_hhmm(instant, TZ) == "09:05"


class TestSplitIntoHourlySlots:

    def test_whole_hours(self):
        slots = split_into_hourly_slots(datetime(2026, 1, 13, 9, tzinfo=TZ), datetime(2026, 1, 13, 12, tzinfo=TZ), TZ)
        assert [format_hhmm(s, TZ) for s, _ in slots] == ["09:00", "10:00", "11:00"]

    def test_partial_edges(self):
        slots = split_into_hourly_slots(datetime(2026, 1, 13, 9, 45, tzinfo=TZ), datetime(2026, 1, 13, 11, 10, tzinfo=TZ), TZ)
        durations = [elapsed_seconds(s, e) for s, e in slots]
        assert durations == [15 * 60, 3600, 10 * 60]

    def test_fall_back_keeps_repeated_hour(self):
        """2026-11-01 02:00 EDT -> 01:00 EST: 00:00~03:00 벽시계는 실제 4시간"""
        start = datetime(2026, 11, 1, 0, 0, tzinfo=TZ)
        end = datetime(2026, 11, 1, 3, 0, tzinfo=TZ)
        slots = split_into_hourly_slots(start, end, TZ)

        assert len(slots) == 4
        assert all(elapsed_seconds(s, e) == 3600 for s, e in slots)
        assert [format_hhmm(s, TZ) for s, _ in slots] == ["00:00", "01:00", "01:00", "02:00"]
