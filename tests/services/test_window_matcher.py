"""
Time Window Matcher 단위 테스트

테스트 대상:
- ABSOLUTE_TIME 반개구간 [startTime, endTime) 매칭
- 하루를 빈틈없이 나누는 구간 집합에서 정확히 하나만 매칭
- DURATION_BASED: 기준 시각이 없으면 건너뜀, 있으면 경과 분 floor 기준 매칭
- 잘못된 구간(필드 쌍 누락/중복, 경계 역전)은 매칭되지 않고 invalid로 보고

실행: pytest tests/services/test_window_matcher.py -v
"""
import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from zoneinfo import ZoneInfo

from venue_pricing.models.pricing import TimeWindow
from venue_pricing.services.window_matcher import match_window, validate_window

TZ = ZoneInfo("America/Detroit")


def absolute(start, end, price=50):
    return TimeWindow(window_type="ABSOLUTE_TIME", start_time=start, end_time=end, price_per_hour=Decimal(price))


def duration(start, end, price=30):
    return TimeWindow(window_type="DURATION_BASED", start_minute=start, end_minute=end, price_per_hour=Decimal(price))


class TestAbsoluteTime:
    """벽시계 HH:MM 매칭"""

    def test_inside_window(self):
        result = match_window(absolute("09:00", "17:00"), datetime(2026, 1, 13, 9, 0, tzinfo=TZ), TZ)
        assert result.matched is True
        assert result.price_per_hour == Decimal("50")

    def test_end_is_exclusive(self):
        """17:00은 09:00-17:00 구간에 포함되지 않음"""
        result = match_window(absolute("09:00", "17:00"), datetime(2026, 1, 13, 17, 0, tzinfo=TZ), TZ)
        assert result.matched is False
        assert result.invalid is False

    def test_before_window(self):
        result = match_window(absolute("09:00", "17:00"), datetime(2026, 1, 13, 8, 59, tzinfo=TZ), TZ)
        assert result.matched is False

    def test_end_of_day_2400(self):
        """endTime 24:00은 자정 직전까지 포함"""
        result = match_window(absolute("17:00", "24:00"), datetime(2026, 1, 13, 23, 30, tzinfo=TZ), TZ)
        assert result.matched is True

    def test_matched_in_entity_timezone(self):
        """UTC 14:00은 Detroit 09:00 (EST)"""
        instant = datetime(2026, 1, 13, 14, 0, tzinfo=ZoneInfo("UTC"))
        assert match_window(absolute("09:00", "10:00"), instant, TZ).matched is True
        assert match_window(absolute("14:00", "15:00"), instant, TZ).matched is False

    def test_naive_instant_read_in_timezone(self):
        result = match_window(absolute("09:00", "10:00"), datetime(2026, 1, 13, 9, 15), TZ)
        assert result.matched is True

    def test_tiling_windows_match_exactly_once(self):
        """하루를 빈틈없이 분할한 구간 집합은 모든 시각에 정확히 하나만 매칭"""
        windows = [absolute("00:00", "09:00", 10), absolute("09:00", "12:00", 20), absolute("12:00", "17:00", 30), absolute("17:00", "24:00", 40)]
        start = datetime(2026, 1, 13, 0, 0, tzinfo=TZ)
        for step in range(0, 24 * 60, 15):
            instant = start + timedelta(minutes=step)
            matches = [w for w in windows if match_window(w, instant, TZ).matched]
            assert len(matches) == 1, instant


class TestDurationBased:
    """예약 기준 경과 분 매칭"""

    def test_skipped_without_reference(self):
        """기준 시각이 없으면 수치와 무관하게 건너뜀"""
        result = match_window(duration(0, 120), datetime(2026, 1, 13, 9, 0, tzinfo=TZ), TZ, reference=None)
        assert result.matched is False
        assert result.invalid is False

    def test_matches_elapsed_minutes(self):
        reference = datetime(2026, 1, 13, 9, 0, tzinfo=TZ)
        first = duration(0, 120, 30)
        later = duration(120, 240, 20)
        instant = reference + timedelta(hours=1)
        assert match_window(first, instant, TZ, reference).matched is True
        assert match_window(later, instant, TZ, reference).matched is False
        assert match_window(later, reference + timedelta(hours=2), TZ, reference).matched is True

    def test_elapsed_minutes_are_floored(self):
        """119분 59초 경과는 119분으로 취급"""
        reference = datetime(2026, 1, 13, 9, 0, tzinfo=TZ)
        instant = reference + timedelta(minutes=119, seconds=59)
        assert match_window(duration(0, 120), instant, TZ, reference).matched is True

    def test_before_reference_does_not_match(self):
        reference = datetime(2026, 1, 13, 9, 0, tzinfo=TZ)
        instant = reference - timedelta(minutes=30)
        assert match_window(duration(0, 120), instant, TZ, reference).matched is False


class TestInvalidWindows:
    """잘못된 구간은 에러 없이 '매칭 안 됨'"""

    @pytest.mark.parametrize("window", [
        TimeWindow(price_per_hour=Decimal("10")),
        TimeWindow(start_time="09:00", end_time="10:00", start_minute=0, end_minute=60, price_per_hour=Decimal("10")),
        TimeWindow(window_type="ABSOLUTE_TIME", start_time="17:00", end_time="09:00", price_per_hour=Decimal("10")),
        TimeWindow(window_type="ABSOLUTE_TIME", start_time="09:00", end_time="09:00", price_per_hour=Decimal("10")),
        TimeWindow(window_type="DURATION_BASED", start_minute=60, end_minute=60, price_per_hour=Decimal("10")),
        TimeWindow(window_type="ABSOLUTE_TIME", start_time="9am", end_time="10:00", price_per_hour=Decimal("10")),
        TimeWindow(window_type="DURATION_BASED", start_time="09:00", end_time="10:00", price_per_hour=Decimal("10")),
    ])
    def test_invalid_window_never_matches(self, window):
        reference = datetime(2026, 1, 13, 9, 0, tzinfo=TZ)
        result = match_window(window, datetime(2026, 1, 13, 9, 30, tzinfo=TZ), TZ, reference)
        assert result.matched is False
        assert result.invalid is True
        assert validate_window(window) is not None

    def test_window_type_inferred_from_fields(self):
        window = TimeWindow(start_minute=0, end_minute=60, price_per_hour=Decimal("10"))
        assert validate_window(window) is None
        assert window.resolved_type.value == "DURATION_BASED"
