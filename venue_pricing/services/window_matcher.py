"""
Time Window Matcher

역할:
    - TimeWindow 하나가 특정 시각 T를 덮는지 판정하고 적용 단가를 반환
    - ABSOLUTE_TIME: 벽시계 HH:MM 기준 [startTime, endTime) 반개구간
    - DURATION_BASED: 기준 시각 R로부터 경과 분 floor((T-R)) 기준 [startMinute, endMinute)

Rationale:
    반개구간을 사용하므로 연속된 구간(09:00-12:00, 12:00-17:00)이 겹침 없이 하루를 채웁니다.
    필드 쌍이 비었거나 경계가 역전된 구간은 에러가 아니라 '매칭 안 됨'으로 처리합니다 (fail-safe).
"""

import math
from datetime import datetime
from decimal import Decimal
from typing import Optional
from zoneinfo import ZoneInfo

from pydantic import BaseModel

from venue_pricing.models.pricing import TimeWindow, WindowType
from venue_pricing.utils.timezone import elapsed_seconds, ensure_aware, minutes_of_day, time_to_minutes


class WindowMatch(BaseModel):
    matched: bool
    price_per_hour: Optional[Decimal] = None
    invalid: bool = False
    reason: str = ""


_NO_MATCH = WindowMatch(matched=False)


def validate_window(window: TimeWindow) -> Optional[str]:
    """
    Check a window's structural invariants.

    Returns:
        Optional[str]: A human-readable problem description, or None when the window is valid.
    """
    has_abs = window.has_absolute_fields
    has_dur = window.has_duration_fields

    if has_abs == has_dur:
        # 둘 다 없거나 둘 다 채워진 경우
        return "exactly one of startTime/endTime or startMinute/endMinute must be set"

    window_type = window.resolved_type
    if window_type == WindowType.ABSOLUTE_TIME:
        if not has_abs:
            return "ABSOLUTE_TIME window without startTime/endTime"
        start = time_to_minutes(window.start_time)
        end = time_to_minutes(window.end_time)
        if start is None or end is None:
            return f"malformed HH:MM bounds {window.start_time!r}-{window.end_time!r}"
        if end <= start:
            return f"endTime {window.end_time} is not after startTime {window.start_time}"
        return None

    if not has_dur:
        return "DURATION_BASED window without startMinute/endMinute"
    if window.end_minute <= window.start_minute:
        return f"endMinute {window.end_minute} is not after startMinute {window.start_minute}"
    return None


def match_window(
    window: TimeWindow,
    instant: datetime,
    tz: ZoneInfo,
    reference: Optional[datetime] = None,
) -> WindowMatch:
    """
    Decide whether `window` covers `instant`.

    Parameters:
        window (TimeWindow): The window to evaluate.
        instant (datetime): The instant T being priced (naive values are read in `tz`).
        tz (ZoneInfo): Timezone used for HH:MM formatting.
        reference (Optional[datetime]): Booking reference instant R. When None, duration
            context is disabled and DURATION_BASED windows are skipped outright.

    Returns:
        WindowMatch: `matched` with the window's price on success. Invalid windows come
        back with `invalid=True` and never match.
    """
    problem = validate_window(window)
    if problem is not None:
        return WindowMatch(matched=False, invalid=True, reason=problem)

    if window.resolved_type == WindowType.ABSOLUTE_TIME:
        minute = minutes_of_day(instant, tz)
        start = time_to_minutes(window.start_time)
        end = time_to_minutes(window.end_time)
        if start <= minute < end:
            return WindowMatch(matched=True, price_per_hour=window.price_per_hour)
        return _NO_MATCH

    # DURATION_BASED: 기준 시각이 없으면 수치와 무관하게 건너뜀
    if reference is None:
        return _NO_MATCH

    elapsed = elapsed_seconds(ensure_aware(reference, tz), ensure_aware(instant, tz)) / 60
    elapsed_minutes = math.floor(elapsed)
    if window.start_minute <= elapsed_minutes < window.end_minute:
        return WindowMatch(matched=True, price_per_hour=window.price_per_hour)
    return _NO_MATCH
