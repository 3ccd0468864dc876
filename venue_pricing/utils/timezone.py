"""
타임존 유틸리티

가격 엔진의 모든 시각 비교는 계층 체인에서 결정된 타임존 기준으로 수행됩니다.
- naive datetime은 해당 타임존의 벽시계 시각으로 간주합니다.
- HH:MM 문자열 비교는 분 단위 정수로 변환하여 수행합니다.
"""

from datetime import datetime, timedelta, timezone as dt_timezone
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import logging

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60


def get_zone(name: str) -> ZoneInfo:
    """
    Return the ZoneInfo for `name`, falling back to UTC for unknown zone names.
    """
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning({"message": "Unknown timezone, falling back to UTC", "timezone": name})
        return ZoneInfo("UTC")


def ensure_aware(value: datetime, tz: ZoneInfo) -> datetime:
    """naive datetime이면 tz의 벽시계 시각으로 해석"""
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value


def to_local(value: datetime, tz: ZoneInfo) -> datetime:
    return ensure_aware(value, tz).astimezone(tz)


def format_hhmm(value: datetime, tz: ZoneInfo) -> str:
    """Format an instant as zero-padded 24h HH:MM in the given timezone."""
    return to_local(value, tz).strftime("%H:%M")


def time_to_minutes(value: str) -> Optional[int]:
    """
    Convert an "HH:MM" string to minutes since midnight.

    "24:00" is accepted as end of day (1440). Returns None for malformed input
    so callers can treat the window as invalid instead of failing.
    """
    try:
        hours_str, minutes_str = value.strip().split(":")
        hours, minutes = int(hours_str), int(minutes_str)
    except (AttributeError, ValueError):
        return None
    if not (0 <= minutes < 60):
        return None
    if hours == 24 and minutes == 0:
        return MINUTES_PER_DAY
    if not (0 <= hours < 24):
        return None
    return hours * 60 + minutes


def elapsed_seconds(start: datetime, end: datetime) -> float:
    """
    Real elapsed seconds between two aware instants.

    Aware datetimes sharing the same tzinfo subtract as wall-clock values,
    so both ends are converted to UTC first.
    """
    return (end.astimezone(dt_timezone.utc) - start.astimezone(dt_timezone.utc)).total_seconds()


def minutes_of_day(value: datetime, tz: ZoneInfo) -> int:
    local = to_local(value, tz)
    return local.hour * 60 + local.minute


def day_of_week(value: datetime, tz: ZoneInfo) -> int:
    """0=일요일 ~ 6=토요일 (SurgeTimeWindow.daysOfWeek 규약)"""
    return (to_local(value, tz).weekday() + 1) % 7


def split_into_hourly_slots(start: datetime, end: datetime, tz: ZoneInfo) -> List[Tuple[datetime, datetime]]:
    """
    Split [start, end) into consecutive slots cut at wall-clock hour boundaries.

    Boundaries are computed in the local timezone and advanced in UTC, so DST
    transitions never produce duplicate or missing slots. Leading and trailing
    partial hours become shorter slots.

    Parameters:
        start (datetime): Aware interval start.
        end (datetime): Aware interval end.
        tz (ZoneInfo): Timezone whose wall clock defines the hour boundaries.

    Returns:
        List[Tuple[datetime, datetime]]: (slot_start, slot_end) pairs, aware, in `tz`.
    """
    slots = []
    current = start.astimezone(dt_timezone.utc)
    end_utc = end.astimezone(dt_timezone.utc)

    while current < end_utc:
        local_floor = current.astimezone(tz).replace(minute=0, second=0, microsecond=0)
        next_boundary = local_floor.astimezone(dt_timezone.utc) + timedelta(hours=1)
        slot_end = min(next_boundary, end_utc)
        slots.append((current.astimezone(tz), slot_end.astimezone(tz)))
        current = slot_end

    return slots
