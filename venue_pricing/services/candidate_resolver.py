"""
Candidate Resolver

한 시간대(H, 반개구간)에 대해 적용 가능한 모든 Ratesheet 후보를 수집합니다.

처리 순서:
    1. appliesTo가 SubLocation / Location / Customer / H와 겹치는 Event 중 하나인 규칙만 대상
    2. 활성 상태이며 유효 기간(effectiveFrom ~ effectiveTo, 양끝 포함)이 H 시작 시각을 덮는 규칙만 유지
    3. 규칙의 시간 구간을 선언 순서대로 평가하여 첫 매칭 구간으로 후보 1개 생성

Rationale:
    규칙 조회는 예약 구간 전체에 대해 한 번만 수행하고(O(hours x rules) 왕복 방지),
    시간대별 필터링은 전부 메모리에서 수행합니다.
    후보의 declaration_index는 저장소가 돌려준 규칙 순서이며 동일 우선순위 타이브레이크에 사용됩니다.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Set, Tuple
from zoneinfo import ZoneInfo

from pydantic import BaseModel, Field

from venue_pricing.exception.base_exception import ErrorCode
from venue_pricing.models.pricing import (
    Candidate,
    CandidateSource,
    Event,
    HierarchyChain,
    HierarchyLevel,
    PricingIssue,
    Ratesheet,
)
from venue_pricing.services.window_matcher import match_window
from venue_pricing.utils.timezone import ensure_aware

logger = logging.getLogger(__name__)


class CandidateResolution(BaseModel):
    candidates: List[Candidate] = Field(default_factory=list)
    issues: List[PricingIssue] = Field(default_factory=list)


def is_effective(ratesheet: Ratesheet, instant: datetime, tz: ZoneInfo) -> bool:
    if not ratesheet.is_active:
        return False
    if ensure_aware(ratesheet.effective_from, tz) > instant:
        return False
    if ratesheet.effective_to is not None and ensure_aware(ratesheet.effective_to, tz) < instant:
        return False
    return True


class CandidateResolver:
    """시간대별 후보 규칙 수집기"""

    def __init__(self, chain: HierarchyChain, events: Sequence[Event] = (), is_event_booking: bool = False):
        """
        Parameters:
            chain (HierarchyChain): Ancestor chain of the target SubLocation.
            events (Sequence[Event]): Events considered for EVENT-level rules (already
                narrowed to the pinned event when one was requested).
            is_event_booking (bool): When False, zero-priced EVENT windows (grace periods)
                are not offered as candidates.
        """
        self.chain = chain
        self.tz = ZoneInfo(chain.timezone)
        self.events: Dict[str, Event] = {e.id: e for e in events}
        self.is_event_booking = is_event_booking
        self._static_scope: Set[Tuple[HierarchyLevel, str]] = {
            (HierarchyLevel.SUBLOCATION, chain.sub_location.id),
            (HierarchyLevel.LOCATION, chain.location.id),
            (HierarchyLevel.CUSTOMER, chain.customer.id),
        }

    def _in_scope(self, ratesheet: Ratesheet, hour_start: datetime, hour_end: datetime) -> bool:
        level = ratesheet.applies_to.level
        entity_id = ratesheet.applies_to.entity_id
        if level == HierarchyLevel.EVENT:
            event = self.events.get(entity_id)
            if event is None or not event.is_active:
                return False
            return event.overlaps(hour_start, hour_end, self.tz)
        return (level, entity_id) in self._static_scope

    def resolve(
        self,
        ratesheets: Sequence[Ratesheet],
        hour_start: datetime,
        hour_end: datetime,
        reference: Optional[datetime] = None,
        hour_index: Optional[int] = None,
    ) -> CandidateResolution:
        """
        Collect every matching rule for the hour [hour_start, hour_end).

        Parameters:
            ratesheets (Sequence[Ratesheet]): Rules fetched once for the whole interval, in
                declaration order.
            hour_start (datetime): Aware start of the hour being priced.
            hour_end (datetime): Aware end of the hour being priced.
            reference (Optional[datetime]): Duration-context reference instant, or None when
                duration context is disabled.
            hour_index (Optional[int]): 1-based hour number, recorded on issues.

        Returns:
            CandidateResolution: Candidates in declaration order plus any invalid-window issues.
        """
        resolution = CandidateResolution()

        for index, ratesheet in enumerate(ratesheets):
            if not self._in_scope(ratesheet, hour_start, hour_end):
                continue
            if not is_effective(ratesheet, hour_start, self.tz):
                continue

            candidate = self._first_matching_window(ratesheet, index, hour_start, reference, hour_index, resolution)
            if candidate is not None:
                resolution.candidates.append(candidate)

        logger.debug({
            "message": "candidates resolved",
            "hourStart": hour_start.isoformat(),
            "candidates": [c.ratesheet_name for c in resolution.candidates],
        })
        return resolution

    def _first_matching_window(
        self,
        ratesheet: Ratesheet,
        index: int,
        hour_start: datetime,
        reference: Optional[datetime],
        hour_index: Optional[int],
        resolution: CandidateResolution,
    ) -> Optional[Candidate]:
        level = ratesheet.applies_to.level

        for window_index, window in enumerate(ratesheet.time_windows):
            result = match_window(window, hour_start, self.tz, reference)

            if result.invalid:
                logger.warning({
                    "message": "invalid time window skipped",
                    "errorCode": ErrorCode.PRICING_INVALID_WINDOW.value,
                    "ratesheetId": ratesheet.id,
                    "windowIndex": window_index,
                    "detail": result.reason,
                })
                resolution.issues.append(PricingIssue(
                    code=ErrorCode.PRICING_INVALID_WINDOW,
                    message=f"{ratesheet.name} window #{window_index}: {result.reason}",
                    hour=hour_index,
                    reference_id=f"{ratesheet.id}#{window_index}",
                ))
                continue

            if not result.matched:
                continue

            # 일반 예약에서는 이벤트 유예 구간($0/hr)을 무료로 제공하지 않음
            if level == HierarchyLevel.EVENT and result.price_per_hour == 0 and not self.is_event_booking:
                continue

            # 같은 규칙의 여러 구간이 매칭되면 선언 순서상 첫 구간만 사용
            return Candidate(
                source=CandidateSource.RATESHEET,
                ratesheet_id=ratesheet.id,
                ratesheet_name=ratesheet.name,
                level=level,
                priority=ratesheet.priority,
                price_per_hour=result.price_per_hour,
                matched_window=window.label(),
                declaration_index=index,
            )

        return None
