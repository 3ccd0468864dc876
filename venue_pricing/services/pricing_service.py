"""
가격 계산 도메인 서비스 (PricingService)

역할:
    - 예약 구간 [start, end)를 벽시계 기준 1시간 세그먼트로 분할
    - 세그먼트마다 Candidate Resolver -> Priority Selector (-> 기본 요금 캐스케이드) -> Surge 순으로 단가 결정
    - 세그먼트 합계, 감사 로그(decisionLog), 규칙별 사용 요약, 이슈 목록 집계

Rationale:
    [질문 1] 시간대별로 다른 규칙이 적용되는 경우
    -> Split-and-Sum 방식으로 해결합니다.
       각 세그먼트를 독립적으로 평가한 뒤 pricePerHour x durationHours를 합산합니다.
       경계를 벽시계 정시에 맞추므로 어느 시점 t1에서 구간을 나눠도 합계가 같습니다 (가산성).

    [질문 2] Surge는 어떻게 적용되는가
    -> Surge 후보는 모든 계층보다 높은 우선순위의 합성 후보로 주입됩니다.
       단가는 'Surge가 없었다면 결정되었을 기본 단가 x surge factor'입니다.
       기본 단가를 결정할 수 없는 세그먼트에는 Surge를 적용하지 않습니다.

    [질문 3] 가격을 결정할 수 없는 세그먼트
    -> 0원으로 조용히 처리하지 않습니다. source=UNRESOLVED로 표시하고 이슈를 남기며,
       호출자는 PricingResult.raise_for_unresolved()로 예약을 거절할 수 있습니다.

실행: pytest tests/services/test_pricing_service.py -v
"""

import logging
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional, Tuple

from venue_pricing.core.config import CURRENCY
from venue_pricing.exception.base_exception import ErrorCode
from venue_pricing.exception.pricing_exception import InvalidPricingIntervalError
from venue_pricing.models.pricing import (
    CandidateSource,
    DecisionLogEntry,
    DefaultRate,
    HierarchyChain,
    HourlySegment,
    PricingBreakdown,
    PricingIssue,
    PricingOptions,
    PricingResult,
    Ratesheet,
    RatesheetRef,
    RatesheetUsage,
    SegmentSource,
    Selection,
    SurgeRef,
)
from venue_pricing.repositories.base import (
    IHierarchyRepository,
    IRatesheetRepository,
    ISurgeConfigRepository,
)
from venue_pricing.services.candidate_resolver import CandidateResolver
from venue_pricing.services.hierarchy_service import HierarchyService
from venue_pricing.services.priority_selector import resolve_default_rate, select_winner
from venue_pricing.services.surge_service import SurgeService
from venue_pricing.utils.timezone import (
    elapsed_seconds,
    format_hhmm,
    get_zone,
    split_into_hourly_slots,
    to_local,
)

logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")
_SECONDS_PER_HOUR = Decimal(3600)


def _money(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def _segment_total(price_per_hour: Decimal, slot_start: datetime, slot_end: datetime, tz) -> Decimal:
    """
    Charge for [slot_start, slot_end) at a constant hourly rate, in cents.

    The amount is the difference of two accrued totals measured from the wall-clock
    hour that contains the segment, each rounded half-up. Splitting a segment at any
    instant therefore never gains or loses a cent: the parts telescope back to the
    whole.
    """
    hour_start = to_local(slot_start, tz).replace(minute=0, second=0, microsecond=0)

    def accrued(until: datetime) -> Decimal:
        seconds = Decimal(int(elapsed_seconds(hour_start, until)))
        return _money(price_per_hour * seconds / _SECONDS_PER_HOUR)

    return accrued(slot_end) - accrued(slot_start)


class _SlotContext:
    """한 번의 resolve_price 호출 동안 공유되는 읽기 전용 입력 묶음"""

    def __init__(
        self,
        chain: HierarchyChain,
        ratesheets: List[Ratesheet],
        resolver: CandidateResolver,
        surge: SurgeService,
        default_rate: Optional[DefaultRate],
        reference: Optional[datetime],
    ):
        self.chain = chain
        self.tz = get_zone(chain.timezone)
        self.ratesheets = ratesheets
        self.resolver = resolver
        self.surge = surge
        self.default_rate = default_rate
        self.reference = reference


class PricingService:
    """SubLocation 시간대별 가격 계산 도메인 서비스"""

    def __init__(
        self,
        hierarchy_repository: IHierarchyRepository,
        ratesheet_repository: IRatesheetRepository,
        surge_repository: Optional[ISurgeConfigRepository] = None,
    ):
        self.hierarchy = HierarchyService(hierarchy_repository)
        self.ratesheet_repository = ratesheet_repository
        self.surge_repository = surge_repository

    def resolve_price(
        self,
        sub_location_id: str,
        start: datetime,
        end: datetime,
        options: Optional[PricingOptions] = None,
    ) -> PricingResult:
        """
        Price a SubLocation booking over [start, end) hour by hour.

        Parameters:
            sub_location_id (str): Target SubLocation ID.
            start (datetime): Booking start. Naive values are read in the chain's timezone.
            end (datetime): Booking end. Naive values are read in the chain's timezone.
            options (Optional[PricingOptions]): Duration context, event pinning, event-booking
                flag, surge EMA state and timezone override.

        Returns:
            PricingResult: Segments, totals, decision log, breakdown, per-rule summary and any
            accumulated issues. Hours that could not be priced carry source UNRESOLVED.

        Raises:
            EntityNotFoundError: If the SubLocation, its Location/Customer, or a pinned Event is missing.
            SubLocationInactiveError: If the SubLocation is inactive.
            PricingDisabledError: If pricing is disabled for the SubLocation.
            InvalidPricingIntervalError: If `start` is not before `end`.
        """
        options = options or PricingOptions()

        # 1. 계층 체인 + 타임존 확정
        chain = self.hierarchy.get_chain(sub_location_id, options.timezone)
        tz = get_zone(chain.timezone)
        start_local = to_local(start, tz)
        end_local = to_local(end, tz)
        if start_local >= end_local:
            raise InvalidPricingIntervalError(
                f"start ({start_local.isoformat()}) must be before end ({end_local.isoformat()})"
            )

        # 2. 구간 전체에 대한 조회는 한 번씩만 수행
        date_range = (start_local, end_local)
        events = self.hierarchy.resolve_events(chain, start_local, end_local, options.event_id)
        ratesheets = self.ratesheet_repository.get_effective_ratesheets(
            sub_location_id,
            date_range,
            resolve_hierarchy=True,
            event_id=options.event_id,
        )
        surge_configs = []
        if self.surge_repository is not None:
            surge_configs = self.surge_repository.get_active_surge_configs(sub_location_id, date_range)

        reference = None
        if options.use_duration_context:
            reference = to_local(options.reference_time or start_local, tz)

        ctx = _SlotContext(
            chain=chain,
            ratesheets=ratesheets,
            resolver=CandidateResolver(chain, events, options.is_event_booking),
            surge=SurgeService(chain, surge_configs, options.previous_smoothed_pressure),
            default_rate=resolve_default_rate(chain),
            reference=reference,
        )

        # 3. Split & Sum
        segments: List[HourlySegment] = []
        decision_log: List[DecisionLogEntry] = []
        issues: List[PricingIssue] = []
        for hour_index, (slot_start, slot_end) in enumerate(split_into_hourly_slots(start_local, end_local, tz), start=1):
            segment, entry = self._price_slot(ctx, hour_index, slot_start, slot_end, issues)
            segments.append(segment)
            decision_log.append(entry)

        result = PricingResult(
            sub_location_id=sub_location_id,
            total_price=sum((seg.total_price for seg in segments), Decimal("0.00")),
            total_hours=round(sum(seg.duration_hours for seg in segments), 6),
            currency=CURRENCY,
            timezone=chain.timezone,
            segments=segments,
            decision_log=decision_log,
            breakdown=self._breakdown(segments),
            ratesheets_summary=self._ratesheets_summary(segments),
            issues=self._dedupe_issues(issues),
        )

        logger.info({
            "message": "price resolved",
            "subLocationId": sub_location_id,
            "start": start_local.isoformat(),
            "end": end_local.isoformat(),
            "timezone": chain.timezone,
            "totalPrice": str(result.total_price),
            "totalHours": result.total_hours,
            "segments": len(segments),
            "unresolvedSegments": result.breakdown.unresolved_segments,
            "issues": len(result.issues),
        })
        return result

    # ==================== Private Methods ====================

    def _price_slot(
        self,
        ctx: _SlotContext,
        hour_index: int,
        slot_start: datetime,
        slot_end: datetime,
        issues: List[PricingIssue],
    ) -> Tuple[HourlySegment, DecisionLogEntry]:
        """
        Price one segment: rules first, then the default cascade, then surge on top.

        Returns:
            Tuple[HourlySegment, DecisionLogEntry]: The priced segment and its audit entry.
            Issues found along the way are appended to `issues`.
        """
        seconds = Decimal(int(elapsed_seconds(slot_start, slot_end)))
        duration_hours = float(seconds / _SECONDS_PER_HOUR)

        resolution = ctx.resolver.resolve(ctx.ratesheets, slot_start, slot_end, ctx.reference, hour_index)
        issues.extend(resolution.issues)
        selection = select_winner(resolution.candidates)

        # 3-1. Surge 없이 결정되는 기본 단가
        base_price: Optional[Decimal] = None
        base_source = SegmentSource.UNRESOLVED
        level = None
        ratesheet_ref = None
        time_window = None
        selected_name = None
        reason = selection.reason

        if selection.winner is not None:
            winner = selection.winner
            base_price = winner.price_per_hour
            base_source = SegmentSource.RATESHEET
            level = winner.level
            ratesheet_ref = RatesheetRef(
                id=winner.ratesheet_id,
                name=winner.ratesheet_name,
                priority=winner.priority,
                level=winner.level,
            )
            time_window = winner.matched_window
            selected_name = winner.ratesheet_name
        elif ctx.default_rate is not None:
            base_price = ctx.default_rate.price_per_hour
            base_source = SegmentSource.DEFAULT_RATE
            level = ctx.default_rate.level
            selected_name = f"Default rate ({ctx.default_rate.level.value})"
            reason = f"No ratesheets match this time slot, using {ctx.default_rate.level.value} default rate"
        else:
            reason = "No ratesheets match and no positive default rate in the hierarchy"
            issues.append(PricingIssue(
                code=ErrorCode.PRICING_UNRESOLVABLE,
                message=f"Hour {hour_index} ({format_hhmm(slot_start, ctx.tz)}) has no matching rule or positive default rate",
                hour=hour_index,
                reference_id=ctx.chain.sub_location.id,
            ))

        # 3-2. Surge 후보 주입 후 재선택
        source = base_source
        price_per_hour = base_price
        surge_ref = None
        final_selection: Selection = selection

        if base_price is not None:
            materialized = ctx.surge.materialize(slot_start, declaration_index=len(resolution.candidates))
            if materialized is not None:
                surge_candidate, config, calculation = materialized
                if calculation.supply_zero:
                    issues.append(PricingIssue(
                        code=ErrorCode.PRICING_SURGE_SUPPLY_ZERO,
                        message=f"Surge config {config.name} has zero supply, factor clamped to {calculation.surge_factor}",
                        hour=hour_index,
                        reference_id=config.id,
                    ))
                final_selection = select_winner(resolution.candidates + [surge_candidate])
                final_winner = final_selection.winner

                if final_winner.source == CandidateSource.SURGE:
                    source = SegmentSource.SURGE
                    price_per_hour = _money(base_price * final_winner.price_per_hour)
                    surge_ref = SurgeRef(
                        config_id=config.id,
                        name=config.name,
                        surge_factor=calculation.surge_factor,
                        base_price_per_hour=base_price,
                        base_source=base_source,
                    )
                    selected_name = final_winner.ratesheet_name
                    reason = f"{final_selection.reason}, x{calculation.surge_factor:.4f} on {base_price} ({base_source.value})"
                elif final_winner.source == CandidateSource.RATESHEET:
                    # config 우선순위가 음수로 크게 설정된 경우 일반 규칙이 이김
                    final_selection = Selection(
                        winner=selection.winner,
                        reason=selection.reason,
                        candidates=final_selection.candidates,
                        rejected=final_selection.rejected,
                    )
                else:
                    raise ValueError(f"Unknown candidate source: {final_winner.source}")

        total_price = Decimal("0.00")
        if price_per_hour is not None:
            total_price = _segment_total(price_per_hour, slot_start, slot_end, ctx.tz)

        segment = HourlySegment(
            start_time=slot_start,
            end_time=slot_end,
            duration_hours=duration_hours,
            price_per_hour=price_per_hour,
            total_price=total_price,
            source=source,
            level=level,
            ratesheet=ratesheet_ref,
            time_window=time_window,
            surge=surge_ref,
        )

        entry = DecisionLogEntry(
            hour=hour_index,
            timestamp=slot_start,
            time_slot=f"{format_hhmm(slot_start, ctx.tz)} - {format_hhmm(slot_end, ctx.tz)}",
            applicable_ratesheets=len(final_selection.candidates),
            selected_ratesheet=selected_name,
            price_per_hour=price_per_hour,
            source=source,
            reason=reason,
            rejected_ratesheets=[r.candidate.ratesheet_name for r in final_selection.rejected],
        )

        logger.debug({
            "message": "segment priced",
            "hour": hour_index,
            "timeSlot": entry.time_slot,
            "source": source.value,
            "pricePerHour": str(price_per_hour) if price_per_hour is not None else None,
            "selected": selected_name,
        })
        return segment, entry

    def _breakdown(self, segments: List[HourlySegment]) -> PricingBreakdown:
        counts: Dict[SegmentSource, int] = {source: 0 for source in SegmentSource}
        for seg in segments:
            counts[seg.source] += 1
        return PricingBreakdown(
            ratesheet_segments=counts[SegmentSource.RATESHEET],
            default_rate_segments=counts[SegmentSource.DEFAULT_RATE],
            surge_segments=counts[SegmentSource.SURGE],
            unresolved_segments=counts[SegmentSource.UNRESOLVED],
        )

    def _ratesheets_summary(self, segments: List[HourlySegment]) -> List[RatesheetUsage]:
        """규칙별 적용 횟수와 매출 (첫 적용 순서 유지). Surge 세그먼트는 기본 규칙 쪽에 집계."""
        usage: Dict[str, RatesheetUsage] = {}
        for seg in segments:
            if seg.ratesheet is None:
                continue
            ref = seg.ratesheet
            if ref.id not in usage:
                usage[ref.id] = RatesheetUsage(id=ref.id, name=ref.name, priority=ref.priority)
            item = usage[ref.id]
            item.times_applied += 1
            item.total_revenue += seg.total_price
        return list(usage.values())

    def _dedupe_issues(self, issues: List[PricingIssue]) -> List[PricingIssue]:
        # 이슈는 시간대별로 누적, 같은 시간대 안의 중복 보고만 제거
        seen = set()
        unique = []
        for issue in issues:
            key = (issue.code, issue.reference_id, issue.hour)
            if key in seen:
                continue
            seen.add(key)
            unique.append(issue)
        return unique
