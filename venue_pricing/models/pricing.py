"""
가격 계산 도메인 모델

역할:
    - 계층 엔티티(Customer/Location/SubLocation/Event) 스냅샷
    - Ratesheet / TimeWindow / SurgeConfig 규칙 스냅샷
    - 엔진 내부 후보(Candidate)와 시간대별 결과(HourlySegment), 감사 로그(DecisionLogEntry)

Rationale:
    엔진은 이미 조회된 불변 스냅샷 위에서만 동작합니다.
    따라서 모든 입력 모델은 frozen=True로 선언하여 계산 도중 변경을 막습니다.
    외부 문서(JSON)는 camelCase이므로 alias를 두고 populate_by_name으로 snake_case도 허용합니다.
"""

from datetime import datetime, timedelta, tzinfo
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from venue_pricing.exception.base_exception import ErrorCode
from venue_pricing.exception.pricing_exception import UnresolvablePricingError
from venue_pricing.utils.timezone import ensure_aware


class HierarchyLevel(str, Enum):
    CUSTOMER = "CUSTOMER"
    LOCATION = "LOCATION"
    SUBLOCATION = "SUBLOCATION"
    EVENT = "EVENT"


class WindowType(str, Enum):
    ABSOLUTE_TIME = "ABSOLUTE_TIME"
    DURATION_BASED = "DURATION_BASED"


class CandidateSource(str, Enum):
    """후보 규칙의 출처 (닫힌 합 타입)"""
    RATESHEET = "RATESHEET"
    SURGE = "SURGE"


class SegmentSource(str, Enum):
    """시간대 결과의 가격 출처"""
    RATESHEET = "RATESHEET"
    DEFAULT_RATE = "DEFAULT_RATE"
    SURGE = "SURGE"
    UNRESOLVED = "UNRESOLVED"


_SNAPSHOT_CONFIG = ConfigDict(populate_by_name=True, frozen=True)


# ==================== Hierarchy Entities ====================

class Customer(BaseModel):
    model_config = _SNAPSHOT_CONFIG

    id: str
    name: str = ""
    default_hourly_rate: Optional[Decimal] = Field(None, alias="defaultHourlyRate")
    timezone: Optional[str] = None


class Location(BaseModel):
    model_config = _SNAPSHOT_CONFIG

    id: str
    customer_id: str = Field(..., alias="customerId")
    name: str = ""
    default_hourly_rate: Optional[Decimal] = Field(None, alias="defaultHourlyRate")
    timezone: Optional[str] = None


class SubLocation(BaseModel):
    model_config = _SNAPSHOT_CONFIG

    id: str
    location_id: str = Field(..., alias="locationId")
    label: str = ""
    default_hourly_rate: Optional[Decimal] = Field(None, alias="defaultHourlyRate")
    timezone: Optional[str] = None
    pricing_enabled: bool = Field(True, alias="pricingEnabled")
    is_active: bool = Field(True, alias="isActive")


class Event(BaseModel):
    """시간 한정 이벤트.

    subLocationId / locationId / customerId / venueId 중 하나의 조상에 연결됩니다.
    유예 시간(gracePeriodBefore/After)은 분 단위이며 이벤트 겹침 판정에 포함됩니다.
    """
    model_config = _SNAPSHOT_CONFIG

    id: str
    name: str = ""
    start_date: datetime = Field(..., alias="startDate")
    end_date: datetime = Field(..., alias="endDate")
    grace_period_before: int = Field(0, ge=0, alias="gracePeriodBefore")
    grace_period_after: int = Field(0, ge=0, alias="gracePeriodAfter")
    default_hourly_rate: Optional[Decimal] = Field(None, alias="defaultHourlyRate")
    is_active: bool = Field(True, alias="isActive")

    sub_location_id: Optional[str] = Field(None, alias="subLocationId")
    location_id: Optional[str] = Field(None, alias="locationId")
    customer_id: Optional[str] = Field(None, alias="customerId")
    venue_id: Optional[str] = Field(None, alias="venueId")

    def overlaps(self, start: datetime, end: datetime, tz: Optional[tzinfo] = None) -> bool:
        """
        Return True if the event, widened by its grace periods, overlaps [start, end].

        Both ends are inclusive: `startDate - gracePeriodBefore <= end` and
        `endDate + gracePeriodAfter >= start`. Naive event dates are read in `tz`
        (defaults to the timezone of `start`).
        """
        tz = tz or start.tzinfo
        event_start = ensure_aware(self.start_date, tz) - timedelta(minutes=self.grace_period_before)
        event_end = ensure_aware(self.end_date, tz) + timedelta(minutes=self.grace_period_after)
        return event_start <= end and event_end >= start


class HierarchyChain(BaseModel):
    """SubLocation 기준 조상 체인 (고정 형태 레코드)"""
    model_config = _SNAPSHOT_CONFIG

    sub_location: SubLocation
    location: Location
    customer: Customer
    timezone: str


# ==================== Rules ====================

class AppliesTo(BaseModel):
    model_config = _SNAPSHOT_CONFIG

    level: HierarchyLevel
    entity_id: str = Field(..., alias="entityId")


class TimeWindow(BaseModel):
    """Ratesheet 시간 구간

    Examples:
        절대 시각:   {"windowType": "ABSOLUTE_TIME", "startTime": "09:00", "endTime": "17:00", "pricePerHour": 50}
        예약 기준:   {"windowType": "DURATION_BASED", "startMinute": 0, "endMinute": 120, "pricePerHour": 30}

    Rationale:
        필드 쌍 누락이나 역전된 경계는 생성 시 거부하지 않습니다.
        매칭 단계에서 '매칭 안 됨'으로 처리하고 이슈로 기록해야 하기 때문입니다.
    """
    model_config = _SNAPSHOT_CONFIG

    window_type: Optional[WindowType] = Field(None, alias="windowType")
    start_time: Optional[str] = Field(None, alias="startTime")
    end_time: Optional[str] = Field(None, alias="endTime")
    start_minute: Optional[int] = Field(None, alias="startMinute")
    end_minute: Optional[int] = Field(None, alias="endMinute")
    price_per_hour: Decimal = Field(..., alias="pricePerHour")

    @property
    def has_absolute_fields(self) -> bool:
        return self.start_time is not None and self.end_time is not None

    @property
    def has_duration_fields(self) -> bool:
        return self.start_minute is not None and self.end_minute is not None

    @property
    def resolved_type(self) -> WindowType:
        """windowType이 없으면 채워진 필드 쌍으로 추론 (기본값 ABSOLUTE_TIME)"""
        if self.window_type is not None:
            return self.window_type
        if self.has_duration_fields and not self.has_absolute_fields:
            return WindowType.DURATION_BASED
        return WindowType.ABSOLUTE_TIME

    def label(self) -> str:
        if self.resolved_type == WindowType.DURATION_BASED:
            bounds = f"+{self.start_minute}m-+{self.end_minute}m"
        else:
            bounds = f"{self.start_time}-{self.end_time}"
        return f"{bounds} @ {self.price_per_hour:.2f}/hr"


class Ratesheet(BaseModel):
    model_config = _SNAPSHOT_CONFIG

    id: str
    name: str
    description: Optional[str] = None
    applies_to: AppliesTo = Field(..., alias="appliesTo")
    priority: int
    effective_from: datetime = Field(..., alias="effectiveFrom")
    effective_to: Optional[datetime] = Field(None, alias="effectiveTo")
    time_windows: List[TimeWindow] = Field(default_factory=list, alias="timeWindows")
    is_active: bool = Field(True, alias="isActive")

    @model_validator(mode="after")
    def validate_effective_range(self):
        """
        Reject a ratesheet whose effective range ends before it starts.

        Raises:
            ValueError: If `effective_to` is earlier than `effective_from`.
        """
        if self.effective_to is not None and self.effective_to < self.effective_from:
            raise ValueError("effectiveTo must not be earlier than effectiveFrom")
        return self


class SurgeTimeWindow(BaseModel):
    """Surge 적용 요일/시각 제약. daysOfWeek는 0=일요일 ~ 6=토요일."""
    model_config = _SNAPSHOT_CONFIG

    days_of_week: Optional[List[int]] = Field(None, alias="daysOfWeek")
    start_time: Optional[str] = Field(None, alias="startTime")
    end_time: Optional[str] = Field(None, alias="endTime")


class DemandSupplyParams(BaseModel):
    model_config = _SNAPSHOT_CONFIG

    current_demand: float = Field(..., ge=0, alias="currentDemand")
    current_supply: float = Field(..., ge=0, alias="currentSupply")
    historical_avg_pressure: float = Field(1.0, alias="historicalAvgPressure")


class SurgeParams(BaseModel):
    model_config = _SNAPSHOT_CONFIG

    alpha: float
    min_multiplier: float = Field(..., alias="minMultiplier")
    max_multiplier: float = Field(..., alias="maxMultiplier")
    ema_alpha: float = Field(..., ge=0, le=1, alias="emaAlpha")

    @model_validator(mode="after")
    def validate_bounds(self):
        if self.min_multiplier > self.max_multiplier:
            raise ValueError("minMultiplier must not exceed maxMultiplier")
        return self


class SurgeConfig(BaseModel):
    model_config = _SNAPSHOT_CONFIG

    id: str
    name: str = ""
    applies_to: AppliesTo = Field(..., alias="appliesTo")
    priority: int = 0
    demand_supply_params: DemandSupplyParams = Field(..., alias="demandSupplyParams")
    surge_params: SurgeParams = Field(..., alias="surgeParams")
    effective_from: datetime = Field(..., alias="effectiveFrom")
    effective_to: Optional[datetime] = Field(None, alias="effectiveTo")
    time_windows: List[SurgeTimeWindow] = Field(default_factory=list, alias="timeWindows")
    is_active: bool = Field(True, alias="isActive")
    # 이전 계산의 EMA 상태 (SubLocation/Config 단위로 외부에 저장됨)
    previous_smoothed_pressure: Optional[float] = Field(None, alias="previousSmoothedPressure")

    @model_validator(mode="after")
    def validate_config(self):
        if self.applies_to.level not in (HierarchyLevel.LOCATION, HierarchyLevel.SUBLOCATION):
            raise ValueError("surge configs apply to LOCATION or SUBLOCATION only")
        if self.effective_to is not None and self.effective_to < self.effective_from:
            raise ValueError("effectiveTo must not be earlier than effectiveFrom")
        return self


# ==================== Engine Internals ====================

class Candidate(BaseModel):
    """한 시간대에 매칭된 후보 규칙.

    source가 SURGE이면 price_per_hour는 금액이 아닌 배수(surge factor)입니다.
    """
    model_config = _SNAPSHOT_CONFIG

    source: CandidateSource
    ratesheet_id: str
    ratesheet_name: str
    level: HierarchyLevel
    priority: int
    price_per_hour: Decimal
    matched_window: Optional[str] = None
    declaration_index: int


class RejectedCandidate(BaseModel):
    model_config = _SNAPSHOT_CONFIG

    candidate: Candidate
    reason: str


class Selection(BaseModel):
    """Priority Selector 결과. winner가 None이면 후보 없음."""
    model_config = _SNAPSHOT_CONFIG

    winner: Optional[Candidate] = None
    reason: str = ""
    candidates: List[Candidate] = Field(default_factory=list)
    rejected: List[RejectedCandidate] = Field(default_factory=list)


class DefaultRate(BaseModel):
    model_config = _SNAPSHOT_CONFIG

    level: HierarchyLevel
    entity_id: str
    price_per_hour: Decimal


class SurgeCalculation(BaseModel):
    model_config = _SNAPSHOT_CONFIG

    surge_factor: float
    pressure: float
    normalized_pressure: float
    smoothed_pressure: float
    raw_factor: float
    supply_zero: bool = False


# ==================== Options & Results ====================

class PricingOptions(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    use_duration_context: bool = Field(False, alias="useDurationContext")
    reference_time: Optional[datetime] = Field(None, alias="referenceTime")
    is_event_booking: bool = Field(False, alias="isEventBooking")
    event_id: Optional[str] = Field(None, alias="eventId")
    previous_smoothed_pressure: Optional[float] = Field(None, alias="previousSmoothedPressure")
    timezone: Optional[str] = None


class PricingIssue(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    code: ErrorCode
    message: str
    hour: Optional[int] = None
    reference_id: Optional[str] = Field(None, alias="referenceId")


class RatesheetRef(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    priority: int
    level: HierarchyLevel


class SurgeRef(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    config_id: str = Field(..., alias="configId")
    name: str
    surge_factor: float = Field(..., alias="surgeFactor")
    base_price_per_hour: Decimal = Field(..., alias="basePricePerHour")
    base_source: SegmentSource = Field(..., alias="baseSource")


class HourlySegment(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start_time: datetime = Field(..., alias="startTime")
    end_time: datetime = Field(..., alias="endTime")
    duration_hours: float = Field(..., alias="durationHours")
    price_per_hour: Optional[Decimal] = Field(None, alias="pricePerHour")
    total_price: Decimal = Field(Decimal("0"), alias="totalPrice")
    source: SegmentSource
    level: Optional[HierarchyLevel] = None
    ratesheet: Optional[RatesheetRef] = None
    time_window: Optional[str] = Field(None, alias="timeWindow")
    surge: Optional[SurgeRef] = None


class DecisionLogEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    hour: int
    timestamp: datetime
    time_slot: str = Field(..., alias="timeSlot")
    applicable_ratesheets: int = Field(..., alias="applicableRatesheets")
    selected_ratesheet: Optional[str] = Field(None, alias="selectedRatesheet")
    price_per_hour: Optional[Decimal] = Field(None, alias="pricePerHour")
    source: SegmentSource
    reason: str = ""
    rejected_ratesheets: List[str] = Field(default_factory=list, alias="rejectedRatesheets")


class PricingBreakdown(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ratesheet_segments: int = Field(0, alias="ratesheetSegments")
    default_rate_segments: int = Field(0, alias="defaultRateSegments")
    surge_segments: int = Field(0, alias="surgeSegments")
    unresolved_segments: int = Field(0, alias="unresolvedSegments")


class RatesheetUsage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    priority: int
    times_applied: int = Field(0, alias="timesApplied")
    total_revenue: Decimal = Field(Decimal("0"), alias="totalRevenue")


class PricingResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sub_location_id: str = Field(..., alias="subLocationId")
    total_price: Decimal = Field(..., alias="totalPrice")
    total_hours: float = Field(..., alias="totalHours")
    currency: str
    timezone: str
    segments: List[HourlySegment] = Field(default_factory=list)
    decision_log: List[DecisionLogEntry] = Field(default_factory=list, alias="decisionLog")
    breakdown: PricingBreakdown = Field(default_factory=PricingBreakdown)
    ratesheets_summary: List[RatesheetUsage] = Field(default_factory=list, alias="ratesheetsSummary")
    issues: List[PricingIssue] = Field(default_factory=list)

    @property
    def has_unresolved(self) -> bool:
        return self.breakdown.unresolved_segments > 0

    def raise_for_unresolved(self) -> "PricingResult":
        """
        Raise if any hour could not be priced, otherwise return self for chaining.

        Raises:
            UnresolvablePricingError: When at least one segment has source UNRESOLVED.
        """
        if not self.has_unresolved:
            return self
        hours = [
            seg.start_time.isoformat()
            for seg in self.segments
            if seg.source == SegmentSource.UNRESOLVED
        ]
        raise UnresolvablePricingError(
            message=f"No rule or positive default rate for {len(hours)} hour(s) of sub-location {self.sub_location_id}",
            unresolved_hours=hours,
        )
