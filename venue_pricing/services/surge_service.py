"""
Surge 가격 엔진 (SurgeService)

역할:
    - 수요/공급 압력으로 배수(surge factor)를 계산
    - 시간대별로 적용 가능한 SurgeConfig를 골라 최상위 우선순위의 합성 후보(Candidate)로 구체화

계산식:
    pressure            = currentDemand / currentSupply
    normalized_pressure = pressure / historicalAvgPressure
    smoothed_pressure   = emaAlpha * normalized + (1 - emaAlpha) * previousSmoothedPressure
                          (이전 값이 없으면 normalized 그대로 사용)
    raw_factor          = 1 + alpha * (smoothed_pressure - 1)
    surge_factor        = clamp(raw_factor, minMultiplier, maxMultiplier)

Rationale:
    EMA 상태(previousSmoothedPressure)는 메모리 싱글톤에 두지 않고 매 호출에 명시적으로 전달합니다.
    같은 입력이면 항상 같은 결과가 나오므로 SubLocation/구간별 병렬 계산이 안전합니다.
    공급이 0이면 예외 대신 maxMultiplier 쪽으로 클램프하여 계산을 항상 완료합니다.
"""

import logging
import math
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo

from venue_pricing.core.config import SURGE_PRIORITY_BASE
from venue_pricing.exception.base_exception import ErrorCode
from venue_pricing.models.pricing import (
    Candidate,
    CandidateSource,
    HierarchyChain,
    HierarchyLevel,
    SurgeCalculation,
    SurgeConfig,
    SurgeTimeWindow,
)
from venue_pricing.utils.timezone import day_of_week, ensure_aware, minutes_of_day, time_to_minutes

logger = logging.getLogger(__name__)


def calculate_surge_factor(
    demand: float,
    supply: float,
    historical_avg_pressure: float,
    alpha: float,
    min_multiplier: float,
    max_multiplier: float,
    ema_alpha: float,
    previous_smoothed_pressure: Optional[float] = None,
) -> SurgeCalculation:
    """
    Compute the surge multiplier from demand/supply pressure.

    Parameters:
        demand (float): Current demand.
        supply (float): Current supply. Zero is clamped rather than raised.
        historical_avg_pressure (float): Baseline pressure. Non-positive values fall back to 1.0.
        alpha (float): Sensitivity of the factor to smoothed pressure.
        min_multiplier (float): Lower clamp bound.
        max_multiplier (float): Upper clamp bound.
        ema_alpha (float): Weight of the current observation in the moving average.
        previous_smoothed_pressure (Optional[float]): Prior EMA state. When None the current
            normalized pressure is used as-is.

    Returns:
        SurgeCalculation: The clamped factor along with every intermediate value. The
        `smoothed_pressure` is the state to persist for the next call.
    """
    supply_zero = supply == 0

    if supply_zero:
        # 수요가 있으면 압력 무한대 -> maxMultiplier, 수요도 없으면 중립
        pressure = math.inf if demand > 0 else 1.0
        logger.warning({
            "message": "surge supply is zero, clamping",
            "errorCode": ErrorCode.PRICING_SURGE_SUPPLY_ZERO.value,
            "demand": demand,
        })
    else:
        pressure = demand / supply

    if historical_avg_pressure is None or historical_avg_pressure <= 0:
        historical_avg_pressure = 1.0

    normalized = pressure / historical_avg_pressure

    if previous_smoothed_pressure is None:
        smoothed = normalized
    else:
        smoothed = ema_alpha * normalized + (1 - ema_alpha) * previous_smoothed_pressure

    raw_factor = 1 + alpha * (smoothed - 1)

    if math.isnan(raw_factor):
        surge_factor = max_multiplier
    else:
        surge_factor = max(min_multiplier, min(max_multiplier, raw_factor))

    return SurgeCalculation(
        surge_factor=surge_factor,
        pressure=pressure,
        normalized_pressure=normalized,
        smoothed_pressure=smoothed,
        raw_factor=raw_factor,
        supply_zero=supply_zero,
    )


def calculate_for_config(config: SurgeConfig, previous_smoothed_pressure: Optional[float] = None) -> SurgeCalculation:
    """SurgeConfig 파라미터로 surge factor 계산. 명시적 EMA 상태가 없으면 config에 저장된 값을 사용."""
    previous = previous_smoothed_pressure
    if previous is None:
        previous = config.previous_smoothed_pressure

    ds = config.demand_supply_params
    sp = config.surge_params
    return calculate_surge_factor(
        demand=ds.current_demand,
        supply=ds.current_supply,
        historical_avg_pressure=ds.historical_avg_pressure,
        alpha=sp.alpha,
        min_multiplier=sp.min_multiplier,
        max_multiplier=sp.max_multiplier,
        ema_alpha=sp.ema_alpha,
        previous_smoothed_pressure=previous,
    )


def window_covers(window: SurgeTimeWindow, instant: datetime, tz: ZoneInfo) -> bool:
    """
    Check a surge window's day-of-week and HH:MM constraints against an instant.

    A window whose startTime is later than its endTime wraps past midnight
    (e.g. 19:00-07:00). Missing constraints match everything.
    """
    if window.days_of_week:
        if day_of_week(instant, tz) not in window.days_of_week:
            return False

    if window.start_time and window.end_time:
        start = time_to_minutes(window.start_time)
        end = time_to_minutes(window.end_time)
        if start is None or end is None:
            return False
        minute = minutes_of_day(instant, tz)
        if start > end:
            # 자정을 넘기는 구간
            return minute >= start or minute < end
        return start <= minute < end

    return True


def config_covers(config: SurgeConfig, instant: datetime, tz: ZoneInfo) -> bool:
    """활성 상태, 유효 기간 [effectiveFrom, effectiveTo), 요일/시각 제약을 모두 만족하는지 확인"""
    if not config.is_active:
        return False
    if ensure_aware(config.effective_from, tz) > instant:
        return False
    if config.effective_to is not None and ensure_aware(config.effective_to, tz) <= instant:
        return False
    if not config.time_windows:
        return True
    return any(window_covers(w, instant, tz) for w in config.time_windows)


def _level_rank(level: HierarchyLevel) -> int:
    # 동일 우선순위에서는 SUBLOCATION이 LOCATION보다 우선
    return 0 if level == HierarchyLevel.SUBLOCATION else 1


class SurgeService:
    """시간대별 Surge 후보 구체화 서비스"""

    def __init__(
        self,
        chain: HierarchyChain,
        configs: Sequence[SurgeConfig],
        previous_smoothed_pressure: Optional[float] = None,
    ):
        self.tz = ZoneInfo(chain.timezone)
        scope = {
            (HierarchyLevel.SUBLOCATION, chain.sub_location.id),
            (HierarchyLevel.LOCATION, chain.location.id),
        }
        # (선언 순서, config) 쌍을 보존하여 마지막 타이브레이크에 사용
        self.configs: List[Tuple[int, SurgeConfig]] = [
            (index, config)
            for index, config in enumerate(configs)
            if (config.applies_to.level, config.applies_to.entity_id) in scope
        ]
        self.previous_smoothed_pressure = previous_smoothed_pressure
        self._calculations = {}

    def select_config(self, instant: datetime) -> Optional[SurgeConfig]:
        """
        Return the surge config that governs `instant`, if any.

        Among configs covering the instant, the highest priority wins; ties prefer
        SUBLOCATION over LOCATION, then the order the store returned them in.
        """
        covering = [
            (index, config)
            for index, config in self.configs
            if config_covers(config, instant, self.tz)
        ]
        if not covering:
            return None
        _, best = min(
            covering,
            key=lambda pair: (-pair[1].priority, _level_rank(pair[1].applies_to.level), pair[0]),
        )
        return best

    def calculation_for(self, config: SurgeConfig) -> SurgeCalculation:
        # 같은 config는 한 번의 계산 패스 안에서 항상 같은 결과이므로 재사용
        if config.id not in self._calculations:
            self._calculations[config.id] = calculate_for_config(config, self.previous_smoothed_pressure)
        return self._calculations[config.id]

    def materialize(self, instant: datetime, declaration_index: int) -> Optional[Tuple[Candidate, SurgeConfig, SurgeCalculation]]:
        """
        Materialize the governing surge config as a synthetic top-priority candidate.

        Parameters:
            instant (datetime): Aware start of the hour being priced.
            declaration_index (int): Index assigned to the synthetic candidate.

        Returns:
            Optional[Tuple[Candidate, SurgeConfig, SurgeCalculation]]: None when no surge
            config covers the hour.
        """
        config = self.select_config(instant)
        if config is None:
            return None

        calculation = self.calculation_for(config)
        local_hour = instant.astimezone(self.tz).strftime("%H:%M")
        candidate = Candidate(
            source=CandidateSource.SURGE,
            ratesheet_id=config.id,
            ratesheet_name=f"SURGE: {config.name}",
            level=config.applies_to.level,
            priority=SURGE_PRIORITY_BASE + config.priority,
            price_per_hour=Decimal(str(calculation.surge_factor)),
            matched_window=f"{local_hour} x{calculation.surge_factor:.4f}",
            declaration_index=declaration_index,
        )
        return candidate, config, calculation
