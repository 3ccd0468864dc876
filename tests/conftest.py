"""
가격 엔진 테스트 공용 픽스처

기본 계층:
    cust-1 (Customer) -> loc-1 (Location) -> sl-1 (SubLocation)
    타임존 America/Detroit, 2026-01-13은 화요일
"""
import pytest
from datetime import datetime
from decimal import Decimal

from venue_pricing.models.pricing import (
    Customer,
    Event,
    HierarchyChain,
    Location,
    Ratesheet,
    SubLocation,
    SurgeConfig,
)
from venue_pricing.repositories.memory import InMemoryPricingRepository
from venue_pricing.services.pricing_service import PricingService

TZ = "America/Detroit"


def _rate(value):
    return None if value is None else Decimal(str(value))


@pytest.fixture
def make_ratesheet():
    """
    Ratesheet 생성 팩토리

    windows는 (startTime, endTime, price) 튜플 또는 TimeWindow 필드 dict 목록입니다.
    """
    def _make(
        rs_id,
        windows=(),
        priority=500,
        level="SUBLOCATION",
        entity_id="sl-1",
        name=None,
        effective_from=datetime(2026, 1, 1),
        effective_to=None,
        is_active=True,
    ):
        time_windows = []
        for w in windows:
            if isinstance(w, dict):
                time_windows.append(w)
            else:
                start, end, price = w
                time_windows.append({"windowType": "ABSOLUTE_TIME", "startTime": start, "endTime": end, "pricePerHour": price})
        return Ratesheet.model_validate({
            "id": rs_id,
            "name": name or rs_id,
            "appliesTo": {"level": level, "entityId": entity_id},
            "priority": priority,
            "effectiveFrom": effective_from,
            "effectiveTo": effective_to,
            "timeWindows": time_windows,
            "isActive": is_active,
        })
    return _make


@pytest.fixture
def make_surge_config():
    """SurgeConfig 생성 팩토리 (기본값: factor 1.25가 나오는 수요/공급)"""
    def _make(
        config_id="surge-1",
        demand=5,
        supply=4,
        historical=1.0,
        alpha=1.0,
        min_multiplier=0.5,
        max_multiplier=3.0,
        ema_alpha=1.0,
        priority=0,
        level="SUBLOCATION",
        entity_id="sl-1",
        time_windows=(),
        effective_from=datetime(2026, 1, 1),
        effective_to=None,
        previous=None,
    ):
        return SurgeConfig.model_validate({
            "id": config_id,
            "name": config_id,
            "appliesTo": {"level": level, "entityId": entity_id},
            "priority": priority,
            "demandSupplyParams": {"currentDemand": demand, "currentSupply": supply, "historicalAvgPressure": historical},
            "surgeParams": {"alpha": alpha, "minMultiplier": min_multiplier, "maxMultiplier": max_multiplier, "emaAlpha": ema_alpha},
            "effectiveFrom": effective_from,
            "effectiveTo": effective_to,
            "timeWindows": list(time_windows),
            "previousSmoothedPressure": previous,
        })
    return _make


@pytest.fixture
def build_repo():
    """cust-1 -> loc-1 -> sl-1 계층을 가진 InMemoryPricingRepository 생성 팩토리"""
    def _build(
        sub_rate=20,
        loc_rate=None,
        cust_rate=None,
        ratesheets=(),
        events=(),
        surge_configs=(),
        sub_timezone=None,
        loc_timezone=None,
        cust_timezone=TZ,
        pricing_enabled=True,
        is_active=True,
    ):
        return InMemoryPricingRepository(
            customers=[Customer(id="cust-1", name="Acme", default_hourly_rate=_rate(cust_rate), timezone=cust_timezone)],
            locations=[Location(id="loc-1", customer_id="cust-1", name="Downtown", default_hourly_rate=_rate(loc_rate), timezone=loc_timezone)],
            sub_locations=[SubLocation(
                id="sl-1",
                location_id="loc-1",
                label="Studio A",
                default_hourly_rate=_rate(sub_rate),
                timezone=sub_timezone,
                pricing_enabled=pricing_enabled,
                is_active=is_active,
            )],
            events=list(events),
            ratesheets=list(ratesheets),
            surge_configs=list(surge_configs),
        )
    return _build


@pytest.fixture
def service_for():
    """저장소 하나로 세 협력 인터페이스를 모두 채운 PricingService 생성"""
    def _service(repo):
        return PricingService(repo, repo, repo)
    return _service


@pytest.fixture
def chain():
    return HierarchyChain(
        sub_location=SubLocation(id="sl-1", location_id="loc-1", default_hourly_rate=Decimal("20")),
        location=Location(id="loc-1", customer_id="cust-1", default_hourly_rate=Decimal("18")),
        customer=Customer(id="cust-1", default_hourly_rate=Decimal("15")),
        timezone=TZ,
    )


@pytest.fixture
def jazz_event():
    """19:00~22:00 이벤트, 앞 60분 / 뒤 30분 유예"""
    return Event(
        id="evt-1",
        name="Jazz Night",
        start_date=datetime(2026, 1, 13, 19, 0),
        end_date=datetime(2026, 1, 13, 22, 0),
        grace_period_before=60,
        grace_period_after=30,
        location_id="loc-1",
    )
