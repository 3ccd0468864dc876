"""
HierarchyService 단위 테스트

테스트 대상:
- 조상 체인 조회와 누락 엔티티 처리
- 타임존 우선순위 (요청 > SubLocation > Location > Customer > 기본값)
- 이벤트 결정 (자동 탐지 / eventId 지정)

실행: pytest tests/services/test_hierarchy_service.py -v
"""
import pytest
from datetime import datetime
from zoneinfo import ZoneInfo

from venue_pricing.core.config import DEFAULT_TIMEZONE
from venue_pricing.exception.pricing_exception import (
    EntityNotFoundError,
    PricingDisabledError,
    SubLocationInactiveError,
)
from venue_pricing.models.pricing import Customer, Event, Location, SubLocation
from venue_pricing.repositories.memory import InMemoryPricingRepository
from venue_pricing.services.hierarchy_service import HierarchyService, resolve_timezone

TZ = ZoneInfo("America/Detroit")


def at(h, minute=0, day=13):
    return datetime(2026, 1, day, h, minute, tzinfo=TZ)


class TestResolveTimezone:

    def test_first_declared_wins(self):
        assert resolve_timezone(None, "Asia/Seoul", "Europe/Berlin") == "Asia/Seoul"

    def test_default_when_nothing_declared(self):
        assert resolve_timezone(None, None, None) == DEFAULT_TIMEZONE

    def test_unknown_zone_falls_back_to_utc(self):
        assert resolve_timezone("Mars/Olympus_Mons") == "UTC"


class TestGetChain:

    def test_chain_resolved(self, build_repo):
        chain = HierarchyService(build_repo()).get_chain("sl-1")
        assert chain.sub_location.id == "sl-1"
        assert chain.location.id == "loc-1"
        assert chain.customer.id == "cust-1"
        assert chain.timezone == "America/Detroit"

    def test_timezone_precedence(self, build_repo):
        repo = build_repo(sub_timezone=None, loc_timezone="Europe/Berlin", cust_timezone="Asia/Seoul")
        service = HierarchyService(repo)
        assert service.get_chain("sl-1").timezone == "Europe/Berlin"
        assert service.get_chain("sl-1", timezone_override="UTC").timezone == "UTC"

    def test_missing_sublocation(self, build_repo):
        with pytest.raises(EntityNotFoundError) as exc_info:
            HierarchyService(build_repo()).get_chain("nope")
        assert exc_info.value.entity_type == "SubLocation"

    def test_missing_location(self):
        repo = InMemoryPricingRepository(sub_locations=[SubLocation(id="sl-1", location_id="ghost")])
        with pytest.raises(EntityNotFoundError) as exc_info:
            HierarchyService(repo).get_chain("sl-1")
        assert exc_info.value.entity_type == "Location"

    def test_missing_customer(self):
        repo = InMemoryPricingRepository(
            locations=[Location(id="loc-1", customer_id="ghost")],
            sub_locations=[SubLocation(id="sl-1", location_id="loc-1")],
        )
        with pytest.raises(EntityNotFoundError) as exc_info:
            HierarchyService(repo).get_chain("sl-1")
        assert exc_info.value.entity_type == "Customer"

    def test_inactive_checked_before_disabled(self, build_repo):
        with pytest.raises(SubLocationInactiveError):
            HierarchyService(build_repo(is_active=False, pricing_enabled=False)).get_chain("sl-1")

    def test_pricing_disabled(self, build_repo):
        with pytest.raises(PricingDisabledError):
            HierarchyService(build_repo(pricing_enabled=False)).get_chain("sl-1")


class TestResolveEvents:

    def test_auto_detect_with_grace(self, build_repo, jazz_event):
        """19:00 시작, 앞 유예 60분 -> 17:00~18:00 예약과 경계에서 겹침"""
        service = HierarchyService(build_repo(events=[jazz_event]))
        chain = service.get_chain("sl-1")
        assert service.resolve_events(chain, at(17), at(18)) == [jazz_event]
        assert service.resolve_events(chain, at(15), at(17)) == []

    def test_after_grace(self, build_repo, jazz_event):
        """22:00 종료, 뒤 유예 30분"""
        service = HierarchyService(build_repo(events=[jazz_event]))
        chain = service.get_chain("sl-1")
        assert service.resolve_events(chain, at(22, 30), at(23)) == [jazz_event]
        assert service.resolve_events(chain, at(22, 31), at(23)) == []

    def test_event_on_other_location_ignored(self, build_repo):
        other = Event(
            id="evt-2",
            start_date=datetime(2026, 1, 13, 10),
            end_date=datetime(2026, 1, 13, 12),
            location_id="loc-other",
        )
        service = HierarchyService(build_repo(events=[other]))
        assert service.resolve_events(service.get_chain("sl-1"), at(10), at(11)) == []

    def test_pinned_event(self, build_repo, jazz_event):
        service = HierarchyService(build_repo(events=[jazz_event]))
        chain = service.get_chain("sl-1")
        assert service.resolve_events(chain, at(20), at(21), event_id="evt-1") == [jazz_event]

    def test_pinned_event_not_overlapping(self, build_repo, jazz_event):
        service = HierarchyService(build_repo(events=[jazz_event]))
        chain = service.get_chain("sl-1")
        assert service.resolve_events(chain, at(9), at(10), event_id="evt-1") == []

    def test_pinned_inactive_event(self, build_repo, jazz_event):
        inactive = jazz_event.model_copy(update={"is_active": False})
        service = HierarchyService(build_repo(events=[inactive]))
        chain = service.get_chain("sl-1")
        assert service.resolve_events(chain, at(20), at(21), event_id="evt-1") == []

    def test_pinned_missing_event(self, build_repo):
        service = HierarchyService(build_repo())
        with pytest.raises(EntityNotFoundError):
            service.resolve_events(service.get_chain("sl-1"), at(20), at(21), event_id="evt-404")
