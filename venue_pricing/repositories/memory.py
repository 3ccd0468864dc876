from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from venue_pricing.models.pricing import (
    Customer,
    Event,
    HierarchyChain,
    HierarchyLevel,
    Location,
    Ratesheet,
    SubLocation,
    SurgeConfig,
)
from venue_pricing.repositories.base import DateRange
from venue_pricing.utils.timezone import ensure_aware

_LEVEL_ORDER = (
    HierarchyLevel.SUBLOCATION,
    HierarchyLevel.LOCATION,
    HierarchyLevel.CUSTOMER,
    HierarchyLevel.EVENT,
)


def _align(value: datetime, reference: datetime) -> datetime:
    # naive 스냅샷 값은 조회 구간과 같은 타임존의 벽시계 시각으로 간주
    if reference.tzinfo is None:
        return value.replace(tzinfo=None) if value.tzinfo else value
    return ensure_aware(value, reference.tzinfo)


def event_in_scope(event: Event, scope: Dict[HierarchyLevel, str]) -> bool:
    """
    이벤트가 가장 구체적으로 연결된 계층이 scope에 속하는지 판정

    subLocationId가 있으면 그것만 보고, 없을 때만 locationId, 둘 다 없을 때만 customerId를 봅니다.
    venue 연결 이벤트는 eventId로 지정된 경우에만 적용되므로 항상 False입니다.
    """
    for level, entity_id in (
        (HierarchyLevel.SUBLOCATION, event.sub_location_id),
        (HierarchyLevel.LOCATION, event.location_id),
        (HierarchyLevel.CUSTOMER, event.customer_id),
    ):
        if entity_id:
            return scope.get(level) == entity_id
    return False


def range_overlaps(effective_from: datetime, effective_to: Optional[datetime], date_range: DateRange) -> bool:
    start, end = date_range
    if _align(effective_from, end) > end:
        return False
    if effective_to is not None and _align(effective_to, start) < start:
        return False
    return True


class InMemoryPricingRepository:
    """
    In-Memory 가격 저장소 구현체

    Note:
        IHierarchyRepository / IRatesheetRepository / ISurgeConfigRepository를 모두 구현합니다.
        테스트와 진단 스크립트에서 JSON 스냅샷을 그대로 올려 사용합니다.
        목록은 입력 순서를 그대로 보존합니다 (Ratesheet 선언 순서).
    """

    def __init__(
        self,
        customers: Iterable[Customer] = (),
        locations: Iterable[Location] = (),
        sub_locations: Iterable[SubLocation] = (),
        events: Iterable[Event] = (),
        ratesheets: Iterable[Ratesheet] = (),
        surge_configs: Iterable[SurgeConfig] = (),
    ):
        self._customers: Dict[str, Customer] = {c.id: c for c in customers}
        self._locations: Dict[str, Location] = {loc.id: loc for loc in locations}
        self._sub_locations: Dict[str, SubLocation] = {s.id: s for s in sub_locations}
        self._events: Dict[str, Event] = {e.id: e for e in events}
        self._ratesheets: List[Ratesheet] = list(ratesheets)
        self._surge_configs: List[SurgeConfig] = list(surge_configs)

    @classmethod
    def from_snapshot(cls, data: Dict[str, Any]) -> "InMemoryPricingRepository":
        """
        camelCase JSON 스냅샷으로부터 저장소 생성

        Args:
            data (Dict[str, Any]): customers / locations / subLocations / events /
                ratesheets / surgeConfigs 키를 가진 문서 (없는 키는 빈 목록)
        """
        return cls(
            customers=[Customer.model_validate(d) for d in data.get("customers", [])],
            locations=[Location.model_validate(d) for d in data.get("locations", [])],
            sub_locations=[SubLocation.model_validate(d) for d in data.get("subLocations", [])],
            events=[Event.model_validate(d) for d in data.get("events", [])],
            ratesheets=[Ratesheet.model_validate(d) for d in data.get("ratesheets", [])],
            surge_configs=[SurgeConfig.model_validate(d) for d in data.get("surgeConfigs", [])],
        )

    # ==================== Hierarchy ====================

    def get_sub_location(self, sub_location_id: str) -> Optional[SubLocation]:
        return self._sub_locations.get(sub_location_id)

    def get_location(self, location_id: str) -> Optional[Location]:
        return self._locations.get(location_id)

    def get_customer(self, customer_id: str) -> Optional[Customer]:
        return self._customers.get(customer_id)

    def get_event(self, event_id: str) -> Optional[Event]:
        return self._events.get(event_id)

    def find_overlapping_events(self, chain: HierarchyChain, start: datetime, end: datetime) -> List[Event]:
        return [
            event
            for event in self._events.values()
            if event.is_active
            and self._attached_to_chain(event, chain)
            and event.overlaps(start, end)
        ]

    @staticmethod
    def _attached_to_chain(event: Event, chain: HierarchyChain) -> bool:
        return event_in_scope(event, {
            HierarchyLevel.SUBLOCATION: chain.sub_location.id,
            HierarchyLevel.LOCATION: chain.location.id,
            HierarchyLevel.CUSTOMER: chain.customer.id,
        })

    # ==================== Ratesheets ====================

    def _scope_ids(self, sub_location_id: str, resolve_hierarchy: bool) -> Dict[HierarchyLevel, str]:
        scope = {HierarchyLevel.SUBLOCATION: sub_location_id}
        if not resolve_hierarchy:
            return scope

        sub_location = self._sub_locations.get(sub_location_id)
        location = self._locations.get(sub_location.location_id) if sub_location else None
        if location is not None:
            scope[HierarchyLevel.LOCATION] = location.id
            if location.customer_id in self._customers:
                scope[HierarchyLevel.CUSTOMER] = location.customer_id
        return scope

    def _event_ids(self, scope: Dict[HierarchyLevel, str], date_range: DateRange, event_id: Optional[str]) -> Set[str]:
        if event_id is not None:
            return {event_id} if event_id in self._events else set()

        start, end = date_range
        return {
            event.id
            for event in self._events.values()
            if event.is_active and event_in_scope(event, scope) and event.overlaps(start, end)
        }

    def get_effective_ratesheets(
        self,
        sub_location_id: str,
        date_range: DateRange,
        resolve_hierarchy: bool = True,
        event_id: Optional[str] = None,
    ) -> List[Ratesheet]:
        scope = self._scope_ids(sub_location_id, resolve_hierarchy)
        event_ids = self._event_ids(scope, date_range, event_id) if resolve_hierarchy else set()

        grouped: Dict[HierarchyLevel, List[Ratesheet]] = {level: [] for level in _LEVEL_ORDER}
        for ratesheet in self._ratesheets:
            if not ratesheet.is_active:
                continue
            if not range_overlaps(ratesheet.effective_from, ratesheet.effective_to, date_range):
                continue
            level = ratesheet.applies_to.level
            entity_id = ratesheet.applies_to.entity_id
            if level == HierarchyLevel.EVENT:
                if entity_id in event_ids:
                    grouped[level].append(ratesheet)
            elif scope.get(level) == entity_id:
                grouped[level].append(ratesheet)

        return [rs for level in _LEVEL_ORDER for rs in grouped[level]]

    # ==================== Surge ====================

    def get_active_surge_configs(self, sub_location_id: str, date_range: DateRange) -> List[SurgeConfig]:
        scope = self._scope_ids(sub_location_id, resolve_hierarchy=True)
        targets: Set[Tuple[HierarchyLevel, str]] = {
            (level, entity_id)
            for level, entity_id in scope.items()
            if level in (HierarchyLevel.SUBLOCATION, HierarchyLevel.LOCATION)
        }
        return [
            config
            for config in self._surge_configs
            if config.is_active
            and (config.applies_to.level, config.applies_to.entity_id) in targets
            and range_overlaps(config.effective_from, config.effective_to, date_range)
        ]
