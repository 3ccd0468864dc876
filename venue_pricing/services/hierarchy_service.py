"""
Hierarchy Lookup 서비스

역할:
    - SubLocation -> Location -> Customer 조상 체인을 고정 형태 레코드(HierarchyChain)로 조회
    - 가장 구체적인 엔티티의 타임존을 체인에 확정
    - 예약 구간에 적용할 이벤트 결정 (eventId 지정 시 해당 이벤트만, 아니면 겹치는 이벤트 자동 탐지)

Rationale:
    계층 순회는 상속이나 동적 디스패치 없이 명시적인 조상 조회로 구현합니다.
    체인 중 하나라도 없으면 기본 요금 캐스케이드와 타임존을 결정할 수 없으므로 즉시 중단합니다.
"""

import logging
from datetime import datetime
from typing import List, Optional

from venue_pricing.core.config import DEFAULT_TIMEZONE
from venue_pricing.exception.pricing_exception import (
    EntityNotFoundError,
    PricingDisabledError,
    SubLocationInactiveError,
)
from venue_pricing.models.pricing import Event, HierarchyChain
from venue_pricing.repositories.base import IHierarchyRepository
from venue_pricing.utils.timezone import get_zone

logger = logging.getLogger(__name__)


def resolve_timezone(*candidates: Optional[str]) -> str:
    """
    Return the first declared timezone among `candidates`, else DEFAULT_TIMEZONE.

    Unknown zone names resolve to UTC (with a warning) rather than failing the request.
    """
    for name in candidates:
        if name:
            return get_zone(name).key
    return get_zone(DEFAULT_TIMEZONE).key


class HierarchyService:
    def __init__(self, repository: IHierarchyRepository):
        self.repository = repository

    def get_chain(self, sub_location_id: str, timezone_override: Optional[str] = None) -> HierarchyChain:
        """
        Resolve the ancestor chain of a SubLocation.

        Parameters:
            sub_location_id (str): Target SubLocation ID.
            timezone_override (Optional[str]): Request-level timezone. Takes precedence over
                SubLocation > Location > Customer > DEFAULT_TIMEZONE.

        Returns:
            HierarchyChain: SubLocation, Location, Customer and the resolved timezone name.

        Raises:
            EntityNotFoundError: If any entity in the chain is missing.
            SubLocationInactiveError: If the SubLocation is inactive.
            PricingDisabledError: If pricing is disabled for the SubLocation.
        """
        sub_location = self.repository.get_sub_location(sub_location_id)
        if sub_location is None:
            raise EntityNotFoundError("SubLocation", sub_location_id)
        if not sub_location.is_active:
            raise SubLocationInactiveError(sub_location_id)
        if not sub_location.pricing_enabled:
            raise PricingDisabledError(sub_location_id)

        location = self.repository.get_location(sub_location.location_id)
        if location is None:
            raise EntityNotFoundError("Location", sub_location.location_id)

        customer = self.repository.get_customer(location.customer_id)
        if customer is None:
            raise EntityNotFoundError("Customer", location.customer_id)

        tz_name = resolve_timezone(
            timezone_override,
            sub_location.timezone,
            location.timezone,
            customer.timezone,
        )

        return HierarchyChain(
            sub_location=sub_location,
            location=location,
            customer=customer,
            timezone=tz_name,
        )

    def resolve_events(
        self,
        chain: HierarchyChain,
        start: datetime,
        end: datetime,
        event_id: Optional[str] = None,
    ) -> List[Event]:
        """
        Decide which events take part in pricing [start, end).

        Parameters:
            chain (HierarchyChain): Resolved ancestor chain.
            start (datetime): Aware booking start.
            end (datetime): Aware booking end.
            event_id (Optional[str]): Pins pricing to this one event. A pinned event that does
                not overlap the booking (grace periods included) contributes nothing.

        Returns:
            List[Event]: Events whose EVENT-level ratesheets may apply.

        Raises:
            EntityNotFoundError: If `event_id` is given but no such event exists.
        """
        if event_id is None:
            return self.repository.find_overlapping_events(chain, start, end)

        event = self.repository.get_event(event_id)
        if event is None:
            raise EntityNotFoundError("Event", event_id)

        if not event.is_active or not event.overlaps(start, end, get_zone(chain.timezone)):
            logger.info({
                "message": "pinned event does not apply to booking",
                "eventId": event_id,
                "subLocationId": chain.sub_location.id,
                "isActive": event.is_active,
            })
            return []
        return [event]
