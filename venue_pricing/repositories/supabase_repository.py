from datetime import datetime
from typing import Any, Dict, List, Optional

import logging

from venue_pricing.core.config import (
    SUPABASE_CUSTOMER_TABLE,
    SUPABASE_EVENT_TABLE,
    SUPABASE_LOCATION_TABLE,
    SUPABASE_RATESHEET_TABLE,
    SUPABASE_SUBLOCATION_TABLE,
    SUPABASE_SURGE_CONFIG_TABLE,
)
from venue_pricing.core.supabase_client import get_supabase_client
from venue_pricing.exception.pricing_exception import RepositoryReadError
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
from venue_pricing.repositories.memory import event_in_scope, range_overlaps

logger = logging.getLogger(__name__)

_LEVEL_ORDER = (
    HierarchyLevel.SUBLOCATION,
    HierarchyLevel.LOCATION,
    HierarchyLevel.CUSTOMER,
    HierarchyLevel.EVENT,
)


def _with_applies_to(row: Dict[str, Any]) -> Dict[str, Any]:
    """평탄화된 level / entity_id 컬럼을 applies_to 객체로 묶음"""
    if "applies_to" in row or "appliesTo" in row:
        return row
    mapped = dict(row)
    mapped["applies_to"] = {"level": mapped.pop("level"), "entity_id": mapped.pop("entity_id")}
    return mapped


def _event_scope_filter(scope: Dict[HierarchyLevel, str]) -> str:
    """
    가장 구체적인 연결 계층 기준의 이벤트 or 필터

    locationId는 subLocationId가 비어 있을 때만, customerId는 둘 다 비어 있을 때만 비교합니다.
    """
    clauses = []
    if HierarchyLevel.SUBLOCATION in scope:
        clauses.append(f"sub_location_id.eq.{scope[HierarchyLevel.SUBLOCATION]}")
    if HierarchyLevel.LOCATION in scope:
        clauses.append(f"and(location_id.eq.{scope[HierarchyLevel.LOCATION]},sub_location_id.is.null)")
    if HierarchyLevel.CUSTOMER in scope:
        clauses.append(
            f"and(customer_id.eq.{scope[HierarchyLevel.CUSTOMER]},location_id.is.null,sub_location_id.is.null)"
        )
    return ",".join(clauses)


class SupabasePricingRepository:
    """
    Supabase based pricing repository (read-only).

    Implements IHierarchyRepository, IRatesheetRepository and ISurgeConfigRepository.
    Rule tables keep `level` / `entity_id` columns and JSON `time_windows`;
    rows are ordered by `created_at` so ratesheet declaration order is stable.
    Any client failure is logged and re-raised as RepositoryReadError.
    """

    def __init__(self, client=None):
        self.supabase = client or get_supabase_client()

    def _select(self, table: str, build=None) -> List[Dict[str, Any]]:
        try:
            query = self.supabase.table(table).select("*")
            if build is not None:
                query = build(query)
            response = query.execute()
            return response.data or []
        except Exception as e:
            logger.error({"message": "Supabase read failed", "table": table, "error": str(e)})
            raise RepositoryReadError(f"Failed to read {table}: {e}") from e

    def _get_by_id(self, table: str, entity_id: str) -> Optional[Dict[str, Any]]:
        rows = self._select(table, lambda q: q.eq("id", entity_id).limit(1))
        return rows[0] if rows else None

    # ==================== Hierarchy ====================

    def get_sub_location(self, sub_location_id: str) -> Optional[SubLocation]:
        row = self._get_by_id(SUPABASE_SUBLOCATION_TABLE, sub_location_id)
        return SubLocation.model_validate(row) if row else None

    def get_location(self, location_id: str) -> Optional[Location]:
        row = self._get_by_id(SUPABASE_LOCATION_TABLE, location_id)
        return Location.model_validate(row) if row else None

    def get_customer(self, customer_id: str) -> Optional[Customer]:
        row = self._get_by_id(SUPABASE_CUSTOMER_TABLE, customer_id)
        return Customer.model_validate(row) if row else None

    def get_event(self, event_id: str) -> Optional[Event]:
        row = self._get_by_id(SUPABASE_EVENT_TABLE, event_id)
        return Event.model_validate(row) if row else None

    def _scoped_events(self, scope: Dict[HierarchyLevel, str], start: datetime, end: datetime) -> List[Event]:
        rows = self._select(
            SUPABASE_EVENT_TABLE,
            lambda q: q.eq("is_active", True).or_(_event_scope_filter(scope)).order("created_at"),
        )
        # 유예 시간까지 포함한 겹침 판정은 메모리에서 수행
        return [
            event
            for event in map(Event.model_validate, rows)
            if event_in_scope(event, scope) and event.overlaps(start, end)
        ]

    def find_overlapping_events(self, chain: HierarchyChain, start: datetime, end: datetime) -> List[Event]:
        scope = {
            HierarchyLevel.SUBLOCATION: chain.sub_location.id,
            HierarchyLevel.LOCATION: chain.location.id,
            HierarchyLevel.CUSTOMER: chain.customer.id,
        }
        return self._scoped_events(scope, start, end)

    # ==================== Ratesheets ====================

    def _chain_scope(self, sub_location_id: str) -> Dict[HierarchyLevel, str]:
        scope = {HierarchyLevel.SUBLOCATION: sub_location_id}
        sub_location = self.get_sub_location(sub_location_id)
        if sub_location is None:
            return scope
        location = self.get_location(sub_location.location_id)
        if location is not None:
            scope[HierarchyLevel.LOCATION] = location.id
            scope[HierarchyLevel.CUSTOMER] = location.customer_id
        return scope

    def _event_ids(self, scope: Dict[HierarchyLevel, str], date_range: DateRange, event_id: Optional[str]) -> List[str]:
        if event_id is not None:
            return [event_id]
        return [event.id for event in self._scoped_events(scope, *date_range)]

    def get_effective_ratesheets(
        self,
        sub_location_id: str,
        date_range: DateRange,
        resolve_hierarchy: bool = True,
        event_id: Optional[str] = None,
    ) -> List[Ratesheet]:
        scope = self._chain_scope(sub_location_id) if resolve_hierarchy else {HierarchyLevel.SUBLOCATION: sub_location_id}
        entity_ids = {level: [entity_id] for level, entity_id in scope.items()}
        if resolve_hierarchy:
            entity_ids[HierarchyLevel.EVENT] = self._event_ids(scope, date_range, event_id)

        start, end = date_range
        ratesheets: List[Ratesheet] = []
        for level in _LEVEL_ORDER:
            ids = entity_ids.get(level)
            if not ids:
                continue
            rows = self._select(
                SUPABASE_RATESHEET_TABLE,
                lambda q: q.eq("level", level.value)
                .in_("entity_id", ids)
                .eq("is_active", True)
                .lte("effective_from", end.isoformat())
                .or_(f"effective_to.is.null,effective_to.gte.{start.isoformat()}")
                .order("created_at"),
            )
            ratesheets.extend(Ratesheet.model_validate(_with_applies_to(row)) for row in rows)

        logger.debug({
            "message": "ratesheets fetched",
            "subLocationId": sub_location_id,
            "count": len(ratesheets),
        })
        return ratesheets

    # ==================== Surge ====================

    def get_active_surge_configs(self, sub_location_id: str, date_range: DateRange) -> List[SurgeConfig]:
        scope = self._chain_scope(sub_location_id)
        targets = [
            (level, scope[level])
            for level in (HierarchyLevel.SUBLOCATION, HierarchyLevel.LOCATION)
            if level in scope
        ]
        ancestors = ",".join(
            f"and(level.eq.{level.value},entity_id.eq.{entity_id})" for level, entity_id in targets
        )
        rows = self._select(
            SUPABASE_SURGE_CONFIG_TABLE,
            lambda q: q.eq("is_active", True).or_(ancestors).order("created_at"),
        )
        configs = [SurgeConfig.model_validate(_with_applies_to(row)) for row in rows]
        return [c for c in configs if range_overlaps(c.effective_from, c.effective_to, date_range)]
