from datetime import datetime
from typing import List, Optional, Protocol, Tuple

from venue_pricing.models.pricing import (
    Customer,
    Event,
    HierarchyChain,
    Location,
    Ratesheet,
    SubLocation,
    SurgeConfig,
)

# [start, end) 조회 구간
DateRange = Tuple[datetime, datetime]


class IHierarchyRepository(Protocol):
    """계층 엔티티 조회 인터페이스 (Repository Pattern Protocol, 읽기 전용)"""

    def get_sub_location(self, sub_location_id: str) -> Optional[SubLocation]:
        """
        SubLocation 조회

        Args:
            sub_location_id (str): SubLocation ID

        Returns:
            Optional[SubLocation]: 없으면 None
        """
        ...

    def get_location(self, location_id: str) -> Optional[Location]:
        ...

    def get_customer(self, customer_id: str) -> Optional[Customer]:
        ...

    def get_event(self, event_id: str) -> Optional[Event]:
        ...

    def find_overlapping_events(self, chain: HierarchyChain, start: datetime, end: datetime) -> List[Event]:
        """
        체인의 조상(SubLocation/Location/Customer)에 연결된 이벤트 중 구간과 겹치는 이벤트 조회

        Args:
            chain (HierarchyChain): 대상 SubLocation의 조상 체인
            start (datetime): 예약 시작 (aware)
            end (datetime): 예약 종료 (aware)

        Returns:
            List[Event]: 유예 시간을 포함하여 [start, end)와 겹치는 활성 이벤트
        """
        ...


class IRatesheetRepository(Protocol):
    """Ratesheet 조회 인터페이스"""

    def get_effective_ratesheets(
        self,
        sub_location_id: str,
        date_range: DateRange,
        resolve_hierarchy: bool = True,
        event_id: Optional[str] = None,
    ) -> List[Ratesheet]:
        """
        구간 전체와 겹치는 Ratesheet를 한 번에 조회

        Args:
            sub_location_id (str): 대상 SubLocation ID
            date_range (DateRange): 조회 구간 [start, end)
            resolve_hierarchy (bool): True면 Location/Customer/Event 규칙까지 합집합으로 반환
            event_id (Optional[str]): 지정 시 해당 이벤트의 규칙만 EVENT 계층으로 포함

        Returns:
            List[Ratesheet]: SUBLOCATION, LOCATION, CUSTOMER, EVENT 순으로 묶이고
            각 묶음은 저장 순서를 유지한 목록 (동일 우선순위 타이브레이크 기준)
        """
        ...


class ISurgeConfigRepository(Protocol):
    """SurgeConfig 조회 인터페이스"""

    def get_active_surge_configs(self, sub_location_id: str, date_range: DateRange) -> List[SurgeConfig]:
        """
        SubLocation 및 상위 Location에 걸린 활성 SurgeConfig 조회

        Returns:
            List[SurgeConfig]: 유효 기간이 구간과 겹치는 설정 (저장 순서 유지)
        """
        ...
