from functools import lru_cache

from fastapi import Depends

from venue_pricing.repositories.supabase_repository import SupabasePricingRepository
from venue_pricing.services.pricing_service import PricingService


@lru_cache(maxsize=1)
def get_pricing_repository() -> SupabasePricingRepository:
    """
    가격 저장소 의존성 주입 (Singleton via lru_cache)

    Returns:
        SupabasePricingRepository: 계층/Ratesheet/Surge 조회를 모두 담당하는 캐싱된 인스턴스

    Note:
        테스트에서는 app.dependency_overrides로 InMemoryPricingRepository를 주입합니다.
    """
    return SupabasePricingRepository()


def get_pricing_service(repository=Depends(get_pricing_repository)) -> PricingService:
    """PricingService 인스턴스 반환 (DI용). 서비스는 상태가 없으므로 요청마다 생성."""
    return PricingService(
        hierarchy_repository=repository,
        ratesheet_repository=repository,
        surge_repository=repository,
    )
