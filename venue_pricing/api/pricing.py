from fastapi import APIRouter, Depends
import logging

from venue_pricing.api.dependencies import get_pricing_service
from venue_pricing.core.response import ApiResponse, success_response
from venue_pricing.models.dto import PricingRequest
from venue_pricing.services.pricing_service import PricingService

router = APIRouter(
    prefix="/api/pricing",
    tags=["Pricing"],
)
logger = logging.getLogger("venue_pricing")


@router.post("/calculate-hourly", response_model=ApiResponse)
def calculate_hourly(
    req: PricingRequest,
    service: PricingService = Depends(get_pricing_service),
) -> ApiResponse:
    """
    시간대별 가격 계산

    - **subLocationId**: 대상 SubLocation ID
    - **startTime / endTime**: 예약 구간 [start, end)
    - **eventId / isEventBooking**: 이벤트 지정 및 이벤트 예약 여부
    - **timezone**: 타임존 재정의 (없으면 계층에서 결정)

    Returns:
        200 OK: PricingResult (segments, decisionLog, breakdown, ratesheetsSummary, issues)

    Note:
        미결정 시간대가 있어도 200으로 부분 결과를 반환합니다 (breakdown.unresolvedSegments, issues).
        도메인 예외(NotFound 등)는 전역 예외 핸들러가 Envelope으로 변환합니다.
    """
    result = service.resolve_price(
        req.sub_location_id,
        req.start_time,
        req.end_time,
        req.to_options(),
    )
    return success_response(result.model_dump(by_alias=True, mode="json"))
