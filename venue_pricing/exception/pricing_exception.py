from venue_pricing.exception.base_exception import BaseCustomException, ErrorCode


class EntityNotFoundError(BaseCustomException):
    """계층 체인(Customer/Location/SubLocation/Event) 중 엔티티가 존재하지 않을 때 발생하는 예외.

    Rationale (의도):
        - 체인 중 하나라도 없으면 기본 요금 캐스케이드와 타임존을 결정할 수 없으므로
          구간 전체 계산을 중단합니다.
    """
    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            message=f"{entity_type} not found: {entity_id}",
            error_code=ErrorCode.PRICING_ENTITY_NOT_FOUND,
            status_code=404
        )


class UnresolvablePricingError(BaseCustomException):
    """매칭 규칙도, 양수 기본 요금도 없는 시간대가 존재할 때 발생하는 예외.

    Rationale (의도):
        - 0원으로 조용히 계산하지 않고 호출자가 예약을 거절하거나 에스컬레이션할 수 있게 합니다.
    """
    def __init__(self, message: str = "가격을 결정할 수 없는 시간대가 있습니다.", unresolved_hours: list = None):
        self.unresolved_hours = unresolved_hours or []
        super().__init__(
            message=message,
            error_code=ErrorCode.PRICING_UNRESOLVABLE,
            status_code=422
        )


class PricingDisabledError(BaseCustomException):
    """SubLocation의 pricingEnabled가 꺼져 있을 때 발생하는 예외"""
    def __init__(self, sub_location_id: str):
        super().__init__(
            message=f"Pricing is not enabled for SubLocation {sub_location_id}",
            error_code=ErrorCode.PRICING_DISABLED,
            status_code=409
        )


class SubLocationInactiveError(BaseCustomException):
    """비활성 SubLocation에 대한 가격 계산 요청"""
    def __init__(self, sub_location_id: str):
        super().__init__(
            message=f"SubLocation {sub_location_id} is not active",
            error_code=ErrorCode.PRICING_SUBLOCATION_INACTIVE,
            status_code=409
        )


class InvalidPricingIntervalError(BaseCustomException):
    """시작 시각이 종료 시각보다 같거나 늦은 요청"""
    def __init__(self, message: str = "start must be before end"):
        super().__init__(
            message=message,
            error_code=ErrorCode.PRICING_INVALID_INTERVAL,
            status_code=400
        )


class RepositoryReadError(BaseCustomException):
    """외부 저장소(Supabase) 조회 실패"""
    def __init__(self, message: str = "저장소 조회 중 오류가 발생했습니다."):
        super().__init__(
            message=message,
            error_code=ErrorCode.REPOSITORY_READ_FAILED,
            status_code=503
        )
