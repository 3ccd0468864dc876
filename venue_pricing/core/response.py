from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict

SUCCESS_CODE = "COMMON200"

# result에는 PricingResult.model_dump() 같은 dict도 그대로 담기므로 bound 제약 없음
T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """
    API 공통 응답 모델 (Envelope Pattern)

    Attributes:
        isSuccess (bool): 성공 여부
        code (str): 성공 시 "COMMON200", 실패 시 ErrorCode 값 (예: "PRICING-001")
        message (str): 사용자 노출 가능한 메시지
        result (T | None): 가격 계산 결과, 실패 시 에러 상세 또는 null
    """
    isSuccess: bool
    code: str
    message: str
    result: Optional[T] = None

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "isSuccess": True,
                    "code": SUCCESS_CODE,
                    "message": "성공입니다.",
                    "result": {
                        "subLocationId": "sl-1",
                        "totalPrice": "60.00",
                        "totalHours": 3.0,
                        "currency": "USD",
                    },
                },
                {
                    "isSuccess": False,
                    "code": "PRICING-001",
                    "message": "SubLocation not found: sl-404",
                    "result": None,
                },
                {
                    "isSuccess": False,
                    "code": "PRICING-003",
                    "message": "No rule or positive default rate for 1 hour(s) of sub-location sl-1",
                    "result": {"unresolvedHours": ["2026-01-13T08:00:00-05:00"]},
                },
            ]
        }
    )


class ValidationErrorDetail(BaseModel):
    """요청 필드 하나의 검증 실패 정보"""
    message: str
    type: str
    input: Any | None = None


def success_response(result: T, code: str = SUCCESS_CODE, message: str = "성공입니다.") -> ApiResponse[T]:
    return ApiResponse(isSuccess=True, code=code, message=message, result=result)


def error_response(message: str, code: str = "ERROR", result: Optional[Any] = None) -> ApiResponse[Any]:
    return ApiResponse(isSuccess=False, code=code, message=message, result=result)
