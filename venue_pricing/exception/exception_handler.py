from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from fastapi import Request, status
from datetime import datetime
import logging
import traceback

from venue_pricing.core.config import IS_DEBUG
from venue_pricing.core.response import ValidationErrorDetail, error_response
from venue_pricing.exception.base_exception import BaseCustomException, ErrorCode

logger = logging.getLogger("venue_pricing")


async def custom_exception_handler(request: Request, exc: BaseCustomException):
    """
    커스텀 예외 처리 핸들러 (4xx, 도메인 에러)
    """
    # 경고 수준 로깅 (스택 트레이스 불필요)
    logger.warning({
        "timestamp": datetime.now().isoformat(timespec="seconds"),
        "status": exc.status_code,
        "errorCode": exc.error_code.value,
        "message": exc.message,
        "path": request.url.path
    })

    # 미결정 시간대가 있으면 결과에 포함하여 호출자가 어느 시간대인지 알 수 있게 함
    result = None
    unresolved_hours = getattr(exc, "unresolved_hours", None)
    if unresolved_hours:
        result = {"unresolvedHours": unresolved_hours}

    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(
            code=exc.error_code.value,
            message=exc.message,
            result=result
        ).model_dump()
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Pydantic Validation Error를 ApiResponse 포맷으로 변환 (422)

    Rationale:
        요청 본문 검증 실패도 Envelope Pattern으로 내려 프론트엔드가 필드별 에러를 표시할 수 있게 합니다.
    """
    error_details = {}
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        error_details[field] = ValidationErrorDetail(
            message=error["msg"],
            type=error["type"],
            input=error.get("input")
        )

    logger.warning({
        "timestamp": datetime.now().isoformat(timespec="seconds"),
        "status": 422,
        "errorCode": ErrorCode.COMMON_BAD_REQUEST.value,
        "fields": list(error_details.keys()),
        "path": request.url.path
    })

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=jsonable_encoder(error_response(
            code=ErrorCode.COMMON_BAD_REQUEST.value,
            message="입력값을 확인해주세요.",
            result=error_details
        ).model_dump())
    )


async def global_exception_handler(request: Request, exc: Exception):
    """
    전역 예외 처리 핸들러 (5xx, 미처리 예외)
    """
    error_msg = str(exc)
    stack_trace = traceback.format_exc()

    # 에러 수준 로깅 (항상 스택 트레이스 포함하여 서버 로그에 남김)
    logger.exception({
        "timestamp": datetime.now().isoformat(timespec="seconds"),
        "status": 500,
        "errorCode": ErrorCode.COMMON_INTERNAL_ERROR.value,
        "message": "서버 내부 오류가 발생했습니다.",
        "detail": error_msg,
        "path": request.url.path
    })

    response_content = error_response(
        code=ErrorCode.COMMON_INTERNAL_ERROR.value,
        message="서버 내부 오류가 발생했습니다."
    ).model_dump()

    # 개발 환경(IS_DEBUG=True)인 경우에만 스택 트레이스 포함
    if IS_DEBUG:
        response_content["result"] = {
            "error_detail": error_msg,
            "stack_trace": stack_trace
        }

    return JSONResponse(
        status_code=500,
        content=response_content
    )
