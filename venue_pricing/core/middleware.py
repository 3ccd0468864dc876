import logging
import uuid
import re
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from venue_pricing.core.context import reset_trace_id, set_trace_id

logger = logging.getLogger(__name__)

# UUID 형식 검증 정규식 (8-4-4-4-12)
UUID_PATTERN = re.compile(
    r'^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$',
    re.IGNORECASE
)

TRACE_ID_HEADER = "X-Trace-ID"


class TraceIDMiddleware(BaseHTTPMiddleware):
    """
    HTTP 요청 추적을 위한 Trace ID 관리 미들웨어

    - 요청 헤더(X-Trace-ID)가 UUID 형식이면 그대로 사용 (분산 추적 연동)
    - 없거나 형식이 잘못되었으면 새로운 UUIDv4를 발급
    - 응답 헤더(X-Trace-ID)에 포함하여 클라이언트에 반환
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        trace_id = request.headers.get(TRACE_ID_HEADER)

        # 형식이 올바르지 않으면 무시하고 새로 발급
        if trace_id and not UUID_PATTERN.match(trace_id):
            logger.warning({"message": "Invalid Trace ID received", "traceIdHeader": trace_id[:64]})
            trace_id = None

        if not trace_id:
            trace_id = str(uuid.uuid4())

        token = set_trace_id(trace_id)
        request.state.trace_id = trace_id

        try:
            response = await call_next(request)
        finally:
            reset_trace_id(token)

        response.headers[TRACE_ID_HEADER] = trace_id
        return response


class CacheControlMiddleware(BaseHTTPMiddleware):
    """
    /api 경로 응답에 캐시 방지 헤더를 추가합니다.
    Surge 배수는 수요/공급에 따라 바뀌므로 가격 응답이 캐시되면 안 됩니다.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)

        if request.url.path.startswith("/api"):
            response.headers["Cache-Control"] = (
                "no-store, no-cache, must-revalidate, max-age=0"
            )
            response.headers["Pragma"] = "no-cache"
            response.headers["Expires"] = "0"

        return response
