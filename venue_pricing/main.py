from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from venue_pricing.api.pricing import router as pricing_router
from venue_pricing.exception.base_exception import BaseCustomException
from venue_pricing.exception.exception_handler import (
    custom_exception_handler,
    global_exception_handler,
    validation_exception_handler,
)
from venue_pricing.core.logging_config import setup_logging
from venue_pricing.core.config import ALLOWED_ORIGINS
from venue_pricing.core.middleware import CacheControlMiddleware, TraceIDMiddleware

app = FastAPI(title="Venue Pricing Engine")


@app.get("/ping")
def ping():
    return {"ok": True}


# CORS 설정 (환경변수 기반)
# 라우터보다 먼저 추가되어야 CORS 헤더가 올바르게 적용됩니다.
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Trace-ID"],
)
app.add_middleware(CacheControlMiddleware)
app.add_middleware(TraceIDMiddleware)

# API 라우터 포함
app.include_router(pricing_router)

# 커스텀 예외 핸들러는 라우터 포함 이후에 추가
app.add_exception_handler(BaseCustomException, custom_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# 로깅 설정(콘솔 + 일자별 파일 로테이션, JSON 포맷)
setup_logging()
