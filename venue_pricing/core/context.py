import contextvars
from typing import Optional

# 요청 단위 Trace ID. 가격 계산 로그(세그먼트별 DEBUG 포함)를 한 요청으로 묶는 데 사용합니다.
_trace_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("trace_id", default=None)


def get_trace_id() -> Optional[str]:
    """현재 요청의 Trace ID (요청 밖이면 None)"""
    return _trace_id.get()


def set_trace_id(trace_id: Optional[str]) -> contextvars.Token:
    """
    Trace ID를 설정하고 복원용 토큰을 반환합니다.

    요청 처리가 끝나면 reset_trace_id(token)으로 이전 값을 복원해야 다음 요청에 섞이지 않습니다.
    """
    return _trace_id.set(trace_id)


def reset_trace_id(token: contextvars.Token) -> None:
    _trace_id.reset(token)
