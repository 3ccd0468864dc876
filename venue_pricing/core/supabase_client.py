from functools import lru_cache
from supabase import create_client, Client, ClientOptions
from venue_pricing.core.config import SUPABASE_URL, SUPABASE_KEY

@lru_cache
def get_supabase_client() -> Client:
    """
    Supabase 클라이언트 반환 (Singleton via lru_cache)

    Returns:
        Client: Supabase Client 인스턴스

    Raises:
        ValueError: SUPABASE_URL / SUPABASE_KEY가 설정되지 않은 경우

    Rationale:
        - 가격 엔진은 저장소 없이도 동작하므로 import 시점이 아닌 첫 사용 시점에 생성합니다.
        - functools.lru_cache로 멀티스레드 환경(FastAPI)에서도 인스턴스 하나만 유지합니다.
    """
    if not SUPABASE_URL or not SUPABASE_KEY:
        raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set in environment variables")

    # 읽기 전용 조회만 수행하므로 세션 유지 불필요
    options = ClientOptions(
        schema="public",
        auto_refresh_token=False,
        persist_session=False
    )

    return create_client(SUPABASE_URL, SUPABASE_KEY, options=options)
