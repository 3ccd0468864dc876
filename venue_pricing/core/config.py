import os
from dotenv import load_dotenv

load_dotenv()

APP_ENV = os.getenv("APP_ENV", "production")
IS_DEBUG = APP_ENV == "development"

# 가격 엔진 기본값
DEFAULT_TIMEZONE = os.getenv("DEFAULT_TIMEZONE", "America/Detroit")
CURRENCY = os.getenv("CURRENCY", "USD")
# Surge 후보는 모든 계층 우선순위보다 위에 위치해야 함 (base + config.priority)
SURGE_PRIORITY_BASE = int(os.getenv("SURGE_PRIORITY_BASE", "10000"))

SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")

SUPABASE_CUSTOMER_TABLE = os.getenv("SUPABASE_CUSTOMER_TABLE", "customers")
SUPABASE_LOCATION_TABLE = os.getenv("SUPABASE_LOCATION_TABLE", "locations")
SUPABASE_SUBLOCATION_TABLE = os.getenv("SUPABASE_SUBLOCATION_TABLE", "sublocations")
SUPABASE_EVENT_TABLE = os.getenv("SUPABASE_EVENT_TABLE", "events")
SUPABASE_RATESHEET_TABLE = os.getenv("SUPABASE_RATESHEET_TABLE", "ratesheets")
SUPABASE_SURGE_CONFIG_TABLE = os.getenv("SUPABASE_SURGE_CONFIG_TABLE", "surge_configs")

LOG_DIR = os.getenv("LOG_DIR", "logs")

# CORS 허용 오리진 (환경변수 기반)
def _parse_origins(value: str | None) -> list[str]:
    if not value:
        return []
    normalized = value.replace("\n", ",").replace(";", ",")
    items = [item.strip() for item in normalized.split(",")]
    return [item for item in items if item]

_DEFAULT_ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

# 우선순위: CORS_ALLOWED_ORIGINS(복수) > FRONTEND_URL(단일)
_cors_allowed_origins = _parse_origins(os.getenv("CORS_ALLOWED_ORIGINS"))
_single_frontend_url = [os.getenv("FRONTEND_URL")] if os.getenv("FRONTEND_URL") else []

# 중복 제거를 위해 dict 키 보존 방식 사용
ALLOWED_ORIGINS = list(dict.fromkeys(_DEFAULT_ALLOWED_ORIGINS + _cors_allowed_origins + _single_frontend_url))
