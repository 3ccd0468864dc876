import logging
import json
import os
from logging.handlers import TimedRotatingFileHandler

from venue_pricing.core.config import LOG_DIR
from venue_pricing.core.context import get_trace_id


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        # 메시지가 dict면 그대로 기반으로 삼고, 아니면 기본 구조 생성
        base_message = record.msg if isinstance(record.msg, dict) else {
            "message": record.getMessage()
        }

        log = {
            "timestamp": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
        }

        trace_id = get_trace_id()
        if trace_id:
            log["traceId"] = trace_id

        log.update(base_message)

        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)

        # Decimal, datetime 등은 문자열로 직렬화
        return json.dumps(log, ensure_ascii=False, default=str)


_HANDLER_MARKER = "_venue_pricing_handler"


def setup_logging(log_dir: str = LOG_DIR, level: int = logging.INFO):
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # 중복 호출 시 핸들러가 누적되지 않도록 방지
    if any(getattr(h, _HANDLER_MARKER, False) for h in root_logger.handlers):
        return

    os.makedirs(log_dir, exist_ok=True)
    json_formatter = JsonFormatter()

    # 콘솔 핸들러
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(json_formatter)
    setattr(console_handler, _HANDLER_MARKER, True)
    root_logger.addHandler(console_handler)

    # 일자별 파일 로테이션 핸들러 (자정 기준, 7일 보관)
    file_handler = TimedRotatingFileHandler(
        filename=os.path.join(log_dir, "app.log"),
        when="midnight",
        backupCount=7,
        encoding="utf-8",
        utc=False,
    )
    file_handler.setFormatter(json_formatter)
    setattr(file_handler, _HANDLER_MARKER, True)
    root_logger.addHandler(file_handler)
