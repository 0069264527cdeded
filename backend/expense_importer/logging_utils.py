import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional

LOGGER_NAME = 'expense_importer'
SENSITIVE_KEY_PARTS = ('password', 'token', 'secret', 'authorization')


def _safe_json(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, dict):
        return {str(k): _safe_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_safe_json(v) for v in value]
    return str(value)


class PlainTextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        event_name = getattr(record, 'event_name', None)
        fields = getattr(record, 'event_fields', None)
        fields_part = ''
        if isinstance(fields, dict) and fields:
            parts = [f"{k}={_safe_json(v)}" for k, v in fields.items()]
            fields_part = ' ' + ' '.join(parts)
        prefix = event_name or record.name
        return f"[{record.levelname}] {prefix} {record.getMessage()}{fields_part}".strip()


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            'ts': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        event_name = getattr(record, 'event_name', None)
        if event_name:
            payload['event'] = event_name
        event_fields = getattr(record, 'event_fields', None)
        if isinstance(event_fields, dict):
            payload.update(_safe_json(event_fields))
        if record.exc_info:
            payload['exc_info'] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def _sanitize_log_field(key: Optional[str], value: Any) -> Any:
    key_l = (key or '').lower()
    if any(part in key_l for part in SENSITIVE_KEY_PARTS):
        return '[REDACTED]'
    if isinstance(value, dict):
        return {str(k): _sanitize_log_field(str(k), v) for k, v in value.items()}
    return value


_logger: Optional[logging.Logger] = None


def configure_logging() -> logging.Logger:
    global _logger
    if _logger is not None:
        return _logger

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, os.getenv('LOG_LEVEL', 'INFO').upper(), logging.INFO))
    logger.propagate = False
    if not logger.handlers:
        handler = logging.StreamHandler()
        use_json = os.getenv('LOG_JSON', 'true').lower() not in {'0', 'false', 'off', 'no'}
        handler.setFormatter(JsonFormatter() if use_json else PlainTextFormatter())
        logger.addHandler(handler)
    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    return configure_logging()


def log_event(level: str, event_name: str, **fields: Any) -> None:
    logger = get_logger()
    log_fn = getattr(logger, level.lower(), logger.info)
    safe_fields = {k: _sanitize_log_field(k, v) for k, v in fields.items()}
    log_fn(event_name, extra={'event_name': event_name, 'event_fields': safe_fields})
