import json
import logging
import traceback
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import Request

from . import config

_logging_ready = False


def setup_logging() -> logging.Logger:
    """
    Install file handlers (all / api / errors) under LOGS_DIR and, in
    development, a console handler. Safe to call more than once.
    """
    global _logging_ready
    api_logger = logging.getLogger("api")
    if _logging_ready:
        return api_logger

    config.LOGS_DIR.mkdir(parents=True, exist_ok=True)
    detailed_formatter = logging.Formatter(
        '%(asctime)s | %(levelname)s | %(name)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    handlers = [
        (logging.FileHandler(config.LOGS_DIR / "all.log"), logging.DEBUG),
        (logging.FileHandler(config.LOGS_DIR / "api.log"), logging.INFO),
        (logging.FileHandler(config.LOGS_DIR / "errors.log"), logging.ERROR),
    ]
    if config.ENVIRONMENT == "development":
        handlers.append((logging.StreamHandler(), logging.INFO))

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    for handler, level in handlers:
        handler.setLevel(level)
        handler.setFormatter(detailed_formatter)
        root_logger.addHandler(handler)

    api_logger.setLevel(logging.INFO)
    _logging_ready = True
    return api_logger


class APILogger:
    """Structured JSON logging for requests, responses, errors and timings."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("api")

    def _emit(self, label: str, payload: Dict[str, Any], level: int = logging.INFO) -> None:
        payload["timestamp"] = datetime.now().isoformat()
        try:
            self.logger.log(level, f"{label}: {json.dumps(payload, indent=2, default=str)}")
        except (TypeError, ValueError) as e:
            self.logger.error(f"Error logging {label.lower()}: {e}")

    def log_request(self, request: Request, request_id: str, **kwargs):
        self._emit(f"REQUEST [{request_id}]", {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "query_params": dict(request.query_params),
            "client_ip": request.client.host if request.client else None,
            **sanitize_sensitive_data(kwargs),
        })

    def log_response(self, request_id: str, response_data: Any, status_code: int,
                     processing_time: float, **kwargs):
        self._emit(f"RESPONSE [{request_id}]", {
            "request_id": request_id,
            "status_code": status_code,
            "processing_time_ms": round(processing_time * 1000, 2),
            "response_data": response_data,
            **kwargs,
        })

    def log_error(self, request_id: str, error: Exception, status_code: int = 500, **kwargs):
        self._emit(f"ERROR [{request_id}]", {
            "request_id": request_id,
            "error_type": type(error).__name__,
            "error_message": str(error),
            "status_code": status_code,
            "traceback": traceback.format_exc(),
            **kwargs,
        }, level=logging.ERROR)

    def log_performance(self, request_id: str, operation: str, duration: float, **kwargs):
        self._emit(f"PERFORMANCE [{request_id}]", {
            "request_id": request_id,
            "operation": operation,
            "duration_ms": round(duration * 1000, 2),
            **kwargs,
        })


api_logger_instance = APILogger()


def get_request_id() -> str:
    """Generate a unique request ID."""
    return str(uuid.uuid4())


def sanitize_sensitive_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """Remove sensitive information from logged data."""
    sensitive_keys = ['password', 'token', 'api_key', 'secret', 'authorization']
    sanitized = data.copy()

    for key in sensitive_keys:
        if key in sanitized:
            sanitized[key] = '[REDACTED]'

    return sanitized
