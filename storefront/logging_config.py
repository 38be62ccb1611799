import logging
import json
import sys
from typing import Optional
from datetime import datetime, timezone
import traceback
import httpx

# Sensitive headers to mask
SENSITIVE_HEADERS = {"authorization", "cookie", "x-api-key"}

class JSONFormatter(logging.Formatter):
    def __init__(self, service_name: str):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": self.service_name,
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "module": record.module,
            "func": record.funcName,
            "line": record.lineno,
        }

        # Add extra fields if present
        for field in ("request_id", "method", "path", "status_code", "duration_ms", "headers", "order_number"):
            if hasattr(record, field):
                log_obj[field] = getattr(record, field)

        # Exception Info
        if record.exc_info:
            log_obj["exception"] = "".join(traceback.format_exception(*record.exc_info))

        return json.dumps(log_obj, default=str)

def setup_logging(service_name: str, level: str = "INFO"):
    logger = logging.getLogger()
    logger.setLevel(level)

    # clear existing handlers
    if logger.handlers:
        logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    formatter = JSONFormatter(service_name)
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    return logging.getLogger(service_name)

def mask_headers(headers) -> dict:
    masked = {}
    for k, v in headers.items():
        if k.lower() not in SENSITIVE_HEADERS:
            masked[k] = v
        else:
            masked[k] = "***"
    return masked

class RequestLogger:
    """Logs one line per backend call, keyed by its X-Request-ID."""

    def __init__(self, name: str = "storefront.http"):
        self.logger = logging.getLogger(name)

    def log_request(
        self,
        request: httpx.Request,
        status_code: Optional[int],
        duration: float,
        request_id: str,
        exc_info=None,
    ):
        extra = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": status_code,
            "duration_ms": round(duration, 2),
            "headers": mask_headers(request.headers),
        }

        if status_code is None:
            self.logger.error("Request Failed", extra=extra, exc_info=exc_info)
        elif status_code >= 500:
            self.logger.error("Request Failed", extra=extra)
        elif status_code >= 400:
            self.logger.warning("Request Error", extra=extra)
        else:
            self.logger.info("Request Processed", extra=extra)
