"""
Request Logging Middleware.

Logs all API requests, optionally also as JSON lines to a rotating file.
"""

import json
import logging
import time
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

logger = logging.getLogger(__name__)

# Dedicated request logger
request_logger = logging.getLogger("api.requests")


def setup_request_logging(log_file: str) -> None:
    """
    Set up file logging for API requests.

    Logs in JSON Lines format for easy parsing.
    """
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    for existing in request_logger.handlers:
        if isinstance(existing, RotatingFileHandler) and Path(existing.baseFilename) == log_path.resolve():
            return

    handler = RotatingFileHandler(
        log_path,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5,
    )
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter("%(message)s"))

    request_logger.addHandler(handler)
    request_logger.setLevel(logging.INFO)
    request_logger.propagate = False


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware that logs all requests.

    Captures:
    - Timestamp and request ID
    - Method, path and query
    - Response status and time
    - User agent and client IP
    """

    def __init__(self, app, log_file: Optional[str] = None):
        super().__init__(app)
        self._log_to_file = log_file is not None

        if log_file:
            setup_request_logging(log_file)

    def _get_client_ip(self, request: Request) -> str:
        """Extract client IP from request."""
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip

        if request.client:
            return request.client.host

        return "unknown"

    async def dispatch(self, request: Request, call_next) -> Response:
        """Log request and response details."""
        start_time = time.time()

        method = request.method
        path = request.url.path
        query = str(request.url.query) if request.url.query else None
        user_agent = request.headers.get("User-Agent", "unknown")

        response = await call_next(request)

        duration_ms = (time.time() - start_time) * 1000
        request_id = getattr(request.state, "request_id", None)

        if self._log_to_file:
            log_entry = {
                "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
                "request_id": request_id,
                "method": method,
                "path": path,
                "query": query,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
                "client_ip": self._get_client_ip(request),
                "user_agent": user_agent[:100] if user_agent else None,  # Truncate long UAs
            }
            request_logger.info(json.dumps(log_entry))

        logger.info(f"{method} {path} - {response.status_code} - {duration_ms:.1f}ms - request_id={request_id}")

        return response
