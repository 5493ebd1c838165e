"""
FastAPI Middleware Module.

Request/response middleware for cross-cutting concerns:
- ErrorHandlerMiddleware: Consistent error response formatting and request IDs
- RequestLoggingMiddleware: Structured request/response logging

Middleware is applied in order defined in main.py (first added = outermost).
"""

from .error_handler import (
    ErrorHandlerMiddleware,
    create_http_exception_handler,
    create_scoring_error_handler,
    create_validation_error_handler,
    format_error_response,
)
from .request_logging import RequestLoggingMiddleware

__all__ = [
    "ErrorHandlerMiddleware",
    "RequestLoggingMiddleware",
    "create_http_exception_handler",
    "create_scoring_error_handler",
    "create_validation_error_handler",
    "format_error_response",
]
