# Core infrastructure
from src.core.context import (
    RequestContext,
    clear_context,
    get_context,
    get_request_id,
    get_trace_id,
    get_user_id,
    get_username,
    set_request_id,
    set_trace_id,
    set_user_id,
    set_username,
)
from src.core.logging import configure_structlog, get_logger
from src.core.middleware import RequestContextMiddleware, set_user_context


__all__ = [
    "RequestContext",
    "RequestContextMiddleware",
    "clear_context",
    "configure_structlog",
    "get_context",
    "get_logger",
    "get_request_id",
    "get_trace_id",
    "get_user_id",
    "get_username",
    "set_request_id",
    "set_trace_id",
    "set_user_context",
    "set_user_id",
    "set_username",
]
