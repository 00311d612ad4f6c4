"""Request context management using contextvars.

Every request gets a request ID, and once authenticated, the caller's user ID
and username. Log processors read these values so service code never has to
pass them around explicitly.
"""

from contextvars import ContextVar
from typing import Any
from uuid import UUID, uuid4


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)
username_var: ContextVar[str | None] = ContextVar("username", default=None)
trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)


def generate_request_id() -> str:
    """Generate a new unique request ID."""
    return str(uuid4())


def get_request_id() -> str:
    """Get the current request ID."""
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Set the request ID for the current context.

    Args:
        request_id: Optional request ID. If not provided, generates a new one.

    Returns:
        The request ID that was set.
    """
    rid = request_id or generate_request_id()
    request_id_var.set(rid)
    return rid


def get_user_id() -> str | None:
    """Get the current user ID."""
    return user_id_var.get()


def set_user_id(user_id: str | UUID | None) -> None:
    """Set the authenticated user ID for the current context."""
    user_id_var.set(str(user_id) if user_id is not None else None)


def get_username() -> str | None:
    """Get the current username."""
    return username_var.get()


def set_username(username: str | None) -> None:
    """Set the authenticated username for the current context."""
    username_var.set(username)


def get_trace_id() -> str | None:
    """Get the current trace ID."""
    return trace_id_var.get()


def set_trace_id(trace_id: str | None) -> None:
    """Set the trace ID taken from distributed tracing headers."""
    trace_id_var.set(trace_id)


def get_context() -> dict[str, Any]:
    """Get all non-empty context variables as a dictionary."""
    context: dict[str, Any] = {}

    request_id = get_request_id()
    if request_id:
        context["request_id"] = request_id

    user_id = get_user_id()
    if user_id:
        context["user_id"] = user_id

    username = get_username()
    if username:
        context["username"] = username

    trace_id = get_trace_id()
    if trace_id:
        context["trace_id"] = trace_id

    return context


def clear_context() -> None:
    """Clear all context variables.

    Called at the end of each request so values never leak between requests.
    """
    request_id_var.set("")
    user_id_var.set(None)
    username_var.set(None)
    trace_id_var.set(None)


class RequestContext:
    """Context manager binding request values for a block of code.

    Usage:
        with RequestContext(username="alice"):
            log.info("doing something")  # includes request_id and username
    """

    def __init__(
        self,
        request_id: str | None = None,
        user_id: str | UUID | None = None,
        username: str | None = None,
        trace_id: str | None = None,
    ) -> None:
        self._values: dict[ContextVar[Any], Any] = {
            request_id_var: request_id or generate_request_id(),
        }
        if user_id is not None:
            self._values[user_id_var] = str(user_id)
        if username is not None:
            self._values[username_var] = username
        if trace_id is not None:
            self._values[trace_id_var] = trace_id
        self._tokens: list[tuple[ContextVar[Any], Any]] = []

    def __enter__(self) -> "RequestContext":
        """Enter context and set variables."""
        for var, value in self._values.items():
            self._tokens.append((var, var.set(value)))
        return self

    def __exit__(self, *_: object) -> None:
        """Exit context and restore previous values."""
        for var, token in reversed(self._tokens):
            var.reset(token)
        self._tokens.clear()
