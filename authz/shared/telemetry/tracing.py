"""Tracing helpers on the OpenTelemetry API.

Spans are no-ops until the host process installs an SDK tracer provider.
Only allowlisted argument names reach span attributes; resources and
principals are identifiers too, but paths can embed user data and stay out.
"""

import asyncio
import inspect
from collections.abc import Callable
from functools import wraps
from typing import Any

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

_TRACER_NAME = "authz"

_SPAN_ARGS = frozenset({
    "role", "roles", "role_id", "role_ids", "user_id", "action", "application",
    "page", "limit", "state", "code",
})


def _span_value(value: Any) -> str | int | float | bool:
    if isinstance(value, bool | int | float):
        return value
    if isinstance(value, list | tuple | set | frozenset):
        return ",".join(str(getattr(v, "value", v)) for v in value)
    return str(getattr(value, "value", value))


def _record_args(span: trace.Span, signature: inspect.Signature, args: tuple, kwargs: dict) -> None:
    """Copy allowlisted call arguments (positional or keyword) onto the span."""
    try:
        bound = signature.bind_partial(*args, **kwargs)
    except TypeError:
        return
    for name, value in bound.arguments.items():
        if name in _SPAN_ARGS and value is not None:
            span.set_attribute(f"authz.{name}", _span_value(value))


def traced(operation_name: str | None = None) -> Callable:
    """Wrap a coroutine function in a span named operation_name.

    Exceptions mark the span as failed and propagate unchanged.
    """

    def decorator(func: Callable) -> Callable:
        if not asyncio.iscoroutinefunction(func):
            raise TypeError(f"traced() expects a coroutine function, got {func!r}")
        tracer = trace.get_tracer(_TRACER_NAME)
        span_name = operation_name or f"{func.__module__}.{func.__qualname__}"
        signature = inspect.signature(func)

        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            with tracer.start_as_current_span(span_name) as span:
                _record_args(span, signature, args, kwargs)
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    span.set_status(Status(StatusCode.ERROR, str(e)))
                    span.record_exception(e)
                    raise
                span.set_status(Status(StatusCode.OK))
                return result

        return wrapper

    return decorator


def add_span_attributes(**attributes: str | int | float | bool) -> None:
    """Set attributes on the current span, if one is recording."""
    span = trace.get_current_span()
    if span.is_recording():
        for key, value in attributes.items():
            span.set_attribute(f"authz.{key}", value)
