"""Operation context binding for structured logging.

Binds the provider kind, operation name and a correlation id to every log
entry emitted while a provider call (or a whole migration run) is in flight.
Context lives in ``structlog.contextvars`` so it follows the running asyncio
task.

Usage:
    from infrastructure.logging import bind_operation_context

    with bind_operation_context(provider="firebase", operation="database.query"):
        logger.info("query_started")
"""

import uuid
from contextlib import contextmanager
from typing import Any, Generator, Optional

import structlog


@contextmanager
def bind_operation_context(
    provider: Optional[str] = None,
    operation: Optional[str] = None,
    correlation_id: Optional[str] = None,
    **extra_context: Any,
) -> Generator[str, None, None]:
    """Bind operation-scoped context for the duration of the block.

    An existing correlation id in the context is reused so nested operations
    (a migration calling provider methods) share one id.

    Args:
        provider: Backend kind handling the call.
        operation: Operation name, e.g. ``"database.get"``.
        correlation_id: Explicit id; generated when absent and none is bound.
        **extra_context: Additional key-value pairs to include in logs.

    Yields:
        The correlation id in effect inside the block.
    """
    existing = structlog.contextvars.get_contextvars()
    context: dict[str, Any] = {}

    effective_id = correlation_id or existing.get("correlation_id") or str(uuid.uuid4())
    if existing.get("correlation_id") != effective_id:
        context["correlation_id"] = effective_id
    if provider is not None:
        context["provider"] = provider
    if operation is not None:
        context["operation"] = operation
    context.update(extra_context)

    previous = {key: existing[key] for key in context if key in existing}
    structlog.contextvars.bind_contextvars(**context)
    try:
        yield effective_id
    finally:
        structlog.contextvars.unbind_contextvars(*context.keys())
        if previous:
            structlog.contextvars.bind_contextvars(**previous)


def get_correlation_id() -> Optional[str]:
    """Return the correlation id bound to the current context, if any."""
    return structlog.contextvars.get_contextvars().get("correlation_id")


def clear_operation_context() -> None:
    """Clear all context variables bound in the current task."""
    structlog.contextvars.clear_contextvars()
