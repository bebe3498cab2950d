"""Structured logging infrastructure.

Public API:
    - configure_logging(): Initialize logging for the process
    - get_module_logger(): Get a logger bound to the calling module
    - bind_operation_context(): Context manager for operation-scoped logging
    - get_correlation_id(): Current correlation id, if any
    - clear_operation_context(): Clear all bound context

Processors:
    - mask_sensitive_data(): Redact sensitive fields, including nested ones
    - truncate_large_values(): Limit string lengths
"""

from infrastructure.logging.context import (
    bind_operation_context,
    clear_operation_context,
    get_correlation_id,
)
from infrastructure.logging.formatters import (
    SENSITIVE_PATTERNS,
    mask_sensitive_data,
    truncate_large_values,
)
from infrastructure.logging.setup import configure_logging, get_module_logger

__all__ = [
    "configure_logging",
    "get_module_logger",
    "bind_operation_context",
    "clear_operation_context",
    "get_correlation_id",
    "mask_sensitive_data",
    "truncate_large_values",
    "SENSITIVE_PATTERNS",
]
