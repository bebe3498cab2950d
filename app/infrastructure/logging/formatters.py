"""Structlog processors for masking and size-limiting log values."""

from typing import Any, Callable, Mapping

Processor = Callable[[Any, str, dict[str, Any]], dict[str, Any]]

# Substrings of keys whose values never reach the log output
SENSITIVE_PATTERNS = frozenset(
    {
        "password",
        "secret",
        "token",
        "api_key",
        "apikey",
        "authorization",
        "credential",
        "private_key",
        "cookie",
        "jwt",
    }
)


def _is_sensitive(key: str, patterns: frozenset[str]) -> bool:
    key_lower = key.lower()
    return any(pattern in key_lower for pattern in patterns)


def _mask(value: Any, patterns: frozenset[str], mask_value: str) -> Any:
    if isinstance(value, Mapping):
        return {
            k: (
                mask_value
                if isinstance(k, str) and _is_sensitive(k, patterns) and v is not None
                else _mask(v, patterns, mask_value)
            )
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [_mask(item, patterns, mask_value) for item in value]
    return value


def mask_sensitive_data(
    mask_value: str = "***REDACTED***",
    additional_patterns: frozenset[str] | None = None,
) -> Processor:
    """Create a processor that masks sensitive values, including nested ones.

    Keys are matched case-insensitively against ``SENSITIVE_PATTERNS``.
    Dict and list values are walked so a logged payload such as
    ``data={"email": ..., "password": ...}`` is masked too.

    Example:
        processor = mask_sensitive_data(additional_patterns=frozenset({"ssn"}))
    """
    patterns = SENSITIVE_PATTERNS
    if additional_patterns:
        patterns = patterns | additional_patterns

    def processor(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        masked: dict[str, Any] = {}
        for key, value in event_dict.items():
            if key != "event" and _is_sensitive(key, patterns) and value is not None:
                masked[key] = mask_value
            else:
                masked[key] = _mask(value, patterns, mask_value)
        return masked

    return processor


def truncate_large_values(max_length: int = 500) -> Processor:
    """Create a processor that truncates string values longer than max_length."""

    def processor(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        for key, value in event_dict.items():
            if isinstance(value, str) and len(value) > max_length:
                event_dict[key] = (
                    value[:max_length] + f"...[truncated, {len(value)} chars total]"
                )
        return event_dict

    return processor
