"""Cache key builder for consistent key generation."""

import hashlib
import json
from typing import Any, Optional


class CacheKeyBuilder:
    """Build deterministic cache keys and invalidation patterns.

    Point-lookup keys have the form ``operation:resourceKind:argsHash``;
    invalidation patterns have the form ``operation:resourceKind:*``. A
    namespace, when set, prefixes both so that backends sharing one cache
    never read each other's entries.

    Example:
        builder = CacheKeyBuilder()
        builder.build("get", "users", "u-1")   # 'get:users:<16 hex chars>'
        builder.pattern("query", "users")     # 'query:users:*'

        scoped = builder.scoped("firebase:shop")
        scoped.build("get", "users", "u-1")    # 'firebase:shop:get:users:<hash>'
    """

    def __init__(self, hash_length: int = 16, namespace: Optional[str] = None):
        self.hash_length = hash_length
        self.namespace = namespace

    def scoped(self, namespace: str) -> "CacheKeyBuilder":
        """Return a builder with the same hash length under ``namespace``."""
        return CacheKeyBuilder(hash_length=self.hash_length, namespace=namespace)

    @property
    def prefix(self) -> str:
        return f"{self.namespace}:" if self.namespace else ""

    def args_hash(self, *args: Any, **kwargs: Any) -> str:
        """Hash positional and keyword arguments order-independently for kwargs."""
        key_string = json.dumps(
            {"args": list(args), "kwargs": kwargs},
            sort_keys=True,
            default=str,
            separators=(",", ":"),
        )
        return hashlib.sha256(key_string.encode()).hexdigest()[: self.hash_length]

    def build(self, operation: str, resource: str, *args: Any, **kwargs: Any) -> str:
        return f"{self.prefix}{operation}:{resource}:{self.args_hash(*args, **kwargs)}"

    def pattern(self, operation: str, resource: Optional[str] = None) -> str:
        """Prefix pattern for one resource, or for every resource when omitted."""
        if resource is None:
            return f"{self.prefix}{operation}:*"
        return f"{self.prefix}{operation}:{resource}:*"


def matches_prefix_pattern(key: str, pattern: str) -> bool:
    """True if ``key`` is selected by an invalidation pattern.

    A trailing ``*`` selects every key starting with the rest of the
    pattern; any other character, including ``[`` and ``?``, is literal.
    """
    if pattern.endswith("*"):
        return key.startswith(pattern[:-1])
    return key == pattern
