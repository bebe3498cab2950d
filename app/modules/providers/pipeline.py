"""Operation pipeline: explicit composition of the resilience layers.

Each provider operation is built once, at construction time, by wrapping a
raw driver call::

    cache lookup
      -> circuit breaker
         -> retry with backoff
            -> metered raw call (success / error / latency metrics)
    -> cache populate or prefix invalidation

Breakers come from an injected ``CircuitBreakerRegistry`` keyed by the
backend kind and an explicit ``OperationName``; nothing is looked up by
reflection and nothing lives in module-level state.
"""

import asyncio
import functools
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable, Optional, TypeVar

from infrastructure.cache import CacheKeyBuilder, TwoTierCache
from infrastructure.logging import bind_operation_context, get_module_logger
from infrastructure.metrics import MetricsCollector
from infrastructure.resilience import (
    CircuitBreakerRegistry,
    CircuitOpenError,
    RetryOptions,
    with_retry,
)

logger = get_module_logger()

T = TypeVar("T")


class OperationName(str, Enum):
    """Explicit names for every provider operation."""

    # auth
    AUTH_SIGN_UP = "auth.sign_up"
    AUTH_SIGN_IN = "auth.sign_in"
    AUTH_SIGN_OUT = "auth.sign_out"
    AUTH_VERIFY_TOKEN = "auth.verify_token"
    AUTH_REFRESH_TOKEN = "auth.refresh_token"
    AUTH_RESET_PASSWORD = "auth.reset_password"
    AUTH_CONFIRM_PASSWORD_RESET = "auth.confirm_password_reset"
    AUTH_GET_USER = "auth.get_user"
    AUTH_UPDATE_USER = "auth.update_user"
    AUTH_DELETE_USER = "auth.delete_user"
    AUTH_LIST_USERS = "auth.list_users"
    AUTH_IMPORT_USER = "auth.import_user"

    # database
    DB_CREATE = "database.create"
    DB_GET = "database.get"
    DB_UPDATE = "database.update"
    DB_DELETE = "database.delete"
    DB_QUERY = "database.query"
    DB_COUNT = "database.count"
    DB_BATCH_CREATE = "database.batch_create"
    DB_BATCH_UPDATE = "database.batch_update"
    DB_BATCH_DELETE = "database.batch_delete"
    DB_TRANSACTION = "database.transaction"
    DB_LIST_COLLECTIONS = "database.list_collections"

    # storage
    STORAGE_UPLOAD = "storage.upload"
    STORAGE_DOWNLOAD = "storage.download"
    STORAGE_DELETE = "storage.delete"
    STORAGE_LIST = "storage.list"
    STORAGE_SIGNED_URL = "storage.signed_url"
    STORAGE_COPY = "storage.copy"
    STORAGE_MOVE = "storage.move"
    STORAGE_GET_METADATA = "storage.get_metadata"

    # realtime
    REALTIME_CONNECT = "realtime.connect"
    REALTIME_SUBSCRIBE = "realtime.subscribe"
    REALTIME_PUBLISH = "realtime.publish"
    REALTIME_TRACK_PRESENCE = "realtime.track_presence"
    REALTIME_GET_PRESENCE = "realtime.get_presence"

    # functions
    FUNCTIONS_DEPLOY = "functions.deploy"
    FUNCTIONS_REMOVE = "functions.remove"
    FUNCTIONS_LIST = "functions.list"
    FUNCTIONS_INVOKE = "functions.invoke"
    FUNCTIONS_INVOKE_ASYNC = "functions.invoke_async"
    FUNCTIONS_SCHEDULE = "functions.schedule"
    FUNCTIONS_GET_LOGS = "functions.get_logs"
    FUNCTIONS_GET_EXECUTION = "functions.get_execution"

    # notifications
    NOTIFY_SEND_EMAIL = "notifications.send_email"
    NOTIFY_SEND_TEMPLATED_EMAIL = "notifications.send_templated_email"
    NOTIFY_SEND_SMS = "notifications.send_sms"
    NOTIFY_SEND_PUSH = "notifications.send_push"
    NOTIFY_SUBSCRIBE_TO_TOPIC = "notifications.subscribe_to_topic"

    # deployment
    DEPLOY_DEPLOY = "deployment.deploy"
    DEPLOY_GET_STATUS = "deployment.get_status"
    DEPLOY_LIST = "deployment.list"
    DEPLOY_ROLLBACK = "deployment.rollback"
    DEPLOY_GET_LOGS = "deployment.get_logs"
    DEPLOY_DELETE = "deployment.delete"


@dataclass
class ProviderResilience:
    """Collaborators injected into every resilient provider.

    Any collaborator left as None disables that layer: no breaker, no
    retry, no caching or no metrics.

    Attributes:
        breakers: Shared circuit breaker registry
        cache: Two-tier cache for read results
        metrics: Metrics collector
        retry_options: Retry policy applied inside the breaker
        cache_ttl_seconds: TTL for cached read results
        key_builder: Cache key builder
        sleep: Backoff sleep, injectable for tests
    """

    breakers: Optional[CircuitBreakerRegistry] = None
    cache: Optional[TwoTierCache] = None
    metrics: Optional[MetricsCollector] = None
    retry_options: Optional[RetryOptions] = field(default_factory=RetryOptions)
    cache_ttl_seconds: int = 300
    key_builder: CacheKeyBuilder = field(default_factory=CacheKeyBuilder)
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep


class OperationPipeline:
    """Builds resilient callables for one backend instance.

    Cache keys built through ``keys`` carry ``namespace`` (the backend kind
    when omitted), so backends sharing one cache stay isolated.

    Example:
        pipeline = OperationPipeline("local", resilience)
        get = pipeline.wrap(
            OperationName.DB_GET,
            raw_database.get,
            cache_key=lambda collection, doc_id: keys.build("get", collection, doc_id),
        )
        document = await get("users", "u-1")
    """

    def __init__(
        self,
        provider_kind: str,
        resilience: ProviderResilience,
        namespace: Optional[str] = None,
    ):
        self.provider_kind = provider_kind
        self.resilience = resilience
        self.namespace = namespace or provider_kind
        self._keys = resilience.key_builder.scoped(self.namespace)

    @property
    def keys(self) -> CacheKeyBuilder:
        """Key builder scoped to this pipeline's namespace."""
        return self._keys

    def wrap(
        self,
        operation: OperationName,
        func: Callable[..., Awaitable[T]],
        *,
        cache_key: Optional[Callable[..., Optional[str]]] = None,
        invalidates: Optional[Callable[..., Iterable[str]]] = None,
        encode: Optional[Callable[[T], Any]] = None,
        decode: Optional[Callable[[Any], T]] = None,
        retry: bool = True,
    ) -> Callable[..., Awaitable[T]]:
        """Compose the resilience layers around ``func``.

        Args:
            operation: Explicit operation name (breaker key and metric prefix)
            func: Raw driver coroutine function
            cache_key: Maps call arguments to a cache key; enables read caching
            invalidates: Maps call arguments to keys or ``*`` patterns removed
                after a successful call
            encode: Converts a result to a JSON-friendly cache value
            decode: Converts a cache value back to the result type
            retry: Set False for calls that must not be repeated

        Returns:
            Coroutine function with the same call signature as ``func``
        """
        name = OperationName(operation).value
        res = self.resilience
        dimensions = {"provider": self.provider_kind}
        breaker = (
            res.breakers.get_or_create(self.provider_kind, name)
            if res.breakers is not None
            else None
        )
        retry_options = res.retry_options if retry else None
        cache = res.cache

        async def metered(*args: Any, **kwargs: Any) -> T:
            started = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as exc:
                if res.metrics is not None:
                    elapsed_ms = (time.perf_counter() - started) * 1000
                    await res.metrics.record_error(name, exc, dimensions)
                    await res.metrics.record_latency(name, elapsed_ms, dimensions)
                raise
            if res.metrics is not None:
                elapsed_ms = (time.perf_counter() - started) * 1000
                await res.metrics.record_success(name, dimensions)
                await res.metrics.record_latency(name, elapsed_ms, dimensions)
            return result

        @functools.wraps(func)
        async def call(*args: Any, **kwargs: Any) -> T:
            with bind_operation_context(provider=self.provider_kind, operation=name):
                key = None
                if cache is not None and cache_key is not None:
                    key = cache_key(*args, **kwargs)
                if key is not None:
                    cached = await cache.get(key)
                    if cached is not None:
                        if res.metrics is not None:
                            await res.metrics.record(f"{name}.CacheHit", 1, "Count", dimensions)
                        return decode(cached) if decode is not None else cached

                async def attempt() -> T:
                    if retry_options is None:
                        return await metered(*args, **kwargs)
                    return await with_retry(
                        lambda: metered(*args, **kwargs),
                        retry_options,
                        sleep=res.sleep,
                        operation=name,
                    )

                try:
                    if breaker is not None:
                        result = await breaker.execute(attempt)
                    else:
                        result = await attempt()
                except CircuitOpenError as exc:
                    if res.metrics is not None:
                        await res.metrics.record_error(name, exc, dimensions)
                    raise

                if key is not None and result is not None:
                    value = encode(result) if encode is not None else result
                    await cache.set(key, value, res.cache_ttl_seconds)
                if cache is not None and invalidates is not None:
                    for target in invalidates(*args, **kwargs):
                        await cache.delete(target)
                return result

        return call
