"""Backend registry and factory.

Backend classes register themselves by kind with ``@register_backend``;
``create_backend`` instantiates the raw backend and wraps it in a
``ResilientBackend`` built from the injected resilience collaborators.
"""

from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

import structlog

from modules.providers.contracts import BackendProvider
from modules.providers.errors import BackendAlreadyRegisteredError, BackendNotFoundError
from modules.providers.pipeline import OperationPipeline, ProviderResilience
from modules.providers.resilient import ResilientBackend

logger = structlog.get_logger()

B = TypeVar("B", bound=Type[BackendProvider])

_backends: Dict[str, Type[BackendProvider]] = {}


def register_backend(kind: str) -> Callable[[B], B]:
    """Register a raw backend class for a backend kind.

    Example:
        @register_backend("local")
        class LocalBackend(BackendProvider):
            ...
    """

    def decorator(cls: B) -> B:
        if not isinstance(cls, type) or not issubclass(cls, BackendProvider):
            raise TypeError(
                f"register_backend must decorate a BackendProvider subclass, got {cls}"
            )
        if kind in _backends and _backends[kind] is not cls:
            raise BackendAlreadyRegisteredError(f"Backend '{kind}' already registered")
        _backends[kind] = cls
        logger.debug("backend_registered", kind=kind, class_name=cls.__name__)
        return cls

    return decorator


def get_backend_class(kind: str) -> Type[BackendProvider]:
    try:
        return _backends[kind]
    except KeyError:
        known = ", ".join(sorted(_backends))
        raise BackendNotFoundError(
            f"Backend '{kind}' not registered (known: {known})"
        ) from None


def list_backends() -> List[str]:
    return sorted(_backends)


def wrap_backend(
    raw: BackendProvider, resilience: Optional[ProviderResilience] = None
) -> ResilientBackend:
    """Compose resilience around an already constructed raw backend."""
    pipeline = OperationPipeline(
        raw.kind, resilience or ProviderResilience(), namespace=raw.cache_namespace
    )
    return ResilientBackend(raw, pipeline)


def create_backend(
    kind: str,
    resilience: Optional[ProviderResilience] = None,
    **options: Any,
) -> ResilientBackend:
    """Create a resilient backend of the given kind.

    Args:
        kind: Registered backend kind (``local``, ``firebase``, ``aws``)
        resilience: Breaker registry, cache, metrics and retry options;
            defaults to retries only
        **options: Passed to the raw backend constructor

    Raises:
        BackendNotFoundError: If the kind is not registered
    """
    backend_class = get_backend_class(kind)
    raw = backend_class(**options)
    backend = wrap_backend(raw, resilience)
    logger.info("backend_created", kind=kind, class_name=backend_class.__name__)
    return backend
