# modules/providers/__init__.py
"""Backend provider module.

A uniform contract over interchangeable backends (``local``, ``firebase``,
``aws``), wrapped with circuit breaking, retries, two-tier caching and
metrics by ``ResilientBackend``.

Usage:
    from modules.providers import create_backend
    from infrastructure.services import build_resilience

    backend = create_backend("local", resilience=build_resilience())
    await backend.initialize()
    user = await backend.auth.get_user("u-1")
"""

from modules.providers.composite import CompositeBackend
from modules.providers.contracts import (
    AuthProvider,
    BackendProvider,
    DatabaseProvider,
    DeploymentProvider,
    Document,
    FunctionProvider,
    NotificationProvider,
    RealtimeConnection,
    RealtimeProvider,
    StorageProvider,
    Transaction,
)
from modules.providers.document_store import (
    AWS_DIALECT,
    FIREBASE_DIALECT,
    BatchWrite,
    DocumentPage,
    DocumentStoreClient,
    DocumentStoreDatabase,
    StoreDialect,
)
from modules.providers.errors import (
    BackendAlreadyRegisteredError,
    BackendNotFoundError,
    BackendRegistryError,
)
from modules.providers.factory import (
    create_backend,
    get_backend_class,
    list_backends,
    register_backend,
    wrap_backend,
)
from modules.providers.pipeline import OperationName, OperationPipeline, ProviderResilience
from modules.providers.resilient import ResilientBackend

# Imported for their @register_backend side effect
from modules.providers.cloud import AwsBackend, DocumentStoreBackend, FirebaseBackend
from modules.providers.local import LocalBackend

__all__ = [
    "AWS_DIALECT",
    "FIREBASE_DIALECT",
    "AuthProvider",
    "AwsBackend",
    "BackendAlreadyRegisteredError",
    "BackendNotFoundError",
    "BackendProvider",
    "BackendRegistryError",
    "BatchWrite",
    "CompositeBackend",
    "DatabaseProvider",
    "DeploymentProvider",
    "Document",
    "DocumentPage",
    "DocumentStoreBackend",
    "DocumentStoreClient",
    "DocumentStoreDatabase",
    "FirebaseBackend",
    "FunctionProvider",
    "LocalBackend",
    "NotificationProvider",
    "OperationName",
    "OperationPipeline",
    "ProviderResilience",
    "RealtimeConnection",
    "RealtimeProvider",
    "ResilientBackend",
    "StorageProvider",
    "StoreDialect",
    "Transaction",
    "create_backend",
    "get_backend_class",
    "list_backends",
    "register_backend",
    "wrap_backend",
]
