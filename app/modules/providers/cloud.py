"""Document-store backed backends (``firebase`` and ``aws``).

Vendor SDKs are not dependencies of this package. The caller supplies a
``DocumentStoreClient`` for the database and ready-made providers for the
other services; the backend contributes the dialect-aware database and
the lifecycle wiring.
"""

from typing import Optional

from modules.providers.composite import CompositeBackend
from modules.providers.contracts import (
    AuthProvider,
    DeploymentProvider,
    FunctionProvider,
    NotificationProvider,
    RealtimeProvider,
    StorageProvider,
)
from modules.providers.document_store import (
    AWS_DIALECT,
    FIREBASE_DIALECT,
    DocumentStoreClient,
    DocumentStoreDatabase,
    StoreDialect,
)
from modules.providers.factory import register_backend
from modules.providers.models import BackendKind


class DocumentStoreBackend(CompositeBackend):
    """Backend whose database is a cursor-paginated document store.

    Raises:
        ValueError: If a component is missing
    """

    dialect: StoreDialect

    def __init__(
        self,
        document_client: Optional[DocumentStoreClient] = None,
        auth: Optional[AuthProvider] = None,
        storage: Optional[StorageProvider] = None,
        realtime: Optional[RealtimeProvider] = None,
        functions: Optional[FunctionProvider] = None,
        notifications: Optional[NotificationProvider] = None,
        deployment: Optional[DeploymentProvider] = None,
        project_id: Optional[str] = None,
        region: Optional[str] = None,
    ):
        supplied = {
            "document_client": document_client,
            "auth": auth,
            "storage": storage,
            "realtime": realtime,
            "functions": functions,
            "notifications": notifications,
            "deployment": deployment,
        }
        missing = sorted(name for name, value in supplied.items() if value is None)
        if missing:
            raise ValueError(
                f"{self.kind} backend requires SDK-backed components: {', '.join(missing)}"
            )
        self.project_id = project_id
        self.region = region
        self.database = DocumentStoreDatabase(document_client, self.dialect)
        self.auth = auth
        self.storage = storage
        self.realtime = realtime
        self.functions = functions
        self.notifications = notifications
        self.deployment = deployment

    @property
    def cache_namespace(self) -> str:
        return f"{self.kind}:{self.project_id or 'default'}"


@register_backend(BackendKind.FIREBASE.value)
class FirebaseBackend(DocumentStoreBackend):
    kind = BackendKind.FIREBASE.value
    dialect = FIREBASE_DIALECT


@register_backend(BackendKind.AWS.value)
class AwsBackend(DocumentStoreBackend):
    kind = BackendKind.AWS.value
    dialect = AWS_DIALECT
