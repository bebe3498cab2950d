"""The ``local`` backend: every contract operation, in process."""

import uuid
from typing import Optional

from modules.providers.composite import CompositeBackend
from modules.providers.factory import register_backend
from modules.providers.local.auth import LocalAuthProvider
from modules.providers.local.database import LocalDatabaseProvider
from modules.providers.local.deployment import LocalDeploymentProvider
from modules.providers.local.functions import LocalFunctionProvider
from modules.providers.local.notifications import LocalNotificationProvider
from modules.providers.local.realtime import LocalRealtimeProvider
from modules.providers.local.storage import LocalStorageProvider
from modules.providers.models import BackendKind


@register_backend(BackendKind.LOCAL.value)
class LocalBackend(CompositeBackend):
    """Offline backend used for development, tests and as a migration endpoint.

    Args:
        data_path: JSON file persisting the database; in-memory when None
        project_id: Identifier reported in health checks
        base_url: Prefix for signed storage URLs and deployment URLs
        max_batch_size: Database batch ceiling
    """

    kind = BackendKind.LOCAL.value

    def __init__(
        self,
        data_path: Optional[str] = None,
        project_id: str = "default",
        base_url: str = "http://localhost:8080",
        max_batch_size: int = 500,
    ):
        self.project_id = project_id
        self.instance_id = uuid.uuid4().hex[:12]
        self.auth = LocalAuthProvider()
        self.database = LocalDatabaseProvider(data_path=data_path, max_batch_size=max_batch_size)
        self.storage = LocalStorageProvider(base_url=f"{base_url.rstrip('/')}/storage")
        self.realtime = LocalRealtimeProvider()
        self.functions = LocalFunctionProvider()
        self.notifications = LocalNotificationProvider()
        self.deployment = LocalDeploymentProvider(base_url=base_url)

    @property
    def cache_namespace(self) -> str:
        # In-process data is private to this instance
        return f"{self.kind}:{self.project_id}:{self.instance_id}"
