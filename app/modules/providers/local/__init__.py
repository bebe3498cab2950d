"""In-process implementation of the provider contract."""

from modules.providers.local.auth import LocalAuthProvider
from modules.providers.local.backend import LocalBackend
from modules.providers.local.database import LocalDatabaseProvider
from modules.providers.local.deployment import LocalDeploymentProvider
from modules.providers.local.functions import LocalFunctionProvider
from modules.providers.local.notifications import LocalNotificationProvider
from modules.providers.local.realtime import LocalRealtimeProvider
from modules.providers.local.storage import LocalStorageProvider

__all__ = [
    "LocalAuthProvider",
    "LocalBackend",
    "LocalDatabaseProvider",
    "LocalDeploymentProvider",
    "LocalFunctionProvider",
    "LocalNotificationProvider",
    "LocalRealtimeProvider",
    "LocalStorageProvider",
]
