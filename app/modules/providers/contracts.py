"""Provider contract: the uniform interface every backend implements.

A backend is an aggregate of service providers (auth, database, storage,
realtime, functions, notifications, deployment). Drivers raise the error
taxonomy from ``infrastructure.resilience.errors``; retry, circuit breaking,
caching and metrics are layered on by ``ResilientBackend`` and never
implemented by drivers themselves.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    List,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
    Union,
)

from modules.providers.models import (
    AuthSession,
    DeploymentConfig,
    DeploymentResult,
    DeploymentStatus,
    EmailMessage,
    FileInfo,
    FileListResult,
    FileMetadata,
    FunctionDefinition,
    FunctionExecution,
    FunctionResult,
    HealthCheckResult,
    LogEntry,
    PresenceInfo,
    PushNotification,
    QueryFilter,
    QueryOptions,
    QueryResult,
    User,
    UserPage,
)

T = TypeVar("T")

Document = Dict[str, Any]
MessageHandler = Callable[[Any], Union[None, Awaitable[None]]]
Unsubscribe = Callable[[], Awaitable[None]]


class ProviderComponent(ABC):
    """Optional lifecycle shared by every service provider."""

    async def initialize(self) -> None:
        pass

    async def shutdown(self) -> None:
        pass

    async def health_check(self) -> HealthCheckResult:
        return HealthCheckResult(healthy=True, status="healthy")


class AuthProvider(ProviderComponent):
    @abstractmethod
    async def sign_up(
        self, email: str, password: str, name: Optional[str] = None
    ) -> AuthSession:
        """Create an account and return a signed-in session.

        Raises:
            ConflictError: If the email is already registered
            InvalidArgumentError: If the email or password is invalid
        """

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> AuthSession:
        """Raises UnauthenticatedError on bad credentials."""

    @abstractmethod
    async def sign_out(self, user_id: str) -> None:
        """Revoke every session of the user."""

    @abstractmethod
    async def verify_token(self, token: str) -> User:
        """Raises UnauthenticatedError for unknown, revoked or expired tokens."""

    @abstractmethod
    async def refresh_token(self, refresh_token: str) -> AuthSession:
        pass

    @abstractmethod
    async def reset_password(self, email: str) -> None:
        """Start a password reset; the code is delivered out of band."""

    @abstractmethod
    async def confirm_password_reset(self, code: str, new_password: str) -> None:
        pass

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[User]:
        pass

    @abstractmethod
    async def update_user(self, user_id: str, updates: Dict[str, Any]) -> User:
        pass

    @abstractmethod
    async def delete_user(self, user_id: str) -> None:
        pass

    @abstractmethod
    async def list_users(
        self, page_size: int = 100, page_token: Optional[str] = None
    ) -> UserPage:
        """Page through every account (used by migrations)."""

    @abstractmethod
    async def import_user(self, user: User, password_hash: Optional[str] = None) -> User:
        """Create an account preserving its id (used by migrations).

        Raises:
            ConflictError: If the id or email already exists
        """


class Transaction(ABC):
    """Unit of work passed to ``DatabaseProvider.transaction`` callbacks.

    Reads happen immediately; writes are staged and committed atomically
    when the callback returns.
    """

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        pass

    @abstractmethod
    def create(
        self, collection: str, data: Document, doc_id: Optional[str] = None
    ) -> str:
        """Stage a create; returns the new document id."""

    @abstractmethod
    def update(self, collection: str, doc_id: str, data: Document) -> None:
        pass

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None:
        pass


class DatabaseProvider(ProviderComponent):
    #: Largest number of writes accepted by one batch call
    max_batch_size: int = 500

    @abstractmethod
    async def create(
        self, collection: str, data: Document, doc_id: Optional[str] = None
    ) -> Document:
        """Insert a document and return it with its ``id``.

        An explicit ``doc_id`` (or an ``id`` key in ``data``) is preserved.
        """

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        pass

    @abstractmethod
    async def update(self, collection: str, doc_id: str, data: Document) -> Document:
        """Merge ``data`` into the document. Raises NotFoundError if absent."""

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> None:
        pass

    @abstractmethod
    async def query(
        self, collection: str, options: Optional[QueryOptions] = None
    ) -> QueryResult:
        pass

    @abstractmethod
    async def count(
        self, collection: str, filters: Optional[Sequence[QueryFilter]] = None
    ) -> int:
        pass

    @abstractmethod
    async def batch_create(
        self, collection: str, items: Sequence[Document]
    ) -> List[Document]:
        """Insert many documents; chunked by ``max_batch_size``."""

    @abstractmethod
    async def batch_update(
        self, collection: str, updates: Sequence[Tuple[str, Document]]
    ) -> None:
        pass

    @abstractmethod
    async def batch_delete(self, collection: str, doc_ids: Sequence[str]) -> None:
        pass

    @abstractmethod
    async def transaction(self, callback: Callable[[Transaction], Awaitable[T]]) -> T:
        pass

    @abstractmethod
    async def list_collections(self) -> List[str]:
        pass


class StorageProvider(ProviderComponent):
    @abstractmethod
    async def upload(
        self, path: str, data: bytes, metadata: Optional[FileMetadata] = None
    ) -> FileInfo:
        pass

    @abstractmethod
    async def download(self, path: str) -> bytes:
        """Raises NotFoundError if the file does not exist."""

    @abstractmethod
    async def delete(self, path: str) -> None:
        pass

    @abstractmethod
    async def list(
        self,
        prefix: str = "",
        max_results: int = 1000,
        page_token: Optional[str] = None,
    ) -> FileListResult:
        pass

    @abstractmethod
    async def signed_url(self, path: str, expires_in_seconds: int = 3600) -> str:
        pass

    @abstractmethod
    async def copy(self, source_path: str, destination_path: str) -> FileInfo:
        pass

    @abstractmethod
    async def move(self, source_path: str, destination_path: str) -> FileInfo:
        pass

    @abstractmethod
    async def get_metadata(self, path: str) -> FileInfo:
        pass


class RealtimeConnection(ABC):
    """A per-user bidirectional connection."""

    id: str

    @abstractmethod
    async def send(self, message: Any) -> None:
        pass

    @abstractmethod
    def on_message(self, handler: MessageHandler) -> None:
        pass

    @abstractmethod
    def on_disconnect(self, handler: Callable[[], Any]) -> None:
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        pass


class RealtimeProvider(ProviderComponent):
    @abstractmethod
    async def connect(self, user_id: str) -> RealtimeConnection:
        pass

    @abstractmethod
    async def subscribe(self, channel: str, handler: MessageHandler) -> Unsubscribe:
        """Subscribe to a channel; returns a coroutine function that unsubscribes."""

    @abstractmethod
    async def publish(self, channel: str, message: Any) -> None:
        pass

    @abstractmethod
    async def track_presence(
        self, channel: str, user_id: str, metadata: Optional[Dict[str, Any]] = None
    ) -> Unsubscribe:
        """Mark the user present; returns a coroutine function that untracks."""

    @abstractmethod
    async def get_presence(self, channel: str) -> List[PresenceInfo]:
        pass


class FunctionProvider(ProviderComponent):
    @abstractmethod
    async def deploy(self, definition: FunctionDefinition) -> FunctionDefinition:
        pass

    @abstractmethod
    async def remove(self, name: str) -> None:
        pass

    @abstractmethod
    async def list_functions(self) -> List[FunctionDefinition]:
        pass

    @abstractmethod
    async def invoke(
        self, name: str, payload: Any = None, timeout_seconds: Optional[float] = None
    ) -> FunctionResult:
        pass

    @abstractmethod
    async def invoke_async(self, name: str, payload: Any = None) -> str:
        """Start an invocation; returns the execution id."""

    @abstractmethod
    async def schedule(self, name: str, cron: str, payload: Any = None) -> str:
        """Register a cron schedule; returns the schedule id."""

    @abstractmethod
    async def get_logs(self, name: str, limit: int = 100) -> List[LogEntry]:
        pass

    @abstractmethod
    async def get_execution(self, execution_id: str) -> Optional[FunctionExecution]:
        pass


class NotificationProvider(ProviderComponent):
    @abstractmethod
    async def send_email(self, message: EmailMessage) -> str:
        """Returns the provider message id."""

    @abstractmethod
    async def send_templated_email(
        self, template: str, to: Sequence[str], variables: Dict[str, Any]
    ) -> str:
        pass

    @abstractmethod
    async def send_sms(self, to: str, message: str) -> str:
        pass

    @abstractmethod
    async def send_push(self, user_id: str, notification: PushNotification) -> str:
        pass

    @abstractmethod
    async def subscribe_to_topic(self, user_id: str, topic: str) -> None:
        pass


class DeploymentProvider(ProviderComponent):
    @abstractmethod
    async def deploy(self, project_id: str, config: DeploymentConfig) -> DeploymentResult:
        pass

    @abstractmethod
    async def get_status(self, deployment_id: str) -> DeploymentStatus:
        pass

    @abstractmethod
    async def list_deployments(
        self, project_id: Optional[str] = None
    ) -> List[DeploymentStatus]:
        pass

    @abstractmethod
    async def rollback(self, deployment_id: str) -> DeploymentResult:
        """Restore the deployment preceding ``deployment_id`` in its project."""

    @abstractmethod
    async def get_logs(self, deployment_id: str, limit: Optional[int] = None) -> List[str]:
        pass

    @abstractmethod
    async def delete(self, deployment_id: str) -> None:
        pass


class BackendProvider(ABC):
    """Aggregate of every service provider for one backend kind."""

    kind: str
    auth: AuthProvider
    database: DatabaseProvider
    storage: StorageProvider
    realtime: RealtimeProvider
    functions: FunctionProvider
    notifications: NotificationProvider
    deployment: DeploymentProvider

    @property
    def cache_namespace(self) -> str:
        """Prefix that keeps this backend's cached reads apart from other backends."""
        return self.kind

    def components(self) -> Dict[str, ProviderComponent]:
        return {
            "auth": self.auth,
            "database": self.database,
            "storage": self.storage,
            "realtime": self.realtime,
            "functions": self.functions,
            "notifications": self.notifications,
            "deployment": self.deployment,
        }

    @abstractmethod
    async def initialize(self) -> None:
        pass

    @abstractmethod
    async def shutdown(self) -> None:
        pass

    @abstractmethod
    async def health_check(self) -> HealthCheckResult:
        pass
