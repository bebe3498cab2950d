"""Resilient wrappers around raw provider drivers.

``ResilientBackend`` takes any raw ``BackendProvider`` and rebuilds each of
its operations through an ``OperationPipeline``. Reads that are safe to
cache (documents, queries, counts, file listings and metadata, users) are
cached under ``namespace:operation:resourceKind:argsHash`` keys, where the
namespace identifies the backend instance. Writes invalidate by prefix
pattern rather than by tracking dependent keys.
"""

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
)

from modules.providers.contracts import (
    AuthProvider,
    BackendProvider,
    DatabaseProvider,
    DeploymentProvider,
    Document,
    FunctionProvider,
    MessageHandler,
    NotificationProvider,
    RealtimeConnection,
    RealtimeProvider,
    StorageProvider,
    Transaction,
    Unsubscribe,
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
from modules.providers.pipeline import OperationName, OperationPipeline

T = TypeVar("T")

USERS_RESOURCE = "users"
FILES_RESOURCE = "files"


class ResilientAuthProvider(AuthProvider):
    def __init__(self, raw: AuthProvider, pipeline: OperationPipeline):
        self.raw = raw
        keys = pipeline.keys

        def user_key(user_id: str, *args: Any, **kwargs: Any) -> str:
            return keys.build("get_user", USERS_RESOURCE, user_id)

        def user_invalidation(user_id: str, *args: Any, **kwargs: Any) -> List[str]:
            return [user_key(user_id)]

        def signed_out(user_id: str) -> List[str]:
            return [user_key(user_id)]

        self._sign_up = pipeline.wrap(OperationName.AUTH_SIGN_UP, raw.sign_up)
        self._sign_in = pipeline.wrap(OperationName.AUTH_SIGN_IN, raw.sign_in)
        self._sign_out = pipeline.wrap(
            OperationName.AUTH_SIGN_OUT, raw.sign_out, invalidates=signed_out
        )
        self._verify_token = pipeline.wrap(
            OperationName.AUTH_VERIFY_TOKEN, raw.verify_token
        )
        self._refresh_token = pipeline.wrap(
            OperationName.AUTH_REFRESH_TOKEN, raw.refresh_token
        )
        self._reset_password = pipeline.wrap(
            OperationName.AUTH_RESET_PASSWORD, raw.reset_password
        )
        self._confirm_password_reset = pipeline.wrap(
            OperationName.AUTH_CONFIRM_PASSWORD_RESET, raw.confirm_password_reset
        )
        self._get_user = pipeline.wrap(
            OperationName.AUTH_GET_USER,
            raw.get_user,
            cache_key=user_key,
            encode=User.to_dict,
            decode=User.from_dict,
        )
        self._update_user = pipeline.wrap(
            OperationName.AUTH_UPDATE_USER,
            raw.update_user,
            invalidates=user_invalidation,
        )
        self._delete_user = pipeline.wrap(
            OperationName.AUTH_DELETE_USER,
            raw.delete_user,
            invalidates=user_invalidation,
        )
        self._list_users = pipeline.wrap(OperationName.AUTH_LIST_USERS, raw.list_users)
        self._import_user = pipeline.wrap(
            OperationName.AUTH_IMPORT_USER, raw.import_user
        )

    async def sign_up(
        self, email: str, password: str, name: Optional[str] = None
    ) -> AuthSession:
        return await self._sign_up(email, password, name)

    async def sign_in(self, email: str, password: str) -> AuthSession:
        return await self._sign_in(email, password)

    async def sign_out(self, user_id: str) -> None:
        await self._sign_out(user_id)

    async def verify_token(self, token: str) -> User:
        return await self._verify_token(token)

    async def refresh_token(self, refresh_token: str) -> AuthSession:
        return await self._refresh_token(refresh_token)

    async def reset_password(self, email: str) -> None:
        await self._reset_password(email)

    async def confirm_password_reset(self, code: str, new_password: str) -> None:
        await self._confirm_password_reset(code, new_password)

    async def get_user(self, user_id: str) -> Optional[User]:
        return await self._get_user(user_id)

    async def update_user(self, user_id: str, updates: Dict[str, Any]) -> User:
        return await self._update_user(user_id, updates)

    async def delete_user(self, user_id: str) -> None:
        await self._delete_user(user_id)

    async def list_users(
        self, page_size: int = 100, page_token: Optional[str] = None
    ) -> UserPage:
        return await self._list_users(page_size, page_token)

    async def import_user(
        self, user: User, password_hash: Optional[str] = None
    ) -> User:
        return await self._import_user(user, password_hash)

    async def initialize(self) -> None:
        await self.raw.initialize()

    async def shutdown(self) -> None:
        await self.raw.shutdown()

    async def health_check(self) -> HealthCheckResult:
        return await self.raw.health_check()


class ResilientDatabaseProvider(DatabaseProvider):
    def __init__(self, raw: DatabaseProvider, pipeline: OperationPipeline):
        self.raw = raw
        keys = pipeline.keys

        def get_key(collection: str, doc_id: str) -> str:
            return keys.build("get", collection, doc_id)

        def query_key(collection: str, options: Optional[QueryOptions] = None) -> str:
            return keys.build(
                "query", collection, options.to_dict() if options else None
            )

        def count_key(
            collection: str, filters: Optional[Sequence[QueryFilter]] = None
        ) -> str:
            return keys.build("count", collection, [f.to_dict() for f in filters or []])

        def collection_patterns(collection: str) -> List[str]:
            return [
                keys.pattern("query", collection),
                keys.pattern("count", collection),
            ]

        def created(
            collection: str, data: Document, doc_id: Optional[str] = None
        ) -> List[str]:
            explicit = doc_id or data.get("id")
            targets = collection_patterns(collection)
            if explicit:
                targets.append(get_key(collection, str(explicit)))
            return targets

        def changed(collection: str, doc_id: str, *args: Any) -> List[str]:
            return [get_key(collection, doc_id), *collection_patterns(collection)]

        def bulk_changed(collection: str, *args: Any) -> List[str]:
            return [keys.pattern("get", collection), *collection_patterns(collection)]

        self._create = pipeline.wrap(
            OperationName.DB_CREATE, raw.create, invalidates=created
        )
        self._get = pipeline.wrap(OperationName.DB_GET, raw.get, cache_key=get_key)
        self._update = pipeline.wrap(
            OperationName.DB_UPDATE, raw.update, invalidates=changed
        )
        self._delete = pipeline.wrap(
            OperationName.DB_DELETE, raw.delete, invalidates=changed
        )
        self._query = pipeline.wrap(
            OperationName.DB_QUERY,
            raw.query,
            cache_key=query_key,
            encode=QueryResult.to_dict,
            decode=QueryResult.from_dict,
        )
        self._count = pipeline.wrap(
            OperationName.DB_COUNT, raw.count, cache_key=count_key
        )
        self._batch_create = pipeline.wrap(
            OperationName.DB_BATCH_CREATE, raw.batch_create, invalidates=bulk_changed
        )
        self._batch_update = pipeline.wrap(
            OperationName.DB_BATCH_UPDATE, raw.batch_update, invalidates=bulk_changed
        )
        self._batch_delete = pipeline.wrap(
            OperationName.DB_BATCH_DELETE, raw.batch_delete, invalidates=bulk_changed
        )
        self._transaction = pipeline.wrap(OperationName.DB_TRANSACTION, raw.transaction)
        self._list_collections = pipeline.wrap(
            OperationName.DB_LIST_COLLECTIONS, raw.list_collections
        )
        self._cache = pipeline.resilience.cache
        self._keys = keys

    @property
    def max_batch_size(self) -> int:  # type: ignore[override]
        return self.raw.max_batch_size

    async def create(
        self, collection: str, data: Document, doc_id: Optional[str] = None
    ) -> Document:
        return await self._create(collection, data, doc_id)

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        return await self._get(collection, doc_id)

    async def update(self, collection: str, doc_id: str, data: Document) -> Document:
        return await self._update(collection, doc_id, data)

    async def delete(self, collection: str, doc_id: str) -> None:
        await self._delete(collection, doc_id)

    async def query(
        self, collection: str, options: Optional[QueryOptions] = None
    ) -> QueryResult:
        return await self._query(collection, options)

    async def count(
        self, collection: str, filters: Optional[Sequence[QueryFilter]] = None
    ) -> int:
        return await self._count(collection, filters)

    async def batch_create(
        self, collection: str, items: Sequence[Document]
    ) -> List[Document]:
        return await self._batch_create(collection, items)

    async def batch_update(
        self, collection: str, updates: Sequence[Tuple[str, Document]]
    ) -> None:
        await self._batch_update(collection, updates)

    async def batch_delete(self, collection: str, doc_ids: Sequence[str]) -> None:
        await self._batch_delete(collection, doc_ids)

    async def transaction(self, callback: Callable[[Transaction], Awaitable[T]]) -> T:
        # Collections touched inside the callback are unknown up front
        result = await self._transaction(callback)
        if self._cache is not None:
            for operation in ("get", "query", "count"):
                await self._cache.delete(self._keys.pattern(operation))
        return result

    async def list_collections(self) -> List[str]:
        return await self._list_collections()

    async def initialize(self) -> None:
        await self.raw.initialize()

    async def shutdown(self) -> None:
        await self.raw.shutdown()

    async def health_check(self) -> HealthCheckResult:
        return await self.raw.health_check()


class ResilientStorageProvider(StorageProvider):
    def __init__(self, raw: StorageProvider, pipeline: OperationPipeline):
        self.raw = raw
        keys = pipeline.keys

        def list_key(
            prefix: str = "", max_results: int = 1000, page_token: Optional[str] = None
        ) -> str:
            return keys.build("list", FILES_RESOURCE, prefix, max_results, page_token)

        def metadata_key(path: str) -> str:
            return keys.build("metadata", FILES_RESOURCE, path)

        def written(path: str, *args: Any, **kwargs: Any) -> List[str]:
            return [metadata_key(path), keys.pattern("list", FILES_RESOURCE)]

        def copied(source_path: str, destination_path: str) -> List[str]:
            return [
                metadata_key(destination_path),
                keys.pattern("list", FILES_RESOURCE),
            ]

        def moved(source_path: str, destination_path: str) -> List[str]:
            return [metadata_key(source_path), *copied(source_path, destination_path)]

        self._upload = pipeline.wrap(
            OperationName.STORAGE_UPLOAD, raw.upload, invalidates=written
        )
        self._download = pipeline.wrap(OperationName.STORAGE_DOWNLOAD, raw.download)
        self._delete = pipeline.wrap(
            OperationName.STORAGE_DELETE, raw.delete, invalidates=written
        )
        self._list = pipeline.wrap(
            OperationName.STORAGE_LIST,
            raw.list,
            cache_key=list_key,
            encode=FileListResult.to_dict,
            decode=FileListResult.from_dict,
        )
        self._signed_url = pipeline.wrap(
            OperationName.STORAGE_SIGNED_URL, raw.signed_url
        )
        self._copy = pipeline.wrap(
            OperationName.STORAGE_COPY, raw.copy, invalidates=copied
        )
        self._move = pipeline.wrap(
            OperationName.STORAGE_MOVE, raw.move, invalidates=moved
        )
        self._get_metadata = pipeline.wrap(
            OperationName.STORAGE_GET_METADATA,
            raw.get_metadata,
            cache_key=metadata_key,
            encode=FileInfo.to_dict,
            decode=FileInfo.from_dict,
        )

    async def upload(
        self, path: str, data: bytes, metadata: Optional[FileMetadata] = None
    ) -> FileInfo:
        return await self._upload(path, data, metadata)

    async def download(self, path: str) -> bytes:
        return await self._download(path)

    async def delete(self, path: str) -> None:
        await self._delete(path)

    async def list(
        self,
        prefix: str = "",
        max_results: int = 1000,
        page_token: Optional[str] = None,
    ) -> FileListResult:
        return await self._list(prefix, max_results, page_token)

    async def signed_url(self, path: str, expires_in_seconds: int = 3600) -> str:
        return await self._signed_url(path, expires_in_seconds)

    async def copy(self, source_path: str, destination_path: str) -> FileInfo:
        return await self._copy(source_path, destination_path)

    async def move(self, source_path: str, destination_path: str) -> FileInfo:
        return await self._move(source_path, destination_path)

    async def get_metadata(self, path: str) -> FileInfo:
        return await self._get_metadata(path)

    async def initialize(self) -> None:
        await self.raw.initialize()

    async def shutdown(self) -> None:
        await self.raw.shutdown()

    async def health_check(self) -> HealthCheckResult:
        return await self.raw.health_check()


class ResilientRealtimeProvider(RealtimeProvider):
    def __init__(self, raw: RealtimeProvider, pipeline: OperationPipeline):
        self.raw = raw
        self._connect = pipeline.wrap(OperationName.REALTIME_CONNECT, raw.connect)
        self._subscribe = pipeline.wrap(OperationName.REALTIME_SUBSCRIBE, raw.subscribe)
        self._publish = pipeline.wrap(OperationName.REALTIME_PUBLISH, raw.publish)
        self._track_presence = pipeline.wrap(
            OperationName.REALTIME_TRACK_PRESENCE, raw.track_presence
        )
        self._get_presence = pipeline.wrap(
            OperationName.REALTIME_GET_PRESENCE, raw.get_presence
        )

    async def connect(self, user_id: str) -> RealtimeConnection:
        return await self._connect(user_id)

    async def subscribe(self, channel: str, handler: MessageHandler) -> Unsubscribe:
        return await self._subscribe(channel, handler)

    async def publish(self, channel: str, message: Any) -> None:
        await self._publish(channel, message)

    async def track_presence(
        self, channel: str, user_id: str, metadata: Optional[Dict[str, Any]] = None
    ) -> Unsubscribe:
        return await self._track_presence(channel, user_id, metadata)

    async def get_presence(self, channel: str) -> List[PresenceInfo]:
        return await self._get_presence(channel)

    async def initialize(self) -> None:
        await self.raw.initialize()

    async def shutdown(self) -> None:
        await self.raw.shutdown()

    async def health_check(self) -> HealthCheckResult:
        return await self.raw.health_check()


class ResilientFunctionProvider(FunctionProvider):
    def __init__(self, raw: FunctionProvider, pipeline: OperationPipeline):
        self.raw = raw
        self._deploy = pipeline.wrap(OperationName.FUNCTIONS_DEPLOY, raw.deploy)
        self._remove = pipeline.wrap(OperationName.FUNCTIONS_REMOVE, raw.remove)
        self._list_functions = pipeline.wrap(
            OperationName.FUNCTIONS_LIST, raw.list_functions
        )
        self._invoke = pipeline.wrap(OperationName.FUNCTIONS_INVOKE, raw.invoke)
        self._invoke_async = pipeline.wrap(
            OperationName.FUNCTIONS_INVOKE_ASYNC, raw.invoke_async
        )
        self._schedule = pipeline.wrap(OperationName.FUNCTIONS_SCHEDULE, raw.schedule)
        self._get_logs = pipeline.wrap(OperationName.FUNCTIONS_GET_LOGS, raw.get_logs)
        self._get_execution = pipeline.wrap(
            OperationName.FUNCTIONS_GET_EXECUTION, raw.get_execution
        )

    async def deploy(self, definition: FunctionDefinition) -> FunctionDefinition:
        return await self._deploy(definition)

    async def remove(self, name: str) -> None:
        await self._remove(name)

    async def list_functions(self) -> List[FunctionDefinition]:
        return await self._list_functions()

    async def invoke(
        self, name: str, payload: Any = None, timeout_seconds: Optional[float] = None
    ) -> FunctionResult:
        return await self._invoke(name, payload, timeout_seconds)

    async def invoke_async(self, name: str, payload: Any = None) -> str:
        return await self._invoke_async(name, payload)

    async def schedule(self, name: str, cron: str, payload: Any = None) -> str:
        return await self._schedule(name, cron, payload)

    async def get_logs(self, name: str, limit: int = 100) -> List[LogEntry]:
        return await self._get_logs(name, limit)

    async def get_execution(self, execution_id: str) -> Optional[FunctionExecution]:
        return await self._get_execution(execution_id)

    async def initialize(self) -> None:
        await self.raw.initialize()

    async def shutdown(self) -> None:
        await self.raw.shutdown()

    async def health_check(self) -> HealthCheckResult:
        return await self.raw.health_check()


class ResilientNotificationProvider(NotificationProvider):
    def __init__(self, raw: NotificationProvider, pipeline: OperationPipeline):
        self.raw = raw
        self._send_email = pipeline.wrap(
            OperationName.NOTIFY_SEND_EMAIL, raw.send_email
        )
        self._send_templated_email = pipeline.wrap(
            OperationName.NOTIFY_SEND_TEMPLATED_EMAIL, raw.send_templated_email
        )
        self._send_sms = pipeline.wrap(OperationName.NOTIFY_SEND_SMS, raw.send_sms)
        self._send_push = pipeline.wrap(OperationName.NOTIFY_SEND_PUSH, raw.send_push)
        self._subscribe_to_topic = pipeline.wrap(
            OperationName.NOTIFY_SUBSCRIBE_TO_TOPIC, raw.subscribe_to_topic
        )

    async def send_email(self, message: EmailMessage) -> str:
        return await self._send_email(message)

    async def send_templated_email(
        self, template: str, to: Sequence[str], variables: Dict[str, Any]
    ) -> str:
        return await self._send_templated_email(template, to, variables)

    async def send_sms(self, to: str, message: str) -> str:
        return await self._send_sms(to, message)

    async def send_push(self, user_id: str, notification: PushNotification) -> str:
        return await self._send_push(user_id, notification)

    async def subscribe_to_topic(self, user_id: str, topic: str) -> None:
        await self._subscribe_to_topic(user_id, topic)

    async def initialize(self) -> None:
        await self.raw.initialize()

    async def shutdown(self) -> None:
        await self.raw.shutdown()

    async def health_check(self) -> HealthCheckResult:
        return await self.raw.health_check()


class ResilientDeploymentProvider(DeploymentProvider):
    def __init__(self, raw: DeploymentProvider, pipeline: OperationPipeline):
        self.raw = raw
        self._deploy = pipeline.wrap(OperationName.DEPLOY_DEPLOY, raw.deploy)
        self._get_status = pipeline.wrap(
            OperationName.DEPLOY_GET_STATUS, raw.get_status
        )
        self._list_deployments = pipeline.wrap(
            OperationName.DEPLOY_LIST, raw.list_deployments
        )
        self._rollback = pipeline.wrap(OperationName.DEPLOY_ROLLBACK, raw.rollback)
        self._get_logs = pipeline.wrap(OperationName.DEPLOY_GET_LOGS, raw.get_logs)
        self._delete = pipeline.wrap(OperationName.DEPLOY_DELETE, raw.delete)

    async def deploy(
        self, project_id: str, config: DeploymentConfig
    ) -> DeploymentResult:
        return await self._deploy(project_id, config)

    async def get_status(self, deployment_id: str) -> DeploymentStatus:
        return await self._get_status(deployment_id)

    async def list_deployments(
        self, project_id: Optional[str] = None
    ) -> List[DeploymentStatus]:
        return await self._list_deployments(project_id)

    async def rollback(self, deployment_id: str) -> DeploymentResult:
        return await self._rollback(deployment_id)

    async def get_logs(
        self, deployment_id: str, limit: Optional[int] = None
    ) -> List[str]:
        return await self._get_logs(deployment_id, limit)

    async def delete(self, deployment_id: str) -> None:
        await self._delete(deployment_id)

    async def initialize(self) -> None:
        await self.raw.initialize()

    async def shutdown(self) -> None:
        await self.raw.shutdown()

    async def health_check(self) -> HealthCheckResult:
        return await self.raw.health_check()


class ResilientBackend(BackendProvider):
    """A raw backend with every operation composed through the pipeline.

    Lifecycle calls (initialize, shutdown, health_check) go straight to the
    raw backend.
    """

    def __init__(self, raw: BackendProvider, pipeline: OperationPipeline):
        self.raw = raw
        self.kind = raw.kind
        self.pipeline = pipeline
        self.auth = ResilientAuthProvider(raw.auth, pipeline)
        self.database = ResilientDatabaseProvider(raw.database, pipeline)
        self.storage = ResilientStorageProvider(raw.storage, pipeline)
        self.realtime = ResilientRealtimeProvider(raw.realtime, pipeline)
        self.functions = ResilientFunctionProvider(raw.functions, pipeline)
        self.notifications = ResilientNotificationProvider(raw.notifications, pipeline)
        self.deployment = ResilientDeploymentProvider(raw.deployment, pipeline)

    @property
    def cache_namespace(self) -> str:
        return self.raw.cache_namespace

    async def initialize(self) -> None:
        await self.raw.initialize()

    async def shutdown(self) -> None:
        await self.raw.shutdown()

    async def health_check(self) -> HealthCheckResult:
        return await self.raw.health_check()
