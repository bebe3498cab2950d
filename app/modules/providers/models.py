"""Provider data models.

Plain dataclasses exchanged across the provider contract. Every backend
returns these types so callers never see vendor SDK objects.

Models that are cached by the operation pipeline (``User``, ``QueryResult``,
``FileInfo``, ``FileListResult``) carry ``to_dict``/``from_dict`` so they
round-trip through the JSON-backed cache tiers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class BackendKind(str, Enum):
    """Known backend kinds."""

    LOCAL = "local"
    FIREBASE = "firebase"
    AWS = "aws"


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


@dataclass
class User:
    """A user account as seen through the provider contract."""

    id: str
    email: str
    name: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    disabled: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "disabled": self.disabled,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(
            id=data["id"],
            email=data["email"],
            name=data.get("name"),
            created_at=_parse(data.get("created_at")) or utcnow(),
            updated_at=_parse(data.get("updated_at")) or utcnow(),
            disabled=data.get("disabled", False),
            metadata=dict(data.get("metadata") or {}),
        )


@dataclass
class AuthSession:
    """Result of sign-up, sign-in or token refresh."""

    user: User
    token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None


@dataclass
class UserPage:
    """One page of users from ``list_users``."""

    users: List[User]
    next_page_token: Optional[str] = None


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


class FilterOperator(str, Enum):
    EQ = "="
    NE = "!="
    LT = "<"
    LTE = "<="
    GT = ">"
    GTE = ">="
    IN = "in"
    NOT_IN = "not-in"
    CONTAINS = "contains"
    ARRAY_CONTAINS = "array-contains"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass
class QueryFilter:
    """Filter on a (possibly dotted) document field."""

    field: str
    operator: FilterOperator
    value: Any

    def __post_init__(self) -> None:
        self.operator = FilterOperator(self.operator)

    def to_dict(self) -> Dict[str, Any]:
        return {"field": self.field, "operator": self.operator.value, "value": self.value}


@dataclass
class OrderBy:
    field: str
    direction: SortDirection = SortDirection.ASC

    def __post_init__(self) -> None:
        self.direction = SortDirection(self.direction)


@dataclass
class QueryOptions:
    """Uniform query parameters.

    Attributes:
        filters: Conjunction of filters
        order_by: Sort keys, applied in order
        limit: Maximum items returned; None means no limit
        offset: Items skipped after filtering and sorting
        cursor: Opaque continuation token from a previous ``QueryResult``
    """

    filters: List[QueryFilter] = field(default_factory=list)
    order_by: List[OrderBy] = field(default_factory=list)
    limit: Optional[int] = None
    offset: int = 0
    cursor: Optional[str] = None

    def __post_init__(self) -> None:
        if self.limit is not None and self.limit < 0:
            raise ValueError("limit must be >= 0")
        if self.offset < 0:
            raise ValueError("offset must be >= 0")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filters": [f.to_dict() for f in self.filters],
            "order_by": [[o.field, o.direction.value] for o in self.order_by],
            "limit": self.limit,
            "offset": self.offset,
            "cursor": self.cursor,
        }


@dataclass
class QueryResult:
    """One page of query results.

    ``total`` is the number of matching documents before paging when the
    backend can compute it cheaply, else None.
    """

    items: List[Dict[str, Any]]
    total: Optional[int] = None
    next_cursor: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"items": self.items, "total": self.total, "next_cursor": self.next_cursor}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QueryResult":
        return cls(
            items=list(data.get("items") or []),
            total=data.get("total"),
            next_cursor=data.get("next_cursor"),
        )


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------


@dataclass
class FileMetadata:
    content_type: Optional[str] = None
    cache_control: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass
class FileInfo:
    path: str
    size: int
    content_type: Optional[str] = None
    etag: Optional[str] = None
    last_modified: datetime = field(default_factory=utcnow)
    metadata: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "size": self.size,
            "content_type": self.content_type,
            "etag": self.etag,
            "last_modified": _iso(self.last_modified),
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FileInfo":
        return cls(
            path=data["path"],
            size=data["size"],
            content_type=data.get("content_type"),
            etag=data.get("etag"),
            last_modified=_parse(data.get("last_modified")) or utcnow(),
            metadata=dict(data.get("metadata") or {}),
        )


@dataclass
class FileListResult:
    files: List[FileInfo]
    next_page_token: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "files": [f.to_dict() for f in self.files],
            "next_page_token": self.next_page_token,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FileListResult":
        return cls(
            files=[FileInfo.from_dict(f) for f in data.get("files") or []],
            next_page_token=data.get("next_page_token"),
        )


# ---------------------------------------------------------------------------
# Realtime
# ---------------------------------------------------------------------------


@dataclass
class PresenceInfo:
    user_id: str
    connected_at: datetime = field(default_factory=utcnow)
    metadata: Dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Functions
# ---------------------------------------------------------------------------


class ExecutionStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMEOUT = "timeout"


@dataclass
class FunctionDefinition:
    name: str
    handler: str
    runtime: str = "python3"
    timeout_seconds: float = 60.0
    memory_mb: int = 256
    environment: Dict[str, str] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class FunctionResult:
    status_code: int
    body: Any = None
    headers: Dict[str, str] = field(default_factory=dict)
    execution_id: Optional[str] = None


@dataclass
class FunctionExecution:
    id: str
    function_name: str
    status: ExecutionStatus = ExecutionStatus.PENDING
    start_time: datetime = field(default_factory=utcnow)
    end_time: Optional[datetime] = None
    result: Any = None
    error: Optional[str] = None

    @property
    def duration_ms(self) -> Optional[float]:
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time).total_seconds() * 1000


@dataclass
class ScheduledFunction:
    schedule_id: str
    function_name: str
    cron: str
    payload: Any = None
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class LogEntry:
    timestamp: datetime
    level: str
    message: str
    metadata: Dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


@dataclass
class EmailAttachment:
    filename: str
    content: bytes
    content_type: Optional[str] = None


@dataclass
class EmailMessage:
    to: List[str]
    subject: str
    text: Optional[str] = None
    html: Optional[str] = None
    from_address: Optional[str] = None
    attachments: List[EmailAttachment] = field(default_factory=list)


@dataclass
class PushNotification:
    title: str
    body: str
    data: Dict[str, Any] = field(default_factory=dict)
    icon: Optional[str] = None
    badge: Optional[str] = None


# ---------------------------------------------------------------------------
# Deployment
# ---------------------------------------------------------------------------


class DeploymentState(str, Enum):
    PENDING = "pending"
    BUILDING = "building"
    DEPLOYING = "deploying"
    RUNNING = "running"
    FAILED = "failed"
    STOPPED = "stopped"
    ROLLED_BACK = "rolled_back"


@dataclass
class DeploymentConfig:
    environment: str = "development"
    app_type: str = "fullstack"
    source_path: Optional[str] = None
    version: Optional[str] = None
    environment_variables: Dict[str, str] = field(default_factory=dict)


@dataclass
class DeploymentResult:
    deployment_id: str
    status: DeploymentState
    url: Optional[str] = None
    start_time: datetime = field(default_factory=utcnow)
    end_time: Optional[datetime] = None
    logs: List[str] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class DeploymentStatus:
    deployment_id: str
    project_id: str
    status: DeploymentState
    environment: str
    version: Optional[str] = None
    url: Optional[str] = None
    health: str = "unknown"
    start_time: datetime = field(default_factory=utcnow)
    last_updated: datetime = field(default_factory=utcnow)


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


@dataclass
class HealthCheckResult:
    """Result of a provider health check.

    Attributes:
        healthy: Whether the provider is operational
        status: ``"healthy"``, ``"unhealthy"`` or ``"degraded"``
        details: Provider-specific details
    """

    healthy: bool
    status: str
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utcnow)
