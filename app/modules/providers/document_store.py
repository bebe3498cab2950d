"""Database provider over cursor-paginated document stores.

Firestore and DynamoDB expose the same essential shape: point reads and
writes by id, size-limited atomic batches, and filtered scans paged by an
opaque cursor. ``DocumentStoreDatabase`` implements the uniform
``DatabaseProvider`` contract over any ``DocumentStoreClient`` (the thin SDK
seam supplied by the caller), parameterized by a ``StoreDialect``.

Query translation:
    - Filters the dialect supports are pushed down to the store; the rest
      are applied client-side.
    - When everything is native, ``offset`` is synthesized by advancing the
      store cursor and discarding documents. Large offsets therefore cost
      one page fetch per ``max_page_size`` skipped documents.
    - When any filter or the sort order cannot be pushed down, every
      matching page is fetched and paged in-process; cursors are then
      positional (``offset:<n>``).
"""

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import (
    Awaitable,
    Callable,
    FrozenSet,
    List,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
)

from infrastructure.logging import get_module_logger
from infrastructure.resilience.errors import InvalidArgumentError, NotFoundError
from modules.providers.contracts import DatabaseProvider, Document, Transaction
from modules.providers.models import (
    FilterOperator,
    HealthCheckResult,
    OrderBy,
    QueryFilter,
    QueryOptions,
    QueryResult,
)
from modules.providers.query import apply_query, matches_all, split_filters

logger = get_module_logger()

T = TypeVar("T")

OFFSET_CURSOR_PREFIX = "offset:"


@dataclass(frozen=True)
class StoreDialect:
    """Capabilities of one document store family.

    Attributes:
        name: Backend kind
        max_batch_size: Largest atomic batch the store accepts
        native_operators: Filter operators the store evaluates server-side
        native_sort: Whether the store can order scan results
        max_page_size: Largest page requested per fetch
    """

    name: str
    max_batch_size: int
    native_operators: FrozenSet[FilterOperator]
    native_sort: bool
    max_page_size: int = 1000


FIREBASE_DIALECT = StoreDialect(
    name="firebase",
    max_batch_size=500,
    native_operators=frozenset(
        {
            FilterOperator.EQ,
            FilterOperator.NE,
            FilterOperator.LT,
            FilterOperator.LTE,
            FilterOperator.GT,
            FilterOperator.GTE,
            FilterOperator.IN,
            FilterOperator.NOT_IN,
            FilterOperator.ARRAY_CONTAINS,
        }
    ),
    native_sort=True,
)

AWS_DIALECT = StoreDialect(
    name="aws",
    max_batch_size=25,
    native_operators=frozenset(
        {
            FilterOperator.EQ,
            FilterOperator.NE,
            FilterOperator.LT,
            FilterOperator.LTE,
            FilterOperator.GT,
            FilterOperator.GTE,
            FilterOperator.IN,
            FilterOperator.CONTAINS,
        }
    ),
    native_sort=False,
)


@dataclass
class DocumentPage:
    """One page of a store scan."""

    documents: List[Document]
    next_cursor: Optional[str] = None


@dataclass
class BatchWrite:
    """One write inside an atomic batch.

    Attributes:
        action: ``"create"``, ``"update"`` or ``"delete"``
    """

    action: str
    collection: str
    doc_id: str
    data: Document = field(default_factory=dict)


class DocumentStoreClient(ABC):
    """Thin seam over a vendor document store SDK.

    Implementations translate vendor errors into the backend error taxonomy
    (``NotFoundError``, ``ConflictError``, ``TransientBackendError``...).
    Documents returned include their ``id`` key.
    """

    @abstractmethod
    async def get_document(self, collection: str, doc_id: str) -> Optional[Document]:
        pass

    @abstractmethod
    async def create_document(self, collection: str, doc_id: str, data: Document) -> None:
        """Raises ConflictError if the id already exists."""

    @abstractmethod
    async def update_document(
        self, collection: str, doc_id: str, data: Document
    ) -> Document:
        """Merge fields and return the stored document. Raises NotFoundError."""

    @abstractmethod
    async def delete_document(self, collection: str, doc_id: str) -> None:
        pass

    @abstractmethod
    async def fetch_page(
        self,
        collection: str,
        filters: Sequence[QueryFilter],
        order_by: Sequence[OrderBy],
        page_size: int,
        cursor: Optional[str] = None,
    ) -> DocumentPage:
        """Scan one page using only filters and ordering the dialect supports."""

    @abstractmethod
    async def commit_batch(self, writes: Sequence[BatchWrite]) -> None:
        """Apply writes atomically; never called with more than the dialect ceiling."""

    @abstractmethod
    async def list_collections(self) -> List[str]:
        pass

    async def count(
        self, collection: str, filters: Sequence[QueryFilter]
    ) -> Optional[int]:
        """Native count, or None when the store has no aggregation."""
        return None

    async def ping(self) -> bool:
        return True


class DocumentStoreTransaction(Transaction):
    """Reads pass through immediately; writes are staged until commit."""

    def __init__(self, client: DocumentStoreClient):
        self._client = client
        self.writes: List[BatchWrite] = []

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        return await self._client.get_document(collection, doc_id)

    def create(self, collection: str, data: Document, doc_id: Optional[str] = None) -> str:
        new_id = doc_id or data.get("id") or uuid.uuid4().hex
        self.writes.append(BatchWrite("create", collection, new_id, {**data, "id": new_id}))
        return new_id

    def update(self, collection: str, doc_id: str, data: Document) -> None:
        self.writes.append(BatchWrite("update", collection, doc_id, dict(data)))

    def delete(self, collection: str, doc_id: str) -> None:
        self.writes.append(BatchWrite("delete", collection, doc_id))


class DocumentStoreDatabase(DatabaseProvider):
    """Uniform database contract over a document store client.

    Args:
        client: SDK seam for the concrete store
        dialect: Capabilities of the store family
    """

    def __init__(self, client: DocumentStoreClient, dialect: StoreDialect):
        self.client = client
        self.dialect = dialect

    @property
    def max_batch_size(self) -> int:  # type: ignore[override]
        return self.dialect.max_batch_size

    async def create(
        self, collection: str, data: Document, doc_id: Optional[str] = None
    ) -> Document:
        new_id = str(doc_id or data.get("id") or uuid.uuid4().hex)
        document = {**data, "id": new_id}
        await self.client.create_document(collection, new_id, document)
        return document

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        return await self.client.get_document(collection, doc_id)

    async def update(self, collection: str, doc_id: str, data: Document) -> Document:
        changes = {k: v for k, v in data.items() if k != "id"}
        return await self.client.update_document(collection, doc_id, changes)

    async def delete(self, collection: str, doc_id: str) -> None:
        await self.client.delete_document(collection, doc_id)

    async def query(
        self, collection: str, options: Optional[QueryOptions] = None
    ) -> QueryResult:
        options = options or QueryOptions()
        native, residual = split_filters(options.filters, set(self.dialect.native_operators))
        sort_pushdown = self.dialect.native_sort or not options.order_by

        if residual or not sort_pushdown:
            return await self._query_in_process(collection, options, native)
        return await self._query_native(collection, options, native)

    async def _scan_all(
        self, collection: str, native: Sequence[QueryFilter], order_by: Sequence[OrderBy]
    ) -> List[Document]:
        documents: List[Document] = []
        cursor: Optional[str] = None
        while True:
            page = await self.client.fetch_page(
                collection, native, order_by, self.dialect.max_page_size, cursor
            )
            documents.extend(page.documents)
            if not page.next_cursor:
                return documents
            cursor = page.next_cursor

    async def _query_in_process(
        self, collection: str, options: QueryOptions, native: List[QueryFilter]
    ) -> QueryResult:
        order_pushdown = options.order_by if self.dialect.native_sort else []
        documents = await self._scan_all(collection, native, order_pushdown)

        cursor = None
        if options.cursor:
            if not options.cursor.startswith(OFFSET_CURSOR_PREFIX):
                raise InvalidArgumentError(
                    f"Cursor {options.cursor!r} was not issued for this query"
                )
            cursor = options.cursor[len(OFFSET_CURSOR_PREFIX):]

        logger.debug(
            "document_store_query_in_process",
            dialect=self.dialect.name,
            collection=collection,
            scanned=len(documents),
        )
        result = apply_query(
            documents,
            QueryOptions(
                filters=options.filters,
                order_by=options.order_by,
                limit=options.limit,
                offset=options.offset,
                cursor=cursor,
            ),
        )
        if result.next_cursor is not None:
            result.next_cursor = f"{OFFSET_CURSOR_PREFIX}{result.next_cursor}"
        return result

    async def _query_native(
        self, collection: str, options: QueryOptions, native: List[QueryFilter]
    ) -> QueryResult:
        cursor = options.cursor
        if cursor and cursor.startswith(OFFSET_CURSOR_PREFIX):
            raise InvalidArgumentError(f"Cursor {cursor!r} was not issued for this query")

        # Page sizes never exceed what is still wanted, so no page is ever
        # split and the store cursor always resumes exactly where we stopped.
        to_skip = options.offset
        pages_for_offset = 0
        while to_skip > 0:
            page = await self.client.fetch_page(
                collection,
                native,
                options.order_by,
                min(self.dialect.max_page_size, to_skip),
                cursor,
            )
            pages_for_offset += 1
            to_skip -= len(page.documents)
            cursor = page.next_cursor
            if not cursor:
                break

        if pages_for_offset:
            logger.debug(
                "document_store_offset_emulated",
                dialect=self.dialect.name,
                collection=collection,
                offset=options.offset,
                pages_fetched=pages_for_offset,
            )
            if not cursor:
                return QueryResult(items=[], total=None, next_cursor=None)

        items: List[Document] = []
        remaining = options.limit
        while remaining is None or remaining > 0:
            page_size = self.dialect.max_page_size
            if remaining is not None:
                page_size = min(page_size, remaining)
            page = await self.client.fetch_page(
                collection, native, options.order_by, page_size, cursor
            )
            items.extend(page.documents)
            if remaining is not None:
                remaining -= len(page.documents)
            cursor = page.next_cursor
            if not cursor:
                break

        return QueryResult(items=items, total=None, next_cursor=cursor or None)

    async def count(
        self, collection: str, filters: Optional[Sequence[QueryFilter]] = None
    ) -> int:
        filters = list(filters or [])
        native, residual = split_filters(filters, set(self.dialect.native_operators))
        if not residual:
            native_count = await self.client.count(collection, native)
            if native_count is not None:
                return native_count
        documents = await self._scan_all(collection, native, [])
        return sum(1 for doc in documents if matches_all(doc, residual))

    def _chunks(self, writes: List[BatchWrite]) -> List[List[BatchWrite]]:
        size = self.dialect.max_batch_size
        return [writes[i : i + size] for i in range(0, len(writes), size)]

    async def _commit_chunked(self, writes: List[BatchWrite]) -> None:
        for chunk in self._chunks(writes):
            await self.client.commit_batch(chunk)

    async def batch_create(self, collection: str, items: Sequence[Document]) -> List[Document]:
        documents = []
        writes = []
        for item in items:
            new_id = str(item.get("id") or uuid.uuid4().hex)
            document = {**item, "id": new_id}
            documents.append(document)
            writes.append(BatchWrite("create", collection, new_id, document))
        await self._commit_chunked(writes)
        return documents

    async def batch_update(
        self, collection: str, updates: Sequence[Tuple[str, Document]]
    ) -> None:
        writes = [BatchWrite("update", collection, doc_id, dict(data)) for doc_id, data in updates]
        await self._commit_chunked(writes)

    async def batch_delete(self, collection: str, doc_ids: Sequence[str]) -> None:
        writes = [BatchWrite("delete", collection, doc_id) for doc_id in doc_ids]
        await self._commit_chunked(writes)

    async def transaction(self, callback: Callable[[Transaction], Awaitable[T]]) -> T:
        """Run the callback and commit its staged writes as one batch.

        Raises:
            InvalidArgumentError: If the transaction stages more writes than
                one atomic batch accepts
        """
        tx = DocumentStoreTransaction(self.client)
        result = await callback(tx)
        if len(tx.writes) > self.dialect.max_batch_size:
            raise InvalidArgumentError(
                f"Transaction has {len(tx.writes)} writes; "
                f"{self.dialect.name} allows at most {self.dialect.max_batch_size}"
            )
        if tx.writes:
            await self.client.commit_batch(tx.writes)
        return result

    async def list_collections(self) -> List[str]:
        return await self.client.list_collections()

    async def health_check(self) -> HealthCheckResult:
        reachable = await self.client.ping()
        return HealthCheckResult(
            healthy=reachable,
            status="healthy" if reachable else "unhealthy",
            details={"dialect": self.dialect.name},
        )
