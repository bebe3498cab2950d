"""In-process document database.

Collections are dicts of JSON-compatible documents guarded by one
``asyncio.Lock``. When ``data_path`` is set, the whole store is loaded from
that JSON file on ``initialize`` and written back after every mutation in a
worker thread.
"""

import asyncio
import copy
import json
import uuid
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

from infrastructure.logging import get_module_logger
from infrastructure.resilience.errors import ConflictError, NotFoundError
from modules.providers.contracts import DatabaseProvider, Document, Transaction
from modules.providers.models import (
    HealthCheckResult,
    QueryFilter,
    QueryOptions,
    QueryResult,
    utcnow,
)
from modules.providers.query import apply_query, matches_all

logger = get_module_logger()

T = TypeVar("T")


def _stamp(document: Document) -> Document:
    now = utcnow().isoformat()
    document.setdefault("created_at", now)
    document.setdefault("updated_at", now)
    return document


class LocalTransaction(Transaction):
    def __init__(self, database: "LocalDatabaseProvider"):
        self._database = database
        self.writes: List[Tuple[str, str, str, Document]] = []

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        return await self._database.get(collection, doc_id)

    def create(self, collection: str, data: Document, doc_id: Optional[str] = None) -> str:
        new_id = str(doc_id or data.get("id") or uuid.uuid4().hex)
        self.writes.append(("create", collection, new_id, dict(data)))
        return new_id

    def update(self, collection: str, doc_id: str, data: Document) -> None:
        self.writes.append(("update", collection, doc_id, dict(data)))

    def delete(self, collection: str, doc_id: str) -> None:
        self.writes.append(("delete", collection, doc_id, {}))


class LocalDatabaseProvider(DatabaseProvider):
    """Document database held in process memory.

    Args:
        data_path: Optional JSON file used to persist the store
        max_batch_size: Ceiling for one batch call
    """

    def __init__(self, data_path: Optional[str] = None, max_batch_size: int = 500):
        self.data_path = Path(data_path) if data_path else None
        self.max_batch_size = max_batch_size
        self._collections: Dict[str, Dict[str, Document]] = {}
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        if self.data_path is None or not self.data_path.exists():
            return
        raw = await asyncio.to_thread(self.data_path.read_text, encoding="utf-8")
        self._collections = json.loads(raw) if raw.strip() else {}
        logger.info(
            "local_database_loaded",
            path=str(self.data_path),
            collections=len(self._collections),
        )

    async def shutdown(self) -> None:
        async with self._lock:
            await self._persist()

    async def _persist(self) -> None:
        if self.data_path is None:
            return
        payload = json.dumps(self._collections, default=str, indent=2)
        await asyncio.to_thread(self._write, payload)

    def _write(self, payload: str) -> None:
        self.data_path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.data_path.with_suffix(self.data_path.suffix + ".tmp")
        tmp.write_text(payload, encoding="utf-8")
        tmp.replace(self.data_path)

    def _collection(self, name: str) -> Dict[str, Document]:
        return self._collections.setdefault(name, {})

    def _insert(self, collection: str, data: Document, doc_id: Optional[str]) -> Document:
        new_id = str(doc_id or data.get("id") or uuid.uuid4().hex)
        docs = self._collection(collection)
        if new_id in docs:
            raise ConflictError(f"Document {collection}/{new_id} already exists")
        document = _stamp({**copy.deepcopy(data), "id": new_id})
        docs[new_id] = document
        return copy.deepcopy(document)

    def _merge(self, collection: str, doc_id: str, data: Document) -> Document:
        docs = self._collections.get(collection, {})
        if doc_id not in docs:
            raise NotFoundError(f"Document {collection}/{doc_id} not found")
        changes = {k: v for k, v in copy.deepcopy(data).items() if k != "id"}
        changes.setdefault("updated_at", utcnow().isoformat())
        docs[doc_id].update(changes)
        return copy.deepcopy(docs[doc_id])

    async def create(
        self, collection: str, data: Document, doc_id: Optional[str] = None
    ) -> Document:
        async with self._lock:
            document = self._insert(collection, data, doc_id)
            await self._persist()
            return document

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        document = self._collections.get(collection, {}).get(doc_id)
        return copy.deepcopy(document) if document is not None else None

    async def update(self, collection: str, doc_id: str, data: Document) -> Document:
        async with self._lock:
            document = self._merge(collection, doc_id, data)
            await self._persist()
            return document

    async def delete(self, collection: str, doc_id: str) -> None:
        async with self._lock:
            self._collections.get(collection, {}).pop(doc_id, None)
            await self._persist()

    async def query(
        self, collection: str, options: Optional[QueryOptions] = None
    ) -> QueryResult:
        documents = list(self._collections.get(collection, {}).values())
        result = apply_query(documents, options)
        result.items = copy.deepcopy(result.items)
        return result

    async def count(
        self, collection: str, filters: Optional[Sequence[QueryFilter]] = None
    ) -> int:
        documents = self._collections.get(collection, {}).values()
        return sum(1 for doc in documents if matches_all(doc, filters or []))

    async def batch_create(self, collection: str, items: Sequence[Document]) -> List[Document]:
        async with self._lock:
            docs = self._collection(collection)
            ids = [str(item.get("id")) for item in items if item.get("id")]
            clashes = [i for i in ids if i in docs] or [i for i in set(ids) if ids.count(i) > 1]
            if clashes:
                raise ConflictError(f"Documents already exist in {collection}: {clashes}")
            created = [self._insert(collection, item, None) for item in items]
            await self._persist()
            return created

    async def batch_update(
        self, collection: str, updates: Sequence[Tuple[str, Document]]
    ) -> None:
        async with self._lock:
            docs = self._collections.get(collection, {})
            missing = [doc_id for doc_id, _ in updates if doc_id not in docs]
            if missing:
                raise NotFoundError(f"Documents not found in {collection}: {missing}")
            for doc_id, data in updates:
                self._merge(collection, doc_id, data)
            await self._persist()

    async def batch_delete(self, collection: str, doc_ids: Sequence[str]) -> None:
        async with self._lock:
            docs = self._collections.get(collection, {})
            for doc_id in doc_ids:
                docs.pop(doc_id, None)
            await self._persist()

    async def transaction(self, callback: Callable[[Transaction], Awaitable[T]]) -> T:
        """Run the callback, then apply its staged writes all-or-nothing."""
        tx = LocalTransaction(self)
        result = await callback(tx)
        async with self._lock:
            snapshot = copy.deepcopy(self._collections)
            try:
                for action, collection, doc_id, data in tx.writes:
                    if action == "create":
                        self._insert(collection, data, doc_id)
                    elif action == "update":
                        self._merge(collection, doc_id, data)
                    else:
                        self._collections.get(collection, {}).pop(doc_id, None)
            except Exception:
                self._collections = snapshot
                raise
            await self._persist()
        return result

    async def list_collections(self) -> List[str]:
        return sorted(name for name, docs in self._collections.items() if docs)

    async def health_check(self) -> HealthCheckResult:
        return HealthCheckResult(
            healthy=True,
            status="healthy",
            details={
                "collections": len(self._collections),
                "persistent": self.data_path is not None,
            },
        )
