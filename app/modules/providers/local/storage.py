"""In-process object storage with HMAC-signed URLs."""

import hashlib
import hmac
import secrets
import time
from dataclasses import replace
from typing import Callable, Dict, Optional, Tuple
from urllib.parse import parse_qs, quote, unquote, urlsplit

from infrastructure.resilience.errors import InvalidArgumentError, NotFoundError
from modules.providers.contracts import StorageProvider
from modules.providers.models import (
    FileInfo,
    FileListResult,
    FileMetadata,
    HealthCheckResult,
    utcnow,
)


class LocalStorageProvider(StorageProvider):
    """Blob store keyed by path.

    Args:
        base_url: Prefix of generated signed URLs
        signing_key: HMAC key; random per instance when omitted
        clock: Returns epoch seconds, used for URL expiry
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8080/storage",
        signing_key: Optional[bytes] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.base_url = base_url.rstrip("/")
        self._signing_key = signing_key or secrets.token_bytes(32)
        self._clock = clock
        self._files: Dict[str, Tuple[bytes, FileInfo]] = {}

    @staticmethod
    def _normalize(path: str) -> str:
        normalized = path.strip().lstrip("/")
        if not normalized or ".." in normalized.split("/"):
            raise InvalidArgumentError(f"Invalid storage path: {path!r}")
        return normalized

    def _entry(self, path: str) -> Tuple[bytes, FileInfo]:
        key = self._normalize(path)
        if key not in self._files:
            raise NotFoundError(f"File not found: {key}")
        return self._files[key]

    async def upload(
        self, path: str, data: bytes, metadata: Optional[FileMetadata] = None
    ) -> FileInfo:
        key = self._normalize(path)
        metadata = metadata or FileMetadata()
        info = FileInfo(
            path=key,
            size=len(data),
            content_type=metadata.content_type or "application/octet-stream",
            etag=hashlib.md5(data, usedforsecurity=False).hexdigest(),
            last_modified=utcnow(),
            metadata=dict(metadata.metadata),
        )
        self._files[key] = (bytes(data), info)
        return replace(info)

    async def download(self, path: str) -> bytes:
        return self._entry(path)[0]

    async def delete(self, path: str) -> None:
        self._files.pop(self._normalize(path), None)

    async def list(
        self,
        prefix: str = "",
        max_results: int = 1000,
        page_token: Optional[str] = None,
    ) -> FileListResult:
        if max_results <= 0:
            raise InvalidArgumentError("max_results must be positive")
        try:
            start = int(page_token) if page_token else 0
        except ValueError as e:
            raise InvalidArgumentError(f"Invalid page token: {page_token!r}") from e
        prefix = prefix.lstrip("/")
        paths = sorted(p for p in self._files if p.startswith(prefix))
        end = start + max_results
        return FileListResult(
            files=[replace(self._files[p][1]) for p in paths[start:end]],
            next_page_token=str(end) if end < len(paths) else None,
        )

    def _signature(self, key: str, expires: int) -> str:
        message = f"{key}:{expires}".encode("utf-8")
        return hmac.new(self._signing_key, message, hashlib.sha256).hexdigest()

    async def signed_url(self, path: str, expires_in_seconds: int = 3600) -> str:
        key = self._entry(path)[1].path
        expires = int(self._clock()) + expires_in_seconds
        signature = self._signature(key, expires)
        return f"{self.base_url}/{quote(key)}?expires={expires}&signature={signature}"

    def verify_signed_url(self, url: str) -> bool:
        """Check the signature and expiry of a URL produced by ``signed_url``."""
        parts = urlsplit(url)
        prefix = urlsplit(self.base_url).path.rstrip("/") + "/"
        if not parts.path.startswith(prefix):
            return False
        key = unquote(parts.path[len(prefix):])
        params = parse_qs(parts.query)
        try:
            expires = int(params["expires"][0])
            signature = params["signature"][0]
        except (KeyError, IndexError, ValueError):
            return False
        if expires < self._clock():
            return False
        return hmac.compare_digest(signature, self._signature(key, expires))

    async def copy(self, source_path: str, destination_path: str) -> FileInfo:
        data, info = self._entry(source_path)
        return await self.upload(
            destination_path,
            data,
            FileMetadata(content_type=info.content_type, metadata=dict(info.metadata)),
        )

    async def move(self, source_path: str, destination_path: str) -> FileInfo:
        info = await self.copy(source_path, destination_path)
        await self.delete(source_path)
        return info

    async def get_metadata(self, path: str) -> FileInfo:
        return replace(self._entry(path)[1])

    async def health_check(self) -> HealthCheckResult:
        total = sum(info.size for _, info in self._files.values())
        return HealthCheckResult(
            healthy=True,
            status="healthy",
            details={"files": len(self._files), "bytes": total},
        )
