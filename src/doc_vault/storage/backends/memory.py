from __future__ import annotations

import asyncio
import hashlib
from collections import Counter, defaultdict, deque
from datetime import datetime, timezone
from urllib.parse import quote

from ..base import (
    ObjectInfo,
    ObjectMetadata,
    ObjectNotFoundError,
    PutResult,
    StorageError,
    StoredObject,
    validate_key,
)


class MemoryBackend:
    """In-process object store.

    Useful for local development and tests. ``calls`` counts every operation by
    name, and :meth:`fail_next` queues provider errors for an operation so
    retry and failure paths can be exercised without a network.
    """

    def __init__(self) -> None:
        self._objects: dict[str, StoredObject] = {}
        self._lock = asyncio.Lock()
        self._faults: dict[str, deque[StorageError]] = defaultdict(deque)
        self.calls: Counter[str] = Counter()

    def fail_next(self, op: str, error: StorageError, *, times: int = 1) -> None:
        for _ in range(times):
            self._faults[op].append(error)

    def _enter(self, op: str) -> None:
        self.calls[op] += 1
        if self._faults[op]:
            raise self._faults[op].popleft()

    async def put(
        self,
        path: str,
        data: bytes,
        content_type: str,
        metadata: dict[str, str] | None = None,
    ) -> PutResult:
        self._enter("put")
        validate_key(path)
        etag = hashlib.md5(data).hexdigest()
        async with self._lock:
            self._objects[path] = StoredObject(
                data=bytes(data),
                content_type=content_type,
                metadata=dict(metadata or {}),
                last_modified=datetime.now(timezone.utc),
                etag=etag,
            )
        return PutResult(etag=etag)

    async def get(self, path: str) -> bytes:
        self._enter("get")
        obj = self._objects.get(path)
        if obj is None:
            raise ObjectNotFoundError(f"Object not found: {path}", path=path, provider_code="NoSuchKey")
        return obj.data

    async def head(self, path: str) -> ObjectMetadata:
        self._enter("head")
        obj = self._objects.get(path)
        if obj is None:
            raise ObjectNotFoundError(f"Object not found: {path}", path=path, provider_code="NoSuchKey")
        return ObjectMetadata(
            path=path,
            size=len(obj.data),
            content_type=obj.content_type,
            metadata=dict(obj.metadata),
            last_modified=obj.last_modified,
            etag=obj.etag,
        )

    async def delete(self, path: str) -> bool:
        self._enter("delete")
        async with self._lock:
            return self._objects.pop(path, None) is not None

    async def exists(self, path: str) -> bool:
        self._enter("exists")
        return path in self._objects

    async def list(self, prefix: str = "", max_keys: int = 1000) -> list[ObjectInfo]:
        self._enter("list")
        keys = sorted(k for k in self._objects if k.startswith(prefix))[:max_keys]
        return [
            ObjectInfo(
                path=k,
                size=len(self._objects[k].data),
                last_modified=self._objects[k].last_modified,
                etag=self._objects[k].etag,
            )
            for k in keys
        ]

    async def presigned_url(self, path: str, expires_in: int = 300) -> str:
        self._enter("presigned_url")
        if path not in self._objects:
            raise ObjectNotFoundError(f"Object not found: {path}", path=path, provider_code="NoSuchKey")
        return f"memory://{quote(path)}?expires_in={int(expires_in)}"
