from __future__ import annotations

import asyncio
import logging
import posixpath
from collections import Counter
from dataclasses import dataclass, field
from typing import Awaitable, Callable, TypeVar

from doc_vault.resilience import RetryConfig, RetryExhaustedError, retry_call

from .base import (
    ObjectInfo,
    ObjectMetadata,
    ObjectNotFoundError,
    PutResult,
    StorageBackend,
    StorageError,
    TransientStorageError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RETRY = RetryConfig(max_attempts=3, base_delay=0.2, max_delay=2.0, jitter=0.1)


def format_bytes(size: int, precision: int = 2) -> str:
    if size <= 0:
        return "0 B"
    suffixes = ["B", "KB", "MB", "GB", "TB"]
    base = 0
    while size >= 1024 ** (base + 1) and base < len(suffixes) - 1:
        base += 1
    value = round(size / (1024 ** base), precision)
    if value == int(value):
        value = int(value)
    return f"{value} {suffixes[base]}"


@dataclass
class StorageStats:
    total_size: int = 0
    file_count: int = 0
    type_breakdown: dict[str, int] = field(default_factory=dict)

    @property
    def formatted_size(self) -> str:
        return format_bytes(self.total_size)


class ObjectStoreClient:
    """Retrying, logging facade over a :class:`StorageBackend`.

    Only :class:`TransientStorageError` is retried. When attempts run out the
    last transient error is raised, so callers always see a ``StorageError``.
    Every failure is logged with the path and the provider error code.
    """

    def __init__(
        self,
        backend: StorageBackend,
        retry: RetryConfig | None = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.backend = backend
        self.retry = retry or DEFAULT_RETRY
        self._sleep = sleep

    async def _call(self, op: str, path: str, fn: Callable[[], Awaitable[T]]) -> T:
        def _on_retry(attempt: int, exc: Exception) -> None:
            logger.warning(
                "storage %s failed transiently; retrying",
                op,
                extra={
                    "event": f"storage.{op}.retry",
                    "path": path,
                    "attempt": attempt,
                    "provider_code": getattr(exc, "provider_code", None),
                },
            )

        try:
            return await retry_call(
                fn,
                self.retry,
                retry_on=(TransientStorageError,),
                on_retry=_on_retry,
                sleep=self._sleep,
            )
        except RetryExhaustedError as exc:
            last = exc.last_exception
            logger.error(
                "storage %s failed after %d attempts: %s",
                op,
                exc.attempts,
                last,
                extra={
                    "event": f"storage.{op}.exhausted",
                    "path": path,
                    "provider_code": getattr(last, "provider_code", None),
                },
            )
            raise last from exc
        except ObjectNotFoundError:
            logger.info("storage %s: object not found", op, extra={"event": f"storage.{op}.not_found", "path": path})
            raise
        except StorageError as exc:
            logger.error(
                "storage %s failed: %s",
                op,
                exc,
                extra={"event": f"storage.{op}.failed", "path": path, "provider_code": exc.provider_code},
            )
            raise

    async def put(
        self,
        path: str,
        data: bytes,
        content_type: str,
        metadata: dict[str, str] | None = None,
    ) -> PutResult:
        return await self._call(
            "put", path, lambda: self.backend.put(path, data, content_type, metadata)
        )

    async def get(self, path: str) -> bytes:
        return await self._call("get", path, lambda: self.backend.get(path))

    async def head(self, path: str) -> ObjectMetadata:
        return await self._call("head", path, lambda: self.backend.head(path))

    async def delete(self, path: str) -> bool:
        return await self._call("delete", path, lambda: self.backend.delete(path))

    async def exists(self, path: str) -> bool:
        return await self._call("exists", path, lambda: self.backend.exists(path))

    async def list(self, prefix: str = "", max_keys: int = 1000) -> list[ObjectInfo]:
        return await self._call("list", prefix, lambda: self.backend.list(prefix, max_keys))

    async def presigned_url(self, path: str, ttl: int = 300) -> str:
        return await self._call("presigned_url", path, lambda: self.backend.presigned_url(path, ttl))

    async def stats(self, prefix: str = "", max_keys: int = 10_000) -> StorageStats:
        """Aggregate size and per-extension counts for objects under ``prefix``."""
        objects = await self.list(prefix, max_keys)
        breakdown: Counter[str] = Counter()
        for obj in objects:
            ext = posixpath.splitext(obj.path)[1].lstrip(".").lower()
            breakdown[ext] += 1
        return StorageStats(
            total_size=sum(o.size for o in objects),
            file_count=len(objects),
            type_breakdown=dict(breakdown),
        )
