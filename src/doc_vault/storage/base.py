"""Object store contract and failure classes.

The store is treated as a flat, strongly consistent ``path -> blob`` map in a
single bucket. Backends translate provider failures into one of four kinds so
callers can decide what is safe to retry.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Protocol, runtime_checkable

from doc_vault.exceptions import StorageError

MAX_KEY_LENGTH = 1024


class FailureKind(str, Enum):
    NOT_FOUND = "not_found"
    ACCESS_DENIED = "access_denied"
    TRANSIENT = "transient"
    UNKNOWN = "unknown"


class ObjectNotFoundError(StorageError):
    kind = FailureKind.NOT_FOUND
    code = "OBJECT_NOT_FOUND"


class AccessDeniedError(StorageError):
    kind = FailureKind.ACCESS_DENIED
    code = "STORAGE_ACCESS_DENIED"


class TransientStorageError(StorageError):
    """Network failure or 5xx; safe to retry."""

    kind = FailureKind.TRANSIENT
    code = "STORAGE_UNAVAILABLE"


class UnknownStorageError(StorageError):
    kind = FailureKind.UNKNOWN


class InvalidKeyError(StorageError):
    kind = FailureKind.UNKNOWN
    code = "INVALID_STORAGE_KEY"


@dataclass(frozen=True)
class PutResult:
    etag: str | None
    version_id: str | None = None


@dataclass(frozen=True)
class ObjectInfo:
    path: str
    size: int
    last_modified: datetime | None = None
    etag: str | None = None


@dataclass(frozen=True)
class ObjectMetadata:
    """What a HEAD request reports: everything about the object but its body."""

    path: str
    size: int
    content_type: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    last_modified: datetime | None = None
    etag: str | None = None


@dataclass
class StoredObject:
    data: bytes
    content_type: str
    metadata: dict[str, str] = field(default_factory=dict)
    last_modified: datetime | None = None
    etag: str | None = None


def validate_key(path: str) -> str:
    if not path:
        raise InvalidKeyError("Storage key must not be empty", path=path)
    if path.startswith("/"):
        raise InvalidKeyError("Storage key must not start with '/'", path=path)
    if ".." in path.split("/"):
        raise InvalidKeyError("Storage key must not contain '..' segments", path=path)
    if len(path) > MAX_KEY_LENGTH:
        raise InvalidKeyError(f"Storage key exceeds {MAX_KEY_LENGTH} characters", path=path)
    return path


@runtime_checkable
class StorageBackend(Protocol):
    async def put(
        self,
        path: str,
        data: bytes,
        content_type: str,
        metadata: dict[str, str] | None = None,
    ) -> PutResult: ...

    async def get(self, path: str) -> bytes: ...

    async def delete(self, path: str) -> bool: ...

    async def head(self, path: str) -> ObjectMetadata: ...

    async def exists(self, path: str) -> bool: ...

    async def list(self, prefix: str = "", max_keys: int = 1000) -> list[ObjectInfo]: ...

    async def presigned_url(self, path: str, expires_in: int = 300) -> str: ...


__all__ = [
    "FailureKind",
    "StorageBackend",
    "StoredObject",
    "PutResult",
    "ObjectInfo",
    "ObjectMetadata",
    "ObjectNotFoundError",
    "AccessDeniedError",
    "TransientStorageError",
    "UnknownStorageError",
    "InvalidKeyError",
    "StorageError",
    "validate_key",
]
