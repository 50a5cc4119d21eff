"""Object store abstraction: backends, failure classes and the retrying client."""

from .base import (
    AccessDeniedError,
    FailureKind,
    InvalidKeyError,
    ObjectInfo,
    ObjectMetadata,
    ObjectNotFoundError,
    PutResult,
    StorageBackend,
    StorageError,
    TransientStorageError,
    UnknownStorageError,
    validate_key,
)
from .client import ObjectStoreClient, StorageStats, format_bytes
from .easy import easy_storage, easy_storage_backend

__all__ = [
    "AccessDeniedError",
    "FailureKind",
    "InvalidKeyError",
    "ObjectInfo",
    "ObjectMetadata",
    "ObjectNotFoundError",
    "PutResult",
    "StorageBackend",
    "StorageError",
    "TransientStorageError",
    "UnknownStorageError",
    "validate_key",
    "ObjectStoreClient",
    "StorageStats",
    "format_bytes",
    "easy_storage",
    "easy_storage_backend",
]
