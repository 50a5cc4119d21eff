from . import app

from .crypto import EncryptionEngine
from .documents import (
    Document,
    DocumentPipeline,
    DocumentStatus,
    UploadFile,
    UploadMetadata,
)
from .easy import easy_token_store, easy_vault
from .exceptions import (
    CorruptedDocumentError,
    DecryptionError,
    DocVaultError,
    EncryptionError,
    InvalidTokenError,
    NotFoundError,
    StorageError,
    UploadTimeoutError,
    ValidationError,
)
from .storage import ObjectStoreClient
from .tokens import DownloadTokenBroker

__all__ = [
    "app",
    # Components
    "EncryptionEngine",
    "ObjectStoreClient",
    "DownloadTokenBroker",
    "DocumentPipeline",
    "Document",
    "DocumentStatus",
    "UploadFile",
    "UploadMetadata",
    # Wiring
    "easy_vault",
    "easy_token_store",
    # Errors
    "DocVaultError",
    "ValidationError",
    "EncryptionError",
    "DecryptionError",
    "StorageError",
    "InvalidTokenError",
    "CorruptedDocumentError",
    "NotFoundError",
    "UploadTimeoutError",
]
