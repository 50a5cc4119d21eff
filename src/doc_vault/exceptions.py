"""Error taxonomy for doc-vault.

Every failure the pipeline surfaces is a subclass of :class:`DocVaultError`.
Each carries a machine-readable ``code`` and a ``public_message`` that is safe
to show to callers; the ``str()`` of the exception may hold internal detail
and is meant for logs only.
"""

from __future__ import annotations

from typing import Iterable


class DocVaultError(Exception):
    """Base exception for all doc-vault errors."""

    code: str = "DOC_VAULT_ERROR"
    public_message: str = "The request could not be completed."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.public_message)


class ValidationError(DocVaultError):
    """Bad input, rejected before any side effect."""

    code = "VALIDATION_ERROR"
    public_message = "The uploaded file was rejected."

    def __init__(self, reasons: Iterable[str], message: str | None = None):
        self.reasons = list(reasons)
        super().__init__(message or "Upload validation failed: " + ", ".join(self.reasons))


class EncryptionError(DocVaultError):
    code = "ENCRYPTION_FAILED"
    public_message = "The document could not be encrypted."


class DecryptionError(DocVaultError):
    code = "DECRYPTION_FAILED"
    public_message = "The document could not be decrypted."


class StorageError(DocVaultError):
    """Object store operation failed (after retries, where applicable)."""

    code = "STORAGE_ERROR"
    public_message = "The storage service is unavailable."

    def __init__(
        self,
        message: str | None = None,
        *,
        path: str | None = None,
        provider_code: str | None = None,
    ):
        self.path = path
        self.provider_code = provider_code
        super().__init__(message)


class InvalidTokenError(DocVaultError):
    """Download token missing, expired, already used or bound elsewhere."""

    code = "INVALID_TOKEN"
    public_message = "The download link is invalid or has expired."


class CorruptedDocumentError(DocVaultError):
    """Stored content could not be decrypted or failed integrity verification."""

    code = "CORRUPTED_DOCUMENT"
    public_message = "The document could not be retrieved."


class NotFoundError(DocVaultError):
    """Document missing or not owned by the requester (deliberately identical)."""

    code = "NOT_FOUND"
    public_message = "Document not found."


class UploadTimeoutError(DocVaultError, TimeoutError):
    code = "UPLOAD_TIMEOUT"
    public_message = "The upload took too long to complete."


class InvalidTransitionError(DocVaultError):
    code = "INVALID_TRANSITION"

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Illegal document status transition: {current} -> {target}")


__all__ = [
    "DocVaultError",
    "ValidationError",
    "EncryptionError",
    "DecryptionError",
    "StorageError",
    "InvalidTokenError",
    "CorruptedDocumentError",
    "NotFoundError",
    "UploadTimeoutError",
    "InvalidTransitionError",
]
