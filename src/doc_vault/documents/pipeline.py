"""Upload and download orchestration for encrypted documents.

Upload: validate -> read -> hash -> encrypt + wrap key -> store blob ->
persist record (``processing``) -> post-process (``ready`` / ``failed``).

Download: :meth:`DocumentPipeline.request_download` mints a single-use token
for the owner; :meth:`DocumentPipeline.fetch` consumes it, pulls the blob,
unwraps the key, decrypts and re-verifies the content hash.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import AsyncIterator, Awaitable, Callable
from urllib.parse import quote

from doc_vault.crypto import EncryptionEngine
from doc_vault.exceptions import (
    CorruptedDocumentError,
    DecryptionError,
    InvalidTransitionError,
    NotFoundError,
    StorageError,
    UploadTimeoutError,
    ValidationError,
)
from doc_vault.storage import ObjectNotFoundError, ObjectStoreClient
from doc_vault.tokens import DownloadTokenBroker

from .models import (
    Document,
    DocumentStatus,
    DownloadGrant,
    UploadMetadata,
    UploadReceipt,
    can_transition,
    derive_document_name,
)
from .paths import is_valid_segment, storage_path
from .processing import ProcessingRunner
from .repository import DocumentRepository
from .validation import UploadPolicy, safe_filename, validate_upload

logger = logging.getLogger(__name__)

DEFAULT_UPLOAD_TIMEOUT = 30.0
DEFAULT_CHUNK_SIZE = 64 * 1024


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class UploadFile:
    """An incoming file: either in-memory ``data`` or an async ``reader``."""

    filename: str
    content_type: str | None = None
    data: bytes | None = None
    reader: Callable[[], Awaitable[bytes]] | None = None
    declared_size: int | None = None

    @property
    def size(self) -> int | None:
        if self.declared_size is not None:
            return self.declared_size
        if self.data is not None:
            return len(self.data)
        return None

    async def read(self) -> bytes:
        if self.data is not None:
            return self.data
        if self.reader is None:
            raise ValueError("UploadFile needs data or a reader")
        return await self.reader()


@dataclass
class DownloadPayload:
    content: bytes
    content_type: str
    filename: str

    @property
    def size(self) -> int:
        return len(self.content)

    async def iter_chunks(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> AsyncIterator[bytes]:
        for start in range(0, len(self.content), chunk_size):
            yield self.content[start : start + chunk_size]

    def headers(self) -> dict[str, str]:
        ascii_name = self.filename.encode("ascii", "replace").decode("ascii").replace("?", "_")
        disposition = f'attachment; filename="{ascii_name}"'
        if ascii_name != self.filename:
            disposition += f"; filename*=UTF-8''{quote(self.filename)}"
        return {
            "Content-Type": self.content_type,
            "Content-Disposition": disposition,
            "Content-Length": str(self.size),
            "Cache-Control": "no-cache, no-store, must-revalidate",
            "Pragma": "no-cache",
            "Expires": "0",
        }


@dataclass(frozen=True)
class _Sealed:
    content_hash: str
    blob: str
    wrapped_key: str


class DocumentPipeline:
    """Owns the document state machine and the encrypted storage flow.

    All collaborators are injected; the pipeline holds no global state and is
    safe to share between concurrent requests.
    """

    def __init__(
        self,
        engine: EncryptionEngine,
        store: ObjectStoreClient,
        broker: DownloadTokenBroker,
        repository: DocumentRepository,
        *,
        policy: UploadPolicy | None = None,
        processing: ProcessingRunner | None = None,
        upload_timeout: float = DEFAULT_UPLOAD_TIMEOUT,
        download_base_path: str = "/documents",
        now: Callable[[], datetime] = _utcnow,
    ):
        self.engine = engine
        self.store = store
        self.broker = broker
        self.repository = repository
        self.policy = policy or UploadPolicy()
        self.processing = processing or ProcessingRunner()
        self.upload_timeout = upload_timeout
        self.download_base_path = download_base_path.rstrip("/")
        self._now = now

    # ------------------------------------------------------------------ upload

    def _seal(self, plaintext: bytes) -> _Sealed:
        key = self.engine.generate_key()
        return _Sealed(
            content_hash=self.engine.hash(plaintext),
            blob=self.engine.encrypt(plaintext, key),
            wrapped_key=self.engine.wrap_key(key),
        )

    async def _ingest(
        self, file: UploadFile, owner_id: str, metadata: UploadMetadata
    ) -> tuple[Document, bytes]:
        plaintext = await file.read()
        ext = validate_upload(file.filename, file.content_type, len(plaintext), self.policy)

        document_id = str(uuid.uuid4())
        sealed = await asyncio.to_thread(self._seal, plaintext)
        created_at = self._now()
        path = storage_path(owner_id, document_id, ext, created_at)
        original_filename = safe_filename(file.filename)
        blob = sealed.blob.encode("ascii")

        document = Document(
            id=document_id,
            owner_id=str(owner_id),
            document_name=derive_document_name(original_filename, metadata.category, metadata.client_name),
            original_filename=original_filename,
            storage_path=path,
            mime_type=(file.content_type or "application/octet-stream").split(";", 1)[0].strip(),
            file_type=ext,
            size=len(plaintext),
            encrypted_size=len(blob),
            content_hash=sealed.content_hash,
            wrapped_key=sealed.wrapped_key,
            encryption_algorithm=self.engine.algorithm,
            category=metadata.category,
            description=metadata.description,
            tags=list(metadata.tags),
            client_id=metadata.client_id,
            metadata=dict(metadata.extra),
            status=DocumentStatus.UPLOADING,
            created_at=created_at,
            updated_at=created_at,
        )

        result = await self.store.put(
            path,
            blob,
            document.mime_type,
            {
                "owner_id": document.owner_id,
                "document_id": document_id,
                "original_filename": quote(original_filename),
                "content_sha256": sealed.content_hash,
            },
        )
        document.etag = result.etag
        return document, plaintext

    async def upload(
        self,
        file: UploadFile,
        owner_id: str,
        metadata: UploadMetadata | None = None,
    ) -> UploadReceipt:
        """Encrypt and store ``file`` for ``owner_id``.

        Raises:
            ValidationError: size/type rejected; nothing was read or stored.
            StorageError: the blob could not be stored; no record exists.
            UploadTimeoutError: read + encrypt + store exceeded the deadline.
        """
        metadata = metadata or UploadMetadata()
        # Cheap checks first, before any I/O.
        if not is_valid_segment(owner_id):
            raise ValidationError(["invalid_owner_id"])
        validate_upload(file.filename, file.content_type, file.size, self.policy)

        try:
            async with asyncio.timeout(self.upload_timeout):
                document, plaintext = await self._ingest(file, owner_id, metadata)
        except TimeoutError as exc:
            logger.error(
                "upload timed out after %.1fs",
                self.upload_timeout,
                extra={"event": "upload.timeout", "owner_id": owner_id},
            )
            raise UploadTimeoutError(f"Upload exceeded {self.upload_timeout}s") from exc
        except StorageError as exc:
            logger.error(
                "upload aborted: blob not stored: %s",
                exc,
                extra={
                    "event": "upload.storage_failed",
                    "owner_id": owner_id,
                    "path": exc.path,
                    "provider_code": exc.provider_code,
                },
            )
            raise

        document.transition(DocumentStatus.PROCESSING, at=self._now())
        await self.repository.add(document)
        logger.info(
            "document stored",
            extra={
                "event": "upload.stored",
                "document_id": document.id,
                "owner_id": document.owner_id,
                "path": document.storage_path,
                "size": document.size,
            },
        )

        await self.processing.submit(document, plaintext, self._complete_processing)

        current = await self.repository.get(document.id, include_deleted=True) or document
        return UploadReceipt(
            id=current.id,
            status=current.status,
            created_at=current.created_at,
            document_name=current.document_name,
        )

    async def _complete_processing(self, document_id: str, error: Exception | None) -> None:
        document = await self.repository.get(document_id, include_deleted=True)
        if document is None or document.status is not DocumentStatus.PROCESSING:
            return
        if error is None:
            document.transition(DocumentStatus.READY, at=self._now())
        else:
            # The blob stays in the store for diagnosis.
            document.transition(
                DocumentStatus.FAILED,
                reason=f"{type(error).__name__}: {error}",
                at=self._now(),
            )
        await self.repository.update(document)
        logger.info(
            "document %s",
            document.status.value,
            extra={"event": "document.processed", "document_id": document_id, "status": document.status.value},
        )

    # ---------------------------------------------------------------- download

    async def _owned(self, document_id: str, owner_id: str) -> Document:
        document = await self.repository.get(document_id)
        if document is None or document.owner_id != str(owner_id):
            logger.info(
                "document lookup denied",
                extra={
                    "event": "document.not_found",
                    "document_id": document_id,
                    "owner_id": owner_id,
                    "reason": "missing" if document is None else "owner_mismatch",
                },
            )
            raise NotFoundError(f"Document {document_id} not found for owner {owner_id}")
        return document

    async def get(self, document_id: str, owner_id: str) -> Document:
        return await self._owned(document_id, owner_id)

    async def list_documents(
        self, owner_id: str, *, status: DocumentStatus | None = None, limit: int = 100, offset: int = 0
    ) -> list[Document]:
        return await self.repository.list_for_owner(owner_id, status=status, limit=limit, offset=offset)

    async def request_download(self, document_id: str, requester_owner_id: str) -> DownloadGrant:
        document = await self._owned(document_id, requester_owner_id)
        if document.status is not DocumentStatus.READY:
            logger.info(
                "download requested for document in status %s",
                document.status.value,
                extra={"event": "download.not_ready", "document_id": document_id, "status": document.status.value},
            )
            raise NotFoundError(f"Document {document_id} is not ready")
        token = await self.broker.issue(document.id, document.owner_id)
        return DownloadGrant(
            token=token.value,
            url=f"{self.download_base_path}/{document.id}/download/{token.value}",
            expires_at=token.expires_at,
            document=document.display(),
        )

    def _open(self, document: Document, blob: bytes) -> bytes:
        key = self.engine.unwrap_key(document.wrapped_key)
        plaintext = self.engine.decrypt(blob, key)
        if not self.engine.verify_hash(plaintext, document.content_hash):
            raise CorruptedDocumentError(f"Content hash mismatch for document {document.id}")
        return plaintext

    async def _decrypt_stored(self, document: Document) -> bytes:
        try:
            blob = await self.store.get(document.storage_path)
        except ObjectNotFoundError as exc:
            self._log_corrupted(document, "blob_missing", exc)
            raise CorruptedDocumentError(f"Blob missing for document {document.id}") from exc
        try:
            return await asyncio.to_thread(self._open, document, blob)
        except DecryptionError as exc:
            self._log_corrupted(document, "decryption_failed", exc)
            raise CorruptedDocumentError(f"Document {document.id} could not be decrypted") from exc
        except CorruptedDocumentError as exc:
            self._log_corrupted(document, "hash_mismatch", exc)
            raise

    @staticmethod
    def _log_corrupted(document: Document, reason: str, exc: Exception) -> None:
        logger.error(
            "stored document is corrupted: %s",
            exc,
            extra={
                "event": "document.corrupted",
                "document_id": document.id,
                "owner_id": document.owner_id,
                "path": document.storage_path,
                "reason": reason,
            },
        )

    async def fetch(self, document_id: str, token: str) -> DownloadPayload:
        """Consume ``token`` and return the decrypted document.

        Raises:
            InvalidTokenError: token missing, expired, reused or bound elsewhere.
            NotFoundError: the document vanished or is no longer ready.
            CorruptedDocumentError: the blob is missing, undecryptable or
                fails hash verification.
        """
        grant = await self.broker.consume(document_id, token)
        document = await self.repository.get(document_id)
        if (
            document is None
            or document.owner_id != grant.owner_id
            or document.status is not DocumentStatus.READY
        ):
            logger.warning(
                "valid token for unavailable document",
                extra={"event": "download.document_unavailable", "document_id": document_id},
            )
            raise NotFoundError(f"Document {document_id} is not available")

        plaintext = await self._decrypt_stored(document)

        document.last_accessed_at = self._now()
        await self.repository.update(document)
        logger.info(
            "document downloaded",
            extra={"event": "download.served", "document_id": document_id, "owner_id": document.owner_id},
        )
        return DownloadPayload(
            content=plaintext,
            content_type=document.mime_type,
            filename=document.original_filename,
        )

    async def verify(self, document_id: str, owner_id: str) -> bool:
        """Re-fetch and decrypt the blob and compare it with the recorded hash."""
        document = await self._owned(document_id, owner_id)
        try:
            await self._decrypt_stored(document)
        except CorruptedDocumentError:
            return False
        return True

    # ------------------------------------------------------------------ delete

    async def delete(self, document_id: str, owner_id: str) -> Document:
        """Soft-delete the record; the blob is deleted best-effort."""
        document = await self._owned(document_id, owner_id)
        if not can_transition(document.status, DocumentStatus.DELETED):
            raise InvalidTransitionError(document.status.value, DocumentStatus.DELETED.value)
        try:
            await self.store.delete(document.storage_path)
        except StorageError as exc:
            logger.warning(
                "blob delete failed; continuing with soft delete",
                extra={
                    "event": "delete.blob_failed",
                    "document_id": document_id,
                    "path": document.storage_path,
                    "provider_code": exc.provider_code,
                },
            )
        document.transition(DocumentStatus.DELETED, at=self._now())
        await self.repository.update(document)
        logger.info(
            "document deleted",
            extra={"event": "document.deleted", "document_id": document_id, "owner_id": owner_id},
        )
        return document
