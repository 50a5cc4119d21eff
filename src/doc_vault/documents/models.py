"""Document record, lifecycle states and typed metadata."""

from __future__ import annotations

import posixpath
from datetime import datetime, timezone
from enum import Enum
from typing import Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictFloat, StrictInt, StrictStr, field_validator

from doc_vault.exceptions import InvalidTransitionError
from doc_vault.storage.client import format_bytes

# bool listed first so True/False are never coerced into numbers
MetadataValue = Union[StrictBool, StrictInt, StrictFloat, StrictStr]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentStatus(str, Enum):
    """Lifecycle states; see :data:`TRANSITIONS` for the allowed moves."""

    UPLOADING = "uploading"
    PROCESSING = "processing"
    READY = "ready"
    FAILED = "failed"
    DELETED = "deleted"


TRANSITIONS: dict[DocumentStatus, frozenset[DocumentStatus]] = {
    DocumentStatus.UPLOADING: frozenset({DocumentStatus.PROCESSING, DocumentStatus.FAILED}),
    DocumentStatus.PROCESSING: frozenset({DocumentStatus.READY, DocumentStatus.FAILED}),
    DocumentStatus.READY: frozenset({DocumentStatus.DELETED}),
    DocumentStatus.FAILED: frozenset({DocumentStatus.DELETED}),
    DocumentStatus.DELETED: frozenset(),
}


def can_transition(current: DocumentStatus, target: DocumentStatus) -> bool:
    return target in TRANSITIONS[current]


def parse_tags(value: object) -> list[str]:
    """Accept a list or a comma-separated string; strip and drop empties."""
    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple, set)):
        items = list(value)
    else:
        raise ValueError("tags must be a list or a comma-separated string")
    return [str(t).strip() for t in items if str(t).strip()]


class UploadMetadata(BaseModel):
    """Caller-supplied descriptive fields; opaque to the pipeline."""

    model_config = ConfigDict(extra="forbid")

    category: str = Field("other", max_length=100)
    description: str | None = Field(None, max_length=1000)
    tags: list[str] = Field(default_factory=list)
    client_id: str | None = None
    client_name: str | None = None
    extra: dict[StrictStr, MetadataValue] = Field(default_factory=dict)

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tags(cls, v: object) -> list[str]:
        return parse_tags(v)


def derive_document_name(original_filename: str, category: str, client_name: str | None) -> str:
    base = posixpath.splitext(original_filename)[0] or original_filename
    if not client_name:
        return base
    # Keep the filename when it already mentions the client.
    if client_name.lower() in base.lower():
        return base
    return f"{category} - {client_name}"


class Document(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    id: str
    owner_id: str
    document_name: str
    original_filename: str
    storage_path: str
    mime_type: str
    file_type: str
    size: int
    encrypted_size: int = 0
    content_hash: str
    wrapped_key: str = Field(repr=False)
    encryption_algorithm: str = "AES-256-CBC"
    etag: str | None = None
    category: str = "other"
    description: str | None = None
    tags: list[str] = Field(default_factory=list)
    client_id: str | None = None
    metadata: dict[StrictStr, MetadataValue] = Field(default_factory=dict)
    status: DocumentStatus = DocumentStatus.UPLOADING
    status_reason: str | None = None
    status_history: list[tuple[DocumentStatus, datetime]] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    last_accessed_at: datetime | None = None
    deleted_at: datetime | None = None

    def model_post_init(self, __context: object) -> None:
        if not self.status_history:
            self.status_history.append((self.status, self.created_at))

    @property
    def is_deleted(self) -> bool:
        return self.status is DocumentStatus.DELETED

    def transition(self, target: DocumentStatus, *, reason: str | None = None, at: datetime | None = None) -> None:
        if not can_transition(self.status, target):
            raise InvalidTransitionError(self.status.value, target.value)
        when = at or utcnow()
        self.status = target
        self.updated_at = when
        self.status_history.append((target, when))
        if reason is not None:
            self.status_reason = reason
        if target is DocumentStatus.DELETED:
            self.deleted_at = when

    def display(self) -> dict[str, object]:
        """Fields safe to return to the owner (no key material, no path)."""
        return {
            "id": self.id,
            "document_name": self.document_name,
            "original_filename": self.original_filename,
            "mime_type": self.mime_type,
            "file_type": self.file_type.upper(),
            "size": self.size,
            "formatted_size": format_bytes(self.size),
            "category": self.category,
            "tags": list(self.tags),
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
        }


class UploadReceipt(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    status: DocumentStatus
    created_at: datetime = Field(serialization_alias="createdAt")
    document_name: str | None = None


class DownloadGrant(BaseModel):
    token: str
    url: str
    expires_at: datetime
    document: dict[str, object]
