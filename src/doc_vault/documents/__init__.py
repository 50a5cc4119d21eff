"""Encrypted document pipeline: state machine, validation, persistence hooks."""

from .models import (
    TRANSITIONS,
    Document,
    DocumentStatus,
    DownloadGrant,
    MetadataValue,
    UploadMetadata,
    UploadReceipt,
    can_transition,
    derive_document_name,
    parse_tags,
)
from .pipeline import DocumentPipeline, DownloadPayload, UploadFile
from .processing import PostProcessor, ProcessingError, ProcessingRunner, check_signature
from .repository import DocumentRepository, InMemoryDocumentRepository
from .validation import UploadPolicy, safe_filename, validate_upload

__all__ = [
    "TRANSITIONS",
    "Document",
    "DocumentStatus",
    "DownloadGrant",
    "MetadataValue",
    "UploadMetadata",
    "UploadReceipt",
    "can_transition",
    "derive_document_name",
    "parse_tags",
    "DocumentPipeline",
    "DownloadPayload",
    "UploadFile",
    "PostProcessor",
    "ProcessingError",
    "ProcessingRunner",
    "check_signature",
    "DocumentRepository",
    "InMemoryDocumentRepository",
    "UploadPolicy",
    "safe_filename",
    "validate_upload",
]
