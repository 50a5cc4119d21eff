from __future__ import annotations

import posixpath
import re
import unicodedata
from dataclasses import dataclass, field

from doc_vault.app.settings import MAX_UPLOAD_BYTES
from doc_vault.exceptions import ValidationError

ALLOWED_EXTENSIONS = frozenset({"pdf", "doc", "docx", "xls", "xlsx", "jpg", "jpeg", "png", "gif"})

MIME_EXTENSIONS: dict[str, str] = {
    "application/pdf": "pdf",
    "application/msword": "doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
    "application/vnd.ms-excel": "xls",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": "xlsx",
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
}

# Rejected whatever MIME type the client declares.
BLOCKED_EXTENSIONS = frozenset(
    {"exe", "bat", "cmd", "sh", "js", "msi", "com", "scr", "dll", "ps1", "vbs", "jar", "app"}
)

_UNSAFE_CHARS = re.compile(r'[\x00-\x1f\x7f"\\/]')


@dataclass(frozen=True)
class UploadPolicy:
    max_bytes: int = MAX_UPLOAD_BYTES
    allowed_extensions: frozenset[str] = ALLOWED_EXTENSIONS
    allowed_mime_types: frozenset[str] = field(default_factory=lambda: frozenset(MIME_EXTENSIONS))
    blocked_extensions: frozenset[str] = BLOCKED_EXTENSIONS


def file_extension(filename: str) -> str:
    return posixpath.splitext(filename)[1].lstrip(".").lower()


def safe_filename(filename: str) -> str:
    """Base name with directory parts and control/quote characters removed."""
    name = unicodedata.normalize("NFC", filename or "").replace("\\", "/")
    name = posixpath.basename(name)
    name = _UNSAFE_CHARS.sub("_", name).strip(" .")
    return name[:255] or "document"


def _normalize_mime(content_type: str | None) -> str:
    return (content_type or "").split(";", 1)[0].strip().lower()


def validate_upload(
    filename: str,
    content_type: str | None,
    size: int | None,
    policy: UploadPolicy | None = None,
) -> str:
    """Check size and type; return the extension to store the blob under.

    Either an allowed extension or an allowed declared MIME type is enough,
    except that blocked extensions are never accepted.
    """
    policy = policy or UploadPolicy()
    reasons: list[str] = []
    ext = file_extension(filename)
    mime = _normalize_mime(content_type)

    if size is not None:
        if size > policy.max_bytes:
            reasons.append(f"file_too_large(max={policy.max_bytes})")
        elif size == 0:
            reasons.append("empty_file")
    if not (filename or "").strip():
        reasons.append("missing_filename")
    if ext in policy.blocked_extensions:
        reasons.append(f"blocked_extension({ext})")
    elif ext not in policy.allowed_extensions and mime not in policy.allowed_mime_types:
        reasons.append(f"unsupported_type({ext or '-'}, {mime or '-'})")

    if reasons:
        raise ValidationError(reasons)

    if ext:
        return ext
    return MIME_EXTENSIONS.get(mime, "bin")


__all__ = [
    "ALLOWED_EXTENSIONS",
    "BLOCKED_EXTENSIONS",
    "MIME_EXTENSIONS",
    "UploadPolicy",
    "file_extension",
    "safe_filename",
    "validate_upload",
]
