from __future__ import annotations

import re
from datetime import datetime

_SEGMENT_RE = re.compile(r"^[A-Za-z0-9_-]{1,128}$")
_EXT_RE = re.compile(r"^[a-z0-9]{1,10}$")


def is_valid_segment(value: str) -> bool:
    return bool(_SEGMENT_RE.match(str(value)))


def storage_path(owner_id: str, document_id: str, ext: str, at: datetime) -> str:
    """``{owner_id}/{yyyy}/{mm}/{document_id}.{ext}``.

    Built only from server-side values; user filenames never reach the path.
    """
    owner = str(owner_id)
    if not is_valid_segment(owner):
        raise ValueError(f"owner id is not a valid path segment: {owner!r}")
    if not is_valid_segment(document_id):
        raise ValueError(f"document id is not a valid path segment: {document_id!r}")
    ext = ext.lower()
    if not _EXT_RE.match(ext):
        raise ValueError(f"invalid extension: {ext!r}")
    return f"{owner}/{at:%Y}/{at:%m}/{document_id}.{ext}"
