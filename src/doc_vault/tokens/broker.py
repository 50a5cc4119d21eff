from __future__ import annotations

import logging
import re
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from doc_vault.exceptions import InvalidTokenError

from .store import ExpiringStore

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300
TOKEN_BYTES = 48  # 384 bits
_TOKEN_RE = re.compile(r"^[A-Za-z0-9_-]{32,128}$")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class DownloadToken:
    value: str
    document_id: str
    owner_id: str
    issued_at: datetime
    expires_at: datetime


class DownloadTokenBroker:
    """Issues and atomically consumes single-use download tokens.

    Entries live in the shared :class:`ExpiringStore` under
    ``download_token:{document_id}:{token}`` with a TTL equal to the validity
    window, so expiry is enforced by the store. A missing, expired, reused or
    mis-bound token all fail the same way.
    """

    def __init__(
        self,
        store: ExpiringStore,
        *,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        now: Callable[[], datetime] = _utcnow,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._store = store
        self.ttl_seconds = ttl_seconds
        self._now = now

    @staticmethod
    def _key(document_id: str, token: str) -> str:
        return f"download_token:{document_id}:{token}"

    async def issue(self, document_id: str, owner_id: str) -> DownloadToken:
        value = secrets.token_urlsafe(TOKEN_BYTES)
        issued_at = self._now()
        await self._store.set(
            self._key(document_id, value),
            {
                "document_id": document_id,
                "owner_id": owner_id,
                "issued_at": issued_at.isoformat(),
            },
            self.ttl_seconds,
        )
        logger.info(
            "download token issued",
            extra={"event": "download.token_issued", "document_id": document_id, "owner_id": owner_id},
        )
        return DownloadToken(
            value=value,
            document_id=document_id,
            owner_id=owner_id,
            issued_at=issued_at,
            expires_at=issued_at + timedelta(seconds=self.ttl_seconds),
        )

    async def _take(self, document_id: str, token: str) -> DownloadToken | None:
        if not token or not _TOKEN_RE.match(token):
            return None
        entry = await self._store.pop(self._key(document_id, token))
        if entry is None or entry.get("document_id") != document_id:
            return None
        issued_at = datetime.fromisoformat(entry["issued_at"])
        return DownloadToken(
            value=token,
            document_id=document_id,
            owner_id=str(entry.get("owner_id")),
            issued_at=issued_at,
            expires_at=issued_at + timedelta(seconds=self.ttl_seconds),
        )

    async def validate(self, document_id: str, token: str) -> bool:
        """Consume ``token`` for ``document_id``; True only on first valid use."""
        return await self._take(document_id, token) is not None

    async def consume(self, document_id: str, token: str) -> DownloadToken:
        grant = await self._take(document_id, token)
        if grant is None:
            logger.warning(
                "download token rejected",
                extra={"event": "download.token_invalid", "document_id": document_id},
            )
            raise InvalidTokenError(f"Token rejected for document {document_id}")
        return grant

    async def revoke(self, document_id: str, token: str) -> None:
        await self._store.delete(self._key(document_id, token))
