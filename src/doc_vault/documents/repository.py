from __future__ import annotations

import asyncio
from typing import Optional, Protocol, runtime_checkable

from .models import Document, DocumentStatus


@runtime_checkable
class DocumentRepository(Protocol):
    """Persistence collaborator for document records."""

    async def add(self, document: Document) -> None: ...

    async def get(self, document_id: str, *, include_deleted: bool = False) -> Optional[Document]: ...

    async def update(self, document: Document) -> None: ...

    async def list_for_owner(
        self,
        owner_id: str,
        *,
        status: DocumentStatus | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Document]: ...


class InMemoryDocumentRepository:
    """Dict-backed repository. Returns copies so callers cannot mutate storage."""

    def __init__(self) -> None:
        self._docs: dict[str, Document] = {}
        self._lock = asyncio.Lock()

    async def add(self, document: Document) -> None:
        async with self._lock:
            if document.id in self._docs:
                raise KeyError(f"duplicate document id {document.id}")
            self._docs[document.id] = document.model_copy(deep=True)

    async def get(self, document_id: str, *, include_deleted: bool = False) -> Optional[Document]:
        doc = self._docs.get(document_id)
        if doc is None or (doc.is_deleted and not include_deleted):
            return None
        return doc.model_copy(deep=True)

    async def update(self, document: Document) -> None:
        async with self._lock:
            if document.id not in self._docs:
                raise KeyError(f"unknown document id {document.id}")
            self._docs[document.id] = document.model_copy(deep=True)

    async def list_for_owner(
        self,
        owner_id: str,
        *,
        status: DocumentStatus | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Document]:
        docs = [
            d
            for d in self._docs.values()
            if d.owner_id == owner_id
            and not d.is_deleted
            and (status is None or d.status is status)
        ]
        docs.sort(key=lambda d: d.created_at, reverse=True)
        return [d.model_copy(deep=True) for d in docs[offset : offset + limit]]

    def __len__(self) -> int:
        return len(self._docs)
