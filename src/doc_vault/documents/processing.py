"""Post-upload processing hooks.

Processors run after the encrypted blob is stored and the record exists in
``processing``. They receive the document and its plaintext; raising marks the
document ``failed``. Virus scanning, OCR or thumbnailing plug in here.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Literal, Sequence

from .models import Document

logger = logging.getLogger(__name__)

PostProcessor = Callable[[Document, bytes], Awaitable[None]]
Completion = Callable[[str, "Exception | None"], Awaitable[None]]
ProcessingMode = Literal["inline", "background"]


class ProcessingError(Exception):
    """Raised by a processor to reject a stored document."""


# Leading bytes for the allowed types. Office Open XML files are zip archives.
SIGNATURES: dict[str, tuple[bytes, ...]] = {
    "pdf": (b"%PDF",),
    "png": (b"\x89PNG\r\n\x1a\n",),
    "gif": (b"GIF87a", b"GIF89a"),
    "jpg": (b"\xff\xd8\xff",),
    "jpeg": (b"\xff\xd8\xff",),
    "docx": (b"PK\x03\x04",),
    "xlsx": (b"PK\x03\x04",),
    "doc": (b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1",),
    "xls": (b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1",),
}


async def check_signature(document: Document, plaintext: bytes) -> None:
    """Reject content whose magic bytes contradict its file type."""
    expected = SIGNATURES.get(document.file_type)
    if expected and not plaintext.startswith(expected):
        raise ProcessingError(f"content does not look like a .{document.file_type} file")


class ProcessingRunner:
    """Runs post-processors either inside the request or as a tracked task.

    In ``background`` mode the upload returns while the document is still
    ``processing``; :meth:`drain` waits for outstanding work (shutdown, tests).
    """

    def __init__(
        self,
        processors: Sequence[PostProcessor] = (),
        *,
        mode: ProcessingMode = "inline",
        timeout_seconds: float | None = None,
    ):
        self.processors = list(processors)
        self.mode = mode
        self.timeout_seconds = timeout_seconds
        self._tasks: set[asyncio.Task[None]] = set()

    async def _run(self, document: Document, plaintext: bytes, on_complete: Completion) -> None:
        error: Exception | None = None
        try:
            async with asyncio.timeout(self.timeout_seconds):
                for processor in self.processors:
                    await processor(document, plaintext)
        except Exception as exc:
            error = exc
            logger.warning(
                "post-processing failed: %s",
                exc,
                extra={"event": "document.processing_failed", "document_id": document.id},
            )
        await on_complete(document.id, error)

    async def submit(self, document: Document, plaintext: bytes, on_complete: Completion) -> None:
        if self.mode == "inline":
            await self._run(document, plaintext, on_complete)
            return
        task = asyncio.create_task(self._run(document, plaintext, on_complete), name=f"process:{document.id}")
        self._tasks.add(task)
        task.add_done_callback(lambda t, doc_id=document.id: self._finished(t, doc_id))

    def _finished(self, task: asyncio.Task[None], document_id: str) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning(
                "post-processing cancelled",
                extra={"event": "document.processing_cancelled", "document_id": document_id},
            )
            return
        exc = task.exception()
        if exc is not None:
            # the record could not be moved out of processing
            logger.error(
                "post-processing completion failed: %s",
                exc,
                exc_info=exc,
                extra={"event": "document.processing_stuck", "document_id": document_id},
            )

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
