from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from starlette.responses import JSONResponse

from doc_vault.exceptions import (
    CorruptedDocumentError,
    DocVaultError,
    InvalidTokenError,
    InvalidTransitionError,
    NotFoundError,
    StorageError,
    UploadTimeoutError,
    ValidationError,
)

logger = logging.getLogger(__name__)

PROBLEM_MEDIA_TYPE = "application/problem+json"

# Checked in order; first match wins.
STATUS_MAP: tuple[tuple[type[DocVaultError], int, str], ...] = (
    (ValidationError, 422, "Unprocessable Entity"),
    (NotFoundError, 404, "Not Found"),
    (InvalidTokenError, 403, "Forbidden"),
    (InvalidTransitionError, 409, "Conflict"),
    (UploadTimeoutError, 504, "Gateway Timeout"),
    (CorruptedDocumentError, 500, "Internal Server Error"),
    (StorageError, 502, "Bad Gateway"),
)


def problem_response(
    *,
    status: int,
    title: str,
    detail: str | None = None,
    code: str | None = None,
    instance: str | None = None,
    **extra: object,
) -> JSONResponse:
    body: dict[str, object] = {"title": title, "status": status}
    if detail is not None:
        body["detail"] = detail
    if code is not None:
        body["code"] = code
    if instance is not None:
        body["instance"] = instance
    body.update({k: v for k, v in extra.items() if v is not None})
    return JSONResponse(status_code=status, content=body, media_type=PROBLEM_MEDIA_TYPE)


def _status_for(exc: DocVaultError) -> tuple[int, str]:
    for cls, status, title in STATUS_MAP:
        if isinstance(exc, cls):
            return status, title
    return 500, "Internal Server Error"


async def vault_error_handler(request: Request, exc: DocVaultError) -> JSONResponse:
    status, title = _status_for(exc)
    # Internal detail goes to logs; callers only see the generic message.
    log = logger.error if status >= 500 else logger.info
    log(
        "%s on %s (%d): %s",
        type(exc).__name__,
        request.url.path,
        status,
        exc,
        extra={"event": "http.vault_error", "status": status},
    )
    return problem_response(
        status=status,
        title=title,
        detail=exc.public_message,
        code=exc.code,
        instance=str(request.url.path),
        errors=exc.reasons if isinstance(exc, ValidationError) else None,
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DocVaultError, vault_error_handler)
