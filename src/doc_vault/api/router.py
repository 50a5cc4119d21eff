"""HTTP endpoints for the document vault.

Authentication is out of scope: :func:`get_owner_id` reads the ``X-Owner-Id``
header and applications override it with their own principal dependency.
The download endpoint needs no session; possession of the token is the
authorization.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, File, Form, Header, HTTPException, Request, UploadFile
from fastapi.responses import StreamingResponse
from pydantic import ValidationError as PydanticValidationError

from doc_vault.documents import DocumentPipeline, UploadMetadata
from doc_vault.documents import UploadFile as VaultUpload
from doc_vault.exceptions import ValidationError

from .errors import register_error_handlers
from .middleware import MULTIPART_OVERHEAD, RequestSizeLimitMiddleware

router = APIRouter(prefix="/documents", tags=["Documents"])


def get_pipeline(request: Request) -> DocumentPipeline:
    pipeline = getattr(request.app.state, "vault", None)
    if pipeline is None:
        raise RuntimeError("Document vault not configured; call add_vault(app, pipeline)")
    return pipeline


def get_owner_id(x_owner_id: Optional[str] = Header(None)) -> str:
    if not x_owner_id:
        raise HTTPException(status_code=401, detail="Missing owner identity")
    return x_owner_id


@router.post("", status_code=201)
async def upload_document_endpoint(
    file: UploadFile = File(...),
    category: str = Form("other"),
    client_id: Optional[str] = Form(None),
    client_name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),  # Comma-separated
    owner_id: str = Depends(get_owner_id),
    pipeline: DocumentPipeline = Depends(get_pipeline),
) -> dict:
    """Upload a file (multipart/form-data); it is encrypted before storage.

    Example:
        ```bash
        curl -X POST http://localhost:8000/documents \\
          -H "X-Owner-Id: 42" \\
          -F "category=invoice" \\
          -F "client_id=c_17" \\
          -F "tags=2024,q3" \\
          -F "file=@invoice.pdf"
        ```
    """
    try:
        metadata = UploadMetadata(
            category=category,
            client_id=client_id,
            client_name=client_name,
            description=description,
            tags=tags,
        )
    except PydanticValidationError as exc:
        raise ValidationError([f"{'.'.join(map(str, e['loc']))}: {e['msg']}" for e in exc.errors()]) from exc
    receipt = await pipeline.upload(
        VaultUpload(
            filename=file.filename or "",
            content_type=file.content_type,
            reader=file.read,
            declared_size=file.size,
        ),
        owner_id,
        metadata,
    )
    return receipt.model_dump(mode="json", by_alias=True)


@router.post("/{document_id}/download")
async def request_download_endpoint(
    document_id: str,
    owner_id: str = Depends(get_owner_id),
    pipeline: DocumentPipeline = Depends(get_pipeline),
) -> dict:
    """Mint a single-use download link valid for a few minutes."""
    grant = await pipeline.request_download(document_id, owner_id)
    return {
        "download_url": grant.url,
        "expires_at": grant.expires_at.isoformat(),
        "document": grant.document,
    }


@router.get("/{document_id}/download/{token}")
async def download_file_endpoint(
    document_id: str,
    token: str,
    pipeline: DocumentPipeline = Depends(get_pipeline),
) -> StreamingResponse:
    payload = await pipeline.fetch(document_id, token)
    return StreamingResponse(payload.iter_chunks(), headers=payload.headers())


@router.delete("/{document_id}")
async def delete_document_endpoint(
    document_id: str,
    owner_id: str = Depends(get_owner_id),
    pipeline: DocumentPipeline = Depends(get_pipeline),
) -> dict:
    document = await pipeline.delete(document_id, owner_id)
    return {"id": document.id, "status": document.status.value}


def add_vault(app: FastAPI, pipeline: DocumentPipeline) -> FastAPI:
    """Mount the vault routes, error handlers and upload size guard on ``app``."""
    app.state.vault = pipeline
    app.add_middleware(
        RequestSizeLimitMiddleware,
        max_bytes=pipeline.policy.max_bytes + MULTIPART_OVERHEAD,
    )
    register_error_handlers(app)
    app.include_router(router)
    return app
