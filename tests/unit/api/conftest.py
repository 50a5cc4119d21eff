"""
API test fixtures and configuration.
"""

from __future__ import annotations

import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from doc_vault.api import add_vault
from doc_vault.documents import DocumentPipeline, ProcessingRunner, UploadPolicy

SMALL_LIMIT = 1024


@pytest_asyncio.fixture
async def api_pipeline(engine, store, broker, repository, clock) -> DocumentPipeline:
    return DocumentPipeline(
        engine,
        store,
        broker,
        repository,
        policy=UploadPolicy(max_bytes=SMALL_LIMIT),
        processing=ProcessingRunner(),
        now=clock.now,
    )


@pytest_asyncio.fixture
async def api_app(api_pipeline) -> FastAPI:
    """Create a FastAPI app with the vault mounted."""
    app = FastAPI(title="Vault Test App")
    add_vault(app, api_pipeline)
    return app


@pytest_asyncio.fixture
async def api_client(api_app: FastAPI):
    """Create an async test client for API tests."""
    async with AsyncClient(transport=ASGITransport(app=api_app), base_url="http://test") as client:
        yield client
