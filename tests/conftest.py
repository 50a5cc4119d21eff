"""
Root conftest.py for doc-vault tests.

This file provides:
1. Common pytest markers for test categorization
2. Shared fixtures for the pipeline components
3. A controllable clock for expiry tests

Fixtures are organized by category:
- Crypto fixtures (engine, master key)
- Storage fixtures (memory backend, retrying client)
- Token fixtures (fake clock, expiring store, broker)
- Pipeline fixtures (repository, pipeline)
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, Mock

import pytest

from doc_vault.crypto import EncryptionEngine
from doc_vault.documents import (
    DocumentPipeline,
    InMemoryDocumentRepository,
    ProcessingRunner,
)
from doc_vault.resilience import RetryConfig
from doc_vault.storage import ObjectStoreClient
from doc_vault.storage.backends.memory import MemoryBackend
from doc_vault.tokens import DownloadTokenBroker, InMemoryExpiringStore


# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================


def pytest_collection_modifyitems(config, items):
    """Mark tests by folder so `-m storage` etc. select them."""
    for item in items:
        norm = str(item.path).replace("\\", "/")
        for area in ("crypto", "storage", "tokens", "documents", "api"):
            if f"/tests/unit/{area}/" in norm:
                item.add_marker(getattr(pytest.mark, area))


def pytest_configure(config):
    # Ensure custom markers are registered even if pyproject.toml isn't picked up in some contexts
    for name, desc in [
        ("crypto", "Encryption engine tests"),
        ("storage", "Object store client and backend tests"),
        ("tokens", "Download token broker tests"),
        ("documents", "Document pipeline tests"),
        ("api", "HTTP surface tests"),
    ]:
        config.addinivalue_line("markers", f"{name}: {desc}")


# =============================================================================
# CLOCK
# =============================================================================


class FakeClock:
    """Monotonic seconds plus a matching UTC wall clock, advanced by hand."""

    def __init__(self, start: float = 1_000.0):
        self.t = start
        self._epoch = datetime(2025, 7, 19, 12, 0, tzinfo=timezone.utc)
        self._start = start

    def __call__(self) -> float:
        return self.t

    def now(self) -> datetime:
        return self._epoch + timedelta(seconds=self.t - self._start)

    def advance(self, seconds: float) -> None:
        self.t += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# =============================================================================
# COMPONENT FIXTURES
# =============================================================================


@pytest.fixture
def master_key() -> str:
    return EncryptionEngine.generate_master_key()


@pytest.fixture
def engine(master_key) -> EncryptionEngine:
    return EncryptionEngine(master_key)


@pytest.fixture
def backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def no_sleep() -> AsyncMock:
    return AsyncMock(return_value=None)


@pytest.fixture
def store(backend, no_sleep) -> ObjectStoreClient:
    """Retrying client over the memory backend; backoff sleeps are recorded, not slept."""
    return ObjectStoreClient(
        backend,
        RetryConfig(max_attempts=3, base_delay=0.2, jitter=0.0),
        sleep=no_sleep,
    )


@pytest.fixture
def token_store(clock) -> InMemoryExpiringStore:
    return InMemoryExpiringStore(clock=clock)


@pytest.fixture
def broker(token_store, clock) -> DownloadTokenBroker:
    return DownloadTokenBroker(token_store, ttl_seconds=300, now=clock.now)


@pytest.fixture
def repository() -> InMemoryDocumentRepository:
    return InMemoryDocumentRepository()


@pytest.fixture
def pipeline(engine, store, broker, repository, clock) -> DocumentPipeline:
    return DocumentPipeline(
        engine,
        store,
        broker,
        repository,
        processing=ProcessingRunner(),
        upload_timeout=5.0,
        now=clock.now,
    )


@pytest.fixture
def mock_redis_client():
    """Create a mock Redis client for testing.

    Returns a Mock object with common Redis operations as AsyncMock methods.
    """
    client = Mock()
    client.get = AsyncMock()
    client.set = AsyncMock()
    client.getdel = AsyncMock()
    client.delete = AsyncMock()
    client.ping = AsyncMock(return_value=True)
    client.close = AsyncMock()
    return client
