from __future__ import annotations

import logging

from doc_vault.app.settings import StorageSettings, get_storage_settings
from doc_vault.resilience import RetryConfig

from .base import StorageBackend
from .client import ObjectStoreClient

logger = logging.getLogger(__name__)


def easy_storage_backend(settings: StorageSettings | None = None) -> StorageBackend:
    """Build the backend named by ``STORAGE_BACKEND`` (``memory`` or ``s3``)."""
    cfg = settings or get_storage_settings()
    if cfg.backend == "s3":
        if not cfg.s3_bucket:
            raise ValueError("STORAGE_S3_BUCKET is required when STORAGE_BACKEND=s3")
        from .backends.s3 import S3Backend

        logger.info("using S3 storage backend bucket=%s endpoint=%s", cfg.s3_bucket, cfg.s3_endpoint)
        return S3Backend(
            bucket=cfg.s3_bucket,
            region=cfg.s3_region,
            endpoint=cfg.s3_endpoint,
            access_key=cfg.s3_access_key,
            secret_key=cfg.s3_secret_key.get_secret_value() if cfg.s3_secret_key else None,
        )
    from .backends.memory import MemoryBackend

    logger.info("using in-memory storage backend")
    return MemoryBackend()


def easy_storage(settings: StorageSettings | None = None) -> ObjectStoreClient:
    cfg = settings or get_storage_settings()
    retry = RetryConfig(max_attempts=cfg.retry_attempts, base_delay=cfg.retry_base_delay, max_delay=5.0)
    return ObjectStoreClient(easy_storage_backend(cfg), retry)
