from __future__ import annotations

import logging
from typing import Sequence

from doc_vault.app.env import IS_PROD
from doc_vault.app.settings import (
    StorageSettings,
    TokenStoreSettings,
    VaultSettings,
    get_storage_settings,
    get_token_store_settings,
    get_vault_settings,
)
from doc_vault.crypto import EncryptionEngine
from doc_vault.documents import (
    DocumentPipeline,
    DocumentRepository,
    InMemoryDocumentRepository,
    PostProcessor,
    ProcessingRunner,
    UploadPolicy,
)
from doc_vault.storage import ObjectStoreClient, easy_storage
from doc_vault.tokens import (
    DownloadTokenBroker,
    ExpiringStore,
    InMemoryExpiringStore,
    RedisExpiringStore,
)

logger = logging.getLogger(__name__)


def easy_token_store(settings: TokenStoreSettings | None = None) -> ExpiringStore:
    cfg = settings or get_token_store_settings()
    if cfg.backend == "redis":
        return RedisExpiringStore.from_url(cfg.redis_url, namespace=cfg.namespace)
    if IS_PROD:
        logger.warning("in-memory token store in prod: tokens are not shared between processes")
    return InMemoryExpiringStore()


def easy_vault(
    *,
    vault: VaultSettings | None = None,
    storage: StorageSettings | None = None,
    tokens: TokenStoreSettings | None = None,
    repository: DocumentRepository | None = None,
    store: ObjectStoreClient | None = None,
    token_store: ExpiringStore | None = None,
    processors: Sequence[PostProcessor] = (),
) -> DocumentPipeline:
    """Wire a :class:`DocumentPipeline` from settings.

    Explicit collaborators win over settings, so tests can inject memory
    stores while keeping the rest of the configuration.
    """
    cfg = vault or get_vault_settings()
    if cfg.master_key is None:
        if IS_PROD:
            raise RuntimeError("VAULT_MASTER_KEY must be set in production")
        logger.warning("VAULT_MASTER_KEY not set; generating an ephemeral master key")
        master_key = EncryptionEngine.generate_master_key()
    else:
        master_key = cfg.master_key.get_secret_value()

    broker = DownloadTokenBroker(
        token_store or easy_token_store(tokens),
        ttl_seconds=cfg.download_token_ttl_seconds,
    )
    return DocumentPipeline(
        EncryptionEngine(master_key),
        store or easy_storage(storage or get_storage_settings()),
        broker,
        repository or InMemoryDocumentRepository(),
        policy=UploadPolicy(max_bytes=cfg.max_upload_bytes),
        processing=ProcessingRunner(processors, mode=cfg.processing_mode),
        upload_timeout=cfg.upload_timeout_seconds,
        download_base_path=cfg.download_base_path,
    )
