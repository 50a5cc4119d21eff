from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

MAX_UPLOAD_BYTES = 50 * 1024 * 1024


class VaultSettings(BaseSettings):
    # flat = easy env overrides
    master_key: SecretStr | None = None
    max_upload_bytes: int = MAX_UPLOAD_BYTES
    upload_timeout_seconds: float = 30.0
    download_token_ttl_seconds: int = 300
    download_base_path: str = "/documents"
    processing_mode: Literal["inline", "background"] = "inline"

    model_config = SettingsConfigDict(
        env_prefix="VAULT_",            # VAULT_MASTER_KEY, VAULT_MAX_UPLOAD_BYTES
        extra="ignore",
    )


class StorageSettings(BaseSettings):
    backend: Literal["memory", "s3"] = "memory"
    s3_bucket: str | None = None
    s3_region: str = "us-east-1"
    s3_endpoint: str | None = None     # Wasabi / MinIO / Spaces
    s3_access_key: str | None = None
    s3_secret_key: SecretStr | None = None
    retry_attempts: int = Field(default=3, ge=1)
    retry_base_delay: float = Field(default=0.2, ge=0)

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        extra="ignore",
    )


class TokenStoreSettings(BaseSettings):
    backend: Literal["memory", "redis"] = "memory"
    redis_url: str = "redis://localhost:6379/0"
    namespace: str = "vault"

    model_config = SettingsConfigDict(
        env_prefix="TOKENS_",
        extra="ignore",
    )


def _filtered(kwargs: dict) -> dict:
    # Only include kwargs that are not None, so class defaults are used
    return {k: v for k, v in kwargs.items() if v is not None}


@lru_cache
def get_vault_settings(**kwargs) -> VaultSettings:
    return VaultSettings(**_filtered(kwargs))


@lru_cache
def get_storage_settings(**kwargs) -> StorageSettings:
    return StorageSettings(**_filtered(kwargs))


@lru_cache
def get_token_store_settings(**kwargs) -> TokenStoreSettings:
    return TokenStoreSettings(**_filtered(kwargs))
