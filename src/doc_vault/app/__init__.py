from .env import IS_PROD, is_production, pick
from .logging import setup_logging
from .settings import (
    StorageSettings,
    TokenStoreSettings,
    VaultSettings,
    get_storage_settings,
    get_token_store_settings,
    get_vault_settings,
)

__all__ = [
    "IS_PROD",
    "is_production",
    "pick",
    "setup_logging",
    "VaultSettings",
    "StorageSettings",
    "TokenStoreSettings",
    "get_vault_settings",
    "get_storage_settings",
    "get_token_store_settings",
]
