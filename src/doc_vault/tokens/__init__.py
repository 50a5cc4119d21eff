from .broker import DEFAULT_TTL_SECONDS, DownloadToken, DownloadTokenBroker
from .store import ExpiringStore, InMemoryExpiringStore, RedisExpiringStore

__all__ = [
    "DEFAULT_TTL_SECONDS",
    "DownloadToken",
    "DownloadTokenBroker",
    "ExpiringStore",
    "InMemoryExpiringStore",
    "RedisExpiringStore",
]
