# recordstore/storage/__init__.py

from .provider import Pipeline, StoreProvider
from .providers.memory_provider import InMemoryStore
import os


def load_storage_provider(config: dict | None = None) -> StoreProvider:
    """
    Factory resolver for selecting the backing key-value store.

    For now:
        - memory (default)
        - redis
    """
    config = config or {}
    provider = config.get("provider") or os.getenv("RECORDSTORE_PROVIDER", "memory")

    if provider == "memory":
        return InMemoryStore()

    if provider == "redis":
        from .providers.redis_provider import RedisStore

        url = config.get("redis_url") or os.getenv("RECORDSTORE_REDIS_URL", "redis://localhost:6379/0")
        return RedisStore(url)

    raise ValueError(f"Unknown storage provider: {provider}")


__all__ = [
    "Pipeline",
    "StoreProvider",
    "InMemoryStore",
    "load_storage_provider",
]
