"""
recordstore
===========
Typed record storage over a remote key-value store.

Provides:
- Collection: get/get_many/set/setex/update/persist/delete with optimistic concurrency
- CollectionIndex: secondary lookups kept in step with every write
- CipherCodec: optional AES-256-CBC encryption of whole records
- Pluggable store providers (in-memory default, Redis)
"""

from .collection import Collection, CollectionIndex
from .config import CollectionConfig, EncryptionConfig
from .crypto import CipherCodec, hmac_sign
from .errors import (
    RecordStoreError, ConfigurationError, ConcurrentUpdateError,
    UpdateRetriesExhaustedError, RecordNotFoundError, DecodeError,
)
from .storage import InMemoryStore, StoreProvider, load_storage_provider

__all__ = [
    "Collection",
    "CollectionIndex",
    "CollectionConfig",
    "EncryptionConfig",
    "CipherCodec",
    "hmac_sign",
    "RecordStoreError",
    "ConfigurationError",
    "ConcurrentUpdateError",
    "UpdateRetriesExhaustedError",
    "RecordNotFoundError",
    "DecodeError",
    "InMemoryStore",
    "StoreProvider",
    "load_storage_provider",
]
