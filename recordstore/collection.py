"""
recordstore.collection
----------------------
Typed records over a key-value store.

A Collection stores one JSON record (or one encrypted token) per primary key
under `<prefix><id>`. Secondary indexes are plain store sets keyed
`<prefix>idx_<field>:<value>` holding primary keys; they are kept in step
with the records on every `set`, in a pipeline sent after the record write.

Concurrency is optimistic: `set` uses get-and-set, so the replaced value is
known without a second round trip and can be compared with what the caller
last read. `update` wraps that check in a bounded retry loop.

Known gaps, kept on purpose:
- The comparison happens after the write. A ConcurrentUpdateError from `set`
  means the new value IS stored; the caller has to reconcile.
- The index pipeline is neither atomic with the record write nor across
  keys. Two racing writers may leave index entries in either order.
- `delete` leaves index memberships behind unless asked to clean them up;
  CollectionIndex.get_items drops ids whose record is gone.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union
import asyncio
from .config import CollectionConfig, EncryptionConfig
from .crypto import CipherCodec
from .errors import (
    ConcurrentUpdateError, ConfigurationError, DecodeError,
    RecordNotFoundError, UpdateRetriesExhaustedError,
)
from .logger import get_logger
from .storage.provider import StoreProvider
from .utils import canonical_json

log = get_logger("collection")

Record = Dict[str, Any]
RecordId = Union[str, int]
Patch = Union[Dict[str, Any], Callable[[Dict[str, Any]], Dict[str, Any]]]

UPDATE_RETRIES = 3
UPDATE_BACKOFF_S = 0.1

# Stands for an absent field in index keys, distinct from an explicit None
MISSING = object()


def index_value(value: Any) -> str:
    """Text form of a field value inside an index key."""
    if value is MISSING:
        return "undefined"
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, (int, float)):
        return str(value)
    return canonical_json(value)


@dataclass(frozen=True)
class IndexBinding:
    field: str
    extractor: Callable[[Record], Any]

    def read(self, record: Record) -> Any:
        return self.extractor(record)


class Collection:
    def __init__(
        self,
        store: StoreProvider,
        key_prefix: str = "",
        default_ttl: Optional[int] = None,
        encryption: Optional[EncryptionConfig] = None,
        primary_key: str = "id",
    ):
        self.store = store
        # e.g. prefix "customers" -> keys "customers:<id>"
        self.key_prefix = f"{key_prefix}:" if key_prefix else ""
        if default_ttl is not None and default_ttl < 0:
            raise ConfigurationError(f"default_ttl must be >= 0 seconds, got {default_ttl}")
        self.default_ttl = default_ttl or None
        self.primary_key = primary_key
        self.codec = CipherCodec(encryption.secret, encryption.iv) if encryption else None
        self._indexes: List[IndexBinding] = []

    @classmethod
    def from_config(cls, store: StoreProvider, config: CollectionConfig) -> "Collection":
        return cls(
            store,
            key_prefix=config.key_prefix,
            default_ttl=config.default_ttl,
            encryption=config.encryption,
            primary_key=config.primary_key,
        )

    # ------------------------------------------------------------------
    # Keys and tokens
    # ------------------------------------------------------------------
    def key_for(self, id: RecordId) -> str:
        return f"{self.key_prefix}{id}"

    def index_key(self, field: str, value: Any) -> str:
        return f"{self.key_prefix}idx_{field}:{index_value(value)}"

    @property
    def indexes(self) -> List[str]:
        return [b.field for b in self._indexes]

    def _encrypt(self, record: Record) -> Any:
        return self.codec.encode(record) if self.codec else record

    def _decrypt(self, token: Any) -> Record:
        if not self.codec:
            return token
        if not isinstance(token, str):
            raise DecodeError(f"Expected an encrypted token in collection {self.key_prefix!r}")
        return self.codec.decode(token)

    def _id_of(self, record: Record) -> RecordId:
        try:
            return record[self.primary_key]
        except KeyError:
            raise ValueError(f"Record has no primary key field {self.primary_key!r}") from None

    # ------------------------------------------------------------------
    # Indexes
    # ------------------------------------------------------------------
    def add_index(self, field: str, extractor: Optional[Callable[[Record], Any]] = None) -> "CollectionIndex":
        """
        Register a secondary index on `field`.

        Must happen before any record carrying the field is written; existing
        records are not backfilled.
        """
        if self.default_ttl:
            raise ConfigurationError("Cannot add index to a auto-expiring collection.")
        if field == self.primary_key:
            raise ConfigurationError(f"Cannot index the primary key field {field!r}.")
        if field in self.indexes:
            raise ConfigurationError(f"Index on {field!r} already registered.")
        self._indexes.append(IndexBinding(field, extractor or (lambda r: r.get(field, MISSING))))
        return CollectionIndex(self, field)

    def index_on(self, field: str) -> "CollectionIndex":
        if field not in self.indexes:
            raise ConfigurationError(f"No index registered on {field!r}.")
        return CollectionIndex(self, field)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    async def get(self, id: RecordId) -> Optional[Record]:
        data = await self.store.get(self.key_for(id))
        if data is None:
            return None
        return self._decrypt(data)

    async def get_many(self, ids: List[RecordId]) -> List[Optional[Record]]:
        if not ids:
            return []
        datas = await self.store.mget([self.key_for(i) for i in ids])
        out: List[Optional[Record]] = []
        failed = []
        for id, data in zip(ids, datas):
            if data is None:
                out.append(None)
                continue
            try:
                out.append(self._decrypt(data))
            except DecodeError:
                out.append(None)
                failed.append(id)
        if failed:
            raise DecodeError(
                f"Could not decode {len(failed)} record(s) in collection {self.key_prefix!r}",
                partial=out,
                failed_ids=failed,
            )
        return out

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    async def set(self, record: Record, expected_previous: Optional[Record] = None) -> Record:
        if self.default_ttl:
            return await self.setex(record, self.default_ttl)

        id = self._id_of(record)
        key = self.key_for(id)
        old: Optional[Record] = None
        try:
            token = await self.store.set(key, self._encrypt(record), get=True, keep_ttl=True)
            if token is not None:
                old = self._decrypt(token)
        except DecodeError as e:
            # the write itself has happened; only the replaced value is unreadable
            if expected_previous is not None:
                raise ConcurrentUpdateError(key, expected_previous, None) from e
            log.warning(f"[SET] undecodable previous value at {key}, skipping index cleanup: {e}")

        # JSON text comparison keeps True, 1 and 1.0 apart
        if expected_previous is not None and canonical_json(old) != canonical_json(expected_previous):
            raise ConcurrentUpdateError(key, expected_previous, old)

        if not self._indexes:
            return record

        pipeline = self.store.pipeline()
        for binding in self._indexes:
            new_key = self.index_key(binding.field, binding.read(record))
            pipeline.sadd(new_key, id)
            if old is not None:
                old_key = self.index_key(binding.field, binding.read(old))
                if old_key != new_key:
                    pipeline.srem(old_key, id)

        if len(pipeline) > 0:
            log.debug(f"[SET] {key} index commands={len(pipeline)}")
            await pipeline.execute()
        return record

    async def setex(self, record: Record, ttl: int) -> Record:
        """Write with an expiry in seconds. Not usable once indexes exist."""
        if self._indexes:
            raise ConfigurationError("Can't use Collection.setex when having indexes installed!")

        await self.store.set(self.key_for(self._id_of(record)), self._encrypt(record), ex=ttl, get=True)
        return record

    async def update(self, id: RecordId, patch: Patch, retries: int = UPDATE_RETRIES) -> Record:
        """
        Read-merge-write with optimistic concurrency.

        `patch` is either a partial record or a function receiving the current
        record without its primary key and returning a partial record. The
        primary key always survives the merge. A lost race re-runs the whole
        cycle, up to `retries` times, with a short fixed pause in between.
        """
        attempt = 0
        while True:
            item = await self.get(id)
            if item is None:
                raise RecordNotFoundError(
                    f"Item in collection {self.key_prefix} with id {id} not found."
                )

            if callable(patch):
                without_id = {k: v for k, v in item.items() if k != self.primary_key}
                changes = patch(without_id)
            else:
                changes = patch
            updated = {**item, **changes, self.primary_key: item[self.primary_key]}

            try:
                return await self.set(updated, item)
            except ConcurrentUpdateError as e:
                if attempt >= retries:
                    raise UpdateRetriesExhaustedError(
                        f"Error while updating item in collection {self.key_prefix} with id {id}. No more retries left."
                    ) from e
                attempt += 1
                log.warning(
                    f"Error while updating item in collection {self.key_prefix} with id {id}. "
                    f"Retrying ({attempt}/{retries})... {e}"
                )
                await asyncio.sleep(UPDATE_BACKOFF_S)

    async def persist(self, id: RecordId) -> bool:
        return await self.store.persist(self.key_for(id))

    async def delete(self, id: RecordId, cleanup_indexes: bool = False) -> bool:
        """
        Remove the record.

        Index memberships stay behind unless `cleanup_indexes` is set, in
        which case the record is read first and its id removed from each of
        its index entries in the same pipeline as the delete.
        """
        key = self.key_for(id)
        if not cleanup_indexes or not self._indexes:
            return await self.store.delete(key) > 0

        old = await self.get(id)
        pipeline = self.store.pipeline()
        if old is not None:
            for binding in self._indexes:
                pipeline.srem(self.index_key(binding.field, binding.read(old)), id)
        pipeline.delete(key)
        results = await pipeline.execute()
        return bool(results[-1])


class CollectionIndex:
    """Read-only lookup of records by the value of one indexed field."""

    def __init__(self, collection: Collection, field: str):
        self.collection = collection
        self.field = field

    async def get_ids(self, value: Any) -> List[RecordId]:
        members = await self.collection.store.smembers(self.collection.index_key(self.field, value))
        return sorted(members, key=lambda m: (isinstance(m, str), str(m)))

    async def get_items(self, value: Any) -> List[Record]:
        members = await self.get_ids(value)
        if not members:
            return []
        items = await self.collection.get_many(members)
        return [item for item in items if item is not None]
