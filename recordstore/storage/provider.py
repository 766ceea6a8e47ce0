# recordstore/storage/provider.py
from __future__ import annotations
from typing import Any, List, Optional, Set


class Pipeline:
    """
    Batch of commands sent in one round trip.

    Commands run in enqueue order; there is no atomicity across keys.
    """
    def sadd(self, key: str, member: Any) -> "Pipeline": ...
    def srem(self, key: str, member: Any) -> "Pipeline": ...
    def delete(self, key: str) -> "Pipeline": ...
    def __len__(self) -> int: ...
    async def execute(self) -> List[Any]: ...


class StoreProvider:
    """
    Interface of the key-value store a Collection writes through.

    Every single command is assumed atomic per key. `set(..., get=True)`
    must atomically return the value it replaced.
    """
    async def get(self, key: str) -> Optional[Any]: ...
    async def mget(self, keys: List[str]) -> List[Optional[Any]]: ...
    async def set(self, key: str, value: Any, *, get: bool = False,
                  keep_ttl: bool = False, ex: Optional[int] = None) -> Optional[Any]: ...
    async def delete(self, key: str) -> int: ...
    async def persist(self, key: str) -> bool: ...
    async def expire(self, key: str, seconds: int) -> bool: ...
    async def ttl(self, key: str) -> int: ...
    async def smembers(self, key: str) -> Set[Any]: ...
    def pipeline(self) -> Pipeline: ...
    async def close(self) -> None: ...
