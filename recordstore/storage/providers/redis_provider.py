from __future__ import annotations
import json
from typing import Any, Optional
import redis.asyncio as aioredis
from recordstore.errors import DecodeError
from recordstore.logger import get_logger
from recordstore.storage.provider import Pipeline, StoreProvider
from recordstore.utils import compact_json

log = get_logger("storage.redis")


def _dumps(value: Any) -> str:
    return compact_json(value)

def _loads(raw: Optional[str]) -> Any:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Stored value is not JSON: {e}") from e


class RedisPipeline(Pipeline):
    def __init__(self, pipe):
        self._pipe = pipe

    def sadd(self, key, member):
        self._pipe.sadd(key, _dumps(member))
        return self

    def srem(self, key, member):
        self._pipe.srem(key, _dumps(member))
        return self

    def delete(self, key):
        self._pipe.delete(key)
        return self

    def __len__(self):
        return len(self._pipe)

    async def execute(self):
        return await self._pipe.execute()


class RedisStore(StoreProvider):
    """
    Redis-backed provider on redis.asyncio.

    Values and set members are JSON text, so ints, strings and dicts come
    back as the same Python types they were written as.
    """
    def __init__(self, url: str = "redis://localhost:6379/0", client=None):
        self.url = url
        self.client = client or aioredis.from_url(url, decode_responses=True)
        log.debug(f"[REDIS] client ready url={url}")

    async def get(self, key):
        return _loads(await self.client.get(key))

    async def mget(self, keys):
        return [_loads(raw) for raw in await self.client.mget(keys)]

    async def set(self, key, value, *, get=False, keep_ttl=False, ex=None):
        raw = await self.client.set(
            key,
            _dumps(value),
            ex=ex,
            keepttl=keep_ttl and ex is None,
            get=get,
        )
        return _loads(raw) if get else None

    async def delete(self, key):
        return await self.client.delete(key)

    async def persist(self, key):
        return bool(await self.client.persist(key))

    async def expire(self, key, seconds):
        return bool(await self.client.expire(key, seconds))

    async def ttl(self, key):
        return await self.client.ttl(key)

    async def smembers(self, key):
        return {_loads(m) for m in await self.client.smembers(key)}

    def pipeline(self):
        # Plain batch; MULTI/EXEC is not needed for index maintenance
        return RedisPipeline(self.client.pipeline(transaction=False))

    async def close(self):
        await self.client.aclose()
