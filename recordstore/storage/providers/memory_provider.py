import asyncio, time
from typing import Any, Dict, List, Set, Tuple
from recordstore.storage.provider import Pipeline, StoreProvider
from recordstore.utils import json_copy


class InMemoryPipeline(Pipeline):
    def __init__(self, store: "InMemoryStore"):
        self._store = store
        self._commands: List[Tuple[str, tuple]] = []

    def sadd(self, key, member):
        self._commands.append(("sadd", (key, member)))
        return self

    def srem(self, key, member):
        self._commands.append(("srem", (key, member)))
        return self

    def delete(self, key):
        self._commands.append(("delete", (key,)))
        return self

    def __len__(self):
        return len(self._commands)

    async def execute(self):
        results = []
        for name, args in self._commands:
            results.append(await getattr(self._store, name)(*args))
        self._commands = []
        return results


class InMemoryStore(StoreProvider):
    """
    Process-local store with the same surface as the Redis provider.

    Values are JSON-copied in and out, so callers never share references
    with what is "stored". Each command yields to the event loop once before
    running, which lets concurrent callers interleave between commands.
    """
    def __init__(self):
        self.values: Dict[str, Any] = {}
        self.sets: Dict[str, Set[Any]] = {}
        self.expires_at: Dict[str, float] = {}

    def _expire_if_due(self, key: str):
        deadline = self.expires_at.get(key)
        if deadline is not None and deadline <= time.monotonic():
            self.values.pop(key, None)
            self.expires_at.pop(key, None)

    async def get(self, key):
        await asyncio.sleep(0)
        self._expire_if_due(key)
        value = self.values.get(key)
        return None if value is None else json_copy(value)

    async def mget(self, keys):
        await asyncio.sleep(0)
        out = []
        for key in keys:
            self._expire_if_due(key)
            value = self.values.get(key)
            out.append(None if value is None else json_copy(value))
        return out

    async def set(self, key, value, *, get=False, keep_ttl=False, ex=None):
        await asyncio.sleep(0)
        self._expire_if_due(key)
        previous = self.values.get(key)
        self.values[key] = json_copy(value)
        if ex is not None:
            self.expires_at[key] = time.monotonic() + ex
        elif not keep_ttl:
            self.expires_at.pop(key, None)
        if get and previous is not None:
            return previous
        return None

    async def delete(self, key):
        await asyncio.sleep(0)
        self._expire_if_due(key)
        self.expires_at.pop(key, None)
        removed = int(self.values.pop(key, None) is not None)
        removed += int(self.sets.pop(key, None) is not None)
        return removed

    async def persist(self, key):
        await asyncio.sleep(0)
        self._expire_if_due(key)
        if key in self.values and key in self.expires_at:
            del self.expires_at[key]
            return True
        return False

    async def expire(self, key, seconds):
        await asyncio.sleep(0)
        self._expire_if_due(key)
        if key not in self.values:
            return False
        self.expires_at[key] = time.monotonic() + seconds
        return True

    async def ttl(self, key):
        # Redis conventions: -2 missing, -1 no expiry
        await asyncio.sleep(0)
        self._expire_if_due(key)
        if key not in self.values and key not in self.sets:
            return -2
        deadline = self.expires_at.get(key)
        if deadline is None:
            return -1
        return max(0, round(deadline - time.monotonic()))

    async def sadd(self, key, member):
        members = self.sets.setdefault(key, set())
        if member in members:
            return 0
        members.add(member)
        return 1

    async def srem(self, key, member):
        members = self.sets.get(key)
        if not members or member not in members:
            return 0
        members.discard(member)
        if not members:
            del self.sets[key]
        return 1

    async def smembers(self, key):
        await asyncio.sleep(0)
        return set(self.sets.get(key, ()))

    def pipeline(self):
        return InMemoryPipeline(self)

    async def close(self):
        return
