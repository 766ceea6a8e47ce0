import pytest
from recordstore.storage import InMemoryStore, load_storage_provider
from recordstore.collection import Collection
from recordstore.errors import DecodeError
from recordstore.storage.providers.redis_provider import RedisStore


@pytest.mark.asyncio
async def test_memory_get_and_set_returns_previous(store):
    assert await store.set("k", {"v": 1}, get=True) is None
    assert await store.set("k", {"v": 2}, get=True) == {"v": 1}
    assert await store.get("k") == {"v": 2}


@pytest.mark.asyncio
async def test_memory_values_are_copied(store):
    value = {"v": [1]}
    await store.set("k", value)
    value["v"].append(2)
    got = await store.get("k")
    got["v"].append(3)
    assert await store.get("k") == {"v": [1]}


@pytest.mark.asyncio
async def test_memory_ttl_semantics(store):
    assert await store.ttl("k") == -2
    await store.set("k", 1, ex=50)
    assert 0 < await store.ttl("k") <= 50

    await store.set("k", 2, keep_ttl=True)
    assert 0 < await store.ttl("k") <= 50

    await store.set("k", 3)
    assert await store.ttl("k") == -1


@pytest.mark.asyncio
async def test_memory_expired_key_disappears(store):
    await store.set("k", 1, ex=0)
    assert await store.get("k") is None
    assert await store.mget(["k"]) == [None]


@pytest.mark.asyncio
async def test_memory_pipeline_runs_in_order(store):
    pipe = store.pipeline()
    pipe.sadd("s", "a").sadd("s", "b").srem("s", "a")
    assert len(pipe) == 3
    assert await pipe.execute() == [1, 1, 1]
    assert await store.smembers("s") == {"b"}
    assert len(pipe) == 0


def test_factory_modes(monkeypatch):
    monkeypatch.delenv("RECORDSTORE_PROVIDER", raising=False)
    assert isinstance(load_storage_provider(), InMemoryStore)

    monkeypatch.setenv("RECORDSTORE_PROVIDER", "redis")
    monkeypatch.setenv("RECORDSTORE_REDIS_URL", "redis://cache.internal:6380/2")
    s = load_storage_provider()
    assert isinstance(s, RedisStore)
    assert s.url == "redis://cache.internal:6380/2"

    assert isinstance(load_storage_provider({"provider": "memory"}), InMemoryStore)
    with pytest.raises(ValueError):
        load_storage_provider({"provider": "etcd"})


class FakePipeline:
    def __init__(self, client):
        self.client = client
        self.commands = []

    def sadd(self, key, member):
        self.commands.append(("sadd", key, member))

    def srem(self, key, member):
        self.commands.append(("srem", key, member))

    def delete(self, key):
        self.commands.append(("delete", key))

    def __len__(self):
        return len(self.commands)

    async def execute(self):
        self.client.executed.append(list(self.commands))
        return [1] * len(self.commands)


class FakeRedis:
    """Stands in for redis.asyncio.Redis with decode_responses=True."""

    def __init__(self):
        self.data = {}
        self.sets = {}
        self.calls = []
        self.executed = []

    async def get(self, key):
        return self.data.get(key)

    async def mget(self, keys):
        return [self.data.get(k) for k in keys]

    async def set(self, key, value, ex=None, keepttl=False, get=False):
        self.calls.append(("set", key, value, ex, keepttl, get))
        prev = self.data.get(key)
        self.data[key] = value
        return prev if get else True

    async def smembers(self, key):
        return set(self.sets.get(key, ()))

    def pipeline(self, transaction=True):
        self.calls.append(("pipeline", transaction))
        return FakePipeline(self)


@pytest.mark.asyncio
async def test_redis_store_json_encodes_values():
    client = FakeRedis()
    s = RedisStore(client=client)

    assert await s.set("k", {"id": 1, "name": "Ada"}, get=True, keep_ttl=True) is None
    assert client.data["k"] == '{"id":1,"name":"Ada"}'
    assert client.calls[-1] == ("set", "k", '{"id":1,"name":"Ada"}', None, True, True)

    assert await s.set("k", "token", ex=30, keep_ttl=True, get=True) == {"id": 1, "name": "Ada"}
    assert client.calls[-1] == ("set", "k", '"token"', 30, False, True)
    assert await s.get("k") == "token"
    assert await s.mget(["k", "missing"]) == ["token", None]


@pytest.mark.asyncio
async def test_redis_store_members_roundtrip_types():
    client = FakeRedis()
    client.sets["idx"] = {'"c1"', "7"}
    s = RedisStore(client=client)
    assert await s.smembers("idx") == {"c1", 7}

    pipe = s.pipeline()
    pipe.sadd("idx", 7).srem("idx", "c1")
    assert len(pipe) == 2
    await pipe.execute()
    assert client.calls[-1] == ("pipeline", False)
    assert client.executed == [[("sadd", "idx", "7"), ("srem", "idx", '"c1"')]]


@pytest.mark.asyncio
async def test_redis_store_non_json_value_raises_decode_error():
    client = FakeRedis()
    client.data["k"] = "not json"
    s = RedisStore(client=client)
    with pytest.raises(DecodeError):
        await s.get("k")
    with pytest.raises(DecodeError):
        await s.mget(["k"])


@pytest.mark.asyncio
async def test_collection_over_redis_tolerates_non_json_previous(caplog):
    client = FakeRedis()
    client.data["p:c1"] = "not json"
    col = Collection(RedisStore(client=client), key_prefix="p")
    team = col.add_index("team")

    assert await col.set({"id": "c1", "team": "red"}) == {"id": "c1", "team": "red"}
    assert client.data["p:c1"] == '{"id":"c1","team":"red"}'
    assert client.executed == [[("sadd", "p:idx_team:red", '"c1"')]]
    assert "undecodable previous value" in caplog.text
