"""
Unit tests for the skin catalog backends
"""

import asyncio
import json
import threading
from types import SimpleNamespace

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError, WatchError

from core.skins import DEFAULT_AUTHOR, InMemorySkinCatalog, RedisSkinCatalog, SkinRecord, create_catalog


class FakePipeline:
    """Queues commands and applies them on execute(), like redis.asyncio pipelines"""

    def __init__(self, redis):
        self.redis = redis
        self.commands = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self.commands = []
        return False

    async def watch(self, key):
        self.redis.watch_count += 1

    async def get(self, key):
        return self.redis.strings.get(key)

    def multi(self):
        pass

    def set(self, key, value):
        self.commands.append(("set", key, value))
        return self

    def zadd(self, key, mapping):
        self.commands.append(("zadd", key, mapping))
        return self

    async def execute(self):
        commands, self.commands = self.commands, []
        if self.redis.fail_next_execute:
            self.redis.fail_next_execute = False
            raise RedisConnectionError("Connection reset by peer")
        if self.redis.concurrent_writer is not None:
            writer, self.redis.concurrent_writer = self.redis.concurrent_writer, None
            writer()
            raise WatchError("Watched variable changed.")

        results = []
        for command, key, value in commands:
            if command == "set":
                self.redis.strings[key] = value
            else:
                self.redis.zsets.setdefault(key, {}).update(value)
            results.append(True)
        return results


class FakeRedis:
    """In-process stand-in for the handful of Redis commands the catalog uses"""

    def __init__(self):
        self.strings = {}
        self.zsets = {}
        self.closed = False
        self.watch_count = 0
        self.fail_next_execute = False
        # Called once inside the next transaction, then the transaction aborts
        self.concurrent_writer = None

    def pipeline(self, transaction=True):
        return FakePipeline(self)

    async def zrange(self, key, start, end):
        members = sorted(self.zsets.get(key, {}).items(), key=lambda item: item[1])
        names = [name for name, _ in members]
        return names[start:] if end == -1 else names[start:end + 1]

    async def zcard(self, key):
        return len(self.zsets.get(key, {}))

    async def mget(self, keys):
        return [self.strings.get(key) for key in keys]

    async def aclose(self):
        self.closed = True


def add(catalog, name="Skin", filename="1_skin.png", author=None):
    return asyncio.run(
        catalog.add(name=name, filename=filename, url=f"/uploads/{filename}", author=author)
    )


@pytest.mark.unit
class TestInMemorySkinCatalog:
    """Test cases for the process-local catalog"""

    def test_first_record_gets_id_one(self):
        catalog = InMemorySkinCatalog()

        record = add(catalog, name="Cool Skin")

        assert record.id == 1
        assert record.name == "Cool Skin"
        assert record.author == DEFAULT_AUTHOR
        assert record.url == "/uploads/1_skin.png"

    def test_ids_increase_by_one(self):
        catalog = InMemorySkinCatalog()

        ids = [add(catalog, filename=f"{i}_s.png").id for i in range(5)]

        assert ids == [1, 2, 3, 4, 5]

    def test_author_kept_when_given(self):
        record = add(InMemorySkinCatalog(), author="Steve")

        assert record.author == "Steve"

    def test_empty_author_defaults(self):
        record = add(InMemorySkinCatalog(), author="")

        assert record.author == "Anonymous"

    def test_list_in_creation_order(self):
        catalog = InMemorySkinCatalog()
        for name in ("first", "second", "third"):
            add(catalog, name=name)

        records = asyncio.run(catalog.list())

        assert [r.name for r in records] == ["first", "second", "third"]
        assert asyncio.run(catalog.count()) == 3

    def test_list_is_stable_and_detached(self):
        catalog = InMemorySkinCatalog()
        add(catalog)

        first = asyncio.run(catalog.list())
        first.clear()
        second = asyncio.run(catalog.list())
        third = asyncio.run(catalog.list())

        assert len(second) == 1
        assert second == third

    def test_concurrent_adds_keep_ids_unique(self):
        catalog = InMemorySkinCatalog()
        results = []
        results_lock = threading.Lock()

        def worker(n):
            for i in range(20):
                record = add(catalog, filename=f"{n}_{i}.png")
                with results_lock:
                    results.append(record.id)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(results) == list(range(1, 161))
        listed = [r.id for r in asyncio.run(catalog.list())]
        assert listed == list(range(1, 161))


@pytest.mark.unit
class TestRedisSkinCatalog:
    """Test cases for the Redis-backed catalog"""

    def test_add_and_list(self):
        redis = FakeRedis()
        catalog = RedisSkinCatalog(redis, key_prefix="test")

        first = add(catalog, name="one", filename="1_one.png")
        second = add(catalog, name="two", filename="2_two.png", author="Alex")

        assert (first.id, second.id) == (1, 2)
        records = asyncio.run(catalog.list())
        assert records == [first, second]
        assert asyncio.run(catalog.count()) == 2

    def test_key_schema(self):
        redis = FakeRedis()
        catalog = RedisSkinCatalog(redis, key_prefix="test")

        record = add(catalog, name="one", filename="1_one.png")

        assert redis.strings["test:skins:seq"] == 1
        assert json.loads(redis.strings["test:skin:1"]) == record.to_dict()
        assert redis.zsets["test:skins:all"] == {"1": 1}

    def test_ids_continue_across_instances(self):
        redis = FakeRedis()
        add(RedisSkinCatalog(redis), filename="a.png")

        record = add(RedisSkinCatalog(redis), filename="b.png")

        assert record.id == 2
        assert len(asyncio.run(RedisSkinCatalog(redis).list())) == 2

    def test_empty_list(self):
        assert asyncio.run(RedisSkinCatalog(FakeRedis()).list()) == []

    def test_missing_body_is_skipped(self):
        redis = FakeRedis()
        catalog = RedisSkinCatalog(redis, key_prefix="test")
        add(catalog, filename="a.png")
        add(catalog, filename="b.png")
        del redis.strings["test:skin:1"]

        records = asyncio.run(catalog.list())

        assert [r.id for r in records] == [2]

    def test_failed_write_does_not_consume_id(self):
        redis = FakeRedis()
        catalog = RedisSkinCatalog(redis, key_prefix="test")
        redis.fail_next_execute = True

        with pytest.raises(RedisConnectionError):
            add(catalog, filename="lost.png")

        assert "test:skins:seq" not in redis.strings
        assert asyncio.run(catalog.list()) == []

        record = add(catalog, filename="kept.png")

        assert record.id == 1
        assert [r.filename for r in asyncio.run(catalog.list())] == ["kept.png"]

    def test_concurrent_writer_retries_with_next_id(self):
        redis = FakeRedis()
        catalog = RedisSkinCatalog(redis, key_prefix="test")
        other = SkinRecord(
            id=1,
            name="other",
            filename="other.png",
            url="/uploads/other.png",
            uploaded_at="2024-01-01T00:00:00.000Z",
        )

        def other_worker_adds():
            redis.strings["test:skins:seq"] = 1
            redis.strings["test:skin:1"] = json.dumps(other.to_dict())
            redis.zsets.setdefault("test:skins:all", {})["1"] = 1

        redis.concurrent_writer = other_worker_adds

        record = add(catalog, filename="mine.png")

        assert record.id == 2
        assert redis.watch_count == 2
        assert [r.filename for r in asyncio.run(catalog.list())] == ["other.png", "mine.png"]

    def test_close(self):
        redis = FakeRedis()
        asyncio.run(RedisSkinCatalog(redis).close())

        assert redis.closed


@pytest.mark.unit
class TestSkinRecord:
    def test_round_trip_dict(self):
        record = SkinRecord(
            id=3,
            name="Cool Skin",
            filename="1700000000000_cool.png",
            url="/uploads/1700000000000_cool.png",
            uploaded_at="2024-01-01T00:00:00.000Z",
        )

        assert record.to_dict()["uploadedAt"] == "2024-01-01T00:00:00.000Z"
        assert SkinRecord.from_dict(record.to_dict()) == record


@pytest.mark.unit
def test_create_catalog_memory_default():
    settings = SimpleNamespace(catalog_backend="memory")

    assert isinstance(create_catalog(settings), InMemorySkinCatalog)


@pytest.mark.unit
def test_create_catalog_redis():
    settings = SimpleNamespace(
        catalog_backend="redis",
        redis_url="redis://localhost:6379/0",
        redis_key_prefix="skins-test",
    )

    catalog = create_catalog(settings)

    assert isinstance(catalog, RedisSkinCatalog)
    assert catalog.prefix == "skins-test"
