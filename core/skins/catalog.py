"""
Skin catalog storage.

Two interchangeable backends behind the ``SkinCatalog`` interface:
- ``InMemorySkinCatalog``: process-local list, lost on restart
- ``RedisSkinCatalog``: shared across uvicorn workers and restarts

Both assign ids sequentially starting at 1 and list records oldest first.
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from typing import List, Optional

from redis.asyncio import Redis
from redis.exceptions import WatchError

from .models import DEFAULT_AUTHOR, SkinRecord, utc_timestamp

logger = logging.getLogger(__name__)


class SkinCatalog(ABC):
    """Append-only, ordered collection of uploaded skins"""

    @abstractmethod
    async def add(
        self,
        name: str,
        filename: str,
        url: str,
        author: Optional[str] = None,
    ) -> SkinRecord:
        """Assign the next id, append the record and return it"""

    @abstractmethod
    async def list(self) -> List[SkinRecord]:
        """All records in creation order (oldest first)"""

    @abstractmethod
    async def count(self) -> int:
        """Number of cataloged records"""

    async def close(self) -> None:
        """Release backend resources"""


class InMemorySkinCatalog(SkinCatalog):
    """
    Process-local catalog.

    The lock covers id assignment and append together, so records stay unique
    and ordered even when handlers run on several threads.
    """

    def __init__(self):
        self._records: List[SkinRecord] = []
        self._lock = threading.Lock()

    async def add(
        self,
        name: str,
        filename: str,
        url: str,
        author: Optional[str] = None,
    ) -> SkinRecord:
        with self._lock:
            record = SkinRecord(
                id=len(self._records) + 1,
                name=name,
                author=author or DEFAULT_AUTHOR,
                filename=filename,
                url=url,
                uploaded_at=utc_timestamp(),
            )
            self._records.append(record)

        logger.info(f"Cataloged skin {record.id}: {record.filename}")
        return record

    async def list(self) -> List[SkinRecord]:
        with self._lock:
            return list(self._records)

    async def count(self) -> int:
        with self._lock:
            return len(self._records)


class RedisSkinCatalog(SkinCatalog):
    """
    Redis-based skin catalog.

    Redis Key Schema:
        - skins:seq -> last assigned id
        - skin:{id} -> Skin record JSON
        - skins:all -> ZSET of ids scored by id
    """

    def __init__(self, redis_client: Redis, key_prefix: str = "skinview"):
        self.redis = redis_client
        self.prefix = key_prefix

    def _key(self, *parts) -> str:
        """Generate Redis key with prefix"""
        return ":".join([self.prefix] + [str(p) for p in parts])

    async def add(
        self,
        name: str,
        filename: str,
        url: str,
        author: Optional[str] = None,
    ) -> SkinRecord:
        seq_key = self._key("skins", "seq")

        # The counter advances in the same transaction as the record it numbers.
        # Concurrent writers retry on WatchError.
        async with self.redis.pipeline(transaction=True) as pipe:
            while True:
                try:
                    await pipe.watch(seq_key)
                    skin_id = int(await pipe.get(seq_key) or 0) + 1
                    record = SkinRecord(
                        id=skin_id,
                        name=name,
                        author=author or DEFAULT_AUTHOR,
                        filename=filename,
                        url=url,
                        uploaded_at=utc_timestamp(),
                    )

                    pipe.multi()
                    pipe.set(seq_key, skin_id)
                    pipe.set(self._key("skin", skin_id), json.dumps(record.to_dict()))
                    pipe.zadd(self._key("skins", "all"), {str(skin_id): skin_id})
                    await pipe.execute()
                    break
                except WatchError:
                    logger.debug(f"Skin id {skin_id} taken concurrently, retrying")

        logger.info(f"Cataloged skin {record.id} in Redis: {record.filename}")
        return record

    async def list(self) -> List[SkinRecord]:
        skin_ids = await self.redis.zrange(self._key("skins", "all"), 0, -1)
        if not skin_ids:
            return []

        keys = []
        for skin_id in skin_ids:
            skin_id = skin_id.decode() if isinstance(skin_id, bytes) else skin_id
            keys.append(self._key("skin", skin_id))

        records = []
        for raw in await self.redis.mget(keys):
            if raw is None:
                # indexed but body deleted
                logger.warning("Skin record missing from Redis, skipping")
                continue
            records.append(SkinRecord.from_dict(json.loads(raw)))
        return records

    async def count(self) -> int:
        return int(await self.redis.zcard(self._key("skins", "all")))

    async def close(self) -> None:
        await self.redis.aclose()


def create_catalog(settings) -> SkinCatalog:
    """Build the catalog backend selected in settings"""
    if settings.catalog_backend == "redis":
        logger.info(f"Using Redis skin catalog at {settings.redis_url}")
        redis_client = Redis.from_url(settings.redis_url, decode_responses=True)
        return RedisSkinCatalog(redis_client, key_prefix=settings.redis_key_prefix)

    logger.info("Using in-memory skin catalog (not persisted across restarts)")
    return InMemorySkinCatalog()
