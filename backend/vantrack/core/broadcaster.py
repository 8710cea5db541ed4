"""Real-time broadcast store for location records and stoppage alerts.

Records live under ``<keyspace>/<key>`` paths (``locations/{busId}``,
``alerts/{alertId}``). Each keyspace is a Redis hash of orjson-encoded
records; every write is a full overwrite, last writer wins. Subscribers
receive the full keyspace snapshot on every change, never a diff.
"""

import logging
from typing import Callable

import orjson
import redis.asyncio as aioredis
from redis.exceptions import RedisError

from vantrack.config import settings
from vantrack.core.errors import BroadcastWriteError

logger = logging.getLogger(__name__)

KEY_PREFIX = "fleet"
KEYSPACES = ("locations", "alerts")

SnapshotCallback = Callable[[list[dict]], None]


def split_path(path: str) -> tuple[str, str]:
    keyspace, sep, key = path.partition("/")
    if not sep or not keyspace or not key or "/" in key:
        raise ValueError(f"Invalid store path: {path!r}")
    return keyspace, key


class FleetBroadcastStore:
    """Redis-backed keyspace store with in-process snapshot fan-out.

    Without a Redis connection the store keeps records in memory only,
    which is what a single-process deployment and the tests use.
    """

    def __init__(self) -> None:
        self._redis: aioredis.Redis | None = None
        # keyspace -> {key -> record}
        self._entries: dict[str, dict[str, dict]] = {ks: {} for ks in KEYSPACES}
        self._subscribers: dict[str, list[SnapshotCallback]] = {}

    async def connect(self, url: str | None = None) -> None:
        self._redis = aioredis.from_url(url or settings.redis_url, decode_responses=False)
        # Warm the local mirror with whatever survived a restart
        for keyspace in KEYSPACES:
            try:
                raw = await self._redis.hgetall(self._hash_key(keyspace))
            except RedisError:
                logger.exception("Failed to load %s from Redis", keyspace)
                continue
            self._entries[keyspace] = {
                k.decode(): orjson.loads(v) for k, v in raw.items()
            }
            logger.info("Loaded %d %s records from Redis", len(raw), keyspace)

    async def close(self) -> None:
        if self._redis:
            await self._redis.aclose()

    @staticmethod
    def _hash_key(keyspace: str) -> str:
        return f"{KEY_PREFIX}:{keyspace}"

    async def write(self, path: str, record: dict) -> None:
        """Overwrite the record at path and notify keyspace subscribers."""
        keyspace, key = split_path(path)
        await self._store(keyspace, key, record)

    async def update(self, path: str, fields: dict) -> dict:
        """Patch fields of an existing record. Raises KeyError if it does not exist."""
        keyspace, key = split_path(path)
        current = self._entries.get(keyspace, {}).get(key)
        if current is None:
            raise KeyError(path)
        record = {**current, **fields}
        await self._store(keyspace, key, record)
        return record

    def get(self, path: str) -> dict | None:
        keyspace, key = split_path(path)
        return self._entries.get(keyspace, {}).get(key)

    def snapshot(self, keyspace: str) -> list[dict]:
        return list(self._entries.get(keyspace, {}).values())

    def subscribe(self, keyspace: str, callback: SnapshotCallback) -> Callable[[], None]:
        """Register for keyspace snapshots. Returns the unsubscribe function."""
        self._subscribers.setdefault(keyspace, []).append(callback)

        def unsubscribe() -> None:
            subs = self._subscribers.get(keyspace, [])
            if callback in subs:
                subs.remove(callback)

        return unsubscribe

    async def _store(self, keyspace: str, key: str, record: dict) -> None:
        if self._redis:
            payload = orjson.dumps(record)
            try:
                async with self._redis.pipeline(transaction=True) as pipe:
                    pipe.hset(self._hash_key(keyspace), key, payload)
                    pipe.publish(
                        f"{self._hash_key(keyspace)}:changes",
                        orjson.dumps({"key": key, "record": record}),
                    )
                    await pipe.execute()
            except RedisError as e:
                raise BroadcastWriteError(f"{keyspace}/{key}: {e}") from e

        self._entries.setdefault(keyspace, {})[key] = record
        self._fan_out(keyspace)

    def _fan_out(self, keyspace: str) -> None:
        snapshot = self.snapshot(keyspace)
        dead = []
        for callback in self._subscribers.get(keyspace, []):
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Dropping %s subscriber after delivery failure", keyspace)
                dead.append(callback)
        for callback in dead:
            self._subscribers[keyspace].remove(callback)
