"""
Redis pub/sub change feed.

``publish`` sends a small message on ``<prefix>:<tenant>:<collection>``.
Every worker process listens on ``<prefix>:*`` and, on each message,
re-reads the collection and dispatches to its own local subscribers, so
dashboards connected to any worker see writes made on any other.
If the pub/sub connection drops, the listener reconnects with backoff and
re-reads every subscribed collection once it is back.
"""

import asyncio
import contextlib
import logging
from typing import Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from restro.services.changes.base import BaseChangeFeed, Collection, SnapshotLoader

logger = logging.getLogger(__name__)

# Seconds between listener reconnect attempts; the last value repeats
RECONNECT_DELAYS = (0.5, 1.0, 2.0, 5.0, 10.0)


class RedisChangeFeed(BaseChangeFeed):

    def __init__(
        self,
        loader: SnapshotLoader,
        redis_url: str,
        channel_prefix: str = "restro:changes",
        client: Optional[aioredis.Redis] = None,
        reconnect_delays: tuple[float, ...] = RECONNECT_DELAYS,
    ):
        super().__init__(loader)
        self.channel_prefix = channel_prefix
        self.reconnect_delays = reconnect_delays
        self._redis = client or aioredis.from_url(redis_url, decode_responses=True)
        self._pubsub = None
        self._task: Optional[asyncio.Task] = None

    @property
    def provider_name(self) -> str:
        return "redis"

    def channel_for(self, tenant_id: str, collection: Collection) -> str:
        return f"{self.channel_prefix}:{tenant_id}:{Collection(collection).value}"

    def parse_channel(self, channel: str) -> Optional[tuple[str, Collection]]:
        prefix = f"{self.channel_prefix}:"
        if not channel.startswith(prefix):
            return None
        tenant_id, _, name = channel[len(prefix):].rpartition(":")
        try:
            return tenant_id, Collection(name)
        except ValueError:
            return None

    async def start(self) -> None:
        await self._connect()
        self._task = asyncio.create_task(self._listen(), name="change-feed-redis")
        self._task.add_done_callback(self._listener_done)
        await super().start()

    async def stop(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        self._task = None
        await self._disconnect()
        await self._redis.aclose()
        await super().stop()

    async def health_check(self) -> bool:
        if self._task is not None and self._task.done():
            logger.error("Redis listener is not running")
            return False
        if not self.connected:
            return False
        try:
            return bool(await self._redis.ping())
        except RedisError as e:
            logger.error(f"Redis health check failed: {e}")
            return False

    @property
    def connected(self) -> bool:
        return self._pubsub is not None

    async def publish(self, tenant_id: str, collection: Collection) -> None:
        collection = Collection(collection)
        try:
            await self._redis.publish(self.channel_for(tenant_id, collection), "changed")
        except RedisError as e:
            # Local subscribers still get the change
            logger.error(f"Redis publish failed for {tenant_id}/{collection.value}: {e}")
            await self._deliver(tenant_id, collection)

    async def _connect(self) -> None:
        pubsub = self._redis.pubsub()
        try:
            await pubsub.psubscribe(f"{self.channel_prefix}:*")
        except (RedisError, OSError):
            with contextlib.suppress(RedisError, OSError):
                await pubsub.aclose()
            raise
        self._pubsub = pubsub

    def _listener_done(self, task: asyncio.Task) -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Redis listener stopped: {task.exception()!r}")

    async def _disconnect(self) -> None:
        pubsub, self._pubsub = self._pubsub, None
        if pubsub is not None:
            with contextlib.suppress(RedisError, OSError):
                await pubsub.aclose()

    async def _listen(self) -> None:
        failures = 0
        while True:
            try:
                if self._pubsub is None:
                    await self._connect()
                    logger.info("Redis listener reconnected")
                    # Writes made while disconnected were never heard
                    for tenant_id, collection in self.subscribed_keys():
                        await self._deliver(tenant_id, collection)

                async for message in self._pubsub.listen():
                    failures = 0
                    await self._handle(message)
                reason = "stream ended"
            except (RedisError, OSError) as e:
                reason = str(e) or type(e).__name__

            await self._disconnect()
            delay = self.reconnect_delays[min(failures, len(self.reconnect_delays) - 1)]
            failures += 1
            logger.error(f"Redis listener lost connection ({reason}); retry {failures} in {delay}s")
            await asyncio.sleep(delay)

    async def _handle(self, message: dict) -> None:
        if message.get("type") != "pmessage":
            return
        parsed = self.parse_channel(message.get("channel", ""))
        if parsed is None:
            logger.debug(f"Ignoring message on {message.get('channel')}")
            return
        await self._deliver(*parsed)
