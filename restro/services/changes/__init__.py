"""
Change Feed Factory

Builds the configured change feed. The feed is created in the application
lifespan, kept on ``app.state`` and stopped at shutdown; callers receive it
by injection rather than importing a module-level instance.

Usage:
    feed = create_change_feed(settings, loader)
    await feed.start()
    sub = feed.subscribe("r1", Collection.ORDERS, on_orders, subscriber_id="dash-1")
    await feed.publish("r1", Collection.ORDERS)
    sub.cancel()
    await feed.stop()
"""

import logging

from restro.core.config import ChangeFeedBackend, Settings
from restro.services.changes.base import (
    BaseChangeFeed,
    Collection,
    Snapshot,
    SnapshotCallback,
    SnapshotLoader,
    Subscription,
)
from restro.services.changes.memory import InMemoryChangeFeed
from restro.services.changes.polling import PollingChangeFeed
from restro.services.changes.snapshots import StoreSnapshotLoader, serialize

logger = logging.getLogger(__name__)


def create_change_feed(settings: Settings, loader: SnapshotLoader) -> BaseChangeFeed:
    backend = settings.change_feed_backend

    if backend == ChangeFeedBackend.POLLING:
        logger.info(f"Change Feed: polling every {settings.change_feed_poll_interval}s")
        return PollingChangeFeed(loader, interval=settings.change_feed_poll_interval)

    if backend == ChangeFeedBackend.REDIS:
        from restro.services.changes.redis_pubsub import RedisChangeFeed

        logger.info("Change Feed: Redis pub/sub")
        return RedisChangeFeed(
            loader,
            redis_url=settings.redis_url,
            channel_prefix=settings.change_feed_channel_prefix,
        )

    logger.info("Change Feed: in-process")
    return InMemoryChangeFeed(loader)


__all__ = [
    "create_change_feed",
    "BaseChangeFeed",
    "Collection",
    "InMemoryChangeFeed",
    "PollingChangeFeed",
    "Snapshot",
    "SnapshotCallback",
    "SnapshotLoader",
    "StoreSnapshotLoader",
    "Subscription",
    "serialize",
]
