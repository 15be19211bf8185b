"""
Change Feed Abstract Base Class

Propagates "collection X of restaurant Y changed" to subscribers. Every
delivery is a full, freshly re-queried snapshot of that collection for
that tenant, never a diff.

Delivery is at-least-once and best-effort: a subscriber whose callback
raises is logged and skipped; the others still receive the snapshot and
nothing is retried.

Author: Khalil Bannouri
Version: 1.0.0
"""

import enum
import inspect
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Union

logger = logging.getLogger(__name__)


class Collection(str, enum.Enum):
    ORDERS = "orders"
    TABLES = "tables"
    MENU = "menu"


Snapshot = list[dict[str, Any]]
SnapshotCallback = Callable[[Snapshot], Union[None, Awaitable[None]]]
SnapshotLoader = Callable[[str, Collection], Awaitable[Snapshot]]


@dataclass(eq=False)
class Subscription:
    """Handle returned by ``subscribe``; ``cancel()`` unsubscribes."""
    tenant_id: str
    collection: Collection
    subscriber_id: str
    callback: SnapshotCallback = field(repr=False)
    feed: "BaseChangeFeed" = field(repr=False)

    @property
    def active(self) -> bool:
        return self.feed.is_active(self)

    def cancel(self) -> None:
        self.feed.unsubscribe(self)


class BaseChangeFeed(ABC):
    """
    Subscriber registry plus dispatch. Subclasses decide how a publish
    reaches the registry (directly, by polling, or over Redis).

    At most one live subscription exists per
    (tenant_id, collection, subscriber_id); subscribing again replaces it.
    """

    def __init__(self, loader: SnapshotLoader):
        self._loader = loader
        self._subscriptions: dict[tuple[str, Collection], dict[str, Subscription]] = {}

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the backend name."""
        pass

    @abstractmethod
    async def publish(self, tenant_id: str, collection: Collection) -> None:
        """Announce that ``collection`` changed for ``tenant_id``."""
        pass

    async def start(self) -> None:
        logger.info(f"Change feed started ({self.provider_name})")

    async def stop(self) -> None:
        self._subscriptions.clear()
        logger.info(f"Change feed stopped ({self.provider_name})")

    async def health_check(self) -> bool:
        return True

    # =========================================================================
    # REGISTRY
    # =========================================================================

    def subscribe(
        self,
        tenant_id: str,
        collection: Collection,
        callback: SnapshotCallback,
        subscriber_id: Optional[str] = None,
    ) -> Subscription:
        collection = Collection(collection)
        subscription = Subscription(
            tenant_id=tenant_id,
            collection=collection,
            subscriber_id=subscriber_id or uuid.uuid4().hex,
            callback=callback,
            feed=self,
        )
        bucket = self._subscriptions.setdefault((tenant_id, collection), {})
        if subscription.subscriber_id in bucket:
            logger.debug(f"Replacing subscription {subscription.subscriber_id} on {tenant_id}/{collection.value}")
        bucket[subscription.subscriber_id] = subscription
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        key = (subscription.tenant_id, subscription.collection)
        bucket = self._subscriptions.get(key)
        if not bucket:
            return
        # A replaced handle must not remove its replacement
        if bucket.get(subscription.subscriber_id) is subscription:
            del bucket[subscription.subscriber_id]
        if not bucket:
            del self._subscriptions[key]

    def is_active(self, subscription: Subscription) -> bool:
        bucket = self._subscriptions.get((subscription.tenant_id, subscription.collection), {})
        return bucket.get(subscription.subscriber_id) is subscription

    def subscriber_count(self, tenant_id: str, collection: Collection) -> int:
        return len(self._subscriptions.get((tenant_id, Collection(collection)), {}))

    def subscribed_keys(self) -> list[tuple[str, Collection]]:
        return list(self._subscriptions)

    # =========================================================================
    # DELIVERY
    # =========================================================================

    async def load_snapshot(self, tenant_id: str, collection: Collection) -> Snapshot:
        return await self._loader(tenant_id, Collection(collection))

    async def _deliver(self, tenant_id: str, collection: Collection) -> int:
        """Re-read the collection and hand it to every subscriber."""
        if not self.subscriber_count(tenant_id, collection):
            return 0
        try:
            snapshot = await self.load_snapshot(tenant_id, collection)
        except Exception as e:
            logger.error(f"Snapshot load failed for {tenant_id}/{collection.value}: {e}")
            return 0
        return await self._dispatch(tenant_id, collection, snapshot)

    async def _dispatch(self, tenant_id: str, collection: Collection, snapshot: Snapshot) -> int:
        delivered = 0
        bucket = self._subscriptions.get((tenant_id, collection), {})
        for subscription in list(bucket.values()):
            try:
                result = subscription.callback(snapshot)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception as e:
                logger.warning(
                    f"Dropped {collection.value} snapshot for subscriber "
                    f"{subscription.subscriber_id} ({tenant_id}): {e}"
                )
        logger.debug(f"Delivered {collection.value} snapshot for {tenant_id} to {delivered} subscriber(s)")
        return delivered
