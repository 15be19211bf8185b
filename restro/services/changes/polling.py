"""
Polling change feed.

A background task re-reads every subscribed collection on a fixed
interval and dispatches when the snapshot differs from the last one it
delivered. ``publish`` forces an immediate refresh of one collection so
local writers do not wait for the next tick.
"""

import asyncio
import contextlib
import hashlib
import json
import logging
from typing import Optional

from restro.services.changes.base import (
    BaseChangeFeed,
    Collection,
    Snapshot,
    SnapshotLoader,
)

logger = logging.getLogger(__name__)


def fingerprint(snapshot: Snapshot) -> str:
    payload = json.dumps(snapshot, sort_keys=True, default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class PollingChangeFeed(BaseChangeFeed):

    def __init__(self, loader: SnapshotLoader, interval: float = 2.0):
        super().__init__(loader)
        self.interval = interval
        self._fingerprints: dict[tuple[str, Collection], str] = {}
        self._task: Optional[asyncio.Task] = None

    @property
    def provider_name(self) -> str:
        return "polling"

    async def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name="change-feed-poller")
        await super().start()

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        self._fingerprints.clear()
        await super().stop()

    async def health_check(self) -> bool:
        return self._task is not None and not self._task.done()

    async def publish(self, tenant_id: str, collection: Collection) -> None:
        await self._refresh(tenant_id, Collection(collection), force=True)

    async def poll_once(self) -> int:
        """One pass over every subscribed collection. Returns how many changed."""
        changed = 0
        for tenant_id, collection in self.subscribed_keys():
            if await self._refresh(tenant_id, collection):
                changed += 1
        return changed

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            await self.poll_once()

    async def _refresh(self, tenant_id: str, collection: Collection, force: bool = False) -> bool:
        key = (tenant_id, collection)
        if not self.subscriber_count(tenant_id, collection):
            self._fingerprints.pop(key, None)
            return False

        try:
            snapshot = await self.load_snapshot(tenant_id, collection)
        except Exception as e:
            logger.error(f"Poll failed for {tenant_id}/{collection.value}: {e}")
            return False

        digest = fingerprint(snapshot)
        if not force and self._fingerprints.get(key) == digest:
            return False

        self._fingerprints[key] = digest
        await self._dispatch(tenant_id, collection, snapshot)
        return True
