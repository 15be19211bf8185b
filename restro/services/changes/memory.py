"""
In-process push change feed.

``publish`` re-reads the collection and dispatches immediately. Suitable
for a single worker process.
"""

from restro.services.changes.base import BaseChangeFeed, Collection


class InMemoryChangeFeed(BaseChangeFeed):

    @property
    def provider_name(self) -> str:
        return "memory"

    async def publish(self, tenant_id: str, collection: Collection) -> None:
        await self._deliver(tenant_id, Collection(collection))
