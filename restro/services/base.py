"""
Shared plumbing for the domain services.

A service owns one request's session and, optionally, the change feed it
announces writes on.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from restro.services.changes import BaseChangeFeed, Collection

logger = logging.getLogger(__name__)


class DomainService:

    def __init__(
        self,
        session: AsyncSession,
        feed: Optional[BaseChangeFeed] = None,
        timeout: Optional[float] = None,
    ):
        self.session = session
        self.feed = feed
        self.timeout = timeout

    async def _announce(self, tenant_id: str, collection: Collection) -> None:
        """Publish a change. Never fails the write that triggered it."""
        if self.feed is None:
            return
        try:
            await self.feed.publish(tenant_id, collection)
        except Exception as e:
            logger.error(f"Change publish failed for {tenant_id}/{Collection(collection).value}: {e}")
