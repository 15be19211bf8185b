"""
Repository base class.

Every store call goes through ``_guard``, which bounds it with the
configured timeout and turns driver failures into ``StoreUnavailableError``.
Commits are shielded: once a write is issued it runs to completion even
if the caller stops waiting for it.
"""

import asyncio
import logging
from typing import Any, Awaitable, Optional, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from restro.core.config import get_settings
from restro.core.errors import ConflictError, StoreUnavailableError

logger = logging.getLogger(__name__)

R = TypeVar("R")


class BaseRepository:

    def __init__(self, session: AsyncSession, timeout: Optional[float] = None):
        self.session = session
        self.timeout = timeout or get_settings().store_timeout_seconds

    async def _guard(self, awaitable: Awaitable[R], operation: str, shield: bool = False) -> R:
        try:
            if shield:
                return await asyncio.wait_for(asyncio.shield(awaitable), self.timeout)
            return await asyncio.wait_for(awaitable, self.timeout)
        except asyncio.TimeoutError:
            logger.error(f"Store call timed out after {self.timeout}s: {operation}")
            raise StoreUnavailableError(f"Store timed out during {operation}")
        except IntegrityError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Store call failed: {operation}: {e}")
            raise StoreUnavailableError(f"Store unavailable during {operation}") from e

    async def _scalars(self, stmt: Any, operation: str) -> list[Any]:
        result = await self._guard(self.session.execute(stmt), operation)
        return list(result.scalars().all())

    async def _scalar_one_or_none(self, stmt: Any, operation: str) -> Any:
        result = await self._guard(self.session.execute(stmt), operation)
        return result.scalar_one_or_none()

    async def _rollback(self) -> None:
        try:
            await self.session.rollback()
        except SQLAlchemyError as e:
            logger.warning(f"Rollback failed: {e}")

    async def _commit(self, operation: str, conflict_message: Optional[str] = None) -> None:
        """Commit the unit of work; a unique-key violation becomes ``ConflictError``."""
        try:
            await self._guard(self.session.commit(), operation, shield=True)
        except IntegrityError as e:
            await self._rollback()
            logger.info(f"Integrity violation during {operation}: {e.orig}")
            raise ConflictError(conflict_message or f"Duplicate record during {operation}")

    async def _insert(self, obj: Any, operation: str, conflict_message: str) -> Any:
        self.session.add(obj)
        await self._commit(operation, conflict_message)
        await self._guard(self.session.refresh(obj), operation)
        return obj

    async def _save(self, obj: Any, operation: str) -> Any:
        await self._commit(operation)
        await self._guard(self.session.refresh(obj), operation)
        return obj

    async def _remove(self, obj: Any, operation: str) -> None:
        await self._guard(self.session.delete(obj), operation)
        await self._commit(operation)
