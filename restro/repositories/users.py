"""User (principal) repository."""

from typing import Any, Optional

from sqlalchemy import select

from restro.models import User
from restro.repositories.base import BaseRepository


class UserRepository(BaseRepository):

    async def get(self, user_id: int) -> Optional[User]:
        stmt = select(User).where(User.id == user_id)
        return await self._scalar_one_or_none(stmt, "get user")

    async def get_by_email(self, email: str) -> Optional[User]:
        stmt = select(User).where(User.email == email.lower())
        return await self._scalar_one_or_none(stmt, "get user by email")

    async def get_by_reset_token(self, hashed_token: str) -> Optional[User]:
        stmt = select(User).where(User.reset_token == hashed_token)
        return await self._scalar_one_or_none(stmt, "get user by reset token")

    async def email_taken(self, email: str, exclude_user_id: Optional[int] = None) -> bool:
        stmt = select(User.id).where(User.email == email.lower())
        if exclude_user_id is not None:
            stmt = stmt.where(User.id != exclude_user_id)
        return await self._scalar_one_or_none(stmt, "check email") is not None

    async def create(self, **values: Any) -> User:
        return await self._insert(User(**values), "create user", "User with this email already exists")

    async def update(self, user: User, changes: dict[str, Any]) -> User:
        for key, value in changes.items():
            setattr(user, key, value)
        return await self._save(user, "update user")
