"""
Shared fixtures.

Every test runs against a fresh in-memory SQLite database. The engine is
disposed after each test, which drops the database with its connection.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENV_MODE", "development")
os.environ.setdefault("CHANGE_FEED_BACKEND", "memory")
os.environ.setdefault("SESSION_SECRET", "test-secret")
os.environ.setdefault("PUBLIC_BASE_URL", "http://restro.test")

from dataclasses import dataclass
from typing import Optional

import httpx
import pytest

from restro.core.security import Principal, SessionSigner, hash_password
from restro.database import async_session_maker, engine, init_db
from restro.models import MenuCategory, UserRole
from restro.repositories import (
    MenuItemRepository,
    RestaurantRepository,
    TableRepository,
    UserRepository,
)
from restro.services.changes import InMemoryChangeFeed, StoreSnapshotLoader
from restro.services.notifications import MockNotificationService

PASSWORD = "secret123"


@dataclass
class Tenant:
    restaurant_id: str
    principal: Principal
    token: str

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


# ── Store ─────────────────────────────────────────────────────

@pytest.fixture
async def store():
    """Session factory over a freshly created schema."""
    await init_db()
    yield async_session_maker
    await engine.dispose()


@pytest.fixture
async def session(store):
    async with store() as s:
        yield s


@pytest.fixture
def feed(store):
    return InMemoryChangeFeed(StoreSnapshotLoader(store))


@pytest.fixture
def mailer():
    return MockNotificationService(failure_rate=0.0, latency=(0.0, 0.0))


# ── Seeding ───────────────────────────────────────────────────

@pytest.fixture
def make_tenant(store):
    """Create a restaurant plus a user bound to it; returns a ``Tenant``."""

    async def _make(
        restaurant_id: str,
        role: UserRole = UserRole.ADMIN,
        email: Optional[str] = None,
        is_active: bool = True,
        with_restaurant: bool = True,
    ) -> Tenant:
        async with store() as s:
            if with_restaurant:
                await RestaurantRepository(s).create(
                    id=restaurant_id,
                    name=f"Restaurant {restaurant_id}",
                    address="12 Curry Lane, Pune",
                    phone="+91 98765 43210",
                    email=f"{restaurant_id}@example.com",
                    is_active=is_active,
                )
            user = await UserRepository(s).create(
                name=f"{role.value.title()} {restaurant_id}",
                email=email or f"{role.value}.{restaurant_id}@example.com",
                phone="+91 98765 43210",
                hashed_password=hash_password(PASSWORD),
                role=role,
                restaurant_id=restaurant_id if role != UserRole.CUSTOMER else None,
            )
        principal = Principal(user.id, user.email, user.role, user.restaurant_id)
        return Tenant(restaurant_id, principal, SessionSigner().issue(principal))

    return _make


@pytest.fixture
def add_menu_item(store):
    async def _add(restaurant_id: str, item_id: str, price: float = 100.0,
                   category: MenuCategory = MenuCategory.APPETIZER, name: Optional[str] = None):
        async with store() as s:
            return await MenuItemRepository(s).create(
                restaurant_id=restaurant_id,
                id=item_id,
                name=name or f"Item {item_id}",
                description="",
                price=price,
                category=category,
                is_available=True,
            )
    return _add


@pytest.fixture
def add_table(store):
    async def _add(restaurant_id: str, table_id: int, capacity: int = 4):
        async with store() as s:
            return await TableRepository(s).create(
                restaurant_id=restaurant_id,
                id=table_id,
                capacity=capacity,
                qr_code_url=f"http://restro.test/customer/login/{restaurant_id}/{table_id}",
            )
    return _add


# ── HTTP ──────────────────────────────────────────────────────

@pytest.fixture
async def app(store, mailer):
    from restro.api.deps import get_auth_service
    from restro.main import app as fastapi_app, shutdown, startup
    from restro.services.auth import AuthService

    await startup(fastapi_app)

    async def auth_service_override():
        async with store() as s:
            yield AuthService(s, signer=fastapi_app.state.signer, notifier=mailer)

    fastapi_app.dependency_overrides[get_auth_service] = auth_service_override
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()
    await shutdown(fastapi_app)


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
