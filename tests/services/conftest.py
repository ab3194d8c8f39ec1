"""Service test fixtures — async DB, FastAPI test client and storefront clients.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db dependency overridden to run through DatabaseSessionManager.session(),
      so rollback and error mapping behave as in production
    - db_manager patched so the readiness check sees the test engine
    - Storefront clients talk to the real app through httpx.ASGITransport

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for route tests
      (PostgreSQL-specific features not exercised here)
    - Seeded users carry fixed bearer tokens; tests pick a role by token
"""

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from httpx import ASGITransport, AsyncClient

from fulfillment.client import Storefront, build_storefront
from fulfillment.config import Settings, get_settings
from fulfillment.db.base import Base
from fulfillment.infrastructure.cart_storage import MemoryCartStorage
from fulfillment.infrastructure.database import get_db, DatabaseSessionManager
from fulfillment.models.user import User as UserModel
import fulfillment.infrastructure.database as db_module
from fulfillment.main import app

from tests.services.helpers import LETTUCE_LINE, TOMATO_LINE, bearer


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
def fake_manager(test_engine, test_session_factory) -> DatabaseSessionManager:
    manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    manager.engine = test_engine
    manager._session_factory = test_session_factory
    return manager


@pytest.fixture
async def client(fake_manager):
    """FastAPI test client with DB dependency overridden."""
    async def override_get_db():
        async with fake_manager.session() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    original_manager = db_module.db_manager
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager


@pytest.fixture
async def users(test_session_factory) -> dict[str, UserModel]:
    """customer (4 GCash orders), regular (5), admin, driver, idle_driver."""
    rows = {
        "customer": UserModel(
            name="Maria Santos", email="maria@example.com", role="customer",
            api_token="customer-token", successful_gcash_orders=4,
        ),
        "regular": UserModel(
            name="Jose Reyes", email="jose@example.com", role="customer",
            api_token="regular-token", successful_gcash_orders=5,
        ),
        "admin": UserModel(
            name="Store Admin", email="admin@example.com", role="admin",
            api_token="admin-token",
        ),
        "driver": UserModel(
            name="Pedro Cruz", email="pedro@example.com", role="driver",
            api_token="driver-token", is_available=True,
        ),
        "idle_driver": UserModel(
            name="Ramon Lim", email="ramon@example.com", role="driver",
            api_token="idle-driver-token", is_available=False,
        ),
    }
    async with test_session_factory() as session:
        session.add_all(rows.values())
        await session.commit()
    return rows


class OrderFlow:
    """Drives orders through the HTTP API as the appropriate actor."""

    def __init__(self, client: AsyncClient, users: dict[str, UserModel]):
        self.client = client
        self.users = users

    async def place(
        self, token: str = "customer-token", payment_method: str = "gcash",
        items: list[dict] | None = None, promo_code: str | None = None,
    ) -> dict:
        response = await self.client.post(
            "/api/v1/orders",
            json={
                "items": items if items is not None else [TOMATO_LINE, LETTUCE_LINE],
                "payment_method": payment_method,
                "delivery_address": "12 Mabini St, Quezon City",
                "delivery_date": "2026-10-18",
                "delivery_window": "8AM-12PM",
                "promo_code": promo_code,
            },
            headers=bearer(token),
        )
        assert response.status_code == 201, response.text
        return response.json()

    async def confirm_payment(self, order_id: str):
        return await self.client.post(
            "/api/v1/payments/gcash/confirm",
            json={"order_id": order_id, "reference": "GC-0001"},
            headers={"X-Webhook-Secret": get_settings().payment_webhook_secret},
        )

    async def assign(self, order_id: str, driver: str = "driver"):
        return await self.client.put(
            f"/api/v1/admin/orders/{order_id}/assign-driver",
            json={"driver_id": str(self.users[driver].id)},
            headers=bearer("admin-token"),
        )

    async def driver_status(self, order_id: str, body: dict, token: str = "driver-token"):
        return await self.client.put(
            f"/api/v1/driver/deliveries/{order_id}/status",
            json=body, headers=bearer(token),
        )

    async def to_out_for_delivery(self, token: str = "customer-token") -> dict:
        order = await self.place(token)
        order_id = order["id"]
        assert (await self.confirm_payment(order_id)).status_code == 200
        assert (await self.assign(order_id)).status_code == 200
        assert (await self.driver_status(order_id, {"status": "preparing"})).status_code == 200
        response = await self.driver_status(order_id, {"status": "out_for_delivery"})
        assert response.status_code == 200
        return response.json()

    async def get(self, order_id: str, token: str = "admin-token") -> dict:
        response = await self.client.get(f"/api/v1/orders/{order_id}", headers=bearer(token))
        assert response.status_code == 200, response.text
        return response.json()


@pytest.fixture
def flow(client, users) -> OrderFlow:
    return OrderFlow(client, users)


@pytest.fixture
async def storefront(client, users):
    """Factory: storefront(token) → Storefront wired to the test app."""
    built: list[Storefront] = []

    def _build(token: str, storage=None, **settings) -> Storefront:
        sf = build_storefront(
            Settings(api_base_url="http://test/api/v1", **settings),
            token,
            storage if storage is not None else MemoryCartStorage(),
            transport=ASGITransport(app=app),
        )
        built.append(sf)
        return sf

    yield _build
    for sf in built:
        await sf.close()
