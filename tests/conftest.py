import os

# Settings are read at import time, so the environment goes first.
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["TRACING_ENABLED"] = "false"
os.environ["PAYMENT_GATEWAY"] = "fake"
os.environ["ORDER_RATE_LIMIT"] = "1000/minute"
os.environ["APP_BASE_URL"] = "http://shop.test"
os.environ["API_BASE_URL"] = "http://api.test"
os.environ["SERVICE_NAME"] = "marketplace"

from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from main import app
from services.catalog_service.models import Product, ProductImage
from services.payment_service.dependencies import get_payment_gateway
from services.payment_service.fake_adapter import FakeGateway
from services.user_service.models import User
from shared.config.database import Base, get_db
from helpers import ACCOUNTS, Account, line, order_payload


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # Cascades and FK violations need SQLite's foreign key enforcement.
    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
async def client(session_factory, gateway):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# --- SEED DATA ---

@pytest.fixture
async def accounts(session_factory):
    async with session_factory() as session:
        session.add_all(User(id=a.id, name=a.name, email=a.email, role=a.role) for a in ACCOUNTS.values())
        await session.commit()
    return ACCOUNTS


@pytest.fixture
async def products(session_factory, accounts):
    """Two products from seller A, one from seller B."""
    catalog = {
        "apples": Product(id="p-apples", name="Apples", price=Decimal("10.00"), unit="kg",
                          brand="Orchard", sku="APL-1", seller_id=accounts["seller_a"].id),
        "pears": Product(id="p-pears", name="Pears", price=Decimal("4.50"), unit="kg",
                         sku="PER-1", seller_id=accounts["seller_a"].id),
        "honey": Product(id="p-honey", name="Honey", description="Wildflower", price=Decimal("5.00"),
                         unit="jar", sku="HNY-1", seller_id=accounts["seller_b"].id),
    }
    async with session_factory() as session:
        session.add_all(catalog.values())
        session.add(ProductImage(product_id="p-apples", url="https://img.test/apples.jpg", is_primary=True))
        session.add(ProductImage(product_id="p-apples", url="https://img.test/apples-2.jpg", is_primary=False))
        await session.commit()
    return {key: product.id for key, product in catalog.items()}


@pytest.fixture
def mixed_cart(accounts, products):
    """Seller A: 2 x 10.00, seller B: 1 x 5.00. Total 25.00."""
    return order_payload([
        line(products["apples"], accounts["seller_a"].id, 2, "10.00"),
        line(products["honey"], accounts["seller_b"].id, 1, "5.00"),
    ])


@pytest.fixture
def place_order(client):
    async def _place(account: Account, payload: dict):
        return await client.post("/order", json=payload, headers=account.headers)
    return _place


@pytest.fixture
def confirm(client):
    async def _confirm(order_id: str, reference: str):
        return await client.get("/order/confirmation", params={"reference": reference, "orderId": order_id})
    return _confirm


@pytest.fixture
def place_paid_order(place_order, confirm):
    async def _place_paid(account: Account, payload: dict) -> str:
        resp = await place_order(account, payload)
        assert resp.status_code == 201, resp.text
        body = resp.json()
        confirmed = await confirm(body["order"]["id"], body["payment"]["reference"])
        assert confirmed.status_code == 307, confirmed.text
        return body["order"]["id"]
    return _place_paid
