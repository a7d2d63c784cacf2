"""
Pytest fixtures for LeaseKeeper tests.
"""

import os
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient

# Ensure test config is set before importing leasekeeper modules.
os.environ.setdefault("LEASEKEEPER_ENV", "development")
os.environ.setdefault("LEASEKEEPER_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LEASEKEEPER_LEASE_SWEEP_ENABLED", "false")

from leasekeeper.db import base as db_base
from leasekeeper.db.base import Base, build_engine, build_session_factory
from leasekeeper.db.repositories import (
    EmployeeRepository,
    FinancialDocumentRepository,
    PurchaseOrderRepository,
    StockItemRepository,
)
from leasekeeper.models import (
    DocumentStatus,
    Employee,
    EmployeeStatus,
    FinancialDocument,
    PurchaseOrder,
    PurchaseOrderStatus,
    StockItem,
    StockItemStatus,
)
from leasekeeper.utils.time import utc_now
import leasekeeper.db.tables  # noqa: F401


class FakeClock:
    """Controllable clock for TTL tests."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class Seeder:
    """Creates and commits guarded records."""

    def __init__(self, session):
        self.session = session

    async def stock_item(
        self,
        sku: str = "SKU-1",
        quantity: int = 10,
        location: str = "main",
        status: StockItemStatus = StockItemStatus.ACTIVE,
    ) -> StockItem:
        item = await StockItemRepository(self.session).create(
            sku=sku,
            name=f"Item {sku}",
            location=location,
            quantity=quantity,
            status=status,
        )
        await self.session.commit()
        return item

    async def purchase_order(
        self,
        lines: list[tuple[StockItem, int]],
        status: PurchaseOrderStatus = PurchaseOrderStatus.APPROVED,
    ) -> PurchaseOrder:
        order = await PurchaseOrderRepository(self.session).create(
            supplier="Acme Supplies",
            lines=[
                {"stock_item_id": item.item_id, "quantity": quantity, "unit_price": "2.50"}
                for item, quantity in lines
            ],
            status=status,
        )
        await self.session.commit()
        return order

    async def document(
        self,
        total: str = "100.00",
        status: DocumentStatus = DocumentStatus.PENDING,
        number: str = "INV-0001",
    ) -> FinancialDocument:
        document = await FinancialDocumentRepository(self.session).create(
            number=number,
            total=Decimal(total),
            status=status,
        )
        await self.session.commit()
        return document

    async def employee(
        self,
        name: str = "Dana Smith",
        status: EmployeeStatus = EmployeeStatus.ACTIVE,
    ) -> Employee:
        employee = await EmployeeRepository(self.session).create(name=name, status=status)
        await self.session.commit()
        return employee


@pytest.fixture
async def engine(tmp_path, monkeypatch):
    """Per-test SQLite database wired into leasekeeper.db.base."""
    test_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'leasekeeper.db'}")
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # Override global engine/session factory for the API and sweep task.
    monkeypatch.setattr(db_base, "engine", test_engine)
    monkeypatch.setattr(db_base, "async_session_factory", build_session_factory(test_engine))

    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
async def session(session_factory):
    """Provide a database session per test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def seed(session) -> Seeder:
    return Seeder(session)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(utc_now())


@pytest.fixture
async def client(session):
    """Async test client sharing the test session."""
    from leasekeeper.api.deps import get_db_session
    from leasekeeper.main import app

    async def override_get_db_session():
        yield session

    app.dependency_overrides[get_db_session] = override_get_db_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
