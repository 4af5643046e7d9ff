"""
Test configuration and shared fixtures for the OpsDesk test suite.
Provides in-memory databases, a seeded business data store and service wiring.
"""

import os
import tempfile

# The request log writes through the module-level config engine; keep it out of the repo
os.environ.setdefault(
    "DATABASE_URL", f"sqlite:///{os.path.join(tempfile.mkdtemp(), 'opsdesk_test_config.db')}"
)

import pytest
import pytest_asyncio
from datetime import datetime
from typing import List
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from opsdesk.core.database import Base, init_data_store
from opsdesk.business.models import Client, Order, Product, InventoryItem
from opsdesk.reporting.cache import ResultCache
from opsdesk.reporting.dao import DefinitionDAO
from opsdesk.reporting.datastore import DataStore, TableQuery
from opsdesk.reporting.executor import QueryExecutor
from opsdesk.reporting.service import ReportService


class CountingDataStore(DataStore):
    """Data store that remembers every query it hands out."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.queries: List[TableQuery] = []

    def from_(self, storage_location: str) -> TableQuery:
        query = super().from_(storage_location)
        self.queries.append(query)
        return query


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ===== CONFIG DATABASE =====

@pytest.fixture
def config_engine():
    """In-memory SQLite engine for the config database"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    from opsdesk.reporting.models import AppSetting  # noqa: F401
    from opsdesk.logging.models import RequestLog  # noqa: F401
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def config_db_session(config_engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=config_engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def definition_dao(config_db_session) -> DefinitionDAO:
    return DefinitionDAO(config_db_session)


# ===== BUSINESS DATA STORE =====

@pytest_asyncio.fixture
async def data_engine():
    """In-memory async SQLite engine holding the business tables"""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_data_store(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def seeded_engine(data_engine):
    """Data store with a small, fixed set of clients, orders, products and stock"""
    async with AsyncSession(data_engine) as session:
        session.add_all([
            Client(id=1, name="Acme Hardware", email="acme@example.com", customer_type="retail",
                   created_at=datetime(2023, 6, 1)),
            Client(id=2, name="Northwind Traders", email="nw@example.com", customer_type="wholesale",
                   created_at=datetime(2023, 9, 15)),
            Client(id=3, name="Blue Harbor Cafe", email="bh@example.com", customer_type="retail",
                   created_at=datetime(2024, 1, 2)),
            Product(id=1, name="Hydraulic pump", category="parts", price=420.0, cost=250.0,
                    created_at=datetime(2023, 1, 1)),
            Product(id=2, name="Air filter", category="parts", price=35.0, cost=12.5,
                    created_at=datetime(2023, 1, 1)),
            Product(id=3, name="Maintenance plan", category="services", price=900.0, cost=300.0,
                    created_at=datetime(2023, 1, 1)),
        ])
        await session.flush()
        session.add_all([
            Order(id=1, client_id=1, status="pending", total=750.0, created_at=datetime(2024, 1, 10)),
            Order(id=2, client_id=1, status="completed", total=120.0, created_at=datetime(2024, 1, 15)),
            Order(id=3, client_id=2, status="pending", total=300.0, created_at=datetime(2024, 2, 1)),
            Order(id=4, client_id=2, status="pending", total=1500.0, created_at=datetime(2024, 2, 20)),
            Order(id=5, client_id=3, status="cancelled", total=50.0, created_at=datetime(2024, 3, 5)),
            Order(id=6, client_id=None, status="pending", total=999.0, created_at=datetime(2024, 3, 10)),
            InventoryItem(id=1, product_id=1, quantity=5, min_stock=10),
            InventoryItem(id=2, product_id=2, quantity=40, min_stock=10),
            InventoryItem(id=3, product_id=3, quantity=0, min_stock=0),
        ])
        await session.commit()
    return data_engine


@pytest.fixture
def data_store(seeded_engine) -> CountingDataStore:
    return CountingDataStore(seeded_engine)


# ===== SERVICE WIRING =====

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def result_cache(clock) -> ResultCache:
    return ResultCache(ttl_seconds=120, clock=clock)


@pytest.fixture
def report_service(data_store, result_cache, definition_dao) -> ReportService:
    return ReportService(QueryExecutor(data_store), result_cache, definition_dao)
