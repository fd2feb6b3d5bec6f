"""Service test fixtures — async DB, seeded catalog and FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db dependency overridden to use the test DB session factory
    - db_manager patched so the readiness probe sees the test engine
    - catalog seeds project 1: Customers ← Orders ← OrderLines plus one stored
      procedure joining Orders to Customers; no relationship rows

Design Decisions:
    - SQLite in-memory with StaticPool: every session shares one connection,
      so rows committed by a fixture are visible to the app under test
    - ON CONFLICT upserts run unchanged on SQLite (sqlite dialect insert)
"""

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from sqlalchemy.pool import StaticPool
from httpx import ASGITransport, AsyncClient

from schemalink.db.base import Base
from schemalink.infrastructure.database import get_db, DatabaseSessionManager
from schemalink.models.column_metadata import ColumnMetadata
from schemalink.models.routine_metadata import RoutineMetadata
from schemalink.models.table_metadata import TableMetadata
import schemalink.infrastructure.database as db_module
from schemalink.main import app

PROJECT_ID = 1

GET_ORDERS_SQL = """
CREATE PROCEDURE dbo.usp_GetOrders @CustomerId INT AS
BEGIN
    -- orders with their customer
    SELECT o.OrderId, o.OrderDate, c.Name
    FROM Orders o
    JOIN Customers c ON o.CustomerId = c.CustomerId
    WHERE c.CustomerId = @CustomerId
END
"""


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool,
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
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
async def client(test_engine, test_session_factory):
    """FastAPI test client with DB dependency overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager


def _table(name: str, criticality: int | None, columns: list[tuple]) -> TableMetadata:
    """columns: (name, data_type, is_primary_key)"""
    return TableMetadata(
        project_id=PROJECT_ID,
        schema_name="dbo",
        table_name=name,
        criticality_level=criticality,
        columns=[
            ColumnMetadata(
                column_name=col_name,
                data_type=data_type,
                is_primary_key=is_pk,
                is_nullable=not is_pk,
                ordinal_position=position,
            )
            for position, (col_name, data_type, is_pk) in enumerate(columns, start=1)
        ],
    )


@pytest.fixture
async def catalog(test_db):
    """Seed the sample schema; returns ids keyed 'Table' and 'Table.Column'."""
    customers = _table("Customers", 4, [
        ("CustomerId", "int", True),
        ("Name", "nvarchar(100)", False),
    ])
    orders = _table("Orders", None, [
        ("OrderId", "int", True),
        ("CustomerId", "int", False),
        ("OrderDate", "datetime2", False),
    ])
    order_lines = _table("OrderLines", 2, [
        ("OrderLineId", "int", True),
        ("OrderId", "int", False),
        ("Quantity", "int", False),
    ])
    get_orders = RoutineMetadata(
        project_id=PROJECT_ID,
        schema_name="dbo",
        routine_name="usp_GetOrders",
        routine_type="SP",
        definition=GET_ORDERS_SQL,
    )
    test_db.add_all([customers, orders, order_lines, get_orders])
    await test_db.commit()

    ids = {"usp_GetOrders": get_orders.id}
    for table in (customers, orders, order_lines):
        ids[table.table_name] = table.id
        for column in table.columns:
            ids[f"{table.table_name}.{column.column_name}"] = column.id
    return ids
