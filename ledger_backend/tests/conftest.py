"""
Centralized Test Configuration.
"""

import pytest
from types import SimpleNamespace
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import Pool, StaticPool

from ledger_backend.app.main import app
from ledger_backend.app.db.session import get_db, Base
from ledger_backend.app.models.accounting_enums import PartnerType
from ledger_backend.app.models.partner import Partner
from ledger_backend.app.models.inventory import Product, StockUnit, GoodsDispatchItem
from ledger_backend.app.domain.accounting.chart_of_accounts import seed_chart_of_accounts
from ledger_backend.app.domain.accounting.ledger import get_system_ledgers

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

COMPANY_ID = 1
OTHER_COMPANY_ID = 2
USER_ID = 42


# Event handler to enable foreign keys for SQLite
@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


@pytest.fixture
async def engine():
    """Fresh in-memory database per test, created inside the test's event loop."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


@pytest.fixture
async def db_session(session_factory):
    """Shared session for fixture data creation and service calls."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    """Async client for testing, wired to the test database."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def tenant_headers():
    return {"X-Company-ID": str(COMPANY_ID), "X-User-ID": str(USER_ID)}


async def _add_partner(db, company_id, partner_type=PartnerType.CUSTOMER, state_code="MH", **names):
    partner = Partner(
        company_id=company_id,
        partner_type=partner_type,
        state_code=state_code,
        **(names or {"company_name": "Sharma Textiles"})
    )
    db.add(partner)
    await db.flush()
    return partner


@pytest.fixture
def make_partner(db_session):
    """Factory adding a customer or supplier to any company."""
    async def make(company_id, partner_type=PartnerType.CUSTOMER, state_code="MH", **names):
        return await _add_partner(db_session, company_id, partner_type, state_code, **names)
    return make


@pytest.fixture
async def company(db_session):
    """
    A company with its chart of accounts seeded and two customers:
    one in the company's own state (MH) and one in another state (GJ).
    """
    await seed_chart_of_accounts(db_session, COMPANY_ID)
    local_customer = await _add_partner(db_session, COMPANY_ID, state_code="MH", company_name="Sharma Textiles")
    outstation_customer = await _add_partner(db_session, COMPANY_ID, state_code="GJ", first_name="Ravi", last_name="Patel")
    await db_session.commit()

    ledgers = await get_system_ledgers(db_session, COMPANY_ID, [
        "Sales", "CGST Output", "SGST Output", "IGST Output",
        "Cost of Goods Sold", "Inventory", "Cash-in-Hand", "Bank Account (Default)",
    ])

    return SimpleNamespace(
        id=COMPANY_ID,
        state_code="MH",
        local_customer=local_customer,
        outstation_customer=outstation_customer,
        ledgers=ledgers,
    )


@pytest.fixture
async def dispatch(db_session, company):
    """
    A goods dispatch of two stock units:
    120m of cotton at 150/m and 80m of silk at 400/m (cost 50000).
    """
    cotton = Product(company_id=company.id, name="Cotton Poplin", cost_price_per_unit=150)
    silk = Product(company_id=company.id, name="Silk Georgette", cost_price_per_unit=400)
    db_session.add_all([cotton, silk])
    await db_session.flush()

    cotton_roll = StockUnit(company_id=company.id, product_id=cotton.id)
    silk_roll = StockUnit(company_id=company.id, product_id=silk.id)
    db_session.add_all([cotton_roll, silk_roll])
    await db_session.flush()

    dispatch_id = 501
    db_session.add_all([
        GoodsDispatchItem(company_id=company.id, dispatch_id=dispatch_id, stock_unit_id=cotton_roll.id, dispatched_quantity=120),
        GoodsDispatchItem(company_id=company.id, dispatch_id=dispatch_id, stock_unit_id=silk_roll.id, dispatched_quantity=80),
    ])
    await db_session.commit()

    return SimpleNamespace(id=dispatch_id, products=[cotton, silk], total_cost=50000.0)
