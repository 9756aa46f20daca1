# tests/conftest.py
import pytest
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from sellerscore.adapters.clients import http_resilience
from sellerscore.models import Base
from sellerscore.models import DistressIndicator, PropertyRecord
from sellerscore.domain.address import address_key


@pytest.fixture(autouse=True)
def _reset_circuits():
    http_resilience.reset_circuits()
    yield
    http_resilience.reset_circuits()


@pytest.fixture
async def engine():
    """
    Fresh in-memory DB per test. StaticPool makes all connections share the same
    in-memory database for the lifetime of this engine fixture.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def async_session_maker(engine):
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=True)


@pytest.fixture
async def seeded_property(async_session_maker):
    async with async_session_maker() as session:
        p = PropertyRecord(
            id="prop-1",
            address_line="123 Main St",
            city="Tampa",
            state="FL",
            zipcode="33601",
            owner_name_key="ABC HOLDINGS LLC",
        )
        session.add(p)
        # two more properties for the same owner
        session.add(PropertyRecord(id="prop-2", address_line="9 Elm St", city="Tampa", state="FL", zipcode="33602", owner_name_key="ABC HOLDINGS LLC"))
        session.add(PropertyRecord(id="prop-3", address_line="77 Oak Ave", city="Tampa", state="FL", zipcode="33603", owner_name_key="ABC HOLDINGS LLC"))
        session.add(
            DistressIndicator(
                property_id="prop-1",
                address_key=address_key("123 Main St, Tampa, FL 33601"),
                pre_foreclosure=False,
                tax_delinquent=True,
                vacant=None,
                code_liens=2,
            )
        )
        await session.commit()
        await session.refresh(p)
        return p
