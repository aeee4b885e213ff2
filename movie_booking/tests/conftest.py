import pytest
from fakeredis import aioredis
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

import movie_booking.models  # noqa: F401
from movie_booking.db.base import Base
from movie_booking.scripts.seed_data import sample_catalog
from movie_booking.services.catalog_io import import_catalog
from movie_booking.services.ledger import AvailabilityLedger
from movie_booking.services.reservation import ReservationCoordinator


# KBKJ (show 2) at 19:00, 45 of 180 seats left in the sample catalog
EVENING_TIMING_ID = 5


@pytest.fixture
async def db_engine(tmp_path):
    """Create a database engine for the tests.

    Function-scoped to ensure it's created in the same event loop as the test.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'movie_booking_test.db'}",
        echo=False,
        future=True,
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def db_session_factory(db_engine):
    """Factory to create multiple sessions for concurrent tests."""
    return async_sessionmaker(
        bind=db_engine,
        expire_on_commit=False,
        autoflush=False,
        autocommit=False
    )


@pytest.fixture
async def seeded_catalog(db_session_factory):
    """Load the sample PVR Nexus catalog."""
    async with db_session_factory() as session:
        return await import_catalog(session, sample_catalog())


@pytest.fixture
async def ledger(seeded_catalog, db_session_factory):
    ledger = AvailabilityLedger()
    async with db_session_factory() as session:
        await ledger.load(session)
    return ledger


@pytest.fixture
async def coordinator(ledger, db_session_factory):
    coordinator = ReservationCoordinator(ledger, db_session_factory, hold_seconds=60, max_seats_per_request=50)
    yield coordinator
    await coordinator.shutdown()


@pytest.fixture
async def redis_client():
    redis = aioredis.FakeRedis()
    yield redis
    await redis.aclose()
