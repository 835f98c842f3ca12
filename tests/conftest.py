from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from schematic_records.client import SchematicClient
from schematic_records.config import ServiceConfig
from schematic_records.models import SchematicRecordCreate
from schematic_records.repositories import SchematicRecordRepository, generate_key


class FakeClock:
    """Управляемое "сейчас" для проверок отсечки по last_accessed."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def make_record():
    """Фабрика payload'ов со свежими ключами."""
    def _make(**overrides) -> SchematicRecordCreate:
        data = {
            "download_key": generate_key(),
            "delete_key": generate_key(),
            "file_name": "castle.schem",
            "uploader": "5f0c1b9e-2b1a-4c3e-9a57-0f5e8d4b7a11",
            "schem_type": "sponge",
            "pos1": "0,64,0",
            "pos2": "31,96,31",
        }
        data.update(overrides)
        return SchematicRecordCreate(**data)
    return _make


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """
    In-memory SQLite через aiosqlite. StaticPool держит одно соединение,
    иначе каждая сессия видела бы свою пустую базу.
    """
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(bind=db_engine, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def repo(session_factory, clock) -> SchematicRecordRepository:
    repository = SchematicRecordRepository(session_factory, clock=clock)
    await repository.migrate()
    return repository


@pytest_asyncio.fixture(scope="function")
async def client(db_engine, repo) -> SchematicClient:
    return SchematicClient(
        engine=db_engine,
        records=repo,
        service=ServiceConfig(prune=60_000, max_iterations=5),
    )
