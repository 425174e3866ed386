import os

# Keep the app's module-level engine off the working directory.
os.environ.setdefault("SIGNAGE_DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from fakes import FakeScheduler, NoShuffle


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def rng() -> NoShuffle:
    return NoShuffle()


@pytest.fixture
def session_factory():
    from loungetv.db import Base, ensure_sqlite_schema
    import loungetv.models.playlist  # noqa: F401
    import loungetv.models.screen  # noqa: F401
    import loungetv.models.settings  # noqa: F401

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    ensure_sqlite_schema(engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    yield factory
    engine.dispose()
