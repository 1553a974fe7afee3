"""Shared fixtures: in-memory SQLite sessions, injected settings, a ticking clock."""

import os

# The module-level engine must not need a PostgreSQL driver during tests.
os.environ.setdefault("POSTGRES_DSN", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from garagebill.common.db import Base
from tests.fakes import TickingClock, make_settings


@pytest.fixture
def session_factory():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def settings():
    return make_settings()
