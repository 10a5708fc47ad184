"""
Shared fixtures: in-memory database and repositories
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from protocol_seating.core.db import Base
from protocol_seating import models  # noqa: F401
from protocol_seating.services.repositories import SqlEventRepo, SqlGuestRepo
from protocol_seating.services.session_service import SessionRegistry
from tests.factories import RecordingRepo

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_tables():
    """Create tables for one test and drop them afterwards"""
    Base.metadata.create_all(bind=engine)
    try:
        yield
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def guest_repo(db_tables):
    return SqlGuestRepo(TestingSessionLocal)


@pytest.fixture
def event_repo(db_tables):
    return SqlEventRepo(TestingSessionLocal)


@pytest.fixture
def registry(guest_repo, event_repo):
    return SessionRegistry(guest_repo=guest_repo, event_repo=event_repo)


@pytest.fixture
def recording_repo():
    return RecordingRepo()


@pytest.fixture
def failing_repo():
    return RecordingRepo(fail=True)
