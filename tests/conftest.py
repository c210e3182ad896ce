from __future__ import annotations

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from timeflow.db.base import Base
from timeflow.db.dependencies import get_db_session
import timeflow.models.entities  # noqa: F401
from timeflow.main import create_app
from timeflow.models.entities import (
    Activity,
    Area,
    Incident,
    Process,
    ProcessActivity,
    ProcessAssignment,
    Project,
    Requirement,
    Task,
    User,
)

TEST_TABLES = [
    Area.__table__,
    User.__table__,
    Project.__table__,
    Task.__table__,
    Activity.__table__,
    Requirement.__table__,
    Incident.__table__,
    Process.__table__,
    ProcessAssignment.__table__,
    ProcessActivity.__table__,
]


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine, tables=TEST_TABLES)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine, tables=TEST_TABLES)


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    app = create_app()

    def override_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
