import os

# Must be set before admitflow.core.config is imported anywhere
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("DOCUMENT_ANALYSIS_MOCK_MODE", "true")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from admitflow.models.base import Base
from admitflow.models import patient, activity, document  # noqa: F401 - register tables


@pytest.fixture()
def sql_engine():
    """Isolated in-memory SQLite database for each test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def db_session(sql_engine):
    TestSession = sessionmaker(autocommit=False, autoflush=False, bind=sql_engine)
    db = TestSession()
    yield db
    db.close()


@pytest.fixture()
def client(sql_engine):
    from fastapi.testclient import TestClient
    from admitflow.main import app
    from admitflow.models.base import get_db

    TestSession = sessionmaker(autocommit=False, autoflush=False, bind=sql_engine)

    def _get_test_db():
        db = TestSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_test_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
