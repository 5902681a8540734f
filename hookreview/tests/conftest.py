import os

# Settings are read at import time, so the test environment must be in place
# before any hookreview module is imported.
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("QUEUE_MODE", "memory")
os.environ.setdefault("REVIEW_BACKEND", "dify")
os.environ.setdefault("LOG_DRIVER", "console")
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_hookreview.db")
os.environ.setdefault("HOOKREVIEW_API_KEY", "test_api_key")

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import create_engine

from hookreview.config.db import init_db
from hookreview.storage.sql_store import SqlReviewStore


@pytest.fixture
def engine():
    """A fresh in-memory database shared by every session of one test."""
    db_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(db_engine)
    yield db_engine
    db_engine.dispose()


@pytest.fixture
def store(engine):
    return SqlReviewStore(engine)


@pytest.fixture(autouse=True)
def no_backoff_sleep(monkeypatch):
    """Retries never actually wait in tests."""
    monkeypatch.setattr("hookreview.utils.http.time.sleep", lambda seconds: None)
