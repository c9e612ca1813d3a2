import os
import sys

import pytest

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
# 在导入应用之前切到内存库，避免测试写入本地 storage 目录
os.environ.setdefault("REVIEWHUB_DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("REVIEWHUB_LOG_JSON", "false")

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from reviewhub.db import Base, enable_sqlite_foreign_keys, get_db
from reviewhub.main import app
from reviewhub.services.aggregation import aggregation_engine

# Use in-memory SQLite for testing to ensure isolation
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
enable_sqlite_foreign_keys(engine)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(autouse=True)
def clear_pending_repairs():
    """修复队列是进程级状态，每个测试前后清空。"""
    aggregation_engine._drain_pending()
    yield
    aggregation_engine._drain_pending()


@pytest.fixture(scope="function")
def session():
    """
    Create a fresh database session for each test.
    """
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(session):
    """
    Create a TestClient that uses the override_get_db dependency.
    """
    def override_get_db():
        try:
            yield session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
