"""
Shared pytest fixtures for backend tests.
Uses a temp SQLite database per test for isolation.
"""
import pytest
import sqlite3
import sys
import os

# Add backend to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import database
from fakes import FakeGateway


@pytest.fixture
def test_db(monkeypatch, tmp_path):
    """
    Create an isolated test database for each test.
    Uses a temp file (not :memory:) because database.py opens new connections per operation.
    """
    db_path = str(tmp_path / "test.db")
    monkeypatch.setattr(database, "DATABASE_PATH", db_path)
    monkeypatch.setattr(database, "init_db", lambda: None)

    # Create tables directly (skip alembic for tests)
    conn = sqlite3.connect(db_path)
    conn.executescript("""
        CREATE TABLE storage (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        );
    """)
    conn.commit()
    conn.close()

    yield db_path


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def app_client(test_db, fake_gateway, monkeypatch):
    """
    Create a test client for the FastAPI app.
    Mocks init_db to skip alembic migrations and swaps in a fake AI gateway.
    """
    from fastapi.testclient import TestClient
    import main
    from store import RequestGenerations, TaskStore

    # Skip alembic in tests - tables already created by test_db fixture
    monkeypatch.setattr(main, "init_db", lambda: None)
    monkeypatch.setattr(main, "store", TaskStore())
    monkeypatch.setattr(main, "gateway", fake_gateway)
    monkeypatch.setattr(main, "generations", RequestGenerations())

    with TestClient(main.app) as client:
        yield client
