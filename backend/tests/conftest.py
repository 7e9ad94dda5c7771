"""
Shared pytest fixtures for backend tests.
Uses a temp-file SQLite database for isolation and fake completion services
in place of the Anthropic API.
"""
import pytest
import sqlite3
import sys
import os

# Add backend to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import database
from models import TrackedItem


class FakeCompletion:
    """Completion service returning canned replies and recording calls."""

    def __init__(self, *replies, error=None):
        self.replies = list(replies)
        self.error = error
        self.calls = []

    async def complete(self, system_prompt: str, user_message: str) -> str:
        self.calls.append((system_prompt, user_message))
        if self.error is not None:
            raise self.error
        return self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]


def make_item(item_id, name, classification="NECESSARY", **fields) -> TrackedItem:
    return TrackedItem(id=item_id, name=name, classification=classification, **fields)


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
        CREATE TABLE profiles (
            user_id TEXT PRIMARY KEY,
            name TEXT,
            role TEXT,
            work_priorities TEXT DEFAULT '[]',
            personal_priorities TEXT DEFAULT '[]',
            goals TEXT DEFAULT '[]',
            workday_start TEXT DEFAULT '08:00',
            focus_challenge TEXT,
            onboarding_completed INTEGER DEFAULT 0,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );

        CREATE TABLE items (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            name TEXT NOT NULL,
            classification TEXT NOT NULL,
            what TEXT,
            why TEXT,
            next_action TEXT,
            status TEXT DEFAULT 'inbox',
            completed INTEGER DEFAULT 0,
            completed_at TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );

        CREATE TABLE messages (
            id INTEGER PRIMARY KEY,
            user_id TEXT NOT NULL,
            role TEXT NOT NULL,
            content TEXT NOT NULL,
            created_at TEXT NOT NULL
        );
    """)
    conn.commit()
    conn.close()

    yield db_path


@pytest.fixture
def fake_completion():
    return FakeCompletion("Nothing to sort here.")


@pytest.fixture
def app_client(test_db, monkeypatch, fake_completion):
    """
    Create a test client for the FastAPI app.
    Mocks init_db to skip alembic migrations and swaps in a fake completion service.
    """
    from fastapi.testclient import TestClient
    import main

    # Skip alembic in tests - tables already created by test_db fixture
    monkeypatch.setattr(main, "init_db", lambda: None)
    main.app.dependency_overrides[main.get_completion_service] = lambda: fake_completion

    with TestClient(main.app, headers={"X-User-Id": "user-1"}) as client:
        yield client

    main.app.dependency_overrides.clear()
