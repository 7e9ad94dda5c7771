"""Initial schema - profiles, items and chat messages

Revision ID: 001
Revises: None
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
from sqlalchemy import text

revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    conn = op.get_bind()

    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS profiles (
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
        )
    """))

    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS items (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            name TEXT NOT NULL,
            classification TEXT NOT NULL CHECK (classification IN ('SIGNAL', 'NECESSARY', 'NOISE')),
            what TEXT,
            why TEXT,
            next_action TEXT,
            status TEXT DEFAULT 'inbox' CHECK (status IN ('inbox', 'today', 'week', 'someday', 'completed')),
            completed INTEGER DEFAULT 0,
            completed_at TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
    """))
    conn.execute(text("CREATE INDEX IF NOT EXISTS idx_items_user ON items (user_id, completed)"))

    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS messages (
            id INTEGER PRIMARY KEY,
            user_id TEXT NOT NULL,
            role TEXT NOT NULL CHECK (role IN ('user', 'assistant')),
            content TEXT NOT NULL,
            created_at TEXT NOT NULL
        )
    """))
    conn.execute(text("CREATE INDEX IF NOT EXISTS idx_messages_user ON messages (user_id, id)"))


def downgrade() -> None:
    conn = op.get_bind()
    conn.execute(text("DROP TABLE IF EXISTS messages"))
    conn.execute(text("DROP TABLE IF EXISTS items"))
    conn.execute(text("DROP TABLE IF EXISTS profiles"))
