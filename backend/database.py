import sqlite3
import json
import uuid
from datetime import datetime
from typing import Optional
from contextlib import contextmanager

from config import load_settings
from models import ItemUpdate, Message, TaskCandidate, TrackedItem, UserContext

DATABASE_PATH = load_settings().database_path

ITEM_FIELDS = ("name", "classification", "what", "why", "next_action", "status", "completed")
PROFILE_LIST_FIELDS = ("work_priorities", "personal_priorities", "goals")

@contextmanager
def get_db():
    """Context manager for database connections."""
    conn = sqlite3.connect(DATABASE_PATH)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()

def init_db():
    """Initialize database by running Alembic migrations."""
    import subprocess
    import os

    # Run alembic upgrade from the backend directory against the same file we open
    backend_dir = os.path.dirname(os.path.abspath(__file__))
    env = {**os.environ, "TRIAGE_DATABASE_PATH": os.path.abspath(DATABASE_PATH)}
    subprocess.run(
        ["alembic", "upgrade", "head"],
        cwd=backend_dir,
        env=env,
        check=True
    )

def _now() -> str:
    return datetime.now().isoformat()

def _row_to_item(row) -> TrackedItem:
    """Convert a database row to a TrackedItem model."""
    return TrackedItem(
        id=row["id"],
        name=row["name"],
        classification=row["classification"],
        what=row["what"],
        why=row["why"],
        next_action=row["next_action"],
        status=row["status"] or "inbox",
        completed=bool(row["completed"]),
        completed_at=row["completed_at"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )

# Item operations (every query is scoped to one user)
def get_items(user_id: str, classification: Optional[str] = None) -> list[TrackedItem]:
    """
    All items for a user, newest first.
    A classification filter returns that group's open items only.
    """
    query = "SELECT * FROM items WHERE user_id = ?"
    params: list = [user_id]
    if classification:
        query += " AND classification = ? AND completed = 0"
        params.append(classification)
    query += " ORDER BY created_at DESC, rowid DESC"
    with get_db() as conn:
        rows = conn.execute(query, params).fetchall()
        return [_row_to_item(row) for row in rows]

def get_item(user_id: str, item_id: str) -> Optional[TrackedItem]:
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM items WHERE id = ? AND user_id = ?", (item_id, user_id)
        ).fetchone()
        return _row_to_item(row) if row else None

def create_items(user_id: str, candidates: list[TaskCandidate]) -> list[TrackedItem]:
    """Insert a batch of new items in the inbox."""
    created = []
    with get_db() as conn:
        for candidate in candidates:
            item_id = str(uuid.uuid4())
            now = _now()
            conn.execute(
                """INSERT INTO items
                   (id, user_id, name, classification, what, why, next_action, status, completed, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, 'inbox', 0, ?, ?)""",
                (item_id, user_id, candidate.name, candidate.classification, candidate.what,
                 candidate.why, candidate.next_action, now, now)
            )
            created.append(TrackedItem(
                id=item_id,
                name=candidate.name,
                classification=candidate.classification,
                what=candidate.what,
                why=candidate.why,
                next_action=candidate.next_action,
                created_at=now,
                updated_at=now,
            ))
        conn.commit()
    return created

def update_item(user_id: str, item_id: str, **updates) -> Optional[TrackedItem]:
    """
    Update an item with any fields provided.
    Only updates fields that differ from current values.
    Keeps completed_at and status "completed" in step with the completed flag.

    Args:
        user_id: Owner of the item
        item_id: Item ID to update
        **updates: Field names and values (name, classification, what, why, next_action, status, completed)
    """
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM items WHERE id = ? AND user_id = ?", (item_id, user_id)
        ).fetchone()
        if not row:
            return None

        # Filter updates: only include fields that differ from current values
        changes = {}
        for field, new_value in updates.items():
            if field not in ITEM_FIELDS or new_value is None:
                continue
            # Convert bool to int for comparison with SQLite storage
            if isinstance(new_value, bool):
                new_value = int(new_value)
            if new_value != row[field]:
                changes[field] = new_value

        # status "completed" and the completed flag move together
        if "status" in changes and "completed" not in changes:
            done = int(changes["status"] == "completed")
            if done != row["completed"]:
                changes["completed"] = done
        elif "completed" in changes and "status" not in changes:
            if changes["completed"]:
                changes["status"] = "completed"
            elif row["status"] == "completed":
                changes["status"] = "inbox"

        if "completed" in changes:
            changes["completed_at"] = _now() if changes["completed"] else None

        # Execute UPDATE only if there are actual changes
        if changes:
            changes["updated_at"] = _now()
            set_clause = ", ".join(f"{field} = ?" for field in changes.keys())
            values = list(changes.values()) + [item_id, user_id]
            conn.execute(f"UPDATE items SET {set_clause} WHERE id = ? AND user_id = ?", values)
            conn.commit()

        # Return updated item (re-fetch to get current state)
        updated_row = conn.execute("SELECT * FROM items WHERE id = ?", (item_id,)).fetchone()
        return _row_to_item(updated_row)

def apply_updates(user_id: str, updates: list[ItemUpdate]) -> list[TrackedItem]:
    """Apply reconciliation updates; ids that no longer exist are skipped."""
    applied = []
    for update in updates:
        item = update_item(
            user_id,
            update.id,
            classification=update.classification,
            what=update.what,
            why=update.why,
            next_action=update.next_action,
        )
        if item:
            applied.append(item)
    return applied

def toggle_complete(user_id: str, item_id: str) -> Optional[TrackedItem]:
    item = get_item(user_id, item_id)
    if not item:
        return None
    return update_item(user_id, item_id, completed=not item.completed)

def delete_item(user_id: str, item_id: str) -> bool:
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM items WHERE id = ? AND user_id = ?", (item_id, user_id))
        conn.commit()
        return cursor.rowcount > 0

def clear_completed(user_id: str) -> int:
    """Delete all completed items; returns how many were removed."""
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM items WHERE user_id = ? AND completed = 1", (user_id,))
        conn.commit()
        return cursor.rowcount

# Profile operations
def get_profile(user_id: str) -> UserContext:
    """Profile for a user; an empty profile if none was saved yet."""
    with get_db() as conn:
        row = conn.execute("SELECT * FROM profiles WHERE user_id = ?", (user_id,)).fetchone()
    if not row:
        return UserContext()
    return UserContext(
        name=row["name"],
        role=row["role"],
        work_priorities=json.loads(row["work_priorities"] or "[]"),
        personal_priorities=json.loads(row["personal_priorities"] or "[]"),
        goals=json.loads(row["goals"] or "[]"),
        workday_start=row["workday_start"],
        focus_challenge=row["focus_challenge"],
        onboarding_completed=bool(row["onboarding_completed"]),
    )

def save_profile(user_id: str, profile: UserContext) -> UserContext:
    now = _now()
    values = (
        profile.name,
        profile.role,
        json.dumps(profile.work_priorities),
        json.dumps(profile.personal_priorities),
        json.dumps(profile.goals),
        profile.workday_start,
        profile.focus_challenge,
        int(profile.onboarding_completed),
    )
    with get_db() as conn:
        exists = conn.execute("SELECT 1 FROM profiles WHERE user_id = ?", (user_id,)).fetchone()
        if exists:
            conn.execute(
                """UPDATE profiles SET name = ?, role = ?, work_priorities = ?, personal_priorities = ?,
                   goals = ?, workday_start = ?, focus_challenge = ?, onboarding_completed = ?, updated_at = ?
                   WHERE user_id = ?""",
                values + (now, user_id)
            )
        else:
            conn.execute(
                """INSERT INTO profiles
                   (name, role, work_priorities, personal_priorities, goals, workday_start, focus_challenge,
                    onboarding_completed, user_id, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                values + (user_id, now, now)
            )
        conn.commit()
    return get_profile(user_id)

# Chat transcript operations
def get_messages(user_id: str, limit: int = 50) -> list[Message]:
    """Most recent messages for a user, oldest first."""
    with get_db() as conn:
        rows = conn.execute(
            """SELECT * FROM (
                   SELECT id, role, content, created_at FROM messages
                   WHERE user_id = ? ORDER BY id DESC LIMIT ?
               ) ORDER BY id ASC""",
            (user_id, limit)
        ).fetchall()
        return [Message(id=r["id"], role=r["role"], content=r["content"], created_at=r["created_at"]) for r in rows]

def add_message(user_id: str, role: str, content: str) -> Message:
    now = _now()
    with get_db() as conn:
        cursor = conn.execute(
            "INSERT INTO messages (user_id, role, content, created_at) VALUES (?, ?, ?, ?)",
            (user_id, role, content, now)
        )
        conn.commit()
        return Message(id=cursor.lastrowid, role=role, content=content, created_at=now)

def clear_messages(user_id: str) -> int:
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM messages WHERE user_id = ?", (user_id,))
        conn.commit()
        return cursor.rowcount
