"""
Tests for database.py - per-user item CRUD, reconciliation writes, profiles, transcript.
"""
import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import (
    create_items,
    update_item,
    apply_updates,
    toggle_complete,
    delete_item,
    clear_completed,
    get_items,
    get_item,
    get_profile,
    save_profile,
    get_messages,
    add_message,
    clear_messages,
)
from models import ItemUpdate, TaskCandidate, UserContext


def candidates(*names, classification="SIGNAL"):
    return [TaskCandidate(name=n, classification=classification) for n in names]


class TestItemCRUD:
    """Tests for basic item create/read/update/delete operations."""

    def test_create_items(self, test_db):
        created = create_items("user-1", [
            TaskCandidate(name="Ship release", classification="SIGNAL", what="Deploy v2",
                          why="Blocks launch", next_action="Merge PR"),
        ])

        assert len(created) == 1
        item = created[0]
        assert item.name == "Ship release"
        assert item.classification == "SIGNAL"
        assert item.next_action == "Merge PR"
        assert item.status == "inbox"
        assert item.completed is False

        stored = get_item("user-1", item.id)
        assert stored.what == "Deploy v2"
        assert stored.why == "Blocks launch"

    def test_get_items_empty(self, test_db):
        assert get_items("user-1") == []

    def test_get_items_filters_by_classification(self, test_db):
        create_items("user-1", candidates("Ship release"))
        create_items("user-1", candidates("Call dentist", classification="NOISE"))

        noise = get_items("user-1", "NOISE")
        assert [i.name for i in noise] == ["Call dentist"]
        assert len(get_items("user-1")) == 2

    def test_update_item(self, test_db):
        item = create_items("user-1", candidates("Old name"))[0]
        updated = update_item("user-1", item.id, name="New name", status="today")

        assert updated.name == "New name"
        assert updated.status == "today"
        assert updated.classification == "SIGNAL"

    def test_update_ignores_unknown_fields(self, test_db):
        item = create_items("user-1", candidates("Ship release"))[0]
        updated = update_item("user-1", item.id, user_id="someone-else", id="other")
        assert updated.id == item.id

    def test_update_item_not_found(self, test_db):
        assert update_item("user-1", "nonexistent", name="New") is None

    def test_delete_item(self, test_db):
        item = create_items("user-1", candidates("Delete me"))[0]
        assert delete_item("user-1", item.id) is True
        assert get_items("user-1") == []

    def test_delete_item_not_found(self, test_db):
        assert delete_item("user-1", "nonexistent") is False


class TestCompletion:
    """Tests for the completed flag and its timestamp."""

    def test_toggle_sets_and_clears_completed_at(self, test_db):
        item = create_items("user-1", candidates("Ship release"))[0]

        done = toggle_complete("user-1", item.id)
        assert done.completed is True
        assert done.completed_at is not None

        undone = toggle_complete("user-1", item.id)
        assert undone.completed is False
        assert undone.completed_at is None

    def test_toggle_keeps_status_in_step(self, test_db):
        item = create_items("user-1", candidates("Ship release"))[0]
        update_item("user-1", item.id, status="today")

        assert toggle_complete("user-1", item.id).status == "completed"
        assert toggle_complete("user-1", item.id).status == "inbox"

    def test_completed_status_sets_flag(self, test_db):
        item = create_items("user-1", candidates("Ship release"))[0]

        done = update_item("user-1", item.id, status="completed")
        assert done.completed is True
        assert done.completed_at is not None

        reopened = update_item("user-1", item.id, status="week")
        assert reopened.completed is False
        assert reopened.completed_at is None

    def test_completed_items_left_out_of_classification_groups(self, test_db):
        open_item, done = create_items("user-1", candidates("Ship release", "Renew passport"))
        toggle_complete("user-1", done.id)

        assert [i.id for i in get_items("user-1", "SIGNAL")] == [open_item.id]
        assert len(get_items("user-1")) == 2

    def test_toggle_not_found(self, test_db):
        assert toggle_complete("user-1", "nonexistent") is None

    def test_clear_completed(self, test_db):
        keep, done = create_items("user-1", candidates("Keep me", "Done already"))
        toggle_complete("user-1", done.id)

        assert clear_completed("user-1") == 1
        assert [i.id for i in get_items("user-1")] == [keep.id]


class TestApplyUpdates:
    """Tests for writing reconciliation updates."""

    def test_apply_updates(self, test_db):
        item = create_items("user-1", candidates("Review budget", classification="NECESSARY"))[0]

        applied = apply_updates("user-1", [
            ItemUpdate(id=item.id, classification="SIGNAL", what="Trim Q4 spend", why="", next_action=""),
        ])

        assert len(applied) == 1
        stored = get_item("user-1", item.id)
        assert stored.classification == "SIGNAL"
        assert stored.what == "Trim Q4 spend"

    def test_missing_ids_skipped(self, test_db):
        assert apply_updates("user-1", [ItemUpdate(id="gone", classification="NOISE")]) == []


class TestUserIsolation:
    """Every operation is scoped to one user."""

    def test_items_not_visible_to_other_users(self, test_db):
        item = create_items("user-1", candidates("Ship release"))[0]

        assert get_items("user-2") == []
        assert get_item("user-2", item.id) is None
        assert update_item("user-2", item.id, name="Hijacked") is None
        assert toggle_complete("user-2", item.id) is None
        assert delete_item("user-2", item.id) is False
        assert get_item("user-1", item.id).name == "Ship release"

    def test_clear_completed_scoped(self, test_db):
        mine = create_items("user-1", candidates("Mine"))[0]
        theirs = create_items("user-2", candidates("Theirs"))[0]
        toggle_complete("user-1", mine.id)
        toggle_complete("user-2", theirs.id)

        assert clear_completed("user-1") == 1
        assert len(get_items("user-2")) == 1


class TestProfile:
    """Tests for the user profile used as prompt context."""

    def test_missing_profile_is_empty(self, test_db):
        profile = get_profile("user-1")
        assert profile.name is None
        assert profile.work_priorities == []

    def test_save_and_update_profile(self, test_db):
        save_profile("user-1", UserContext(name="Sam", work_priorities=["Ship v2"], goals=["Run a marathon"]))
        saved = save_profile("user-1", UserContext(name="Sam", role="EM", work_priorities=["Ship v2", "Hire"]))

        assert saved.role == "EM"
        assert saved.work_priorities == ["Ship v2", "Hire"]
        assert saved.goals == []
        assert get_profile("user-2").name is None


class TestMessages:
    """Tests for the chat transcript."""

    def test_add_and_get_messages(self, test_db):
        add_message("user-1", "user", "Lots on my plate")
        add_message("user-1", "assistant", "Let's sort it")

        messages = get_messages("user-1")
        assert [(m.role, m.content) for m in messages] == [
            ("user", "Lots on my plate"),
            ("assistant", "Let's sort it"),
        ]
        assert get_messages("user-2") == []

    def test_limit_keeps_most_recent(self, test_db):
        for i in range(5):
            add_message("user-1", "user", f"message {i}")

        messages = get_messages("user-1", limit=2)
        assert [m.content for m in messages] == ["message 3", "message 4"]

    def test_clear_messages(self, test_db):
        add_message("user-1", "user", "hello")
        add_message("user-2", "user", "hello")

        assert clear_messages("user-1") == 1
        assert get_messages("user-1") == []
        assert len(get_messages("user-2")) == 1
