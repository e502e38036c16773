"""Tests for chat transcript persistence."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import update

from clinic_assistant.database import Database
from clinic_assistant.models import chat_sessions
from clinic_assistant.services.session_store import SessionStore


@pytest.fixture
def store(db):
    return SessionStore(db)


def _age_session(db, session_id: str, days: int) -> None:
    old = datetime.now(UTC) - timedelta(days=days)
    with db.begin() as conn:
        conn.execute(
            update(chat_sessions)
            .where(chat_sessions.c.session_id == session_id)
            .values(updated_at=old, created_at=old)
        )


class TestAppendTurn:
    def test_first_turn_creates_the_session(self, store):
        store.append_turn("s1", "hello", "hi there", user_email="jane@example.com")
        transcript = store.get_transcript("s1")
        assert transcript is not None
        assert transcript.user_email == "jane@example.com"
        assert [(m.role, m.content) for m in transcript.messages] == [
            ("user", "hello"), ("assistant", "hi there"),
        ]

    def test_turns_accumulate_in_order(self, store):
        for i in range(3):
            store.append_turn("s1", f"question {i}", f"answer {i}")
        messages = store.get_transcript("s1").messages
        assert len(messages) == 6
        assert [m.content for m in messages] == [
            "question 0", "answer 0", "question 1", "answer 1", "question 2", "answer 2",
        ]

    def test_email_is_lowercased(self, store):
        store.append_turn("s1", "hello", "hi", user_email="Jane@Example.COM")
        assert store.get_transcript("s1").user_email == "jane@example.com"

    def test_anonymous_turn_keeps_known_email(self, store):
        store.append_turn("s1", "hello", "hi", user_email="jane@example.com")
        store.append_turn("s1", "again", "sure")
        assert store.get_transcript("s1").user_email == "jane@example.com"

    def test_sessions_are_independent(self, store):
        store.append_turn("s1", "a", "b")
        store.append_turn("s2", "c", "d")
        assert [m.content for m in store.get_transcript("s1").messages] == ["a", "b"]
        assert [m.content for m in store.get_transcript("s2").messages] == ["c", "d"]

    def test_unknown_session(self, store):
        assert store.get_transcript("missing") is None

    def test_concurrent_turns_each_land_as_one_pair(self, tmp_path):
        database = Database(f"sqlite:///{tmp_path / 'chat.db'}")
        database.create_all()
        file_store = SessionStore(database)
        try:
            with ThreadPoolExecutor(max_workers=8) as pool:
                futures = [
                    pool.submit(file_store.append_turn, "shared", f"q{i}", f"a{i}")
                    for i in range(20)
                ]
                for future in futures:
                    future.result()

            messages = file_store.get_transcript("shared").messages
        finally:
            database.dispose()

        assert len(messages) == 40
        pairs = list(zip(messages[::2], messages[1::2]))
        for user, assistant in pairs:
            assert (user.role, assistant.role) == ("user", "assistant")
            assert assistant.content == "a" + user.content[1:]
        assert sorted(user.content for user, _ in pairs) == sorted(f"q{i}" for i in range(20))


class TestRecentMessages:
    def test_returns_last_entries_oldest_first(self, store):
        for i in range(3):
            store.append_turn("s1", f"q{i}", f"a{i}")
        recent = store.recent_messages("s1", 3)
        assert [m.content for m in recent] == ["a1", "q2", "a2"]

    def test_zero_limit(self, store):
        store.append_turn("s1", "q", "a")
        assert store.recent_messages("s1", 0) == []

    def test_unknown_session_is_empty(self, store):
        assert store.recent_messages("missing", 10) == []


class TestLatestForEmail:
    def test_no_sessions(self, store):
        assert store.latest_for_email("nobody@example.com") is None

    def test_most_recently_updated_wins(self, store):
        store.append_turn("old", "q", "a", user_email="jane@example.com")
        store.append_turn("new", "q", "a", user_email="jane@example.com")
        _age_session(store._db, "old", days=1)
        assert store.latest_for_email("jane@example.com").session_id == "new"

        store.append_turn("old", "back again", "welcome back", user_email="jane@example.com")
        latest = store.latest_for_email("JANE@example.com")
        assert latest.session_id == "old"
        assert len(latest.messages) == 4


class TestPurgeExpired:
    def test_removes_only_stale_sessions(self, store, db):
        store.append_turn("stale", "q", "a")
        store.append_turn("fresh", "q", "a")
        _age_session(db, "stale", days=120)

        assert store.purge_expired(90) == 1
        assert store.get_transcript("stale") is None
        assert store.recent_messages("stale", 10) == []
        assert store.get_transcript("fresh") is not None

    def test_nothing_to_purge(self, store):
        store.append_turn("s1", "q", "a")
        assert store.purge_expired(90) == 0
