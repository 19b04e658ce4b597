# Tests for chat storage and the session store
# Created: 2026-10-12

import json
import tempfile
from pathlib import Path

import pytest

from portalchat.chat.models import ChatSession, Message, Role
from portalchat.chat.storage import FileKeyValueStore, InMemoryKeyValueStore
from portalchat.chat.store import (
    PersistResult,
    SessionStore,
    deserialize_sessions,
    serialize_sessions,
)


@pytest.fixture
def temp_store_path():
    """Create a temporary directory for file storage."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


def _session(session_id: str, stamp: float, *texts: str) -> ChatSession:
    session = ChatSession(id=session_id, title=texts[0] if texts else "Empty")
    for i, text in enumerate(texts):
        role = Role.USER if i % 2 == 0 else Role.ASSISTANT
        session.append(Message(id=f"{session_id}-{i}", role=role, content=text), stamp=stamp)
    session.last_modified = stamp
    return session


class TestSerialization:
    """Tests for the versioned payload."""

    def test_round_trip(self):
        sessions = [
            _session("a", 1760000000.5, "Room booking?", "Use the portal.", "Thanks"),
            _session("b", 1760000100.25, "Wi-Fi password?"),
        ]
        restored = deserialize_sessions(serialize_sessions(sessions))

        assert [s.id for s in restored] == ["a", "b"]
        assert restored == sessions

    def test_empty_sessions_not_serialized(self):
        payload = json.loads(serialize_sessions([_session("empty", 1.0), _session("a", 2.0, "Hi")]))
        assert [s["id"] for s in payload["sessions"]] == ["a"]

    def test_unknown_version_rejected(self):
        with pytest.raises(ValueError):
            deserialize_sessions(json.dumps({"version": 99, "sessions": []}))

    def test_unexpected_shape_rejected(self):
        with pytest.raises(ValueError):
            deserialize_sessions('"just a string"')

    def test_bad_entries_skipped(self):
        raw = json.dumps(
            {
                "version": 1,
                "sessions": [
                    {"title": "no id"},
                    {"id": "ok", "title": "Fine", "last_modified": 5, "messages": [
                        {"id": "1", "role": "user", "content": "Fine"}
                    ]},
                    {"id": "nomsgs", "title": "Empty", "messages": []},
                ],
            }
        )
        assert [s.id for s in deserialize_sessions(raw)] == ["ok"]

    def test_non_object_entries_skipped(self):
        good = {"id": "ok", "title": "Fine", "last_modified": 5, "messages": [
            {"id": "1", "role": "user", "content": "Fine"}
        ]}
        raw = json.dumps({"version": 1, "sessions": ["garbage", ["a", "list"], 7, good]})
        assert [s.id for s in deserialize_sessions(raw)] == ["ok"]

    @pytest.mark.parametrize(
        "bad",
        [
            {"id": "x", "title": "T", "messages": [{"id": "1", "role": "user", "content": 42}]},
            {"id": "x", "title": ["T"], "messages": [{"id": "1", "role": "user", "content": "Hi"}]},
            {"id": "x", "title": "T", "messages": ["not a message"]},
        ],
    )
    def test_wrongly_typed_fields_skipped(self, bad):
        good = {"id": "ok", "title": "Fine", "messages": [{"id": "2", "role": "user", "content": "Fine"}]}
        raw = json.dumps({"version": 1, "sessions": [bad, good]})
        assert [s.id for s in deserialize_sessions(raw)] == ["ok"]


class TestSessionStore:
    """Tests for SessionStore."""

    def test_hydrate_missing_key(self):
        store = SessionStore(InMemoryKeyValueStore())
        result = store.hydrate()
        assert result.ok
        assert len(store) == 0

    def test_save_and_hydrate(self):
        backend = InMemoryKeyValueStore()
        store = SessionStore(backend)
        store.add(_session("a", 10.0, "Hello"))
        store.add(_session("b", 20.0, "World"))
        assert store.save().ok

        other = SessionStore(backend)
        other.hydrate()
        assert [s.id for s in other.ordered()] == ["b", "a"]
        assert "a" in other

    def test_ordered_excludes_empty(self):
        store = SessionStore(InMemoryKeyValueStore())
        store.add(_session("empty", 99.0))
        store.add(_session("a", 1.0, "Hi"))
        assert [s.id for s in store.ordered()] == ["a"]
        assert [s.id for s in store.summaries()] == ["a"]
        assert len(store) == 1

    def test_corrupt_payload_reports_failure(self):
        seen: list[PersistResult] = []
        store = SessionStore(InMemoryKeyValueStore({"chat_history": "[{"}), observer=seen.append)
        result = store.hydrate()
        assert not result.ok
        assert result.operation == "load"
        assert seen == [result]
        assert len(store) == 0

    def test_observer_errors_are_contained(self):
        class Broken(InMemoryKeyValueStore):
            def set(self, key, value):
                raise OSError("disk full")

        def _observer(result):
            raise RuntimeError("observer broke")

        store = SessionStore(Broken(), observer=_observer)
        store.add(_session("a", 1.0, "Hi"))
        result = store.save()
        assert not result.ok
        assert "disk full" in result.error

    def test_custom_key(self):
        backend = InMemoryKeyValueStore()
        store = SessionStore(backend, key="student:42")
        store.add(_session("a", 1.0, "Hi"))
        store.save()
        assert backend.keys() == ["student:42"]

    def test_wipe(self):
        backend = InMemoryKeyValueStore()
        store = SessionStore(backend)
        store.add(_session("a", 1.0, "Hi"))
        store.save()
        assert store.wipe().ok
        assert backend.get("chat_history") is None
        assert len(store) == 0


class TestFileKeyValueStore:
    """Tests for FileKeyValueStore."""

    def test_get_missing(self, temp_store_path):
        assert FileKeyValueStore(temp_store_path).get("nothing") is None

    def test_set_get_remove(self, temp_store_path):
        kv = FileKeyValueStore(temp_store_path)
        kv.set("chat_history", '{"version": 1}')
        assert kv.get("chat_history") == '{"version": 1}'
        assert (temp_store_path / "chat_history.json").exists()
        assert not (temp_store_path / "chat_history.tmp").exists()

        kv.remove("chat_history")
        assert kv.get("chat_history") is None
        kv.remove("chat_history")

    def test_overwrite(self, temp_store_path):
        kv = FileKeyValueStore(temp_store_path)
        kv.set("k", "one")
        kv.set("k", "two")
        assert kv.get("k") == "two"

    def test_unsafe_key_characters(self, temp_store_path):
        kv = FileKeyValueStore(temp_store_path)
        kv.set("../escape/key", "v")
        assert kv.get("../escape/key") == "v"
        assert list(temp_store_path.iterdir()) == [temp_store_path / ".._escape_key.json"]

    def test_persists_across_instances(self, temp_store_path):
        store = SessionStore(FileKeyValueStore(temp_store_path))
        store.add(_session("a", 3.5, "Where is the gym?", "Building F."))
        store.save()

        reloaded = SessionStore(FileKeyValueStore(temp_store_path))
        reloaded.hydrate()
        assert reloaded.get("a").messages[1].content == "Building F."
        assert reloaded.get("a").last_modified == 3.5

    def test_default_path_uses_config_dir(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PORTALCHAT_CONFIG_DIR", str(tmp_path))
        kv = FileKeyValueStore()
        assert kv.base_path == tmp_path / "storage"
        assert kv.base_path.is_dir()
