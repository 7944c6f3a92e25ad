import tempfile
from pathlib import Path

import pytest

from pulih_core.domain.exceptions import PersistenceError
from pulih_core.domain.models import Message
from pulih_core.infrastructure.storage.json_store import JsonSessionStore


HISTORY = [
    Message(role="user", content="Halo, aku lagi bingung"),
    Message(role="assistant", content="Aku di sini"),
]


def test_json_store_save_new_and_reload():
    with tempfile.TemporaryDirectory() as d:
        store = JsonSessionStore(root=Path(d) / ".storage")
        res = store.save(None, HISTORY)
        assert res.id.startswith("s-")
        record = store.get_session(res.id)
        assert record.messages == HISTORY
        assert record.title == "Halo, aku lagi bingung"
        assert record.meta["message_count"] == 2


def test_json_store_save_existing_overwrites_history():
    with tempfile.TemporaryDirectory() as d:
        store = JsonSessionStore(root=Path(d) / ".storage")
        sid = store.save(None, HISTORY).id
        longer = HISTORY + [Message(role="user", content="lanjut"), Message(role="assistant", content="ya")]
        assert store.save(sid, longer).id == sid
        assert store.save(sid, longer).id == sid
        record = store.get_session(sid)
        assert len(record.messages) == 4
        assert record.title == "Halo, aku lagi bingung"
        assert len(store.list_sessions()) == 1


def test_json_store_title_is_truncated():
    with tempfile.TemporaryDirectory() as d:
        store = JsonSessionStore(root=Path(d) / ".storage")
        sid = store.save(None, [Message(role="user", content="kata " * 30)]).id
        title = store.get_session(sid).title
        assert len(title) <= 40
        assert title.endswith("...")


def test_json_store_list_newest_first_and_retitle():
    with tempfile.TemporaryDirectory() as d:
        store = JsonSessionStore(root=Path(d) / ".storage")
        first = store.save(None, HISTORY).id
        second = store.save(None, HISTORY).id
        store.update_session_title(first, "Dibuka lagi")
        items = store.list_sessions()
        assert [r.id for r in items] == [first, second]
        assert items[0].title == "Dibuka lagi"
        assert items[0].messages == []


def test_json_store_delete_session():
    with tempfile.TemporaryDirectory() as d:
        root = Path(d) / ".storage"
        store = JsonSessionStore(root=root)
        sid = store.save(None, HISTORY).id
        assert (root / "sessions" / sid).exists()
        store.delete_session(sid)
        assert not (root / "sessions" / sid).exists()
        with pytest.raises(PersistenceError):
            store.delete_session(sid)


def test_json_store_unknown_session():
    with tempfile.TemporaryDirectory() as d:
        store = JsonSessionStore(root=Path(d) / ".storage")
        with pytest.raises(PersistenceError) as exc:
            store.get_session("s-missing")
        assert exc.value.code == "SESSION_NOT_FOUND"
        with pytest.raises(PersistenceError):
            store.save("s-missing", HISTORY)


@pytest.mark.parametrize("session_id", ["../../other", "..", "s-1/../../other", "/tmp/other", ""])
def test_json_store_rejects_ids_outside_store(session_id):
    with tempfile.TemporaryDirectory() as d:
        victim = Path(d) / "other"
        victim.mkdir()
        (victim / "keep.txt").write_text("tetap", encoding="utf-8")
        (victim / "meta.json").write_text("{}", encoding="utf-8")
        store = JsonSessionStore(root=Path(d) / "store")

        with pytest.raises(PersistenceError) as exc:
            store.delete_session(session_id)
        assert exc.value.code == "SESSION_NOT_FOUND"
        with pytest.raises(PersistenceError):
            store.get_session(session_id)
        with pytest.raises(PersistenceError):
            store.update_session_title(session_id, "x")

        assert (victim / "keep.txt").exists()


def test_json_store_unwritable_sessions_dir_raises_persistence_error():
    with tempfile.TemporaryDirectory() as d:
        store = JsonSessionStore(root=Path(d) / ".storage")
        sessions = Path(d) / ".storage" / "sessions"
        sessions.rmdir()
        sessions.write_text("bukan direktori", encoding="utf-8")

        with pytest.raises(PersistenceError) as exc:
            store.save(None, HISTORY)
        assert exc.value.code == "STORE_WRITE_ERROR"

        with pytest.raises(PersistenceError) as exc:
            JsonSessionStore(root=Path(d) / ".storage")
        assert exc.value.code == "STORE_WRITE_ERROR"
