"""Tests for the shared memo store: CRUD, change events and persistence."""

import json
from pathlib import Path

import pytest
from PyQt6.QtTest import QTest

import store as store_module
from models import Memo, MemoEvent, WindowState
from store import MemoNotFoundError, MemoStore, MemoStoreError


@pytest.fixture
def events(store):
    received = []
    store.memo_changed.connect(received.append)
    return received


def read_file(store):
    return json.loads(Path(store.save_file).read_text(encoding="utf-8"))


class TestCrud:
    def test_create_inserts_at_front(self, store, events):
        store.create_memo(Memo(id="a"))
        store.create_memo(Memo(id="b"))
        assert [m.id for m in store.load_memos()] == ["b", "a"]
        assert [e.type for e in events] == ["created", "created"]
        assert events[1].memo.id == "b"

    def test_create_duplicate_id_rejected(self, store):
        store.create_memo(Memo(id="a"))
        with pytest.raises(MemoStoreError):
            store.create_memo(Memo(id="a"))

    def test_get_memo_returns_copy(self, store, memo):
        found = store.get_memo(memo.id)
        found.title = "mutated"
        assert store.get_memo(memo.id).title == "Groceries"

    def test_get_missing_memo(self, store):
        assert store.get_memo("nope") is None

    def test_update_applies_only_given_fields(self, store, memo, events):
        updated = store.update_memo(memo.id, {"title": "New title"})
        assert updated.title == "New title"
        assert updated.content == "milk"
        assert updated.color == "green"
        assert updated.updated_at >= memo.updated_at
        assert events[-1].type == MemoEvent.UPDATED
        assert events[-1].memo.title == "New title"

    def test_update_window_state(self, store, memo):
        store.update_memo(memo.id, {"window": WindowState(is_open=True, x=5, y=6)})
        assert store.get_memo(memo.id).window.x == 5

    def test_update_window_state_from_dict(self, store, memo):
        store.update_memo(memo.id, {"window": {"isOpen": False, "x": 1, "y": 2, "width": 250,
                                               "height": 200, "alwaysOnTop": True}})
        assert store.get_memo(memo.id).window.always_on_top is True

    def test_update_missing_memo(self, store):
        with pytest.raises(MemoNotFoundError):
            store.update_memo("nope", {"title": "x"})

    def test_delete_saves_immediately(self, store, memo, events):
        store.delete_memo(memo.id)
        assert store.get_memo(memo.id) is None
        assert read_file(store) == []
        assert events[-1].type == MemoEvent.DELETED
        assert events[-1].id == memo.id

    def test_delete_missing_memo(self, store, events):
        with pytest.raises(MemoNotFoundError):
            store.delete_memo("nope")
        assert events == []


class TestPersistence:
    def test_debounced_save_writes_latest_state(self, store, memo):
        store.update_memo(memo.id, {"content": "eggs"})
        assert store.has_pending_save()
        QTest.qWait(700)
        assert not store.has_pending_save()
        data = read_file(store)
        assert data[0]["content"] == "eggs"
        assert data[0]["updatedAt"] > 0

    def test_save_now_cancels_pending_timer(self, store, memo):
        assert store.has_pending_save()
        assert store.save_now()
        assert not store.has_pending_save()

    def test_reload_from_file(self, qapp, store, memo):
        store.save_now()
        reopened = MemoStore(store.save_file)
        assert [m.id for m in reopened.load_memos()] == [memo.id]
        assert reopened.get_memo(memo.id).content == "milk"

    def test_missing_file_is_empty(self, qapp, tmp_path):
        assert MemoStore(str(tmp_path / "absent.json")).load_memos() == []

    def test_corrupt_file_is_empty(self, qapp, tmp_path):
        path = tmp_path / "memos.json"
        path.write_text("{not json", encoding="utf-8")
        assert MemoStore(str(path)).load_memos() == []

    def test_object_form_and_invalid_records(self, qapp, tmp_path):
        path = tmp_path / "memos.json"
        path.write_text(json.dumps({"memos": [
            {"id": "a", "title": "ok", "content": "", "color": "blue", "updatedAt": 1},
            {"title": "missing id"},
            "garbage",
            {"id": "a", "title": "duplicate"},
        ]}), encoding="utf-8")
        memos = MemoStore(str(path)).load_memos()
        assert [(m.id, m.title) for m in memos] == [("a", "ok")]


class TestBackupRestore:
    def test_backup_to(self, store, memo, tmp_path):
        target = tmp_path / "backup.json"
        assert store.backup_to(str(target))
        assert json.loads(target.read_text(encoding="utf-8"))[0]["id"] == memo.id

    def test_restore_emits_reloaded(self, store, memo, events, tmp_path):
        backup = tmp_path / "old.json"
        backup.write_text(json.dumps([
            {"id": "x", "title": "from backup", "content": "", "color": "pink", "updatedAt": 1},
        ]), encoding="utf-8")

        snapshot = store.restore_from(str(backup))

        assert [m.id for m in store.load_memos()] == ["x"]
        assert events[-1].type == MemoEvent.RELOADED
        assert [m.id for m in events[-1].memos] == ["x"]
        assert snapshot is not None
        assert json.loads(Path(snapshot).read_text(encoding="utf-8"))[0]["id"] == memo.id
        assert read_file(store)[0]["id"] == "x"

    def test_restore_rejects_bad_file(self, store, memo, events, tmp_path):
        backup = tmp_path / "bad.json"
        backup.write_text('"just a string"', encoding="utf-8")
        with pytest.raises(MemoStoreError):
            store.restore_from(str(backup))
        assert store.get_memo(memo.id) is not None
        assert all(e.type != MemoEvent.RELOADED for e in events)

    def test_failed_restore_keeps_current_memos(self, store, memo, events, tmp_path, monkeypatch):
        backup = tmp_path / "old.json"
        backup.write_text(json.dumps([{"id": "other", "title": "from backup"}]), encoding="utf-8")
        real_write = store_module.write_json_atomic

        def fail_on_storage(path, data):
            if path == store.save_file:
                return False
            return real_write(path, data)

        monkeypatch.setattr(store_module, "write_json_atomic", fail_on_storage)
        with pytest.raises(MemoStoreError):
            store.restore_from(str(backup))

        assert [m.id for m in store.load_memos()] == [memo.id]
        assert all(e.type != MemoEvent.RELOADED for e in events)


class TestDeleteFailure:
    def test_failed_save_keeps_memo_in_place(self, store, events, monkeypatch):
        for memo_id in ("a", "b", "c"):
            store.create_memo(Memo(id=memo_id))
        events.clear()
        monkeypatch.setattr(store_module, "write_json_atomic", lambda path, data: False)

        with pytest.raises(MemoStoreError):
            store.delete_memo("b")

        assert [m.id for m in store.load_memos()] == ["c", "b", "a"]
        assert events == []
