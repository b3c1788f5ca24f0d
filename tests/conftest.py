"""Shared fixtures: offscreen Qt application and a store in a temp directory."""

import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PyQt6.QtWidgets import QApplication

from models import Memo
from store import MemoStore


@pytest.fixture(scope="session")
def qapp():
    app = QApplication.instance() or QApplication([])
    yield app


@pytest.fixture
def store(qapp, tmp_path):
    return MemoStore(str(tmp_path / "memos.json"))


@pytest.fixture
def memo(store):
    return store.create_memo(Memo(id="memo-1", title="Groceries", content="milk", color="green"))


class UpdateRecorder:
    """Wraps store.update_memo and records every call."""

    def __init__(self, store):
        self.calls = []
        self._original = store.update_memo
        store.update_memo = self

    def __call__(self, memo_id, update):
        self.calls.append((memo_id, dict(update)))
        return self._original(memo_id, update)


@pytest.fixture
def updates(store):
    return UpdateRecorder(store)
