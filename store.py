"""
In-memory memo store shared by every window, persisted to memos.json.

Mutations emit ``memo_changed`` synchronously so the main list and the
floating widgets stay consistent without polling. Disk writes are debounced;
deletes and explicit saves go to disk immediately.
"""
import datetime
import logging
import os

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from models import Memo, MemoEvent, WindowState
from utils import now_millis, read_json_file, write_json_atomic

logger = logging.getLogger(__name__)

SAVE_DEBOUNCE_MS = 500
UPDATABLE_FIELDS = ("title", "content", "color", "window")


class MemoStoreError(Exception):
    pass


class MemoNotFoundError(MemoStoreError):
    def __init__(self, memo_id):
        super().__init__(f"Memo not found: {memo_id}")
        self.memo_id = memo_id


def parse_memo_records(data):
    """Accepts a list of memo records or a {"memos": [...]} object."""
    if isinstance(data, dict):
        data = data.get("memos", [])
    if not isinstance(data, list):
        raise ValueError("저장 데이터 형식이 올바르지 않습니다.")

    memos = []
    seen = set()
    for record in data:
        try:
            memo = Memo.from_dict(record)
        except (ValueError, TypeError) as e:
            logger.warning("Skipped invalid memo record: %s", e)
            continue
        if memo.id in seen:
            logger.warning("Skipped duplicate memo id (%s)", memo.id)
            continue
        seen.add(memo.id)
        memos.append(memo)
    return memos


class MemoStore(QObject):
    memo_changed = pyqtSignal(object)

    def __init__(self, save_file, parent=None):
        super().__init__(parent)
        self.save_file = save_file
        self._memos = self._load_from_file()

        self.save_timer = QTimer(self)
        self.save_timer.setSingleShot(True)
        self.save_timer.setInterval(SAVE_DEBOUNCE_MS)
        self.save_timer.timeout.connect(self._perform_save)

    def _load_from_file(self):
        if not os.path.exists(self.save_file):
            return []
        try:
            raw = read_json_file(self.save_file, default=[])
            return parse_memo_records(raw)
        except Exception as e:
            logger.error("Failed to load memos (%s): %s", self.save_file, e)
            return []

    def _find(self, memo_id):
        for memo in self._memos:
            if memo.id == memo_id:
                return memo
        return None

    def _serialize(self):
        return [m.to_dict() for m in self._memos]

    # --- Queries ---

    def load_memos(self):
        return [m.copy() for m in self._memos]

    def get_memo(self, memo_id):
        memo = self._find(memo_id)
        return memo.copy() if memo else None

    # --- Mutations ---

    def create_memo(self, memo):
        if self._find(memo.id) is not None:
            raise MemoStoreError(f"Memo already exists: {memo.id}")
        self._memos.insert(0, memo.copy())
        self.schedule_save()
        self.memo_changed.emit(MemoEvent.created(memo.copy()))
        return memo.copy()

    def update_memo(self, memo_id, update):
        memo = self._find(memo_id)
        if memo is None:
            raise MemoNotFoundError(memo_id)

        for key in UPDATABLE_FIELDS:
            if update.get(key) is None:
                continue
            value = update[key]
            if key == "window" and isinstance(value, dict):
                value = WindowState.from_dict(value)
            setattr(memo, key, value)
        memo.updated_at = now_millis()

        self.schedule_save()
        self.memo_changed.emit(MemoEvent.updated(memo.copy()))
        return memo.copy()

    def delete_memo(self, memo_id):
        index = next((i for i, m in enumerate(self._memos) if m.id == memo_id), None)
        if index is None:
            raise MemoNotFoundError(memo_id)
        removed = self._memos.pop(index)

        if not self.save_now():
            # Keep memory in line with the file and the open windows
            self._memos.insert(index, removed)
            raise MemoStoreError(f"Failed to save after deleting {memo_id}")
        self.memo_changed.emit(MemoEvent.deleted(memo_id))

    # --- Persistence ---

    def schedule_save(self):
        """Requests a save; repeated calls within the window collapse into one write."""
        if not self.save_timer.isActive():
            self.save_timer.start()

    def has_pending_save(self):
        return self.save_timer.isActive()

    def save_now(self):
        return self._perform_save()

    def _perform_save(self, path=None):
        if path is None:
            self.save_timer.stop()
        target_path = path or self.save_file
        if write_json_atomic(target_path, self._serialize()):
            if path is None:
                logger.debug("Disk write: %d memos saved", len(self._memos))
            return True
        return False

    def backup_to(self, path):
        """Writes a snapshot of the current memos to ``path``."""
        return self._perform_save(path=path)

    def restore_from(self, path):
        """
        Replaces every memo with the contents of a backup file.
        A snapshot of the current state is written first; returns its path,
        or None if the snapshot could not be written.
        """
        raw = read_json_file(path, default=None)
        if raw is None:
            raise MemoStoreError(f"백업 파일을 읽을 수 없습니다: {path}")
        try:
            memos = parse_memo_records(raw)
        except ValueError as e:
            raise MemoStoreError(str(e)) from e

        timestamp = datetime.datetime.now().strftime("%Y%m%d%H%M%S")
        snapshot_path = os.path.join(
            os.path.dirname(self.save_file) or ".", f"memos_pre_restore_{timestamp}.json"
        )
        snapshot_ok = self.backup_to(snapshot_path)

        previous = self._memos
        self._memos = memos
        if not self.save_now():
            self._memos = previous
            raise MemoStoreError("백업 데이터를 현재 저장소에 기록하지 못했습니다.")
        self.memo_changed.emit(MemoEvent.reloaded(self.load_memos()))
        return snapshot_path if snapshot_ok else None
