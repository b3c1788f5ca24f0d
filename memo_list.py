import logging
import uuid

from PyQt6.QtWidgets import (QWidget, QVBoxLayout, QHBoxLayout, QPushButton, QLabel,
                             QFrame, QScrollArea, QGridLayout)
from PyQt6.QtCore import Qt, QTimer, pyqtSignal
from PyQt6.QtGui import QCursor

from colors import DEFAULT_COLOR, get_color_style
from models import Memo, MemoEvent
from utils import format_time, now_millis

logger = logging.getLogger(__name__)

NEW_MEMO_TITLE = "새 메모"
SAVED_STATUS_MS = 1500
TIME_REFRESH_MS = 60000
PREVIEW_CHARS = 100
GRID_COLUMNS = 2


class MemoCard(QFrame):
    """
    Clickable summary of one memo in the main list.
    """
    open_requested = pyqtSignal(str)
    delete_requested = pyqtSignal(str)

    def __init__(self, memo, parent=None):
        super().__init__(parent)
        self.memo = None
        self.setObjectName("MemoCard")
        self.setCursor(QCursor(Qt.CursorShape.PointingHandCursor))
        self.setFixedHeight(150)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)

        self.header = QWidget()
        self.header.setObjectName("CardHeader")
        self.header.setAttribute(Qt.WidgetAttribute.WA_StyledBackground, True)
        header_layout = QHBoxLayout(self.header)
        header_layout.setContentsMargins(10, 4, 4, 4)
        self.title_label = QLabel()
        self.delete_button = QPushButton("×")
        self.delete_button.setFixedSize(22, 22)
        self.delete_button.setToolTip("삭제")
        self.delete_button.clicked.connect(lambda: self.delete_requested.emit(self.memo.id))
        header_layout.addWidget(self.title_label, 1)
        header_layout.addWidget(self.delete_button)

        self.content_label = QLabel()
        self.content_label.setWordWrap(True)
        self.content_label.setAlignment(Qt.AlignmentFlag.AlignTop | Qt.AlignmentFlag.AlignLeft)
        self.content_label.setContentsMargins(10, 6, 10, 0)

        self.time_label = QLabel()
        self.time_label.setContentsMargins(10, 0, 10, 6)

        layout.addWidget(self.header)
        layout.addWidget(self.content_label, 1)
        layout.addWidget(self.time_label)

        self.set_memo(memo)

    def set_memo(self, memo):
        # Same visible fields: nothing to redraw
        if self.memo is not None and (
            (self.memo.title, self.memo.content, self.memo.color, self.memo.updated_at)
            == (memo.title, memo.content, memo.color, memo.updated_at)
        ):
            return
        self.memo = memo
        style = get_color_style(memo.color)
        self.setStyleSheet(f"""
            QFrame#MemoCard {{ background-color: {style.bg}; border: 1px solid {style.header}; border-radius: 8px; }}
            QWidget#CardHeader {{ background-color: {style.header}; border-top-left-radius: 8px; border-top-right-radius: 8px; }}
            QLabel {{ color: {style.text}; background: transparent; }}
            QPushButton {{ background: transparent; border: none; color: {style.text}; font-size: 14px; border-radius: 11px; }}
            QPushButton:hover {{ background: rgba(0,0,0,30); }}
        """)
        self.title_label.setText(memo.title or "제목 없음")
        self.content_label.setText(memo.content[:PREVIEW_CHARS] or "내용 없음")
        self.refresh_time()

    def refresh_time(self, now=None):
        self.time_label.setText(format_time(self.memo.updated_at, now=now))

    def mousePressEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            self.open_requested.emit(self.memo.id)
            event.accept()
            return
        super().mousePressEvent(event)


class MemoListWindow(QWidget):
    """
    Main window: memo cards kept in sync with the store through change events.
    """
    open_requested = pyqtSignal(str)
    close_requested = pyqtSignal(str)

    def __init__(self, store, parent=None):
        super().__init__(parent)
        self.store = store
        self.memos = []
        self._cards = {}
        self.hide_on_close = True

        self.status_timer = QTimer(self)
        self.status_timer.setSingleShot(True)
        self.status_timer.timeout.connect(lambda: self.set_save_status(""))

        self.time_timer = QTimer(self)
        self.time_timer.timeout.connect(self.refresh_times)
        self.time_timer.start(TIME_REFRESH_MS)

        self.initUI()
        self.load_memos()
        self.store.memo_changed.connect(self.on_memo_changed)

    def initUI(self):
        self.setWindowTitle("MyMemo")
        self.resize(420, 560)
        self.setStyleSheet("MemoListWindow { background-color: #fafafa; }")

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)

        header = QFrame()
        header.setStyleSheet("QFrame { background-color: white; border-bottom: 1px solid #e5e7eb; }")
        header_layout = QHBoxLayout(header)
        header_layout.setContentsMargins(16, 10, 16, 10)
        title = QLabel("MyMemo")
        title.setStyleSheet("font-size: 18px; font-weight: bold; color: #111827; border: none;")
        self.status_label = QLabel("")
        self.status_label.setStyleSheet("font-size: 12px; color: #6b7280; border: none;")
        self.new_button = QPushButton("+ 새 메모")
        self.new_button.setToolTip("새 메모")
        self.new_button.setCursor(QCursor(Qt.CursorShape.PointingHandCursor))
        self.new_button.setStyleSheet("""
            QPushButton { background-color: #111827; color: white; border: none; border-radius: 6px; padding: 6px 12px; font-weight: bold; }
            QPushButton:hover { background-color: #000000; }
        """)
        self.new_button.clicked.connect(self.create_memo)
        header_layout.addWidget(title)
        header_layout.addStretch()
        header_layout.addWidget(self.status_label)
        header_layout.addWidget(self.new_button)
        layout.addWidget(header)

        self.scroll_area = QScrollArea()
        self.scroll_area.setWidgetResizable(True)
        self.scroll_area.setFrameShape(QFrame.Shape.NoFrame)
        self.grid_host = QWidget()
        self.grid = QGridLayout(self.grid_host)
        self.grid.setContentsMargins(12, 12, 12, 12)
        self.grid.setSpacing(10)
        self.grid.setAlignment(Qt.AlignmentFlag.AlignTop)
        self.scroll_area.setWidget(self.grid_host)
        layout.addWidget(self.scroll_area, 1)

        self.empty_state = QWidget()
        empty_layout = QVBoxLayout(self.empty_state)
        empty_layout.setAlignment(Qt.AlignmentFlag.AlignCenter)
        empty_label = QLabel("메모가 없습니다")
        empty_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        empty_label.setStyleSheet("color: #9ca3af; font-size: 14px;")
        self.first_memo_button = QPushButton("첫 메모 만들기")
        self.first_memo_button.setCursor(QCursor(Qt.CursorShape.PointingHandCursor))
        self.first_memo_button.clicked.connect(self.create_memo)
        empty_layout.addWidget(empty_label)
        empty_layout.addWidget(self.first_memo_button, 0, Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(self.empty_state, 1)

        footer = QFrame()
        footer.setStyleSheet("QFrame { background-color: white; border-top: 1px solid #e5e7eb; } QLabel { border: none; color: #6b7280; font-size: 11px; }")
        footer_layout = QHBoxLayout(footer)
        footer_layout.setContentsMargins(16, 6, 16, 6)
        self.count_label = QLabel("")
        hint = QLabel("클릭하여 메모 열기 • 메인 창을 닫아도 메모는 유지됩니다")
        footer_layout.addWidget(self.count_label)
        footer_layout.addStretch()
        footer_layout.addWidget(hint)
        layout.addWidget(footer)

    # --- Sync with the store ---

    def load_memos(self):
        try:
            self.memos = self.store.load_memos()
        except Exception as e:
            logger.error("Failed to load memos: %s", e)
            self.memos = []
        self.render()

    def on_memo_changed(self, event):
        if event.type == MemoEvent.CREATED:
            self.memos = [event.memo] + [m for m in self.memos if m.id != event.memo.id]
        elif event.type == MemoEvent.UPDATED:
            self.memos = [event.memo if m.id == event.memo.id else m for m in self.memos]
        elif event.type == MemoEvent.DELETED:
            self.memos = [m for m in self.memos if m.id != event.id]
        elif event.type == MemoEvent.RELOADED:
            self.memos = list(event.memos)
        else:
            logger.warning("Unknown memo event type: %s", event.type)
            return
        self.render()

    def memo_ids(self):
        return [m.id for m in self.memos]

    def render(self):
        for i in reversed(range(self.grid.count())):
            self.grid.takeAt(i)

        live_ids = set()
        for index, memo in enumerate(self.memos):
            card = self._cards.get(memo.id)
            if card is None:
                card = MemoCard(memo)
                card.open_requested.connect(self.open_requested)
                card.delete_requested.connect(self.delete_memo)
                self._cards[memo.id] = card
            else:
                card.set_memo(memo)
            self.grid.addWidget(card, index // GRID_COLUMNS, index % GRID_COLUMNS)
            live_ids.add(memo.id)

        for memo_id in list(self._cards):
            if memo_id not in live_ids:
                card = self._cards.pop(memo_id)
                card.hide()
                card.deleteLater()

        has_memos = bool(self.memos)
        self.scroll_area.setVisible(has_memos)
        self.empty_state.setVisible(not has_memos)
        self.count_label.setText(f"{len(self.memos)}개의 메모")

    def refresh_times(self):
        now = now_millis()
        for card in self._cards.values():
            card.refresh_time(now=now)

    # --- User actions ---

    def create_memo(self):
        memo = Memo(
            id=str(uuid.uuid4()),
            title=NEW_MEMO_TITLE,
            content="",
            color=DEFAULT_COLOR,
            updated_at=now_millis(),
        )
        self.set_save_status("saving")
        try:
            self.store.create_memo(memo)
        except Exception as e:
            logger.error("Failed to create memo: %s", e)
            self.set_save_status("")
            return None
        self.set_save_status("saved")
        self.open_requested.emit(memo.id)
        return memo

    def delete_memo(self, memo_id):
        try:
            self.store.delete_memo(memo_id)
        except Exception as e:
            logger.error("Failed to delete memo (%s): %s", memo_id, e)
            return
        self.close_requested.emit(memo_id)

    def set_save_status(self, status):
        self.status_timer.stop()
        if status == "saving":
            self.status_label.setText("저장 중...")
        elif status == "saved":
            self.status_label.setText("✓ 저장됨")
            self.status_timer.start(SAVED_STATUS_MS)
        else:
            self.status_label.setText("")

    def show_and_raise(self):
        self.show()
        self.raise_()
        self.activateWindow()

    def closeEvent(self, event):
        # Closing the list only hides it; memos and the tray stay alive.
        if self.hide_on_close:
            event.ignore()
            self.hide()
        else:
            super().closeEvent(event)
