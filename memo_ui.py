import ctypes
import logging
import sys

from PyQt6.QtWidgets import (QWidget, QVBoxLayout, QHBoxLayout, QPushButton,
                             QLabel, QFrame, QLineEdit, QSizeGrip)
from PyQt6.QtCore import Qt, QTimer, pyqtSignal
from PyQt6.QtGui import QCursor

from colors import DEFAULT_COLOR, get_color_style
from models import MemoEvent, WindowState
from utils import now_millis
from widgets import NoteTextEdit, ColorPicker

logger = logging.getLogger(__name__)

SAVE_DEBOUNCE_MS = 500
SAVED_STATUS_MS = 1000
EDITABLE_FIELDS = ("title", "content", "color")

DEFAULT_WIDTH, DEFAULT_HEIGHT = 300, 350
MIN_WIDTH, MIN_HEIGHT = 200, 150


class FloatingMemo(QWidget):
    """
    Independent floating window editing a single memo.

    Edits are collapsed by a 500ms debounce before they reach the store.
    While a save is pending, updates pushed by the store for this memo are
    ignored so they cannot overwrite the local edit.
    """
    closed = pyqtSignal(str)

    def __init__(self, memo_id, store, parent=None):
        super().__init__(parent)
        self.memo_id = memo_id
        self.store = store
        self.memo = None
        self.is_always_on_top = False
        self.persist_open_state = False
        self._placement_dirty = False
        self._deleted = False
        self._closing = False
        self._applying_placement = False
        self._drag_pos = None

        self.save_timer = QTimer(self)
        self.save_timer.setSingleShot(True)
        self.save_timer.setInterval(SAVE_DEBOUNCE_MS)
        self.save_timer.timeout.connect(self.save_memo)

        self.status_timer = QTimer(self)
        self.status_timer.setSingleShot(True)
        self.status_timer.timeout.connect(lambda: self.set_save_status(""))

        self.initUI()
        self.load_memo()
        self.store.memo_changed.connect(self.on_memo_changed)

    def initUI(self):
        self.setWindowFlags(Qt.WindowType.FramelessWindowHint | Qt.WindowType.Tool)
        self.setAttribute(Qt.WidgetAttribute.WA_DeleteOnClose)
        self.setWindowTitle("메모")
        self.resize(DEFAULT_WIDTH, DEFAULT_HEIGHT)
        self.setMinimumSize(MIN_WIDTH, MIN_HEIGHT)

        self.main_layout = QVBoxLayout(self)
        self.main_layout.setContentsMargins(0, 0, 0, 0)

        self.container = QFrame()
        self.container.setObjectName("MainContainer")
        self.container_layout = QVBoxLayout(self.container)
        self.container_layout.setContentsMargins(0, 0, 0, 0)
        self.container_layout.setSpacing(0)

        # Header doubles as the drag region
        self.header_container = QWidget()
        self.header_container.setObjectName("HeaderContainer")
        self.header_container.setAttribute(Qt.WidgetAttribute.WA_StyledBackground, True)
        self.title_bar = QHBoxLayout(self.header_container)
        self.title_bar.setContentsMargins(8, 4, 8, 4)
        self.title_bar.setSpacing(4)

        self.color_button = QPushButton("●")
        self.color_button.setFixedSize(24, 24)
        self.color_button.setToolTip("색상 변경")
        self.color_button.setCursor(QCursor(Qt.CursorShape.PointingHandCursor))
        self.color_button.clicked.connect(self.toggle_color_picker)

        self.status_label = QLabel("")
        self.status_label.setFixedWidth(24)

        self.pin_button = QPushButton("📌")
        self.pin_button.setFixedSize(24, 24)
        self.pin_button.setCheckable(True)
        self.pin_button.setToolTip("항상 위에")
        self.pin_button.setCursor(QCursor(Qt.CursorShape.PointingHandCursor))
        self.pin_button.clicked.connect(self.toggle_pin)

        self.close_button = QPushButton("×")
        self.close_button.setFixedSize(24, 24)
        self.close_button.setToolTip("닫기")
        self.close_button.setCursor(QCursor(Qt.CursorShape.PointingHandCursor))
        self.close_button.clicked.connect(self.close)

        self.title_bar.addWidget(self.color_button)
        self.title_bar.addWidget(self.status_label)
        self.title_bar.addStretch()
        self.title_bar.addWidget(self.pin_button)
        self.title_bar.addWidget(self.close_button)
        self.container_layout.addWidget(self.header_container)

        self.color_picker = ColorPicker()
        self.color_picker.hide()
        self.color_picker.color_selected.connect(self.on_color_selected)
        self.container_layout.addWidget(self.color_picker)

        self.content_area = QWidget()
        self.content_layout = QVBoxLayout(self.content_area)
        self.content_layout.setContentsMargins(12, 8, 12, 4)
        self.content_layout.setSpacing(6)

        self.title_edit = QLineEdit()
        self.title_edit.setPlaceholderText("제목")
        self.title_edit.textEdited.connect(lambda text: self.update_field("title", text))

        self.text_editor = NoteTextEdit()
        self.text_editor.setPlaceholderText("메모를 입력하세요...")
        self.text_editor.textChanged.connect(self.on_text_modified)

        self.content_layout.addWidget(self.title_edit)
        self.content_layout.addWidget(self.text_editor, 1)
        self.container_layout.addWidget(self.content_area, 1)

        self.loading_label = QLabel("로딩 중...")
        self.loading_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.container_layout.addWidget(self.loading_label, 1)
        self.content_area.hide()

        grip_row = QHBoxLayout()
        grip_row.setContentsMargins(0, 0, 0, 0)
        grip_row.addStretch()
        self.size_grip = QSizeGrip(self)
        grip_row.addWidget(self.size_grip, 0, Qt.AlignmentFlag.AlignBottom | Qt.AlignmentFlag.AlignRight)
        self.container_layout.addLayout(grip_row)

        self.main_layout.addWidget(self.container)

    # --- Loading & remote sync ---

    def load_memo(self):
        try:
            found = self.store.get_memo(self.memo_id)
        except Exception as e:
            logger.error("Failed to load memo (%s): %s", self.memo_id, e)
            return
        if found is None:
            logger.warning("Memo not found (%s)", self.memo_id)
            return
        if not found.color:
            found.color = DEFAULT_COLOR
        self.memo = found
        self.apply_memo(found)
        self.apply_placement(found.window)

    def apply_memo(self, memo):
        if self.title_edit.text() != memo.title:
            self.title_edit.blockSignals(True)
            self.title_edit.setText(memo.title)
            self.title_edit.blockSignals(False)
        self.text_editor.set_text_preserving_cursor(memo.content)
        self.color_picker.set_current(memo.color)
        self.loading_label.hide()
        self.content_area.show()
        self.update_style()

    def apply_placement(self, window):
        if window is None:
            return
        self._applying_placement = True
        try:
            self.move(int(window.x), int(window.y))
            self.resize(max(MIN_WIDTH, int(window.width)), max(MIN_HEIGHT, int(window.height)))
        finally:
            self._applying_placement = False
        if window.always_on_top:
            self.pin_button.setChecked(True)
            self.set_always_on_top(True)

    def has_pending_save(self):
        return self.save_timer.isActive()

    def on_memo_changed(self, event):
        if self._closing:
            return
        if event.type == MemoEvent.UPDATED and event.memo.id == self.memo_id:
            # Mid-edit: the local copy is newer than what the store just sent.
            if self.has_pending_save():
                return
            self.memo = event.memo.copy()
            self.apply_memo(self.memo)
        elif event.type == MemoEvent.DELETED and event.id == self.memo_id:
            self.close_deleted()
        elif event.type == MemoEvent.RELOADED:
            match = next((m for m in event.memos if m.id == self.memo_id), None)
            if match is None:
                self.close_deleted()
            else:
                self.save_timer.stop()
                self.memo = match.copy()
                self.apply_memo(self.memo)

    def close_deleted(self):
        """Close without writing back; the memo no longer exists."""
        self._deleted = True
        self.save_timer.stop()
        self.close()

    # --- Local edits ---

    def update_field(self, field, value):
        if self.memo is None:
            return
        if field not in EDITABLE_FIELDS:
            raise ValueError(f"Unknown memo field: {field}")
        setattr(self.memo, field, value)
        self.memo.updated_at = now_millis()
        if field == "color":
            self.color_picker.set_current(value)
            self.update_style()
        self.save_timer.start()

    def on_text_modified(self):
        if self.memo is None:
            return
        new_text = self.text_editor.toPlainText()
        if new_text != self.memo.content:
            self.update_field("content", new_text)

    def on_color_selected(self, color_id):
        self.update_field("color", color_id)
        self.color_picker.hide()

    def toggle_color_picker(self):
        self.color_picker.setVisible(not self.color_picker.isVisible())

    def _field_update(self):
        return {
            "title": self.memo.title,
            "content": self.memo.content,
            "color": self.memo.color,
        }

    def current_window_state(self, is_open):
        return WindowState(
            is_open=is_open,
            x=self.x(),
            y=self.y(),
            width=self.width(),
            height=self.height(),
            always_on_top=self.is_always_on_top,
        )

    def save_memo(self):
        """Debounce target: push the latest local state to the store."""
        self.save_timer.stop()
        if self.memo is None:
            return False
        update = self._field_update()
        if self._placement_dirty:
            update["window"] = self.current_window_state(is_open=True)
        self.set_save_status("saving")
        try:
            self.store.update_memo(self.memo_id, update)
        except Exception as e:
            logger.error("Failed to save memo (%s): %s", self.memo_id, e)
            self.set_save_status("")
            return False
        self._placement_dirty = False
        self.set_save_status("saved")
        return True

    def set_save_status(self, status):
        self.status_timer.stop()
        if status == "saving":
            self.status_label.setText("...")
        elif status == "saved":
            self.status_label.setText("✓")
            self.status_timer.start(SAVED_STATUS_MS)
        else:
            self.status_label.setText("")

    # --- Window placement ---

    def _schedule_placement_save(self):
        if self.memo is None:
            return
        self._placement_dirty = True
        self.save_timer.start()

    def toggle_pin(self, checked):
        self.set_always_on_top(checked)
        self._schedule_placement_save()

    def set_always_on_top(self, checked):
        self.is_always_on_top = checked

        is_visible = self.isVisible()
        curr_geom = self.geometry()

        # Changing the flag recreates the native handle on Windows
        self.setWindowFlag(Qt.WindowType.WindowStaysOnTopHint, checked)

        if is_visible:
            self.setGeometry(curr_geom)
            self.show_and_raise()

        if sys.platform == "win32" and is_visible:
            try:
                hwnd = int(self.winId())
                # SWP_NOSIZE | SWP_NOMOVE | SWP_SHOWWINDOW | SWP_NOOWNERZORDER
                flags = 0x0001 | 0x0002 | 0x0040 | 0x0200
                # HWND_TOPMOST = -1, HWND_NOTOPMOST = -2
                ctypes.windll.user32.SetWindowPos(hwnd, -1 if checked else -2, 0, 0, 0, 0, flags)
            except Exception as e:
                logger.warning("SetWindowPos failed (%s): %s", self.memo_id, e)

    def show_and_raise(self):
        self.show()
        self.raise_()
        self.activateWindow()

    def mousePressEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton and self.header_container.underMouse():
            self._drag_pos = event.globalPosition().toPoint() - self.frameGeometry().topLeft()
            event.accept()
            return
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event):
        if self._drag_pos is not None and event.buttons() == Qt.MouseButton.LeftButton:
            self.move(event.globalPosition().toPoint() - self._drag_pos)
            event.accept()
            return
        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event):
        if self._drag_pos is not None:
            self._drag_pos = None
            self._schedule_placement_save()
        super().mouseReleaseEvent(event)

    def resizeEvent(self, event):
        super().resizeEvent(event)
        if self.isVisible() and not self._applying_placement:
            self._placement_dirty = True

    # --- Styling ---

    def update_style(self):
        color_id = self.memo.color if self.memo else DEFAULT_COLOR
        style = get_color_style(color_id)
        self.container.setStyleSheet(
            f"QFrame#MainContainer {{ background-color: {style.bg}; border: 1px solid {style.header}; }}"
        )
        self.header_container.setStyleSheet(f"QWidget#HeaderContainer {{ background-color: {style.header}; }}")
        btn_style = f"""
            QPushButton {{ background: transparent; border: none; font-size: 13px; border-radius: 12px; color: {style.text}; }}
            QPushButton:hover {{ background: rgba(0,0,0,30); }}
            QPushButton:checked {{ background: rgba(0,0,0,60); }}
        """
        for btn in (self.color_button, self.pin_button, self.close_button):
            btn.setStyleSheet(btn_style)
        self.status_label.setStyleSheet(f"color: {style.text}; font-size: 11px; background: transparent;")
        self.title_edit.setStyleSheet(
            f"QLineEdit {{ background: transparent; border: none; font-size: 15px; font-weight: bold; color: {style.text}; }}"
        )
        self.text_editor.setStyleSheet(f"""
            NoteTextEdit {{ background: transparent; border: none; font-size: 13px; color: {style.text}; }}
            QScrollBar:vertical {{ border: none; background: transparent; width: 5px; margin: 0px; }}
            QScrollBar::handle:vertical {{ background: rgba(0, 0, 0, 30); border-radius: 2px; min-height: 20px; }}
            QScrollBar::add-line:vertical, QScrollBar::sub-line:vertical {{ height: 0px; }}
        """)
        self.loading_label.setStyleSheet(f"color: {style.text}; background: transparent;")

    # --- Closing ---

    def closeEvent(self, event):
        if self._closing:
            super().closeEvent(event)
            return
        self._closing = True
        self.save_timer.stop()
        if not self._deleted and self.memo is not None:
            update = self._field_update()
            update["window"] = self.current_window_state(is_open=self.persist_open_state)
            try:
                self.store.update_memo(self.memo_id, update)
            except Exception as e:
                logger.error("Failed to save memo on close (%s): %s", self.memo_id, e)
        try:
            self.store.memo_changed.disconnect(self.on_memo_changed)
        except TypeError:
            pass
        self.closed.emit(self.memo_id)
        super().closeEvent(event)
