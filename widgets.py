from PyQt6.QtWidgets import QTextEdit, QPushButton, QWidget, QHBoxLayout
from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtGui import QCursor

from colors import COLORS


class NoteTextEdit(QTextEdit):
    """
    Plain-text memo body editor.
    """
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.setAcceptRichText(False)
        self.viewport().setAutoFillBackground(False)

    def insertFromMimeData(self, source):
        """
        Override paste behavior to insert plain text only.
        This prevents formatting (fonts, colors, sizes) from being pasted.
        """
        if source.hasText():
            self.insertPlainText(source.text())
        else:
            super().insertFromMimeData(source)

    def set_text_preserving_cursor(self, text):
        """Replace the text only if it differs, keeping the caret where it was."""
        if text == self.toPlainText():
            return
        pos = self.textCursor().position()
        self.blockSignals(True)
        self.setPlainText(text)
        self.blockSignals(False)
        cursor = self.textCursor()
        cursor.setPosition(min(pos, len(text)))
        self.setTextCursor(cursor)


class ColorPicker(QWidget):
    """
    Row of round swatches, one per memo color.
    """
    color_selected = pyqtSignal(str)

    def __init__(self, parent=None):
        super().__init__(parent)
        layout = QHBoxLayout(self)
        layout.setContentsMargins(8, 6, 8, 6)
        layout.setSpacing(6)
        self.buttons = {}
        for style in COLORS:
            btn = QPushButton()
            btn.setFixedSize(20, 20)
            btn.setCheckable(True)
            btn.setToolTip(style.id)
            btn.setCursor(QCursor(Qt.CursorShape.PointingHandCursor))
            btn.setStyleSheet(f"""
                QPushButton {{ background-color: {style.header}; border-radius: 10px; border: 1px solid rgba(0,0,0,40); }}
                QPushButton:checked {{ border: 2px solid rgba(0,0,0,160); }}
            """)
            btn.clicked.connect(lambda checked, c=style.id: self.color_selected.emit(c))
            layout.addWidget(btn)
            self.buttons[style.id] = btn
        layout.addStretch()

    def set_current(self, color_id):
        for cid, btn in self.buttons.items():
            btn.setChecked(cid == color_id)
