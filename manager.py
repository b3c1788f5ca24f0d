import ctypes
import datetime
import logging
import os
import sys

import keyboard
from PyQt6.QtWidgets import QApplication, QMenu, QSystemTrayIcon, QStyle, QFileDialog, QMessageBox, QDialog
from PyQt6.QtCore import QTimer, QAbstractNativeEventFilter, QObject, pyqtSignal
from PyQt6.QtGui import QIcon

from backup import AutoBackup, AutoBackupDialog
from config import CONFIG_FILE_NAME, default_data_dir, load_config, save_config, storage_file
from memo_list import MemoListWindow
from memo_ui import FloatingMemo
from store import MemoStore
from utils import resource_path

logger = logging.getLogger(__name__)


class PowerEventFilter(QAbstractNativeEventFilter):
    """
    Listens for Windows power events to re-register hotkeys after sleep/resume.
    """
    WM_POWERBROADCAST = 0x0218
    PBT_APMRESUMEAUTOMATIC = 0x0012
    PBT_APMRESUMESUSPEND = 0x0007

    def __init__(self, manager):
        super().__init__()
        self.manager = manager

    def nativeEventFilter(self, event_type, message):
        if event_type == b"windows_generic_MSG":
            from ctypes import wintypes
            msg = wintypes.MSG.from_address(int(message))
            if msg.message == self.WM_POWERBROADCAST:
                if msg.wParam in (self.PBT_APMRESUMEAUTOMATIC, self.PBT_APMRESUMESUSPEND):
                    logger.info("System resume detected. Resetting hotkeys...")
                    # Give the input stack time to come back
                    QTimer.singleShot(3000, self.manager.setup_hotkeys)
        return False, 0


class HotkeyBridge(QObject):
    """
    Bridges keyboard callbacks (worker thread) into the Qt main thread.
    """
    show_requested = pyqtSignal()
    hide_requested = pyqtSignal()
    new_requested = pyqtSignal()


class MemoManager:
    """
    Application controller: owns the store, the main list, the open memo
    widgets, the tray, global hotkeys and scheduled backups.
    """
    def __init__(self, data_dir=None, system_hooks=True, show_main=True):
        self.data_dir = data_dir or default_data_dir()
        os.makedirs(self.data_dir, exist_ok=True)
        self.config_file = os.path.join(self.data_dir, CONFIG_FILE_NAME)
        self.config = load_config(self.config_file, data_dir=self.data_dir)

        self.store = MemoStore(storage_file(self.config, self.data_dir))
        self.widgets = {}

        self.main_window = MemoListWindow(self.store)
        self.main_window.open_requested.connect(self.open_memo_window)
        self.main_window.close_requested.connect(self.close_memo_window)

        self.auto_backup = AutoBackup(self.store, self.config["auto_backup"])
        self.auto_backup.start()

        self.hotkey_handles = []
        self.hotkey_bridge = HotkeyBridge()
        self.hotkey_bridge.show_requested.connect(self.bring_to_front)
        self.hotkey_bridge.hide_requested.connect(self.hide_all)
        self.hotkey_bridge.new_requested.connect(self.create_new_memo)

        self.tray_icon = None
        self.power_filter = None
        if system_hooks:
            if sys.platform == "win32" and not self._is_running_as_admin():
                logger.info("Running without admin privileges. Hotkeys may not trigger over elevated windows.")
            self.setup_hotkeys()
            self.power_filter = PowerEventFilter(self)
            QApplication.instance().installNativeEventFilter(self.power_filter)
            self.setup_tray()

        if show_main:
            self.main_window.show()
        self.restore_open_windows()

    # --- Memo windows ---

    def open_memo_window(self, memo_id):
        widget = self.widgets.get(memo_id)
        if widget is not None:
            widget.show_and_raise()
            return widget
        try:
            widget = FloatingMemo(memo_id, self.store)
        except Exception as e:
            logger.error("Failed to open memo window (%s): %s", memo_id, e)
            return None
        widget.closed.connect(self._on_widget_closed)
        self.widgets[memo_id] = widget
        widget.show_and_raise()
        return widget

    def close_memo_window(self, memo_id):
        widget = self.widgets.get(memo_id)
        if widget is not None:
            widget.close()

    def _on_widget_closed(self, memo_id):
        self.widgets.pop(memo_id, None)

    def restore_open_windows(self):
        for memo in self.store.load_memos():
            if memo.window is not None and memo.window.is_open:
                self.open_memo_window(memo.id)

    def create_new_memo(self):
        self.main_window.create_memo()

    def show_main_window(self):
        self.main_window.show_and_raise()

    def bring_to_front(self):
        self.show_main_window()
        for w in list(self.widgets.values()):
            w.show_and_raise()

    def hide_all(self):
        for w in list(self.widgets.values()):
            w.hide()

    # --- Lifecycle ---

    def shutdown(self):
        """Persist open widgets (reopened next start) and flush the store."""
        self.auto_backup.stop()
        for w in list(self.widgets.values()):
            w.persist_open_state = True
            w.close()
        self.store.save_now()
        self.main_window.hide_on_close = False
        self.main_window.close()
        for handle in self.hotkey_handles:
            try:
                keyboard.remove_hotkey(handle)
            except (KeyError, ValueError) as e:
                logger.warning("Failed to remove hotkey: %s", e)
        self.hotkey_handles.clear()
        if self.tray_icon is not None:
            self.tray_icon.hide()

    def quit_app(self):
        """Ensures state is saved before quitting."""
        self.shutdown()
        QApplication.quit()

    # --- Tray ---

    def setup_tray(self):
        self.tray_icon = QSystemTrayIcon()

        icon_path = resource_path(os.path.join("assets", "icon.png"))
        if os.path.exists(icon_path):
            icon = QIcon(icon_path)
        else:
            icon = QApplication.style().standardIcon(QStyle.StandardPixmap.SP_FileIcon)

        self.tray_icon.setIcon(icon)
        self.tray_icon.setToolTip("MyMemo")

        menu = QMenu()
        menu.addAction("📂 메모 목록 열기").triggered.connect(self.show_main_window)
        menu.addAction("➕ 새 메모").triggered.connect(self.create_new_memo)
        menu.addSeparator()
        storage_menu = menu.addMenu("📁 저장 및 백업 관리")
        storage_menu.addAction("📤 현재 데이터 백업").triggered.connect(self.backup_current_data)
        storage_menu.addAction("📁 백업 데이터 불러오기").triggered.connect(self.load_backup_file)
        storage_menu.addAction("📅 정기 백업 설정").triggered.connect(self.show_auto_backup_settings)
        menu.addSeparator()
        menu.addAction("⌨️ 단축키 재등록").triggered.connect(self.setup_hotkeys)
        menu.addSeparator()
        menu.addAction("❌ 종료").triggered.connect(self.quit_app)

        # QSystemTrayIcon does not take ownership of the menu
        self._tray_menu = menu
        self.tray_icon.setContextMenu(menu)
        self.tray_icon.activated.connect(self.on_tray_activated)
        self.tray_icon.show()

    def on_tray_activated(self, reason):
        if reason == QSystemTrayIcon.ActivationReason.Trigger:
            self.show_main_window()

    # --- Hotkeys ---

    def setup_hotkeys(self):
        hotkeys = self.config["hotkeys"]
        try:
            for handle in self.hotkey_handles:
                keyboard.remove_hotkey(handle)
            self.hotkey_handles.clear()

            self.hotkey_handles.append(keyboard.add_hotkey(
                hotkeys["show_all"], lambda: self.hotkey_bridge.show_requested.emit()))
            self.hotkey_handles.append(keyboard.add_hotkey(
                hotkeys["hide_all"], lambda: self.hotkey_bridge.hide_requested.emit()))
            self.hotkey_handles.append(keyboard.add_hotkey(
                hotkeys["new_memo"], lambda: self.hotkey_bridge.new_requested.emit()))
            logger.info("Hotkeys registered successfully.")
        except Exception as e:
            # keyboard needs root on Linux and may reject malformed combos
            logger.error("Hotkey registration failed: %s", e)

    @staticmethod
    def _is_running_as_admin():
        if sys.platform != "win32":
            return True
        try:
            return bool(ctypes.windll.shell32.IsUserAnAdmin())
        except (AttributeError, OSError):
            return False

    # --- Backup & restore ---

    def backup_current_data(self):
        timestamp = datetime.datetime.now().strftime("%Y%m%d%H%M")
        default_path = os.path.join(os.path.dirname(self.store.save_file), f"memo_backup_{timestamp}.json")
        path, _ = QFileDialog.getSaveFileName(None, "데이터 백업 저장", default_path, "JSON (*.json)")
        if not path:
            return
        if self.store.backup_to(path):
            QMessageBox.information(None, "백업 완료", f"데이터가 성공적으로 백업되었습니다:\n{path}")
        else:
            QMessageBox.critical(None, "백업 실패", "데이터 백업 저장에 실패했습니다.")

    def load_backup_file(self):
        path, _ = QFileDialog.getOpenFileName(None, "백업 파일 선택", "", "JSON (*.json)")
        if not path:
            return
        try:
            snapshot_path = self.store.restore_from(path)
        except Exception as e:
            logger.error("Restore failed (%s): %s", path, e)
            QMessageBox.critical(None, "오류", f"백업 파일을 불러오는 중 오류가 발생했습니다:\n{e}")
            return
        if snapshot_path:
            QMessageBox.information(None, "복원 완료", f"복원 전 스냅샷을 저장했습니다:\n{snapshot_path}")
        else:
            QMessageBox.information(None, "복원 완료", "백업 데이터를 불러왔습니다.")

    def show_auto_backup_settings(self):
        dialog = AutoBackupDialog(self.config["auto_backup"])
        if dialog.exec() == QDialog.DialogCode.Accepted:
            self.config["auto_backup"].update(dialog.get_settings())
            if save_config(self.config_file, self.config):
                QMessageBox.information(None, "설정 저장", "정기 백업 설정이 저장되었습니다.")
            else:
                QMessageBox.warning(None, "설정 저장", "설정 파일을 저장하지 못했습니다.")
