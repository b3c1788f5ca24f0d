"""
Scheduled backups of memos.json driven by a cron expression.
"""
import datetime
import logging
import os

from croniter import croniter
from PyQt6.QtWidgets import (QDialog, QVBoxLayout, QHBoxLayout, QPushButton, QLabel,
                             QLineEdit, QSpinBox, QCheckBox, QComboBox, QFileDialog)
from PyQt6.QtCore import QObject, QTimer

logger = logging.getLogger(__name__)

CHECK_INTERVAL_MS = 60000
BACKUP_PREFIX = "memos_"

CRON_PRESETS = [
    ("사용자 직접 입력", None),
    ("30분에 한번 (*/30 * * * *)", "*/30 * * * *"),
    ("2시간에 한번 (0 */2 * * *)", "0 */2 * * *"),
    ("매일 자정 (0 0 * * *)", "0 0 * * *"),
    ("매주 금요일 자정 (0 0 * * 5)", "0 0 * * 5"),
    ("매달 1일 자정 (0 0 1 * *)", "0 0 1 * *"),
]


def is_due(cron_expr, last_check, now):
    """True if any minute in (last_check, now] matches the cron expression."""
    if not croniter.is_valid(cron_expr):
        return False
    if last_check is None or last_check > now:
        last_check = now - datetime.timedelta(minutes=1)
    probe = last_check + datetime.timedelta(minutes=1)
    while probe <= now:
        if croniter.match(cron_expr, probe):
            return True
        probe += datetime.timedelta(minutes=1)
    return False


def next_run_times(cron_expr, count=5, start=None):
    it = croniter(cron_expr, start or datetime.datetime.now())
    return [it.get_next(datetime.datetime) for _ in range(count)]


def rotate_backups(folder, max_count):
    """Delete the oldest backups so that at most ``max_count`` remain."""
    removed = []
    try:
        max_count = max(1, int(max_count))
        files = [os.path.join(folder, f) for f in os.listdir(folder)
                 if f.startswith(BACKUP_PREFIX) and f.endswith(".json")]
        files.sort(key=os.path.getmtime)
        while len(files) > max_count:
            old_file = files.pop(0)
            os.remove(old_file)
            removed.append(old_file)
            logger.info("Rotation: deleted old backup %s", old_file)
    except OSError as e:
        logger.error("Backup rotation failed (%s): %s", folder, e)
    return removed


class AutoBackup(QObject):
    """
    Checks once a minute whether the configured schedule is due and, if so,
    writes a timestamped snapshot through the store and rotates old files.
    """

    def __init__(self, store, config, parent=None):
        super().__init__(parent)
        self.store = store
        self.config = config
        self._last_backup_time = None
        self._last_schedule_check = datetime.datetime.now().replace(second=0, microsecond=0)

        self.check_timer = QTimer(self)
        self.check_timer.timeout.connect(self.check_scheduled_backup)

    def start(self):
        self.check_timer.start(CHECK_INTERVAL_MS)

    def stop(self):
        self.check_timer.stop()

    def check_scheduled_backup(self, now=None):
        now = (now or datetime.datetime.now()).replace(second=0, microsecond=0)
        last_check = self._last_schedule_check
        self._last_schedule_check = now

        if not self.config.get("enabled", False):
            return None
        # At most one backup per minute
        if self._last_backup_time == now:
            return None
        if not is_due(self.config.get("cron", ""), last_check, now):
            return None

        path = self.perform_backup(now)
        if path:
            self._last_backup_time = now
        return path

    def perform_backup(self, now=None):
        folder = self.config.get("folder")
        try:
            os.makedirs(folder, exist_ok=True)
        except (OSError, TypeError) as e:
            logger.error("Auto backup folder create failed (%s): %s", folder, e)
            return None

        timestamp = (now or datetime.datetime.now()).strftime("%Y%m%d%H%M")
        save_path = os.path.join(folder, f"{BACKUP_PREFIX}{timestamp}.json")
        if not self.store.backup_to(save_path):
            return None
        logger.info("Auto backup written: %s", save_path)
        rotate_backups(folder, self.config.get("retention", 5))
        return save_path


class AutoBackupDialog(QDialog):
    def __init__(self, config, parent=None):
        super().__init__(parent)
        self.config = dict(config)
        self.initUI()

    def initUI(self):
        self.setWindowTitle("📅 정기 백업 설정")
        self.setMinimumWidth(420)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(20, 16, 20, 16)
        layout.setSpacing(10)

        self.enabled_cb = QCheckBox("자동 백업 기능 활성화")
        self.enabled_cb.setChecked(self.config.get("enabled", False))
        layout.addWidget(self.enabled_cb)

        layout.addWidget(QLabel("백업 폴더 위치"))
        folder_row = QHBoxLayout()
        self.folder_edit = QLineEdit(os.path.normpath(self.config.get("folder") or ""))
        self.folder_edit.setReadOnly(True)
        folder_btn = QPushButton("변경")
        folder_btn.clicked.connect(self.select_folder)
        folder_row.addWidget(self.folder_edit)
        folder_row.addWidget(folder_btn)
        layout.addLayout(folder_row)

        layout.addWidget(QLabel("백업 주기 설정 (Cron 식)"))
        self.cron_preset = QComboBox()
        self.cron_preset.addItems([label for label, _ in CRON_PRESETS])
        self.cron_preset.currentIndexChanged.connect(self.on_preset_changed)
        layout.addWidget(self.cron_preset)

        self.cron_edit = QLineEdit(self.config.get("cron", "0 * * * *"))
        self.cron_edit.setPlaceholderText("* * * * *")
        self.cron_edit.textChanged.connect(self.validate_cron)
        layout.addWidget(self.cron_edit)

        layout.addWidget(QLabel("다음 실행 예정 (최대 5개):"))
        self.next_times_text = QLabel("-")
        layout.addWidget(self.next_times_text)

        layout.addWidget(QLabel("보관할 백업 파일 개수"))
        self.retention_spin = QSpinBox()
        self.retention_spin.setRange(1, 100)
        self.retention_spin.setSuffix(" 개")
        self.retention_spin.setValue(self.config.get("retention", 5))
        layout.addWidget(self.retention_spin)

        buttons = QHBoxLayout()
        buttons.addStretch()
        cancel_btn = QPushButton("취소")
        cancel_btn.clicked.connect(self.reject)
        self.save_btn = QPushButton("설정 저장")
        self.save_btn.clicked.connect(self.accept)
        buttons.addWidget(cancel_btn)
        buttons.addWidget(self.save_btn)
        layout.addLayout(buttons)

        self.validate_cron()

    def select_folder(self):
        folder = QFileDialog.getExistingDirectory(self, "백업 폴더 선택", self.folder_edit.text())
        if folder:
            self.folder_edit.setText(os.path.normpath(folder))

    def on_preset_changed(self, index):
        expr = CRON_PRESETS[index][1]
        if expr:
            self.cron_edit.setText(expr)

    def validate_cron(self):
        expr = self.cron_edit.text()
        if croniter.is_valid(expr):
            times = next_run_times(expr)
            self.next_times_text.setText("\n".join(t.strftime("%Y-%m-%d %H:%M") for t in times))
            self.next_times_text.setStyleSheet("color: #1a73e8; font-size: 12px;")
            self.save_btn.setEnabled(True)
            return True
        self.next_times_text.setText("잘못된 크론 식입니다.")
        self.next_times_text.setStyleSheet("color: #d93025; font-size: 12px;")
        self.save_btn.setEnabled(False)
        return False

    def get_settings(self):
        return {
            "enabled": self.enabled_cb.isChecked(),
            "cron": self.cron_edit.text(),
            "folder": self.folder_edit.text(),
            "retention": self.retention_spin.value(),
        }
