"""
Application configuration stored as config.json in the per-user data directory.
"""
import copy
import logging
import os

from PyQt6.QtCore import QStandardPaths

from utils import read_json_file, write_json_atomic

logger = logging.getLogger(__name__)

APP_DIR_NAME = "mymemo"
STORAGE_FILE_NAME = "memos.json"
CONFIG_FILE_NAME = "config.json"

DEFAULT_CONFIG = {
    "storage_path": None,
    "auto_backup": {
        "enabled": False,
        "cron": "0 * * * *",  # every hour
        "folder": None,       # resolved to <data dir>/backups
        "retention": 5,
    },
    "hotkeys": {
        "show_all": "ctrl+alt+page up",
        "hide_all": "ctrl+alt+page down",
        "new_memo": "ctrl+alt+n",
    },
}


def default_data_dir():
    """%LOCALAPPDATA%/mymemo on Windows, ~/.local/share/mymemo on Linux."""
    base = QStandardPaths.writableLocation(QStandardPaths.StandardLocation.GenericDataLocation)
    if not base:
        base = os.path.abspath(".")
    path = os.path.join(base, APP_DIR_NAME)
    os.makedirs(path, exist_ok=True)
    return path


def load_config(path, data_dir=None):
    """Merge config.json over the defaults, dropping values of the wrong shape."""
    data_dir = data_dir or os.path.dirname(path)
    config = copy.deepcopy(DEFAULT_CONFIG)
    config["auto_backup"]["folder"] = os.path.normpath(os.path.join(data_dir, "backups"))

    raw = read_json_file(path, default={})
    if not isinstance(raw, dict):
        logger.warning("Ignoring malformed config (%s)", path)
        return config

    storage_path = raw.get("storage_path")
    if storage_path and os.path.isdir(os.path.dirname(str(storage_path))):
        config["storage_path"] = str(storage_path)

    backup = raw.get("auto_backup")
    if isinstance(backup, dict):
        target = config["auto_backup"]
        target["enabled"] = bool(backup.get("enabled", target["enabled"]))
        target["cron"] = str(backup.get("cron", target["cron"]))
        folder = backup.get("folder")
        if folder:
            target["folder"] = os.path.normpath(str(folder))
        try:
            retention = int(backup.get("retention", target["retention"]))
        except (TypeError, ValueError):
            retention = target["retention"]
        target["retention"] = max(1, min(100, retention))

    hotkeys = raw.get("hotkeys")
    if isinstance(hotkeys, dict):
        for name in config["hotkeys"]:
            value = hotkeys.get(name)
            if isinstance(value, str) and value.strip():
                config["hotkeys"][name] = value.strip()

    return config


def save_config(path, config):
    return write_json_atomic(path, config)


def storage_file(config, data_dir):
    return config.get("storage_path") or os.path.join(data_dir, STORAGE_FILE_NAME)
