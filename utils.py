import datetime
import json
import logging
import os
import sys
import tempfile
import time

logger = logging.getLogger(__name__)


def resource_path(relative_path):
    """Get absolute path to resource, works for dev and for PyInstaller."""
    base_path = getattr(sys, "_MEIPASS", os.path.dirname(os.path.abspath(__file__)))
    return os.path.join(base_path, relative_path)


def now_millis():
    return int(time.time() * 1000)


def format_time(timestamp, now=None):
    """Relative time label for a memo card (epoch millis)."""
    if now is None:
        now = now_millis()
    diff = now - timestamp
    if diff < 60000:
        return "방금 전"
    if diff < 3600000:
        return f"{diff // 60000}분 전"
    if diff < 86400000:
        return f"{diff // 3600000}시간 전"
    d = datetime.datetime.fromtimestamp(timestamp / 1000)
    return f"{d.year}. {d.month}. {d.day}."


def read_json_file(path, default=None):
    if default is None:
        default = {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        return default
    except Exception as e:
        logger.error("JSON read failed (%s): %s", path, e)
        return default


def write_json_atomic(path, data):
    directory = os.path.dirname(path) or "."
    tmp_path = None
    try:
        os.makedirs(directory, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(prefix=".mymemo_", suffix=".tmp", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=4)
                f.flush()
                os.fsync(f.fileno())
        except Exception:
            # os.fdopen may have failed before taking ownership of fd.
            try:
                os.close(fd)
            except OSError:
                pass
            raise

        os.replace(tmp_path, path)
        return True
    except Exception as e:
        logger.error("Atomic write failed (%s): %s", path, e)
        if tmp_path and os.path.exists(tmp_path):
            try:
                os.remove(tmp_path)
            except OSError:
                pass
        return False
