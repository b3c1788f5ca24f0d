"""Tests for configuration loading."""

import json
import os
from pathlib import Path

from config import load_config, save_config, storage_file


class TestConfig:
    def test_defaults(self, tmp_path: Path):
        config = load_config(str(tmp_path / "config.json"))
        assert config["storage_path"] is None
        assert config["auto_backup"]["enabled"] is False
        assert config["auto_backup"]["cron"] == "0 * * * *"
        assert config["auto_backup"]["folder"] == os.path.normpath(str(tmp_path / "backups"))
        assert config["hotkeys"]["new_memo"] == "ctrl+alt+n"

    def test_file_overrides(self, tmp_path: Path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "auto_backup": {"enabled": True, "cron": "*/30 * * * *", "retention": 3},
            "hotkeys": {"show_all": "ctrl+shift+m"},
        }), encoding="utf-8")
        config = load_config(str(path))
        assert config["auto_backup"]["enabled"] is True
        assert config["auto_backup"]["cron"] == "*/30 * * * *"
        assert config["auto_backup"]["retention"] == 3
        assert config["hotkeys"]["show_all"] == "ctrl+shift+m"
        assert config["hotkeys"]["hide_all"] == "ctrl+alt+page down"

    def test_retention_clamped(self, tmp_path: Path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"auto_backup": {"retention": 500}}), encoding="utf-8")
        assert load_config(str(path))["auto_backup"]["retention"] == 100

        path.write_text(json.dumps({"auto_backup": {"retention": "many"}}), encoding="utf-8")
        assert load_config(str(path))["auto_backup"]["retention"] == 5

    def test_corrupt_file_uses_defaults(self, tmp_path: Path):
        path = tmp_path / "config.json"
        path.write_text("[1, 2", encoding="utf-8")
        assert load_config(str(path))["auto_backup"]["retention"] == 5

    def test_storage_path_requires_existing_parent(self, tmp_path: Path):
        path = tmp_path / "config.json"
        good = tmp_path / "custom.json"
        path.write_text(json.dumps({"storage_path": str(good)}), encoding="utf-8")
        config = load_config(str(path))
        assert storage_file(config, str(tmp_path)) == str(good)

        path.write_text(json.dumps({"storage_path": str(tmp_path / "missing" / "x.json")}), encoding="utf-8")
        config = load_config(str(path))
        assert storage_file(config, str(tmp_path)) == os.path.join(str(tmp_path), "memos.json")

    def test_save_round_trip(self, tmp_path: Path):
        path = tmp_path / "config.json"
        config = load_config(str(path))
        config["auto_backup"]["enabled"] = True
        assert save_config(str(path), config)
        assert load_config(str(path))["auto_backup"]["enabled"] is True
