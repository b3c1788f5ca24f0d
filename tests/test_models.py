"""Tests for memo records, change events and the color table."""

import pytest

from colors import COLORS, get_color_style
from models import Memo, MemoEvent, WindowState
from utils import format_time


class TestColors:
    def test_seven_colors_in_order(self):
        assert [c.id for c in COLORS] == ["yellow", "green", "blue", "purple", "pink", "gray", "dark"]

    def test_known_color(self):
        style = get_color_style("dark")
        assert style.bg == "#1f2937"
        assert style.text == "#f3f4f6"

    @pytest.mark.parametrize("color_id", ["magenta", "", None])
    def test_unknown_color_falls_back_to_first(self, color_id):
        assert get_color_style(color_id) is COLORS[0]


class TestMemoSerialization:
    def test_camel_case_keys(self):
        memo = Memo(id="a", title="t", content="c", color="blue", updated_at=123,
                    window=WindowState(is_open=True, x=10, y=20, width=300, height=350, always_on_top=True))
        data = memo.to_dict()
        assert data["updatedAt"] == 123
        assert data["window"] == {
            "isOpen": True, "x": 10, "y": 20, "width": 300, "height": 350, "alwaysOnTop": True,
        }

    def test_window_omitted_when_absent(self):
        assert "window" not in Memo(id="a").to_dict()

    def test_from_dict_defaults(self):
        memo = Memo.from_dict({"id": "a", "color": ""})
        assert memo.title == ""
        assert memo.color == "yellow"
        assert memo.window is None

    def test_from_dict_null_text_fields(self):
        memo = Memo.from_dict({"id": "a", "title": None, "content": None})
        assert memo.title == ""
        assert memo.content == ""

    def test_from_dict_requires_id(self):
        with pytest.raises(ValueError):
            Memo.from_dict({"title": "no id"})

    def test_copy_is_independent(self):
        memo = Memo(id="a", window=WindowState(x=1))
        clone = memo.copy()
        clone.window.x = 99
        clone.title = "changed"
        assert memo.window.x == 1
        assert memo.title == ""


class TestMemoEvent:
    def test_deleted_wire_shape(self):
        assert MemoEvent.deleted("a").to_dict() == {"type": "deleted", "id": "a"}

    def test_updated_wire_shape(self):
        event = MemoEvent.updated(Memo(id="a", updated_at=5))
        assert event.to_dict()["type"] == "updated"
        assert event.to_dict()["memo"]["id"] == "a"
        assert event.memo_id == "a"

    def test_reloaded_wire_shape(self):
        event = MemoEvent.reloaded([Memo(id="a"), Memo(id="b")])
        assert [m["id"] for m in event.to_dict()["memos"]] == ["a", "b"]


class TestFormatTime:
    NOW = 1_700_000_000_000

    def test_just_now(self):
        assert format_time(self.NOW - 59_000, now=self.NOW) == "방금 전"

    def test_minutes(self):
        assert format_time(self.NOW - 5 * 60_000, now=self.NOW) == "5분 전"

    def test_hours(self):
        assert format_time(self.NOW - 3 * 3_600_000, now=self.NOW) == "3시간 전"

    def test_older_shows_date(self):
        label = format_time(self.NOW - 3 * 86_400_000, now=self.NOW)
        assert label.endswith(".")
        assert "분" not in label and "시간" not in label
