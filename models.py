"""
Memo records, window placement and change events.

Field names follow Python conventions; ``to_dict``/``from_dict`` handle the
camelCase keys used in memos.json.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace

from colors import DEFAULT_COLOR
from utils import now_millis


@dataclass
class WindowState:
    is_open: bool = False
    x: float = 0
    y: float = 0
    width: float = 300
    height: float = 350
    always_on_top: bool = False

    def to_dict(self) -> dict:
        return {
            "isOpen": self.is_open,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "alwaysOnTop": self.always_on_top,
        }

    @classmethod
    def from_dict(cls, data: dict) -> WindowState:
        return cls(
            is_open=bool(data.get("isOpen", False)),
            x=data.get("x", 0),
            y=data.get("y", 0),
            width=data.get("width", 300),
            height=data.get("height", 350),
            always_on_top=bool(data.get("alwaysOnTop", False)),
        )


@dataclass
class Memo:
    id: str
    title: str = ""
    content: str = ""
    color: str = DEFAULT_COLOR
    updated_at: int = field(default_factory=now_millis)
    window: WindowState | None = None

    def copy(self) -> Memo:
        return replace(self, window=replace(self.window) if self.window else None)

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "color": self.color,
            "updatedAt": self.updated_at,
        }
        if self.window is not None:
            data["window"] = self.window.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> Memo:
        if not isinstance(data, dict) or not data.get("id"):
            raise ValueError(f"Invalid memo record: {data!r}")
        window = data.get("window")
        return cls(
            id=str(data["id"]),
            title=str(data.get("title") or ""),
            content=str(data.get("content") or ""),
            color=str(data.get("color") or DEFAULT_COLOR),
            updated_at=int(data.get("updatedAt", 0) or 0),
            window=WindowState.from_dict(window) if isinstance(window, dict) else None,
        )


@dataclass
class MemoEvent:
    """Change notification broadcast to every window after a store mutation."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    RELOADED = "reloaded"

    type: str
    memo: Memo | None = None
    id: str | None = None
    memos: list[Memo] = field(default_factory=list)

    @classmethod
    def created(cls, memo: Memo) -> MemoEvent:
        return cls(cls.CREATED, memo=memo)

    @classmethod
    def updated(cls, memo: Memo) -> MemoEvent:
        return cls(cls.UPDATED, memo=memo)

    @classmethod
    def deleted(cls, memo_id: str) -> MemoEvent:
        return cls(cls.DELETED, id=memo_id)

    @classmethod
    def reloaded(cls, memos: list[Memo]) -> MemoEvent:
        return cls(cls.RELOADED, memos=list(memos))

    @property
    def memo_id(self) -> str | None:
        """Id of the memo this event concerns, for single-memo events."""
        if self.memo is not None:
            return self.memo.id
        return self.id

    def to_dict(self) -> dict:
        if self.type in (self.CREATED, self.UPDATED):
            return {"type": self.type, "memo": self.memo.to_dict()}
        if self.type == self.DELETED:
            return {"type": self.type, "id": self.id}
        return {"type": self.type, "memos": [m.to_dict() for m in self.memos]}
