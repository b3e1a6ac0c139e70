from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from dateutil import parser as dt_parser


NOTICE_OK = "ok"
NOTICE_ERROR = "err"


def _parse_time(value) -> datetime | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return dt_parser.isoparse(str(value))
    except (ValueError, OverflowError):
        return None


@dataclass(frozen=True)
class Bookmark:
    id: str
    user_id: str
    title: str
    url: str
    created_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict) -> Bookmark:
        return cls(
            id=str(data["id"]),
            user_id=str(data.get("user_id") or ""),
            title=data.get("title") or "",
            url=data.get("url") or "",
            created_at=_parse_time(data.get("created_at")),
        )


@dataclass(frozen=True)
class ChangeEvent:
    cursor: int
    table: str
    action: str
    user_id: str | None = None
    entity_id: str | None = None
    payload: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> ChangeEvent:
        return cls(
            cursor=int(data.get("cursor") or 0),
            table=data.get("table") or "",
            action=data.get("action") or "",
            user_id=data.get("user_id"),
            entity_id=data.get("entity_id"),
            payload=data.get("payload") or {},
        )


@dataclass(frozen=True)
class Notice:
    kind: str
    text: str

    @property
    def is_error(self) -> bool:
        return self.kind == NOTICE_ERROR
