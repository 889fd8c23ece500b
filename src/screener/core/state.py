from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field, replace
from typing import Any

from screener.types import CandidateType, HistoryRecord, Position, UploadedFile, User

_LAST_ID = 0


def now_ms() -> int:
    return int(time.time() * 1000)


def timestamp_id() -> str:
    """Epoch-millisecond id, bumped when two ids land in the same millisecond."""
    global _LAST_ID
    value = max(now_ms(), _LAST_ID + 1)
    _LAST_ID = value
    return str(value)


def file_id() -> str:
    return uuid.uuid4().hex[:7]


def session_id() -> str:
    return uuid.uuid4().hex


@dataclass
class SessionState:
    """What one browser (or one CLI run) is doing: who is signed in, its uploads and form."""

    id: str
    current_user: User | None = None
    # Insertion order is display order.
    files: dict[str, UploadedFile] = field(default_factory=dict)
    job_description: str = ""
    special_requirements: str = ""
    selected_position_id: str = ""
    candidate_type: CandidateType = "experienced"
    is_analyzing: bool = False
    error: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.current_user is not None

    @property
    def is_admin(self) -> bool:
        return self.current_user is not None and self.current_user.role == "admin"

    def file_list(self) -> list[UploadedFile]:
        return list(self.files.values())

    def update_file(self, file_id: str, **changes: Any) -> UploadedFile | None:
        """Replace one file entry by id. Returns None if it was removed meanwhile."""
        current = self.files.get(file_id)
        if current is None:
            return None
        updated = replace(current, **changes)
        self.files[file_id] = updated
        return updated

    def reset(self) -> None:
        self.current_user = None
        self.files.clear()
        self.job_description = ""
        self.special_requirements = ""
        self.selected_position_id = ""
        self.candidate_type = "experienced"
        self.error = None


@dataclass
class AppState:
    """Data every session sees."""

    users: list[User] = field(default_factory=list)
    positions: list[Position] = field(default_factory=list)
    history: list[HistoryRecord] = field(default_factory=list)
    sessions: dict[str, SessionState] = field(default_factory=dict)

    def position_name(self, position_id: str) -> str | None:
        for position in self.positions:
            if position.id == position_id:
                return position.name
        return None
