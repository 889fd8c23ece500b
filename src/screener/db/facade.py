from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any, TypeVar

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from screener.config import Settings
from screener.db.base import Base
from screener.db.models import HistoryRecordRow, PositionRow, UserRow
from screener.db.repositories import Repository
from screener.db.session import build_session_factory
from screener.errors import PersistenceError
from screener.types import ADMIN_USER_ID, HistoryEntry, HistoryRecord, Position, User

logger = logging.getLogger(__name__)

T = TypeVar("T")

SUCCESS: dict[str, bool] = {"success": True}


class PersistenceFacade:
    """CRUD over users, positions and history records.

    With no database configured, reads return empty collections and writes
    report success without effect, so callers fall back to their local cache.
    The admin account can be neither deleted nor demoted, configured or not.
    Store failures surface as PersistenceError.
    """

    def __init__(self, session_factory: sessionmaker[Session] | None, *, history_limit: int = 50):
        self.session_factory = session_factory
        self.history_limit = history_limit

    @classmethod
    def from_settings(cls, settings: Settings) -> PersistenceFacade:
        return cls(build_session_factory(settings), history_limit=settings.history_limit)

    @property
    def configured(self) -> bool:
        return self.session_factory is not None

    def create_schema(self) -> None:
        if self.session_factory is None:
            return
        Base.metadata.create_all(bind=self.session_factory.kw["bind"])

    def list_users(self) -> list[User]:
        if not self.configured:
            return []
        return self._run("list users", lambda repo: [user_from_row(row) for row in repo.list_users()])

    def create_user(self, user: User) -> dict[str, bool]:
        if user.id == ADMIN_USER_ID and user.role != "admin":
            raise ValueError("管理员账号必须保留管理员角色")
        if self.configured:
            self._run("create user", lambda repo: repo.create_user(**user_to_row(user)))
        return dict(SUCCESS)

    def delete_user(self, user_id: str) -> dict[str, bool]:
        if user_id == ADMIN_USER_ID:
            raise ValueError("不能删除管理员账号")
        if self.configured:
            self._run("delete user", lambda repo: repo.delete_user(user_id))
        return dict(SUCCESS)

    def list_positions(self) -> list[Position]:
        if not self.configured:
            return []
        return self._run(
            "list positions", lambda repo: [position_from_row(row) for row in repo.list_positions()]
        )

    def create_position(self, position: Position) -> dict[str, bool]:
        if self.configured:
            self._run("create position", lambda repo: repo.create_position(**position_to_row(position)))
        return dict(SUCCESS)

    def update_position(
        self, position_id: str, *, name: str, job_description: str | None = None
    ) -> dict[str, bool]:
        if self.configured:
            self._run(
                "update position",
                lambda repo: repo.update_position(
                    position_id, name=name, job_description=job_description or None
                ),
            )
        return dict(SUCCESS)

    def delete_position(self, position_id: str) -> dict[str, bool]:
        if self.configured:
            self._run("delete position", lambda repo: repo.delete_position(position_id))
        return dict(SUCCESS)

    def list_history(self) -> list[HistoryRecord]:
        if not self.configured:
            return []
        return self._run(
            "list history",
            lambda repo: [history_from_row(row) for row in repo.list_history(self.history_limit)],
        )

    def create_history(self, record: HistoryRecord) -> dict[str, bool]:
        if self.configured:
            self._run("create history", lambda repo: repo.create_history(**history_to_row(record)))
        return dict(SUCCESS)

    def update_history(self, record_id: str, *, assigned_to: str | None) -> dict[str, bool]:
        if self.configured:
            self._run("transfer history", lambda repo: repo.assign_history(record_id, assigned_to))
        return dict(SUCCESS)

    def delete_history(self, record_id: str) -> dict[str, bool]:
        if self.configured:
            self._run("delete history", lambda repo: repo.delete_history(record_id))
        return dict(SUCCESS)

    def fix_dates(self) -> dict[str, Any]:
        if not self.configured:
            raise PersistenceError("Database not configured")

        def _repair(repo: Repository) -> dict[str, Any]:
            before = repo.snapshot_created_at()
            repo.repair_created_at(int(time.time() * 1000))
            after = repo.snapshot_created_at()
            return {"message": "Date fields checked and fixed", "before": before, "after": after}

        return self._run("fix dates", _repair)

    def _run(self, action: str, fn: Callable[[Repository], T]) -> T:
        assert self.session_factory is not None
        with self.session_factory() as db:
            try:
                return fn(Repository(db))
            except (SQLAlchemyError, ValidationError) as exc:
                db.rollback()
                logger.warning("Store operation failed action=%s error=%s", action, exc)
                raise PersistenceError(str(exc)) from exc


def user_from_row(row: UserRow) -> User:
    return User(
        id=row.id,
        username=row.username,
        password=row.password,
        role=row.role,
        position=row.position,
        created_at=row.created_at or 0,
    )


def user_to_row(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "username": user.username,
        "password": user.password,
        "role": user.role,
        "position": user.position,
        "created_at": user.created_at,
    }


def position_from_row(row: PositionRow) -> Position:
    return Position(
        id=row.id,
        name=row.name,
        created_at=row.created_at or 0,
        job_description=row.job_description,
    )


def position_to_row(position: Position) -> dict[str, Any]:
    return {
        "id": position.id,
        "name": position.name,
        "job_description": position.job_description or None,
        "created_at": position.created_at,
    }


def history_from_row(row: HistoryRecordRow) -> HistoryRecord:
    return HistoryRecord(
        id=row.id,
        timestamp=row.timestamp,
        position_name=row.position_name,
        job_description=row.job_description,
        special_requirements=row.special_requirements or "",
        results=[HistoryEntry.model_validate(item) for item in row.results or []],
        assigned_to=row.assigned_to,
        created_by=row.created_by,
    )


def history_to_row(record: HistoryRecord) -> dict[str, Any]:
    return {
        "id": record.id,
        "timestamp": record.timestamp,
        "position_name": record.position_name,
        "job_description": record.job_description,
        "special_requirements": record.special_requirements or "",
        "results": [entry.to_wire() for entry in record.results],
        "assigned_to": record.assigned_to,
        "created_by": record.created_by,
    }
