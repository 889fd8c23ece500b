from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from screener.db.facade import PersistenceFacade
from screener.errors import PersistenceError
from screener.store.local_cache import (
    HISTORY_KEY,
    POSITIONS_KEY,
    SESSION_USERS_KEY,
    USERS_KEY,
    LocalCache,
)
from screener.types import HistoryRecord, Position, User

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class TieredStore:
    """Remote store in front of a local cache.

    Reads: when the remote is configured and answers, its data wins and is
    copied into the local tier; otherwise the local tier is authoritative.
    Writes go to both tiers. Remote failures are logged and absorbed.
    """

    def __init__(self, remote: PersistenceFacade, local: LocalCache, *, history_limit: int = 50):
        self.remote = remote
        self.local = local
        self.history_limit = history_limit

    def load_users(self) -> list[User]:
        return self._load(USERS_KEY, User, self.remote.list_users)

    def load_positions(self) -> list[Position]:
        return self._load(POSITIONS_KEY, Position, self.remote.list_positions)

    def load_history(self) -> list[HistoryRecord]:
        return self._load(HISTORY_KEY, HistoryRecord, self.remote.list_history)

    def create_user(self, user: User) -> list[User]:
        self._write_remote("create user", lambda: self.remote.create_user(user))
        users = [*self._local_list(USERS_KEY, User), user]
        self._store_local(USERS_KEY, users)
        return users

    def delete_user(self, user_id: str) -> list[User]:
        self._write_remote("delete user", lambda: self.remote.delete_user(user_id))
        users = [user for user in self._local_list(USERS_KEY, User) if user.id != user_id]
        self._store_local(USERS_KEY, users)
        return users

    def create_position(self, position: Position) -> list[Position]:
        self._write_remote("create position", lambda: self.remote.create_position(position))
        positions = [*self._local_list(POSITIONS_KEY, Position), position]
        self._store_local(POSITIONS_KEY, positions)
        return positions

    def update_position(self, position_id: str, *, name: str, job_description: str | None) -> list[Position]:
        self._write_remote(
            "update position",
            lambda: self.remote.update_position(position_id, name=name, job_description=job_description),
        )
        positions = [
            position.model_copy(update={"name": name, "job_description": job_description})
            if position.id == position_id
            else position
            for position in self._local_list(POSITIONS_KEY, Position)
        ]
        self._store_local(POSITIONS_KEY, positions)
        return positions

    def delete_position(self, position_id: str) -> list[Position]:
        self._write_remote("delete position", lambda: self.remote.delete_position(position_id))
        positions = [p for p in self._local_list(POSITIONS_KEY, Position) if p.id != position_id]
        self._store_local(POSITIONS_KEY, positions)
        return positions

    def create_history(self, record: HistoryRecord) -> list[HistoryRecord]:
        self._write_remote("create history", lambda: self.remote.create_history(record))
        history = [record, *self._local_list(HISTORY_KEY, HistoryRecord)][: self.history_limit]
        self._store_local(HISTORY_KEY, history)
        return history

    def transfer_history(self, record_id: str, assigned_to: str) -> list[HistoryRecord]:
        self._write_remote(
            "transfer history",
            lambda: self.remote.update_history(record_id, assigned_to=assigned_to),
        )
        history = [
            record.model_copy(update={"assigned_to": assigned_to}) if record.id == record_id else record
            for record in self._local_list(HISTORY_KEY, HistoryRecord)
        ]
        self._store_local(HISTORY_KEY, history)
        return history

    def delete_history(self, record_id: str) -> list[HistoryRecord]:
        self._write_remote("delete history", lambda: self.remote.delete_history(record_id))
        history = [r for r in self._local_list(HISTORY_KEY, HistoryRecord) if r.id != record_id]
        self._store_local(HISTORY_KEY, history)
        return history

    def session_user(self, session_id: str) -> User | None:
        sessions = self.local.get(SESSION_USERS_KEY)
        raw = sessions.get(session_id) if isinstance(sessions, dict) else None
        if not raw:
            return None
        try:
            return User.model_validate(raw)
        except ValidationError:
            logger.warning("Discarding malformed cached user for session %s", session_id)
            self.set_session_user(session_id, None)
            return None

    def set_session_user(self, session_id: str, user: User | None) -> None:
        sessions = self.local.get(SESSION_USERS_KEY)
        sessions = dict(sessions) if isinstance(sessions, dict) else {}
        if user is None:
            if sessions.pop(session_id, None) is None:
                return
        else:
            sessions[session_id] = user.to_wire()
        self.local.set(SESSION_USERS_KEY, sessions)

    def _load(self, key: str, model: type[M], fetch: Callable[[], list[M]]) -> list[M]:
        if self.remote.configured:
            try:
                items = fetch()
            except PersistenceError as exc:
                logger.warning("Remote read failed for %s, using local cache: %s", key, exc)
            else:
                self._store_local(key, items)
                return items
        return self._local_list(key, model)

    def _local_list(self, key: str, model: type[M]) -> list[M]:
        items: list[M] = []
        for raw in self.local.get(key) or []:
            try:
                items.append(model.model_validate(raw))
            except ValidationError:
                logger.warning("Skipping malformed cached entry under %s", key)
        return items

    def _store_local(self, key: str, items: list[Any]) -> None:
        self.local.set(key, [item.to_wire() for item in items])

    def _write_remote(self, action: str, fn: Callable[[], Any]) -> bool:
        try:
            fn()
        except PersistenceError as exc:
            logger.warning("Remote %s failed, kept in local cache only: %s", action, exc)
            return False
        return True
