from __future__ import annotations

import logging
from collections.abc import Iterable

from screener.config import Settings, get_settings
from screener.core.orchestrator import Extractor, Upload, UploadOrchestrator
from screener.core.state import AppState, SessionState, now_ms, timestamp_id
from screener.db.facade import PersistenceFacade
from screener.errors import AccessDeniedError, AuthError
from screener.llm.gateway import AnalysisGateway
from screener.store.local_cache import LocalCache
from screener.store.tiered import TieredStore
from screener.types import (
    ADMIN_USER_ID,
    CandidateType,
    HistoryRecord,
    Position,
    UploadedFile,
    User,
)

logger = logging.getLogger(__name__)


def default_admin() -> User:
    return User(
        id=ADMIN_USER_ID,
        username="admin",
        password="admin",
        role="admin",
        position="系统管理员",
        created_at=now_ms(),
    )


class ScreenerController:
    """Owns the application state and every operation that mutates it."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        store: TieredStore | None = None,
        gateway: AnalysisGateway | None = None,
        extractor: Extractor | None = None,
    ):
        self.settings = settings or get_settings()
        self.state = AppState()
        self.store = store or TieredStore(
            PersistenceFacade.from_settings(self.settings),
            LocalCache(self.settings.local_cache_path),
            history_limit=self.settings.history_limit,
        )
        self.gateway = gateway or AnalysisGateway(self.settings)
        orchestrator_kwargs = {"extractor": extractor} if extractor is not None else {}
        self.orchestrator = UploadOrchestrator(
            self.state, self.gateway, self.store, settings=self.settings, **orchestrator_kwargs
        )

    def bootstrap(self) -> AppState:
        users = self.store.load_users()
        if not users:
            logger.info("No users found; creating default admin")
            users = self.store.create_user(default_admin())
        self.state.users = users
        self.state.history = self.store.load_history()
        self.state.positions = self.store.load_positions()
        return self.state

    def session(self, session_id: str) -> SessionState:
        """Return the state of one session, restoring its signed-in user after a restart."""
        session = self.state.sessions.get(session_id)
        if session is None:
            session = SessionState(id=session_id, current_user=self.store.session_user(session_id))
            self.state.sessions[session_id] = session
        return session

    def login(self, session: SessionState, username: str, password: str) -> User:
        for user in self.state.users:
            if user.username == username and user.password == password:
                session.current_user = user
                self.store.set_session_user(session.id, user)
                logger.info("User %s logged in", user.username)
                return user
        raise AuthError("用户名或密码错误")

    def logout(self, session: SessionState) -> None:
        session.reset()
        self.store.set_session_user(session.id, None)

    def require_admin(self, session: SessionState) -> User:
        if session.current_user is None:
            raise AuthError("请先登录")
        if session.current_user.role != "admin":
            raise AccessDeniedError("需要管理员权限")
        return session.current_user

    def add_user(self, *, username: str, password: str, position: str = "") -> User:
        username = username.strip()
        if not username or not password.strip():
            raise ValueError("用户名和密码不能为空")
        if any(user.username == username for user in self.state.users):
            raise ValueError("用户名已存在")

        user = User(
            id=timestamp_id(),
            username=username,
            password=password,
            role="member",
            position=position.strip() or "未指定",
            created_at=now_ms(),
        )
        self.state.users = self.store.create_user(user)
        return user

    def delete_user(self, user_id: str) -> None:
        if user_id == ADMIN_USER_ID:
            raise ValueError("不能删除管理员账号")
        if not any(user.id == user_id for user in self.state.users):
            raise ValueError(f"user {user_id} not found")
        self.state.users = self.store.delete_user(user_id)

    def add_position(self, name: str, job_description: str | None = None) -> Position:
        name = name.strip()
        if not name:
            raise ValueError("岗位名称不能为空")
        position = Position(
            id=timestamp_id(),
            name=name,
            created_at=now_ms(),
            job_description=job_description or None,
        )
        self.state.positions = self.store.create_position(position)
        return position

    def update_position(
        self, position_id: str, name: str, job_description: str | None = None
    ) -> Position:
        name = name.strip()
        if not name:
            raise ValueError("岗位名称不能为空")
        existing = self._position(position_id)
        if job_description is None:
            job_description = existing.job_description
        self.state.positions = self.store.update_position(
            position_id, name=name, job_description=job_description or None
        )
        return self._position(position_id)

    def delete_position(self, position_id: str) -> None:
        self._position(position_id)
        self.state.positions = self.store.delete_position(position_id)
        for session in self.state.sessions.values():
            if session.selected_position_id == position_id:
                session.selected_position_id = ""

    def visible_history(self, session: SessionState) -> list[HistoryRecord]:
        """Admins see every record; members see the records assigned to them."""
        user = session.current_user
        if user is None:
            return []
        if user.role == "admin":
            return list(self.state.history)
        return [record for record in self.state.history if record.assigned_to == user.id]

    def transfer_history(self, record_id: str, user_id: str) -> HistoryRecord:
        if not user_id:
            raise ValueError("请选择要流转的用户")
        if not any(user.id == user_id for user in self.state.users):
            raise ValueError(f"user {user_id} not found")
        self._history(record_id)
        self.state.history = self.store.transfer_history(record_id, user_id)
        return self._history(record_id)

    def delete_history(self, record_id: str) -> None:
        self._history(record_id)
        self.state.history = self.store.delete_history(record_id)

    def update_form(
        self,
        session: SessionState,
        *,
        job_description: str | None = None,
        special_requirements: str | None = None,
        candidate_type: CandidateType | None = None,
        selected_position_id: str | None = None,
    ) -> None:
        if job_description is not None:
            session.job_description = job_description
        if selected_position_id is not None:
            if selected_position_id:
                position = self._position(selected_position_id)
                # A saved position description fills an empty form.
                if position.job_description and not session.job_description.strip():
                    session.job_description = position.job_description
            session.selected_position_id = selected_position_id
        if special_requirements is not None:
            session.special_requirements = special_requirements
        if candidate_type is not None:
            session.candidate_type = candidate_type

    def add_files(self, session: SessionState, uploads: Iterable[Upload]) -> list[UploadedFile]:
        return self.orchestrator.add_files(session, uploads)

    def remove_file(self, session: SessionState, file_id: str) -> bool:
        return self.orchestrator.remove_file(session, file_id)

    async def analyze(self, session: SessionState) -> HistoryRecord | None:
        return await self.orchestrator.analyze(session)

    def _position(self, position_id: str) -> Position:
        for position in self.state.positions:
            if position.id == position_id:
                return position
        raise ValueError(f"position {position_id} not found")

    def _history(self, record_id: str) -> HistoryRecord:
        for record in self.state.history:
            if record.id == record_id:
                return record
        raise ValueError(f"history record {record_id} not found")
