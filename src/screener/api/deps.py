from __future__ import annotations

from fastapi import Request

from screener.core.controller import ScreenerController
from screener.core.state import SessionState
from screener.db.facade import PersistenceFacade

SESSION_COOKIE = "screener_session"


def get_controller(request: Request) -> ScreenerController:
    return request.app.state.controller


def get_facade(request: Request) -> PersistenceFacade:
    return request.app.state.controller.store.remote


def get_session(request: Request) -> SessionState:
    return request.app.state.controller.session(request.state.session_id)
