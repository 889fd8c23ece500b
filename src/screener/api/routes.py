from __future__ import annotations

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile

from screener.api.deps import get_controller, get_facade, get_session
from screener.api.schemas import (
    AnalyzeBatchResponse,
    AnalyzeRequest,
    FormUpdateRequest,
    HistoryUpdateRequest,
    LoginRequest,
    PositionUpdateRequest,
    SessionResponse,
    StatusResponse,
    SuccessResponse,
)
from screener.core.controller import ScreenerController
from screener.core.orchestrator import Upload
from screener.core.state import SessionState, now_ms
from screener.db.facade import PersistenceFacade
from screener.types import HistoryRecord, Position, User

router = APIRouter(prefix="/api", tags=["api"])


@router.post("/analyze")
async def analyze(
    payload: AnalyzeRequest,
    controller: ScreenerController = Depends(get_controller),
) -> dict:
    return await controller.gateway.forward(payload.messages, temperature=payload.temperature)


@router.get("/users", response_model=list[User])
def list_users(facade: PersistenceFacade = Depends(get_facade)) -> list[User]:
    return facade.list_users()


@router.post("/users", response_model=SuccessResponse, status_code=201)
def create_user(payload: User, facade: PersistenceFacade = Depends(get_facade)) -> dict:
    return facade.create_user(payload)


@router.delete("/users", response_model=SuccessResponse)
def delete_user(id: str = Query(...), facade: PersistenceFacade = Depends(get_facade)) -> dict:
    return facade.delete_user(id)


@router.get("/positions", response_model=list[Position])
def list_positions(facade: PersistenceFacade = Depends(get_facade)) -> list[Position]:
    return facade.list_positions()


@router.post("/positions", response_model=SuccessResponse, status_code=201)
def create_position(payload: Position, facade: PersistenceFacade = Depends(get_facade)) -> dict:
    return facade.create_position(payload)


@router.put("/positions", response_model=SuccessResponse)
def update_position(
    payload: PositionUpdateRequest,
    facade: PersistenceFacade = Depends(get_facade),
) -> dict:
    return facade.update_position(payload.id, name=payload.name, job_description=payload.job_description)


@router.delete("/positions", response_model=SuccessResponse)
def delete_position(id: str = Query(...), facade: PersistenceFacade = Depends(get_facade)) -> dict:
    return facade.delete_position(id)


@router.get("/history", response_model=list[HistoryRecord])
def list_history(facade: PersistenceFacade = Depends(get_facade)) -> list[HistoryRecord]:
    return facade.list_history()


@router.post("/history", response_model=SuccessResponse, status_code=201)
def create_history(payload: HistoryRecord, facade: PersistenceFacade = Depends(get_facade)) -> dict:
    return facade.create_history(payload)


@router.put("/history", response_model=SuccessResponse)
def update_history(
    payload: HistoryUpdateRequest,
    facade: PersistenceFacade = Depends(get_facade),
) -> dict:
    return facade.update_history(payload.id, assigned_to=payload.assigned_to)


@router.delete("/history", response_model=SuccessResponse)
def delete_history(id: str = Query(...), facade: PersistenceFacade = Depends(get_facade)) -> dict:
    return facade.delete_history(id)


@router.get("/fix-dates")
def fix_dates(facade: PersistenceFacade = Depends(get_facade)) -> dict:
    return facade.fix_dates()


@router.get("/test", response_model=StatusResponse)
def status(controller: ScreenerController = Depends(get_controller)) -> StatusResponse:
    settings = controller.settings
    return StatusResponse(
        has_database=settings.database_configured,
        db_url_length=len(settings.database_url),
        app_env=settings.app_env,
        timestamp=now_ms(),
    )


@router.get("/session", response_model=SessionResponse)
async def get_session_state(session: SessionState = Depends(get_session)) -> SessionResponse:
    return _session_response(session)


@router.post("/session/login", response_model=SessionResponse)
async def login(
    payload: LoginRequest,
    session: SessionState = Depends(get_session),
    controller: ScreenerController = Depends(get_controller),
) -> SessionResponse:
    controller.login(session, payload.username, payload.password)
    return _session_response(session)


@router.post("/session/logout", response_model=SessionResponse)
async def logout(
    session: SessionState = Depends(get_session),
    controller: ScreenerController = Depends(get_controller),
) -> SessionResponse:
    controller.logout(session)
    return _session_response(session)


@router.put("/session/form", response_model=SessionResponse)
async def update_form(
    payload: FormUpdateRequest,
    session: SessionState = Depends(get_session),
    controller: ScreenerController = Depends(get_controller),
) -> SessionResponse:
    controller.require_admin(session)
    controller.update_form(session, **payload.model_dump(exclude_none=True))
    return _session_response(session)


@router.post("/session/files", response_model=SessionResponse)
async def upload_files(
    files: list[UploadFile] = File(...),
    session: SessionState = Depends(get_session),
    controller: ScreenerController = Depends(get_controller),
) -> SessionResponse:
    controller.require_admin(session)
    uploads = [
        Upload(
            name=item.filename or "resume.pdf",
            content=await item.read(),
            content_type=item.content_type,
        )
        for item in files
    ]
    controller.add_files(session, uploads)
    return _session_response(session)


@router.delete("/session/files/{file_id}", response_model=SessionResponse)
async def remove_file(
    file_id: str,
    session: SessionState = Depends(get_session),
    controller: ScreenerController = Depends(get_controller),
) -> SessionResponse:
    controller.require_admin(session)
    if not controller.remove_file(session, file_id):
        raise HTTPException(status_code=404, detail="File not found")
    return _session_response(session)


@router.post("/session/analyze", response_model=AnalyzeBatchResponse)
async def analyze_batch(
    session: SessionState = Depends(get_session),
    controller: ScreenerController = Depends(get_controller),
) -> AnalyzeBatchResponse:
    controller.require_admin(session)
    record = await controller.analyze(session)
    return AnalyzeBatchResponse(
        record=record.to_wire() if record else None,
        files=[entry.to_wire() for entry in session.file_list()],
        error=session.error,
    )


def _session_response(session: SessionState) -> SessionResponse:
    return SessionResponse(
        authenticated=session.is_authenticated,
        user=session.current_user.to_wire() if session.current_user else None,
        job_description=session.job_description,
        special_requirements=session.special_requirements,
        candidate_type=session.candidate_type,
        selected_position_id=session.selected_position_id,
        is_analyzing=session.is_analyzing,
        error=session.error,
        files=[entry.to_wire() for entry in session.file_list()],
    )
