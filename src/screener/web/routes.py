from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates

from screener.api.deps import get_controller, get_session
from screener.core.controller import ScreenerController
from screener.core.orchestrator import Upload
from screener.core.state import SessionState
from screener.errors import AuthError

router = APIRouter(tags=["web"])
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))

ADMIN_PAGES = {"home", "positions", "permissions"}
PAGES = ADMIN_PAGES | {"history"}


def _redirect(page: str = "home") -> RedirectResponse:
    return RedirectResponse(url=f"/?page={page}", status_code=303)


def _score_class(score: int) -> str:
    if score >= 80:
        return "score-high"
    if score >= 60:
        return "score-mid"
    return "score-low"


templates.env.globals["score_class"] = _score_class


@router.get("/favicon.ico", include_in_schema=False)
async def favicon() -> Response:
    return Response(status_code=204)


@router.get("/", response_class=HTMLResponse)
async def index(
    request: Request,
    page: str = "home",
    session: SessionState = Depends(get_session),
    controller: ScreenerController = Depends(get_controller),
) -> HTMLResponse:
    if not session.is_authenticated:
        return templates.TemplateResponse(request, "login.html", {"error": None})

    if page not in PAGES or (page in ADMIN_PAGES and not session.is_admin):
        page = "home" if session.is_admin else "history"

    # Errors are shown once.
    error, session.error = session.error, None
    state = controller.state
    return templates.TemplateResponse(
        request,
        "shell.html",
        {
            "page": page,
            "state": state,
            "session": session,
            "error": error,
            "history": controller.visible_history(session),
            "users_by_id": {user.id: user for user in state.users},
        },
    )


@router.post("/web/login", response_class=HTMLResponse)
async def login(
    request: Request,
    username: str = Form(...),
    password: str = Form(...),
    session: SessionState = Depends(get_session),
    controller: ScreenerController = Depends(get_controller),
) -> Response:
    try:
        controller.login(session, username, password)
    except AuthError as exc:
        return templates.TemplateResponse(
            request, "login.html", {"error": str(exc), "username": username}, status_code=401
        )
    return _redirect("home" if session.is_admin else "history")


@router.post("/web/logout")
async def logout(
    session: SessionState = Depends(get_session),
    controller: ScreenerController = Depends(get_controller),
) -> RedirectResponse:
    controller.logout(session)
    return RedirectResponse(url="/", status_code=303)


@router.post("/web/files")
async def upload_files(
    files: list[UploadFile] = File(...),
    session: SessionState = Depends(get_session),
    controller: ScreenerController = Depends(get_controller),
) -> RedirectResponse:
    if _denied(session):
        return _redirect()
    uploads = [
        Upload(
            name=item.filename or "resume.pdf",
            content=await item.read(),
            content_type=item.content_type,
        )
        for item in files
        if item.filename
    ]
    controller.add_files(session, uploads)
    return _redirect()


@router.post("/web/files/{file_id}/remove")
async def remove_file(
    file_id: str,
    session: SessionState = Depends(get_session),
    controller: ScreenerController = Depends(get_controller),
) -> RedirectResponse:
    return _guarded(session, "home", lambda: controller.remove_file(session, file_id))


@router.post("/web/analyze")
async def analyze(
    job_description: str = Form(""),
    special_requirements: str = Form(""),
    candidate_type: str = Form("experienced"),
    position_id: str = Form(""),
    session: SessionState = Depends(get_session),
    controller: ScreenerController = Depends(get_controller),
) -> RedirectResponse:
    if _denied(session):
        return _redirect()
    try:
        controller.update_form(
            session,
            job_description=job_description,
            special_requirements=special_requirements,
            candidate_type="intern" if candidate_type == "intern" else "experienced",
            selected_position_id=position_id,
        )
    except ValueError as exc:
        session.error = str(exc)
        return _redirect()
    await controller.analyze(session)
    return _redirect()


@router.post("/web/positions")
async def create_position(
    name: str = Form(...),
    job_description: str = Form(""),
    session: SessionState = Depends(get_session),
    controller: ScreenerController = Depends(get_controller),
) -> RedirectResponse:
    return _guarded(session, "positions", lambda: controller.add_position(name, job_description))


@router.post("/web/positions/{position_id}")
async def update_position(
    position_id: str,
    name: str = Form(...),
    job_description: str = Form(""),
    session: SessionState = Depends(get_session),
    controller: ScreenerController = Depends(get_controller),
) -> RedirectResponse:
    return _guarded(
        session,
        "positions",
        lambda: controller.update_position(position_id, name, job_description),
    )


@router.post("/web/positions/{position_id}/delete")
async def delete_position(
    position_id: str,
    session: SessionState = Depends(get_session),
    controller: ScreenerController = Depends(get_controller),
) -> RedirectResponse:
    return _guarded(session, "positions", lambda: controller.delete_position(position_id))


@router.post("/web/users")
async def create_user(
    username: str = Form(""),
    password: str = Form(""),
    position: str = Form(""),
    session: SessionState = Depends(get_session),
    controller: ScreenerController = Depends(get_controller),
) -> RedirectResponse:
    return _guarded(
        session,
        "permissions",
        lambda: controller.add_user(username=username, password=password, position=position),
    )


@router.post("/web/users/{user_id}/delete")
async def delete_user(
    user_id: str,
    session: SessionState = Depends(get_session),
    controller: ScreenerController = Depends(get_controller),
) -> RedirectResponse:
    return _guarded(session, "permissions", lambda: controller.delete_user(user_id))


@router.post("/web/history/{record_id}/transfer")
async def transfer_history(
    record_id: str,
    user_id: str = Form(""),
    session: SessionState = Depends(get_session),
    controller: ScreenerController = Depends(get_controller),
) -> RedirectResponse:
    return _guarded(session, "history", lambda: controller.transfer_history(record_id, user_id))


@router.post("/web/history/{record_id}/delete")
async def delete_history(
    record_id: str,
    session: SessionState = Depends(get_session),
    controller: ScreenerController = Depends(get_controller),
) -> RedirectResponse:
    return _guarded(session, "history", lambda: controller.delete_history(record_id))


def _denied(session: SessionState) -> bool:
    """True, with the error left for the next render, when the session is not an admin."""
    if session.is_admin:
        return False
    if session.is_authenticated:
        session.error = "需要管理员权限"
    return True


def _guarded(session: SessionState, page: str, action) -> RedirectResponse:
    """Run an admin action, leaving any validation error for the next render."""
    if _denied(session):
        return _redirect(page)
    try:
        action()
    except ValueError as exc:
        session.error = str(exc)
    return _redirect(page)
