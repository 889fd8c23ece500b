from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import typer
import uvicorn

from screener.api.app import create_app
from screener.config import get_settings
from screener.core.controller import ScreenerController
from screener.core.orchestrator import Upload
from screener.core.state import SessionState, session_id
from screener.db.facade import PersistenceFacade
from screener.db.init import init_database
from screener.errors import AccessDeniedError, AuthError, PersistenceError
from screener.logging_config import configure_logging

app = typer.Typer(help="Resume Screener CLI")
users_app = typer.Typer(help="Manage reviewer accounts")
positions_app = typer.Typer(help="Manage positions")
history_app = typer.Typer(help="Screening history")

app.add_typer(users_app, name="users")
app.add_typer(positions_app, name="positions")
app.add_typer(history_app, name="history")


def _controller() -> ScreenerController:
    configure_logging()
    settings = get_settings()
    init_database(settings)
    controller = ScreenerController(settings)
    controller.bootstrap()
    return controller


def _echo(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))


def _run(action) -> Any:
    try:
        return action()
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


@app.command("init")
def init_cmd() -> None:
    """Create the data directory and, when a database is configured, its tables."""
    configure_logging()
    result = init_database()
    _echo({"ok": True, **result})


@users_app.command("list")
def users_list() -> None:
    controller = _controller()
    _echo(
        [
            {key: value for key, value in user.to_wire().items() if key != "password"}
            for user in controller.state.users
        ]
    )


@users_app.command("add")
def users_add(
    username: str = typer.Option(..., "--username"),
    password: str = typer.Option(..., "--password"),
    position: str = typer.Option("", "--position"),
) -> None:
    controller = _controller()
    user = _run(lambda: controller.add_user(username=username, password=password, position=position))
    _echo({"id": user.id, "username": user.username})


@users_app.command("delete")
def users_delete(user_id: str = typer.Option(..., "--id")) -> None:
    controller = _controller()
    _run(lambda: controller.delete_user(user_id))
    _echo({"success": True})


@positions_app.command("list")
def positions_list() -> None:
    controller = _controller()
    _echo([position.to_wire() for position in controller.state.positions])


@positions_app.command("add")
def positions_add(
    name: str = typer.Option(..., "--name"),
    job_description_file: Path | None = typer.Option(
        None, "--jd", exists=True, readable=True, help="File holding the job description"
    ),
) -> None:
    controller = _controller()
    jd = job_description_file.read_text(encoding="utf-8") if job_description_file else None
    position = _run(lambda: controller.add_position(name, jd))
    _echo(position.to_wire())


@positions_app.command("update")
def positions_update(
    position_id: str = typer.Option(..., "--id"),
    name: str = typer.Option(..., "--name"),
    job_description_file: Path | None = typer.Option(None, "--jd", exists=True, readable=True),
) -> None:
    controller = _controller()
    jd = job_description_file.read_text(encoding="utf-8") if job_description_file else None
    position = _run(lambda: controller.update_position(position_id, name, jd))
    _echo(position.to_wire())


@positions_app.command("delete")
def positions_delete(position_id: str = typer.Option(..., "--id")) -> None:
    controller = _controller()
    _run(lambda: controller.delete_position(position_id))
    _echo({"success": True})


@history_app.command("list")
def history_list(limit: int = typer.Option(20, "--limit")) -> None:
    controller = _controller()
    _echo(
        [
            {
                "id": record.id,
                "timestamp": record.timestamp,
                "positionName": record.position_name,
                "assignedTo": record.assigned_to,
                "results": [
                    {
                        "fileName": entry.file_name,
                        "name": entry.result.candidate_info.name,
                        "matchScore": entry.result.match_score,
                        "recommendation": entry.result.recommendation,
                    }
                    for entry in record.results
                ],
            }
            for record in controller.state.history[:limit]
        ]
    )


@history_app.command("transfer")
def history_transfer(
    record_id: str = typer.Option(..., "--id"),
    user_id: str = typer.Option(..., "--to"),
) -> None:
    controller = _controller()
    record = _run(lambda: controller.transfer_history(record_id, user_id))
    _echo({"id": record.id, "assignedTo": record.assigned_to})


@history_app.command("delete")
def history_delete(record_id: str = typer.Option(..., "--id")) -> None:
    controller = _controller()
    _run(lambda: controller.delete_history(record_id))
    _echo({"success": True})


@app.command("fix-dates")
def fix_dates() -> None:
    """Backfill missing created_at values for users and positions."""
    configure_logging()
    facade = PersistenceFacade.from_settings(get_settings())
    try:
        _echo(facade.fix_dates())
    except PersistenceError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


@app.command("screen")
def screen(
    resumes: list[Path] = typer.Argument(..., exists=True, readable=True, dir_okay=False),
    job_description_file: Path = typer.Option(..., "--jd", exists=True, readable=True),
    special_requirements: str = typer.Option("", "--special"),
    mode: str = typer.Option("experienced", "--mode", help="experienced or intern"),
    position_id: str = typer.Option("", "--position"),
    username: str = typer.Option("admin", "--username"),
    password: str = typer.Option("admin", "--password"),
) -> None:
    """Analyze local PDF resumes and save the batch to history."""
    if mode not in {"experienced", "intern"}:
        raise typer.BadParameter("mode must be 'experienced' or 'intern'")

    controller = _controller()
    # A throwaway session, so a CLI run never changes who a browser sees as signed in.
    session = controller.session(session_id())
    try:
        controller.login(session, username, password)
        controller.require_admin(session)
    except (AuthError, AccessDeniedError) as exc:
        controller.logout(session)
        raise typer.BadParameter(str(exc)) from exc

    try:
        _screen(controller, session, resumes, job_description_file, special_requirements, mode, position_id)
    finally:
        controller.logout(session)


def _screen(
    controller: ScreenerController,
    session: SessionState,
    resumes: list[Path],
    job_description_file: Path,
    special_requirements: str,
    mode: str,
    position_id: str,
) -> None:
    _run(
        lambda: controller.update_form(
            session,
            job_description=job_description_file.read_text(encoding="utf-8"),
            special_requirements=special_requirements,
            candidate_type=mode,
            selected_position_id=position_id,
        )
    )
    controller.add_files(
        session,
        (
            Upload(name=path.name, content=path.read_bytes(), content_type="application/pdf")
            for path in resumes
        ),
    )
    record = asyncio.run(controller.analyze(session))
    _echo(
        {
            "historyId": record.id if record else None,
            "error": session.error,
            "files": [entry.to_wire() for entry in session.file_list()],
        }
    )


@app.command("serve")
def serve(
    host: str | None = typer.Option(None, "--host"),
    port: int | None = typer.Option(None, "--port"),
) -> None:
    configure_logging()
    settings = get_settings()
    app_instance = create_app(settings)
    uvicorn.run(app_instance, host=host or settings.app_host, port=port or settings.app_port)


if __name__ == "__main__":
    app()
