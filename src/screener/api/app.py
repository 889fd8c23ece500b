from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from screener.api.deps import SESSION_COOKIE
from screener.api.routes import router as api_router
from screener.config import Settings, get_settings
from screener.core.controller import ScreenerController
from screener.core.state import session_id
from screener.db.init import init_database
from screener.errors import AccessDeniedError, AuthError, ScreenerError
from screener.logging_config import configure_logging
from screener.web.routes import router as web_router

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    controller: ScreenerController | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    init_database(settings)

    app = FastAPI(title=settings.app_name)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.controller = controller or ScreenerController(settings)
    app.state.controller.bootstrap()

    @app.middleware("http")
    async def _session_cookie(request: Request, call_next):
        current = request.cookies.get(SESSION_COOKIE)
        request.state.session_id = current or session_id()
        response = await call_next(request)
        if not current:
            response.set_cookie(SESSION_COOKIE, request.state.session_id, httponly=True, samesite="lax")
        return response

    @app.exception_handler(AuthError)
    async def _auth_error(request: Request, exc: AuthError) -> JSONResponse:
        return JSONResponse({"error": str(exc)}, status_code=401)

    @app.exception_handler(AccessDeniedError)
    async def _access_denied(request: Request, exc: AccessDeniedError) -> JSONResponse:
        return JSONResponse({"error": str(exc)}, status_code=403)

    @app.exception_handler(ScreenerError)
    async def _screener_error(request: Request, exc: ScreenerError) -> JSONResponse:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse({"error": str(exc)}, status_code=500)

    @app.exception_handler(ValueError)
    async def _value_error(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse({"error": str(exc)}, status_code=400)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse({"error": str(exc.detail)}, status_code=exc.status_code, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def _invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        fields = sorted({".".join(str(part) for part in err["loc"]) for err in exc.errors()})
        return JSONResponse({"error": f"Invalid request: {', '.join(fields)}"}, status_code=422)

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse({"error": str(exc)}, status_code=500)

    @app.get("/health")
    def health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    app.include_router(api_router)
    if settings.web_ui_enabled:
        app.include_router(web_router)
    return app
