import logging
import sqlite3
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler, request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import store
from .db import ProcedureError
from .routes.common import envelope_error
from .routes.erm import router as erm_router
from .routes.health import router as health_router
from .routes.logs import router as logs_router
from .routes.navigation import router as navigation_router
from .routes.ui import router as ui_router
from .settings import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    store.init_db(settings.log_database_url)
    app.state.settings = settings
    yield


app = FastAPI(title="IPS API", version="0.1.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(health_router)
app.include_router(erm_router)
app.include_router(navigation_router)
app.include_router(logs_router)
app.include_router(ui_router)


@app.exception_handler(ProcedureError)
async def procedure_error_handler(request: Request, exc: ProcedureError):
    logger.error("Error calling %s for %s: %s", exc.procedure_name, request.url.path, exc)
    request.state.error = str(exc)
    return envelope_error(f"Database error: {exc}")


@app.exception_handler(StarletteHTTPException)
async def api_http_exception_handler(request: Request, exc: StarletteHTTPException):
    if not request.url.path.startswith("/api/"):
        return await http_exception_handler(request, exc)
    request.state.error = str(exc.detail)
    return envelope_error(str(exc.detail), status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def api_validation_error_handler(request: Request, exc: RequestValidationError):
    if not request.url.path.startswith("/api/"):
        return await request_validation_exception_handler(request, exc)
    message = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}" for error in exc.errors()
    )
    request.state.error = message
    return envelope_error(f"Invalid request: {message}", status_code=422)


@app.middleware("http")
async def record_api_calls(request: Request, call_next):
    path = request.url.path
    if not path.startswith("/api/") or path.startswith("/api/logs"):
        return await call_next(request)

    started = time.perf_counter()
    response = await call_next(request)
    duration_ms = round((time.perf_counter() - started) * 1000, 2)

    if store.is_initialized():
        try:
            store.insert_request_log(
                request.method,
                str(request.url),
                response.status_code,
                duration_ms,
                procedure_name=getattr(request.state, "procedure_name", None),
                error=getattr(request.state, "error", None),
                keep=get_settings().request_log_limit,
            )
        except sqlite3.Error:
            logger.exception("Failed to record API call %s %s", request.method, path)
    return response


@app.get("/")
async def root(request: Request) -> dict[str, str]:
    settings = getattr(request.app.state, "settings", get_settings())
    return {"message": f"IPS API running in {settings.env} mode"}
