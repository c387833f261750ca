"""FastAPI application entrypoint.

This module builds the e-learning backend application: it configures
logging and CORS, serves uploaded avatars, mounts the routers from
`elearning.routers` and converts every failure into the
`{"success": false, "error": ...}` envelope.

Routers are intentionally thin: they validate the request body, resolve
the current user and delegate to the services in `elearning.services`.
"""

import json
import logging
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings
from .database import create_db_and_tables
from .errors import ServiceError
from .responses import fail, ok
from .routers import all_routers

app = FastAPI(title="E-learning Platform API")
logger = logging.getLogger("elearning.api")
if not logger.handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)

# Wide-open CORS keeps a separately served dev frontend working without extra config.
if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

settings.AVATAR_DIR.mkdir(parents=True, exist_ok=True)
app.mount("/avatars", StaticFiles(directory=settings.AVATAR_DIR), name="avatars")

for _router in all_routers:
    app.include_router(_router)

create_db_and_tables()


def _request_log(request: Request, started: float, **extra) -> str:
    entry = {
        "request_id": getattr(request.state, "request_id", None),
        "path": request.url.path,
        "method": request.method,
        **extra,
        "duration_ms": round((time.perf_counter() - started) * 1000.0, 2),
        "client": request.client.host if request.client else "unknown",
    }
    return json.dumps(entry, ensure_ascii=True)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        if request.url.path.startswith("/api"):
            logger.exception("request_failed %s", _request_log(request, started))
        raise
    response.headers["X-Request-ID"] = req_id
    if request.url.path.startswith("/api"):
        logger.info("request_done %s", _request_log(request, started, status_code=response.status_code))
    return response


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    return fail(exc.status_code, exc.message, exc.details)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return fail(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = [{"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")} for e in exc.errors()]
    return fail(400, "validation error", details)


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    # a unique or foreign key constraint lost a race with another write
    logger.warning("integrity_error request_id=%s %s", getattr(request.state, "request_id", None), exc.orig)
    return fail(409, "conflict with existing data")


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error("unhandled_error request_id=%s", getattr(request.state, "request_id", None), exc_info=exc)
    return fail(500, "internal server error")


@app.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return ok({"status": "ok"})
