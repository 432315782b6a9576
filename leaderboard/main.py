import asyncio
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import Body, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from . import deps, handlers
from .config import settings
from .deps import get_registry, get_store
from .handlers import HandlerResult
from .logging_utils import get_logger, request_id_ctx, setup_logging
from .ratelimit import rate_limit_dependency
from .sessions import SessionRegistry, sweep_periodically
from .store import ScoreStore

setup_logging(settings.log_level)
logger = get_logger("leaderboard")

_sweep_task: Optional[asyncio.Task] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    global _sweep_task
    store = get_store()
    try:
        store.ensure_exists()
    except Exception as e:
        logger.warning("scores_file_init_failed", extra={"scores_file": str(store.path), "error": str(e)})
    _sweep_task = asyncio.create_task(
        sweep_periodically(deps.session_registry, settings.session_sweep_interval_sec)
    )
    logger.info("startup", extra={"scores_file": str(store.path)})
    try:
        yield
    finally:
        _sweep_task.cancel()
        try:
            await _sweep_task
        except asyncio.CancelledError:
            pass
        _sweep_task = None


app = FastAPI(title="Leaderboard API", lifespan=lifespan)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        token = request_id_ctx.set(rid)
        start = time.time()
        client = request.client.host if request.client else "-"
        response = None
        try:
            response = await call_next(request)
            return response
        except Exception:
            logger.exception("request_error", extra={"path": request.url.path, "method": request.method})
            raise
        finally:
            status = getattr(response, "status_code", 500)
            logger.info(
                "request",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status": status,
                    "duration_ms": int((time.time() - start) * 1000),
                    "client": client,
                },
            )
            if response is not None:
                response.headers["X-Request-ID"] = rid
            request_id_ctx.reset(token)


app.add_middleware(RequestLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials="*" not in settings.cors_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Accept", "Content-Type", "X-Request-ID", "X-Requested-With"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning("validation_error", extra={"method": request.method, "path": request.url.path, "errors": exc.errors()})
    return JSONResponse(status_code=400, content={"success": False, "error": "Invalid request body"})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


def _respond(result: HandlerResult) -> JSONResponse:
    return JSONResponse(status_code=result.status_code, content=result.body)


@app.get("/health", include_in_schema=False)
def health():
    return {"status": "ok", "active_sessions": len(deps.session_registry)}


@app.get("/scores")
def list_scores(store: ScoreStore = Depends(get_store)):
    return _respond(handlers.list_scores(store))


@app.post("/session/start")
def start_session(
    registry: SessionRegistry = Depends(get_registry),
    _: None = Depends(rate_limit_dependency(
        "session_start",
        settings.session_rate_limit,
        settings.session_rate_window_sec,
    )),
):
    return _respond(handlers.start_session(registry))


@app.post("/session/interact")
def record_interaction(
    payload: Any = Body(None),
    registry: SessionRegistry = Depends(get_registry),
):
    return _respond(handlers.record_interaction(payload, registry))


@app.post("/scores")
def submit_score(
    payload: Any = Body(None),
    registry: SessionRegistry = Depends(get_registry),
    store: ScoreStore = Depends(get_store),
    _: None = Depends(rate_limit_dependency(
        "submit_score",
        settings.submit_rate_limit,
        settings.submit_rate_window_sec,
        message="Too many requests, please try again later",
    )),
):
    return _respond(handlers.submit_score(payload, registry, store))
