import logging
import time
import traceback
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root wherever uvicorn is started from
_PROJ_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_PROJ_ROOT / ".env")

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session
from starlette.exceptions import HTTPException

from app.admin import admin_router
from app.api.shop import files_router, router as shop_router
from app.core.config import is_courier_configured, settings
from app.core.database import engine, init_db
from app.core.errors import ShopError
from app.core.rate_limit import get_client_ip, limiter
from app.logging import setup_logging
from app.models import ErrorLog, SecurityLog
from app.services.storage import storage_config_from_settings

setup_logging(settings.log_level)
log = logging.getLogger("shop")


def _cors_origins_list() -> list[str]:
    if not settings.cors_origins or settings.cors_origins.strip() == "*":
        return ["*"]
    return [o.strip() for o in settings.cors_origins.split(",") if o.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    log.info(
        "Startup: env=%s storage=%s courier=%s admin=%s",
        settings.environment,
        storage_config_from_settings().provider,
        "yes" if is_courier_configured() else "no",
        "yes" if settings.admin_secret else "NO (set ADMIN_SECRET in .env)",
    )
    yield


app = FastAPI(
    title="Shop API",
    description="Storefront checkout and back-office API",
    lifespan=lifespan,
)
app.state.limiter = limiter


def _error_response(request: Request, status_code: int, detail: str) -> JSONResponse:
    rid = getattr(request.state, "request_id", None)
    body = {"success": False, "error": detail, "status_code": status_code}
    if rid:
        body["request_id"] = rid
    return JSONResponse(status_code=status_code, content=body)


def _rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    try:
        with Session(engine) as db:
            db.add(
                SecurityLog(
                    event="rate_limit",
                    ip=get_client_ip(request),
                    endpoint=request.url.path,
                    detail=f"Rate limit exceeded ({exc.detail})",
                )
            )
            db.commit()
    except SQLAlchemyError as e:
        log.warning("SecurityLog rate_limit write failed: %s", e)
    return _error_response(request, 429, "Too many requests. Please wait a minute and try again.")


def _validation_error_message(exc: RequestValidationError) -> str:
    errs = exc.errors()
    if not errs:
        return "Invalid request."
    first = errs[0]
    loc = [str(p) for p in (first.get("loc") or []) if p not in ("body", "query", "path")]
    field = loc[-1] if loc else None
    if first.get("type") == "missing":
        return f"{field} is required" if field else "Request body is required"
    msg = first.get("msg") or "Invalid request."
    # pydantic prefixes custom validator messages
    return msg.removeprefix("Value error, ")


@app.exception_handler(RequestValidationError)
def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    log.info(
        "Request validation error (422): path=%s method=%s detail=%s",
        request.url.path,
        request.method,
        exc.errors(),
    )
    return _error_response(request, 422, _validation_error_message(exc))


app.add_exception_handler(RateLimitExceeded, _rate_limit_handler)


@app.exception_handler(ShopError)
def shop_error_handler(request: Request, exc: ShopError) -> JSONResponse:
    return _error_response(request, exc.status_code, exc.message)


@app.exception_handler(HTTPException)
def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return _error_response(request, exc.status_code, exc.detail if isinstance(exc.detail, str) else str(exc.detail))


@app.exception_handler(Exception)
def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    log.exception("Unhandled exception: path=%s %s", request.url.path, exc)
    try:
        with Session(engine) as db:
            db.add(
                ErrorLog(
                    endpoint=request.url.path,
                    method=request.method,
                    error_message=str(exc)[:2000],
                    stack_trace=traceback.format_exc()[:10000],
                )
            )
            db.commit()
    except SQLAlchemyError as e:
        log.warning("ErrorLog write failed: %s", e)
    return _error_response(request, 500, "Unexpected server error.")


@app.middleware("http")
async def request_id_and_latency(request: Request, call_next):
    request.state.request_id = str(uuid.uuid4())
    start = time.perf_counter()
    response = await call_next(request)
    latency_ms = (time.perf_counter() - start) * 1000
    response.headers["X-Request-ID"] = request.state.request_id
    log.info(
        "request_id=%s method=%s path=%s status=%s latency_ms=%.2f",
        request.state.request_id,
        request.method,
        request.url.path,
        response.status_code,
        latency_ms,
    )
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(shop_router)
app.include_router(admin_router)
app.include_router(files_router)


@app.get("/health")
def health():
    db_ok = True
    try:
        with Session(engine) as db:
            db.exec(text("SELECT 1"))
    except SQLAlchemyError as e:
        log.warning("Health check: database unreachable: %s", e)
        db_ok = False
    return {
        "status": "ok" if db_ok else "degraded",
        "database": db_ok,
        "storage": storage_config_from_settings().provider,
        "courier_configured": is_courier_configured(),
    }
