from __future__ import annotations

import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from starlette.exceptions import HTTPException

from shadow_calendar.api.router import api_router
from shadow_calendar.core.config import settings
from shadow_calendar.core.logging import configure_logging, log
from shadow_calendar.core.response import err
from shadow_calendar.db.init_db import init_db
from shadow_calendar.db.schema_check import ensure_schema_up_to_date
from shadow_calendar.db.session import engine
from shadow_calendar.infra.redis_client import close_redis
from shadow_calendar.middleware.request_context import RequestContextMiddleware

configure_logging()


def validate_security_config() -> None:
    """Stage/prod values are enforced by Settings; dev only gets a warning."""
    if settings.APP_ENV == "dev":
        if settings.JWT_SECRET_KEY in settings.INSECURE_DEFAULT_VALUES:
            log.warning(
                "insecure_configuration",
                field="JWT_SECRET_KEY",
                message="Using the default JWT secret; never do this outside dev",
            )
    else:
        log.info("security_config_validated", env=settings.APP_ENV)

    log.info(
        "cors_configuration",
        env=settings.APP_ENV,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
    )
    if not settings.GOOGLE_MAPS_API_KEY:
        log.warning("google_maps_disabled", message="Transit times are estimated and addresses are not geocoded")


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.APP_ENV == "dev":
        # dev convenience: create tables automatically
        await init_db(engine)
    else:
        if settings.CACHE_BACKEND == "redis" and not settings.REDIS_URL:
            raise RuntimeError("REDIS_URL must be set when CACHE_BACKEND=redis")
        # strict: alembic must be applied; schema must match head
        await ensure_schema_up_to_date(engine, alembic_ini_path="alembic.ini")

    yield

    try:
        await close_redis()
    except RedisError as exc:
        log.warning("redis_close_failed", error=str(exc))
    await engine.dispose()


app = FastAPI(
    title="Shadow Calendar",
    version="0.1.0",
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    docs_url=f"{settings.API_V1_PREFIX}/docs",
    redoc_url=f"{settings.API_V1_PREFIX}/redoc",
    lifespan=lifespan,
)

validate_security_config()

cors_kwargs = {
    "allow_credentials": settings.CORS_ALLOW_CREDENTIALS,
    "allow_methods": ["*"],
    "allow_headers": ["*"],
    "expose_headers": ["X-Request-Id", "X-Timezone"],
}
if settings.CORS_ALLOW_ORIGINS:
    cors_kwargs["allow_origins"] = settings.CORS_ALLOW_ORIGINS

app.add_middleware(CORSMiddleware, **cors_kwargs)
# Adds request_id + timezone context, returns request_id in all responses
app.add_middleware(RequestContextMiddleware)

app.include_router(api_router, prefix=settings.API_V1_PREFIX)


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    # Ensure we always return a request_id for tracing, even on unexpected errors
    request_id = getattr(request.state, "request_id", None) or str(uuid.uuid4())
    log.exception("unhandled_exception", request_id=request_id, path=str(request.url))
    return JSONResponse(
        status_code=500,
        content={
            "error": {"code": "internal_error", "message": "Internal server error", "details": None},
            "request_id": request_id,
        },
        headers={"X-Request-Id": request_id},
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    request_id = getattr(request.state, "request_id", None) or str(uuid.uuid4())
    payload = exc.detail if isinstance(exc.detail, dict) else {
        "error": {"code": "http_error", "message": str(exc.detail), "details": None},
        "request_id": request_id,
    }
    payload.setdefault("request_id", request_id)
    return JSONResponse(status_code=exc.status_code, content=payload, headers={"X-Request-Id": request_id})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # ctx carries the raw exception objects
    errors = [{k: v for k, v in e.items() if k != "ctx"} for e in exc.errors()]
    return JSONResponse(
        status_code=422,
        content=err(request, "validation_error", "Request validation failed", details={"errors": errors}),
    )
