from __future__ import annotations

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

from shadow_calendar.core.config import settings
from shadow_calendar.core.response import err

_EXEMPT_SUFFIXES = ("/openapi.json", "/docs", "/redoc")


def _is_exempt(path: str) -> bool:
    return path == "/health" or path.endswith(_EXEMPT_SUFFIXES) or not path.startswith(settings.API_V1_PREFIX)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Injects:
      - request.state.request_id
      - request.state.client_timezone

    Rules:
      - X-Request-Id is required on API calls (no server-side generation)
      - X-Timezone is required and must be a valid IANA name
      - Both headers are echoed back and the request id is bound to the log context
    """

    async def dispatch(self, request: Request, call_next):
        if _is_exempt(request.url.path):
            return await call_next(request)

        req_id = request.headers.get("X-Request-Id")
        if not req_id:
            return JSONResponse(
                status_code=400,
                content=err(request, "missing_request_id", "X-Request-Id header is required"),
            )

        tz = request.headers.get("X-Timezone")
        if not tz:
            return JSONResponse(
                status_code=400,
                content=err(request, "invalid_timezone", "X-Timezone header is required"),
                headers={"X-Request-Id": req_id},
            )
        try:
            ZoneInfo(tz)
        except (ZoneInfoNotFoundError, ValueError, OSError):
            return JSONResponse(
                status_code=400,
                content=err(request, "invalid_timezone", "Invalid X-Timezone header"),
                headers={"X-Request-Id": req_id},
            )

        request.state.request_id = req_id
        request.state.client_timezone = tz

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=req_id, path=request.url.path)
        try:
            response: Response = await call_next(request)
        finally:
            structlog.contextvars.clear_contextvars()

        response.headers["X-Request-Id"] = req_id
        response.headers["X-Timezone"] = tz
        return response
