from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None) or request.headers.get("X-Request-Id")


def ok(request: Request, data: Any) -> dict[str, Any]:
    return {"data": jsonable_encoder(data), "request_id": _request_id(request)}


def err(request: Request, code: str, message: str, *, details: Any | None = None) -> dict[str, Any]:
    return {
        "error": {"code": code, "message": message, "details": jsonable_encoder(details)},
        "request_id": _request_id(request),
    }
