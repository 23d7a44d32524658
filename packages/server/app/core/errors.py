"""
Typed application errors and their JSON rendering.

Every failure surfaced by a service is one of these. They subclass
HTTPException so FastAPI dependencies and handlers can raise them directly;
the registered handlers render them in one error envelope:

    {"error": {"code": "...", "message": "...", "status": N}}
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

log = structlog.get_logger()


class AppError(HTTPException):
    status_code_default = 500
    code = "INTERNAL"
    message = "Internal server error"

    def __init__(self, message: str | None = None, *, headers: dict[str, str] | None = None):
        self.message = message or self.message
        super().__init__(
            status_code=self.status_code_default, detail=self.message, headers=headers
        )


class ValidationFailed(AppError):
    status_code_default = 400
    code = "VALIDATION_FAILED"
    message = "Validation failed"


class Unauthorized(AppError):
    status_code_default = 401
    code = "UNAUTHORIZED"
    message = "Unauthorized"

    def __init__(self, message: str | None = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class Forbidden(AppError):
    status_code_default = 403
    code = "FORBIDDEN"
    message = "Forbidden"


class NotFound(AppError):
    status_code_default = 404
    code = "NOT_FOUND"
    message = "Not found"


class Conflict(AppError):
    status_code_default = 409
    code = "CONFLICT"
    message = "Conflict"


class Internal(AppError):
    pass


# ---------------------------------------------------------------------------
# Domain-specific failures
# ---------------------------------------------------------------------------

class InvalidTokenError(Unauthorized):
    code = "INVALID_TOKEN"
    message = "invalid token"


class TokenExpiredError(Unauthorized):
    code = "TOKEN_EXPIRED"
    message = "token has expired"


class NotAMemberError(Forbidden):
    code = "NOT_A_MEMBER"
    message = "you are not a member of this organization"


class InviteNotFoundError(NotFound):
    code = "INVITE_NOT_FOUND"
    message = "invite not found or expired"


class AlreadyMemberError(Conflict):
    code = "ALREADY_MEMBER"
    message = "you are already a member of this organization"


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

def error_body(code: str, message: Any, status: int) -> dict:
    return {"error": {"code": code, "message": message, "status": status}}


_STATUS_CODES = {
    400: ValidationFailed.code,
    401: Unauthorized.code,
    403: Forbidden.code,
    404: NotFound.code,
    409: Conflict.code,
}


async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.code, exc.message, exc.status_code),
        headers=exc.headers,
    )


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = _STATUS_CODES.get(exc.status_code, "HTTP_ERROR")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(code, exc.detail, exc.status_code),
        headers=exc.headers,
    )


async def _validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"{field}: {first.get('msg', 'invalid')}" if field else "invalid request body"
    return JSONResponse(
        status_code=422,
        content=error_body(ValidationFailed.code, message, 422),
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    log.exception("request.unhandled_error", path=request.url.path)
    return JSONResponse(
        status_code=500,
        content=error_body(Internal.code, Internal.message, 500),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, _app_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
